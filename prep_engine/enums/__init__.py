"""
Centralized enum definitions for the application.

Usage:
    from prep_engine.enums import LearningPhase, BookmarkElementType

    # Or import from the specific module
    from prep_engine.enums.learning import SessionEventType
"""

from prep_engine.enums.learning import (
    BookmarkElementType,
    LearningPhase,
    MessageRole,
    SessionEventType,
)

__all__ = [
    "BookmarkElementType",
    "LearningPhase",
    "MessageRole",
    "SessionEventType",
]
