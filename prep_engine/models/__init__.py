"""
Pydantic models package.

Usage:
    from prep_engine.models import Topic, SessionView
"""

from prep_engine.models.base import ErrorDetail, StrictRequest, StrictResponse
from prep_engine.models.learning import (
    MCQ,
    AnswerSubmitRequest,
    Bookmark,
    BookmarkToggleRequest,
    BookmarkToggleResponse,
    ChatMessage,
    EvaluationResult,
    MCQFeedback,
    MediaSuggestion,
    QuizView,
    RecursiveLearningGap,
    SessionEvent,
    SessionView,
    StudentAnswer,
    StudentProgress,
    SubjectExhausted,
    Topic,
)

__all__ = [
    # Base
    "ErrorDetail",
    "StrictRequest",
    "StrictResponse",
    # Content
    "MCQ",
    "MCQFeedback",
    "MediaSuggestion",
    "RecursiveLearningGap",
    "Topic",
    # Learner state
    "Bookmark",
    "StudentAnswer",
    "StudentProgress",
    # Views
    "ChatMessage",
    "EvaluationResult",
    "QuizView",
    "SessionEvent",
    "SessionView",
    "SubjectExhausted",
    # API
    "AnswerSubmitRequest",
    "BookmarkToggleRequest",
    "BookmarkToggleResponse",
]
