"""
Learning Session Services

The adaptive session engine: topic selection, the five-phase state machine,
MCQ sequencing, answer evaluation, bookmarks, and the orchestrator that
composes them.

Modules:
- progress_store: Repository contract plus SQLAlchemy and in-memory stores
- topic_selector: Current/next topic resolution by primary_seq
- phase_machine: Forward-only SUMMARY → QUIZ progression
- mcq_sequencer: Active question, asymmetric completion, resumption replay
- answer_evaluator: Scoring, feedback text, answer log writes
- bookmark_tracker: Idempotent bookmark toggles
- session_events: Event stream for session activity
- session_orchestrator: Session lifecycle and the per-session registry

Usage:
    from prep_engine.services.learning import (
        SessionOrchestrator,
        SqlAlchemyProgressStore,
    )
"""

from prep_engine.services.learning.progress_store import (
    InMemoryProgressStore,
    ProgressStore,
    SqlAlchemyProgressStore,
)
from prep_engine.services.learning.topic_selector import TopicSelection, TopicSelector
from prep_engine.services.learning.phase_machine import (
    DisplayState,
    PhaseState,
    PhaseStateMachine,
    QuizState,
)
from prep_engine.services.learning.mcq_sequencer import MCQSequencer, QuizReplay
from prep_engine.services.learning.answer_evaluator import AnswerEvaluator
from prep_engine.services.learning.bookmark_tracker import BookmarkTracker
from prep_engine.services.learning.session_events import SessionEventStream
from prep_engine.services.learning.session_orchestrator import (
    SessionOrchestrator,
    SessionRegistry,
)

__all__ = [
    # Persistence
    "ProgressStore",
    "SqlAlchemyProgressStore",
    "InMemoryProgressStore",
    # Engine components
    "TopicSelector",
    "TopicSelection",
    "PhaseStateMachine",
    "PhaseState",
    "DisplayState",
    "QuizState",
    "MCQSequencer",
    "QuizReplay",
    "AnswerEvaluator",
    "BookmarkTracker",
    "SessionEventStream",
    # Orchestration
    "SessionOrchestrator",
    "SessionRegistry",
]
