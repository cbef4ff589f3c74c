"""
Learning Session Models (Pydantic)

Records and view schemas for the adaptive session engine:
- Topic content (summary, concepts, gaps, media, MCQ quiz)
- Persisted learner state (progress pointer, answer log, bookmarks)
- Session views returned to callers
- Session events published on the event stream

ARCHITECTURE NOTE:
    This file contains PYDANTIC models used by the services and the API.
    There is a corresponding SQLAlchemy file: prep_engine/db/models_learning.py

    Data flows: ProgressStore → Pydantic → Service → SessionView → API
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal, Optional, TYPE_CHECKING

from pydantic import ConfigDict, Field, model_validator

from prep_engine.enums.learning import (
    BookmarkElementType,
    LearningPhase,
    MessageRole,
    SessionEventType,
)
from prep_engine.models.base import StrictRequest, StrictResponse

if TYPE_CHECKING:
    from prep_engine.db.models_learning import (
        BookmarkRecord,
        StudentAnswerRecord,
        StudentProgressRecord,
        TopicRecord,
    )


# ===========================================
# Topic Content Models
# ===========================================


class MCQFeedback(StrictResponse):
    """Branching feedback text shown after an answer."""

    correct: str
    wrong: str


class MCQ(StrictResponse):
    """
    A single multiple-choice question.

    Options are keyed by label ("A", "B", ...). Exactly one label is
    correct; there is no multi-select and no partial credit.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    stem: str
    options: dict[str, str] = Field(..., min_length=1)
    correct_answer: str
    feedback: MCQFeedback
    learning_gap: str = ""

    @model_validator(mode="after")
    def _correct_answer_is_an_option(self) -> MCQ:
        if self.correct_answer not in self.options:
            raise ValueError(
                f"MCQ {self.id}: correct answer {self.correct_answer!r} "
                f"is not one of {sorted(self.options)}"
            )
        return self

    def option_text(self, label: str) -> str:
        """Return the display text of an option label."""
        return self.options[label]


class RecursiveLearningGap(StrictResponse):
    """One node of a topic's learning-gap tree."""

    id: str
    gap: str
    level: int = 1
    confusion: str = ""


class MediaSuggestion(StrictResponse):
    """High-yield image or recommended video suggestion."""

    keywords: list[str] = Field(default_factory=list)
    description: str = ""
    search_query: str = ""


class Topic(StrictResponse):
    """
    One unit of subject content, ordered within its subject by primary_seq.

    Immutable once authored. The order of `mcqs` is the quiz order.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    exam_id: str
    subject_id: str
    primary_seq: int
    summary: str = ""
    buzzwords: list[str] = Field(default_factory=list)
    recursive_learning_gaps: list[RecursiveLearningGap] = Field(default_factory=list)
    learning_gap_tags: list[str] = Field(default_factory=list)
    high_yield_images: list[MediaSuggestion] = Field(default_factory=list)
    recommended_videos: list[MediaSuggestion] = Field(default_factory=list)
    mcqs: list[MCQ] = Field(default_factory=list)

    @classmethod
    def from_db_record(cls, record: TopicRecord) -> Topic:
        """
        Create a Topic from a database TopicRecord.

        Content arrays are stored as JSON and validated here, so malformed
        authoring data surfaces as a pydantic ValidationError.
        """
        return cls(
            id=record.id,
            exam_id=record.exam_id,
            subject_id=record.subject_id,
            primary_seq=record.primary_seq,
            summary=record.summary or "",
            buzzwords=record.buzzwords or [],
            recursive_learning_gaps=record.recursive_learning_gaps or [],
            learning_gap_tags=record.learning_gap_tags or [],
            high_yield_images=record.high_yield_images or [],
            recommended_videos=record.recommended_videos or [],
            mcqs=record.mcqs or [],
        )


# ===========================================
# Persisted Learner State
# ===========================================


class StudentProgress(StrictResponse):
    """
    Resumption pointer, one per (student, subject).

    `is_completed` records whether the quiz of the topic at
    `last_completed_seq` finished; it, not the phase, gates advancement.
    """

    student_id: str
    subject_id: str
    last_completed_seq: int
    last_phase: LearningPhase = LearningPhase.SUMMARY
    last_mcq_index: int = Field(0, ge=0)
    is_completed: bool = False
    updated_at: Optional[datetime] = None

    @classmethod
    def from_db_record(cls, record: StudentProgressRecord) -> StudentProgress:
        return cls(
            student_id=record.student_id,
            subject_id=record.subject_id,
            last_completed_seq=record.last_completed_seq,
            last_phase=LearningPhase(record.last_phase),
            last_mcq_index=record.last_mcq_index,
            is_completed=record.is_completed,
            updated_at=record.updated_at,
        )


class StudentAnswer(StrictResponse):
    """One row of the append-only answer log."""

    student_id: str
    subject_id: str
    topic_seq: int
    mcq_id: str
    selected_option: str
    is_correct: bool
    mcq_index: int = Field(..., ge=1, description="1-based position in the quiz")
    answered_at: Optional[datetime] = None

    @classmethod
    def from_db_record(cls, record: StudentAnswerRecord) -> StudentAnswer:
        return cls(
            student_id=record.student_id,
            subject_id=record.subject_id,
            topic_seq=record.topic_seq,
            mcq_id=record.mcq_id,
            selected_option=record.selected_option,
            is_correct=record.is_correct,
            mcq_index=record.mcq_index,
            answered_at=record.answered_at,
        )


class Bookmark(StrictResponse):
    """A saved element, unique per (student, element_id)."""

    student_id: str
    element_id: str
    element_type: BookmarkElementType
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[datetime] = None

    @classmethod
    def from_db_record(cls, record: BookmarkRecord) -> Bookmark:
        return cls(
            student_id=record.student_id,
            element_id=record.element_id,
            element_type=BookmarkElementType(record.element_type),
            metadata=record.element_metadata or {},
            created_at=record.created_at,
        )


# ===========================================
# Evaluation & Session Views
# ===========================================


class EvaluationResult(StrictResponse):
    """Outcome of scoring one submitted option."""

    model_config = ConfigDict(frozen=True)

    is_correct: bool
    feedback_text: str


class ChatMessage(StrictResponse):
    """One entry of the quiz transcript."""

    role: MessageRole
    content: str
    is_correct: Optional[bool] = None
    mcq_index: Optional[int] = None


class QuizView(StrictResponse):
    """Quiz sub-state as seen by the caller."""

    cursor: int = Field(..., ge=0, description="Number of answered questions")
    total_mcqs: int
    active_mcq: Optional[MCQ] = None
    is_complete: bool = False
    last_outcome_correct: Optional[bool] = None


class SessionView(StrictResponse):
    """
    View-ready snapshot of an active session.

    Returned by every orchestrator operation; `quiz` is only set in the
    QUIZ phase.
    """

    status: Literal["active"] = "active"
    student_id: str
    subject_id: str
    topic: Topic
    is_new_topic: bool
    phase: LearningPhase
    quiz: Optional[QuizView] = None
    messages: list[ChatMessage] = Field(default_factory=list)
    bookmarked_ids: list[str] = Field(default_factory=list)


class SubjectExhausted(StrictResponse):
    """
    Terminal outcome: every topic of the subject is finished.

    This is a success result, not an error.
    """

    status: Literal["subject_exhausted"] = "subject_exhausted"
    student_id: str
    subject_id: str
    last_completed_seq: Optional[int] = None


class SessionEvent(StrictResponse):
    """Event published on the session event stream."""

    event_type: SessionEventType
    student_id: str
    subject_id: str
    topic_seq: Optional[int] = None
    phase: Optional[LearningPhase] = None
    payload: dict[str, Any] = Field(default_factory=dict)
    occurred_at: datetime


# ===========================================
# API Request / Response Models
# ===========================================


class AnswerSubmitRequest(StrictRequest):
    """Submit an option label for the active MCQ."""

    selected_option: str = Field(..., min_length=1, description="Option label, e.g. 'B'")


class BookmarkToggleRequest(StrictRequest):
    """Toggle a bookmark on any element."""

    element_id: str = Field(..., min_length=1)
    element_type: BookmarkElementType
    metadata: dict[str, Any] = Field(default_factory=dict)


class BookmarkToggleResponse(StrictResponse):
    """New bookmark state of the toggled element."""

    element_id: str
    bookmarked: bool
