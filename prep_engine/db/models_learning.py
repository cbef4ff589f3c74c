"""
SQLAlchemy Database Models for the Learning Session Engine

Tables:
- mcq_bank: Authored topics with their content bundle and MCQ quiz
- student_progress: Resumption pointer, one row per (student, subject)
- student_answers: Append-only log of quiz submissions
- student_bookmarks: Saved elements, one row per (student, element)

ARCHITECTURE NOTE:
    This file contains SQLALCHEMY models for database persistence.
    There is a corresponding Pydantic file: prep_engine/models/learning.py

    Data flows: Service Layer → Pydantic → SQLAlchemy → Database
"""

from datetime import datetime, timezone
from typing import Optional


def _utc_now() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


from sqlalchemy import (  # noqa: E402
    JSON,
    Boolean,
    DateTime,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column  # noqa: E402

from prep_engine.db.base import Base  # noqa: E402


# ===========================================
# Content
# ===========================================


class TopicRecord(Base):
    """
    Authored topic content.

    Attributes:
        id: Topic identifier (UUID string from the authoring system).
        exam_id: Exam the topic belongs to.
        subject_id: Subject the topic belongs to.
        primary_seq: Order of the topic within its subject. Unique per
            (exam_id, subject_id).
        summary: Final summary shown in the SUMMARY phase.
        buzzwords: Concept flashcards for the CONCEPTS phase.
        recursive_learning_gaps: Learning-gap tree (list of {id, gap, level,
            confusion}) for the GAPS phase.
        learning_gap_tags: Tags shown next to the gap tree.
        high_yield_images: Image suggestions for the MEDIA phase.
        recommended_videos: Video suggestions for the MEDIA phase.
        mcqs: Ordered quiz questions. List position is quiz position.
    """

    __tablename__ = "mcq_bank"
    __table_args__ = (
        UniqueConstraint("exam_id", "subject_id", "primary_seq", name="uq_mcq_bank_seq"),
        Index("ix_mcq_bank_subject_seq", "subject_id", "primary_seq"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    exam_id: Mapped[str] = mapped_column(String(64), index=True)
    subject_id: Mapped[str] = mapped_column(String(64))
    primary_seq: Mapped[int] = mapped_column(Integer)

    summary: Mapped[Optional[str]] = mapped_column(Text)
    buzzwords: Mapped[Optional[list]] = mapped_column(JSON)
    recursive_learning_gaps: Mapped[Optional[list]] = mapped_column(JSON)
    learning_gap_tags: Mapped[Optional[list]] = mapped_column(JSON)
    high_yield_images: Mapped[Optional[list]] = mapped_column(JSON)
    recommended_videos: Mapped[Optional[list]] = mapped_column(JSON)
    mcqs: Mapped[Optional[list]] = mapped_column(JSON)


# ===========================================
# Learner State
# ===========================================


class StudentProgressRecord(Base):
    """
    Resumption pointer per (student, subject). Upserted, never deleted.

    Attributes:
        last_completed_seq: primary_seq of the topic currently or most
            recently engaged.
        last_phase: Persisted LearningPhase value (0-4).
        last_mcq_index: Number of MCQs answered in the current quiz.
        is_completed: Whether that topic's quiz finished.
        updated_at: Timestamp of the last upsert.
    """

    __tablename__ = "student_progress"
    __table_args__ = (
        UniqueConstraint("student_id", "subject_id", name="uq_student_progress_subject"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    student_id: Mapped[str] = mapped_column(String(64))
    subject_id: Mapped[str] = mapped_column(String(64))

    last_completed_seq: Mapped[int] = mapped_column(Integer)
    last_phase: Mapped[int] = mapped_column(Integer, default=0)
    last_mcq_index: Mapped[int] = mapped_column(Integer, default=0)
    is_completed: Mapped[bool] = mapped_column(Boolean, default=False)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now, onupdate=_utc_now
    )


class StudentAnswerRecord(Base):
    """
    Append-only log of quiz submissions. Rows are never updated.

    Attributes:
        topic_seq: primary_seq of the topic whose quiz the MCQ belongs to.
        mcq_index: 1-based position of the MCQ within that quiz.
    """

    __tablename__ = "student_answers"
    __table_args__ = (
        Index("ix_student_answers_topic", "student_id", "subject_id", "topic_seq"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    student_id: Mapped[str] = mapped_column(String(64))
    subject_id: Mapped[str] = mapped_column(String(64))
    topic_seq: Mapped[int] = mapped_column(Integer)
    mcq_id: Mapped[str] = mapped_column(String(64))
    selected_option: Mapped[str] = mapped_column(String(16))
    is_correct: Mapped[bool] = mapped_column(Boolean)
    mcq_index: Mapped[int] = mapped_column(Integer)

    answered_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now
    )


class BookmarkRecord(Base):
    """
    Saved element per student.

    `element_metadata` maps to the `metadata` column; the attribute name
    `metadata` is reserved by SQLAlchemy's declarative base.
    """

    __tablename__ = "student_bookmarks"
    __table_args__ = (
        UniqueConstraint("student_id", "element_id", name="uq_student_bookmark_element"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    student_id: Mapped[str] = mapped_column(String(64), index=True)
    element_id: Mapped[str] = mapped_column(String(128))
    element_type: Mapped[str] = mapped_column(String(32))
    element_metadata: Mapped[Optional[dict]] = mapped_column("metadata", JSON)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now
    )
