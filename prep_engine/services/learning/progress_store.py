"""
Progress Store

Async repository over the learner's persisted session state:
- StudentProgress: one resumption pointer per (student, subject), upserted
- StudentAnswer: append-only answer log
- Topic: read-only authored content, ordered by primary_seq
- Bookmark: per-student set of saved elements

The session services depend on the ProgressStore abstraction only.

Implementations:
- SqlAlchemyProgressStore: PostgreSQL via async SQLAlchemy. Every call is
  its own unit of work and commits immediately, so upserts are
  last-write-wins and inserts are visible as soon as the call returns.
- InMemoryProgressStore: dict-backed store for local runs and tests.

Any backend failure is raised as PersistenceUnavailableError.

Usage:
    from prep_engine.db import async_session_maker
    from prep_engine.services.learning.progress_store import SqlAlchemyProgressStore

    store = SqlAlchemyProgressStore(async_session_maker)
    progress = await store.get_progress("student-1", "anatomy")
"""

from __future__ import annotations

import functools
import logging
from abc import ABC, abstractmethod
from collections import defaultdict
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Optional, TypeVar

from pydantic import ValidationError
from sqlalchemy import delete, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from prep_engine.db.models_learning import (
    BookmarkRecord,
    StudentAnswerRecord,
    StudentProgressRecord,
    TopicRecord,
)
from prep_engine.middleware.error_handling import (
    DataIntegrityError,
    PersistenceUnavailableError,
)
from prep_engine.models.learning import (
    Bookmark,
    StudentAnswer,
    StudentProgress,
    Topic,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ProgressStore(ABC):
    """
    Abstract repository for session state.

    All methods are async and may suspend on network I/O. Implementations
    must raise PersistenceUnavailableError when the backend fails.
    """

    # -------------------------------------------------------------------------
    # Progress
    # -------------------------------------------------------------------------

    @abstractmethod
    async def get_progress(
        self, student_id: str, subject_id: str
    ) -> Optional[StudentProgress]:
        """Return the progress pointer for (student, subject), if any."""

    @abstractmethod
    async def upsert_progress(self, record: StudentProgress) -> None:
        """Create or replace all fields of the (student, subject) pointer."""

    # -------------------------------------------------------------------------
    # Answers
    # -------------------------------------------------------------------------

    @abstractmethod
    async def insert_answer(self, record: StudentAnswer) -> None:
        """Append one answer row. Never updates an existing row."""

    @abstractmethod
    async def list_answers(
        self, student_id: str, subject_id: str, topic_seq: int
    ) -> list[StudentAnswer]:
        """List answers for one topic's quiz, ordered by mcq_index."""

    # -------------------------------------------------------------------------
    # Topics
    # -------------------------------------------------------------------------

    @abstractmethod
    async def get_topic_by_seq(self, subject_id: str, seq: int) -> Optional[Topic]:
        """Return the topic at exactly `seq`."""

    @abstractmethod
    async def get_first_topic(self, subject_id: str) -> Optional[Topic]:
        """Return the topic with the smallest primary_seq."""

    @abstractmethod
    async def get_next_topic(self, subject_id: str, after_seq: int) -> Optional[Topic]:
        """Return the topic with the smallest primary_seq greater than `after_seq`."""

    # -------------------------------------------------------------------------
    # Bookmarks
    # -------------------------------------------------------------------------

    @abstractmethod
    async def list_bookmarks(self, student_id: str) -> list[Bookmark]:
        """List every bookmark of a student."""

    @abstractmethod
    async def add_bookmark(self, record: Bookmark) -> None:
        """Add a bookmark. Adding an existing element is a no-op."""

    @abstractmethod
    async def remove_bookmark(self, student_id: str, element_id: str) -> None:
        """Remove a bookmark. Removing an unknown element is a no-op."""


# =============================================================================
# SQLAlchemy implementation
# =============================================================================


def _persistence_call(
    operation: str,
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """
    Wrap a store method so backend failures surface as PersistenceUnavailableError.
    """

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            try:
                return await func(*args, **kwargs)
            except (SQLAlchemyError, OSError) as e:
                logger.error(f"Persistence call {operation} failed: {e}")
                raise PersistenceUnavailableError(
                    f"{operation} failed",
                    details={"operation": operation, "reason": str(e)},
                ) from e

        return wrapper

    return decorator


def _topic_from_record(record: Optional[TopicRecord]) -> Optional[Topic]:
    if record is None:
        return None
    try:
        return Topic.from_db_record(record)
    except ValidationError as e:
        raise DataIntegrityError(
            f"Topic {record.id} has malformed content",
            details={"topic_id": record.id, "errors": e.errors(include_url=False)},
        ) from e


class SqlAlchemyProgressStore(ProgressStore):
    """
    ProgressStore backed by PostgreSQL through async SQLAlchemy.

    Opens a short-lived session per call. Topic ties on primary_seq are
    broken by topic id so selection is deterministic.
    """

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        """
        Initialize the store.

        Args:
            session_maker: Factory for async database sessions
        """
        self.session_maker = session_maker

    @_persistence_call("get_progress")
    async def get_progress(
        self, student_id: str, subject_id: str
    ) -> Optional[StudentProgress]:
        async with self.session_maker() as db:
            result = await db.execute(
                select(StudentProgressRecord).where(
                    StudentProgressRecord.student_id == student_id,
                    StudentProgressRecord.subject_id == subject_id,
                )
            )
            record = result.scalar_one_or_none()
        return StudentProgress.from_db_record(record) if record else None

    @_persistence_call("upsert_progress")
    async def upsert_progress(self, record: StudentProgress) -> None:
        values = {
            "student_id": record.student_id,
            "subject_id": record.subject_id,
            "last_completed_seq": record.last_completed_seq,
            "last_phase": int(record.last_phase),
            "last_mcq_index": record.last_mcq_index,
            "is_completed": record.is_completed,
            "updated_at": datetime.now(timezone.utc),
        }
        stmt = pg_insert(StudentProgressRecord).values(**values)
        stmt = stmt.on_conflict_do_update(
            constraint="uq_student_progress_subject",
            set_={
                key: stmt.excluded[key]
                for key in values
                if key not in ("student_id", "subject_id")
            },
        )
        async with self.session_maker() as db:
            await db.execute(stmt)
            await db.commit()
        logger.debug(
            f"Upserted progress {record.student_id}/{record.subject_id}: "
            f"seq={record.last_completed_seq}, phase={int(record.last_phase)}, "
            f"mcq_index={record.last_mcq_index}, completed={record.is_completed}"
        )

    @_persistence_call("insert_answer")
    async def insert_answer(self, record: StudentAnswer) -> None:
        async with self.session_maker() as db:
            db.add(
                StudentAnswerRecord(
                    student_id=record.student_id,
                    subject_id=record.subject_id,
                    topic_seq=record.topic_seq,
                    mcq_id=record.mcq_id,
                    selected_option=record.selected_option,
                    is_correct=record.is_correct,
                    mcq_index=record.mcq_index,
                )
            )
            await db.commit()
        logger.debug(
            f"Inserted answer {record.student_id}/{record.subject_id}: "
            f"seq={record.topic_seq}, mcq_index={record.mcq_index}"
        )

    @_persistence_call("list_answers")
    async def list_answers(
        self, student_id: str, subject_id: str, topic_seq: int
    ) -> list[StudentAnswer]:
        async with self.session_maker() as db:
            result = await db.execute(
                select(StudentAnswerRecord)
                .where(
                    StudentAnswerRecord.student_id == student_id,
                    StudentAnswerRecord.subject_id == subject_id,
                    StudentAnswerRecord.topic_seq == topic_seq,
                )
                .order_by(StudentAnswerRecord.mcq_index, StudentAnswerRecord.id)
            )
            records = result.scalars().all()
        return [StudentAnswer.from_db_record(r) for r in records]

    @_persistence_call("get_topic_by_seq")
    async def get_topic_by_seq(self, subject_id: str, seq: int) -> Optional[Topic]:
        async with self.session_maker() as db:
            result = await db.execute(
                select(TopicRecord)
                .where(
                    TopicRecord.subject_id == subject_id,
                    TopicRecord.primary_seq == seq,
                )
                .order_by(TopicRecord.id)
                .limit(1)
            )
            record = result.scalars().first()
        return _topic_from_record(record)

    @_persistence_call("get_first_topic")
    async def get_first_topic(self, subject_id: str) -> Optional[Topic]:
        async with self.session_maker() as db:
            result = await db.execute(
                select(TopicRecord)
                .where(TopicRecord.subject_id == subject_id)
                .order_by(TopicRecord.primary_seq, TopicRecord.id)
                .limit(1)
            )
            record = result.scalars().first()
        return _topic_from_record(record)

    @_persistence_call("get_next_topic")
    async def get_next_topic(self, subject_id: str, after_seq: int) -> Optional[Topic]:
        async with self.session_maker() as db:
            result = await db.execute(
                select(TopicRecord)
                .where(
                    TopicRecord.subject_id == subject_id,
                    TopicRecord.primary_seq > after_seq,
                )
                .order_by(TopicRecord.primary_seq, TopicRecord.id)
                .limit(1)
            )
            record = result.scalars().first()
        return _topic_from_record(record)

    @_persistence_call("list_bookmarks")
    async def list_bookmarks(self, student_id: str) -> list[Bookmark]:
        async with self.session_maker() as db:
            result = await db.execute(
                select(BookmarkRecord)
                .where(BookmarkRecord.student_id == student_id)
                .order_by(BookmarkRecord.created_at, BookmarkRecord.id)
            )
            records = result.scalars().all()
        return [Bookmark.from_db_record(r) for r in records]

    @_persistence_call("add_bookmark")
    async def add_bookmark(self, record: Bookmark) -> None:
        stmt = (
            pg_insert(BookmarkRecord)
            .values(
                {
                    BookmarkRecord.student_id: record.student_id,
                    BookmarkRecord.element_id: record.element_id,
                    BookmarkRecord.element_type: record.element_type.value,
                    # attribute key: the column itself is named "metadata"
                    BookmarkRecord.element_metadata: record.metadata,
                }
            )
            .on_conflict_do_nothing(constraint="uq_student_bookmark_element")
        )
        async with self.session_maker() as db:
            await db.execute(stmt)
            await db.commit()

    @_persistence_call("remove_bookmark")
    async def remove_bookmark(self, student_id: str, element_id: str) -> None:
        async with self.session_maker() as db:
            await db.execute(
                delete(BookmarkRecord).where(
                    BookmarkRecord.student_id == student_id,
                    BookmarkRecord.element_id == element_id,
                )
            )
            await db.commit()


# =============================================================================
# In-memory implementation
# =============================================================================


class InMemoryProgressStore(ProgressStore):
    """
    Dict-backed ProgressStore.

    Returns copies so callers never alias stored records. Topics are seeded
    through the constructor or add_topic().
    """

    def __init__(self, topics: Optional[list[Topic]] = None):
        self._topics: dict[str, list[Topic]] = defaultdict(list)
        self._progress: dict[tuple[str, str], StudentProgress] = {}
        self._answers: list[StudentAnswer] = []
        self._bookmarks: dict[str, dict[str, Bookmark]] = defaultdict(dict)

        for topic in topics or []:
            self.add_topic(topic)

    def add_topic(self, topic: Topic) -> None:
        """Seed one authored topic."""
        self._topics[topic.subject_id].append(topic)
        self._topics[topic.subject_id].sort(key=lambda t: (t.primary_seq, t.id))

    async def get_progress(
        self, student_id: str, subject_id: str
    ) -> Optional[StudentProgress]:
        record = self._progress.get((student_id, subject_id))
        return record.model_copy() if record else None

    async def upsert_progress(self, record: StudentProgress) -> None:
        self._progress[(record.student_id, record.subject_id)] = record.model_copy(
            update={"updated_at": datetime.now(timezone.utc)}
        )

    async def insert_answer(self, record: StudentAnswer) -> None:
        self._answers.append(
            record.model_copy(update={"answered_at": datetime.now(timezone.utc)})
        )

    async def list_answers(
        self, student_id: str, subject_id: str, topic_seq: int
    ) -> list[StudentAnswer]:
        matching = [
            a.model_copy()
            for a in self._answers
            if a.student_id == student_id
            and a.subject_id == subject_id
            and a.topic_seq == topic_seq
        ]
        # sorted() is stable, so insertion order breaks mcq_index ties
        return sorted(matching, key=lambda a: a.mcq_index)

    async def get_topic_by_seq(self, subject_id: str, seq: int) -> Optional[Topic]:
        return next(
            (t for t in self._topics[subject_id] if t.primary_seq == seq), None
        )

    async def get_first_topic(self, subject_id: str) -> Optional[Topic]:
        topics = self._topics[subject_id]
        return topics[0] if topics else None

    async def get_next_topic(self, subject_id: str, after_seq: int) -> Optional[Topic]:
        return next(
            (t for t in self._topics[subject_id] if t.primary_seq > after_seq), None
        )

    async def list_bookmarks(self, student_id: str) -> list[Bookmark]:
        return [b.model_copy() for b in self._bookmarks[student_id].values()]

    async def add_bookmark(self, record: Bookmark) -> None:
        self._bookmarks[record.student_id].setdefault(
            record.element_id,
            record.model_copy(update={"created_at": datetime.now(timezone.utc)}),
        )

    async def remove_bookmark(self, student_id: str, element_id: str) -> None:
        self._bookmarks[student_id].pop(element_id, None)
