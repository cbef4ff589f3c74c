"""
Topic Selector

Resolves which topic is "current" for a learner in a subject, based on the
persisted progress pointer:

- No progress yet          → first topic of the subject (new topic)
- Quiz of last topic done  → next topic by primary_seq (new topic), or
                             SubjectExhausted when none is left
- Quiz not finished        → the same topic again (resume, phase kept)

Topic order is primary_seq ascending with topic id as the tie-breaker; the
store applies that ordering.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Union

from prep_engine.middleware.error_handling import DataIntegrityError
from prep_engine.models.learning import StudentProgress, SubjectExhausted, Topic
from prep_engine.services.learning.progress_store import ProgressStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TopicSelection:
    """
    Result of a successful selection.

    Attributes:
        topic: The current topic
        is_new_topic: True when the phase must start from SUMMARY
        progress: Progress pointer the selection was derived from, if any
    """

    topic: Topic
    is_new_topic: bool
    progress: Optional[StudentProgress] = None

    @property
    def resumes_same_topic(self) -> bool:
        return not self.is_new_topic and self.progress is not None


class TopicSelector:
    """Picks the current topic from the progress pointer."""

    def __init__(self, store: ProgressStore):
        self.store = store

    async def select_topic(
        self, student_id: str, subject_id: str
    ) -> Union[TopicSelection, SubjectExhausted]:
        """
        Select the current topic for a learner.

        Args:
            student_id: Opaque student identity
            subject_id: Subject being studied

        Returns:
            TopicSelection, or SubjectExhausted when nothing is left to study

        Raises:
            DataIntegrityError: If the topic being resumed no longer exists
            PersistenceUnavailableError: If the store fails
        """
        progress = await self.store.get_progress(student_id, subject_id)

        if progress is None:
            topic = await self.store.get_first_topic(subject_id)
            if topic is None:
                logger.info(f"Subject {subject_id} has no topics")
                return SubjectExhausted(student_id=student_id, subject_id=subject_id)
            logger.info(
                f"Student {student_id} starts subject {subject_id} at seq={topic.primary_seq}"
            )
            return TopicSelection(topic=topic, is_new_topic=True)

        if progress.is_completed:
            return await self.select_next_topic(
                student_id, subject_id, progress.last_completed_seq, progress
            )

        topic = await self.store.get_topic_by_seq(subject_id, progress.last_completed_seq)
        if topic is None:
            raise DataIntegrityError(
                f"Topic seq={progress.last_completed_seq} of subject {subject_id} "
                f"is missing but progress points at it",
                details={
                    "subject_id": subject_id,
                    "seq": progress.last_completed_seq,
                },
            )
        logger.info(
            f"Student {student_id} resumes subject {subject_id} at "
            f"seq={topic.primary_seq}, phase={progress.last_phase.name}"
        )
        return TopicSelection(topic=topic, is_new_topic=False, progress=progress)

    async def select_next_topic(
        self,
        student_id: str,
        subject_id: str,
        after_seq: int,
        progress: Optional[StudentProgress] = None,
    ) -> Union[TopicSelection, SubjectExhausted]:
        """Select the first topic strictly after `after_seq`."""
        topic = await self.store.get_next_topic(subject_id, after_seq)
        if topic is None:
            logger.info(
                f"Student {student_id} exhausted subject {subject_id} after seq={after_seq}"
            )
            return SubjectExhausted(
                student_id=student_id,
                subject_id=subject_id,
                last_completed_seq=after_seq,
            )
        logger.info(
            f"Student {student_id} advances subject {subject_id} to seq={topic.primary_seq}"
        )
        return TopicSelection(topic=topic, is_new_topic=True, progress=progress)
