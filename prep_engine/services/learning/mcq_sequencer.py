"""
MCQ Sequencer

Question sequencing inside the QUIZ phase.

The active question is always `mcqs[answered_count]`: questions are never
skipped or reordered.

Completion is asymmetric:
- a correct answer ends the quiz at once, even if questions remain
- a wrong answer moves on to the next question
- running out of questions ends the quiz whatever the last outcome

This is the product's adaptive-drill behaviour and must stay asymmetric.

Resumption replays the stored answer log so the cursor matches what the
learner actually answered.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from prep_engine.middleware.error_handling import DataIntegrityError
from prep_engine.models.learning import MCQ, StudentAnswer, Topic

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QuizReplay:
    """
    Quiz sub-state rebuilt from the answer log.

    Attributes:
        cursor: Number of answered questions
        answers: Replayed answers in quiz order, one per answered question
        last_outcome_correct: Outcome of the latest answer, None if unanswered
    """

    cursor: int
    answers: tuple[StudentAnswer, ...]
    last_outcome_correct: Optional[bool]


class MCQSequencer:
    """Derives the active question and quiz completion from answer counts."""

    @staticmethod
    def active_index(answered_count: int) -> int:
        """0-based index of the question to show next."""
        return answered_count

    @staticmethod
    def is_quiz_complete(
        answered_count: int,
        total_mcqs: int,
        last_outcome_correct: Optional[bool],
    ) -> bool:
        """
        Apply the asymmetric completion policy.

        Args:
            answered_count: Questions answered so far
            total_mcqs: Questions in the topic's quiz
            last_outcome_correct: Outcome of the latest answer, None if none yet

        Returns:
            True when the quiz (and so the topic) is finished
        """
        if answered_count > 0 and last_outcome_correct:
            return True
        return answered_count >= total_mcqs

    def active_mcq(self, topic: Topic, answered_count: int) -> Optional[MCQ]:
        """Return the question to show, or None when past the end."""
        index = self.active_index(answered_count)
        if index < len(topic.mcqs):
            return topic.mcqs[index]
        return None

    def replay(
        self,
        topic: Topic,
        last_mcq_index: int,
        answers: list[StudentAnswer],
    ) -> QuizReplay:
        """
        Rebuild quiz sub-state for a half-finished quiz.

        Answers are deduplicated by mcq_index (first row wins). When the log
        holds more answers than `last_mcq_index`, the progress upsert that
        should have followed the last insert was lost; the log is trusted so
        the answer is neither lost nor counted twice.

        Args:
            topic: Topic being resumed
            last_mcq_index: Persisted count of answered questions
            answers: Stored answers for this topic's quiz

        Returns:
            QuizReplay with the reconciled cursor

        Raises:
            DataIntegrityError: If the log and the pointer cannot be reconciled
        """
        total = len(topic.mcqs)
        if last_mcq_index > total:
            raise DataIntegrityError(
                f"Progress points at MCQ {last_mcq_index} but topic "
                f"seq={topic.primary_seq} has {total}",
                details={"last_mcq_index": last_mcq_index, "total_mcqs": total},
            )

        by_index: dict[int, StudentAnswer] = {}
        for answer in answers:
            by_index.setdefault(answer.mcq_index, answer)
        replayed = tuple(by_index[i] for i in sorted(by_index))

        if len(replayed) < last_mcq_index:
            raise DataIntegrityError(
                f"Progress records {last_mcq_index} answers for topic "
                f"seq={topic.primary_seq} but only {len(replayed)} are stored",
                details={"last_mcq_index": last_mcq_index, "stored": len(replayed)},
            )
        if len(replayed) > total:
            raise DataIntegrityError(
                f"{len(replayed)} answers stored for topic seq={topic.primary_seq} "
                f"which has {total} MCQs",
                details={"stored": len(replayed), "total_mcqs": total},
            )

        for position, answer in enumerate(replayed, start=1):
            expected = topic.mcqs[position - 1]
            if answer.mcq_index != position or answer.mcq_id != expected.id:
                raise DataIntegrityError(
                    f"Stored answer for MCQ {answer.mcq_index} ({answer.mcq_id}) "
                    f"does not match quiz position {position} ({expected.id})",
                    details={"mcq_index": answer.mcq_index, "mcq_id": answer.mcq_id},
                )
            if answer.is_correct and position < len(replayed):
                raise DataIntegrityError(
                    f"Answers continue after a correct answer at MCQ {position}",
                    details={"mcq_index": position},
                )

        if len(replayed) > last_mcq_index:
            logger.warning(
                f"Answer log for topic seq={topic.primary_seq} is ahead of progress "
                f"({len(replayed)} > {last_mcq_index}); trusting the log"
            )

        return QuizReplay(
            cursor=len(replayed),
            answers=replayed,
            last_outcome_correct=replayed[-1].is_correct if replayed else None,
        )
