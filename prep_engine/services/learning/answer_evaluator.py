"""
Answer Evaluator

Scores a submitted option label against an MCQ and builds the tutor's
feedback, then appends the submission to the answer log.

Scoring is an exact label match: no partial credit, no multi-select.

Feedback:
- correct → the MCQ's correct-feedback text
- wrong   → wrong-feedback, then the learning-gap annotation, then the
            revealed correct option, joined by blank lines

Usage:
    evaluator = AnswerEvaluator(store)
    result = evaluator.evaluate(mcq, "B")
    await evaluator.record(student_id, subject_id, topic, mcq, "B", result, mcq_index=1)
"""

import logging

from prep_engine.middleware.error_handling import DataIntegrityError
from prep_engine.models.learning import (
    MCQ,
    EvaluationResult,
    StudentAnswer,
    Topic,
)
from prep_engine.services.learning.progress_store import ProgressStore

logger = logging.getLogger(__name__)

LEARNING_GAP_PREFIX = "💡 **Learning Gap:**"
CORRECT_ANSWER_PREFIX = "✅ **Correct Answer:**"


def build_wrong_feedback(mcq: MCQ) -> str:
    """Compose the feedback shown after a wrong answer."""
    correct_label = mcq.correct_answer
    return (
        f"{mcq.feedback.wrong}\n\n"
        f"{LEARNING_GAP_PREFIX} {mcq.learning_gap}\n\n"
        f"{CORRECT_ANSWER_PREFIX} {correct_label}: {mcq.option_text(correct_label)}"
    )


class AnswerEvaluator:
    """Scores MCQ submissions and writes them to the answer log."""

    def __init__(self, store: ProgressStore):
        self.store = store

    def evaluate(self, mcq: MCQ, selected_option: str) -> EvaluationResult:
        """
        Score one option.

        Raises:
            DataIntegrityError: If the label is not one of the MCQ's options
        """
        if selected_option not in mcq.options:
            raise DataIntegrityError(
                f"Option {selected_option!r} is not an option of MCQ {mcq.id}",
                details={"mcq_id": mcq.id, "options": sorted(mcq.options)},
            )

        is_correct = selected_option == mcq.correct_answer
        feedback = mcq.feedback.correct if is_correct else build_wrong_feedback(mcq)
        return EvaluationResult(is_correct=is_correct, feedback_text=feedback)

    async def record(
        self,
        student_id: str,
        subject_id: str,
        topic: Topic,
        mcq: MCQ,
        selected_option: str,
        result: EvaluationResult,
        mcq_index: int,
    ) -> StudentAnswer:
        """
        Append the submission to the answer log.

        Must complete before the quiz cursor moves.

        Args:
            mcq_index: 1-based position of the MCQ in the quiz
        """
        answer = StudentAnswer(
            student_id=student_id,
            subject_id=subject_id,
            topic_seq=topic.primary_seq,
            mcq_id=mcq.id,
            selected_option=selected_option,
            is_correct=result.is_correct,
            mcq_index=mcq_index,
        )
        await self.store.insert_answer(answer)
        logger.info(
            f"Recorded answer {student_id}/{subject_id} seq={topic.primary_seq} "
            f"mcq={mcq_index}/{len(topic.mcqs)} correct={result.is_correct}"
        )
        return answer
