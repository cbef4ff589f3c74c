"""
Phase State Machine

Owns the five-phase progression of a topic:

    SUMMARY → CONCEPTS → GAPS → MEDIA → QUIZ (→ topic complete)

The state is a closed union:
- DisplayState: phases 0-3, no sub-state
- QuizState: phase 4 with the explicit quiz cursor and last outcome

Transition functions return new states without mutating the machine, so
the orchestrator can persist first and only then `apply()` the new state.
Forward moves are one step at a time; skipping and going back are rejected.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar, Optional, Union

from prep_engine.enums.learning import LearningPhase
from prep_engine.middleware.error_handling import InvalidPhaseTransitionError
from prep_engine.services.learning.mcq_sequencer import MCQSequencer, QuizReplay


@dataclass(frozen=True)
class DisplayState:
    """One of the stateless display phases (SUMMARY..MEDIA)."""

    phase: LearningPhase

    def __post_init__(self):
        if not self.phase.is_display:
            raise ValueError("DisplayState cannot hold the QUIZ phase")


@dataclass(frozen=True)
class QuizState:
    """
    QUIZ phase sub-state.

    Attributes:
        total_mcqs: Number of questions in the quiz
        cursor: Number of answered questions, mirrors persisted last_mcq_index
        last_outcome_correct: Outcome of the latest answer
    """

    phase: ClassVar[LearningPhase] = LearningPhase.QUIZ

    total_mcqs: int
    cursor: int = 0
    last_outcome_correct: Optional[bool] = None

    @property
    def is_complete(self) -> bool:
        """Terminal topic-complete sub-state."""
        return MCQSequencer.is_quiz_complete(
            self.cursor, self.total_mcqs, self.last_outcome_correct
        )


PhaseState = Union[DisplayState, QuizState]


class PhaseStateMachine:
    """Validated, forward-only phase progression for one topic."""

    def __init__(self, state: Optional[PhaseState] = None):
        self._state: PhaseState = state or DisplayState(LearningPhase.SUMMARY)

    @classmethod
    def resume(
        cls,
        phase: LearningPhase,
        total_mcqs: int,
        replay: Optional[QuizReplay] = None,
    ) -> PhaseStateMachine:
        """
        Re-enter a persisted phase.

        Display phases are re-entered as-is. QUIZ needs the replayed quiz
        sub-state; without one the quiz starts at its first question.
        """
        if phase.is_display:
            return cls(DisplayState(phase))
        if replay is None:
            return cls(QuizState(total_mcqs=total_mcqs))
        return cls(
            QuizState(
                total_mcqs=total_mcqs,
                cursor=replay.cursor,
                last_outcome_correct=replay.last_outcome_correct,
            )
        )

    @property
    def state(self) -> PhaseState:
        return self._state

    @property
    def phase(self) -> LearningPhase:
        return self._state.phase

    @property
    def quiz(self) -> Optional[QuizState]:
        return self._state if isinstance(self._state, QuizState) else None

    @property
    def topic_complete(self) -> bool:
        quiz = self.quiz
        return quiz is not None and quiz.is_complete

    def next_phase(self, total_mcqs: int) -> PhaseState:
        """
        Compute the state one phase ahead.

        Raises:
            InvalidPhaseTransitionError: If already in QUIZ
        """
        if isinstance(self._state, QuizState):
            raise InvalidPhaseTransitionError(
                "Cannot advance past the QUIZ phase; advance the topic instead",
                details={"phase": int(self.phase)},
            )
        target = LearningPhase(self._state.phase + 1)
        if target is LearningPhase.QUIZ:
            return QuizState(total_mcqs=total_mcqs)
        return DisplayState(target)

    def open_quiz(self) -> QuizState:
        """
        Return the quiz state if it still accepts answers.

        Raises:
            InvalidPhaseTransitionError: Outside QUIZ or after completion
        """
        quiz = self.quiz
        if quiz is None:
            raise InvalidPhaseTransitionError(
                f"Answers are only accepted in the QUIZ phase (current: {self.phase.name})",
                details={"phase": int(self.phase)},
            )
        if quiz.is_complete:
            raise InvalidPhaseTransitionError(
                "Quiz is already complete",
                details={"cursor": quiz.cursor, "total_mcqs": quiz.total_mcqs},
            )
        return quiz

    def after_answer(self, is_correct: bool) -> QuizState:
        """
        Compute the quiz state after one more answer.

        Raises:
            InvalidPhaseTransitionError: Outside QUIZ or after completion
        """
        quiz = self.open_quiz()
        return QuizState(
            total_mcqs=quiz.total_mcqs,
            cursor=quiz.cursor + 1,
            last_outcome_correct=is_correct,
        )

    def apply(self, new_state: PhaseState) -> None:
        """
        Commit a state computed by next_phase() or after_answer().

        Raises:
            InvalidPhaseTransitionError: If the state is not one legal step away
        """
        current = self._state
        if isinstance(new_state, QuizState) and isinstance(current, QuizState):
            legal = new_state.cursor == current.cursor + 1 and not current.is_complete
        else:
            legal = int(new_state.phase) == int(current.phase) + 1
        if not legal:
            raise InvalidPhaseTransitionError(
                f"Illegal transition {current} -> {new_state}",
                details={"from": int(current.phase), "to": int(new_state.phase)},
            )
        self._state = new_state
