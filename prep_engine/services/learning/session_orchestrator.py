"""
Session Orchestrator

Composes topic selection, the phase state machine, MCQ sequencing, answer
evaluation and bookmarks into the externally observable session lifecycle:

    load → advance_phase (×4) → submit_answer (until complete) → advance_topic

Write ordering makes every step safe to interrupt:
- persist-before-surface: a phase change is upserted before the new phase
  is applied and returned
- write-before-advance: the answer row is inserted before the progress
  pointer and the in-memory quiz cursor move

A failed write raises PersistenceUnavailableError and leaves the in-memory
session untouched. If the answer row was written but the progress upsert
failed, the session is marked stale and must be reloaded; load() then
reconciles from the answer log.

One orchestrator drives one (student, subject) session. Actions are
sequential: a second action while one is in flight is rejected with
SessionBusyError.

Usage:
    orchestrator = SessionOrchestrator(store)

    view = await orchestrator.load("student-1", "anatomy")
    view = await orchestrator.advance_phase()
    view = await orchestrator.submit_answer("B")
"""

from __future__ import annotations

import asyncio
import logging
from collections import OrderedDict
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any, Optional, Union

from prep_engine.config import settings
from prep_engine.enums.learning import (
    BookmarkElementType,
    LearningPhase,
    MessageRole,
    SessionEventType,
)
from prep_engine.middleware.error_handling import (
    InvalidPhaseTransitionError,
    NotAuthenticatedError,
    PersistenceUnavailableError,
    SessionBusyError,
    SessionNotLoadedError,
)
from prep_engine.models.learning import (
    ChatMessage,
    QuizView,
    StudentAnswer,
    StudentProgress,
    SubjectExhausted,
    SessionView,
    Topic,
)
from prep_engine.services.learning.answer_evaluator import AnswerEvaluator
from prep_engine.services.learning.bookmark_tracker import BookmarkTracker
from prep_engine.services.learning.mcq_sequencer import MCQSequencer
from prep_engine.services.learning.phase_machine import PhaseStateMachine, QuizState
from prep_engine.services.learning.progress_store import ProgressStore
from prep_engine.services.learning.session_events import SessionEventStream
from prep_engine.services.learning.topic_selector import TopicSelection, TopicSelector

logger = logging.getLogger(__name__)

SessionResult = Union[SessionView, SubjectExhausted]


def _require_student(student_id: Optional[str]) -> str:
    if not student_id or not student_id.strip():
        raise NotAuthenticatedError("A student identity is required")
    return student_id


class SessionOrchestrator:
    """
    Adaptive learning session for one student and subject.

    Holds only a working copy of the session; the store is authoritative
    and load() always re-derives state from it.
    """

    def __init__(
        self,
        store: ProgressStore,
        events: Optional[SessionEventStream] = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            store: Repository for progress, answers, topics and bookmarks
            events: Event stream to publish session activity on (optional)
        """
        self.store = store
        self.events = events or SessionEventStream()
        self.selector = TopicSelector(store)
        self.sequencer = MCQSequencer()
        self.evaluator = AnswerEvaluator(store)
        self.bookmarks = BookmarkTracker(store)

        self._lock = asyncio.Lock()
        self._student_id: Optional[str] = None
        self._subject_id: Optional[str] = None
        self._topic: Optional[Topic] = None
        self._is_new_topic = False
        self._machine: Optional[PhaseStateMachine] = None
        self._messages: list[ChatMessage] = []
        self._bookmarked: set[str] = set()
        self._stale = False

    @property
    def is_loaded(self) -> bool:
        """True when a topic is active and the working copy is trustworthy."""
        return self._topic is not None and self._machine is not None and not self._stale

    @property
    def is_busy(self) -> bool:
        """True while an action holds the session lock."""
        return self._lock.locked()

    # =========================================================================
    # Main Entry Points
    # =========================================================================

    async def load(self, student_id: str, subject_id: str) -> SessionResult:
        """
        Load (or reload) the session from the store.

        Selects the current topic, rebuilds the phase and quiz state, and
        loads the bookmark set. Calling it twice without a mutation in
        between returns identical views.

        Returns:
            SessionView, or SubjectExhausted when every topic is finished

        Raises:
            NotAuthenticatedError: If student_id is empty
            DataIntegrityError: If stored state cannot be reconciled
            PersistenceUnavailableError: If the store fails
        """
        student_id = _require_student(student_id)

        async with self._exclusive("load"):
            selection = await self.selector.select_topic(student_id, subject_id)
            bookmarked = await self.bookmarks.load(student_id)

            if isinstance(selection, SubjectExhausted):
                self._reset(student_id, subject_id, bookmarked)
                self._publish(SessionEventType.SUBJECT_EXHAUSTED)
                return selection

            machine, messages = await self._rebuild(student_id, subject_id, selection)

            self._reset(student_id, subject_id, bookmarked)
            self._topic = selection.topic
            self._is_new_topic = selection.is_new_topic
            self._machine = machine
            self._messages = messages

            logger.info(
                f"Loaded session {student_id}/{subject_id}: seq={selection.topic.primary_seq}, "
                f"phase={machine.phase.name}, new_topic={selection.is_new_topic}"
            )
            self._publish(SessionEventType.TOPIC_LOADED)
            return self._view()

    async def advance_phase(self) -> SessionView:
        """
        Move one phase forward.

        The new phase is persisted before it is applied and returned.

        Raises:
            InvalidPhaseTransitionError: If already in QUIZ
            PersistenceUnavailableError: If the progress upsert fails
        """
        async with self._exclusive("advance_phase"):
            topic, machine = self._require_loaded()
            new_state = machine.next_phase(len(topic.mcqs))

            await self.store.upsert_progress(
                StudentProgress(
                    student_id=self._student_id,
                    subject_id=self._subject_id,
                    last_completed_seq=topic.primary_seq,
                    last_phase=new_state.phase,
                    last_mcq_index=0,
                    is_completed=False,
                )
            )

            machine.apply(new_state)
            if isinstance(new_state, QuizState):
                self._messages = []

            logger.info(
                f"Session {self._student_id}/{self._subject_id} advanced to "
                f"{new_state.phase.name} (seq={topic.primary_seq})"
            )
            self._publish(SessionEventType.PHASE_ADVANCED)
            if machine.topic_complete:
                self._publish(SessionEventType.QUIZ_COMPLETED)
            return self._view()

    async def submit_answer(self, selected_option: str) -> SessionView:
        """
        Answer the active MCQ.

        Order: evaluate → insert answer row → upsert progress → advance
        the in-memory cursor. A correct answer completes the quiz; a wrong
        one moves to the next question until the quiz is exhausted.

        Raises:
            InvalidPhaseTransitionError: Outside QUIZ or after completion
            DataIntegrityError: If the option label is not in the MCQ
            PersistenceUnavailableError: If a write fails
        """
        async with self._exclusive("submit_answer"):
            topic, machine = self._require_loaded()
            quiz = machine.open_quiz()
            mcq = self.sequencer.active_mcq(topic, quiz.cursor)

            result = self.evaluator.evaluate(mcq, selected_option)
            new_state = machine.after_answer(result.is_correct)

            await self.evaluator.record(
                self._student_id,
                self._subject_id,
                topic,
                mcq,
                selected_option,
                result,
                mcq_index=new_state.cursor,
            )

            try:
                await self.store.upsert_progress(
                    StudentProgress(
                        student_id=self._student_id,
                        subject_id=self._subject_id,
                        last_completed_seq=topic.primary_seq,
                        last_phase=LearningPhase.QUIZ,
                        last_mcq_index=new_state.cursor,
                        is_completed=new_state.is_complete,
                    )
                )
            except PersistenceUnavailableError:
                self._stale = True
                logger.error(
                    f"Progress upsert failed after answer {new_state.cursor} of "
                    f"{self._student_id}/{self._subject_id}; session must be reloaded"
                )
                raise

            machine.apply(new_state)
            self._messages.append(
                ChatMessage(
                    role=MessageRole.STUDENT,
                    content=f"I choose {selected_option}: {mcq.option_text(selected_option)}",
                    is_correct=result.is_correct,
                    mcq_index=new_state.cursor,
                )
            )
            self._messages.append(
                ChatMessage(
                    role=MessageRole.TUTOR,
                    content=result.feedback_text,
                    is_correct=result.is_correct,
                    mcq_index=new_state.cursor,
                )
            )

            self._publish(
                SessionEventType.ANSWER_RECORDED,
                {
                    "mcq_id": mcq.id,
                    "mcq_index": new_state.cursor,
                    "is_correct": result.is_correct,
                },
            )
            if new_state.is_complete:
                logger.info(
                    f"Quiz complete for {self._student_id}/{self._subject_id} "
                    f"seq={topic.primary_seq} after {new_state.cursor} answers"
                )
                self._publish(
                    SessionEventType.QUIZ_COMPLETED,
                    {"answered": new_state.cursor, "last_correct": result.is_correct},
                )
            return self._view()

    async def advance_topic(self) -> SessionResult:
        """
        Finish the current topic and move to the next one.

        Persists the topic as completed, then selects the next topic by
        primary_seq and starts it at SUMMARY.

        Returns:
            SessionView for the next topic, or SubjectExhausted

        Raises:
            InvalidPhaseTransitionError: If the quiz is not complete yet
            PersistenceUnavailableError: If the store fails
        """
        async with self._exclusive("advance_topic"):
            topic, machine = self._require_loaded()
            if not machine.topic_complete:
                raise InvalidPhaseTransitionError(
                    "The quiz must be complete before advancing the topic",
                    details={"phase": int(machine.phase)},
                )

            await self.store.upsert_progress(
                StudentProgress(
                    student_id=self._student_id,
                    subject_id=self._subject_id,
                    last_completed_seq=topic.primary_seq,
                    last_phase=LearningPhase.QUIZ,
                    last_mcq_index=0,
                    is_completed=True,
                )
            )

            selection = await self.selector.select_next_topic(
                self._student_id, self._subject_id, topic.primary_seq
            )
            if isinstance(selection, SubjectExhausted):
                self._reset(self._student_id, self._subject_id, self._bookmarked)
                self._publish(SessionEventType.SUBJECT_EXHAUSTED)
                return selection

            self._topic = selection.topic
            self._is_new_topic = True
            self._machine = PhaseStateMachine()
            self._messages = []

            self._publish(
                SessionEventType.TOPIC_ADVANCED,
                {"from_seq": topic.primary_seq, "to_seq": selection.topic.primary_seq},
            )
            return self._view()

    async def toggle_bookmark(
        self,
        element_id: str,
        element_type: BookmarkElementType,
        metadata: Optional[dict[str, Any]] = None,
    ) -> bool:
        """
        Toggle a bookmark from any phase.

        Does not take the session lock and never touches quiz or topic state.
        Bookmarks belong to the student across subjects, so the current
        state is read from the store rather than from this session's copy.

        Returns:
            True if the element is now bookmarked
        """
        if self._student_id is None:
            raise SessionNotLoadedError("Load a session before toggling bookmarks")

        bookmarked = await self.bookmarks.toggle(
            self._student_id,
            element_id,
            element_type,
            metadata,
        )
        self._bookmarked = await self.bookmarks.load(self._student_id)

        self._publish(
            SessionEventType.BOOKMARK_TOGGLED,
            {
                "element_id": element_id,
                "element_type": element_type.value,
                "bookmarked": bookmarked,
            },
        )
        return bookmarked

    def view(self) -> SessionView:
        """Return the current view without touching the store."""
        self._require_loaded()
        return self._view()

    # =========================================================================
    # State Reconstruction
    # =========================================================================

    async def _rebuild(
        self,
        student_id: str,
        subject_id: str,
        selection: TopicSelection,
    ) -> tuple[PhaseStateMachine, list[ChatMessage]]:
        """Rebuild phase and quiz state for the selected topic."""
        topic = selection.topic

        if selection.is_new_topic or selection.progress is None:
            return PhaseStateMachine(), []

        progress = selection.progress
        if progress.last_phase.is_display:
            return PhaseStateMachine.resume(progress.last_phase, len(topic.mcqs)), []

        answers = await self.store.list_answers(student_id, subject_id, topic.primary_seq)
        replay = self.sequencer.replay(topic, progress.last_mcq_index, answers)
        machine = PhaseStateMachine.resume(LearningPhase.QUIZ, len(topic.mcqs), replay)
        messages = [self._replayed_message(topic, answer) for answer in replay.answers]
        return machine, messages

    @staticmethod
    def _replayed_message(topic: Topic, answer: StudentAnswer) -> ChatMessage:
        mcq = topic.mcqs[answer.mcq_index - 1]
        text = mcq.options.get(answer.selected_option, "")
        return ChatMessage(
            role=MessageRole.STUDENT,
            content=f"Previously answered: {answer.selected_option}: {text}",
            is_correct=answer.is_correct,
            mcq_index=answer.mcq_index,
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    @asynccontextmanager
    async def _exclusive(self, action: str) -> AsyncIterator[None]:
        """Run one action at a time; reject instead of queueing."""
        if self._lock.locked():
            raise SessionBusyError(
                f"Cannot {action}: another action is in progress for this session",
                details={"action": action},
            )
        async with self._lock:
            yield

    def _require_loaded(self) -> tuple[Topic, PhaseStateMachine]:
        if self._stale:
            raise SessionNotLoadedError(
                "A previous write failed part-way; reload the session"
            )
        if self._topic is None or self._machine is None:
            raise SessionNotLoadedError("No active topic; load the session first")
        return self._topic, self._machine

    def _reset(self, student_id: str, subject_id: str, bookmarked: set[str]) -> None:
        self._student_id = student_id
        self._subject_id = subject_id
        self._topic = None
        self._is_new_topic = False
        self._machine = None
        self._messages = []
        self._bookmarked = set(bookmarked)
        self._stale = False

    def _view(self) -> SessionView:
        topic, machine = self._topic, self._machine
        quiz_view = None
        quiz = machine.quiz
        if quiz is not None:
            quiz_view = QuizView(
                cursor=quiz.cursor,
                total_mcqs=quiz.total_mcqs,
                active_mcq=None if quiz.is_complete else self.sequencer.active_mcq(topic, quiz.cursor),
                is_complete=quiz.is_complete,
                last_outcome_correct=quiz.last_outcome_correct,
            )
        return SessionView(
            student_id=self._student_id,
            subject_id=self._subject_id,
            topic=topic,
            is_new_topic=self._is_new_topic,
            phase=machine.phase,
            quiz=quiz_view,
            messages=list(self._messages),
            bookmarked_ids=sorted(self._bookmarked),
        )

    def _publish(
        self, event_type: SessionEventType, payload: Optional[dict[str, Any]] = None
    ) -> None:
        self.events.publish(
            event_type,
            student_id=self._student_id,
            subject_id=self._subject_id,
            topic_seq=self._topic.primary_seq if self._topic else None,
            phase=self._machine.phase if self._machine else None,
            payload=payload,
        )


class SessionRegistry:
    """
    In-process registry of orchestrators keyed by (student, subject).

    Keeps the per-session action lock alive across API requests. Bounded
    LRU; an evicted session is rebuilt from the store on its next load().
    """

    def __init__(
        self,
        store: ProgressStore,
        events: Optional[SessionEventStream] = None,
        max_sessions: Optional[int] = None,
    ):
        self.store = store
        self.events = events or SessionEventStream()
        self.max_sessions = max_sessions or settings.SESSION_REGISTRY_MAX_SESSIONS
        self._sessions: OrderedDict[tuple[str, str], SessionOrchestrator] = OrderedDict()

    def __len__(self) -> int:
        return len(self._sessions)

    def get(self, student_id: str, subject_id: str) -> SessionOrchestrator:
        """Return the orchestrator for a session, creating it if needed."""
        key = (_require_student(student_id), subject_id)
        orchestrator = self._sessions.get(key)
        if orchestrator is None:
            orchestrator = SessionOrchestrator(self.store, self.events)
            self._sessions[key] = orchestrator
            self._evict(keep=key)
        else:
            self._sessions.move_to_end(key)
        return orchestrator

    def _evict(self, keep: tuple[str, str]) -> None:
        """
        Drop least recently used sessions above max_sessions.

        Busy sessions are never evicted; their lock must outlive the action.
        The registry may exceed its bound while every other entry is busy.
        """
        excess = len(self._sessions) - self.max_sessions
        if excess <= 0:
            return

        idle = [
            key
            for key, orchestrator in self._sessions.items()
            if key != keep and not orchestrator.is_busy
        ]
        for key in idle[:excess]:
            del self._sessions[key]
            logger.debug(f"Evicted session {key[0]}/{key[1]} from registry")

        if len(self._sessions) > self.max_sessions:
            logger.warning(
                f"Session registry over capacity ({len(self._sessions)} > "
                f"{self.max_sessions}): remaining sessions are busy"
            )
