"""
Unit tests for SessionOrchestrator and SessionRegistry.

Drives whole sessions against an InMemoryProgressStore and checks both the
returned views and what ends up in the store.

Test Organization:
    - TestNewStudentWalkthrough: SUMMARY → QUIZ → next topic for a new learner
    - TestAsymmetricCompletion: correct answer ends the quiz, wrong moves on
    - TestResumption: reload after interruption in any phase
    - TestWriteFailures: store failures leave state consistent
    - TestIllegalActions: actions rejected by phase or session state
    - TestSubjectExhaustion: terminal outcome once every topic is done
    - TestBookmarks: toggles from any phase
    - TestConcurrency: one action at a time per session
    - TestEvents: activity published on the event stream
    - TestSessionRegistry: per-session orchestrator lookup and eviction
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from prep_engine.enums.learning import (
    BookmarkElementType,
    LearningPhase,
    MessageRole,
    SessionEventType,
)
from prep_engine.middleware.error_handling import (
    DataIntegrityError,
    InvalidPhaseTransitionError,
    NotAuthenticatedError,
    PersistenceUnavailableError,
    SessionBusyError,
    SessionNotLoadedError,
)
from prep_engine.models.learning import SessionView, SubjectExhausted
from prep_engine.services.learning import (
    InMemoryProgressStore,
    SessionOrchestrator,
    SessionRegistry,
)
from tests.factories import DEFAULT_STUDENT, DEFAULT_SUBJECT, make_topic

WRONG: str = "B"
CORRECT: str = "A"


# =============================================================================
# Helper Functions
# =============================================================================


async def load_into_quiz(orchestrator: SessionOrchestrator) -> SessionView:
    """Load the session and advance through the four display phases."""
    view = await orchestrator.load(DEFAULT_STUDENT, DEFAULT_SUBJECT)
    while view.phase != LearningPhase.QUIZ:
        view = await orchestrator.advance_phase()
    return view


async def stored_progress(store: InMemoryProgressStore):
    return await store.get_progress(DEFAULT_STUDENT, DEFAULT_SUBJECT)


async def stored_answers(store: InMemoryProgressStore, topic_seq: int = 1):
    return await store.list_answers(DEFAULT_STUDENT, DEFAULT_SUBJECT, topic_seq)


# =============================================================================
# Walkthrough
# =============================================================================


class TestNewStudentWalkthrough:
    """Tests for a learner with no history."""

    @pytest.mark.asyncio
    async def test_load_starts_first_topic_at_summary(self, orchestrator, store):
        view = await orchestrator.load(DEFAULT_STUDENT, DEFAULT_SUBJECT)

        assert view.status == "active"
        assert view.topic.id == "topic-1"
        assert view.is_new_topic is True
        assert view.phase == LearningPhase.SUMMARY
        assert view.quiz is None
        assert view.messages == []
        assert await stored_progress(store) is None

    @pytest.mark.asyncio
    async def test_each_phase_is_persisted(self, orchestrator, store):
        await orchestrator.load(DEFAULT_STUDENT, DEFAULT_SUBJECT)

        for expected in (
            LearningPhase.CONCEPTS,
            LearningPhase.GAPS,
            LearningPhase.MEDIA,
            LearningPhase.QUIZ,
        ):
            view = await orchestrator.advance_phase()
            progress = await stored_progress(store)

            assert view.phase == expected
            assert progress.last_phase == expected
            assert progress.last_completed_seq == 1
            assert progress.last_mcq_index == 0
            assert progress.is_completed is False

    @pytest.mark.asyncio
    async def test_quiz_opens_on_first_question(self, orchestrator):
        view = await load_into_quiz(orchestrator)

        assert view.quiz.cursor == 0
        assert view.quiz.total_mcqs == 3
        assert view.quiz.active_mcq.id == "topic-1-q1"
        assert view.quiz.is_complete is False

    @pytest.mark.asyncio
    async def test_wrong_answer_then_correct_answer(self, orchestrator, store):
        await load_into_quiz(orchestrator)

        view = await orchestrator.submit_answer(WRONG)

        assert view.quiz.cursor == 1
        assert view.quiz.active_mcq.id == "topic-1-q2"
        assert [(m.role, m.content) for m in view.messages] == [
            (MessageRole.STUDENT, "I choose B: Option B of topic-1-q1"),
            (
                MessageRole.TUTOR,
                "Wrong: topic-1-q1\n\n"
                "💡 **Learning Gap:** Gap for topic-1-q1\n\n"
                "✅ **Correct Answer:** A: Option A of topic-1-q1",
            ),
        ]
        progress = await stored_progress(store)
        assert (progress.last_mcq_index, progress.is_completed) == (1, False)

        view = await orchestrator.submit_answer(CORRECT)

        assert view.quiz.is_complete is True
        assert view.quiz.active_mcq is None
        assert view.messages[-1].content == "Right: topic-1-q2"
        progress = await stored_progress(store)
        assert (progress.last_mcq_index, progress.is_completed) == (2, True)
        assert [a.mcq_index for a in await stored_answers(store)] == [1, 2]

    @pytest.mark.asyncio
    async def test_advance_topic_starts_next_at_summary(self, orchestrator, store):
        await load_into_quiz(orchestrator)
        await orchestrator.submit_answer(CORRECT)

        view = await orchestrator.advance_topic()

        assert view.topic.id == "topic-2"
        assert view.is_new_topic is True
        assert view.phase == LearningPhase.SUMMARY
        assert view.messages == []
        progress = await stored_progress(store)
        assert progress.last_completed_seq == 1
        assert progress.is_completed is True
        assert progress.last_mcq_index == 0

    @pytest.mark.asyncio
    async def test_sequence_never_decreases(self, orchestrator, store):
        await load_into_quiz(orchestrator)
        seen = []

        for _ in range(3):
            await orchestrator.submit_answer(CORRECT)
            seen.append((await stored_progress(store)).last_completed_seq)
            result = await orchestrator.advance_topic()
            seen.append((await stored_progress(store)).last_completed_seq)
            if isinstance(result, SubjectExhausted):
                break
            await orchestrator.advance_phase()
            seen.append((await stored_progress(store)).last_completed_seq)
            while orchestrator.view().phase != LearningPhase.QUIZ:
                await orchestrator.advance_phase()

        assert seen == sorted(seen)
        assert seen[-1] == 3


class TestAsymmetricCompletion:
    """Tests for the completion policy through the orchestrator."""

    @pytest.mark.asyncio
    async def test_first_answer_correct_completes(self, orchestrator):
        await load_into_quiz(orchestrator)

        view = await orchestrator.submit_answer(CORRECT)

        assert view.quiz.cursor == 1
        assert view.quiz.is_complete is True

    @pytest.mark.asyncio
    async def test_all_wrong_exhausts_quiz(self, orchestrator, store):
        await load_into_quiz(orchestrator)

        for _ in range(2):
            view = await orchestrator.submit_answer(WRONG)
            assert view.quiz.is_complete is False
        view = await orchestrator.submit_answer(WRONG)

        assert view.quiz.cursor == 3
        assert view.quiz.is_complete is True
        assert view.quiz.last_outcome_correct is False
        assert (await stored_progress(store)).is_completed is True

    @pytest.mark.asyncio
    async def test_topic_without_mcqs_completes_on_entry(self):
        store = InMemoryProgressStore([make_topic(seq=1, mcq_count=0), make_topic(seq=2)])
        orchestrator = SessionOrchestrator(store)

        view = await load_into_quiz(orchestrator)

        assert view.quiz.is_complete is True
        assert (await orchestrator.advance_topic()).topic.id == "topic-2"


# =============================================================================
# Resumption
# =============================================================================


class TestResumption:
    """Tests for reloading an interrupted session."""

    @pytest.mark.asyncio
    async def test_resume_display_phase(self, orchestrator, store):
        await orchestrator.load(DEFAULT_STUDENT, DEFAULT_SUBJECT)
        await orchestrator.advance_phase()
        await orchestrator.advance_phase()

        view = await SessionOrchestrator(store).load(DEFAULT_STUDENT, DEFAULT_SUBJECT)

        assert view.topic.id == "topic-1"
        assert view.is_new_topic is False
        assert view.phase == LearningPhase.GAPS

    @pytest.mark.asyncio
    async def test_resume_mid_quiz_replays_answers(self, orchestrator, store):
        await load_into_quiz(orchestrator)
        await orchestrator.submit_answer(WRONG)

        view = await SessionOrchestrator(store).load(DEFAULT_STUDENT, DEFAULT_SUBJECT)

        assert view.phase == LearningPhase.QUIZ
        assert view.quiz.cursor == 1
        assert view.quiz.active_mcq.id == "topic-1-q2"
        assert len(view.messages) == 1
        assert view.messages[0].role == MessageRole.STUDENT
        assert view.messages[0].content == "Previously answered: B: Option B of topic-1-q1"
        assert view.messages[0].is_correct is False

    @pytest.mark.asyncio
    async def test_resume_completed_quiz_before_advancing(self, orchestrator, store):
        await load_into_quiz(orchestrator)
        await orchestrator.submit_answer(CORRECT)

        view = await SessionOrchestrator(store).load(DEFAULT_STUDENT, DEFAULT_SUBJECT)

        assert view.topic.id == "topic-2"
        assert view.is_new_topic is True
        assert view.phase == LearningPhase.SUMMARY

    @pytest.mark.asyncio
    async def test_load_is_idempotent(self, orchestrator):
        await load_into_quiz(orchestrator)
        await orchestrator.submit_answer(WRONG)

        first = await orchestrator.load(DEFAULT_STUDENT, DEFAULT_SUBJECT)
        second = await orchestrator.load(DEFAULT_STUDENT, DEFAULT_SUBJECT)

        assert first == second

    @pytest.mark.asyncio
    async def test_reload_continues_quiz(self, orchestrator, store):
        await load_into_quiz(orchestrator)
        await orchestrator.submit_answer(WRONG)
        resumed = SessionOrchestrator(store)
        await resumed.load(DEFAULT_STUDENT, DEFAULT_SUBJECT)

        view = await resumed.submit_answer(WRONG)

        assert view.quiz.cursor == 2
        assert [a.mcq_index for a in await stored_answers(store)] == [1, 2]

    @pytest.mark.asyncio
    async def test_corrupt_answer_log_raises(self, orchestrator, store):
        await load_into_quiz(orchestrator)
        await orchestrator.submit_answer(WRONG)
        await store.upsert_progress(
            (await stored_progress(store)).model_copy(update={"last_mcq_index": 2})
        )

        with pytest.raises(DataIntegrityError):
            await SessionOrchestrator(store).load(DEFAULT_STUDENT, DEFAULT_SUBJECT)


# =============================================================================
# Write Failures
# =============================================================================


class TestWriteFailures:
    """Tests for store failures during actions."""

    @pytest.mark.asyncio
    async def test_failed_phase_write_keeps_phase(self, orchestrator, store):
        await orchestrator.load(DEFAULT_STUDENT, DEFAULT_SUBJECT)
        store.upsert_progress = AsyncMock(side_effect=PersistenceUnavailableError("down"))

        with pytest.raises(PersistenceUnavailableError):
            await orchestrator.advance_phase()

        assert orchestrator.view().phase == LearningPhase.SUMMARY

    @pytest.mark.asyncio
    async def test_failed_answer_insert_keeps_cursor(self, orchestrator, store):
        await load_into_quiz(orchestrator)
        store.insert_answer = AsyncMock(side_effect=PersistenceUnavailableError("down"))

        with pytest.raises(PersistenceUnavailableError):
            await orchestrator.submit_answer(WRONG)

        view = orchestrator.view()
        assert view.quiz.cursor == 0
        assert view.messages == []
        assert (await stored_progress(store)).last_mcq_index == 0

    @pytest.mark.asyncio
    async def test_lost_progress_write_recovers_from_answer_log(self, orchestrator, store):
        """The answer row survives a failed progress upsert and is counted once."""
        await load_into_quiz(orchestrator)
        store.upsert_progress = AsyncMock(side_effect=PersistenceUnavailableError("down"))

        with pytest.raises(PersistenceUnavailableError):
            await orchestrator.submit_answer(WRONG)

        assert orchestrator.is_loaded is False
        with pytest.raises(SessionNotLoadedError):
            await orchestrator.submit_answer(WRONG)
        assert len(await stored_answers(store)) == 1

        del store.upsert_progress
        view = await orchestrator.load(DEFAULT_STUDENT, DEFAULT_SUBJECT)

        assert view.quiz.cursor == 1
        assert view.quiz.active_mcq.id == "topic-1-q2"

        view = await orchestrator.submit_answer(WRONG)

        assert view.quiz.cursor == 2
        assert (await stored_progress(store)).last_mcq_index == 2
        assert [a.mcq_index for a in await stored_answers(store)] == [1, 2]

    @pytest.mark.asyncio
    async def test_failed_load_keeps_previous_session(self, orchestrator, store):
        await orchestrator.load(DEFAULT_STUDENT, DEFAULT_SUBJECT)
        await orchestrator.advance_phase()
        store.get_progress = AsyncMock(side_effect=PersistenceUnavailableError("down"))

        with pytest.raises(PersistenceUnavailableError):
            await orchestrator.load(DEFAULT_STUDENT, DEFAULT_SUBJECT)

        assert orchestrator.view().phase == LearningPhase.CONCEPTS


# =============================================================================
# Illegal Actions
# =============================================================================


class TestIllegalActions:
    """Tests for actions rejected by the current state."""

    @pytest.mark.asyncio
    async def test_actions_before_load(self, orchestrator):
        with pytest.raises(SessionNotLoadedError):
            await orchestrator.advance_phase()
        with pytest.raises(SessionNotLoadedError):
            await orchestrator.submit_answer(CORRECT)
        with pytest.raises(SessionNotLoadedError):
            await orchestrator.toggle_bookmark("x", BookmarkElementType.TAG)

    @pytest.mark.asyncio
    async def test_missing_student_identity(self, orchestrator, store):
        with pytest.raises(NotAuthenticatedError):
            await orchestrator.load("  ", DEFAULT_SUBJECT)

        assert await stored_progress(store) is None

    @pytest.mark.asyncio
    async def test_answer_outside_quiz(self, orchestrator, store):
        await orchestrator.load(DEFAULT_STUDENT, DEFAULT_SUBJECT)

        with pytest.raises(InvalidPhaseTransitionError):
            await orchestrator.submit_answer(CORRECT)

        assert await stored_answers(store) == []

    @pytest.mark.asyncio
    async def test_advance_phase_in_quiz(self, orchestrator):
        await load_into_quiz(orchestrator)

        with pytest.raises(InvalidPhaseTransitionError):
            await orchestrator.advance_phase()

    @pytest.mark.asyncio
    async def test_advance_topic_before_quiz_complete(self, orchestrator):
        await load_into_quiz(orchestrator)
        await orchestrator.submit_answer(WRONG)

        with pytest.raises(InvalidPhaseTransitionError):
            await orchestrator.advance_topic()

    @pytest.mark.asyncio
    async def test_answer_after_quiz_complete(self, orchestrator, store):
        await load_into_quiz(orchestrator)
        await orchestrator.submit_answer(CORRECT)

        with pytest.raises(InvalidPhaseTransitionError):
            await orchestrator.submit_answer(CORRECT)

        assert len(await stored_answers(store)) == 1

    @pytest.mark.asyncio
    async def test_unknown_option_writes_nothing(self, orchestrator, store):
        await load_into_quiz(orchestrator)

        with pytest.raises(DataIntegrityError):
            await orchestrator.submit_answer("Z")

        assert await stored_answers(store) == []
        assert orchestrator.view().quiz.cursor == 0


# =============================================================================
# Subject Exhaustion
# =============================================================================


class TestSubjectExhaustion:
    """Tests for the terminal SubjectExhausted outcome."""

    @pytest.mark.asyncio
    async def test_empty_subject(self):
        orchestrator = SessionOrchestrator(InMemoryProgressStore())

        result = await orchestrator.load(DEFAULT_STUDENT, DEFAULT_SUBJECT)

        assert isinstance(result, SubjectExhausted)
        assert result.status == "subject_exhausted"
        assert orchestrator.is_loaded is False

    @pytest.mark.asyncio
    async def test_finishing_last_topic(self):
        store = InMemoryProgressStore([make_topic(seq=1)])
        orchestrator = SessionOrchestrator(store)
        await load_into_quiz(orchestrator)
        await orchestrator.submit_answer(CORRECT)

        result = await orchestrator.advance_topic()

        assert result == SubjectExhausted(
            student_id=DEFAULT_STUDENT,
            subject_id=DEFAULT_SUBJECT,
            last_completed_seq=1,
        )
        with pytest.raises(SessionNotLoadedError):
            await orchestrator.advance_phase()
        assert isinstance(
            await SessionOrchestrator(store).load(DEFAULT_STUDENT, DEFAULT_SUBJECT),
            SubjectExhausted,
        )

    @pytest.mark.asyncio
    async def test_bookmarks_still_work_when_exhausted(self):
        orchestrator = SessionOrchestrator(InMemoryProgressStore())
        await orchestrator.load(DEFAULT_STUDENT, DEFAULT_SUBJECT)

        assert await orchestrator.toggle_bookmark("tag-a", BookmarkElementType.TAG) is True


# =============================================================================
# Bookmarks
# =============================================================================


class TestBookmarks:
    """Tests for bookmark toggles through the orchestrator."""

    @pytest.mark.asyncio
    async def test_toggle_in_display_phase(self, orchestrator):
        await orchestrator.load(DEFAULT_STUDENT, DEFAULT_SUBJECT)

        assert await orchestrator.toggle_bookmark("topic-1-buzz-1", BookmarkElementType.BUZZWORD) is True

        view = orchestrator.view()
        assert view.bookmarked_ids == ["topic-1-buzz-1"]
        assert view.phase == LearningPhase.SUMMARY

    @pytest.mark.asyncio
    async def test_toggle_twice_removes(self, orchestrator):
        await orchestrator.load(DEFAULT_STUDENT, DEFAULT_SUBJECT)

        await orchestrator.toggle_bookmark("img-1", BookmarkElementType.IMAGE)
        bookmarked = await orchestrator.toggle_bookmark("img-1", BookmarkElementType.IMAGE)

        assert bookmarked is False
        assert orchestrator.view().bookmarked_ids == []

    @pytest.mark.asyncio
    async def test_toggle_in_quiz_keeps_quiz_state(self, orchestrator):
        await load_into_quiz(orchestrator)
        await orchestrator.submit_answer(WRONG)

        await orchestrator.toggle_bookmark("topic-1-q2", BookmarkElementType.MCQ)

        view = orchestrator.view()
        assert view.quiz.cursor == 1
        assert len(view.messages) == 2

    @pytest.mark.asyncio
    async def test_bookmarks_survive_reload(self, orchestrator, store):
        await orchestrator.load(DEFAULT_STUDENT, DEFAULT_SUBJECT)
        await orchestrator.toggle_bookmark("vid-1", BookmarkElementType.VIDEO)

        view = await SessionOrchestrator(store).load(DEFAULT_STUDENT, DEFAULT_SUBJECT)

        assert view.bookmarked_ids == ["vid-1"]

    @pytest.mark.asyncio
    async def test_toggle_across_subjects_uses_stored_state(self, store):
        """Bookmarks are per student, so a toggle in one subject is seen in another."""
        store.add_topic(make_topic(seq=1, subject_id="physiology"))
        registry = SessionRegistry(store)
        anatomy = registry.get(DEFAULT_STUDENT, DEFAULT_SUBJECT)
        physiology = registry.get(DEFAULT_STUDENT, "physiology")
        await anatomy.load(DEFAULT_STUDENT, DEFAULT_SUBJECT)
        await physiology.load(DEFAULT_STUDENT, "physiology")

        first = await anatomy.toggle_bookmark("card-1", BookmarkElementType.FLASHCARD)
        second = await physiology.toggle_bookmark("card-1", BookmarkElementType.FLASHCARD)

        assert (first, second) == (True, False)
        assert await store.list_bookmarks(DEFAULT_STUDENT) == []
        assert physiology.view().bookmarked_ids == []

        assert await anatomy.toggle_bookmark("card-1", BookmarkElementType.FLASHCARD) is True
        assert anatomy.view().bookmarked_ids == ["card-1"]


# =============================================================================
# Concurrency
# =============================================================================


class TestConcurrency:
    """Tests for rejecting overlapping actions."""

    @pytest.mark.asyncio
    async def test_second_action_is_rejected_while_busy(self, orchestrator, store):
        await orchestrator.load(DEFAULT_STUDENT, DEFAULT_SUBJECT)
        gate = asyncio.Event()
        upsert = store.upsert_progress

        async def slow_upsert(record):
            await gate.wait()
            await upsert(record)

        store.upsert_progress = slow_upsert
        in_flight = asyncio.create_task(orchestrator.advance_phase())
        await asyncio.sleep(0)

        with pytest.raises(SessionBusyError):
            await orchestrator.advance_phase()
        with pytest.raises(SessionBusyError):
            await orchestrator.load(DEFAULT_STUDENT, DEFAULT_SUBJECT)

        gate.set()
        view = await in_flight

        assert view.phase == LearningPhase.CONCEPTS
        assert (await orchestrator.advance_phase()).phase == LearningPhase.GAPS


# =============================================================================
# Events
# =============================================================================


class TestEvents:
    """Tests for events published during a session."""

    @pytest.mark.asyncio
    async def test_quiz_events(self, orchestrator):
        queue = orchestrator.events.subscribe()

        await load_into_quiz(orchestrator)
        await orchestrator.submit_answer(CORRECT)
        await orchestrator.advance_topic()

        received = [queue.get_nowait() for _ in range(queue.qsize())]
        assert [e.event_type for e in received] == [
            SessionEventType.TOPIC_LOADED,
            SessionEventType.PHASE_ADVANCED,
            SessionEventType.PHASE_ADVANCED,
            SessionEventType.PHASE_ADVANCED,
            SessionEventType.PHASE_ADVANCED,
            SessionEventType.ANSWER_RECORDED,
            SessionEventType.QUIZ_COMPLETED,
            SessionEventType.TOPIC_ADVANCED,
        ]
        assert received[5].payload == {
            "mcq_id": "topic-1-q1",
            "mcq_index": 1,
            "is_correct": True,
        }
        assert received[-1].payload == {"from_seq": 1, "to_seq": 2}


# =============================================================================
# Registry
# =============================================================================


class TestSessionRegistry:
    """Tests for SessionRegistry."""

    def test_same_session_same_orchestrator(self, store):
        registry = SessionRegistry(store)

        assert registry.get(DEFAULT_STUDENT, DEFAULT_SUBJECT) is registry.get(
            DEFAULT_STUDENT, DEFAULT_SUBJECT
        )
        assert registry.get(DEFAULT_STUDENT, "physiology") is not registry.get(
            DEFAULT_STUDENT, DEFAULT_SUBJECT
        )

    def test_orchestrators_share_event_stream(self, store):
        registry = SessionRegistry(store)

        assert registry.get("student-1", DEFAULT_SUBJECT).events is registry.events
        assert registry.get("student-2", DEFAULT_SUBJECT).events is registry.events

    def test_least_recently_used_is_evicted(self, store):
        registry = SessionRegistry(store, max_sessions=2)
        first = registry.get("student-1", DEFAULT_SUBJECT)
        registry.get("student-2", DEFAULT_SUBJECT)
        registry.get("student-1", DEFAULT_SUBJECT)

        registry.get("student-3", DEFAULT_SUBJECT)

        assert len(registry) == 2
        assert registry.get("student-1", DEFAULT_SUBJECT) is first

    @pytest.mark.asyncio
    async def test_busy_session_is_not_evicted(self, store):
        """An in-flight action keeps its orchestrator, so overlap is still rejected."""
        registry = SessionRegistry(store, max_sessions=1)
        anatomy = registry.get(DEFAULT_STUDENT, DEFAULT_SUBJECT)
        await anatomy.load(DEFAULT_STUDENT, DEFAULT_SUBJECT)
        gate = asyncio.Event()
        upsert = store.upsert_progress

        async def slow_upsert(record):
            await gate.wait()
            await upsert(record)

        store.upsert_progress = slow_upsert
        in_flight = asyncio.create_task(anatomy.advance_phase())
        await asyncio.sleep(0)

        registry.get(DEFAULT_STUDENT, "physiology")
        again = registry.get(DEFAULT_STUDENT, DEFAULT_SUBJECT)

        assert again is anatomy
        assert len(registry) == 2
        with pytest.raises(SessionBusyError):
            await again.advance_phase()

        gate.set()
        assert (await in_flight).phase == LearningPhase.CONCEPTS
        assert (await stored_progress(store)).last_phase == LearningPhase.CONCEPTS

    def test_idle_sessions_are_evicted_first(self, store):
        registry = SessionRegistry(store, max_sessions=1)
        registry.get("student-1", DEFAULT_SUBJECT)

        registry.get("student-2", DEFAULT_SUBJECT)

        assert len(registry) == 1

    def test_requires_student(self, store):
        with pytest.raises(NotAuthenticatedError):
            SessionRegistry(store).get("", DEFAULT_SUBJECT)
