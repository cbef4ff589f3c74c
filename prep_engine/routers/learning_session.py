"""
Learning Session API Router

Endpoints driving one learner's adaptive session in a subject.

Endpoints:
- GET  /api/learning/{subject_id}/session - Load or resume the session
- POST /api/learning/{subject_id}/session/advance-phase - Next phase
- POST /api/learning/{subject_id}/session/answer - Answer the active MCQ
- POST /api/learning/{subject_id}/session/advance-topic - Next topic
- POST /api/learning/{subject_id}/session/bookmarks - Toggle a bookmark

The student is identified by the X-Student-Id header. A finished subject
is reported with 200 and {"status": "subject_exhausted"}; failures use the
standard error body from the error handling middleware.
"""

import logging
from typing import Union

from fastapi import APIRouter, Depends

from prep_engine.dependencies import get_session_registry, get_student_id
from prep_engine.models.base import ErrorDetail
from prep_engine.models.learning import (
    AnswerSubmitRequest,
    BookmarkToggleRequest,
    BookmarkToggleResponse,
    SessionView,
    SubjectExhausted,
)
from prep_engine.services.learning import SessionOrchestrator, SessionRegistry

logger = logging.getLogger(__name__)
router = APIRouter(
    prefix="/api/learning",
    tags=["learning"],
    responses={
        401: {"model": ErrorDetail},
        409: {"model": ErrorDetail},
        500: {"model": ErrorDetail},
        503: {"model": ErrorDetail},
    },
)

SessionResponse = Union[SessionView, SubjectExhausted]


async def _active_session(
    registry: SessionRegistry, student_id: str, subject_id: str
) -> tuple[SessionOrchestrator, Union[SessionResponse, None]]:
    """
    Return the session's orchestrator, loading it from the store if needed.

    The second element is the load result when loading ended in
    SubjectExhausted, so the caller can return it unchanged.
    """
    orchestrator = registry.get(student_id, subject_id)
    if orchestrator.is_loaded:
        return orchestrator, None

    result = await orchestrator.load(student_id, subject_id)
    if isinstance(result, SubjectExhausted):
        return orchestrator, result
    return orchestrator, None


# ===========================================
# Session Endpoints
# ===========================================


@router.get("/{subject_id}/session", response_model=SessionResponse)
async def load_session(
    subject_id: str,
    student_id: str = Depends(get_student_id),
    registry: SessionRegistry = Depends(get_session_registry),
) -> SessionResponse:
    """
    Load or resume the session.

    Always re-derives state from the store, so it doubles as "refresh".
    """
    orchestrator = registry.get(student_id, subject_id)
    return await orchestrator.load(student_id, subject_id)


@router.post("/{subject_id}/session/advance-phase", response_model=SessionResponse)
async def advance_phase(
    subject_id: str,
    student_id: str = Depends(get_student_id),
    registry: SessionRegistry = Depends(get_session_registry),
) -> SessionResponse:
    """Move to the next learning phase."""
    orchestrator, exhausted = await _active_session(registry, student_id, subject_id)
    if exhausted is not None:
        return exhausted
    return await orchestrator.advance_phase()


@router.post("/{subject_id}/session/answer", response_model=SessionResponse)
async def submit_answer(
    subject_id: str,
    request: AnswerSubmitRequest,
    student_id: str = Depends(get_student_id),
    registry: SessionRegistry = Depends(get_session_registry),
) -> SessionResponse:
    """Answer the active MCQ and return the updated session with feedback."""
    orchestrator, exhausted = await _active_session(registry, student_id, subject_id)
    if exhausted is not None:
        return exhausted
    return await orchestrator.submit_answer(request.selected_option)


@router.post("/{subject_id}/session/advance-topic", response_model=SessionResponse)
async def advance_topic(
    subject_id: str,
    student_id: str = Depends(get_student_id),
    registry: SessionRegistry = Depends(get_session_registry),
) -> SessionResponse:
    """Complete the current topic and start the next one."""
    orchestrator, exhausted = await _active_session(registry, student_id, subject_id)
    if exhausted is not None:
        return exhausted
    return await orchestrator.advance_topic()


# ===========================================
# Bookmark Endpoints
# ===========================================


@router.post("/{subject_id}/session/bookmarks", response_model=BookmarkToggleResponse)
async def toggle_bookmark(
    subject_id: str,
    request: BookmarkToggleRequest,
    student_id: str = Depends(get_student_id),
    registry: SessionRegistry = Depends(get_session_registry),
) -> BookmarkToggleResponse:
    """Toggle a bookmark on any element, in any phase."""
    orchestrator, _ = await _active_session(registry, student_id, subject_id)
    bookmarked = await orchestrator.toggle_bookmark(
        request.element_id, request.element_type, request.metadata
    )
    return BookmarkToggleResponse(element_id=request.element_id, bookmarked=bookmarked)
