"""
FastAPI Dependencies

Common dependencies for student identity and the session registry.
"""

from fastapi import Request

from prep_engine.config import settings
from prep_engine.middleware.error_handling import NotAuthenticatedError
from prep_engine.services.learning import SessionRegistry


async def get_student_id(request: Request) -> str:
    """
    Read the student identity forwarded by the auth collaborator.

    The id is opaque to the engine; it is taken from the header named by
    settings.STUDENT_ID_HEADER (X-Student-Id by default).

    Returns:
        str: The student id

    Raises:
        NotAuthenticatedError: 401 if the header is missing or blank
    """
    student_id = request.headers.get(settings.STUDENT_ID_HEADER, "").strip()
    if not student_id:
        raise NotAuthenticatedError(
            f"Missing student identity. Provide the {settings.STUDENT_ID_HEADER} header."
        )
    return student_id


async def get_session_registry(request: Request) -> SessionRegistry:
    """Return the application-wide session registry."""
    return request.app.state.session_registry
