"""
Error Handling Middleware and Session Engine Exceptions

Provides consistent, informative error responses across the API and the
exception taxonomy raised by the session engine.

Features:
- Standardized error response format
- Correlation IDs for log tracking
- Sanitized responses (hides internal details in production)
- Custom exception classes for the session engine's failure modes

Usage:
    from prep_engine.middleware.error_handling import (
        ErrorHandlingMiddleware,
        PersistenceUnavailableError,
    )

    # Add middleware to app
    app.add_middleware(ErrorHandlingMiddleware)

    # Raise custom exceptions from services
    raise PersistenceUnavailableError("upsert_progress failed")

Exception taxonomy:
    ServiceError
    ├── NotAuthenticatedError         401  no student identity
    ├── PersistenceUnavailableError   503  a repository call failed
    ├── DataIntegrityError            500  authoring or corruption bug
    ├── InvalidPhaseTransitionError   409  action not legal in this phase
    ├── SessionBusyError              409  another action is in flight
    └── SessionNotLoadedError         409  action before load()

    Exhausting a subject is NOT an error: it is returned as the
    SubjectExhausted result model.
"""

import logging
import traceback
from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)


# =============================================================================
# Custom Exceptions
# =============================================================================


class ServiceError(Exception):
    """
    Base exception for service errors.

    Provides consistent error handling with:
    - HTTP status code
    - Error code for categorization
    - Optional details for debugging

    Example:
        raise ServiceError("Something went wrong", status_code=500)
    """

    status_code: int = 500
    error_code: str = "service_error"

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        error_code: Optional[str] = None,
        details: Optional[dict] = None,
    ):
        super().__init__(message)
        self.message = message
        if status_code:
            self.status_code = status_code
        if error_code:
            self.error_code = error_code
        self.details = details


class NotAuthenticatedError(ServiceError):
    """
    No valid student identity.

    Raised before any repository call so no partial write happens.
    """

    status_code = 401
    error_code = "not_authenticated"


class PersistenceUnavailableError(ServiceError):
    """
    Backing store error.

    Raised when any repository call fails. The engine leaves its in-memory
    state unchanged and does not retry; retrying is the caller's job.
    """

    status_code = 503
    error_code = "persistence_unavailable"


class DataIntegrityError(ServiceError):
    """
    Content or record corruption.

    Raised for an option label that is not in the MCQ, a quiz index out of
    range on resumption, or a resumed topic that no longer exists.
    """

    status_code = 500
    error_code = "data_integrity_violation"


class InvalidPhaseTransitionError(ServiceError):
    """
    Requested action is not legal in the current phase.
    """

    status_code = 409
    error_code = "invalid_phase_transition"


class SessionBusyError(ServiceError):
    """
    Another action is already in flight for this session.
    """

    status_code = 409
    error_code = "session_busy"


class SessionNotLoadedError(ServiceError):
    """
    Session action invoked before load().
    """

    status_code = 409
    error_code = "session_not_loaded"


# =============================================================================
# Error Handling Middleware
# =============================================================================


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """
    Global error handling middleware.

    - Catches unhandled exceptions
    - Logs with correlation ID
    - Returns consistent error format
    - Hides internal details in production
    """

    def __init__(self, app, debug: bool = False):
        """
        Initialize middleware.

        Args:
            app: FastAPI/Starlette application
            debug: Whether to include stack traces in responses
        """
        super().__init__(app)
        self.debug = debug

    async def dispatch(self, request: Request, call_next):
        """Process request and handle any errors."""
        error_id = str(uuid4())[:8]

        try:
            response = await call_next(request)
            return response

        except HTTPException:
            # Let FastAPI handle HTTP exceptions
            raise

        except ServiceError as e:
            log = logger.error if e.status_code >= 500 else logger.warning
            log(
                f"[{error_id}] {e.error_code}: {e.message}",
                extra={
                    "error_id": error_id,
                    "error_code": e.error_code,
                    "path": request.url.path,
                    "method": request.method,
                    "details": e.details,
                },
            )
            return create_error_response(
                error_code=e.error_code,
                message=e.message,
                status_code=e.status_code,
                details=e.details if self.debug else None,
                error_id=error_id,
            )

        except Exception as e:
            # Log full traceback for unexpected errors
            logger.error(
                f"[{error_id}] Unhandled error: {type(e).__name__}: {e}",
                extra={
                    "error_id": error_id,
                    "path": request.url.path,
                    "method": request.method,
                    "traceback": traceback.format_exc(),
                },
            )

            details = None
            if self.debug:
                details = {
                    "exception": type(e).__name__,
                    "message": str(e),
                    "traceback": traceback.format_exc(),
                }
            return create_error_response(
                error_code="internal_server_error",
                message="An unexpected error occurred",
                status_code=500,
                details=details,
                error_id=error_id,
            )


# =============================================================================
# Setup Function
# =============================================================================


def setup_error_handling(app: FastAPI, debug: bool = False) -> None:
    """
    Configure error handling on the FastAPI app.

    Args:
        app: FastAPI application instance
        debug: Whether to include stack traces in responses
    """
    app.add_middleware(ErrorHandlingMiddleware, debug=debug)
    logger.info(f"Error handling middleware enabled (debug={debug})")


# =============================================================================
# Helper Functions
# =============================================================================


def create_error_response(
    error_code: str,
    message: str,
    status_code: int = 500,
    details: Optional[dict] = None,
    error_id: Optional[str] = None,
) -> JSONResponse:
    """
    Create a standardized error response.

    Args:
        error_code: Error code for categorization
        message: Human-readable error message
        status_code: HTTP status code
        details: Optional additional details
        error_id: Correlation id; generated when omitted

    Returns:
        JSONResponse with standardized error format
    """
    return JSONResponse(
        status_code=status_code,
        content={
            "error": error_code,
            "message": message,
            "error_id": error_id or str(uuid4())[:8],
            "details": details,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    )
