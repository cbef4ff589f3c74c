"""
Middleware Package

Provides FastAPI error handling middleware and the session engine's
exception classes.

Usage:
    from prep_engine.middleware import setup_error_handling, ServiceError
"""

from prep_engine.middleware.error_handling import (
    DataIntegrityError,
    ErrorHandlingMiddleware,
    InvalidPhaseTransitionError,
    NotAuthenticatedError,
    PersistenceUnavailableError,
    ServiceError,
    SessionBusyError,
    SessionNotLoadedError,
    setup_error_handling,
)

__all__ = [
    "setup_error_handling",
    "ErrorHandlingMiddleware",
    "ServiceError",
    "NotAuthenticatedError",
    "PersistenceUnavailableError",
    "DataIntegrityError",
    "InvalidPhaseTransitionError",
    "SessionBusyError",
    "SessionNotLoadedError",
]
