"""
Strict Base Models for Validation

This module provides base classes with strict validation settings used by
both the API contract and the engine's internal value objects.

MOTIVATION:
    Parameter mismatches between frontend and backend are a common source of bugs.
    By enforcing strict validation:
    - Unknown fields are rejected with 422 (extra="forbid")
    - Type mismatches fail fast with clear error messages

Usage:
    # For request bodies (strictest validation)
    class AnswerSubmitRequest(StrictRequest):
        selected_option: str

    # For records and response bodies (allows extra fields from DB)
    class StudentProgress(StrictResponse):
        student_id: str

Architecture:
    API Request → StrictRequest (extra="forbid") → Route Handler
    DB Model → StrictResponse (extra="ignore") → Service / API Response
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class StrictRequest(BaseModel):
    """
    Base model for API request bodies with strict validation.

    Rejects any fields not explicitly declared in the model, catching
    frontend typos and mismatches at request time rather than runtime.

    Features:
        - extra="forbid": Unknown fields raise 422 Unprocessable Entity
        - validate_default=True: Validates default values
        - str_strip_whitespace=True: Trims whitespace from strings
    """

    model_config = ConfigDict(
        extra="forbid",  # Reject unknown fields
        validate_default=True,  # Validate defaults
        str_strip_whitespace=True,  # Clean string inputs
        from_attributes=True,  # Enable ORM conversion
    )


class StrictResponse(BaseModel):
    """
    Base model for records and API response bodies.

    More lenient than StrictRequest to allow flexibility in stored data.
    Still enforces type validation but ignores extra fields.

    Features:
        - extra="ignore": Silently ignores extra fields (DB may have more columns)
        - validate_default=True: Validates default values
        - from_attributes=True: Allows ORM model conversion
    """

    model_config = ConfigDict(
        extra="ignore",  # Allow extra fields in responses
        validate_default=True,  # Validate defaults
        from_attributes=True,  # Enable ORM conversion
    )


class ErrorDetail(StrictResponse):
    """
    Standardized error response detail.

    Matches the error format from the error_handling middleware.
    Frontend clients can rely on this consistent structure.
    """

    error: str  # Error code (e.g., "data_integrity_violation")
    message: str  # Human-readable message
    error_id: str  # Correlation ID for log lookup
    details: Optional[dict] = None  # Additional context
    timestamp: datetime
