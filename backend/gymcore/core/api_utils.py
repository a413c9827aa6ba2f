"""
Common API utilities for consistent response formatting across all controllers.
"""

from typing import Any, Optional

from flask import jsonify

from gymcore.core.exceptions import (
    GuardFailed,
    GymCoreError,
    InvalidTransition,
    NotFoundError,
    PersistenceError,
    SchedulingConflict,
    ValidationError,
)

# Most specific first; the first isinstance match wins.
ERROR_STATUS_CODES = (
    (ValidationError, 400),
    (NotFoundError, 404),
    (SchedulingConflict, 409),
    (InvalidTransition, 409),
    (GuardFailed, 422),
    (PersistenceError, 503),
)


def api_response(
    success: bool, message: str, data: Optional[Any] = None, status_code: int = 200
) -> tuple:
    """
    Standardized API response format for all endpoints.

    Args:
        success: Whether the operation was successful
        message: Human-readable message about the operation
        data: Optional data payload
        status_code: HTTP status code

    Returns:
        Tuple of (json_response, status_code)
    """
    response = {"success": success, "message": message}

    if data is not None:
        response["data"] = data

    return jsonify(response), status_code


def status_code_for(error: GymCoreError) -> int:
    for error_type, status_code in ERROR_STATUS_CODES:
        if isinstance(error, error_type):
            return status_code
    return 500


def error_response(error: GymCoreError) -> tuple:
    """Render a core error through the standard envelope."""
    return api_response(False, error.message, error.to_dict(), status_code_for(error))
