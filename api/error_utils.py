"""
Standardized error handling utilities for Hexbear API endpoints.
Provides consistent error formats, HTTP status codes, and error codes across all endpoints.
"""

import logging
from flask import jsonify
from typing import Dict, Any, Optional

# Standard error codes for consistent API responses
ERROR_CODES = {
    # Authentication errors
    "TOKEN_MISSING": "Authentication token is missing",
    "TOKEN_INVALID": "Authentication token is invalid or expired",
    "NOT_FOUND": "Resource not found",

    # Validation errors
    "PHOTO_MISSING": "A photo is required for this step",

    # Disposal workflow errors
    "ATTEMPT_NOT_FOUND": "Disposal attempt not found or expired",
    "INVALID_TRANSITION": "This action is not allowed at the current step",
    "VISION_UNAVAILABLE": "Image analysis is temporarily unavailable, please retry",

    # System errors
    "SERVER_ERROR": "Internal server error",
    "STORE_UNAVAILABLE": "Attempt store is unavailable",
    "DATABASE_ERROR": "Database operation failed",
}


def create_error_response(
    error_code: str,
    message: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
    status_code: int = 500
) -> tuple:
    """
    Create a standardized error response with consistent format.

    Args:
        error_code: One of the standard ERROR_CODES keys
        message: Optional custom message (defaults to standard message)
        details: Optional additional error details
        status_code: HTTP status code

    Returns:
        Tuple of (JSON response, HTTP status code)
    """
    if error_code not in ERROR_CODES:
        logging.warning(f"Unknown error code used: {error_code}")
        error_code = "SERVER_ERROR"

    error_message = message or ERROR_CODES[error_code]

    response_data = {
        "error_code": error_code,
        "message": error_message
    }

    if details:
        response_data["details"] = details

    logging.error(f"API Error [{error_code}]: {error_message} - Status: {status_code}")

    return jsonify(response_data), status_code


def handle_exception(e: Exception, context: str = "API endpoint") -> tuple:
    """Logs an unexpected exception and returns a generic 500 response."""
    error_type = type(e).__name__
    logging.error(f"Unexpected error in {context}: {error_type} - {e}", exc_info=True)

    return create_error_response(
        error_code="SERVER_ERROR",
        message="An unexpected error occurred",
        details={"error_type": error_type},
        status_code=500
    )


# Common error response shortcuts
def not_found_error(message: Optional[str] = None) -> tuple:
    return create_error_response("NOT_FOUND", message, status_code=404)


def attempt_not_found_error() -> tuple:
    return create_error_response("ATTEMPT_NOT_FOUND", status_code=404)


def invalid_transition_error(message: Optional[str] = None, stage: Optional[str] = None) -> tuple:
    details = {"stage": stage} if stage else None
    return create_error_response("INVALID_TRANSITION", message, details, status_code=409)

