"""
Errors raised by request handlers.

Each error carries the HTTP status it maps to. Only the message is sent
to the caller.
"""

from __future__ import annotations


class ApiError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ApiError):
    """Bad or missing input."""

    status_code = 400


class NotFoundError(ApiError):
    """The requested document does not exist."""

    status_code = 404


INTERNAL_ERROR_MESSAGE = "Internal server error"
ENDPOINT_NOT_FOUND_MESSAGE = "Endpoint not found"
INVALID_BODY_MESSAGE = "Invalid request body"
