"""Workflow errors. Each carries the HTTP status it should surface as."""
from __future__ import annotations


class ApiError(Exception):
    status_code = 500
    default_message = "Something went wrong"

    def __init__(self, message: str | None = None, status_code: int | None = None, errors: list | dict | None = None):
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        self.errors = errors or []
        super().__init__(self.message)


class ValidationError(ApiError):
    status_code = 400
    default_message = "Invalid input"


class UploadError(ApiError):
    """A required media upload produced no URL."""
    status_code = 400
    default_message = "Error while uploading file"


class AuthError(ApiError):
    status_code = 401
    default_message = "Unauthorized request"


class NotFoundError(ApiError):
    status_code = 404
    default_message = "Resource not found"


class ConflictError(ApiError):
    status_code = 409
    default_message = "Conflict"
