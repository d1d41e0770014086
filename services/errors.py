"""
Typed errors raised by the application and dashboard services.
Each carries the HTTP status code the API layer should answer with.
"""
from __future__ import annotations

from typing import Optional


class AppError(Exception):
    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None, errors: Optional[dict[str, str]] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.errors = errors


class ValidationFailed(AppError):
    status_code = 400

    def __init__(self, errors: dict[str, str], message: str = "Validation failed"):
        super().__init__(message, errors=errors)


class DuplicateEmail(AppError):
    status_code = 400

    def __init__(self, message: str = "An application with this email already exists"):
        super().__init__(message, errors={"email": message})


class NotFound(AppError):
    status_code = 404

    def __init__(self, message: str = "Application not found"):
        super().__init__(message)


class InvalidIdFormat(AppError):
    status_code = 400

    def __init__(self, message: str = "Invalid application ID format"):
        super().__init__(message)


class InvalidTransition(AppError):
    status_code = 400


class InternalAggregationError(AppError):
    status_code = 500
