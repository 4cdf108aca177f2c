"""
Error kinds raised by the service layer.

Each maps to one HTTP status; main.py turns them into the response envelope.
"""

from typing import Any, Dict, Optional


class AppError(Exception):
    """Base error carrying an HTTP status and a user-facing message."""

    status_code = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"statusCode": self.status_code, "message": self.message}
        if self.details:
            body["details"] = self.details
        return body


class BadRequestError(AppError):
    status_code = 400


class UnauthorizedError(AppError):
    status_code = 401


class ForbiddenError(AppError):
    status_code = 403


class NotFoundError(AppError):
    status_code = 404


class ConflictError(AppError):
    status_code = 409
