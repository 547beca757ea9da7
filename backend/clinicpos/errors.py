# Overview: Error taxonomy shared by services and routes.

from __future__ import annotations


class ApiError(Exception):
    """Request-terminal failure rendered as a JSON error envelope."""

    status_code = 500

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        body = {"success": False, "error": self.message}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(ApiError, ValueError):
    """400-level input problem."""
    status_code = 400


class UnauthorizedError(ApiError):
    """Missing, invalid or expired credentials."""
    status_code = 401


class ForbiddenError(ApiError):
    """Role or visibility violation."""
    status_code = 403


class NotFoundError(ApiError):
    status_code = 404
