"""Scheduling error hierarchy; each error carries the HTTP status it maps to."""
from __future__ import annotations


class SchedulingError(Exception):
    """Base class for every error the scheduling core raises on purpose."""

    http_status: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_response(self) -> dict:
        return {"detail": self.message}


class ValidationError(SchedulingError):
    """One or more request fields are missing or malformed."""

    http_status = 400

    def __init__(self, errors: list[dict[str, str]], message: str = "Validation failed"):
        super().__init__(message)
        self.errors = errors

    @classmethod
    def single(cls, field: str, message: str) -> "ValidationError":
        return cls([{"field": field, "message": message}], message=message)

    def to_response(self) -> dict:
        return {"detail": self.message, "errors": self.errors}


class AuthorizationError(SchedulingError):
    http_status = 403


class NotFoundError(SchedulingError):
    http_status = 404


class ConflictError(SchedulingError):
    """Illegal status transition, or the record changed since it was loaded."""

    http_status = 409


class DependencyError(SchedulingError):
    """A downstream collaborator (store, email, push, documents) failed."""

    http_status = 500

    def __init__(self, dependency: str, message: str):
        super().__init__(message)
        self.dependency = dependency

    def to_response(self) -> dict:
        # Collaborator names and raw errors stay in the logs.
        return {"detail": "Server error"}
