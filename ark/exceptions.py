"""Domain exception hierarchy mapped to the API error envelope."""

from __future__ import annotations


class AppException(Exception):
    """Base exception for all domain errors.

    Subclasses set ``code`` and ``status_code`` at the class level; callers
    provide ``message`` and an optional ``details`` list.
    """

    code: str = "APP_ERROR"
    status_code: int = 500

    def __init__(self, message: str, details: list[dict] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or []


class ValidationException(AppException):
    code = "VALIDATION_ERROR"
    status_code = 400


class UnauthorizedException(AppException):
    code = "UNAUTHORIZED"
    status_code = 401


class ForbiddenException(AppException):
    code = "FORBIDDEN"
    status_code = 403


class NotFoundException(AppException):
    code = "NOT_FOUND"
    status_code = 404


class ConflictException(AppException):
    code = "CONFLICT"
    status_code = 409


class InvalidTransitionException(AppException):
    """A status move that the adjacency table does not allow.

    Carries the attempted ``(from_status, to_status)`` pair so operators can
    see exactly which move was rejected.
    """

    code = "INVALID_TRANSITION"
    status_code = 409

    def __init__(self, from_status: str, to_status: str, message: str | None = None) -> None:
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            message or f"Cannot move from '{from_status}' to '{to_status}'",
            details=[{"from": from_status, "to": to_status}],
        )


class PreconditionException(AppException):
    code = "PRECONDITION_FAILED"
    status_code = 412


class RateLimitException(AppException):
    code = "RATE_LIMITED"
    status_code = 429


class DependencyException(AppException):
    """The database or an external collaborator failed or timed out."""

    code = "DEPENDENCY_ERROR"
    status_code = 502
