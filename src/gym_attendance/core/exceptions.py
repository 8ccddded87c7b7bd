from __future__ import annotations


class DomainError(Exception):
    """Base exception for business rule violations.

    Every subclass carries a status code and a message that is safe to show to
    the member, so the request boundary can turn it into a specific answer.
    """

    status_code = 400


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""

    status_code = 403


class NotFoundError(DomainError):
    status_code = 404


class ConflictError(DomainError):
    """Raised when a membership request clashes with an existing one."""

    status_code = 409


class OutOfRangeError(DomainError):
    status_code = 403

    def __init__(self, distance_m: float | None, *, action: str = "check in"):
        self.distance_m = distance_m
        if distance_m is None:
            message = f"You must be at the gym to {action}. No gym location is configured."
        else:
            message = f"You must be at the gym to {action}. You are {round(distance_m)}m away from gym location."
        super().__init__(message)


class ClosedError(DomainError):
    status_code = 403


class MembershipRequiredError(DomainError):
    status_code = 403


class ExpiredError(DomainError):
    status_code = 403


class CapExceededError(DomainError):
    status_code = 403


class AlreadyClockedInError(DomainError):
    status_code = 409


class AlreadyClockedOutError(DomainError):
    status_code = 409


class NoActiveSessionError(DomainError):
    pass


class DuplicateSessionError(Exception):
    """Raised by session stores when (member, date) already has a session."""
