from __future__ import annotations


class AppError(RuntimeError):
    """Base application-level error.

    ``kind`` and ``public_message`` are the only values meant to leave the
    process boundary; the exception text itself may reference record ids and
    stays in logs.
    """

    kind = "app_error"
    public_message = "The operation could not be completed"

    def to_public_dict(self) -> dict[str, str]:
        return {"kind": self.kind, "message": self.public_message}


class NotFoundError(AppError):
    """Referenced visit or assessment does not exist."""

    kind = "not_found"
    public_message = "The requested record was not found"


class InvalidInputError(AppError, ValueError):
    """Malformed enum value or missing required field."""

    kind = "invalid_input"
    public_message = "The request contains invalid data"


class InvalidTransitionError(AppError):
    """State machine guard violation."""

    kind = "invalid_transition"
    public_message = "The visit cannot move to the requested status"

    def __init__(self, message: str, *, current: str | None = None, target: str | None = None) -> None:
        super().__init__(message)
        self.current = current
        self.target = target


class AlreadyTriagedError(InvalidTransitionError):
    """Triage completion requested for a visit that is already past triage."""

    kind = "already_triaged"
    public_message = "Triage has already been completed for this visit"


class DependencyFailureError(AppError):
    """Store or external-system call failed."""

    kind = "dependency_failure"
    public_message = "A required system is unavailable"
