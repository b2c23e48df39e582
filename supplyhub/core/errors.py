from __future__ import annotations


class CapacityError(Exception):
    """Base for failures the scheduling core reports to its callers."""

    code = "capacity_error"

    def __init__(self, message: str, **context) -> None:
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> dict:
        return {"error": self.code, "message": self.message, **self.context}


class ValidationError(CapacityError):
    code = "validation"


class NotFoundError(CapacityError):
    # Also raised when the order exists but the caller cannot see it.
    code = "not_found"


class InvalidStateError(CapacityError):
    code = "invalid_state"

    def __init__(self, message: str, *, current_status: str, **context) -> None:
        super().__init__(message, current_status=current_status, **context)
        self.current_status = current_status


class ConflictError(CapacityError):
    code = "conflict"
