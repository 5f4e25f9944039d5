"""Exception types shared across the roster core."""

from __future__ import annotations


class RosterError(RuntimeError):
    """Base class for errors raised by the roster core."""


class ValidationError(RosterError):
    """Raised when incoming data fails validation."""


class InvalidTransitionError(ValidationError):
    """Raised when a booking status change is not allowed."""

    def __init__(self, current: str, requested: str) -> None:
        super().__init__(f"Cannot change booking status from {current} to {requested}")
        self.current = current
        self.requested = requested


class RecordNotFoundError(RosterError):
    """Raised when a record targeted by a mutation does not exist."""

    def __init__(self, collection: str, record_id: str) -> None:
        super().__init__(f"{collection} record {record_id} not found")
        self.collection = collection
        self.record_id = record_id


class DataUnavailableError(RosterError):
    """Raised when a collection has no usable snapshot."""

    def __init__(self, collection: str, cause: BaseException | None = None) -> None:
        super().__init__(f"{collection} data is unavailable")
        self.collection = collection
        self.cause = cause


class PartialWorkflowError(RosterError):
    """Raised when a booking was marked paid but its invoice was not stored."""

    def __init__(self, booking_id: str, cause: BaseException) -> None:
        super().__init__(
            f"Booking {booking_id} is marked paid but the invoice could not be saved: {cause}"
        )
        self.booking_id = booking_id
        self.cause = cause
