"""Booking engine errors.

Every error carries a ``kind`` that callers can branch on (for example retrying
a booking after ``Conflict``) and the HTTP status the API renders it with.
"""


class BookingError(Exception):
    """Base class for errors surfaced verbatim to the caller."""

    kind = "BookingError"
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(BookingError):
    """Referenced slot, appointment or contract does not exist for the tenant."""

    kind = "NotFound"
    status_code = 404


class SlotUnavailableError(BookingError):
    """Slot exists but is occupied or blocked."""

    kind = "SlotUnavailable"
    status_code = 409


class ConflictError(BookingError):
    """A conditional write lost a race with a concurrent request."""

    kind = "Conflict"
    status_code = 409


class InvalidTransitionError(BookingError):
    kind = "InvalidTransition"
    status_code = 409


class BookingValidationError(BookingError):
    """Caller-supplied value breaks a domain rule."""

    kind = "ValidationError"
    status_code = 400


class NoOpRescheduleError(BookingValidationError):
    pass


class CannotRescheduleCancelledError(BookingError):
    kind = "CannotRescheduleCancelled"
    status_code = 409
