"""
Custom exceptions for the booking engine.
Raised by the services and translated to HTTP errors in the API layer.
"""


class BookingEngineError(Exception):
    """Base exception for all booking engine errors."""
    pass


class NotFoundError(BookingEngineError):
    """Business, service, staff or appointment is absent, inactive or out of scope."""
    pass


class InvalidConfigurationError(BookingEngineError):
    """Business hours are malformed or inconsistent (open >= close)."""
    pass


class OutOfPolicyWindowError(BookingEngineError):
    """Requested time violates advance-booking bounds or falls in a closed period."""
    pass


class SlotNoLongerAvailableError(BookingEngineError):
    """The requested interval was taken by another booking before commit."""
    pass


class InvalidTransitionError(BookingEngineError):
    """Appointment status change outside the allowed graph."""

    def __init__(self, current: str, attempted: str):
        self.current = current
        self.attempted = attempted
        super().__init__(f"Cannot move appointment from {current} to {attempted}")


class CancelReasonRequiredError(BookingEngineError):
    """Cancellation attempted without a reason."""
    pass


class QuotaExceededError(BookingEngineError):
    """The business may not accept more appointments right now."""
    pass


class TransientStoreError(BookingEngineError):
    """Serialization failure or connection problem that survived the retries."""
    pass


class BookingTimeoutError(BookingEngineError):
    """The booking transaction ran past its time limit and was rolled back."""
    pass
