# booking_engine/api/errors.py
"""Translate engine errors into HTTP errors at the route boundary"""
from fastapi import HTTPException

from booking_engine.core.exceptions import (
    BookingEngineError,
    BookingTimeoutError,
    CancelReasonRequiredError,
    InvalidConfigurationError,
    InvalidTransitionError,
    NotFoundError,
    OutOfPolicyWindowError,
    QuotaExceededError,
    SlotNoLongerAvailableError,
    TransientStoreError,
)

STATUS_CODES = (
    (NotFoundError, 404),
    (OutOfPolicyWindowError, 422),
    (InvalidConfigurationError, 422),
    (CancelReasonRequiredError, 422),
    (SlotNoLongerAvailableError, 409),
    (InvalidTransitionError, 409),
    (QuotaExceededError, 429),
    (TransientStoreError, 503),
    (BookingTimeoutError, 504),
)


def to_http_exception(exc: BookingEngineError) -> HTTPException:
    for error_type, status_code in STATUS_CODES:
        if isinstance(exc, error_type):
            headers = {"Retry-After": "1"} if status_code == 503 else None
            return HTTPException(status_code=status_code, detail=str(exc), headers=headers)
    return HTTPException(status_code=500, detail="Internal booking error")
