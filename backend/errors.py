"""
Error taxonomy and the result shape returned by public operations
Persistence and lookup errors are raised inside the repository and converted
to a Result at its public methods; validation problems never raise
"""
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional
import enum

from database import Booking

if TYPE_CHECKING:
    from .validation import ValidationResult


class PersistenceErrorKind(enum.Enum):
    """Ways the persistence surface can fail"""
    UNAVAILABLE = "unavailable"
    WRITE_FAILED = "write_failed"
    CORRUPT_DATA = "corrupt_data"


class ValidationErrorKind(enum.Enum):
    """Business rules a candidate booking can break"""
    INVALID_MOBILE = "invalid_mobile"
    INVALID_DATE = "invalid_date"
    PAST_DATE = "past_date"
    NO_SEATS_SELECTED = "no_seats_selected"
    SEAT_LIMIT_EXCEEDED = "seat_limit_exceeded"
    INVALID_SEAT = "invalid_seat"
    DUPLICATE_SEATS = "duplicate_seats"
    MOBILE_DAILY_CAP_EXCEEDED = "mobile_daily_cap_exceeded"


class BookingError(Exception):
    """Base class for errors surfaced as failed operations"""

    default_message = 'Something went wrong. Please try again.'

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class PersistenceError(BookingError):
    """The store could not be read or written"""

    def __init__(self, kind: PersistenceErrorKind, message: Optional[str] = None):
        super().__init__(message or {
            PersistenceErrorKind.UNAVAILABLE: 'Booking storage is unavailable. Please try again.',
            PersistenceErrorKind.WRITE_FAILED: 'Unable to save booking. Please try again.',
            PersistenceErrorKind.CORRUPT_DATA: 'Stored bookings were unreadable and have been reset.',
        }[kind])
        self.kind = kind


class NotFoundError(BookingError):
    """No booking matches the requested id"""

    default_message = 'Booking not found.'

    def __init__(self, booking_id: Optional[str] = None, message: Optional[str] = None):
        super().__init__(message)
        self.booking_id = booking_id


@dataclass
class Result:
    """Outcome of a public operation"""
    success: bool
    message: str = ''
    booking: Optional[Booking] = None
    error: Optional[BookingError] = None
    validation: Optional['ValidationResult'] = None

    @classmethod
    def ok(cls, message: str = '', booking: Optional[Booking] = None) -> 'Result':
        return cls(success=True, message=message, booking=booking)

    @classmethod
    def fail(cls, error: BookingError) -> 'Result':
        return cls(success=False, message=error.message, error=error)

    def __bool__(self):
        return self.success
