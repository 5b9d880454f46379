"""Booking engine: repository, validation, boarding planner and queries"""
from .errors import (
    Result, BookingError, PersistenceError, PersistenceErrorKind, NotFoundError, ValidationErrorKind
)
from .booking_repository import BookingRepository, create_repository, booking_sequence, format_booking_id
from .booking_service import BookingService, BoardingOverview

__all__ = [
    'Result', 'BookingError', 'PersistenceError', 'PersistenceErrorKind', 'NotFoundError',
    'ValidationErrorKind', 'BookingRepository', 'create_repository', 'booking_sequence',
    'format_booking_id', 'BookingService', 'BoardingOverview'
]
