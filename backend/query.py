"""
Search, sort and statistics over one day's bookings
Works on plain Booking objects and on SequencedBooking rows alike
"""
from dataclasses import dataclass
from typing import List, Optional, Sequence
import enum

from database import BoardingStatus
from .boarding import round_half_up


class SortColumn(enum.Enum):
    """Columns of the boarding table"""
    SEQUENCE = "sequence"
    BOOKING_ID = "bookingId"
    SEATS = "seats"
    MOBILE = "mobile"


@dataclass
class BoardingStatistics:
    total_bookings: int = 0
    total_passengers: int = 0
    boarded_passengers: int = 0
    not_boarded_passengers: int = 0
    boarding_progress_percent: int = 0


def _first_seat(row) -> str:
    seats = sorted(row.seats)
    return seats[0] if seats else ''


_SORT_KEYS = {
    SortColumn.SEQUENCE: lambda row: getattr(row, 'sequence_number', 0) or 0,
    SortColumn.BOOKING_ID: lambda row: row.booking_id,
    SortColumn.SEATS: _first_seat,
    SortColumn.MOBILE: lambda row: row.mobile_number,
}


def sort_by_column(bookings: Sequence, column, direction: str = 'asc') -> List:
    """
    Stable sort by one table column

    Args:
        bookings: Bookings or sequenced rows
        column: SortColumn or its value ('sequence', 'bookingId', 'seats', 'mobile')
        direction: 'asc' or 'desc'

    Returns:
        New list; an unknown column keeps the input order
    """
    try:
        key = _SORT_KEYS[SortColumn(column)]
    except ValueError:
        return list(bookings)
    # reverse=True keeps equal rows in their original order, like a negated comparator
    return sorted(bookings, key=key, reverse=(direction == 'desc'))


def filter_by_search(bookings: Sequence, term: Optional[str]) -> Sequence:
    """Case-insensitive match on booking id, substring match on the mobile number"""
    if not term or not term.strip():
        return bookings

    needle = term.strip().lower()
    return [
        row for row in bookings
        if needle in row.booking_id.lower() or needle in row.mobile_number
    ]


def statistics(bookings: Sequence) -> BoardingStatistics:
    """Passenger counts and boarding progress"""
    total_passengers = sum(len(row.seats) for row in bookings)
    boarded = sum(len(row.seats) for row in bookings
                  if row.boarding_status == BoardingStatus.BOARDED)
    progress = round_half_up(boarded / total_passengers * 100) if total_passengers else 0

    return BoardingStatistics(
        total_bookings=len(bookings),
        total_passengers=total_passengers,
        boarded_passengers=boarded,
        not_boarded_passengers=total_passengers - boarded,
        boarding_progress_percent=progress,
    )


def all_boarded(bookings: Sequence) -> bool:
    return all(row.boarding_status == BoardingStatus.BOARDED for row in bookings)


def next_to_board(bookings: Sequence):
    """Lowest-sequence row that has not boarded yet, or None"""
    waiting = [row for row in bookings if row.boarding_status != BoardingStatus.BOARDED]
    if not waiting:
        return None
    return min(waiting, key=lambda row: getattr(row, 'sequence_number', 0) or 0)


def format_seats(seats: Sequence[str]) -> str:
    """Comma-separated seats in sorted order"""
    return ', '.join(sorted(seats)) if seats else ''


def format_mobile_number(mobile_number: str) -> str:
    """XXX-XXX-XXXX for a 10-digit number, anything else unchanged"""
    if not mobile_number or len(mobile_number) != 10:
        return mobile_number
    return f"{mobile_number[:3]}-{mobile_number[3:6]}-{mobile_number[6:]}"
