"""
Boarding sequence planner

Orders one day's bookings so passenger groups board back to front.

Assumptions of the model:
1. Each group takes SETTLE_TIME_SECONDS to settle into its seats
2. While a group is settling, nobody behind it can pass
3. All seats under one booking id board together as a group
4. Boarding happens only through the front door (row 1 nearest, row 15 farthest)
5. Walking time inside the bus is negligible next to settling time
"""
from dataclasses import dataclass
from typing import Iterable, List

from database import Booking, BoardingStatus, seat_row


SETTLE_TIME_SECONDS = 60


@dataclass
class SequencedBooking:
    """A booking with its place in a boarding sequence"""
    booking: Booking
    sequence_number: int
    farthest_row: int
    seats_in_farthest_row: int

    @property
    def booking_id(self) -> str:
        return self.booking.booking_id

    @property
    def mobile_number(self) -> str:
        return self.booking.mobile_number

    @property
    def seats(self) -> List[str]:
        return self.booking.seats

    @property
    def boarding_status(self) -> BoardingStatus:
        return self.booking.boarding_status

    @property
    def total_seats(self) -> int:
        return len(self.booking.seats)


@dataclass
class BoardingTimeEstimate:
    """Natural-order versus optimal boarding time, in seconds"""
    natural_order_seconds: int
    optimal_seconds: int
    savings_seconds: int
    savings_percent: int

    @property
    def optimal_message(self) -> str:
        return format_duration(self.optimal_seconds)

    @property
    def natural_order_message(self) -> str:
        return format_duration(self.natural_order_seconds)

    @property
    def savings_message(self) -> str:
        return format_duration(self.savings_seconds, short=True)


def round_half_up(value: float) -> int:
    """Round x.5 away from zero for the non-negative percentages shown here"""
    return int(value + 0.5)


def farthest_row(seats: Iterable[str]) -> int:
    """Highest row number among the seats, 0 for no seats"""
    return max((seat_row(seat) for seat in seats), default=0)


def count_seats_in_row(seats: Iterable[str], row: int) -> int:
    return sum(1 for seat in seats if seat_row(seat) == row)


def _sequence(booking: Booking, sequence_number: int) -> SequencedBooking:
    row = farthest_row(booking.seats)
    return SequencedBooking(
        booking=booking,
        sequence_number=sequence_number,
        farthest_row=row,
        seats_in_farthest_row=count_seats_in_row(booking.seats, row),
    )


def plan_boarding_sequence(bookings: Iterable[Booking]) -> List[SequencedBooking]:
    """
    Order bookings for back-to-front boarding

    Sort keys, in order:
    1. farthest row, descending
    2. seats in that farthest row, descending
    3. total seats, descending
    4. booking id, ascending

    Returns:
        New SequencedBooking list numbered from 1; the input is not modified
    """
    annotated = [_sequence(booking, 0) for booking in bookings]
    annotated.sort(key=lambda entry: (
        -entry.farthest_row,
        -entry.seats_in_farthest_row,
        -entry.total_seats,
        entry.booking_id,
    ))
    for index, entry in enumerate(annotated, start=1):
        entry.sequence_number = index
    return annotated


def natural_boarding_sequence(bookings: Iterable[Booking]) -> List[SequencedBooking]:
    """Number bookings in the order given (storage order, i.e. order of booking)"""
    return [_sequence(booking, index) for index, booking in enumerate(bookings, start=1)]


def calculate_natural_order_time(booking_count: int) -> int:
    """Every group waits for the one before it to settle"""
    return booking_count * SETTLE_TIME_SECONDS


def calculate_optimal_time(booking_count: int) -> int:
    """
    Boarding time for the optimal sequence

    Approximation: back to front lets every group settle without blocking the
    next, so the whole bus takes one settle period. This is not a simulation
    of aisle occupancy.
    """
    return SETTLE_TIME_SECONDS if booking_count > 0 else 0


def calculate_time_savings(natural_seconds: int, optimal_seconds: int) -> BoardingTimeEstimate:
    savings = natural_seconds - optimal_seconds
    percent = round_half_up(savings / natural_seconds * 100) if natural_seconds > 0 else 0
    return BoardingTimeEstimate(
        natural_order_seconds=natural_seconds,
        optimal_seconds=optimal_seconds,
        savings_seconds=savings,
        savings_percent=percent,
    )


def estimate_boarding_time(bookings) -> BoardingTimeEstimate:
    """Natural, optimal and saved time for one day's bookings"""
    count = len(list(bookings))
    return calculate_time_savings(calculate_natural_order_time(count), calculate_optimal_time(count))


def format_duration(seconds: int, short: bool = False) -> str:
    """
    Human readable duration

    Long form: "45 seconds", "1 minute", "2 min 30 sec".
    Short form: "45s", "4m", "2m 30s".
    """
    minutes, remaining = divmod(max(seconds, 0), 60)
    if short:
        if minutes and remaining:
            return f"{minutes}m {remaining}s"
        if minutes:
            return f"{minutes}m"
        return f"{remaining}s"

    if minutes and remaining:
        return f"{minutes} min {remaining} sec"
    if minutes:
        return f"{minutes} minute{'s' if minutes > 1 else ''}"
    return f"{remaining} seconds"
