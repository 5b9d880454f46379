"""
Booking service
Runs validation against repository facts before every booking mutation and
assembles the boarding overview for a travel date
"""
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Callable, Iterable, List, Optional

from database import Booking, BoardingStatus, MAX_SEATS_PER_BOOKING, normalize_travel_date
from .booking_repository import BookingRepository
from .boarding import (
    SequencedBooking, BoardingTimeEstimate,
    plan_boarding_sequence, natural_boarding_sequence, estimate_boarding_time
)
from .errors import Result, BookingError, NotFoundError
from .logger_config import logger
from .query import (
    BoardingStatistics, SortColumn,
    sort_by_column, filter_by_search, statistics, all_boarded, next_to_board
)
from .validation import BookingCandidate, ValidationResult, validate, clean_mobile_number


BOARDING_MODES = ('optimal', 'natural')


@dataclass
class BoardingOverview:
    """Everything the boarding screen shows for one date"""
    travel_date: date
    mode: str
    rows: List[SequencedBooking] = field(default_factory=list)
    statistics: BoardingStatistics = field(default_factory=BoardingStatistics)
    time_estimate: Optional[BoardingTimeEstimate] = None
    all_boarded: bool = True
    next_to_board: Optional[SequencedBooking] = None


class BookingService:
    """Service for booking operations; never raises to its caller"""

    def __init__(self, repository: Optional[BookingRepository] = None,
                 clock: Optional[Callable[[], datetime]] = None):
        """
        Initialize booking service

        Args:
            repository: Booking repository (defaults to an in-memory one)
            clock: Returns the current time (defaults to datetime.now)
        """
        self.repository = repository or BookingRepository()
        self.clock = clock or datetime.now

    def _today(self) -> date:
        return self.clock().date()

    @staticmethod
    def _invalid(validation: ValidationResult) -> Result:
        message = next(iter(validation.errors.values()), 'Please correct the booking details.')
        return Result(success=False, message=message, validation=validation)

    def create_booking(self, travel_date, mobile_number: str, seats: Iterable[str]) -> Result:
        """
        Validate and store a new booking

        Args:
            travel_date: date or YYYY-MM-DD string
            mobile_number: Mobile number, separators allowed
            seats: Seat ids such as "A1", "D15"

        Returns:
            Result with the created booking on success
        """
        candidate = BookingCandidate(mobile_number=mobile_number, travel_date=travel_date,
                                     seats=list(seats or []))

        # Facts, id and write must come from one consistent view of the store
        with self.repository.write_lock():
            normalized_date = normalize_travel_date(travel_date)
            booked_seats = set()
            mobile_seat_count = 0
            if normalized_date is not None:
                booked_seats = self.repository.booked_seats(normalized_date)
                mobile_seat_count = self.repository.seat_count_by_mobile(
                    clean_mobile_number(mobile_number), normalized_date
                )

            validation = validate(candidate, booked_seats, mobile_seat_count, today=self._today())
            if not validation.valid:
                return self._invalid(validation)

            booking = Booking(
                booking_id=self.repository.generate_booking_id(candidate.travel_date),
                travel_date=candidate.travel_date,
                mobile_number=candidate.mobile_number,
                seats=candidate.seats,
                booking_time=self.clock(),
                boarding_status=BoardingStatus.NOT_BOARDED
            )
            result = self.repository.upsert(booking)

        if result.success:
            logger.info("Created booking {} for {} seat(s)", booking.booking_id, booking.seat_count)
        result.validation = validation
        return result

    def update_booking(self, booking_id: str, mobile_number: Optional[str] = None,
                       seats: Optional[Iterable[str]] = None) -> Result:
        """
        Change the mobile number and/or seats of a booking

        Booking id, travel date, booking time and boarding status are kept.
        The booking's own seats may be selected again.
        """
        with self.repository.write_lock():
            existing = self.repository.get(booking_id)
            if existing is None:
                return Result.fail(NotFoundError(booking_id))

            candidate = BookingCandidate(
                mobile_number=mobile_number if mobile_number is not None else existing.mobile_number,
                travel_date=existing.travel_date,
                seats=list(seats) if seats is not None else list(existing.seats),
                booking_id=existing.booking_id,
                current_seats=list(existing.seats)
            )
            booked_seats = self.repository.booked_seats(existing.travel_date)
            mobile_seat_count = self.repository.seat_count_by_mobile(
                clean_mobile_number(candidate.mobile_number), existing.travel_date, exclude_id=booking_id
            )

            validation = validate(candidate, booked_seats, mobile_seat_count, today=self._today())
            if not validation.valid:
                return self._invalid(validation)

            booking = Booking(
                booking_id=existing.booking_id,
                travel_date=existing.travel_date,
                mobile_number=candidate.mobile_number,
                seats=candidate.seats,
                booking_time=existing.booking_time,
                boarding_status=existing.boarding_status
            )
            result = self.repository.upsert(booking)

        if result.success:
            logger.info("Updated booking {}", booking_id)
        result.validation = validation
        return result

    def cancel_booking(self, booking_id: str) -> Result:
        """Cancel (hard-delete) a booking"""
        result = self.repository.remove(booking_id)
        if result.success:
            logger.info("Cancelled booking {}", booking_id)
        return result

    def update_boarding_status(self, booking_id: str, status) -> Result:
        """
        Set the boarding status of a booking

        Args:
            booking_id: Booking ID
            status: BoardingStatus or its value ('boarded', 'not_boarded')
        """
        try:
            status = BoardingStatus(status)
        except ValueError:
            return Result.fail(BookingError(f"Unknown boarding status: {status}"))
        return self.repository.set_boarding_status(booking_id, status)

    def toggle_boarding_status(self, booking_id: str) -> Result:
        """Flip a booking between boarded and not boarded"""
        with self.repository.write_lock():
            booking = self.repository.get(booking_id)
            if booking is None:
                return Result.fail(NotFoundError(booking_id))
            new_status = (BoardingStatus.NOT_BOARDED if booking.is_boarded
                          else BoardingStatus.BOARDED)
            return self.repository.set_boarding_status(booking_id, new_status)

    def get_bookings(self, travel_date) -> List[Booking]:
        """Bookings for a date in the order they were made"""
        return self.repository.find_by_date(travel_date)

    def remaining_seats_for_mobile(self, mobile_number: str, travel_date,
                                   exclude_id: Optional[str] = None) -> int:
        """How many more seats a mobile number may book on a date"""
        used = self.repository.seat_count_by_mobile(clean_mobile_number(mobile_number), travel_date, exclude_id)
        return max(MAX_SEATS_PER_BOOKING - used, 0)

    def boarding_overview(self, travel_date, mode: str = 'optimal', search: str = '',
                          sort_column=SortColumn.SEQUENCE, direction: str = 'asc') -> BoardingOverview:
        """
        Sequenced, filtered and sorted bookings for a date with statistics

        Args:
            travel_date: date or YYYY-MM-DD string
            mode: 'optimal' for back-to-front order, 'natural' for booking order
            search: Booking id or mobile fragment
            sort_column: Table column to sort the rows by
            direction: 'asc' or 'desc'
        """
        normalized_date = normalize_travel_date(travel_date) or self._today()
        bookings = self.repository.find_by_date(normalized_date)

        if mode not in BOARDING_MODES:
            mode = 'optimal'
        if mode == 'natural':
            sequenced = natural_boarding_sequence(bookings)
        else:
            sequenced = plan_boarding_sequence(bookings)

        rows = sort_by_column(filter_by_search(sequenced, search), sort_column, direction)

        return BoardingOverview(
            travel_date=normalized_date,
            mode=mode,
            rows=rows,
            statistics=statistics(bookings),
            time_estimate=estimate_boarding_time(bookings),
            all_boarded=all_boarded(bookings),
            next_to_board=next_to_board(sequenced)
        )
