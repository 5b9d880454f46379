"""
Validation rules for booking candidates
Pure functions: facts about existing bookings are passed in, nothing is read
from or written to storage here
"""
import re
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, List, Optional

from database import MAX_SEATS_PER_BOOKING, canonical_seat_id, is_valid_seat_id, normalize_travel_date
from .errors import ValidationErrorKind


MOBILE_PATTERN = re.compile(r'^[6-9]\d{9}$')
MOBILE_SEPARATORS = re.compile(r'[\s\-.()]')

MESSAGES = {
    'mobile_required': 'Mobile number is required.',
    'mobile_length': 'Mobile number must be exactly 10 digits.',
    'mobile_pattern': 'Please enter a valid 10-digit mobile number starting with 6-9',
    'date_required': 'Travel date is required.',
    'date_invalid': 'Travel date must be a valid date (YYYY-MM-DD).',
    'date_past': 'Travel date cannot be in the past.',
    'no_seats': 'Please select at least one seat.',
    'seat_limit': f'You cannot book more than {MAX_SEATS_PER_BOOKING} seats.',
    'invalid_seat': 'Invalid seat selection: {seats}',
    'repeated_seat': 'Each seat can only be selected once: {seats}',
    'duplicate': 'The following seats are already booked: {seats}',
    'mobile_cap': ('This mobile number has already booked {booked} seats for this date. '
                   'You can book {remaining} more seats.'),
}


@dataclass
class BookingCandidate:
    """Booking as entered by the operator, before it is accepted"""
    mobile_number: Optional[str]
    travel_date: object
    seats: List[str] = field(default_factory=list)
    booking_id: Optional[str] = None
    # Seats the edited booking holds right now; empty when creating
    current_seats: List[str] = field(default_factory=list)

    @property
    def is_update(self) -> bool:
        return bool(self.booking_id)


@dataclass
class ValidationResult:
    """Field-keyed outcome of validating a candidate"""
    errors: Dict[str, str] = field(default_factory=dict)
    error_kinds: Dict[str, ValidationErrorKind] = field(default_factory=dict)
    already_booked: int = 0
    remaining_seats: int = MAX_SEATS_PER_BOOKING

    @property
    def valid(self) -> bool:
        return not self.errors

    def add(self, field_name: str, kind: ValidationErrorKind, message: str) -> None:
        # First failing rule per field supplies the message
        if field_name not in self.errors:
            self.errors[field_name] = message
            self.error_kinds[field_name] = kind


def clean_mobile_number(mobile_number: Optional[str]) -> str:
    """Strip whitespace and common separators from a mobile number"""
    if not mobile_number:
        return ''
    return MOBILE_SEPARATORS.sub('', str(mobile_number))


def validate_mobile_number(mobile_number: Optional[str]):
    """
    Validate an Indian mobile number

    Returns:
        (kind, message, cleaned_number); kind and message are None when valid
    """
    if not mobile_number or not str(mobile_number).strip():
        return ValidationErrorKind.INVALID_MOBILE, MESSAGES['mobile_required'], ''

    cleaned = clean_mobile_number(mobile_number)
    if len(cleaned) != 10:
        return ValidationErrorKind.INVALID_MOBILE, MESSAGES['mobile_length'], cleaned
    if not MOBILE_PATTERN.match(cleaned):
        return ValidationErrorKind.INVALID_MOBILE, MESSAGES['mobile_pattern'], cleaned
    return None, None, cleaned


def validate_travel_date(travel_date, today: Optional[date] = None):
    """
    Validate a travel date; only the calendar day is compared

    Returns:
        (kind, message, normalized_date)
    """
    if travel_date is None or (isinstance(travel_date, str) and not travel_date.strip()):
        return ValidationErrorKind.INVALID_DATE, MESSAGES['date_required'], None

    normalized = normalize_travel_date(travel_date)
    if normalized is None:
        return ValidationErrorKind.INVALID_DATE, MESSAGES['date_invalid'], None

    if normalized < (today or date.today()):
        return ValidationErrorKind.PAST_DATE, MESSAGES['date_past'], normalized
    return None, None, normalized


def normalize_seats(seats: Optional[Iterable[str]]) -> List[str]:
    """Trim, upper-case and unpad seat ids ("a01" -> "A1"), keeping selection order"""
    if not seats:
        return []
    return [canonical_seat_id(str(seat).strip().upper()) for seat in seats]


def validate_seat_selection(seats: List[str], max_seats: int = MAX_SEATS_PER_BOOKING):
    """Check count, identifier format and repeats within one selection"""
    if not seats:
        return ValidationErrorKind.NO_SEATS_SELECTED, MESSAGES['no_seats']
    if len(seats) > max_seats:
        return ValidationErrorKind.SEAT_LIMIT_EXCEEDED, MESSAGES['seat_limit']

    invalid = [seat for seat in seats if not is_valid_seat_id(seat)]
    if invalid:
        return ValidationErrorKind.INVALID_SEAT, MESSAGES['invalid_seat'].format(seats=', '.join(invalid))

    repeated = sorted({seat for seat in seats if seats.count(seat) > 1})
    if repeated:
        return ValidationErrorKind.DUPLICATE_SEATS, MESSAGES['repeated_seat'].format(seats=', '.join(repeated))
    return None, None


def check_duplicate_seats(seats: List[str], booked_seats: Iterable[str],
                          current_seats: Iterable[str] = ()) -> List[str]:
    """
    Seats in the selection that someone else already holds

    ``current_seats`` are the seats of the booking being edited; they never
    count as conflicts.
    """
    conflicts = set(booked_seats) - set(current_seats)
    return [seat for seat in seats if seat in conflicts]


def check_seat_limit_for_mobile(selected_count: int, already_booked: int,
                                max_seats: int = MAX_SEATS_PER_BOOKING):
    """
    Check the per-mobile daily cap

    Returns:
        (ok, remaining) where remaining is what is left before this selection
        when the cap is exceeded, and after it otherwise
    """
    if selected_count + already_booked > max_seats:
        return False, max(max_seats - already_booked, 0)
    return True, max_seats - selected_count - already_booked


def validate(candidate: BookingCandidate, booked_seats: Iterable[str] = (),
             mobile_seat_count: int = 0, today: Optional[date] = None) -> ValidationResult:
    """
    Validate a booking candidate against the business rules

    Args:
        candidate: Booking being created or edited
        booked_seats: Seats already taken on the travel date
        mobile_seat_count: Seats the mobile number already holds on the travel
            date, excluding the booking being edited
        today: Reference day for the past-date rule (defaults to today)

    Returns:
        ValidationResult; on success the candidate's mobile number, date and
        seats are replaced by their normalized forms
    """
    result = ValidationResult(already_booked=mobile_seat_count)

    mobile_kind, mobile_message, cleaned_mobile = validate_mobile_number(candidate.mobile_number)
    if mobile_kind:
        result.add('mobile_number', mobile_kind, mobile_message)

    date_kind, date_message, travel_date = validate_travel_date(candidate.travel_date, today)
    if date_kind:
        result.add('travel_date', date_kind, date_message)

    seats = normalize_seats(candidate.seats)
    seat_kind, seat_message = validate_seat_selection(seats)
    if seat_kind:
        result.add('seats', seat_kind, seat_message)

    duplicates = check_duplicate_seats(seats, booked_seats, normalize_seats(candidate.current_seats))
    if duplicates:
        result.add('seats', ValidationErrorKind.DUPLICATE_SEATS,
                   MESSAGES['duplicate'].format(seats=', '.join(duplicates)))

    within_cap, remaining = check_seat_limit_for_mobile(len(seats), mobile_seat_count)
    result.remaining_seats = remaining
    if not within_cap:
        result.add('seats', ValidationErrorKind.MOBILE_DAILY_CAP_EXCEEDED,
                   MESSAGES['mobile_cap'].format(booked=mobile_seat_count, remaining=remaining))

    if result.valid:
        candidate.mobile_number = cleaned_mobile
        candidate.travel_date = travel_date
        candidate.seats = seats

    return result
