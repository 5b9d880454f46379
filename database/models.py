"""
Data models for the Bus Boarding System
Plain Python classes and enums (no ORM), plus the record <-> object converters
used at the persistence boundary
"""
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import List, Optional
import enum
import re


SEAT_COLUMNS = ('A', 'B', 'C', 'D')
SEAT_ROWS = 15
TOTAL_SEATS = SEAT_ROWS * len(SEAT_COLUMNS)
MAX_SEATS_PER_BOOKING = 6

BOOKING_ID_PREFIX = 'BK'
BOOKING_ID_PATTERN = re.compile(r'^[A-Z]+-\d{8}-\d{6,}$')
SEAT_ID_PATTERN = re.compile(r'^([A-Z])(\d{1,2})$')
DATE_STORAGE_FORMAT = '%Y-%m-%d'


class BoardingStatus(enum.Enum):
    """Boarding status enumeration"""
    NOT_BOARDED = "not_boarded"
    BOARDED = "boarded"


class ParseStatus(enum.Enum):
    """Outcome of reading the persisted store"""
    OK = "ok"
    ABSENT = "absent"
    CORRUPT = "corrupt"


def all_seat_ids() -> List[str]:
    """Every seat identifier on the bus, front row first"""
    return [f"{column}{row}" for row in range(1, SEAT_ROWS + 1) for column in SEAT_COLUMNS]


def is_valid_seat_id(seat: str) -> bool:
    """Check a seat identifier against the fixed column alphabet and row range"""
    if not isinstance(seat, str):
        return False
    match = SEAT_ID_PATTERN.match(seat)
    if not match:
        return False
    column, row = match.group(1), int(match.group(2))
    return column in SEAT_COLUMNS and 1 <= row <= SEAT_ROWS


def canonical_seat_id(seat: str) -> str:
    """Drop zero padding from the row ("A01" -> "A1"); anything unparsable is returned as is"""
    match = SEAT_ID_PATTERN.match(seat) if isinstance(seat, str) else None
    if not match:
        return seat
    return f"{match.group(1)}{int(match.group(2))}"


def seat_row(seat: str) -> int:
    """Row number of a seat identifier ("C15" -> 15), 0 when there is none"""
    if not seat:
        return 0
    match = re.search(r'\d+', seat)
    return int(match.group(0)) if match else 0


def normalize_travel_date(value) -> Optional[date]:
    """
    Coerce a travel date to a ``date``

    Accepts ``date``, ``datetime`` and ``YYYY-MM-DD`` strings. Returns None when
    the value is empty or cannot be parsed.
    """
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return datetime.strptime(value.strip(), DATE_STORAGE_FORMAT).date()
        except ValueError:
            return None
    return None


def format_travel_date(value: date) -> str:
    """Canonical ``YYYY-MM-DD`` form of a travel date"""
    return value.strftime(DATE_STORAGE_FORMAT)


@dataclass
class Booking:
    """Seat reservation for one mobile number on one travel date"""
    booking_id: str
    travel_date: date
    mobile_number: str
    seats: List[str] = field(default_factory=list)
    booking_time: Optional[datetime] = None
    boarding_status: BoardingStatus = BoardingStatus.NOT_BOARDED

    @property
    def seat_count(self) -> int:
        return len(self.seats)

    @property
    def is_boarded(self) -> bool:
        return self.boarding_status == BoardingStatus.BOARDED

    def __repr__(self):
        return (f"<Booking(id='{self.booking_id}', date={format_travel_date(self.travel_date)}, "
                f"seats={self.seats}, status={self.boarding_status.value})>")


@dataclass
class Store:
    """Everything persisted under the store key"""
    bookings: List[Booking] = field(default_factory=list)
    last_sequence_number: int = 0

    def index_of(self, booking_id: str) -> int:
        """Position of a booking in the store, -1 when it is not there"""
        for index, booking in enumerate(self.bookings):
            if booking.booking_id == booking_id:
                return index
        return -1


@dataclass
class StoreParseResult:
    """Tagged result of deserializing the persisted blob"""
    status: ParseStatus
    store: Store
    reason: Optional[str] = None

    @property
    def is_corrupt(self) -> bool:
        return self.status == ParseStatus.CORRUPT


def booking_to_record(booking: Booking) -> dict:
    """Convert a Booking to its JSON-serializable persisted form"""
    return {
        'bookingId': booking.booking_id,
        'travelDate': format_travel_date(booking.travel_date),
        'mobileNumber': booking.mobile_number,
        'seats': list(booking.seats),
        'bookingTime': booking.booking_time.isoformat() if booking.booking_time else None,
        'boardingStatus': booking.boarding_status.value,
    }


def record_to_booking(record) -> Booking:
    """
    Convert a persisted record to a Booking

    Raises:
        ValueError: If the record does not have the persisted booking shape
    """
    if not isinstance(record, dict):
        raise ValueError(f"Booking record must be an object, got {type(record).__name__}")

    booking_id = record.get('bookingId')
    if not isinstance(booking_id, str) or not BOOKING_ID_PATTERN.match(booking_id):
        raise ValueError(f"Invalid bookingId: {booking_id!r}")

    travel_date = normalize_travel_date(record.get('travelDate'))
    if travel_date is None or not isinstance(record.get('travelDate'), str):
        raise ValueError(f"Invalid travelDate for {booking_id}: {record.get('travelDate')!r}")

    mobile_number = record.get('mobileNumber')
    if not isinstance(mobile_number, str):
        raise ValueError(f"Invalid mobileNumber for {booking_id}")

    seats = record.get('seats')
    if not isinstance(seats, list) or not all(isinstance(seat, str) for seat in seats):
        raise ValueError(f"Invalid seats for {booking_id}: {seats!r}")

    booking_time = None
    raw_time = record.get('bookingTime')
    if raw_time:
        if not isinstance(raw_time, str):
            raise ValueError(f"Invalid bookingTime for {booking_id}")
        # Records written by browsers carry a trailing "Z"
        booking_time = datetime.fromisoformat(raw_time.replace('Z', '+00:00'))

    raw_status = record.get('boardingStatus') or BoardingStatus.NOT_BOARDED.value
    try:
        boarding_status = BoardingStatus(raw_status)
    except ValueError:
        raise ValueError(f"Invalid boardingStatus for {booking_id}: {raw_status!r}")

    return Booking(
        booking_id=booking_id,
        travel_date=travel_date,
        mobile_number=mobile_number,
        seats=[canonical_seat_id(seat) for seat in seats],
        booking_time=booking_time,
        boarding_status=boarding_status
    )


def store_to_record(store: Store) -> dict:
    """Convert a Store to the persisted JSON structure"""
    return {
        'bookings': [booking_to_record(booking) for booking in store.bookings],
        'lastSequenceNumber': store.last_sequence_number,
    }


def record_to_store(record) -> StoreParseResult:
    """
    Shape-check a decoded blob and build a Store from it

    Never raises: malformed input yields a CORRUPT result carrying the reason.
    """
    if record is None:
        return StoreParseResult(ParseStatus.ABSENT, Store())

    if not isinstance(record, dict):
        return StoreParseResult(ParseStatus.CORRUPT, Store(),
                                f"store must be an object, got {type(record).__name__}")

    raw_bookings = record.get('bookings')
    if not isinstance(raw_bookings, list):
        return StoreParseResult(ParseStatus.CORRUPT, Store(), "bookings is not an array")

    # Older blobs named the counter lastBookingNumber
    counter = record.get('lastSequenceNumber', record.get('lastBookingNumber'))
    if (isinstance(counter, bool) or not isinstance(counter, (int, float))
            or (isinstance(counter, float) and not counter.is_integer()) or counter < 0):
        return StoreParseResult(ParseStatus.CORRUPT, Store(),
                                f"sequence counter is not a non-negative integer: {counter!r}")

    bookings = []
    for raw_booking in raw_bookings:
        try:
            bookings.append(record_to_booking(raw_booking))
        except ValueError as e:
            return StoreParseResult(ParseStatus.CORRUPT, Store(), str(e))

    return StoreParseResult(ParseStatus.OK, Store(bookings=bookings, last_sequence_number=int(counter)))
