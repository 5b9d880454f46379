"""
Booking repository over a key-value persistence surface
The whole store is one JSON document; every mutation is a full
read-modify-write of that document
"""
import json
import threading
from datetime import date
from typing import List, Optional, Set

from database import (
    Booking, Store, StoreParseResult, BoardingStatus, ParseStatus, BOOKING_ID_PREFIX,
    KeyValueStore, InMemoryKeyValueStore, PostgresKeyValueStore,
    normalize_travel_date, store_to_record, record_to_store, get_storage_key
)
from .errors import Result, PersistenceError, PersistenceErrorKind, NotFoundError
from .logger_config import logger


PROBE_KEY = '__storage_test__'


def booking_sequence(booking_id: str) -> int:
    """Numeric suffix of a booking id ("BK-20250615-000042" -> 42), 0 if unparsable"""
    try:
        return int(booking_id.rsplit('-', 1)[-1])
    except (AttributeError, ValueError):
        return 0


def format_booking_id(travel_date: date, sequence_number: int) -> str:
    """Format a booking id as BK-YYYYMMDD-NNNNNN"""
    return f"{BOOKING_ID_PREFIX}-{travel_date.strftime('%Y%m%d')}-{sequence_number:06d}"


class BookingRepository:
    """
    Durable mapping of booking id to booking

    The surface is probed once at construction. If it throws, the repository
    switches to an in-memory store it owns for the rest of its life and every
    operation behaves the same, minus durability.

    The read-modify-write cycle is only serialised within this instance (see
    ``write_lock``). Two repositories, or two processes, sharing one surface
    can overwrite each other's changes.
    """

    def __init__(self, surface: Optional[KeyValueStore] = None, storage_key: Optional[str] = None):
        """
        Initialize repository

        Args:
            surface: Persistence surface (defaults to a fresh in-memory store)
            storage_key: Key holding the store document (defaults to env config)
        """
        self.storage_key = storage_key or get_storage_key()
        self.is_fallback = False
        # Set when a corrupt store document was discarded and reset
        self.recovered_from: Optional[PersistenceError] = None
        self._lock = threading.RLock()

        if surface is None:
            self.surface = InMemoryKeyValueStore()
        elif self._probe(surface):
            self.surface = surface
        else:
            self.surface = InMemoryKeyValueStore()
            self.is_fallback = True

    @staticmethod
    def _probe(surface: KeyValueStore) -> bool:
        """Check that the surface accepts a write and a delete"""
        try:
            surface.set(PROBE_KEY, '1')
            surface.delete(PROBE_KEY)
            return True
        except Exception as e:
            logger.warning("Persistence surface unavailable, falling back to in-memory store: {}", e)
            return False

    def write_lock(self):
        """Re-entrant lock held across a whole read-validate-write sequence"""
        return self._lock

    # ------------------------------------------------------------------
    # Store document
    # ------------------------------------------------------------------

    @staticmethod
    def _parse(raw) -> StoreParseResult:
        if raw is None or raw == '':
            return StoreParseResult(ParseStatus.ABSENT, Store())
        try:
            decoded = json.loads(raw)
        except ValueError as e:
            return StoreParseResult(ParseStatus.CORRUPT, Store(), f"not valid JSON: {e}")
        return record_to_store(decoded)

    def _read_store(self) -> Store:
        """
        Read and shape-check the store document

        Raises:
            PersistenceError: UNAVAILABLE if the surface cannot be read
        """
        try:
            raw = self.surface.get(self.storage_key)
        except Exception as e:
            logger.error("Error reading booking store '{}': {}", self.storage_key, e)
            raise PersistenceError(PersistenceErrorKind.UNAVAILABLE) from e

        result = self._parse(raw)
        if result.is_corrupt:
            logger.warning("Unexpected booking store format detected, resetting ({})", result.reason)
            self.recovered_from = PersistenceError(PersistenceErrorKind.CORRUPT_DATA)
            try:
                self.surface.delete(self.storage_key)
            except Exception as e:
                logger.error("Could not discard corrupt booking store '{}': {}", self.storage_key, e)
            return Store()

        store = result.store
        highest = max((booking_sequence(b.booking_id) for b in store.bookings), default=0)
        if highest > store.last_sequence_number:
            logger.warning("Sequence counter {} is behind booking id suffix {}, advancing it",
                           store.last_sequence_number, highest)
            store.last_sequence_number = highest
        return store

    def _write_store(self, store: Store) -> None:
        """
        Replace the persisted document

        Raises:
            PersistenceError: WRITE_FAILED if the surface rejects the write
        """
        payload = json.dumps(store_to_record(store))
        try:
            self.surface.set(self.storage_key, payload)
        except Exception as e:
            logger.error("Error saving booking store ({} bookings): {}", len(store.bookings), e)
            raise PersistenceError(PersistenceErrorKind.WRITE_FAILED) from e

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def load_all(self) -> Store:
        """Current store; empty when absent, corrupt or unreadable"""
        try:
            return self._read_store()
        except PersistenceError:
            return Store()

    def upsert(self, booking: Booking) -> Result:
        """
        Save a booking (create or update)

        An existing booking keeps its position; a new one is appended and
        advances the sequence counter to at least its id suffix.
        """
        with self._lock:
            try:
                store = self._read_store()
                index = store.index_of(booking.booking_id)
                if index >= 0:
                    store.bookings[index] = booking
                else:
                    store.bookings.append(booking)
                    store.last_sequence_number = max(store.last_sequence_number,
                                                     booking_sequence(booking.booking_id))
                self._write_store(store)
            except PersistenceError as e:
                return Result.fail(e)

        message = 'Booking updated successfully!' if index >= 0 else 'Booking created successfully!'
        return Result.ok(message, booking)

    def remove(self, booking_id: str) -> Result:
        """Hard-delete a booking; its id is never handed out again"""
        with self._lock:
            try:
                store = self._read_store()
                index = store.index_of(booking_id)
                if index < 0:
                    raise NotFoundError(booking_id)
                removed = store.bookings.pop(index)
                self._write_store(store)
            except PersistenceError as e:
                return Result.fail(PersistenceError(e.kind, 'Unable to cancel booking. Please try again.'))
            except NotFoundError as e:
                return Result.fail(e)

        return Result.ok('Booking cancelled successfully!', removed)

    def set_boarding_status(self, booking_id: str, status: BoardingStatus) -> Result:
        """Update only the boarding status of a booking"""
        with self._lock:
            try:
                store = self._read_store()
                index = store.index_of(booking_id)
                if index < 0:
                    raise NotFoundError(booking_id)
                booking = store.bookings[index]
                booking.boarding_status = status
                self._write_store(store)
            except PersistenceError as e:
                return Result.fail(PersistenceError(e.kind, 'Unable to update status.'))
            except NotFoundError as e:
                return Result.fail(e)

        return Result.ok('Boarding status updated!', booking)

    def clear(self) -> Result:
        """Drop every booking and the counter (testing/reset)"""
        with self._lock:
            try:
                self.surface.delete(self.storage_key)
            except Exception as e:
                logger.error("Error clearing booking store '{}': {}", self.storage_key, e)
                return Result.fail(PersistenceError(PersistenceErrorKind.WRITE_FAILED))
        return Result.ok('All bookings cleared.')

    # ------------------------------------------------------------------
    # Identifiers
    # ------------------------------------------------------------------

    def next_sequence_number(self) -> int:
        """Sequence number the next new booking will take; does not reserve it"""
        return self.load_all().last_sequence_number + 1

    def generate_booking_id(self, travel_date) -> str:
        """Booking id for a new booking on the given date"""
        normalized = normalize_travel_date(travel_date)
        if normalized is None:
            raise ValueError(f"Invalid travel date: {travel_date!r}")
        return format_booking_id(normalized, self.next_sequence_number())

    # ------------------------------------------------------------------
    # Read projections
    # ------------------------------------------------------------------

    def get(self, booking_id: str) -> Optional[Booking]:
        store = self.load_all()
        index = store.index_of(booking_id)
        return store.bookings[index] if index >= 0 else None

    def find_by_date(self, travel_date) -> List[Booking]:
        """All bookings for a date, in storage order"""
        wanted = normalize_travel_date(travel_date)
        if wanted is None:
            return []
        return [b for b in self.load_all().bookings if b.travel_date == wanted]

    def find_by_mobile_and_date(self, mobile_number: str, travel_date,
                                exclude_id: Optional[str] = None) -> List[Booking]:
        return [
            b for b in self.find_by_date(travel_date)
            if b.mobile_number == mobile_number and b.booking_id != exclude_id
        ]

    def booked_seats(self, travel_date, exclude_id: Optional[str] = None) -> Set[str]:
        """Seats taken on a date, optionally ignoring one booking"""
        return {
            seat
            for b in self.find_by_date(travel_date) if b.booking_id != exclude_id
            for seat in b.seats
        }

    def seat_count_by_mobile(self, mobile_number: str, travel_date,
                             exclude_id: Optional[str] = None) -> int:
        """Seats a mobile number already holds on a date"""
        return sum(b.seat_count for b in self.find_by_mobile_and_date(mobile_number, travel_date, exclude_id))


def create_repository(storage_key: Optional[str] = None) -> BookingRepository:
    """Repository on the configured PostgreSQL store, or in memory if that is unreachable"""
    return BookingRepository(PostgresKeyValueStore(), storage_key=storage_key)
