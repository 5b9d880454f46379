"""
Functional tests for booking CRUD operations
Covers the identifier generator, the repository and the booking service
"""
from __future__ import annotations

import json
import sys
from datetime import date, timedelta
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from backend.booking_repository import BookingRepository, booking_sequence, format_booking_id
from backend.errors import NotFoundError, ValidationErrorKind
from database import BoardingStatus
from tests.conftest import FIXED_NOW, TODAY, STORAGE_KEY, make_booking


class TestSequenceGenerator:
    """Test booking id generation"""

    def test_first_sequence_number(self, repository):
        """Test an empty store hands out sequence number 1"""
        assert repository.next_sequence_number() == 1

    def test_booking_id_format(self, repository):
        """Test BK-YYYYMMDD-NNNNNN format"""
        assert repository.generate_booking_id('2025-06-15') == 'BK-20250615-000001'
        assert repository.generate_booking_id(date(2025, 12, 1)) == 'BK-20251201-000001'

    def test_generate_does_not_reserve(self, repository):
        """Test generating an id leaves the counter alone"""
        repository.generate_booking_id(TODAY)
        repository.generate_booking_id(TODAY)
        assert repository.next_sequence_number() == 1
        assert repository.load_all().last_sequence_number == 0

    def test_suffix_increases_across_deletions(self, service):
        """Test sequence numbers are never reused after a cancellation"""
        first = service.create_booking(TODAY, '9876543210', ['A1']).booking
        second = service.create_booking(TODAY, '9876543211', ['A2']).booking
        assert service.cancel_booking(second.booking_id).success

        third = service.create_booking(TODAY, '9876543212', ['A3']).booking

        suffixes = [booking_sequence(b.booking_id) for b in (first, second, third)]
        assert suffixes == [1, 2, 3]

    def test_counter_is_store_wide(self, service):
        """Test the sequence is shared by all travel dates"""
        one = service.create_booking(TODAY, '9876543210', ['A1']).booking
        two = service.create_booking(TODAY + timedelta(days=1), '9876543210', ['A1']).booking
        assert one.booking_id == 'BK-20250615-000001'
        assert two.booking_id == 'BK-20250616-000002'

    def test_helpers(self):
        """Test id formatting and suffix parsing"""
        assert format_booking_id(date(2025, 1, 2), 42) == 'BK-20250102-000042'
        assert booking_sequence('BK-20250102-000042') == 42
        assert booking_sequence('garbage') == 0


class TestBookingRepository:
    """Test repository persistence and projections"""

    def test_upsert_round_trip(self, repository):
        """Test a stored booking loads back unchanged"""
        booking = make_booking(1, ['A1', 'B1'])
        result = repository.upsert(booking)

        assert result.success
        assert result.message == 'Booking created successfully!'
        assert repository.load_all().bookings == [booking]

    def test_upsert_advances_counter(self, repository):
        """Test appending advances lastSequenceNumber to the id suffix"""
        repository.upsert(make_booking(7, ['A1']))
        assert repository.load_all().last_sequence_number == 7

        repository.upsert(make_booking(3, ['A2']))
        assert repository.load_all().last_sequence_number == 7

    def test_upsert_replaces_in_place(self, repository):
        """Test an update keeps the booking's position"""
        for sequence, seat in ((1, 'A1'), (2, 'A2'), (3, 'A3')):
            repository.upsert(make_booking(sequence, [seat]))

        updated = make_booking(2, ['C9', 'D9'])
        result = repository.upsert(updated)

        assert result.message == 'Booking updated successfully!'
        store = repository.load_all()
        assert [b.booking_id for b in store.bookings] == [
            'BK-20250615-000001', 'BK-20250615-000002', 'BK-20250615-000003'
        ]
        assert store.bookings[1].seats == ['C9', 'D9']
        assert store.last_sequence_number == 3

    def test_persisted_shape(self, repository, memory_store):
        """Test the JSON document written to the surface"""
        repository.upsert(make_booking(1, ['A1']))

        document = json.loads(memory_store.get(STORAGE_KEY))
        assert document['lastSequenceNumber'] == 1
        assert document['bookings'] == [{
            'bookingId': 'BK-20250615-000001',
            'travelDate': '2025-06-15',
            'mobileNumber': '9876543210',
            'seats': ['A1'],
            'bookingTime': FIXED_NOW.isoformat(),
            'boardingStatus': 'not_boarded',
        }]

    def test_remove(self, repository):
        """Test cancellation hard-deletes the booking"""
        repository.upsert(make_booking(1, ['A1']))
        result = repository.remove('BK-20250615-000001')

        assert result.success
        assert result.message == 'Booking cancelled successfully!'
        assert repository.load_all().bookings == []
        assert repository.load_all().last_sequence_number == 1

    def test_remove_missing(self, repository):
        """Test removing an unknown id reports not found"""
        result = repository.remove('BK-20250615-000099')
        assert not result.success
        assert isinstance(result.error, NotFoundError)
        assert result.message == 'Booking not found.'

    def test_projections(self, repository):
        """Test date, mobile and seat projections"""
        tomorrow = TODAY + timedelta(days=1)
        repository.upsert(make_booking(1, ['A1', 'B1'], mobile_number='9876543210'))
        repository.upsert(make_booking(2, ['C5'], mobile_number='9876543210'))
        repository.upsert(make_booking(3, ['D7'], mobile_number='7000000000'))
        repository.upsert(make_booking(4, ['A1'], travel_date=tomorrow))

        assert [b.booking_id for b in repository.find_by_date('2025-06-15')] == [
            'BK-20250615-000001', 'BK-20250615-000002', 'BK-20250615-000003'
        ]
        assert len(repository.find_by_date(tomorrow)) == 1
        assert repository.find_by_date('not a date') == []

        mine = repository.find_by_mobile_and_date('9876543210', TODAY, exclude_id='BK-20250615-000002')
        assert [b.booking_id for b in mine] == ['BK-20250615-000001']

        assert repository.booked_seats(TODAY) == {'A1', 'B1', 'C5', 'D7'}
        assert repository.booked_seats(TODAY, exclude_id='BK-20250615-000001') == {'C5', 'D7'}
        assert repository.seat_count_by_mobile('9876543210', TODAY) == 3
        assert repository.seat_count_by_mobile('9876543210', TODAY, exclude_id='BK-20250615-000001') == 1
        assert repository.seat_count_by_mobile('9876543210', tomorrow) == 1

    def test_get(self, repository):
        """Test lookup by id"""
        booking = make_booking(1, ['A1'])
        repository.upsert(booking)
        assert repository.get(booking.booking_id) == booking
        assert repository.get('BK-20250615-000002') is None

    def test_set_boarding_status(self, repository):
        """Test the boarding status update path"""
        repository.upsert(make_booking(1, ['A1']))
        result = repository.set_boarding_status('BK-20250615-000001', BoardingStatus.BOARDED)

        assert result.success
        assert result.booking.boarding_status == BoardingStatus.BOARDED
        assert repository.get('BK-20250615-000001').is_boarded

    def test_clear(self, repository):
        """Test clearing the store resets everything"""
        repository.upsert(make_booking(5, ['A1']))
        assert repository.clear().success
        assert repository.load_all().bookings == []
        assert repository.next_sequence_number() == 1

    def test_repositories_share_surface(self, memory_store):
        """Test a second repository on the same surface sees the data"""
        BookingRepository(memory_store, storage_key=STORAGE_KEY).upsert(make_booking(1, ['A1']))
        other = BookingRepository(memory_store, storage_key=STORAGE_KEY)
        assert other.get('BK-20250615-000001') is not None
        assert not other.is_fallback


class TestBookingService:
    """Test booking workflows through the service"""

    def test_create_booking(self, service):
        """Test booking creation"""
        result = service.create_booking('2025-06-15', '9876543210', ['A1', 'A2'])

        assert result.success
        assert result.message == 'Booking created successfully!'
        booking = result.booking
        assert booking.booking_id == 'BK-20250615-000001'
        assert booking.travel_date == TODAY
        assert booking.seats == ['A1', 'A2']
        assert booking.booking_time == FIXED_NOW
        assert booking.boarding_status == BoardingStatus.NOT_BOARDED

    def test_create_normalizes_input(self, service):
        """Test mobile separators and seat case are cleaned before storing"""
        result = service.create_booking(TODAY, '98765-43210', [' a1', 'b15 '])

        assert result.success
        assert result.booking.mobile_number == '9876543210'
        assert result.booking.seats == ['A1', 'B15']
        assert service.repository.get(result.booking.booking_id).mobile_number == '9876543210'

    def test_create_rejects_taken_seat(self, service):
        """Test a seat cannot be booked twice on one date"""
        service.create_booking(TODAY, '9876543210', ['A5'])
        result = service.create_booking(TODAY, '7000000000', ['A5', 'B5'])

        assert not result.success
        assert result.validation.error_kinds['seats'] == ValidationErrorKind.DUPLICATE_SEATS
        assert 'A5' in result.message
        assert len(service.get_bookings(TODAY)) == 1

    def test_zero_padded_seat_is_the_same_seat(self, service):
        """Test A01 is stored as A1 and cannot take a seat that is already booked"""
        first = service.create_booking(TODAY, '9876543210', ['A01'])
        assert first.success
        assert first.booking.seats == ['A1']

        second = service.create_booking(TODAY, '8765432109', ['A1'])
        assert not second.success
        assert second.validation.error_kinds['seats'] == ValidationErrorKind.DUPLICATE_SEATS

        third = service.create_booking(TODAY, '7000000000', ['b07', 'A01'])
        assert not third.success
        assert third.message == 'The following seats are already booked: A1'
        assert service.repository.booked_seats(TODAY) == {'A1'}

    def test_zero_padded_seat_repeated_in_selection(self, service):
        """Test A1 and A01 in one selection count as the same seat twice"""
        result = service.create_booking(TODAY, '9876543210', ['A1', 'A01'])

        assert not result.success
        assert result.validation.error_kinds['seats'] == ValidationErrorKind.DUPLICATE_SEATS
        assert result.message == 'Each seat can only be selected once: A1'
        assert service.get_bookings(TODAY) == []

    def test_same_seat_other_date(self, service):
        """Test a seat is free again on another date"""
        service.create_booking(TODAY, '9876543210', ['A5'])
        result = service.create_booking(TODAY + timedelta(days=1), '7000000000', ['A5'])
        assert result.success

    def test_mobile_cap_across_bookings(self, service):
        """Test the six-seat daily cap spans several bookings"""
        assert service.create_booking(TODAY, '9876543210', ['A1', 'B1', 'C1', 'D1']).success
        assert service.remaining_seats_for_mobile('9876543210', TODAY) == 2

        too_many = service.create_booking(TODAY, '9876543210', ['A2', 'B2', 'C2'])
        assert not too_many.success
        assert too_many.validation.already_booked == 4
        assert too_many.validation.remaining_seats == 2

        assert service.create_booking(TODAY, '98765 43210', ['A2', 'B2']).success
        assert service.remaining_seats_for_mobile('9876543210', TODAY) == 0

    def test_update_preserves_identity(self, service):
        """Test updates keep id, booking time and boarding status"""
        created = service.create_booking(TODAY, '9876543210', ['A1']).booking
        service.update_boarding_status(created.booking_id, 'boarded')

        result = service.update_booking(created.booking_id, seats=['A1', 'B1'])

        assert result.success
        assert result.message == 'Booking updated successfully!'
        updated = service.repository.get(created.booking_id)
        assert updated.booking_id == created.booking_id
        assert updated.booking_time == created.booking_time
        assert updated.boarding_status == BoardingStatus.BOARDED
        assert updated.seats == ['A1', 'B1']

    def test_update_can_reselect_own_seats(self, service):
        """Test editing a booking may keep its current seats"""
        created = service.create_booking(TODAY, '9876543210', ['A5', 'B5']).booking
        result = service.update_booking(created.booking_id, mobile_number='7000000000')

        assert result.success
        assert result.booking.mobile_number == '7000000000'
        assert result.booking.seats == ['A5', 'B5']

    def test_update_frees_old_seats(self, service):
        """Test seats dropped by an update can be booked by someone else"""
        created = service.create_booking(TODAY, '9876543210', ['A5']).booking
        assert service.update_booking(created.booking_id, seats=['C5']).success
        assert service.create_booking(TODAY, '7000000000', ['A5']).success

    def test_update_cap_excludes_own_booking(self, service):
        """Test a booking's own seats do not count against its cap when edited"""
        created = service.create_booking(TODAY, '9876543210', ['A1', 'B1', 'C1', 'D1', 'A2', 'B2']).booking
        result = service.update_booking(created.booking_id, seats=['A1', 'B1', 'C1', 'D1', 'A2', 'C2'])
        assert result.success

    def test_update_missing(self, service):
        """Test updating an unknown booking"""
        result = service.update_booking('BK-20250615-000404', seats=['A1'])
        assert not result.success
        assert isinstance(result.error, NotFoundError)

    def test_cancel_booking(self, service):
        """Test cancellation frees the seats"""
        created = service.create_booking(TODAY, '9876543210', ['A1']).booking
        result = service.cancel_booking(created.booking_id)

        assert result.success
        assert service.get_bookings(TODAY) == []
        assert service.create_booking(TODAY, '9876543210', ['A1']).success

    def test_toggle_boarding_status(self, service):
        """Test toggling flips between boarded and not boarded"""
        created = service.create_booking(TODAY, '9876543210', ['A1']).booking

        assert service.toggle_boarding_status(created.booking_id).booking.is_boarded
        assert not service.toggle_boarding_status(created.booking_id).booking.is_boarded

    def test_unknown_boarding_status(self, service):
        """Test an unknown status value fails without raising"""
        created = service.create_booking(TODAY, '9876543210', ['A1']).booking
        result = service.update_boarding_status(created.booking_id, 'halfway')
        assert not result.success
        assert 'halfway' in result.message


class TestPostgresStore:
    """Test the PostgreSQL key-value surface (needs TEST_DATABASE_URL)"""

    def test_round_trip(self, pg_repository):
        """Test a booking survives a new repository instance"""
        from database import PostgresKeyValueStore

        assert not pg_repository.is_fallback
        booking = make_booking(1, ['A1', 'B1'])
        assert pg_repository.upsert(booking).success

        reopened = BookingRepository(PostgresKeyValueStore(pg_repository.surface.db_manager),
                                     storage_key=STORAGE_KEY)
        assert reopened.load_all().bookings == [booking]

    def test_remove(self, pg_repository):
        """Test deletion on the database surface"""
        pg_repository.upsert(make_booking(1, ['A1']))
        assert pg_repository.remove('BK-20250615-000001').success
        assert pg_repository.load_all().bookings == []
        assert pg_repository.next_sequence_number() == 2
