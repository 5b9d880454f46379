"""Database package initialization"""
from .models import (
    Booking, Store, StoreParseResult, BoardingStatus, ParseStatus,
    SEAT_COLUMNS, SEAT_ROWS, TOTAL_SEATS, MAX_SEATS_PER_BOOKING, BOOKING_ID_PREFIX,
    all_seat_ids, is_valid_seat_id, canonical_seat_id, seat_row, normalize_travel_date, format_travel_date,
    booking_to_record, record_to_booking, store_to_record, record_to_store
)
from .database import DatabaseManager, get_db_manager, set_db_manager, get_storage_key
from .storage import (
    KeyValueStore, InMemoryKeyValueStore, PostgresKeyValueStore,
    StorageError, StorageQuotaExceeded
)

__all__ = [
    'Booking', 'Store', 'StoreParseResult', 'BoardingStatus', 'ParseStatus',
    'SEAT_COLUMNS', 'SEAT_ROWS', 'TOTAL_SEATS', 'MAX_SEATS_PER_BOOKING', 'BOOKING_ID_PREFIX',
    'all_seat_ids', 'is_valid_seat_id', 'canonical_seat_id', 'seat_row', 'normalize_travel_date', 'format_travel_date',
    'booking_to_record', 'record_to_booking', 'store_to_record', 'record_to_store',
    'DatabaseManager', 'get_db_manager', 'set_db_manager', 'get_storage_key',
    'KeyValueStore', 'InMemoryKeyValueStore', 'PostgresKeyValueStore',
    'StorageError', 'StorageQuotaExceeded'
]
