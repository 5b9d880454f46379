"""Pytest configuration and fixtures."""
import os
import sys
from datetime import datetime

import pytest

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from loguru import logger

from database import (
    Booking, BoardingStatus, KeyValueStore, InMemoryKeyValueStore, PostgresKeyValueStore,
    StorageError, StorageQuotaExceeded, normalize_travel_date
)
from database.database import DatabaseManager, set_db_manager
from backend.booking_repository import BookingRepository
from backend.booking_service import BookingService


FIXED_NOW = datetime(2025, 6, 15, 9, 30)
TODAY = FIXED_NOW.date()
STORAGE_KEY = 'busBookings'


class FlakyKeyValueStore(InMemoryKeyValueStore):
    """In-memory store whose reads and writes can be switched to fail"""

    def __init__(self):
        super().__init__()
        self.fail_reads = False
        self.fail_writes = False

    def get(self, key):
        if self.fail_reads:
            raise StorageError("read refused")
        return super().get(key)

    def set(self, key, value):
        if self.fail_writes:
            raise StorageQuotaExceeded("quota exceeded")
        super().set(key, value)


class BrokenKeyValueStore(KeyValueStore):
    """Surface that throws on any access, like storage disabled in private mode"""

    def __init__(self):
        self.calls = 0

    def _refuse(self):
        self.calls += 1
        raise RuntimeError("storage disabled")

    def get(self, key):
        self._refuse()

    def set(self, key, value):
        self._refuse()

    def delete(self, key):
        self._refuse()


def make_booking(sequence: int, seats, travel_date=TODAY, mobile_number='9876543210',
                 status=BoardingStatus.NOT_BOARDED) -> Booking:
    """Build a booking directly, bypassing validation"""
    travel_date = normalize_travel_date(travel_date)
    return Booking(
        booking_id=f"BK-{travel_date.strftime('%Y%m%d')}-{sequence:06d}",
        travel_date=travel_date,
        mobile_number=mobile_number,
        seats=list(seats),
        booking_time=FIXED_NOW,
        boarding_status=status
    )


def pytest_addoption(parser):
    """Register custom CLI options for the test suite."""
    parser.addoption(
        "--performance",
        action="store_true",
        default=False,
        help="Run the performance test suite",
    )
    parser.addoption(
        "--performance-days",
        type=int,
        default=60,
        help="Number of travel dates to fill for performance tests",
    )


def pytest_configure(config):
    """Declare custom markers to avoid pytest warnings."""
    config.addinivalue_line(
        "markers",
        "performance: marks performance tests that only run when --performance is supplied",
    )


def pytest_collection_modifyitems(config, items):
    """Skip performance tests unless the dedicated flag is present."""
    if config.getoption("--performance"):
        return

    skip_marker = pytest.mark.skip(
        reason="Performance tests only run when --performance flag is provided",
    )
    for item in items:
        if "performance" in item.keywords:
            item.add_marker(skip_marker)


@pytest.fixture(scope='function')
def memory_store():
    """Plain in-memory persistence surface"""
    return InMemoryKeyValueStore()


@pytest.fixture(scope='function')
def flaky_store():
    """Persistence surface whose reads/writes can be made to fail"""
    return FlakyKeyValueStore()


@pytest.fixture(scope='function')
def broken_store():
    """Persistence surface that throws on any access"""
    return BrokenKeyValueStore()


@pytest.fixture(scope='function')
def repository(memory_store):
    """Repository over the in-memory surface"""
    return BookingRepository(memory_store, storage_key=STORAGE_KEY)


@pytest.fixture(scope='function')
def service(repository):
    """Booking service with the clock pinned to FIXED_NOW"""
    return BookingService(repository, clock=lambda: FIXED_NOW)


@pytest.fixture(scope='function')
def log_messages():
    """Collect (level, message) pairs logged at WARNING and above"""
    messages = []
    handler_id = logger.add(
        lambda message: messages.append((message.record['level'].name, message.record['message'])),
        level='WARNING'
    )
    yield messages
    logger.remove(handler_id)


@pytest.fixture(scope='function')
def db_manager():
    """Create a test database manager with PostgreSQL test database."""
    test_db_url = os.getenv('TEST_DATABASE_URL')
    if not test_db_url:
        pytest.skip("TEST_DATABASE_URL is not set")
    db = DatabaseManager(database_url=test_db_url, echo=False)
    db.drop_tables()  # Clean slate for each test
    db.create_tables()
    set_db_manager(db)
    yield db
    set_db_manager(None)
    db.drop_tables()  # Cleanup after test
    db.close_all_connections()


@pytest.fixture(scope='function')
def pg_repository(db_manager):
    """Repository on the PostgreSQL key-value table"""
    return BookingRepository(PostgresKeyValueStore(db_manager), storage_key=STORAGE_KEY)
