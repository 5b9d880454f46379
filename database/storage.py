"""
Key-value persistence surfaces for the booking store
Each surface keeps string payloads under string keys; the repository decides
what goes in them
"""
import threading
from typing import Dict, Optional
from psycopg2.extras import RealDictCursor
from .database import DatabaseManager, get_db_manager


class StorageError(Exception):
    """Raised by a surface that cannot complete an operation"""


class StorageQuotaExceeded(StorageError):
    """Raised when a write would exceed the surface's capacity"""


class KeyValueStore:
    """Interface shared by all persistence surfaces"""

    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str) -> None:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError


class InMemoryKeyValueStore(KeyValueStore):
    """
    Process-lifetime store kept in a dict
    Used directly in tests and as the repository's fallback surface
    """

    def __init__(self, max_bytes: Optional[int] = None):
        """
        Initialize in-memory store

        Args:
            max_bytes: Optional capacity; writes that would exceed it raise
                StorageQuotaExceeded and leave the previous value in place
        """
        self.max_bytes = max_bytes
        self._data: Dict[str, str] = {}
        self._lock = threading.Lock()

    @staticmethod
    def _entry_size(key: str, value: str) -> int:
        return len(key.encode('utf-8')) + len(value.encode('utf-8'))

    def _size_with(self, key: str, value: str) -> int:
        sizes = {k: self._entry_size(k, v) for k, v in self._data.items()}
        sizes[key] = self._entry_size(key, value)
        return sum(sizes.values())

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            if self.max_bytes is not None and self._size_with(key, value) > self.max_bytes:
                raise StorageQuotaExceeded(
                    f"Writing {len(value.encode('utf-8'))} bytes to '{key}' exceeds quota of {self.max_bytes} bytes"
                )
            self._data[key] = value

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)


class PostgresKeyValueStore(KeyValueStore):
    """Key-value surface on the booking_store table"""

    def __init__(self, db_manager: Optional[DatabaseManager] = None):
        """
        Initialize PostgreSQL store

        Args:
            db_manager: Database manager to use (defaults to the global one,
                resolved on first access so a missing database surfaces as an
                error from the first operation rather than from construction)
        """
        self._db_manager = db_manager

    @property
    def db_manager(self) -> DatabaseManager:
        if self._db_manager is None:
            self._db_manager = get_db_manager()
        return self._db_manager

    def get(self, key: str) -> Optional[str]:
        with self.db_manager.get_cursor() as cursor:
            cursor.execute("""
                SELECT payload
                FROM booking_store
                WHERE store_key = %s
            """, (key,))
            row = cursor.fetchone()
            return row['payload'] if row else None

    def set(self, key: str, value: str) -> None:
        with self.db_manager.transaction() as conn:
            with conn.cursor(cursor_factory=RealDictCursor) as cursor:
                cursor.execute("""
                    INSERT INTO booking_store (store_key, payload, updated_at)
                    VALUES (%s, %s, NOW())
                    ON CONFLICT (store_key)
                    DO UPDATE SET payload = EXCLUDED.payload, updated_at = NOW()
                """, (key, value))

    def delete(self, key: str) -> None:
        with self.db_manager.transaction() as conn:
            with conn.cursor() as cursor:
                cursor.execute("DELETE FROM booking_store WHERE store_key = %s", (key,))
