"""
Database connection and transaction management using raw PostgreSQL
Backs the key-value table that holds the booking store document
"""
import psycopg2
from psycopg2 import pool, extras, sql
from psycopg2.extensions import ISOLATION_LEVEL_READ_COMMITTED
from contextlib import contextmanager
import os
import sys
from pathlib import Path
from dotenv import load_dotenv

# Support running this module directly (``python database/database.py``)
if __package__ in (None, ""):
    # Add repository root so ``import database.models`` resolves
    current_dir = Path(__file__).resolve().parent
    repo_root = current_dir.parent
    if str(repo_root) not in sys.path:
        sys.path.insert(0, str(repo_root))

load_dotenv()

DEFAULT_DATABASE_NAME = 'bus_boarding'
DEFAULT_STORAGE_KEY = 'busBookings'


def get_storage_key() -> str:
    """Key under which the booking store document is persisted"""
    return os.getenv('BOOKING_STORAGE_KEY', DEFAULT_STORAGE_KEY)


class DatabaseManager:
    """
    Database manager with transaction support and connection pooling
    """

    def __init__(self, database_url=None, echo=False):
        """
        Initialize database manager

        Args:
            database_url: Database connection URL (defaults to env variable)
            echo: Whether to echo SQL statements
        """
        self.database_url = database_url or os.getenv('DATABASE_URL', f'postgresql://localhost/{DEFAULT_DATABASE_NAME}')
        self.echo = echo or os.getenv('DB_ECHO', 'False').lower() == 'true'

        # Parse database URL
        self.db_config = self._parse_database_url(self.database_url)

        # One operator terminal writes at a time, a small pool is plenty
        try:
            self.connection_pool = psycopg2.pool.ThreadedConnectionPool(
                minconn=1,
                maxconn=10,
                **self.db_config
            )
        except Exception as e:
            raise RuntimeError(f"Failed to create database connection pool: {e}")

    def _parse_database_url(self, url):
        """Parse database URL into connection parameters"""
        if url.startswith('postgresql://') or url.startswith('postgres://'):
            url = url.replace('postgresql://', '').replace('postgres://', '')

            # Parse user:password@host:port/database
            if '@' in url:
                auth, location = url.split('@', 1)
                if ':' in auth:
                    user, password = auth.split(':', 1)
                else:
                    user, password = auth, None
            else:
                user, password = None, None
                location = url

            if '/' in location:
                host_port, database = location.split('/', 1)
            else:
                host_port, database = location, DEFAULT_DATABASE_NAME

            if ':' in host_port:
                host, port = host_port.split(':', 1)
                port = int(port)
            else:
                host, port = host_port or 'localhost', 5432

            config = {
                'database': database,
                'host': host,
                'port': port,
            }

            if user:
                config['user'] = user
            if password:
                config['password'] = password

            return config
        else:
            return {
                'database': DEFAULT_DATABASE_NAME,
                'host': 'localhost',
                'port': 5432,
            }

    def get_connection(self):
        """Get a connection from the pool"""
        return self.connection_pool.getconn()

    def return_connection(self, conn):
        """Return a connection to the pool"""
        self.connection_pool.putconn(conn)

    def close_all_connections(self):
        """Close all connections in the pool"""
        if self.connection_pool:
            self.connection_pool.closeall()

    def create_tables(self):
        """Create all database tables from schema"""
        schema_file = Path(__file__).parent / 'schema.sql'

        if not schema_file.exists():
            raise FileNotFoundError(f"Schema file not found: {schema_file}")

        with open(schema_file, 'r') as f:
            schema_sql = f.read()

        conn = self.get_connection()
        try:
            with conn.cursor() as cursor:
                cursor.execute(schema_sql)
            conn.commit()
        finally:
            self.return_connection(conn)

    def drop_tables(self):
        """Drop all database tables (use with caution!)"""
        conn = self.get_connection()
        try:
            with conn.cursor() as cursor:
                cursor.execute("""
                    SELECT tablename FROM pg_tables
                    WHERE schemaname = 'public'
                """)
                tables = [row[0] for row in cursor.fetchall()]

                for table in tables:
                    cursor.execute(sql.SQL("DROP TABLE IF EXISTS {} CASCADE").format(
                        sql.Identifier(table)
                    ))
            conn.commit()
        finally:
            self.return_connection(conn)

    @contextmanager
    def get_cursor(self, isolation_level=None, cursor_factory=None):
        """
        Get a cursor with automatic connection management

        Args:
            isolation_level: Transaction isolation level
            cursor_factory: Cursor factory (e.g., RealDictCursor for dict results)

        Usage:
            with db.get_cursor() as cursor:
                cursor.execute("SELECT payload FROM booking_store")
                results = cursor.fetchall()
        """
        conn = self.get_connection()
        conn.set_isolation_level(isolation_level or ISOLATION_LEVEL_READ_COMMITTED)

        cursor = conn.cursor(cursor_factory=cursor_factory or extras.RealDictCursor)

        try:
            yield cursor
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()
            self.return_connection(conn)

    @contextmanager
    def transaction(self, isolation_level=None):
        """
        Provide a transactional scope with a connection

        Args:
            isolation_level: Transaction isolation level

        Usage:
            with db.transaction() as conn:
                with conn.cursor() as cursor:
                    cursor.execute("INSERT INTO booking_store ...")
        """
        conn = self.get_connection()
        conn.set_isolation_level(isolation_level or ISOLATION_LEVEL_READ_COMMITTED)

        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            self.return_connection(conn)


# Global database manager instance
_db_manager = None


def get_db_manager() -> DatabaseManager:
    """Get or create global database manager instance"""
    global _db_manager
    if _db_manager is None:
        _db_manager = DatabaseManager()
    return _db_manager


def set_db_manager(db_manager: DatabaseManager | None) -> None:
    """Override the global database manager instance.

    This is primarily used in test fixtures so that the key-value store
    operates on the test database instead of the default production database.
    Passing ``None`` resets the singleton so the next
    ``get_db_manager`` call recreates it with default settings.
    """
    global _db_manager
    _db_manager = db_manager


def init_db():
    """Initialize database with tables"""
    db_manager = get_db_manager()
    db_manager.create_tables()
    print("Database initialized successfully!")


if __name__ == "__main__":
    init_db()
