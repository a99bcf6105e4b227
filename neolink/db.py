"""
PostgreSQL connection provider. One pooled handle per process, shared by the repositories.
"""
import logging
import threading
from typing import Any, List, Optional, Sequence

import psycopg2
from psycopg2 import errors as pg_errors
from psycopg2.extras import RealDictCursor
from psycopg2.pool import ThreadedConnectionPool

from neolink.core.settings import Settings, get_settings
from neolink.errors import ConstraintViolationError, StorageError

logger = logging.getLogger(__name__)

# Set to False if init_db() failed (e.g. Postgres not running or wrong credentials)
db_available = True

_database: Optional["Database"] = None


class Database:
    """Thread-safe connection pool plus a single-statement execute()."""

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._pool: Optional[ThreadedConnectionPool] = None
        self._lock = threading.Lock()

    def __enter__(self) -> "Database":
        self.open()
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    @property
    def is_open(self) -> bool:
        return self._pool is not None and not self._pool.closed

    def open(self) -> None:
        if self.is_open:
            return
        with self._lock:
            # another thread may have opened it while we waited
            if self.is_open:
                return
            s = self._settings
            try:
                self._pool = ThreadedConnectionPool(
                    s.db_pool_min,
                    s.db_pool_max,
                    host=s.db_host,
                    port=s.db_port,
                    dbname=s.db_name,
                    user=s.db_user,
                    password=s.db_password,
                    sslmode=s.db_sslmode,
                )
            except psycopg2.Error as e:
                raise StorageError(f"Could not open connection pool: {e}".strip()) from e
        logger.info("Connection pool opened for %s:%s/%s (sslmode=%s)", s.db_host, s.db_port, s.db_name, s.db_sslmode)

    def close(self) -> None:
        with self._lock:
            if self.is_open:
                self._pool.closeall()
                logger.info("Connection pool closed")
            self._pool = None

    def execute(self, statement: str, params: Optional[Sequence[Any]] = None) -> List[dict]:
        """Run one parameterized statement and return its rows as dicts (empty list if it returns none)."""
        self.open()
        pool = self._pool
        try:
            conn = pool.getconn()
        except psycopg2.Error as e:
            raise StorageError(f"Could not get a connection: {e}".strip()) from e
        broken = False
        try:
            with conn.cursor(cursor_factory=RealDictCursor) as cur:
                cur.execute(statement, params)
                rows = [dict(r) for r in cur.fetchall()] if cur.description else []
            conn.commit()
            return rows
        except pg_errors.UniqueViolation as e:
            broken = not _rollback(conn)
            constraint = getattr(e.diag, "constraint_name", None)
            raise ConstraintViolationError(str(e).strip(), constraint) from e
        except psycopg2.Error as e:
            broken = not _rollback(conn)
            raise StorageError(str(e).strip()) from e
        finally:
            # a connection that could not be rolled back is dropped, not reused
            pool.putconn(conn, close=broken or bool(conn.closed))

    def ping(self) -> bool:
        """Liveness probe. Logs the outcome and returns it; never raises."""
        try:
            rows = self.execute("SELECT NOW() AS now")
        except StorageError as e:
            logger.warning("Database connection error: %s", e)
            return False
        logger.info("Database connected: %s", rows[0]["now"])
        return True


def _rollback(conn) -> bool:
    """Roll back after a failed statement. False if the connection is unusable."""
    if conn.closed:
        return False
    try:
        conn.rollback()
    except psycopg2.Error as e:
        logger.warning("Rollback failed, discarding connection: %s", e)
        return False
    return True


def get_database() -> Database:
    """Return the process-wide Database, creating it from settings on first access."""
    global _database
    if _database is None:
        _database = Database(get_settings())
    return _database


def init_db(settings: Optional[Settings] = None) -> bool:
    """Open the shared pool and probe it. Failure is logged, not raised. Returns True if the database answered."""
    global _database, db_available
    if settings is not None:
        close_db()
        _database = Database(settings)
    db_available = get_database().ping()
    if not db_available:
        logger.warning("Postgres init_db failed. Set DB_* in .env and ensure Postgres is running.")
    return db_available


def is_available() -> bool:
    return db_available


def close_db() -> None:
    """Release the shared pool (process shutdown)."""
    global _database
    if _database is not None:
        _database.close()
        _database = None
