"""
Conexión a base de datos PostgreSQL

Persistence gateway for the order core: a bounded psycopg2 connection pool
plus the transaction-control statements run against a checked-out connection.

The pool is built explicitly (create_pool) and handed to whoever needs it;
nothing in this module holds a process-wide connection.
"""
import logging
import threading
from contextlib import contextmanager

import psycopg2
import psycopg2.errors
import psycopg2.extensions
import psycopg2.pool
from psycopg2.extras import RealDictCursor

from order_tx.core.exceptions import (
    DatabaseConnectionError,
    PoolTimeoutError,
    StatementTimeoutError,
)

logger = logging.getLogger(__name__)


@contextmanager
def db_cursor(conn):
    """
    Cursor bound to an active connection, always closed on exit

    Translates server-side statement cancellation into StatementTimeoutError
    and lost connections into DatabaseConnectionError. Every other
    psycopg2 error (constraint violations included) propagates as-is so
    repositories can map it to a domain error.

    Example:
        with db_cursor(conn) as cursor:
            cursor.execute("SELECT * FROM products WHERE id = %s", (product_id,))
            row = cursor.fetchone()
    """
    try:
        cursor = conn.cursor()
    except (psycopg2.OperationalError, psycopg2.InterfaceError) as e:
        raise DatabaseConnectionError(f"Could not open cursor: {e}") from e

    try:
        yield cursor
    except psycopg2.errors.QueryCanceled as e:
        raise StatementTimeoutError(f"Statement cancelled by timeout: {e}") from e
    except (psycopg2.OperationalError, psycopg2.InterfaceError) as e:
        raise DatabaseConnectionError(f"Database connection lost: {e}") from e
    finally:
        cursor.close()


class ConnectionPool:
    """
    Bounded pool of exclusive PostgreSQL connections

    Connections are handed out in autocommit mode; a unit of work opens its
    own transaction with begin() and ends it with commit() or rollback().
    A semaphore caps concurrent checkouts at max_size so acquire() waits at
    most acquire_timeout seconds instead of failing immediately.
    """

    def __init__(
        self,
        dsn: str,
        min_size: int = 1,
        max_size: int = 20,
        acquire_timeout: float = 5.0,
        connect_timeout: int = 5,
        statement_timeout_ms: int = 30000,
    ):
        self.dsn = dsn
        self.max_size = max_size
        self.acquire_timeout = acquire_timeout
        self._slots = threading.BoundedSemaphore(max_size)

        try:
            self._pool = psycopg2.pool.ThreadedConnectionPool(
                min_size,
                max_size,
                dsn,
                connect_timeout=connect_timeout,
                options=f"-c statement_timeout={statement_timeout_ms}",
                cursor_factory=RealDictCursor,
            )
        except psycopg2.OperationalError as e:
            logger.error(f"Could not create connection pool: {e}")
            raise DatabaseConnectionError(f"Could not connect to PostgreSQL: {e}") from e

        logger.info(f"Connection pool ready (min={min_size}, max={max_size})")

    def acquire(self):
        """
        Check out an exclusive connection

        Returns:
            psycopg2 connection in autocommit mode

        Raises:
            PoolTimeoutError: no connection freed up within acquire_timeout
            DatabaseConnectionError: pool closed or server unreachable
        """
        if not self._slots.acquire(timeout=self.acquire_timeout):
            logger.warning(f"Pool exhausted: no connection available after {self.acquire_timeout}s")
            raise PoolTimeoutError(
                f"No database connection available after {self.acquire_timeout} seconds"
            )

        try:
            conn = self._pool.getconn()
            conn.autocommit = True
        except (psycopg2.pool.PoolError, psycopg2.OperationalError, psycopg2.InterfaceError) as e:
            self._slots.release()
            logger.error(f"Error getting connection from pool: {e}")
            raise DatabaseConnectionError(f"Could not get a database connection: {e}") from e

        logger.debug("Connection acquired from pool")
        return conn

    def release(self, conn) -> None:
        """
        Return a connection to the pool

        A connection that is closed or still inside a transaction (for
        instance after a failed ROLLBACK) is discarded instead of reused.
        """
        try:
            broken = bool(conn.closed) or (
                conn.get_transaction_status() != psycopg2.extensions.TRANSACTION_STATUS_IDLE
            )
            self._pool.putconn(conn, close=broken)
            if broken:
                logger.warning("Discarded a broken connection instead of returning it to the pool")
        except psycopg2.pool.PoolError as e:
            logger.error(f"Error returning connection to pool: {e}")
        finally:
            self._slots.release()

        logger.debug("Connection released to pool")

    def begin(self, conn) -> None:
        with db_cursor(conn) as cursor:
            cursor.execute("BEGIN")

    def commit(self, conn) -> None:
        with db_cursor(conn) as cursor:
            cursor.execute("COMMIT")

    def rollback(self, conn) -> bool:
        """
        Issue ROLLBACK; never raises

        A failed rollback is logged so it cannot mask the error that
        triggered it. release() later discards the connection.

        Returns:
            True when the server acknowledged the ROLLBACK
        """
        try:
            with db_cursor(conn) as cursor:
                cursor.execute("ROLLBACK")
        except Exception as e:
            logger.error(f"Error executing ROLLBACK: {e}")
            return False
        return True

    @contextmanager
    def connection(self):
        """
        Acquire/release as a context manager, for single reads

        Usage:
            with pool.connection() as conn:
                products = product_repo.list_all(conn)
        """
        conn = self.acquire()
        try:
            yield conn
        finally:
            self.release(conn)

    def ping(self) -> bool:
        """Round trip a SELECT 1"""
        with self.connection() as conn:
            with db_cursor(conn) as cursor:
                cursor.execute("SELECT 1 AS ok")
                return cursor.fetchone() is not None

    def close(self) -> None:
        """Close every pooled connection"""
        self._pool.closeall()
        logger.info("Connection pool closed")


def create_pool(settings) -> ConnectionPool:
    """
    Build a ConnectionPool from application settings

    Raises:
        DatabaseConfigurationError: if no DSN can be assembled
        DatabaseConnectionError: if PostgreSQL is unreachable
    """
    return ConnectionPool(
        settings.get_database_dsn(),
        min_size=settings.DB_POOL_MIN_SIZE,
        max_size=settings.DB_POOL_MAX_SIZE,
        acquire_timeout=settings.DB_POOL_ACQUIRE_TIMEOUT,
        connect_timeout=settings.DB_CONNECT_TIMEOUT,
        statement_timeout_ms=settings.DB_STATEMENT_TIMEOUT_MS,
    )
