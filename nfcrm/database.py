"""PostgreSQL access shared by the CRM repositories and the launch import worker."""

import os
import logging
import threading

import psycopg2
from psycopg2 import pool
from psycopg2.extras import RealDictCursor


logger = logging.getLogger('nfcrm.database')

# PostgreSQL connection - DATABASE_URL is required once the first query runs
DATABASE_URL = os.environ.get('DATABASE_URL')

POOL_MIN_CONN = int(os.environ.get('DB_POOL_MIN_CONN', '2'))
POOL_MAX_CONN = int(os.environ.get('DB_POOL_MAX_CONN', '8'))
POOL_GETCONN_TIMEOUT = int(os.environ.get('DB_POOL_TIMEOUT', '10'))
HEALTH_CHECK_ATTEMPTS = 3

_connection_pool = None
_pool_lock = threading.Lock()

# One slot per pooled connection. ThreadedConnectionPool raises PoolError as
# soon as it is exhausted, so callers queue here with a timeout instead.
_slots = threading.BoundedSemaphore(POOL_MAX_CONN)


def _get_pool():
    """Get or create the connection pool (lazy initialization, thread-safe)."""
    global _connection_pool
    if _connection_pool is None:
        with _pool_lock:
            if _connection_pool is None:
                if not DATABASE_URL:
                    raise ValueError("DATABASE_URL environment variable is required. "
                                     "Set it to your PostgreSQL connection string.")
                _connection_pool = pool.ThreadedConnectionPool(
                    minconn=POOL_MIN_CONN,
                    maxconn=POOL_MAX_CONN,
                    dsn=DATABASE_URL,
                    keepalives=1,
                    keepalives_idle=30,
                    connect_timeout=5,
                )
                logger.info(f'Connection pool created: min={POOL_MIN_CONN}, max={POOL_MAX_CONN}')
    return _connection_pool


def _is_alive(conn):
    try:
        with conn.cursor() as cur:
            cur.execute('SELECT 1')
        conn.rollback()
        return True
    except (psycopg2.OperationalError, psycopg2.InterfaceError) as e:
        logger.warning(f'Discarding stale connection: {e}')
        return False


def get_db(timeout=None):
    """Check out a healthy autocommit connection; pair every call with release_db().

    Waits up to DB_POOL_TIMEOUT seconds for a free slot. A store call that
    cannot get one fails with OperationalError, which the import records
    against the current member instead of hanging the run.
    """
    timeout = POOL_GETCONN_TIMEOUT if timeout is None else timeout
    if not _slots.acquire(timeout=timeout):
        raise psycopg2.OperationalError(f'No database connection free after {timeout}s')

    try:
        db_pool = _get_pool()
        for _ in range(HEALTH_CHECK_ATTEMPTS):
            conn = db_pool.getconn()
            if _is_alive(conn):
                conn.autocommit = True
                return conn
            db_pool.putconn(conn, close=True)
    except Exception:
        _slots.release()
        raise

    _slots.release()
    raise psycopg2.OperationalError(f'No healthy database connection after {HEALTH_CHECK_ATTEMPTS} attempts')


def release_db(conn):
    """Return a connection taken with get_db(); broken ones are closed, not pooled."""
    if conn is None or _connection_pool is None:
        return
    try:
        broken = bool(conn.closed)
        if not broken:
            conn.autocommit = False
        _connection_pool.putconn(conn, close=broken)
    except psycopg2.Error as e:
        logger.warning(f'Closing connection that could not be returned to the pool: {e}')
        _connection_pool.putconn(conn, close=True)
    finally:
        _slots.release()


def get_cursor(conn):
    """Get cursor with dict row factory."""
    return conn.cursor(cursor_factory=RealDictCursor)


def dict_from_row(row):
    """Convert a database row to a dictionary with ISO-formatted dates."""
    if row is None:
        return None
    result = dict(row)
    for key, value in result.items():
        if hasattr(value, 'isoformat'):
            result[key] = value.isoformat()
    return result
