"""Database connection pooling using psycopg2, plus the process-wide default pool."""

from __future__ import annotations

import threading
from typing import Optional

import psycopg2
from psycopg2.pool import ThreadedConnectionPool

from dbstatement.config.settings import Settings, get_settings
from dbstatement.db import ConnectionPool
from dbstatement.db.adapters import PooledConnection
from dbstatement.db.errors import DatabaseConnectionError

DEFAULT_MIN_CONNECTIONS = 1
DEFAULT_MAX_CONNECTIONS = 5


class DatabasePool:
    """Lightweight wrapper around psycopg2's ThreadedConnectionPool."""

    def __init__(
        self,
        dsn: str,
        *,
        min_connections: int = DEFAULT_MIN_CONNECTIONS,
        max_connections: int = DEFAULT_MAX_CONNECTIONS,
    ) -> None:
        try:
            self._pool = ThreadedConnectionPool(min_connections, max_connections, dsn)
        except psycopg2.Error as exc:
            raise DatabaseConnectionError(f"Unable to open connection pool: {exc}") from exc

    @classmethod
    def from_settings(cls, settings: Settings) -> "DatabasePool":
        """Build a pool sized from ``settings``."""

        pool_config = settings.pool_config()
        return cls(
            str(settings.database_url),
            min_connections=pool_config.min_connections,
            max_connections=pool_config.max_connections,
        )

    def acquire(self) -> PooledConnection:
        """Borrow a connection in autocommit mode."""

        try:
            connection = self._pool.getconn()
        except psycopg2.Error as exc:
            raise DatabaseConnectionError(f"Unable to acquire a database connection: {exc}") from exc

        try:
            connection.autocommit = True
        except psycopg2.Error as exc:
            self._pool.putconn(connection, close=True)
            raise DatabaseConnectionError(f"Borrowed connection is unusable: {exc}") from exc
        return PooledConnection(connection, self._pool)

    def close(self) -> None:
        """Close all pooled connections."""

        self._pool.closeall()


_pool: Optional[ConnectionPool] = None
_pool_lock = threading.Lock()


def get_pool() -> ConnectionPool:
    """Return the default pool, building it from settings on first use."""

    global _pool
    with _pool_lock:
        if _pool is None:
            _pool = DatabasePool.from_settings(get_settings())
        return _pool


def set_pool(pool: Optional[ConnectionPool]) -> None:
    """Install ``pool`` as the default pool, or forget it with ``None``."""

    global _pool
    with _pool_lock:
        _pool = pool


def close_pool() -> None:
    """Close and forget the default pool, if one was created."""

    global _pool
    with _pool_lock:
        pool, _pool = _pool, None
    close = getattr(pool, "close", None)
    if close is not None:
        close()


__all__ = ["DatabasePool", "close_pool", "get_pool", "set_pool"]
