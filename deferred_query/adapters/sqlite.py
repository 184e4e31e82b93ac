"""SQLite adapter (sqlite3 stdlib)."""

from __future__ import annotations

import sqlite3
from typing import Any

from deferred_query.core.connection import ConnectionConfig
from deferred_query.core.exceptions import AdapterError, ConnectionError, PoolError


class SqliteSyncAdapter:
    """SQLite adapter whose connections may be used from worker threads."""

    def create_pool(self, config: ConnectionConfig) -> list[sqlite3.Connection]:
        """Create a 'pool' (list of connections) for SQLite."""
        pool: list[sqlite3.Connection] = []
        try:
            for _ in range(config.pool_size):
                conn = sqlite3.connect(config.database, check_same_thread=False)
                conn.row_factory = sqlite3.Row
                conn.execute("PRAGMA journal_mode=WAL")
                pool.append(conn)
        except sqlite3.Error as e:
            self.close_pool(pool)
            raise ConnectionError(f"Cannot open SQLite database '{config.database}': {e}") from e
        return pool

    def acquire_connection(self, pool: list[sqlite3.Connection]) -> sqlite3.Connection:
        """Acquire a connection from the pool."""
        if not pool:
            raise PoolError("No connections available in pool")
        return pool.pop()

    def release_connection(
        self, connection: sqlite3.Connection, pool: list[sqlite3.Connection]
    ) -> None:
        """Release a connection back to the pool."""
        pool.append(connection)

    def close_connection(self, connection: sqlite3.Connection) -> None:
        connection.close()

    def close_pool(self, pool: list[sqlite3.Connection]) -> None:
        """Close all connections in the pool."""
        for conn in pool:
            conn.close()
        pool.clear()

    def execute(
        self,
        connection: sqlite3.Connection,
        sql: str,
        params: dict[str, Any] | tuple[Any, ...] | None = None,
    ) -> sqlite3.Cursor:
        """Execute SQL and return a cursor.

        Raises:
            AdapterError: Wrapping any sqlite3 error.
        """
        try:
            return connection.execute(sql, params or {})
        except sqlite3.Error as e:
            raise AdapterError(f"SQLite error: {e}") from e
