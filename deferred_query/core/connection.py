"""Connection configuration and management.

ConnectionConfig and QuerySettings are Pydantic models for type-safe
configuration. ConnectionManager uses the adapter protocol for pool-based
connection lifecycle and is shared by every query a Client submits.
"""

from __future__ import annotations

import importlib
import logging
import threading
from contextlib import contextmanager
from typing import Any

from pydantic import BaseModel, Field

from deferred_query.core.enums import DatabaseBackend, ResultFormat
from deferred_query.core.exceptions import AdapterError, PoolError

logger = logging.getLogger(__name__)


class ConnectionConfig(BaseModel):
    """Configuration for database connections."""

    driver: str
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str
    pool_size: int = Field(default=5, ge=1)
    pool_timeout: int = 30
    completion_timeout: float = Field(default=60.0, gt=0)
    extra: dict[str, Any] = {}


class QuerySettings(BaseModel):
    """Per-query settings.

    ``completion_timeout`` of None means the connection config's value.
    ``query_id`` of None means a generated one.
    """

    format: ResultFormat = ResultFormat.TAB_SEPARATED
    completion_timeout: float | None = Field(default=None, gt=0)
    query_id: str | None = None


# Adapter module mapping: driver name → (module_path, sync_class)
_ADAPTER_MAP: dict[str, tuple[str, str]] = {
    DatabaseBackend.SQLITE.value: ("deferred_query.adapters.sqlite", "SqliteSyncAdapter"),
}


def _load_adapter(driver: str) -> Any:
    """Load an adapter by driver name."""
    driver_lower = driver.lower()
    if driver_lower not in _ADAPTER_MAP:
        raise AdapterError(f"Unsupported database driver: {driver}")

    module_path, cls_name = _ADAPTER_MAP[driver_lower]
    try:
        module = importlib.import_module(module_path)
        return getattr(module, cls_name)()
    except (ImportError, AttributeError) as e:
        raise AdapterError(f"Failed to load adapter for '{driver}': {e}") from e


class ConnectionManager:
    """Thread-safe connection manager using the SyncAdapter protocol.

    Connections are handed to worker threads; ``pool_timeout`` bounds how
    long a worker waits for a free connection.
    """

    def __init__(self, config: ConnectionConfig) -> None:
        self.config = config
        self._adapter = _load_adapter(config.driver)
        self._pool: Any = None
        self._available = threading.Semaphore(config.pool_size)
        self._lock = threading.Lock()
        self._closed = False

    @property
    def adapter(self) -> Any:
        return self._adapter

    @property
    def closed(self) -> bool:
        return self._closed

    def initialize_pool(self) -> Any:
        """Initialize the connection pool."""
        with self._lock:
            if self._closed:
                raise PoolError("Connection pool is closed")
            if self._pool is None:
                self._pool = self._adapter.create_pool(self.config)
                logger.debug(
                    "Created %s pool of %d connection(s)", self.config.driver, self.config.pool_size
                )
            return self._pool

    @contextmanager
    def get_connection(self):  # type: ignore[no-untyped-def]
        """Get a connection from the pool as a context manager."""
        pool = self.initialize_pool()
        if not self._available.acquire(timeout=self.config.pool_timeout):
            raise PoolError(f"No connection available within {self.config.pool_timeout}s")
        try:
            with self._lock:
                connection = self._adapter.acquire_connection(pool)
            try:
                yield connection
            finally:
                with self._lock:
                    if self._closed:
                        self._adapter.close_connection(connection)
                    else:
                        self._adapter.release_connection(connection, pool)
        finally:
            self._available.release()

    def close_pool(self) -> None:
        """Close the connection pool.

        Connections in use are closed when they are released.
        """
        with self._lock:
            self._closed = True
            if self._pool is not None:
                self._adapter.close_pool(self._pool)
                self._pool = None
