"""Query submission.

The Client runs each query on a worker thread and returns a QueryResponse
right away. Every response owns a request client wrapping its worker, so
closing a response never tears down the connection pool other in-flight
responses of the same Client rely on.
"""

from __future__ import annotations

import io
import logging
import time
import uuid
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any

from deferred_query.core.connection import ConnectionConfig, ConnectionManager, QuerySettings
from deferred_query.core.enums import ResultFormat
from deferred_query.core.exceptions import ClientClosedError
from deferred_query.core.formats import encode_rows
from deferred_query.core.metrics import ClientStatistics, OperationMetrics
from deferred_query.core.response import QueryResponse, RawResponse
from deferred_query.core.summary import OperationSummary

logger = logging.getLogger(__name__)


def _coerce_params(
    params: dict[str, Any] | tuple[Any, ...] | list[Any] | None,
) -> dict[str, Any] | tuple[Any, ...] | None:
    if params is None or isinstance(params, dict):
        return params
    return tuple(params)


class RequestClient:
    """Single-use worker for one query, owned by its QueryResponse."""

    def __init__(self, connection_manager: ConnectionManager) -> None:
        self._connection_manager = connection_manager
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="deferred-query")
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def submit(
        self,
        sql: str,
        params: dict[str, Any] | tuple[Any, ...] | None,
        format: ResultFormat,  # noqa: A002
        query_id: str,
    ) -> Future[RawResponse]:
        return self._executor.submit(self._run, sql, params, format, query_id)

    def _run(
        self,
        sql: str,
        params: dict[str, Any] | tuple[Any, ...] | None,
        format: ResultFormat,  # noqa: A002
        query_id: str,
    ) -> RawResponse:
        adapter = self._connection_manager.adapter
        with self._connection_manager.get_connection() as conn:
            started = time.perf_counter_ns()
            cursor = adapter.execute(conn, sql, params)

            if cursor.description is not None:
                columns = [desc[0] for desc in cursor.description]
                rows = cursor.fetchall()
                payload = encode_rows(columns, rows, format)
                summary = OperationSummary(
                    read_rows=len(rows),
                    result_rows=len(rows),
                    result_bytes=len(payload),
                    elapsed_ns=time.perf_counter_ns() - started,
                    query_id=query_id,
                )
            else:
                conn.commit()
                payload = b""
                summary = OperationSummary(
                    # rowcount is -1 for statements that do not touch rows
                    written_rows=cursor.rowcount if cursor.rowcount >= 0 else None,
                    result_rows=0,
                    elapsed_ns=time.perf_counter_ns() - started,
                    query_id=query_id,
                )
        return RawResponse(io.BytesIO(payload), summary)

    def close(self) -> None:
        """Stop accepting work without waiting for the running query."""
        self._closed = True
        self._executor.shutdown(wait=False)


class Client:
    """Submits queries and hands back deferred responses.

    Args:
        config: Connection configuration. Its ``completion_timeout`` is the
            default wait bound of every response.
    """

    def __init__(self, config: ConnectionConfig) -> None:
        self.config = config
        self._connection_manager = ConnectionManager(config)
        self._closed = False

    def __enter__(self) -> Client:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        self.close()

    @property
    def connection_manager(self) -> ConnectionManager:
        return self._connection_manager

    def query(
        self,
        sql: str,
        params: dict[str, Any] | tuple[Any, ...] | list[Any] | None = None,
        settings: QuerySettings | None = None,
    ) -> QueryResponse:
        """Submit *sql* and return its response without waiting for it.

        Raises:
            ClientClosedError: If the client was closed.
        """
        if self._closed:
            raise ClientClosedError("Cannot submit a query through a closed client")
        settings = settings if settings is not None else QuerySettings()
        query_id = settings.query_id or uuid.uuid4().hex
        timeout = (
            settings.completion_timeout
            if settings.completion_timeout is not None
            else self.config.completion_timeout
        )

        request_client = RequestClient(self._connection_manager)
        metrics = OperationMetrics(ClientStatistics())
        future = request_client.submit(sql, _coerce_params(params), settings.format, query_id)
        logger.debug("Submitted query %s (format=%s)", query_id, settings.format.value)

        return QueryResponse(
            request_client,
            future,
            format=settings.format,
            completion_timeout=timeout,
            metrics=metrics,
            query_id=query_id,
        )

    def close(self) -> None:
        """Close the shared connection pool."""
        self._closed = True
        self._connection_manager.close_pool()
