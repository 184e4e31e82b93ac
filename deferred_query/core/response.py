"""Deferred query responses.

A QueryResponse is handed out as soon as a query is submitted. The query
itself keeps running on a worker; the response completes it on first access
to the stream or the metrics, waiting at most ``completion_timeout`` seconds.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import CancelledError, Future
from typing import IO, Any

from deferred_query.core.enums import ResultFormat
from deferred_query.core.exceptions import (
    DisposalError,
    QueryRequestError,
    StreamUnavailableError,
)
from deferred_query.core.metrics import OperationMetrics, ServerMetric
from deferred_query.core.summary import OperationSummary

logger = logging.getLogger(__name__)

DEFAULT_COMPLETION_TIMEOUT = 60.0


class RawResponse:
    """Resolved result of a query: a byte stream plus the server summary.

    The stream can be taken only once.
    """

    def __init__(self, stream: IO[bytes], summary: OperationSummary) -> None:
        self._stream: IO[bytes] | None = stream
        self.summary = summary

    def get_input_stream(self) -> IO[bytes]:
        if self._stream is None:
            raise RuntimeError("input stream was already consumed")
        stream, self._stream = self._stream, None
        return stream


class QueryResponse:
    """Handle for a query whose response may still be in flight.

    Args:
        client: Resource released by :meth:`close`.
        future: Pending operation resolving to a RawResponse.
        format: Format of the payload returned by :meth:`get_input_stream`.
        completion_timeout: Seconds to wait for the pending operation.
        metrics: Metrics store to populate; a fresh one if omitted.
        query_id: Identifier used in log and error messages.
    """

    def __init__(
        self,
        client: Any,
        future: Future[RawResponse],
        format: ResultFormat = ResultFormat.TAB_SEPARATED,  # noqa: A002
        completion_timeout: float = DEFAULT_COMPLETION_TIMEOUT,
        metrics: OperationMetrics | None = None,
        query_id: str | None = None,
    ) -> None:
        self._client = client
        self._future = future
        self._format = format
        self._completion_timeout = completion_timeout
        self._metrics = metrics if metrics is not None else OperationMetrics()
        self._query_id = query_id
        self._lock = threading.Lock()
        self._completed = False

    def __enter__(self) -> QueryResponse:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        self.close()

    @property
    def format(self) -> ResultFormat:
        return self._format

    @property
    def completion_timeout(self) -> float:
        return self._completion_timeout

    @property
    def completed(self) -> bool:
        return self._completed

    @property
    def query_id(self) -> str | None:
        """Query id reported by the server, falling back to the submitted one."""
        if self._completed and self._metrics.query_id is not None:
            return self._metrics.query_id
        return self._query_id

    def ensure_done(self) -> None:
        """Wait for the pending operation and populate the metrics once.

        Safe to call repeatedly and from several threads. A failed wait
        leaves the response pending, so a later call waits again.

        Raises:
            QueryRequestError: If the wait times out, the operation is
                cancelled, or the operation failed. The original exception
                is chained as ``__cause__``.
        """
        if self._completed:
            return
        # every caller waits on its own clock; only population is serialized
        raw = self._wait()
        with self._lock:
            if self._completed:
                return
            self._metrics.operation_complete(raw.summary)
            self._completed = True
        logger.debug("Query %s completed: %r", self.query_id, self._metrics)

    def _raised_by_operation(self, error: BaseException) -> bool:
        if not self._future.done() or self._future.cancelled():
            return False
        return self._future.exception(timeout=0) is error

    def _wait(self) -> RawResponse:
        try:
            return self._future.result(timeout=self._completion_timeout)
        except TimeoutError as e:
            if self._raised_by_operation(e):
                logger.warning("Query %s failed: %s", self._query_id, e)
                raise QueryRequestError(self._query_id) from e
            logger.warning(
                "Query %s did not complete within %.3fs", self._query_id, self._completion_timeout
            )
            raise QueryRequestError(self._query_id, "Query request timed out") from e
        except CancelledError as e:
            logger.warning("Query %s was cancelled", self._query_id)
            raise QueryRequestError(self._query_id, "Query request was cancelled") from e
        except Exception as e:
            logger.warning("Query %s failed: %s", self._query_id, e)
            raise QueryRequestError(self._query_id) from e

    def get_input_stream(self) -> IO[bytes]:
        """Complete the operation and return its payload stream.

        Raises:
            QueryRequestError: If completion fails.
            StreamUnavailableError: If the stream cannot be obtained.
        """
        self.ensure_done()
        try:
            return self._future.result().get_input_stream()
        except Exception as e:
            raise StreamUnavailableError(str(e)) from e

    def get_metrics(self) -> OperationMetrics:
        """Complete the operation and return its metrics."""
        self.ensure_done()
        return self._metrics

    def close(self) -> None:
        """Release the owning client.

        Does not wait for a pending operation.

        Raises:
            DisposalError: If closing the client fails.
        """
        try:
            self._client.close()
        except Exception as e:
            logger.warning("Failed to close client of query %s: %s", self._query_id, e)
            raise DisposalError(str(e)) from e

    @property
    def read_rows(self) -> int:
        """Number of rows read by the server from the storage."""
        return self.get_metrics().get_metric(ServerMetric.NUM_ROWS_READ)

    @property
    def read_bytes(self) -> int:
        """Number of bytes read by the server from the storage."""
        return self.get_metrics().get_metric(ServerMetric.NUM_BYTES_READ)

    @property
    def written_rows(self) -> int:
        """Number of rows written by the server to the storage."""
        return self.get_metrics().get_metric(ServerMetric.NUM_ROWS_WRITTEN)

    @property
    def written_bytes(self) -> int:
        """Number of bytes written by the server to the storage."""
        return self.get_metrics().get_metric(ServerMetric.NUM_BYTES_WRITTEN)

    @property
    def server_time(self) -> int:
        """Server-side elapsed time in nanoseconds."""
        return self.get_metrics().get_metric(ServerMetric.ELAPSED_TIME)

    @property
    def result_rows(self) -> int:
        """Number of rows returned."""
        return self.get_metrics().get_metric(ServerMetric.RESULT_ROWS)
