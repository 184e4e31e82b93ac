"""Operation metrics.

OperationMetrics is filled exactly once, when a pending response completes.
Server metrics come from the OperationSummary; a key the server did not
report is absent rather than zero.
"""

from __future__ import annotations

import time
from enum import Enum
from types import MappingProxyType
from typing import Any

from deferred_query.core.exceptions import MetricNotFoundError, MetricsAlreadyPopulatedError
from deferred_query.core.summary import OperationSummary


class ServerMetric(Enum):
    """Metrics reported by the server in the operation summary."""

    NUM_ROWS_READ = "server.numRowsRead"
    NUM_BYTES_READ = "server.numBytesRead"
    NUM_ROWS_WRITTEN = "server.numRowsWritten"
    NUM_BYTES_WRITTEN = "server.numBytesWritten"
    TOTAL_ROWS_TO_READ = "server.totalRowsToRead"
    RESULT_ROWS = "server.resultRows"
    RESULT_BYTES = "server.resultBytes"
    ELAPSED_TIME = "server.elapsedTime"


class ClientMetric(Enum):
    """Metrics measured on the client side."""

    OP_DURATION = "client.opDuration"


# Summary field backing each server metric.
SUMMARY_FIELDS: MappingProxyType[ServerMetric, str] = MappingProxyType(
    {
        ServerMetric.NUM_ROWS_READ: "read_rows",
        ServerMetric.NUM_BYTES_READ: "read_bytes",
        ServerMetric.NUM_ROWS_WRITTEN: "written_rows",
        ServerMetric.NUM_BYTES_WRITTEN: "written_bytes",
        ServerMetric.TOTAL_ROWS_TO_READ: "total_rows_to_read",
        ServerMetric.RESULT_ROWS: "result_rows",
        ServerMetric.RESULT_BYTES: "result_bytes",
        ServerMetric.ELAPSED_TIME: "elapsed_ns",
    }
)

MetricKey = ServerMetric | ClientMetric


class ClientStatistics:
    """Stopwatch for the client-side duration of one operation."""

    def __init__(self) -> None:
        self._started_ns = time.perf_counter_ns()
        self._elapsed_ns: int | None = None

    def stop(self) -> int:
        if self._elapsed_ns is None:
            self._elapsed_ns = time.perf_counter_ns() - self._started_ns
        return self._elapsed_ns

    @property
    def elapsed_ns(self) -> int | None:
        return self._elapsed_ns


class OperationMetrics:
    """Fixed-key metric store for a single operation.

    Args:
        statistics: Client-side stopwatch started when the operation was
            submitted. A fresh one is created if omitted.
    """

    def __init__(self, statistics: ClientStatistics | None = None) -> None:
        self._statistics = statistics if statistics is not None else ClientStatistics()
        self._metrics: dict[MetricKey, int] = {}
        self._query_id: str | None = None
        self._populated = False

    def operation_complete(self, summary: OperationSummary) -> None:
        """Populate metrics from *summary*.

        Raises:
            MetricsAlreadyPopulatedError: If called more than once.
        """
        if self._populated:
            raise MetricsAlreadyPopulatedError()

        metrics: dict[MetricKey, int] = {}
        for key, field in SUMMARY_FIELDS.items():
            value = summary.get(field)
            if value is not None:
                metrics[key] = value
        metrics[ClientMetric.OP_DURATION] = self._statistics.stop()

        self._metrics = metrics
        self._query_id = summary.query_id
        self._populated = True

    @property
    def populated(self) -> bool:
        return self._populated

    @property
    def query_id(self) -> str | None:
        return self._query_id

    def get_metric(self, key: MetricKey) -> int:
        """Return the value of *key*.

        Raises:
            MetricNotFoundError: If *key* was not reported for this operation.
        """
        try:
            return self._metrics[key]
        except KeyError:
            raise MetricNotFoundError(key) from None

    def has_metric(self, key: MetricKey) -> bool:
        return key in self._metrics

    def as_dict(self) -> dict[str, Any]:
        """Metric values keyed by their dotted names."""
        return {key.value: value for key, value in self._metrics.items()}

    def __repr__(self) -> str:
        return f"OperationMetrics({self.as_dict()!r})"
