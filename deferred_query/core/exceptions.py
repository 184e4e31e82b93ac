"""DeferredQuery exception hierarchy.

Timeouts, cancellations and execution failures of a pending query all
surface as QueryRequestError. The original cause is chained as
``__cause__`` and is the only way to tell them apart.
"""

from __future__ import annotations

from typing import Any


class DeferredQueryError(Exception):
    """Base exception for all DeferredQuery errors."""


# --- Client ---


class ClientError(DeferredQueryError):
    """Base for errors raised by clients and query responses."""


class QueryRequestError(ClientError):
    """Raised when a pending query cannot be completed.

    Covers the wait timing out, the pending operation being cancelled and
    the operation itself failing.
    """

    def __init__(self, query_id: str | None = None, detail: str = "Query request failed") -> None:
        self.query_id = query_id
        message = detail if query_id is None else f"{detail} (query_id={query_id})"
        super().__init__(message)


class StreamUnavailableError(ClientError):
    """Raised when a completed response cannot hand out its input stream."""

    def __init__(self, detail: str) -> None:
        super().__init__(f"Response stream is unavailable: {detail}")


class DisposalError(ClientError):
    """Raised when releasing the client owned by a response fails."""

    def __init__(self, detail: str) -> None:
        super().__init__(f"Failed to close client: {detail}")


class ClientClosedError(ClientError):
    """Raised when a query is submitted through a closed client."""


# --- Metrics ---


class MetricsError(DeferredQueryError):
    """Base for operation metrics errors."""


class MetricNotFoundError(MetricsError, KeyError):
    """Raised when a metric was never reported for this operation."""

    def __init__(self, key: Any) -> None:
        self.key = key
        super().__init__(f"Metric not found: '{getattr(key, 'value', key)}'")

    def __str__(self) -> str:
        return str(self.args[0])


class MetricsAlreadyPopulatedError(MetricsError):
    """Raised when operation metrics are populated a second time."""

    def __init__(self) -> None:
        super().__init__("Operation metrics are already populated")


class SummaryParseError(DeferredQueryError):
    """Raised when a server summary cannot be parsed."""

    def __init__(self, detail: str) -> None:
        super().__init__(f"Cannot parse operation summary: {detail}")


# --- Arguments ---


class InvalidArgumentError(DeferredQueryError, ValueError):
    """Raised when a utility receives an argument it cannot handle."""


# --- Adapter ---


class AdapterError(DeferredQueryError):
    """Base for adapter errors."""


class ConnectionError(AdapterError):  # noqa: A001
    """Raised on connection failures."""


class PoolError(AdapterError):
    """Raised on connection pool failures."""
