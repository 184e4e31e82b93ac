"""DeferredQuery - deferred query responses with server-reported metrics."""

from __future__ import annotations

from deferred_query.core.client import Client, RequestClient
from deferred_query.core.connection import ConnectionConfig, ConnectionManager, QuerySettings
from deferred_query.core.enums import DatabaseBackend, ResultFormat
from deferred_query.core.escaping import escape, flatten_parameters, quote_identifier
from deferred_query.core.exceptions import (
    AdapterError,
    ClientClosedError,
    ClientError,
    ConnectionError,  # noqa: A004
    DeferredQueryError,
    DisposalError,
    InvalidArgumentError,
    MetricNotFoundError,
    MetricsAlreadyPopulatedError,
    MetricsError,
    PoolError,
    QueryRequestError,
    StreamUnavailableError,
    SummaryParseError,
)
from deferred_query.core.metrics import ClientMetric, OperationMetrics, ServerMetric
from deferred_query.core.response import QueryResponse, RawResponse
from deferred_query.core.summary import OperationSummary

__all__ = [
    # Client
    "Client",
    "RequestClient",
    # Connection
    "ConnectionConfig",
    "ConnectionManager",
    "QuerySettings",
    # Response
    "QueryResponse",
    "RawResponse",
    # Metrics
    "OperationMetrics",
    "OperationSummary",
    "ServerMetric",
    "ClientMetric",
    # Escaping
    "escape",
    "quote_identifier",
    "flatten_parameters",
    # Enums
    "DatabaseBackend",
    "ResultFormat",
    # Exceptions
    "DeferredQueryError",
    "ClientError",
    "QueryRequestError",
    "StreamUnavailableError",
    "DisposalError",
    "ClientClosedError",
    "MetricsError",
    "MetricNotFoundError",
    "MetricsAlreadyPopulatedError",
    "SummaryParseError",
    "InvalidArgumentError",
    "AdapterError",
    "ConnectionError",
    "PoolError",
]
