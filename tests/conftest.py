"""Shared test fixtures."""

from __future__ import annotations

import io
from concurrent.futures import Future
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from deferred_query.core.connection import ConnectionConfig
from deferred_query.core.response import RawResponse
from deferred_query.core.summary import OperationSummary


@pytest.fixture
def sqlite_config(tmp_path: Path) -> ConnectionConfig:
    """SQLite file-backed connection config shared by worker threads."""
    return ConnectionConfig(driver="sqlite", database=str(tmp_path / "test.db"), pool_size=2)


@pytest.fixture
def full_summary() -> OperationSummary:
    """Summary reporting every counter."""
    return OperationSummary(
        read_rows=10,
        read_bytes=640,
        written_rows=3,
        written_bytes=96,
        total_rows_to_read=10,
        result_rows=2,
        result_bytes=24,
        elapsed_ns=1_500_000,
        query_id="q-1",
    )


@pytest.fixture
def make_raw():
    """Helper building a RawResponse over an in-memory payload."""

    def _make(summary: OperationSummary, payload: bytes = b"1\n") -> RawResponse:
        return RawResponse(io.BytesIO(payload), summary)

    return _make


@pytest.fixture
def pending_future() -> Future:
    """A future that has not been resolved yet."""
    return Future()


@pytest.fixture
def owning_client() -> MagicMock:
    """Stand-in for the client a response closes."""
    return MagicMock()
