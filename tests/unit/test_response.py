"""Unit tests for QueryResponse."""

from __future__ import annotations

import threading
import time
from concurrent.futures import CancelledError, Future, ThreadPoolExecutor
from unittest.mock import MagicMock, patch

import pytest

from deferred_query.core.enums import ResultFormat
from deferred_query.core.exceptions import (
    DisposalError,
    MetricNotFoundError,
    QueryRequestError,
    StreamUnavailableError,
)
from deferred_query.core.metrics import OperationMetrics, ServerMetric
from deferred_query.core.response import DEFAULT_COMPLETION_TIMEOUT, QueryResponse
from deferred_query.core.summary import OperationSummary


@pytest.fixture
def resolved(make_raw, full_summary: OperationSummary) -> Future:
    future: Future = Future()
    future.set_result(make_raw(full_summary, b"a\tb\n"))
    return future


class TestCompletion:
    def test_not_completed_after_construction(
        self, owning_client: MagicMock, pending_future: Future
    ) -> None:
        response = QueryResponse(owning_client, pending_future)
        assert response.completed is False
        assert response.completion_timeout == DEFAULT_COMPLETION_TIMEOUT == 60.0

    def test_ensure_done_completes(self, owning_client: MagicMock, resolved: Future) -> None:
        response = QueryResponse(owning_client, resolved)
        response.ensure_done()
        assert response.completed is True
        assert response.read_rows == 10

    def test_get_input_stream_completes(self, owning_client: MagicMock, resolved: Future) -> None:
        response = QueryResponse(owning_client, resolved)
        stream = response.get_input_stream()
        assert response.completed is True
        assert stream.read() == b"a\tb\n"

    def test_get_metrics_completes(self, owning_client: MagicMock, resolved: Future) -> None:
        response = QueryResponse(owning_client, resolved)
        metrics = response.get_metrics()
        assert response.completed is True
        assert metrics is response.get_metrics()

    def test_population_happens_once(self, owning_client: MagicMock, resolved: Future) -> None:
        metrics = OperationMetrics()
        response = QueryResponse(owning_client, resolved, metrics=metrics)
        with patch.object(metrics, "operation_complete", wraps=metrics.operation_complete) as spy:
            for _ in range(5):
                response.ensure_done()
            response.get_metrics()
            _ = response.result_rows
        assert spy.call_count == 1

    def test_concurrent_first_calls_populate_once(
        self, owning_client: MagicMock, make_raw, full_summary: OperationSummary
    ) -> None:
        future: Future = Future()
        metrics = OperationMetrics()
        response = QueryResponse(owning_client, future, metrics=metrics, completion_timeout=5)
        start = threading.Barrier(8)

        def wait() -> int:
            start.wait()
            return response.read_rows

        with patch.object(metrics, "operation_complete", wraps=metrics.operation_complete) as spy:
            with ThreadPoolExecutor(max_workers=8) as pool:
                results = [pool.submit(wait) for _ in range(8)]
                time.sleep(0.05)
                future.set_result(make_raw(full_summary))
                values = [r.result(timeout=5) for r in results]

        assert values == [10] * 8
        assert spy.call_count == 1

    def test_format_accessor(self, owning_client: MagicMock, pending_future: Future) -> None:
        response = QueryResponse(owning_client, pending_future, format=ResultFormat.CSV)
        assert response.format is ResultFormat.CSV
        assert response.completed is False


class TestFailures:
    def test_timeout_wraps_timeout_error(
        self, owning_client: MagicMock, pending_future: Future
    ) -> None:
        response = QueryResponse(owning_client, pending_future, completion_timeout=0.01)
        with pytest.raises(QueryRequestError, match="timed out") as exc_info:
            response.ensure_done()
        assert isinstance(exc_info.value.__cause__, TimeoutError)
        assert response.completed is False

    def test_timeout_then_retry_succeeds(
        self, owning_client: MagicMock, pending_future: Future, make_raw, full_summary
    ) -> None:
        response = QueryResponse(owning_client, pending_future, completion_timeout=0.01)
        with pytest.raises(QueryRequestError):
            response.ensure_done()

        pending_future.set_result(make_raw(full_summary))
        response.ensure_done()
        assert response.completed is True
        assert response.result_rows == 2

    def test_cancelled_wraps_cancelled_error(
        self, owning_client: MagicMock, pending_future: Future
    ) -> None:
        pending_future.cancel()
        response = QueryResponse(owning_client, pending_future)
        with pytest.raises(QueryRequestError, match="cancelled") as exc_info:
            response.get_metrics()
        assert isinstance(exc_info.value.__cause__, CancelledError)
        assert response.completed is False

    def test_failure_wraps_original_cause(
        self, owning_client: MagicMock, pending_future: Future
    ) -> None:
        boom = RuntimeError("boom")
        pending_future.set_exception(boom)
        response = QueryResponse(owning_client, pending_future, query_id="q-9")
        with pytest.raises(QueryRequestError, match="q-9") as exc_info:
            response.get_input_stream()
        assert exc_info.value.__cause__ is boom
        assert exc_info.value.query_id == "q-9"

    def test_failure_is_not_cached(self, owning_client: MagicMock, pending_future: Future) -> None:
        pending_future.set_exception(RuntimeError("boom"))
        response = QueryResponse(owning_client, pending_future)
        for _ in range(2):
            with pytest.raises(QueryRequestError):
                response.ensure_done()
        assert response.completed is False

    def test_operation_raising_timeout_is_a_failure(
        self, owning_client: MagicMock, pending_future: Future
    ) -> None:
        pending_future.set_exception(TimeoutError("socket timeout"))
        response = QueryResponse(owning_client, pending_future)
        with pytest.raises(QueryRequestError, match="Query request failed"):
            response.ensure_done()

    def test_concurrent_waiters_each_bounded_by_timeout(
        self, owning_client: MagicMock, pending_future: Future
    ) -> None:
        response = QueryResponse(owning_client, pending_future, completion_timeout=0.3)
        start = threading.Barrier(4)

        def wait() -> float:
            start.wait()
            began = time.monotonic()
            with pytest.raises(QueryRequestError, match="timed out"):
                response.ensure_done()
            return time.monotonic() - began

        with ThreadPoolExecutor(max_workers=4) as pool:
            durations = [f.result(timeout=5) for f in [pool.submit(wait) for _ in range(4)]]

        assert max(durations) < 0.45
        assert response.completed is False

    def test_result_arriving_after_wait_timeout_is_a_timeout(
        self, owning_client: MagicMock
    ) -> None:
        class LateFuture(Future):
            def result(self, timeout=None):
                try:
                    return super().result(timeout)
                except TimeoutError:
                    self.set_exception(TimeoutError("late"))
                    raise

        response = QueryResponse(owning_client, LateFuture(), completion_timeout=0.01)
        with pytest.raises(QueryRequestError, match="timed out") as exc_info:
            response.ensure_done()
        assert str(exc_info.value.__cause__) != "late"

    def test_stream_taken_twice(self, owning_client: MagicMock, resolved: Future) -> None:
        response = QueryResponse(owning_client, resolved)
        response.get_input_stream()
        with pytest.raises(StreamUnavailableError, match="already consumed"):
            response.get_input_stream()


class TestAliases:
    def test_all_aliases(self, owning_client: MagicMock, resolved: Future) -> None:
        response = QueryResponse(owning_client, resolved)
        assert response.read_rows == 10
        assert response.read_bytes == 640
        assert response.written_rows == 3
        assert response.written_bytes == 96
        assert response.server_time == 1_500_000
        assert response.result_rows == 2

    def test_missing_metric_raises(self, owning_client: MagicMock, make_raw) -> None:
        future: Future = Future()
        future.set_result(make_raw(OperationSummary(result_rows=0)))
        response = QueryResponse(owning_client, future)
        assert response.result_rows == 0
        with pytest.raises(MetricNotFoundError):
            _ = response.written_bytes

    def test_alias_forces_completion(self, owning_client: MagicMock, resolved: Future) -> None:
        response = QueryResponse(owning_client, resolved)
        assert response.get_metrics().get_metric(ServerMetric.RESULT_ROWS) == response.result_rows

    def test_query_id_prefers_server_value(
        self, owning_client: MagicMock, resolved: Future
    ) -> None:
        response = QueryResponse(owning_client, resolved, query_id="submitted")
        assert response.query_id == "submitted"
        response.ensure_done()
        assert response.query_id == "q-1"


class TestClose:
    def test_close_before_completion(
        self, owning_client: MagicMock, pending_future: Future
    ) -> None:
        response = QueryResponse(owning_client, pending_future)
        response.close()
        owning_client.close.assert_called_once_with()
        assert response.completed is False
        assert pending_future.done() is False

    def test_context_manager_closes(self, owning_client: MagicMock, resolved: Future) -> None:
        with QueryResponse(owning_client, resolved) as response:
            assert response.result_rows == 2
        owning_client.close.assert_called_once_with()

    def test_close_failure_wrapped(self, pending_future: Future) -> None:
        client = MagicMock()
        client.close.side_effect = OSError("socket busy")
        response = QueryResponse(client, pending_future)
        with pytest.raises(DisposalError, match="socket busy") as exc_info:
            response.close()
        assert isinstance(exc_info.value.__cause__, OSError)
