# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Tests for ProcessTracer."""

import asyncio
import json
from datetime import datetime
from typing import Any
import pytest
from pytest_mock import MockerFixture
from src.core.observability.context import RequestScope
from src.core.observability.events import Severity
from src.core.observability.exceptions import TelemetryConfigurationError
from src.core.observability.messages import MessageCatalog
from src.core.observability.sinks import RecordingSink
from src.core.observability.tracer import (
    ExceptionPolicy,
    Failed,
    Ok,
    ProcessTracer,
    TraceOutcome,
    TraceScope,
    traced,
)


def _failing_work(scope: TraceScope) -> Any:
    scope.warning()
    raise ConnectionError("Database connection failed")


class TestRunTraced:
    """
    Tests for the synchronous tracing contract.
    """

    def test_success_sequence(self, tracer: ProcessTracer, sink: RecordingSink) -> None:
        """
        Start then Success, value returned.
        """
        result = tracer.run_traced("Get", lambda scope: 42)
        assert result.value == 42
        assert result.outcome is TraceOutcome.SUCCESS
        assert result.succeeded
        assert result.error is None
        assert sink.labels() == [
            "WeatherApp Process Start: Get - Request initiated",
            "WeatherApp Process Success: Get",
        ]
        assert [e.severity for e in sink.traces] == [Severity.INFORMATION, Severity.INFORMATION]
        assert sink.exceptions == []

    def test_start_attributes(
        self,
        tracer: ProcessTracer,
        sink: RecordingSink,
        fixed_now: datetime,
    ) -> None:
        """
        Start carries caller attributes plus the mandated keys.
        """
        tracer.run_traced("Get", lambda scope: None, attributes={"RequestData": "[]", "Days": 5})
        start = sink.traces[0]
        assert start.attributes == {
            "RequestData": "[]",
            "Days": "5",
            "Timestamp": fixed_now.isoformat(),
            "ProcessName": "Get",
            "UserId": "Anonymous",
            "LogLevel": "Information",
        }

    def test_mandated_keys_override_caller(
        self,
        tracer: ProcessTracer,
        sink: RecordingSink,
    ) -> None:
        """
        On key collision the mandated value wins.
        """
        tracer.run_traced("Get", lambda scope: None, attributes={"ProcessName": "spoofed"})
        assert sink.traces[0].attributes["ProcessName"] == "Get"

    def test_user_id_argument(self, tracer: ProcessTracer, sink: RecordingSink) -> None:
        """
        Explicit user id is recorded.
        """
        tracer.run_traced("Get", lambda scope: None, user_id="alice")
        assert sink.traces[0].attributes["UserId"] == "alice"

    def test_user_id_from_request_context(
        self,
        tracer: ProcessTracer,
        sink: RecordingSink,
    ) -> None:
        """
        Request context supplies the user id when none is given.
        """
        with RequestScope(user_id="bob"):
            tracer.run_traced("Get", lambda scope: None)
        assert sink.traces[0].attributes["UserId"] == "bob"

    def test_empty_start_detail(self, sink: RecordingSink, catalog: MessageCatalog) -> None:
        """
        No suffix is added when start detail is empty.
        """
        tracer = ProcessTracer(sink=sink, catalog=catalog, start_detail="")
        tracer.run_traced("Get", lambda scope: None)
        assert sink.labels()[0] == "WeatherApp Process Start: Get"

    def test_failure_scenario(self, tracer: ProcessTracer, sink: RecordingSink) -> None:
        """
        Failing work yields Start, Warning, Exception and one exception record.
        """
        result = tracer.run_traced("Get", _failing_work)

        assert result.outcome is TraceOutcome.EXCEPTION
        assert result.value is None
        assert isinstance(result.error, ConnectionError)

        labels = sink.labels()
        assert labels[0].startswith("WeatherApp Process Start: Get - ")
        assert labels[1] == "WeatherApp Process Warning: Get"
        assert labels[2].startswith("WeatherApp Process Exception:Get")
        assert len(labels) == 3
        assert not any("Success" in label for label in labels)

        warning, failure = sink.traces[1], sink.traces[2]
        assert warning.severity is Severity.WARNING
        assert warning.attributes == {}
        assert failure.severity is Severity.ERROR
        assert '"Database connection failed"' in failure.attributes["ErrorData"]
        error_data = json.loads(failure.attributes["ErrorData"])
        assert error_data["ExceptionMessage"] == "Database connection failed"
        assert error_data["FileName"].endswith("tracer_test.py")
        assert error_data["LineNumber"].isdigit()

        assert len(sink.exceptions) == 1
        assert str(sink.exceptions[0]) == "Database connection failed"

    def test_failed_result_is_traced_without_raise(
        self,
        tracer: ProcessTracer,
        sink: RecordingSink,
    ) -> None:
        """
        Returning Failed takes the exception branch.
        """
        error = ValueError("bad input")
        result = tracer.run_traced("Validate", lambda scope: Failed(error))
        assert result.outcome is TraceOutcome.EXCEPTION
        assert result.error is error
        error_data = json.loads(sink.traces[-1].attributes["ErrorData"])
        assert error_data["FileName"] is None
        assert sink.exceptions == [error]

    def test_ok_result_is_unwrapped(self, tracer: ProcessTracer) -> None:
        """
        Returning Ok gives the wrapped value.
        """
        assert tracer.run_traced("Get", lambda scope: Ok([1, 2])).value == [1, 2]

    def test_propagate_policy_reraises_after_emitting(
        self,
        sink: RecordingSink,
        catalog: MessageCatalog,
    ) -> None:
        """
        PROPAGATE emits Exception and the exception record, then raises.
        """
        tracer = ProcessTracer(sink=sink, catalog=catalog, policy=ExceptionPolicy.PROPAGATE)
        with pytest.raises(ConnectionError, match="Database connection failed"):
            tracer.run_traced("Get", _failing_work)
        assert sink.labels()[-1] == "WeatherApp Process Exception:Get"
        assert len(sink.exceptions) == 1

    def test_per_call_policy_overrides(self, tracer: ProcessTracer) -> None:
        """
        A call can ask for propagation on a swallowing tracer.
        """
        with pytest.raises(ConnectionError):
            tracer.run_traced("Get", _failing_work, policy=ExceptionPolicy.PROPAGATE)

    def test_interrupt_is_traced_then_reraised(
        self,
        tracer: ProcessTracer,
        sink: RecordingSink,
    ) -> None:
        """
        KeyboardInterrupt ends with an Exception event and still propagates.
        """

        def interrupted(scope: TraceScope) -> None:
            raise KeyboardInterrupt()

        with pytest.raises(KeyboardInterrupt):
            tracer.run_traced("Get", interrupted)
        assert sink.labels() == [
            "WeatherApp Process Start: Get - Request initiated",
            "WeatherApp Process Exception:Get",
        ]
        assert isinstance(sink.exceptions[0], KeyboardInterrupt)

    def test_sink_failure_propagates(self, catalog: MessageCatalog, mocker: MockerFixture) -> None:
        """
        The tracer does not handle sink errors.
        """
        broken = mocker.MagicMock()
        broken.emit_trace.side_effect = RuntimeError("sink down")
        tracer = ProcessTracer(sink=broken, catalog=catalog)
        work = mocker.MagicMock()
        with pytest.raises(RuntimeError, match="sink down"):
            tracer.run_traced("Get", work)
        work.assert_not_called()

    def test_warning_with_attributes_and_detail(
        self,
        tracer: ProcessTracer,
        sink: RecordingSink,
    ) -> None:
        """
        Warnings accept optional attributes and label detail.
        """

        def work(scope: TraceScope) -> str:
            scope.warning(attributes={"Retries": 2}, detail="Slow upstream")
            scope.warning()
            return "done"

        result = tracer.run_traced("Sync", work)
        assert result.succeeded
        warnings = [e for e in sink.traces if e.severity is Severity.WARNING]
        assert warnings[0].label == "WeatherApp Process Warning: Sync - Slow upstream"
        assert warnings[0].attributes == {"Retries": "2"}
        assert warnings[1].label == "WeatherApp Process Warning: Sync"

    def test_exactly_one_terminal_event(self, tracer: ProcessTracer, sink: RecordingSink) -> None:
        """
        Each invocation ends with one Success or one Exception.
        """
        tracer.run_traced("A", lambda scope: 1)
        tracer.run_traced("B", _failing_work)
        terminal = [
            label
            for label in sink.labels()
            if "Process Success:" in label or "Process Exception:" in label
        ]
        assert terminal == ["WeatherApp Process Success: A", "WeatherApp Process Exception:B"]

    def test_unknown_policy_rejected(self, sink: RecordingSink, catalog: MessageCatalog) -> None:
        """
        Unknown policy names fail at construction.
        """
        with pytest.raises(TelemetryConfigurationError):
            ProcessTracer(sink=sink, catalog=catalog, policy="ignore")  # type: ignore[arg-type]

    def test_policy_parse_case_insensitive(self) -> None:
        """
        Policy names are parsed case-insensitively.
        """
        assert ExceptionPolicy.parse(" Propagate ") is ExceptionPolicy.PROPAGATE


class TestRunTracedAsync:
    """
    Tests for the async tracing contract.
    """

    @pytest.mark.asyncio
    async def test_async_success(self, tracer: ProcessTracer, sink: RecordingSink) -> None:
        """
        Async work is awaited and traced.
        """

        async def work(scope: TraceScope) -> int:
            await asyncio.sleep(0)
            scope.warning()
            return 7

        result = await tracer.run_traced_async("Fetch", work)
        assert result.value == 7
        assert sink.labels() == [
            "WeatherApp Process Start: Fetch - Request initiated",
            "WeatherApp Process Warning: Fetch",
            "WeatherApp Process Success: Fetch",
        ]

    @pytest.mark.asyncio
    async def test_async_failure(self, tracer: ProcessTracer, sink: RecordingSink) -> None:
        """
        Async failures take the exception branch.
        """

        async def work(scope: TraceScope) -> None:
            raise TimeoutError("upstream timed out")

        result = await tracer.run_traced_async("Fetch", work)
        assert result.outcome is TraceOutcome.EXCEPTION
        assert sink.labels()[-1] == "WeatherApp Process Exception:Fetch"
        assert len(sink.exceptions) == 1

    @pytest.mark.asyncio
    async def test_cancelled_work_ends_with_exception(
        self,
        tracer: ProcessTracer,
        sink: RecordingSink,
    ) -> None:
        """
        A cancelled task emits Exception before the cancellation propagates.
        """
        started = asyncio.Event()

        async def work(scope: TraceScope) -> None:
            started.set()
            await asyncio.sleep(10)

        task = asyncio.ensure_future(tracer.run_traced_async("Get", work))
        await started.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert sink.labels() == [
            "WeatherApp Process Start: Get - Request initiated",
            "WeatherApp Process Exception:Get",
        ]
        assert isinstance(sink.exceptions[0], asyncio.CancelledError)

    @pytest.mark.asyncio
    async def test_cancellation_ignores_swallow_policy(
        self,
        tracer: ProcessTracer,
        sink: RecordingSink,
    ) -> None:
        """
        Cancellation is re-raised even when failures are swallowed.
        """

        async def work(scope: TraceScope) -> None:
            raise asyncio.CancelledError()

        assert tracer.policy is ExceptionPolicy.SWALLOW
        with pytest.raises(asyncio.CancelledError):
            await tracer.run_traced_async("Fetch", work)
        assert len([e for e in sink.traces if e.severity is Severity.ERROR]) == 1

    @pytest.mark.asyncio
    async def test_concurrent_invocations_keep_own_order(
        self,
        tracer: ProcessTracer,
        sink: RecordingSink,
    ) -> None:
        """
        Interleaved calls each see Start before their terminal event.
        """

        async def work(scope: TraceScope) -> str:
            await asyncio.sleep(0)
            return scope.process_name

        await asyncio.gather(
            *(tracer.run_traced_async(f"P{i}", work) for i in range(5))
        )
        labels = sink.labels()
        for i in range(5):
            start = labels.index(f"WeatherApp Process Start: P{i} - Request initiated")
            success = labels.index(f"WeatherApp Process Success: P{i}")
            assert start < success


class TestTracedDecorator:
    """
    Tests for the traced decorator.
    """

    def test_uses_function_name(self, tracer: ProcessTracer, sink: RecordingSink) -> None:
        """
        Process name defaults to the function name.
        """

        @traced(tracer)
        def Get() -> str:
            return "ok"

        result = Get()
        assert result.value == "ok"
        assert sink.labels()[-1] == "WeatherApp Process Success: Get"

    def test_passes_scope_when_declared(
        self,
        tracer: ProcessTracer,
        sink: RecordingSink,
    ) -> None:
        """
        Functions declaring scope receive it.
        """

        @traced(tracer, process_name="Load")
        def load(key: str, scope: TraceScope) -> str:
            scope.warning(attributes={"Key": key})
            return key.upper()

        assert load("abc").value == "ABC"
        assert sink.traces[1].attributes == {"Key": "abc"}
        assert sink.labels()[1] == "WeatherApp Process Warning: Load"

    @pytest.mark.asyncio
    async def test_async_function(self, tracer: ProcessTracer, sink: RecordingSink) -> None:
        """
        Coroutine functions are traced with run_traced_async.
        """

        @traced(tracer)
        async def fetch(value: int) -> int:
            raise LookupError(f"missing {value}")

        result = await fetch(3)
        assert result.outcome is TraceOutcome.EXCEPTION
        assert sink.labels()[-1] == "WeatherApp Process Exception:fetch"
