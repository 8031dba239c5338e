# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.
"""
Process lifecycle tracer.

Wraps a unit of work and emits Start, Warning, Success and Exception
checkpoints to a sink. Every traced call that emits Start ends with exactly
one Success or Exception event.
"""

from __future__ import annotations

import functools
import inspect
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import (
    Any,
    Awaitable,
    Callable,
    Generic,
    Mapping,
    Optional,
    TypeVar,
    Union,
)

from src.core.observability.context import ANONYMOUS_USER, get_user_id
from src.core.observability.events import ERROR_DATA_KEY, ErrorRecord, Severity
from src.core.observability.exceptions import TelemetryConfigurationError
from src.core.observability.messages import Checkpoint, MessageCatalog
from src.core.observability.sinks import TelemetrySink

T = TypeVar("T")

DEFAULT_START_DETAIL = "Request initiated"


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful outcome of a unit of work."""

    value: T


@dataclass(frozen=True)
class Failed:
    """Failed outcome of a unit of work."""

    error: Exception


WorkResult = Union[Ok[T], Failed, T]


class TraceOutcome(str, Enum):
    """Terminal checkpoint reached by a traced call."""

    SUCCESS = "Success"
    EXCEPTION = "Exception"


class ExceptionPolicy(str, Enum):
    """What the tracer does with a failure after tracing it."""

    SWALLOW = "swallow"
    PROPAGATE = "propagate"

    @classmethod
    def parse(cls, value: Union[str, "ExceptionPolicy"]) -> "ExceptionPolicy":
        """Parse a policy name.

        :param value: Policy or its name, case-insensitive
        :returns: ExceptionPolicy
        :rtype: ExceptionPolicy
        :raises TelemetryConfigurationError: If the name is unknown
        """
        if isinstance(value, ExceptionPolicy):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise TelemetryConfigurationError(
                "exception_policy",
                f"expected one of {[p.value for p in cls]}, got {value!r}",
            )


@dataclass(frozen=True)
class TracedResult(Generic[T]):
    """Value and outcome of a traced call."""

    value: Optional[T]
    outcome: TraceOutcome
    error: Optional[Exception] = None

    @property
    def succeeded(self) -> bool:
        """True when the call ended with the Success checkpoint."""
        return self.outcome is TraceOutcome.SUCCESS


class TraceScope:
    """
    Handle given to a unit of work for emitting intermediate checkpoints.
    """

    def __init__(
        self,
        process_name: str,
        sink: TelemetrySink,
        catalog: MessageCatalog,
    ) -> None:
        self.process_name = process_name
        self._sink = sink
        self._catalog = catalog

    def warning(
        self,
        attributes: Optional[Mapping[str, Any]] = None,
        detail: Optional[str] = None,
    ) -> None:
        """Emit a Warning checkpoint for a recoverable anomaly.

        :param attributes: Optional attributes for the event
        :param detail: Optional text appended to the label
        """
        label = self._catalog.label(Checkpoint.WARNING, self.process_name)
        if detail:
            label = f"{label} - {detail}"
        self._sink.emit_trace(label, Severity.WARNING, _stringify(attributes))


class ProcessTracer:
    """
    Emits lifecycle checkpoints around units of work.

    Holds only its injected collaborators, so one instance can be shared by
    concurrent callers.
    """

    def __init__(
        self,
        sink: TelemetrySink,
        catalog: MessageCatalog,
        policy: ExceptionPolicy = ExceptionPolicy.SWALLOW,
        start_detail: str = DEFAULT_START_DETAIL,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        """Initialize the tracer.

        :param sink: Destination of all events
        :type sink: TelemetrySink
        :param catalog: Label provider
        :type catalog: MessageCatalog
        :param policy: Default handling of failures after they are traced
        :type policy: ExceptionPolicy
        :param start_detail: Text appended to Start labels, empty for none
        :type start_detail: str
        :param clock: Source of the Start timestamp, UTC now by default
        """
        self.sink = sink
        self.catalog = catalog
        self.policy = ExceptionPolicy.parse(policy)
        self.start_detail = start_detail
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def run_traced(
        self,
        process_name: str,
        work: Callable[[TraceScope], WorkResult],
        attributes: Optional[Mapping[str, Any]] = None,
        user_id: Optional[str] = None,
        policy: Optional[ExceptionPolicy] = None,
    ) -> TracedResult:
        """Run a unit of work between Start and a terminal checkpoint.

        The work receives a TraceScope and may return a plain value,
        Ok(value) or Failed(error), or raise.

        :param process_name: Name of the traced operation
        :type process_name: str
        :param work: Unit of work
        :param attributes: Caller attributes for the Start event
        :param user_id: Caller identity, request context user by default
        :param policy: Overrides the tracer's exception policy
        :returns: Value and outcome
        :rtype: TracedResult
        :raises Exception: The work's failure under PROPAGATE
        :raises BaseException: Interrupts and cancellation, always, after the
            Exception checkpoint
        """
        scope = self._start(process_name, attributes, user_id)
        try:
            produced = work(scope)
        except Exception as exc:
            produced = Failed(exc)
        except BaseException as exc:
            self._fail(process_name, exc)
            raise
        return self._finish(scope, produced, policy)

    async def run_traced_async(
        self,
        process_name: str,
        work: Callable[[TraceScope], Awaitable[WorkResult]],
        attributes: Optional[Mapping[str, Any]] = None,
        user_id: Optional[str] = None,
        policy: Optional[ExceptionPolicy] = None,
    ) -> TracedResult:
        """Async variant of run_traced; the work is awaited without timeout.

        Cancellation of the work is traced as an Exception and re-raised.
        """
        scope = self._start(process_name, attributes, user_id)
        try:
            produced = await work(scope)
        except Exception as exc:
            produced = Failed(exc)
        except BaseException as exc:
            self._fail(process_name, exc)
            raise
        return self._finish(scope, produced, policy)

    def _start(
        self,
        process_name: str,
        attributes: Optional[Mapping[str, Any]],
        user_id: Optional[str],
    ) -> TraceScope:
        label = self.catalog.label(Checkpoint.START, process_name)
        if self.start_detail:
            label = f"{label} - {self.start_detail}"
        # caller keys first, mandated keys override on collision
        merged = _stringify(attributes)
        merged.update(
            {
                "Timestamp": self._clock().isoformat(),
                "ProcessName": process_name,
                "UserId": user_id or get_user_id() or ANONYMOUS_USER,
                "LogLevel": Severity.INFORMATION.value,
            }
        )
        self.sink.emit_trace(label, Severity.INFORMATION, merged)
        return TraceScope(process_name, self.sink, self.catalog)

    def _finish(
        self,
        scope: TraceScope,
        produced: Any,
        policy: Optional[ExceptionPolicy],
    ) -> TracedResult:
        if isinstance(produced, Failed):
            self._fail(scope.process_name, produced.error)
            if ExceptionPolicy.parse(policy or self.policy) is ExceptionPolicy.PROPAGATE:
                raise produced.error
            return TracedResult(None, TraceOutcome.EXCEPTION, produced.error)

        value = produced.value if isinstance(produced, Ok) else produced
        self.sink.emit_trace(
            self.catalog.label(Checkpoint.SUCCESS, scope.process_name),
            Severity.INFORMATION,
            {},
        )
        return TracedResult(value, TraceOutcome.SUCCESS)

    def _fail(self, process_name: str, error: BaseException) -> None:
        record = ErrorRecord.from_exception(error)
        self.sink.emit_trace(
            self.catalog.label(Checkpoint.EXCEPTION, process_name),
            Severity.ERROR,
            {
                ERROR_DATA_KEY: record.to_json(),
                "ProcessName": process_name,
                "LogLevel": Severity.ERROR.value,
            },
        )
        self.sink.emit_exception(error, {"ProcessName": process_name})


def traced(
    tracer: ProcessTracer,
    process_name: Optional[str] = None,
    policy: Optional[ExceptionPolicy] = None,
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Decorate a function so every call is traced.

    The process name defaults to the function name. A function declaring a
    ``scope`` parameter receives the TraceScope. Calls return TracedResult.

    :param tracer: Tracer emitting the checkpoints
    :param process_name: Process name override
    :param policy: Exception policy override
    """

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        name = process_name or func.__name__
        wants_scope = "scope" in inspect.signature(func).parameters

        if inspect.iscoroutinefunction(func):

            @functools.wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any) -> TracedResult:
                async def work(scope: TraceScope) -> Any:
                    call_kwargs = {**kwargs, "scope": scope} if wants_scope else kwargs
                    return await func(*args, **call_kwargs)

                return await tracer.run_traced_async(name, work, policy=policy)

            return async_wrapper

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> TracedResult:
            def work(scope: TraceScope) -> Any:
                call_kwargs = {**kwargs, "scope": scope} if wants_scope else kwargs
                return func(*args, **call_kwargs)

            return tracer.run_traced(name, work, policy=policy)

        return wrapper

    return decorator


def _stringify(attributes: Optional[Mapping[str, Any]]) -> dict[str, str]:
    if not attributes:
        return {}
    return {
        str(key): value if isinstance(value, str) else str(value)
        for key, value in attributes.items()
    }
