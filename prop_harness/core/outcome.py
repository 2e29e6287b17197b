# Copyright 2026 The prop_harness Authors
# SPDX-License-Identifier: Apache-2.0

"""
Tagged result of running a predicate once.

``run_predicate`` is the only place a user predicate is called.  Whatever
the predicate does (return ``False``, raise, return an awaitable that
raises, call ``pre()``), the caller receives a ``RunOutcome`` and never an
exception.
"""

import asyncio
import inspect
import traceback
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

from prop_harness.core.errors import PreconditionSkip


class OutcomeKind(Enum):
    """Classification of a single predicate run."""
    SUCCESS = "success"
    PREDICATE_FAILURE = "predicate_failure"
    PRECONDITION_SKIP = "precondition_skip"
    TIMEOUT = "timeout"
    WORKER_CRASH = "worker_crash"


@dataclass(frozen=True)
class ErrorInfo:
    """
    Picklable snapshot of a failure.

    Live exceptions may hold references that cannot be sent between
    processes, so only their type name, message and formatted traceback
    are kept.
    """

    type_name: str
    message: str
    traceback: str = ""

    @staticmethod
    def from_exception(exc: BaseException) -> 'ErrorInfo':
        """Capture an exception with its formatted traceback."""
        return ErrorInfo(
            type_name=type(exc).__name__,
            message=str(exc),
            traceback=''.join(
                traceback.format_exception(type(exc), exc, exc.__traceback__)
            ),
        )

    def __str__(self) -> str:
        if self.message:
            return f"{self.type_name}: {self.message}"
        return self.type_name


@dataclass(frozen=True)
class RunOutcome:
    """Outcome of one predicate run."""

    kind: OutcomeKind
    output: Any = None
    error: Optional[ErrorInfo] = None

    @property
    def failed(self) -> bool:
        """True for predicate failures, timeouts and crashes."""
        return self.kind in (
            OutcomeKind.PREDICATE_FAILURE,
            OutcomeKind.TIMEOUT,
            OutcomeKind.WORKER_CRASH,
        )

    @staticmethod
    def success(output: Any = None) -> 'RunOutcome':
        return RunOutcome(OutcomeKind.SUCCESS, output=output)

    @staticmethod
    def predicate_failure(error: ErrorInfo) -> 'RunOutcome':
        return RunOutcome(OutcomeKind.PREDICATE_FAILURE, error=error)

    @staticmethod
    def precondition_skip() -> 'RunOutcome':
        return RunOutcome(OutcomeKind.PRECONDITION_SKIP)

    @staticmethod
    def timeout(seconds: float) -> 'RunOutcome':
        return RunOutcome(
            OutcomeKind.TIMEOUT,
            error=ErrorInfo("TimeoutFailure", f"Run exceeded {seconds}s"),
        )

    @staticmethod
    def worker_crash(exitcode: Optional[int]) -> 'RunOutcome':
        return RunOutcome(
            OutcomeKind.WORKER_CRASH,
            error=ErrorInfo(
                "WorkerCrash", f"Worker exited unexpectedly (exit code {exitcode})"
            ),
        )


_RETURNED_FALSE = ErrorInfo("PredicateFailure", "Property returned false")
_TIMED_OUT = object()

# Interpreter shutdown signals, never attributed to the predicate
_PROPAGATE = (KeyboardInterrupt, GeneratorExit)


def _outcome_of(exc: BaseException) -> RunOutcome:
    if isinstance(exc, PreconditionSkip):
        return RunOutcome.precondition_skip()
    return RunOutcome.predicate_failure(ErrorInfo.from_exception(exc))


def _require_no_running_loop(awaitable: Awaitable) -> None:
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return
    if inspect.iscoroutine(awaitable):
        awaitable.close()
    raise RuntimeError(
        "An async predicate cannot be driven from a running event loop; "
        "use async_check() from async code"
    )


async def _settle(awaitable: Awaitable, timeout: Optional[float]) -> Any:
    task = asyncio.ensure_future(awaitable)
    done, _ = await asyncio.wait({task}, timeout=timeout)
    if not done:
        task.cancel()
        return _TIMED_OUT
    return task.result()


def run_predicate(
    predicate: Callable[..., Any],
    inputs: tuple,
    timeout: Optional[float] = None,
) -> RunOutcome:
    """
    Run ``predicate(*inputs)`` once inside a guarded scope.

    An awaitable result is driven to completion on a fresh event loop,
    bounded by ``timeout`` when given.  A synchronous raise and a rejected
    awaitable produce the same ``PREDICATE_FAILURE``.

    Anything the predicate raises is classified, ``SystemExit`` and
    ``pytest.fail()`` included; only ``KeyboardInterrupt`` and
    ``GeneratorExit`` propagate.

    Args:
        predicate: Property predicate; ``False`` or a raise means failure
        inputs: Positional arguments for the predicate
        timeout: Time limit in seconds for awaitable results

    Returns:
        The classified outcome

    Raises:
        RuntimeError: If the predicate returns an awaitable while this
            thread is already running an event loop; use ``async_check``
            from async code
    """
    try:
        result = predicate(*inputs)
    except _PROPAGATE:
        raise
    except BaseException as exc:
        return _outcome_of(exc)

    if inspect.isawaitable(result):
        _require_no_running_loop(result)
        try:
            result = asyncio.run(_settle(result, timeout))
        except _PROPAGATE:
            raise
        except BaseException as exc:
            return _outcome_of(exc)

    if result is _TIMED_OUT:
        return RunOutcome.timeout(timeout)
    if result is False:
        return RunOutcome.predicate_failure(_RETURNED_FALSE)
    return RunOutcome.success(result)
