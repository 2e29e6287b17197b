# Copyright 2026 The prop_harness Authors
# SPDX-License-Identifier: Apache-2.0

"""
Property runner: generate, test, shrink.

Runs are strictly sequential.  Draw ``i`` is generated from
``derive_seed(root_seed, i)``, so a reported seed reproduces the whole
sequence, and a reported path (``"draw:i:j:..."``) jumps straight to the
shrunk counterexample.
"""

import asyncio
import random
import time
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple

import structlog

from prop_harness.core.arbitrary import Value
from prop_harness.core.errors import PropertyFailure
from prop_harness.core.outcome import ErrorInfo, OutcomeKind, RunOutcome
from prop_harness.core.random_source import RandomSource, derive_seed
from prop_harness.core.state import GenerationState, value_from_state
from prop_harness.runner.config import RunnerConfig, get_runner_config
from prop_harness.runner.executors import (
    InlineExecutor,
    IsolatedExecutor,
    PredicateExecutor,
    get_executor,
)
from prop_harness.runner.property import Property
from prop_harness.worker.pool import WorkerPool

logger = structlog.get_logger(__name__)


class RunStatus(Enum):
    """Final status of a property check."""
    PASSED = "passed"
    FAILED = "failed"
    TIMEOUT = "timeout"
    WORKER_CRASH = "worker_crash"
    EXHAUSTED = "exhausted"


_TERMINAL_STATUS = {
    OutcomeKind.TIMEOUT: RunStatus.TIMEOUT,
    OutcomeKind.WORKER_CRASH: RunStatus.WORKER_CRASH,
}


def format_path(draw_index: int, shrink_path: Tuple[int, ...]) -> str:
    """Render a counterexample path as ``"draw:i:j:..."``."""
    return ':'.join(str(part) for part in (draw_index,) + tuple(shrink_path))


def parse_path(path: str) -> Tuple[int, Tuple[int, ...]]:
    """
    Parse a counterexample path.

    Returns:
        The draw index and the shrink indices

    Raises:
        ValueError: If the path is malformed
    """
    try:
        parts = [int(part) for part in path.split(':')]
    except ValueError:
        raise ValueError(f"Malformed counterexample path {path!r}")
    if any(part < 0 for part in parts):
        raise ValueError(f"Malformed counterexample path {path!r}")
    return parts[0], tuple(parts[1:])


@dataclass
class RunDetails:
    """Result of checking a property."""
    status: RunStatus
    seed: int
    num_runs: int = 0
    num_skips: int = 0
    num_shrinks: int = 0
    original_input: Optional[tuple] = None
    shrunk_input: Optional[tuple] = None
    counterexample_path: Optional[str] = None
    error: Optional[ErrorInfo] = None
    duration: float = 0.0
    executor: str = "inline"
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def failed(self) -> bool:
        return self.status != RunStatus.PASSED

    @property
    def counterexample(self) -> Optional[tuple]:
        return self.shrunk_input

    def as_report(self) -> Dict[str, Any]:
        """Payload handed to failure reporters."""
        return {
            'original_input': self.original_input,
            'shrunk_input': self.shrunk_input,
            'num_runs': self.num_runs,
            'num_shrinks': self.num_shrinks,
            'seed': self.seed,
        }

    def summary(self) -> str:
        """Return a human-readable summary."""
        lines = [
            "",
            "=" * 60,
            f"PROPERTY {self.status.value.upper()}",
            "=" * 60,
            f"Seed:     {self.seed}",
            f"Runs:     {self.num_runs}",
            f"Skips:    {self.num_skips}",
            f"Shrinks:  {self.num_shrinks}",
            f"Executor: {self.executor}",
            f"Duration: {self.duration:.2f}s",
        ]
        if self.shrunk_input is not None:
            lines.extend([
                "",
                f"Counterexample: {self.shrunk_input!r}",
                f"Original input: {self.original_input!r}",
                f"Path:           {self.counterexample_path}",
            ])
        if self.error is not None:
            lines.append(f"Error:          {str(self.error).splitlines()[0][:120]}")
        if self.counterexample_path is not None:
            lines.extend([
                "",
                f"Replay with: seed={self.seed}, path={self.counterexample_path!r}",
            ])
        return '\n'.join(lines)


class PropertyRunner:
    """Runner for checking one property."""

    def __init__(self,
                 prop: Property,
                 config: Optional[RunnerConfig] = None,
                 executor: Optional[PredicateExecutor] = None):
        """Initialize the property runner.

        Args:
            prop: Property to check.
            config: Run policy; defaults to ``RunnerConfig()``.
            executor: Where the predicate runs; defaults to inline.
        """
        self.prop = prop
        self.config = config or RunnerConfig()
        self.executor = executor or InlineExecutor(prop.predicate, self.config.timeout)

    def run(self) -> RunDetails:
        """Check the property and return the details of the check."""
        seed = self.config.seed
        if seed is None:
            seed = random.randint(0, 0xFFFFFFFF)
        log = logger.bind(
            property=repr(self.prop), seed=seed, executor=self.executor.describe(),
        )

        start_time = time.monotonic()
        if self.config.path is not None:
            details = self._replay(seed, self.config.path, log)
        else:
            details = self._explore(seed, log)
        details.duration = time.monotonic() - start_time
        details.executor = self.executor.describe()

        log.info(
            "Property check finished",
            status=details.status.value,
            num_runs=details.num_runs,
            num_shrinks=details.num_shrinks,
        )
        if self.config.verbose:
            print(details.summary())
        return details

    def _draw(self, seed: int, draw_index: int) -> Tuple[Value, GenerationState]:
        state = GenerationState(
            seed=derive_seed(seed, draw_index),
            size=self.config.size_for(draw_index),
        )
        return self.prop.generate(RandomSource(state.seed), state.size), state

    def _explore(self, seed: int, log) -> RunDetails:
        max_skips = self.config.num_runs * self.config.max_skips_per_run
        runs = 0
        skips = 0
        draw_index = 0

        while runs < self.config.num_runs:
            value, state = self._draw(seed, draw_index)
            outcome = self.executor.execute(value.value, state)

            if outcome.kind is OutcomeKind.PRECONDITION_SKIP:
                skips += 1
                if skips > max_skips:
                    log.warning("Too many skipped inputs", num_skips=skips)
                    return RunDetails(
                        status=RunStatus.EXHAUSTED,
                        seed=seed,
                        num_runs=runs,
                        num_skips=skips,
                        error=ErrorInfo(
                            "PreconditionSkip",
                            f"Gave up after {skips} inputs were skipped",
                        ),
                    )
                draw_index += 1
                continue

            runs += 1
            log.debug("Property run", run=runs, outcome=outcome.kind.value)
            if outcome.kind is OutcomeKind.SUCCESS:
                draw_index += 1
                continue

            if outcome.kind is OutcomeKind.PREDICATE_FAILURE:
                log.info("Counterexample found", run=runs, input=value.value)
                return self._shrink(seed, draw_index, value, state, outcome, runs, skips, log)
            return self._terminal(seed, draw_index, value, state, outcome, runs, skips)

        return RunDetails(
            status=RunStatus.PASSED, seed=seed, num_runs=runs, num_skips=skips,
        )

    def _replay(self, seed: int, path: str, log) -> RunDetails:
        draw_index, shrink_path = parse_path(path)
        state = GenerationState(
            seed=derive_seed(seed, draw_index),
            size=self.config.size_for(draw_index),
            path=shrink_path,
        )
        try:
            value = value_from_state(self.prop.arbitrary, state)
        except IndexError:
            raise ValueError(f"Path {path!r} does not match this property")

        outcome = self.executor.execute(value.value, state)
        log.debug("Replayed path", path=path, outcome=outcome.kind.value)
        if outcome.kind is OutcomeKind.PREDICATE_FAILURE:
            return self._shrink(seed, draw_index, value, state, outcome, 1, 0, log)
        if outcome.kind is OutcomeKind.SUCCESS:
            return RunDetails(status=RunStatus.PASSED, seed=seed, num_runs=1)
        if outcome.kind is OutcomeKind.PRECONDITION_SKIP:
            return RunDetails(status=RunStatus.PASSED, seed=seed, num_skips=1)
        return self._terminal(seed, draw_index, value, state, outcome, 1, 0)

    def _terminal(self, seed: int, draw_index: int, value: Value,
                  state: GenerationState, outcome: RunOutcome,
                  runs: int, skips: int) -> RunDetails:
        """Timeouts and crashes end the check without shrinking."""
        return RunDetails(
            status=_TERMINAL_STATUS[outcome.kind],
            seed=seed,
            num_runs=runs,
            num_skips=skips,
            original_input=value.value,
            shrunk_input=value.value,
            counterexample_path=format_path(draw_index, state.path),
            error=outcome.error,
        )

    def _shrink(self, seed: int, draw_index: int, value: Value,
                state: GenerationState, outcome: RunOutcome,
                runs: int, skips: int, log) -> RunDetails:
        """Greedy shrink search: adopt the first candidate that still fails."""
        original_input = value.value
        num_shrinks = 0

        while num_shrinks < self.config.max_shrinks:
            for index, candidate in enumerate(value.shrink()):
                candidate_state = state.child(index)
                candidate_outcome = self.executor.execute(candidate.value, candidate_state)
                if candidate_outcome.kind is OutcomeKind.PREDICATE_FAILURE:
                    value, state, outcome = candidate, candidate_state, candidate_outcome
                    num_shrinks += 1
                    log.debug("Shrink step", step=num_shrinks, input=value.value)
                    break
                if candidate_outcome.kind in _TERMINAL_STATUS:
                    log.warning(
                        "Shrink candidate did not complete",
                        outcome=candidate_outcome.kind.value,
                        input=candidate.value,
                    )
            else:
                break

        return RunDetails(
            status=RunStatus.FAILED,
            seed=seed,
            num_runs=runs,
            num_skips=skips,
            num_shrinks=num_shrinks,
            original_input=original_input,
            shrunk_input=value.value,
            counterexample_path=format_path(draw_index, state.path),
            error=outcome.error,
        )


def check(prop: Property,
          config: Optional[RunnerConfig] = None,
          worker_pool: Optional[WorkerPool] = None,
          random_source: str = 'worker',
          **overrides) -> RunDetails:
    """Convenience function to check a property.

    Args:
        prop: Property to check.
        config: Base configuration; defaults to ``get_runner_config()``.
        worker_pool: Run the predicate in this pool's workers instead of
            inline.
        random_source: With a pool, ``'worker'`` sends generation
            descriptors and ``'main'`` sends the inputs themselves.
        **overrides: ``RunnerConfig`` fields overriding ``config``.

    Returns:
        RunDetails of the check.
    """
    if config is None:
        config = get_runner_config(**overrides)
    elif overrides:
        config = replace(config, **overrides)

    executor = get_executor(prop, config.timeout, worker_pool, random_source)
    try:
        return PropertyRunner(prop, config, executor).run()
    finally:
        if isinstance(executor, IsolatedExecutor):
            worker_pool.unregister(executor.predicate_id)


def assert_property(prop: Property, **kwargs) -> RunDetails:
    """Check a property and raise if it does not hold.

    Accepts the same arguments as ``check``.

    Raises:
        PropertyFailure: With the shrunk counterexample and full details.
    """
    details = check(prop, **kwargs)
    if details.failed:
        raise PropertyFailure(
            details.summary(),
            counterexample=details.shrunk_input,
            details=details,
        )
    return details


async def async_check(prop: Property, **kwargs) -> RunDetails:
    """Awaitable ``check``: the sequential runner runs off the event loop.

    Accepts the same arguments as ``check``.
    """
    return await asyncio.to_thread(check, prop, **kwargs)
