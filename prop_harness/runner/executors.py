# Copyright 2026 The prop_harness Authors
# SPDX-License-Identifier: Apache-2.0

"""
Predicate executors.

Provides an abstraction layer so the runner evaluates an input the same
way whether the predicate runs in this process or in a worker process.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Optional

from prop_harness.core.outcome import RunOutcome, run_predicate
from prop_harness.core.state import GenerationState
from prop_harness.runner.property import Property
from prop_harness.worker.messages import MainPayload, StatePayload
from prop_harness.worker.pool import WorkerPool

RANDOM_SOURCES = ('main', 'worker')


class PredicateExecutor(ABC):
    """Abstract base class for predicate execution strategies."""

    @abstractmethod
    def execute(self, inputs: tuple, state: GenerationState) -> RunOutcome:
        """Run the predicate once.

        Args:
            inputs: Generated arguments for the predicate.
            state: Descriptor from which ``inputs`` can be rebuilt.

        Returns:
            The classified outcome of the run.
        """
        pass

    def describe(self) -> str:
        """Short label used in logs and summaries."""
        return type(self).__name__


class InlineExecutor(PredicateExecutor):
    """Runs the predicate in the calling thread."""

    def __init__(self, predicate: Callable[..., Any], timeout: Optional[float] = None):
        self.predicate = predicate
        self.timeout = timeout

    def execute(self, inputs: tuple, state: GenerationState) -> RunOutcome:
        return run_predicate(self.predicate, inputs, self.timeout)

    def describe(self) -> str:
        return "inline"


class IsolatedExecutor(PredicateExecutor):
    """Runs the predicate in a ``WorkerPool`` worker.

    With ``random_source='worker'`` only the generation descriptor is sent
    and the worker rebuilds the inputs; with ``'main'`` the inputs
    themselves are sent and must be picklable.
    """

    def __init__(self,
                 pool: WorkerPool,
                 predicate_id: int,
                 random_source: str = 'worker',
                 timeout: Optional[float] = None):
        if random_source not in RANDOM_SOURCES:
            raise ValueError(
                f"random_source must be one of {RANDOM_SOURCES}, got {random_source!r}"
            )
        self.pool = pool
        self.predicate_id = predicate_id
        self.random_source = random_source
        self.timeout = timeout

    def execute(self, inputs: tuple, state: GenerationState) -> RunOutcome:
        if self.random_source == 'worker':
            payload = StatePayload(state)
        else:
            payload = MainPayload(inputs)
        future = self.pool.dispatch(
            self.predicate_id, self.pool.next_run_id(), payload, self.timeout,
        )
        return future.result()

    def describe(self) -> str:
        return f"isolated[{self.random_source}]"


def get_executor(prop: Property,
                 timeout: Optional[float] = None,
                 worker_pool: Optional[WorkerPool] = None,
                 random_source: str = 'worker') -> PredicateExecutor:
    """Get the executor for a property.

    Factory function returning an inline executor, or an isolated one
    registered on ``worker_pool`` when a pool is given.

    Args:
        prop: The property to execute.
        timeout: Per-run time limit in seconds.
        worker_pool: Pool to run the predicate in, or None to run inline.
        random_source: ``'worker'`` or ``'main'``, see ``IsolatedExecutor``.

    Returns:
        PredicateExecutor instance for the property.
    """
    if worker_pool is None:
        return InlineExecutor(prop.predicate, timeout)
    if random_source not in RANDOM_SOURCES:
        raise ValueError(
            f"random_source must be one of {RANDOM_SOURCES}, got {random_source!r}"
        )
    build_inputs = prop.inputs_builder() if random_source == 'worker' else None
    predicate_id = worker_pool.register(prop.predicate, build_inputs)
    return IsolatedExecutor(worker_pool, predicate_id, random_source, timeout)
