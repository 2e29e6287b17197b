#!/usr/bin/env python3
# Copyright 2026 John Vial
# SPDX-License-Identifier: Apache-2.0

"""
Tests for worker pool module.

These start real worker processes.  Predicates live at module level so
they can be pickled under every start method.
"""

import multiprocessing
import os
import time

import pytest

from prop_harness.core.integer import integer
from prop_harness.core.outcome import OutcomeKind
from prop_harness.runner.config import RunnerConfig
from prop_harness.runner.property import property_of
from prop_harness.runner.runner import RunStatus, check
from prop_harness.worker.messages import MainPayload, ResultMessage
from prop_harness.worker.pool import WorkerPool


def double(x):
    return x * 2


def slow_double(x):
    time.sleep(0.05)
    return x * 2


def hangs(x):
    time.sleep(60)


def sleeps_for(seconds):
    time.sleep(seconds)
    return seconds


def crashes(x):
    os._exit(3)


def below_fifty(x):
    return x < 50


@pytest.fixture
def pool():
    with WorkerPool(max_workers=1) as worker_pool:
        yield worker_pool


class TestWorkerPool:
    """Tests for dispatching runs to worker processes."""

    def test_single_run(self, pool):
        """A dispatched run resolves with the predicate output."""
        predicate_id = pool.register(double)

        outcome = pool.dispatch(predicate_id, pool.next_run_id(), MainPayload((21,))).result(10)

        assert outcome.kind == OutcomeKind.SUCCESS
        assert outcome.output == 42

    def test_correlation_single_worker(self, pool):
        """Queued runs are answered in order, each with its own result."""
        predicate_id = pool.register(slow_double)

        futures = [
            pool.dispatch(predicate_id, pool.next_run_id(), MainPayload((i,)))
            for i in range(5)
        ]

        assert [f.result(10).output for f in futures] == [0, 2, 4, 6, 8]
        assert pool.active_workers(predicate_id) == 1

    def test_correlation_several_workers(self):
        """With several workers every future still gets its own result."""
        with WorkerPool(max_workers=2) as pool:
            predicate_id = pool.register(slow_double)
            futures = {
                i: pool.dispatch(predicate_id, pool.next_run_id(), MainPayload((i,)))
                for i in range(6)
            }

            assert {i: f.result(10).output for i, f in futures.items()} == \
                {i: i * 2 for i in range(6)}
            assert pool.active_workers(predicate_id) <= 2

    def test_separate_predicates(self, pool):
        """Each predicate has its own workers."""
        first = pool.register(double)
        second = pool.register(below_fifty)

        a = pool.dispatch(first, pool.next_run_id(), MainPayload((5,)))
        b = pool.dispatch(second, pool.next_run_id(), MainPayload((70,)))

        assert a.result(10).output == 10
        assert b.result(10).kind == OutcomeKind.PREDICATE_FAILURE

    def test_timeout(self, pool):
        """A run exceeding its timeout resolves as TIMEOUT and its worker is stopped."""
        predicate_id = pool.register(hangs)

        start = time.monotonic()
        outcome = pool.dispatch(
            predicate_id, pool.next_run_id(), MainPayload((1,)), timeout=0.5,
        ).result(20)

        assert outcome.kind == OutcomeKind.TIMEOUT
        assert time.monotonic() - start < 20
        assert pool.active_workers(predicate_id) == 0

    def test_worker_restarted_after_timeout(self, pool):
        """The next run after a timeout gets a fresh worker."""
        predicate_id = pool.register(sleeps_for)

        first = pool.dispatch(
            predicate_id, pool.next_run_id(), MainPayload((60,)), timeout=0.3,
        ).result(20)
        second = pool.dispatch(
            predicate_id, pool.next_run_id(), MainPayload((0,)), timeout=10,
        ).result(20)

        assert first.kind == OutcomeKind.TIMEOUT
        assert second.kind == OutcomeKind.SUCCESS
        assert second.output == 0

    def test_crash(self, pool):
        """A worker that exits mid-run resolves as WORKER_CRASH."""
        predicate_id = pool.register(crashes)

        outcome = pool.dispatch(predicate_id, pool.next_run_id(), MainPayload((1,))).result(20)

        assert outcome.kind == OutcomeKind.WORKER_CRASH
        assert "exit code 3" in outcome.error.message

    def test_unknown_predicate(self, pool):
        with pytest.raises(ValueError, match="Unknown predicate"):
            pool.dispatch(999, pool.next_run_id(), MainPayload((1,)))

    def test_run_id_in_flight(self, pool):
        """A run id cannot be reused while its run is pending."""
        predicate_id = pool.register(slow_double)
        run_id = pool.next_run_id()
        future = pool.dispatch(predicate_id, run_id, MainPayload((1,)))

        with pytest.raises(ValueError, match="already in flight"):
            pool.dispatch(predicate_id, run_id, MainPayload((2,)))
        assert future.result(10).output == 2

    def test_non_positive_timeout(self, pool):
        predicate_id = pool.register(double)

        with pytest.raises(ValueError):
            pool.dispatch(predicate_id, pool.next_run_id(), MainPayload((1,)), timeout=0)

    def test_closed_pool(self):
        pool = WorkerPool()
        predicate_id = pool.register(double)
        pool.close()

        with pytest.raises(RuntimeError):
            pool.dispatch(predicate_id, pool.next_run_id(), MainPayload((1,)))
        with pytest.raises(RuntimeError):
            pool.register(double)

    def test_unregister(self, pool):
        predicate_id = pool.register(double)
        pool.dispatch(predicate_id, pool.next_run_id(), MainPayload((1,))).result(10)

        pool.unregister(predicate_id)

        assert pool.active_workers(predicate_id) == 0
        with pytest.raises(ValueError):
            pool.dispatch(predicate_id, pool.next_run_id(), MainPayload((1,)))

    def test_invalid_max_workers(self):
        with pytest.raises(ValueError):
            WorkerPool(max_workers=0)

    @pytest.mark.skipif(
        'forkserver' not in multiprocessing.get_all_start_methods(),
        reason="forkserver not available on this platform",
    )
    def test_default_start_method(self):
        """Workers are not forked from the threaded orchestrator by default."""
        with WorkerPool() as pool:
            assert pool._context.get_start_method() == 'forkserver'

    def test_explicit_start_method(self):
        with WorkerPool(start_method='spawn') as pool:
            assert pool._context.get_start_method() == 'spawn'


class TestResponseCorrelation:
    """Tests for discarding responses that do not answer the current run."""

    def test_mismatched_run_id_discarded(self, pool):
        """A response for another run id leaves the current run pending."""
        predicate_id = pool.register(sleeps_for)
        run_id = pool.next_run_id()
        future = pool.dispatch(predicate_id, run_id, MainPayload((1,)))
        worker = pool._registrations[predicate_id].workers[0]

        pool._on_result(worker, ResultMessage(run_id=run_id + 1000, success=False))

        assert not future.done()
        assert worker.current.run_id == run_id
        outcome = future.result(10)
        assert outcome.kind == OutcomeKind.SUCCESS
        assert outcome.output == 1

    def test_late_response_after_timeout_discarded(self, pool):
        """A response arriving after its run timed out does not change the outcome."""
        predicate_id = pool.register(sleeps_for)
        run_id = pool.next_run_id()
        future = pool.dispatch(predicate_id, run_id, MainPayload((60,)), timeout=0.3)
        worker = pool._registrations[predicate_id].workers[0]

        assert future.result(20).kind == OutcomeKind.TIMEOUT

        pool._on_result(worker, ResultMessage(run_id=run_id, success=True, output=60))

        assert future.result().kind == OutcomeKind.TIMEOUT
        assert worker.current is None
        assert pool.active_workers(predicate_id) == 0


class TestIsolatedCheck:
    """Tests for running whole checks through a pool."""

    @pytest.mark.parametrize("random_source", ["worker", "main"])
    def test_shrinks_in_workers(self, pool, random_source):
        """Isolated checks find the same counterexample as inline ones."""
        prop = property_of(integer(0, 100), below_fifty)
        config = RunnerConfig(seed=42)

        inline = check(prop, config=config)
        isolated = check(prop, config=config, worker_pool=pool, random_source=random_source)

        assert isolated.status == RunStatus.FAILED
        assert isolated.shrunk_input == inline.shrunk_input == (50,)
        assert isolated.executor == f"isolated[{random_source}]"

    def test_predicate_unregistered_after_check(self, pool):
        prop = property_of(integer(0, 100), below_fifty)

        check(prop, config=RunnerConfig(seed=42, num_runs=5), worker_pool=pool)

        assert pool._registrations == {}

    def test_timeout_check(self, pool):
        """A hanging predicate ends the check with TIMEOUT."""
        prop = property_of(integer(), hangs)

        details = check(prop, config=RunnerConfig(seed=1, timeout=0.5), worker_pool=pool)

        assert details.status == RunStatus.TIMEOUT
        assert details.num_shrinks == 0

    def test_crash_check(self, pool):
        """A crashing predicate ends the check with WORKER_CRASH."""
        prop = property_of(integer(), crashes)

        details = check(prop, config=RunnerConfig(seed=1), worker_pool=pool)

        assert details.status == RunStatus.WORKER_CRASH
        assert details.shrunk_input == details.original_input

    def test_invalid_random_source(self, pool):
        prop = property_of(integer(), below_fifty)

        with pytest.raises(ValueError):
            check(prop, config=RunnerConfig(seed=1), worker_pool=pool, random_source="other")
        assert pool._registrations == {}


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
