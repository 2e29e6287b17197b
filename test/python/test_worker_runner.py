#!/usr/bin/env python3
# Copyright 2026 John Vial
# SPDX-License-Identifier: Apache-2.0

"""Unit tests for worker runner module."""

import pickle
from collections import deque

import pytest

from prop_harness.core.arbitrary import tuple_of
from prop_harness.core.errors import pre
from prop_harness.core.integer import integer
from prop_harness.core.outcome import OutcomeKind
from prop_harness.core.state import GenerationState, InputsFromState
from prop_harness.worker.messages import (
    MainPayload,
    ResultMessage,
    RunMessage,
    StatePayload,
)
from prop_harness.worker.worker_runner import WorkerRunner, run_worker


class FakeChannel:
    """In-memory channel; messages are pickled like on a real pipe."""

    def __init__(self, messages=()):
        self.inbox = deque(messages)
        self.outbox = []

    def recv(self):
        if not self.inbox:
            raise EOFError
        return self.inbox.popleft()

    def send(self, message):
        self.outbox.append(pickle.loads(pickle.dumps(message)))


def returns_nothing(x):
    return None


def is_positive(x):
    return x > 0


def raises(x):
    raise RuntimeError(f"boom {x}")


def skips(x):
    pre(False)


def returns_unpicklable(x):
    return lambda: x


class TestWorkerRunner:
    """Tests for message handling on the worker side."""

    def test_state_payload(self):
        """A state payload is rebuilt and answered with the request's run id."""
        build_inputs = InputsFromState(tuple_of(integer()))
        runner = WorkerRunner(1, returns_nothing, build_inputs)
        message = RunMessage(
            predicate_id=1,
            run_id=100,
            payload=StatePayload(GenerationState(seed=7, size=50)),
        )

        response = runner.handle(message)

        assert response == ResultMessage(run_id=100, success=True, output=None)

    def test_main_payload(self):
        """A main payload is passed to the predicate as is."""
        runner = WorkerRunner(1, is_positive)

        ok = runner.handle(RunMessage(1, 5, MainPayload((3,))))
        bad = runner.handle(RunMessage(1, 6, MainPayload((-3,))))

        assert ok.success and ok.output is True
        assert not bad.success
        assert bad.error.message == "Property returned false"

    def test_other_predicate_ignored(self):
        """Messages for another predicate id get no response."""
        runner = WorkerRunner(1, is_positive)

        assert runner.handle(RunMessage(2, 5, MainPayload((3,)))) is None

    def test_raise_reported(self):
        """A raising predicate is reported with its error details."""
        runner = WorkerRunner(1, raises)

        response = runner.handle(RunMessage(1, 9, MainPayload((4,))))

        assert not response.success
        assert response.error.type_name == "RuntimeError"
        assert response.error.message == "boom 4"
        assert response.to_outcome().kind == OutcomeKind.PREDICATE_FAILURE

    def test_skip_round_trip(self):
        """A skip crosses the wire and decodes back to a skip."""
        runner = WorkerRunner(1, skips)

        response = runner.handle(RunMessage(1, 9, MainPayload((4,))))

        assert not response.success
        assert response.to_outcome().kind == OutcomeKind.PRECONDITION_SKIP

    def test_state_without_builder(self):
        """A state payload without build_inputs is a failure, not a crash."""
        runner = WorkerRunner(1, returns_nothing)

        response = runner.handle(
            RunMessage(1, 3, StatePayload(GenerationState(seed=1, size=10)))
        )

        assert not response.success
        assert "build_inputs" in response.error.message

    def test_bad_state_path(self):
        """A state whose path cannot be followed is a failure."""
        runner = WorkerRunner(1, returns_nothing, InputsFromState(tuple_of(integer(0, 0))))

        response = runner.handle(
            RunMessage(1, 3, StatePayload(GenerationState(seed=1, size=10, path=(0,))))
        )

        assert not response.success
        assert response.error.type_name == "IndexError"


class TestServe:
    """Tests for the serve loop."""

    def test_correlation(self):
        """Each accepted message gets exactly one response with its run id."""
        channel = FakeChannel([
            RunMessage(1, 10, MainPayload((1,))),
            RunMessage(2, 11, MainPayload((1,))),
            RunMessage(1, 12, MainPayload((-1,))),
        ])

        WorkerRunner(1, is_positive).serve(channel)

        assert [r.run_id for r in channel.outbox] == [10, 12]
        assert [r.success for r in channel.outbox] == [True, False]

    def test_none_stops(self):
        """A None message ends the loop before later messages."""
        channel = FakeChannel([
            RunMessage(1, 10, MainPayload((1,))),
            None,
            RunMessage(1, 11, MainPayload((1,))),
        ])

        WorkerRunner(1, is_positive).serve(channel)

        assert [r.run_id for r in channel.outbox] == [10]
        assert len(channel.inbox) == 1

    def test_unpicklable_output(self):
        """Output that cannot be sent is reported as a failure."""
        channel = FakeChannel([RunMessage(1, 10, MainPayload((1,)))])

        WorkerRunner(1, returns_unpicklable).serve(channel)

        assert len(channel.outbox) == 1
        assert channel.outbox[0].run_id == 10
        assert not channel.outbox[0].success

    def test_run_worker(self):
        """run_worker serves until the channel closes."""
        channel = FakeChannel([RunMessage(4, 1, MainPayload((2,)))])

        run_worker(channel, 4, is_positive)

        assert channel.outbox == [ResultMessage(run_id=1, success=True, output=True)]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
