# Copyright 2026 The prop_harness Authors
# SPDX-License-Identifier: Apache-2.0

"""
Isolated side of the worker protocol.

A ``WorkerRunner`` is bound to one predicate id.  It reads ``RunMessage``
objects from its channel, ignores those addressed to another predicate,
runs the predicate once per accepted message and answers with exactly one
``ResultMessage`` carrying the request's run id.

The channel is anything with ``recv()`` and ``send()``; in practice one end
of a ``multiprocessing.Pipe``.
"""

import pickle
from typing import Any, Callable, Optional

import structlog

from prop_harness.core.outcome import ErrorInfo, RunOutcome, run_predicate
from prop_harness.core.state import GenerationState
from prop_harness.worker.messages import MainPayload, ResultMessage, RunMessage

logger = structlog.get_logger(__name__)

BuildInputs = Callable[[GenerationState], tuple]


class WorkerRunner:
    """Runs one registered predicate on behalf of the orchestrator."""

    def __init__(
        self,
        predicate_id: int,
        predicate: Callable[..., Any],
        build_inputs: Optional[BuildInputs] = None,
    ):
        """
        Args:
            predicate_id: Id this runner answers to
            predicate: The property predicate
            build_inputs: Rebuilds the inputs from a ``GenerationState``;
                required to accept state payloads
        """
        self.predicate_id = predicate_id
        self.predicate = predicate
        self.build_inputs = build_inputs

    def handle(self, message: RunMessage) -> Optional[ResultMessage]:
        """
        Process one message.

        Returns:
            The response, or None if the message targets another predicate
        """
        if message.predicate_id != self.predicate_id:
            return None

        payload = message.payload
        if isinstance(payload, MainPayload):
            inputs = payload.value
        else:
            try:
                inputs = self._rebuild(payload.state)
            except Exception as exc:
                return ResultMessage.from_outcome(
                    message.run_id,
                    RunOutcome.predicate_failure(ErrorInfo.from_exception(exc)),
                )

        outcome = run_predicate(self.predicate, inputs)
        return ResultMessage.from_outcome(message.run_id, outcome)

    def _rebuild(self, state: GenerationState) -> tuple:
        if self.build_inputs is None:
            raise ValueError(
                f"Predicate {self.predicate_id} received a state payload "
                "but has no build_inputs"
            )
        return tuple(self.build_inputs(state))

    def serve(self, channel) -> None:
        """
        Answer messages until the channel closes or a ``None`` arrives.

        Args:
            channel: Connection-like object with ``recv()`` and ``send()``
        """
        while True:
            try:
                message = channel.recv()
            except EOFError:
                break
            if message is None:
                break

            response = self.handle(message)
            if response is None:
                continue
            self._respond(channel, response)

    def _respond(self, channel, response: ResultMessage) -> None:
        try:
            channel.send(response)
        except (pickle.PicklingError, TypeError, AttributeError) as exc:
            # Output that cannot cross the boundary is reported, not dropped
            logger.warning(
                "Predicate output could not be sent",
                predicate_id=self.predicate_id,
                run_id=response.run_id,
                error=str(exc),
            )
            channel.send(ResultMessage(
                run_id=response.run_id,
                success=False,
                error=ErrorInfo.from_exception(exc),
            ))


def run_worker(
    channel,
    predicate_id: int,
    predicate: Callable[..., Any],
    build_inputs: Optional[BuildInputs] = None,
) -> None:
    """
    Serve ``predicate`` on ``channel`` until shut down.

    Entry point of worker processes started by ``WorkerPool``.
    """
    WorkerRunner(predicate_id, predicate, build_inputs).serve(channel)
