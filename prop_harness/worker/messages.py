# Copyright 2026 The prop_harness Authors
# SPDX-License-Identifier: Apache-2.0

"""
Messages exchanged between the orchestrator and worker processes.

Orchestrator → worker: ``RunMessage`` addressed to one predicate id.
Worker → orchestrator: ``ResultMessage`` tagged with the run id it answers.

The payload either carries the inputs themselves (``MainPayload``) or a
``GenerationState`` from which the worker rebuilds them (``StatePayload``).
"""

from dataclasses import dataclass
from typing import Any, ClassVar, Optional, Union

from prop_harness.core.errors import PreconditionSkip
from prop_harness.core.outcome import ErrorInfo, OutcomeKind, RunOutcome
from prop_harness.core.state import GenerationState


@dataclass(frozen=True)
class MainPayload:
    """Inputs generated on the orchestrator side."""

    source: ClassVar[str] = "main"

    value: tuple
    """Positional arguments for the predicate."""


@dataclass(frozen=True)
class StatePayload:
    """Descriptor the worker uses to regenerate the inputs itself."""

    source: ClassVar[str] = "state"

    state: GenerationState


Payload = Union[MainPayload, StatePayload]


@dataclass(frozen=True)
class RunMessage:
    """Request to run the predicate registered as ``predicate_id`` once."""

    predicate_id: int
    run_id: int
    payload: Payload


_SKIP_TYPE_NAME = PreconditionSkip.__name__


@dataclass(frozen=True)
class ResultMessage:
    """Answer to exactly one ``RunMessage``."""

    run_id: int
    success: bool
    output: Any = None
    error: Optional[ErrorInfo] = None

    @staticmethod
    def from_outcome(run_id: int, outcome: RunOutcome) -> 'ResultMessage':
        """Encode a worker-side outcome for the wire."""
        if outcome.kind is OutcomeKind.SUCCESS:
            return ResultMessage(run_id=run_id, success=True, output=outcome.output)
        if outcome.kind is OutcomeKind.PRECONDITION_SKIP:
            return ResultMessage(
                run_id=run_id,
                success=False,
                error=ErrorInfo(_SKIP_TYPE_NAME, "Precondition not satisfied"),
            )
        return ResultMessage(run_id=run_id, success=False, error=outcome.error)

    def to_outcome(self) -> RunOutcome:
        """Decode into the orchestrator-side outcome."""
        if self.success:
            return RunOutcome.success(self.output)
        if self.error is not None and self.error.type_name == _SKIP_TYPE_NAME:
            return RunOutcome.precondition_skip()
        return RunOutcome.predicate_failure(
            self.error or ErrorInfo("PredicateFailure", "No error reported")
        )
