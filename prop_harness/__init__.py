# Copyright 2026 The prop_harness Authors
# SPDX-License-Identifier: Apache-2.0

"""
prop_harness - Property-based testing with shrinking and isolated workers.

Provides:
- Seeded, reproducible generation (RandomSource, Arbitrary, Value)
- A bounded integer arbitrary biased toward corner values
- A runner that shrinks failing inputs to a minimal counterexample
- Worker processes for predicates that may hang or crash

Example usage:
    from prop_harness import integer, property_of, assert_property, WorkerPool

    def below_fifty(x):
        return x < 50

    # Raises PropertyFailure with counterexample (50,)
    assert_property(property_of(integer(0, 100), below_fifty), seed=42)

    # Same check, each run in a worker process with a 5 s limit
    with WorkerPool() as pool:
        assert_property(
            property_of(integer(0, 100), below_fifty),
            worker_pool=pool,
            timeout=5.0,
        )
"""

from prop_harness.core.random_source import (
    MAX_SIZE,
    RandomSource,
    derive_seed,
)
from prop_harness.core.arbitrary import (
    Arbitrary,
    TupleArbitrary,
    Value,
    tuple_of,
)
from prop_harness.core.integer import (
    DEFAULT_CORNER_BIAS,
    IntegerArbitrary,
    IntegerConstraints,
    integer,
)
from prop_harness.core.state import (
    GenerationState,
    InputsFromState,
    value_from_state,
)
from prop_harness.core.errors import (
    ConstraintError,
    PreconditionSkip,
    PropertyFailure,
    PropHarnessError,
    pre,
)
from prop_harness.core.outcome import (
    ErrorInfo,
    OutcomeKind,
    RunOutcome,
    run_predicate,
)

from prop_harness.runner.config import (
    RunnerConfig,
    get_runner_config,
)
from prop_harness.runner.property import (
    Property,
    property_of,
)
from prop_harness.runner.runner import (
    PropertyRunner,
    RunDetails,
    RunStatus,
    assert_property,
    async_check,
    check,
)

from prop_harness.worker.messages import (
    MainPayload,
    ResultMessage,
    RunMessage,
    StatePayload,
)
from prop_harness.worker.worker_runner import (
    WorkerRunner,
    run_worker,
)
from prop_harness.worker.pool import WorkerPool

__all__ = [
    # Generation
    'MAX_SIZE',
    'RandomSource',
    'derive_seed',
    'Arbitrary',
    'TupleArbitrary',
    'Value',
    'tuple_of',
    'DEFAULT_CORNER_BIAS',
    'IntegerArbitrary',
    'IntegerConstraints',
    'integer',
    'GenerationState',
    'InputsFromState',
    'value_from_state',
    # Errors
    'ConstraintError',
    'PreconditionSkip',
    'PropertyFailure',
    'PropHarnessError',
    'pre',
    # Outcomes
    'ErrorInfo',
    'OutcomeKind',
    'RunOutcome',
    'run_predicate',
    # Runner
    'RunnerConfig',
    'get_runner_config',
    'Property',
    'property_of',
    'PropertyRunner',
    'RunDetails',
    'RunStatus',
    'assert_property',
    'async_check',
    'check',
    # Worker protocol
    'MainPayload',
    'ResultMessage',
    'RunMessage',
    'StatePayload',
    'WorkerRunner',
    'run_worker',
    'WorkerPool',
]
