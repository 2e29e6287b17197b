# Copyright 2026 The prop_harness Authors
# SPDX-License-Identifier: Apache-2.0

"""Generation, shrinking and predicate-execution primitives."""

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
    DEFAULT_MAX,
    DEFAULT_MIN,
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

__all__ = [
    'MAX_SIZE',
    'RandomSource',
    'derive_seed',
    'Arbitrary',
    'TupleArbitrary',
    'Value',
    'tuple_of',
    'DEFAULT_CORNER_BIAS',
    'DEFAULT_MAX',
    'DEFAULT_MIN',
    'IntegerArbitrary',
    'IntegerConstraints',
    'integer',
    'GenerationState',
    'InputsFromState',
    'value_from_state',
    'ConstraintError',
    'PreconditionSkip',
    'PropertyFailure',
    'PropHarnessError',
    'pre',
    'ErrorInfo',
    'OutcomeKind',
    'RunOutcome',
    'run_predicate',
]
