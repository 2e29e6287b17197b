# Copyright 2026 The prop_harness Authors
# SPDX-License-Identifier: Apache-2.0

"""
Property runner module: generate inputs, run the predicate, shrink failures.

Usage:
    from prop_harness import integer, property_of, assert_property

    assert_property(property_of(integer(0, 100), lambda x: x < 50))
"""

from prop_harness.runner.config import (
    RunnerConfig,
    get_runner_config,
)
from prop_harness.runner.property import (
    Property,
    property_of,
)
from prop_harness.runner.executors import (
    PredicateExecutor,
    InlineExecutor,
    IsolatedExecutor,
    get_executor,
)
from prop_harness.runner.runner import (
    PropertyRunner,
    RunDetails,
    RunStatus,
    assert_property,
    async_check,
    check,
    format_path,
    parse_path,
)

__all__ = [
    'RunnerConfig',
    'get_runner_config',
    'Property',
    'property_of',
    'PredicateExecutor',
    'InlineExecutor',
    'IsolatedExecutor',
    'get_executor',
    'PropertyRunner',
    'RunDetails',
    'RunStatus',
    'assert_property',
    'async_check',
    'check',
    'format_path',
    'parse_path',
]
