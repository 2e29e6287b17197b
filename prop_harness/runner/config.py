# Copyright 2026 The prop_harness Authors
# SPDX-License-Identifier: Apache-2.0

"""
Run policy for property checks.

``RunnerConfig`` holds the knobs of one check: how many runs, which seed,
which sizes, how hard to shrink.  ``get_runner_config`` layers environment
overrides under explicit arguments so CI can change the policy without
touching test code:

- ``PROP_HARNESS_NUM_RUNS``: number of runs
- ``PROP_HARNESS_SEED``: root seed, to replay a reported failure
- ``PROP_HARNESS_MAX_SHRINKS``: shrink budget
- ``PROP_HARNESS_NIGHTLY``: ``1``/``true``/``yes`` multiplies runs by 10
"""

import os
from dataclasses import dataclass, replace
from typing import Callable, Optional, Union

from prop_harness.core.random_source import MAX_SIZE

SizeSchedule = Union[int, Callable[[int], int]]

NIGHTLY_FACTOR = 10


@dataclass(frozen=True)
class RunnerConfig:
    """Configuration of one property check."""

    num_runs: int = 100
    """Number of non-skipped runs to perform."""

    seed: Optional[int] = None
    """Root seed; None picks a fresh one, reported in the run details."""

    size: SizeSchedule = MAX_SIZE
    """Fixed size, or a callable mapping the draw index to a size."""

    max_shrinks: int = 1000
    """Maximum number of adopted shrink steps."""

    max_skips_per_run: int = 100
    """Skips tolerated per requested run before giving up."""

    timeout: Optional[float] = None
    """Per-run time limit in seconds (async and isolated predicates)."""

    path: Optional[str] = None
    """Counterexample path to replay, as reported by a previous failure."""

    verbose: bool = False
    """Print the run summary when the check ends."""

    def __post_init__(self):
        if self.num_runs < 1:
            raise ValueError(f"num_runs must be >= 1, got {self.num_runs}")
        if self.max_shrinks < 0:
            raise ValueError(f"max_shrinks must be >= 0, got {self.max_shrinks}")
        if self.max_skips_per_run < 0:
            raise ValueError(
                f"max_skips_per_run must be >= 0, got {self.max_skips_per_run}"
            )
        if self.timeout is not None and self.timeout <= 0:
            raise ValueError(f"timeout must be > 0, got {self.timeout}")
        if self.path is not None and self.seed is None:
            raise ValueError("Replaying a path requires the seed it was reported with")

    def size_for(self, draw_index: int) -> int:
        """Size to use for the given draw."""
        if callable(self.size):
            return self.size(draw_index)
        return self.size


def _env_int(name: str) -> Optional[int]:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == '':
        return None
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")


def get_runner_config(**overrides) -> RunnerConfig:
    """
    Build a ``RunnerConfig`` from defaults, environment, then ``overrides``.

    Args:
        **overrides: Any ``RunnerConfig`` field; None values are ignored

    Returns:
        The merged configuration
    """
    config = RunnerConfig()

    env_values = {
        'num_runs': _env_int('PROP_HARNESS_NUM_RUNS'),
        'seed': _env_int('PROP_HARNESS_SEED'),
        'max_shrinks': _env_int('PROP_HARNESS_MAX_SHRINKS'),
    }
    config = replace(config, **{k: v for k, v in env_values.items() if v is not None})
    config = replace(config, **{k: v for k, v in overrides.items() if v is not None})

    is_nightly = os.environ.get(
        'PROP_HARNESS_NIGHTLY', ''
    ).lower() in ('1', 'true', 'yes')
    if is_nightly:
        config = replace(config, num_runs=config.num_runs * NIGHTLY_FACTOR)

    return config
