# Copyright 2026 The prop_harness Authors
# SPDX-License-Identifier: Apache-2.0

"""
Generation descriptors.

A ``GenerationState`` is everything needed to rebuild an input: the draw
seed, the size, and the shrink path followed from the drawn value.  It is
plain data, so it can cross a process boundary even when the generated
value itself cannot.
"""

from dataclasses import dataclass
from typing import Tuple

from prop_harness.core.arbitrary import Arbitrary, Value
from prop_harness.core.random_source import RandomSource


@dataclass(frozen=True)
class GenerationState:
    """Reconstructable description of one generated input."""

    seed: int
    """Seed of the draw's ``RandomSource``."""

    size: int
    """Size passed to ``Arbitrary.generate``."""

    path: Tuple[int, ...] = ()
    """Indices of the shrink candidates followed from the drawn value."""

    def child(self, index: int) -> 'GenerationState':
        """Descriptor of the ``index``-th shrink candidate of this value."""
        return GenerationState(self.seed, self.size, self.path + (index,))


def value_from_state(arbitrary: Arbitrary, state: GenerationState) -> Value:
    """
    Rebuild the value described by ``state``.

    Regenerates from the seed and size, then walks ``state.path`` through
    the shrink sequences.  Gives the same value on every call.

    Raises:
        IndexError: If the path points past the end of a shrink sequence
    """
    value = arbitrary.generate(RandomSource(state.seed), state.size)
    for index in state.path:
        value = value.shrink_at(index)
    return value


class InputsFromState:
    """
    Picklable ``build_inputs`` callable for worker processes.

    Wraps the property's tuple arbitrary and returns the predicate's
    argument tuple for a descriptor.
    """

    def __init__(self, arbitrary: Arbitrary):
        self.arbitrary = arbitrary

    def __call__(self, state: GenerationState) -> tuple:
        return value_from_state(self.arbitrary, state).value
