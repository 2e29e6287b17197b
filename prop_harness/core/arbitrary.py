# Copyright 2026 The prop_harness Authors
# SPDX-License-Identifier: Apache-2.0

"""
Generation and shrinking abstraction.

An ``Arbitrary`` knows how to draw a ``Value`` from a ``RandomSource``.  A
``Value`` pairs the drawn object with a lazy, restartable shrink sequence:
calling ``shrink()`` twice yields two independent iterators over the same
candidates, each strictly simpler than the value itself.

Example::

    arb = tuple_of(integer(min_value=0, max_value=10), integer())
    value = arb.generate(RandomSource(42), size=50)
    first_candidate = next(value.shrink(), None)
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from itertools import islice
from typing import Callable, Generic, Iterator, Optional, Sequence, Tuple, TypeVar

from prop_harness.core.random_source import RandomSource

T = TypeVar('T')


@dataclass(frozen=True)
class Value(Generic[T]):
    """A generated value together with its shrink capability."""

    value: T
    """The generated object handed to the predicate."""

    shrinker: Optional[Callable[[], Iterator['Value[T]']]] = field(
        default=None, repr=False, compare=False,
    )
    """Zero-argument callable producing a fresh iterator of candidates."""

    def shrink(self) -> Iterator['Value[T]']:
        """Return a new lazy iterator over strictly simpler candidates."""
        if self.shrinker is None:
            return iter(())
        return self.shrinker()

    def shrink_at(self, index: int) -> 'Value[T]':
        """
        Return the ``index``-th shrink candidate.

        Raises:
            IndexError: If the shrink sequence has no such candidate
        """
        if index < 0:
            raise IndexError(f"Shrink index must be >= 0, got {index}")
        for candidate in islice(self.shrink(), index, index + 1):
            return candidate
        raise IndexError(f"No shrink candidate at index {index}")


class Arbitrary(ABC, Generic[T]):
    """Generator of random values for one domain, with shrinking."""

    @abstractmethod
    def generate(self, random: RandomSource, size: int) -> Value[T]:
        """
        Draw one value.

        Args:
            random: Source of randomness; the only source allowed
            size: Magnitude hint in ``[0, MAX_SIZE]``

        Returns:
            The drawn value and its shrink capability
        """


class TupleArbitrary(Arbitrary[Tuple]):
    """
    Tuple of independently drawn components.

    Shrinks one component at a time, leftmost first, keeping the other
    components fixed.
    """

    def __init__(self, arbitraries: Sequence[Arbitrary]):
        self.arbitraries = tuple(arbitraries)

    def generate(self, random: RandomSource, size: int) -> Value[Tuple]:
        parts = tuple(arb.generate(random, size) for arb in self.arbitraries)
        return self._value_of(parts)

    def _value_of(self, parts: Tuple[Value, ...]) -> Value[Tuple]:
        return Value(
            tuple(part.value for part in parts),
            lambda: self._shrink(parts),
        )

    def _shrink(self, parts: Tuple[Value, ...]) -> Iterator[Value[Tuple]]:
        for index, part in enumerate(parts):
            for candidate in part.shrink():
                yield self._value_of(
                    parts[:index] + (candidate,) + parts[index + 1:]
                )


def tuple_of(*arbitraries: Arbitrary) -> TupleArbitrary:
    """Combine several arbitraries into one producing tuples."""
    return TupleArbitrary(arbitraries)
