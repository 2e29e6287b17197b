# Copyright 2026 The prop_harness Authors
# SPDX-License-Identifier: Apache-2.0

"""Properties: arbitraries bound to the predicate they feed."""

from typing import Any, Callable

from prop_harness.core.arbitrary import Arbitrary, TupleArbitrary, Value
from prop_harness.core.random_source import RandomSource
from prop_harness.core.state import InputsFromState


class Property:
    """
    A predicate expected to hold for every input drawn from its arbitraries.

    The predicate receives one positional argument per arbitrary.  It fails
    by returning ``False`` or raising; it may be ``async``.
    """

    def __init__(self, arbitraries, predicate: Callable[..., Any]):
        arbitraries = tuple(arbitraries)
        if not arbitraries:
            raise ValueError("A property needs at least one arbitrary")
        for arb in arbitraries:
            if not isinstance(arb, Arbitrary):
                raise TypeError(f"Expected an Arbitrary, got {arb!r}")
        if not callable(predicate):
            raise TypeError(f"Predicate must be callable, got {predicate!r}")
        self.arbitrary = TupleArbitrary(arbitraries)
        self.predicate = predicate

    def generate(self, random: RandomSource, size: int) -> Value[tuple]:
        """Draw the predicate's argument tuple."""
        return self.arbitrary.generate(random, size)

    def inputs_builder(self) -> InputsFromState:
        """Picklable callable rebuilding inputs from a ``GenerationState``."""
        return InputsFromState(self.arbitrary)

    def __repr__(self) -> str:
        name = getattr(self.predicate, '__name__', repr(self.predicate))
        return f"Property({name}, arity={len(self.arbitrary.arbitraries)})"


def property_of(*args) -> Property:
    """
    Build a ``Property`` from arbitraries followed by the predicate.

    Example::

        prop = property_of(integer(0, 100), integer(0, 100), lambda a, b: a + b >= a)
    """
    if len(args) < 2:
        raise TypeError("property_of expects one or more arbitraries and a predicate")
    *arbitraries, predicate = args
    return Property(arbitraries, predicate)
