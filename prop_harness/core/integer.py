# Copyright 2026 The prop_harness Authors
# SPDX-License-Identifier: Apache-2.0

"""
Bounded integer arbitrary.

Example::

    integer()                               # any 32-bit signed integer
    integer(min_value=-99, max_value=99)
    integer(min_value=65536)                # 65536 .. 2**31 - 1
"""

from dataclasses import dataclass
from typing import Iterator, Optional

from prop_harness.core.arbitrary import Arbitrary, Value
from prop_harness.core.errors import ConstraintError
from prop_harness.core.random_source import RandomSource

DEFAULT_MIN = -0x80000000
DEFAULT_MAX = 0x7FFFFFFF

DEFAULT_CORNER_BIAS = 0.125
"""Fraction of draws steered to corner values (0, min, max, min+1, max-1)."""


def _is_integer(bound) -> bool:
    return isinstance(bound, int) and not isinstance(bound, bool)


@dataclass(frozen=True)
class IntegerConstraints:
    """Inclusive bounds of an ``IntegerArbitrary``."""

    min: int = DEFAULT_MIN
    """Lower bound (inclusive)."""

    max: int = DEFAULT_MAX
    """Upper bound (inclusive)."""


class IntegerArbitrary(Arbitrary[int]):
    """
    Integers between ``min_value`` and ``max_value`` (both included).

    Generation is biased toward corner values; shrinking converges toward
    ``target``, the in-range value nearest to zero.
    """

    def __init__(
        self,
        min_value: int,
        max_value: int,
        corner_bias: float = DEFAULT_CORNER_BIAS,
    ):
        if not _is_integer(min_value):
            raise ConstraintError("integer minimum value should be an integer")
        if not _is_integer(max_value):
            raise ConstraintError("integer maximum value should be an integer")
        if min_value > max_value:
            raise ConstraintError(
                "integer maximum value should be equal or greater than the minimum one"
            )
        if isinstance(corner_bias, bool) or not isinstance(corner_bias, (int, float)):
            raise ConstraintError("integer corner bias should be a number")
        if not 0.0 <= corner_bias <= 1.0:
            raise ConstraintError(
                f"integer corner bias should be within [0, 1], got {corner_bias}"
            )

        self.constraints = IntegerConstraints(min=min_value, max=max_value)
        self.corner_bias = corner_bias

        if min_value <= 0 <= max_value:
            self.target = 0
        elif min_value > 0:
            self.target = min_value
        else:
            self.target = max_value

        candidates = (0, min_value, max_value, min_value + 1, max_value - 1)
        self.corners = tuple(dict.fromkeys(
            c for c in candidates if min_value <= c <= max_value
        ))

    @property
    def min_value(self) -> int:
        return self.constraints.min

    @property
    def max_value(self) -> int:
        return self.constraints.max

    def generate(self, random: RandomSource, size: int) -> Value[int]:
        if self.corner_bias > 0 and random.next_double() < self.corner_bias:
            drawn = self.corners[random.next_int(0, len(self.corners) - 1)]
        else:
            drawn = random.next_int_sized(
                self.min_value, self.max_value, size, center=self.target,
            )
        return self._value_of(drawn)

    def _value_of(self, current: int) -> Value[int]:
        return Value(current, lambda: self._shrink(current))

    def _shrink(self, current: int) -> Iterator[Value[int]]:
        """Yield ``target``, then values halving the remaining gap."""
        gap = current - self.target
        if gap == 0:
            return
        sign = 1 if gap > 0 else -1
        yield self._value_of(self.target)
        to_remove = abs(gap) // 2
        while to_remove > 0:
            yield self._value_of(current - sign * to_remove)
            to_remove //= 2

    def __repr__(self) -> str:
        return f"IntegerArbitrary(min={self.min_value}, max={self.max_value})"


def integer(
    min_value: Optional[int] = None,
    max_value: Optional[int] = None,
    *,
    corner_bias: float = DEFAULT_CORNER_BIAS,
) -> IntegerArbitrary:
    """
    Build an arbitrary for integers between ``min_value`` and ``max_value``.

    Args:
        min_value: Lower bound (inclusive), defaults to ``-2**31``
        max_value: Upper bound (inclusive), defaults to ``2**31 - 1``
        corner_bias: Fraction of draws steered to corner values

    Raises:
        ConstraintError: On non-integer bounds, ``min_value > max_value`` or
            a corner bias outside ``[0, 1]``
    """
    return IntegerArbitrary(
        DEFAULT_MIN if min_value is None else min_value,
        DEFAULT_MAX if max_value is None else max_value,
        corner_bias=corner_bias,
    )
