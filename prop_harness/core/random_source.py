# Copyright 2026 The prop_harness Authors
# SPDX-License-Identifier: Apache-2.0

"""
Deterministic seeded random stream.

Every run of a property gets its own ``RandomSource``, seeded from
``derive_seed(root_seed, draw_index)``.  Nothing is shared between runs, so
scheduling order never affects which values are generated.
"""

import random

MAX_SIZE = 100
"""Largest meaningful ``size``; at this size the whole range is sampled."""

_UINT32_BITS = 32
_UINT32_RANGE = 1 << _UINT32_BITS
_MASK64 = (1 << 64) - 1


def derive_seed(root_seed: int, index: int) -> int:
    """
    Mix a root seed and a draw index into an independent 64-bit seed.

    Uses the splitmix64 finaliser, so neighbouring indices give unrelated
    streams.

    Args:
        root_seed: Seed of the whole property run (any integer)
        index: Draw index, starting at 0

    Returns:
        Non-negative 64-bit seed for the draw
    """
    z = (root_seed + 0x9E3779B97F4A7C15 * (index + 1)) & _MASK64
    z = ((z ^ (z >> 30)) * 0xBF58476D1CE4E5B9) & _MASK64
    z = ((z ^ (z >> 27)) * 0x94D049BB133111EB) & _MASK64
    return z ^ (z >> 31)


class RandomSource:
    """
    Seeded stream of uniform draws.

    Two sources built from the same seed produce the same stream.
    """

    def __init__(self, seed: int):
        self.seed = seed
        self._rng = random.Random(seed)

    def next_uint32(self) -> int:
        """Uniform integer in ``[0, 2**32)``."""
        return self._rng.getrandbits(_UINT32_BITS)

    def next_double(self) -> float:
        """Uniform float in ``[0, 1)`` with 53 bits of precision."""
        high = self.next_uint32() >> 5
        low = self.next_uint32() >> 6
        return (high * 67108864.0 + low) / 9007199254740992.0

    def next_int(self, min_value: int, max_value: int) -> int:
        """
        Uniform integer in ``[min_value, max_value]`` without modulo bias.

        Draws whole 32-bit words and rejects the incomplete tail, so ranges
        wider than 32 bits are supported as well.

        Raises:
            ValueError: If ``min_value > max_value``
        """
        if min_value > max_value:
            raise ValueError(
                f"Invalid range: min {min_value} is greater than max {max_value}"
            )
        span = max_value - min_value + 1
        if span == 1:
            return min_value

        words = 1
        while (1 << (_UINT32_BITS * words)) < span:
            words += 1
        universe = 1 << (_UINT32_BITS * words)
        limit = universe - (universe % span)

        while True:
            drawn = 0
            for _ in range(words):
                drawn = (drawn << _UINT32_BITS) | self.next_uint32()
            if drawn < limit:
                return min_value + drawn % span

    def next_int_sized(
        self,
        min_value: int,
        max_value: int,
        size: int,
        center: int,
    ) -> int:
        """
        Uniform integer from a window around ``center`` scaled by ``size``.

        The window radius grows exponentially with ``size``: small sizes stay
        close to ``center``, ``MAX_SIZE`` reaches both bounds.

        Args:
            min_value: Lower bound (inclusive)
            max_value: Upper bound (inclusive)
            size: Magnitude parameter in ``[0, MAX_SIZE]``, larger is clamped
            center: Point the window is centered on, within the bounds

        Raises:
            ValueError: On a negative size, inverted bounds or an
                out-of-range center
        """
        if size < 0:
            raise ValueError(f"size must be >= 0, got {size}")
        if not min_value <= center <= max_value:
            raise ValueError(
                f"center {center} is outside [{min_value}, {max_value}]"
            )
        size = min(size, MAX_SIZE)

        max_distance = max(center - min_value, max_value - center)
        if size == MAX_SIZE:
            radius = max_distance
        else:
            bits = max_distance.bit_length()
            scaled_bits = -(-bits * size // MAX_SIZE)
            radius = min(max_distance, (1 << scaled_bits) - 1)

        low = max(min_value, center - radius)
        high = min(max_value, center + radius)
        return self.next_int(low, high)
