"""Injectable randomness for board generation and fork resolution.

Every random decision the engine makes goes through a ``RandomSource``
exposing a single ``random()`` call returning a float in ``[0, 1)``. The
integer and weighted helpers below are derived from that one operation, so
a seeded source or a scripted sequence fully determines the outcome.
"""

from __future__ import annotations

import math
import random
from collections.abc import Iterable, Sequence
from typing import Protocol, TypeVar, runtime_checkable

from branchboard.board.errors import RandomSourceExhaustedError

T = TypeVar("T")


@runtime_checkable
class RandomSource(Protocol):
    """Source of uniform floats in ``[0, 1)``."""

    def random(self) -> float: ...


class SeededRandomSource:
    """RandomSource backed by :class:`random.Random`.

    Args:
        seed: Seed for reproducible runs. ``None`` seeds from system entropy.
    """

    def __init__(self, seed: int | None = None) -> None:
        self.seed = seed
        self._rng = random.Random(seed)

    def random(self) -> float:
        return self._rng.random()

    def __repr__(self) -> str:
        return f"SeededRandomSource(seed={self.seed!r})"


class ScriptedRandomSource:
    """RandomSource that replays a fixed sequence of floats.

    Useful in tests to force specific branches of the generator or
    resolver.

    Args:
        values: Floats in ``[0, 1)`` to return in order.
        cycle: If True, restart from the beginning when exhausted instead
            of raising.

    Raises:
        ValueError: If any value lies outside ``[0, 1)``.
    """

    def __init__(self, values: Iterable[float], *, cycle: bool = False) -> None:
        self._values = list(values)
        bad = [v for v in self._values if not 0.0 <= v < 1.0]
        if bad:
            msg = f"Scripted random values must be in [0, 1), got {bad}"
            raise ValueError(msg)
        self._cycle = cycle
        self._index = 0

    @property
    def consumed(self) -> int:
        """Number of values drawn so far."""
        return self._index

    def random(self) -> float:
        if self._index >= len(self._values):
            if not self._cycle or not self._values:
                raise RandomSourceExhaustedError(
                    f"Scripted random source exhausted after {self._index} draws"
                )
            value = self._values[self._index % len(self._values)]
        else:
            value = self._values[self._index]
        self._index += 1
        return value


def uniform_int(rng: RandomSource, low: int, high: int) -> int:
    """Draw an integer uniformly from the closed range ``[low, high]``."""
    if high < low:
        msg = f"Empty range [{low}, {high}]"
        raise ValueError(msg)
    span = high - low + 1
    # min() guards against sources that return exactly 1.0
    return low + min(span - 1, math.floor(rng.random() * span))


def choose_index(rng: RandomSource, count: int) -> int:
    """Draw an index uniformly from ``range(count)``."""
    return uniform_int(rng, 0, count - 1)


def weighted_choice(rng: RandomSource, options: Sequence[tuple[T, float]]) -> T:
    """Pick one option by cumulative weight.

    Weights need not sum to 1; the draw is scaled by their total. The last
    option absorbs any floating point remainder.
    """
    if not options:
        raise ValueError("weighted_choice requires at least one option")
    total = sum(weight for _, weight in options)
    threshold = rng.random() * total
    cumulative = 0.0
    for value, weight in options:
        cumulative += weight
        if threshold < cumulative:
            return value
    return options[-1][0]


def ensure_random_source(rng: RandomSource | None, seed: int | None = None) -> RandomSource:
    """Return ``rng`` or a seeded source if none was supplied."""
    if rng is not None:
        return rng
    return SeededRandomSource(seed)
