# utils/rng.py
from __future__ import annotations

import random
from typing import Optional, Sequence, TypeVar

from ..data.casino_games import CARD_SUITS, CARD_VALUES, Card

T = TypeVar("T")


class RandomSource:
    """
    The randomness collaborator shared by the engines.
    Pass a seeded `random.Random` (or a subclass of this) to make outcomes reproducible.
    """

    def __init__(self, rng: Optional[random.Random] = None):
        self._rng = rng or random.SystemRandom()

    def uniform_int(self, low: int, high: int) -> int:
        """Integer in [low, high], both ends inclusive."""
        return self._rng.randint(low, high)

    def uniform_float(self, low: float, high: float) -> float:
        """Float in [low, high)."""
        return low + (high - low) * self._rng.random()

    def chance(self, probability: float) -> bool:
        return self.uniform_float(0.0, 1.0) < probability

    def choice(self, pool: Sequence[T]) -> T:
        if not pool:
            raise IndexError("Cannot choose from an empty pool")
        return pool[self.uniform_int(0, len(pool) - 1)]

    def draw_card(self) -> Card:
        """Infinite shoe: every draw is independent."""
        return Card(value=self.choice(CARD_VALUES), suit=self.choice(CARD_SUITS))

    def pick_without_replacement(self, pool: Sequence[T], k: int) -> list[T]:
        k = max(0, min(int(k), len(pool)))
        return self._rng.sample(list(pool), k)
