#!/usr/bin/env python3
"""
Random Engine for Protobuf Mutation

This module provides the seedable random source shared by every mutation
decision, and a weighted reservoir sampler used to pick one candidate
mutation out of a whole message tree in a single pass.
"""

import random
from typing import Generic, Optional, Sequence, TypeVar

T = TypeVar("T")

UINT32_MASK = 0xFFFFFFFF


class RandomEngine:
    """
    Deterministic pseudo-random source.

    All draws go through this class, so an identical seed and an identical
    sequence of calls always give identical results.
    """

    def __init__(self, seed: int = 0):
        """
        Initialize the random engine.

        Args:
            seed: Initial seed, truncated to an unsigned 32-bit value
        """
        self._random = random.Random()
        self.seed(seed)

    def seed(self, value: int) -> None:
        """Reset the generator state from an unsigned 32-bit seed."""
        self._random.seed(int(value) & UINT32_MASK)

    def randint(self, low: int, high: int) -> int:
        """Uniform integer in the closed range [low, high]."""
        return self._random.randint(low, high)

    def index(self, count: int) -> int:
        """Uniform index in [0, count); count must be positive."""
        return self._random.randrange(count)

    def random(self) -> float:
        """Uniform real in [0, 1)."""
        return self._random.random()

    def chance(self, probability: float) -> bool:
        """Return True with the given probability."""
        return self.random() < probability

    def bits(self, count: int) -> int:
        """Return an integer made of `count` random bits."""
        return self._random.getrandbits(count)

    def one_in(self, n: int) -> bool:
        """Return True with probability 1/n."""
        if n <= 1:
            return True
        return self.index(n) == 0

    def coin(self) -> bool:
        """Fair boolean draw."""
        return self.one_in(2)

    def choice(self, items: Sequence[T]) -> T:
        """Pick one element of a non-empty sequence."""
        return items[self.index(len(items))]

    def weighted_index(self, weights: Sequence[int]) -> int:
        """
        Select an index with probability proportional to its weight.

        Args:
            weights: Non-negative integer weights

        Returns:
            Selected index, or -1 if every weight is zero
        """
        total = sum(weights)
        if total <= 0:
            return -1

        point = self.index(total)
        for i, weight in enumerate(weights):
            if point < weight:
                return i
            point -= weight

        return len(weights) - 1

    def derive_seed(self) -> int:
        """Draw a 32-bit seed for an independent, reproducible sub-generator."""
        return self.bits(32)


class WeightedReservoirSampler(Generic[T]):
    """
    Single-pass weighted selection of one item from a stream of candidates.

    Each offered item replaces the current selection with probability
    weight / total_weight_so_far, which leaves every item selected with
    probability proportional to its weight.
    """

    def __init__(self, random_engine: RandomEngine):
        self.random = random_engine
        self.total_weight = 0
        self.selected: Optional[T] = None

    def try_item(self, weight: int, item: T) -> None:
        """Offer a candidate with the given weight."""
        if self._pick(weight):
            self.selected = item

    def is_empty(self) -> bool:
        return self.total_weight == 0

    def _pick(self, weight: int) -> bool:
        if weight <= 0:
            return False

        self.total_weight += weight
        if weight == self.total_weight:
            return True

        return self.random.randint(1, self.total_weight) <= weight
