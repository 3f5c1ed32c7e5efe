import secrets
import random
from typing import MutableSequence, Optional, Sequence


class TrueRNG:
    """
    A wrapper around Python's `secrets` module to provide cryptographically strong
    random numbers, suitable for deciding real wagers.
    """

    @staticmethod
    def random_float() -> float:
        """Returns a random float in the range [0.0, 1.0)."""
        # secrets.randbelow(n) returns [0, n). We use a large integer range to approximate a float.
        precision = 10**12
        return secrets.randbelow(precision) / precision

    @staticmethod
    def random_int(min_val: int, max_val: int) -> int:
        """Returns a random integer in the range [min_val, max_val] (inclusive)."""
        if min_val > max_val:
            raise ValueError("min_val must be less than or equal to max_val")
        return min_val + secrets.randbelow(max_val - min_val + 1)

    def random_uniform(self, low: float, high: float) -> float:
        """Returns a random float in the range [low, high)."""
        return low + (high - low) * self.random_float()

    @staticmethod
    def random_choice(options: Sequence):
        """Returns a random element from a non-empty sequence."""
        if not options:
            raise IndexError("Cannot choose from an empty sequence")
        return secrets.choice(options)


class SeededRNG:
    """
    Deterministic drop-in for TrueRNG backed by `random.Random`.
    Used by tests and simulations that need reproducible outcomes.
    """

    def __init__(self, seed: Optional[int] = None):
        self.seed = seed
        self._random = random.Random(seed)

    def random_float(self) -> float:
        return self._random.random()

    def random_int(self, min_val: int, max_val: int) -> int:
        if min_val > max_val:
            raise ValueError("min_val must be less than or equal to max_val")
        return self._random.randint(min_val, max_val)

    def random_uniform(self, low: float, high: float) -> float:
        return low + (high - low) * self.random_float()

    def random_choice(self, options: Sequence):
        if not options:
            raise IndexError("Cannot choose from an empty sequence")
        return self._random.choice(options)


def fisher_yates(items: MutableSequence, source=None) -> MutableSequence:
    """
    Shuffle `items` in place with the Fisher-Yates algorithm and return it.

    Every permutation is equally likely given a uniform `source.random_int`.
    """
    source = source or rng
    for i in range(len(items) - 1, 0, -1):
        j = source.random_int(0, i)
        items[i], items[j] = items[j], items[i]
    return items


def make_rng(seed: Optional[int] = None):
    """TrueRNG for production, SeededRNG when a seed is configured."""
    if seed is None:
        return TrueRNG()
    return SeededRNG(seed)


rng = TrueRNG()
