"""
MEGASENA LAB — Deterministic RNG & Sampling Primitives

Seed string → 32-bit hash → Mulberry32 generator → floats in [0, 1).
Everything downstream (strategies, batch orchestrator) draws randomness only
through this module, so identical seeds reproduce identical tickets.

NOT cryptographically secure. Randomness here is for combinatorial variety
only; never use it for anything security-sensitive.

Usage:
    from tools.seeded_rng import Mulberry32, sample_unique_integers, weighted_pick, WeightedPool

    rng = Mulberry32("TEST-SEED")
    ticket = sample_unique_integers(rng, 1, 60, 6)   # six ascending numbers

    pool = WeightedPool(range(1, 61), weights)
    picks = pool.draw_many(rng, 6)                   # without replacement
"""

from __future__ import annotations

from typing import Callable, Iterable, Sequence, TypeVar, Union

from sim_engine.errors import EmptyInput, OutOfRange

T = TypeVar("T")

UINT32_MASK = 0xFFFFFFFF
MULBERRY_INCREMENT = 0x6D2B79F5

# Anything callable returning a float in [0, 1) is accepted as a generator.
Prng = Callable[[], float]


# ═══════════════════════════════════════════════════════════════
# Seed hashing
# ═══════════════════════════════════════════════════════════════

def _imul(a: int, b: int) -> int:
    """32-bit multiply, low word only."""
    return (a * b) & UINT32_MASK


def _utf16_units(text: str) -> Iterable[int]:
    data = text.encode("utf-16-le", "surrogatepass")
    for i in range(0, len(data), 2):
        yield data[i] | (data[i + 1] << 8)


def hash_seed(seed: Union[str, int]) -> int:
    """Polynomial string hash (×31, int32 wrap) folded to uint32. Never 0."""
    value = 0
    for unit in _utf16_units(str(seed)):
        value = (_imul(31, value) + unit) & UINT32_MASK
    return value or 1


# ═══════════════════════════════════════════════════════════════
# Generator
# ═══════════════════════════════════════════════════════════════

class Mulberry32:
    """Mulberry32 generator with explicit uint32 state.

    String seeds go through hash_seed(); integer seeds are used modulo 2**32.
    Instances are callable, so `rng()` and `rng.next()` are the same draw.
    """

    __slots__ = ("state",)

    def __init__(self, seed: Union[str, int]):
        if isinstance(seed, int):
            self.state = seed & UINT32_MASK
        else:
            self.state = hash_seed(seed)

    def next(self) -> float:
        self.state = (self.state + MULBERRY_INCREMENT) & UINT32_MASK
        t = self.state
        t = _imul(t ^ (t >> 15), t | 1)
        t ^= (t + _imul(t ^ (t >> 7), t | 61)) & UINT32_MASK
        return ((t ^ (t >> 14)) & UINT32_MASK) / 0x100000000

    __call__ = next

    def copy(self) -> "Mulberry32":
        """Independent generator positioned at the same point of the sequence."""
        clone = Mulberry32(0)
        clone.state = self.state
        return clone

    def __repr__(self) -> str:
        return f"Mulberry32(state=0x{self.state:08x})"


# ═══════════════════════════════════════════════════════════════
# Sampling primitives
# ═══════════════════════════════════════════════════════════════

def random_int(rng: Prng, lo: int, hi: int) -> int:
    """Integer in [lo, hi], inclusive."""
    span = hi - lo + 1
    return int(rng() * span) + lo


def shuffle(items: Sequence[T], rng: Prng) -> list[T]:
    """Fisher–Yates over a copy. The input is never mutated."""
    arr = list(items)
    for i in range(len(arr) - 1, 0, -1):
        j = int(rng() * (i + 1))
        arr[i], arr[j] = arr[j], arr[i]
    return arr


def sample_unique_integers(rng: Prng, lo: int, hi: int, count: int) -> list[int]:
    """`count` distinct integers from [lo, hi], ascending."""
    size = hi - lo + 1
    if count < 0 or count > size:
        raise OutOfRange(
            f"Cannot sample {count} unique numbers from range [{lo}, {hi}] ({max(size, 0)} values)"
        )
    shuffled = shuffle(range(lo, hi + 1), rng)
    return sorted(shuffled[:count])


def weighted_index(weights: Sequence[float], rng: Prng) -> int:
    """Index chosen proportionally to weight. Negative weights count as 0.

    With zero total weight the pick degrades to uniform by index. Ties go to
    the first index whose cumulative weight reaches the threshold.
    """
    if not weights:
        raise EmptyInput("Cannot pick from an empty list")

    normalized = [w if w > 0 else 0.0 for w in weights]
    total = sum(normalized)
    if total == 0:
        return random_int(rng, 0, len(normalized) - 1)

    threshold = rng() * total
    cumulative = 0.0
    for i, weight in enumerate(normalized):
        cumulative += weight
        if threshold <= cumulative:
            return i
    return len(normalized) - 1


def weighted_pick(items: Sequence[T], weights: Sequence[float], rng: Prng) -> T:
    """Pick one item with probability proportional to its weight."""
    if not items:
        raise EmptyInput("Cannot pick from an empty list")
    if len(items) != len(weights):
        raise ValueError(f"items/weights length mismatch: {len(items)} != {len(weights)}")
    return items[weighted_index(weights, rng)]


class WeightedPool:
    """Candidates with parallel weights, drawn without replacement.

    Removal is swap-with-last, O(1) per draw. That reorders the remaining
    candidates, so the sequence differs from a splice-based pool, but it is
    still a pure function of the seed.
    """

    def __init__(self, items: Iterable[T], weights: Iterable[float]):
        self._items = list(items)
        self._weights = [float(w) for w in weights]
        if len(self._items) != len(self._weights):
            raise ValueError(
                f"items/weights length mismatch: {len(self._items)} != {len(self._weights)}"
            )

    def __len__(self) -> int:
        return len(self._items)

    def draw(self, rng: Prng) -> T:
        index = weighted_index(self._weights, rng)
        item = self._items[index]
        last = len(self._items) - 1
        self._items[index] = self._items[last]
        self._weights[index] = self._weights[last]
        self._items.pop()
        self._weights.pop()
        return item

    def draw_many(self, rng: Prng, count: int) -> list[T]:
        """Up to `count` draws; stops early once the pool is empty."""
        picked = []
        while len(picked) < count and self._items:
            picked.append(self.draw(rng))
        return picked
