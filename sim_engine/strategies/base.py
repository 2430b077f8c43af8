"""
MEGASENA LAB — Base Strategy

Abstract base for all number-selection strategies plus the metadata helpers
every strategy shares (sum, parity split, quadrant histogram).
"""

import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

from config.bet_schema import (
    ParityDistribution, QuadrantDistribution, StrategyMetadata, StrategyName,
)
from config.settings import BettingLimits, GeneratorConfig
from sim_engine.errors import InvalidSeed, StrategyFailure
from tools.pricing import KOutOfRange

logger = logging.getLogger("megasena.strategies")

MEGASENA_MIN_DEZENA = 1
MEGASENA_MAX_DEZENA = 60

# (name, first, last): six decades partitioning [1, 60]
QUADRANT_RANGES = (
    ("01-10", 1, 10),
    ("11-20", 11, 20),
    ("21-30", 21, 30),
    ("31-40", 31, 40),
    ("41-50", 41, 50),
    ("51-60", 51, 60),
)
QUADRANT_SIZE = 10


@dataclass
class StrategyContext:
    """Inputs for one strategy invocation.

    `stats` is any object exposing get_frequencies(window), get_recency()
    and get_quadrants(window); see tools.draw_stats.DrawStatistics.
    """
    seed: str
    k: Optional[int] = None
    window: Optional[int] = None
    stats: Any = None
    limits: Optional[BettingLimits] = None


@dataclass
class StrategyResult:
    dezenas: list
    metadata: StrategyMetadata


# ═══════════════════════════════════════════════
# Shared validation
# ═══════════════════════════════════════════════

def normalize_seed(seed) -> str:
    """Trimmed seed; empty or whitespace-only seeds are rejected."""
    normalized = seed.strip() if isinstance(seed, str) else ""
    if not normalized:
        raise InvalidSeed("Seed inválida. Forneça uma seed não vazia")
    return normalized


def resolve_k(k: Optional[int], limits: Optional[BettingLimits] = None) -> int:
    """Default k when omitted; KOutOfRange outside the configured bounds."""
    limits = limits or GeneratorConfig.limits()
    if k is None:
        return limits.default_dezena_count
    if (isinstance(k, bool) or not isinstance(k, int)
            or k < limits.min_dezena_count or k > limits.max_dezena_count):
        raise KOutOfRange(
            f"Valor de k inválido: {k}. Permitido entre "
            f"{limits.min_dezena_count} e {limits.max_dezena_count}."
        )
    return k


# ═══════════════════════════════════════════════
# Metadata helpers
# ═══════════════════════════════════════════════

def get_quadrant_index(value: int) -> int:
    if value < MEGASENA_MIN_DEZENA or value > MEGASENA_MAX_DEZENA:
        raise ValueError(f"Dezena fora do intervalo permitido: {value}")
    return (value - 1) // QUADRANT_SIZE


def get_numbers_in_quadrant(index: int) -> list[int]:
    if not 0 <= index < len(QUADRANT_RANGES):
        raise ValueError(f"Quadrante inválido: {index}")
    _, first, last = QUADRANT_RANGES[index]
    return list(range(first, last + 1))


def build_quadrant_distribution(numbers) -> list[QuadrantDistribution]:
    return [
        QuadrantDistribution(range=name, count=sum(1 for n in numbers if first <= n <= last))
        for name, first, last in QUADRANT_RANGES
    ]


def build_parity_distribution(numbers) -> ParityDistribution:
    even = sum(1 for n in numbers if n % 2 == 0)
    return ParityDistribution(even=even, odd=len(numbers) - even)


def build_metadata(strategy: StrategyName, seed: str, dezenas,
                   details: Optional[dict] = None,
                   score: Optional[float] = None) -> StrategyMetadata:
    numbers = sorted(dezenas)
    return StrategyMetadata(
        strategy=strategy,
        seed=seed,
        k=len(numbers),
        sum=sum(numbers),
        parity=build_parity_distribution(numbers),
        quadrants=build_quadrant_distribution(numbers),
        score=score,
        details=details,
    )


def mean(values) -> float:
    values = list(values)
    if not values:
        return 0.0
    return math.fsum(values) / len(values)


# ═══════════════════════════════════════════════
# Base class
# ═══════════════════════════════════════════════

class BaseStrategy(ABC):
    """Abstract base for all ticket strategies.

    Subclasses implement select(); generate() wraps it with seed/k
    validation so every strategy rejects bad input the same way.
    """

    name: StrategyName
    display_name: str = "Base"
    needs_stats: bool = False

    def generate(self, context: StrategyContext) -> StrategyResult:
        seed = normalize_seed(context.seed)
        k = resolve_k(context.k, context.limits)
        if self.needs_stats and context.stats is None:
            raise StrategyFailure(
                self.name.value,
                f"Estratégia {self.name.value} requer estatísticas históricas",
            )
        logger.debug(f"{self.name.value}: seed={seed} k={k} window={context.window}")
        return self.select(seed, k, context)

    @abstractmethod
    def select(self, seed: str, k: int, context: StrategyContext) -> StrategyResult:
        """Pick k numbers for an already-validated seed and k."""
        ...

    def get_metadata(self) -> dict:
        return {
            "name": self.name.value,
            "display_name": self.display_name,
            "needs_stats": self.needs_stats,
        }
