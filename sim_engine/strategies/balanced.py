"""Balanced — quadrant coverage + parity split + frequency weighting.

Three constraints at once:
  1. quadrant targets: how many of the k numbers come from each decade,
     extra slots going to the historically busiest decades;
  2. near-even parity: ceil(k/2) even, the rest odd, steered pick by pick;
  3. inside a quadrant, candidates weighted by historical frequency + 1.
"""
import math
from dataclasses import dataclass, field

from config.bet_schema import StrategyName
from sim_engine.errors import QuadrantExhausted
from sim_engine.strategies.base import (
    QUADRANT_RANGES, QUADRANT_SIZE, BaseStrategy, StrategyResult,
    build_metadata, get_numbers_in_quadrant, mean,
)
from tools.seeded_rng import Mulberry32, weighted_pick


def compute_quadrant_targets(quadrant_totals, k: int) -> list[int]:
    """Per-quadrant pick counts summing to k.

    `quadrant_totals` is the historical total per quadrant in QUADRANT_RANGES
    order. Ties between equal totals keep quadrant order.
    """
    n = len(QUADRANT_RANGES)
    if k > n * QUADRANT_SIZE:
        raise ValueError(f"k={k} exceeds the {n * QUADRANT_SIZE} available dezenas")

    by_history = sorted(range(n), key=lambda i: -quadrant_totals[i])
    base, remainder = divmod(k, n)
    targets = [min(base, QUADRANT_SIZE)] * n

    for i in range(remainder):
        idx = by_history[i]
        targets[idx] = min(targets[idx] + 1, QUADRANT_SIZE)

    if k >= n:
        targets = [max(t, 1) for t in targets]

        cursor = 0
        while sum(targets) < k:
            idx = by_history[cursor % n]
            if targets[idx] < QUADRANT_SIZE:
                targets[idx] += 1
            cursor += 1

        cursor = 0
        while sum(targets) > k:
            idx = by_history[n - 1 - (cursor % n)]
            if targets[idx] > 1:
                targets[idx] -= 1
            cursor += 1

    return targets


@dataclass
class _SelectionState:
    rng: Mulberry32
    frequencies: dict
    parity_targets: dict
    remaining: list = field(default_factory=list)       # per quadrant, candidates left
    selected: list = field(default_factory=list)        # per quadrant, picks so far
    parity_count: dict = field(default_factory=lambda: {"even": 0, "odd": 0})

    def decide_parity(self) -> int:
        """0 = even, 1 = odd."""
        if self.parity_count["even"] >= self.parity_targets["even"]:
            return 1
        if self.parity_count["odd"] >= self.parity_targets["odd"]:
            return 0
        return 0 if self.rng() < 0.5 else 1

    def pick(self, quadrant_index: int) -> int:
        remaining = self.remaining[quadrant_index]
        if not remaining:
            raise QuadrantExhausted(quadrant_index)

        parity = self.decide_parity()
        candidates = [v for v in remaining if v % 2 == parity] or list(remaining)
        weights = [self.frequencies.get(v, 0) + 1 for v in candidates]
        value = weighted_pick(candidates, weights, self.rng)

        remaining.remove(value)
        self.selected[quadrant_index].append(value)
        self.parity_count["even" if value % 2 == 0 else "odd"] += 1
        return value


class BalancedStrategy(BaseStrategy):
    name = StrategyName.BALANCED
    display_name = "Balanceada"
    needs_stats = True

    def select(self, seed, k, context) -> StrategyResult:
        rng = Mulberry32(seed)

        freq_result = context.stats.get_frequencies(context.window)
        frequencies = {item.dezena: item.frequency for item in freq_result.items}

        quadrant_stats = context.stats.get_quadrants(context.window)
        totals_by_name = {q.range: q.total for q in quadrant_stats}
        totals = [totals_by_name.get(name, 0) for name, _, _ in QUADRANT_RANGES]

        targets = compute_quadrant_targets(totals, k)

        even_target = math.ceil(k / 2)
        state = _SelectionState(
            rng=rng,
            frequencies=frequencies,
            parity_targets={"even": even_target, "odd": k - even_target},
            remaining=[get_numbers_in_quadrant(i) for i in range(len(QUADRANT_RANGES))],
            selected=[[] for _ in QUADRANT_RANGES],
        )

        for index, target in enumerate(targets):
            for _ in range(target):
                state.pick(index)

        dezenas = sorted(v for picks in state.selected for v in picks)
        average_frequency = mean(frequencies.get(d, 0) for d in dezenas)

        return StrategyResult(
            dezenas=dezenas,
            metadata=build_metadata(
                self.name, seed, dezenas,
                {
                    "targets": {name: targets[i] for i, (name, _, _) in enumerate(QUADRANT_RANGES)},
                    "totalDraws": freq_result.total_draws,
                    "averageFrequency": average_frequency,
                },
                average_frequency,
            ),
        )
