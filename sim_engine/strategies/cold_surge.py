"""Cold surge — favors dezenas that have gone longest without being drawn."""
from config.bet_schema import StrategyName
from sim_engine.strategies.base import (
    MEGASENA_MAX_DEZENA, MEGASENA_MIN_DEZENA, BaseStrategy, StrategyResult,
    build_metadata, mean,
)
from tools.seeded_rng import Mulberry32, WeightedPool

NULL_RECENCY_REWARD = 50   # weight for numbers never seen in the history
MIN_RECENCY_WEIGHT = 1


def recency_weight(contests_since_last) -> float:
    if contests_since_last is None:
        return NULL_RECENCY_REWARD
    return max(contests_since_last, MIN_RECENCY_WEIGHT)


class ColdSurgeStrategy(BaseStrategy):
    name = StrategyName.COLD_SURGE
    display_name = "Onda fria"
    needs_stats = True

    def select(self, seed, k, context) -> StrategyResult:
        rng = Mulberry32(f"{seed}:cold")

        recency_map = {
            entry.dezena: entry.contests_since_last
            for entry in context.stats.get_recency()
        }

        candidates = list(range(MEGASENA_MIN_DEZENA, MEGASENA_MAX_DEZENA + 1))
        weights = [recency_weight(recency_map.get(d)) for d in candidates]

        dezenas = sorted(WeightedPool(candidates, weights).draw_many(rng, k))

        recency_sample = [
            {
                "dezena": d,
                "contestsSinceLast": recency_map.get(d),
                "weight": recency_weight(recency_map.get(d)),
            }
            for d in dezenas
        ]
        average_delay = mean(
            NULL_RECENCY_REWARD if item["contestsSinceLast"] is None else item["contestsSinceLast"]
            for item in recency_sample
        )

        return StrategyResult(
            dezenas=dezenas,
            metadata=build_metadata(
                self.name, seed, dezenas,
                {"averageDelay": average_delay, "recencySample": recency_sample},
                average_delay,
            ),
        )
