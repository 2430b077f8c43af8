"""Hot streak — favors dezenas drawn most often in a recent window."""
from config.bet_schema import StrategyName
from config.settings import GeneratorConfig
from sim_engine.strategies.base import (
    MEGASENA_MAX_DEZENA, MEGASENA_MIN_DEZENA, BaseStrategy, StrategyResult,
    build_metadata, mean,
)
from tools.seeded_rng import Mulberry32, WeightedPool

# Keeps never-drawn numbers selectable without competing with real hits.
MIN_FREQUENCY_WEIGHT = 0.0001


class HotStreakStrategy(BaseStrategy):
    name = StrategyName.HOT_STREAK
    display_name = "Sequência aquecida"
    needs_stats = True

    def select(self, seed, k, context) -> StrategyResult:
        window = context.window or GeneratorConfig.HOT_STREAK_WINDOW
        rng = Mulberry32(f"{seed}:hot")

        frequencies = context.stats.get_frequencies(window)
        frequency_map = {item.dezena: item.frequency for item in frequencies.items}

        candidates = list(range(MEGASENA_MIN_DEZENA, MEGASENA_MAX_DEZENA + 1))
        weights = []
        for dezena in candidates:
            weight = frequency_map.get(dezena, 0)
            weights.append(weight if weight > 0 else MIN_FREQUENCY_WEIGHT)

        dezenas = sorted(WeightedPool(candidates, weights).draw_many(rng, k))

        average_frequency = mean(frequency_map.get(d, 0) for d in dezenas)
        top_hits = [
            {"dezena": d, "frequency": frequency_map.get(d, 0)}
            for d in sorted(dezenas, key=lambda d: -frequency_map.get(d, 0))[:3]
        ]

        return StrategyResult(
            dezenas=dezenas,
            metadata=build_metadata(
                self.name, seed, dezenas,
                {
                    "window": window,
                    "averageFrequency": average_frequency,
                    "topHits": top_hits,
                },
                average_frequency,
            ),
        )
