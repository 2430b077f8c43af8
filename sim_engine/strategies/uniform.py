"""Uniform — every dezena equally likely, no history needed."""
from config.bet_schema import StrategyName
from sim_engine.strategies.base import (
    MEGASENA_MAX_DEZENA, MEGASENA_MIN_DEZENA, BaseStrategy, StrategyResult, build_metadata,
)
from tools.seeded_rng import Mulberry32, sample_unique_integers


class UniformStrategy(BaseStrategy):
    name = StrategyName.UNIFORM
    display_name = "Uniforme"

    def select(self, seed, k, context) -> StrategyResult:
        rng = Mulberry32(seed)
        dezenas = sample_unique_integers(rng, MEGASENA_MIN_DEZENA, MEGASENA_MAX_DEZENA, k)
        return StrategyResult(
            dezenas=dezenas,
            metadata=build_metadata(self.name, seed, dezenas, {"source": "mulberry32"}),
        )
