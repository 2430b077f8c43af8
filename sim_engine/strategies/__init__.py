"""
MEGASENA LAB — Ticket Strategies

Every strategy turns (seed, k, optional statistics) into k sorted unique
dezenas plus metadata. Same inputs, same ticket.

Usage:
    from sim_engine.strategies import get_strategy, StrategyContext
    strategy = get_strategy("balanced")
    result = strategy.generate(StrategyContext(seed="ABC", k=6, window=50, stats=stats))
"""

from config.bet_schema import StrategyName
from sim_engine.errors import UnknownStrategy
from sim_engine.strategies.base import BaseStrategy, StrategyContext, StrategyResult
from sim_engine.strategies.balanced import BalancedStrategy
from sim_engine.strategies.cold_surge import ColdSurgeStrategy
from sim_engine.strategies.hot_streak import HotStreakStrategy
from sim_engine.strategies.uniform import UniformStrategy

STRATEGY_CLASSES = {
    StrategyName.UNIFORM: UniformStrategy,
    StrategyName.BALANCED: BalancedStrategy,
    StrategyName.HOT_STREAK: HotStreakStrategy,
    StrategyName.COLD_SURGE: ColdSurgeStrategy,
}

STRATEGY_NAMES = [name.value for name in StrategyName]


def resolve_strategy_name(name) -> StrategyName:
    try:
        return StrategyName(name)
    except ValueError:
        raise UnknownStrategy(f"Estratégia desconhecida: {name}. Disponíveis: {STRATEGY_NAMES}") from None


def get_strategy(name) -> BaseStrategy:
    """Strategy instance for a name or StrategyName."""
    return STRATEGY_CLASSES[resolve_strategy_name(name)]()


def get_strategy_label(value: str) -> str:
    """Human label for a strategy name; unknown names come back unchanged."""
    try:
        return STRATEGY_CLASSES[StrategyName(value)].display_name
    except ValueError:
        return value


__all__ = [
    "BaseStrategy",
    "StrategyContext",
    "StrategyResult",
    "STRATEGY_CLASSES",
    "STRATEGY_NAMES",
    "get_strategy",
    "get_strategy_label",
    "resolve_strategy_name",
]
