"""
MEGASENA LAB — Configuration & Betting Limits

Everything tunable lives here and can be overridden from the environment
(or a .env file picked up by python-dotenv):

    MEGASENA_BASE_PRICE_CENTS      price of a simple 6-number ticket (default 600)
    MEGASENA_MIN_DEZENAS           smallest k accepted (default 6)
    MEGASENA_MAX_DEZENAS           largest k accepted (default 15)
    MEGASENA_DEFAULT_DEZENAS       k used when the caller omits it (default 6)
    MEGASENA_MAX_TICKETS_PER_BATCH operational ceiling per batch (default 100)
    MEGASENA_MIN_BUDGET_CENTS      smallest budget accepted (default 600)
    MEGASENA_MAX_BUDGET_CENTS      largest budget accepted (default 50000)
    MEGASENA_TIMEOUT_MS            default batch wall-clock budget (default 3000)
    MEGASENA_HOT_WINDOW            hot-streak default window (default 120)
    LOG_LEVEL                      logging level for the CLI (default INFO)
"""

import logging
import os
from dataclasses import dataclass, fields, replace

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger("megasena.settings")


def _env_int(name: str, default: int) -> int:
    """Positive integer from env; anything unparsable or <= 0 falls back."""
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(float(raw))
    except ValueError:
        logger.warning(f"Ignoring {name}={raw!r}: not a number")
        return default
    if value <= 0:
        logger.warning(f"Ignoring {name}={raw!r}: must be positive")
        return default
    return value


# ============================================================
# Betting limits
# ============================================================

# Hard bounds of a Mega-Sena ticket; limits may narrow them, never widen.
DEZENA_COUNT_FLOOR = 6
DEZENA_COUNT_CEILING = 15


@dataclass(frozen=True)
class BettingLimits:
    min_dezena_count: int = 6
    max_dezena_count: int = 15
    default_dezena_count: int = 6
    max_tickets_per_batch: int = 100
    max_budget_cents: int = 50_000
    min_budget_cents: int = 600

    def __post_init__(self):
        for f in fields(self):
            value = getattr(self, f.name)
            if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
                raise ValueError(f"{f.name} must be a positive integer, got {value!r}")
        if self.min_dezena_count < DEZENA_COUNT_FLOOR or self.max_dezena_count > DEZENA_COUNT_CEILING:
            raise ValueError(
                f"dezena counts must stay within {DEZENA_COUNT_FLOOR}-{DEZENA_COUNT_CEILING}, "
                f"got {self.min_dezena_count}-{self.max_dezena_count}"
            )
        if self.min_dezena_count > self.max_dezena_count:
            raise ValueError("min_dezena_count cannot exceed max_dezena_count")
        if not self.min_dezena_count <= self.default_dezena_count <= self.max_dezena_count:
            raise ValueError(
                f"default_dezena_count must be between {self.min_dezena_count} "
                f"and {self.max_dezena_count}"
            )
        if self.min_budget_cents > self.max_budget_cents:
            raise ValueError("min_budget_cents cannot exceed max_budget_cents")

    @classmethod
    def from_env(cls) -> "BettingLimits":
        return cls(
            min_dezena_count=_env_int("MEGASENA_MIN_DEZENAS", 6),
            max_dezena_count=_env_int("MEGASENA_MAX_DEZENAS", 15),
            default_dezena_count=_env_int("MEGASENA_DEFAULT_DEZENAS", 6),
            max_tickets_per_batch=_env_int("MEGASENA_MAX_TICKETS_PER_BATCH", 100),
            max_budget_cents=_env_int("MEGASENA_MAX_BUDGET_CENTS", 50_000),
            min_budget_cents=_env_int("MEGASENA_MIN_BUDGET_CENTS", 600),
        )

    def with_overrides(self, **overrides) -> "BettingLimits":
        """New limits with some fields replaced. Validation runs again."""
        unknown = set(overrides) - {f.name for f in fields(self)}
        if unknown:
            raise ValueError(f"Unknown betting limit(s): {sorted(unknown)}")
        return replace(self, **overrides)

    def to_dict(self) -> dict:
        return {
            "minDezenaCount": self.min_dezena_count,
            "maxDezenaCount": self.max_dezena_count,
            "defaultDezenaCount": self.default_dezena_count,
            "maxTicketsPerBatch": self.max_tickets_per_batch,
            "maxBudgetCents": self.max_budget_cents,
            "minBudgetCents": self.min_budget_cents,
        }


DEFAULT_BETTING_LIMITS = BettingLimits.from_env()


# ============================================================
# Generator defaults
# ============================================================

class GeneratorConfig:

    SCHEMA_VERSION = "1.0"

    BASE_PRICE_CENTS = _env_int("MEGASENA_BASE_PRICE_CENTS", 600)
    DEFAULT_TIMEOUT_MS = _env_int("MEGASENA_TIMEOUT_MS", 3_000)
    HOT_STREAK_WINDOW = _env_int("MEGASENA_HOT_WINDOW", 120)

    # Used when a batch request names no strategies.
    DEFAULT_STRATEGIES = [
        {"name": "balanced", "weight": 2},
        {"name": "uniform", "weight": 1},
    ]

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

    @classmethod
    def limits(cls) -> BettingLimits:
        """Limits as configured in the environment right now."""
        return BettingLimits.from_env()
