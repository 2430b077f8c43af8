"""
MEGASENA LAB — Engine Error Taxonomy

Every failure the bet engine can surface to a caller has its own type, so
callers can tell "bad seed" from "ran out of time" from "strategy blew up"
without parsing messages.

    BetEngineError
    ├── InvalidSeed            (also ValueError)
    ├── OutOfRange             (also ValueError) — sampling bound violated
    ├── EmptyInput             (also ValueError) — nothing to pick from
    ├── UnknownStrategy        (also ValueError)
    ├── StrategyFailure        — recovered by the orchestrator via uniform fallback
    │   └── QuadrantExhausted
    └── BatchGenerationError   — carries `code` and optional `partial`
        └── BatchGenerationTimeout

Pricing errors (K_OUT_OF_RANGE, BUDGET_*) live in tools.pricing.
"""

from __future__ import annotations

from typing import Optional


class BetEngineError(Exception):
    """Root of all bet-engine errors."""


class InvalidSeed(BetEngineError, ValueError):
    """Seed is empty or whitespace."""


class OutOfRange(BetEngineError, ValueError):
    """More unique values requested than the range holds."""


class EmptyInput(BetEngineError, ValueError):
    """A pick was requested from an empty candidate list."""


class UnknownStrategy(BetEngineError, ValueError):
    """Strategy name is not one of the registered kinds."""


class StrategyFailure(BetEngineError):
    """A single strategy invocation could not produce a ticket."""

    def __init__(self, strategy: str, message: str):
        super().__init__(message)
        self.strategy = strategy


class QuadrantExhausted(StrategyFailure):
    """Balanced strategy ran out of candidates inside one quadrant."""

    def __init__(self, quadrant_index: int):
        super().__init__("balanced", f"Sem dezenas disponíveis para o quadrante {quadrant_index}")
        self.quadrant_index = quadrant_index


class BatchGenerationError(BetEngineError):
    """Batch-level failure. `code` is NO_STRATEGY_AVAILABLE or GENERATION_TIMEOUT."""

    def __init__(self, code: str, message: str, partial: Optional[object] = None):
        super().__init__(message)
        self.code = code
        self.partial = partial


class BatchGenerationTimeout(BatchGenerationError):
    """Wall-clock deadline passed before every planned ticket was attempted.

    `partial` holds the BatchGenerationResult built from the tickets produced
    before the deadline. It is diagnostic only; generate_batch never returns it.
    """

    def __init__(self, message: str, partial: Optional[object] = None):
        super().__init__("GENERATION_TIMEOUT", message, partial)
