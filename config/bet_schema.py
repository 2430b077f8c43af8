"""
MEGASENA LAB — Bet Generation Data Contracts (schema v1.0)

Typed models for everything the engine hands to the outside world:
tickets, strategy metadata, budget allocation and the versioned batch
payload that persistence and API layers store verbatim.

Field names serialize as camelCase and money is always integer cents;
other systems depend on both, so do not rename.

Usage:
    from config.bet_schema import StrategyPayload, StrategyRequest
    req = StrategyRequest(name="balanced", weight=2, window=50)
    payload.to_json()            # camelCase JSON, None fields dropped
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


# ═══════════════════════════════════════════════════════════════
# Enums
# ═══════════════════════════════════════════════════════════════

class StrategyName(str, Enum):
    UNIFORM    = "uniform"
    BALANCED   = "balanced"
    HOT_STREAK = "hot-streak"
    COLD_SURGE = "cold-surge"


class ContractModel(BaseModel):
    """camelCase on the wire, snake_case in Python, unknown keys rejected."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
    )

    def to_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    def to_json(self, indent: Optional[int] = None) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True, indent=indent)


# ═══════════════════════════════════════════════════════════════
# Ticket metadata
# ═══════════════════════════════════════════════════════════════

class ParityDistribution(ContractModel):
    even: int = Field(ge=0)
    odd: int = Field(ge=0)


class QuadrantDistribution(ContractModel):
    range: str                       # "01-10" … "51-60"
    count: int = Field(ge=0)


class StrategyMetadata(ContractModel):
    """Derived description of one ticket. Never mutated after creation."""
    model_config = ConfigDict(frozen=True)

    strategy: StrategyName
    seed: str = Field(min_length=1)
    k: int = Field(ge=1)
    sum: int = Field(ge=0)
    parity: ParityDistribution
    quadrants: list[QuadrantDistribution]
    score: Optional[float] = None
    details: Optional[dict[str, Any]] = None

    @model_validator(mode="after")
    def _check_counts(self):
        if self.parity.even + self.parity.odd != self.k:
            raise ValueError(
                f"parity {self.parity.even}+{self.parity.odd} does not add up to k={self.k}"
            )
        if len(self.quadrants) != 6:
            raise ValueError(f"expected 6 quadrants, got {len(self.quadrants)}")
        total = sum(q.count for q in self.quadrants)
        if total != self.k:
            raise ValueError(f"quadrant counts add up to {total}, expected k={self.k}")
        return self


class StrategyTicket(ContractModel):
    """One purchasable combination."""
    model_config = ConfigDict(frozen=True)

    strategy: StrategyName
    dezenas: list[int]
    metadata: StrategyMetadata
    cost_cents: int = Field(ge=0)
    seed: str = Field(min_length=1)

    @model_validator(mode="after")
    def _check_dezenas(self):
        if any(b <= a for a, b in zip(self.dezenas, self.dezenas[1:])):
            raise ValueError(f"dezenas must be strictly ascending: {self.dezenas}")
        if self.dezenas and (self.dezenas[0] < 1 or self.dezenas[-1] > 60):
            raise ValueError(f"dezenas out of [1, 60]: {self.dezenas}")
        return self


# ═══════════════════════════════════════════════════════════════
# Requests
# ═══════════════════════════════════════════════════════════════

class StrategyRequest(ContractModel):
    name: StrategyName
    weight: float = Field(default=1, ge=0)
    window: Optional[int] = Field(default=None, ge=1)


class GenerateBatchRequest(ContractModel):
    # Left untyped: pricing and seed normalization own these checks and
    # raise BudgetBelowMin / InvalidSeed rather than a ValidationError.
    budget_cents: Any = None
    seed: Any = None
    strategies: Optional[list[StrategyRequest]] = None
    k: Optional[int] = None
    window: Optional[int] = Field(default=None, ge=1)
    timeout_ms: Optional[int] = Field(default=None, ge=1)


# ═══════════════════════════════════════════════════════════════
# Pricing
# ═══════════════════════════════════════════════════════════════

class BudgetAllocationResult(ContractModel):
    budget_cents: int = Field(ge=0)
    ticket_cost_cents: int = Field(gt=0)
    max_tickets: int = Field(ge=0)
    leftover_cents: int = Field(ge=0)
    constrained_by_ticket_limit: bool = False

    @model_validator(mode="after")
    def _check_conservation(self):
        spent = self.max_tickets * self.ticket_cost_cents
        if spent > self.budget_cents:
            raise ValueError(f"allocation spends {spent} of a {self.budget_cents} budget")
        if self.leftover_cents != self.budget_cents - spent:
            raise ValueError("leftover_cents must equal budget_cents - max_tickets * ticket_cost_cents")
        return self


# ═══════════════════════════════════════════════════════════════
# Batch payload (v1.0)
# ═══════════════════════════════════════════════════════════════

class StrategyExecutionSummary(ContractModel):
    name: StrategyName
    weight: float = Field(ge=0)
    generated: int = Field(default=0, ge=0)
    attempts: int = Field(default=0, ge=0)
    failures: int = Field(default=0, ge=0)


class QuadrantCoverageMetrics(ContractModel):
    min: float
    max: float
    average: float


class BatchMetrics(ContractModel):
    average_sum: float
    average_score: float
    parity_spread: float
    quadrant_coverage: QuadrantCoverageMetrics


class PayloadConfig(ContractModel):
    strategies: list[StrategyRequest]
    k: int = Field(ge=6, le=15)
    window: Optional[int] = Field(default=None, ge=1)
    timeout_ms: int = Field(ge=1)


class PayloadTicket(ContractModel):
    strategy: StrategyName
    metadata: StrategyMetadata
    seed: str
    cost_cents: int = Field(ge=0)


class StrategyPayload(ContractModel):
    version: Literal["1.0"] = "1.0"
    seed: str = Field(min_length=1)
    requested_budget_cents: int = Field(ge=0)
    ticket_cost_cents: int = Field(ge=0)
    total_cost_cents: int = Field(ge=0)
    leftover_cents: int = Field(ge=0)
    tickets_generated: int = Field(ge=0)
    strategies: list[StrategyExecutionSummary]
    metrics: BatchMetrics
    config: PayloadConfig
    warnings: list[str] = Field(default_factory=list)
    ticket: Optional[PayloadTicket] = None

    def for_ticket(self, ticket: StrategyTicket) -> "StrategyPayload":
        """Copy of the batch payload pinned to one ticket (one stored bet row)."""
        return self.model_copy(update={"ticket": PayloadTicket(
            strategy=ticket.strategy,
            metadata=ticket.metadata,
            seed=ticket.seed,
            cost_cents=ticket.cost_cents,
        )})


class BatchGenerationResult(ContractModel):
    tickets: list[StrategyTicket]
    ticket_cost_cents: int = Field(ge=0)
    total_cost_cents: int = Field(ge=0)
    budget_cents: int = Field(ge=0)
    leftover_cents: int = Field(ge=0)
    payload: StrategyPayload
    warnings: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_budget(self):
        spent = sum(t.cost_cents for t in self.tickets)
        if spent != self.total_cost_cents:
            raise ValueError(f"total_cost_cents={self.total_cost_cents} but tickets cost {spent}")
        if self.leftover_cents != self.budget_cents - self.total_cost_cents:
            raise ValueError("leftover_cents must equal budget_cents - total_cost_cents")
        return self
