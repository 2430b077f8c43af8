"""
MEGASENA LAB — Ticket Pricing & Budget Allocation

Answers two questions for the batch orchestrator:
  - how much does one ticket with k numbers cost?
  - how many such tickets fit in a budget, and what is left over?

Cost lookup order: explicit price table (official prices) → combinatorial
fallback base_price × C(k, 6). A k=7 ticket covers C(7,6)=7 simple bets, so
it costs 7× the base price.

Usage:
    from tools.pricing import calculate_budget_allocation, PricingError

    alloc = calculate_budget_allocation(2_400, k=6)
    alloc.max_tickets     # 4
    alloc.leftover_cents  # 0

    try:
        calculate_budget_allocation(500)
    except PricingError as e:
        e.code            # "BUDGET_BELOW_MIN"
"""

import logging
import math
from dataclasses import dataclass
from typing import Optional

from config.bet_schema import BudgetAllocationResult
from config.settings import BettingLimits, GeneratorConfig

logger = logging.getLogger("megasena.pricing")

SIMPLE_BET_SIZE = 6


# ═══════════════════════════════════════════════
# Errors
# ═══════════════════════════════════════════════

class PricingError(ValueError):
    """Pricing contract violation. `code` is one of the constants below."""

    code = "PRICING_ERROR"

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        if code:
            self.code = code


class KOutOfRange(PricingError):
    code = "K_OUT_OF_RANGE"


class BudgetBelowMin(PricingError):
    code = "BUDGET_BELOW_MIN"


class BudgetAboveMax(PricingError):
    code = "BUDGET_ABOVE_MAX"


class PriceNotFound(PricingError):
    code = "PRICE_NOT_FOUND"


@dataclass(frozen=True)
class PriceInfo:
    k: int
    cost_cents: int
    source: str


# ═══════════════════════════════════════════════
# Service
# ═══════════════════════════════════════════════

def combination(n: int, k: int) -> int:
    if k > n or k < 0:
        return 0
    return math.comb(n, k)


class PricingService:
    """Price lookup + budget fitting under a set of betting limits.

    `price_table` maps k → cents and wins over the combinatorial fallback.
    With `allow_fallback=False` a missing table entry is PRICE_NOT_FOUND.
    """

    def __init__(self, limits: Optional[BettingLimits] = None,
                 base_price_cents: Optional[int] = None,
                 price_table: Optional[dict] = None,
                 allow_fallback: bool = True):
        self.limits = limits or GeneratorConfig.limits()
        base = base_price_cents if base_price_cents is not None else GeneratorConfig.BASE_PRICE_CENTS
        if not isinstance(base, int) or base <= 0:
            raise ValueError(f"base_price_cents must be a positive integer, got {base!r}")
        self.base_price_cents = base
        self.price_table = dict(price_table or {})
        self.allow_fallback = allow_fallback

    # ── Guards ──────────────────────────────────

    def _assert_k_in_range(self, k):
        lo, hi = self.limits.min_dezena_count, self.limits.max_dezena_count
        if isinstance(k, bool) or not isinstance(k, int) or k < lo or k > hi:
            raise KOutOfRange(f"Valor de k inválido: {k}. Permitido entre {lo} e {hi}.")

    def _assert_budget_in_range(self, budget_cents):
        if isinstance(budget_cents, bool) or not isinstance(budget_cents, int):
            raise BudgetBelowMin("Orçamento inválido")
        if budget_cents < self.limits.min_budget_cents:
            raise BudgetBelowMin(
                f"Orçamento mínimo é {self.limits.min_budget_cents} centavos"
            )
        if budget_cents > self.limits.max_budget_cents:
            raise BudgetAboveMax(
                f"Orçamento máximo permitido é {self.limits.max_budget_cents} centavos"
            )

    # ── Lookups ─────────────────────────────────

    def get_price_for_k(self, k: int) -> PriceInfo:
        self._assert_k_in_range(k)

        cents = self.price_table.get(k)
        if cents is not None:
            return PriceInfo(k=k, cost_cents=int(cents), source="price_table")

        if not self.allow_fallback:
            raise PriceNotFound(f"Preço não encontrado para apostas de {k} dezenas")

        return PriceInfo(
            k=k,
            cost_cents=combination(k, SIMPLE_BET_SIZE) * self.base_price_cents,
            source="env:MEGASENA_BASE_PRICE_CENTS",
        )

    def calculate_ticket_cost(self, k: int) -> int:
        return self.get_price_for_k(k).cost_cents

    def calculate_budget_allocation(self, budget_cents: int,
                                    k: Optional[int] = None) -> BudgetAllocationResult:
        """How many k-number tickets fit in the budget.

        Budget bounds are checked first, then k, then affordability.
        """
        if k is None:
            k = self.limits.default_dezena_count
        self._assert_budget_in_range(budget_cents)
        self._assert_k_in_range(k)

        ticket_cost = self.calculate_ticket_cost(k)
        if ticket_cost <= 0:
            raise PriceNotFound(f"Preço inválido para apostas de {k} dezenas: {ticket_cost}")

        max_by_budget = budget_cents // ticket_cost
        if max_by_budget <= 0:
            raise BudgetBelowMin(f"Orçamento insuficiente para gerar aposta de {k} dezenas")

        max_tickets = min(max_by_budget, self.limits.max_tickets_per_batch)
        result = BudgetAllocationResult(
            budget_cents=budget_cents,
            ticket_cost_cents=ticket_cost,
            max_tickets=max_tickets,
            leftover_cents=budget_cents - max_tickets * ticket_cost,
            constrained_by_ticket_limit=max_tickets < max_by_budget,
        )
        logger.debug(
            f"Allocation: budget={budget_cents} k={k} cost={ticket_cost} "
            f"tickets={max_tickets} leftover={result.leftover_cents}"
        )
        return result


# ═══════════════════════════════════════════════
# Module-level shortcuts (default service)
# ═══════════════════════════════════════════════

def calculate_ticket_cost(k: int) -> int:
    return PricingService().calculate_ticket_cost(k)


def calculate_budget_allocation(budget_cents: int, k: Optional[int] = None) -> BudgetAllocationResult:
    return PricingService().calculate_budget_allocation(budget_cents, k)
