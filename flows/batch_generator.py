"""
MEGASENA LAB — Batch Generator

Turns a budget, a seed and a weighted list of strategies into a costed,
reproducible set of tickets.

Stages:
  Planning → Allocating → Generating → (Fallback)* → Aggregating → Done | TimedOut

  planning     seed check, strategy normalization (merge duplicates, drop weight 0)
  allocating   pricing (how many tickets fit) + largest-remainder split by weight
  generating   per planned ticket: deadline check, sub-seed "{seed}:{name}:{i}",
               strategy call; on failure a uniform ticket on the same sub-seed
  aggregating  costs recomputed from emitted tickets, metrics, payload v1.0

Pricing and seed errors propagate before any ticket is generated. Per-ticket
failures only show up as warnings. A missed deadline raises
BatchGenerationTimeout; the tickets made so far ride along on `.partial`.

Usage:
    from flows.batch_generator import generate_batch
    result = generate_batch({"budgetCents": 3000, "seed": "ABC"}, stats=stats)
    result.payload.to_json(indent=2)
"""

import logging
import math
import time
from fractions import Fraction
from typing import Callable, Optional

from pydantic import ValidationError

from config.bet_schema import (
    BatchGenerationResult, BatchMetrics, GenerateBatchRequest, PayloadConfig,
    QuadrantCoverageMetrics, StrategyExecutionSummary, StrategyName,
    StrategyPayload, StrategyRequest, StrategyTicket,
)
from config.settings import GeneratorConfig
from sim_engine.errors import BatchGenerationError, BatchGenerationTimeout
from sim_engine.strategies import StrategyContext, get_strategy
from sim_engine.strategies.base import mean, normalize_seed
from tools.pricing import PricingService

logger = logging.getLogger("megasena.bets")

NO_STRATEGY_AVAILABLE = "NO_STRATEGY_AVAILABLE"


# ═══════════════════════════════════════════════
# Deadline
# ═══════════════════════════════════════════════

class Deadline:
    """Wall-clock budget for one batch, measured on a monotonic clock.

    Sampled once at construction and compared before every ticket attempt.
    Nothing is interrupted mid-attempt; the caller decides what to do when
    expired() turns true.
    """

    def __init__(self, timeout_ms: int, clock: Callable[[], float] = time.monotonic):
        self.timeout_ms = timeout_ms
        self.clock = clock
        self.start = clock()
        self.expires_at = self.start + timeout_ms / 1000.0

    def elapsed_ms(self) -> float:
        return (self.clock() - self.start) * 1000.0

    def expired(self) -> bool:
        return self.clock() > self.expires_at


# ═══════════════════════════════════════════════
# Planning
# ═══════════════════════════════════════════════

def _default_strategies() -> list[StrategyRequest]:
    return [StrategyRequest.model_validate(s) for s in GeneratorConfig.DEFAULT_STRATEGIES]


def normalize_strategies(strategies=None) -> list[StrategyRequest]:
    """Merge repeated names (weights add up, last explicit window wins),
    drop zero-weight entries. An empty or missing list means the defaults.
    """
    source = strategies or _default_strategies()

    merged: dict[StrategyName, dict] = {}
    for entry in source:
        if not isinstance(entry, StrategyRequest):
            entry = StrategyRequest.model_validate(entry)
        current = merged.get(entry.name)
        if current is None:
            merged[entry.name] = {"name": entry.name, "weight": entry.weight, "window": entry.window}
            continue
        current["weight"] += entry.weight
        if entry.window is not None:
            current["window"] = entry.window

    return [StrategyRequest(**m) for m in merged.values() if m["weight"] > 0]


def choose_strategies(strategies=None) -> list[StrategyRequest]:
    """The strategy list a batch would actually run with."""
    return normalize_strategies(strategies)


def allocate_tickets(max_tickets: int, strategies) -> list[int]:
    """Split max_tickets across strategies proportionally to weight.

    Largest-remainder method on exact fractions: floors first, then the
    leftover tickets go to the largest fractional parts, ties to the earlier
    strategy. The counts always sum to max_tickets.
    """
    if max_tickets <= 0 or not strategies:
        return [0] * len(strategies)

    weights = [Fraction(s.weight) for s in strategies]
    total = sum(weights)
    if total <= 0:
        return [0] * len(strategies)

    quotas = [max_tickets * w / total for w in weights]
    counts = [math.floor(q) for q in quotas]
    missing = max_tickets - sum(counts)

    by_remainder = sorted(range(len(quotas)), key=lambda i: (-(quotas[i] - counts[i]), i))
    for i in by_remainder[:missing]:
        counts[i] += 1
    return counts


# ═══════════════════════════════════════════════
# Aggregation
# ═══════════════════════════════════════════════

def build_metrics(tickets) -> BatchMetrics:
    if not tickets:
        return BatchMetrics(
            average_sum=0, average_score=0, parity_spread=0,
            quadrant_coverage=QuadrantCoverageMetrics(min=0, max=0, average=0),
        )

    metas = [t.metadata for t in tickets]
    parity_gaps = [abs(m.parity.even - m.parity.odd) for m in metas]
    coverage = [sum(1 for q in m.quadrants if q.count > 0) for m in metas]

    return BatchMetrics(
        average_sum=mean(m.sum for m in metas),
        average_score=mean(m.score or 0 for m in metas),
        parity_spread=max(parity_gaps) - min(parity_gaps),
        quadrant_coverage=QuadrantCoverageMetrics(
            min=min(coverage), max=max(coverage), average=mean(coverage),
        ),
    )


def _summaries(strategies) -> dict:
    summaries = {
        s.name: StrategyExecutionSummary(name=s.name, weight=s.weight)
        for s in strategies
    }
    # uniform is always reported, it is the fallback target
    summaries.setdefault(
        StrategyName.UNIFORM,
        StrategyExecutionSummary(name=StrategyName.UNIFORM, weight=0),
    )
    return summaries


def _build_result(*, seed, budget_cents, ticket_cost, planned, tickets,
                  summaries, warnings, strategies, k, window,
                  timeout_ms) -> BatchGenerationResult:
    warnings = list(warnings)
    if len(tickets) < planned:
        warnings.append(f"Lote gerou {len(tickets)} de {planned} apostas esperadas")

    total_cost = sum(t.cost_cents for t in tickets)
    leftover = budget_cents - total_cost

    try:
        payload = StrategyPayload(
            version=GeneratorConfig.SCHEMA_VERSION,
            seed=seed,
            requested_budget_cents=budget_cents,
            ticket_cost_cents=ticket_cost,
            total_cost_cents=total_cost,
            leftover_cents=leftover,
            tickets_generated=len(tickets),
            strategies=list(summaries.values()),
            metrics=build_metrics(tickets),
            config=PayloadConfig(
                strategies=strategies, k=k, window=window, timeout_ms=timeout_ms,
            ),
            warnings=warnings,
        )
    except ValidationError as e:
        logger.error(f"Invalid strategy payload: {e}")
        raise

    return BatchGenerationResult(
        tickets=tickets,
        ticket_cost_cents=ticket_cost,
        total_cost_cents=total_cost,
        budget_cents=budget_cents,
        leftover_cents=leftover,
        payload=payload,
        warnings=warnings,
    )


# ═══════════════════════════════════════════════
# Generation
# ═══════════════════════════════════════════════

def _run_strategy(name, sub_seed, k, window, stats, limits, cost_cents) -> StrategyTicket:
    result = get_strategy(name).generate(StrategyContext(
        seed=sub_seed, k=k, window=window, stats=stats, limits=limits,
    ))
    return StrategyTicket(
        strategy=name,
        dezenas=result.dezenas,
        metadata=result.metadata,
        cost_cents=cost_cents,
        seed=sub_seed,
    )


def _attempt_ticket(entry, sub_seed, *, k, window, stats, limits, cost_cents,
                    summaries, warnings) -> Optional[StrategyTicket]:
    """One planned ticket: primary strategy, then uniform on the same sub-seed."""
    primary = summaries[entry.name]
    primary.attempts += 1
    try:
        ticket = _run_strategy(entry.name, sub_seed, k, window, stats, limits, cost_cents)
        primary.generated += 1
        return ticket
    except Exception as e:
        primary.failures += 1
        if entry.name == StrategyName.UNIFORM:
            # Retrying uniform on the same sub-seed would fail the same way
            logger.warning(f"uniform failed for {sub_seed}: {e}")
            return None
        logger.warning(f"{entry.name.value} failed for {sub_seed}: {e}; trying uniform fallback")
        notice = (f"Falha ao gerar aposta com estratégia {entry.name.value}, "
                  f"aplicando fallback uniforme")
        if notice not in warnings:
            warnings.append(notice)

    fallback = summaries[StrategyName.UNIFORM]
    fallback.attempts += 1
    try:
        ticket = _run_strategy(StrategyName.UNIFORM, sub_seed, k, None, stats, limits, cost_cents)
        fallback.generated += 1
        return ticket
    except Exception as e:
        fallback.failures += 1
        logger.warning(f"Uniform fallback failed for {sub_seed}: {e}")
        return None


def generate_batch(request, *, stats=None, pricing: Optional[PricingService] = None,
                   clock: Callable[[], float] = time.monotonic) -> BatchGenerationResult:
    """Generate a full batch for a GenerateBatchRequest (or its dict form).

    Raises:
        InvalidSeed: missing, empty or non-string seed.
        BatchGenerationError: no strategy with positive weight.
        PricingError: k or budget outside limits, a non-integer budget, or a
            budget below one ticket.
        pydantic.ValidationError: malformed strategies, window or timeoutMs.
        BatchGenerationTimeout: deadline passed before every planned ticket
            was attempted.
    """
    if not isinstance(request, GenerateBatchRequest):
        request = GenerateBatchRequest.model_validate(request)
    pricing = pricing or PricingService()

    # ── Planning ──
    seed = normalize_seed(request.seed)
    strategies = normalize_strategies(request.strategies)
    if not strategies:
        raise BatchGenerationError(NO_STRATEGY_AVAILABLE, "Nenhuma estratégia válida informada")

    k = request.k if request.k is not None else pricing.limits.default_dezena_count
    timeout_ms = request.timeout_ms or GeneratorConfig.DEFAULT_TIMEOUT_MS
    deadline = Deadline(timeout_ms, clock)

    logger.info(
        f"Batch start: seed={seed} budget={request.budget_cents} k={k} "
        f"strategies={[s.name.value for s in strategies]} window={request.window} "
        f"timeout={timeout_ms}ms"
    )

    # ── Allocating ──
    allocation = pricing.calculate_budget_allocation(request.budget_cents, k)
    plan = allocate_tickets(allocation.max_tickets, strategies)

    summaries = _summaries(strategies)
    tickets: list[StrategyTicket] = []
    warnings: list[str] = []

    def result_so_far():
        return _build_result(
            seed=seed, budget_cents=allocation.budget_cents,
            ticket_cost=allocation.ticket_cost_cents, planned=allocation.max_tickets,
            tickets=tickets, summaries=summaries, warnings=warnings,
            strategies=strategies, k=k, window=request.window, timeout_ms=timeout_ms,
        )

    # ── Generating ──
    for entry, planned in zip(strategies, plan):
        window = entry.window if entry.window is not None else request.window
        for i in range(planned):
            if deadline.expired():
                logger.error(
                    f"Batch timed out after {deadline.elapsed_ms():.0f}ms: "
                    f"{len(tickets)}/{allocation.max_tickets} tickets"
                )
                raise BatchGenerationTimeout(
                    "Tempo limite atingido durante a geração de apostas",
                    partial=result_so_far(),
                )
            ticket = _attempt_ticket(
                entry, f"{seed}:{entry.name.value}:{i}",
                k=k, window=window, stats=stats, limits=pricing.limits,
                cost_cents=allocation.ticket_cost_cents,
                summaries=summaries, warnings=warnings,
            )
            if ticket is not None:
                tickets.append(ticket)

    # ── Aggregating ──
    result = result_so_far()
    logger.info(
        f"Batch done: {len(result.tickets)}/{allocation.max_tickets} tickets, "
        f"cost={result.total_cost_cents} leftover={result.leftover_cents} "
        f"in {deadline.elapsed_ms():.0f}ms"
    )
    return result


def generate_ticket(strategy, seed: str, k: Optional[int] = None,
                    window: Optional[int] = None, stats=None,
                    pricing: Optional[PricingService] = None) -> StrategyTicket:
    """Single ticket outside any batch. No fallback, no cost (cost_cents=0)."""
    seed = normalize_seed(seed)
    if isinstance(strategy, (str, StrategyName)):
        strategy = {"name": strategy}
    entries = normalize_strategies([strategy])
    if not entries:
        raise BatchGenerationError(NO_STRATEGY_AVAILABLE, "Estratégia inválida")
    entry = entries[0]

    limits = (pricing or PricingService()).limits
    return _run_strategy(
        entry.name, seed, k,
        entry.window if entry.window is not None else window,
        stats, limits, 0,
    )
