#!/usr/bin/env python3
"""
Tests for the batch generator and the bets CLI

Validates:
1.  Strategy normalization (merge, last window wins, zero weights dropped)
2.  Largest-remainder ticket allocation
3.  Deterministic batches and per-ticket sub-seeds
4.  Pricing / seed errors propagate before generation
5.  Uniform fallback on strategy failure, double failure shortfall
6.  Deadline → BatchGenerationTimeout with diagnostic partial result
7.  Aggregated metrics and the v1.0 payload contract
8.  Single-ticket generation
9.  CLI argument parsing and exit codes
"""

import contextlib
import io
import json
import sys
import unittest
from pathlib import Path
from unittest.mock import patch

PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))


def _stats(count: int = 120):
    from tools.draw_stats import Draw, DrawStatistics
    return DrawStatistics([
        Draw(concurso=c, dezenas=tuple(((c + j * 7) % 60) + 1 for j in range(6)))
        for c in range(1, count + 1)
    ])


def _pricing():
    from tools.pricing import PricingService
    return PricingService(base_price_cents=600)


def _clock(*ticks, after: float = 1_000.0):
    """Monotonic clock stub: yields ticks, then `after` forever."""
    values = iter(ticks)
    return lambda: next(values, after)


# ============================================================
# Planning
# ============================================================

class TestStrategyNormalization(unittest.TestCase):

    def test_defaults_when_missing(self):
        from flows.batch_generator import choose_strategies
        for empty in (None, []):
            result = choose_strategies(empty)
            self.assertEqual([(s.name.value, s.weight) for s in result],
                             [("balanced", 2), ("uniform", 1)])

    def test_duplicates_merged(self):
        from flows.batch_generator import normalize_strategies
        result = normalize_strategies([
            {"name": "uniform", "weight": 1, "window": 10},
            {"name": "hot-streak", "weight": 1},
            {"name": "uniform", "weight": 2},
            {"name": "hot-streak", "weight": 1, "window": 30},
        ])
        self.assertEqual(len(result), 2)
        uniform, hot = result
        self.assertEqual((uniform.weight, uniform.window), (3, 10))
        self.assertEqual((hot.weight, hot.window), (2, 30))

    def test_zero_weights_dropped(self):
        from flows.batch_generator import normalize_strategies
        result = normalize_strategies([{"name": "balanced", "weight": 0}, {"name": "uniform"}])
        self.assertEqual([s.name.value for s in result], ["uniform"])

    def test_no_strategy_available(self):
        from flows.batch_generator import generate_batch
        from sim_engine.errors import BatchGenerationError
        with self.assertRaises(BatchGenerationError) as ctx:
            generate_batch({
                "budgetCents": 1200, "seed": "X",
                "strategies": [{"name": "uniform", "weight": 0}],
            }, pricing=_pricing())
        self.assertEqual(ctx.exception.code, "NO_STRATEGY_AVAILABLE")


class TestTicketAllocation(unittest.TestCase):

    def _requests(self, *weights):
        from config.bet_schema import StrategyRequest
        names = ["balanced", "uniform", "hot-streak", "cold-surge"]
        return [StrategyRequest(name=names[i], weight=w) for i, w in enumerate(weights)]

    def test_largest_remainder(self):
        from flows.batch_generator import allocate_tickets
        self.assertEqual(allocate_tickets(5, self._requests(2, 1)), [3, 2])
        self.assertEqual(allocate_tickets(10, self._requests(2, 1)), [7, 3])

    def test_ties_go_to_request_order(self):
        from flows.batch_generator import allocate_tickets
        self.assertEqual(allocate_tickets(4, self._requests(1, 1, 1)), [2, 1, 1])
        self.assertEqual(allocate_tickets(1, self._requests(1, 1, 1, 1)), [1, 0, 0, 0])

    def test_sum_always_matches(self):
        from flows.batch_generator import allocate_tickets
        for total in range(0, 101, 7):
            plan = allocate_tickets(total, self._requests(0.1, 0.2, 0.7, 1.3))
            self.assertEqual(sum(plan), total)

    def test_nothing_to_allocate(self):
        from flows.batch_generator import allocate_tickets
        self.assertEqual(allocate_tickets(0, self._requests(1, 2)), [0, 0])


# ============================================================
# Generation
# ============================================================

class TestGenerateBatch(unittest.TestCase):

    def _run(self, **request):
        from flows.batch_generator import generate_batch
        request.setdefault("seed", "ABC")
        stats = request.pop("stats", None)
        return generate_batch(request, stats=stats, pricing=_pricing())

    def test_uniform_batch_exact_budget(self):
        """Budget 2400 at 600 per ticket → 4 uniform tickets, nothing left."""
        result = self._run(budget_cents=2_400, strategies=[{"name": "uniform", "weight": 1}])
        self.assertEqual(len(result.tickets), 4)
        self.assertEqual(result.total_cost_cents, 2_400)
        self.assertEqual(result.leftover_cents, 0)
        self.assertTrue(all(t.strategy.value == "uniform" for t in result.tickets))
        self.assertEqual([t.seed for t in result.tickets],
                         [f"ABC:uniform:{i}" for i in range(4)])
        self.assertEqual(len({tuple(t.dezenas) for t in result.tickets}), 4)
        self.assertEqual(result.warnings, [])

    def test_reproducible(self):
        kwargs = dict(budget_cents=6_000, stats=_stats(), window=50)
        first = self._run(**kwargs)
        kwargs["stats"] = _stats()
        second = self._run(**kwargs)
        self.assertEqual([t.dezenas for t in first.tickets], [t.dezenas for t in second.tickets])
        self.assertEqual(first.payload.to_json(), second.payload.to_json())

    def test_default_strategies_with_stats(self):
        result = self._run(budget_cents=6_000, stats=_stats(), window=50)
        summaries = {s.name.value: s for s in result.payload.strategies}
        self.assertEqual(summaries["balanced"].generated, 7)
        self.assertEqual(summaries["uniform"].generated, 3)
        self.assertEqual(summaries["balanced"].failures, 0)
        for ticket in result.tickets:
            if ticket.strategy.value == "balanced":
                self.assertTrue(all(q.count >= 1 for q in ticket.metadata.quadrants))

    def test_per_strategy_window_overrides_global(self):
        result = self._run(
            budget_cents=600, stats=_stats(), window=50,
            strategies=[{"name": "hot-streak", "weight": 1, "window": 20}],
        )
        self.assertEqual(result.tickets[0].metadata.details["window"], 20)

    def test_larger_k_costs_more(self):
        result = self._run(budget_cents=9_000, k=7, strategies=[{"name": "uniform"}])
        self.assertEqual(len(result.tickets), 2)
        self.assertTrue(all(len(t.dezenas) == 7 for t in result.tickets))
        self.assertEqual(result.ticket_cost_cents, 4_200)
        self.assertEqual(result.leftover_cents, 600)

    def test_budget_below_min_before_generation(self):
        from sim_engine.strategies.uniform import UniformStrategy
        from tools.pricing import BudgetBelowMin
        with patch.object(UniformStrategy, "select") as select:
            with self.assertRaises(BudgetBelowMin):
                self._run(budget_cents=500)
        select.assert_not_called()

    def test_invalid_seed(self):
        from sim_engine.errors import InvalidSeed
        with self.assertRaises(InvalidSeed):
            self._run(budget_cents=1_200, seed="   ")

    def test_missing_or_non_string_seed(self):
        from sim_engine.errors import InvalidSeed
        for seed in (None, 42):
            with self.assertRaises(InvalidSeed):
                self._run(budget_cents=1_200, seed=seed)

    def test_non_integer_budget(self):
        from tools.pricing import BudgetBelowMin
        for budget in (None, 1_200.5, "1200"):
            with self.assertRaises(BudgetBelowMin):
                self._run(budget_cents=budget)

    def test_k_out_of_range(self):
        from tools.pricing import KOutOfRange
        with self.assertRaises(KOutOfRange):
            self._run(budget_cents=1_200, k=16)


class TestFallback(unittest.TestCase):

    def _run(self, **request):
        from flows.batch_generator import generate_batch
        return generate_batch(
            {"budgetCents": 600, "seed": "seed", "strategies": [{"name": "balanced", "weight": 1}], **request},
            stats=_stats(), pricing=_pricing(),
        )

    def test_balanced_failure_falls_back_to_uniform(self):
        from sim_engine.errors import QuadrantExhausted
        from sim_engine.strategies.balanced import BalancedStrategy
        with patch.object(BalancedStrategy, "select", side_effect=QuadrantExhausted(3)):
            result = self._run()

        self.assertEqual(len(result.tickets), 1)
        ticket = result.tickets[0]
        self.assertEqual(ticket.strategy.value, "uniform")
        self.assertEqual(ticket.seed, "seed:balanced:0")
        self.assertTrue(any("fallback uniforme" in w for w in result.warnings))
        self.assertEqual(result.total_cost_cents, 600)
        self.assertEqual(result.leftover_cents, 0)

        summaries = {s.name.value: s for s in result.payload.strategies}
        self.assertEqual((summaries["balanced"].attempts, summaries["balanced"].failures), (1, 1))
        self.assertEqual((summaries["uniform"].attempts, summaries["uniform"].generated), (1, 1))

    def test_fallback_uses_same_sub_seed(self):
        from flows.batch_generator import generate_ticket
        from sim_engine.strategies.balanced import BalancedStrategy
        with patch.object(BalancedStrategy, "select", side_effect=RuntimeError("boom")):
            result = self._run()
        expected = generate_ticket("uniform", "seed:balanced:0")
        self.assertEqual(result.tickets[0].dezenas, expected.dezenas)

    def test_missing_stats_triggers_fallback(self):
        from flows.batch_generator import generate_batch
        result = generate_batch(
            {"budgetCents": 1_200, "seed": "S", "strategies": [{"name": "cold-surge"}]},
            pricing=_pricing(),
        )
        self.assertEqual([t.strategy.value for t in result.tickets], ["uniform", "uniform"])
        self.assertEqual(len(result.warnings), 1)

    def test_double_failure_reports_shortfall(self):
        from sim_engine.strategies.balanced import BalancedStrategy
        from sim_engine.strategies.uniform import UniformStrategy
        with patch.object(BalancedStrategy, "select", side_effect=RuntimeError("balanced failed")), \
                patch.object(UniformStrategy, "select", side_effect=RuntimeError("uniform failed")):
            result = self._run()

        self.assertEqual(result.tickets, [])
        self.assertEqual(result.total_cost_cents, 0)
        self.assertEqual(result.leftover_cents, 600)
        self.assertEqual(result.payload.leftover_cents, 600)
        self.assertIn("Lote gerou 0 de 1 apostas esperadas", result.warnings)
        self.assertEqual(result.payload.metrics.average_sum, 0)

    def test_uniform_failure_has_no_second_attempt(self):
        from flows.batch_generator import generate_batch
        from sim_engine.strategies.uniform import UniformStrategy
        with patch.object(UniformStrategy, "select", side_effect=RuntimeError("nope")) as select:
            result = generate_batch(
                {"budgetCents": 600, "seed": "S", "strategies": [{"name": "uniform"}]},
                pricing=_pricing(),
            )
        self.assertEqual(select.call_count, 1)
        self.assertEqual(result.warnings, ["Lote gerou 0 de 1 apostas esperadas"])


class TestTimeout(unittest.TestCase):

    def _run(self, clock, budget=3_000):
        from flows.batch_generator import generate_batch
        return generate_batch(
            {"budgetCents": budget, "seed": "T", "timeoutMs": 1, "strategies": [{"name": "uniform"}]},
            pricing=_pricing(), clock=clock,
        )

    def test_deadline_already_passed(self):
        from sim_engine.errors import BatchGenerationError, BatchGenerationTimeout
        with self.assertRaises(BatchGenerationTimeout) as ctx:
            self._run(_clock(0.0))
        error = ctx.exception
        self.assertIsInstance(error, BatchGenerationError)
        self.assertEqual(error.code, "GENERATION_TIMEOUT")
        self.assertEqual(error.partial.tickets, [])
        self.assertEqual(error.partial.leftover_cents, 3_000)
        self.assertIn("Lote gerou 0 de 5 apostas esperadas", error.partial.warnings)

    def test_partial_keeps_tickets_made_before_deadline(self):
        from sim_engine.errors import BatchGenerationTimeout
        with self.assertRaises(BatchGenerationTimeout) as ctx:
            self._run(_clock(0.0, 0.0, 0.0))
        partial = ctx.exception.partial
        self.assertEqual(len(partial.tickets), 2)
        self.assertEqual(partial.total_cost_cents, 1_200)
        self.assertEqual(partial.leftover_cents, 1_800)

    def test_deadline_helper(self):
        from flows.batch_generator import Deadline
        deadline = Deadline(500, _clock(10.0, 10.2, 10.2, 10.6))
        self.assertAlmostEqual(deadline.elapsed_ms(), 200.0)
        self.assertFalse(deadline.expired())
        self.assertTrue(deadline.expired())


# ============================================================
# Aggregation & payload
# ============================================================

class TestPayload(unittest.TestCase):

    def setUp(self):
        from flows.batch_generator import generate_batch
        self.result = generate_batch(
            {"budgetCents": 3_000, "seed": "PAY", "window": 40,
             "strategies": [{"name": "balanced", "weight": 1}]},
            stats=_stats(), pricing=_pricing(),
        )

    def test_payload_fields(self):
        data = self.result.payload.to_dict()
        self.assertEqual(data["version"], "1.0")
        self.assertEqual(data["seed"], "PAY")
        self.assertEqual(data["requestedBudgetCents"], 3_000)
        self.assertEqual(data["ticketCostCents"], 600)
        self.assertEqual(data["totalCostCents"], 3_000)
        self.assertEqual(data["leftoverCents"], 0)
        self.assertEqual(data["ticketsGenerated"], 5)
        self.assertEqual(data["config"]["k"], 6)
        self.assertEqual(data["config"]["window"], 40)
        self.assertIn("timeoutMs", data["config"])
        self.assertNotIn("ticket", data)

    def test_uniform_summary_always_present(self):
        names = [s.name.value for s in self.result.payload.strategies]
        self.assertEqual(names, ["balanced", "uniform"])
        uniform = self.result.payload.strategies[1]
        self.assertEqual((uniform.weight, uniform.attempts), (0, 0))

    def test_metrics(self):
        metrics = self.result.payload.metrics
        tickets = self.result.tickets
        self.assertAlmostEqual(metrics.average_sum, sum(t.metadata.sum for t in tickets) / len(tickets))
        # balanced k=6: one number per quadrant, three even / three odd
        self.assertEqual(metrics.parity_spread, 0)
        self.assertEqual(metrics.quadrant_coverage.min, 6)
        self.assertEqual(metrics.quadrant_coverage.average, 6)
        self.assertGreater(metrics.average_score, 0)

    def test_build_metrics_spread(self):
        from flows.batch_generator import build_metrics
        from config.bet_schema import StrategyName
        from types import SimpleNamespace
        from sim_engine.strategies.base import build_metadata
        tickets = [
            SimpleNamespace(metadata=build_metadata(StrategyName.UNIFORM, "a", [2, 4, 6, 8, 10, 12])),
            SimpleNamespace(metadata=build_metadata(StrategyName.UNIFORM, "b", [1, 2, 13, 24, 35, 46])),
        ]
        metrics = build_metrics(tickets)
        self.assertEqual(metrics.parity_spread, 6)
        self.assertEqual(metrics.quadrant_coverage.min, 2)
        self.assertEqual(metrics.quadrant_coverage.max, 5)
        self.assertEqual(metrics.average_score, 0)

    def test_invalid_payload_is_hard_error(self):
        from pydantic import ValidationError
        from flows.batch_generator import generate_batch
        with patch("config.settings.GeneratorConfig.SCHEMA_VERSION", "2.0"):
            with self.assertRaises(ValidationError):
                generate_batch({"budgetCents": 600, "seed": "V", "strategies": [{"name": "uniform"}]},
                               pricing=_pricing())

    def test_payload_for_ticket(self):
        ticket = self.result.tickets[0]
        row = self.result.payload.for_ticket(ticket).to_dict()
        self.assertEqual(row["ticket"]["seed"], ticket.seed)
        self.assertEqual(row["ticket"]["costCents"], 600)
        self.assertIsNone(self.result.payload.ticket)


class TestGenerateTicket(unittest.TestCase):

    def test_single_ticket_is_free(self):
        from flows.batch_generator import generate_ticket
        ticket = generate_ticket("uniform", "TEST-SEED")
        self.assertEqual(ticket.cost_cents, 0)
        self.assertEqual(ticket.seed, "TEST-SEED")
        self.assertEqual(len(ticket.dezenas), 6)
        self.assertEqual(generate_ticket({"name": "uniform"}, "TEST-SEED").dezenas, ticket.dezenas)

    def test_no_fallback_outside_batch(self):
        from flows.batch_generator import generate_ticket
        from sim_engine.errors import StrategyFailure
        with self.assertRaises(StrategyFailure):
            generate_ticket("hot-streak", "X")

    def test_uses_stats_and_k(self):
        from flows.batch_generator import generate_ticket
        ticket = generate_ticket({"name": "balanced", "window": 30}, "X", k=9, stats=_stats())
        self.assertEqual(len(ticket.dezenas), 9)
        self.assertEqual(ticket.metadata.details["totalDraws"], 30)


# ============================================================
# CLI
# ============================================================

class TestBetsCli(unittest.TestCase):

    def test_parse_strategy(self):
        from tools.bets_cli import parse_strategy
        self.assertEqual(parse_strategy("balanced").weight, 1)
        self.assertEqual(parse_strategy("balanced:2").weight, 2)
        req = parse_strategy("hot-streak:1.5:50")
        self.assertEqual((req.name.value, req.weight, req.window), ("hot-streak", 1.5, 50))

    def test_parse_strategy_rejects_garbage(self):
        import argparse
        from tools.bets_cli import parse_strategy
        for value in ("lucky", "uniform:x", "uniform:1:0", "uniform:-1", "a:b:c:d"):
            with self.assertRaises(argparse.ArgumentTypeError):
                parse_strategy(value)

    def test_parser_collects_repeated_strategies(self):
        from tools.bets_cli import build_parser
        args = build_parser().parse_args([
            "--budget", "3000", "--seed", "ABC",
            "--strategy", "balanced:2", "--strategy", "uniform:1",
            "--timeout-ms", "500", "--set", "max_tickets_per_batch=10",
        ])
        self.assertEqual(args.budget, 3000)
        self.assertEqual([s.name.value for s in args.strategies], ["balanced", "uniform"])
        self.assertEqual(args.timeout_ms, 500)
        self.assertEqual(args.overrides, [("max_tickets_per_batch", 10)])

    def test_main_json_output(self):
        from tools.bets_cli import main
        out = io.StringIO()
        with contextlib.redirect_stdout(out):
            code = main(["--budget", "1200", "--seed", "CLI", "--strategy", "uniform", "--json"])
        self.assertEqual(code, 0)
        payload = json.loads(out.getvalue())
        self.assertEqual(payload["ticketsGenerated"], 2)
        self.assertEqual(payload["seed"], "CLI")

    def test_main_pricing_error_exit_code(self):
        from tools.bets_cli import main
        with contextlib.redirect_stdout(io.StringIO()):
            self.assertEqual(main(["--budget", "500", "--seed", "X"]), 1)

    def test_main_requires_budget(self):
        from tools.bets_cli import main
        with contextlib.redirect_stderr(io.StringIO()):
            with self.assertRaises(SystemExit):
                main(["--seed", "X"])

    def test_main_rejects_dezena_limit_beyond_fifteen(self):
        from tools.bets_cli import main
        argv = ["--set", "max_dezena_count=16", "--set", "max_budget_cents=5000000",
                "--budget", "4804800", "--k", "16", "--strategy", "uniform",
                "--seed", "S", "--json"]
        with contextlib.redirect_stdout(io.StringIO()), contextlib.redirect_stderr(io.StringIO()):
            with self.assertRaises(SystemExit) as ctx:
                main(argv)
        self.assertEqual(ctx.exception.code, 2)


if __name__ == "__main__":
    import logging
    logging.disable(logging.WARNING)

    unittest.main(verbosity=2)
