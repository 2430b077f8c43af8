#!/usr/bin/env python3
"""
MEGASENA LAB — Unit Test Suite

Run: python tests.py
     python tests.py -v            # verbose
     python tests.py TestPricing   # run specific class

Test categories:
  TestSeedHash / TestMulberry32   — seed hashing, generator determinism
  TestSampling                    — unique sampling, weighted picks, pools
  TestUniformStrategy … Balanced  — per-strategy invariants
  TestQuadrantTargets             — balanced quadrant target computation
  TestStrategyRegistry            — names, labels, unknown strategies
  TestPricing                     — ticket cost, budget allocation, error codes
  TestSettings                    — betting limits, env overrides
  TestDrawStatistics              — aggregations, windows, cache
  TestSchemaValidation            — camelCase contracts and invariants
"""

import json
import math
import os
import sys
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

# ── Ensure project root is on sys.path ──
PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))


def _history(count: int):
    """`count` synthetic draws with unique dezenas spread over all decades."""
    from tools.draw_stats import Draw
    return [
        Draw(concurso=c, dezenas=tuple(((c + j * 7) % 60) + 1 for j in range(6)))
        for c in range(1, count + 1)
    ]


def _fixed_rng(value: float):
    return lambda: value


def _assert_ticket_invariants(case, dezenas, metadata, k):
    case.assertEqual(len(dezenas), k)
    case.assertEqual(dezenas, sorted(set(dezenas)))
    case.assertTrue(all(1 <= d <= 60 for d in dezenas))
    case.assertEqual(metadata.k, k)
    case.assertEqual(metadata.sum, sum(dezenas))
    case.assertEqual(metadata.parity.even + metadata.parity.odd, k)
    case.assertEqual(len(metadata.quadrants), 6)
    case.assertEqual(sum(q.count for q in metadata.quadrants), k)


# ============================================================
# Seeded RNG
# ============================================================

class TestSeedHash(unittest.TestCase):

    def test_polynomial_hash_matches_reference(self):
        """×31 polynomial over UTF-16 units (same as Java's String.hashCode)."""
        from tools.seeded_rng import hash_seed
        self.assertEqual(hash_seed("a"), 97)
        self.assertEqual(hash_seed("ab"), 97 * 31 + 98)
        self.assertEqual(hash_seed("hello"), 99162322)
        self.assertEqual(hash_seed("TEST-SEED"), 1589819084)

    def test_negative_int32_folds_to_unsigned(self):
        from tools.seeded_rng import hash_seed
        # "polygenelubricants".hashCode() == -2**31 in int32
        self.assertEqual(hash_seed("polygenelubricants"), 0x80000000)

    def test_zero_hash_becomes_one(self):
        from tools.seeded_rng import hash_seed
        self.assertEqual(hash_seed(""), 1)

    def test_non_bmp_characters_hash_as_surrogate_pairs(self):
        from tools.seeded_rng import hash_seed
        high, low = 0xD83C, 0xDF40   # U+1F340
        self.assertEqual(hash_seed("\U0001F340"), high * 31 + low)


class TestMulberry32(unittest.TestCase):

    def test_first_value_is_pinned(self):
        """Cross-implementation reference: any change to the mixing breaks this."""
        from tools.seeded_rng import Mulberry32
        self.assertEqual(Mulberry32("TEST-SEED")(), 0.41999137960374355)

    def test_same_seed_same_sequence(self):
        from tools.seeded_rng import Mulberry32
        a, b = Mulberry32("TEST-SEED"), Mulberry32("TEST-SEED")
        self.assertEqual([a() for _ in range(20)], [b.next() for _ in range(20)])

    def test_different_seeds_diverge(self):
        from tools.seeded_rng import Mulberry32
        a, b = Mulberry32("A"), Mulberry32("B")
        self.assertNotEqual([a() for _ in range(5)], [b() for _ in range(5)])

    def test_values_in_unit_interval(self):
        from tools.seeded_rng import Mulberry32
        rng = Mulberry32("range-check")
        for _ in range(2000):
            value = rng()
            self.assertGreaterEqual(value, 0.0)
            self.assertLess(value, 1.0)

    def test_state_advances_by_increment(self):
        from tools.seeded_rng import MULBERRY_INCREMENT, UINT32_MASK, Mulberry32
        rng = Mulberry32(0xFFFFFFFF)
        rng()
        self.assertEqual(rng.state, (0xFFFFFFFF + MULBERRY_INCREMENT) & UINT32_MASK)

    def test_int_seed_taken_modulo_2_32(self):
        from tools.seeded_rng import Mulberry32
        a, b = Mulberry32(5), Mulberry32(2 ** 32 + 5)
        self.assertEqual(a.state, b.state)
        self.assertEqual(a(), b())

    def test_copy_is_independent(self):
        from tools.seeded_rng import Mulberry32
        rng = Mulberry32("copy")
        rng()
        clone = rng.copy()
        expected = [rng() for _ in range(3)]
        self.assertEqual([clone() for _ in range(3)], expected)
        clone()
        self.assertNotEqual(clone.state, rng.state)


# ============================================================
# Sampling primitives
# ============================================================

class TestSampling(unittest.TestCase):

    def test_sample_unique_sorted_and_in_range(self):
        from tools.seeded_rng import Mulberry32, sample_unique_integers
        for seed in ("a", "b", "c", "TEST-SEED"):
            picks = sample_unique_integers(Mulberry32(seed), 1, 60, 15)
            self.assertEqual(len(picks), 15)
            self.assertEqual(picks, sorted(set(picks)))
            self.assertTrue(all(1 <= p <= 60 for p in picks))

    def test_sample_full_range_and_empty(self):
        from tools.seeded_rng import Mulberry32, sample_unique_integers
        self.assertEqual(sample_unique_integers(Mulberry32("x"), 1, 60, 60), list(range(1, 61)))
        self.assertEqual(sample_unique_integers(Mulberry32("x"), 1, 60, 0), [])

    def test_sample_out_of_range(self):
        from sim_engine.errors import OutOfRange
        from tools.seeded_rng import Mulberry32, sample_unique_integers
        with self.assertRaises(OutOfRange):
            sample_unique_integers(Mulberry32("x"), 1, 10, 11)
        with self.assertRaises(OutOfRange):
            sample_unique_integers(Mulberry32("x"), 1, 10, -1)

    def test_shuffle_does_not_mutate(self):
        from tools.seeded_rng import Mulberry32, shuffle
        items = list(range(10))
        out = shuffle(items, Mulberry32("s"))
        self.assertEqual(items, list(range(10)))
        self.assertEqual(sorted(out), items)

    def test_random_int_bounds(self):
        from tools.seeded_rng import random_int
        self.assertEqual(random_int(_fixed_rng(0.0), 3, 7), 3)
        self.assertEqual(random_int(_fixed_rng(0.9999), 3, 7), 7)

    def test_weighted_index_threshold(self):
        from tools.seeded_rng import weighted_index
        # threshold 1.0 lands exactly on the first cumulative boundary
        self.assertEqual(weighted_index([1, 1], _fixed_rng(0.5)), 0)
        self.assertEqual(weighted_index([1, 3], _fixed_rng(0.5)), 1)

    def test_negative_weights_count_as_zero(self):
        from tools.seeded_rng import weighted_index
        self.assertEqual(weighted_index([-5, 0, 3], _fixed_rng(0.5)), 2)

    def test_zero_total_falls_back_to_uniform_index(self):
        from tools.seeded_rng import weighted_index
        self.assertEqual(weighted_index([0, 0, 0, 0], _fixed_rng(0.5)), 2)

    def test_weighted_pick_errors(self):
        from sim_engine.errors import EmptyInput
        from tools.seeded_rng import Mulberry32, weighted_pick
        with self.assertRaises(EmptyInput):
            weighted_pick([], [], Mulberry32("x"))
        with self.assertRaises(ValueError):
            weighted_pick([1, 2], [1], Mulberry32("x"))

    def test_weighted_pool_draws_without_replacement(self):
        from tools.seeded_rng import Mulberry32, WeightedPool
        pool = WeightedPool(range(1, 11), [1] * 10)
        picks = pool.draw_many(Mulberry32("pool"), 20)
        self.assertEqual(sorted(picks), list(range(1, 11)))
        self.assertEqual(len(pool), 0)

    def test_weighted_pool_zero_weight_drawn_last(self):
        from tools.seeded_rng import Mulberry32, WeightedPool
        pool = WeightedPool(["a", "b", "c"], [0, 5, 5])
        picks = pool.draw_many(Mulberry32("zero"), 3)
        self.assertEqual(picks[-1], "a")


# ============================================================
# Strategies
# ============================================================

class TestUniformStrategy(unittest.TestCase):

    def _generate(self, seed="TEST-SEED", k=6):
        from sim_engine.strategies import StrategyContext, get_strategy
        return get_strategy("uniform").generate(StrategyContext(seed=seed, k=k))

    def test_deterministic_ticket(self):
        """Same seed and k reproduce exactly the same numbers."""
        first, second = self._generate(), self._generate()
        self.assertEqual(first.dezenas, second.dezenas)
        self.assertEqual(list(first.dezenas), [2, 20, 31, 48, 51, 54])
        _assert_ticket_invariants(self, first.dezenas, first.metadata, 6)
        self.assertEqual(first.metadata.details, {"source": "mulberry32"})
        self.assertIsNone(first.metadata.score)

    def test_all_k_values(self):
        for k in range(6, 16):
            result = self._generate(k=k)
            _assert_ticket_invariants(self, result.dezenas, result.metadata, k)

    def test_seed_is_trimmed(self):
        self.assertEqual(self._generate("  ABC  ").dezenas, self._generate("ABC").dezenas)

    def test_blank_seed_rejected(self):
        from sim_engine.errors import InvalidSeed
        for seed in ("", "   ", None):
            with self.assertRaises(InvalidSeed):
                self._generate(seed)

    def test_k_out_of_range(self):
        from tools.pricing import KOutOfRange
        for k in (5, 16, 0):
            with self.assertRaises(KOutOfRange):
                self._generate(k=k)

    def test_k_defaults_to_six(self):
        self.assertEqual(len(self._generate(k=None).dezenas), 6)


class TestHotStreakStrategy(unittest.TestCase):

    def _stats(self, hot, frequency=1e9):
        from tools.draw_stats import FrequencyItem, FrequencyResult

        class Stats:
            def __init__(self):
                self.windows = []

            def get_frequencies(self, window=None):
                self.windows.append(window)
                return FrequencyResult(
                    total_draws=100,
                    items=[FrequencyItem(dezena=d, hits=100, frequency=frequency) for d in hot],
                )

        return Stats()

    def test_requires_stats(self):
        from sim_engine.errors import StrategyFailure
        from sim_engine.strategies import StrategyContext, get_strategy
        with self.assertRaises(StrategyFailure):
            get_strategy("hot-streak").generate(StrategyContext(seed="x"))

    def test_favors_hot_numbers(self):
        from sim_engine.strategies import StrategyContext, get_strategy
        hot = [5, 17, 23, 38, 44, 59]
        result = get_strategy("hot-streak").generate(
            StrategyContext(seed="HOT", k=6, stats=self._stats(hot))
        )
        self.assertEqual(result.dezenas, hot)
        _assert_ticket_invariants(self, result.dezenas, result.metadata, 6)
        self.assertEqual(len(result.metadata.details["topHits"]), 3)

    def test_default_window(self):
        from sim_engine.strategies import StrategyContext, get_strategy
        stats = self._stats([1, 2, 3, 4, 5, 6])
        result = get_strategy("hot-streak").generate(StrategyContext(seed="HOT", stats=stats))
        self.assertEqual(stats.windows, [120])
        self.assertEqual(result.metadata.details["window"], 120)

    def test_zero_frequency_numbers_still_selectable(self):
        """k larger than the hot set fills from the floor-weighted rest."""
        from sim_engine.strategies import StrategyContext, get_strategy
        result = get_strategy("hot-streak").generate(
            StrategyContext(seed="HOT", k=10, window=30, stats=self._stats([1, 2, 3]))
        )
        self.assertEqual(len(result.dezenas), 10)
        self.assertTrue({1, 2, 3} <= set(result.dezenas))

    def test_deterministic_with_real_stats(self):
        from sim_engine.strategies import StrategyContext, get_strategy
        from tools.draw_stats import DrawStatistics
        stats = DrawStatistics(_history(80))
        ctx = StrategyContext(seed="HOT", k=8, window=50, stats=stats)
        first = get_strategy("hot-streak").generate(ctx)
        second = get_strategy("hot-streak").generate(ctx)
        self.assertEqual(first.dezenas, second.dezenas)
        _assert_ticket_invariants(self, first.dezenas, first.metadata, 8)


class TestColdSurgeStrategy(unittest.TestCase):

    def _stats(self, cold):
        from tools.draw_stats import RecencyEntry

        class Stats:
            def get_recency(self):
                return [
                    RecencyEntry(dezena=d, contests_since_last=10 ** 9 if d in cold else 1)
                    for d in range(1, 61)
                ]

        return Stats()

    def test_favors_longest_absent(self):
        from sim_engine.strategies import StrategyContext, get_strategy
        cold = [2, 13, 29, 31, 47, 60]
        result = get_strategy("cold-surge").generate(
            StrategyContext(seed="COLD", stats=self._stats(cold))
        )
        self.assertEqual(result.dezenas, cold)
        _assert_ticket_invariants(self, result.dezenas, result.metadata, 6)
        sample = result.metadata.details["recencySample"]
        self.assertEqual([s["dezena"] for s in sample], cold)

    def test_recency_weight(self):
        from sim_engine.strategies.cold_surge import recency_weight
        self.assertEqual(recency_weight(None), 50)
        self.assertEqual(recency_weight(0), 1)
        self.assertEqual(recency_weight(12), 12)

    def test_empty_history_treats_all_as_never_seen(self):
        from sim_engine.strategies import StrategyContext, get_strategy
        from tools.draw_stats import DrawStatistics
        result = get_strategy("cold-surge").generate(
            StrategyContext(seed="COLD", k=7, stats=DrawStatistics([]))
        )
        _assert_ticket_invariants(self, result.dezenas, result.metadata, 7)
        self.assertEqual(result.metadata.details["averageDelay"], 50)
        self.assertEqual(result.metadata.score, 50)


class TestBalancedStrategy(unittest.TestCase):

    def setUp(self):
        from tools.draw_stats import DrawStatistics
        self.stats = DrawStatistics(_history(120))

    def _generate(self, seed="BALANCED-SEED", k=6, window=50):
        from sim_engine.strategies import StrategyContext, get_strategy
        return get_strategy("balanced").generate(
            StrategyContext(seed=seed, k=k, window=window, stats=self.stats)
        )

    def test_one_per_quadrant_and_parity(self):
        result = self._generate()
        _assert_ticket_invariants(self, result.dezenas, result.metadata, 6)
        self.assertTrue(all(q.count >= 1 for q in result.metadata.quadrants))
        self.assertLessEqual(abs(result.metadata.parity.even - result.metadata.parity.odd), 2)

    def test_invariants_for_every_k(self):
        for k in range(6, 16):
            result = self._generate(seed=f"B-{k}", k=k)
            meta = result.metadata
            _assert_ticket_invariants(self, result.dezenas, meta, k)
            self.assertTrue(all(q.count >= 1 for q in meta.quadrants), f"k={k}")
            self.assertEqual(meta.parity.even, math.ceil(k / 2), f"k={k}")
            self.assertEqual(
                [q.count for q in meta.quadrants],
                list(meta.details["targets"].values()),
            )

    def test_deterministic(self):
        self.assertEqual(self._generate().dezenas, self._generate().dezenas)

    def test_metadata_details(self):
        details = self._generate().metadata.details
        self.assertEqual(details["totalDraws"], 50)
        self.assertEqual(set(details["targets"]), {"01-10", "11-20", "21-30", "31-40", "41-50", "51-60"})

    def test_requires_stats(self):
        from sim_engine.errors import StrategyFailure
        from sim_engine.strategies import StrategyContext, get_strategy
        with self.assertRaises(StrategyFailure):
            get_strategy("balanced").generate(StrategyContext(seed="x"))

    def test_quadrant_exhausted_is_strategy_failure(self):
        from sim_engine.errors import QuadrantExhausted, StrategyFailure
        from sim_engine.strategies.balanced import _SelectionState
        from tools.seeded_rng import Mulberry32
        state = _SelectionState(
            rng=Mulberry32("x"), frequencies={},
            parity_targets={"even": 3, "odd": 3},
            remaining=[[] for _ in range(6)], selected=[[] for _ in range(6)],
        )
        with self.assertRaises(QuadrantExhausted) as ctx:
            state.pick(2)
        self.assertIsInstance(ctx.exception, StrategyFailure)
        self.assertEqual(ctx.exception.quadrant_index, 2)


class TestQuadrantTargets(unittest.TestCase):

    def test_k6_one_each(self):
        from sim_engine.strategies.balanced import compute_quadrant_targets
        self.assertEqual(compute_quadrant_targets([0] * 6, 6), [1] * 6)
        self.assertEqual(compute_quadrant_targets([90, 10, 40, 0, 7, 3], 6), [1] * 6)

    def test_remainder_goes_to_busiest(self):
        from sim_engine.strategies.balanced import compute_quadrant_targets
        self.assertEqual(compute_quadrant_targets([10, 50, 30, 0, 0, 0], 8), [1, 2, 2, 1, 1, 1])

    def test_ties_keep_quadrant_order(self):
        from sim_engine.strategies.balanced import compute_quadrant_targets
        self.assertEqual(compute_quadrant_targets([0] * 6, 15), [3, 3, 3, 2, 2, 2])

    def test_sum_is_k(self):
        from sim_engine.strategies.balanced import compute_quadrant_targets
        for k in range(6, 61):
            targets = compute_quadrant_targets([5, 9, 1, 7, 3, 8], k)
            self.assertEqual(sum(targets), k)
            self.assertTrue(all(1 <= t <= 10 for t in targets))

    def test_more_than_sixty_rejected(self):
        from sim_engine.strategies.balanced import compute_quadrant_targets
        with self.assertRaises(ValueError):
            compute_quadrant_targets([0] * 6, 61)


class TestStrategyRegistry(unittest.TestCase):

    def test_registered_names(self):
        from sim_engine.strategies import STRATEGY_NAMES
        self.assertEqual(set(STRATEGY_NAMES), {"uniform", "balanced", "hot-streak", "cold-surge"})

    def test_unknown_strategy(self):
        from sim_engine.errors import UnknownStrategy
        from sim_engine.strategies import get_strategy
        with self.assertRaises(UnknownStrategy):
            get_strategy("lucky-guess")

    def test_labels(self):
        from sim_engine.strategies import get_strategy_label
        self.assertEqual(get_strategy_label("balanced"), "Balanceada")
        self.assertEqual(get_strategy_label("uniform"), "Uniforme")
        self.assertEqual(get_strategy_label("something"), "something")

    def test_strategy_metadata_dict(self):
        from sim_engine.strategies import get_strategy
        meta = get_strategy("cold-surge").get_metadata()
        self.assertEqual(meta["name"], "cold-surge")
        self.assertTrue(meta["needs_stats"])

    def test_subclass_without_name_does_not_pose_as_uniform(self):
        from sim_engine.strategies import StrategyContext
        from sim_engine.strategies.base import BaseStrategy

        class Nameless(BaseStrategy):
            def select(self, seed, k, context):
                raise AssertionError("unreachable")

        self.assertFalse(hasattr(BaseStrategy, "name"))
        with self.assertRaises(AttributeError):
            Nameless().generate(StrategyContext(seed="S", k=6))


# ============================================================
# Pricing
# ============================================================

class TestPricing(unittest.TestCase):

    def _service(self, **kw):
        from tools.pricing import PricingService
        kw.setdefault("base_price_cents", 600)
        return PricingService(**kw)

    def test_ticket_cost_is_combinatorial(self):
        service = self._service()
        self.assertEqual(service.calculate_ticket_cost(6), 600)
        self.assertEqual(service.calculate_ticket_cost(7), 4_200)
        self.assertEqual(service.calculate_ticket_cost(15), 5_005 * 600)

    def test_allocation_exact_budget(self):
        alloc = self._service().calculate_budget_allocation(2_400, 6)
        self.assertEqual(alloc.max_tickets, 4)
        self.assertEqual(alloc.leftover_cents, 0)
        self.assertFalse(alloc.constrained_by_ticket_limit)

    def test_allocation_leftover(self):
        alloc = self._service().calculate_budget_allocation(3_100)
        self.assertEqual(alloc.max_tickets, 5)
        self.assertEqual(alloc.leftover_cents, 100)

    def test_budget_below_min(self):
        from tools.pricing import BudgetBelowMin
        with self.assertRaises(BudgetBelowMin) as ctx:
            self._service().calculate_budget_allocation(500)
        self.assertEqual(ctx.exception.code, "BUDGET_BELOW_MIN")

    def test_budget_cannot_afford_one_ticket(self):
        from tools.pricing import BudgetBelowMin
        with self.assertRaises(BudgetBelowMin):
            self._service().calculate_budget_allocation(600, 7)

    def test_budget_above_max(self):
        from tools.pricing import BudgetAboveMax
        with self.assertRaises(BudgetAboveMax) as ctx:
            self._service().calculate_budget_allocation(60_000)
        self.assertEqual(ctx.exception.code, "BUDGET_ABOVE_MAX")

    def test_k_out_of_range(self):
        from tools.pricing import KOutOfRange, PricingError
        for k in (5, 16):
            with self.assertRaises(KOutOfRange) as ctx:
                self._service().calculate_ticket_cost(k)
            self.assertEqual(ctx.exception.code, "K_OUT_OF_RANGE")
            self.assertIsInstance(ctx.exception, PricingError)

    def test_budget_checked_before_k(self):
        from tools.pricing import BudgetBelowMin
        with self.assertRaises(BudgetBelowMin):
            self._service().calculate_budget_allocation(500, 20)

    def test_ticket_limit_caps_allocation(self):
        from config.settings import DEFAULT_BETTING_LIMITS
        service = self._service(limits=DEFAULT_BETTING_LIMITS.with_overrides(max_tickets_per_batch=3))
        alloc = service.calculate_budget_allocation(3_000)
        self.assertEqual(alloc.max_tickets, 3)
        self.assertEqual(alloc.leftover_cents, 1_200)
        self.assertTrue(alloc.constrained_by_ticket_limit)

    def test_price_table_wins(self):
        service = self._service(price_table={6: 500})
        info = service.get_price_for_k(6)
        self.assertEqual(info.cost_cents, 500)
        self.assertEqual(info.source, "price_table")
        self.assertEqual(service.get_price_for_k(7).source, "env:MEGASENA_BASE_PRICE_CENTS")

    def test_price_not_found_without_fallback(self):
        from tools.pricing import PriceNotFound
        service = self._service(price_table={6: 500}, allow_fallback=False)
        with self.assertRaises(PriceNotFound) as ctx:
            service.get_price_for_k(7)
        self.assertEqual(ctx.exception.code, "PRICE_NOT_FOUND")

    def test_module_shortcuts(self):
        from config.settings import GeneratorConfig
        from tools.pricing import calculate_budget_allocation, calculate_ticket_cost
        base = GeneratorConfig.BASE_PRICE_CENTS
        self.assertEqual(calculate_ticket_cost(6), base)
        alloc = calculate_budget_allocation(base * 3)
        self.assertEqual(alloc.max_tickets, 3)
        self.assertEqual(alloc.leftover_cents, 0)

    def test_invalid_base_price(self):
        from tools.pricing import PricingService
        with self.assertRaises(ValueError):
            PricingService(base_price_cents=0)


# ============================================================
# Settings
# ============================================================

class TestSettings(unittest.TestCase):

    def test_default_limits(self):
        from config.settings import BettingLimits
        limits = BettingLimits()
        self.assertEqual(limits.min_dezena_count, 6)
        self.assertEqual(limits.max_dezena_count, 15)
        self.assertEqual(limits.max_tickets_per_batch, 100)
        self.assertEqual(limits.max_budget_cents, 50_000)
        self.assertEqual(limits.to_dict()["minBudgetCents"], 600)

    def test_overrides_validated(self):
        from config.settings import BettingLimits
        with self.assertRaises(ValueError):
            BettingLimits().with_overrides(max_tickets_per_batch=0)
        with self.assertRaises(ValueError):
            BettingLimits().with_overrides(min_dezena_count=16)
        with self.assertRaises(ValueError):
            BettingLimits().with_overrides(not_a_limit=3)

    def test_dezena_counts_cannot_leave_ticket_range(self):
        from config.settings import BettingLimits
        with self.assertRaises(ValueError):
            BettingLimits().with_overrides(max_dezena_count=16)
        with self.assertRaises(ValueError):
            BettingLimits(min_dezena_count=5, default_dezena_count=6)
        narrowed = BettingLimits().with_overrides(min_dezena_count=7, default_dezena_count=7,
                                                  max_dezena_count=10)
        self.assertEqual((narrowed.min_dezena_count, narrowed.max_dezena_count), (7, 10))

    def test_library_defaults_follow_env(self):
        from tools.pricing import PricingService, calculate_budget_allocation
        from sim_engine.strategies.base import resolve_k
        env = {"MEGASENA_MAX_TICKETS_PER_BATCH": "3", "MEGASENA_DEFAULT_DEZENAS": "7"}
        with patch.dict(os.environ, env):
            self.assertEqual(calculate_budget_allocation(6000, k=6).max_tickets, 3)
            self.assertEqual(PricingService().limits.max_tickets_per_batch, 3)
            self.assertEqual(resolve_k(None), 7)

    def test_from_env(self):
        from config.settings import BettingLimits
        env = {"MEGASENA_MAX_TICKETS_PER_BATCH": "25", "MEGASENA_MAX_BUDGET_CENTS": "oops"}
        with patch.dict(os.environ, env):
            limits = BettingLimits.from_env()
        self.assertEqual(limits.max_tickets_per_batch, 25)
        self.assertEqual(limits.max_budget_cents, 50_000)

    def test_env_int_rejects_non_positive(self):
        from config.settings import _env_int
        with patch.dict(os.environ, {"MEGASENA_TEST_VALUE": "-3"}):
            self.assertEqual(_env_int("MEGASENA_TEST_VALUE", 7), 7)
        with patch.dict(os.environ, {"MEGASENA_TEST_VALUE": "12"}):
            self.assertEqual(_env_int("MEGASENA_TEST_VALUE", 7), 12)


# ============================================================
# Draw statistics
# ============================================================

class TestDrawStatistics(unittest.TestCase):

    def setUp(self):
        from tools.draw_stats import Draw, DrawStatistics
        self.stats = DrawStatistics([
            Draw(1, (1, 2, 3, 4, 5, 6)),
            Draw(2, (1, 11, 21, 31, 41, 51)),
            Draw(3, (1, 2, 12, 22, 32, 60)),
        ])

    def test_frequencies_ordering(self):
        result = self.stats.get_frequencies()
        self.assertEqual(result.total_draws, 3)
        self.assertEqual(result.items[0].dezena, 1)
        self.assertEqual(result.items[0].hits, 3)
        self.assertAlmostEqual(result.items[0].frequency, 1.0)
        self.assertEqual(result.items[1].dezena, 2)
        rest = [i.dezena for i in result.items[2:]]
        self.assertEqual(rest, sorted(rest))

    def test_window_counts_back_from_latest(self):
        result = self.stats.get_frequencies(window=2)
        self.assertEqual(result.total_draws, 2)
        self.assertEqual(result.window_start, 2)
        self.assertEqual(result.items[0].hits, 2)
        self.assertNotIn(3, [i.dezena for i in result.items])

    def test_invalid_window(self):
        for window in (0, -5):
            with self.assertRaises(ValueError):
                self.stats.get_frequencies(window)
            with self.assertRaises(ValueError):
                self.stats.get_quadrants(window)

    def test_recency(self):
        recency = {r.dezena: r.contests_since_last for r in self.stats.get_recency()}
        self.assertEqual(len(recency), 60)
        self.assertEqual(recency[1], 0)
        self.assertEqual(recency[3], 2)
        self.assertEqual(recency[11], 1)
        self.assertIsNone(recency[7])

    def test_quadrants(self):
        totals = {q.range: q.total for q in self.stats.get_quadrants()}
        self.assertEqual(totals, {
            "01-10": 9, "11-20": 2, "21-30": 2, "31-40": 2, "41-50": 1, "51-60": 2,
        })

    def test_pairs_and_triplets(self):
        self.assertEqual(self.stats.get_pairs(limit=1), [{"combination": [1, 2], "hits": 2}])
        triplets = self.stats.get_triplets(limit=5)
        self.assertEqual(len(triplets), 5)
        self.assertEqual(triplets[0]["hits"], 1)

    def test_runs(self):
        runs = self.stats.get_runs()
        self.assertEqual(runs[0], {"sequence": [1, 2, 3, 4, 5, 6], "length": 6, "count": 1})
        self.assertIn({"sequence": [1, 2], "length": 2, "count": 1}, runs)

    def test_sums(self):
        sums = self.stats.get_sums()
        self.assertEqual(sums["totalDraws"], 3)
        self.assertAlmostEqual(sums["average"], (21 + 156 + 129) / 3)
        self.assertEqual(sums["parity"], {"even": 8, "odd": 10})

    def test_cache_hits_and_invalidation(self):
        from tools.draw_stats import Draw
        first = self.stats.get_frequencies(window=2)
        self.assertIs(self.stats.get_frequencies(window=2), first)
        self.stats.get_quadrants()
        self.assertEqual(self.stats.cache.invalidate("frequencies"), 1)
        self.assertEqual(len(self.stats.cache), 1)

        self.stats.add_draws([Draw(4, (7, 8, 9, 10, 13, 14))])
        self.assertEqual(len(self.stats.cache), 0)
        self.assertEqual(self.stats.get_frequencies().total_draws, 4)

    def test_draw_validation(self):
        from tools.draw_stats import Draw
        with self.assertRaises(ValueError):
            Draw(1, (1, 2, 3, 4, 5, 61))
        with self.assertRaises(ValueError):
            Draw(1, (1, 1, 3, 4, 5, 6))
        with self.assertRaises(ValueError):
            Draw(0, (1, 2, 3, 4, 5, 6))

    def test_load_draws(self):
        from tools.draw_stats import DrawStatistics, load_draws
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "draws.json"
            path.write_text(json.dumps([
                {"concurso": 10, "dezenas": [4, 8, 15, 16, 23, 42]},
                {"concurso": 11, "dezenas": [1, 2, 3, 4, 5, 6]},
            ]))
            draws = load_draws(path)
        self.assertEqual(len(draws), 2)
        self.assertEqual(DrawStatistics(draws).latest_concurso, 11)

    def test_camel_case_output(self):
        item = self.stats.get_recency()[6].to_dict()
        self.assertEqual(item, {"dezena": 7})
        self.assertIn("totalDraws", self.stats.get_frequencies().to_dict())


# ============================================================
# Schema validation
# ============================================================

class TestSchemaValidation(unittest.TestCase):

    def _ticket(self, **overrides):
        from config.bet_schema import StrategyName, StrategyTicket
        from sim_engine.strategies.base import build_metadata
        dezenas = overrides.pop("dezenas", [3, 14, 25, 36, 47, 58])
        data = dict(
            strategy=StrategyName.UNIFORM,
            dezenas=dezenas,
            metadata=build_metadata(StrategyName.UNIFORM, "S", [3, 14, 25, 36, 47, 58]),
            cost_cents=600,
            seed="S",
        )
        data.update(overrides)
        return StrategyTicket(**data)

    def test_ticket_serializes_camel_case(self):
        data = self._ticket().to_dict()
        self.assertEqual(data["costCents"], 600)
        self.assertEqual(data["strategy"], "uniform")
        self.assertNotIn("score", data["metadata"])

    def test_ticket_rejects_unsorted(self):
        from pydantic import ValidationError
        with self.assertRaises(ValidationError):
            self._ticket(dezenas=[14, 3, 25, 36, 47, 58])

    def test_metadata_rejects_bad_parity(self):
        from pydantic import ValidationError
        from config.bet_schema import ParityDistribution, StrategyMetadata
        from sim_engine.strategies.base import build_quadrant_distribution
        with self.assertRaises(ValidationError):
            StrategyMetadata(
                strategy="uniform", seed="S", k=6, sum=21,
                parity=ParityDistribution(even=4, odd=3),
                quadrants=build_quadrant_distribution([1, 2, 3, 4, 5, 6]),
            )

    def test_allocation_conservation(self):
        from pydantic import ValidationError
        from config.bet_schema import BudgetAllocationResult
        with self.assertRaises(ValidationError):
            BudgetAllocationResult(
                budget_cents=1_000, ticket_cost_cents=600, max_tickets=2, leftover_cents=0,
            )

    def test_request_accepts_camel_case(self):
        from config.bet_schema import GenerateBatchRequest
        req = GenerateBatchRequest.model_validate({
            "budgetCents": 1200, "seed": "X", "timeoutMs": 50,
            "strategies": [{"name": "hot-streak", "weight": 2, "window": 10}],
        })
        self.assertEqual(req.budget_cents, 1200)
        self.assertEqual(req.strategies[0].window, 10)

    def test_request_rejects_unknown_strategy(self):
        from pydantic import ValidationError
        from config.bet_schema import StrategyRequest
        with self.assertRaises(ValidationError):
            StrategyRequest(name="lucky", weight=1)
        with self.assertRaises(ValidationError):
            StrategyRequest(name="uniform", weight=-1)


# ============================================================
# Main
# ============================================================

if __name__ == "__main__":
    # Configure logging to suppress noise during tests
    import logging
    logging.disable(logging.WARNING)

    unittest.main(verbosity=2)
