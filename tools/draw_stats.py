"""
MEGASENA LAB — Draw History Statistics

Read-only aggregations over historical draws, in the shape the strategies
consume:

    get_frequencies(window)  → hits and hit-rate per dezena
    get_recency()            → contests since each dezena was last drawn
    get_quadrants(window)    → historical totals per decade
    get_pairs / get_triplets / get_runs / get_sums   (dashboards, analysis)

A window of N means the N most recent contests, counted back from the latest
concurso. Results are memoized in a StatsCache owned by the provider; adding
draws invalidates it. No module-level state.

Usage:
    from tools.draw_stats import DrawStatistics, load_draws
    stats = DrawStatistics(load_draws("draws.json"))
    stats.get_frequencies(window=50).items[0]   # hottest dezena
    stats.cache.clear()
"""

import itertools
import json
import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from pydantic import Field

from config.bet_schema import ContractModel
from sim_engine.strategies.base import (
    MEGASENA_MAX_DEZENA, MEGASENA_MIN_DEZENA, QUADRANT_RANGES,
)

logger = logging.getLogger("megasena.stats")


# ═══════════════════════════════════════════════
# Data
# ═══════════════════════════════════════════════

@dataclass(frozen=True)
class Draw:
    concurso: int
    dezenas: tuple

    def __post_init__(self):
        if isinstance(self.concurso, bool) or not isinstance(self.concurso, int) or self.concurso < 1:
            raise ValueError(f"concurso inválido: {self.concurso!r}")
        values = tuple(int(d) for d in self.dezenas)
        if len(set(values)) != len(values):
            raise ValueError(f"Concurso {self.concurso}: dezenas repetidas {values}")
        for d in values:
            if not MEGASENA_MIN_DEZENA <= d <= MEGASENA_MAX_DEZENA:
                raise ValueError(f"Concurso {self.concurso}: dezena fora do intervalo {d}")
        object.__setattr__(self, "dezenas", values)


class FrequencyItem(ContractModel):
    dezena: int
    hits: int = Field(ge=0)
    frequency: float = Field(ge=0)


class FrequencyResult(ContractModel):
    total_draws: int = Field(ge=0)
    window_start: Optional[int] = None
    items: list[FrequencyItem]


class RecencyEntry(ContractModel):
    dezena: int
    contests_since_last: Optional[int] = None


class QuadrantTotal(ContractModel):
    range: str
    total: int = Field(ge=0)


# ═══════════════════════════════════════════════
# Cache
# ═══════════════════════════════════════════════

_MISS = object()


class StatsCache:
    """Memo of aggregation results keyed by query name + arguments."""

    def __init__(self):
        self._entries: dict[str, object] = {}
        self._lock = threading.Lock()

    @staticmethod
    def key(name: str, *args) -> str:
        return f"{name}:{json.dumps(list(args))}"

    def get(self, key: str):
        with self._lock:
            return self._entries.get(key, _MISS)

    def set(self, key: str, value):
        with self._lock:
            self._entries[key] = value
        return value

    def invalidate(self, name: Optional[str] = None) -> int:
        """Drop entries for one query name (or all). Returns how many went."""
        with self._lock:
            if name is None:
                dropped = len(self._entries)
                self._entries.clear()
                return dropped
            doomed = [k for k in self._entries if k.startswith(f"{name}:")]
            for k in doomed:
                del self._entries[k]
            return len(doomed)

    def clear(self):
        self.invalidate()

    def __len__(self) -> int:
        return len(self._entries)


# ═══════════════════════════════════════════════
# Provider
# ═══════════════════════════════════════════════

def _validate_window(window):
    if window is not None and window <= 0:
        raise ValueError("Parâmetro window deve ser maior que zero")


class DrawStatistics:
    """In-memory statistics over a draw history."""

    def __init__(self, draws=(), cache: Optional[StatsCache] = None):
        self._draws: dict[int, Draw] = {}
        self.cache = cache if cache is not None else StatsCache()
        self.add_draws(draws)

    def add_draws(self, draws) -> int:
        added = 0
        for draw in draws:
            if not isinstance(draw, Draw):
                draw = Draw(concurso=draw["concurso"], dezenas=tuple(draw["dezenas"]))
            self._draws[draw.concurso] = draw
            added += 1
        if added:
            self.cache.clear()
        return added

    @property
    def latest_concurso(self) -> Optional[int]:
        return max(self._draws) if self._draws else None

    def _window_start(self, window) -> Optional[int]:
        latest = self.latest_concurso
        if latest is None or not window:
            return None
        return max(1, latest - window + 1)

    def _draws_in_window(self, window) -> list[Draw]:
        start = self._window_start(window)
        return [
            d for c, d in sorted(self._draws.items(), reverse=True)
            if start is None or c >= start
        ]

    def _cached(self, name, args, compute):
        key = StatsCache.key(name, *args)
        hit = self.cache.get(key)
        if hit is not _MISS:
            return hit
        return self.cache.set(key, compute())

    # ── Queries consumed by strategies ──────────

    def get_frequencies(self, window: Optional[int] = None) -> FrequencyResult:
        _validate_window(window)

        def compute():
            draws = self._draws_in_window(window)
            hits = {}
            for draw in draws:
                for d in draw.dezenas:
                    hits[d] = hits.get(d, 0) + 1
            total = len(draws)
            ordered = sorted(hits.items(), key=lambda kv: (-kv[1], kv[0]))
            return FrequencyResult(
                total_draws=total,
                window_start=self._window_start(window),
                items=[
                    FrequencyItem(dezena=d, hits=h, frequency=h / total if total else 0.0)
                    for d, h in ordered
                ],
            )

        return self._cached("frequencies", [window], compute)

    def get_recency(self) -> list[RecencyEntry]:
        def compute():
            latest = self.latest_concurso
            if latest is None:
                return []
            last_seen = {}
            for concurso, draw in self._draws.items():
                for d in draw.dezenas:
                    if concurso > last_seen.get(d, 0):
                        last_seen[d] = concurso
            return [
                RecencyEntry(
                    dezena=d,
                    contests_since_last=latest - last_seen[d] if d in last_seen else None,
                )
                for d in range(MEGASENA_MIN_DEZENA, MEGASENA_MAX_DEZENA + 1)
            ]

        return self._cached("recency", [], compute)

    def get_quadrants(self, window: Optional[int] = None) -> list[QuadrantTotal]:
        _validate_window(window)

        def compute():
            totals = {name: 0 for name, _, _ in QUADRANT_RANGES}
            for draw in self._draws_in_window(window):
                for name, first, last in QUADRANT_RANGES:
                    totals[name] += sum(1 for d in draw.dezenas if first <= d <= last)
            return [QuadrantTotal(range=name, total=totals[name]) for name, _, _ in QUADRANT_RANGES]

        return self._cached("quadrants", [window], compute)

    # ── Analysis queries ────────────────────────

    def _top_combinations(self, size: int, window, limit: int) -> list[dict]:
        counts = {}
        for draw in self._draws_in_window(window):
            for combo in itertools.combinations(sorted(draw.dezenas), size):
                counts[combo] = counts.get(combo, 0) + 1
        ordered = sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))[:limit]
        return [{"combination": list(combo), "hits": hits} for combo, hits in ordered]

    def get_pairs(self, window: Optional[int] = None, limit: int = 20) -> list[dict]:
        _validate_window(window)
        return self._cached("pairs", [window, limit], lambda: self._top_combinations(2, window, limit))

    def get_triplets(self, window: Optional[int] = None, limit: int = 20) -> list[dict]:
        _validate_window(window)
        return self._cached("triplets", [window, limit], lambda: self._top_combinations(3, window, limit))

    def get_runs(self, window: Optional[int] = None) -> list[dict]:
        """Runs of consecutive dezenas (length ≥ 2) inside single draws."""
        _validate_window(window)

        def compute():
            runs = {}
            for draw in self._draws_in_window(window):
                current = []
                for d in sorted(draw.dezenas) + [None]:
                    if current and d is not None and d == current[-1] + 1:
                        current.append(d)
                        continue
                    if len(current) >= 2:
                        entry = runs.setdefault(tuple(current), {
                            "sequence": list(current), "length": len(current), "count": 0,
                        })
                        entry["count"] += 1
                    current = [d] if d is not None else []
            return sorted(runs.values(), key=lambda r: (-r["length"], -r["count"], r["sequence"][0]))

        return self._cached("runs", [window], compute)

    def get_sums(self, window: Optional[int] = None) -> dict:
        _validate_window(window)

        def compute():
            draws = self._draws_in_window(window)
            histogram = {}
            even = odd = 0
            sums = []
            for draw in draws:
                s = sum(draw.dezenas)
                sums.append(s)
                histogram[s] = histogram.get(s, 0) + 1
                evens = sum(1 for d in draw.dezenas if d % 2 == 0)
                even += evens
                odd += len(draw.dezenas) - evens
            return {
                "totalDraws": len(draws),
                "average": sum(sums) / len(sums) if sums else 0,
                "histogram": [{"sum": s, "count": c} for s, c in sorted(histogram.items())],
                "parity": {"even": even, "odd": odd},
            }

        return self._cached("sums", [window], compute)


def load_draws(path) -> list[Draw]:
    """Read a JSON list of {"concurso": int, "dezenas": [int, ...]}."""
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(data, list):
        raise ValueError(f"{path}: expected a JSON list of draws")
    draws = [Draw(concurso=item["concurso"], dezenas=tuple(item["dezenas"])) for item in data]
    logger.info(f"Loaded {len(draws)} draws from {path}")
    return draws
