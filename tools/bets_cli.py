#!/usr/bin/env python3
"""
MEGASENA LAB — Bet Generator CLI

Usage:
    python -m tools.bets_cli --budget 3000 --seed ABC
    python -m tools.bets_cli --budget 6000 --seed ABC --strategy balanced:2 --strategy uniform:1
    python -m tools.bets_cli --budget 6000 --draws draws.json --strategy hot-streak --window 50
    python -m tools.bets_cli --budget 4200 --k 7 --json
    python -m tools.bets_cli --show-limits --set max_tickets_per_batch=20
"""

import argparse
import logging
import sys
import uuid
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from config.bet_schema import StrategyRequest
from config.settings import GeneratorConfig
from flows.batch_generator import generate_batch
from sim_engine.errors import BatchGenerationError, InvalidSeed
from sim_engine.strategies import STRATEGY_NAMES, get_strategy_label
from tools.draw_stats import DrawStatistics, load_draws
from tools.pricing import PricingError, PricingService

console = Console()


def parse_strategy(value: str) -> StrategyRequest:
    """'name', 'name:weight' or 'name:weight:window' → StrategyRequest."""
    parts = value.split(":")
    if len(parts) > 3 or not parts[0]:
        raise argparse.ArgumentTypeError(f"Estratégia inválida: {value}")
    name = parts[0].strip()
    if name not in STRATEGY_NAMES:
        raise argparse.ArgumentTypeError(
            f"Estratégia desconhecida: {name}. Disponíveis: {', '.join(STRATEGY_NAMES)}"
        )
    try:
        weight = float(parts[1]) if len(parts) > 1 and parts[1] else 1.0
        window = int(parts[2]) if len(parts) > 2 and parts[2] else None
    except ValueError:
        raise argparse.ArgumentTypeError(f"Peso ou janela inválidos: {value}") from None
    if weight < 0 or (window is not None and window < 1):
        raise argparse.ArgumentTypeError(f"Peso ou janela fora do intervalo: {value}")
    return StrategyRequest(name=name, weight=weight, window=window)


def parse_limit_override(value: str) -> tuple:
    key, sep, raw = value.partition("=")
    if not sep or not key.strip():
        raise argparse.ArgumentTypeError(f"Use chave=valor: {value}")
    try:
        return key.strip(), int(raw)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Valor numérico inválido: {raw}") from None


def _positive_int(value: str) -> int:
    try:
        parsed = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Valor numérico inválido: {value}") from None
    if parsed < 1:
        raise argparse.ArgumentTypeError(f"Valor deve ser >= 1: {parsed}")
    return parsed


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Gera lotes de apostas da Mega-Sena")
    parser.add_argument("--budget", type=int, help="Orçamento em centavos (ex.: 3000)")
    parser.add_argument("--seed", type=str, help="Seed para reprodutibilidade (default: aleatória)")
    parser.add_argument("--strategy", type=parse_strategy, action="append", dest="strategies",
                        metavar="NOME[:PESO[:JANELA]]",
                        help=f"Repetível. Disponíveis: {', '.join(STRATEGY_NAMES)}")
    parser.add_argument("--k", type=int, help="Dezenas por aposta (6-15)")
    parser.add_argument("--window", type=_positive_int, help="Janela estatística em concursos")
    parser.add_argument("--timeout-ms", type=_positive_int, default=None,
                        help=f"Tempo máximo de geração (default {GeneratorConfig.DEFAULT_TIMEOUT_MS})")
    parser.add_argument("--draws", type=str, help="JSON com o histórico de concursos")
    parser.add_argument("--set", type=parse_limit_override, action="append", dest="overrides",
                        default=[], metavar="CHAVE=VALOR", help="Sobrescreve limites operacionais")
    parser.add_argument("--show-limits", action="store_true", help="Exibe limites e sai")
    parser.add_argument("--json", action="store_true", help="Emite o payload em JSON")
    return parser


def _money(cents: int) -> str:
    return f"R$ {cents / 100:,.2f}".replace(",", "_").replace(".", ",").replace("_", ".")


def _print_limits(limits):
    table = Table(title="Limites operacionais")
    table.add_column("Chave", style="cyan")
    table.add_column("Valor", justify="right")
    for key, value in limits.to_dict().items():
        table.add_row(key, str(value))
    console.print(table)


def _print_result(result):
    payload = result.payload
    console.print(Panel(
        f"[bold]Seed:[/bold] {payload.seed}\n"
        f"[bold]Apostas:[/bold] {payload.tickets_generated}\n"
        f"[bold]Custo por aposta:[/bold] {_money(result.ticket_cost_cents)}\n"
        f"[bold]Total:[/bold] {_money(result.total_cost_cents)} de {_money(result.budget_cents)}\n"
        f"[bold]Sobra:[/bold] {_money(result.leftover_cents)}",
        title="Resumo do lote gerado", border_style="cyan",
    ))

    table = Table()
    table.add_column("#", justify="right")
    table.add_column("Estratégia", style="cyan")
    table.add_column("Dezenas")
    table.add_column("Soma", justify="right")
    table.add_column("Par/Ímpar", justify="right")
    for i, ticket in enumerate(result.tickets, 1):
        meta = ticket.metadata
        table.add_row(
            str(i),
            get_strategy_label(ticket.strategy.value),
            " ".join(f"{d:02d}" for d in ticket.dezenas),
            str(meta.sum),
            f"{meta.parity.even}/{meta.parity.odd}",
        )
    console.print(table)

    for summary in payload.strategies:
        console.print(
            f"  {get_strategy_label(summary.name.value)}: {summary.generated} geradas, "
            f"{summary.attempts} tentativas, {summary.failures} falhas"
        )
    for warning in result.warnings:
        console.print(f"[yellow]⚠️  {warning}[/yellow]")


def main(argv=None) -> int:
    logging.basicConfig(
        level=getattr(logging, GeneratorConfig.LOG_LEVEL, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
    )
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        limits = GeneratorConfig.limits().with_overrides(**dict(args.overrides))
    except ValueError as e:
        parser.error(str(e))

    if args.show_limits:
        _print_limits(limits)
        return 0
    if args.budget is None:
        parser.error("--budget é obrigatório")

    stats = DrawStatistics(load_draws(args.draws)) if args.draws else None
    request = {
        "budget_cents": args.budget,
        "seed": args.seed if args.seed is not None else uuid.uuid4().hex[:12],
        "strategies": args.strategies,
        "k": args.k,
        "window": args.window,
        "timeout_ms": args.timeout_ms,
    }

    try:
        result = generate_batch(request, stats=stats, pricing=PricingService(limits=limits))
    except PricingError as e:
        console.print(f"[red]❌ {e.code}: {e}[/red]")
        return 1
    except InvalidSeed as e:
        console.print(f"[red]❌ {e}[/red]")
        return 1
    except BatchGenerationError as e:
        console.print(f"[red]❌ {e.code}: {e}[/red]")
        return 1

    if args.json:
        print(result.payload.to_json(indent=2))
    else:
        _print_result(result)
    return 0


if __name__ == "__main__":
    sys.exit(main())
