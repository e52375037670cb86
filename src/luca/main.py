import argparse
import asyncio
import json
import logging
import sys
from typing import List, Optional

from rich.console import Console
from rich.table import Table

from luca.config import load_config, setup_logging
from luca.core.exceptions import LUCAError
from luca.core.orchestrator import LUCACore
from luca.factory import create_core

console = Console()


def build_stats_table(stats: dict) -> Table:
    """Flatten the Core stats record into a two-column table."""
    table = Table(title="LUCA Core", show_header=True, header_style="bold cyan")
    table.add_column("Metric")
    table.add_column("Value", justify="right")

    for key, value in stats.items():
        if isinstance(value, dict):
            for sub_key, sub_value in value.items():
                table.add_row(f"{key}.{sub_key}", _format_value(sub_value))
        else:
            table.add_row(key, _format_value(value))
    return table


def _format_value(value) -> str:
    if isinstance(value, float):
        return f"{value:.4f}"
    if value is None:
        return "-"
    return str(value)


async def run(core: LUCACore, items: List[str], query: Optional[str] = None,
              snapshot_path: Optional[str] = None) -> int:
    await core.initialize()
    try:
        if items:
            async with core.learn(items) as session:
                async for result in session:
                    marker = "[green]✓[/]" if result.success else "[yellow]·[/]"
                    console.print(
                        f"{marker} {result.memory_node_id} "
                        f"confidence={result.interpretation.confidence:.3f} "
                        f"concepts={', '.join(result.interpretation.related_concepts) or '-'}"
                    )

        if query:
            answer = await core.query(query)
            console.print(f"\n🔎 [bold]{answer.query}[/] (confidence {answer.confidence:.3f})")
            for rank, entry in enumerate(answer.results, start=1):
                console.print(f"  {rank}. {entry.get('content')!s}  [dim]{entry.get('rank_score', 0.0):.3f}[/]")
            if not answer.results:
                console.print("  [dim]no matching memories[/]")

        if snapshot_path:
            snapshot = await core.snapshot()
            with open(snapshot_path, "w") as f:
                json.dump(snapshot.to_dict(), f, indent=2, default=str)
            console.print(f"💾 Snapshot written to {snapshot_path}")

        console.print(build_stats_table(core.get_stats()))
    finally:
        await core.shutdown()
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="LUCA: learn from items, then query memory")
    parser.add_argument("items", nargs="*", help="Data items to learn from, in order")
    parser.add_argument("--config", help="Path to a YAML/JSON config file")
    parser.add_argument("--query", help="Query to rank against memory after learning")
    parser.add_argument("--snapshot", metavar="FILE", help="Write a JSON snapshot to FILE")
    parser.add_argument("--seed", type=int, help="Seed for the evolutionary collaborator")
    parser.add_argument("--log-level", help="Override the configured log level")
    args = parser.parse_args(argv)

    logger = logging.getLogger("LUCA.CLI")
    try:
        settings = load_config(args.config)
    except LUCAError as e:
        console.print(f"[red]❌ CONFIG ERROR:[/] {e}")
        return 2

    setup_logging(args.log_level or settings.logging.level, settings.logging.format)
    if settings.source:
        logger.info(f"Loaded configuration from {settings.source}")

    if not args.items and not args.query:
        console.print("❌ Nothing to do. Usage: luca 'item one' 'item two' --query 'topic'")
        return 1

    core = create_core(settings.core, seed=args.seed)
    try:
        return asyncio.run(run(core, args.items, args.query, args.snapshot))
    except LUCAError as e:
        logger.error(f"CRITICAL FAILURE: {e}", exc_info=True)
        console.print(f"[red]💥 LUCA FAILURE:[/] {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
