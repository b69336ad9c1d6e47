#!/usr/bin/env python
"""Load and search land plots from the command line.

Usage:
    python -m scripts.plots load data/plots.csv
    python -m scripts.plots search "quiet residential plot near the bay" \
        --filters '{"plot_sizes": ["Large"]}' --limit 5
    python -m scripts.plots rarity --min-rank 100 --max-rank 500

With the in-memory store backend (STORE_BACKEND=memory) nothing persists
between runs; pass --csv to load a file before searching.
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

from land_search.config import get_settings
from land_search.embeddings.service import HTTPEmbeddingService
from land_search.exceptions import LandSearchError
from land_search.logging_config import get_logger, setup_logging
from land_search.plots.display import format_plot
from land_search.plots.models import PlotRecord
from land_search.search.service import LandSearchService
from land_search.store import create_store

logger = get_logger(__name__)


def print_plots(records: list[PlotRecord]) -> None:
    """Print plot cards separated by blank lines."""
    if not records:
        print("No plots found.")
        return

    for record in records:
        print(format_plot(record))
        print()
    print(f"{len(records)} plot(s)")


async def run(args: argparse.Namespace) -> None:
    """Build the service and run one subcommand."""
    settings = get_settings()
    setup_logging(level=settings.log_level, json_output=False)

    store = create_store(settings)
    embedder = HTTPEmbeddingService(settings.embedding)
    service = LandSearchService(store=store, embedding_service=embedder, settings=settings)

    try:
        await service.initialize()

        csv_path: Path | None = getattr(args, "csv", None)
        if args.command == "load":
            records = await service.load_csv(args.path)
            print(f"Loaded {len(records)} plot(s) into '{settings.search.collection}'")
            return

        if csv_path is not None:
            await service.load_csv(csv_path)

        if args.command == "search":
            filters = json.loads(args.filters) if args.filters else None
            records = await service.search_properties(
                args.query,
                filters=filters,
                limit=args.limit,
                similarity_threshold=args.threshold,
            )
        else:
            records = await service.get_properties_by_rarity(
                args.min_rank, args.max_rank, limit=args.limit
            )
        print_plots(records)

    finally:
        await embedder.close()
        await store.close()


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        description="Load and search land plots",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    load = subparsers.add_parser("load", help="Create plots from a CSV export")
    load.add_argument("path", type=Path, help="Path to the CSV export")

    search = subparsers.add_parser("search", help="Hybrid search")
    search.add_argument("query", help="Free-text description of the plot")
    search.add_argument(
        "--filters",
        default=None,
        help="Metadata filter as JSON",
    )
    search.add_argument(
        "--threshold",
        type=float,
        default=None,
        help="Minimum similarity score (default from settings)",
    )

    rarity = subparsers.add_parser("rarity", help="Plots within a rank window")
    rarity.add_argument("--min-rank", type=int, default=None, help="Lowest rank")
    rarity.add_argument("--max-rank", type=int, default=None, help="Highest rank")

    for sub in (search, rarity):
        sub.add_argument("--limit", type=int, default=None, help="Maximum results")
        sub.add_argument(
            "--csv",
            type=Path,
            default=None,
            help="CSV export to load before searching",
        )

    return parser


def main() -> None:
    """Main entry point."""
    args = build_parser().parse_args()

    try:
        asyncio.run(run(args))
    except json.JSONDecodeError as e:
        print(f"Invalid --filters JSON: {e}", file=sys.stderr)
        sys.exit(2)
    except LandSearchError as e:
        logger.error(f"{e.code.value}: {e.message}", extra={"details": e.details})
        sys.exit(1)


if __name__ == "__main__":
    main()
