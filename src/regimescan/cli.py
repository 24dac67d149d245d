"""Command-line interface for the regimescan runtime."""

from __future__ import annotations

import argparse
import sys

from regimescan.config import DATA_SOURCES, Settings, parse_symbols
from regimescan.runtime import run


def build_parser() -> argparse.ArgumentParser:
    """Build CLI parser."""
    parser = argparse.ArgumentParser(
        description="Crypto market regime classification and adaptive opportunity scoring"
    )
    parser.add_argument("--data-source", choices=sorted(DATA_SOURCES), help="Market data source")
    parser.add_argument("--symbols", type=str, help="Comma-separated symbols to scan")
    parser.add_argument("--historical-dir", type=str, help="CSV historical data directory")
    parser.add_argument("--events-dir", type=str, help="Run outputs directory")
    parser.add_argument("--state-db", type=str, help="SQLite state database path")
    parser.add_argument(
        "--max-cycles",
        type=int,
        help="Stop after this many full analysis cycles",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single full analysis cycle, then exit",
    )
    parser.add_argument("--top", type=int, help="How many ranked assets to log per cycle")
    parser.add_argument(
        "--no-state",
        action="store_true",
        help="Do not persist runs or regime history",
    )
    return parser


def apply_cli_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
    """Apply CLI values onto environment-derived settings."""
    if args.once and args.max_cycles is not None:
        raise ValueError("Use only one of --once or --max-cycles")
    if args.max_cycles is not None and args.max_cycles <= 0:
        raise ValueError("--max-cycles must be positive")
    if args.top is not None and args.top < 0:
        raise ValueError("--top must be non-negative")

    overrides: dict[str, object] = {}
    if args.data_source:
        overrides["data_source"] = args.data_source
    if args.symbols:
        overrides["symbols"] = parse_symbols(args.symbols, settings.symbols)
    if args.historical_dir:
        overrides["historical_data_dir"] = args.historical_dir
    if args.events_dir:
        overrides["events_dir"] = args.events_dir
    if args.state_db:
        overrides["state_db_path"] = args.state_db
    if args.max_cycles is not None:
        overrides["max_cycles"] = args.max_cycles
    if args.top is not None:
        overrides["top_n_log"] = args.top
    if args.no_state:
        overrides["persist_state"] = False
    return settings.with_overrides(**overrides)


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint."""
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        settings = apply_cli_overrides(Settings.from_env(), args)
    except ValueError as exc:
        print(f"Configuration error: {exc}")
        return 2
    return run(settings, once=args.once)


if __name__ == "__main__":
    sys.exit(main())
