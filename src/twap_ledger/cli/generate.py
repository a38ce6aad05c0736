"""
twap-generate: raw hourly node data -> day CSV pairs with explicit trade ids.

Usage:
    twap-generate [base_dir] [--source S] [--start-id N] [--start-date YYYYMMDD]
                  [--tracking-file P] [--dry-run] [--unattended]
"""

import argparse
import sys

from twap_ledger.cli.common import (
    EXIT_FAILURE,
    EXIT_OK,
    add_common_args,
    add_source_arg,
    confirm_delay,
    day_key_arg,
    load_settings,
    positive_int,
    run_command,
    selected_sources,
)
from twap_ledger.infrastructure.checkpoint import IdTrackingFile
from twap_ledger.ingestion.allocator import IdAllocator
from twap_ledger.ingestion.backfill import CsvGenerationCoordinator, GenerationReporter
from twap_ledger.storage.preview import PreviewArtifact

CONFIRM_SECONDS = 3


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="twap-generate",
        description="Generate bulk-load CSVs of TWAP trades from raw node data",
    )
    parser.add_argument(
        "base_dir", nargs="?", default=None, help="Root of the raw data tree (default: config)"
    )
    add_source_arg(parser)
    parser.add_argument(
        "--start-id", type=positive_int, default=None, help="First trade id to allocate"
    )
    parser.add_argument(
        "--start-date", type=day_key_arg, default=None, help="Skip days before YYYYMMDD"
    )
    parser.add_argument("--tracking-file", default=None, help="Last-id tracking file")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Write a JSONL preview instead of CSVs; the tracking file is not touched",
    )
    parser.add_argument(
        "--unattended",
        action="store_true",
        help="No confirmation delay; keep going after a failed day",
    )
    add_common_args(parser)
    return parser


def run(args: argparse.Namespace) -> int:
    config = load_settings(args)
    base_dir = args.base_dir or config.ingestion.base_dir
    sources = selected_sources(config, args.source)
    store = IdTrackingFile(args.tracking_file or config.ingestion.tracking_file)
    allocator = IdAllocator.from_checkpoint(store, args.start_id)

    print(f"📂 Base directory: {base_dir}")
    print(f"📋 Sources: {', '.join(s.value for s in sources)}")
    print(f"📍 First trade id: {allocator.next_id}")
    if args.start_date:
        print(f"📅 Starting from: {args.start_date}")
    if not args.unattended:
        confirm_delay(CONFIRM_SECONDS, "CSV files will be written next to the raw data.")

    reporter = GenerationReporter(progress_every_files=config.ingestion.progress_every_files)

    if args.dry_run:
        with PreviewArtifact(config.ingestion.preview_path) as preview:
            coordinator = CsvGenerationCoordinator(
                allocator,
                reporter,
                incomplete_policy=config.ingestion.incomplete_trade_policy,
                continue_on_day_error=args.unattended,
                preview=preview,
            )
            stats = coordinator.generate(base_dir, sources, args.start_date)
        print(f"\n🔍 Dry run: preview at {preview.path}, tracking file unchanged")
        return EXIT_OK if stats.succeeded else EXIT_FAILURE

    coordinator = CsvGenerationCoordinator(
        allocator,
        reporter,
        incomplete_policy=config.ingestion.incomplete_trade_policy,
        continue_on_day_error=args.unattended,
    )
    stats = coordinator.generate(base_dir, sources, args.start_date)

    if not stats.succeeded:
        print(
            f"\n❌ Generation finished with {stats.errors} errors and "
            f"{stats.days_failed} failed days; tracking file not updated",
            file=sys.stderr,
        )
        for day_key, message in stats.failed_days:
            print(f"  - {day_key}: {message}", file=sys.stderr)
        return EXIT_FAILURE

    allocator.checkpoint()
    print("\n✅ CSV generation complete. Next: twap-import " + str(base_dir))
    return EXIT_OK


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    sys.exit(run_command(lambda: run(args)))


if __name__ == "__main__":
    main()
