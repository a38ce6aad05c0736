"""
twap-download: mirror hourly node data archives locally and decompress them.

Usage:
    twap-download START_DATE [--end-date YYYYMMDD] [--source S] [--base-dir P]
                  [--workers N]
"""

import argparse
import sys

from twap_ledger.cli.common import (
    EXIT_FAILURE,
    EXIT_OK,
    add_common_args,
    add_source_arg,
    day_key_arg,
    load_settings,
    positive_int,
    run_command,
    selected_sources,
)
from twap_ledger.common.exceptions import ConfigurationError
from twap_ledger.common.utils.date_utils import day_keys_between, format_day_key, utc_today
from twap_ledger.infrastructure.observability import get_ingestion_logger
from twap_ledger.ingestion.sources import NodeDataArchive, decompress_all, find_archives


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="twap-download",
        description="Download and decompress Hyperliquid node data archives",
    )
    parser.add_argument("start_date", type=day_key_arg, help="First day (YYYYMMDD)")
    parser.add_argument(
        "--end-date", type=day_key_arg, default=None, help="Last day, inclusive (default: today)"
    )
    add_source_arg(parser)
    parser.add_argument("--base-dir", default=None, help="Local data root (default: config)")
    parser.add_argument(
        "--workers", type=positive_int, default=None, help="Decompression threads"
    )
    add_common_args(parser)
    return parser


def run(args: argparse.Namespace) -> int:
    config = load_settings(args)
    base_dir = args.base_dir or config.ingestion.base_dir
    end_date = args.end_date or format_day_key(utc_today())
    if end_date < args.start_date:
        raise ConfigurationError(f"--end-date {end_date} is before {args.start_date}")

    days = day_keys_between(args.start_date, end_date)
    archive = NodeDataArchive.from_config(config.s3)
    workers = args.workers or config.s3.decompress_workers
    failed = 0

    for source in selected_sources(config, args.source):
        log = get_ingestion_logger("s3-archive", source=source.value)
        for day_key in days:
            archive.download_day(source, day_key, base_dir)
        log.info("download_completed", days=len(days))

        stats = decompress_all(find_archives(f"{base_dir}/{source.value}"), workers)
        failed += len(stats.failed)
        log.info(
            "decompress_completed",
            decompressed=stats.decompressed,
            failed=len(stats.failed),
        )

    if failed:
        print(f"\n❌ {failed} archives could not be decompressed", file=sys.stderr)
        return EXIT_FAILURE
    print(f"\n✅ Downloaded {len(days)} days into {base_dir}. Next: twap-generate {base_dir}")
    return EXIT_OK


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    sys.exit(run_command(lambda: run(args)))


if __name__ == "__main__":
    main()
