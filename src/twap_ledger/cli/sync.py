"""
twap-sync: insert TWAP trades from archive objects directly into production.

Usage:
    twap-sync [--prefix P] [--batch-size N] [--dry-run]
"""

import argparse
import sys

from twap_ledger.cli.common import (
    EXIT_FAILURE,
    EXIT_OK,
    add_common_args,
    load_settings,
    positive_int,
    run_command,
)
from twap_ledger.infrastructure.database import PostgresDatabase
from twap_ledger.ingestion.parsers import NodeTradesParser
from twap_ledger.ingestion.sources import NodeDataArchive
from twap_ledger.orchestration.workflows import DailySyncWorkflow
from twap_ledger.orchestration.workflows.daily_sync import DEFAULT_BATCH_SIZE
from twap_ledger.storage.preview import PreviewArtifact
from twap_ledger.storage.repositories import TradeRepository


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="twap-sync", description="Sync TWAP trades from S3 into the database"
    )
    parser.add_argument("--prefix", default=None, help="Object prefix (default: S3_DATA_PREFIX)")
    parser.add_argument(
        "--batch-size",
        type=positive_int,
        default=DEFAULT_BATCH_SIZE,
        help=f"Trades per insert (default: {DEFAULT_BATCH_SIZE})",
    )
    parser.add_argument(
        "--dry-run", action="store_true", help="Write a JSONL preview, no database access"
    )
    add_common_args(parser)
    return parser


async def run(args: argparse.Namespace) -> int:
    config = load_settings(args)
    prefix = args.prefix or config.s3.sync_prefix
    archive = NodeDataArchive.from_config(config.s3)
    parser = NodeTradesParser(incomplete_policy=config.ingestion.incomplete_trade_policy)

    if args.dry_run:
        with PreviewArtifact(config.ingestion.preview_path) as preview:
            result = await DailySyncWorkflow(
                archive, parser, prefix, batch_size=args.batch_size, preview=preview
            ).execute()
    else:
        async with PostgresDatabase.from_config(config.database) as db:
            result = await DailySyncWorkflow(
                archive,
                parser,
                prefix,
                trades=TradeRepository(db),
                batch_size=args.batch_size,
            ).execute()

    return EXIT_OK if result.succeeded else EXIT_FAILURE


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    sys.exit(run_command(lambda: run(args)))


if __name__ == "__main__":
    main()
