"""
twap-import: bulk-load generated CSV pairs through the staging tables.

Usage:
    twap-import [base_dir] [--staging-only | --migrate-only] [--start-date YYYYMMDD]
                [--skip-sequence] [--dry-run] [--no-wait]
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
    run_command,
    selected_sources,
)
from twap_ledger.infrastructure.database import PostgresDatabase, RetryPolicy
from twap_ledger.orchestration.workflows import (
    ImportDryRun,
    ImportOptions,
    StagedImportWorkflow,
)
from twap_ledger.storage.preview import PreviewArtifact
from twap_ledger.storage.repositories import StagingRepository


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="twap-import",
        description="Import generated TWAP CSVs via staging tables",
    )
    parser.add_argument(
        "base_dir", nargs="?", default=None, help="Root of the CSV tree (default: config)"
    )
    add_source_arg(parser)
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "--staging-only",
        action="store_true",
        help="Load and verify staging, then stop before touching production",
    )
    mode.add_argument(
        "--migrate-only",
        action="store_true",
        help="Migrate what is already staged (skips scan and load)",
    )
    parser.add_argument(
        "--start-date", type=day_key_arg, default=None, help="Skip days before YYYYMMDD"
    )
    parser.add_argument(
        "--skip-sequence",
        action="store_true",
        help="Do not advance trades_id_seq; print the SQL instead",
    )
    parser.add_argument(
        "--dry-run", action="store_true", help="Check CSVs locally, no database access"
    )
    parser.add_argument("--no-wait", action="store_true", help="Skip the confirmation delay")
    add_common_args(parser)
    return parser


def describe_plan(args: argparse.Namespace) -> str:
    if args.migrate_only:
        return "Staged rows will be migrated into production."
    if args.staging_only:
        return "CSVs will be loaded into staging only; production is not touched."
    return "CSVs will be loaded into staging and migrated into production."


async def run(args: argparse.Namespace) -> int:
    config = load_settings(args)
    options = ImportOptions(
        base_dir=args.base_dir or config.ingestion.base_dir,
        sources=selected_sources(config, args.source),
        start_date=args.start_date,
        staging_only=args.staging_only,
        migrate_only=args.migrate_only,
        skip_sequence=args.skip_sequence,
    )

    if args.dry_run:
        with PreviewArtifact(config.ingestion.preview_path) as preview:
            result = await ImportDryRun(options, preview).execute()
        for problem in result.errors:
            print(f"   ⚠️ {problem}")
        print(f"\n🔍 Dry run: {result.records_processed:,} trades checked, preview at {preview.path}")
        return EXIT_OK if result.succeeded else EXIT_FAILURE

    if not args.no_wait:
        confirm_delay(config.importer.confirm_delay_seconds, describe_plan(args))

    retry_policy = RetryPolicy(
        max_retries=config.importer.max_retries,
        base_delay=config.importer.retry_base_delay,
        max_delay=config.importer.retry_max_delay,
    )
    async with PostgresDatabase.from_config(config.database) as db:
        workflow = StagedImportWorkflow(
            lock_provider=db,
            staging=StagingRepository(db, retry_policy),
            options=options,
            lock_key=config.importer.advisory_lock_key,
            progress_every_days=config.importer.progress_every_days,
        )
        result = await workflow.execute()

    if result.metadata.get("nothing_to_migrate"):
        print("\n⚠️ Nothing to migrate: staging is empty")
    elif args.staging_only:
        print("\n✅ Staging loaded and verified. Next: twap-import --migrate-only")
    else:
        print(f"\n✅ Import complete: {result.records_written:,} trades migrated")
    return EXIT_OK


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    sys.exit(run_command(lambda: run(args)))


if __name__ == "__main__":
    main()
