"""
twap-init-db: create the destination tables and indexes if missing.

Usage:
    twap-init-db
"""

import argparse
import sys

from twap_ledger.cli.common import EXIT_OK, add_common_args, load_settings, run_command
from twap_ledger.infrastructure.database import PostgresDatabase
from twap_ledger.storage.repositories import SchemaRepository


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="twap-init-db", description="Create trades, staging and leaderboard tables"
    )
    add_common_args(parser)
    return parser


async def run(args: argparse.Namespace) -> int:
    config = load_settings(args)
    async with PostgresDatabase.from_config(config.database) as db:
        statements = await SchemaRepository(db).ensure_schema()
    print(f"\n✅ Schema ready ({statements} statements applied)")
    return EXIT_OK


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    sys.exit(run_command(lambda: run(args)))


if __name__ == "__main__":
    main()
