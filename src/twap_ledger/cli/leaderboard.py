"""
twap-leaderboard: refresh leaderboard_stats.

Usage:
    twap-leaderboard [--strategy full|delta|materialized] [--limit N] [--show N]
"""

import argparse
import sys

from twap_ledger.cli.common import (
    EXIT_OK,
    add_common_args,
    load_settings,
    positive_int,
    run_command,
)
from twap_ledger.infrastructure.database import PostgresDatabase
from twap_ledger.orchestration.workflows import LeaderboardWorkflow
from twap_ledger.shared.models.enums import LeaderboardStrategy
from twap_ledger.storage.repositories import LeaderboardRepository


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="twap-leaderboard", description="Refresh the TWAP user leaderboard"
    )
    parser.add_argument(
        "--strategy",
        choices=[s.value for s in LeaderboardStrategy],
        default=None,
        help="Refresh strategy (default: config)",
    )
    parser.add_argument(
        "--limit", type=positive_int, default=None, help="Keep only the top N users"
    )
    parser.add_argument(
        "--show", type=positive_int, default=10, help="Print the top N users afterwards"
    )
    add_common_args(parser)
    return parser


async def run(args: argparse.Namespace) -> int:
    config = load_settings(args)
    strategy = LeaderboardStrategy(args.strategy or config.leaderboard.strategy)
    limit = args.limit or config.leaderboard.limit

    async with PostgresDatabase.from_config(config.database) as db:
        repo = LeaderboardRepository(db, view_name=config.leaderboard.view_name)
        result = await LeaderboardWorkflow(repo, strategy, limit).execute()
        top = await repo.top(args.show)

    if result.metadata.get("noop"):
        print("\n✅ Leaderboard already up to date")
    else:
        print(f"\n✅ Leaderboard refreshed ({strategy.value}): {result.records_written:,} users")

    for entry in top:
        print(
            f"   #{entry.rank:<4} {entry.user_address}  "
            f"volume={entry.total_volume:,.2f}  trades={entry.total_trades:,}  "
            f"strategies={entry.unique_strategies}"
        )
    return EXIT_OK


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    sys.exit(run_command(lambda: run(args)))


if __name__ == "__main__":
    main()
