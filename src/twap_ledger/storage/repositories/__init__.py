"""Repositories wrapping every SQL statement the pipeline issues."""

from twap_ledger.storage.repositories.leaderboard import LeaderboardRepository
from twap_ledger.storage.repositories.schema import SchemaRepository
from twap_ledger.storage.repositories.staging import StagingRepository
from twap_ledger.storage.repositories.trades import TradeRepository

__all__ = [
    "LeaderboardRepository",
    "SchemaRepository",
    "StagingRepository",
    "TradeRepository",
]
