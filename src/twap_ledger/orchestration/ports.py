"""
Orchestration Layer Protocol Definitions
=========================================

Defines the storage and source interfaces the workflows depend on, so the
phase logic can be driven by in-memory fakes in tests.
"""

from contextlib import AbstractAsyncContextManager
from datetime import datetime
from enum import Enum
from typing import Protocol, runtime_checkable

from twap_ledger.ingestion.sources.s3_archive import ArchiveObject
from twap_ledger.shared.models.trades import ReconstructedTrade
from twap_ledger.storage.csv.pairs import CsvPair
from twap_ledger.storage.schemas.relational import (
    LeaderboardEntry,
    StagingIntegrityReport,
    StagingSummary,
)


class WorkflowStatus(str, Enum):
    """Workflow execution status."""

    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    PARTIAL = "partial"  # finished, but some records or objects failed
    FAILED = "failed"


class ILockProvider(Protocol):
    """Anything that can hold a cross-process advisory lock."""

    def advisory_lock(self, key: int) -> AbstractAsyncContextManager[None]:
        """Hold the lock for the duration of the block."""
        ...


@runtime_checkable
class IStagingStore(Protocol):
    """
    Abstraction over the staging tables.

    Implemented by StagingRepository.
    """

    async def copy_day(self, pair: CsvPair) -> tuple[int, int]:
        """Bulk load one day's CSV pair, returning (trades, participants)."""
        ...

    async def summary(self) -> StagingSummary:
        ...

    async def production_max_id(self) -> int | None:
        ...

    async def integrity_report(self) -> StagingIntegrityReport:
        ...

    async def migrate(self) -> tuple[int, int]:
        """Copy staging into production in one transaction."""
        ...

    async def advance_sequence(self, max_id: int) -> int:
        ...

    def manual_sequence_sql(self, max_id: int) -> str:
        ...

    async def truncate(self) -> None:
        ...


class ITradeStore(Protocol):
    """Direct insert path. Implemented by TradeRepository."""

    async def insert_batch(self, trades: list[ReconstructedTrade]) -> list[int]:
        ...


class IArchiveReader(Protocol):
    """Read side of the node data archive. Implemented by NodeDataArchive."""

    def list_objects(self, prefix: str) -> list[ArchiveObject]:
        ...

    def read_lines(self, key: str) -> list[bytes]:
        ...


class ILeaderboardStore(Protocol):
    """Implemented by LeaderboardRepository."""

    async def status(self) -> tuple[int | None, int]:
        ...

    async def latest_trade_id(self) -> int:
        ...

    async def count_trades_since(self, after_id: int, up_to_id: int) -> int:
        ...

    async def affected_users(self, after_id: int, up_to_id: int) -> list[str]:
        ...

    async def rebuild(
        self,
        refreshed_at: datetime,
        limit: int | None = None,
        from_view: bool = False,
        watermark_id: int | None = None,
    ) -> int:
        ...

    async def apply_delta(
        self, users: list[str], refreshed_at: datetime, watermark_id: int
    ) -> int:
        ...

    async def view_exists(self) -> bool:
        ...

    async def create_view(self) -> None:
        ...

    async def refresh_view(self) -> None:
        ...

    async def top(self, limit: int = 100) -> list[LeaderboardEntry]:
        ...
