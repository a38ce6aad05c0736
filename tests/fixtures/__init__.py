"""
Test fixtures package.

Builders for raw node data lines, on-disk hourly trees and reconstructed
trades, plus in-memory fakes of the storage interfaces.
"""

import json
from contextlib import asynccontextmanager
from decimal import Decimal
from pathlib import Path
from typing import Any

from twap_ledger.common.exceptions import MigrationLockError
from twap_ledger.shared.models.enums import Side
from twap_ledger.shared.models.trades import (
    ParticipantRecord,
    ReconstructedTrade,
    TradeRecord,
)
from twap_ledger.storage.csv.reader import read_day_csvs
from twap_ledger.storage.schemas.relational import StagingIntegrityReport, StagingSummary

# ============================================================================
# Raw record builders
# ============================================================================


def create_node_trade_line(
    buyer_twap: int | None = 42,
    seller_twap: int | None = None,
    coin: str = "BTC",
    px: str = "85000.5",
    sz: str = "0.01",
    time: str = "2025-03-22T10:00:00.123",
    tx_hash: str = "0xabc",
    trade_dir_override: str = "Na",
    buyer: str = "0xBuyer",
    seller: str = "0xseller",
) -> str:
    """One node_trades line; side_info[0] is the buyer, side_info[1] the seller."""
    return json.dumps(
        {
            "coin": coin,
            "side": "B",
            "time": time,
            "px": px,
            "sz": sz,
            "hash": tx_hash,
            "trade_dir_override": trade_dir_override,
            "side_info": [
                {"user": buyer, "start_pos": "0.0", "oid": 101, "twap_id": buyer_twap, "cloid": None},
                {"user": seller, "start_pos": "1.5", "oid": 202, "twap_id": seller_twap, "cloid": "0xc1"},
            ],
        }
    )


def create_fill_event(
    user: str,
    tid: int | None,
    side: str = "B",
    twap_id: int | None = None,
    coin: str = "ETH",
    time_ms: int = 1742637600123,
    oid: int = 1,
) -> list:
    return [
        user,
        {
            "coin": coin,
            "px": "2000.25",
            "sz": "1.5",
            "side": side,
            "time": time_ms,
            "startPosition": "0.0",
            "dir": "Open Long",
            "hash": f"0xhash{tid}",
            "oid": oid,
            "tid": tid,
            "twapId": twap_id,
            "cloid": None,
        },
    ]


def create_fills_block_line(events: list) -> str:
    return json.dumps(
        {
            "local_time": "2025-03-22T10:00:00.5",
            "block_time": "2025-03-22T10:00:00.4",
            "block_number": 123,
            "events": events,
        }
    )


def write_hour_file(
    base: Path, source: str, day_key: str, hour: str, lines: list[str]
) -> Path:
    """Write <base>/<source>/hourly/<day_key>/<hour>."""
    day_dir = base / source / "hourly" / day_key
    day_dir.mkdir(parents=True, exist_ok=True)
    path = day_dir / hour
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


def create_reconstructed_trade(
    strategy_id: int | None = 7,
    coin: str = "BTC",
    price: str = "100",
    size: str = "2",
    participants: int = 2,
) -> ReconstructedTrade:
    sides = [Side.BUY, Side.SELL]
    return ReconstructedTrade(
        trade=TradeRecord(
            coin=coin,
            time="2025-01-01T00:00:00.000Z",
            price=Decimal(price),
            size=Decimal(size),
            hash="0xh",
        ),
        participants=[
            ParticipantRecord(
                user_address=f"0xuser{i}",
                side=sides[i % 2],
                start_pos=Decimal("0"),
                order_id=i + 1,
                strategy_id=strategy_id if i == 0 else None,
            )
            for i in range(participants)
        ],
    )


# ============================================================================
# In-memory fakes
# ============================================================================


class FakeLockProvider:
    """Advisory lock held in memory; a second holder fails like Postgres does."""

    def __init__(self):
        self.held: set[int] = set()
        self.acquired: list[int] = []

    @asynccontextmanager
    async def advisory_lock(self, key: int):
        if key in self.held:
            raise MigrationLockError(f"Advisory lock {key} is held by another session")
        self.held.add(key)
        self.acquired.append(key)
        try:
            yield
        finally:
            self.held.discard(key)


class FakeStagingStore:
    """
    Staging and production tables as dicts of trade id -> participant count.

    copy_day reads the real CSV pair so ids in staging match the files.
    """

    def __init__(self, production_ids: list[int] | None = None):
        self.staging: dict[int, int] = {}
        self.production: dict[int, int] = {pid: 1 for pid in production_ids or []}
        self.sequence: int | None = None
        self.truncated = 0
        self.copied_days: list[str] = []
        self.integrity = StagingIntegrityReport()

    async def copy_day(self, pair) -> tuple[int, int]:
        trades = read_day_csvs(pair.trades_path, pair.participants_path)
        for t in trades:
            self.staging[t.trade_id] = len(t.participants)
        self.copied_days.append(pair.day_key)
        return len(trades), sum(len(t.participants) for t in trades)

    async def summary(self) -> StagingSummary:
        ids = list(self.staging)
        return StagingSummary(
            trade_count=len(ids),
            participant_count=sum(self.staging.values()),
            min_id=min(ids) if ids else None,
            max_id=max(ids) if ids else None,
        )

    async def production_max_id(self) -> int | None:
        return max(self.production) if self.production else None

    async def integrity_report(self) -> StagingIntegrityReport:
        return self.integrity

    async def migrate(self) -> tuple[int, int]:
        self.production.update(self.staging)
        return len(self.staging), sum(self.staging.values())

    async def advance_sequence(self, max_id: int) -> int:
        self.sequence = max_id
        return max_id

    def manual_sequence_sql(self, max_id: int) -> str:
        return f"SELECT setval('trades_id_seq', {max_id});"

    async def truncate(self) -> None:
        self.staging.clear()
        self.truncated += 1


def status_tag(command: str, rows: int) -> str:
    """PostgreSQL command tag as returned by asyncpg execute()."""
    if command == "INSERT":
        return f"INSERT 0 {rows}"
    return f"{command} {rows}"


def rows_as_dicts(rows: list[tuple[Any, ...]], columns: list[str]) -> list[dict[str, Any]]:
    return [dict(zip(columns, row)) for row in rows]


__all__ = [
    "FakeLockProvider",
    "FakeStagingStore",
    "create_fill_event",
    "create_fills_block_line",
    "create_node_trade_line",
    "create_reconstructed_trade",
    "rows_as_dicts",
    "status_tag",
    "write_hour_file",
]
