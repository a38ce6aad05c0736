"""Trade repository for the direct (non-bulk) insert path.

Used by the daily sync. Ids come from trades_id_seq, reserved up front so the
parent rows can be removed if their participants fail to insert.

Table Schema:
  trades:
    - id: BIGSERIAL PRIMARY KEY
    - coin, time, price, size, hash, trade_dir_override
  trade_participants:
    - id: BIGSERIAL PRIMARY KEY
    - trade_id: BIGINT REFERENCES trades(id) ON DELETE CASCADE
    - user_address, side, start_pos, order_id, strategy_id, client_order_id
"""

import logging

from twap_ledger.common.exceptions import PartialInsertError
from twap_ledger.infrastructure.database.ports import IDatabaseAdapter
from twap_ledger.infrastructure.database.postgres import DATABASE_ERRORS
from twap_ledger.infrastructure.observability import get_storage_logger
from twap_ledger.shared.models.trades import ReconstructedTrade
from twap_ledger.storage.schemas.ddl import (
    PARTICIPANT_COLUMNS,
    PARTICIPANTS_TABLE,
    TRADE_COLUMNS,
    TRADES_ID_SEQUENCE,
    TRADES_TABLE,
)

logger = logging.getLogger(__name__)

# Element types of the per-column arrays passed to unnest()
_TRADE_ARRAY_TYPES = ("bigint", "text", "text", "numeric", "numeric", "text", "text")
_PARTICIPANT_ARRAY_TYPES = ("bigint", "text", "text", "numeric", "bigint", "bigint", "text")


def _unnest_insert(
    table: str,
    columns: tuple[str, ...],
    array_types: tuple[str, ...],
    casts: dict[str, str] | None = None,
) -> str:
    """Build an INSERT ... SELECT FROM unnest($1::t[], ...) statement.

    Takes one array parameter per column, so the bind parameter count does not
    grow with the batch (PostgreSQL caps a statement at 32767 parameters).
    """
    casts = casts or {}
    arrays = ", ".join(f"${i}::{t}[]" for i, t in enumerate(array_types, start=1))
    selected = ", ".join(f"u.{c}{casts.get(c, '')}" for c in columns)
    return f"""
        INSERT INTO {table} ({', '.join(columns)})
        SELECT {selected}
        FROM unnest({arrays}) AS u({', '.join(columns)})
    """


def _as_columns(rows: list[tuple]) -> list[list]:
    """Transpose row tuples into one list per column."""
    return [list(column) for column in zip(*rows)]


_TRADE_INSERT = _unnest_insert(
    TRADES_TABLE, TRADE_COLUMNS, _TRADE_ARRAY_TYPES, {"time": "::timestamptz"}
)
_PARTICIPANT_INSERT = _unnest_insert(
    PARTICIPANTS_TABLE, PARTICIPANT_COLUMNS, _PARTICIPANT_ARRAY_TYPES
)


class TradeRepository:
    """Repository for trades and their participants.

    Inserts are not wrapped in one transaction: a participant failure is
    compensated by deleting the trade rows of the batch.
    """

    def __init__(self, db: IDatabaseAdapter):
        """Initialize trade repository.

        Args:
            db: Database adapter for SQL execution
        """
        self.db = db
        self._log = get_storage_logger("trade-repository")
        logger.info("TradeRepository initialized")

    async def max_id(self) -> int | None:
        return await self.db.fetchval(f"SELECT MAX(id) FROM {TRADES_TABLE}")

    async def reserve_ids(self, count: int) -> list[int]:
        rows = await self.db.fetch_all(
            f"SELECT nextval('{TRADES_ID_SEQUENCE}') AS id FROM generate_series(1, $1)",
            count,
        )
        return [row["id"] for row in rows]

    async def insert_batch(self, trades: list[ReconstructedTrade]) -> list[int]:
        """Insert trades and their participants.

        Args:
            trades: Reconstructed trades to insert

        Returns:
            Ids assigned to the trades, in input order

        Raises:
            PartialInsertError: If participants failed; the trades were deleted
        """
        if not trades:
            return []

        trade_ids = await self.reserve_ids(len(trades))

        trade_rows = []
        for trade_id, reconstructed in zip(trade_ids, trades):
            t = reconstructed.trade
            trade_rows.append(
                (trade_id, t.coin, t.time, t.price, t.size, t.hash, t.trade_dir_override)
            )
        try:
            await self.db.execute(_TRADE_INSERT, *_as_columns(trade_rows))
        except DATABASE_ERRORS as e:
            logger.error(f"❌ Trade batch insert failed: {e}")
            raise

        participant_rows = [
            (
                trade_id,
                p.user_address,
                p.side.value,
                p.start_pos,
                p.order_id,
                p.strategy_id,
                p.client_order_id,
            )
            for trade_id, reconstructed in zip(trade_ids, trades)
            for p in reconstructed.participants
        ]

        if participant_rows:
            try:
                await self.db.execute(
                    _PARTICIPANT_INSERT,
                    *_as_columns(participant_rows),
                )
            except DATABASE_ERRORS as e:
                logger.error(f"❌ Participant insert failed, deleting {len(trade_ids)} trades: {e}")
                await self.delete(trade_ids)
                self._log.warning("batch_compensated", trades=len(trade_ids))
                raise PartialInsertError(
                    f"Participant insert failed: {e}", trade_ids=trade_ids
                ) from e

        logger.debug(f"✅ Inserted {len(trades)} trades, {len(participant_rows)} participants")
        self._log.info(
            "batch_inserted", trades=len(trades), participants=len(participant_rows)
        )
        return trade_ids

    async def delete(self, trade_ids: list[int]) -> int:
        status = await self.db.execute(
            f"DELETE FROM {TRADES_TABLE} WHERE id = ANY($1::bigint[])", trade_ids
        )
        logger.warning(f"🗑️ Deleted trades {trade_ids[0]}..{trade_ids[-1]} ({status})")
        return len(trade_ids)
