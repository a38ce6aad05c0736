"""Leaderboard repository: per-user TWAP aggregates and ranking.

Aggregates participant rows with a strategy id, joined to their trades:
  total_volume      = SUM(price * size)
  total_trades      = COUNT(DISTINCT trade_id)
  unique_strategies = COUNT(DISTINCT strategy_id)
Users are keyed by lowercased address. Ranks are ROW_NUMBER() over
total_volume DESC, user_address ASC; zero-volume users are not ranked.

Table Schema:
  leaderboard_stats:
    - user_address: TEXT PRIMARY KEY
    - total_volume, total_trades, unique_strategies, rank, last_updated
  leaderboard_state:
    - last_trade_id: highest trades.id covered by the last refresh
"""

import logging
from datetime import datetime

from twap_ledger.infrastructure.database.ports import IDatabaseAdapter
from twap_ledger.infrastructure.database.postgres import DATABASE_ERRORS, rows_from_status
from twap_ledger.infrastructure.observability import get_storage_logger
from twap_ledger.storage.schemas.ddl import (
    LEADERBOARD_STATE_TABLE,
    LEADERBOARD_TABLE,
    PARTICIPANTS_TABLE,
    TRADES_TABLE,
)
from twap_ledger.storage.schemas.relational import LeaderboardEntry

logger = logging.getLogger(__name__)

USER_STATS_QUERY = f"""
    SELECT
        lower(p.user_address) AS user_address,
        SUM(t.price * t.size) AS total_volume,
        COUNT(DISTINCT p.trade_id) AS total_trades,
        COUNT(DISTINCT p.strategy_id) AS unique_strategies
    FROM {PARTICIPANTS_TABLE} p
    JOIN {TRADES_TABLE} t ON t.id = p.trade_id
    WHERE p.strategy_id IS NOT NULL
"""

_RANK_WINDOW = "ROW_NUMBER() OVER (ORDER BY total_volume DESC, user_address ASC)"

_LATEST_TRADE_ID = f"SELECT COALESCE(MAX(id), 0) FROM {TRADES_TABLE}"

_SAVE_WATERMARK = f"""
    INSERT INTO {LEADERBOARD_STATE_TABLE} (singleton, last_trade_id, refreshed_at)
    VALUES (TRUE, $1, $2)
    ON CONFLICT (singleton) DO UPDATE SET
        last_trade_id = EXCLUDED.last_trade_id,
        refreshed_at = EXCLUDED.refreshed_at
"""


def _ranked_insert(source_sql: str) -> str:
    """INSERT ... SELECT ranking every positive-volume row of source_sql.

    Parameters: $1 last_updated, $2 optional rank limit.
    """
    return f"""
        INSERT INTO {LEADERBOARD_TABLE}
            (user_address, total_volume, total_trades, unique_strategies, rank, last_updated)
        SELECT user_address, total_volume, total_trades, unique_strategies, rank, $1
        FROM (
            SELECT s.*, {_RANK_WINDOW} AS rank
            FROM ({source_sql}) s
            WHERE s.total_volume > 0
        ) ranked
        WHERE $2::bigint IS NULL OR rank <= $2::bigint
    """


class LeaderboardRepository:
    """Repository for leaderboard_stats and the user stats materialized view."""

    def __init__(self, db: IDatabaseAdapter, view_name: str = "user_strategy_stats_mv"):
        """Initialize leaderboard repository.

        Args:
            db: Database adapter for SQL execution
            view_name: Materialized view used by the materialized strategy
        """
        self.db = db
        self.view_name = view_name
        self._log = get_storage_logger("leaderboard-repository")
        logger.info("LeaderboardRepository initialized")

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------
    async def status(self) -> tuple[int | None, int]:
        """(last trade id folded into the table, ranked user count).

        The watermark is an ingestion position, not a trade time: a backfill
        of old trades still lands above it.
        """
        row = await self.db.fetch_one(
            f"""
            SELECT
                (SELECT last_trade_id FROM {LEADERBOARD_STATE_TABLE}) AS last_trade_id,
                (SELECT COUNT(*) FROM {LEADERBOARD_TABLE}) AS users
            """
        )
        row = row or {}
        return row.get("last_trade_id"), row.get("users") or 0

    async def latest_trade_id(self) -> int:
        return await self.db.fetchval(_LATEST_TRADE_ID)

    async def count_trades_since(self, after_id: int, up_to_id: int) -> int:
        return await self.db.fetchval(
            f"SELECT COUNT(*) FROM {TRADES_TABLE} WHERE id > $1 AND id <= $2",
            after_id,
            up_to_id,
        )

    async def affected_users(self, after_id: int, up_to_id: int) -> list[str]:
        rows = await self.db.fetch_all(
            f"""
            SELECT DISTINCT lower(p.user_address) AS user_address
            FROM {PARTICIPANTS_TABLE} p
            WHERE p.trade_id > $1 AND p.trade_id <= $2 AND p.strategy_id IS NOT NULL
            """,
            after_id,
            up_to_id,
        )
        return [row["user_address"] for row in rows]

    # ------------------------------------------------------------------
    # Full rebuild
    # ------------------------------------------------------------------
    async def rebuild(
        self,
        refreshed_at: datetime,
        limit: int | None = None,
        from_view: bool = False,
        watermark_id: int | None = None,
    ) -> int:
        """Replace the whole table with freshly ranked rows in one transaction.

        Args:
            refreshed_at: Value stored in last_updated
            limit: Keep only the top N ranks
            from_view: Read aggregates from the materialized view instead of
                recomputing them
            watermark_id: Last trade id the aggregates cover; read from
                trades before aggregating when not given

        Returns:
            Number of ranked users written
        """
        source_sql = (
            f"SELECT user_address, total_volume, total_trades, unique_strategies "
            f"FROM {self.view_name}"
            if from_view
            else f"{USER_STATS_QUERY} GROUP BY lower(p.user_address)"
        )
        try:
            async with self.db.transaction() as conn:
                if watermark_id is None:
                    watermark_id = await conn.fetchval(_LATEST_TRADE_ID)
                await conn.execute(f"TRUNCATE {LEADERBOARD_TABLE}")
                status = await conn.execute(
                    _ranked_insert(source_sql), refreshed_at, limit
                )
                await conn.execute(_SAVE_WATERMARK, watermark_id, refreshed_at)
        except DATABASE_ERRORS as e:
            logger.error(f"❌ Leaderboard rebuild failed: {e}")
            raise

        users = rows_from_status(status)
        logger.info(f"✅ Leaderboard rebuilt: {users:,} ranked users")
        self._log.info("leaderboard_rebuilt", users=users, last_trade_id=watermark_id)
        return users

    # ------------------------------------------------------------------
    # Delta update
    # ------------------------------------------------------------------
    async def apply_delta(
        self, users: list[str], refreshed_at: datetime, watermark_id: int
    ) -> int:
        """Recompute the given users' totals, then re-rank every row.

        watermark_id is stored in the same transaction, so a failed update
        leaves the previous watermark in place.

        Returns:
            Total ranked users after the update
        """
        try:
            async with self.db.transaction() as conn:
                await conn.execute(
                    f"""
                    INSERT INTO {LEADERBOARD_TABLE}
                        (user_address, total_volume, total_trades, unique_strategies,
                         rank, last_updated)
                    SELECT user_address, total_volume, total_trades, unique_strategies, 0, $2
                    FROM (
                        {USER_STATS_QUERY} AND lower(p.user_address) = ANY($1::text[])
                        GROUP BY lower(p.user_address)
                    ) s
                    ON CONFLICT (user_address) DO UPDATE SET
                        total_volume = EXCLUDED.total_volume,
                        total_trades = EXCLUDED.total_trades,
                        unique_strategies = EXCLUDED.unique_strategies,
                        last_updated = EXCLUDED.last_updated
                    """,
                    users,
                    refreshed_at,
                )
                await conn.execute(
                    f"DELETE FROM {LEADERBOARD_TABLE} WHERE total_volume <= 0"
                )
                status = await conn.execute(
                    f"""
                    UPDATE {LEADERBOARD_TABLE} l
                    SET rank = r.rank, last_updated = $1
                    FROM (
                        SELECT user_address, {_RANK_WINDOW} AS rank
                        FROM {LEADERBOARD_TABLE}
                    ) r
                    WHERE l.user_address = r.user_address
                    """,
                    refreshed_at,
                )
                await conn.execute(_SAVE_WATERMARK, watermark_id, refreshed_at)
        except DATABASE_ERRORS as e:
            logger.error(f"❌ Leaderboard delta update failed: {e}")
            raise

        ranked = rows_from_status(status)
        logger.info(f"✅ Leaderboard delta applied: {len(users):,} users updated, {ranked:,} ranked")
        self._log.info(
            "leaderboard_delta_applied",
            users=len(users),
            ranked=ranked,
            last_trade_id=watermark_id,
        )
        return ranked

    # ------------------------------------------------------------------
    # Materialized view
    # ------------------------------------------------------------------
    async def view_exists(self) -> bool:
        return bool(
            await self.db.fetchval(
                "SELECT EXISTS (SELECT 1 FROM pg_matviews WHERE matviewname = $1)",
                self.view_name,
            )
        )

    async def create_view(self) -> None:
        await self.db.execute(
            f"""
            CREATE MATERIALIZED VIEW {self.view_name} AS
            {USER_STATS_QUERY}
            GROUP BY lower(p.user_address)
            """
        )
        # CONCURRENTLY refreshes need a unique index
        await self.db.execute(
            f"CREATE UNIQUE INDEX IF NOT EXISTS {self.view_name}_user_idx "
            f"ON {self.view_name} (user_address)"
        )
        await self.db.execute(
            f"CREATE INDEX IF NOT EXISTS {self.view_name}_volume_idx "
            f"ON {self.view_name} (total_volume DESC)"
        )
        logger.info(f"✅ Created materialized view {self.view_name}")

    async def refresh_view(self) -> None:
        await self.db.execute(f"REFRESH MATERIALIZED VIEW CONCURRENTLY {self.view_name}")
        logger.info(f"🔄 Refreshed materialized view {self.view_name}")

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    async def top(self, limit: int = 100) -> list[LeaderboardEntry]:
        rows = await self.db.fetch_all(
            f"""
            SELECT user_address, total_volume, total_trades, unique_strategies,
                   rank, last_updated
            FROM {LEADERBOARD_TABLE}
            ORDER BY rank
            LIMIT $1
            """,
            limit,
        )
        return [LeaderboardEntry(**row) for row in rows]
