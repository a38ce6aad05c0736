"""Staging repository for the bulk import path.

Owns every statement that touches the staging tables:
- COPY of a day's CSV pair into staging (with retry/backoff)
- staging summary, production max id and integrity checks
- transactional staging -> production migration
- sequence advance and staging cleanup

Table Schema:
  trades_staging / trade_participants_staging:
    same columns as production, no constraints
"""

import logging
from collections.abc import Sequence
from pathlib import Path

from twap_ledger.common.exceptions import CsvFormatError, MigrationError, StageLoadError
from twap_ledger.infrastructure.database.ports import IDatabaseAdapter
from twap_ledger.infrastructure.database.postgres import DATABASE_ERRORS, rows_from_status
from twap_ledger.infrastructure.database.retry import RetryPolicy
from twap_ledger.infrastructure.observability import get_storage_logger
from twap_ledger.storage.csv.pairs import CsvPair
from twap_ledger.storage.csv.reader import read_trade_id_range
from twap_ledger.storage.schemas.ddl import (
    PARTICIPANT_COLUMNS,
    PARTICIPANTS_STAGING_TABLE,
    PARTICIPANTS_TABLE,
    TRADE_COLUMNS,
    TRADES_ID_SEQUENCE,
    TRADES_STAGING_TABLE,
    TRADES_TABLE,
)
from twap_ledger.storage.schemas.relational import StagingIntegrityReport, StagingSummary

logger = logging.getLogger(__name__)

_TRADE_COLS = ", ".join(TRADE_COLUMNS)
_PARTICIPANT_COLS = ", ".join(PARTICIPANT_COLUMNS)


class StagingRepository:
    """Repository for staging tables and the staging -> production copy."""

    def __init__(self, db: IDatabaseAdapter, retry_policy: RetryPolicy | None = None):
        """Initialize staging repository.

        Args:
            db: Database adapter for SQL execution
            retry_policy: Backoff policy for COPY; defaults to RetryPolicy()
        """
        self.db = db
        self.retry_policy = retry_policy or RetryPolicy()
        self._log = get_storage_logger("staging-repository")
        logger.info("StagingRepository initialized")

    # ------------------------------------------------------------------
    # STAGE_LOAD
    # ------------------------------------------------------------------
    async def copy_day(self, pair: CsvPair) -> tuple[int, int]:
        """Copy one day's CSV pair into staging.

        If the participants copy fails, the day's trades are removed from
        staging again so the day can be reloaded on its own.

        Returns:
            (trade rows, participant rows) copied

        Raises:
            StageLoadError: On file errors or once retries are exhausted
        """
        id_range = self._trade_id_range(pair)
        trades = await self._copy_file(
            TRADES_STAGING_TABLE, pair.trades_path, TRADE_COLUMNS, pair.day_key
        )
        try:
            participants = await self._copy_file(
                PARTICIPANTS_STAGING_TABLE,
                pair.participants_path,
                PARTICIPANT_COLUMNS,
                pair.day_key,
            )
        except StageLoadError as e:
            if id_range is not None:
                await self._discard_staged_trades(pair, id_range, e)
            raise
        logger.debug(
            f"✅ Staged {pair.source.value}/{pair.day_key}: "
            f"{trades} trades, {participants} participants"
        )
        self._log.info(
            "day_staged",
            source=pair.source.value,
            day=pair.day_key,
            trades=trades,
            participants=participants,
        )
        return trades, participants

    @staticmethod
    def _trade_id_range(pair: CsvPair) -> tuple[int, int] | None:
        if not pair.trades_path.is_file():
            raise StageLoadError(f"CSV file missing: {pair.trades_path}", day_key=pair.day_key)
        try:
            return read_trade_id_range(pair.trades_path)
        except (CsvFormatError, OSError) as e:
            raise StageLoadError(
                f"Unreadable {pair.trades_path.name}: {e}",
                day_key=pair.day_key,
                remediation=f"regenerate the CSVs of {pair.day_key} and rerun with "
                f"--start-date={pair.day_key}",
            ) from e

    async def _copy_file(
        self, table: str, path: Path, columns: Sequence[str], day_key: str
    ) -> int:
        if not path.is_file():
            raise StageLoadError(f"CSV file missing: {path}", day_key=day_key)

        try:
            return await self.retry_policy.run(
                lambda: self.db.copy_csv(table, path, columns),
                f"COPY {path.name} -> {table}",
            )
        except DATABASE_ERRORS as e:
            retryable = self.retry_policy.should_retry(e)
            logger.error(f"❌ COPY {path.name} -> {table} failed: {e}")
            raise StageLoadError(
                f"COPY {path.name} -> {table} failed: {e}",
                day_key=day_key,
                retryable=retryable,
            ) from e

    async def _discard_staged_trades(
        self, pair: CsvPair, id_range: tuple[int, int], cause: StageLoadError
    ) -> None:
        """Delete the staged rows of a half-loaded day, by its trade id range."""
        low, high = id_range
        try:
            async with self.db.transaction() as conn:
                await conn.execute(
                    f"DELETE FROM {PARTICIPANTS_STAGING_TABLE} "
                    "WHERE trade_id BETWEEN $1 AND $2",
                    low,
                    high,
                )
                status = await conn.execute(
                    f"DELETE FROM {TRADES_STAGING_TABLE} WHERE id BETWEEN $1 AND $2",
                    low,
                    high,
                )
        except DATABASE_ERRORS as e:
            logger.error(f"❌ Could not remove staged trades {low}..{high}: {e}")
            raise StageLoadError(
                f"{cause}; staged trades {low}..{high} of {pair.day_key} were not removed",
                day_key=pair.day_key,
                retryable=cause.retryable,
                remediation=(
                    f"run DELETE FROM {TRADES_STAGING_TABLE} WHERE id BETWEEN "
                    f"{low} AND {high}; then rerun with --start-date={pair.day_key}"
                ),
            ) from e

        logger.warning(
            f"⚠️ Removed {rows_from_status(status)} staged trades "
            f"({low}..{high}) of {pair.source.value}/{pair.day_key}"
        )
        self._log.warning(
            "staged_trades_removed", day=pair.day_key, first_id=low, last_id=high
        )

    # ------------------------------------------------------------------
    # VERIFY_NO_CONFLICT
    # ------------------------------------------------------------------
    async def summary(self) -> StagingSummary:
        row = await self.db.fetch_one(
            f"""
            SELECT COUNT(*) AS trade_count, MIN(id) AS min_id, MAX(id) AS max_id
            FROM {TRADES_STAGING_TABLE}
            """
        )
        participant_count = await self.db.fetchval(
            f"SELECT COUNT(*) FROM {PARTICIPANTS_STAGING_TABLE}"
        )
        row = row or {}
        return StagingSummary(
            trade_count=row.get("trade_count") or 0,
            participant_count=participant_count or 0,
            min_id=row.get("min_id"),
            max_id=row.get("max_id"),
        )

    async def production_max_id(self) -> int | None:
        return await self.db.fetchval(f"SELECT MAX(id) FROM {TRADES_TABLE}")

    async def integrity_report(self) -> StagingIntegrityReport:
        """Count malformed staging rows that would break production constraints."""
        row = await self.db.fetch_one(
            f"""
            SELECT
                (SELECT COUNT(*) FROM {TRADES_STAGING_TABLE} WHERE id IS NULL)
                    AS null_ids,
                (SELECT COUNT(*) FROM (
                    SELECT id FROM {TRADES_STAGING_TABLE}
                    WHERE id IS NOT NULL
                    GROUP BY id HAVING COUNT(*) > 1
                ) dup) AS duplicate_ids,
                (SELECT COUNT(*) FROM {TRADES_STAGING_TABLE}
                    WHERE coin IS NULL OR time IS NULL OR price IS NULL
                       OR size IS NULL OR hash IS NULL) AS incomplete_trade_rows,
                (SELECT COUNT(*) FROM {PARTICIPANTS_STAGING_TABLE}
                    WHERE trade_id IS NULL OR user_address IS NULL OR side IS NULL
                       OR start_pos IS NULL OR order_id IS NULL)
                    AS incomplete_participant_rows,
                (SELECT COUNT(*) FROM {PARTICIPANTS_STAGING_TABLE} p
                    WHERE NOT EXISTS (
                        SELECT 1 FROM {TRADES_STAGING_TABLE} t WHERE t.id = p.trade_id
                    )) AS orphan_participants,
                (SELECT COUNT(*) FROM {TRADES_STAGING_TABLE} t
                    WHERE NOT EXISTS (
                        SELECT 1 FROM {PARTICIPANTS_STAGING_TABLE} p
                        WHERE p.trade_id = t.id
                    )) AS trades_without_participants
            """
        )
        return StagingIntegrityReport(**(row or {}))

    # ------------------------------------------------------------------
    # MIGRATE / ADVANCE_SEQUENCE / CLEANUP_STAGING
    # ------------------------------------------------------------------
    async def migrate(self) -> tuple[int, int]:
        """Copy staging into production in one transaction.

        Returns:
            (trade rows, participant rows) inserted

        Raises:
            MigrationError: On any failure; the transaction is rolled back
        """
        try:
            async with self.db.transaction() as conn:
                trade_status = await conn.execute(
                    f"""
                    INSERT INTO {TRADES_TABLE} ({_TRADE_COLS})
                    SELECT {_TRADE_COLS} FROM {TRADES_STAGING_TABLE}
                    ORDER BY id
                    """
                )
                participant_status = await conn.execute(
                    f"""
                    INSERT INTO {PARTICIPANTS_TABLE} ({_PARTICIPANT_COLS})
                    SELECT {_PARTICIPANT_COLS} FROM {PARTICIPANTS_STAGING_TABLE}
                    ORDER BY trade_id
                    """
                )
        except DATABASE_ERRORS as e:
            logger.error(f"❌ Migration rolled back: {e}")
            raise MigrationError(
                f"Migration failed and was rolled back: {e}",
                remediation="staging is intact; fix the cause and rerun with --migrate-only",
            ) from e

        trades, participants = rows_from_status(trade_status), rows_from_status(participant_status)
        self._log.info("migration_committed", trades=trades, participants=participants)
        return trades, participants

    async def advance_sequence(self, max_id: int) -> int:
        value = await self.db.fetchval(
            f"SELECT setval('{TRADES_ID_SEQUENCE}', $1)", max_id
        )
        logger.info(f"✅ Sequence {TRADES_ID_SEQUENCE} advanced to {value}")
        return value

    def manual_sequence_sql(self, max_id: int) -> str:
        return f"SELECT setval('{TRADES_ID_SEQUENCE}', {max_id});"

    async def truncate(self) -> None:
        await self.db.execute(
            f"TRUNCATE {TRADES_STAGING_TABLE}, {PARTICIPANTS_STAGING_TABLE}"
        )
        logger.info("🧹 Staging tables truncated")
