"""
Daily Sync Workflow
===================

Incremental path that bypasses CSV generation: reads node_trades objects
from the archive, keeps TWAP trades, and inserts them directly in batches.
Ids come from the database sequence.
"""

import asyncio
import logging
from dataclasses import asdict

from twap_ledger.common.exceptions import ArchiveDownloadError, PartialInsertError
from twap_ledger.infrastructure.database.postgres import DATABASE_ERRORS
from twap_ledger.infrastructure.observability import get_pipeline_logger
from twap_ledger.ingestion.ports.generation import GenerationStats, IRecordParser
from twap_ledger.orchestration.ports import IArchiveReader, ITradeStore, WorkflowStatus
from twap_ledger.orchestration.workflows.base import BaseWorkflow, WorkflowResult
from twap_ledger.shared.models.trades import ReconstructedTrade
from twap_ledger.storage.preview import PreviewArtifact, trade_preview_record

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 500


class DailySyncWorkflow(BaseWorkflow):
    """
    Syncs archive objects under a prefix into trades/trade_participants.

    A failed object or batch is counted and the run moves on; the result is
    PARTIAL when anything failed.
    """

    def __init__(
        self,
        archive: IArchiveReader,
        parser: IRecordParser,
        prefix: str,
        trades: ITradeStore | None = None,
        batch_size: int = DEFAULT_BATCH_SIZE,
        preview: PreviewArtifact | None = None,
    ):
        """
        Initialize daily sync.

        Args:
            archive: Archive reader
            parser: Parser for the objects' record layout (node_trades)
            prefix: Object key prefix to sync
            trades: Trade store; may be None only for a dry run
            batch_size: Trades per insert statement
            preview: When set, trades go to this artifact instead of the database
        """
        super().__init__()
        if trades is None and preview is None:
            raise ValueError("DailySyncWorkflow needs a trade store or a preview artifact")
        if batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {batch_size}")
        self.archive = archive
        self.parser = parser
        self.prefix = prefix
        self.trades = trades
        self.batch_size = batch_size
        self.preview = preview
        self.stats = GenerationStats()
        self._log = get_pipeline_logger("daily-sync", prefix=prefix)

    async def _execute_impl(self) -> WorkflowResult:
        objects = await asyncio.to_thread(self.archive.list_objects, self.prefix)
        logger.info(f"📂 Found {len(objects)} objects under {self.prefix}")

        for obj in objects:
            await self.sync_object(obj.key)
            self._log.info(
                "object_synced",
                key=obj.key,
                trades_written=self.stats.trades_written,
                errors=self.stats.errors,
            )

        self.log_summary(len(objects))
        return WorkflowResult(
            status=WorkflowStatus.SUCCESS if self.stats.errors == 0 else WorkflowStatus.PARTIAL,
            records_processed=self.stats.lines_read,
            records_written=self.stats.trades_written,
            errors=list(self.stats.error_samples),
            metadata={"objects": len(objects), **asdict(self.stats)},
        )

    async def sync_object(self, key: str) -> None:
        """Parse one object and insert its eligible trades batch by batch."""
        try:
            lines = await asyncio.to_thread(self.archive.read_lines, key)
        except (ArchiveDownloadError, RuntimeError) as e:
            # lz4 raises RuntimeError on a corrupt frame
            self.stats.record_error(f"{key}: {e}")
            logger.error(f"❌ Could not read {key}: {e}")
            return

        batch: list[ReconstructedTrade] = []
        for trade in self.parser.iter_eligible(lines, self.stats):
            batch.append(trade)
            if len(batch) >= self.batch_size:
                await self.flush(key, batch)
                batch = []
        if batch:
            await self.flush(key, batch)

        self.stats.files_processed += 1

    async def flush(self, key: str, batch: list[ReconstructedTrade]) -> None:
        if self.preview is not None:
            for trade in batch:
                self.preview.write(trade_preview_record(trade, object_key=key))
            self._count_written(batch)
            return

        try:
            await self.trades.insert_batch(batch)
        except PartialInsertError as e:
            self.stats.record_error(f"{key}: batch of {len(batch)} rolled back: {e}")
            return
        except DATABASE_ERRORS as e:
            self.stats.record_error(f"{key}: batch of {len(batch)} failed: {e}")
            logger.error(f"❌ Insert failed for {len(batch)} trades from {key}: {e}")
            return
        self._count_written(batch)

    def _count_written(self, batch: list[ReconstructedTrade]) -> None:
        self.stats.trades_written += len(batch)
        self.stats.participants_written += sum(len(t.participants) for t in batch)

    def log_summary(self, objects: int) -> None:
        logger.info("=" * 80)
        logger.info("📊 DAILY SYNC SUMMARY" + (" (dry run)" if self.preview else ""))
        logger.info("=" * 80)
        logger.info(f"   Objects: {self.stats.files_processed}/{objects}")
        logger.info(f"   Lines read: {self.stats.lines_read:,}")
        logger.info(f"   Trades inserted: {self.stats.trades_written:,}")
        logger.info(f"   Participants inserted: {self.stats.participants_written:,}")
        logger.info(f"   Non-TWAP skipped: {self.stats.trades_skipped:,}")
        logger.info(f"   Errors: {self.stats.errors:,}")
        for sample in self.stats.error_samples:
            logger.info(f"      - {sample}")
        logger.info("=" * 80)
