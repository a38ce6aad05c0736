"""
Generation reporter for progress logging and summary reporting.

Responsibility: Format and log progress/results.
Does NOT make generation decisions or touch files.
"""

import logging
import time

from twap_ledger.ingestion.ports.generation import GenerationStats
from twap_ledger.shared.models.enums import SourceFormat

logger = logging.getLogger(__name__)


class GenerationReporter:
    """
    Reports CSV generation progress and results.

    Implements IGenerationReporter protocol.
    """

    def __init__(self, progress_every_files: int = 5, verbose: bool = False):
        """
        Initialize reporter.

        Args:
            progress_every_files: Log a progress line every N hour files
            verbose: Log every hour file at debug level
        """
        self.progress_every_files = progress_every_files
        self.verbose = verbose
        self._started = time.monotonic()

    def log_progress(
        self,
        source: SourceFormat,
        day_key: str,
        files_completed: int,
        total_files: int,
        stats: GenerationStats,
    ) -> None:
        """Log progress after an hour file completes."""
        message = (
            f"📊 {source.value}/{day_key}: {files_completed}/{total_files} files, "
            f"{stats.lines_read:,} lines, {stats.trades_written:,} trades, "
            f"{stats.trades_skipped:,} skipped, {stats.errors} errors"
        )
        if self.verbose:
            logger.debug(message)
        elif (
            files_completed % self.progress_every_files == 0
            or files_completed == total_files
        ):
            logger.info(message)

    def log_day(self, source: SourceFormat, day_key: str, stats: GenerationStats) -> None:
        if stats.trades_written == 0:
            logger.info(f"⚪ {source.value}/{day_key}: no TWAP trades, no CSVs written")
            return
        logger.info(
            f"✅ {source.value}/{day_key}: {stats.trades_written:,} trades, "
            f"{stats.participants_written:,} participants"
        )

    def log_summary(self, source: str, stats: GenerationStats) -> None:
        """
        Log final generation summary.

        Args:
            source: Source name or "all"
            stats: Accumulated counters
        """
        elapsed = stats.duration_seconds or (time.monotonic() - self._started)

        logger.info("\n" + "=" * 80)
        logger.info(f"CSV GENERATION SUMMARY ({source})")
        logger.info("=" * 80)

        logger.info(f"Days processed: {stats.days_processed} ({stats.days_empty} empty)")
        logger.info(f"Files processed: {stats.files_processed}")
        logger.info(f"Lines read: {stats.lines_read:,}")
        logger.info(f"  ✅ Trades written: {stats.trades_written:,}")
        logger.info(f"  ✅ Participants written: {stats.participants_written:,}")
        logger.info(f"  ⏭️ Non-TWAP trades skipped: {stats.trades_skipped:,}")
        logger.info(f"  ⚠️ Incomplete trades: {stats.incomplete_trades:,}")
        logger.info(f"  ❌ Record errors: {stats.errors:,}")
        logger.info(f"Total duration: {elapsed:.1f}s")

        if stats.lines_read > 0:
            rate = stats.lines_read / max(elapsed, 0.1)
            logger.info(f"Parse rate: {rate:.0f} lines/sec")

        if stats.error_samples:
            logger.info("\nSample errors:")
            for message in stats.error_samples:
                logger.info(f"  - {message}")

        if stats.failed_days:
            logger.info("\nFailed days:")
            for day_key, error_msg in stats.failed_days:
                logger.info(f"  - {day_key}: {error_msg}")

        logger.info("=" * 80 + "\n")
