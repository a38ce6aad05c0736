"""
CSV Generation Coordinator
Turns raw hourly node data into day-partitioned CSV pairs with allocated ids.
"""

import logging
import time
from pathlib import Path

from twap_ledger.common.exceptions import DayPartitionError
from twap_ledger.ingestion.allocator import IdAllocator
from twap_ledger.ingestion.backfill.scanner import (
    discover_day_partitions,
    source_hourly_dir,
)
from twap_ledger.ingestion.parsers import get_parser
from twap_ledger.ingestion.ports.generation import (
    DayPartition,
    GenerationStats,
    IGenerationReporter,
    IRecordParser,
)
from twap_ledger.shared.models.enums import IncompleteTradePolicy, SourceFormat
from twap_ledger.storage.csv.writer import DayCsvWriter
from twap_ledger.storage.preview import PreviewArtifact

logger = logging.getLogger(__name__)


class CsvGenerationCoordinator:
    """
    Coordinates CSV generation over day partitions.

    Responsibilities:
    - Walk day partitions in order, one hour file at a time
    - Route eligible trades through the shared allocator into the day writer
    - Isolate per-partition failures
    - NOT responsible for: parsing, id persistence, reporting format
      (delegated to parser, allocator and reporter)
    """

    def __init__(
        self,
        allocator: IdAllocator,
        reporter: IGenerationReporter,
        incomplete_policy: IncompleteTradePolicy = IncompleteTradePolicy.ACCEPT,
        continue_on_day_error: bool = False,
        preview: PreviewArtifact | None = None,
    ):
        """
        Initialize coordinator with injected dependencies.

        Args:
            allocator: Run-wide id allocator shared by every source
            reporter: Progress and summary reporter
            incomplete_policy: Handling of trades with fewer than two participants
            continue_on_day_error: Keep going after a failed day (unattended runs)
            preview: Open preview artifact; when set, nothing is written next
                to the raw data (dry run)
        """
        self.allocator = allocator
        self.reporter = reporter
        self.incomplete_policy = incomplete_policy
        self.continue_on_day_error = continue_on_day_error
        self.preview = preview

    @property
    def dry_run(self) -> bool:
        return self.preview is not None

    def generate(
        self,
        base_dir: str | Path,
        sources: list[SourceFormat],
        start_date: str | None = None,
    ) -> GenerationStats:
        """
        Generate CSVs for several sources in order with one allocator.

        Stops before the next source if the previous one did not fully succeed.
        """
        total = GenerationStats()

        for index, source in enumerate(sources):
            stats = self.generate_source(
                source, source_hourly_dir(base_dir, source), start_date
            )
            total.merge(stats)

            remaining = sources[index + 1 :]
            if not stats.succeeded and remaining:
                logger.error(
                    f"❌ {source.value} finished with errors, not starting "
                    f"{', '.join(s.value for s in remaining)}"
                )
                break

        if len(sources) > 1:
            self.reporter.log_summary("all", total)
        return total

    def generate_source(
        self,
        source: SourceFormat,
        hourly_dir: Path,
        start_date: str | None = None,
    ) -> GenerationStats:
        """
        Generate CSVs for every day partition of one source.

        Raises:
            DayPartitionError: On a failed day, unless continue_on_day_error
        """
        started = time.monotonic()
        parser = get_parser(source, self.incomplete_policy)
        partitions = discover_day_partitions(hourly_dir, source, start_date)

        logger.info(
            f"🚀 Generating {source.value} CSVs: {len(partitions)} days, "
            f"starting at id {self.allocator.next_id}"
            + (" (dry run)" if self.dry_run else "")
        )

        stats = GenerationStats()
        try:
            for partition in partitions:
                try:
                    day_stats = self.process_day(parser, partition)
                except DayPartitionError as e:
                    stats.failed_days.append((e.day_key, f"{e} (fix: {e.remediation})"))
                    logger.error(f"❌ Day {e.day_key} aborted: {e}")
                    if not self.continue_on_day_error:
                        raise
                    continue
                stats.merge(day_stats)
        finally:
            stats.duration_seconds = time.monotonic() - started
            self.reporter.log_summary(source.value, stats)

        return stats

    def process_day(self, parser: IRecordParser, partition: DayPartition) -> GenerationStats:
        """
        Process every hour file of one day into its CSV pair.

        Raises:
            DayPartitionError: If an hour file cannot be read; the day's
                partial output is discarded
        """
        stats = GenerationStats()
        total_files = len(partition.hour_files)
        # Ids of a discarded day were never written, so a rerun may reuse them
        day_first_id = self.allocator.next_id

        if self.preview is not None:
            sink = self.preview.day_sink(partition.source.value, partition.day_key)
        else:
            sink = DayCsvWriter(partition.directory, partition.day_key)

        with sink:
            for files_completed, hour_file in enumerate(partition.hour_files, start=1):
                try:
                    with open(hour_file, "rb") as f:
                        for trade in parser.iter_eligible(f, stats):
                            trade_id = self.allocator.allocate()
                            stats.participants_written += sink.write_trade(trade_id, trade)
                            stats.trades_written += 1
                except OSError as e:
                    raise DayPartitionError(
                        f"Unreadable hour file {hour_file.name}: {e}",
                        day_key=partition.day_key,
                        remediation=f"rerun with --start-date={partition.day_key} "
                        f"--start-id={day_first_id}",
                    ) from e

                stats.files_processed += 1
                self.reporter.log_progress(
                    partition.source, partition.day_key, files_completed, total_files, stats
                )

        stats.days_processed = 1
        if stats.trades_written == 0:
            stats.days_empty = 1
        self.reporter.log_day(partition.source, partition.day_key, stats)
        return stats
