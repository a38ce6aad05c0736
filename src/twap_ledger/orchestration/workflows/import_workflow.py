"""
Staged Import Workflow
======================

Loads generated CSV pairs into PostgreSQL through staging tables:

    SCAN -> STAGE_LOAD -> VERIFY_NO_CONFLICT -> [stop if staging_only]
         -> MIGRATE -> ADVANCE_SEQUENCE -> CLEANUP_STAGING -> DONE

Production is only written in MIGRATE, inside one transaction. Every check
that can abort the run happens before it.
"""

import logging
import uuid
from dataclasses import dataclass, field
from pathlib import Path

from twap_ledger.common.exceptions import (
    ConfigurationError,
    CsvFormatError,
    IdRangeConflictError,
    StagingIntegrityError,
)
from twap_ledger.infrastructure.observability import get_pipeline_logger
from twap_ledger.orchestration.ports import ILockProvider, IStagingStore, WorkflowStatus
from twap_ledger.orchestration.workflows.base import BaseWorkflow, WorkflowResult
from twap_ledger.shared.models.enums import ImportPhase, SourceFormat
from twap_ledger.storage.csv.pairs import CsvPair, scan_csv_pairs
from twap_ledger.storage.csv.reader import read_day_csvs
from twap_ledger.storage.preview import PreviewArtifact
from twap_ledger.storage.schemas.relational import StagingSummary

logger = logging.getLogger(__name__)


@dataclass
class ImportOptions:
    """What part of the state machine to run, and over which CSVs."""

    base_dir: str | Path
    sources: list[SourceFormat] = field(
        default_factory=lambda: [SourceFormat.NODE_TRADES, SourceFormat.NODE_FILLS_BY_BLOCK]
    )
    start_date: str | None = None
    staging_only: bool = False
    migrate_only: bool = False
    skip_sequence: bool = False

    def __post_init__(self):
        if self.staging_only and self.migrate_only:
            raise ConfigurationError("staging_only and migrate_only are mutually exclusive")
        if self.migrate_only and self.start_date:
            logger.warning("⚠️ start_date is ignored when migrating existing staging data")


class StagedImportWorkflow(BaseWorkflow):
    """
    Runs the staged import state machine under a session advisory lock.

    Responsibilities:
    - Phase ordering and the staging_only / migrate_only shortcuts
    - Id range and integrity checks before production is touched
    - Progress reporting per day
    - NOT responsible for: SQL (IStagingStore), CSV layout (storage.csv)
    """

    def __init__(
        self,
        lock_provider: ILockProvider,
        staging: IStagingStore,
        options: ImportOptions,
        lock_key: int = 7_246_173,
        progress_every_days: int = 10,
    ):
        """
        Initialize import workflow.

        Args:
            lock_provider: Source of the advisory lock (the database adapter)
            staging: Staging store
            options: Phase selection and CSV location
            lock_key: Advisory lock key shared by every import run
            progress_every_days: Log a progress line every N days
        """
        super().__init__()
        self.lock_provider = lock_provider
        self.staging = staging
        self.options = options
        self.lock_key = lock_key
        self.progress_every_days = progress_every_days
        self.phase: ImportPhase | None = None
        self.completed_phases: list[ImportPhase] = []
        self.run_id = uuid.uuid4().hex[:8]
        self._log = get_pipeline_logger("staged-import", run_id=self.run_id)

    def _enter(self, phase: ImportPhase) -> None:
        if self.phase is not None:
            self.completed_phases.append(self.phase)
        self.phase = phase
        self._log.info("phase_started", phase=phase.value)

    async def _execute_impl(self) -> WorkflowResult:
        async with self.lock_provider.advisory_lock(self.lock_key):
            return await self._run_phases()

    async def _run_phases(self) -> WorkflowResult:
        result = WorkflowResult(status=WorkflowStatus.RUNNING)

        if not self.options.migrate_only:
            pairs = self.scan()
            await self.stage_load(pairs, result)

        summary = await self.verify_no_conflict()
        result.metadata["staging"] = summary.model_dump()

        if summary.is_empty:
            logger.warning("⚠️ Staging is empty, nothing to migrate")
            result.metadata["nothing_to_migrate"] = True
            return self._finish(result)

        if self.options.staging_only:
            logger.info(
                f"⏸️ Staging-only run: {summary.trade_count:,} trades staged "
                f"(ids {summary.min_id}..{summary.max_id}); rerun with --migrate-only"
            )
            result.metadata["stopped_after"] = ImportPhase.VERIFY_NO_CONFLICT.value
            return self._finish(result)

        trades, participants = await self.migrate()
        result.records_written = trades
        result.metadata["participants_migrated"] = participants

        await self.advance_sequence(summary)
        await self.cleanup_staging()
        return self._finish(result)

    def _finish(self, result: WorkflowResult) -> WorkflowResult:
        self._enter(ImportPhase.DONE)
        result.status = WorkflowStatus.SUCCESS
        result.metadata["phases"] = [p.value for p in self.completed_phases]
        return result

    # ------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------
    def scan(self) -> list[CsvPair]:
        """
        Raises:
            ScanError: If no pairs remain
        """
        self._enter(ImportPhase.SCAN)
        pairs = scan_csv_pairs(
            self.options.base_dir, self.options.sources, self.options.start_date
        )
        logger.info(
            f"📂 Found {len(pairs)} CSV pairs ({pairs[0].day_key} to {pairs[-1].day_key})"
        )
        return pairs

    async def stage_load(self, pairs: list[CsvPair], result: WorkflowResult) -> None:
        """
        Copy every pair into staging, in day order.

        Raises:
            StageLoadError: On the first day that cannot be loaded
        """
        self._enter(ImportPhase.STAGE_LOAD)
        trades_total = 0
        participants_total = 0

        for index, pair in enumerate(pairs, start=1):
            trades, participants = await self.staging.copy_day(pair)
            trades_total += trades
            participants_total += participants

            if index % self.progress_every_days == 0 or index == len(pairs):
                logger.info(
                    f"📊 Staged {index}/{len(pairs)} days "
                    f"({index / len(pairs) * 100:.1f}%), last {pair.day_key}: "
                    f"{trades_total:,} trades, {participants_total:,} participants"
                )

        result.records_processed = trades_total
        result.metadata["days_staged"] = len(pairs)
        result.metadata["participants_staged"] = participants_total

    async def verify_no_conflict(self) -> StagingSummary:
        """
        Raises:
            IdRangeConflictError: If staged ids overlap production
            StagingIntegrityError: If staged rows would break constraints
        """
        self._enter(ImportPhase.VERIFY_NO_CONFLICT)
        summary = await self.staging.summary()
        if summary.is_empty:
            return summary

        production_max = await self.staging.production_max_id()
        logger.info(
            f"🔍 Staging: {summary.trade_count:,} trades, "
            f"{summary.participant_count:,} participants, ids "
            f"{summary.min_id}..{summary.max_id}; production max id {production_max}"
        )

        if production_max is not None and summary.min_id <= production_max:
            raise IdRangeConflictError(summary.min_id, production_max)

        report = await self.staging.integrity_report()
        if not report.is_clean:
            details = ", ".join(f"{name}={count}" for name, count in report.problems.items())
            raise StagingIntegrityError(
                f"Staging failed integrity checks: {details}",
                remediation="truncate staging, regenerate the affected CSVs and reimport",
            )
        return summary

    async def migrate(self) -> tuple[int, int]:
        self._enter(ImportPhase.MIGRATE)
        trades, participants = await self.staging.migrate()
        logger.info(f"✅ Migrated {trades:,} trades and {participants:,} participants")
        return trades, participants

    async def advance_sequence(self, summary: StagingSummary) -> None:
        self._enter(ImportPhase.ADVANCE_SEQUENCE)
        if self.options.skip_sequence:
            logger.warning(
                "⚠️ Sequence not advanced. Run manually: "
                f"{self.staging.manual_sequence_sql(summary.max_id)}"
            )
            return
        await self.staging.advance_sequence(summary.max_id)

    async def cleanup_staging(self) -> None:
        self._enter(ImportPhase.CLEANUP_STAGING)
        await self.staging.truncate()


class ImportDryRun(BaseWorkflow):
    """
    Dry run of the import: scan and parse every pair locally.

    Checks referential closure of each pair and id uniqueness across pairs,
    and writes one preview record per day. Never touches the database.
    """

    def __init__(self, options: ImportOptions, preview: PreviewArtifact):
        super().__init__()
        self.options = options
        self.preview = preview

    async def _execute_impl(self) -> WorkflowResult:
        result = WorkflowResult(status=WorkflowStatus.RUNNING)
        pairs = scan_csv_pairs(
            self.options.base_dir, self.options.sources, self.options.start_date
        )
        seen_ids: set[int] = set()
        participants_total = 0

        for pair in pairs:
            try:
                trades = read_day_csvs(pair.trades_path, pair.participants_path)
            except (CsvFormatError, OSError) as e:
                result.errors.append(f"{pair.source.value}/{pair.day_key}: {e}")
                continue

            ids = [t.trade_id for t in trades]
            duplicates = seen_ids.intersection(ids)
            if duplicates:
                result.errors.append(
                    f"{pair.source.value}/{pair.day_key}: {len(duplicates)} ids already "
                    f"used by an earlier pair (first {min(duplicates)})"
                )
            seen_ids.update(ids)

            participants = sum(len(t.participants) for t in trades)
            participants_total += participants
            result.records_processed += len(trades)
            self.preview.write(
                {
                    "source": pair.source.value,
                    "day": pair.day_key,
                    "trades": len(trades),
                    "participants": participants,
                    "min_id": min(ids) if ids else None,
                    "max_id": max(ids) if ids else None,
                }
            )

        result.metadata["days"] = len(pairs)
        result.metadata["participants"] = participants_total
        result.status = WorkflowStatus.PARTIAL if result.errors else WorkflowStatus.SUCCESS
        logger.info(
            f"🔍 Dry run: {len(pairs)} days, {result.records_processed:,} trades, "
            f"{participants_total:,} participants, {len(result.errors)} problems"
        )
        return result
