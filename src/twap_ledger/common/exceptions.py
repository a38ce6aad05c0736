"""
TWAP Ledger Exception Hierarchy

Provides specific exception types for each failure class of the pipeline:
per-record errors (counted and summarized), per-partition errors (one day
aborted) and fatal errors (run stops, durable state unchanged).
"""


class TwapLedgerError(Exception):
    """Base exception for all pipeline errors."""

    def __init__(self, message: str, remediation: str | None = None):
        super().__init__(message)
        self.remediation = remediation


class ConfigurationError(TwapLedgerError):
    """Invalid or missing configuration (credentials, flags, start id)."""

    pass


# ============================================================================
# Per-record errors
# ============================================================================


class RecordParseError(TwapLedgerError):
    """A raw input line could not be parsed into trades."""

    def __init__(self, message: str, line_number: int | None = None, **kwargs):
        super().__init__(message, **kwargs)
        self.line_number = line_number


class IncompleteTradeError(RecordParseError):
    """A reconstructed trade has fewer than two participants."""

    def __init__(self, message: str, tid: int | None = None, participant_count: int = 0):
        super().__init__(message)
        self.tid = tid
        self.participant_count = participant_count


# ============================================================================
# Per-partition errors
# ============================================================================


class DayPartitionError(TwapLedgerError):
    """A day partition could not be processed (unreadable hour file)."""

    def __init__(self, message: str, day_key: str, **kwargs):
        super().__init__(message, **kwargs)
        self.day_key = day_key


class ArchiveDownloadError(TwapLedgerError):
    """Listing or downloading node data archives failed."""

    pass


# ============================================================================
# Fatal import errors
# ============================================================================


class ScanError(TwapLedgerError):
    """No CSV pairs to import (none found, or none after date filtering)."""

    pass


class StageLoadError(TwapLedgerError):
    """Bulk copy into staging failed for a day partition."""

    def __init__(
        self,
        message: str,
        day_key: str,
        retryable: bool = False,
        remediation: str | None = None,
    ):
        # Earlier days stay staged; only this day has to be loaded again
        super().__init__(
            message,
            remediation=remediation
            or f"fix the cause and rerun with --start-date={day_key}",
        )
        self.day_key = day_key
        self.retryable = retryable


class IdRangeConflictError(TwapLedgerError):
    """Staging id range overlaps ids already present in production."""

    def __init__(self, staging_min_id: int, production_max_id: int):
        self.staging_min_id = staging_min_id
        self.production_max_id = production_max_id
        super().__init__(
            f"ID conflict: staging min id {staging_min_id} <= production max id "
            f"{production_max_id}",
            remediation=(
                f"truncate staging and regenerate CSVs with "
                f"--start-id={self.next_free_id}"
            ),
        )

    @property
    def next_free_id(self) -> int:
        return self.production_max_id + 1


class StagingIntegrityError(TwapLedgerError):
    """Staging rows failed referential or uniqueness checks."""

    pass


class MigrationError(TwapLedgerError):
    """Staging to production copy failed and was rolled back."""

    pass


class MigrationLockError(TwapLedgerError):
    """Another import run holds the migration lock."""

    pass


# ============================================================================
# Direct insert / leaderboard errors
# ============================================================================


class PartialInsertError(TwapLedgerError):
    """Participants failed to insert; the parent trades were deleted."""

    def __init__(self, message: str, trade_ids: list[int]):
        super().__init__(message)
        self.trade_ids = trade_ids


class BootstrapRequiredError(TwapLedgerError):
    """Delta leaderboard update attempted on an empty leaderboard."""

    def __init__(self, message: str = "Leaderboard table is empty"):
        super().__init__(message, remediation="run a full leaderboard rebuild first")


class CsvFormatError(TwapLedgerError):
    """A generated CSV file could not be read back (bad arity, orphan row)."""

    pass
