"""CSV generation abstractions.

Separates the day-partition loop from execution concerns:
- Record parsing: how a raw line becomes reconstructed trades
- Reporting: how progress and results are reported
"""

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from twap_ledger.shared.models.enums import SourceFormat
from twap_ledger.shared.models.trades import ReconstructedTrade

MAX_ERROR_SAMPLES = 5


@dataclass
class DayPartition:
    """One YYYYMMDD directory of hourly raw files."""

    source: SourceFormat
    day_key: str
    directory: Path
    hour_files: list[Path] = field(default_factory=list)


@dataclass
class GenerationStats:
    """Running counters for a generation run (one source or several)."""

    files_processed: int = 0
    lines_read: int = 0
    trades_written: int = 0
    participants_written: int = 0
    trades_skipped: int = 0
    incomplete_trades: int = 0
    errors: int = 0
    days_processed: int = 0
    days_empty: int = 0
    failed_days: list[tuple[str, str]] = field(default_factory=list)
    error_samples: list[str] = field(default_factory=list)
    duration_seconds: float = 0.0

    @property
    def days_failed(self) -> int:
        return len(self.failed_days)

    @property
    def succeeded(self) -> bool:
        return self.errors == 0 and not self.failed_days

    def record_error(self, message: str) -> None:
        """Count a per-record error, keeping a few samples for the summary."""
        self.errors += 1
        if len(self.error_samples) < MAX_ERROR_SAMPLES:
            self.error_samples.append(message)

    def merge(self, other: "GenerationStats") -> None:
        self.files_processed += other.files_processed
        self.lines_read += other.lines_read
        self.trades_written += other.trades_written
        self.participants_written += other.participants_written
        self.trades_skipped += other.trades_skipped
        self.incomplete_trades += other.incomplete_trades
        self.errors += other.errors
        self.days_processed += other.days_processed
        self.days_empty += other.days_empty
        self.failed_days.extend(other.failed_days)
        room = MAX_ERROR_SAMPLES - len(self.error_samples)
        if room > 0:
            self.error_samples.extend(other.error_samples[:room])
        self.duration_seconds += other.duration_seconds


class IRecordParser(Protocol):
    """Abstraction for turning raw lines into TWAP-eligible trades.

    Single Responsibility: parse and filter. Does NOT allocate ids or write.
    """

    source: SourceFormat

    def parse_line(self, raw: str) -> list[ReconstructedTrade]:
        """Parse one raw line into zero or more reconstructed trades.

        Raises:
            RecordParseError: On malformed input
        """
        ...

    def iter_eligible(
        self, lines: Iterable[str | bytes], stats: GenerationStats
    ) -> Iterator[ReconstructedTrade]:
        """Yield TWAP-eligible trades, counting skips and errors into stats."""
        ...


class IGenerationReporter(Protocol):
    """Abstraction for reporting and logging.

    Single Responsibility: Format and report progress/results.
    Does NOT make generation decisions.
    """

    def log_progress(
        self,
        source: SourceFormat,
        day_key: str,
        files_completed: int,
        total_files: int,
        stats: GenerationStats,
    ) -> None:
        """Log progress after an hour file completes."""
        ...

    def log_day(self, source: SourceFormat, day_key: str, stats: GenerationStats) -> None:
        """Log completion of one day partition."""
        ...

    def log_summary(self, source: str, stats: GenerationStats) -> None:
        """Log final generation summary."""
        ...
