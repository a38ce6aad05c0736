"""CSV generation package: day partitions of raw node data to bulk-load CSVs."""

from .coordinator import CsvGenerationCoordinator
from .reporter import GenerationReporter
from .scanner import discover_day_partitions, is_hour_file, source_hourly_dir

__all__ = [
    "CsvGenerationCoordinator",
    "GenerationReporter",
    "discover_day_partitions",
    "is_hour_file",
    "source_hourly_dir",
]
