"""Ingestion ports for parser and reporter injection."""

from .generation import (  # noqa: F401
    DayPartition,
    GenerationStats,
    IGenerationReporter,
    IRecordParser,
)

__all__ = [
    "DayPartition",
    "GenerationStats",
    "IGenerationReporter",
    "IRecordParser",
]
