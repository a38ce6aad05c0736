"""
Observability layer: structured logging shared by every command.

Each run logs running counters (files, lines, trades, skipped, errors) and a
final summary; per-record failures are counted, never logged one by one.
"""

from .logging import (
    # Convenience aliases
    get_database_logger,
    # Layer-specific logger factories
    get_infrastructure_logger,
    get_ingestion_logger,
    # Base logger factory
    get_logger,
    get_pipeline_logger,
    get_storage_logger,
    # Setup
    setup_logging,
)

__all__ = [
    # Setup
    "setup_logging",
    # Base
    "get_logger",
    # Layer-specific
    "get_infrastructure_logger",
    "get_ingestion_logger",
    "get_pipeline_logger",
    "get_storage_logger",
    # Aliases
    "get_database_logger",
]
