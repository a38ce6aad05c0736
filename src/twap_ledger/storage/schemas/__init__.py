"""Storage schemas: destination DDL and relational read models."""

from .ddl import (
    PARTICIPANT_COLUMNS,
    PARTICIPANTS_STAGING_TABLE,
    PARTICIPANTS_TABLE,
    SCHEMA_STATEMENTS,
    TRADE_COLUMNS,
    TRADES_STAGING_TABLE,
    TRADES_TABLE,
)
from .relational import LeaderboardEntry, StagingIntegrityReport, StagingSummary

__all__ = [
    "PARTICIPANT_COLUMNS",
    "PARTICIPANTS_STAGING_TABLE",
    "PARTICIPANTS_TABLE",
    "SCHEMA_STATEMENTS",
    "TRADE_COLUMNS",
    "TRADES_STAGING_TABLE",
    "TRADES_TABLE",
    "LeaderboardEntry",
    "StagingIntegrityReport",
    "StagingSummary",
]
