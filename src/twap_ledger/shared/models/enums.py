"""
Shared enumerations for the TWAP ledger.
"""

import enum


# ============================================================================
# TRADE DOMAIN
# ============================================================================
class Side(str, enum.Enum):
    """Participant side as written to storage."""

    BUY = "B"  # Bid
    SELL = "A"  # Ask


class SourceFormat(str, enum.Enum):
    """Raw node data layouts; values match the source directory names."""

    NODE_TRADES = "node_trades"
    NODE_FILLS_BY_BLOCK = "node_fills_by_block"


class IncompleteTradePolicy(str, enum.Enum):
    """What to do with an eligible trade that has fewer than two participants."""

    ACCEPT = "accept"  # emit, count as incomplete
    SKIP = "skip"  # drop before id allocation, count as incomplete
    REJECT = "reject"  # raise IncompleteTradeError, count as record error


# ============================================================================
# PIPELINE
# ============================================================================
class ImportPhase(str, enum.Enum):
    """Staged import state machine phases, in execution order."""

    SCAN = "scan"
    STAGE_LOAD = "stage_load"
    VERIFY_NO_CONFLICT = "verify_no_conflict"
    MIGRATE = "migrate"
    ADVANCE_SEQUENCE = "advance_sequence"
    CLEANUP_STAGING = "cleanup_staging"
    DONE = "done"


class LeaderboardStrategy(str, enum.Enum):
    """Leaderboard refresh strategy."""

    FULL = "full"
    DELTA = "delta"
    MATERIALIZED = "materialized"
