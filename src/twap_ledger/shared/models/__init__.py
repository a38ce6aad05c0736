"""Shared domain models."""

from twap_ledger.shared.models.enums import (
    ImportPhase,
    IncompleteTradePolicy,
    LeaderboardStrategy,
    Side,
    SourceFormat,
)
from twap_ledger.shared.models.trades import (
    EmittedTrade,
    ParticipantRecord,
    ReconstructedTrade,
    TradeRecord,
)

__all__ = [
    "EmittedTrade",
    "ImportPhase",
    "IncompleteTradePolicy",
    "LeaderboardStrategy",
    "ParticipantRecord",
    "ReconstructedTrade",
    "Side",
    "SourceFormat",
    "TradeRecord",
]
