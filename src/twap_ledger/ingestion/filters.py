"""TWAP eligibility filter."""

from collections.abc import Iterable

from twap_ledger.shared.models.trades import ParticipantRecord, ReconstructedTrade


def has_twap_id(participants: Iterable[ParticipantRecord]) -> bool:
    """True if at least one participant carries a strategy (TWAP) id."""
    return any(p.strategy_id is not None for p in participants)


def is_twap_trade(trade: ReconstructedTrade) -> bool:
    return has_twap_id(trade.participants)
