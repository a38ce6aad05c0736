"""Trade domain models.

Models for:
- TradeRecord: one matched fill between a buyer and a seller
- ParticipantRecord: one side of a trade
- ReconstructedTrade: a trade with its participants, as rebuilt from raw lines
- EmittedTrade: a reconstructed trade paired with its allocated id

All models use:
- Pydantic for strict validation
- DECIMAL prices, sizes and positions (never float)
- ISO-8601 text timestamps, passed through unchanged to storage
"""

from decimal import Decimal

from pydantic import BaseModel, Field

from twap_ledger.shared.models.enums import Side


class TradeRecord(BaseModel):
    """Trade fields shared by every participant.

    Stored in: trades
    """

    coin: str = Field(..., min_length=1, description="Asset symbol (e.g., BTC, @107)")
    time: str = Field(..., min_length=1, description="Execution time, ISO-8601 text")
    price: Decimal = Field(..., description="Fill price")
    size: Decimal = Field(..., description="Fill size in base asset")
    hash: str = Field(..., description="Transaction hash (not unique)")
    trade_dir_override: str | None = Field(
        None, description="Direction override tag, NULL when absent"
    )


class ParticipantRecord(BaseModel):
    """One side of a trade.

    Stored in: trade_participants
    """

    user_address: str = Field(..., min_length=1, description="Account address")
    side: Side = Field(..., description="B (buyer) or A (seller)")
    start_pos: Decimal = Field(..., description="Position before the fill")
    order_id: int = Field(..., description="Exchange order id (oid)")
    strategy_id: int | None = Field(
        None, description="TWAP strategy id, NULL for ordinary orders"
    )
    client_order_id: str | None = Field(None, description="Client order id (cloid)")


class ReconstructedTrade(BaseModel):
    """A trade with its participants, before id allocation."""

    trade: TradeRecord
    participants: list[ParticipantRecord] = Field(default_factory=list)
    source_tid: int | None = Field(
        None, description="Raw trade id that grouped fills (block layout only)"
    )

    @property
    def is_incomplete(self) -> bool:
        return len(self.participants) < 2


class EmittedTrade(BaseModel):
    """A reconstructed trade with its allocated trade id, as written to CSV."""

    trade_id: int = Field(..., ge=1)
    trade: TradeRecord
    participants: list[ParticipantRecord] = Field(default_factory=list)
