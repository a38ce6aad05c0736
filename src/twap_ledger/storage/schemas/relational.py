"""Relational read models for staging verification and the leaderboard.

All models use Pydantic for validation; volumes are DECIMAL.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field


class StagingSummary(BaseModel):
    """Row counts and id range of the staging tables."""

    trade_count: int = Field(0, ge=0)
    participant_count: int = Field(0, ge=0)
    min_id: int | None = Field(None, description="Smallest staged trade id")
    max_id: int | None = Field(None, description="Largest staged trade id")

    @property
    def is_empty(self) -> bool:
        return self.trade_count == 0


class StagingIntegrityReport(BaseModel):
    """Malformed-row checks run against staging before migration."""

    null_ids: int = Field(0, ge=0)
    duplicate_ids: int = Field(0, ge=0)
    incomplete_trade_rows: int = Field(
        0, ge=0, description="Trade rows with a NULL required column"
    )
    incomplete_participant_rows: int = Field(
        0, ge=0, description="Participant rows with a NULL required column"
    )
    orphan_participants: int = Field(
        0, ge=0, description="Participants whose trade_id is not staged"
    )
    trades_without_participants: int = Field(0, ge=0)

    @property
    def problems(self) -> dict[str, int]:
        return {name: count for name, count in self.model_dump().items() if count}

    @property
    def is_clean(self) -> bool:
        return not self.problems


class LeaderboardEntry(BaseModel):
    """One ranked user.

    Stored in: leaderboard_stats
    """

    user_address: str = Field(..., description="Lowercased account address")
    total_volume: Decimal = Field(..., description="SUM(price * size) over TWAP fills")
    total_trades: int = Field(..., ge=0, description="Distinct trades")
    unique_strategies: int = Field(..., ge=0, description="Distinct TWAP ids")
    rank: int = Field(..., ge=1)
    last_updated: datetime
