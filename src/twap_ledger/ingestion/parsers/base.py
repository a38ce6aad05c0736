"""
Record parser base class.

Both raw layouts share one downstream pipeline: parse -> TWAP filter ->
incomplete-trade policy -> (allocate, emit). Subclasses only implement
parse_line().
"""

import json
import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable, Iterator
from decimal import Decimal
from typing import Any

from twap_ledger.common.exceptions import IncompleteTradeError, RecordParseError
from twap_ledger.ingestion.filters import is_twap_trade
from twap_ledger.ingestion.ports.generation import GenerationStats
from twap_ledger.shared.models.enums import IncompleteTradePolicy, Side, SourceFormat
from twap_ledger.shared.models.trades import ReconstructedTrade

logger = logging.getLogger(__name__)

# Direction override values that mean "no override"
_NULL_DIRECTIONS = frozenset({"", "Na"})


def side_from_position(index: int) -> Side:
    """
    Map a side_info array position to a side.

    The node_trades layout encodes sides positionally: index 0 is always the
    buyer and index 1 always the seller.

    Raises:
        ValueError: For any other position
    """
    if index == 0:
        return Side.BUY
    if index == 1:
        return Side.SELL
    raise ValueError(f"side_info position {index} has no side")


def normalize_direction(value: Any) -> str | None:
    if value is None or value in _NULL_DIRECTIONS:
        return None
    return str(value)


class RecordParser(ABC):
    """Strategy interface for one raw record layout."""

    source: SourceFormat

    def __init__(
        self, incomplete_policy: IncompleteTradePolicy = IncompleteTradePolicy.ACCEPT
    ):
        self.incomplete_policy = incomplete_policy

    @abstractmethod
    def parse_line(self, raw: str) -> list[ReconstructedTrade]:
        """Parse one raw line into reconstructed trades (unfiltered).

        Raises:
            RecordParseError: On malformed JSON or missing required fields
        """

    def iter_eligible(
        self, lines: Iterable[str | bytes], stats: GenerationStats
    ) -> Iterator[ReconstructedTrade]:
        """
        Yield TWAP-eligible trades from raw lines.

        Lines may be text or raw bytes; bytes are decoded as UTF-8 one line
        at a time. Malformed or undecodable lines are counted as errors and
        skipped, non-TWAP trades as skipped. Neither aborts the stream.
        """
        for line_number, raw in enumerate(lines, start=1):
            if not raw.strip():
                continue
            stats.lines_read += 1

            if isinstance(raw, bytes):
                try:
                    raw = raw.decode("utf-8")
                except UnicodeDecodeError as e:
                    stats.record_error(f"line {line_number}: invalid UTF-8 at byte {e.start}")
                    continue

            try:
                trades = self.parse_line(raw)
            except RecordParseError as e:
                stats.record_error(f"line {line_number}: {e}")
                continue

            for trade in trades:
                if not is_twap_trade(trade):
                    stats.trades_skipped += 1
                    continue

                try:
                    if not self._admit(trade, stats):
                        continue
                except IncompleteTradeError as e:
                    stats.record_error(f"line {line_number}: {e}")
                    continue

                yield trade

    def _admit(self, trade: ReconstructedTrade, stats: GenerationStats) -> bool:
        """Apply the incomplete-trade policy to an eligible trade."""
        if not trade.is_incomplete:
            return True

        stats.incomplete_trades += 1
        if self.incomplete_policy == IncompleteTradePolicy.SKIP:
            return False
        if self.incomplete_policy == IncompleteTradePolicy.REJECT:
            raise IncompleteTradeError(
                f"Trade {trade.source_tid} has {len(trade.participants)} participant(s)",
                tid=trade.source_tid,
                participant_count=len(trade.participants),
            )
        return True

    @staticmethod
    def _load_json(raw: str) -> dict[str, Any]:
        """Decode a JSON object line, keeping decimals exact."""
        try:
            data = json.loads(raw, parse_float=Decimal)
        except json.JSONDecodeError as e:
            raise RecordParseError(f"Invalid JSON: {e.msg}") from e

        if not isinstance(data, dict):
            raise RecordParseError(f"Expected JSON object, got {type(data).__name__}")
        return data
