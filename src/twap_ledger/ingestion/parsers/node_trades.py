"""
Parser for the node_trades layout: one JSON trade per line.

    {"coin": "BTC", "side": "B", "time": "2025-03-22T10:00:00.123",
     "px": "85000.0", "sz": "0.01", "hash": "0x...",
     "trade_dir_override": "Na",
     "side_info": [
        {"user": "0xbuyer", "start_pos": "0.0", "oid": 1, "twap_id": 42, "cloid": null},
        {"user": "0xseller", "start_pos": "1.5", "oid": 2, "twap_id": null, "cloid": "0xabc"}
     ]}
"""

from pydantic import ValidationError

from twap_ledger.common.exceptions import RecordParseError
from twap_ledger.ingestion.parsers.base import (
    RecordParser,
    normalize_direction,
    side_from_position,
)
from twap_ledger.shared.models.enums import SourceFormat
from twap_ledger.shared.models.trades import (
    ParticipantRecord,
    ReconstructedTrade,
    TradeRecord,
)


class NodeTradesParser(RecordParser):
    """Event-per-line layout; sides come from side_info positions."""

    source = SourceFormat.NODE_TRADES

    def parse_line(self, raw: str) -> list[ReconstructedTrade]:
        data = self._load_json(raw)
        side_info = data.get("side_info") or []

        try:
            trade = TradeRecord(
                coin=data["coin"],
                time=data["time"],
                price=data["px"],
                size=data["sz"],
                hash=data["hash"],
                trade_dir_override=normalize_direction(data.get("trade_dir_override")),
            )
            participants = [
                ParticipantRecord(
                    user_address=info["user"],
                    side=side_from_position(index),
                    start_pos=info["start_pos"],
                    order_id=info["oid"],
                    strategy_id=info.get("twap_id"),
                    client_order_id=info.get("cloid") or None,
                )
                for index, info in enumerate(side_info)
            ]
        except KeyError as e:
            raise RecordParseError(f"Missing field {e}") from e
        except (TypeError, ValueError, ValidationError) as e:
            raise RecordParseError(f"Invalid trade record: {e}") from e

        return [ReconstructedTrade(trade=trade, participants=participants)]
