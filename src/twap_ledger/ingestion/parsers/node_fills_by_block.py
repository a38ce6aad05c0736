"""
Parser for the node_fills_by_block layout: one JSON block per line.

    {"local_time": "...", "block_time": "...", "block_number": 123,
     "events": [
        ["0xbuyer", {"coin": "BTC", "px": "85000.0", "sz": "0.01", "side": "B",
                     "time": 1742637600123, "startPosition": "0.0",
                     "dir": "Open Long", "hash": "0x...", "oid": 1,
                     "tid": 77, "twapId": 42, "cloid": null, ...}],
        ["0xseller", {..., "side": "A", "tid": 77, ...}]
     ]}

Each fill is one participant; fills sharing a tid form one trade.
"""

from typing import Any

from pydantic import ValidationError

from twap_ledger.common.exceptions import RecordParseError
from twap_ledger.common.utils.date_utils import from_unix_ms, to_iso_ms
from twap_ledger.ingestion.parsers.base import RecordParser, normalize_direction
from twap_ledger.shared.models.enums import Side, SourceFormat
from twap_ledger.shared.models.trades import (
    ParticipantRecord,
    ReconstructedTrade,
    TradeRecord,
)


class NodeFillsByBlockParser(RecordParser):
    """Block-of-fills layout; fills are regrouped into trades by tid."""

    source = SourceFormat.NODE_FILLS_BY_BLOCK

    def parse_line(self, raw: str) -> list[ReconstructedTrade]:
        data = self._load_json(raw)
        events = data.get("events")
        if not isinstance(events, list):
            raise RecordParseError("Block has no events list")

        groups = self._group_by_tid(events)

        try:
            return [self._build_trade(tid, fills) for tid, fills in groups.items()]
        except KeyError as e:
            raise RecordParseError(f"Missing field {e}") from e
        except (TypeError, ValueError, OverflowError, ValidationError) as e:
            raise RecordParseError(f"Invalid fill: {e}") from e

    @staticmethod
    def _group_by_tid(events: list[Any]) -> dict[int, list[tuple[str, dict[str, Any]]]]:
        """Group (user, fill) pairs by tid, keeping first-seen order."""
        groups: dict[int, list[tuple[str, dict[str, Any]]]] = {}
        for event in events:
            if not isinstance(event, (list, tuple)) or len(event) < 2:
                raise RecordParseError("Event is not a [user, fill] pair")
            user, fill = event[0], event[1]
            if not isinstance(fill, dict):
                raise RecordParseError("Fill is not an object")

            # A zero or missing tid is not a trade id
            tid = fill.get("tid")
            if not tid or not user:
                continue
            groups.setdefault(tid, []).append((user, fill))
        return groups

    @staticmethod
    def _build_trade(
        tid: int, fills: list[tuple[str, dict[str, Any]]]
    ) -> ReconstructedTrade:
        # Trade-level fields are identical across a tid group; take the first
        first = fills[0][1]
        trade = TradeRecord(
            coin=first["coin"],
            time=to_iso_ms(from_unix_ms(first["time"])),
            price=first["px"],
            size=first["sz"],
            hash=first["hash"],
            trade_dir_override=normalize_direction(first.get("dir")),
        )
        participants = [
            ParticipantRecord(
                user_address=user,
                side=Side(fill["side"]),
                start_pos=fill["startPosition"],
                order_id=fill["oid"],
                strategy_id=fill.get("twapId"),
                client_order_id=fill.get("cloid") or None,
            )
            for user, fill in fills
        ]
        return ReconstructedTrade(trade=trade, participants=participants, source_tid=tid)
