"""
Tests for the raw record parsers and the TWAP filter.

Covers both layouts:
- node_trades: positional sides (index 0 buyer, index 1 seller)
- node_fills_by_block: fills regrouped into trades by tid
"""

from decimal import Decimal

import pytest

from tests.fixtures import (
    create_fill_event,
    create_fills_block_line,
    create_node_trade_line,
    create_reconstructed_trade,
)
from twap_ledger.common.exceptions import RecordParseError
from twap_ledger.ingestion.filters import has_twap_id, is_twap_trade
from twap_ledger.ingestion.parsers import (
    NodeFillsByBlockParser,
    NodeTradesParser,
    get_parser,
    side_from_position,
)
from twap_ledger.ingestion.parsers.base import normalize_direction
from twap_ledger.ingestion.ports.generation import GenerationStats
from twap_ledger.shared.models.enums import IncompleteTradePolicy, Side, SourceFormat

# ============================================================================
# HELPERS
# ============================================================================


class TestSideFromPosition:
    def test_first_position_is_buyer(self):
        assert side_from_position(0) == Side.BUY

    def test_second_position_is_seller(self):
        assert side_from_position(1) == Side.SELL

    @pytest.mark.parametrize("index", [-1, 2, 5])
    def test_other_positions_raise(self, index):
        with pytest.raises(ValueError):
            side_from_position(index)


class TestNormalizeDirection:
    @pytest.mark.parametrize("value", [None, "", "Na"])
    def test_absent_values_become_null(self, value):
        assert normalize_direction(value) is None

    def test_real_value_kept(self):
        assert normalize_direction("Open Long") == "Open Long"


# ============================================================================
# TWAP FILTER
# ============================================================================


class TestTwapFilter:
    def test_no_strategy_ids_is_not_twap(self):
        trade = create_reconstructed_trade(strategy_id=None)
        assert not has_twap_id(trade.participants)
        assert not is_twap_trade(trade)

    def test_one_strategy_id_is_twap(self):
        assert is_twap_trade(create_reconstructed_trade(strategy_id=5))

    def test_both_strategy_ids_is_twap(self):
        trade = create_reconstructed_trade(strategy_id=5)
        trade.participants[1].strategy_id = 6
        assert is_twap_trade(trade)

    def test_zero_is_a_valid_strategy_id(self):
        assert is_twap_trade(create_reconstructed_trade(strategy_id=0))

    def test_no_participants_is_not_twap(self):
        assert not is_twap_trade(create_reconstructed_trade(participants=0))


# ============================================================================
# NODE TRADES LAYOUT
# ============================================================================


class TestNodeTradesParser:
    @pytest.fixture
    def parser(self):
        return NodeTradesParser()

    def test_parses_trade_fields(self, parser, twap_trade_line):
        [trade] = parser.parse_line(twap_trade_line)

        assert trade.trade.coin == "BTC"
        assert trade.trade.time == "2025-03-22T10:00:00.123"
        assert trade.trade.price == Decimal("85000.5")
        assert trade.trade.size == Decimal("0.01")
        assert trade.trade.hash == "0xabc"
        assert trade.trade.trade_dir_override is None
        assert trade.source_tid is None

    def test_sides_are_positional(self, parser):
        # Record-level "side" says B, but positions decide
        [trade] = parser.parse_line(create_node_trade_line(buyer="0xfirst", seller="0xsecond"))

        buyer, seller = trade.participants
        assert (buyer.user_address, buyer.side) == ("0xfirst", Side.BUY)
        assert (seller.user_address, seller.side) == ("0xsecond", Side.SELL)

    def test_participant_fields(self, parser, twap_trade_line):
        [trade] = parser.parse_line(twap_trade_line)
        buyer, seller = trade.participants

        assert buyer.strategy_id == 42
        assert buyer.client_order_id is None
        assert buyer.order_id == 101
        assert seller.strategy_id is None
        assert seller.client_order_id == "0xc1"
        assert seller.start_pos == Decimal("1.5")

    def test_address_case_is_preserved(self, parser, twap_trade_line):
        [trade] = parser.parse_line(twap_trade_line)
        assert trade.participants[0].user_address == "0xBuyer"

    def test_direction_override_kept(self, parser):
        [trade] = parser.parse_line(create_node_trade_line(trade_dir_override="Long"))
        assert trade.trade.trade_dir_override == "Long"

    def test_invalid_json_raises(self, parser):
        with pytest.raises(RecordParseError):
            parser.parse_line("{not json")

    def test_non_object_raises(self, parser):
        with pytest.raises(RecordParseError):
            parser.parse_line("[1, 2]")

    def test_missing_field_raises(self, parser):
        with pytest.raises(RecordParseError, match="Missing field"):
            parser.parse_line('{"coin": "BTC", "side_info": []}')

    def test_third_side_info_entry_raises(self, parser):
        line = (
            '{"coin": "BTC", "time": "t", "px": "1", "sz": "1", "hash": "0x",'
            ' "side_info": ['
            '{"user": "a", "start_pos": "0", "oid": 1, "twap_id": 1},'
            '{"user": "b", "start_pos": "0", "oid": 2, "twap_id": null},'
            '{"user": "c", "start_pos": "0", "oid": 3, "twap_id": null}]}'
        )
        with pytest.raises(RecordParseError):
            parser.parse_line(line)


class TestNodeTradesEligibility:
    def test_filters_and_counts(self, twap_trade_line, plain_trade_line):
        parser = NodeTradesParser()
        stats = GenerationStats()
        lines = [twap_trade_line, "", plain_trade_line, "{broken", twap_trade_line]

        eligible = list(parser.iter_eligible(lines, stats))

        assert len(eligible) == 2
        assert stats.lines_read == 4
        assert stats.trades_skipped == 1
        assert stats.errors == 1
        assert stats.error_samples[0].startswith("line 4:")

    def test_empty_side_info_is_skipped(self):
        parser = NodeTradesParser()
        stats = GenerationStats()
        line = '{"coin": "BTC", "time": "t", "px": "1", "sz": "1", "hash": "0x", "side_info": []}'

        assert list(parser.iter_eligible([line], stats)) == []
        assert stats.trades_skipped == 1
        assert stats.errors == 0


# ============================================================================
# NODE FILLS BY BLOCK LAYOUT
# ============================================================================


class TestNodeFillsByBlockParser:
    @pytest.fixture
    def parser(self):
        return NodeFillsByBlockParser()

    def test_groups_fills_by_tid(self, parser, fills_block_3_plus_1):
        trades = parser.parse_line(fills_block_3_plus_1)

        assert [t.source_tid for t in trades] == [77, 78]
        assert [len(t.participants) for t in trades] == [3, 1]
        assert [p.user_address for p in trades[0].participants] == ["0xa", "0xb", "0xc"]
        assert trades[1].is_incomplete

    def test_sides_come_from_fills(self, parser, fills_block_3_plus_1):
        trade = parser.parse_line(fills_block_3_plus_1)[0]
        assert [p.side for p in trade.participants] == [Side.BUY, Side.SELL, Side.SELL]

    def test_trade_fields_from_first_fill(self, parser, fills_block_3_plus_1):
        trade = parser.parse_line(fills_block_3_plus_1)[0].trade

        assert trade.coin == "ETH"
        assert trade.time == "2025-03-22T10:00:00.123Z"
        assert trade.price == Decimal("2000.25")
        assert trade.size == Decimal("1.5")
        assert trade.hash == "0xhash77"
        assert trade.trade_dir_override == "Open Long"

    def test_fill_fields(self, parser, fills_block_3_plus_1):
        first = parser.parse_line(fills_block_3_plus_1)[0].participants[0]
        assert first.strategy_id == 9
        assert first.order_id == 1
        assert first.client_order_id is None
        assert first.start_pos == Decimal("0.0")

    def test_events_without_tid_are_ignored(self, parser):
        line = create_fills_block_line(
            [create_fill_event("0xa", None, twap_id=1), create_fill_event("0xb", 5, twap_id=1)]
        )
        assert [t.source_tid for t in parser.parse_line(line)] == [5]

    def test_tid_zero_is_ignored(self, parser):
        line = create_fills_block_line(
            [
                create_fill_event("0xa", 0, side="B", twap_id=1),
                create_fill_event("0xb", 0, side="A"),
                create_fill_event("0xc", 6, twap_id=2),
            ]
        )
        assert [t.source_tid for t in parser.parse_line(line)] == [6]

    def test_empty_block(self, parser):
        assert parser.parse_line(create_fills_block_line([])) == []

    def test_missing_events_raises(self, parser):
        with pytest.raises(RecordParseError):
            parser.parse_line('{"block_number": 1}')

    def test_malformed_event_raises(self, parser):
        with pytest.raises(RecordParseError):
            parser.parse_line(create_fills_block_line([["0xa"]]))

    def test_unknown_side_raises(self, parser):
        line = create_fills_block_line([create_fill_event("0xa", 1, side="X", twap_id=1)])
        with pytest.raises(RecordParseError):
            parser.parse_line(line)


class TestIncompleteTradePolicy:
    """The 3+1 block yields one complete and one single-participant TWAP trade."""

    def test_accept_emits_both(self, fills_block_3_plus_1):
        stats = GenerationStats()
        parser = NodeFillsByBlockParser(IncompleteTradePolicy.ACCEPT)

        trades = list(parser.iter_eligible([fills_block_3_plus_1], stats))

        assert len(trades) == 2
        assert stats.incomplete_trades == 1
        assert stats.errors == 0

    def test_skip_drops_incomplete(self, fills_block_3_plus_1):
        stats = GenerationStats()
        parser = NodeFillsByBlockParser(IncompleteTradePolicy.SKIP)

        trades = list(parser.iter_eligible([fills_block_3_plus_1], stats))

        assert [t.source_tid for t in trades] == [77]
        assert stats.incomplete_trades == 1
        assert stats.errors == 0

    def test_reject_counts_an_error(self, fills_block_3_plus_1):
        stats = GenerationStats()
        parser = NodeFillsByBlockParser(IncompleteTradePolicy.REJECT)

        trades = list(parser.iter_eligible([fills_block_3_plus_1], stats))

        assert [t.source_tid for t in trades] == [77]
        assert stats.errors == 1
        assert "78" in stats.error_samples[0]


class TestGetParser:
    def test_by_enum(self):
        assert isinstance(get_parser(SourceFormat.NODE_TRADES), NodeTradesParser)

    def test_by_directory_name(self):
        parser = get_parser("node_fills_by_block", IncompleteTradePolicy.SKIP)
        assert isinstance(parser, NodeFillsByBlockParser)
        assert parser.incomplete_policy == IncompleteTradePolicy.SKIP

    def test_unknown_source(self):
        with pytest.raises(ValueError):
            get_parser("node_orders")
