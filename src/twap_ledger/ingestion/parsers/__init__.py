"""Raw record parsers, selected by source directory name."""

from twap_ledger.ingestion.parsers.base import RecordParser, side_from_position
from twap_ledger.ingestion.parsers.node_fills_by_block import NodeFillsByBlockParser
from twap_ledger.ingestion.parsers.node_trades import NodeTradesParser
from twap_ledger.shared.models.enums import IncompleteTradePolicy, SourceFormat

PARSERS: dict[SourceFormat, type[RecordParser]] = {
    SourceFormat.NODE_TRADES: NodeTradesParser,
    SourceFormat.NODE_FILLS_BY_BLOCK: NodeFillsByBlockParser,
}


def get_parser(
    source: SourceFormat | str,
    incomplete_policy: IncompleteTradePolicy = IncompleteTradePolicy.ACCEPT,
) -> RecordParser:
    """
    Build the parser for a source directory.

    Raises:
        ValueError: If source is not a known layout
    """
    source_format = SourceFormat(source)
    return PARSERS[source_format](incomplete_policy=incomplete_policy)


__all__ = [
    "NodeFillsByBlockParser",
    "NodeTradesParser",
    "PARSERS",
    "RecordParser",
    "get_parser",
    "side_from_position",
]
