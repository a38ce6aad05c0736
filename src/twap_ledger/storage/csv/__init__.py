"""Day-partitioned CSV pairs for bulk COPY loading."""

from .pairs import CsvPair, find_csv_pairs, scan_csv_pairs
from .reader import iter_csv_records, read_day_csvs, read_trade_id_range
from .writer import (
    NULL_TOKEN,
    DayCsvWriter,
    escape_csv_field,
    format_csv_row,
    participants_csv_name,
    trades_csv_name,
)

__all__ = [
    "NULL_TOKEN",
    "CsvPair",
    "DayCsvWriter",
    "escape_csv_field",
    "find_csv_pairs",
    "format_csv_row",
    "iter_csv_records",
    "participants_csv_name",
    "read_day_csvs",
    "read_trade_id_range",
    "scan_csv_pairs",
    "trades_csv_name",
]
