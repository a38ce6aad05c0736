"""Bulk-load CSV emitter.

Writes one trades file and one participants file per day partition in the
format PostgreSQL COPY expects with (FORMAT csv, NULL '\\N'):
- comma delimited, no header row
- NULL written as an unquoted \\N
- fields containing a comma, quote or line break are quoted, inner quotes doubled
- the empty string and a literal \\N are always quoted so they never read as NULL
"""

import enum
import logging
from pathlib import Path
from typing import Any, TextIO

from twap_ledger.shared.models.trades import ReconstructedTrade

logger = logging.getLogger(__name__)

NULL_TOKEN = "\\N"
_QUOTE_TRIGGERS = (",", '"', "\n", "\r")


def escape_csv_field(value: Any) -> str:
    """Render one value as a CSV field."""
    if value is None:
        return NULL_TOKEN
    if isinstance(value, enum.Enum):
        value = value.value

    text = str(value)
    if text == "" or text == NULL_TOKEN or any(c in text for c in _QUOTE_TRIGGERS):
        return '"' + text.replace('"', '""') + '"'
    return text


def format_csv_row(values: list[Any] | tuple[Any, ...]) -> str:
    return ",".join(escape_csv_field(v) for v in values) + "\n"


def trades_csv_name(day_key: str) -> str:
    return f"trades_{day_key}.csv"


def participants_csv_name(day_key: str) -> str:
    return f"trade_participants_{day_key}.csv"


class DayCsvWriter:
    """
    Writer for one day's CSV pair.

    Files are opened on the first written trade; a day that ends with no
    trades leaves no files behind.

    Usage:
        >>> with DayCsvWriter(day_dir, "20251006") as writer:
        ...     writer.write_trade(allocator.allocate(), trade)
    """

    def __init__(self, directory: Path, day_key: str):
        self.directory = Path(directory)
        self.day_key = day_key
        self.trades_path = self.directory / trades_csv_name(day_key)
        self.participants_path = self.directory / participants_csv_name(day_key)
        self.trades_written = 0
        self.participants_written = 0
        self._trades_file: TextIO | None = None
        self._participants_file: TextIO | None = None

    def __enter__(self) -> "DayCsvWriter":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is not None:
            self.discard()
        else:
            self.close()

    def _open(self) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        self._trades_file = open(self.trades_path, "w", encoding="utf-8", newline="")
        self._participants_file = open(
            self.participants_path, "w", encoding="utf-8", newline=""
        )

    def write_trade(self, trade_id: int, reconstructed: ReconstructedTrade) -> int:
        """
        Write a trade row and one row per participant.

        Returns:
            Number of participant rows written
        """
        if self._trades_file is None:
            self._open()

        trade = reconstructed.trade
        self._trades_file.write(
            format_csv_row(
                (
                    trade_id,
                    trade.coin,
                    trade.time,
                    trade.price,
                    trade.size,
                    trade.hash,
                    trade.trade_dir_override,
                )
            )
        )
        for p in reconstructed.participants:
            self._participants_file.write(
                format_csv_row(
                    (
                        trade_id,
                        p.user_address,
                        p.side,
                        p.start_pos,
                        p.order_id,
                        p.strategy_id,
                        p.client_order_id,
                    )
                )
            )

        self.trades_written += 1
        self.participants_written += len(reconstructed.participants)
        return len(reconstructed.participants)

    def _close_files(self) -> None:
        for f in (self._trades_file, self._participants_file):
            if f is not None:
                f.close()
        self._trades_file = None
        self._participants_file = None

    def _remove_files(self) -> None:
        self.trades_path.unlink(missing_ok=True)
        self.participants_path.unlink(missing_ok=True)

    def close(self) -> bool:
        """
        Flush the pair; remove it if the day produced no trades.

        Returns:
            True if the day has output files
        """
        self._close_files()
        if self.trades_written == 0:
            self._remove_files()
            return False
        return True

    def discard(self) -> None:
        """Drop a partially written pair."""
        self._close_files()
        self._remove_files()
        logger.warning(f"🗑️ Discarded partial CSVs for {self.day_key}")
