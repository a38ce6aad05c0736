"""Reader for the day CSV pairs written by DayCsvWriter.

Quote-aware so a quoted \\N or empty string is kept as text while an
unquoted \\N reads back as NULL, matching PostgreSQL COPY semantics.
"""

from collections.abc import Iterable, Iterator
from decimal import Decimal, InvalidOperation
from pathlib import Path

from pydantic import ValidationError

from twap_ledger.common.exceptions import CsvFormatError
from twap_ledger.shared.models.enums import Side
from twap_ledger.shared.models.trades import EmittedTrade, ParticipantRecord, TradeRecord
from twap_ledger.storage.csv.writer import NULL_TOKEN
from twap_ledger.storage.schemas.ddl import PARTICIPANT_COLUMNS, TRADE_COLUMNS


def _finish_field(chars: list[str], quoted: bool) -> str | None:
    text = "".join(chars)
    if not quoted and text == NULL_TOKEN:
        return None
    return text


def iter_csv_records(lines: Iterable[str]) -> Iterator[list[str | None]]:
    """
    Split CSV text into records.

    Args:
        lines: Lines as read from a file opened with newline=""

    Raises:
        CsvFormatError: On an unterminated quoted field
    """
    fields: list[str | None] = []
    chars: list[str] = []
    in_quotes = False
    quoted = False

    for line in lines:
        i = 0
        n = len(line)
        while i < n:
            ch = line[i]
            if in_quotes:
                if ch == '"':
                    if i + 1 < n and line[i + 1] == '"':
                        chars.append('"')
                        i += 2
                        continue
                    in_quotes = False
                else:
                    chars.append(ch)
            elif ch == '"':
                in_quotes = True
                quoted = True
            elif ch == ",":
                fields.append(_finish_field(chars, quoted))
                chars, quoted = [], False
            elif ch == "\n":
                fields.append(_finish_field(chars, quoted))
                yield fields
                fields, chars, quoted = [], [], False
            elif ch == "\r" and i + 1 < n and line[i + 1] == "\n":
                pass
            else:
                chars.append(ch)
            i += 1

    if in_quotes:
        raise CsvFormatError("Unterminated quoted field at end of file")
    if fields or chars or quoted:
        fields.append(_finish_field(chars, quoted))
        yield fields


def _optional_int(value: str | None) -> int | None:
    return None if value is None else int(value)


def _read_records(path: Path, arity: int) -> Iterator[list[str | None]]:
    with open(path, encoding="utf-8", newline="") as f:
        for row_number, record in enumerate(iter_csv_records(f), start=1):
            if len(record) != arity:
                raise CsvFormatError(
                    f"{path.name} row {row_number}: expected {arity} fields, "
                    f"got {len(record)}"
                )
            yield record


def read_trade_id_range(trades_path: Path) -> tuple[int, int] | None:
    """(min id, max id) of a trades CSV, or None when it has no rows."""
    ids = []
    try:
        for record in _read_records(Path(trades_path), len(TRADE_COLUMNS)):
            ids.append(int(record[0]))
    except (TypeError, ValueError) as e:
        raise CsvFormatError(f"Malformed trade id in {Path(trades_path).name}: {e}") from e
    if not ids:
        return None
    return min(ids), max(ids)


def read_day_csvs(trades_path: Path, participants_path: Path) -> list[EmittedTrade]:
    """
    Load a day's CSV pair back into emitted trades, in file order.

    Raises:
        CsvFormatError: On malformed rows or participants whose trade_id is
            not present in the trades file
    """
    trades: dict[int, EmittedTrade] = {}

    try:
        for record in _read_records(Path(trades_path), len(TRADE_COLUMNS)):
            trade_id, coin, time, price, size, tx_hash, direction = record
            emitted = EmittedTrade(
                trade_id=int(trade_id),
                trade=TradeRecord(
                    coin=coin,
                    time=time,
                    price=Decimal(price),
                    size=Decimal(size),
                    hash=tx_hash,
                    trade_dir_override=direction,
                ),
            )
            if emitted.trade_id in trades:
                raise CsvFormatError(f"Duplicate trade id {emitted.trade_id}")
            trades[emitted.trade_id] = emitted

        for record in _read_records(Path(participants_path), len(PARTICIPANT_COLUMNS)):
            trade_id, user, side, start_pos, order_id, strategy_id, cloid = record
            parent = trades.get(int(trade_id))
            if parent is None:
                raise CsvFormatError(f"Participant references unknown trade {trade_id}")
            parent.participants.append(
                ParticipantRecord(
                    user_address=user,
                    side=Side(side),
                    start_pos=Decimal(start_pos),
                    order_id=int(order_id),
                    strategy_id=_optional_int(strategy_id),
                    client_order_id=cloid,
                )
            )
    except (TypeError, ValueError, InvalidOperation, ValidationError) as e:
        raise CsvFormatError(f"Malformed CSV row: {e}") from e

    return list(trades.values())
