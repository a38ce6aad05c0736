"""Discovery of generated day CSV pairs across source directories."""

import logging
from dataclasses import dataclass
from pathlib import Path

from twap_ledger.common.exceptions import ScanError
from twap_ledger.common.utils.date_utils import is_day_key
from twap_ledger.shared.models.enums import SourceFormat
from twap_ledger.storage.csv.writer import participants_csv_name, trades_csv_name

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CsvPair:
    """A day's trades and participants files from one source."""

    source: SourceFormat
    day_key: str
    trades_path: Path
    participants_path: Path


def find_csv_pairs(base_dir: str | Path, source: SourceFormat) -> list[CsvPair]:
    """Complete pairs under <base>/<source>/hourly/<YYYYMMDD>/, in day order."""
    hourly_dir = Path(base_dir) / source.value / "hourly"
    if not hourly_dir.is_dir():
        logger.warning(f"⚠️ Source directory not found: {hourly_dir}")
        return []

    pairs = []
    for day_dir in sorted(hourly_dir.iterdir(), key=lambda d: d.name):
        if not day_dir.is_dir() or not is_day_key(day_dir.name):
            continue
        trades_path = day_dir / trades_csv_name(day_dir.name)
        participants_path = day_dir / participants_csv_name(day_dir.name)
        if trades_path.is_file() and participants_path.is_file():
            pairs.append(CsvPair(source, day_dir.name, trades_path, participants_path))
        elif trades_path.is_file() or participants_path.is_file():
            logger.warning(f"⚠️ Incomplete CSV pair in {day_dir}, skipping")
    return pairs


def scan_csv_pairs(
    base_dir: str | Path,
    sources: list[SourceFormat],
    start_date: str | None = None,
) -> list[CsvPair]:
    """
    Collect CSV pairs from every source, sorted by day.

    The sort is stable, so within one day pairs keep the order of sources.

    Raises:
        ScanError: If nothing is found, or nothing remains after start_date
    """
    pairs: list[CsvPair] = []
    for source in sources:
        found = find_csv_pairs(base_dir, source)
        logger.info(f"📂 {source.value}: {len(found)} CSV pairs")
        pairs.extend(found)

    pairs.sort(key=lambda p: p.day_key)

    if not pairs:
        raise ScanError(
            f"No CSV pairs found under {base_dir}",
            remediation="generate CSVs first (twap-generate)",
        )

    if start_date:
        available = f"{pairs[0].day_key} to {pairs[-1].day_key}"
        pairs = [p for p in pairs if p.day_key >= start_date]
        if not pairs:
            raise ScanError(
                f"No CSV pairs on or after {start_date} (available: {available})"
            )
        logger.info(f"📅 Filtered to {len(pairs)} pairs from {start_date}")

    return pairs
