"""
Day partition discovery under <base>/<source>/hourly/<YYYYMMDD>/.
"""

import logging
from pathlib import Path

from twap_ledger.common.exceptions import ConfigurationError
from twap_ledger.common.utils.date_utils import is_day_key
from twap_ledger.ingestion.ports.generation import DayPartition
from twap_ledger.shared.models.enums import SourceFormat

logger = logging.getLogger(__name__)

HOURLY_DIR = "hourly"

# Generated output and still-compressed archives are not hour files
_NON_HOUR_SUFFIXES = frozenset({".csv", ".lz4", ".tmp"})


def source_hourly_dir(base_dir: str | Path, source: SourceFormat) -> Path:
    return Path(base_dir) / source.value / HOURLY_DIR


def _hour_sort_key(path: Path) -> tuple[int, int, str]:
    # Hour files are named 0..23; order them numerically
    if path.name.isdigit():
        return (0, int(path.name), path.name)
    return (1, 0, path.name)


def is_hour_file(path: Path) -> bool:
    return (
        path.is_file()
        and not path.name.startswith(".")
        and path.suffix not in _NON_HOUR_SUFFIXES
    )


def discover_day_partitions(
    hourly_dir: Path,
    source: SourceFormat,
    start_date: str | None = None,
) -> list[DayPartition]:
    """
    List day partitions in ascending day order.

    Args:
        hourly_dir: Directory holding YYYYMMDD subdirectories
        source: Raw layout of the files inside
        start_date: Optional inclusive lower bound (YYYYMMDD)

    Raises:
        ConfigurationError: If hourly_dir does not exist
    """
    if not hourly_dir.is_dir():
        raise ConfigurationError(
            f"Directory not found: {hourly_dir}",
            remediation="download node data first (twap-download)",
        )

    day_dirs = sorted(
        (d for d in hourly_dir.iterdir() if d.is_dir() and is_day_key(d.name)),
        key=lambda d: d.name,
    )
    if start_date:
        day_dirs = [d for d in day_dirs if d.name >= start_date]

    partitions = [
        DayPartition(
            source=source,
            day_key=d.name,
            directory=d,
            hour_files=sorted(
                (f for f in d.iterdir() if is_hour_file(f)), key=_hour_sort_key
            ),
        )
        for d in day_dirs
    ]
    logger.info(
        f"📂 Found {len(partitions)} day directories in {hourly_dir}"
        + (f" (from {start_date})" if start_date else "")
    )
    return partitions
