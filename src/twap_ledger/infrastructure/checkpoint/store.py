"""Tracking-file store for the last allocated trade id.

The file holds a single decimal integer. Writes go through a temp file and an
atomic rename so an interrupted write never leaves a truncated value behind.
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

from twap_ledger.common.exceptions import ConfigurationError
from twap_ledger.infrastructure.observability import get_infrastructure_logger

logger = logging.getLogger(__name__)


class IdTrackingFile:
    """Local file persisting the last trade id handed out by a run."""

    def __init__(self, path: str | Path = ".last_trade_id") -> None:
        self.path = Path(path)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def exists(self) -> bool:
        return self.path.exists()

    def read(self) -> int | None:
        """Return the stored id, or None when absent or unreadable."""
        if not self.path.exists():
            return None

        raw = self.path.read_text(encoding="utf-8").strip()
        try:
            value = int(raw)
        except ValueError:
            logger.warning(f"⚠️ Ignoring invalid tracking file {self.path}: {raw!r}")
            return None

        if value < 1:
            logger.warning(f"⚠️ Ignoring non-positive id in {self.path}: {value}")
            return None
        return value

    def write(self, last_id: int) -> None:
        """Persist last_id atomically."""
        if last_id < 1:
            raise ConfigurationError(f"Refusing to persist invalid trade id {last_id}")

        directory = self.path.parent if str(self.path.parent) else Path(".")
        directory.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.path.name}.", suffix=".tmp", dir=directory
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(f"{last_id}\n")
            os.replace(tmp_name, self.path)
        except OSError:
            Path(tmp_name).unlink(missing_ok=True)
            raise

        logger.info(f"💾 Saved last trade id {last_id} to {self.path}")
        get_infrastructure_logger("tracking-file", path=str(self.path)).info(
            "checkpoint_written", last_id=last_id
        )
