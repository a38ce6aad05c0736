"""Local JSON-lines preview artifact written by dry runs instead of the real destination."""

import json
import logging
from pathlib import Path
from typing import Any, TextIO

from twap_ledger.shared.models.trades import ReconstructedTrade

logger = logging.getLogger(__name__)


def trade_preview_record(
    reconstructed: ReconstructedTrade, trade_id: int | None = None, **context: Any
) -> dict[str, Any]:
    record: dict[str, Any] = dict(context)
    if trade_id is not None:
        record["trade_id"] = trade_id
    record["trade"] = reconstructed.trade.model_dump(mode="json")
    record["participants"] = [
        p.model_dump(mode="json") for p in reconstructed.participants
    ]
    return record


class PreviewArtifact:
    """Append-only JSONL file, truncated when opened."""

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self.records_written = 0
        self._file: TextIO | None = None

    def __enter__(self) -> "PreviewArtifact":
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._file = open(self.path, "w", encoding="utf-8")
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if self._file is not None:
            self._file.close()
            self._file = None
        logger.info(f"📝 Preview written: {self.path} ({self.records_written} records)")

    def write(self, record: dict[str, Any]) -> None:
        if self._file is None:
            raise RuntimeError("PreviewArtifact is not open")
        self._file.write(json.dumps(record, default=str) + "\n")
        self.records_written += 1

    def day_sink(self, source: str, day_key: str) -> "PreviewDaySink":
        return PreviewDaySink(self, source, day_key)


class PreviewDaySink:
    """Stands in for DayCsvWriter during a dry run."""

    def __init__(self, artifact: PreviewArtifact, source: str, day_key: str):
        self.artifact = artifact
        self.source = source
        self.day_key = day_key
        self.trades_written = 0

    def __enter__(self) -> "PreviewDaySink":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        return None

    def write_trade(self, trade_id: int, reconstructed: ReconstructedTrade) -> int:
        self.artifact.write(
            trade_preview_record(
                reconstructed, trade_id, source=self.source, day=self.day_key
            )
        )
        self.trades_written += 1
        return len(reconstructed.participants)
