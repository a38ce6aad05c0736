"""Parallel lz4 frame decompression of downloaded hour archives."""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path

import lz4.frame

logger = logging.getLogger(__name__)

LZ4_SUFFIX = ".lz4"


@dataclass
class DecompressStats:
    decompressed: int = 0
    failed: list[tuple[Path, str]] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return not self.failed


def decompress_bytes(data: bytes) -> bytes:
    return lz4.frame.decompress(data)


def decompress_file(path: Path) -> Path:
    """
    Decompress <name>.lz4 to <name> and remove the archive.

    Output goes to <name>.tmp and is renamed once complete.
    """
    target = path.with_suffix("")
    partial = target.with_name(target.name + ".tmp")
    try:
        with lz4.frame.open(path, mode="rb") as src, open(partial, "wb") as dst:
            while chunk := src.read(1 << 20):
                dst.write(chunk)
        partial.replace(target)
    except Exception:
        partial.unlink(missing_ok=True)
        raise
    path.unlink()
    return target


def find_archives(root: str | Path) -> list[Path]:
    return sorted(p for p in Path(root).rglob(f"*{LZ4_SUFFIX}") if p.is_file())


def decompress_all(paths: list[Path], workers: int = 8) -> DecompressStats:
    """
    Decompress archives on a thread pool.

    A failed file is recorded and does not stop the others.
    """
    stats = DecompressStats()
    if not paths:
        return stats

    logger.info(f"🗜️ Decompressing {len(paths)} archives with {workers} workers")
    with ThreadPoolExecutor(max_workers=workers) as pool:
        futures = {pool.submit(decompress_file, path): path for path in paths}
        for future in as_completed(futures):
            path = futures[future]
            try:
                future.result()
                stats.decompressed += 1
            except (OSError, EOFError, RuntimeError) as e:
                stats.failed.append((path, str(e)))
                logger.error(f"❌ Failed to decompress {path}: {e}")

    logger.info(
        f"✅ Decompressed {stats.decompressed}/{len(paths)} archives"
        + (f", {len(stats.failed)} failed" if stats.failed else "")
    )
    return stats
