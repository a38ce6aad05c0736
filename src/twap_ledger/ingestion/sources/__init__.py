"""Raw node data sources: the S3 archive and local decompression."""

from twap_ledger.ingestion.sources.decompress import (
    DecompressStats,
    decompress_all,
    decompress_bytes,
    decompress_file,
    find_archives,
)
from twap_ledger.ingestion.sources.s3_archive import (
    ArchiveObject,
    NodeDataArchive,
    day_prefix,
)

__all__ = [
    "ArchiveObject",
    "DecompressStats",
    "NodeDataArchive",
    "day_prefix",
    "decompress_all",
    "decompress_bytes",
    "decompress_file",
    "find_archives",
]
