"""
Hyperliquid node data archive (requester-pays S3 bucket).

Objects are laid out as <source>/hourly/<YYYYMMDD>/<hour>.lz4 and mirrored
locally under <base_dir>/<source>/hourly/<YYYYMMDD>/.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from twap_ledger.common.exceptions import ArchiveDownloadError
from twap_ledger.config.state import S3Config
from twap_ledger.ingestion.sources.decompress import decompress_bytes
from twap_ledger.shared.models.enums import SourceFormat

logger = logging.getLogger(__name__)

# Required on every call against a requester-pays bucket
REQUEST_PAYER = "requester"


@dataclass
class ArchiveObject:
    key: str
    size: int


def day_prefix(source: SourceFormat, day_key: str) -> str:
    return f"{source.value}/hourly/{day_key}/"


class NodeDataArchive:
    """Thin boto3 wrapper for listing and fetching archive objects."""

    def __init__(
        self,
        bucket: str = "hl-mainnet-node-data",
        region: str = "ap-northeast-1",
        access_key_id: str | None = None,
        secret_access_key: str | None = None,
        client: Any | None = None,
    ) -> None:
        self.bucket = bucket
        self.s3 = client or boto3.client(
            "s3",
            region_name=region,
            aws_access_key_id=access_key_id,
            aws_secret_access_key=secret_access_key,
        )

    @classmethod
    def from_config(cls, config: S3Config) -> "NodeDataArchive":
        return cls(
            bucket=config.bucket,
            region=config.region,
            access_key_id=config.access_key_id,
            secret_access_key=config.secret_access_key,
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def list_objects(self, prefix: str) -> list[ArchiveObject]:
        """Every object under prefix, following pagination."""
        objects = []
        try:
            paginator = self.s3.get_paginator("list_objects_v2")
            for page in paginator.paginate(
                Bucket=self.bucket, Prefix=prefix, RequestPayer=REQUEST_PAYER
            ):
                for obj in page.get("Contents", []):
                    if obj["Key"].endswith("/"):
                        continue
                    objects.append(ArchiveObject(key=obj["Key"], size=obj.get("Size", 0)))
        except (ClientError, BotoCoreError) as e:
            raise ArchiveDownloadError(
                f"Listing s3://{self.bucket}/{prefix} failed: {e}",
                remediation="check AWS_ACCESS_KEY_ID / AWS_SECRET_ACCESS_KEY",
            ) from e

        logger.debug(f"📂 s3://{self.bucket}/{prefix}: {len(objects)} objects")
        return objects

    def read_object(self, key: str) -> bytes:
        try:
            resp = self.s3.get_object(
                Bucket=self.bucket, Key=key, RequestPayer=REQUEST_PAYER
            )
            return resp["Body"].read()
        except (ClientError, BotoCoreError) as e:
            raise ArchiveDownloadError(f"Reading s3://{self.bucket}/{key} failed: {e}") from e

    def read_lines(self, key: str) -> list[bytes]:
        """Object body split into raw lines, lz4-decompressed when the key ends in .lz4.

        Lines are left undecoded; the parser decodes them one at a time.
        """
        data = self.read_object(key)
        if key.endswith(".lz4"):
            data = decompress_bytes(data)
        return data.splitlines()

    def download_day(
        self, source: SourceFormat, day_key: str, base_dir: str | Path
    ) -> list[Path]:
        """
        Mirror one day's hour archives into the local hourly tree.

        Files already present with the same size are not downloaded again.

        Returns:
            Local paths of every archive of the day
        """
        prefix = day_prefix(source, day_key)
        target_dir = Path(base_dir) / source.value / "hourly" / day_key
        objects = self.list_objects(prefix)
        if not objects:
            logger.warning(f"⚠️ No archives for {source.value}/{day_key}")
            return []

        target_dir.mkdir(parents=True, exist_ok=True)
        paths = []
        for obj in objects:
            local_path = target_dir / Path(obj.key).name
            paths.append(local_path)
            if local_path.exists() and local_path.stat().st_size == obj.size:
                continue
            try:
                self.s3.download_file(
                    self.bucket,
                    obj.key,
                    str(local_path),
                    ExtraArgs={"RequestPayer": REQUEST_PAYER},
                )
            except (ClientError, BotoCoreError) as e:
                raise ArchiveDownloadError(
                    f"Downloading s3://{self.bucket}/{obj.key} failed: {e}"
                ) from e

        logger.info(f"💾 {source.value}/{day_key}: {len(paths)} archives")
        return paths
