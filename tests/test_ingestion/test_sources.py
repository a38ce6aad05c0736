"""
Tests for the node data archive client and lz4 decompression.

The boto3 client is a MagicMock; archives are real lz4 frames.
"""

import io
from unittest.mock import MagicMock

import lz4.frame
import pytest
from botocore.exceptions import ClientError

from twap_ledger.common.exceptions import ArchiveDownloadError
from twap_ledger.ingestion.sources import (
    NodeDataArchive,
    day_prefix,
    decompress_all,
    decompress_file,
    find_archives,
)
from twap_ledger.shared.models.enums import SourceFormat

TRADES = SourceFormat.NODE_TRADES


def client_error(operation: str) -> ClientError:
    return ClientError({"Error": {"Code": "AccessDenied", "Message": "denied"}}, operation)


@pytest.fixture
def s3_client():
    client = MagicMock()
    client.get_paginator.return_value.paginate.return_value = [
        {
            "Contents": [
                {"Key": "node_trades/hourly/20250101/", "Size": 0},
                {"Key": "node_trades/hourly/20250101/0.lz4", "Size": 4},
                {"Key": "node_trades/hourly/20250101/1.lz4", "Size": 6},
            ]
        },
        {},
    ]
    return client


@pytest.fixture
def archive(s3_client):
    return NodeDataArchive(bucket="test-bucket", client=s3_client)


# ============================================================================
# ARCHIVE CLIENT
# ============================================================================


class TestNodeDataArchive:
    def test_day_prefix(self):
        assert day_prefix(TRADES, "20250101") == "node_trades/hourly/20250101/"

    def test_list_objects_skips_directories(self, archive, s3_client):
        objects = archive.list_objects("node_trades/hourly/20250101/")

        assert [o.key for o in objects] == [
            "node_trades/hourly/20250101/0.lz4",
            "node_trades/hourly/20250101/1.lz4",
        ]
        s3_client.get_paginator.return_value.paginate.assert_called_once_with(
            Bucket="test-bucket",
            Prefix="node_trades/hourly/20250101/",
            RequestPayer="requester",
        )

    def test_list_failure(self, archive, s3_client):
        s3_client.get_paginator.return_value.paginate.side_effect = client_error("ListObjectsV2")

        with pytest.raises(ArchiveDownloadError) as exc_info:
            archive.list_objects("x/")
        assert "AWS_ACCESS_KEY_ID" in exc_info.value.remediation

    def test_read_lines_decompresses_lz4(self, archive, s3_client):
        s3_client.get_object.return_value = {"Body": io.BytesIO(lz4.frame.compress(b"a\nb\n"))}

        assert archive.read_lines("twap-data/20250101.lz4") == [b"a", b"b"]
        assert s3_client.get_object.call_args.kwargs["RequestPayer"] == "requester"

    def test_read_lines_plain(self, archive, s3_client):
        s3_client.get_object.return_value = {"Body": io.BytesIO(b"plain\n")}
        assert archive.read_lines("twap-data/20250101.json") == [b"plain"]

    def test_read_lines_keeps_invalid_utf8(self, archive, s3_client):
        s3_client.get_object.return_value = {"Body": io.BytesIO(b"ok\n\xff\xfe\nok\n")}
        assert archive.read_lines("twap-data/20250101.json") == [b"ok", b"\xff\xfe", b"ok"]

    def test_read_failure(self, archive, s3_client):
        s3_client.get_object.side_effect = client_error("GetObject")
        with pytest.raises(ArchiveDownloadError):
            archive.read_lines("missing")

    def test_download_day(self, archive, s3_client, tmp_path):
        day_dir = tmp_path / "node_trades" / "hourly" / "20250101"
        day_dir.mkdir(parents=True)
        (day_dir / "0.lz4").write_bytes(b"done")  # same size as the object

        paths = archive.download_day(TRADES, "20250101", tmp_path)

        assert [p.name for p in paths] == ["0.lz4", "1.lz4"]
        s3_client.download_file.assert_called_once_with(
            "test-bucket",
            "node_trades/hourly/20250101/1.lz4",
            str(day_dir / "1.lz4"),
            ExtraArgs={"RequestPayer": "requester"},
        )

    def test_download_day_without_objects(self, archive, s3_client, tmp_path):
        s3_client.get_paginator.return_value.paginate.return_value = [{}]

        assert archive.download_day(TRADES, "20250101", tmp_path) == []
        assert not (tmp_path / "node_trades").exists()

    def test_download_failure(self, archive, s3_client, tmp_path):
        s3_client.download_file.side_effect = client_error("GetObject")
        with pytest.raises(ArchiveDownloadError):
            archive.download_day(TRADES, "20250101", tmp_path)


# ============================================================================
# DECOMPRESSION
# ============================================================================


def write_archive(path, content: bytes):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(lz4.frame.compress(content))
    return path


class TestDecompress:
    def test_decompress_file_replaces_archive(self, tmp_path):
        archive_path = write_archive(tmp_path / "0.lz4", b'{"coin": "BTC"}\n')

        target = decompress_file(archive_path)

        assert target == tmp_path / "0"
        assert target.read_bytes() == b'{"coin": "BTC"}\n'
        assert not archive_path.exists()

    def test_corrupt_archive_leaves_no_output(self, tmp_path):
        archive_path = tmp_path / "3.lz4"
        archive_path.write_bytes(b"not an lz4 frame")

        with pytest.raises(RuntimeError):
            decompress_file(archive_path)

        assert archive_path.exists()
        assert not (tmp_path / "3").exists()
        assert not (tmp_path / "3.tmp").exists()

    def test_find_archives(self, tmp_path):
        write_archive(tmp_path / "node_trades" / "hourly" / "20250102" / "0.lz4", b"x")
        write_archive(tmp_path / "node_trades" / "hourly" / "20250101" / "5.lz4", b"x")
        (tmp_path / "notes.txt").write_text("x")

        found = find_archives(tmp_path)

        assert [p.parent.name + "/" + p.name for p in found] == ["20250101/5.lz4", "20250102/0.lz4"]

    def test_decompress_all_records_failures(self, tmp_path):
        good = [write_archive(tmp_path / f"{hour}.lz4", b"line\n") for hour in range(3)]
        bad = tmp_path / "9.lz4"
        bad.write_bytes(b"this is not an lz4 frame at all")

        stats = decompress_all(good + [bad], workers=2)

        assert stats.decompressed == 3
        assert [path for path, _ in stats.failed] == [bad]
        assert not stats.succeeded
        assert sorted(p.name for p in tmp_path.iterdir()) == ["0", "1", "2", "9.lz4"]

    def test_decompress_all_empty(self):
        stats = decompress_all([])
        assert stats.decompressed == 0
        assert stats.succeeded
