# =============================================================================
# File: tests/test_storage_provider.py
# =============================================================================

import pytest
from botocore.exceptions import ClientError

from viewsync.common.exceptions.exceptions import StorageError
from viewsync.config.storage_config import StorageConfig
from viewsync.infra.storage.minio_provider import MinIOStorageProvider


class StubS3Client:
    """Stands in for the aioboto3 S3 client; fails with the queued errors first."""

    def __init__(self, *errors: Exception):
        self.errors = list(errors)
        self.deleted = []

    async def delete_object(self, Bucket: str, Key: str) -> None:
        if self.errors:
            raise self.errors.pop(0)
        self.deleted.append((Bucket, Key))


def client_error(code: str, status: int) -> ClientError:
    return ClientError(
        {"Error": {"Code": code, "Message": code}, "ResponseMetadata": {"HTTPStatusCode": status}},
        "DeleteObject",
    )


def make_provider(client: StubS3Client) -> MinIOStorageProvider:
    provider = MinIOStorageProvider(StorageConfig(bucket_name="blobs"))
    provider._client = client
    return provider


async def test_delete_file_removes_normalized_key():
    client = StubS3Client()

    assert await make_provider(client).delete_file("/user_pics/alice.jpg")
    assert client.deleted == [("blobs", "user_pics/alice.jpg")]


async def test_empty_path_is_not_deleted():
    client = StubS3Client()

    assert not await make_provider(client).delete_file("  ")
    assert client.deleted == []


async def test_rejected_delete_raises_storage_error():
    client = StubS3Client(client_error("AccessDenied", 403))

    with pytest.raises(StorageError):
        await make_provider(client).delete_file("user_pics/alice.jpg")
    assert client.deleted == []


async def test_throttled_delete_is_retried():
    client = StubS3Client(client_error("SlowDown", 503))

    assert await make_provider(client).delete_file("user_pics/alice.jpg")
    assert client.deleted == [("blobs", "user_pics/alice.jpg")]
