# =============================================================================
# File: viewsync/infra/storage/minio_provider.py
# Description: MinIO/S3 storage provider (profile and offer images)
# =============================================================================

from __future__ import annotations

from contextlib import AsyncExitStack
from typing import Any, Optional

import aioboto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from viewsync.common.base.base_storage_provider import BaseStorageProvider
from viewsync.common.exceptions.exceptions import StorageError
from viewsync.config.logging_config import get_logger
from viewsync.config.reliability_config import ReliabilityConfigs
from viewsync.config.storage_config import StorageConfig, get_storage_config
from viewsync.infra.reliability.retry import retry_async

log = get_logger("viewsync.infra.storage.minio")


def _is_transient(error: Exception) -> bool:
    """Client errors other than throttling/5xx are final."""
    if isinstance(error, ClientError):
        code = error.response.get("Error", {}).get("Code", "")
        status = error.response.get("ResponseMetadata", {}).get("HTTPStatusCode", 0)
        return code in ("SlowDown", "RequestTimeout", "Throttling") or status >= 500
    return True


class MinIOStorageProvider(BaseStorageProvider):
    """
    MinIO/S3 storage provider.

    Works with both MinIO (development) and AWS S3 (production) through
    aioboto3. Retries with exponential backoff come from the reliability
    package; botocore's own retries are disabled.
    """

    def __init__(self, config: Optional[StorageConfig] = None):
        self.config = config or get_storage_config()
        self.session = aioboto3.Session()

        self._boto_config = BotoConfig(
            signature_version="s3v4",
            connect_timeout=self.config.connect_timeout,
            read_timeout=self.config.read_timeout,
            max_pool_connections=self.config.max_pool_connections,
            retries={"max_attempts": 0},
        )
        self._retry_config = ReliabilityConfigs.storage_retry().model_copy(
            update={"retry_condition": _is_transient}
        )

        # Persistent client (lazy initialized)
        self._client: Optional[Any] = None
        self._exit_stack: Optional[AsyncExitStack] = None

    async def _get_client(self) -> Any:
        """Get or create persistent S3 client (connection reuse)"""
        if self._client is None:
            self._exit_stack = AsyncExitStack()
            self._client = await self._exit_stack.enter_async_context(
                self.session.client(
                    service_name="s3",
                    endpoint_url=self.config.endpoint_url,
                    aws_access_key_id=self.config.get_access_key(),
                    aws_secret_access_key=self.config.get_secret_key(),
                    region_name=self.config.region,
                    config=self._boto_config,
                )
            )
            log.info("MinIO S3 client initialized (persistent connection)")
        return self._client

    async def close(self) -> None:
        """Close the persistent client connection"""
        if self._exit_stack is not None:
            await self._exit_stack.aclose()
            self._client = None
            self._exit_stack = None
            log.info("MinIO S3 client closed")

    async def delete_file(self, path: str) -> bool:
        key = self.normalize_path(path)
        if not key:
            log.warning("Empty blob path, nothing to delete")
            return False

        async def _do_delete():
            s3 = await self._get_client()
            await s3.delete_object(Bucket=self.config.bucket_name, Key=key)

        try:
            await retry_async(_do_delete, retry_config=self._retry_config, context="storage.delete_file")
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Failed to delete blob {key}: {e}") from e

        log.info(f"Blob deleted: {key}")
        return True
