# =============================================================================
# File: viewsync/common/base/base_storage_provider.py
# Description: Abstract base class for blob storage providers
# =============================================================================

from __future__ import annotations

from abc import ABC, abstractmethod


class BaseStorageProvider(ABC):
    """
    Abstract base class for blob storage providers.

    Blobs are addressed by their object path inside the configured bucket
    (e.g. "user_pics/u1.jpg"), the same value stored in user and offer
    documents.

    Implementations:
        - MinIOStorageProvider (MinIO/S3)
    """

    @abstractmethod
    async def delete_file(self, path: str) -> bool:
        """
        Delete a blob.

        Args:
            path: Object path inside the bucket

        Returns:
            True if deleted (or already absent), False if the path is empty

        Raises:
            StorageError: the storage backend rejected or failed the delete
        """
        pass

    @staticmethod
    def normalize_path(path: str) -> str:
        """'/user_pics/u1.jpg' -> 'user_pics/u1.jpg'"""
        return path.strip().lstrip("/")
