# =============================================================================
# File: tests/fakes/fake_storage_provider.py
# Description: Fake blob storage for unit testing
# Pattern: Ports & Adapters - Fake/Stub adapter
# =============================================================================

from __future__ import annotations

from typing import List, Set

from viewsync.common.base.base_storage_provider import BaseStorageProvider
from viewsync.common.exceptions.exceptions import StorageError


class FakeStorageProvider(BaseStorageProvider):
    """
    In-memory blob storage.

    Usage:
        storage = FakeStorageProvider(blobs={"user_pics/alice.jpg"})
        storage.configure_failure("offers/o1/1.jpg")
    """

    def __init__(self, blobs: Set[str] = None):
        self.blobs: Set[str] = set(blobs or ())
        self.deleted: List[str] = []
        self._failing_paths: Set[str] = set()
        self._raising_paths: Set[str] = set()

    def configure_failure(self, path: str, raise_error: bool = False) -> None:
        """Deleting `path` returns False, or raises when raise_error is set."""
        if raise_error:
            self._raising_paths.add(self.normalize_path(path))
        else:
            self._failing_paths.add(self.normalize_path(path))

    async def delete_file(self, path: str) -> bool:
        key = self.normalize_path(path)
        if key in self._raising_paths:
            raise StorageError(f"storage unavailable for {key}")
        if key in self._failing_paths:
            return False
        self.blobs.discard(key)
        self.deleted.append(key)
        return True
