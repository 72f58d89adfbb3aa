# =============================================================================
# File: viewsync/user_account/cascade.py
# Description: Batched cascade deletion of a deleted user's dependent data
# =============================================================================
# Branches (each independent; a failing batch aborts only its own branch):
#
#   chatrooms   user_chatrooms/{id}/chatrooms
#               + chatrooms/{key}/messages when the counterpart is gone too
#   favorites   user_favorites/{id}/favorites
#   offers      user_offers/{id}/offers
#               + reviews/{offer_id}/reviews_of_offer per offer
#   presence    presence/{id}
#
# Blob cleanup (profile picture, offer images) runs after all branches.
# A partially deleted user is not retried; re-running the cascade is the
# only recovery and is safe because every step deletes what is left.
# =============================================================================

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, List, Optional

from viewsync.chat.value_objects import relationship_members
from viewsync.common.base.base_storage_provider import BaseStorageProvider
from viewsync.common.collections import (
    PRESENCE,
    messages_collection,
    offer_reviews_collection,
    user_chatrooms_collection,
    user_favorites_collection,
    user_offers_collection,
    user_path,
)
from viewsync.common.exceptions.exceptions import CascadeBatchError, StorageError
from viewsync.config.logging_config import get_logger
from viewsync.config.projection_config import ProjectionConfig, get_projection_config
from viewsync.infra.metrics.projection_metrics import (
    cascade_blob_deletions_total,
    cascade_branch_failures_total,
    cascade_documents_deleted_total,
)
from viewsync.ports.document_store_port import DocumentSnapshot, DocumentStorePort
from viewsync.user_account.read_models import OwnedOffer, UserProfile
from viewsync.utils.document_paths import join_path

log = get_logger("viewsync.user_account.cascade")

BatchCallback = Callable[[List[DocumentSnapshot]], Awaitable[None]]


@dataclass
class CascadeReport:
    """What one cascade run removed and where it stopped."""
    user_id: str
    deleted: Dict[str, int] = field(default_factory=dict)
    failed_branches: Dict[str, str] = field(default_factory=dict)
    shared_histories_deleted: List[str] = field(default_factory=list)
    shared_histories_kept: List[str] = field(default_factory=list)
    blobs_deleted: List[str] = field(default_factory=list)
    blobs_failed: List[str] = field(default_factory=list)

    @property
    def total_deleted(self) -> int:
        return sum(self.deleted.values())

    @property
    def complete(self) -> bool:
        return not self.failed_branches and not self.blobs_failed

    def count(self, branch: str, documents: int) -> None:
        self.deleted[branch] = self.deleted.get(branch, 0) + documents
        cascade_documents_deleted_total.labels(branch=branch).inc(documents)


class CascadeDeleter:
    """
    Removes everything scoped to a deleted user.

    Collections are deleted in batches of `cascade_batch_size` documents;
    the loop yields to the event loop between batches so a large fan-out
    does not starve other handlers.
    """

    def __init__(
            self,
            store: DocumentStorePort,
            storage: Optional[BaseStorageProvider] = None,
            config: Optional[ProjectionConfig] = None,
    ):
        self.store = store
        self.storage = storage
        self.config = config or get_projection_config()

    async def delete_collection(self, collection: str, on_batch: Optional[BatchCallback] = None) -> int:
        """
        Delete every document of `collection`, one batch at a time.

        `on_batch` sees each batch before it is deleted, so dependent data
        can be removed while its parent documents still exist.

        Raises:
            CascadeBatchError: a query, callback or delete failed; documents
                deleted by earlier batches stay deleted
        """
        batch_size = self.config.cascade_batch_size
        deleted = 0

        while True:
            try:
                batch = await self.store.query(collection, limit=batch_size)
                if not batch:
                    break
                if on_batch is not None:
                    await on_batch(batch)
                deleted += await self.store.delete_batch([snapshot.path for snapshot in batch])
            except CascadeBatchError:
                raise
            except Exception as e:
                raise CascadeBatchError(collection, deleted, e) from e

            log.debug(f"Deleted batch of {len(batch)} from {collection} ({deleted} so far)")
            if len(batch) < batch_size:
                break
            await asyncio.sleep(0)

        return deleted

    async def delete_user_data(self, user_id: str, profile: Optional[UserProfile] = None) -> CascadeReport:
        """
        Run all branches for `user_id`, then clean up its blobs.

        Never raises; failures are logged and recorded in the report.
        """
        report = CascadeReport(user_id=user_id)
        image_paths: List[str] = []

        log.info(f"Cascade deletion started for user {user_id}")

        await asyncio.gather(
            self._run_branch(report, "chatrooms", self._delete_chat_summaries(report, user_id)),
            self._run_branch(report, "favorites", self._delete_favorites(report, user_id)),
            self._run_branch(report, "offers", self._delete_offers(report, user_id, image_paths)),
            self._run_branch(report, "presence", self._delete_presence(report, user_id)),
        )

        blob_paths = list(image_paths)
        if profile is not None and profile.user_pic_path:
            blob_paths.insert(0, profile.user_pic_path)
        await self._delete_blobs(report, blob_paths)

        log.info(
            f"Cascade deletion finished for user {user_id}: {report.total_deleted} documents, "
            f"{len(report.blobs_deleted)} blobs, failed branches: {list(report.failed_branches) or 'none'}"
        )
        return report

    # =========================================================================
    # Branches
    # =========================================================================

    async def _run_branch(self, report: CascadeReport, branch: str, work: Awaitable[None]) -> None:
        try:
            await work
        except Exception as e:
            log.error(f"Cascade branch '{branch}' of user {report.user_id} aborted: {e}", exc_info=True)
            report.failed_branches[branch] = str(e)
            cascade_branch_failures_total.labels(branch=branch).inc()

    async def _delete_favorites(self, report: CascadeReport, user_id: str) -> None:
        report.count("favorites", await self.delete_collection(user_favorites_collection(user_id)))

    async def _delete_chat_summaries(self, report: CascadeReport, user_id: str) -> None:
        async def drop_orphaned_histories(batch: List[DocumentSnapshot]) -> None:
            for summary in batch:
                key = summary.id
                counterpart_id = summary.data.get("counterpart_id") or _other_member(key, user_id)
                counterpart = await self.store.get(user_path(counterpart_id))
                if counterpart.exists:
                    report.shared_histories_kept.append(key)
                    continue
                report.count("messages", await self.delete_collection(messages_collection(key)))
                report.shared_histories_deleted.append(key)

        report.count("chatrooms", await self.delete_collection(
            user_chatrooms_collection(user_id), on_batch=drop_orphaned_histories,
        ))

    async def _delete_offers(self, report: CascadeReport, user_id: str, image_paths: List[str]) -> None:
        async def drop_reviews(batch: List[DocumentSnapshot]) -> None:
            for offer in batch:
                image_paths.extend(OwnedOffer.model_validate(offer.data).image_paths)
                report.count("reviews", await self.delete_collection(offer_reviews_collection(offer.id)))

        report.count("offers", await self.delete_collection(user_offers_collection(user_id), on_batch=drop_reviews))

    async def _delete_presence(self, report: CascadeReport, user_id: str) -> None:
        report.count("presence", await self.store.delete_batch([join_path(PRESENCE, user_id)]))

    # =========================================================================
    # Blobs
    # =========================================================================

    async def _delete_blobs(self, report: CascadeReport, paths: List[str]) -> None:
        if not paths:
            return
        if self.storage is None:
            log.warning(f"No storage provider, {len(paths)} blobs of user {report.user_id} left in place")
            return

        for path in paths:
            try:
                deleted = await self.storage.delete_file(path)
            except StorageError as e:
                log.warning(f"Blob {path} of user {report.user_id} not deleted: {e}")
                deleted = False
            except Exception as e:
                log.error(f"Blob deletion failed for {path}: {e}", exc_info=True)
                deleted = False

            if deleted:
                report.blobs_deleted.append(path)
                cascade_blob_deletions_total.labels(outcome="deleted").inc()
            else:
                report.blobs_failed.append(path)
                cascade_blob_deletions_total.labels(outcome="failed").inc()


def _other_member(key: str, user_id: str) -> str:
    first, second = relationship_members(key)
    return second if first == user_id else first
