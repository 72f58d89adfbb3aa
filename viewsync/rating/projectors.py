# =============================================================================
# File: viewsync/rating/projectors.py
# Description: Offer rating projection - rebuilds users/{provider}.offer_rating_list
# =============================================================================

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional

from viewsync.common.collections import REVIEW_DOCUMENT, user_path
from viewsync.config.logging_config import get_logger
from viewsync.infra.event_processor.document_event import DocumentEvent
from viewsync.infra.event_processor.trigger_decorators import document_trigger
from viewsync.infra.metrics.projection_metrics import offer_rating_rebuilds_total
from viewsync.ports.document_store_port import DocumentStorePort, TransactionPort
from viewsync.rating.aggregate import rebuild_rating_list
from viewsync.rating.queries import load_review_set
from viewsync.user_account.read_models import UserProfile

log = get_logger("viewsync.rating.projectors")


class RatingRebuildOutcome(str, Enum):
    REBUILT = "rebuilt"
    UNCHANGED = "unchanged"
    IGNORED = "ignored"
    PROVIDER_MISSING = "provider_missing"
    FAILED = "failed"


def review_changed(before: Optional[Dict[str, Any]], after: Optional[Dict[str, Any]]) -> bool:
    """Created, deleted, or text/rating edited. Other edits leave the aggregate as is."""
    if before is None or after is None:
        return before is not after
    return before.get("text") != after.get("text") or before.get("rating") != after.get("rating")


class OfferRatingProjector:
    """
    Keeps the provider's offer_rating_list entry of one offer equal to a
    full scan of the offer's reviews.

    The provider record and the review set are read in the same transaction
    that writes the list back, so two reviews written concurrently for
    offers of the same provider serialize through conflict retries and
    neither is lost.
    """

    def __init__(self, store: DocumentStorePort):
        self.store = store
        log.info("OfferRatingProjector initialized")

    @document_trigger(REVIEW_DOCUMENT, description="Review created, updated or deleted")
    async def on_review_document_written(self, event: DocumentEvent) -> None:
        await self.on_review_written(event.params["offer_id"], event.before, event.after)

    async def on_review_written(
            self,
            offer_id: str,
            before: Optional[Dict[str, Any]],
            after: Optional[Dict[str, Any]],
    ) -> RatingRebuildOutcome:
        if not review_changed(before, after):
            log.debug(f"Review write for offer {offer_id} does not affect ratings, ignored")
            offer_rating_rebuilds_total.labels(outcome=RatingRebuildOutcome.IGNORED.value).inc()
            return RatingRebuildOutcome.IGNORED

        review = after if after is not None else before
        provider_id = review.get("provider_user_id")
        if not provider_id:
            log.warning(f"Review of offer {offer_id} has no provider_user_id, ignored")
            offer_rating_rebuilds_total.labels(outcome=RatingRebuildOutcome.IGNORED.value).inc()
            return RatingRebuildOutcome.IGNORED

        try:
            outcome = await self.rebuild_offer_rating(provider_id, offer_id)
        except Exception as e:
            log.error(f"Rating rebuild failed for offer {offer_id} (provider {provider_id}): {e}", exc_info=True)
            outcome = RatingRebuildOutcome.FAILED

        offer_rating_rebuilds_total.labels(outcome=outcome.value).inc()
        return outcome

    async def rebuild_offer_rating(self, provider_id: str, offer_id: str) -> RatingRebuildOutcome:
        """Recompute one entry of the provider's list from the current review set."""
        path = user_path(provider_id)

        async def body(tx: TransactionPort) -> RatingRebuildOutcome:
            provider = await tx.get(path)
            if not provider.exists:
                return RatingRebuildOutcome.PROVIDER_MISSING

            reviews = await load_review_set(tx, offer_id)
            current = UserProfile.model_validate(provider.data).offer_rating_list
            rebuilt = rebuild_rating_list(current, reviews, offer_id)
            if rebuilt == current:
                return RatingRebuildOutcome.UNCHANGED

            tx.update(path, {"offer_rating_list": [entry.model_dump(mode="json") for entry in rebuilt]})
            return RatingRebuildOutcome.REBUILT

        outcome = await self.store.run_transaction(body, context=f"offer rating {offer_id}")
        if outcome is RatingRebuildOutcome.PROVIDER_MISSING:
            log.warning(f"Provider {provider_id} of offer {offer_id} not found, rating not updated")
        else:
            log.info(f"Offer rating {offer_id} of provider {provider_id}: {outcome.value}")
        return outcome
