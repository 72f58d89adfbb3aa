# =============================================================================
# File: viewsync/rating/queries.py
# Description: Recomputation queries over the reviews collection
# =============================================================================

from __future__ import annotations

from typing import List, Union

from viewsync.common.collections import offer_reviews_collection
from viewsync.ports.document_store_port import DocumentStorePort, TransactionPort
from viewsync.rating.read_models import Review


async def load_review_set(
        reader: Union[DocumentStorePort, TransactionPort],
        offer_id: str,
) -> List[Review]:
    """
    All reviews of an offer, newest first (document id breaks ties).

    Ordered after parsing: stored created_at strings come from clients and
    need not share one ISO format, so their string order is not time order.
    """
    snapshots = await reader.query(offer_reviews_collection(offer_id))
    reviews = [Review.model_validate({**snap.data, "review_id": snap.id}) for snap in snapshots]
    reviews.sort(key=lambda review: (review.created_at, review.review_id), reverse=True)
    return reviews
