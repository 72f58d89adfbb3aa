# =============================================================================
# File: viewsync/rating/aggregate.py
# Description: Rebuild of a provider's offer rating list from a review set
# =============================================================================

from __future__ import annotations

from typing import List, Optional, Sequence

from viewsync.rating.read_models import OfferRating, Review


def find_rating_index(ratings: Sequence[OfferRating], offer_id: str) -> Optional[int]:
    """Index of the entry for `offer_id`, or None. Lists are short; linear scan."""
    for index, entry in enumerate(ratings):
        if entry.offer_id == offer_id:
            return index
    return None


def build_offer_rating(offer_id: str, reviews: Sequence[Review]) -> OfferRating:
    """
    Aggregate entry for a non-empty review set ordered newest first.

    average_rating and review_count come from a full pass over the set; the
    latest_review_* snippet is taken from reviews[0].
    """
    if not reviews:
        raise ValueError(f"Cannot build rating for offer {offer_id} without reviews")

    count = len(reviews)
    latest = reviews[0]
    return OfferRating(
        offer_id=offer_id,
        average_rating=sum(review.rating for review in reviews) / count,
        review_count=count,
        latest_review_id=latest.review_id,
        latest_review_text=latest.text,
        latest_review_rating=latest.rating,
        latest_review_author_id=latest.author_id,
        latest_review_at=latest.created_at,
    )


def rebuild_rating_list(
        current: Sequence[OfferRating],
        reviews: Sequence[Review],
        offer_id: str,
) -> List[OfferRating]:
    """
    New rating list with the entry for `offer_id` recomputed from `reviews`.

    - empty review set: the entry is removed (no-op if absent)
    - otherwise: the entry is replaced in place, or appended when new

    Entries for other offers are returned untouched and in their order.
    The input sequence is not modified.
    """
    ratings = list(current)
    index = find_rating_index(ratings, offer_id)

    if not reviews:
        if index is not None:
            del ratings[index]
        return ratings

    entry = build_offer_rating(offer_id, reviews)
    if index is None:
        ratings.append(entry)
    else:
        ratings[index] = entry
    return ratings
