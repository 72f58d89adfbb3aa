# =============================================================================
# File: viewsync/rating/read_models.py
# Description: Rating domain read models
# =============================================================================

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from viewsync.utils.datetime_utils import UtcDatetime


class Review(BaseModel):
    """Review of an offer (reviews/{offer_id}/reviews_of_offer/{review_id}). Ground truth."""
    review_id: Optional[str] = None  # filled from the document path, not stored
    author_id: str
    provider_user_id: str
    offer_id: str
    rating: float = Field(ge=0)
    text: str = ""
    created_at: UtcDatetime

    model_config = ConfigDict(extra="ignore")


class OfferRating(BaseModel):
    """
    One entry of users/{provider}.offer_rating_list.

    Always rebuilt from the full review set of the offer, never adjusted
    incrementally.
    """
    offer_id: str
    average_rating: float
    review_count: int
    latest_review_id: Optional[str] = None
    latest_review_text: Optional[str] = None
    latest_review_rating: Optional[float] = None
    latest_review_author_id: Optional[str] = None
    latest_review_at: Optional[UtcDatetime] = None

    model_config = ConfigDict(extra="ignore")
