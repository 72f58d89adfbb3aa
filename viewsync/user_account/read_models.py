# =============================================================================
# File: viewsync/user_account/read_models.py
# Description: User account read models
# =============================================================================

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from viewsync.rating.read_models import OfferRating
from viewsync.utils.datetime_utils import UtcDatetime


class UserProfile(BaseModel):
    """User document (users/{user_id}). Root entity of the cascade."""
    name: Optional[str] = None
    username: Optional[str] = None
    user_pic_url: Optional[str] = None
    user_pic_path: Optional[str] = None  # blob path of the profile picture
    fcm_token: Optional[str] = None
    last_seen_at: Optional[UtcDatetime] = None
    offer_rating_list: List[OfferRating] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")

    @property
    def display_name(self) -> str:
        """Username when set, otherwise the real name."""
        if self.username:
            return self.username
        return self.name or ""


def display_fields_changed(old: UserProfile, new: UserProfile) -> bool:
    """Only display name and picture are copied into chat summaries."""
    return old.display_name != new.display_name or old.user_pic_url != new.user_pic_url


class OwnedOffer(BaseModel):
    """Offer owned by a user (user_offers/{user_id}/offers/{offer_id}); only cascade-relevant fields."""
    image_paths: List[str] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")
