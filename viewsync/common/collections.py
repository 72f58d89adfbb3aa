# =============================================================================
# File: viewsync/common/collections.py
# Description: Document layout of ground truth and derived views
# =============================================================================
#
#   users/{user_id}                                          UserProfile
#   presence/{user_id}                                       presence status
#   chatrooms/{relationship_key}/messages/{message_id}       ChatMessage
#   user_chatrooms/{user_id}/chatrooms/{relationship_key}    ChatSummary
#   reviews/{offer_id}/reviews_of_offer/{review_id}          Review
#   user_favorites/{user_id}/favorites/{favorite_id}         favorite
#   user_offers/{user_id}/offers/{offer_id}                  offer
# =============================================================================

from viewsync.utils.document_paths import join_path

USERS = "users"
PRESENCE = "presence"
CHATROOMS = "chatrooms"
MESSAGES = "messages"
USER_CHATROOMS = "user_chatrooms"
USER_CHATROOMS_SUB = "chatrooms"
REVIEWS = "reviews"
REVIEWS_OF_OFFER = "reviews_of_offer"
USER_FAVORITES = "user_favorites"
FAVORITES = "favorites"
USER_OFFERS = "user_offers"
OFFERS = "offers"

# Path templates for trigger registration
MESSAGE_DOCUMENT = f"{CHATROOMS}/{{relationship_key}}/{MESSAGES}/{{message_id}}"
USER_DOCUMENT = f"{USERS}/{{user_id}}"
PRESENCE_DOCUMENT = f"{PRESENCE}/{{user_id}}"
REVIEW_DOCUMENT = f"{REVIEWS}/{{offer_id}}/{REVIEWS_OF_OFFER}/{{review_id}}"


def user_path(user_id: str) -> str:
    return join_path(USERS, user_id)


def messages_collection(relationship_key: str) -> str:
    return join_path(CHATROOMS, relationship_key, MESSAGES)


def user_chatrooms_collection(user_id: str) -> str:
    return join_path(USER_CHATROOMS, user_id, USER_CHATROOMS_SUB)


def chat_summary_path(user_id: str, relationship_key: str) -> str:
    return join_path(USER_CHATROOMS, user_id, USER_CHATROOMS_SUB, relationship_key)


def offer_reviews_collection(offer_id: str) -> str:
    return join_path(REVIEWS, offer_id, REVIEWS_OF_OFFER)


def user_favorites_collection(user_id: str) -> str:
    return join_path(USER_FAVORITES, user_id, FAVORITES)


def user_offers_collection(user_id: str) -> str:
    return join_path(USER_OFFERS, user_id, OFFERS)
