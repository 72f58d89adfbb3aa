# =============================================================================
# File: viewsync/chat/queries.py
# Description: Recomputation queries over the messages collection
# =============================================================================

from __future__ import annotations

from typing import Union

from viewsync.common.collections import messages_collection
from viewsync.ports.document_store_port import DocumentStorePort, TransactionPort


async def count_unread_messages(
        reader: Union[DocumentStorePort, TransactionPort],
        relationship_key: str,
        recipient_id: str,
) -> int:
    """
    Number of unread messages addressed to `recipient_id` in the conversation.

    Pass an open transaction as `reader` to make the count part of its read
    set, so a message written or marked read meanwhile forces a retry.
    """
    return await reader.count(
        messages_collection(relationship_key),
        where={"receiver_id": recipient_id, "is_read": False},
    )
