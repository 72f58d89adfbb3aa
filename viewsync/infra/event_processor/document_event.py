# =============================================================================
# File: viewsync/infra/event_processor/document_event.py
# Description: Envelope for document change notifications
# =============================================================================

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from viewsync.utils.datetime_utils import utc_now


class TriggerType(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"


@dataclass
class DocumentEvent:
    """
    One change of one document, as delivered by the trigger runtime.

    Delivery is at-least-once and unordered across documents, so the same
    event may arrive twice. `params` holds the path template variables and
    is filled in by the EventProcessor when a route matches.
    """
    path: str
    trigger_type: TriggerType
    before: Optional[Dict[str, Any]] = None
    after: Optional[Dict[str, Any]] = None
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    occurred_at: datetime = field(default_factory=utc_now)
    params: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def created(cls, path: str, data: Dict[str, Any], **kwargs: Any) -> DocumentEvent:
        return cls(path=path, trigger_type=TriggerType.CREATED, after=data, **kwargs)

    @classmethod
    def updated(cls, path: str, before: Dict[str, Any], after: Dict[str, Any], **kwargs: Any) -> DocumentEvent:
        return cls(path=path, trigger_type=TriggerType.UPDATED, before=before, after=after, **kwargs)

    @classmethod
    def deleted(cls, path: str, data: Dict[str, Any], **kwargs: Any) -> DocumentEvent:
        return cls(path=path, trigger_type=TriggerType.DELETED, before=data, **kwargs)
