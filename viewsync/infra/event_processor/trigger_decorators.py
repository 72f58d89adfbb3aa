# =============================================================================
# File: viewsync/infra/event_processor/trigger_decorators.py
# Description: @document_trigger - binds projector methods to document paths
# =============================================================================

from __future__ import annotations

import inspect
import logging
import re
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, FrozenSet, List, Optional, Pattern

from viewsync.infra.event_processor.document_event import DocumentEvent, TriggerType

log = logging.getLogger("viewsync.event_processor.decorators")

_TEMPLATE_VARIABLE = re.compile(r"\{([A-Za-z_][A-Za-z0-9_]*)\}")

ALL_TRIGGER_TYPES: FrozenSet[TriggerType] = frozenset(TriggerType)


def compile_path_template(template: str) -> Pattern[str]:
    """'chatrooms/{key}/messages/{id}' -> regex with one named group per variable"""
    pattern = ""
    position = 0
    for match in _TEMPLATE_VARIABLE.finditer(template):
        pattern += re.escape(template[position:match.start()])
        pattern += f"(?P<{match.group(1)}>[^/]+)"
        position = match.end()
    pattern += re.escape(template[position:])
    return re.compile(f"^{pattern}$")


@dataclass(frozen=True)
class TriggerSpec:
    """Metadata attached to a decorated projector method"""
    path_template: str
    trigger_types: FrozenSet[TriggerType]
    description: Optional[str] = None

    @property
    def pattern(self) -> Pattern[str]:
        return compile_path_template(self.path_template)


@dataclass
class TriggerRoute:
    """A TriggerSpec bound to a projector instance"""
    spec: TriggerSpec
    handler: Callable[[DocumentEvent], Awaitable[None]]
    name: str
    pattern: Pattern[str]

    def match(self, event: DocumentEvent) -> Optional[Dict[str, str]]:
        if event.trigger_type not in self.spec.trigger_types:
            return None
        found = self.pattern.match(event.path.strip("/"))
        return found.groupdict() if found else None


def document_trigger(
        path_template: str,
        *trigger_types: TriggerType,
        description: Optional[str] = None,
):
    """
    Decorator for projector methods handling document changes.

    Usage:
        class ChatProjector:
            @document_trigger(MESSAGE_DOCUMENT, TriggerType.CREATED)
            async def on_message_document_created(self, event: DocumentEvent) -> None:
                ...

    No trigger types means any change (created, updated or deleted).
    Decorators may be stacked to bind one method to several paths.
    """
    spec = TriggerSpec(
        path_template=path_template.strip("/"),
        trigger_types=frozenset(trigger_types) or ALL_TRIGGER_TYPES,
        description=description,
    )

    def decorator(func: Callable) -> Callable:
        specs: List[TriggerSpec] = list(getattr(func, "_trigger_specs", []))
        specs.append(spec)
        func._trigger_specs = specs
        log.debug(
            f"Registered trigger: {func.__name__} for {spec.path_template} "
            f"({', '.join(sorted(t.value for t in spec.trigger_types))})"
        )
        return func

    return decorator


def collect_trigger_routes(projector: Any) -> List[TriggerRoute]:
    """All @document_trigger methods of a projector instance, bound to it."""
    routes = []
    for name, member in inspect.getmembers(projector, predicate=inspect.ismethod):
        for spec in getattr(member, "_trigger_specs", []):
            routes.append(TriggerRoute(
                spec=spec,
                handler=member,
                name=f"{type(projector).__name__}.{name}",
                pattern=spec.pattern,
            ))
    return routes
