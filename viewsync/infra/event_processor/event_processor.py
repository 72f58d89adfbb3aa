# =============================================================================
# File: viewsync/infra/event_processor/event_processor.py
# Description: Routes document events to projector trigger methods
# =============================================================================

from __future__ import annotations

import dataclasses
import logging
import time
from typing import Any, Iterable, List, Tuple, Dict

from viewsync.infra.event_processor.document_event import DocumentEvent
from viewsync.infra.event_processor.trigger_decorators import TriggerRoute, collect_trigger_routes
from viewsync.infra.metrics.projection_metrics import event_handler_duration_seconds, events_processed_total

log = logging.getLogger("viewsync.event_processor")


class EventProcessor:
    """
    Dispatches DocumentEvents to every matching @document_trigger method.

    Handler errors are logged and swallowed: the caller always gets a
    neutral result, so the trigger runtime does not start a redelivery
    storm. Recovery relies on the next event for the same data, since all
    views are recomputed from ground truth.
    """

    def __init__(self, projectors: Iterable[Any]):
        self.routes: List[TriggerRoute] = []
        for projector in projectors:
            self.routes.extend(collect_trigger_routes(projector))
        log.info(f"EventProcessor initialized with {len(self.routes)} trigger routes")

    def match(self, event: DocumentEvent) -> List[Tuple[TriggerRoute, Dict[str, str]]]:
        matches = []
        for route in self.routes:
            params = route.match(event)
            if params is not None:
                matches.append((route, params))
        return matches

    async def process(self, event: DocumentEvent) -> bool:
        """Run all handlers for the event. Returns False when no route matched."""
        matches = self.match(event)
        if not matches:
            log.debug(f"No trigger for {event.trigger_type.value} {event.path}")
            return False

        for route, params in matches:
            started = time.time()
            routed = dataclasses.replace(event, params=params)
            try:
                await route.handler(routed)
                events_processed_total.labels(handler=route.name, status="success").inc()
            except Exception as e:
                events_processed_total.labels(handler=route.name, status="error").inc()
                log.error(
                    f"Handler {route.name} failed for event {event.event_id} "
                    f"({event.trigger_type.value} {event.path}): {e}",
                    exc_info=True,
                )
            finally:
                event_handler_duration_seconds.labels(handler=route.name).observe(time.time() - started)

        return True
