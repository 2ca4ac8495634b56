"""
Event bus: delivers board notifications to host subscribers.

Notifications are gated by the board lifecycle: nothing is delivered while the
board is UNINITIALIZED, so the first full render and the initial column setup
stay silent. `create` is the first event a host can observe.
"""
import logging
from typing import Any, Callable, Dict, List

from .schema import Phase

logger = logging.getLogger(__name__)

ITEM_ADDED = "item-added"
ITEM_REMOVED = "item-removed"
ITEMS_CHANGED = "items-changed"
COLUMNS_CHANGED = "columns-changed"
CREATE = "create"

EVENT_TYPES = {ITEM_ADDED, ITEM_REMOVED, ITEMS_CHANGED, COLUMNS_CHANGED, CREATE}


class BoardEventBus:
    """Routes board notifications to subscribers."""

    def __init__(self):
        self.phase = Phase.UNINITIALIZED
        self.subscribers: Dict[str, List[Callable]] = {}  # event_type -> list of callbacks

    @property
    def is_ready(self) -> bool:
        return self.phase == Phase.READY

    def mark_ready(self) -> None:
        self.phase = Phase.READY

    def subscribe(self, event_type: str, callback: Callable) -> None:
        """Register a callback for an event type."""
        if event_type not in EVENT_TYPES:
            raise ValueError(f"Unknown board event: {event_type}")
        self.subscribers.setdefault(event_type, []).append(callback)

    def unsubscribe(self, event_type: str, callback: Callable) -> None:
        callbacks = self.subscribers.get(event_type, [])
        if callback in callbacks:
            callbacks.remove(callback)

    def emit(self, event_type: str, payload: Any) -> bool:
        """Deliver an event to all subscribers. Returns False when gated."""
        if not self.is_ready:
            logger.debug(f"Suppressed {event_type}: board not ready")
            return False
        for callback in list(self.subscribers.get(event_type, [])):
            try:
                callback(payload)
            except Exception:
                logger.exception(f"Error in {event_type} callback")
        return True
