"""
In-process change feed.

Each logical list (sale orders, inventory batches, medicines) is a channel.
Writers publish after their transaction has committed; dashboards or any other
listener subscribe with a plain callable.
"""

import logging
import threading
from collections import defaultdict
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger("events")

SALE_ORDERS = "sale_orders"
INVENTORY_BATCHES = "inventory_batches"
MEDICINES = "medicines"

Subscriber = Callable[[Dict[str, Any]], None]


class ChangeFeed:
    def __init__(self):
        self._subscribers: Dict[str, List[Subscriber]] = defaultdict(list)
        self._lock = threading.Lock()

    def subscribe(self, channel: str, callback: Subscriber) -> Callable[[], None]:
        """Register a callback for a channel. Returns a function that removes it."""
        with self._lock:
            self._subscribers[channel].append(callback)

        def unsubscribe():
            with self._lock:
                if callback in self._subscribers[channel]:
                    self._subscribers[channel].remove(callback)

        return unsubscribe

    def publish(self, channel: str, action: str, tenant_id: Optional[str], record_id: int, **payload: Any) -> Dict[str, Any]:
        event = {
            "channel": channel,
            "action": action,
            "tenant_id": tenant_id,
            "record_id": record_id,
            **payload,
        }
        with self._lock:
            subscribers = list(self._subscribers[channel])
        for callback in subscribers:
            try:
                callback(event)
            except Exception:
                # The write is already committed; a broken listener must not fail it
                logger.exception(f"Subscriber {callback!r} failed for {channel}/{action} on record {record_id}")
        return event

    def clear(self):
        with self._lock:
            self._subscribers.clear()


change_feed = ChangeFeed()


def log_change(event: Dict[str, Any]):
    logger.info(
        f"{event['channel']}: {event['action']} record {event['record_id']} for tenant {event['tenant_id']}"
    )
