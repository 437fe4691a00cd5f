"""
AIRWATCH Event Bus
Bounded publish/subscribe for track and conflict notifications.
"""

import logging
import threading
from collections import defaultdict
from typing import Any, Callable, Dict, List

logger = logging.getLogger("airwatch.tracking.events")

# Topics
AIRCRAFT_UPDATE = "aircraft:update"
CONFLICT_DETECTED = "conflict:detected"
CONFLICT_UPDATED = "conflict:updated"
CONFLICT_RESOLVED = "conflict:resolved"

DEFAULT_MAX_SUBSCRIBERS = 16

Subscriber = Callable[[Any], None]


class EventBus:
    """
    Delivers payloads to a bounded list of subscribers per topic.

    Callbacks run synchronously on the publishing thread. A failing callback
    is logged and does not stop delivery to the others.
    """

    def __init__(self, max_subscribers: int = DEFAULT_MAX_SUBSCRIBERS) -> None:
        self.max_subscribers = max_subscribers
        self._subscribers: Dict[str, List[Subscriber]] = defaultdict(list)
        self._lock = threading.Lock()

    def subscribe(self, topic: str, callback: Subscriber) -> Callable[[], None]:
        """
        Register a callback for a topic.

        Args:
            topic: Topic name, e.g. ``conflict:detected``
            callback: Called with the event payload

        Returns:
            Callable that removes the subscription

        Raises:
            ValueError: If the topic already has ``max_subscribers`` callbacks
        """
        with self._lock:
            callbacks = self._subscribers[topic]
            if len(callbacks) >= self.max_subscribers:
                raise ValueError(
                    f"Topic {topic!r} already has {self.max_subscribers} subscribers"
                )
            callbacks.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers[topic]:
                    self._subscribers[topic].remove(callback)

        return unsubscribe

    def subscriber_count(self, topic: str) -> int:
        with self._lock:
            return len(self._subscribers.get(topic, ()))

    def publish(self, topic: str, payload: Any) -> int:
        """
        Deliver a payload to every subscriber of a topic.

        Returns:
            Number of callbacks that completed without raising
        """
        with self._lock:
            callbacks = list(self._subscribers.get(topic, ()))

        delivered = 0
        for callback in callbacks:
            try:
                callback(payload)
                delivered += 1
            except Exception:
                logger.exception("Subscriber for %s failed", topic)
        return delivered
