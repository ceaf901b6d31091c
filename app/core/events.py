"""
In-process entity mutation events.

The store publishes an event after every committed write. Caches (the
analytics cache and the client facade's response cache) subscribe so they can
drop exactly the entries a mutation makes stale.

Usage:
    from app.core.events import event_bus, GAME_SETTLED

    unsubscribe = event_bus.subscribe(lambda event: print(event.kind))
"""
import threading
from dataclasses import dataclass
from datetime import date
from typing import Callable, List, Optional

from app.core.logging import get_logger

logger = get_logger(__name__)

GAME_CREATED = "game_created"
GAME_UPDATED = "game_updated"
GAME_STARTED = "game_started"
GAME_SETTLED = "game_settled"
PREDICTION_CREATED = "prediction_created"
PREDICTION_UPDATED = "prediction_updated"
NEWS_CREATED = "news_created"
NEWS_UPDATED = "news_updated"
PLAN_CREATED = "plan_created"

GAME_EVENTS = frozenset({GAME_CREATED, GAME_UPDATED, GAME_STARTED, GAME_SETTLED})
PREDICTION_EVENTS = frozenset({PREDICTION_CREATED, PREDICTION_UPDATED})
NEWS_EVENTS = frozenset({NEWS_CREATED, NEWS_UPDATED})


@dataclass(frozen=True)
class EntityEvent:
    """A committed mutation of one entity."""
    kind: str
    entity_id: int
    game_date: Optional[date] = None


Handler = Callable[[EntityEvent], None]


class EventBus:
    """Synchronous publish/subscribe registry."""

    def __init__(self):
        self._handlers: List[Handler] = []
        self._lock = threading.Lock()

    def subscribe(self, handler: Handler) -> Callable[[], None]:
        """Register a handler; returns a callable that unregisters it."""
        with self._lock:
            self._handlers.append(handler)

        def unsubscribe() -> None:
            with self._lock:
                if handler in self._handlers:
                    self._handlers.remove(handler)

        return unsubscribe

    def publish(self, event: EntityEvent) -> None:
        """
        Deliver an event to every handler.

        The write that produced the event is already committed, so a failing
        handler is logged and the remaining handlers still run.
        """
        with self._lock:
            handlers = list(self._handlers)

        logger.debug(f"Publishing {event.kind} for entity {event.entity_id}")
        for handler in handlers:
            try:
                handler(event)
            except Exception:
                logger.exception(f"Event handler failed for {event.kind} (entity {event.entity_id})")

    def clear(self) -> None:
        with self._lock:
            self._handlers.clear()


# Process-wide bus
event_bus = EventBus()
