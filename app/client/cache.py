"""
Response cache for the client facade.

Entries are keyed by request shape (path, query, premium flag) and tagged
with the kind of data they hold. Entity mutation events drop every entry
under the affected tags, and entries also expire after a TTL so a client
running in a different process than the writer still converges.
"""
import threading
import time
from collections import OrderedDict
from typing import Any, Callable, Hashable, Optional, Tuple

from app.core.events import (
    GAME_EVENTS, NEWS_EVENTS, PLAN_CREATED, PREDICTION_EVENTS, EntityEvent, EventBus, event_bus
)
from app.core.logging import get_logger

logger = get_logger(__name__)

PICKS = "picks"
NEWS = "news"
ANALYTICS = "analytics"
PLANS = "plans"

TAGS_BY_EVENT = {
    **{kind: (PICKS, ANALYTICS) for kind in GAME_EVENTS},
    **{kind: (PICKS, ANALYTICS) for kind in PREDICTION_EVENTS},
    **{kind: (NEWS,) for kind in NEWS_EVENTS},
    PLAN_CREATED: (PLANS,),
}


class ResponseCache:
    """
    Tagged TTL cache, bounded as an LRU.

    Args:
        ttl: seconds an entry stays fresh; 0 or less means no expiry
        max_entries: least recently used entries are evicted past this size
        clock: monotonic time source
    """

    def __init__(self, ttl: float = 300, max_entries: int = 256, clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self.max_entries = max_entries
        self._clock = clock
        self._entries: "OrderedDict[Hashable, Tuple[str, float, Any]]" = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def _expired(self, stored_at: float, now: float) -> bool:
        return self.ttl > 0 and now - stored_at > self.ttl

    def get(self, key: Hashable) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            tag, stored_at, value = entry
            if self._expired(stored_at, self._clock()):
                del self._entries[key]
                return None
            self._entries.move_to_end(key)
            return value

    def put(self, key: Hashable, tag: str, value: Any) -> None:
        if self.max_entries <= 0:
            return
        with self._lock:
            now = self._clock()
            expired = [k for k, (_, stored_at, _) in self._entries.items() if self._expired(stored_at, now)]
            for k in expired:
                del self._entries[k]
            self._entries[key] = (tag, now, value)
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)

    def invalidate_tag(self, tag: str) -> int:
        with self._lock:
            stale = [key for key, (entry_tag, _, _) in self._entries.items() if entry_tag == tag]
            for key in stale:
                del self._entries[key]
        return len(stale)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def handle_event(self, event: EntityEvent) -> None:
        for tag in TAGS_BY_EVENT.get(event.kind, ()):
            dropped = self.invalidate_tag(tag)
            if dropped:
                logger.debug(f"{event.kind}: dropped {dropped} cached '{tag}' responses")

    def subscribe(self, bus: EventBus = event_bus) -> Callable[[], None]:
        return bus.subscribe(self.handle_event)
