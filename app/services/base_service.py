"""
Base class for services that write to the entity store.

Provides shared implementation for:
- Transactions that commit completely or roll back, with IntegrityError
  mapped to ConflictError
- Identifier lookups that raise NotFoundError
- Publishing mutation events once a write is committed
- An injectable clock
- Per-game locks for writes that depend on a game's status
"""
import logging
import threading
from contextlib import contextmanager
from datetime import datetime
from typing import Callable, Dict, Iterator, Optional, Type, TypeVar

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.events import EntityEvent, EventBus, event_bus
from app.core.exceptions import ConflictError, NotFoundError
from app.utils.timezone import to_utc_naive, utc_now

logger = logging.getLogger(__name__)

T = TypeVar("T")


class _GameLock:
    __slots__ = ("lock", "users")

    def __init__(self):
        self.lock = threading.RLock()
        self.users = 0


_locks_guard = threading.Lock()
_game_locks: Dict[int, _GameLock] = {}


@contextmanager
def game_lock(game_id: int) -> Iterator[None]:
    """
    Serialize writes that depend on a game's status within this process.

    Reentrant for the holding thread. An entry lives only while some thread
    holds or waits on it.
    """
    with _locks_guard:
        entry = _game_locks.get(game_id)
        if entry is None:
            entry = _game_locks[game_id] = _GameLock()
        entry.users += 1
    try:
        with entry.lock:
            yield
    finally:
        with _locks_guard:
            entry.users -= 1
            if entry.users == 0:
                del _game_locks[game_id]


class StoreService:
    """
    Transaction and event plumbing for write services.

    Nothing is published for a rolled-back write.
    """

    def __init__(
        self,
        db: Session,
        clock: Optional[Callable[[], datetime]] = None,
        bus: Optional[EventBus] = None,
    ):
        """
        Args:
            db: SQLAlchemy database session
            clock: returns the current instant (defaults to UTC now)
            bus: event bus to publish to (defaults to the process-wide bus)
        """
        self.db = db
        self._clock = clock or utc_now
        self._bus = bus if bus is not None else event_bus

    def _now(self) -> datetime:
        """Current instant as naive UTC, the storage convention."""
        return to_utc_naive(self._clock())

    def _require(self, model: Type[T], entity_id: int, entity: str) -> T:
        instance = self.db.get(model, entity_id)
        if instance is None:
            raise NotFoundError.for_entity(entity, entity_id)
        return instance

    @contextmanager
    def _transaction(self, conflict_message: str = "Write conflicts with existing data") -> Iterator[None]:
        """Commit the enclosed writes, or roll all of them back."""
        try:
            yield
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.warning(f"{conflict_message}: {e.orig}")
            raise ConflictError(conflict_message) from e
        except Exception:
            self.db.rollback()
            raise

    def _publish(self, kind: str, entity_id: int, game_date=None) -> None:
        self._bus.publish(EntityEvent(kind=kind, entity_id=entity_id, game_date=game_date))
