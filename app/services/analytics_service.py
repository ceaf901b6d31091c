"""
Analytics Service

Derives prediction performance from stored predictions and settled games.
Nothing here is persisted: every PerformanceRecord is computed from the
store (or served from PerformanceCache).

Metrics calculated:
- Accuracy: correct / evaluated, None when nothing could be evaluated
- Confidence buckets: accuracy per confidence band (deciles by default)
- High-confidence slice: accuracy of picks at or above the threshold
- Trend: accuracy per day or per ISO week

Only final games count. Scheduled and in-progress games are skipped, never
scored as misses, and pushes (ungradeable results) are counted separately.
"""
import logging
import math
import threading
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Callable, Dict, List, Optional, Tuple, Union

from sqlalchemy.orm import Session

from app.core import metrics
from app.core.circuit_breaker import store_protected
from app.core.config import settings
from app.core.events import GAME_SETTLED, EntityEvent, EventBus, event_bus
from app.core.exceptions import ValidationError
from app.models.schemas import (
    AnalyticsSummary, ConfidenceBucket, HighConfidenceSlice, PerformanceRecord, TrendPoint
)
from app.repositories import GameRepository, PredictionRepository
from app.services.outcome_policy import OutcomeComparator, default_comparator
from app.utils.timezone import parse_iso_date, reporting_today, utc_now

logger = logging.getLogger(__name__)

GRANULARITIES = ("day", "week")


def _ratio(correct: int, evaluated: int) -> Optional[float]:
    return correct / evaluated if evaluated else None


def bucket_index(confidence: float, buckets: int) -> int:
    """
    Bucket of a confidence on [0, 1].

    Bands are half-open [i/n, (i+1)/n); 1.0 falls into the top band. The
    product is rounded first so 0.7 lands in band 7, not 6.
    """
    index = int(math.floor(round(confidence * buckets, 9)))
    return max(0, min(index, buckets - 1))


def period_start(game_date: date, granularity: str) -> date:
    """First day of the trend period; weeks start on Monday (ISO)."""
    if granularity == "week":
        return game_date - timedelta(days=game_date.weekday())
    return game_date


@dataclass
class _Tally:
    evaluated: int = 0
    correct: int = 0

    def add(self, outcome: bool) -> None:
        self.evaluated += 1
        if outcome:
            self.correct += 1

    @property
    def accuracy(self) -> Optional[float]:
        return _ratio(self.correct, self.evaluated)


@dataclass
class PerformanceAccumulator:
    """Single-pass aggregation over (prediction, game, outcome) rows."""
    buckets: int
    threshold: float
    granularity: str = "week"
    overall: _Tally = field(default_factory=_Tally)
    high_confidence: _Tally = field(default_factory=_Tally)
    by_bucket: Dict[int, _Tally] = field(default_factory=dict)
    by_period: Dict[date, _Tally] = field(default_factory=dict)
    ungraded: int = 0

    def add(self, confidence: float, game_date: date, outcome: Optional[bool]) -> None:
        if outcome is None:
            self.ungraded += 1
            return

        self.overall.add(outcome)
        self.by_bucket.setdefault(bucket_index(confidence, self.buckets), _Tally()).add(outcome)
        self.by_period.setdefault(period_start(game_date, self.granularity), _Tally()).add(outcome)
        if confidence >= self.threshold:
            self.high_confidence.add(outcome)

    def confidence_buckets(self) -> List[ConfidenceBucket]:
        width = 1 / self.buckets
        return [
            ConfidenceBucket(
                lower=round(index * width, 4),
                upper=round((index + 1) * width, 4),
                evaluated=tally.evaluated,
                correct=tally.correct,
                accuracy=tally.accuracy,
            )
            for index, tally in sorted(self.by_bucket.items())
        ]

    def trend(self) -> List[TrendPoint]:
        return [
            TrendPoint(
                period_start=start,
                evaluated=tally.evaluated,
                correct=tally.correct,
                accuracy=tally.accuracy,
            )
            for start, tally in sorted(self.by_period.items())
        ]

    def high_confidence_slice(self) -> HighConfidenceSlice:
        return HighConfidenceSlice(
            threshold=self.threshold,
            evaluated=self.high_confidence.evaluated,
            correct=self.high_confidence.correct,
            accuracy=self.high_confidence.accuracy,
        )


# =============================================================================
# CACHE
# =============================================================================

CacheKey = Tuple[date, date, str, Optional[datetime]]


class PerformanceCache:
    """
    Bounded LRU cache of PerformanceRecords.

    Keys include the latest settlement instant inside the range, so a record
    computed before a settlement is never served after it. Entries whose
    range covers a newly settled game are also dropped eagerly when the
    game_settled event arrives.
    """

    def __init__(self, max_entries: int = 128):
        self.max_entries = max_entries
        self._entries: "OrderedDict[CacheKey, PerformanceRecord]" = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: CacheKey) -> Optional[PerformanceRecord]:
        with self._lock:
            record = self._entries.get(key)
            if record is not None:
                self._entries.move_to_end(key)
            size = len(self._entries)
        metrics.record_cache_lookup(record is not None, size)
        return record

    def put(self, key: CacheKey, record: PerformanceRecord) -> None:
        if self.max_entries <= 0:
            return
        with self._lock:
            self._entries[key] = record
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)

    def invalidate_date(self, game_date: date) -> int:
        """Drop every entry whose range contains game_date. Returns the count dropped."""
        with self._lock:
            stale = [key for key in self._entries if key[0] <= game_date <= key[1]]
            for key in stale:
                del self._entries[key]
        if stale:
            logger.debug(f"Invalidated {len(stale)} performance records covering {game_date}")
        return len(stale)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def handle_event(self, event: EntityEvent) -> None:
        if event.kind == GAME_SETTLED and event.game_date is not None:
            self.invalidate_date(event.game_date)

    def subscribe(self, bus: EventBus = event_bus) -> Callable[[], None]:
        return bus.subscribe(self.handle_event)


_shared_cache: Optional[PerformanceCache] = None
_shared_unsubscribe: Optional[Callable[[], None]] = None
_shared_lock = threading.Lock()


def get_performance_cache() -> PerformanceCache:
    """Process-wide cache, subscribed to the event bus on first use."""
    global _shared_cache, _shared_unsubscribe
    with _shared_lock:
        if _shared_cache is None:
            _shared_cache = PerformanceCache(settings.ANALYTICS_CACHE_SIZE)
            _shared_unsubscribe = _shared_cache.subscribe(event_bus)
        return _shared_cache


def reset_performance_cache() -> None:
    """Discard the process-wide cache (tests, or after bulk imports)."""
    global _shared_cache, _shared_unsubscribe
    with _shared_lock:
        if _shared_unsubscribe is not None:
            _shared_unsubscribe()
        _shared_cache = None
        _shared_unsubscribe = None


# =============================================================================
# SERVICE
# =============================================================================

class AnalyticsService:
    """
    Performance over date ranges and the headline summary.

    Args:
        db: SQLAlchemy database session
        comparator: decides whether a pick was correct (see outcome_policy)
        cache: PerformanceCache to consult; None disables caching
        clock: returns the current instant, used for "today" in summary()
    """

    def __init__(
        self,
        db: Session,
        comparator: OutcomeComparator = default_comparator,
        cache: Optional[PerformanceCache] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.db = db
        self.comparator = comparator
        self.cache = cache
        self._clock = clock or utc_now
        self.games = GameRepository(db)
        self.predictions = PredictionRepository(db)

    @store_protected
    def performance(
        self,
        start: Union[date, str],
        end: Union[date, str],
        granularity: str = "week",
    ) -> PerformanceRecord:
        """
        Accuracy of predictions for final games dated in [start, end].

        Raises:
            ValidationError: malformed dates, start after end, or an unknown
                granularity
        """
        start = start if isinstance(start, date) else parse_iso_date(start, "start")
        end = end if isinstance(end, date) else parse_iso_date(end, "end")
        if start > end:
            raise ValidationError(
                f"start ({start}) must not be after end ({end})",
                {"start": start.isoformat(), "end": end.isoformat()},
            )
        if granularity not in GRANULARITIES:
            raise ValidationError(
                f"granularity must be one of {', '.join(GRANULARITIES)}",
                {"granularity": granularity},
            )

        watermark = self.games.last_settled_at(start, end)
        key = (start, end, granularity, watermark)
        if self.cache is not None:
            cached = self.cache.get(key)
            if cached is not None:
                return cached

        acc = self._accumulate(start, end, granularity)
        record = PerformanceRecord(
            start=start,
            end=end,
            granularity=granularity,
            evaluated=acc.overall.evaluated,
            correct=acc.overall.correct,
            ungraded=acc.ungraded,
            accuracy=acc.overall.accuracy,
            by_confidence=acc.confidence_buckets(),
            high_confidence=acc.high_confidence_slice(),
            trend=acc.trend(),
            last_settled_at=watermark,
        )
        logger.debug(f"Performance {start}..{end}: {record.correct}/{record.evaluated} correct")

        if self.cache is not None:
            self.cache.put(key, record)
        return record

    @store_protected
    def summary(self) -> AnalyticsSummary:
        """Headline numbers over every settled game up to today."""
        today = reporting_today(self._clock())
        acc = self._accumulate(None, today, "week")
        return AnalyticsSummary(
            as_of=today,
            total_picks_analyzed=acc.overall.evaluated,
            overall_win_rate=acc.overall.accuracy,
            high_confidence_threshold=acc.threshold,
            high_confidence_picks=acc.high_confidence.evaluated,
            high_confidence_win_rate=acc.high_confidence.accuracy,
        )

    def _accumulate(self, start: Optional[date], end: date, granularity: str) -> PerformanceAccumulator:
        acc = PerformanceAccumulator(
            buckets=settings.CONFIDENCE_BUCKETS,
            threshold=settings.HIGH_CONFIDENCE_THRESHOLD,
            granularity=granularity,
        )
        for prediction, game in self.predictions.stream_settled(start, end):
            acc.add(prediction.confidence, game.game_date, self.comparator(prediction, game))
        return acc
