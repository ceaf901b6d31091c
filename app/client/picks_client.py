"""
Typed client for the picks API.

Presentation code calls one method per query and gets back pydantic models
or a PicksError. Transport failures are mapped onto the same taxonomy the
API uses:

- 404 -> NotFoundError
- 400 / 422 -> ValidationError
- 409 -> ConflictError
- 503, connection errors, timeouts -> UnavailableError

Connection errors are retried with exponential backoff before giving up.
No business logic lives here.

Usage:
    with PicksClient("http://localhost:8001", premium=True) as client:
        for game in client.todays_picks():
            print(game.away_team, "@", game.home_team, game.prediction)
"""
from datetime import date
from typing import Any, Dict, List, Optional, Union

import httpx
from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

from app.client.cache import ANALYTICS, NEWS, PICKS, PLANS, ResponseCache
from app.core.auth import PREMIUM_HEADER
from app.core.config import settings
from app.core.events import EventBus, event_bus
from app.core.exceptions import (
    ConflictError, ERRORS_BY_CODE, NotFoundError, PicksError, UnavailableError, ValidationError
)
from app.core.logging import get_logger
from app.models.schemas import (
    AnalyticsSummary, GameWithPrediction, NewsResponse, PerformanceRecord, SubscriptionPlanResponse
)

logger = get_logger(__name__)

_ERRORS_BY_STATUS = {
    400: ValidationError,
    404: NotFoundError,
    409: ConflictError,
    422: ValidationError,
    503: UnavailableError,
}

_games = TypeAdapter(List[GameWithPrediction])
_game = TypeAdapter(GameWithPrediction)
_news = TypeAdapter(List[NewsResponse])
_plans = TypeAdapter(List[SubscriptionPlanResponse])
_summary = TypeAdapter(AnalyticsSummary)
_performance = TypeAdapter(PerformanceRecord)


def error_from_response(response: httpx.Response) -> PicksError:
    """Rebuild the domain error carried by a non-2xx response."""
    body: Dict[str, Any] = {}
    try:
        payload = response.json()
        if isinstance(payload, dict) and isinstance(payload.get("error"), dict):
            body = payload["error"]
    except ValueError:
        pass

    message = body.get("message") or f"HTTP {response.status_code} from {response.request.url.path}"
    details = body.get("details")

    error_cls = _ERRORS_BY_STATUS.get(response.status_code) or ERRORS_BY_CODE.get(body.get("code"))
    if error_cls is not None:
        return error_cls(message, details)

    error = PicksError(message, details)
    error.status_code = response.status_code
    return error


class PicksClient:
    """
    Client access facade.

    Args:
        base_url: API root; ignored when http_client is supplied
        premium: send the premium capability header on every request
        http_client: an existing httpx.Client (e.g. FastAPI's TestClient)
        cache: response cache; defaults to one subscribed to the in-process
            event bus, sized by settings.CLIENT_CACHE_TTL and CLIENT_CACHE_SIZE
        timeout: request timeout in seconds
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        premium: bool = False,
        http_client: Optional[httpx.Client] = None,
        cache: Optional[ResponseCache] = None,
        timeout: Optional[float] = None,
        bus: Optional[EventBus] = None,
    ):
        self.premium = premium
        self._owns_client = http_client is None
        self._http = http_client or httpx.Client(
            base_url=base_url or f"http://localhost:{settings.PORT}",
            timeout=timeout if timeout is not None else settings.CLIENT_TIMEOUT,
        )
        self._unsubscribe = None
        if cache is None:
            cache = ResponseCache(ttl=settings.CLIENT_CACHE_TTL, max_entries=settings.CLIENT_CACHE_SIZE)
            self._unsubscribe = cache.subscribe(bus if bus is not None else event_bus)
        self.cache = cache

    def __enter__(self) -> "PicksClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        if self._owns_client:
            self._http.close()

    # ========================================================================
    # Picks
    # ========================================================================

    def todays_picks(self) -> List[GameWithPrediction]:
        return self._get("/api/picks/today", PICKS, _games)

    def picks_by_date(self, game_date: Union[date, str]) -> List[GameWithPrediction]:
        value = game_date.isoformat() if isinstance(game_date, date) else game_date
        return self._get("/api/picks", PICKS, _games, {"date": value})

    def game_detail(self, game_id: int) -> GameWithPrediction:
        return self._get(f"/api/games/{game_id}", PICKS, _game)

    # ========================================================================
    # News
    # ========================================================================

    def latest_news(self, limit: Optional[int] = None) -> List[NewsResponse]:
        return self._get("/api/news/latest", NEWS, _news, {"limit": limit})

    def all_news(self, limit: Optional[int] = None, offset: int = 0) -> List[NewsResponse]:
        return self._get("/api/news", NEWS, _news, {"limit": limit, "offset": offset or None})

    def news_by_category(self, category: str) -> List[NewsResponse]:
        return self._get(f"/api/news/category/{category}", NEWS, _news)

    # ========================================================================
    # Analytics
    # ========================================================================

    def analytics_summary(self) -> AnalyticsSummary:
        return self._get("/api/analytics", ANALYTICS, _summary)

    def performance(
        self,
        start: Union[date, str],
        end: Union[date, str],
        granularity: str = "week",
    ) -> PerformanceRecord:
        params = {
            "start": start.isoformat() if isinstance(start, date) else start,
            "end": end.isoformat() if isinstance(end, date) else end,
            "granularity": granularity,
        }
        return self._get("/api/analytics/performance", ANALYTICS, _performance, params)

    # ========================================================================
    # Plans
    # ========================================================================

    def subscription_plans(self) -> List[SubscriptionPlanResponse]:
        return self._get("/api/subscription-plans", PLANS, _plans)

    # ========================================================================
    # Transport
    # ========================================================================

    def _get(self, path: str, tag: str, adapter: TypeAdapter, params: Optional[Dict[str, Any]] = None):
        query = tuple(sorted((k, str(v)) for k, v in (params or {}).items() if v is not None))
        key = (path, query, self.premium)

        cached = self.cache.get(key)
        if cached is not None:
            return cached

        response = self._request(path, dict(query))
        if response.is_error:
            raise error_from_response(response)

        try:
            result = adapter.validate_python(response.json())
        except (ValueError, PydanticValidationError) as e:
            logger.error(f"Undecodable response from {path}: {e}")
            raise PicksError(f"Malformed response from {path}") from e

        self.cache.put(key, tag, result)
        return result

    def _request(self, path: str, params: Dict[str, str]) -> httpx.Response:
        headers = {PREMIUM_HEADER: "true"} if self.premium else {}
        try:
            return self._send(path, params, headers)
        except httpx.TimeoutException as e:
            logger.warning(f"Timed out calling {path}: {e}")
            raise UnavailableError(f"Request to {path} timed out") from e
        except httpx.TransportError as e:
            logger.warning(f"Could not reach API for {path}: {e}")
            raise UnavailableError(f"API unreachable: {e}") from e

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
        retry=retry_if_exception_type((httpx.ConnectError, httpx.ConnectTimeout)),
        reraise=True,
    )
    def _send(self, path: str, params: Dict[str, str], headers: Dict[str, str]) -> httpx.Response:
        return self._http.get(path, params=params, headers=headers)
