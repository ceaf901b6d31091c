"""
Services module: business logic on top of the repositories.

- game_service: game lifecycle (create, start, settle)
- content_service: predictions, news and subscription plan writes
- picks_service / news_service: read side for the site
- analytics_service: performance aggregation and its cache
- outcome_policy: grading rules for picks
"""
from app.services.analytics_service import AnalyticsService, PerformanceCache, get_performance_cache
from app.services.content_service import ContentService
from app.services.game_service import GameService
from app.services.news_service import NewsService
from app.services.outcome_policy import DefaultOutcomeComparator, OutcomeComparator
from app.services.picks_service import PicksService

__all__ = [
    "AnalyticsService",
    "PerformanceCache",
    "get_performance_cache",
    "ContentService",
    "GameService",
    "NewsService",
    "DefaultOutcomeComparator",
    "OutcomeComparator",
    "PicksService",
]
