"""
News Service

Read side for news and injury updates. Every listing is latest first
(publish date descending, ties by id descending).
"""
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from app.core.circuit_breaker import store_protected
from app.core.config import settings
from app.core.exceptions import ValidationError
from app.models import News, NewsCategory
from app.repositories import NewsRepository

logger = logging.getLogger(__name__)


def _bounded(limit: Optional[int], default: int, maximum: int) -> int:
    """Non-positive or missing limits fall back to the default; large ones are clamped."""
    if limit is None or limit <= 0:
        return default
    return min(limit, maximum)


class NewsService:
    """Latest news, paginated news and news by category."""

    def __init__(self, db: Session):
        self.db = db
        self.news = NewsRepository(db)

    @store_protected
    def latest_news(self, limit: Optional[int] = None) -> List[News]:
        """
        The most recent items, at most `limit` of them.

        Args:
            limit: defaults to settings.LATEST_NEWS_DEFAULT_LIMIT, clamped to
                settings.NEWS_MAX_LIMIT
        """
        limit = _bounded(limit, settings.LATEST_NEWS_DEFAULT_LIMIT, settings.NEWS_MAX_LIMIT)
        return self.news.find_latest(limit)

    @store_protected
    def all_news(self, limit: Optional[int] = None, offset: int = 0) -> List[News]:
        """One page of the full listing. A negative offset is treated as 0."""
        limit = _bounded(limit, settings.NEWS_PAGE_SIZE, settings.NEWS_MAX_LIMIT)
        return self.news.find_latest(limit, offset=max(offset or 0, 0))

    @store_protected
    def news_by_category(self, category: str) -> List[News]:
        """
        Items in one category.

        The category may be given as a slug or display name in any case
        ("Injury Update", "injury_update", "injury-update").

        Raises:
            ValidationError: category outside the known set
        """
        parsed = NewsCategory.parse(category)
        if parsed is None:
            allowed = [c.value for c in NewsCategory]
            raise ValidationError(
                f"Unknown news category '{category}'",
                {"category": category, "allowed": allowed},
            )
        return self.news.find_by_category(parsed.value)
