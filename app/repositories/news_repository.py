"""
News Repository.

Every listing is latest first: publish_date descending, ties broken by id
descending.
"""
from typing import List, Optional

from app.models import News
from app.repositories.base import BaseRepository


class NewsRepository(BaseRepository[News]):
    """Repository for news data access."""

    def __init__(self, db):
        super().__init__(News, db)

    def _latest_first(self):
        return self.db.query(News).order_by(News.publish_date.desc(), News.id.desc())

    def find_latest(self, limit: int, offset: int = 0) -> List[News]:
        query = self._latest_first()
        if offset:
            query = query.offset(offset)
        return query.limit(limit).all()

    def find_by_category(self, category: str, limit: Optional[int] = None) -> List[News]:
        query = self._latest_first().filter(News.category == category)
        if limit is not None:
            query = query.limit(limit)
        return query.all()
