"""
News routes.

All listings are latest first.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.models.schemas import NewsResponse
from app.services.news_service import NewsService

router = APIRouter(prefix="/api/news", tags=["news"])


@router.get("/latest", response_model=List[NewsResponse])
async def get_latest_news(
    limit: Optional[int] = Query(None, description="Max items (default 3, capped)"),
    db: Session = Depends(get_db)
):
    """Most recent news items."""
    return NewsService(db).latest_news(limit)


@router.get("", response_model=List[NewsResponse])
async def get_all_news(
    limit: Optional[int] = Query(None, description="Page size"),
    offset: int = Query(0, description="Items to skip"),
    db: Session = Depends(get_db)
):
    return NewsService(db).all_news(limit=limit, offset=offset)


@router.get("/category/{category}", response_model=List[NewsResponse])
async def get_news_by_category(
    category: str,
    db: Session = Depends(get_db)
):
    """
    News in one category.

    Accepts slug or display spellings in any case: injury-update,
    "Injury Update", injury_update. Unknown categories are a 400.
    """
    return NewsService(db).news_by_category(category)
