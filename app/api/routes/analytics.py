"""
Analytics routes for prediction performance tracking.

Accuracy only counts settled games; a range with nothing settled reports
accuracy null rather than 0.
"""
import logging
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.models.schemas import AnalyticsSummary, PerformanceRecord
from app.services.analytics_service import AnalyticsService, get_performance_cache

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/analytics", tags=["analytics"])


def get_analytics_service(db: Session = Depends(get_db)) -> AnalyticsService:
    return AnalyticsService(db, cache=get_performance_cache())


@router.get("", response_model=AnalyticsSummary)
async def get_analytics_summary(
    service: AnalyticsService = Depends(get_analytics_service)
):
    """
    Headline performance numbers.

    Returns:
        - total_picks_analyzed: graded picks over all settled games
        - overall_win_rate: correct / graded, null if none
        - high_confidence_win_rate: same, for picks at or above the threshold
    """
    return service.summary()


@router.get("/performance", response_model=PerformanceRecord)
async def get_performance(
    start: Optional[str] = Query(None, description="First game date, YYYY-MM-DD"),
    end: Optional[str] = Query(None, description="Last game date (inclusive), YYYY-MM-DD"),
    granularity: Literal["day", "week"] = Query("week", description="Trend period"),
    service: AnalyticsService = Depends(get_analytics_service)
):
    """
    Accuracy over an inclusive date range, with confidence-bucket breakdown,
    high-confidence slice and a trend series.
    """
    return service.performance(start, end, granularity)
