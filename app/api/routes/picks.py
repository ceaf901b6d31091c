"""
Daily picks routes.

Games for a calendar date (in the reporting time zone), each with its
prediction. Premium prediction fields are redacted unless the auth boundary
forwards X-Premium-Access: true.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.auth import premium_access
from app.core.database import get_db
from app.models.schemas import GameWithPrediction
from app.services.picks_service import PicksService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["picks"])


@router.get("/picks/today", response_model=List[GameWithPrediction])
async def get_todays_picks(
    premium: bool = Depends(premium_access),
    db: Session = Depends(get_db)
):
    """
    Today's slate with predictions.

    "Today" is the current date in the reporting time zone, not the
    server's local date. Ordered by first pitch, then game id.
    """
    return PicksService(db).todays_games(premium=premium)


@router.get("/picks", response_model=List[GameWithPrediction])
async def get_picks_by_date(
    date: Optional[str] = Query(None, description="Calendar date, YYYY-MM-DD"),
    premium: bool = Depends(premium_access),
    db: Session = Depends(get_db)
):
    """Slate for an arbitrary date. An empty list when nothing is scheduled."""
    return PicksService(db).games_by_date(date, premium=premium)


@router.get("/games/{game_id}", response_model=GameWithPrediction)
async def get_game_detail(
    game_id: int,
    premium: bool = Depends(premium_access),
    db: Session = Depends(get_db)
):
    """One game with its prediction; 404 if the game does not exist."""
    return PicksService(db).game_detail(game_id, premium=premium)
