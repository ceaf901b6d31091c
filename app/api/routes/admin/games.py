"""
Admin game routes: scheduling, corrections and the game lifecycle.

Mounted under /api/admin and guarded by the X-Admin-Token header.
"""
import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.models.schemas import GameCreate, GameResponse, GameUpdate, SettleRequest
from app.services.game_service import GameService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["admin"])


@router.post("/games", response_model=GameResponse, status_code=status.HTTP_201_CREATED)
async def create_game(payload: GameCreate, db: Session = Depends(get_db)):
    """Schedule a game. 409 if the external id is already taken."""
    return GameService(db).create_game(payload)


@router.patch("/games/{game_id}", response_model=GameResponse)
async def update_game(game_id: int, payload: GameUpdate, db: Session = Depends(get_db)):
    """Correct records, moneylines or (before first pitch) the start time."""
    return GameService(db).update_game(game_id, payload)


@router.post("/games/{game_id}/start", response_model=GameResponse)
async def start_game(game_id: int, db: Session = Depends(get_db)):
    return GameService(db).start_game(game_id)


@router.post("/games/{game_id}/settle", response_model=GameResponse)
async def settle_game(game_id: int, payload: SettleRequest, db: Session = Depends(get_db)):
    """
    Record the final score.

    Repeating a settlement with the same score is a no-op (200); a different
    score for an already-final game is a 409.
    """
    return GameService(db).settle_game(game_id, payload.home_score, payload.away_score)
