"""
Repository layer for data access.

The repository pattern provides:
1. Separation of data access logic from business logic
2. Single place for query logic (easier to maintain)
3. Easier testing (can mock repositories)

Usage:
    from app.repositories import GameRepository
    from app.core.database import SessionLocal

    db = SessionLocal()
    games = GameRepository(db).find_by_date(date(2025, 6, 1))
    db.close()
"""

from app.repositories.base import BaseRepository
from app.repositories.game_repository import GameRepository
from app.repositories.prediction_repository import PredictionRepository
from app.repositories.news_repository import NewsRepository
from app.repositories.plan_repository import PlanRepository

__all__ = [
    "BaseRepository",
    "GameRepository",
    "PredictionRepository",
    "NewsRepository",
    "PlanRepository",
]
