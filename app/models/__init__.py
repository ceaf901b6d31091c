"""
Models Module

Usage:
    from app.models import Game, Prediction, News

    todays = db.query(Game).filter(Game.game_date == date(2025, 6, 1)).all()
"""
from app.models.models import (
    Base,
    Game,
    Prediction,
    News,
    SubscriptionPlan,
)
from app.models.enums import (
    GameStatus,
    PickType,
    PickSide,
    PredictionTier,
    NewsCategory,
    NewsImpact,
    PICK_SIDES,
)

__all__ = [
    "Base",
    "Game",
    "Prediction",
    "News",
    "SubscriptionPlan",
    "GameStatus",
    "PickType",
    "PickSide",
    "PredictionTier",
    "NewsCategory",
    "NewsImpact",
    "PICK_SIDES",
]
