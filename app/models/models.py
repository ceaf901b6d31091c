"""
Database models for games, predictions, news and subscription plans.

Identifiers are integer autoincrement keys assigned by the database and
never reassigned. A Prediction points at its Game through a plain foreign
key; there is no back-reference from Game to Prediction, lookups go through
the repositories.
"""
from datetime import datetime

from sqlalchemy import (
    Column, String, Float, Integer, DateTime, Date, ForeignKey, Text, Index,
    JSON, CheckConstraint
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()


# =============================================================================
# GAMES
# =============================================================================

class Game(Base):
    """
    A scheduled MLB game.

    start_time is naive UTC; game_date is the calendar date of start_time in
    the reporting time zone and is what date queries filter on.
    """
    __tablename__ = "games"

    id = Column(Integer, primary_key=True, autoincrement=True)
    external_id = Column(String(100), unique=True, nullable=False)  # MLB game pk

    home_team = Column(String(100), nullable=False)
    away_team = Column(String(100), nullable=False)
    home_team_abbreviation = Column(String(5), nullable=False)
    away_team_abbreviation = Column(String(5), nullable=False)
    home_team_record = Column(String(20), nullable=True)  # e.g. "45-30"
    away_team_record = Column(String(20), nullable=True)
    home_team_moneyline = Column(Integer, nullable=True)  # American odds
    away_team_moneyline = Column(Integer, nullable=True)

    start_time = Column(DateTime, nullable=False)
    game_date = Column(Date, nullable=False)
    status = Column(String(20), nullable=False, default="scheduled")

    # Populated at settlement
    home_score = Column(Integer, nullable=True)
    away_score = Column(Integer, nullable=True)
    settled_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        CheckConstraint(
            "status IN ('scheduled', 'in_progress', 'final')",
            name="ck_games_status",
        ),
        CheckConstraint(
            "status != 'final' OR (home_score IS NOT NULL AND away_score IS NOT NULL)",
            name="ck_games_final_has_score",
        ),
        Index("ix_games_game_date_start", "game_date", "start_time"),
        Index("ix_games_status_date", "status", "game_date"),
        Index("ix_games_settled_at", "settled_at"),
    )

    def __repr__(self):
        return f"<Game {self.id} {self.away_team_abbreviation}@{self.home_team_abbreviation} {self.game_date} {self.status}>"


# =============================================================================
# PREDICTIONS
# =============================================================================

class Prediction(Base):
    """
    The published pick for one game.

    confidence is normalized to [0, 1] on write, whatever scale the model
    reported it on.
    """
    __tablename__ = "predictions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    game_id = Column(Integer, ForeignKey("games.id"), nullable=False, unique=True)

    pick_type = Column(String(20), nullable=False)  # moneyline, total
    pick_side = Column(String(10), nullable=False)  # home/away, over/under
    line = Column(Float, nullable=True)  # totals only
    recommended_bet = Column(String(100), nullable=False)  # "NYY ML", "Over 8.5"

    confidence = Column(Float, nullable=False)
    home_win_probability = Column(Float, nullable=True)
    away_win_probability = Column(Float, nullable=True)
    analysis = Column(Text, nullable=False, default="")
    tier = Column(String(10), nullable=False, default="basic")
    model_version = Column(String(20), nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)  # generation time
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        CheckConstraint("confidence >= 0 AND confidence <= 1", name="ck_predictions_confidence"),
        CheckConstraint("tier IN ('basic', 'pro', 'elite')", name="ck_predictions_tier"),
    )

    def __repr__(self):
        return f"<Prediction {self.id} game={self.game_id} {self.recommended_bet} ({self.confidence:.2f})>"


# =============================================================================
# NEWS
# =============================================================================

class News(Base):
    """News and injury updates."""
    __tablename__ = "news"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(300), nullable=False)
    excerpt = Column(Text, nullable=False)
    content = Column(Text, nullable=False)
    category = Column(String(30), nullable=False)
    impact = Column(String(10), nullable=False, default="medium")
    image_url = Column(String(500), nullable=True)
    teams = Column(JSON, nullable=False, default=list)
    publish_date = Column(DateTime, nullable=False, default=datetime.utcnow)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        Index("ix_news_publish_date", "publish_date"),
        Index("ix_news_category_publish", "category", "publish_date"),
    )


# =============================================================================
# SUBSCRIPTION PLANS
# =============================================================================

class SubscriptionPlan(Base):
    """Marketing catalogue of subscription tiers (price in cents)."""
    __tablename__ = "subscription_plans"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(50), nullable=False, unique=True)
    price = Column(Integer, nullable=False)
    description = Column(Text, nullable=False)
    features = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
