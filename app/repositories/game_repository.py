"""
Game Repository for game data access.

Usage:
    repo = GameRepository(db)
    game = repo.find_by_external_id("746532")
    slate = repo.find_by_date(date(2025, 6, 1))
"""
from datetime import date, datetime
from typing import List, Optional

from sqlalchemy import func, update

from app.models import Game, GameStatus
from app.repositories.base import BaseRepository


class GameRepository(BaseRepository[Game]):
    """Repository for game data access."""

    def __init__(self, db):
        super().__init__(Game, db)

    # ========================================================================
    # Lookups
    # ========================================================================

    def find_by_external_id(self, external_id: str) -> Optional[Game]:
        """Find a game by external ID."""
        return self.where_first(Game.external_id == external_id)

    # ========================================================================
    # Date-based Queries
    # ========================================================================

    def find_by_date(self, game_date: date, status: Optional[str] = None) -> List[Game]:
        """
        Games on a reporting-zone calendar date.

        Ordered by scheduled start, ties broken by id, so listings are stable.
        """
        query = self.db.query(Game).filter(Game.game_date == game_date)
        if status is not None:
            query = query.filter(Game.status == status)
        return query.order_by(Game.start_time.asc(), Game.id.asc()).all()

    def find_filtered(self, game_date: Optional[date] = None, status: Optional[str] = None) -> List[Game]:
        """List games, optionally narrowed by date and/or status."""
        query = self.db.query(Game)
        if game_date is not None:
            query = query.filter(Game.game_date == game_date)
        if status is not None:
            query = query.filter(Game.status == status)
        return query.order_by(Game.start_time.asc(), Game.id.asc()).all()

    def last_settled_at(self, start: date, end: date) -> Optional[datetime]:
        """Most recent settlement instant among final games in [start, end]."""
        return self.db.query(func.max(Game.settled_at)).filter(
            Game.status == GameStatus.FINAL.value,
            Game.game_date >= start,
            Game.game_date <= end,
        ).scalar()

    # ========================================================================
    # Status transitions
    # ========================================================================

    def mark_started(self, game_id: int, now: datetime) -> int:
        """Move a scheduled game to in_progress. Returns rows changed."""
        result = self.db.execute(
            update(Game)
            .where(Game.id == game_id, Game.status == GameStatus.SCHEDULED.value)
            .values(status=GameStatus.IN_PROGRESS.value, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def touch_open(self, game_id: int, now: datetime) -> int:
        """
        Bump updated_at on a game that is not final. Returns rows changed.

        Used inside a write transaction to lock the game row against a
        concurrent settlement; 0 means the game is already final.
        """
        result = self.db.execute(
            update(Game)
            .where(Game.id == game_id, Game.status != GameStatus.FINAL.value)
            .values(updated_at=now)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def mark_final(self, game_id: int, home_score: int, away_score: int, now: datetime) -> int:
        """
        Conditionally settle a game.

        The WHERE clause excludes games that are already final, so of two
        writers racing on the same row at most one sees rowcount 1.
        """
        result = self.db.execute(
            update(Game)
            .where(Game.id == game_id, Game.status != GameStatus.FINAL.value)
            .values(
                status=GameStatus.FINAL.value,
                home_score=home_score,
                away_score=away_score,
                settled_at=now,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount
