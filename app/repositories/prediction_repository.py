"""
Prediction Repository for prediction data access.

Also owns the settled-prediction stream the analytics aggregator reads.
"""
from datetime import date
from typing import Iterator, List, Optional, Tuple

from app.models import Game, GameStatus, Prediction
from app.repositories.base import BaseRepository

STREAM_BATCH_SIZE = 500


class PredictionRepository(BaseRepository[Prediction]):
    """Repository for prediction data access."""

    def __init__(self, db):
        super().__init__(Prediction, db)

    def find_by_game(self, game_id: int) -> Optional[Prediction]:
        """The prediction for a game, if one was published."""
        return self.where_first(Prediction.game_id == game_id)

    def find_for_games(self, game_ids: List[int]) -> dict:
        """Predictions keyed by game id for a batch of games."""
        if not game_ids:
            return {}
        rows = self.db.query(Prediction).filter(Prediction.game_id.in_(game_ids)).all()
        return {p.game_id: p for p in rows}

    def stream_settled(
        self,
        start: Optional[date],
        end: date,
        batch_size: int = STREAM_BATCH_SIZE,
    ) -> Iterator[Tuple[Prediction, Game]]:
        """
        Yield (prediction, game) pairs for final games dated in [start, end].

        Rows are fetched in batches so a season-long range never has to sit
        in memory at once. A None start means "from the beginning".
        """
        query = (
            self.db.query(Prediction, Game)
            .join(Game, Prediction.game_id == Game.id)
            .filter(Game.status == GameStatus.FINAL.value, Game.game_date <= end)
        )
        if start is not None:
            query = query.filter(Game.game_date >= start)

        for prediction, game in query.order_by(Game.game_date, Game.id).yield_per(batch_size):
            yield prediction, game
