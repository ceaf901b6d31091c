"""
Picks Service

Read side for the daily slate: games for a reporting-zone calendar date,
each paired with its prediction (if one was published), plus single-game
detail.

Premium gating happens here, not in the routes: a caller without premium
access sees basic-tier picks in full, while pro and elite picks keep the
pick and confidence but lose the full analysis text and win probabilities.
"""
import logging
from datetime import date, datetime
from typing import Callable, List, Optional, Union

from sqlalchemy.orm import Session

from app.core.circuit_breaker import store_protected
from app.core.exceptions import NotFoundError
from app.models import Game, Prediction, PredictionTier
from app.models.schemas import GameResponse, GameWithPrediction, PredictionResponse
from app.repositories import GameRepository, PredictionRepository
from app.utils.timezone import parse_iso_date, reporting_today, utc_now

logger = logging.getLogger(__name__)

ANALYSIS_PREVIEW_CHARS = 100
UPGRADE_SUFFIX = "... Upgrade for full analysis"
PREMIUM_TIERS = frozenset({PredictionTier.PRO.value, PredictionTier.ELITE.value})


def redact_prediction(prediction: Prediction, premium: bool) -> PredictionResponse:
    """Render a prediction for a caller with or without premium access."""
    response = PredictionResponse.model_validate(prediction)
    if premium or prediction.tier not in PREMIUM_TIERS:
        return response

    return response.model_copy(update={
        "analysis": (prediction.analysis or "")[:ANALYSIS_PREVIEW_CHARS] + UPGRADE_SUFFIX,
        "home_win_probability": None,
        "away_win_probability": None,
        "premium_locked": True,
    })


class PicksService:
    """
    Today's picks, picks by date and game detail.

    Args:
        db: SQLAlchemy database session
        clock: returns the current instant; "today" is its date in the
            reporting zone regardless of the server's local zone
    """

    def __init__(self, db: Session, clock: Optional[Callable[[], datetime]] = None):
        self.db = db
        self._clock = clock or utc_now
        self.games = GameRepository(db)
        self.predictions = PredictionRepository(db)

    def today(self) -> date:
        return reporting_today(self._clock())

    @store_protected
    def todays_games(self, premium: bool = False) -> List[GameWithPrediction]:
        """The slate for today in the reporting zone, earliest first pitch first."""
        return self._slate(self.today(), premium)

    @store_protected
    def games_by_date(self, game_date: Union[date, str], premium: bool = False) -> List[GameWithPrediction]:
        """
        The slate for an arbitrary calendar date.

        Raises:
            ValidationError: game_date is not a YYYY-MM-DD date
        """
        if not isinstance(game_date, date):
            game_date = parse_iso_date(game_date)
        return self._slate(game_date, premium)

    @store_protected
    def game_detail(self, game_id: int, premium: bool = False) -> GameWithPrediction:
        """Raises NotFoundError for an unknown game."""
        game = self.games.find_by_id(game_id)
        if game is None:
            raise NotFoundError.for_entity("Game", game_id)
        return self._with_prediction(game, self.predictions.find_by_game(game_id), premium)

    def _slate(self, game_date: date, premium: bool) -> List[GameWithPrediction]:
        games = self.games.find_by_date(game_date)
        by_game = self.predictions.find_for_games([g.id for g in games])
        logger.debug(f"Slate for {game_date}: {len(games)} games, {len(by_game)} predictions")
        return [self._with_prediction(game, by_game.get(game.id), premium) for game in games]

    def _with_prediction(self, game: Game, prediction: Optional[Prediction], premium: bool) -> GameWithPrediction:
        base = GameResponse.model_validate(game)
        return GameWithPrediction(
            **base.model_dump(),
            prediction=redact_prediction(prediction, premium) if prediction is not None else None,
        )
