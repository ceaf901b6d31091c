"""
Game Service

Schedules games and moves them through their lifecycle:

    scheduled -> in_progress -> final

Transitions only go forward. Settlement (-> final) is serialized per game:
an in-process lock keeps threads of this process from interleaving, and the
conditional UPDATE in GameRepository.mark_final keeps writers in other
processes from both settling the same row. Re-settling with the same score
is a no-op; with a different score it is a ConflictError.
"""
import logging
from datetime import date
from typing import Any, List, Optional

from app.core import metrics
from app.core.circuit_breaker import store_protected
from app.core.events import GAME_CREATED, GAME_SETTLED, GAME_STARTED, GAME_UPDATED
from app.core.exceptions import ConflictError, ValidationError
from app.models import Game, GameStatus
from app.models.schemas import GameCreate, GameUpdate, SettleRequest, parse_payload
from app.repositories import GameRepository
from app.services.base_service import StoreService, game_lock
from app.utils.timezone import reporting_date, to_utc_naive

logger = logging.getLogger(__name__)


class GameService(StoreService):
    """Create, read, update and settle games."""

    def __init__(self, db, clock=None, bus=None):
        super().__init__(db, clock=clock, bus=bus)
        self.games = GameRepository(db)

    # ========================================================================
    # Reads
    # ========================================================================

    @store_protected
    def get_game(self, game_id: int) -> Game:
        """Raises NotFoundError if the game does not exist."""
        return self._require(Game, game_id, "Game")

    @store_protected
    def list_games(self, game_date: Optional[date] = None, status: Optional[str] = None) -> List[Game]:
        if status is not None:
            try:
                status = GameStatus(status).value
            except ValueError:
                allowed = ", ".join(s.value for s in GameStatus)
                raise ValidationError(f"Unknown status '{status}' (expected one of: {allowed})")
        return self.games.find_filtered(game_date=game_date, status=status)

    # ========================================================================
    # Writes
    # ========================================================================

    @store_protected
    def create_game(self, payload: Any) -> Game:
        """
        Schedule a game.

        game_date is derived here from start_time in the reporting zone and
        never supplied by the caller.

        Raises:
            ValidationError: malformed payload
            ConflictError: external_id already used
        """
        data = parse_payload(GameCreate, payload)
        start_time = to_utc_naive(data.start_time)
        now = self._now()

        if self.games.find_by_external_id(data.external_id) is not None:
            raise ConflictError(
                f"Game with external_id '{data.external_id}' already exists",
                {"external_id": data.external_id},
            )

        with self._transaction(f"Game with external_id '{data.external_id}' already exists"):
            game = self.games.add(Game(
                **data.model_dump(exclude={"start_time"}),
                start_time=start_time,
                game_date=reporting_date(start_time),
                status=GameStatus.SCHEDULED.value,
                created_at=now,
                updated_at=now,
            ))

        logger.info(f"Created game {game.id} ({game.away_team_abbreviation}@{game.home_team_abbreviation} on {game.game_date})")
        self._publish(GAME_CREATED, game.id, game.game_date)
        return game

    @store_protected
    def update_game(self, game_id: int, payload: Any) -> Game:
        """
        Correct schedule or odds fields. Status and score are never touched
        here; use start_game / settle_game.

        Raises:
            NotFoundError: unknown game
            ValidationError: malformed payload, or rescheduling a game that
                has already started
        """
        data = parse_payload(GameUpdate, payload)
        changes = data.model_dump(exclude_unset=True)

        with self._transaction():
            game = self._require(Game, game_id, "Game")
            if "start_time" in changes:
                if changes["start_time"] is None:
                    raise ValidationError("start_time cannot be cleared", {"field": "start_time"})
                if game.status != GameStatus.SCHEDULED.value:
                    raise ValidationError(
                        f"Game {game_id} is {game.status}; only scheduled games can be rescheduled",
                        {"status": game.status},
                    )
                changes["start_time"] = to_utc_naive(changes["start_time"])
                changes["game_date"] = reporting_date(changes["start_time"])
            self.games.apply(game, changes)
            game.updated_at = self._now()

        self._publish(GAME_UPDATED, game.id, game.game_date)
        return game

    @store_protected
    def start_game(self, game_id: int) -> Game:
        """
        scheduled -> in_progress. Starting an in-progress game is a no-op.

        Raises:
            NotFoundError: unknown game
            ValidationError: the game is already final
        """
        with self._transaction():
            game = self._require(Game, game_id, "Game")
            if game.status == GameStatus.FINAL.value:
                raise ValidationError(f"Game {game_id} is already final", {"status": game.status})
            if game.status == GameStatus.IN_PROGRESS.value:
                return game
            changed = self.games.mark_started(game_id, self._now())

        self.db.refresh(game)
        if changed == 0:
            if game.status == GameStatus.FINAL.value:
                raise ValidationError(f"Game {game_id} is already final", {"status": game.status})
            return game

        logger.info(f"Game {game_id} started")
        self._publish(GAME_STARTED, game.id, game.game_date)
        return game

    @store_protected
    def settle_game(self, game_id: int, home_score: int, away_score: int) -> Game:
        """
        Record the final score and mark the game final.

        Exactly one of several concurrent settlements of the same game wins.
        A repeat with the same score returns the game unchanged and publishes
        nothing; a repeat with a different score raises ConflictError.

        Raises:
            NotFoundError: unknown game
            ValidationError: negative or missing scores
            ConflictError: already settled with a different score
        """
        scores = parse_payload(SettleRequest, {"home_score": home_score, "away_score": away_score})

        with game_lock(game_id):
            with self._transaction():
                game = self._require(Game, game_id, "Game")
                if game.status == GameStatus.FINAL.value:
                    changed = 0
                else:
                    changed = self.games.mark_final(
                        game_id, scores.home_score, scores.away_score, self._now()
                    )

            # Reads the stored row, including a settlement committed by
            # another process.
            self.db.refresh(game)
            if changed == 0:
                return self._settled_again(game, scores)

        metrics.record_settlement("settled")
        logger.info(f"Settled game {game_id}: {game.away_score}-{game.home_score} (away-home)")
        self._publish(GAME_SETTLED, game.id, game.game_date)
        return game

    def _settled_again(self, game: Game, scores: SettleRequest) -> Game:
        if game.home_score == scores.home_score and game.away_score == scores.away_score:
            metrics.record_settlement("unchanged")
            logger.debug(f"Game {game.id} already settled with the same score")
            return game

        metrics.record_settlement("conflict")
        logger.warning(
            f"Conflicting settlement for game {game.id}: stored {game.home_score}-{game.away_score}, "
            f"got {scores.home_score}-{scores.away_score} (home-away)"
        )
        raise ConflictError(
            f"Game {game.id} is already final with a different score",
            {
                "stored": {"home_score": game.home_score, "away_score": game.away_score},
                "requested": {"home_score": scores.home_score, "away_score": scores.away_score},
            },
        )
