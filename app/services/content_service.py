"""
Content Service

Writes for the published content attached to games and the site's
catalogue: predictions, news items and subscription plans.

A prediction belongs to exactly one game and is frozen once that game is
final, so graded picks can never be rewritten after the fact.
"""
import logging
from typing import Any, List, Optional

from app.core import metrics
from app.core.circuit_breaker import store_protected
from app.core.events import NEWS_CREATED, NEWS_UPDATED, PLAN_CREATED, PREDICTION_CREATED, PREDICTION_UPDATED
from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.models import Game, GameStatus, News, PickSide, PickType, Prediction, SubscriptionPlan, PICK_SIDES
from app.models.schemas import (
    NewsCreate, NewsUpdate, PredictionCreate, PredictionUpdate, SubscriptionPlanCreate, parse_payload
)
from app.repositories import GameRepository, NewsRepository, PlanRepository, PredictionRepository
from app.services.base_service import StoreService, game_lock
from app.utils.timezone import to_utc_naive

logger = logging.getLogger(__name__)

NON_NULLABLE_PREDICTION_FIELDS = ("pick_type", "pick_side", "tier", "recommended_bet", "confidence", "analysis")


def recommended_bet_label(game: Game, pick_type: str, pick_side: str, line: Optional[float]) -> str:
    """
    Display label for a pick.

    Example:
        >>> recommended_bet_label(game, "moneyline", "home", None)
        'NYY ML'
        >>> recommended_bet_label(game, "total", "over", 8.5)
        'Over 8.5'
    """
    if pick_type == PickType.TOTAL.value:
        return f"{pick_side.capitalize()} {line:g}"
    team = game.home_team_abbreviation if pick_side == PickSide.HOME.value else game.away_team_abbreviation
    return f"{team} ML"


class ContentService(StoreService):
    """Create, read and update predictions, news and subscription plans."""

    def __init__(self, db, clock=None, bus=None):
        super().__init__(db, clock=clock, bus=bus)
        self.games = GameRepository(db)
        self.predictions = PredictionRepository(db)
        self.news = NewsRepository(db)
        self.plans = PlanRepository(db)

    # ========================================================================
    # Predictions
    # ========================================================================

    @store_protected
    def create_prediction(self, payload: Any) -> Prediction:
        """
        Publish the pick for a game.

        Raises:
            ValidationError: malformed payload, or the game is already final
            NotFoundError: the referenced game does not exist
            ConflictError: the game already has a prediction
        """
        data = parse_payload(PredictionCreate, payload)
        now = self._now()

        with game_lock(data.game_id):
            with self._transaction(f"Game {data.game_id} already has a prediction"):
                game = self._require(Game, data.game_id, "Game")
                self._ensure_open(game)
                if self.predictions.find_by_game(game.id) is not None:
                    raise ConflictError(f"Game {game.id} already has a prediction", {"game_id": game.id})

                fields = data.model_dump(exclude={"confidence_scale", "generated_at"})
                fields["pick_type"] = data.pick_type.value
                fields["pick_side"] = data.pick_side.value
                fields["tier"] = data.tier.value
                if not fields.get("recommended_bet"):
                    fields["recommended_bet"] = recommended_bet_label(game, data.pick_type.value, data.pick_side.value, data.line)
                created_at = to_utc_naive(data.generated_at) if data.generated_at else now

                self._hold_open(game, now)
                prediction = self.predictions.add(Prediction(**fields, created_at=created_at, updated_at=now))

        metrics.predictions_written_total.labels(operation="create").inc()
        logger.info(f"Published prediction {prediction.id} for game {game.id}: {prediction.recommended_bet} ({prediction.confidence:.2f})")
        self._publish(PREDICTION_CREATED, prediction.id, game.game_date)
        return prediction

    @store_protected
    def get_prediction(self, prediction_id: int) -> Prediction:
        return self._require(Prediction, prediction_id, "Prediction")

    @store_protected
    def get_prediction_for_game(self, game_id: int) -> Optional[Prediction]:
        """The game's prediction, or None when none was published."""
        self._require(Game, game_id, "Game")
        return self.predictions.find_by_game(game_id)

    @store_protected
    def update_prediction(self, prediction_id: int, payload: Any) -> Prediction:
        """
        Revise a pick while its game is still open.

        The pick is re-checked as a whole after the change: switching
        pick_type requires a matching pick_side (and a line for totals).
        Moneyline picks carry no line.
        """
        data = parse_payload(PredictionUpdate, payload)
        changes = data.changes()
        for required in NON_NULLABLE_PREDICTION_FIELDS:
            if required in changes and changes[required] is None:
                raise ValidationError(f"'{required}' cannot be cleared", {"field": required})

        game_id = self._require(Prediction, prediction_id, "Prediction").game_id
        now = self._now()

        with game_lock(game_id):
            with self._transaction():
                prediction = self._require(Prediction, prediction_id, "Prediction")
                game = self._require(Game, prediction.game_id, "Game")
                self._ensure_open(game)

                for key in ("pick_type", "pick_side", "tier"):
                    if key in changes:
                        changes[key] = changes[key].value
                pick_type = changes.get("pick_type", prediction.pick_type)
                pick_side = changes.get("pick_side", prediction.pick_side)
                line = changes["line"] if "line" in changes else prediction.line

                if PickSide(pick_side) not in PICK_SIDES[PickType(pick_type)]:
                    raise ValidationError(f"pick_side '{pick_side}' is not valid for {pick_type} picks")
                if pick_type == PickType.TOTAL.value and line is None:
                    raise ValidationError("total picks require a line")
                if pick_type == PickType.MONEYLINE.value and line is not None:
                    line = changes["line"] = None

                pick_changed = any(key in changes for key in ("pick_type", "pick_side", "line"))
                if pick_changed and "recommended_bet" not in changes:
                    changes["recommended_bet"] = recommended_bet_label(game, pick_type, pick_side, line)

                self._hold_open(game, now)
                self.predictions.apply(prediction, changes)
                prediction.updated_at = now

        metrics.predictions_written_total.labels(operation="update").inc()
        self._publish(PREDICTION_UPDATED, prediction.id, game.game_date)
        return prediction

    def _ensure_open(self, game: Game) -> None:
        if game.status == GameStatus.FINAL.value:
            raise self._final_game_error(game.id)

    def _hold_open(self, game: Game, now) -> None:
        """
        Lock the game row for the rest of the transaction, or fail if a
        settlement committed since _ensure_open looked at it.
        """
        if self.games.touch_open(game.id, now) == 0:
            raise self._final_game_error(game.id)

    @staticmethod
    def _final_game_error(game_id: int) -> ValidationError:
        return ValidationError(
            f"Game {game_id} is final; its prediction can no longer change",
            {"game_id": game_id, "status": GameStatus.FINAL.value},
        )


    # ========================================================================
    # News
    # ========================================================================

    @store_protected
    def create_news(self, payload: Any) -> News:
        data = parse_payload(NewsCreate, payload)
        now = self._now()

        with self._transaction():
            item = self.news.add(News(
                **data.model_dump(exclude={"category", "impact", "publish_date"}),
                category=data.category.value,
                impact=data.impact.value,
                publish_date=to_utc_naive(data.publish_date) if data.publish_date else now,
                created_at=now,
            ))

        metrics.news_written_total.labels(operation="create").inc()
        logger.info(f"Published news {item.id} [{item.category}] {item.title!r}")
        self._publish(NEWS_CREATED, item.id)
        return item

    @store_protected
    def get_news(self, news_id: int) -> News:
        return self._require(News, news_id, "News")

    @store_protected
    def update_news(self, news_id: int, payload: Any) -> News:
        data = parse_payload(NewsUpdate, payload)
        changes = data.model_dump(exclude_unset=True)

        with self._transaction():
            item = self._require(News, news_id, "News")
            for key, value in list(changes.items()):
                if value is None and key != "image_url":
                    raise ValidationError(f"'{key}' cannot be cleared", {"field": key})
                if key in ("category", "impact"):
                    changes[key] = value.value
            self.news.apply(item, changes)

        metrics.news_written_total.labels(operation="update").inc()
        self._publish(NEWS_UPDATED, item.id)
        return item

    # ========================================================================
    # Subscription plans
    # ========================================================================

    @store_protected
    def create_plan(self, payload: Any) -> SubscriptionPlan:
        """Raises ConflictError when a plan with that name (any case) exists."""
        data = parse_payload(SubscriptionPlanCreate, payload)

        with self._transaction(f"Plan '{data.name}' already exists"):
            if self.plans.find_by_name(data.name) is not None:
                raise ConflictError(f"Plan '{data.name}' already exists", {"name": data.name})
            plan = self.plans.add(SubscriptionPlan(**data.model_dump(), created_at=self._now()))

        self._publish(PLAN_CREATED, plan.id)
        return plan

    @store_protected
    def list_plans(self) -> List[SubscriptionPlan]:
        return self.plans.find_all_by_price()

    @store_protected
    def get_plan_by_name(self, name: str) -> SubscriptionPlan:
        plan = self.plans.find_by_name(name)
        if plan is None:
            raise NotFoundError.for_entity("SubscriptionPlan", name)
        return plan
