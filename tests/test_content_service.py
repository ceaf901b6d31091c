"""Tests for prediction, news and subscription plan writes."""
from datetime import datetime

import pytest

from conftest import game_payload, moneyline_pick
from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.models import PICK_SIDES, News, PickType, Prediction


@pytest.fixture
def game(game_service):
    return game_service.create_game(game_payload("g1", datetime(2025, 6, 1, 23, 5)))


class TestCreatePrediction:
    """Publishing picks."""

    def test_confidence_on_unit_scale_is_stored_as_is(self, content_service, game):
        prediction = content_service.create_prediction(moneyline_pick(game.id, confidence=0.65))

        assert prediction.confidence == pytest.approx(0.65)
        assert prediction.recommended_bet == "NYY ML"

    def test_percent_confidence_is_normalized(self, content_service, game):
        prediction = content_service.create_prediction(
            moneyline_pick(game.id, confidence=78, confidence_scale=100)
        )

        assert prediction.confidence == pytest.approx(0.78)

    def test_confidence_outside_scale_is_rejected(self, content_service, game, db_session):
        with pytest.raises(ValidationError):
            content_service.create_prediction(moneyline_pick(game.id, confidence=78))

        assert db_session.query(Prediction).count() == 0

    def test_total_pick_label_and_line(self, content_service, game):
        prediction = content_service.create_prediction({
            "game_id": game.id,
            "pick_type": "total",
            "pick_side": "over",
            "line": 8.5,
            "confidence": 0.6,
        })

        assert prediction.recommended_bet == "Over 8.5"

    def test_moneyline_pick_stores_no_line(self, content_service, game):
        prediction = content_service.create_prediction(moneyline_pick(game.id, line=-140))

        assert prediction.line is None

    def test_total_without_line_is_rejected(self, content_service, game):
        with pytest.raises(ValidationError):
            content_service.create_prediction({
                "game_id": game.id, "pick_type": "total", "pick_side": "under", "confidence": 0.6,
            })

    def test_side_must_match_pick_type(self, content_service, game):
        with pytest.raises(ValidationError):
            content_service.create_prediction(moneyline_pick(game.id, side="over"))

    @pytest.mark.parametrize("side", sorted(PICK_SIDES[PickType.TOTAL], key=str))
    def test_total_sides_are_not_moneyline_sides(self, content_service, game, side):
        assert side not in PICK_SIDES[PickType.MONEYLINE]

        with pytest.raises(ValidationError):
            content_service.create_prediction(moneyline_pick(game.id, side=side.value))

    def test_unknown_game_is_not_found(self, content_service):
        with pytest.raises(NotFoundError):
            content_service.create_prediction(moneyline_pick(12345))

    def test_second_prediction_for_game_conflicts(self, content_service, game):
        content_service.create_prediction(moneyline_pick(game.id))

        with pytest.raises(ConflictError):
            content_service.create_prediction(moneyline_pick(game.id, side="away"))

    def test_final_game_takes_no_new_prediction(self, content_service, game_service, game):
        game_service.settle_game(game.id, 3, 2)

        with pytest.raises(ValidationError):
            content_service.create_prediction(moneyline_pick(game.id))

    def test_get_prediction_for_game(self, content_service, game):
        assert content_service.get_prediction_for_game(game.id) is None

        created = content_service.create_prediction(moneyline_pick(game.id))

        assert content_service.get_prediction_for_game(game.id).id == created.id
        assert content_service.get_prediction(created.id).game_id == game.id


class TestUpdatePrediction:
    """Revising picks before first pitch."""

    def test_switching_to_total_relabels(self, content_service, game):
        prediction = content_service.create_prediction(moneyline_pick(game.id))

        updated = content_service.update_prediction(prediction.id, {
            "pick_type": "total", "pick_side": "under", "line": 7.5,
        })

        assert updated.recommended_bet == "Under 7.5"

    def test_switching_type_without_matching_side_is_rejected(self, content_service, game):
        prediction = content_service.create_prediction(moneyline_pick(game.id))

        with pytest.raises(ValidationError):
            content_service.update_prediction(prediction.id, {"pick_type": "total", "line": 7.5})

        assert content_service.get_prediction(prediction.id).pick_type == "moneyline"

    def test_confidence_update_is_normalized(self, content_service, game):
        prediction = content_service.create_prediction(moneyline_pick(game.id))

        updated = content_service.update_prediction(prediction.id, {"confidence": 55, "confidence_scale": 100})

        assert updated.confidence == pytest.approx(0.55)

    def test_prediction_is_frozen_once_final(self, content_service, game_service, game):
        prediction = content_service.create_prediction(moneyline_pick(game.id))
        game_service.settle_game(game.id, 3, 2)

        with pytest.raises(ValidationError):
            content_service.update_prediction(prediction.id, {"confidence": 0.9})

    def test_missing_prediction(self, content_service):
        with pytest.raises(NotFoundError):
            content_service.update_prediction(77, {"confidence": 0.5})

    @pytest.mark.parametrize(
        "field", ["pick_type", "pick_side", "tier", "recommended_bet", "confidence", "analysis"]
    )
    def test_required_field_cannot_be_cleared(self, content_service, game, field):
        prediction = content_service.create_prediction(moneyline_pick(game.id))

        with pytest.raises(ValidationError) as exc_info:
            content_service.update_prediction(prediction.id, {field: None})

        assert exc_info.value.details == {"field": field}
        assert content_service.get_prediction(prediction.id).recommended_bet == "NYY ML"

    def test_switching_total_to_moneyline_drops_line(self, content_service, game):
        prediction = content_service.create_prediction({
            "game_id": game.id, "pick_type": "total", "pick_side": "over", "line": 8.5, "confidence": 0.6,
        })

        updated = content_service.update_prediction(prediction.id, {"pick_type": "moneyline", "pick_side": "home"})

        assert updated.line is None
        assert updated.recommended_bet == "NYY ML"

    def test_line_on_moneyline_update_is_ignored(self, content_service, game):
        prediction = content_service.create_prediction(moneyline_pick(game.id))

        updated = content_service.update_prediction(prediction.id, {"line": 7.5})

        assert updated.line is None
        assert updated.recommended_bet == "NYY ML"


class TestNewsWrites:
    """Publishing and correcting news."""

    def test_category_display_name_is_normalized(self, content_service):
        item = content_service.create_news({
            "title": "Ace lands on IL",
            "excerpt": "Shoulder inflammation.",
            "content": "Full story.",
            "category": "Injury Update",
            "impact": "HIGH",
        })

        assert item.category == "injury-update"
        assert item.impact == "high"
        assert item.teams == []

    def test_unknown_category_is_rejected(self, content_service, db_session):
        with pytest.raises(ValidationError):
            content_service.create_news({
                "title": "t", "excerpt": "e", "content": "c", "category": "rumors",
            })

        assert db_session.query(News).count() == 0

    def test_update_news(self, content_service):
        item = content_service.create_news({
            "title": "t", "excerpt": "e", "content": "c", "category": "trade",
        })

        updated = content_service.update_news(item.id, {"title": "Deadline deal done", "category": "team_news"})

        assert updated.title == "Deadline deal done"
        assert updated.category == "team-news"

    def test_get_missing_news(self, content_service):
        with pytest.raises(NotFoundError):
            content_service.get_news(1)


class TestPlans:
    """Subscription plan catalogue."""

    def test_plans_listed_cheapest_first(self, content_service):
        content_service.create_plan({"name": "Elite", "price": 9900, "description": "d"})
        content_service.create_plan({"name": "Basic", "price": 2900, "description": "d", "features": ["a"]})

        assert [p.name for p in content_service.list_plans()] == ["Basic", "Elite"]

    def test_lookup_is_case_insensitive(self, content_service):
        content_service.create_plan({"name": "Pro", "price": 5900, "description": "d"})

        assert content_service.get_plan_by_name("pRO").price == 5900

    def test_duplicate_name_conflicts(self, content_service):
        content_service.create_plan({"name": "Pro", "price": 5900, "description": "d"})

        with pytest.raises(ConflictError):
            content_service.create_plan({"name": "pro", "price": 1, "description": "d"})

    def test_unknown_plan(self, content_service):
        with pytest.raises(NotFoundError):
            content_service.get_plan_by_name("Platinum")
