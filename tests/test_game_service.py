"""
Tests for the game lifecycle: scheduling, starting and settlement.

Settlement is the one contended write in the system, so it is covered for
idempotency, conflicting repeats and two writers racing on the same game.
"""
import threading
from datetime import date, datetime

import pytest

from conftest import fixed_clock, game_payload, moneyline_pick
from app.core.events import GAME_CREATED, GAME_SETTLED, GAME_STARTED, EventBus
from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.models import Game, Prediction
from app.services.content_service import ContentService
from app.services.game_service import GameService


@pytest.fixture
def bus():
    return EventBus()


@pytest.fixture
def events(bus):
    received = []
    bus.subscribe(received.append)
    return received


@pytest.fixture
def service(db_session, bus):
    return GameService(db_session, clock=fixed_clock(datetime(2025, 6, 2, 4, 0)), bus=bus)


class TestCreateGame:
    """Scheduling games."""

    def test_game_date_is_taken_in_eastern_time(self, service):
        """A 10:10 PM ET first pitch is 02:10 UTC the next day but keeps its ET date."""
        game = service.create_game(game_payload("g1", datetime(2025, 6, 2, 2, 10)))

        assert game.id is not None
        assert game.game_date == date(2025, 6, 1)
        assert game.start_time == datetime(2025, 6, 2, 2, 10)
        assert game.status == "scheduled"

    def test_aware_start_time_is_stored_as_naive_utc(self, service):
        from zoneinfo import ZoneInfo

        start = datetime(2025, 6, 1, 19, 5, tzinfo=ZoneInfo("America/New_York"))
        game = service.create_game(game_payload("g1", start))

        assert game.start_time == datetime(2025, 6, 1, 23, 5)
        assert game.game_date == date(2025, 6, 1)

    def test_identifiers_are_assigned_by_the_store(self, service):
        first = service.create_game(game_payload("g1", datetime(2025, 6, 1, 23, 5)))
        second = service.create_game(game_payload("g2", datetime(2025, 6, 1, 23, 5)))

        assert second.id > first.id

    def test_duplicate_external_id_conflicts(self, service, db_session):
        service.create_game(game_payload("g1", datetime(2025, 6, 1, 23, 5)))

        with pytest.raises(ConflictError):
            service.create_game(game_payload("g1", datetime(2025, 6, 2, 23, 5)))

        assert db_session.query(Game).count() == 1

    def test_same_team_twice_is_rejected(self, service, db_session):
        with pytest.raises(ValidationError):
            service.create_game(game_payload("g1", datetime(2025, 6, 1, 23, 5), "NYY", "NYY"))

        assert db_session.query(Game).count() == 0

    def test_publishes_created_event(self, service, events):
        game = service.create_game(game_payload("g1", datetime(2025, 6, 1, 23, 5)))

        assert [(e.kind, e.entity_id, e.game_date) for e in events] == [
            (GAME_CREATED, game.id, date(2025, 6, 1))
        ]


class TestReadAndUpdate:
    """Lookups, listing and corrections."""

    def test_get_missing_game_raises_not_found(self, service):
        with pytest.raises(NotFoundError) as exc_info:
            service.get_game(999)

        assert exc_info.value.to_dict()["error"]["code"] == "NOT_FOUND"

    def test_list_games_filters_by_date_and_status(self, service):
        a = service.create_game(game_payload("a", datetime(2025, 6, 1, 23, 5)))
        service.create_game(game_payload("b", datetime(2025, 6, 2, 23, 5)))
        c = service.create_game(game_payload("c", datetime(2025, 6, 1, 17, 5)))
        service.start_game(a.id)

        assert [g.id for g in service.list_games(game_date=date(2025, 6, 1))] == [c.id, a.id]
        assert [g.id for g in service.list_games(status="in_progress")] == [a.id]

    def test_list_games_rejects_unknown_status(self, service):
        with pytest.raises(ValidationError):
            service.list_games(status="postponed")

    def test_reschedule_moves_game_date(self, service):
        game = service.create_game(game_payload("g1", datetime(2025, 6, 1, 23, 5)))

        updated = service.update_game(game.id, {"start_time": datetime(2025, 6, 3, 0, 30)})

        assert updated.game_date == date(2025, 6, 2)

    def test_update_rejects_status_field(self, service):
        game = service.create_game(game_payload("g1", datetime(2025, 6, 1, 23, 5)))

        with pytest.raises(ValidationError):
            service.update_game(game.id, {"status": "final"})

    def test_cannot_reschedule_started_game(self, service):
        game = service.create_game(game_payload("g1", datetime(2025, 6, 1, 23, 5)))
        service.start_game(game.id)

        with pytest.raises(ValidationError):
            service.update_game(game.id, {"start_time": datetime(2025, 6, 3, 0, 30)})

    def test_odds_can_be_corrected(self, service):
        game = service.create_game(game_payload("g1", datetime(2025, 6, 1, 23, 5)))

        updated = service.update_game(game.id, {"home_team_moneyline": -135})

        assert updated.home_team_moneyline == -135


class TestStartGame:
    """scheduled -> in_progress."""

    def test_start_is_idempotent(self, service, events):
        game = service.create_game(game_payload("g1", datetime(2025, 6, 1, 23, 5)))

        service.start_game(game.id)
        again = service.start_game(game.id)

        assert again.status == "in_progress"
        assert [e.kind for e in events].count(GAME_STARTED) == 1

    def test_cannot_start_final_game(self, service):
        game = service.create_game(game_payload("g1", datetime(2025, 6, 1, 23, 5)))
        service.settle_game(game.id, 5, 3)

        with pytest.raises(ValidationError):
            service.start_game(game.id)


class TestSettleGame:
    """-> final, with a score."""

    def test_settle_records_score(self, service):
        game = service.create_game(game_payload("g1", datetime(2025, 6, 1, 23, 5)))

        settled = service.settle_game(game.id, 5, 3)

        assert settled.status == "final"
        assert (settled.home_score, settled.away_score) == (5, 3)
        assert settled.settled_at == datetime(2025, 6, 2, 4, 0)

    def test_settle_from_scheduled_or_in_progress(self, service):
        scheduled = service.create_game(game_payload("g1", datetime(2025, 6, 1, 23, 5)))
        started = service.create_game(game_payload("g2", datetime(2025, 6, 1, 23, 5)))
        service.start_game(started.id)

        assert service.settle_game(scheduled.id, 1, 0).status == "final"
        assert service.settle_game(started.id, 0, 1).status == "final"

    def test_repeat_with_same_score_is_a_no_op(self, service, events):
        game = service.create_game(game_payload("g1", datetime(2025, 6, 1, 23, 5)))

        first = service.settle_game(game.id, 5, 3)
        settled_at = first.settled_at
        second = service.settle_game(game.id, 5, 3)

        assert second.settled_at == settled_at
        assert [e.kind for e in events].count(GAME_SETTLED) == 1

    def test_repeat_with_different_score_conflicts(self, service):
        game = service.create_game(game_payload("g1", datetime(2025, 6, 1, 23, 5)))
        service.settle_game(game.id, 5, 3)

        with pytest.raises(ConflictError) as exc_info:
            service.settle_game(game.id, 4, 3)

        assert exc_info.value.details["stored"] == {"home_score": 5, "away_score": 3}
        assert service.get_game(game.id).home_score == 5

    def test_negative_score_is_rejected(self, service):
        game = service.create_game(game_payload("g1", datetime(2025, 6, 1, 23, 5)))

        with pytest.raises(ValidationError):
            service.settle_game(game.id, -1, 3)

        assert service.get_game(game.id).status == "scheduled"

    def test_settle_missing_game(self, service):
        with pytest.raises(NotFoundError):
            service.settle_game(404, 1, 0)

    def test_settled_event_carries_game_date(self, service, events):
        game = service.create_game(game_payload("g1", datetime(2025, 6, 2, 2, 10)))

        service.settle_game(game.id, 2, 1)

        settled = [e for e in events if e.kind == GAME_SETTLED]
        assert settled[0].game_date == date(2025, 6, 1)


class TestConcurrentSettlement:
    """Two writers settling the same game at once."""

    def test_exactly_one_writer_wins(self, file_session_factory):
        bus = EventBus()
        settled_events = []
        bus.subscribe(lambda e: settled_events.append(e) if e.kind == GAME_SETTLED else None)

        setup = file_session_factory()
        game_id = GameService(setup, bus=bus).create_game(
            game_payload("race", datetime(2025, 6, 1, 23, 5))
        ).id
        setup.close()

        barrier = threading.Barrier(2)
        results = {}

        def settle(name, home, away):
            session = file_session_factory()
            try:
                barrier.wait()
                GameService(session, bus=bus).settle_game(game_id, home, away)
                results[name] = "settled"
            except ConflictError:
                results[name] = "conflict"
            finally:
                session.close()

        threads = [
            threading.Thread(target=settle, args=("a", 5, 3)),
            threading.Thread(target=settle, args=("b", 2, 7)),
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=10)

        assert sorted(results.values()) == ["conflict", "settled"]
        assert len(settled_events) == 1

        check = file_session_factory()
        stored = check.get(Game, game_id)
        winner = [name for name, result in results.items() if result == "settled"][0]
        expected = (5, 3) if winner == "a" else (2, 7)
        assert (stored.home_score, stored.away_score) == expected
        check.close()

    def test_conditional_update_rejects_second_writer(self, file_session_factory):
        """Without the in-process lock, the row-level condition still lets only one through."""
        from app.repositories import GameRepository

        setup = file_session_factory()
        game_id = GameService(setup, bus=EventBus()).create_game(
            game_payload("race", datetime(2025, 6, 1, 23, 5))
        ).id
        setup.close()

        first, second = file_session_factory(), file_session_factory()
        now = datetime(2025, 6, 2, 4, 0)

        assert GameRepository(first).mark_final(game_id, 5, 3, now) == 1
        first.commit()
        assert GameRepository(second).mark_final(game_id, 2, 7, now) == 0
        second.commit()

        first.close()
        second.close()

    def test_lock_registry_is_emptied_after_settlement(self, service):
        from app.services import base_service

        game = service.create_game(game_payload("g1", datetime(2025, 6, 1, 23, 5)))
        service.settle_game(game.id, 4, 1)

        assert base_service._game_locks == {}


class TestPredictionWriteRacesSettlement:
    """A pick written while the same game is being settled elsewhere."""

    @pytest.fixture
    def race(self, file_session_factory, monkeypatch):
        """
        Patch the open-game check so the game is settled by another session
        right after the writer has loaded it.
        """
        setup = file_session_factory()
        game_id = GameService(setup, bus=EventBus()).create_game(
            game_payload("race", datetime(2025, 6, 1, 23, 5))
        ).id
        setup.close()

        original = ContentService._ensure_open

        def settle_then_check(self, game):
            other = file_session_factory()
            try:
                GameService(other, bus=EventBus()).settle_game(game.id, 5, 3)
            finally:
                other.close()
            original(self, game)

        def arm():
            monkeypatch.setattr(ContentService, "_ensure_open", settle_then_check)

        return game_id, arm

    def test_update_after_concurrent_settlement_is_rejected(self, file_session_factory, race):
        game_id, arm = race
        session = file_session_factory()
        service = ContentService(session, bus=EventBus())
        prediction_id = service.create_prediction(moneyline_pick(game_id, side="home")).id
        arm()

        with pytest.raises(ValidationError) as exc_info:
            service.update_prediction(prediction_id, {"pick_side": "away"})
        session.close()

        assert exc_info.value.details["status"] == "final"
        check = file_session_factory()
        assert check.get(Prediction, prediction_id).pick_side == "home"
        check.close()

    def test_create_after_concurrent_settlement_is_rejected(self, file_session_factory, race):
        game_id, arm = race
        arm()
        session = file_session_factory()

        with pytest.raises(ValidationError):
            ContentService(session, bus=EventBus()).create_prediction(moneyline_pick(game_id))
        session.close()

        check = file_session_factory()
        assert check.query(Prediction).count() == 0
        assert check.get(Game, game_id).status == "final"
        check.close()
