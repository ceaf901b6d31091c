"""Tests for pick grading."""
from types import SimpleNamespace

import pytest

from app.services.outcome_policy import (
    DefaultOutcomeComparator, MoneylineComparator, TotalComparator
)


def _game(home, away, status="final"):
    return SimpleNamespace(status=status, home_score=home, away_score=away)


def _pick(pick_type, side, line=None):
    return SimpleNamespace(pick_type=pick_type, pick_side=side, line=line)


class TestMoneyline:
    @pytest.mark.parametrize("side,home,away,expected", [
        ("home", 5, 3, True),
        ("home", 2, 3, False),
        ("away", 2, 3, True),
        ("away", 5, 3, False),
    ])
    def test_picked_side_against_winner(self, side, home, away, expected):
        assert MoneylineComparator()(_pick("moneyline", side), _game(home, away)) is expected

    def test_tie_is_ungradeable(self):
        assert MoneylineComparator()(_pick("moneyline", "home"), _game(4, 4)) is None

    @pytest.mark.parametrize("status", ["scheduled", "in_progress"])
    def test_unfinished_game_is_ungradeable(self, status):
        assert MoneylineComparator()(_pick("moneyline", "home"), _game(5, 3, status)) is None


class TestTotals:
    @pytest.mark.parametrize("side,home,away,expected", [
        ("over", 5, 4, True),
        ("over", 3, 2, False),
        ("under", 3, 2, True),
        ("under", 5, 4, False),
    ])
    def test_total_against_line(self, side, home, away, expected):
        assert TotalComparator()(_pick("total", side, 8.5), _game(home, away)) is expected

    def test_landing_on_the_line_is_a_push(self):
        assert TotalComparator()(_pick("total", "over", 8.0), _game(5, 3)) is None


class TestDefaultComparator:
    def test_dispatches_on_pick_type(self):
        comparator = DefaultOutcomeComparator()

        assert comparator(_pick("moneyline", "away"), _game(1, 2)) is True
        assert comparator(_pick("total", "under", 7.5), _game(1, 2)) is True

    def test_unknown_pick_type_is_ungradeable(self):
        assert DefaultOutcomeComparator()(_pick("run_line", "home", -1.5), _game(5, 1)) is None
