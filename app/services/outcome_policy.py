"""
Outcome policy: was a published pick correct?

A comparator looks at a prediction and its settled game and answers True
(correct), False (incorrect) or None (ungradeable: the game is not final, or
the result is a push). Ungradeable picks are excluded from accuracy
denominators rather than being counted as misses.

The aggregator takes any object satisfying OutcomeComparator, so alternative
grading rules (e.g. against the closing line) can be plugged in without
touching the aggregation code.
"""
from typing import Optional, Protocol

from app.models import Game, GameStatus, PickSide, PickType, Prediction


class OutcomeComparator(Protocol):
    def __call__(self, prediction: Prediction, game: Game) -> Optional[bool]:
        ...


def _is_settled(game: Game) -> bool:
    return (
        game.status == GameStatus.FINAL.value
        and game.home_score is not None
        and game.away_score is not None
    )


class MoneylineComparator:
    """Picked side against the winning side. A tied final is ungradeable."""

    def __call__(self, prediction: Prediction, game: Game) -> Optional[bool]:
        if not _is_settled(game) or game.home_score == game.away_score:
            return None
        winner = PickSide.HOME if game.home_score > game.away_score else PickSide.AWAY
        return prediction.pick_side == winner.value


class TotalComparator:
    """Combined runs against the line. Landing exactly on the line is a push."""

    def __call__(self, prediction: Prediction, game: Game) -> Optional[bool]:
        if not _is_settled(game) or prediction.line is None:
            return None
        total = game.home_score + game.away_score
        if total == prediction.line:
            return None
        went_over = total > prediction.line
        if prediction.pick_side == PickSide.OVER.value:
            return went_over
        if prediction.pick_side == PickSide.UNDER.value:
            return not went_over
        return None


class DefaultOutcomeComparator:
    """Dispatch on pick_type."""

    def __init__(self):
        self._by_type = {
            PickType.MONEYLINE.value: MoneylineComparator(),
            PickType.TOTAL.value: TotalComparator(),
        }

    def __call__(self, prediction: Prediction, game: Game) -> Optional[bool]:
        comparator = self._by_type.get(prediction.pick_type)
        if comparator is None:
            return None
        return comparator(prediction, game)


default_comparator = DefaultOutcomeComparator()
