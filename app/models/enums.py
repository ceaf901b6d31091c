"""
Closed value sets used at the data-model boundary.

Display styling (badge colors, labels) for categories and impact levels is a
presentation concern; the core only guarantees the value is one of these.
"""
import re
from enum import Enum
from typing import Optional


class GameStatus(str, Enum):
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    FINAL = "final"


class PickType(str, Enum):
    MONEYLINE = "moneyline"
    TOTAL = "total"


class PickSide(str, Enum):
    HOME = "home"
    AWAY = "away"
    OVER = "over"
    UNDER = "under"


PICK_SIDES = {
    PickType.MONEYLINE: frozenset({PickSide.HOME, PickSide.AWAY}),
    PickType.TOTAL: frozenset({PickSide.OVER, PickSide.UNDER}),
}


class PredictionTier(str, Enum):
    """Content tier of a prediction; anything above BASIC is premium."""
    BASIC = "basic"
    PRO = "pro"
    ELITE = "elite"


class NewsImpact(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class NewsCategory(str, Enum):
    INJURY_UPDATE = "injury-update"
    TEAM_NEWS = "team-news"
    ANALYTICS = "analytics"
    TRADE = "trade"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["NewsCategory"]:
        """
        Accept slug or display spellings.

        "Injury Update", "injury_update" and "injury-update" all resolve to
        INJURY_UPDATE. Returns None for anything outside the set.
        """
        if value is None:
            return None
        slug = re.sub(r"[\s_]+", "-", value.strip().lower())
        try:
            return cls(slug)
        except ValueError:
            return None
