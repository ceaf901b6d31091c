"""
Pydantic request/response schemas.

These are the typed entities shared by the HTTP routes and the client
facade. Write schemas carry the entity invariants (confidence bounds, pick
side vs. pick type, closed category set); response schemas are built from
ORM rows with from_attributes.
"""
from datetime import date, datetime
from typing import Any, Dict, List, Literal, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from app.core.exceptions import ValidationError
from app.models.enums import (
    GameStatus, NewsCategory, NewsImpact, PickSide, PickType, PredictionTier, PICK_SIDES
)
from app.utils.timezone import as_utc

SchemaT = TypeVar("SchemaT", bound=BaseModel)


def parse_payload(schema: Type[SchemaT], payload: Any) -> SchemaT:
    """
    Coerce a dict (or an instance) into a write schema.

    Raises:
        ValidationError: with pydantic's error list as details
    """
    if isinstance(payload, schema):
        return payload
    try:
        return schema.model_validate(payload)
    except PydanticValidationError as e:
        errors = [
            {"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
            for err in e.errors()
        ]
        raise ValidationError(f"Invalid {schema.__name__} payload", errors) from e


def _utc(value: Optional[datetime]) -> Optional[datetime]:
    return as_utc(value) if value is not None else None


# =============================================================================
# GAMES
# =============================================================================

class GameCreate(BaseModel):
    """Schedule a game. start_time may be aware or naive UTC."""
    model_config = ConfigDict(extra="forbid")

    external_id: str = Field(..., min_length=1, max_length=100)
    home_team: str = Field(..., min_length=1, max_length=100)
    away_team: str = Field(..., min_length=1, max_length=100)
    home_team_abbreviation: str = Field(..., min_length=2, max_length=5)
    away_team_abbreviation: str = Field(..., min_length=2, max_length=5)
    home_team_record: Optional[str] = None
    away_team_record: Optional[str] = None
    home_team_moneyline: Optional[int] = None
    away_team_moneyline: Optional[int] = None
    start_time: datetime

    @field_validator("home_team_abbreviation", "away_team_abbreviation")
    @classmethod
    def _upper(cls, value: str) -> str:
        return value.strip().upper()

    @model_validator(mode="after")
    def _distinct_teams(self):
        if self.home_team_abbreviation == self.away_team_abbreviation:
            raise ValueError("home and away team must differ")
        return self


class GameUpdate(BaseModel):
    """Schedule/odds corrections. Status and score only change via start/settle."""
    model_config = ConfigDict(extra="forbid")

    home_team_record: Optional[str] = None
    away_team_record: Optional[str] = None
    home_team_moneyline: Optional[int] = None
    away_team_moneyline: Optional[int] = None
    start_time: Optional[datetime] = None


class SettleRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    home_score: int = Field(..., ge=0)
    away_score: int = Field(..., ge=0)


class GameResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    external_id: str
    home_team: str
    away_team: str
    home_team_abbreviation: str
    away_team_abbreviation: str
    home_team_record: Optional[str] = None
    away_team_record: Optional[str] = None
    home_team_moneyline: Optional[int] = None
    away_team_moneyline: Optional[int] = None
    start_time: datetime
    game_date: date
    status: GameStatus
    home_score: Optional[int] = None
    away_score: Optional[int] = None
    settled_at: Optional[datetime] = None

    utc_times = field_validator("start_time", "settled_at")(_utc)


# =============================================================================
# PREDICTIONS
# =============================================================================

class _PredictionFields(BaseModel):
    """Validation shared by create and update."""
    model_config = ConfigDict(extra="forbid")

    confidence_scale: Literal[1, 100] = 1
    home_win_probability: Optional[float] = Field(None, ge=0, le=1)
    away_win_probability: Optional[float] = Field(None, ge=0, le=1)

    def _normalized_confidence(self, confidence: float) -> float:
        if not 0 <= confidence <= self.confidence_scale:
            raise ValueError(
                f"confidence {confidence} outside declared scale [0, {self.confidence_scale}]"
            )
        return confidence / self.confidence_scale


class PredictionCreate(_PredictionFields):
    """
    Publish the pick for a game.

    confidence is reported on confidence_scale (1 or 100) and stored on
    [0, 1]; recommended_bet defaults to a label derived from the pick.
    """
    game_id: int
    pick_type: PickType
    pick_side: PickSide
    line: Optional[float] = None
    recommended_bet: Optional[str] = Field(None, max_length=100)
    confidence: float
    analysis: str = ""
    tier: PredictionTier = PredictionTier.BASIC
    model_version: Optional[str] = Field(None, max_length=20)
    generated_at: Optional[datetime] = None

    @model_validator(mode="after")
    def _check_pick(self):
        if self.pick_side not in PICK_SIDES[self.pick_type]:
            raise ValueError(f"pick_side '{self.pick_side.value}' is not valid for {self.pick_type.value} picks")
        if self.pick_type == PickType.TOTAL and self.line is None:
            raise ValueError("total picks require a line")
        if self.pick_type == PickType.MONEYLINE:
            self.line = None
        self.confidence = self._normalized_confidence(self.confidence)
        self.confidence_scale = 1
        return self


class PredictionUpdate(_PredictionFields):
    """Revise a pick before its game is final; omitted fields are left alone."""
    pick_type: Optional[PickType] = None
    pick_side: Optional[PickSide] = None
    line: Optional[float] = None
    recommended_bet: Optional[str] = Field(None, max_length=100)
    confidence: Optional[float] = None
    analysis: Optional[str] = None
    tier: Optional[PredictionTier] = None
    model_version: Optional[str] = Field(None, max_length=20)

    @model_validator(mode="after")
    def _normalize(self):
        if self.confidence is not None:
            self.confidence = self._normalized_confidence(self.confidence)
            self.confidence_scale = 1
        return self

    def changes(self) -> Dict[str, Any]:
        return self.model_dump(exclude_unset=True, exclude={"confidence_scale"})


class PredictionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    game_id: int
    pick_type: PickType
    pick_side: PickSide
    line: Optional[float] = None
    recommended_bet: str
    confidence: float
    home_win_probability: Optional[float] = None
    away_win_probability: Optional[float] = None
    analysis: str
    tier: PredictionTier
    model_version: Optional[str] = None
    created_at: datetime
    premium_locked: bool = False

    utc_times = field_validator("created_at")(_utc)


class GameWithPrediction(GameResponse):
    prediction: Optional[PredictionResponse] = None


# =============================================================================
# NEWS
# =============================================================================

def _parse_category(value: Any) -> Any:
    if isinstance(value, NewsCategory) or value is None:
        return value
    category = NewsCategory.parse(str(value))
    if category is None:
        allowed = ", ".join(c.value for c in NewsCategory)
        raise ValueError(f"unknown category '{value}' (expected one of: {allowed})")
    return category


def _parse_impact(value: Any) -> Any:
    if isinstance(value, str):
        return value.strip().lower()
    return value


class NewsCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: str = Field(..., min_length=1, max_length=300)
    excerpt: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)
    category: NewsCategory
    impact: NewsImpact = NewsImpact.MEDIUM
    image_url: Optional[str] = Field(None, max_length=500)
    teams: List[str] = Field(default_factory=list)
    publish_date: Optional[datetime] = None

    check_category = field_validator("category", mode="before")(_parse_category)
    check_impact = field_validator("impact", mode="before")(_parse_impact)


class NewsUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = Field(None, min_length=1, max_length=300)
    excerpt: Optional[str] = None
    content: Optional[str] = None
    category: Optional[NewsCategory] = None
    impact: Optional[NewsImpact] = None
    image_url: Optional[str] = Field(None, max_length=500)
    teams: Optional[List[str]] = None

    check_category = field_validator("category", mode="before")(_parse_category)
    check_impact = field_validator("impact", mode="before")(_parse_impact)


class NewsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    excerpt: str
    content: str
    category: NewsCategory
    impact: NewsImpact
    image_url: Optional[str] = None
    teams: List[str] = Field(default_factory=list)
    publish_date: datetime

    utc_times = field_validator("publish_date")(_utc)


# =============================================================================
# ANALYTICS
# =============================================================================

class ConfidenceBucket(BaseModel):
    """Accuracy of picks whose confidence fell in [lower, upper)."""
    lower: float
    upper: float
    evaluated: int
    correct: int
    accuracy: Optional[float] = None


class HighConfidenceSlice(BaseModel):
    threshold: float
    evaluated: int
    correct: int
    accuracy: Optional[float] = None


class TrendPoint(BaseModel):
    period_start: date
    evaluated: int
    correct: int
    accuracy: Optional[float] = None


class PerformanceRecord(BaseModel):
    """
    Derived accuracy over an inclusive date range. accuracy is None when no
    prediction in the range could be graded ("no data", not "0% accurate").
    """
    start: date
    end: date
    granularity: Literal["day", "week"] = "week"
    evaluated: int
    correct: int
    ungraded: int = 0
    accuracy: Optional[float] = None
    by_confidence: List[ConfidenceBucket] = Field(default_factory=list)
    high_confidence: HighConfidenceSlice
    trend: List[TrendPoint] = Field(default_factory=list)
    last_settled_at: Optional[datetime] = None


class AnalyticsSummary(BaseModel):
    as_of: date
    total_picks_analyzed: int
    overall_win_rate: Optional[float] = None
    high_confidence_threshold: float
    high_confidence_picks: int
    high_confidence_win_rate: Optional[float] = None


# =============================================================================
# SUBSCRIPTION PLANS
# =============================================================================

class SubscriptionPlanCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1, max_length=50)
    price: int = Field(..., ge=0, description="Price in cents")
    description: str
    features: List[str] = Field(default_factory=list)


class SubscriptionPlanResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    price: int
    description: str
    features: List[str] = Field(default_factory=list)


# =============================================================================
# ERRORS
# =============================================================================

class ErrorBody(BaseModel):
    code: str
    message: str
    details: Optional[Any] = None


class ErrorResponse(BaseModel):
    error: ErrorBody
