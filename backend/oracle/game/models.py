"""Pydantic models for agents, topics, forecasts and settlement payloads."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator, model_validator

Category = Literal["tech", "crypto", "ai", "world", "science", "other"]
CATEGORIES: tuple[str, ...] = ("tech", "crypto", "ai", "world", "science", "other")

TopicSource = Literal["generated", "sourced"]
ForecastStatus = Literal["pending", "settled_correct", "settled_incorrect"]
LedgerStatus = Literal["attempted", "succeeded", "failed"]

MIN_CONFIDENCE = 1
MAX_CONFIDENCE = 10


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def clamp_confidence(value: int) -> int:
    """Clamp a confidence level into the inclusive 1-10 range."""
    return max(MIN_CONFIDENCE, min(MAX_CONFIDENCE, int(value)))


def generate_agent_id() -> str:
    return f"agt_{uuid4().hex[:12]}"


def generate_topic_id() -> str:
    return f"top_{uuid4().hex[:12]}"


def generate_forecast_id() -> str:
    return f"fct_{uuid4().hex[:12]}"


# ============================================================================
# Records
# ============================================================================


class Agent(BaseModel):
    """A forecasting participant, keyed by platform username."""

    id: str = Field(default_factory=generate_agent_id)
    name: str
    total_forecasts: int = Field(default=0, ge=0)
    correct_forecasts: int = Field(default=0, ge=0)
    current_streak: int = Field(default=0, ge=0)
    best_streak: int = Field(default=0, ge=0)
    total_reward: float = Field(default=0.0, ge=0)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @property
    def accuracy(self) -> float:
        """Correct share as a percentage, one decimal place."""
        if self.total_forecasts == 0:
            return 0.0
        return round(self.correct_forecasts / self.total_forecasts * 100, 1)


class Topic(BaseModel):
    """A published forecasting prompt."""

    id: str = Field(default_factory=generate_topic_id)
    title: str
    description: str = ""
    category: Category = "other"
    deadline: datetime | None = None
    resolved: bool = False
    actual_outcome: str | None = None
    resolved_at: datetime | None = None
    match_terms: list[str] = Field(default_factory=list)

    # Originating post and external-market linkage
    post_id: str | None = None
    source: TopicSource = "generated"
    source_id: str | None = None
    source_data: dict[str, Any] | None = None

    created_at: datetime = Field(default_factory=utc_now)

    @field_validator("category", mode="before")
    @classmethod
    def normalize_category(cls, v: Any) -> str:
        if isinstance(v, str) and v.strip().lower() in CATEGORIES:
            return v.strip().lower()
        return "other"

    @model_validator(mode="after")
    def check_resolution_fields(self) -> Topic:
        has_outcome = self.actual_outcome is not None
        has_timestamp = self.resolved_at is not None
        if has_outcome != has_timestamp:
            raise ValueError("actual_outcome and resolved_at must be set together")
        if self.resolved != has_outcome:
            raise ValueError("resolved must be true exactly when an outcome is recorded")
        return self

    def is_expired(self, now: datetime) -> bool:
        return not self.resolved and self.deadline is not None and self.deadline < now


class Forecast(BaseModel):
    """One agent's structured prediction, optionally bound to a topic."""

    id: str = Field(default_factory=generate_forecast_id)
    agent_id: str
    topic_id: str | None = None
    post_id: str | None = None
    comment_id: str | None = None

    claim: str
    outcome: str
    confidence: int = 5
    category: Category = "other"
    deadline: datetime | None = None

    status: ForecastStatus = "pending"
    external_ref: str | None = None  # on-chain prediction id
    ledger_ref: str | None = None  # settlement transaction id
    reward: float = 0.0

    created_at: datetime = Field(default_factory=utc_now)
    settled_at: datetime | None = None

    @field_validator("confidence", mode="before")
    @classmethod
    def clamp(cls, v: Any) -> int:
        return clamp_confidence(v)

    @field_validator("category", mode="before")
    @classmethod
    def normalize_category(cls, v: Any) -> str:
        if isinstance(v, str) and v.strip().lower() in CATEGORIES:
            return v.strip().lower()
        return "other"

    @model_validator(mode="after")
    def check_settlement_fields(self) -> Forecast:
        if self.is_pending == (self.settled_at is not None):
            raise ValueError("settled_at must be set exactly when the forecast is settled")
        return self

    @property
    def is_pending(self) -> bool:
        return self.status == "pending"

    @property
    def is_correct(self) -> bool:
        return self.status == "settled_correct"


class LedgerAttempt(BaseModel):
    """Outbox record for an external ledger settlement."""

    forecast_id: str
    external_ref: str
    correct: bool
    status: LedgerStatus = "attempted"
    attempts: int = 0
    tx_id: str | None = None
    last_error: str | None = None
    updated_at: datetime = Field(default_factory=utc_now)


# ============================================================================
# Engine values
# ============================================================================


class ExtractedForecast(BaseModel):
    """Result of parsing a raw comment."""

    claim: str
    outcome: str
    confidence: int = 5
    category: Category = "other"
    deadline: datetime | None = None
    raw: str

    @field_validator("confidence", mode="before")
    @classmethod
    def clamp(cls, v: Any) -> int:
        return clamp_confidence(v)


class ScoreBreakdown(BaseModel):
    """Reward arithmetic for a correct forecast."""

    base_reward: float
    confidence: int
    confidence_multiplier: float
    streak_multiplier: float
    new_streak: int
    reward: float


class LeaderboardEntry(BaseModel):
    """One row of the leaderboard."""

    name: str
    total_forecasts: int
    correct_forecasts: int
    accuracy: float
    current_streak: int
    best_streak: int
    total_reward: float

    @classmethod
    def from_agent(cls, agent: Agent) -> LeaderboardEntry:
        return cls(
            name=agent.name,
            total_forecasts=agent.total_forecasts,
            correct_forecasts=agent.correct_forecasts,
            accuracy=agent.accuracy,
            current_streak=agent.current_streak,
            best_streak=agent.best_streak,
            total_reward=agent.total_reward,
        )


class SettlementResult(BaseModel):
    """Outcome of settling a single forecast."""

    forecast_id: str
    topic_id: str | None = None
    agent_id: str
    agent_name: str
    correct: bool
    reward: float = 0.0
    new_streak: int = 0
    score: ScoreBreakdown | None = None
    settled_at: datetime
    ledger_ref: str | None = None
    ledger_error: str | None = None


class SettlementError(BaseModel):
    """A forecast that could not be settled within a batch."""

    forecast_id: str
    error_type: str
    message: str


class TopicSettlement(BaseModel):
    """Aggregate result of settling a topic, consumed by announcement rendering."""

    topic_id: str
    title: str
    outcome: str
    results: list[SettlementResult] = Field(default_factory=list)
    errors: list[SettlementError] = Field(default_factory=list)

    @property
    def correct_count(self) -> int:
        return sum(1 for r in self.results if r.correct)

    @property
    def total_count(self) -> int:
        return len(self.results)

    @property
    def ledger_failures(self) -> list[SettlementResult]:
        return [r for r in self.results if r.ledger_error]
