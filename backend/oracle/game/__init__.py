"""Prediction lifecycle and scoring engine."""

from .deadlines import resolve
from .exceptions import (
    AlreadyResolvedError,
    LedgerError,
    NotFoundError,
    OracleError,
    ParseError,
    SettlementInProgressError,
)
from .extractor import extract
from .lifecycle import LedgerConnector, LifecycleCoordinator
from .matcher import ExplicitTermsMatcher, OutcomeMatcher, PolarityMatcher, match
from .models import (
    Agent,
    ExtractedForecast,
    Forecast,
    LeaderboardEntry,
    LedgerAttempt,
    ScoreBreakdown,
    SettlementError,
    SettlementResult,
    Topic,
    TopicSettlement,
)
from .scorer import score

__all__ = [
    # Engine
    "extract",
    "resolve",
    "score",
    "match",
    "OutcomeMatcher",
    "PolarityMatcher",
    "ExplicitTermsMatcher",
    "LifecycleCoordinator",
    "LedgerConnector",
    # Models
    "Agent",
    "Topic",
    "Forecast",
    "ExtractedForecast",
    "LedgerAttempt",
    "LeaderboardEntry",
    "ScoreBreakdown",
    "SettlementResult",
    "SettlementError",
    "TopicSettlement",
    # Errors
    "OracleError",
    "ParseError",
    "NotFoundError",
    "AlreadyResolvedError",
    "SettlementInProgressError",
    "LedgerError",
]
