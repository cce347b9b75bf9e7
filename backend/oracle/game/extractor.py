"""Forecast extraction from free-text comments.

Expected comment format (labels are case-insensitive, only PREDICTION is required):

    PREDICTION: [what] will [outcome] by [deadline]
    CONFIDENCE: [1-10]
    CATEGORY: [tech|crypto|ai|world|science|other]
"""

import logging
import re
from datetime import datetime

from oracle.game import deadlines
from oracle.game.exceptions import ParseError
from oracle.game.models import CATEGORIES, ExtractedForecast, clamp_confidence

logger = logging.getLogger(__name__)

DEFAULT_CONFIDENCE = 5
DEFAULT_CATEGORY = "other"

PREDICTION_PATTERN = re.compile(r"PREDICTION[ \t]*:[ \t]*([^\r\n]*)", re.IGNORECASE)
CONFIDENCE_PATTERN = re.compile(r"CONFIDENCE[ \t]*:([^\r\n]*)", re.IGNORECASE)
CATEGORY_PATTERN = re.compile(r"CATEGORY[ \t]*:[ \t]*([^\r\n]*)", re.IGNORECASE)
INTEGER_PATTERN = re.compile(r"-?\d+")
OUTCOME_PATTERN = re.compile(r"\bwill\s+(.+?)(?:\s+by\b|$)", re.IGNORECASE)


def _parse_confidence(text: str, default: int) -> int:
    match = CONFIDENCE_PATTERN.search(text)
    if not match:
        return default

    number = INTEGER_PATTERN.search(match.group(1))
    if not number:
        logger.debug(f"No integer on confidence line: {match.group(1).strip()!r}")
        return default

    return clamp_confidence(int(number.group(0)))


def _parse_category(text: str) -> str:
    match = CATEGORY_PATTERN.search(text)
    if not match:
        return DEFAULT_CATEGORY

    words = match.group(1).strip().lower().split()
    if words and words[0] in CATEGORIES:
        return words[0]
    return DEFAULT_CATEGORY


def extract_outcome(claim: str) -> str:
    """Span after "will" up to a trailing "by" clause, or the whole claim."""
    match = OUTCOME_PATTERN.search(claim)
    if not match:
        return claim
    return match.group(1).strip() or claim


def extract(
    raw_text: str,
    now: datetime,
    default_confidence: int = DEFAULT_CONFIDENCE,
) -> ExtractedForecast | None:
    """Parse a structured forecast from a raw comment.

    Returns None when the comment carries no PREDICTION label. A deadline that
    cannot be parsed is left unset rather than discarding the forecast.
    """
    if not raw_text:
        return None

    prediction_match = PREDICTION_PATTERN.search(raw_text)
    if not prediction_match:
        return None

    claim = prediction_match.group(1).strip()
    if not claim:
        logger.debug("PREDICTION label present but claim is empty")
        return None

    deadline = None
    try:
        deadline = deadlines.resolve(claim, now)
    except ParseError as e:
        logger.debug(f"No deadline in claim: {e}")

    return ExtractedForecast(
        claim=claim,
        outcome=extract_outcome(claim),
        confidence=_parse_confidence(raw_text, default_confidence),
        category=_parse_category(raw_text),
        deadline=deadline,
        raw=raw_text,
    )


def format_forecast_summary(forecast: ExtractedForecast) -> str:
    """One-line summary of an extracted forecast for display."""
    deadline = forecast.deadline.strftime("%b %Y") if forecast.deadline else "unspecified"
    return (
        f"📊 **{forecast.category.upper()}** | Confidence: {forecast.confidence}/10 "
        f"| Deadline: {deadline}\n> {forecast.claim}"
    )
