"""Outcome matching strategies.

Decides whether a stored forecast fragment was correct given the actual outcome
text. Matching is plain case-folded substring containment; there is no language
understanding. Ambiguous forecasts are scored incorrect rather than guessed.
"""

from typing import Literal, Protocol, Sequence

Polarity = Literal["positive", "negative", "ambiguous"]

POSITIVE_TERMS: tuple[str, ...] = ("yes", "will", "true", "happen", "succeed")
NEGATIVE_TERMS: tuple[str, ...] = ("no", "won't", "false", "fail", "not")
OUTCOME_POSITIVE_TERMS: tuple[str, ...] = ("yes", "happened", "true")


class OutcomeMatcher(Protocol):
    """Strategy interface used by the lifecycle coordinator."""

    def match(
        self,
        forecast_outcome: str,
        actual_outcome: str,
        explicit_terms: Sequence[str] = (),
    ) -> bool: ...


def _clean_terms(explicit_terms: Sequence[str] | None) -> list[str]:
    return [t.casefold() for t in (explicit_terms or ()) if t and t.strip()]


def matches_terms(forecast_outcome: str, explicit_terms: Sequence[str]) -> bool:
    """True if the forecast contains any of the explicit terms."""
    fragment = (forecast_outcome or "").casefold()
    return any(term in fragment for term in _clean_terms(explicit_terms))


def classify_polarity(forecast_outcome: str) -> Polarity:
    """Classify a forecast fragment by the fixed positive/negative term sets."""
    fragment = (forecast_outcome or "").casefold()
    positive = any(term in fragment for term in POSITIVE_TERMS)
    negative = any(term in fragment for term in NEGATIVE_TERMS)

    if positive and not negative:
        return "positive"
    if negative and not positive:
        return "negative"
    return "ambiguous"


def is_positive_outcome(actual_outcome: str) -> bool:
    text = (actual_outcome or "").casefold()
    return any(term in text for term in OUTCOME_POSITIVE_TERMS)


def match(
    forecast_outcome: str,
    actual_outcome: str,
    explicit_terms: Sequence[str] = (),
) -> bool:
    """Decide correctness of a forecast.

    A non-empty explicit_terms list is authoritative, even if every entry is
    blank (blank entries never match). Otherwise the polarity heuristic applies
    and ambiguous forecasts default to incorrect.
    """
    if explicit_terms:
        return matches_terms(forecast_outcome, explicit_terms)

    polarity = classify_polarity(forecast_outcome)
    if polarity == "positive":
        return is_positive_outcome(actual_outcome)
    if polarity == "negative":
        return not is_positive_outcome(actual_outcome)
    return False


class PolarityMatcher:
    """Default strategy: explicit terms first, polarity heuristic otherwise."""

    def match(
        self,
        forecast_outcome: str,
        actual_outcome: str,
        explicit_terms: Sequence[str] = (),
    ) -> bool:
        return match(forecast_outcome, actual_outcome, explicit_terms)


class ExplicitTermsMatcher:
    """Strict strategy: only explicit terms can make a forecast correct."""

    def match(
        self,
        forecast_outcome: str,
        actual_outcome: str,
        explicit_terms: Sequence[str] = (),
    ) -> bool:
        return matches_terms(forecast_outcome, explicit_terms)
