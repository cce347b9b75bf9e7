"""
Scoring Calculator

Reward arithmetic for correct forecasts.

Formulas:
- confidence_multiplier = confidence / 5   (1 -> 0.2x, 5 -> 1.0x, 10 -> 2.0x)
- new_streak = current_streak + 1
- streak_multiplier = min(cap, 1 + new_streak * step)   (cap 2.0, step 0.1)
- reward = base_reward * confidence_multiplier * streak_multiplier, 2dp half-up

Incorrect forecasts never pass through score(): the streak resets to 0 and the
reward is 0 (see reset()).
"""

import logging
from decimal import ROUND_HALF_UP, Decimal

from oracle.game.models import ScoreBreakdown, clamp_confidence

logger = logging.getLogger(__name__)

DEFAULT_BASE_REWARD = 100.0
DEFAULT_STREAK_CAP = 2.0
DEFAULT_STREAK_STEP = 0.1

CENTS = Decimal("0.01")


def _dec(value: float) -> Decimal:
    # str() keeps 0.1 as 0.1 rather than its binary expansion
    return Decimal(str(value))


def score(
    confidence: int,
    current_streak: int,
    *,
    base_reward: float = DEFAULT_BASE_REWARD,
    streak_cap: float = DEFAULT_STREAK_CAP,
    streak_step: float = DEFAULT_STREAK_STEP,
) -> ScoreBreakdown:
    """Compute the reward for a correct forecast. Never raises for bad inputs."""
    confidence = clamp_confidence(confidence)
    current_streak = max(0, int(current_streak))

    confidence_multiplier = Decimal(confidence) / Decimal(5)
    new_streak = current_streak + 1
    streak_multiplier = min(_dec(streak_cap), Decimal(1) + Decimal(new_streak) * _dec(streak_step))

    reward = (_dec(base_reward) * confidence_multiplier * streak_multiplier).quantize(
        CENTS, rounding=ROUND_HALF_UP
    )

    return ScoreBreakdown(
        base_reward=base_reward,
        confidence=confidence,
        confidence_multiplier=float(confidence_multiplier),
        streak_multiplier=float(streak_multiplier),
        new_streak=new_streak,
        reward=float(reward),
    )


def reset() -> tuple[float, int]:
    """Reward and streak applied to an incorrect forecast."""
    return 0.0, 0
