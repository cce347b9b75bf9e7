"""Tests for the scoring calculator."""

import pytest

from oracle.game.scorer import reset, score


class TestScore:
    """Tests for score() on correct forecasts."""

    def test_mid_confidence_with_streak(self) -> None:
        breakdown = score(8, 2)

        assert breakdown.confidence_multiplier == pytest.approx(1.6)
        assert breakdown.new_streak == 3
        assert breakdown.streak_multiplier == pytest.approx(1.3)
        assert breakdown.reward == 208.00

    def test_streak_multiplier_is_capped(self) -> None:
        breakdown = score(10, 20)

        assert breakdown.streak_multiplier == 2.0
        assert breakdown.new_streak == 21
        assert breakdown.reward == 400.00

    def test_first_correct_forecast(self) -> None:
        breakdown = score(5, 0)

        assert breakdown.confidence_multiplier == 1.0
        assert breakdown.new_streak == 1
        assert breakdown.reward == 110.00

    def test_minimum_confidence(self) -> None:
        assert score(1, 0).reward == 22.00

    def test_custom_base_reward(self) -> None:
        assert score(8, 2, base_reward=50.0).reward == 104.00

    def test_custom_cap_and_step(self) -> None:
        breakdown = score(5, 4, streak_cap=1.25, streak_step=0.05)
        assert breakdown.streak_multiplier == 1.25
        assert breakdown.reward == 125.00


class TestMonotonicity:
    """Reward grows with confidence and with streak until the cap."""

    def test_non_decreasing_in_confidence(self) -> None:
        rewards = [score(c, 3).reward for c in range(1, 11)]
        assert rewards == sorted(rewards)
        assert rewards[0] < rewards[-1]

    def test_non_decreasing_in_streak(self) -> None:
        rewards = [score(7, s).reward for s in range(0, 25)]
        assert rewards == sorted(rewards)

    def test_flat_once_capped(self) -> None:
        assert score(7, 9).reward == score(7, 50).reward


class TestInputHandling:
    """Out-of-range inputs are clamped rather than rejected."""

    @pytest.mark.parametrize(("given", "clamped"), [(0, 1), (-3, 1), (11, 10), (99, 10)])
    def test_confidence_clamped(self, given: int, clamped: int) -> None:
        assert score(given, 0).confidence == clamped
        assert score(given, 0).reward == score(clamped, 0).reward

    def test_negative_streak_treated_as_zero(self) -> None:
        assert score(5, -4).new_streak == 1

    def test_reward_rounds_half_up(self) -> None:
        # 0.125 rounds to 0.12 under banker's rounding
        assert score(5, 0, base_reward=0.125, streak_step=0.0).reward == 0.13

    def test_reward_has_two_decimals(self) -> None:
        reward = score(3, 1, base_reward=33.333).reward
        assert reward == round(reward, 2)


def test_reset_for_incorrect_forecast() -> None:
    assert reset() == (0.0, 0)
