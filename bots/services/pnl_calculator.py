# bots/services/pnl_calculator.py
"""
P&L range calculator

Produces the win/loss percentage bands for the next trade a bot opens so
that, realised at the configured win rate, the bot's expected daily P&L
equals its daily target.

    per_trade   = daily_target / trades_per_day
    denominator = WR - (LR^2 / WR) * 0.7
    base_win    = per_trade / denominator
    base_loss   = base_win * (LR / WR) * 0.7

so that WR * base_win - LR * base_loss == per_trade.

Variance modes:
- tight: ±30% around the base, drives convergence
- wide:  2x-4x spikes on wins (gentler on losses) for visual realism

Wide trades carry a higher expectation than the base, so the tight band is
centred slightly below the base to keep the mixture on target.
"""
import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np

from bots.exceptions import ConfigurationError
from bots.types import ASYMMETRY_FACTOR, TIGHT, WIDE, PnLRange

logger = logging.getLogger(__name__)

TIGHT_VARIANCE = 0.3
WIDE_MULTIPLIER_MIN = 2.0
WIDE_MULTIPLIER_MAX = 4.0
WIDE_WIN_FLOOR = 0.8
WIDE_LOSS_FLOOR = 0.6
WIDE_LOSS_DAMPING = 0.5
MIN_TIGHT_SCALE = 0.25

CORRECTION_THRESHOLD = 0.2
CORRECTION_STRENGTH = 0.5

FLOOR_RATIO = 0.1
MIN_SPREAD_RATIO = 1.2

MAX_DEVIATION = 0.1
MIN_CONVERGENCE_SCORE = 0.8


@dataclass(frozen=True)
class CalibrationParams:
    daily_target_percent: float
    trades_per_day: float
    win_rate: float
    current_daily_pnl: float = 0.0
    trades_remaining_today: Optional[float] = None
    tight_mode_percent: float = 80.0
    # Expected per-trade cost (positive), added to the gross per-trade target
    friction_offset: float = 0.0

    @classmethod
    def from_config(cls, config, **overrides):
        values = {
            'daily_target_percent': config.daily_target_percent,
            'trades_per_day': config.trades_per_day,
            'win_rate': config.win_rate,
            'tight_mode_percent': config.tight_mode_percent,
        }
        values.update(overrides)
        return cls(**values)

    @property
    def per_trade_target(self):
        return self.daily_target_percent / self.trades_per_day + self.friction_offset

    @property
    def tight_share(self):
        return min(max(self.tight_mode_percent / 100, 0.0), 1.0)


@dataclass(frozen=True)
class ExpectedDaily:
    expected_daily_pnl: float
    deviation_from_target: float
    convergence_score: float


def base_pnl(win_rate, per_trade_target, asymmetry=ASYMMETRY_FACTOR):
    """Base win and loss sizes (both positive) under the asymmetry constraint"""
    loss_rate = 1 - win_rate
    denominator = win_rate - (loss_rate ** 2 / win_rate) * asymmetry
    if denominator <= 0:
        raise ConfigurationError(
            f"Win rate {win_rate} cannot reach a positive target with asymmetry {asymmetry}"
        )

    base_win = per_trade_target / denominator
    base_loss = base_win * (loss_rate / win_rate) * asymmetry
    return base_win, base_loss


def wide_loss_multiplier(multiplier):
    return 1 + (multiplier - 1) * WIDE_LOSS_DAMPING


def _expected_value(win_rate, win_min, win_max, loss_min, loss_max):
    return win_rate * (win_min + win_max) / 2 - (1 - win_rate) * (loss_min + loss_max) / 2


class PnLRangeCalculator:
    """Stateless; randomness comes from the generator passed in"""

    def calculate_range(self, params, rng=None):
        """Win/loss range for the next trade"""
        self._check_params(params)
        rng = rng if rng is not None else np.random.default_rng()

        mode = TIGHT if rng.random() < params.tight_share else WIDE
        multiplier = 1.0
        if mode == WIDE:
            multiplier = rng.uniform(WIDE_MULTIPLIER_MIN, WIDE_MULTIPLIER_MAX)

        return self._build_range(params, mode, multiplier)

    def mode_range(self, params, mode, multiplier=1.0):
        """Deterministic range for a given mode (and wide multiplier)"""
        self._check_params(params)
        return self._build_range(params, mode, multiplier)

    def calculate_expected_daily(self, params):
        """Replay both variance modes and compare the expectation to target"""
        self._check_params(params)
        mean_multiplier = (WIDE_MULTIPLIER_MIN + WIDE_MULTIPLIER_MAX) / 2

        tight = self._build_range(params, TIGHT, 1.0)
        wide = self._build_range(params, WIDE, mean_multiplier)

        expected_per_trade = (
            params.tight_share * self._range_expectation(params.win_rate, tight)
            + (1 - params.tight_share) * self._range_expectation(params.win_rate, wide)
        )
        # Net of the friction the offset was paying for
        expected_daily = (expected_per_trade - params.friction_offset) * params.trades_per_day

        deviation = expected_daily - params.daily_target_percent
        score = max(0.0, 1 - abs(deviation) / params.daily_target_percent)

        return ExpectedDaily(
            expected_daily_pnl=expected_daily,
            deviation_from_target=deviation,
            convergence_score=score,
        )

    def validate_configuration(self, params):
        """
        Raise ConfigurationError when the expected daily P&L misses the
        target by more than 10%. Returns a warning message for a weak
        convergence score, None otherwise.
        """
        result = self.calculate_expected_daily(params)
        max_deviation = params.daily_target_percent * MAX_DEVIATION

        if abs(result.deviation_from_target) > max_deviation:
            raise ConfigurationError(
                f"Expected daily P&L {result.expected_daily_pnl:.2f}% deviates "
                f"{result.deviation_from_target:.2f}% from target "
                f"{params.daily_target_percent}% "
                f"(convergence score {result.convergence_score * 100:.1f}%)"
            )

        if result.convergence_score < MIN_CONVERGENCE_SCORE:
            message = (
                f"Low convergence score {result.convergence_score * 100:.1f}%: "
                f"expected daily {result.expected_daily_pnl:.2f}%, "
                f"target {params.daily_target_percent}%"
            )
            logger.warning(message)
            return message

        return None

    def check_config(self, config):
        """validate_configuration for a bot's own target, pace and variance mix"""
        return self.validate_configuration(CalibrationParams.from_config(config))

    def _check_params(self, params):
        if not 0 < params.win_rate < 1:
            raise ConfigurationError(f"win_rate must be between 0 and 1, got {params.win_rate}")
        if params.daily_target_percent <= 0 or params.trades_per_day <= 0:
            raise ConfigurationError("daily_target_percent and trades_per_day must be positive")

    def _range_expectation(self, win_rate, pnl_range):
        return _expected_value(
            win_rate, pnl_range.win_min, pnl_range.win_max,
            pnl_range.loss_min, pnl_range.loss_max,
        )

    def _tight_scale(self, params, base_win, base_loss):
        """Centre of the tight band relative to the base values"""
        tight_share = params.tight_share
        if tight_share <= 0:
            return 1.0

        mean_multiplier = (WIDE_MULTIPLIER_MIN + WIDE_MULTIPLIER_MAX) / 2
        wide_expectation = _expected_value(
            params.win_rate,
            base_win * WIDE_WIN_FLOOR,
            base_win * mean_multiplier,
            base_loss * WIDE_LOSS_FLOOR,
            base_loss * wide_loss_multiplier(mean_multiplier),
        )
        per_trade = params.per_trade_target
        scale = (per_trade - (1 - tight_share) * wide_expectation) / (tight_share * per_trade)
        return max(scale, MIN_TIGHT_SCALE)

    def _build_range(self, params, mode, multiplier):
        base_win, base_loss = base_pnl(params.win_rate, params.per_trade_target)

        if mode == TIGHT:
            scale = self._tight_scale(params, base_win, base_loss)
            win_min = base_win * scale * (1 - TIGHT_VARIANCE)
            win_max = base_win * scale * (1 + TIGHT_VARIANCE)
            loss_min = base_loss * scale * (1 - TIGHT_VARIANCE)
            loss_max = base_loss * scale * (1 + TIGHT_VARIANCE)
        else:
            win_min = base_win * WIDE_WIN_FLOOR
            win_max = base_win * multiplier
            loss_min = base_loss * WIDE_LOSS_FLOOR
            loss_max = base_loss * wide_loss_multiplier(multiplier)

        # Give back part of an overshoot over the rest of the day
        target = params.daily_target_percent
        excess = params.current_daily_pnl - target
        remaining = params.trades_remaining_today
        if remaining is None:
            remaining = params.trades_per_day

        if excess > target * CORRECTION_THRESHOLD and remaining > 0:
            correction = excess / remaining * CORRECTION_STRENGTH
            win_min -= correction
            win_max -= correction * 1.2

            loss_correction = correction * 0.5
            loss_min += loss_correction * 0.5
            loss_max += loss_correction

        win_min = max(base_win * FLOOR_RATIO, win_min)
        win_max = max(win_min * MIN_SPREAD_RATIO, win_max)
        loss_min = max(base_loss * FLOOR_RATIO, loss_min)
        loss_max = max(loss_min * MIN_SPREAD_RATIO, loss_max)

        return PnLRange(
            win_min=win_min,
            win_max=win_max,
            loss_min=loss_min,
            loss_max=loss_max,
            mode=mode,
            base_expected=base_win,
        )
