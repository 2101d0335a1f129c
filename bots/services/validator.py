# bots/services/validator.py
"""
Monte Carlo validation of a bot configuration.

Simulates whole trading days with the calculator's ranges (no friction,
no intraday self-correction, i.e. the worst case) and reports how close
the simulated days land to the daily target.
"""
import logging
from dataclasses import dataclass, field

import numpy as np

from bots.exceptions import ConfigurationError
from bots.services.pnl_calculator import (
    WIDE_LOSS_FLOOR, WIDE_MULTIPLIER_MAX, WIDE_MULTIPLIER_MIN, WIDE_WIN_FLOOR,
    CalibrationParams, PnLRangeCalculator, base_pnl, wide_loss_multiplier,
)
from bots.types import TIGHT

logger = logging.getLogger(__name__)

DEFAULT_SIMULATION_DAYS = 1000
MAX_MEAN_DEVIATION = 0.10
DAY_TOLERANCE = 0.10
MIN_HIT_RATE = 0.5
AGGRESSIVE_DAILY_TARGET = 10.0


@dataclass
class ValidationResult:
    valid: bool
    convergence_score: float = 0.0
    avg_deviation: float = 0.0
    hit_rate: float = 0.0
    mean_daily_pnl: float = 0.0
    errors: list = field(default_factory=list)
    warnings: list = field(default_factory=list)

    def summary(self):
        status = 'VALID' if self.valid else 'INVALID'
        lines = [
            f"Configuration {status}",
            f"- Convergence score: {self.convergence_score * 100:.1f}%",
            f"- Mean daily P&L: {self.mean_daily_pnl:.3f}%",
            f"- Avg deviation: {self.avg_deviation * 100:.1f}%",
            f"- Days within ±{DAY_TOLERANCE * 100:.0f}%: {self.hit_rate * 100:.1f}%",
        ]
        lines += [f"  error: {e}" for e in self.errors]
        lines += [f"  warning: {w}" for w in self.warnings]
        return '\n'.join(lines)


def simulate_days(config, days, rng, calculator=None):
    """Daily P&L percent for ``days`` simulated days, as a numpy array"""
    calculator = calculator or PnLRangeCalculator()
    params = CalibrationParams.from_config(config)
    trades = max(int(round(config.trades_per_day)), 1)
    shape = (days, trades)

    tight = calculator.mode_range(params, TIGHT)
    base_win, base_loss = base_pnl(params.win_rate, params.per_trade_target)

    is_tight = rng.random(shape) < params.tight_share
    multiplier = rng.uniform(WIDE_MULTIPLIER_MIN, WIDE_MULTIPLIER_MAX, shape)
    is_win = rng.random(shape) < params.win_rate
    position = rng.random(shape)

    win_min = np.where(is_tight, tight.win_min, base_win * WIDE_WIN_FLOOR)
    win_max = np.where(is_tight, tight.win_max, base_win * multiplier)
    loss_min = np.where(is_tight, tight.loss_min, base_loss * WIDE_LOSS_FLOOR)
    loss_max = np.where(is_tight, tight.loss_max, base_loss * wide_loss_multiplier(multiplier))

    wins = win_min + position * (win_max - win_min)
    losses = loss_min + position * (loss_max - loss_min)

    return np.where(is_win, wins, -losses).sum(axis=1)


def validate_bot_config(config, rng=None, simulation_days=DEFAULT_SIMULATION_DAYS):
    errors = []
    warnings = []

    try:
        config.validate()
    except ConfigurationError as e:
        errors.append(str(e))
        return ValidationResult(valid=False, errors=errors, warnings=warnings)

    rng = rng if rng is not None else np.random.default_rng()
    daily = simulate_days(config, simulation_days, rng)

    target = config.daily_target_percent
    mean_daily = float(daily.mean())
    relative = np.abs(daily - target) / target

    mean_deviation = abs(mean_daily - target) / target
    convergence_score = max(0.0, 1 - mean_deviation)
    hit_rate = float((relative <= DAY_TOLERANCE).mean())

    if mean_deviation > MAX_MEAN_DEVIATION:
        errors.append(
            f"Mean daily P&L {mean_daily:.3f}% misses target {target}% by "
            f"{mean_deviation * 100:.1f}% (max {MAX_MEAN_DEVIATION * 100:.0f}%)"
        )

    if hit_rate < MIN_HIT_RATE:
        warnings.append(
            f"Only {hit_rate * 100:.1f}% of simulated days land within "
            f"±{DAY_TOLERANCE * 100:.0f}% of target; daily results will vary widely"
        )

    if target > AGGRESSIVE_DAILY_TARGET:
        warnings.append(f"Daily target {target}% is aggressive. Monitor performance closely.")

    result = ValidationResult(
        valid=not errors,
        convergence_score=convergence_score,
        avg_deviation=float(relative.mean()),
        hit_rate=hit_rate,
        mean_daily_pnl=mean_daily,
        errors=errors,
        warnings=warnings,
    )
    logger.debug(f"Validated {config.name}: {result.summary()}")
    return result
