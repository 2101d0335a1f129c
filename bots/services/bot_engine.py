# bots/services/bot_engine.py
import logging
import math
import time
import uuid
from datetime import datetime, timezone as dt_timezone

import numpy as np

from bots.types import (
    BOTH, LONG, LOSS, SHORT, SIDES, WIN,
    BotStats, Position, Trade, summarize_trades,
)
from bots.services.pnl_calculator import CalibrationParams, PnLRangeCalculator
from bots.utils import finite, pair_symbol
from trading.services.friction import MarketFrictionModel

logger = logging.getLogger(__name__)

RECENT_TRADES_LIMIT = 50
SECONDS_PER_DAY = 86400


def _utc_day(timestamp):
    return datetime.fromtimestamp(timestamp, tz=dt_timezone.utc).date().isoformat()


def _day_fraction(timestamp):
    """Share of the current UTC day elapsed at ``timestamp`` (0..1)"""
    return (timestamp % SECONDS_PER_DAY) / SECONDS_PER_DAY


class TradingBot:
    """
    Tick-driven simulated strategy.

    Owns one configuration, the open positions and the trade ledger. Every
    tick closes positions whose planned duration has elapsed, then may open
    a new one. Openings are paced over the UTC day so a day holds about
    trades_per_day trades. Only BotManager constructs these.
    """

    def __init__(self, bot_id, config, rng=None, clock=None,
                 friction_model=None, calculator=None):
        self.id = bot_id
        self.config = config
        self.rng = rng if rng is not None else np.random.default_rng()
        self.clock = clock or time.time
        self.friction_model = friction_model or MarketFrictionModel()
        self.calculator = calculator or PnLRangeCalculator()

        self._positions = []
        self._trades = []
        self._last_open_at = None

        self._day = None
        self._daily_pnl_percent = 0.0
        self._daily_pnl = 0.0
        self._daily_trades = 0
        self._daily_opens = 0

    # Main loop

    def tick(self, prices):
        """Advance the bot with the latest price snapshot"""
        now = self.clock()
        self._check_daily_reset(now)

        self._update_positions(prices)
        self._close_due_positions(now)
        self._try_open_position(prices, now)
        self._trim_history()

    def _check_daily_reset(self, now):
        today = _utc_day(now)
        if self._day is None:
            self._day = today
            return

        if today != self._day:
            logger.info(
                f"Bot {self.id} daily reset {self._day} -> {today}: "
                f"{self._daily_trades} trades, {self._daily_pnl_percent:.2f}% "
                f"(open positions stay open: {len(self._positions)})"
            )
            self._day = today
            self._daily_pnl_percent = 0.0
            self._daily_pnl = 0.0
            self._daily_trades = 0
            self._daily_opens = 0

    # Position management

    def _update_positions(self, prices):
        for position in self._positions:
            price = prices.get(pair_symbol(position.pair))
            price = finite(price, default=0.0)
            if price <= 0:
                continue

            position.current_price = price
            direction = 1 if position.side == LONG else -1
            move = direction * (price - position.entry_price) / position.entry_price

            position.pnl_percent = finite(move * position.leverage * 100, label='pnl_percent')
            position.pnl = finite(move * position.leverage * position.position_size, label='pnl')

    def _close_due_positions(self, now):
        remaining = []
        for position in self._positions:
            if position.is_due(now):
                self._close_position(position, now)
            else:
                remaining.append(position)
        self._positions = remaining

    def _close_position(self, position, now):
        config = self.config
        if position.should_win is None:
            position.should_win = bool(self.rng.random() < config.win_rate)

        planned = position.target_pnl if position.should_win else position.stop_loss_pnl

        volatility = config.volatility
        if volatility == 'auto':
            volatility = self.friction_model.estimate_current_volatility(
                self.rng, hour=datetime.fromtimestamp(now, tz=dt_timezone.utc).hour
            )
        friction = self.friction_model.calculate_friction(
            position.pair, position.position_size, position.leverage,
            position.side, volatility=volatility, rng=self.rng,
        )
        friction = self.friction_model.cap_slippage(friction, config.max_slippage)
        pnl_percent = finite(
            self.friction_model.apply_friction_to_pnl(planned, friction),
            label='realized pnl_percent',
        )
        pnl = finite(position.position_size * pnl_percent / 100, label='realized pnl')

        direction = 1 if position.side == LONG else -1
        exit_price = finite(
            position.entry_price * (1 + direction * pnl_percent / (position.leverage * 100)),
            default=position.current_price,
            label='exit_price',
        )

        trade = Trade(
            id=f"trade-{uuid.uuid4().hex[:12]}",
            pair=position.pair,
            side=position.side,
            leverage=position.leverage,
            entry_price=position.entry_price,
            exit_price=exit_price,
            amount=position.amount,
            position_size=position.position_size,
            pnl=pnl,
            pnl_percent=pnl_percent,
            duration=max(now - position.opened_at, 0.0),
            opened_at=position.opened_at,
            closed_at=now,
            expected_outcome=WIN if position.should_win else LOSS,
            actual_outcome=WIN if pnl > 0 else LOSS,
            friction=friction,
        )
        self._trades.append(trade)

        self._daily_pnl_percent += pnl_percent
        self._daily_pnl += pnl
        self._daily_trades += 1

        logger.debug(
            f"Bot {self.id} closed {trade.side} {trade.pair} x{trade.leverage}: "
            f"{pnl_percent:+.3f}% ({pnl:+.2f}) "
            f"{self.friction_model.friction_summary(friction)}"
        )

    # Opening

    def _try_open_position(self, prices, now):
        config = self.config
        if len(self._positions) >= config.max_concurrent_positions:
            return

        if (config.cooldown_seconds and self._last_open_at is not None
                and now - self._last_open_at < config.cooldown_seconds):
            return

        if self._daily_opens >= self.open_budget(now):
            return

        if self.rng.random() >= config.open_frequency:
            return

        pairs = config.pairs
        pair = pairs[int(self.rng.integers(len(pairs)))]
        price = finite(prices.get(pair_symbol(pair)), default=0.0)
        if price <= 0:
            return

        side = self._pick_side()
        leverages = config.leverage_choices
        leverage = int(leverages[int(self.rng.integers(len(leverages)))])
        position_size = float(self.rng.uniform(config.min_position_size, config.max_position_size))
        duration = float(self.rng.uniform(config.min_duration, config.max_duration))

        volatility = config.volatility if config.volatility != 'auto' else 'medium'
        friction_offset = max(
            0.0, -self.friction_model.expected_friction(
                pair, position_size, side, volatility, max_slippage=config.max_slippage,
            )
        )

        pnl_range = self.calculator.calculate_range(
            CalibrationParams.from_config(
                config,
                current_daily_pnl=self._daily_pnl_percent,
                trades_remaining_today=self.trades_remaining_today(now),
                friction_offset=friction_offset,
            ),
            rng=self.rng,
        )

        should_win = bool(self.rng.random() < config.win_rate)
        target_pnl = float(self.rng.uniform(pnl_range.win_min, pnl_range.win_max))
        stop_loss_pnl = -float(self.rng.uniform(pnl_range.loss_min, pnl_range.loss_max))

        direction = 1 if side == LONG else -1
        take_profit = price * (1 + direction * target_pnl / (leverage * 100))
        stop_loss = price * (1 + direction * stop_loss_pnl / (leverage * 100))

        position = Position(
            id=f"pos-{uuid.uuid4().hex[:12]}",
            pair=pair,
            side=side,
            leverage=leverage,
            entry_price=price,
            current_price=price,
            position_size=finite(position_size, label='position_size'),
            amount=finite(position_size / price, label='amount'),
            opened_at=now,
            close_at=now + duration,
            take_profit=finite(take_profit, default=price, label='take_profit'),
            stop_loss=finite(stop_loss, default=price, label='stop_loss'),
            target_pnl=finite(target_pnl, label='target_pnl'),
            stop_loss_pnl=finite(stop_loss_pnl, label='stop_loss_pnl'),
            pnl_range=pnl_range,
            should_win=should_win,
        )
        self._positions.append(position)
        self._last_open_at = now
        self._daily_opens += 1

    def _pick_side(self):
        allowed = self.config.allowed_sides
        if allowed == BOTH:
            return SIDES[int(self.rng.integers(2))]
        return LONG if allowed == LONG else SHORT

    def _trim_history(self):
        overflow = len(self._trades) - self.config.max_trades_history
        if overflow > 0:
            del self._trades[:overflow]

    # Daily progress

    def open_budget(self, now):
        """
        Openings allowed so far today.

        One slot is earned every 1/trades_per_day of the UTC day (plus the
        first one at midnight), capped at trades_per_day. Slots missed
        earlier in the day carry over, so a bot that falls behind catches up.
        """
        trades_per_day = self.config.trades_per_day
        earned = math.floor(trades_per_day * _day_fraction(now)) + 1
        return min(earned, math.ceil(trades_per_day))

    def trades_remaining_today(self, now=None):
        """Trades still expected before midnight at the configured pace"""
        now = self.clock() if now is None else now
        return max(self.config.trades_per_day * (1 - _day_fraction(now)), 1.0)

    def get_daily_progress(self):
        config = self.config
        target = config.daily_target_percent
        capital = config.invested_capital
        now = self.clock()
        return {
            'day': self._day,
            'target_percent': target,
            'realized_percent': self._daily_pnl_percent,
            'percent_of_target': (self._daily_pnl_percent / target * 100) if target else 0.0,
            'realized_pnl': self._daily_pnl,
            'return_on_capital_percent': (
                finite(self._daily_pnl / capital * 100, label=f'{self.id}.return_on_capital')
                if capital > 0 else 0.0
            ),
            'trades_today': self._daily_trades,
            'opens_today': self._daily_opens,
            'open_budget': self.open_budget(now),
            'trades_remaining': self.trades_remaining_today(now),
        }

    # Public API

    def get_stats(self):
        summary = {key: finite(value, label=f'{self.id}.{key}')
                   for key, value in summarize_trades(self._trades).items()}

        return BotStats(
            id=self.id,
            name=self.config.name,
            total_pnl=summary['total_pnl'],
            win_rate=summary['win_rate'],
            trades_count=int(summary['trades_count']),
            wins_count=int(summary['wins_count']),
            losses_count=int(summary['losses_count']),
            avg_win=summary['avg_win'],
            avg_loss=summary['avg_loss'],
            positions=self.get_positions(),
            trades=list(reversed(self._trades[-RECENT_TRADES_LIMIT:])),
        )

    def get_positions(self):
        return [Position(**vars(p)) for p in self._positions]

    def get_trades(self):
        return list(self._trades)

    def get_config(self):
        return self.config

    def update_config(self, changes):
        """Replace the config with ``changes`` applied; invalid configs are rejected"""
        new_config = self.config.update(changes)
        new_config.validate()
        self.calculator.check_config(new_config)
        self.config = new_config
        self._trim_history()
        return new_config

    def reset(self):
        self._positions = []
        self._trades = []
        self._last_open_at = None
        self._daily_pnl_percent = 0.0
        self._daily_pnl = 0.0
        self._daily_trades = 0
        self._daily_opens = 0
