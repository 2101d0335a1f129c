import numpy as np

from bots.services.bot_engine import TradingBot
from bots.types import BotConfig

# 2024-01-01 12:00:00 UTC
NOON = 1704110400.0


class FakeClock:
    """Manually advanced epoch-seconds clock"""

    def __init__(self, start=NOON):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


def config_data(**overrides):
    data = {
        'name': 'Test Bot',
        'trading_pair': 'BTC/USDT',
        'win_rate': 0.6,
        'daily_target_percent': 3.0,
        'trades_per_day': 1000,
        'invested_capital': 10000.0,
        'min_position_size': 100.0,
        'max_position_size': 500.0,
        'min_duration': 60.0,
        'max_duration': 120.0,
        'max_concurrent_positions': 3,
        'open_frequency': 1.0,
        'leverages': [5],
    }
    data.update(overrides)
    return data


def make_config(**overrides):
    return BotConfig.from_dict(config_data(**overrides))


def make_bot(clock=None, seed=7, bot_id='bot-test', **overrides):
    return TradingBot(
        bot_id,
        make_config(**overrides),
        rng=np.random.default_rng(seed),
        clock=clock or FakeClock(),
    )


def run_cycles(bot, clock, cycles, prices=None, step=121.0):
    """Tick, then jump past the longest duration, ``cycles`` times"""
    prices = prices or {'BTCUSDT': 50000.0}
    for _ in range(cycles):
        bot.tick(prices)
        clock.advance(step)
