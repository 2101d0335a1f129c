# bots/presets.py
"""
Ready-made bot configurations.

MASTER_BOTS are the marketplace bots users copy; the runtime seeds the
ones listed in settings.SIMULATOR['MASTER_BOTS'] when they are missing.
generate_presets() builds the risk-profile starter set.
"""
import numpy as np

from bots.types import BotConfig

MASTER_BOTS = {
    'bybit-market-maker': {
        'name': 'Bybit Market Maker',
        'trading_pair': 'BTC/USDT',
        'trading_pairs': ['BTC/USDT', 'ETH/USDT', 'BNB/USDT'],
        'leverages': [2, 2, 3],
        'win_rate': 0.58,
        'daily_target_percent': 2.5,
        'invested_capital': 5000,
        'trades_per_day': 250,
        'min_position_size': 100,
        'max_position_size': 250,
        'min_duration': 30,
        'max_duration': 180,
        'max_concurrent_positions': 12,
        'open_frequency': 0.65,
    },
    'bitfinex-leverage-x10': {
        'name': 'Bitfinex Leverage x10',
        'trading_pair': 'BTC/USDT',
        'trading_pairs': ['BTC/USDT', 'ETH/USDT'],
        'leverages': [10, 12, 15],
        'win_rate': 0.54,
        'daily_target_percent': 4.5,
        'invested_capital': 8000,
        'trades_per_day': 8,
        'min_position_size': 1200,
        'max_position_size': 2000,
        'min_duration': 600,
        'max_duration': 3600,
        'max_concurrent_positions': 1,
        'open_frequency': 0.15,
    },
    'okx-grid-trading': {
        'name': 'OKX Grid Trading Bot',
        'trading_pair': 'BTC/USDT',
        'trading_pairs': ['BTC/USDT', 'ETH/USDT', 'SOL/USDT'],
        'leverages': [3, 3, 4],
        'win_rate': 0.56,
        'daily_target_percent': 1.2,
        'invested_capital': 6000,
        'trades_per_day': 180,
        'min_position_size': 150,
        'max_position_size': 400,
        'min_duration': 60,
        'max_duration': 240,
        'max_concurrent_positions': 10,
        'open_frequency': 0.6,
    },
    'binance-altcoin-scalper': {
        'name': 'Binance Altcoin Scalper',
        'trading_pair': 'ETH/USDT',
        'trading_pairs': ['ETH/USDT', 'BNB/USDT', 'AVAX/USDT', 'LINK/USDT'],
        'leverages': [5, 6, 7, 8],
        'win_rate': 0.55,
        'daily_target_percent': 3.2,
        'invested_capital': 7000,
        'trades_per_day': 95,
        'min_position_size': 300,
        'max_position_size': 700,
        'min_duration': 60,
        'max_duration': 600,
        'max_concurrent_positions': 3,
        'open_frequency': 0.5,
    },
}

RISK_PROFILES = {
    'conservative': {
        'leverage': 3,
        'win_rate': (0.70, 0.80),
        'daily_target': (1.0, 2.0),
        'capital': (3000, 5000),
        'trades_per_day': (30, 40),
        'duration': (120, 600),
        'max_positions': 2,
        'open_frequency': 0.5,
    },
    'moderate': {
        'leverage': 5,
        'win_rate': (0.75, 0.85),
        'daily_target': (2.0, 4.0),
        'capital': (5000, 7000),
        'trades_per_day': (40, 60),
        'duration': (60, 300),
        'max_positions': 3,
        'open_frequency': 0.6,
    },
    'aggressive': {
        'leverage': 10,
        'win_rate': (0.55, 0.70),
        'daily_target': (4.0, 8.0),
        'capital': (7000, 10000),
        'trades_per_day': (60, 80),
        'duration': (30, 180),
        'max_positions': 4,
        'open_frequency': 0.7,
    },
}

PRESET_LINEUP = (
    ('conservative', 'BTC/USDT'),
    ('conservative', 'ETH/USDT'),
    ('conservative', 'BNB/USDT'),
    ('moderate', 'BTC/USDT'),
    ('moderate', 'ETH/USDT'),
    ('moderate', 'SOL/USDT'),
    ('moderate', 'BNB/USDT'),
    ('aggressive', 'BTC/USDT'),
    ('aggressive', 'ETH/USDT'),
    ('aggressive', 'SOL/USDT'),
)


def master_bot_config(bot_id):
    """BotConfig for a known master bot, or None"""
    data = MASTER_BOTS.get(bot_id)
    return BotConfig.from_dict(data) if data else None


def build_preset(risk, pair, number, rng):
    profile = RISK_PROFILES[risk]
    capital = int(rng.integers(profile['capital'][0], profile['capital'][1] + 1))
    min_duration, max_duration = profile['duration']

    return BotConfig(
        name=f"{risk.capitalize()} Bot #{number}",
        trading_pair=pair,
        leverage=profile['leverage'],
        win_rate=round(float(rng.uniform(*profile['win_rate'])), 3),
        daily_target_percent=round(float(rng.uniform(*profile['daily_target'])), 2),
        trades_per_day=int(rng.integers(profile['trades_per_day'][0], profile['trades_per_day'][1] + 1)),
        invested_capital=capital,
        min_position_size=capital * 0.06,
        max_position_size=capital * 0.14,
        min_duration=min_duration,
        max_duration=max_duration,
        max_concurrent_positions=profile['max_positions'],
        open_frequency=profile['open_frequency'],
    )


def generate_presets(rng=None):
    """Ten starter bots: 3 conservative, 4 moderate, 3 aggressive"""
    rng = rng if rng is not None else np.random.default_rng()
    counters = {}
    presets = []
    for risk, pair in PRESET_LINEUP:
        counters[risk] = counters.get(risk, 0) + 1
        presets.append(build_preset(risk, pair, counters[risk], rng))
    return presets
