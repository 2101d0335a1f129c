# trading/services/friction.py
"""
Market friction model

Simulated trading costs subtracted from a trade's raw P&L:
- Slippage: price movement during execution (volatility and size driven)
- Spread: bid/ask cost by pair liquidity bucket
- Funding rate: perpetual futures funding, either sign
- Commission: exchange taker fee

All components are signed percentages of position notional. There is no
order book behind any of this; the buckets are coarse categories.
"""
import dataclasses
import logging
from dataclasses import dataclass

import numpy as np

logger = logging.getLogger(__name__)

MAJOR_COINS = ('BTC', 'ETH')
POPULAR_ALTS = ('BNB', 'SOL', 'AVAX', 'MATIC', 'LINK')

SLIPPAGE_BY_VOLATILITY = {
    'low': -0.05,
    'medium': -0.12,
    'high': -0.25,
}

SPREAD_BY_CATEGORY = {
    'major': -0.03,
    'popular_alt': -0.06,
    'exotic': -0.10,
}

BULLISH_FUNDING_PROBABILITY = 0.6
# (bullish, bearish) funding for each side
FUNDING_BY_SIDE = {
    'LONG': (-0.01, 0.005),
    'SHORT': (0.008, -0.012),
}

BASE_COMMISSION = -0.05


@dataclass(frozen=True)
class FrictionComponents:
    slippage: float = 0.0
    spread: float = 0.0
    funding_rate: float = 0.0
    commission: float = 0.0
    total: float = 0.0


def pair_category(trading_pair):
    """Liquidity bucket for a pair"""
    pair = trading_pair.upper()
    if any(coin in pair for coin in MAJOR_COINS):
        return 'major'
    if any(coin in pair for coin in POPULAR_ALTS):
        return 'popular_alt'
    return 'exotic'


def _size_adjustment(position_size_usd):
    # Positions above $1000 slip more, capped at 2x
    size_factor = min(position_size_usd / 1000, 2.0)
    return -0.02 * (size_factor - 1)


class MarketFrictionModel:
    """Compute simulated trading costs for a closing trade"""

    def calculate_friction(self, trading_pair, position_size_usd, leverage, side,
                           volatility='medium', rng=None):
        """Total market friction for one trade, as signed percentages"""
        rng = rng if rng is not None else np.random.default_rng()

        slippage = self._slippage(volatility, position_size_usd, rng)
        spread = self._spread(trading_pair, rng)
        funding_rate = self._funding_rate(side, rng)
        commission = self._commission(rng)

        return FrictionComponents(
            slippage=slippage,
            spread=spread,
            funding_rate=funding_rate,
            commission=commission,
            total=slippage + spread + funding_rate + commission,
        )

    def apply_friction_to_pnl(self, pnl_percent, friction):
        """Example: trade +5%, friction -0.3% -> +4.7%"""
        return pnl_percent + friction.total

    def cap_slippage(self, friction, max_slippage):
        """Limit slippage magnitude to ``max_slippage`` percent, keeping its sign"""
        if abs(friction.slippage) <= max_slippage:
            return friction

        slippage = max_slippage if friction.slippage > 0 else -max_slippage
        return dataclasses.replace(
            friction,
            slippage=slippage,
            total=friction.total - friction.slippage + slippage,
        )

    def expected_friction(self, trading_pair, position_size_usd, side, volatility='medium',
                          max_slippage=None):
        """Mean total friction (the random variances are zero-centred)"""
        if volatility not in SLIPPAGE_BY_VOLATILITY:
            volatility = 'medium'

        bullish, bearish = FUNDING_BY_SIDE[side]
        funding = (BULLISH_FUNDING_PROBABILITY * bullish
                   + (1 - BULLISH_FUNDING_PROBABILITY) * bearish)

        slippage = SLIPPAGE_BY_VOLATILITY[volatility] + _size_adjustment(position_size_usd)
        if max_slippage is not None:
            slippage = max(slippage, -max_slippage)

        return (slippage
                + SPREAD_BY_CATEGORY[pair_category(trading_pair)]
                + funding
                + BASE_COMMISSION)

    def estimate_current_volatility(self, rng=None, hour=None):
        """Higher volatility during US/EU trading hours (14:00-22:00 UTC)"""
        rng = rng if rng is not None else np.random.default_rng()
        if hour is None:
            from django.utils import timezone
            hour = timezone.now().hour

        draw = rng.random()
        if 14 <= hour <= 22:
            # 10% low, 60% medium, 30% high
            if draw < 0.1:
                return 'low'
            if draw < 0.7:
                return 'medium'
            return 'high'

        # 70% low, 25% medium, 5% high
        if draw < 0.7:
            return 'low'
        if draw < 0.95:
            return 'medium'
        return 'high'

    def friction_summary(self, friction):
        def fmt(value):
            return f"{'+' if value >= 0 else ''}{value:.3f}%"

        return (
            f"Market Friction: {fmt(friction.total)} "
            f"(slippage: {fmt(friction.slippage)}, "
            f"spread: {fmt(friction.spread)}, "
            f"funding: {fmt(friction.funding_rate)}, "
            f"fee: {fmt(friction.commission)})"
        )

    def _slippage(self, volatility, position_size_usd, rng):
        base = SLIPPAGE_BY_VOLATILITY.get(volatility)
        if base is None:
            logger.warning(f"Unknown volatility {volatility!r}, using medium")
            base = SLIPPAGE_BY_VOLATILITY['medium']

        # ±20%
        variance = (rng.random() - 0.5) * 0.4
        return (base + _size_adjustment(position_size_usd)) * (1 + variance)

    def _spread(self, trading_pair, rng):
        base = SPREAD_BY_CATEGORY[pair_category(trading_pair)]
        # ±30%
        variance = (rng.random() - 0.5) * 0.6
        return base * (1 + variance)

    def _funding_rate(self, side, rng):
        bullish, bearish = FUNDING_BY_SIDE[side]
        base = bullish if rng.random() < BULLISH_FUNDING_PROBABILITY else bearish
        # ±40%
        variance = (rng.random() - 0.5) * 0.8
        return base * (1 + variance)

    def _commission(self, rng):
        # ±20%
        variance = (rng.random() - 0.5) * 0.4
        return BASE_COMMISSION * (1 + variance)
