# bots/utils.py
import logging
import math

logger = logging.getLogger(__name__)


def finite(value, default=0.0, label=None):
    """Return value as float, or default when it is NaN/Infinity/not a number"""
    try:
        number = float(value)
    except (TypeError, ValueError):
        number = math.nan

    if math.isfinite(number):
        return number

    if label:
        logger.warning(f"Non-finite value for {label}: {value!r}, using {default}")
    return default


def pair_symbol(pair):
    """Price-feed symbol for a trading pair: 'BTC/USDT' -> 'BTCUSDT'"""
    return pair.replace('/', '').upper()
