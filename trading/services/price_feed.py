# trading/services/price_feed.py
"""
Live price feeds for the simulator.

PriceFeed streams Binance 24h tickers over a combined websocket stream,
keeps the latest price per symbol and pushes every accepted update to its
listeners. It reconnects forever until disconnect(). SimulatedPriceFeed
offers the same interface with a random walk for offline runs.
"""
import asyncio
import json
import logging
import time

import ccxt
import numpy as np
import websockets

logger = logging.getLogger(__name__)

BINANCE_STREAM_URL = 'wss://stream.binance.com:9443/stream'
MIN_PRICE = 0.0
MAX_PRICE = 1_000_000.0
STALE_AFTER_SECONDS = 10.0
DEFAULT_RECONNECT_DELAY = 5.0

SIMULATION_START_PRICES = {
    'BTCUSDT': 65000.0,
    'ETHUSDT': 3200.0,
    'BNBUSDT': 580.0,
    'SOLUSDT': 150.0,
    'AVAXUSDT': 35.0,
    'LINKUSDT': 15.0,
}


def ccxt_snapshot(symbols):
    """One REST snapshot of last prices from Binance via ccxt"""
    exchange = ccxt.binance({'enableRateLimit': True})
    markets = {f"{s[:-4]}/USDT": s for s in symbols if s.endswith('USDT')}
    tickers = exchange.fetch_tickers(list(markets))

    prices = {}
    for market, ticker in tickers.items():
        symbol = markets.get(market)
        if symbol and ticker.get('last'):
            prices[symbol] = float(ticker['last'])
    return prices


class BasePriceFeed:
    """Latest-price cache with listener fan-out"""

    def __init__(self, symbols, clock=None):
        self.symbols = [s.upper() for s in symbols]
        self.clock = clock or time.time
        self._prices = {}
        self._updated_at = {}
        self._listeners = []
        self._task = None
        self._connected = False

    def subscribe(self, listener):
        """Register ``listener(prices)``; returns a callable that unsubscribes it"""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def get_prices(self):
        return dict(self._prices)

    def is_connected(self):
        return self._connected

    def is_price_stale(self, symbol, max_age=STALE_AFTER_SECONDS):
        updated_at = self._updated_at.get(symbol.upper())
        return updated_at is None or self.clock() - updated_at > max_age

    def update_price(self, symbol, price):
        """Store a price if it is plausible; returns whether it was accepted"""
        try:
            price = float(price)
        except (TypeError, ValueError):
            logger.warning(f"Dropping non-numeric price for {symbol}: {price!r}")
            return False

        if not MIN_PRICE < price < MAX_PRICE:
            logger.warning(f"Dropping out-of-range price for {symbol}: {price}")
            return False

        self._prices[symbol] = price
        self._updated_at[symbol] = self.clock()
        self._notify()
        return True

    def _notify(self):
        snapshot = self.get_prices()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception as e:
                logger.error(f"Price listener failed: {e}", exc_info=True)

    async def disconnect(self):
        task, self._task = self._task, None
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._connected = False


class PriceFeed(BasePriceFeed):
    """Binance combined @ticker stream client"""

    def __init__(self, symbols, url=BINANCE_STREAM_URL,
                 reconnect_delay=DEFAULT_RECONNECT_DELAY,
                 connector=None, snapshot_fetcher=ccxt_snapshot, clock=None):
        super().__init__(symbols, clock=clock)
        self.url = url
        self.reconnect_delay = reconnect_delay
        self.connector = connector or websockets.connect
        self.snapshot_fetcher = snapshot_fetcher

    @property
    def stream_url(self):
        streams = '/'.join(f"{s.lower()}@ticker" for s in self.symbols)
        return f"{self.url}?streams={streams}"

    async def connect(self):
        if self._task is not None and not self._task.done():
            return
        self._task = asyncio.create_task(self._run())

    def handle_message(self, raw):
        """Parse one stream frame; returns whether a price was accepted"""
        try:
            message = json.loads(raw)
        except (TypeError, ValueError):
            logger.warning(f"Dropping non-JSON message: {str(raw)[:100]}")
            return False

        data = message.get('data', message) if isinstance(message, dict) else None
        if not isinstance(data, dict) or 's' not in data or 'c' not in data:
            logger.warning(f"Dropping malformed ticker message: {str(raw)[:100]}")
            return False

        return self.update_price(str(data['s']).upper(), data['c'])

    async def _load_snapshot(self):
        if self.snapshot_fetcher is None:
            return
        try:
            prices = await asyncio.to_thread(self.snapshot_fetcher, self.symbols)
        except Exception as e:
            logger.warning(f"Price snapshot failed, waiting for the stream: {e}")
            return

        for symbol, price in prices.items():
            self.update_price(symbol, price)
        logger.info(f"Loaded price snapshot for {len(prices)} symbols")

    async def _run(self):
        await self._load_snapshot()

        while True:
            try:
                logger.info(f"Connecting to {self.stream_url}")
                async with self.connector(self.stream_url) as ws:
                    self._connected = True
                    logger.info("Price stream connected")
                    async for raw in ws:
                        self.handle_message(raw)
                logger.warning("Price stream closed by server")
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Price stream error: {e}")
            finally:
                self._connected = False

            logger.info(f"Reconnecting in {self.reconnect_delay}s")
            await asyncio.sleep(self.reconnect_delay)


class SimulatedPriceFeed(BasePriceFeed):
    """Random-walk prices with the PriceFeed interface"""

    def __init__(self, symbols, interval=1.0, rng=None, start_prices=None, clock=None):
        super().__init__(symbols, clock=clock)
        self.interval = interval
        self.rng = rng if rng is not None else np.random.default_rng()
        start_prices = start_prices or SIMULATION_START_PRICES
        self._start_prices = {s: start_prices.get(s, 100.0) for s in self.symbols}

    async def connect(self):
        if self._task is not None and not self._task.done():
            return
        for symbol, price in self._start_prices.items():
            self.update_price(symbol, price)
        self._connected = True
        self._task = asyncio.create_task(self._run())
        logger.info(f"Simulated price feed started for {', '.join(self.symbols)}")

    def step(self):
        """Move every symbol by 0.1-0.5% in a random direction"""
        for symbol in self.symbols:
            price = self._prices.get(symbol, self._start_prices[symbol])
            change = self.rng.uniform(0.001, 0.005) * (1 if self.rng.random() < 0.5 else -1)
            self.update_price(symbol, price * (1 + change))

    async def _run(self):
        while True:
            await asyncio.sleep(self.interval)
            self.step()
