# bots/services/runtime.py
"""
Simulation runtime: wires the price feed to the bot manager and pushes
stats to websocket dashboards.

Nothing here is constructed on import. Hosts (the run_simulator command
or the bots app when SIMULATOR['AUTOSTART'] is on) build a runtime,
install it for the API views and start it.
"""
import asyncio
import logging
import threading
import time

import numpy as np
from asgiref.sync import sync_to_async
from channels.layers import get_channel_layer
from django.conf import settings

from bots.exceptions import ConfigurationError
from bots.presets import master_bot_config
from bots.services.bot_manager import BotManager
from bots.stores import DjangoBotConfigStore
from copy_trading.services.copy_service import UserCopyService
from copy_trading.stores import DjangoUserCopyStore
from trading.services.price_feed import PriceFeed, SimulatedPriceFeed

logger = logging.getLogger(__name__)

STATS_GROUP = 'bot_stats'

_runtime = None


def install_runtime(runtime):
    global _runtime
    _runtime = runtime


def get_runtime():
    return _runtime


class SimulationRuntime:

    def __init__(self, feed, manager, copies, master_bots=(),
                 broadcast_interval=1.0, channel_layer=None, clock=None):
        self.feed = feed
        self.manager = manager
        self.copies = copies
        self.master_bots = list(master_bots)
        self.broadcast_interval = broadcast_interval
        self.channel_layer = channel_layer
        self.clock = clock or time.time

        self._unsubscribe = None
        self._last_broadcast = None
        self._thread = None
        self._loop = None
        self._stop_event = None
        self._started = threading.Event()

    # Async lifecycle

    async def init(self):
        await sync_to_async(self.manager.init)()
        await sync_to_async(self.seed_master_bots)()

        self._unsubscribe = self.feed.subscribe(self.on_prices)
        await self.feed.connect()
        logger.info(f"Simulation runtime started with {self.manager.get_bot_count()} bots")

    async def shutdown(self):
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        await self.feed.disconnect()
        await sync_to_async(self.manager.shutdown)()
        logger.info("Simulation runtime stopped")

    def seed_master_bots(self):
        """Create configured master bots that are not registered yet"""
        for bot_id in self.master_bots:
            if self.manager.has_bot(bot_id):
                continue
            config = master_bot_config(bot_id)
            if config is None:
                logger.warning(f"Unknown master bot {bot_id}, skipping")
                continue
            try:
                self.manager.create_bot(config, bot_id=bot_id)
            except (ConfigurationError, ValueError) as e:
                logger.error(f"Could not seed master bot {bot_id}: {e}")

    # Ticking

    def on_prices(self, prices):
        self.manager.tick(prices)

        now = self.clock()
        if self._last_broadcast is None or now - self._last_broadcast >= self.broadcast_interval:
            self._last_broadcast = now
            self.broadcast_stats()

    def stats_payload(self):
        return {
            'type': 'bot_stats',
            'stats': [s.to_dict() for s in self.manager.get_all_stats()],
            'aggregated': self.manager.get_aggregated_stats().to_dict(),
        }

    def broadcast_stats(self):
        if self.channel_layer is None:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running loop, skipping stats broadcast")
            return
        loop.create_task(self._send_stats(self.stats_payload()))

    async def _send_stats(self, payload):
        try:
            await self.channel_layer.group_send(STATS_GROUP, payload)
        except Exception as e:
            logger.error(f"Stats broadcast failed: {e}")

    # Threaded host

    def start_in_background(self):
        """Run the runtime on its own event loop thread"""
        if self._thread is not None and self._thread.is_alive():
            return
        self._started.clear()
        self._thread = threading.Thread(target=self._thread_main, name='simulation-runtime', daemon=True)
        self._thread.start()
        self._started.wait(timeout=30)

    def stop(self, timeout=10):
        if self._loop is None or self._stop_event is None:
            return
        self._loop.call_soon_threadsafe(self._stop_event.set)
        if self._thread is not None:
            self._thread.join(timeout=timeout)
        self._thread = None

    async def serve_forever(self):
        self._loop = asyncio.get_running_loop()
        self._stop_event = asyncio.Event()
        await self.init()
        self._started.set()
        try:
            await self._stop_event.wait()
        finally:
            await self.shutdown()

    def _thread_main(self):
        try:
            asyncio.run(self.serve_forever())
        except Exception as e:
            logger.error(f"Simulation runtime crashed: {e}", exc_info=True)
        finally:
            self._started.set()


def build_runtime(simulated=None, seed=None):
    """Assemble a runtime from settings.SIMULATOR"""
    options = settings.SIMULATOR
    if simulated is None:
        simulated = options['SIMULATED_FEED']
    if seed is None:
        seed = options['SEED']

    rng = np.random.default_rng(seed)
    symbols = options['SYMBOLS']

    if simulated:
        feed = SimulatedPriceFeed(symbols, rng=np.random.default_rng(rng.integers(0, 2 ** 63 - 1)))
    else:
        feed = PriceFeed(symbols, url=options['FEED_URL'], reconnect_delay=options['RECONNECT_DELAY'])

    manager = BotManager(store=DjangoBotConfigStore(), rng=rng)
    copies = UserCopyService(manager, store=DjangoUserCopyStore())

    return SimulationRuntime(
        feed,
        manager,
        copies,
        master_bots=options['MASTER_BOTS'],
        broadcast_interval=options['STATS_BROADCAST_INTERVAL'],
        channel_layer=get_channel_layer(),
    )
