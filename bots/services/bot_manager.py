# bots/services/bot_manager.py
import json
import logging
import threading
import time
import uuid

import numpy as np

from bots.exceptions import (
    BotNotFound, ConfigurationError, DuplicateBotError, ReservedIdError,
)
from bots.services.bot_engine import TradingBot
from bots.services.pnl_calculator import PnLRangeCalculator
from bots.stores import InMemoryBotConfigStore
from bots.types import BotConfig, CopyRef, RegistryStats, parse_entity_ref
from bots.utils import finite
from trading.services.friction import MarketFrictionModel

logger = logging.getLogger(__name__)


class BotManager:
    """
    Registry and dispatcher for simulated bots.

    - Creates/deletes bots (the only place TradingBot is constructed)
    - Fans every price snapshot out to all bots
    - Persists {id, config} pairs through a BotConfigStore
    - Aggregates stats across bots
    """

    def __init__(self, store=None, rng=None, clock=None,
                 friction_model=None, calculator=None):
        self.store = store if store is not None else InMemoryBotConfigStore()
        self.rng = rng if rng is not None else np.random.default_rng()
        self.clock = clock or time.time
        self.friction_model = friction_model or MarketFrictionModel()
        self.calculator = calculator or PnLRangeCalculator()

        self._bots = {}
        self._lock = threading.RLock()
        self._tick_count = 0

    # Lifecycle

    def init(self):
        self.load()

    def shutdown(self):
        self.save()
        logger.info(f"BotManager shut down with {len(self._bots)} bots saved")

    # Bot collection

    def create_bot(self, config, bot_id=None):
        """Register a new bot and return its id"""
        if bot_id is not None:
            ref = parse_entity_ref(bot_id)
            if isinstance(ref, CopyRef):
                raise ReservedIdError(
                    f"Cannot create a trading bot for copy id '{ref.id}': "
                    f"user copies are projections of a master bot"
                )
            bot_id = ref.id
        else:
            bot_id = f"bot_{int(self.clock() * 1000)}_{uuid.uuid4().hex[:9]}"

        if isinstance(config, dict):
            config = BotConfig.from_dict(config)
        if config.created_at is None:
            config = config.update({'created_at': self.clock()})
        config.validate()
        self.calculator.check_config(config)

        with self._lock:
            if bot_id in self._bots:
                raise DuplicateBotError(f"Bot {bot_id} already exists")
            self._bots[bot_id] = self._build_bot(bot_id, config)
            self.save()

        logger.info(f"Created bot {bot_id} ({config.name})")
        return bot_id

    def delete_bot(self, bot_id):
        with self._lock:
            if bot_id not in self._bots:
                raise BotNotFound(f"Bot {bot_id} not found")
            del self._bots[bot_id]
            self.store.delete(bot_id)
            self.save()

        logger.info(f"Deleted bot {bot_id}")

    def update_bot_config(self, bot_id, changes):
        """Apply a partial config update and persist it"""
        with self._lock:
            bot = self._require(bot_id)
            config = bot.update_config(changes)
            self.save()

        logger.info(f"Config updated and saved for bot {bot_id}")
        return config

    def get_bot(self, bot_id):
        return self._bots.get(bot_id)

    def get_bot_ids(self):
        with self._lock:
            return list(self._bots)

    def get_bot_count(self):
        return len(self._bots)

    def has_bot(self, bot_id):
        return bot_id in self._bots

    # Ticking

    def tick(self, prices):
        """Forward the latest price snapshot to every bot"""
        with self._lock:
            bots = list(self._bots.values())
            self._tick_count += 1
            if bots and self._tick_count % 100 == 0:
                logger.debug(f"Tick {self._tick_count}: {len(bots)} bots, prices: {prices}")

            for bot in bots:
                try:
                    bot.tick(prices)
                except Exception as e:
                    logger.error(f"Error ticking bot {bot.id}: {e}", exc_info=True)

    # Stats

    def get_stats(self, bot_id):
        with self._lock:
            bot = self._bots.get(bot_id)
            return bot.get_stats() if bot else None

    def get_all_stats(self):
        with self._lock:
            return [bot.get_stats() for bot in self._bots.values()]

    def get_aggregated_stats(self):
        all_stats = self.get_all_stats()
        if not all_stats:
            return RegistryStats()

        return RegistryStats(
            total_bots=len(all_stats),
            total_pnl=finite(sum(s.total_pnl for s in all_stats), label='total_pnl'),
            avg_win_rate=finite(
                sum(s.win_rate for s in all_stats) / len(all_stats), label='avg_win_rate'
            ),
            total_positions=sum(len(s.positions) for s in all_stats),
            total_trades=sum(s.trades_count for s in all_stats),
        )

    def export_stats(self):
        return json.dumps([s.to_dict() for s in self.get_all_stats()], indent=2)

    # Persistence

    def save(self):
        """Persist {id, config} for every bot (runtime state is not saved)"""
        with self._lock:
            records = [{'id': bot_id, 'config': bot.get_config().to_dict()}
                       for bot_id, bot in self._bots.items()]
            self.store.save_all(records)

    def load(self):
        """Rebuild bots from stored configs; positions and trades start empty"""
        with self._lock:
            records = self.store.load_all()
            self._bots.clear()

            for record in records:
                bot_id = record.get('id')
                try:
                    if isinstance(parse_entity_ref(bot_id), CopyRef):
                        raise ReservedIdError(f"Stored id {bot_id} is in the copy namespace")
                    config = BotConfig.from_dict(record.get('config') or {})
                    config.validate()
                    self.calculator.check_config(config)
                except (ValueError, ConfigurationError) as e:
                    logger.error(f"Skipping stored bot {bot_id}: {e}")
                    continue
                self._bots[bot_id] = self._build_bot(bot_id, config)

        logger.info(f"Loaded {len(self._bots)} bots from storage")

    def clear_all(self):
        with self._lock:
            for bot_id in list(self._bots):
                self.store.delete(bot_id)
            self._bots.clear()
            self.store.save_all([])
        logger.info("All bots cleared")

    def _require(self, bot_id):
        bot = self._bots.get(bot_id)
        if bot is None:
            raise BotNotFound(f"Bot {bot_id} not found")
        return bot

    def _build_bot(self, bot_id, config):
        # Independent stream per bot so bots never share random state
        seed = int(self.rng.integers(0, 2 ** 63 - 1))
        return TradingBot(
            bot_id,
            config,
            rng=np.random.default_rng(seed),
            clock=self.clock,
            friction_model=self.friction_model,
            calculator=self.calculator,
        )
