# copy_trading/services/copy_service.py
import dataclasses
import logging
import math
import time
import uuid

from bots.exceptions import BotNotFound, CopyNotFound, CopyStateError
from bots.services.bot_engine import RECENT_TRADES_LIMIT
from bots.types import COPY_ID_PREFIX, BotStats, Position, summarize_trades
from bots.utils import finite
from copy_trading.stores import InMemoryUserCopyStore
from copy_trading.types import ACTIVE, CLOSED, CLOSING, UserCopy

logger = logging.getLogger(__name__)


def copy_ratio(user_copy, master_config):
    """invested / master capital, or 0 when master capital is unusable"""
    capital = master_config.invested_capital
    invested = user_copy.invested_amount
    if not isinstance(capital, (int, float)) or not math.isfinite(capital) or capital <= 0:
        logger.warning(
            f"Copy {user_copy.id}: master {user_copy.master_bot_id} has invalid "
            f"invested capital {capital!r}, projecting with ratio 0"
        )
        return 0.0
    return finite(invested / capital, label=f'{user_copy.id}.ratio')


def project(user_copy, master_bot):
    """
    Derive a copy's stats from its master bot's live ledger.

    Only trades closed at or after the copy was created count (and, for a
    closed copy, strictly before its close time). P&L, position size and
    amount are scaled by invested / master capital; aggregates are
    recomputed from the scaled trades. Nothing is cached.
    """
    ratio = copy_ratio(user_copy, master_bot.get_config())

    def scale(value, label):
        return finite(value * ratio, label=f'{user_copy.id}.{label}')

    trades = [
        t for t in master_bot.get_trades()
        if t.closed_at >= user_copy.created_at
        and (user_copy.closed_at is None or t.closed_at < user_copy.closed_at)
    ]
    scaled_trades = [
        dataclasses.replace(
            t,
            pnl=scale(t.pnl, 'pnl'),
            position_size=scale(t.position_size, 'position_size'),
            amount=scale(t.amount, 'amount'),
        )
        for t in trades
    ]

    scaled_positions = []
    if user_copy.status == ACTIVE:
        for position in master_bot.get_positions():
            scaled = Position(**vars(position))
            scaled.pnl = scale(position.pnl, 'pnl')
            scaled.position_size = scale(position.position_size, 'position_size')
            scaled.amount = scale(position.amount, 'amount')
            scaled_positions.append(scaled)

    summary = {key: finite(value, label=f'{user_copy.id}.{key}')
               for key, value in summarize_trades(scaled_trades).items()}

    return BotStats(
        id=user_copy.id,
        name=f"{master_bot.get_config().name} Copy",
        total_pnl=summary['total_pnl'],
        win_rate=summary['win_rate'],
        trades_count=int(summary['trades_count']),
        wins_count=int(summary['wins_count']),
        losses_count=int(summary['losses_count']),
        avg_win=summary['avg_win'],
        avg_loss=summary['avg_loss'],
        positions=scaled_positions,
        trades=list(reversed(scaled_trades[-RECENT_TRADES_LIMIT:])),
    )


SUMMARY_FIELDS = (
    'total_pnl', 'win_rate', 'trades_count', 'wins_count',
    'losses_count', 'avg_win', 'avg_loss',
)


def stats_summary(stats):
    return {key: getattr(stats, key) for key in SUMMARY_FIELDS}


def closed_stats(user_copy, master_bot=None):
    """Stats of a closed copy, from the summary stored when it closed"""
    name = (f"{master_bot.get_config().name} Copy" if master_bot is not None
            else f"{user_copy.master_bot_id} Copy")
    summary = user_copy.final_stats or {'total_pnl': user_copy.final_pnl or 0.0}

    stats = BotStats.empty(user_copy.id, name=name)
    for key in SUMMARY_FIELDS:
        if key in summary:
            setattr(stats, key, summary[key])
    return stats


class UserCopyService:
    """Copy lifecycle: ACTIVE -> CLOSING -> CLOSED, stats by projection"""

    def __init__(self, bot_manager, store=None, clock=None):
        self.bot_manager = bot_manager
        self.store = store if store is not None else InMemoryUserCopyStore()
        self.clock = clock or time.time

    def create_copy(self, master_bot_id, invested_amount, owner_id):
        if not self.bot_manager.has_bot(master_bot_id):
            raise BotNotFound(f"Master bot {master_bot_id} not found")

        amount = finite(invested_amount, default=0.0, label='invested_amount')
        if amount <= 0:
            raise ValueError(f"Invested amount must be positive, got {invested_amount!r}")

        now = self.clock()
        user_copy = UserCopy(
            id=f"{COPY_ID_PREFIX}{int(now * 1000)}_{uuid.uuid4().hex[:9]}",
            owner_id=str(owner_id),
            master_bot_id=master_bot_id,
            invested_amount=amount,
            created_at=now,
        )
        self.store.save(user_copy)

        logger.info(f"Created copy {user_copy.id} of {master_bot_id} for {owner_id}: ${amount:.2f}")
        return user_copy

    def get_copy(self, copy_id):
        user_copy = self.store.get(copy_id)
        if user_copy is None:
            raise CopyNotFound(f"Copy {copy_id} not found")
        return user_copy

    def list_copies(self, owner_id=None):
        return self.store.list(owner_id=owner_id)

    def get_copy_stats(self, copy_id):
        user_copy = self.get_copy(copy_id)
        master_bot = self.bot_manager.get_bot(user_copy.master_bot_id)

        if user_copy.status == CLOSED:
            # Frozen at close; the master ledger may since have been trimmed
            return closed_stats(user_copy, master_bot)

        if master_bot is None:
            raise BotNotFound(f"Master bot {user_copy.master_bot_id} not found")

        return project(user_copy, master_bot)

    def close_copy(self, copy_id):
        user_copy = self.get_copy(copy_id)
        if user_copy.status != ACTIVE:
            raise CopyStateError(f"Copy {copy_id} is {user_copy.status}, only ACTIVE copies can be closed")

        closing = dataclasses.replace(user_copy, status=CLOSING, closed_at=self.clock())
        self.store.save(closing)

        master_bot = self.bot_manager.get_bot(closing.master_bot_id)
        final_stats = stats_summary(project(closing, master_bot)) if master_bot else None
        final_pnl = final_stats['total_pnl'] if final_stats else 0.0

        closed = dataclasses.replace(
            closing,
            status=CLOSED,
            final_pnl=final_pnl,
            final_stats=final_stats,
            final_value=finite(closing.invested_amount + final_pnl, label='final_value'),
        )
        self.store.save(closed)

        logger.info(f"Closed copy {copy_id}: final P&L {final_pnl:+.2f}, value {closed.final_value:.2f}")
        return closed

    def delete_copy(self, copy_id):
        user_copy = self.get_copy(copy_id)
        if user_copy.status != CLOSED:
            raise CopyStateError(f"Copy {copy_id} must be closed before it can be deleted")

        self.store.delete(copy_id)
        logger.info(f"Deleted copy {copy_id}")

    def get_master_aggregated_stats(self, master_bot_id):
        copies = [c for c in self.store.list(master_bot_id=master_bot_id) if c.status == ACTIVE]
        total_invested = finite(sum(c.invested_amount for c in copies), label='total_invested')
        master_stats = self.bot_manager.get_stats(master_bot_id)

        return {
            'master_bot_id': master_bot_id,
            'total_copiers': len(copies),
            'total_invested': total_invested,
            'avg_investment_per_copy': total_invested / len(copies) if copies else 0.0,
            'master_bot_stats': master_stats or BotStats.empty(master_bot_id),
            'copiers': [
                {
                    'copy_id': c.id,
                    'owner_id': c.owner_id,
                    'invested_amount': c.invested_amount,
                    'created_at': c.created_at,
                }
                for c in copies
            ],
        }
