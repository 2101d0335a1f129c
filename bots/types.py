# bots/types.py
"""
Value types shared by the simulator: bot configuration, open positions,
the trade ledger and the stats derived from them.

All P&L percentages are on the leveraged margin scale a single trade
reports (a +1.5% trade returns 1.5% of its position size). The daily
target is the sum of those per-trade percentages over one UTC day.
"""
import dataclasses
import math
from dataclasses import dataclass, field
from typing import Optional, Union

from bots.exceptions import ConfigurationError
from trading.services.friction import FrictionComponents

# Losses are sized at 70% of the loss that would exactly mirror wins
ASYMMETRY_FACTOR = 0.7

LONG = 'LONG'
SHORT = 'SHORT'
BOTH = 'BOTH'
SIDES = (LONG, SHORT)

WIN = 'WIN'
LOSS = 'LOSS'

TIGHT = 'tight'
WIDE = 'wide'

VOLATILITY_CHOICES = ('auto', 'low', 'medium', 'high')
DEFAULT_LEVERAGES = (3, 5, 10)
COPY_ID_PREFIX = 'copy_'


def _is_number(value):
    return isinstance(value, (int, float)) and not isinstance(value, bool)


@dataclass(frozen=True)
class BotConfig:
    name: str
    trading_pair: str
    win_rate: float
    daily_target_percent: float
    trades_per_day: float
    invested_capital: float
    min_position_size: float
    max_position_size: float
    min_duration: float = 30.0
    max_duration: float = 300.0
    max_concurrent_positions: int = 3
    open_frequency: float = 0.7
    trading_pairs: tuple = ()
    leverage: Optional[int] = None
    leverages: tuple = ()
    allowed_sides: str = BOTH
    max_slippage: float = 0.5
    max_trades_history: int = 100
    tight_mode_percent: float = 80.0
    volatility: str = 'auto'
    cooldown_seconds: float = 0.0
    created_at: Optional[float] = None

    @classmethod
    def from_dict(cls, data):
        """Build a config from an external description, ignoring unknown keys"""
        if not isinstance(data, dict):
            raise ConfigurationError(f"Bot configuration must be a mapping, got {type(data).__name__}")
        known = {f.name for f in dataclasses.fields(cls)}
        values = {key: value for key, value in data.items() if key in known}

        for key in ('trading_pairs', 'leverages'):
            if values.get(key) is not None:
                values[key] = tuple(values[key])
            else:
                values.pop(key, None)

        try:
            return cls(**values)
        except TypeError as e:
            raise ConfigurationError(f"Incomplete bot configuration: {e}") from e

    def to_dict(self):
        data = dataclasses.asdict(self)
        data['trading_pairs'] = list(self.trading_pairs)
        data['leverages'] = list(self.leverages)
        return data

    def update(self, changes):
        """Return a copy with the recognised fields of ``changes`` applied"""
        merged = self.to_dict()
        merged.update(changes)
        return BotConfig.from_dict(merged)

    @property
    def pairs(self):
        return list(self.trading_pairs) if self.trading_pairs else [self.trading_pair]

    @property
    def leverage_choices(self):
        if self.leverages:
            return list(self.leverages)
        if self.leverage:
            return [self.leverage]
        return list(DEFAULT_LEVERAGES)

    def validate(self):
        """Raise ConfigurationError describing the first invalid field"""
        numeric = {
            'win_rate': self.win_rate,
            'daily_target_percent': self.daily_target_percent,
            'trades_per_day': self.trades_per_day,
            'invested_capital': self.invested_capital,
            'min_position_size': self.min_position_size,
            'max_position_size': self.max_position_size,
            'min_duration': self.min_duration,
            'max_duration': self.max_duration,
            'open_frequency': self.open_frequency,
            'tight_mode_percent': self.tight_mode_percent,
            'max_slippage': self.max_slippage,
            'cooldown_seconds': self.cooldown_seconds,
        }
        for name, value in numeric.items():
            if not _is_number(value) or not math.isfinite(value):
                raise ConfigurationError(f"{name} must be a finite number, got {value!r}")

        for name in ('max_concurrent_positions', 'max_trades_history'):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool):
                raise ConfigurationError(f"{name} must be an integer, got {value!r}")

        if not 0 < self.win_rate < 1:
            raise ConfigurationError(f"win_rate must be between 0 and 1 (exclusive), got {self.win_rate}")
        for name in ('daily_target_percent', 'trades_per_day', 'invested_capital'):
            if numeric[name] <= 0:
                raise ConfigurationError(f"{name} must be greater than 0, got {numeric[name]}")

        if self.min_position_size <= 0 or self.max_position_size <= 0:
            raise ConfigurationError("Position sizes must be positive")
        if self.min_position_size > self.max_position_size:
            raise ConfigurationError("min_position_size cannot exceed max_position_size")
        if self.min_duration <= 0 or self.min_duration > self.max_duration:
            raise ConfigurationError("Duration bounds must satisfy 0 < min_duration <= max_duration")

        if self.max_concurrent_positions < 1:
            raise ConfigurationError("max_concurrent_positions must be at least 1")
        if not 0 <= self.open_frequency <= 1:
            raise ConfigurationError("open_frequency must be between 0 and 1")
        if not 0 <= self.tight_mode_percent <= 100:
            raise ConfigurationError("tight_mode_percent must be between 0 and 100")
        if self.max_trades_history < 1:
            raise ConfigurationError("max_trades_history must be at least 1")
        if self.max_slippage < 0 or self.cooldown_seconds < 0:
            raise ConfigurationError("max_slippage and cooldown_seconds cannot be negative")

        if self.allowed_sides not in (LONG, SHORT, BOTH):
            raise ConfigurationError(f"allowed_sides must be LONG, SHORT or BOTH, got {self.allowed_sides!r}")
        if self.volatility not in VOLATILITY_CHOICES:
            raise ConfigurationError(f"volatility must be one of {VOLATILITY_CHOICES}, got {self.volatility!r}")
        if not self.pairs or not all(isinstance(p, str) and p for p in self.pairs):
            raise ConfigurationError("At least one trading pair is required")
        if any(not _is_number(lev) or lev <= 0 for lev in self.leverage_choices):
            raise ConfigurationError("Leverage must be a positive number")

        loss_rate = 1 - self.win_rate
        if self.win_rate - (loss_rate ** 2 / self.win_rate) * ASYMMETRY_FACTOR <= 0:
            raise ConfigurationError(
                f"win_rate {self.win_rate} is too low to reach a positive target "
                f"with loss asymmetry {ASYMMETRY_FACTOR}"
            )


@dataclass(frozen=True)
class PnLRange:
    win_min: float
    win_max: float
    loss_min: float
    loss_max: float
    mode: str
    base_expected: float


@dataclass
class Position:
    id: str
    pair: str
    side: str
    leverage: int
    entry_price: float
    current_price: float
    position_size: float
    amount: float
    opened_at: float
    close_at: float
    take_profit: float
    stop_loss: float
    target_pnl: float
    stop_loss_pnl: float
    pnl_range: PnLRange
    should_win: Optional[bool] = None
    pnl: float = 0.0
    pnl_percent: float = 0.0

    def is_due(self, now):
        return now >= self.close_at


@dataclass(frozen=True)
class Trade:
    id: str
    pair: str
    side: str
    leverage: int
    entry_price: float
    exit_price: float
    amount: float
    position_size: float
    pnl: float
    pnl_percent: float
    duration: float
    opened_at: float
    closed_at: float
    expected_outcome: str
    actual_outcome: str
    friction: FrictionComponents


@dataclass
class BotStats:
    id: str
    name: str
    total_pnl: float = 0.0
    win_rate: float = 0.0
    trades_count: int = 0
    wins_count: int = 0
    losses_count: int = 0
    avg_win: float = 0.0
    avg_loss: float = 0.0
    positions: list = field(default_factory=list)
    trades: list = field(default_factory=list)

    @classmethod
    def empty(cls, bot_id, name='Unknown'):
        return cls(id=bot_id, name=name)

    def to_dict(self):
        return dataclasses.asdict(self)


@dataclass(frozen=True)
class RegistryStats:
    total_bots: int = 0
    total_pnl: float = 0.0
    avg_win_rate: float = 0.0
    total_positions: int = 0
    total_trades: int = 0

    def to_dict(self):
        return dataclasses.asdict(self)


@dataclass(frozen=True)
class BotRef:
    id: str


@dataclass(frozen=True)
class CopyRef:
    id: str


EntityRef = Union[BotRef, CopyRef]


def parse_entity_ref(value):
    """Map a raw id (or an existing ref) onto BotRef / CopyRef"""
    if isinstance(value, (BotRef, CopyRef)):
        return value
    if not isinstance(value, str) or not value:
        raise ValueError(f"Invalid entity id: {value!r}")
    if value.startswith(COPY_ID_PREFIX):
        return CopyRef(value)
    return BotRef(value)


def summarize_trades(trades):
    """Aggregate counts and averages over a trade list (wins are pnl > 0)"""
    wins = [t.pnl for t in trades if t.pnl > 0]
    losses = [t.pnl for t in trades if t.pnl <= 0]
    total = len(trades)

    return {
        'total_pnl': sum(t.pnl for t in trades),
        'win_rate': (len(wins) / total * 100) if total else 0.0,
        'trades_count': total,
        'wins_count': len(wins),
        'losses_count': len(losses),
        'avg_win': (sum(wins) / len(wins)) if wins else 0.0,
        'avg_loss': (sum(losses) / len(losses)) if losses else 0.0,
    }
