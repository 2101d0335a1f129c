# copy_trading/types.py
import dataclasses
from dataclasses import dataclass
from typing import Optional

ACTIVE = 'ACTIVE'
CLOSING = 'CLOSING'
CLOSED = 'CLOSED'
COPY_STATUSES = (ACTIVE, CLOSING, CLOSED)


@dataclass(frozen=True)
class UserCopy:
    """A user's proportional follow of a master bot; holds no trades of its own"""
    id: str
    owner_id: str
    master_bot_id: str
    invested_amount: float
    created_at: float
    status: str = ACTIVE
    closed_at: Optional[float] = None
    final_pnl: Optional[float] = None
    final_value: Optional[float] = None
    # Aggregates frozen at close (total_pnl, win_rate, counts, averages)
    final_stats: Optional[dict] = None

    @property
    def is_active(self):
        return self.status == ACTIVE

    def to_dict(self):
        return dataclasses.asdict(self)

    @classmethod
    def from_dict(cls, data):
        known = {f.name for f in dataclasses.fields(cls)}
        return cls(**{key: value for key, value in data.items() if key in known})
