# copy_trading/stores.py
from decimal import Decimal

from copy_trading.types import UserCopy


class UserCopyStore:
    """Storage interface for user copies"""

    def get(self, copy_id):
        raise NotImplementedError

    def list(self, owner_id=None, master_bot_id=None):
        raise NotImplementedError

    def save(self, user_copy):
        raise NotImplementedError

    def delete(self, copy_id):
        raise NotImplementedError


class InMemoryUserCopyStore(UserCopyStore):

    def __init__(self):
        self._copies = {}

    def get(self, copy_id):
        return self._copies.get(copy_id)

    def list(self, owner_id=None, master_bot_id=None):
        return [
            c for c in self._copies.values()
            if (owner_id is None or c.owner_id == owner_id)
            and (master_bot_id is None or c.master_bot_id == master_bot_id)
        ]

    def save(self, user_copy):
        self._copies[user_copy.id] = user_copy

    def delete(self, copy_id):
        self._copies.pop(copy_id, None)


class DjangoUserCopyStore(UserCopyStore):
    """Copies in the UserCopyRecord table"""

    def get(self, copy_id):
        from copy_trading.models import UserCopyRecord

        record = UserCopyRecord.objects.filter(copy_id=copy_id).first()
        return self._to_copy(record) if record else None

    def list(self, owner_id=None, master_bot_id=None):
        from copy_trading.models import UserCopyRecord

        queryset = UserCopyRecord.objects.all()
        if owner_id is not None:
            queryset = queryset.filter(owner_id=owner_id)
        if master_bot_id is not None:
            queryset = queryset.filter(master_bot_id=master_bot_id)
        return [self._to_copy(record) for record in queryset]

    def save(self, user_copy):
        from copy_trading.models import UserCopyRecord

        UserCopyRecord.objects.update_or_create(
            copy_id=user_copy.id,
            defaults={
                'owner_id': user_copy.owner_id,
                'master_bot_id': user_copy.master_bot_id,
                'invested_amount': Decimal(str(user_copy.invested_amount)),
                'status': user_copy.status,
                'created_at': user_copy.created_at,
                'closed_at': user_copy.closed_at,
                'final_pnl': user_copy.final_pnl,
                'final_value': user_copy.final_value,
                'final_stats': user_copy.final_stats,
            },
        )

    def delete(self, copy_id):
        from copy_trading.models import UserCopyRecord

        UserCopyRecord.objects.filter(copy_id=copy_id).delete()

    def _to_copy(self, record):
        return UserCopy(
            id=record.copy_id,
            owner_id=record.owner_id,
            master_bot_id=record.master_bot_id,
            invested_amount=float(record.invested_amount),
            created_at=record.created_at,
            status=record.status,
            closed_at=record.closed_at,
            final_pnl=record.final_pnl,
            final_value=record.final_value,
            final_stats=record.final_stats,
        )
