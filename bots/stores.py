# bots/stores.py
"""
Bot configuration repositories.

Each record is ``{'id': ..., 'config': {...}}``; positions and trades are
runtime-only and never stored here.
"""
import copy

from django.db import transaction


class BotConfigStore:
    """Storage interface for persisted bot configurations"""

    def load_all(self):
        raise NotImplementedError

    def save_all(self, records):
        """Replace the stored snapshot with ``records``"""
        raise NotImplementedError

    def delete(self, bot_id):
        raise NotImplementedError


class InMemoryBotConfigStore(BotConfigStore):

    def __init__(self, records=None):
        self._records = {r['id']: copy.deepcopy(r['config']) for r in records or []}

    def load_all(self):
        return [{'id': bot_id, 'config': copy.deepcopy(config)}
                for bot_id, config in self._records.items()]

    def save_all(self, records):
        self._records = {r['id']: copy.deepcopy(r['config']) for r in records}

    def delete(self, bot_id):
        self._records.pop(bot_id, None)


class DjangoBotConfigStore(BotConfigStore):
    """Stores configs in the BotConfiguration table"""

    def load_all(self):
        from bots.models import BotConfiguration

        return [{'id': row.bot_id, 'config': row.config}
                for row in BotConfiguration.objects.all()]

    @transaction.atomic
    def save_all(self, records):
        from bots.models import BotConfiguration

        ids = [r['id'] for r in records]
        BotConfiguration.objects.exclude(bot_id__in=ids).delete()
        for record in records:
            BotConfiguration.objects.update_or_create(
                bot_id=record['id'],
                defaults={'config': record['config']},
            )

    def delete(self, bot_id):
        from bots.models import BotConfiguration

        BotConfiguration.objects.filter(bot_id=bot_id).delete()
