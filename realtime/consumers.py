# realtime/consumers.py
import json
import logging

from channels.generic.websocket import AsyncWebsocketConsumer

from bots.services.runtime import STATS_GROUP, get_runtime

logger = logging.getLogger(__name__)


class BotStatsConsumer(AsyncWebsocketConsumer):
    """Streams live bot stats to dashboards"""

    async def connect(self):
        await self.channel_layer.group_add(STATS_GROUP, self.channel_name)
        await self.accept()

        # Current state right away, don't wait for the next broadcast
        runtime = get_runtime()
        if runtime is not None:
            await self.send_stats(runtime.stats_payload())

    async def disconnect(self, close_code):
        await self.channel_layer.group_discard(STATS_GROUP, self.channel_name)

    async def receive(self, text_data):
        try:
            data = json.loads(text_data)
        except ValueError:
            logger.warning(f"Ignoring non-JSON message: {text_data[:100]}")
            return

        if data.get('action') == 'refresh':
            runtime = get_runtime()
            if runtime is not None:
                await self.send_stats(runtime.stats_payload())

    async def bot_stats(self, event):
        """Handle stats broadcast from the runtime"""
        await self.send_stats(event)

    async def send_stats(self, payload):
        await self.send(text_data=json.dumps({
            'type': 'bot_stats',
            'stats': payload['stats'],
            'aggregated': payload['aggregated'],
        }))
