# realtime/routing.py
from django.urls import path
from .consumers import BotStatsConsumer

websocket_urlpatterns = [
    path('ws/bots/', BotStatsConsumer.as_asgi()),
]
