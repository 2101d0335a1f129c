# bots/models.py
from django.db import models


class BotConfiguration(models.Model):
    """Persisted bot definition: id and config only, never runtime state"""
    bot_id = models.CharField(max_length=100, primary_key=True)
    config = models.JSONField(default=dict)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['created_at']

    def __str__(self):
        return f"{self.bot_id} ({self.config.get('name', 'unnamed')})"
