# copy_trading/models.py
from django.db import models


class UserCopyRecord(models.Model):
    """A user's copy of a master bot"""
    STATUS_CHOICES = [
        ('ACTIVE', 'Active'),
        ('CLOSING', 'Closing'),
        ('CLOSED', 'Closed'),
    ]

    copy_id = models.CharField(max_length=100, primary_key=True)
    owner_id = models.CharField(max_length=100, db_index=True)
    master_bot_id = models.CharField(max_length=100, db_index=True)
    invested_amount = models.DecimalField(max_digits=20, decimal_places=2)
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default='ACTIVE')

    # Simulation clock timestamps (epoch seconds)
    created_at = models.FloatField()
    closed_at = models.FloatField(null=True, blank=True)

    final_pnl = models.FloatField(null=True, blank=True)
    final_value = models.FloatField(null=True, blank=True)
    final_stats = models.JSONField(null=True, blank=True)

    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['created_at']

    def __str__(self):
        return f"{self.copy_id} -> {self.master_bot_id} ({self.status})"
