# copy_trading/serializers.py
from rest_framework import serializers


class UserCopySerializer(serializers.Serializer):
    id = serializers.CharField(read_only=True)
    owner_id = serializers.CharField(read_only=True)
    master_bot_id = serializers.CharField(max_length=100)
    invested_amount = serializers.FloatField(min_value=0.01)
    status = serializers.CharField(read_only=True)
    created_at = serializers.FloatField(read_only=True)
    closed_at = serializers.FloatField(read_only=True, allow_null=True)
    final_pnl = serializers.FloatField(read_only=True, allow_null=True)
    final_value = serializers.FloatField(read_only=True, allow_null=True)
    final_stats = serializers.JSONField(read_only=True, allow_null=True)
