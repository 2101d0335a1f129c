# bots/serializers.py
from rest_framework import serializers

from bots.exceptions import ConfigurationError
from bots.types import BOTH, LONG, SHORT, VOLATILITY_CHOICES, BotConfig


class BotConfigSerializer(serializers.Serializer):
    """Input for creating or updating a simulated bot"""
    id = serializers.CharField(required=False, write_only=True)
    name = serializers.CharField(max_length=100)
    trading_pair = serializers.CharField(max_length=20)
    trading_pairs = serializers.ListField(child=serializers.CharField(max_length=20), required=False)
    leverage = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    leverages = serializers.ListField(child=serializers.IntegerField(min_value=1), required=False)
    win_rate = serializers.FloatField()
    daily_target_percent = serializers.FloatField()
    trades_per_day = serializers.FloatField()
    invested_capital = serializers.FloatField()
    min_position_size = serializers.FloatField()
    max_position_size = serializers.FloatField()
    min_duration = serializers.FloatField(required=False)
    max_duration = serializers.FloatField(required=False)
    max_concurrent_positions = serializers.IntegerField(required=False)
    open_frequency = serializers.FloatField(required=False)
    allowed_sides = serializers.ChoiceField(choices=[LONG, SHORT, BOTH], required=False)
    max_slippage = serializers.FloatField(required=False)
    max_trades_history = serializers.IntegerField(required=False)
    tight_mode_percent = serializers.FloatField(required=False)
    volatility = serializers.ChoiceField(choices=VOLATILITY_CHOICES, required=False)
    cooldown_seconds = serializers.FloatField(required=False)

    def validate(self, attrs):
        # Partial updates are checked against the merged config by the manager
        if self.partial:
            return attrs

        data = {key: value for key, value in attrs.items() if key != 'id'}
        try:
            BotConfig.from_dict(data).validate()
        except ConfigurationError as e:
            raise serializers.ValidationError(str(e))
        return attrs


class BotValidationSerializer(serializers.Serializer):
    simulation_days = serializers.IntegerField(min_value=10, max_value=10000, default=1000)
    seed = serializers.IntegerField(required=False, allow_null=True)
