# bots/views.py
import numpy as np
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import APIException
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from bots.exceptions import (
    BotNotFound, ConfigurationError, CopyNotFound, CopyStateError,
    DuplicateBotError, ReservedIdError,
)
from bots.serializers import BotConfigSerializer, BotValidationSerializer
from bots.services.runtime import get_runtime
from bots.services.validator import validate_bot_config
from bots.types import BotConfig


class SimulatorUnavailable(APIException):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = 'Simulation runtime is not running'
    default_code = 'simulator_unavailable'


def error_response(exc):
    """Translate a domain exception into an API error response"""
    if isinstance(exc, (BotNotFound, CopyNotFound)):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, (DuplicateBotError, CopyStateError)):
        code = status.HTTP_409_CONFLICT
    else:
        code = status.HTTP_400_BAD_REQUEST
    return Response({'error': str(exc)}, status=code)


DOMAIN_ERRORS = (
    BotNotFound, CopyNotFound, CopyStateError, DuplicateBotError,
    ReservedIdError, ConfigurationError, ValueError,
)


class RuntimeViewMixin:

    @property
    def runtime(self):
        runtime = get_runtime()
        if runtime is None:
            raise SimulatorUnavailable()
        return runtime


class BotViewSet(RuntimeViewMixin, viewsets.ViewSet):
    """Simulated bot endpoints (stats are live, configs are persisted)"""
    permission_classes = [IsAuthenticated]
    serializer_class = BotConfigSerializer
    lookup_value_regex = '[^/]+'

    def list(self, request):
        stats = self.runtime.manager.get_all_stats()
        return Response([s.to_dict() for s in stats])

    def retrieve(self, request, pk=None):
        bot = self.runtime.manager.get_bot(pk)
        if bot is None:
            return Response({'error': f'Bot {pk} not found'}, status=status.HTTP_404_NOT_FOUND)

        data = bot.get_stats().to_dict()
        data['config'] = bot.get_config().to_dict()
        data['daily_progress'] = bot.get_daily_progress()
        return Response(data)

    def create(self, request):
        serializer = BotConfigSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        data = dict(serializer.validated_data)
        bot_id = data.pop('id', None)
        try:
            bot_id = self.runtime.manager.create_bot(BotConfig.from_dict(data), bot_id=bot_id)
        except DOMAIN_ERRORS as e:
            return error_response(e)

        return Response({'id': bot_id, 'message': 'Bot created successfully'},
                        status=status.HTTP_201_CREATED)

    def partial_update(self, request, pk=None):
        serializer = BotConfigSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)

        changes = dict(serializer.validated_data)
        changes.pop('id', None)
        try:
            config = self.runtime.manager.update_bot_config(pk, changes)
        except DOMAIN_ERRORS as e:
            return error_response(e)

        return Response(config.to_dict())

    def destroy(self, request, pk=None):
        try:
            self.runtime.manager.delete_bot(pk)
        except DOMAIN_ERRORS as e:
            return error_response(e)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=False, methods=['get'])
    def aggregated(self, request):
        """Totals across every registered bot"""
        return Response(self.runtime.manager.get_aggregated_stats().to_dict())

    @action(detail=True, methods=['post'])
    def validate(self, request, pk=None):
        """Monte Carlo check of a bot's configuration"""
        bot = self.runtime.manager.get_bot(pk)
        if bot is None:
            return Response({'error': f'Bot {pk} not found'}, status=status.HTTP_404_NOT_FOUND)

        serializer = BotValidationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = validate_bot_config(
            bot.get_config(),
            rng=np.random.default_rng(serializer.validated_data.get('seed')),
            simulation_days=serializer.validated_data['simulation_days'],
        )
        return Response({
            'valid': result.valid,
            'convergence_score': result.convergence_score,
            'avg_deviation': result.avg_deviation,
            'hit_rate': result.hit_rate,
            'mean_daily_pnl': result.mean_daily_pnl,
            'errors': result.errors,
            'warnings': result.warnings,
        })
