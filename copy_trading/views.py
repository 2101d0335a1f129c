# copy_trading/views.py
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from bots.exceptions import CopyNotFound
from bots.views import DOMAIN_ERRORS, RuntimeViewMixin, error_response
from copy_trading.serializers import UserCopySerializer


class UserCopyViewSet(RuntimeViewMixin, viewsets.ViewSet):
    """A user's copies of master bots"""
    permission_classes = [IsAuthenticated]
    serializer_class = UserCopySerializer
    lookup_value_regex = '[^/]+'

    def _owner_id(self):
        return str(self.request.user.pk)

    def _get_own_copy(self, pk):
        user_copy = self.runtime.copies.get_copy(pk)
        if user_copy.owner_id != self._owner_id():
            raise CopyNotFound(f"Copy {pk} not found")
        return user_copy

    def list(self, request):
        copies = self.runtime.copies.list_copies(owner_id=self._owner_id())
        return Response(UserCopySerializer([c.to_dict() for c in copies], many=True).data)

    def create(self, request):
        serializer = UserCopySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            user_copy = self.runtime.copies.create_copy(
                serializer.validated_data['master_bot_id'],
                serializer.validated_data['invested_amount'],
                owner_id=self._owner_id(),
            )
        except DOMAIN_ERRORS as e:
            return error_response(e)

        return Response(UserCopySerializer(user_copy.to_dict()).data, status=status.HTTP_201_CREATED)

    def retrieve(self, request, pk=None):
        """Copy record plus its projected stats"""
        try:
            user_copy = self._get_own_copy(pk)
            stats = self.runtime.copies.get_copy_stats(pk)
        except DOMAIN_ERRORS as e:
            return error_response(e)

        return Response({
            'copy': UserCopySerializer(user_copy.to_dict()).data,
            'stats': stats.to_dict(),
        })

    def destroy(self, request, pk=None):
        try:
            self._get_own_copy(pk)
            self.runtime.copies.delete_copy(pk)
        except DOMAIN_ERRORS as e:
            return error_response(e)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=['post'])
    def close(self, request, pk=None):
        try:
            self._get_own_copy(pk)
            user_copy = self.runtime.copies.close_copy(pk)
        except DOMAIN_ERRORS as e:
            return error_response(e)

        return Response(UserCopySerializer(user_copy.to_dict()).data)

    @action(detail=False, methods=['get'], url_path=r'masters/(?P<master_bot_id>[^/]+)')
    def masters(self, request, master_bot_id=None):
        """Copier totals for one master bot"""
        data = self.runtime.copies.get_master_aggregated_stats(master_bot_id)
        data['master_bot_stats'] = data['master_bot_stats'].to_dict()
        return Response(data)
