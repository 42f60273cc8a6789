from rest_framework import viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated

from api.filters import DormitoryFilterBackend
from api.permissions import IsDormitoryStaff
from api.responses import result_response, success_response
from billing import operations
from .models import Room
from .serializers import RoomSerializer, RoomListSerializer, MaintenanceSerializer
from .services import RoomStatusCoordinator


class RoomViewSet(viewsets.ModelViewSet):
    """
    ViewSet for Room management
    Status is read-only here; it changes through tenant, meter and bill operations
    """
    permission_classes = [IsAuthenticated, IsDormitoryStaff]
    filter_backends = [DormitoryFilterBackend]

    def get_serializer_class(self):
        if self.action == 'list':
            return RoomListSerializer
        return RoomSerializer

    def get_queryset(self):
        queryset = Room.objects.select_related('room_type', 'current_tenant').prefetch_related('services')
        status_filter = self.request.query_params.get('status')
        if status_filter:
            queryset = queryset.filter(status=status_filter)
        floor = self.request.query_params.get('floor', '')
        if floor.lstrip('-').isdigit():
            queryset = queryset.filter(floor=int(floor))
        return queryset

    @action(detail=True, methods=['post'])
    def maintenance(self, request, pk=None):
        """Start ({"enabled": true}) or end maintenance"""
        serializer = MaintenanceSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = operations.set_room_maintenance(self.get_object().id, serializer.validated_data['enabled'])
        return result_response(result, lambda room: RoomSerializer(room).data)

    @action(detail=True, methods=['get'])
    def price(self, request, pk=None):
        """Current monthly price breakdown for the room's tenant"""
        return result_response(operations.calculate_price(self.get_object().id))

    @action(detail=True, methods=['get'])
    def consistency(self, request, pk=None):
        problems = RoomStatusCoordinator().check_consistency(self.get_object())
        return success_response({'consistent': not problems, 'problems': problems})
