from rest_framework import viewsets
from rest_framework.permissions import IsAuthenticated

from api.filters import DormitoryFilterBackend
from api.permissions import IsDormitoryStaff
from .models import Dormitory, RoomType, FloorRate, ServiceItem
from .serializers import (
    DormitorySerializer, DormitoryListSerializer,
    RoomTypeSerializer, FloorRateSerializer, ServiceItemSerializer
)


class DormitoryViewSet(viewsets.ModelViewSet):
    """
    ViewSet for Dormitory management
    Configuration edits (rates, billing cycle) go through here
    """
    permission_classes = [IsAuthenticated, IsDormitoryStaff]
    queryset = Dormitory.objects.prefetch_related('room_types', 'floor_rates', 'service_items')

    def get_serializer_class(self):
        if self.action == 'list':
            return DormitoryListSerializer
        return DormitorySerializer


class RoomTypeViewSet(viewsets.ModelViewSet):
    """Room type catalog per dormitory"""
    permission_classes = [IsAuthenticated, IsDormitoryStaff]
    filter_backends = [DormitoryFilterBackend]
    serializer_class = RoomTypeSerializer
    queryset = RoomType.objects.all()


class FloorRateViewSet(viewsets.ModelViewSet):
    """Floor adjustments per dormitory"""
    permission_classes = [IsAuthenticated, IsDormitoryStaff]
    filter_backends = [DormitoryFilterBackend]
    serializer_class = FloorRateSerializer
    queryset = FloorRate.objects.all()


class ServiceItemViewSet(viewsets.ModelViewSet):
    """Service catalog per dormitory"""
    permission_classes = [IsAuthenticated, IsDormitoryStaff]
    filter_backends = [DormitoryFilterBackend]
    serializer_class = ServiceItemSerializer
    queryset = ServiceItem.objects.all()
