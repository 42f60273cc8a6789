from rest_framework import viewsets, mixins, status
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated

from api.filters import DormitoryFilterBackend
from api.permissions import IsDormitoryStaff
from api.responses import result_response, success_response
from billing import operations
from .models import Tenant
from .serializers import (
    TenantSerializer, TenantListSerializer, SpecialItemSerializer,
    AssignTenantSerializer, MoveOutSerializer, NewSpecialItemSerializer,
)
from .services import TenantService


class TenantViewSet(mixins.ListModelMixin, mixins.RetrieveModelMixin,
                    mixins.UpdateModelMixin, viewsets.GenericViewSet):
    """
    ViewSet for Tenant management
    Move-in and move-out go through the tenant service so the room follows
    """
    permission_classes = [IsAuthenticated, IsDormitoryStaff]
    filter_backends = [DormitoryFilterBackend]

    def get_serializer_class(self):
        if self.action == 'list':
            return TenantListSerializer
        return TenantSerializer

    def get_queryset(self):
        queryset = Tenant.objects.select_related('room').prefetch_related('special_items')
        status_filter = self.request.query_params.get('status')
        if status_filter:
            queryset = queryset.filter(status=status_filter)
        return queryset

    def create(self, request, *args, **kwargs):
        """Assign a new tenant to an available room"""
        serializer = AssignTenantSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        room_id = data.pop('room')
        name = data.pop('name')
        result = operations.assign_tenant(room_id, name, **data)
        return result_response(
            result, lambda tenant: TenantSerializer(tenant).data, status_code=status.HTTP_201_CREATED
        )

    @action(detail=True, methods=['post'], url_path='move-out')
    def move_out(self, request, pk=None):
        """Move out; refused while a balance is owed unless force is set"""
        serializer = MoveOutSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = operations.move_out_tenant(self.get_object().id, **serializer.validated_data)
        return result_response(result, lambda tenant: TenantSerializer(tenant).data)

    @action(detail=True, methods=['post'], url_path='special-items')
    def special_items(self, request, pk=None):
        serializer = NewSpecialItemSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        item = TenantService().add_special_item(self.get_object(), **serializer.validated_data)
        return success_response(SpecialItemSerializer(item).data, status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'], url_path='recompute-balance')
    def recompute_balance(self, request, pk=None):
        result = operations.recompute_outstanding_balance(self.get_object().id)
        return result_response(result, lambda balance: {'outstanding_balance': balance})
