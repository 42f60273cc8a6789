from rest_framework import viewsets, mixins, status
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated

from api.filters import DormitoryFilterBackend
from api.permissions import IsDormitoryStaff
from api.responses import result_response, success_response, error_response
from billing import operations
from core.constants import UtilityType
from .models import MeterReading
from .serializers import MeterReadingSerializer, RecordReadingSerializer


def _reading_data(reading):
    return MeterReadingSerializer(reading).data if reading is not None else None


class MeterReadingViewSet(mixins.ListModelMixin, mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    """
    ViewSet for meter readings
    Readings are appended only; corrections are a new, later reading
    """
    permission_classes = [IsAuthenticated, IsDormitoryStaff]
    filter_backends = [DormitoryFilterBackend]
    serializer_class = MeterReadingSerializer

    def get_queryset(self):
        queryset = MeterReading.objects.select_related('room').newest_first()
        params = self.request.query_params
        if params.get('room', '').isdigit():
            queryset = queryset.filter(room_id=int(params['room']))
        if params.get('utility_type'):
            queryset = queryset.filter(utility_type=params['utility_type'])
        return queryset

    def list(self, request, *args, **kwargs):
        queryset = self.filter_queryset(self.get_queryset())
        return success_response(self.get_serializer(queryset, many=True).data)

    def retrieve(self, request, *args, **kwargs):
        return success_response(self.get_serializer(self.get_object()).data)

    def create(self, request, *args, **kwargs):
        serializer = RecordReadingSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        result = operations.record_meter_reading(
            data['room'], data['utility_type'], data['current_reading'],
            reading_date=data.get('reading_date'), recorded_by=request.user.get_username(),
        )
        return result_response(result, _reading_data, status_code=status.HTTP_201_CREATED)

    @action(detail=False, methods=['get'])
    def latest(self, request):
        """Latest reading for ?room=<id>&utility_type=electric|water"""
        room_id = request.query_params.get('room', '')
        utility_type = request.query_params.get('utility_type', UtilityType.ELECTRIC)
        if not room_id.isdigit():
            return error_response("room is required", "VALIDATION_ERROR")
        return result_response(operations.latest_meter_reading(int(room_id), utility_type), _reading_data)
