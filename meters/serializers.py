from rest_framework import serializers

from core.constants import UtilityType
from .models import MeterReading


class MeterReadingSerializer(serializers.ModelSerializer):
    """Serializer for MeterReading (readings are append-only)"""
    room_number = serializers.CharField(source='room.number', read_only=True)

    class Meta:
        model = MeterReading
        fields = [
            'id', 'dormitory', 'room', 'room_number', 'utility_type',
            'previous_reading', 'current_reading', 'units_used', 'reading_date',
            'is_billed', 'bill', 'recorded_by', 'created_at'
        ]
        read_only_fields = fields


class RecordReadingSerializer(serializers.Serializer):
    """Input for a new meter reading"""
    room = serializers.IntegerField()
    utility_type = serializers.ChoiceField(choices=UtilityType.choices)
    current_reading = serializers.DecimalField(max_digits=12, decimal_places=2)
    reading_date = serializers.DateField(required=False)
