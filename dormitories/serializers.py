from rest_framework import serializers
from .models import Dormitory, RoomType, FloorRate, ServiceItem


class RoomTypeSerializer(serializers.ModelSerializer):
    """Serializer for RoomType"""

    class Meta:
        model = RoomType
        fields = ['id', 'dormitory', 'name', 'base_price', 'is_default', 'description']
        read_only_fields = ['id']


class FloorRateSerializer(serializers.ModelSerializer):
    """Serializer for FloorRate"""

    class Meta:
        model = FloorRate
        fields = ['id', 'dormitory', 'floor', 'amount']
        read_only_fields = ['id']


class ServiceItemSerializer(serializers.ModelSerializer):
    """Serializer for ServiceItem"""

    class Meta:
        model = ServiceItem
        fields = ['id', 'dormitory', 'name', 'amount']
        read_only_fields = ['id']


class DormitorySerializer(serializers.ModelSerializer):
    """Serializer for Dormitory with its billing configuration"""
    room_types = RoomTypeSerializer(many=True, read_only=True)
    floor_rates = FloorRateSerializer(many=True, read_only=True)
    service_items = ServiceItemSerializer(many=True, read_only=True)

    class Meta:
        model = Dormitory
        fields = [
            'id', 'name', 'address',
            'water_rate_per_person', 'electric_unit_rate',
            'billing_day', 'grace_period_days', 'due_day', 'late_fee_rate',
            'require_meter_reading', 'reject_zero_usage',
            'room_types', 'floor_rates', 'service_items',
            'created_at', 'updated_at'
        ]
        read_only_fields = ['id', 'created_at', 'updated_at']


class DormitoryListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for list view"""

    class Meta:
        model = Dormitory
        fields = ['id', 'name', 'address']
