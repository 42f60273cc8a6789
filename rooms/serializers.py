from rest_framework import serializers
from .models import Room


class RoomSerializer(serializers.ModelSerializer):
    """Serializer for Room; status and tenant follow the room lifecycle"""
    room_type_name = serializers.CharField(source='room_type.name', read_only=True, default=None)
    current_tenant_name = serializers.CharField(source='current_tenant.name', read_only=True, default=None)

    class Meta:
        model = Room
        fields = [
            'id', 'dormitory', 'number', 'floor', 'room_type', 'room_type_name',
            'status', 'services', 'initial_meter_reading', 'initial_water_reading',
            'current_tenant', 'current_tenant_name', 'created_at', 'updated_at'
        ]
        read_only_fields = ['id', 'status', 'current_tenant', 'created_at', 'updated_at']

    def validate(self, attrs):
        dormitory = attrs.get('dormitory') or getattr(self.instance, 'dormitory', None)
        room_type = attrs.get('room_type')
        if room_type is not None and dormitory is not None and room_type.dormitory_id != dormitory.id:
            raise serializers.ValidationError({'room_type': 'Room type belongs to another dormitory'})
        for service in attrs.get('services', []):
            if dormitory is not None and service.dormitory_id != dormitory.id:
                raise serializers.ValidationError({'services': 'Service belongs to another dormitory'})
        return attrs


class RoomListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for list view"""
    current_tenant_name = serializers.CharField(source='current_tenant.name', read_only=True, default=None)

    class Meta:
        model = Room
        fields = ['id', 'dormitory', 'number', 'floor', 'room_type', 'status', 'current_tenant_name']


class MaintenanceSerializer(serializers.Serializer):
    enabled = serializers.BooleanField()
