from rest_framework import serializers
from .models import Tenant, SpecialItem


class SpecialItemSerializer(serializers.ModelSerializer):
    """Serializer for SpecialItem"""
    is_active = serializers.ReadOnlyField()

    class Meta:
        model = SpecialItem
        fields = ['id', 'tenant', 'name', 'amount', 'duration', 'remaining_billing_cycles', 'is_active']
        read_only_fields = ['id', 'tenant', 'is_active']
        extra_kwargs = {'remaining_billing_cycles': {'required': False}}


class TenantSerializer(serializers.ModelSerializer):
    """Serializer for Tenant; balance and meter snapshot are derived"""
    special_items = SpecialItemSerializer(many=True, read_only=True)
    room_number = serializers.CharField(source='room.number', read_only=True, default=None)

    class Meta:
        model = Tenant
        fields = [
            'id', 'dormitory', 'room', 'room_number', 'name', 'phone', 'email', 'line_id',
            'status', 'number_of_residents', 'outstanding_balance',
            'has_meter_reading', 'last_meter_reading_date',
            'electricity_previous_reading', 'electricity_current_reading', 'electricity_units_used',
            'move_in_date', 'move_out_date', 'special_items',
            'created_at', 'updated_at'
        ]
        read_only_fields = [
            'id', 'dormitory', 'room', 'status', 'outstanding_balance',
            'has_meter_reading', 'last_meter_reading_date',
            'electricity_previous_reading', 'electricity_current_reading', 'electricity_units_used',
            'move_in_date', 'move_out_date', 'created_at', 'updated_at'
        ]


class TenantListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for list view"""
    room_number = serializers.CharField(source='room.number', read_only=True, default=None)

    class Meta:
        model = Tenant
        fields = ['id', 'name', 'phone', 'room_number', 'status', 'outstanding_balance']


class NewSpecialItemSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=100)
    amount = serializers.DecimalField(max_digits=10, decimal_places=2)
    duration = serializers.IntegerField(min_value=0, default=0)
    remaining_billing_cycles = serializers.IntegerField(min_value=0, required=False)


class AssignTenantSerializer(serializers.Serializer):
    """Input for moving a tenant into a room"""
    room = serializers.IntegerField()
    name = serializers.CharField(max_length=255)
    phone = serializers.CharField(max_length=20, required=False, allow_blank=True)
    email = serializers.EmailField(required=False, allow_blank=True)
    line_id = serializers.CharField(max_length=100, required=False, allow_blank=True)
    number_of_residents = serializers.IntegerField(min_value=1, default=1)
    move_in_date = serializers.DateField(required=False)
    special_items = NewSpecialItemSerializer(many=True, required=False)


class MoveOutSerializer(serializers.Serializer):
    force = serializers.BooleanField(default=False)
    move_out_date = serializers.DateField(required=False)
