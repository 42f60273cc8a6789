from rest_framework import serializers

from core.constants import PaymentMethod
from .models import Bill, BillItem, Payment


class BillItemSerializer(serializers.ModelSerializer):
    """Serializer for BillItem"""

    class Meta:
        model = BillItem
        fields = [
            'id', 'item_type', 'name', 'description', 'amount',
            'unit_price', 'quantity', 'previous_reading', 'current_reading', 'position'
        ]


class PaymentSerializer(serializers.ModelSerializer):
    """Serializer for Payment (read only; payments are recorded through the bill)"""

    class Meta:
        model = Payment
        fields = [
            'id', 'bill', 'tenant', 'amount', 'method', 'status',
            'reference_code', 'evidence_url', 'note', 'recorded_by', 'paid_at', 'created_at'
        ]
        read_only_fields = fields


class BillSerializer(serializers.ModelSerializer):
    """Serializer for Bill with its items and payments"""
    items = BillItemSerializer(many=True, read_only=True)
    payments = PaymentSerializer(many=True, read_only=True)
    tenant_name = serializers.CharField(source='tenant.name', read_only=True)

    class Meta:
        model = Bill
        fields = [
            'id', 'dormitory', 'room', 'room_number', 'tenant', 'tenant_name',
            'month', 'year', 'bill_date', 'due_date',
            'total_amount', 'paid_amount', 'remaining_amount', 'status', 'late_fee',
            'forced_duplicate', 'notified_initial', 'notified_reminder', 'notified_overdue',
            'items', 'payments', 'created_at', 'updated_at'
        ]
        read_only_fields = fields


class BillListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for list view"""
    tenant_name = serializers.CharField(source='tenant.name', read_only=True)

    class Meta:
        model = Bill
        fields = [
            'id', 'room_number', 'tenant_name', 'month', 'year', 'due_date',
            'total_amount', 'paid_amount', 'remaining_amount', 'status'
        ]


class CreateBillSerializer(serializers.Serializer):
    """Input for issuing a single bill"""
    room = serializers.IntegerField()
    month = serializers.IntegerField(min_value=1, max_value=12)
    year = serializers.IntegerField(min_value=2000, max_value=2100)
    force_duplicate = serializers.BooleanField(default=False)
    bill_date = serializers.DateField(required=False)


class BatchBillSerializer(serializers.Serializer):
    """Input for batch billing"""
    rooms = serializers.ListField(child=serializers.IntegerField(), allow_empty=False)
    month = serializers.IntegerField(min_value=1, max_value=12)
    year = serializers.IntegerField(min_value=2000, max_value=2100)
    force_duplicate = serializers.BooleanField(default=False)
    bill_date = serializers.DateField(required=False)


class RecordPaymentSerializer(serializers.Serializer):
    """Input for recording a payment (multipart when evidence is attached)"""
    amount = serializers.DecimalField(max_digits=10, decimal_places=2)
    method = serializers.ChoiceField(choices=PaymentMethod.choices)
    reference_code = serializers.CharField(required=False, allow_blank=True)
    evidence = serializers.FileField(required=False)
    note = serializers.CharField(required=False, allow_blank=True, default='')
    paid_at = serializers.DateTimeField(required=False)


def batch_result_data(result):
    return {
        'created': BillListSerializer(result.created, many=True).data,
        'failed': [
            {
                'room_id': failure.room_id,
                'room_number': failure.room_number,
                'error': failure.error,
                'code': failure.code,
                'details': failure.details,
            }
            for failure in result.failed
        ],
        'created_count': result.created_count,
        'failed_count': result.failed_count,
    }
