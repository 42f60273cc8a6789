from django.http import HttpResponse
from rest_framework import viewsets, mixins, status
from rest_framework.decorators import action
from rest_framework.parsers import JSONParser, MultiPartParser, FormParser
from rest_framework.permissions import IsAuthenticated

from api.filters import DormitoryFilterBackend
from api.permissions import IsDormitoryStaff
from api.responses import result_response, success_response, error_response
from . import operations
from .models import Bill, Payment
from .receipts import generate_bill_receipt_pdf
from .serializers import (
    BillSerializer, BillListSerializer, PaymentSerializer,
    CreateBillSerializer, BatchBillSerializer, RecordPaymentSerializer, batch_result_data,
)


class BillViewSet(mixins.ListModelMixin, mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    """
    ViewSet for bills
    Bills are only created, paid and removed through the billing operations
    """
    permission_classes = [IsAuthenticated, IsDormitoryStaff]
    filter_backends = [DormitoryFilterBackend]
    parser_classes = [JSONParser, MultiPartParser, FormParser]

    def get_serializer_class(self):
        if self.action == 'list':
            return BillListSerializer
        return BillSerializer

    def get_queryset(self):
        queryset = Bill.objects.select_related('tenant', 'room')
        params = self.request.query_params
        if params.get('status'):
            queryset = queryset.filter(status=params['status'])
        if params.get('month', '').isdigit() and params.get('year', '').isdigit():
            queryset = queryset.filter(month=int(params['month']), year=int(params['year']))
        if params.get('tenant', '').isdigit():
            queryset = queryset.filter(tenant_id=int(params['tenant']))
        if self.action == 'retrieve':
            queryset = queryset.prefetch_related('items', 'payments')
        return queryset

    def list(self, request, *args, **kwargs):
        queryset = self.filter_queryset(self.get_queryset())
        return success_response(self.get_serializer(queryset, many=True).data)

    def retrieve(self, request, *args, **kwargs):
        return success_response(self.get_serializer(self.get_object()).data)

    def create(self, request, *args, **kwargs):
        """Issue one bill; a 409 DUPLICATE_BILL can be retried with force_duplicate"""
        serializer = CreateBillSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        result = operations.create_bill(
            data['room'], data['month'], data['year'],
            force_duplicate=data['force_duplicate'], bill_date=data.get('bill_date'),
        )
        return result_response(
            result, lambda bill: BillSerializer(bill).data, status_code=status.HTTP_201_CREATED
        )

    def destroy(self, request, pk=None):
        result = operations.delete_bill(self.get_object().id)
        return result_response(result, lambda bill_id: {'deleted': bill_id})

    @action(detail=False, methods=['post'])
    def batch(self, request):
        """Bill several rooms; each room succeeds or fails on its own"""
        serializer = BatchBillSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        result = operations.create_bills_batch(
            data['rooms'], data['month'], data['year'],
            force_duplicate=data['force_duplicate'], bill_date=data.get('bill_date'),
        )
        return result_response(result, batch_result_data)

    @action(detail=True, methods=['post'])
    def pay(self, request, pk=None):
        """Record a payment; transfers need reference_code and an evidence file"""
        bill = self.get_object()
        serializer = RecordPaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        result = operations.record_payment(
            bill.id, data['amount'], data['method'],
            reference_code=data.get('reference_code'),
            evidence=data.get('evidence'),
            note=data.get('note', ''),
            recorded_by=request.user.get_username(),
            paid_at=data.get('paid_at'),
        )
        return result_response(
            result, lambda payment: PaymentSerializer(payment).data, status_code=status.HTTP_201_CREATED
        )

    @action(detail=True, methods=['post'])
    def revert(self, request, pk=None):
        """Remove an unpaid bill and return the room's draft price"""
        return result_response(operations.revert_bill_to_draft(self.get_object().id))

    @action(detail=True, methods=['get'])
    def receipt(self, request, pk=None):
        """Printable bill / receipt as PDF"""
        bill = self.get_object()
        pdf_buffer = generate_bill_receipt_pdf(bill, signed_by_user=request.user)
        response = HttpResponse(pdf_buffer.getvalue(), content_type='application/pdf')
        filename = f"Bill_{bill.room_number}_{bill.year}_{bill.month:02d}.pdf"
        response['Content-Disposition'] = f'attachment; filename="{filename}"'
        return response

    @action(detail=True, methods=['get'], url_path='late-fee')
    def late_fee(self, request, pk=None):
        result = operations.calculate_late_fee(self.get_object().id)
        return result_response(result, lambda fee: {'late_fee': fee})

    @action(detail=False, methods=['get'])
    def summary(self, request):
        """Per-status counts and amounts for ?dormitory=<id>"""
        dormitory_id = request.query_params.get('dormitory', '')
        if not dormitory_id.isdigit():
            return error_response("dormitory is required", "VALIDATION_ERROR")
        return result_response(operations.billing_summary(int(dormitory_id)))

    @action(detail=False, methods=['post'], url_path='sweep-overdue')
    def sweep_overdue(self, request):
        result = operations.sweep_overdue_bills()
        return result_response(
            result, lambda sweep: {'updated_count': sweep.updated_count, 'bill_ids': sweep.bill_ids}
        )


class PaymentViewSet(mixins.ListModelMixin, mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    """Read-only payment history"""
    permission_classes = [IsAuthenticated, IsDormitoryStaff]
    filter_backends = [DormitoryFilterBackend]
    serializer_class = PaymentSerializer
    dormitory_lookup = 'bill__dormitory_id'

    def get_queryset(self):
        queryset = Payment.objects.select_related('bill')
        bill_id = self.request.query_params.get('bill', '')
        if bill_id.isdigit():
            queryset = queryset.filter(bill_id=int(bill_id))
        return queryset

    def list(self, request, *args, **kwargs):
        queryset = self.filter_queryset(self.get_queryset())
        return success_response(self.get_serializer(queryset, many=True).data)

    def retrieve(self, request, *args, **kwargs):
        return success_response(self.get_serializer(self.get_object()).data)
