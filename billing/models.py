from decimal import Decimal

from django.db import models
from django.db.models import Q, Sum
from django.core.validators import MinValueValidator, MaxValueValidator

from core.constants import (
    BillStatus, BillItemType, PaymentMethod, PaymentStatus,
    UNSETTLED_BILL_STATUSES,
)
from core.validators import to_money
from dormitories.models import Dormitory
from rooms.models import Room
from tenants.models import Tenant


class BillQuerySet(models.QuerySet):
    """Query helpers for bills"""

    def unsettled(self):
        return self.filter(status__in=UNSETTLED_BILL_STATUSES)

    def for_period(self, month, year):
        return self.filter(month=month, year=year)

    def for_tenant(self, tenant_id):
        return self.filter(tenant_id=tenant_id)

    def outstanding_total(self) -> Decimal:
        return to_money(self.unsettled().aggregate(total=Sum('remaining_amount'))['total'])


class Bill(models.Model):
    """
    Monthly charge for one room, tenant and period.

    Totals are kept consistent by the billing services:
    total_amount == sum(items), remaining_amount == total_amount - paid_amount.
    """
    dormitory = models.ForeignKey(Dormitory, on_delete=models.CASCADE, related_name='bills')
    room = models.ForeignKey(Room, on_delete=models.CASCADE, related_name='bills')
    tenant = models.ForeignKey(Tenant, on_delete=models.CASCADE, related_name='bills')
    room_number = models.CharField(max_length=20)

    month = models.PositiveSmallIntegerField(validators=[MinValueValidator(1), MaxValueValidator(12)])
    year = models.PositiveSmallIntegerField()
    bill_date = models.DateField()
    due_date = models.DateField()

    total_amount = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(0)])
    paid_amount = models.DecimalField(
        max_digits=10, decimal_places=2, default=Decimal('0'), validators=[MinValueValidator(0)]
    )
    remaining_amount = models.DecimalField(
        max_digits=10, decimal_places=2, default=Decimal('0'), validators=[MinValueValidator(0)]
    )
    status = models.CharField(max_length=20, choices=BillStatus.choices, default=BillStatus.PENDING)
    late_fee = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0'))

    # Created with an explicit override of the one-bill-per-period rule
    forced_duplicate = models.BooleanField(default=False)
    # Fixed-duration special items decremented when this bill was issued
    special_item_ids = models.JSONField(default=list, blank=True)

    notified_initial = models.BooleanField(default=False)
    notified_reminder = models.BooleanField(default=False)
    notified_overdue = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = BillQuerySet.as_manager()

    class Meta:
        ordering = ['-year', '-month', 'room_number']
        verbose_name = "Bill"
        verbose_name_plural = "Bills"
        constraints = [
            models.UniqueConstraint(
                fields=['dormitory', 'room', 'month', 'year'],
                condition=Q(forced_duplicate=False),
                name='unique_bill_per_room_period',
            ),
        ]
        indexes = [
            models.Index(fields=['dormitory', 'year', 'month']),
            models.Index(fields=['tenant', 'status']),
            models.Index(fields=['status', 'due_date']),
        ]

    def __str__(self):
        return f"Room {self.room_number} - {self.month:02d}/{self.year} - {self.get_status_display()}"

    @property
    def is_settled(self):
        return self.status == BillStatus.PAID

    def items_total(self) -> Decimal:
        return to_money(self.items.aggregate(total=Sum('amount'))['total'])


class BillItem(models.Model):
    """Line of a bill; ``item_type`` is a closed set"""
    bill = models.ForeignKey(Bill, on_delete=models.CASCADE, related_name='items')
    item_type = models.CharField(max_length=10, choices=BillItemType.choices)
    name = models.CharField(max_length=100)
    description = models.CharField(max_length=255, blank=True)
    amount = models.DecimalField(max_digits=10, decimal_places=2)
    unit_price = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    quantity = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    previous_reading = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    current_reading = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    position = models.PositiveSmallIntegerField(default=0)

    class Meta:
        ordering = ['position', 'id']
        verbose_name = "Bill Item"
        verbose_name_plural = "Bill Items"

    def __str__(self):
        return f"{self.name}: {self.amount}"


class Payment(models.Model):
    """Append-only payment record; a bill's paid_amount sums its completed payments"""
    bill = models.ForeignKey(Bill, on_delete=models.CASCADE, related_name='payments')
    tenant = models.ForeignKey(Tenant, on_delete=models.CASCADE, related_name='payments')
    amount = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(0)])
    method = models.CharField(max_length=20, choices=PaymentMethod.choices)
    status = models.CharField(max_length=20, choices=PaymentStatus.choices, default=PaymentStatus.COMPLETED)
    reference_code = models.CharField(max_length=100, blank=True)
    evidence_url = models.CharField(max_length=500, blank=True)
    note = models.TextField(blank=True)
    recorded_by = models.CharField(max_length=150, blank=True)
    paid_at = models.DateTimeField()
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-paid_at']
        verbose_name = "Payment"
        verbose_name_plural = "Payments"
        indexes = [
            models.Index(fields=['bill', 'status']),
            models.Index(fields=['tenant', 'paid_at']),
        ]

    def __str__(self):
        return f"{self.amount} via {self.get_method_display()} for {self.bill}"
