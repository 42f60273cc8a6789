from decimal import Decimal

from django.db import models

from core.constants import TenantStatus
from dormitories.models import Dormitory


class Tenant(models.Model):
    """Tenant renting one room of a dormitory"""
    dormitory = models.ForeignKey(Dormitory, on_delete=models.CASCADE, related_name='tenants')
    room = models.ForeignKey(
        'rooms.Room', on_delete=models.SET_NULL, null=True, blank=True, related_name='tenants'
    )
    name = models.CharField(max_length=255)
    phone = models.CharField(max_length=20, blank=True)
    email = models.EmailField(blank=True)
    line_id = models.CharField(max_length=100, blank=True, help_text="Chat account for notifications")
    status = models.CharField(max_length=20, choices=TenantStatus.choices, default=TenantStatus.ACTIVE)
    number_of_residents = models.PositiveSmallIntegerField(default=1)

    # Derived from unsettled bills; written by OutstandingBalanceAggregator
    outstanding_balance = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0'))

    # Latest electric reading snapshot used for pricing
    has_meter_reading = models.BooleanField(default=False)
    last_meter_reading_date = models.DateField(null=True, blank=True)
    electricity_previous_reading = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0'))
    electricity_current_reading = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0'))
    electricity_units_used = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0'))

    move_in_date = models.DateField(null=True, blank=True)
    move_out_date = models.DateField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['name']
        verbose_name = "Tenant"
        verbose_name_plural = "Tenants"
        indexes = [
            models.Index(fields=['dormitory', 'status']),
            models.Index(fields=['room', 'status']),
        ]

    def __str__(self):
        return f"{self.name} ({self.phone})" if self.phone else self.name

    @property
    def is_active(self):
        return self.status == TenantStatus.ACTIVE

    @property
    def active_special_items(self):
        return [item for item in self.special_items.all() if item.is_active]


class SpecialItem(models.Model):
    """
    Tenant-specific extra charge.

    ``duration`` is the number of billing cycles; 0 means indefinite.
    """
    tenant = models.ForeignKey(Tenant, on_delete=models.CASCADE, related_name='special_items')
    name = models.CharField(max_length=100)
    amount = models.DecimalField(max_digits=10, decimal_places=2)
    duration = models.PositiveIntegerField(default=0, help_text="Billing cycles, 0 = indefinite")
    remaining_billing_cycles = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['created_at', 'id']
        verbose_name = "Special Item"
        verbose_name_plural = "Special Items"

    def __str__(self):
        if self.duration:
            return f"{self.name} ({self.remaining_billing_cycles}/{self.duration})"
        return self.name

    @property
    def is_active(self):
        """Indefinite items always charge; fixed ones until cycles run out"""
        return self.duration == 0 or self.remaining_billing_cycles > 0
