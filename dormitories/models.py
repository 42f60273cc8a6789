from decimal import Decimal

from django.db import models
from django.core.validators import MinValueValidator, MaxValueValidator

from core.constants import DefaultBilling


class Dormitory(models.Model):
    """Dormitory - owns rooms, tenants and its billing configuration"""
    name = models.CharField(max_length=255)
    address = models.TextField(blank=True)

    # Utility rates
    water_rate_per_person = models.DecimalField(
        max_digits=10, decimal_places=2, null=True, blank=True,
        validators=[MinValueValidator(0)],
        help_text="Flat water charge per resident per month"
    )
    electric_unit_rate = models.DecimalField(
        max_digits=10, decimal_places=2, null=True, blank=True,
        validators=[MinValueValidator(0)],
        help_text="Charge per electricity unit (kWh)"
    )

    # Billing cycle
    billing_day = models.PositiveSmallIntegerField(
        default=DefaultBilling.BILLING_DAY,
        validators=[MinValueValidator(1), MaxValueValidator(31)]
    )
    grace_period_days = models.PositiveSmallIntegerField(
        default=DefaultBilling.GRACE_PERIOD_DAYS,
        help_text="Days after the bill date before payment is due"
    )
    due_day = models.PositiveSmallIntegerField(
        default=DefaultBilling.DUE_DAY,
        validators=[MinValueValidator(1), MaxValueValidator(31)],
        help_text="Day of month payment is due when no grace period is set"
    )
    late_fee_rate = models.DecimalField(
        max_digits=10, decimal_places=2, default=DefaultBilling.LATE_FEE_RATE,
        validators=[MinValueValidator(0)],
        help_text="Late fee charged per overdue day"
    )

    # Billing conditions
    require_meter_reading = models.BooleanField(
        default=True,
        help_text="Bills can only be created after this month's electric reading"
    )
    reject_zero_usage = models.BooleanField(
        default=True,
        help_text="Refuse bills whose electricity usage is zero (likely stale data)"
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['name']
        verbose_name = "Dormitory"
        verbose_name_plural = "Dormitories"

    def __str__(self):
        return self.name


class RoomType(models.Model):
    """Catalog entry shared by many rooms"""
    dormitory = models.ForeignKey(Dormitory, on_delete=models.CASCADE, related_name='room_types')
    name = models.CharField(max_length=100)
    base_price = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(0)])
    is_default = models.BooleanField(default=False)
    description = models.TextField(blank=True)

    class Meta:
        ordering = ['name']
        unique_together = ['dormitory', 'name']
        verbose_name = "Room Type"
        verbose_name_plural = "Room Types"

    def __str__(self):
        return f"{self.name} ({self.base_price})"


class FloorRate(models.Model):
    """Per-floor price adjustment; may be negative"""
    dormitory = models.ForeignKey(Dormitory, on_delete=models.CASCADE, related_name='floor_rates')
    floor = models.IntegerField()
    amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0'))

    class Meta:
        ordering = ['floor']
        unique_together = ['dormitory', 'floor']
        verbose_name = "Floor Rate"
        verbose_name_plural = "Floor Rates"

    def __str__(self):
        return f"Floor {self.floor}: {self.amount}"


class ServiceItem(models.Model):
    """Optional service attached to rooms (parking, air conditioner, ...)"""
    dormitory = models.ForeignKey(Dormitory, on_delete=models.CASCADE, related_name='service_items')
    name = models.CharField(max_length=100)
    amount = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(0)])

    class Meta:
        ordering = ['name']
        verbose_name = "Service Item"
        verbose_name_plural = "Service Items"

    def __str__(self):
        return f"{self.name} ({self.amount})"
