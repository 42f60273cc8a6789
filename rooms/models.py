from decimal import Decimal

from django.db import models
from django.core.validators import MinValueValidator

from core.constants import RoomStatus, OCCUPIED_STATUSES, TenantStatus
from dormitories.models import Dormitory, RoomType, ServiceItem


class Room(models.Model):
    """
    Rentable room in a dormitory.

    ``status`` and ``current_tenant`` are written only by
    ``rooms.services.RoomStatusCoordinator``.
    """
    dormitory = models.ForeignKey(Dormitory, on_delete=models.CASCADE, related_name='rooms')
    number = models.CharField(max_length=20, help_text="e.g., '101', 'A-3'")
    floor = models.IntegerField(default=1)
    room_type = models.ForeignKey(
        RoomType, on_delete=models.SET_NULL, null=True, blank=True, related_name='rooms'
    )
    status = models.CharField(max_length=20, choices=RoomStatus.choices, default=RoomStatus.AVAILABLE)
    services = models.ManyToManyField(ServiceItem, blank=True, related_name='rooms')

    initial_meter_reading = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal('0'), validators=[MinValueValidator(0)],
        help_text="Electric meter value when the room was registered"
    )
    initial_water_reading = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal('0'), validators=[MinValueValidator(0)]
    )

    current_tenant = models.ForeignKey(
        'tenants.Tenant', on_delete=models.SET_NULL, null=True, blank=True, related_name='+'
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['dormitory', 'number']
        unique_together = ['dormitory', 'number']
        verbose_name = "Room"
        verbose_name_plural = "Rooms"
        indexes = [
            models.Index(fields=['dormitory', 'status']),
            models.Index(fields=['dormitory', 'floor']),
        ]

    def __str__(self):
        return f"{self.dormitory.name} - {self.number}"

    @property
    def active_tenants(self):
        """Tenants currently living in the room"""
        return self.tenants.filter(status=TenantStatus.ACTIVE)

    @property
    def active_tenant(self):
        """Get current active tenant"""
        return self.active_tenants.first()

    @property
    def is_occupied(self):
        return self.status in OCCUPIED_STATUSES
