from decimal import Decimal

from django.db import models
from django.core.validators import MinValueValidator

from core.constants import UtilityType
from dormitories.models import Dormitory
from rooms.models import Room


class MeterReadingQuerySet(models.QuerySet):
    """Query helpers for the reading log"""

    def for_room(self, room_id, utility_type):
        return self.filter(room_id=room_id, utility_type=utility_type)

    def newest_first(self):
        return self.order_by('-reading_date', '-created_at', '-id')

    def unbilled(self):
        return self.filter(is_billed=False)


class MeterReading(models.Model):
    """
    Append-only utility meter log.
    ``units_used`` is derived when the reading is recorded and never edited.
    """
    dormitory = models.ForeignKey(Dormitory, on_delete=models.CASCADE, related_name='meter_readings')
    room = models.ForeignKey(Room, on_delete=models.CASCADE, related_name='meter_readings')
    utility_type = models.CharField(max_length=10, choices=UtilityType.choices)
    previous_reading = models.DecimalField(max_digits=12, decimal_places=2, validators=[MinValueValidator(0)])
    current_reading = models.DecimalField(max_digits=12, decimal_places=2, validators=[MinValueValidator(0)])
    units_used = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0'))
    reading_date = models.DateField()

    is_billed = models.BooleanField(default=False)
    bill = models.ForeignKey(
        'billing.Bill', on_delete=models.SET_NULL, null=True, blank=True, related_name='meter_readings'
    )

    recorded_by = models.CharField(max_length=150, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    objects = MeterReadingQuerySet.as_manager()

    class Meta:
        ordering = ['-reading_date', '-created_at']
        verbose_name = "Meter Reading"
        verbose_name_plural = "Meter Readings"
        indexes = [
            models.Index(fields=['room', 'utility_type', 'reading_date']),
            models.Index(fields=['room', 'is_billed']),
        ]

    def __str__(self):
        return f"{self.room.number} {self.get_utility_type_display()} {self.reading_date}: {self.current_reading}"
