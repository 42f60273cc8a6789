"""
Meter reading store - sequential electric/water readings per room.
"""
from datetime import date
from decimal import Decimal
from typing import Optional, List

from django.db import transaction
from django.utils import timezone

from core.constants import UtilityType, DefaultBilling
from core.dto import BillingPeriod
from core.exceptions import InvalidAmount, InvalidReading, ValidationError
from core.repositories import BaseRepository
from core.services import BaseService
from core.validators import MeterReadingValidator, to_money
from integrations.notifications import NotificationDispatcher
from rooms.models import Room
from rooms.repositories import RoomRepository
from rooms.services import RoomStatusCoordinator
from tenants.services import TenantService
from .models import MeterReading


class MeterReadingStore(BaseService):
    """Append-only reading log with usage delta computation"""

    def __init__(self, coordinator: RoomStatusCoordinator = None, notifier: NotificationDispatcher = None):
        super().__init__()
        self.reading_repo = BaseRepository(MeterReading)
        self.room_repo = RoomRepository(Room)
        self.coordinator = coordinator or RoomStatusCoordinator()
        self.tenant_service = TenantService(coordinator=self.coordinator)
        self.notifier = notifier

    def latest(self, room: Room, utility_type: str) -> Optional[MeterReading]:
        """Most recent reading for (room, type) or None"""
        return MeterReading.objects.for_room(room.id, utility_type).newest_first().first()

    def history(self, room: Room, utility_type: str,
                limit: int = DefaultBilling.METER_HISTORY_LIMIT) -> List[MeterReading]:
        return list(MeterReading.objects.for_room(room.id, utility_type).newest_first()[:limit])

    def previous_value(self, room: Room, utility_type: str) -> Decimal:
        """Baseline for the next reading: latest value or the room's initial meter"""
        latest = self.latest(room, utility_type)
        if latest is not None:
            return latest.current_reading
        if utility_type == UtilityType.ELECTRIC:
            return room.initial_meter_reading
        return room.initial_water_reading

    def record(self, room: Room, utility_type: str, current_reading, reading_date: date = None,
               recorded_by: str = '') -> MeterReading:
        """
        Append a reading and derive its usage.

        Raises:
            ValidationError: unknown utility type
            InvalidReading: negative, decreasing or back-dated value
        """
        if utility_type not in UtilityType.values:
            raise ValidationError(
                message=f"Unknown utility type: {utility_type}",
                code="INVALID_UTILITY_TYPE"
            )
        try:
            current = to_money(current_reading)
        except InvalidAmount:
            raise InvalidReading(
                message=f"Not a valid meter reading: {current_reading!r}",
                details={"current": str(current_reading)}
            )
        reading_date = reading_date or timezone.localdate()

        with transaction.atomic():
            # Serialize readings per room so two operators cannot both
            # compute their delta from the same baseline
            room = self.room_repo.lock(room.id)
            latest = self.latest(room, utility_type)
            if latest is not None and reading_date < latest.reading_date:
                raise InvalidReading(
                    message=(
                        f"Reading date {reading_date} is before the latest reading "
                        f"({latest.reading_date})"
                    ),
                    code="OUT_OF_ORDER_READING",
                    details={"latest_reading_id": latest.id}
                )
            previous = self.previous_value(room, utility_type)
            MeterReadingValidator.validate(current, previous)
            units_used = max(Decimal('0'), current - previous)

            reading = self.reading_repo.create(
                dormitory_id=room.dormitory_id,
                room=room,
                utility_type=utility_type,
                previous_reading=previous,
                current_reading=current,
                units_used=units_used,
                reading_date=reading_date,
                recorded_by=recorded_by,
            )

            if utility_type == UtilityType.ELECTRIC:
                self._apply_electric_usage(room, reading)

            transaction.on_commit(lambda: self._notify(reading))

        self.log_info(
            f"Recorded {utility_type} reading for room {room.number}",
            reading_id=reading.id, units_used=str(units_used)
        )
        return reading

    def _apply_electric_usage(self, room: Room, reading: MeterReading):
        tenants = self.room_repo.active_tenants(room)
        if not tenants:
            if reading.units_used > 0:
                if self.coordinator.usage_without_tenant(room) is None:
                    self.log_warning(
                        "Usage on an untenanted room outside 'available'",
                        room_id=room.id, status=room.status
                    )
            return

        self.tenant_service.record_usage_snapshot(
            tenants[0],
            previous=reading.previous_reading,
            current=reading.current_reading,
            units_used=reading.units_used,
            reading_date=reading.reading_date,
        )
        if reading.units_used > 0:
            self.coordinator.usage_recorded(room, BillingPeriod.from_date(reading.reading_date))

    def _notify(self, reading: MeterReading):
        notifier = self.notifier or NotificationDispatcher()
        notifier.meter_reading_recorded(reading)

    def mark_billed(self, room: Room, bill) -> int:
        """Attach all unbilled readings of the room to ``bill``"""
        return MeterReading.objects.filter(room_id=room.id).unbilled().update(is_billed=True, bill=bill)

    def mark_unbilled(self, bill) -> int:
        """Release readings of a removed bill so a corrected bill can use them"""
        return MeterReading.objects.filter(bill_id=bill.id).update(is_billed=False, bill=None)
