"""
Dormitory configuration provider.

Billing code never reads the Dormitory row directly: it receives a
``DormitoryConfig`` snapshot built here and passed in explicitly.
"""
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal
from typing import Dict, Optional
import calendar
import logging

from core.dto import BillingPeriod
from core.exceptions import ConfigurationMissing
from .models import Dormitory

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RoomTypeConfig:
    id: int
    name: str
    base_price: Decimal


@dataclass(frozen=True)
class ServiceItemConfig:
    id: int
    name: str
    amount: Decimal


@dataclass(frozen=True)
class DormitoryConfig:
    """Immutable per-dormitory billing configuration"""
    dormitory_id: int
    room_types: Dict[int, RoomTypeConfig] = field(default_factory=dict)
    floor_rates: Dict[int, Decimal] = field(default_factory=dict)
    service_items: Dict[int, ServiceItemConfig] = field(default_factory=dict)
    water_per_person: Optional[Decimal] = None
    electric_unit_rate: Optional[Decimal] = None
    billing_day: int = 1
    grace_period_days: int = 0
    due_day: Optional[int] = None
    late_fee_rate: Decimal = Decimal('0')
    require_meter_reading: bool = True
    reject_zero_usage: bool = True

    def room_type(self, room_type_id) -> Optional[RoomTypeConfig]:
        if room_type_id is None:
            return None
        return self.room_types.get(room_type_id)

    def floor_rate(self, floor) -> Decimal:
        return self.floor_rates.get(floor, Decimal('0'))

    def due_date_for(self, bill_date: date, period: BillingPeriod) -> date:
        """
        Due date for a bill issued on ``bill_date``.

        Grace period wins when set; otherwise the configured due day of the
        month following the billing period.
        """
        if self.grace_period_days or not self.due_day:
            return bill_date + timedelta(days=self.grace_period_days)
        year, month = (period.year + 1, 1) if period.month == 12 else (period.year, period.month + 1)
        last_day = calendar.monthrange(year, month)[1]
        return date(year, month, min(self.due_day, last_day))


class ConfigProvider:
    """Builds DormitoryConfig snapshots from the database"""

    def get(self, dormitory_id: int) -> DormitoryConfig:
        dormitory = (
            Dormitory.objects
            .prefetch_related('room_types', 'floor_rates', 'service_items')
            .filter(id=dormitory_id)
            .first()
        )
        if dormitory is None:
            logger.warning(f"No configuration for dormitory {dormitory_id}")
            raise ConfigurationMissing(
                message=f"Dormitory {dormitory_id} has no configuration",
                details={"dormitory_id": dormitory_id}
            )
        return self.from_dormitory(dormitory)

    @staticmethod
    def from_dormitory(dormitory: Dormitory) -> DormitoryConfig:
        return DormitoryConfig(
            dormitory_id=dormitory.id,
            room_types={
                rt.id: RoomTypeConfig(id=rt.id, name=rt.name, base_price=rt.base_price)
                for rt in dormitory.room_types.all()
            },
            floor_rates={fr.floor: fr.amount for fr in dormitory.floor_rates.all()},
            service_items={
                item.id: ServiceItemConfig(id=item.id, name=item.name, amount=item.amount)
                for item in dormitory.service_items.all()
            },
            water_per_person=dormitory.water_rate_per_person,
            electric_unit_rate=dormitory.electric_unit_rate,
            billing_day=dormitory.billing_day,
            grace_period_days=dormitory.grace_period_days,
            due_day=dormitory.due_day,
            late_fee_rate=dormitory.late_fee_rate,
            require_meter_reading=dormitory.require_meter_reading,
            reject_zero_usage=dormitory.reject_zero_usage,
        )
