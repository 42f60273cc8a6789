"""
Price calculator.

``calculate_price`` is a pure function over the room, its room type, the
dormitory configuration and (optionally) the tenant. It reads nothing from
the database beyond what the passed objects already expose and writes
nothing.
"""
from decimal import Decimal
import logging

from core.dto import PriceBreakdown, PriceResult
from core.validators import to_money
from dormitories.config import DormitoryConfig

logger = logging.getLogger(__name__)

ZERO = Decimal('0.00')


def _room_service_ids(room):
    ids = getattr(room, 'service_ids', None)
    if ids is None:
        ids = [service.id for service in room.services.all()]
    return ids


def _special_items_total(tenant) -> Decimal:
    return sum((to_money(item.amount) for item in tenant.active_special_items), ZERO)


def calculate_price(room, room_type, config: DormitoryConfig, tenant=None) -> PriceResult:
    """
    Monthly charge for ``room``.

    A missing room type yields an all-zero breakdown flagged with
    ``configuration_missing``; components may be negative (floor discounts)
    but the total never is.
    """
    if room_type is None:
        logger.warning(
            f"Room {getattr(room, 'number', room)} has no room type configured, price set to 0"
        )
        return PriceResult(total=ZERO, breakdown=PriceBreakdown(
            base_price=ZERO, floor_rate=ZERO, additional_services=ZERO,
            special_items=ZERO, water=ZERO, electricity=ZERO,
        ), configuration_missing=True)

    base_price = to_money(room_type.base_price)
    floor_rate = to_money(config.floor_rate(room.floor))

    additional_services = ZERO
    for service_id in _room_service_ids(room):
        item = config.service_items.get(service_id)
        if item is not None:
            additional_services += to_money(item.amount)

    special_items = water = electricity = ZERO
    if tenant is not None:
        special_items = _special_items_total(tenant)
        if tenant.number_of_residents and config.water_per_person:
            water = to_money(Decimal(tenant.number_of_residents) * config.water_per_person)
        if tenant.electricity_units_used and config.electric_unit_rate:
            electricity = to_money(Decimal(tenant.electricity_units_used) * config.electric_unit_rate)

    breakdown = PriceBreakdown(
        base_price=base_price,
        floor_rate=floor_rate,
        additional_services=additional_services,
        special_items=special_items,
        water=water,
        electricity=electricity,
    )
    total = max(ZERO, sum(breakdown.components(), ZERO))
    return PriceResult(total=to_money(total), breakdown=breakdown)
