"""Price calculator tests; pure ones build config by hand."""
from decimal import Decimal
from types import SimpleNamespace

import pytest

from billing.pricing import calculate_price
from dormitories.config import ConfigProvider, DormitoryConfig, RoomTypeConfig, ServiceItemConfig
from tenants.services import TenantService

STANDARD = RoomTypeConfig(id=1, name="Standard", base_price=Decimal('3000'))


def make_config(**overrides):
    values = dict(
        dormitory_id=1,
        room_types={1: STANDARD},
        floor_rates={3: Decimal('-200')},
        service_items={7: ServiceItemConfig(id=7, name="Parking", amount=Decimal('100'))},
        water_per_person=Decimal('50'),
        electric_unit_rate=Decimal('7'),
    )
    values.update(overrides)
    return DormitoryConfig(**values)


def make_tenant(residents=2, units='40', special_items=()):
    return SimpleNamespace(
        number_of_residents=residents,
        electricity_units_used=Decimal(units),
        active_special_items=list(special_items),
    )


def test_price_combines_every_component():
    room = SimpleNamespace(number="301", floor=3, service_ids=[7])

    result = calculate_price(room, STANDARD, make_config(), make_tenant())

    assert result.total == Decimal('3280.00')
    assert result.configuration_missing is False
    assert result.breakdown.as_dict() == {
        'base_price': Decimal('3000.00'),
        'floor_rate': Decimal('-200.00'),
        'additional_services': Decimal('100.00'),
        'special_items': Decimal('0.00'),
        'water': Decimal('100.00'),
        'electricity': Decimal('280.00'),
    }


def test_price_without_tenant_has_no_usage_charges():
    room = SimpleNamespace(number="301", floor=3, service_ids=[7])

    result = calculate_price(room, STANDARD, make_config())

    assert result.total == Decimal('2900.00')
    assert result.breakdown.water == 0
    assert result.breakdown.electricity == 0


def test_missing_room_type_yields_zero_and_flag():
    room = SimpleNamespace(number="301", floor=3, service_ids=[7])

    result = calculate_price(room, None, make_config(), make_tenant())

    assert result.total == Decimal('0.00')
    assert result.configuration_missing is True
    assert all(value == 0 for value in result.breakdown.components())


def test_total_never_negative():
    cheap = RoomTypeConfig(id=2, name="Storage", base_price=Decimal('100'))
    room = SimpleNamespace(number="B1", floor=-1, service_ids=[])
    config = make_config(floor_rates={-1: Decimal('-500')})

    result = calculate_price(room, cheap, config)

    assert result.total == Decimal('0.00')
    assert result.breakdown.floor_rate == Decimal('-500.00')


def test_unconfigured_rates_and_unknown_services_are_ignored():
    room = SimpleNamespace(number="301", floor=9, service_ids=[7, 99])
    config = make_config(water_per_person=None, electric_unit_rate=None)

    result = calculate_price(room, STANDARD, config, make_tenant())

    assert result.breakdown.floor_rate == 0
    assert result.breakdown.additional_services == Decimal('100.00')
    assert result.breakdown.water == 0
    assert result.breakdown.electricity == 0
    assert result.total == Decimal('3100.00')


def test_special_items_sum_only_active_ones():
    room = SimpleNamespace(number="301", floor=1, service_ids=[])
    items = [SimpleNamespace(amount=Decimal('150')), SimpleNamespace(amount=Decimal('75.50'))]

    result = calculate_price(room, STANDARD, make_config(), make_tenant(special_items=items))

    assert result.breakdown.special_items == Decimal('225.50')


@pytest.mark.django_db
def test_expired_fixed_duration_item_is_not_charged(room, tenant, dormitory):
    service = TenantService()
    service.add_special_item(tenant, "Fridge", '150', duration=3, remaining_billing_cycles=2)
    service.add_special_item(tenant, "Microwave", '80', duration=3, remaining_billing_cycles=0)
    service.add_special_item(tenant, "Wifi", '200')
    tenant.refresh_from_db()
    config = ConfigProvider().get(dormitory.id)

    result = calculate_price(room, config.room_type(room.room_type_id), config, tenant)

    assert result.breakdown.special_items == Decimal('350.00')


@pytest.mark.django_db
def test_config_provider_reads_dormitory_catalog(room, dormitory, parking):
    config = ConfigProvider().get(dormitory.id)

    assert config.room_type(room.room_type_id).base_price == Decimal('3000')
    assert config.floor_rate(3) == Decimal('-200')
    assert config.floor_rate(1) == 0
    assert config.service_items[parking.id].amount == Decimal('100')
    assert config.room_type(None) is None
