from datetime import date
from decimal import Decimal

import pytest

from core.constants import RoomStatus
from core.exceptions import InvalidReading, ValidationError
from meters.models import MeterReading
from rooms.models import Room

pytestmark = pytest.mark.django_db


def test_first_reading_starts_from_initial_meter(meter_store, dormitory, standard_type):
    room = Room.objects.create(
        dormitory=dormitory, number="105", floor=1, room_type=standard_type,
        initial_meter_reading=Decimal('1200'),
    )

    reading = meter_store.record(room, 'electric', '1250', reading_date=date(2024, 5, 28))

    assert reading.previous_reading == Decimal('1200')
    assert reading.units_used == Decimal('50')
    assert reading.is_billed is False


def test_units_are_delta_from_latest_reading(meter_store, room):
    meter_store.record(room, 'electric', '100', reading_date=date(2024, 4, 28))

    reading = meter_store.record(room, 'electric', '135.5', reading_date=date(2024, 5, 28))

    assert reading.previous_reading == Decimal('100')
    assert reading.units_used == Decimal('35.50')
    assert meter_store.latest(room, 'electric').id == reading.id


def test_decreasing_reading_is_rejected(meter_store, room):
    meter_store.record(room, 'electric', '100', reading_date=date(2024, 4, 28))

    with pytest.raises(InvalidReading) as exc_info:
        meter_store.record(room, 'electric', '90', reading_date=date(2024, 5, 28))

    assert exc_info.value.code == "DECREASING_READING"
    assert MeterReading.objects.filter(room=room).count() == 1


def test_negative_reading_is_rejected(meter_store, room):
    with pytest.raises(InvalidReading):
        meter_store.record(room, 'water', '-1', reading_date=date(2024, 5, 28))


@pytest.mark.parametrize("value", ['NaN', 'Infinity', 'ten'])
def test_non_numeric_reading_is_rejected(meter_store, room, value):
    with pytest.raises(InvalidReading) as exc_info:
        meter_store.record(room, 'electric', value, reading_date=date(2024, 5, 28))

    assert exc_info.value.code == "INVALID_READING"
    assert not MeterReading.objects.filter(room=room).exists()


def test_back_dated_reading_is_rejected(meter_store, room):
    meter_store.record(room, 'electric', '100', reading_date=date(2024, 5, 28))

    with pytest.raises(InvalidReading) as exc_info:
        meter_store.record(room, 'electric', '120', reading_date=date(2024, 5, 1))

    assert exc_info.value.code == "OUT_OF_ORDER_READING"


def test_unknown_utility_type(meter_store, room):
    with pytest.raises(ValidationError):
        meter_store.record(room, 'gas', '10')


def test_water_and_electric_series_are_independent(meter_store, room):
    meter_store.record(room, 'electric', '500', reading_date=date(2024, 5, 28))

    water = meter_store.record(room, 'water', '12', reading_date=date(2024, 5, 28))

    assert water.previous_reading == 0
    assert water.units_used == Decimal('12')
    assert meter_store.previous_value(room, 'electric') == Decimal('500')


def test_same_day_readings_resolve_to_latest_insert(meter_store, room):
    meter_store.record(room, 'electric', '10', reading_date=date(2024, 5, 28))
    second = meter_store.record(room, 'electric', '15', reading_date=date(2024, 5, 28))

    assert meter_store.latest(room, 'electric').id == second.id
    assert [r.id for r in meter_store.history(room, 'electric')][0] == second.id


def test_usage_on_empty_room_marks_it_abnormal(meter_store, empty_room):
    meter_store.record(empty_room, 'electric', '25', reading_date=date(2024, 5, 28))

    empty_room.refresh_from_db()
    assert empty_room.status == RoomStatus.ABNORMAL


def test_zero_usage_on_empty_room_keeps_it_available(meter_store, empty_room):
    meter_store.record(empty_room, 'electric', '0', reading_date=date(2024, 5, 28))

    empty_room.refresh_from_db()
    assert empty_room.status == RoomStatus.AVAILABLE


def test_usage_with_tenant_makes_room_ready_for_billing(meter_store, room, tenant):
    meter_store.record(room, 'electric', '40', reading_date=date(2024, 5, 28))

    room.refresh_from_db()
    tenant.refresh_from_db()
    assert room.status == RoomStatus.READY_FOR_BILLING
    assert tenant.has_meter_reading is True
    assert tenant.electricity_units_used == Decimal('40')
    assert tenant.electricity_current_reading == Decimal('40')
    assert tenant.last_meter_reading_date == date(2024, 5, 28)


def test_water_reading_does_not_change_room_status(meter_store, room, tenant):
    meter_store.record(room, 'water', '8', reading_date=date(2024, 5, 28))

    room.refresh_from_db()
    tenant.refresh_from_db()
    assert room.status == RoomStatus.OCCUPIED
    assert tenant.has_meter_reading is False


def test_usage_after_bill_for_period_keeps_room_billed(meter_store, room, bill):
    meter_store.record(room, 'electric', '55', reading_date=date(2024, 5, 30))

    room.refresh_from_db()
    assert room.status == RoomStatus.BILLED


def test_billing_attaches_readings_to_bill(bill, room):
    readings = MeterReading.objects.filter(room=room)

    assert readings.count() == 1
    assert all(r.is_billed and r.bill_id == bill.id for r in readings)
