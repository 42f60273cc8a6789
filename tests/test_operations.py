from datetime import date
from decimal import Decimal
from unittest.mock import patch

import pytest

from billing import operations
from core.constants import RoomStatus
from core.dto import ServiceResult

pytestmark = pytest.mark.django_db


def test_successful_operation_wraps_data(room, metered_tenant):
    result = operations.create_bill(room.id, 5, 2024, bill_date=date(2024, 6, 1))

    assert isinstance(result, ServiceResult)
    assert result.success is True
    assert result.data.total_amount == Decimal('3280.00')
    assert result.status_code == 200


def test_domain_error_becomes_failed_envelope(bill, room):
    result = operations.create_bill(room.id, 5, 2024)

    assert result.success is False
    assert result.code == "DUPLICATE_BILL"
    assert result.status_code == 409
    assert result.as_dict() == {
        'success': False,
        'error': result.error,
        'code': "DUPLICATE_BILL",
        'details': result.details,
    }


def test_invalid_period_is_validation_error(room):
    result = operations.create_bill(room.id, 13, 2024)

    assert result.success is False
    assert result.code == "INVALID_PERIOD"
    assert result.status_code == 400


def test_unexpected_error_is_hidden(room):
    with patch('billing.operations.BillLifecycleManager.create', side_effect=KeyError("boom")):
        result = operations.create_bill(room.id, 5, 2024)

    assert result.success is False
    assert result.code == "INTERNAL_ERROR"
    assert result.error == "An unexpected error occurred"
    assert result.status_code == 500


def test_missing_records_are_not_found():
    assert operations.delete_bill(999999).code == "NOT_FOUND"
    assert operations.calculate_price(999999).status_code == 404
    assert operations.recompute_outstanding_balance(999999).status_code == 404


def test_batch_reports_unknown_room_and_bills_the_rest(room, metered_tenant):
    result = operations.create_bills_batch([room.id, 999999], 5, 2024, bill_date=date(2024, 6, 1))

    assert result.success is True
    assert [bill.room_id for bill in result.data.created] == [room.id]
    assert result.data.failed_count == 1
    assert result.data.failed[0].room_id == 999999
    assert result.data.failed[0].code == "NOT_FOUND"


def test_calculate_price_for_named_tenant(room, metered_tenant):
    result = operations.calculate_price(room.id, tenant_id=metered_tenant.id)

    assert result.data['total'] == Decimal('3280.00')
    assert result.data['configuration_missing'] is False


def test_record_and_read_latest_meter(room, tenant):
    operations.record_meter_reading(room.id, 'electric', '15', reading_date=date(2024, 5, 1))

    latest = operations.latest_meter_reading(room.id, 'electric')

    assert latest.data.current_reading == Decimal('15')


def test_room_operations(empty_room):
    assert operations.set_room_maintenance(empty_room.id, True).data.status == RoomStatus.MAINTENANCE

    refused = operations.assign_tenant(empty_room.id, "Pim")

    assert refused.success is False
    assert refused.code == "ROOM_STATE_CONFLICT"


def test_record_payment_and_summary(bill, dormitory):
    payment = operations.record_payment(bill.id, '500', 'cash')
    summary = operations.billing_summary(dormitory.id)

    assert payment.success is True
    assert summary.data['paid_amount'] == Decimal('500.00')


def test_sweep_and_late_fee_operations(bill):
    sweep = operations.sweep_overdue_bills(now=date(2024, 6, 10))
    fee = operations.calculate_late_fee(bill.id, today=date(2024, 6, 10))

    assert sweep.data.updated_count == 1
    assert fee.data == Decimal('40.00')
