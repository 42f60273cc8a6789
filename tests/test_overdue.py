from datetime import date, datetime, timedelta, timezone as dt_timezone
from decimal import Decimal
from io import StringIO

import pytest
from django.core.management import call_command
from django.core.management.base import CommandError

from billing.models import Bill
from core.constants import BillStatus
from dormitories.models import Dormitory

pytestmark = pytest.mark.django_db


def test_sweep_marks_past_due_bills_once(bill, manager, metered_tenant):
    now = datetime(2024, 6, 9, 12, 0, tzinfo=dt_timezone.utc)

    first = manager.sweep_overdue(now=now)
    second = manager.sweep_overdue(now=now + timedelta(milliseconds=1))
    bill.refresh_from_db()
    metered_tenant.refresh_from_db()

    assert first.updated_count == 1
    assert first.bill_ids == [bill.id]
    assert second.updated_count == 0
    assert bill.status == BillStatus.OVERDUE
    assert metered_tenant.outstanding_balance == Decimal('3280.00')


def test_sweep_skips_bills_not_yet_due(bill, manager):
    result = manager.sweep_overdue(now=date(2024, 6, 8))
    bill.refresh_from_db()

    assert result.updated_count == 0
    assert bill.status == BillStatus.PENDING


def test_sweep_leaves_paid_bills_alone(bill, manager, processor):
    processor.pay(bill, '3280', 'cash')

    result = manager.sweep_overdue(now=date(2024, 7, 1))

    assert result.updated_count == 0


def test_sweep_scoped_to_dormitory(bill, manager):
    other = Dormitory.objects.create(name="Moonlight Dorm")

    assert manager.sweep_overdue(now=date(2024, 7, 1), dormitory=other).updated_count == 0
    assert manager.sweep_overdue(now=date(2024, 7, 1), dormitory=bill.dormitory_id).updated_count == 1


def test_overdue_notice_sent_once(bill, manager, notifier_backend, django_capture_on_commit_callbacks):
    with django_capture_on_commit_callbacks(execute=True):
        manager.sweep_overdue(now=date(2024, 6, 9))
    with django_capture_on_commit_callbacks(execute=True):
        Bill.objects.filter(id=bill.id).update(status=BillStatus.PENDING)
        manager.sweep_overdue(now=date(2024, 6, 9))
    bill.refresh_from_db()

    assert bill.notified_overdue is True
    overdue_messages = [c for c in notifier_backend.send.call_args_list if c.args[0].startswith("Overdue")]
    assert len(overdue_messages) == 1


def test_late_fee_grows_with_days_overdue(bill, manager):
    assert manager.calculate_late_fee(bill, today=date(2024, 6, 11)) == Decimal('0.00')

    manager.sweep_overdue(now=date(2024, 6, 9))
    bill.refresh_from_db()

    assert manager.calculate_late_fee(bill, today=date(2024, 6, 11)) == Decimal('60.00')
    assert manager.apply_late_fees(today=date(2024, 6, 11)) == 1
    assert manager.apply_late_fees(today=date(2024, 6, 11)) == 0
    bill.refresh_from_db()
    assert bill.late_fee == Decimal('60.00')
    assert bill.total_amount == Decimal('3280.00')


def test_due_reminders_sent_once_per_bill(bill, manager, notifier_backend):
    assert manager.send_due_reminders(now=date(2024, 6, 6)) == 1
    assert manager.send_due_reminders(now=date(2024, 6, 7)) == 0

    bill.refresh_from_db()
    assert bill.notified_reminder is True
    assert "Payment reminder" in notifier_backend.send.call_args.args[0]


def test_no_reminder_when_due_date_far_off(bill, manager):
    assert manager.send_due_reminders(now=date(2024, 6, 1), days_ahead=3) == 0


def test_sweep_command(bill, room):
    out = StringIO()

    call_command('sweep_overdue_bills', stdout=out)
    bill.refresh_from_db()

    assert bill.status == BillStatus.OVERDUE
    assert "1 marked overdue" in out.getvalue()


def test_sweep_command_dry_run_changes_nothing(bill):
    out = StringIO()

    call_command('sweep_overdue_bills', '--dry-run', stdout=out)
    bill.refresh_from_db()

    assert bill.status == BillStatus.PENDING
    assert "would mark 1 bills overdue" in out.getvalue()


def test_sweep_command_unknown_dormitory(db):
    with pytest.raises(CommandError):
        call_command('sweep_overdue_bills', '--dormitory', '999999')
