from datetime import date
from decimal import Decimal

import pytest

from billing.balances import OutstandingBalanceAggregator
from billing.models import Bill
from core.constants import BillStatus
from core.dto import BillingPeriod
from tenants.models import Tenant

pytestmark = pytest.mark.django_db


def test_balance_sums_unsettled_remainders(bill, processor, room, manager, meter_store, metered_tenant):
    processor.pay(bill, '1000', 'cash')
    meter_store.record(room, 'electric', '50', reading_date=date(2024, 6, 28))
    manager.create(room, BillingPeriod(month=6, year=2024), bill_date=date(2024, 7, 1))

    balance = OutstandingBalanceAggregator().compute(metered_tenant.id)

    # 2280 left on May, June = 2900 + 100 water + 70 electricity
    assert balance == Decimal('5350.00')


def test_recompute_is_idempotent(bill, metered_tenant):
    aggregator = OutstandingBalanceAggregator()
    Tenant.objects.filter(id=metered_tenant.id).update(outstanding_balance=Decimal('99999'))

    first = aggregator.recompute(metered_tenant)
    second = aggregator.recompute(metered_tenant)
    metered_tenant.refresh_from_db()

    assert first == second == Decimal('3280.00')
    assert metered_tenant.outstanding_balance == Decimal('3280.00')


def test_paid_bills_do_not_count(bill, processor, metered_tenant):
    processor.pay(bill, '3280', 'cash')

    assert OutstandingBalanceAggregator().compute(metered_tenant.id) == 0


def test_overdue_bills_count(bill, metered_tenant):
    Bill.objects.filter(id=bill.id).update(status=BillStatus.OVERDUE)

    assert OutstandingBalanceAggregator().compute(metered_tenant.id) == Decimal('3280.00')


def test_tenant_without_bills_has_zero_balance(tenant):
    assert OutstandingBalanceAggregator().recompute(tenant) == Decimal('0.00')


def test_recompute_many(bill, metered_tenant):
    Tenant.objects.filter(id=metered_tenant.id).update(outstanding_balance=0)

    assert OutstandingBalanceAggregator().recompute_many([metered_tenant.id, metered_tenant.id]) == 1
    metered_tenant.refresh_from_db()
    assert metered_tenant.outstanding_balance == Decimal('3280.00')


def test_balance_keeps_cents(bill, processor, metered_tenant):
    assert str(OutstandingBalanceAggregator().compute(metered_tenant.id)) == "3280.00"

    processor.pay(bill, '3280', 'cash')

    assert str(OutstandingBalanceAggregator().compute(metered_tenant.id)) == "0.00"
