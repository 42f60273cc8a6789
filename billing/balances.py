"""
Outstanding balance aggregation.
"""
from decimal import Decimal

from django.db.models import Sum

from core.constants import UNSETTLED_BILL_STATUSES
from core.services import BaseService
from core.validators import to_money
from tenants.models import Tenant


class OutstandingBalanceAggregator(BaseService):
    """
    Writes ``Tenant.outstanding_balance`` as the sum of the tenant's
    unsettled bill remainders. Recomputing is always from scratch, so calls
    are idempotent and may run in any order.
    """

    def compute(self, tenant_id: int) -> Decimal:
        from .models import Bill

        total = (
            Bill.objects
            .filter(tenant_id=tenant_id, status__in=UNSETTLED_BILL_STATUSES)
            .aggregate(total=Sum('remaining_amount'))['total']
        )
        return to_money(total)

    def recompute(self, tenant: Tenant) -> Decimal:
        balance = self.compute(tenant.id)
        Tenant.objects.filter(id=tenant.id).update(outstanding_balance=balance)
        tenant.outstanding_balance = balance
        return balance

    def recompute_many(self, tenant_ids) -> int:
        count = 0
        for tenant in Tenant.objects.filter(id__in=set(tenant_ids)):
            self.recompute(tenant)
            count += 1
        return count
