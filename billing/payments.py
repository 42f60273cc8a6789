"""
Payment processing.
"""
from datetime import datetime
from decimal import Decimal

from django.db import transaction
from django.utils import timezone

from core.constants import BillStatus, PaymentStatus
from core.repositories import BaseRepository
from core.services import BaseService
from core.validators import PaymentValidator, to_money
from integrations.notifications import NotificationDispatcher
from integrations.storage import EvidenceStorage
from rooms.services import RoomStatusCoordinator
from .balances import OutstandingBalanceAggregator
from .models import Bill, Payment


def next_status(current: str, paid_amount: Decimal, total_amount: Decimal) -> str:
    """Bill status after a payment; an overdue bill stays overdue until settled"""
    if paid_amount >= total_amount:
        return BillStatus.PAID
    if current == BillStatus.OVERDUE:
        return BillStatus.OVERDUE
    return BillStatus.PARTIALLY_PAID


class PaymentProcessor(BaseService):
    """Records payments against bills"""

    def __init__(self, storage: EvidenceStorage = None, coordinator: RoomStatusCoordinator = None,
                 balances: OutstandingBalanceAggregator = None, notifier: NotificationDispatcher = None):
        super().__init__()
        self.bill_repo = BaseRepository(Bill)
        self.payment_repo = BaseRepository(Payment)
        self.storage = storage or EvidenceStorage()
        self.coordinator = coordinator or RoomStatusCoordinator()
        self.balances = balances or OutstandingBalanceAggregator()
        self._notifier = notifier

    @property
    def notifier(self) -> NotificationDispatcher:
        if self._notifier is None:
            self._notifier = NotificationDispatcher()
        return self._notifier

    def pay(self, bill: Bill, amount, method: str, reference_code: str = None, evidence=None,
            note: str = '', recorded_by: str = '', paid_at: datetime = None) -> Payment:
        """
        Record a payment of ``amount`` on ``bill``.

        Input is validated and evidence uploaded before anything is written;
        the bill is then re-read under a row lock so concurrent payments
        cannot overpay it.

        Raises:
            InvalidAmount: amount <= 0, above the remaining balance, or the
                bill is already paid
            MissingEvidence: a transfer without reference code or evidence
            EvidenceUploadFailed: evidence could not be stored
        """
        amount = to_money(amount)
        PaymentValidator.validate_method(method, reference_code, evidence)
        current = self.bill_repo.get_by_id_or_raise(bill.id)
        PaymentValidator.validate_amount(amount, current.remaining_amount)

        stored_name, evidence_url = None, ''
        if evidence:
            stored_name, evidence_url = self.storage.upload(current, evidence)

        try:
            with transaction.atomic():
                bill = self.bill_repo.lock(bill.id)
                PaymentValidator.validate_amount(amount, bill.remaining_amount)

                payment = self.payment_repo.create(
                    bill=bill,
                    tenant_id=bill.tenant_id,
                    amount=amount,
                    method=method,
                    status=PaymentStatus.COMPLETED,
                    reference_code=reference_code or '',
                    evidence_url=evidence_url,
                    note=note or '',
                    recorded_by=recorded_by or '',
                    paid_at=paid_at or timezone.now(),
                )

                paid_amount = to_money(bill.paid_amount + amount)
                self.bill_repo.update(
                    bill,
                    paid_amount=paid_amount,
                    remaining_amount=to_money(bill.total_amount - paid_amount),
                    status=next_status(bill.status, paid_amount, bill.total_amount),
                )
                self._sync_room(bill)
                self.balances.recompute(bill.tenant)
                transaction.on_commit(lambda: self.notifier.payment_received(bill, payment))
        except Exception:
            if stored_name:
                self.storage.discard(stored_name)
            raise

        self.log_info(
            f"Recorded {method} payment of {amount} on bill {bill.id}",
            payment_id=payment.id, status=bill.status, remaining=str(bill.remaining_amount)
        )
        return payment

    def _sync_room(self, bill: Bill):
        tenant = bill.tenant
        if not tenant.is_active or tenant.room_id != bill.room_id:
            # Late payment from a tenant who already left; the room has moved on
            self.log_info("Room status unchanged for former tenant payment", bill_id=bill.id)
            return
        self.coordinator.payment_recorded(bill.room, bill.status, tenant=tenant)
