from datetime import date
from decimal import Decimal
from unittest.mock import Mock

import pytest
from django.core.files.storage import InMemoryStorage
from django.core.files.uploadedfile import SimpleUploadedFile

from billing.models import Bill, Payment
from billing.payments import PaymentProcessor, next_status
from core.constants import BillStatus, PaymentStatus, RoomStatus
from core.dto import BillingPeriod
from core.exceptions import EvidenceUploadFailed, InvalidAmount, MissingEvidence
from integrations.storage import EvidenceStorage
from tenants.services import TenantService

pytestmark = pytest.mark.django_db


def slip(name="slip.png"):
    return SimpleUploadedFile(name, b"\x89PNG evidence", content_type="image/png")


def test_next_status():
    assert next_status(BillStatus.PENDING, Decimal('10'), Decimal('100')) == BillStatus.PARTIALLY_PAID
    assert next_status(BillStatus.PARTIALLY_PAID, Decimal('100'), Decimal('100')) == BillStatus.PAID
    assert next_status(BillStatus.OVERDUE, Decimal('10'), Decimal('100')) == BillStatus.OVERDUE
    assert next_status(BillStatus.OVERDUE, Decimal('100'), Decimal('100')) == BillStatus.PAID


def test_partial_then_full_payment(bill, processor, room, metered_tenant):
    processor.pay(bill, '1000', 'cash', recorded_by="manager")
    bill.refresh_from_db()
    room.refresh_from_db()

    assert bill.paid_amount == Decimal('1000.00')
    assert bill.remaining_amount == Decimal('2280.00')
    assert bill.status == BillStatus.PARTIALLY_PAID
    assert room.status == RoomStatus.PENDING_PAYMENT

    payment = processor.pay(bill, '2280', 'cash')
    bill.refresh_from_db()
    room.refresh_from_db()
    metered_tenant.refresh_from_db()

    assert payment.status == PaymentStatus.COMPLETED
    assert payment.tenant_id == metered_tenant.id
    assert bill.status == BillStatus.PAID
    assert bill.remaining_amount == 0
    assert room.status == RoomStatus.OCCUPIED
    assert metered_tenant.outstanding_balance == 0
    assert Payment.objects.filter(bill=bill).count() == 2


def test_overpayment_is_rejected(bill, processor):
    with pytest.raises(InvalidAmount) as exc_info:
        processor.pay(bill, '3280.01', 'cash')

    assert exc_info.value.code == "PAYMENT_EXCEEDS_REMAINING"
    assert not Payment.objects.exists()


@pytest.mark.parametrize("amount", ['0', '-50'])
def test_non_positive_amount_is_rejected(bill, processor, amount):
    with pytest.raises(InvalidAmount):
        processor.pay(bill, amount, 'cash')


@pytest.mark.parametrize("amount", ['NaN', 'Infinity', '-Infinity', 'abc'])
def test_non_numeric_amount_is_rejected(bill, processor, amount):
    with pytest.raises(InvalidAmount) as exc_info:
        processor.pay(bill, amount, 'cash')

    assert exc_info.value.code == "INVALID_AMOUNT"
    assert not Payment.objects.exists()


def test_paid_bill_accepts_no_more_payments(bill, processor):
    processor.pay(bill, '3280', 'cash')

    with pytest.raises(InvalidAmount) as exc_info:
        processor.pay(bill, '1', 'cash')

    assert exc_info.value.code == "BILL_ALREADY_PAID"


def test_unknown_method_is_rejected(bill, processor):
    with pytest.raises(InvalidAmount) as exc_info:
        processor.pay(bill, '100', 'cheque')

    assert exc_info.value.code == "INVALID_PAYMENT_METHOD"


def test_transfer_needs_reference_and_evidence(bill, processor, storage):
    with pytest.raises(MissingEvidence) as exc_info:
        processor.pay(bill, '500', 'transfer')

    assert exc_info.value.details == {'missing': ['reference_code', 'evidence']}
    storage.upload.assert_not_called()


def test_transfer_stores_evidence_url(bill, coordinator, notifier):
    processor = PaymentProcessor(storage=EvidenceStorage(InMemoryStorage()), coordinator=coordinator,
                                 notifier=notifier)

    payment = processor.pay(bill, '500', 'transfer', reference_code="TX-991", evidence=slip())

    assert payment.reference_code == "TX-991"
    assert f"payment_evidence/{bill.dormitory_id}/{bill.id}/" in payment.evidence_url
    assert payment.evidence_url.endswith(".png")


def test_failed_upload_records_nothing(bill, processor, storage):
    storage.upload.side_effect = EvidenceUploadFailed(details={'bill_id': bill.id})

    with pytest.raises(EvidenceUploadFailed):
        processor.pay(bill, '500', 'transfer', reference_code="TX-991", evidence=slip())

    bill.refresh_from_db()
    assert not Payment.objects.exists()
    assert bill.paid_amount == 0
    assert bill.status == BillStatus.PENDING


def test_unsupported_evidence_type(bill):
    with pytest.raises(EvidenceUploadFailed) as exc_info:
        EvidenceStorage(InMemoryStorage()).upload(bill, slip("slip.exe"))

    assert exc_info.value.code == "UNSUPPORTED_EVIDENCE_TYPE"


def test_evidence_discarded_when_write_fails(bill, processor, storage):
    storage.upload.return_value = ("payment_evidence/x.png", "/media/payment_evidence/x.png")
    processor.balances = Mock()
    processor.balances.recompute.side_effect = RuntimeError("database went away")

    with pytest.raises(RuntimeError):
        processor.pay(bill, '500', 'transfer', reference_code="TX-991", evidence=slip())

    storage.discard.assert_called_once_with("payment_evidence/x.png")
    assert not Payment.objects.exists()


def test_partial_payment_keeps_bill_overdue(bill, processor, room):
    Bill.objects.filter(id=bill.id).update(status=BillStatus.OVERDUE)

    processor.pay(bill, '1000', 'cash')
    bill.refresh_from_db()
    room.refresh_from_db()

    assert bill.status == BillStatus.OVERDUE
    assert bill.remaining_amount == Decimal('2280.00')
    assert room.status == RoomStatus.PENDING_PAYMENT


def test_full_payment_with_older_debt_keeps_room_pending(bill, processor, room, manager, meter_store):
    meter_store.record(room, 'electric', '70', reading_date=date(2024, 6, 28))
    june = manager.create(room, BillingPeriod(month=6, year=2024), bill_date=date(2024, 7, 1))

    processor.pay(june, june.total_amount, 'cash')
    room.refresh_from_db()

    assert room.status == RoomStatus.PENDING_PAYMENT


def test_payment_from_former_tenant_leaves_room_alone(bill, processor, room, metered_tenant):
    TenantService().move_out(metered_tenant, force=True)

    processor.pay(bill, '3280', 'cash')
    bill.refresh_from_db()
    room.refresh_from_db()
    metered_tenant.refresh_from_db()

    assert bill.status == BillStatus.PAID
    assert room.status == RoomStatus.AVAILABLE
    assert metered_tenant.outstanding_balance == 0


def test_payment_notification_after_commit(bill, processor, notifier_backend,
                                           django_capture_on_commit_callbacks):
    with django_capture_on_commit_callbacks(execute=True):
        processor.pay(bill, '1000', 'cash')

    message = notifier_backend.send.call_args.args[0]
    assert "Payment received" in message
    assert "2,280.00" in message
