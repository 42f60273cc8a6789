"""
Bill lifecycle - creation, overdue sweep, delete / revert to draft,
late fees, reminders and the billing summary.

Status flow: pending -> partially_paid -> paid (terminal);
pending | partially_paid -> overdue (still payable, never back to pending).
"""
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Iterable, List, Optional, Dict, Any

from django.db import IntegrityError, transaction
from django.db.models import Count, F, Q, Sum
from django.utils import timezone

from core.constants import (
    BillStatus, BillItemType, SWEEPABLE_BILL_STATUSES, UNSETTLED_BILL_STATUSES,
    DefaultBilling,
)
from core.dto import BillingPeriod, PriceResult, BatchResult, BatchFailure, SweepResult
from core.exceptions import (
    BaseApplicationException, BillingPreconditionFailed, BillNotModifiable,
    ConfigurationMissing, DuplicateBill, NotFoundError,
)
from core.repositories import BaseRepository
from core.services import BaseService
from core.validators import to_money
from dormitories.config import ConfigProvider, DormitoryConfig
from integrations.notifications import NotificationDispatcher
from meters.services import MeterReadingStore
from rooms.models import Room
from rooms.repositories import RoomRepository
from rooms.services import RoomStatusCoordinator
from tenants.models import Tenant, SpecialItem
from .balances import OutstandingBalanceAggregator
from .models import Bill, BillItem
from .pricing import calculate_price


def _as_date(now) -> date:
    if now is None:
        return timezone.localdate()
    if isinstance(now, datetime):
        return timezone.localdate(now) if timezone.is_aware(now) else now.date()
    return now


class BillLifecycleManager(BaseService):
    """Service for bill creation and the bill state machine"""

    def __init__(self, config_provider: ConfigProvider = None, coordinator: RoomStatusCoordinator = None,
                 meter_store: MeterReadingStore = None, balances: OutstandingBalanceAggregator = None,
                 notifier: NotificationDispatcher = None):
        super().__init__()
        self.bill_repo = BaseRepository(Bill)
        self.room_repo = RoomRepository(Room)
        self.config_provider = config_provider or ConfigProvider()
        self.coordinator = coordinator or RoomStatusCoordinator()
        self.meter_store = meter_store or MeterReadingStore(coordinator=self.coordinator)
        self.balances = balances or OutstandingBalanceAggregator()
        self._notifier = notifier

    @property
    def notifier(self) -> NotificationDispatcher:
        if self._notifier is None:
            self._notifier = NotificationDispatcher()
        return self._notifier

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def preview(self, room: Room, config: DormitoryConfig = None) -> PriceResult:
        """Price the room with its current tenant without writing anything"""
        room = self._load_room(room.id)
        config = config or self.config_provider.get(room.dormitory_id)
        tenants = self.room_repo.active_tenants(room)
        tenant = self._load_tenant(tenants[0].id) if len(tenants) == 1 else None
        return calculate_price(room, config.room_type(room.room_type_id), config, tenant)

    def create(self, room: Room, period: BillingPeriod, force_duplicate: bool = False,
               bill_date: date = None, config: DormitoryConfig = None) -> Bill:
        """
        Issue the bill for ``room`` and ``period``.

        Raises:
            BillingPreconditionFailed: no single active tenant, missing meter
                reading or zero usage (per dormitory settings)
            ConfigurationMissing: the room has no configured room type
            DuplicateBill: a bill exists for the period and ``force_duplicate``
                is not set
            RoomStateConflict: the room is not in a billable status
        """
        room = self._load_room(room.id)
        config = config or self.config_provider.get(room.dormitory_id)

        existing = self._existing_bill(room, period)
        if existing is not None and not force_duplicate:
            raise self._duplicate_error(room, period, existing)

        # A forced re-issue bills the same reading the existing bill consumed
        tenant = self._billable_tenant(room, config, reuse_reading=existing is not None)
        room_type = config.room_type(room.room_type_id)
        price = calculate_price(room, room_type, config, tenant)
        if price.configuration_missing:
            raise ConfigurationMissing(
                message=f"Room {room.number} has no room type configured",
                details={"room_id": room.id, "room_type_id": room.room_type_id}
            )

        bill_date = bill_date or timezone.localdate()
        with transaction.atomic():
            self.room_repo.lock(room.id)
            bill = self._insert_bill(room, tenant, period, price, bill_date, config, force_duplicate)
            self._create_items(bill, price, room, room_type, tenant, config)
            bill.special_item_ids = self._consume_special_items(tenant)
            bill.save(update_fields=['special_item_ids'])

            self.meter_store.mark_billed(room, bill)
            Tenant.objects.filter(id=tenant.id).update(has_meter_reading=False)
            self.coordinator.bill_created(room, tenant)
            self.balances.recompute(tenant)
            transaction.on_commit(lambda: self._notify_created(bill))

        self.log_info(
            f"Created bill for room {room.number} ({period.label})",
            bill_id=bill.id, total=str(bill.total_amount), forced=force_duplicate
        )
        return bill

    def create_batch(self, rooms: Iterable[Room], period: BillingPeriod,
                     force_duplicate: bool = False, bill_date: date = None) -> BatchResult:
        """
        Bill each room on its own transaction; one failing room never
        prevents the others from being billed.
        """
        result = BatchResult()
        configs: Dict[int, DormitoryConfig] = {}
        for room in rooms:
            try:
                if room.dormitory_id not in configs:
                    configs[room.dormitory_id] = self.config_provider.get(room.dormitory_id)
                bill = self.create(
                    room, period, force_duplicate=force_duplicate,
                    bill_date=bill_date, config=configs[room.dormitory_id]
                )
                result.created.append(bill)
            except BaseApplicationException as e:
                self.log_warning(
                    f"Skipped room {room.number} in batch: {e.message}",
                    room_id=room.id, code=e.code
                )
                result.failed.append(BatchFailure(
                    room_id=room.id, room_number=room.number,
                    error=e.message, code=e.code, details=e.details,
                ))
            except Exception as e:
                self.log_error(f"Unexpected error billing room {room.number}", error=e, room_id=room.id)
                result.failed.append(BatchFailure(
                    room_id=room.id, room_number=room.number,
                    error="Unexpected error while creating the bill", code="INTERNAL_ERROR",
                ))

        self.log_info(
            f"Batch billing {period.label}: {result.created_count} created, {result.failed_count} failed"
        )
        return result

    def _load_room(self, room_id: int) -> Room:
        room = self.room_repo.get_with_pricing(room_id)
        if room is None:
            raise NotFoundError(resource_type="Room", resource_id=room_id)
        return room

    def _load_tenant(self, tenant_id: int) -> Tenant:
        return Tenant.objects.prefetch_related('special_items').get(id=tenant_id)

    def _billable_tenant(self, room: Room, config: DormitoryConfig, reuse_reading: bool = False) -> Tenant:
        tenants = self.room_repo.active_tenants(room)
        if len(tenants) != 1:
            raise BillingPreconditionFailed(
                message=f"Room {room.number} needs exactly one active tenant to be billed",
                code="NO_ACTIVE_TENANT",
                details={"room_id": room.id, "active_tenants": len(tenants)}
            )
        tenant = self._load_tenant(tenants[0].id)
        if config.require_meter_reading and not (tenant.has_meter_reading or reuse_reading):
            raise BillingPreconditionFailed(
                message=f"Record an electric meter reading for room {room.number} before billing",
                code="METER_READING_REQUIRED",
                details={"room_id": room.id, "tenant_id": tenant.id}
            )
        if config.reject_zero_usage and not tenant.electricity_units_used:
            raise BillingPreconditionFailed(
                message=f"Room {room.number} has no electricity usage to bill",
                code="ZERO_USAGE",
                details={"room_id": room.id, "tenant_id": tenant.id}
            )
        return tenant

    def _existing_bill(self, room: Room, period: BillingPeriod) -> Optional[Bill]:
        return (
            Bill.objects
            .filter(dormitory_id=room.dormitory_id, room_id=room.id,
                    month=period.month, year=period.year, forced_duplicate=False)
            .first()
        )

    def _duplicate_error(self, room: Room, period: BillingPeriod, existing: Optional[Bill]) -> DuplicateBill:
        return DuplicateBill(
            message=(
                f"Room {room.number} already has a bill for {period.label}; "
                f"confirm to create another one"
            ),
            details={
                "dormitory_id": room.dormitory_id,
                "room_number": room.number,
                "month": period.month,
                "year": period.year,
                "existing_bill_id": existing.id if existing else None,
            }
        )

    def _insert_bill(self, room, tenant, period, price, bill_date, config, force_duplicate) -> Bill:
        try:
            # Savepoint so the lookup below still runs if the constraint fires
            with transaction.atomic():
                return self.bill_repo.create(
                    dormitory_id=room.dormitory_id,
                    room=room,
                    tenant=tenant,
                    room_number=room.number,
                    month=period.month,
                    year=period.year,
                    bill_date=bill_date,
                    due_date=config.due_date_for(bill_date, period),
                    total_amount=price.total,
                    paid_amount=Decimal('0.00'),
                    remaining_amount=price.total,
                    status=BillStatus.PENDING,
                    forced_duplicate=force_duplicate,
                )
        except IntegrityError:
            existing = self._existing_bill(room, period)
            self.log_warning(
                "Concurrent bill creation hit the period constraint",
                room_id=room.id, period=period.label
            )
            raise self._duplicate_error(room, period, existing)

    def _create_items(self, bill: Bill, price: PriceResult, room: Room, room_type,
                      tenant: Tenant, config: DormitoryConfig) -> List[BillItem]:
        breakdown = price.breakdown
        candidates = [
            BillItem(item_type=BillItemType.RENT, name=room_type.name, amount=breakdown.base_price),
            BillItem(item_type=BillItemType.OTHER, name=f"Floor {room.floor} adjustment",
                     amount=breakdown.floor_rate),
            BillItem(
                item_type=BillItemType.OTHER, name="Additional services",
                description=", ".join(sorted(s.name for s in room.services.all())),
                amount=breakdown.additional_services,
            ),
            BillItem(
                item_type=BillItemType.OTHER, name="Special items",
                description=", ".join(item.name for item in tenant.active_special_items),
                amount=breakdown.special_items,
            ),
            BillItem(
                item_type=BillItemType.WATER, name="Water", amount=breakdown.water,
                unit_price=config.water_per_person, quantity=Decimal(tenant.number_of_residents),
            ),
            BillItem(
                item_type=BillItemType.ELECTRIC, name="Electricity", amount=breakdown.electricity,
                unit_price=config.electric_unit_rate, quantity=tenant.electricity_units_used,
                previous_reading=tenant.electricity_previous_reading,
                current_reading=tenant.electricity_current_reading,
            ),
        ]
        items = [item for item in candidates if item.amount]

        # Floor discounts can push the raw sum below the clamped total
        items_total = sum((item.amount for item in items), Decimal('0.00'))
        if items_total != price.total:
            items.append(BillItem(
                item_type=BillItemType.OTHER, name="Minimum charge adjustment",
                amount=to_money(price.total - items_total),
            ))

        for position, item in enumerate(items):
            item.bill = bill
            item.position = position
        return BillItem.objects.bulk_create(items)

    def _consume_special_items(self, tenant: Tenant) -> List[int]:
        """Use up one cycle of every active fixed-duration special item"""
        ids = list(
            SpecialItem.objects
            .filter(tenant_id=tenant.id, duration__gt=0, remaining_billing_cycles__gt=0)
            .values_list('id', flat=True)
        )
        if ids:
            SpecialItem.objects.filter(id__in=ids).update(
                remaining_billing_cycles=F('remaining_billing_cycles') - 1
            )
        return ids

    def _notify_created(self, bill: Bill):
        if self.notifier.bill_created(bill):
            Bill.objects.filter(id=bill.id).update(notified_initial=True)

    # ------------------------------------------------------------------
    # Delete / revert
    # ------------------------------------------------------------------

    def delete(self, bill: Bill) -> int:
        """Remove an unpaid bill together with its items and payments"""
        bill_id = bill.id
        self._remove(bill)
        self.log_info("Deleted bill", bill_id=bill_id)
        return bill_id

    def revert_to_draft(self, bill: Bill) -> PriceResult:
        """
        Remove the bill and hand back a fresh price preview so it can be
        corrected and issued again.
        """
        room = self._remove(bill)
        self.log_info("Reverted bill to draft", bill_id=bill.id, room_id=room.id)
        return self.preview(room)

    def _remove(self, bill: Bill) -> Room:
        with transaction.atomic():
            bill = self.bill_repo.lock(bill.id)
            if bill.status == BillStatus.PAID:
                raise BillNotModifiable(
                    message=f"Bill {bill.id} is paid and cannot be changed",
                    details={"bill_id": bill.id}
                )
            room = bill.room
            tenant = bill.tenant

            if bill.special_item_ids:
                SpecialItem.objects.filter(id__in=bill.special_item_ids).update(
                    remaining_billing_cycles=F('remaining_billing_cycles') + 1
                )
            released = self.meter_store.mark_unbilled(bill)
            if tenant.is_active and tenant.last_meter_reading_date is not None:
                Tenant.objects.filter(id=tenant.id).update(has_meter_reading=True)

            bill.payments.all().delete()
            bill.items.all().delete()
            bill.delete()

            self.coordinator.bill_reverted(room)
            self.balances.recompute(tenant)

        self.log_info(
            f"Removed bill for room {room.number}",
            readings_released=released, special_items_restored=len(bill.special_item_ids)
        )
        return room

    # ------------------------------------------------------------------
    # Overdue sweep, late fees, reminders
    # ------------------------------------------------------------------

    def sweep_overdue(self, now=None, dormitory=None) -> SweepResult:
        """
        Mark every pending / partially paid bill due before ``now`` as
        overdue.

        The status predicate is part of the UPDATE itself, so concurrent or
        repeated sweeps only ever touch bills that still qualify.
        """
        today = _as_date(now)
        candidates = Bill.objects.filter(status__in=SWEEPABLE_BILL_STATUSES, due_date__lt=today)
        if dormitory is not None:
            candidates = candidates.filter(dormitory_id=getattr(dormitory, 'id', dormitory))
        bill_ids = list(candidates.values_list('id', flat=True))
        if not bill_ids:
            return SweepResult()

        with transaction.atomic():
            updated = (
                Bill.objects
                .filter(id__in=bill_ids, status__in=SWEEPABLE_BILL_STATUSES, due_date__lt=today)
                .update(status=BillStatus.OVERDUE, updated_at=timezone.now())
            )
            tenant_ids = set(
                Bill.objects.filter(id__in=bill_ids).values_list('tenant_id', flat=True)
            )
            self.balances.recompute_many(tenant_ids)
            transaction.on_commit(lambda: self._notify_overdue(bill_ids))

        self.log_info(f"Overdue sweep marked {updated} bills", as_of=str(today))
        return SweepResult(updated_count=updated, bill_ids=bill_ids)

    def _notify_overdue(self, bill_ids: List[int]):
        bills = Bill.objects.filter(
            id__in=bill_ids, status=BillStatus.OVERDUE, notified_overdue=False
        ).select_related('tenant')
        for bill in bills:
            # Claim the flag first so overlapping sweeps send once
            if Bill.objects.filter(id=bill.id, notified_overdue=False).update(notified_overdue=True):
                self.notifier.bill_overdue(bill)

    def calculate_late_fee(self, bill: Bill, config: DormitoryConfig = None, today=None) -> Decimal:
        """days overdue x the dormitory's daily late fee rate"""
        if bill.status != BillStatus.OVERDUE:
            return Decimal('0.00')
        config = config or self.config_provider.get(bill.dormitory_id)
        days_overdue = (_as_date(today) - bill.due_date).days
        if days_overdue <= 0 or not config.late_fee_rate:
            return Decimal('0.00')
        return to_money(Decimal(days_overdue) * config.late_fee_rate)

    def apply_late_fees(self, today=None, dormitory=None) -> int:
        """Store the current late fee on every overdue bill; returns bills changed"""
        today = _as_date(today)
        bills = Bill.objects.filter(status=BillStatus.OVERDUE)
        if dormitory is not None:
            bills = bills.filter(dormitory_id=getattr(dormitory, 'id', dormitory))

        configs: Dict[int, DormitoryConfig] = {}
        changed = 0
        for bill in bills:
            if bill.dormitory_id not in configs:
                configs[bill.dormitory_id] = self.config_provider.get(bill.dormitory_id)
            fee = self.calculate_late_fee(bill, configs[bill.dormitory_id], today)
            if fee != bill.late_fee:
                Bill.objects.filter(id=bill.id).update(late_fee=fee)
                changed += 1
        return changed

    def send_due_reminders(self, now=None, days_ahead: int = DefaultBilling.REMINDER_DAYS_AHEAD,
                           dormitory=None) -> int:
        """Remind tenants of bills due within ``days_ahead`` days, once per bill"""
        today = _as_date(now)
        bills = Bill.objects.filter(
            status__in=SWEEPABLE_BILL_STATUSES,
            due_date__gte=today,
            due_date__lte=today + timedelta(days=days_ahead),
            notified_reminder=False,
        ).select_related('tenant')
        if dormitory is not None:
            bills = bills.filter(dormitory_id=getattr(dormitory, 'id', dormitory))

        sent = 0
        for bill in bills:
            if not Bill.objects.filter(id=bill.id, notified_reminder=False).update(notified_reminder=True):
                continue
            if self.notifier.bill_due_reminder(bill):
                sent += 1
        self.log_info(f"Sent {sent} due reminders", as_of=str(today))
        return sent

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def summary(self, dormitory) -> Dict[str, Any]:
        """Bill counts and amounts per status for one dormitory"""
        dormitory_id = getattr(dormitory, 'id', dormitory)
        totals = Bill.objects.filter(dormitory_id=dormitory_id).aggregate(
            total_bills=Count('id'),
            total_amount=Sum('total_amount'),
            paid_amount=Sum('paid_amount'),
            outstanding_amount=Sum('remaining_amount', filter=Q(status__in=UNSETTLED_BILL_STATUSES)),
            paid_count=Count('id', filter=Q(status=BillStatus.PAID)),
            pending_count=Count('id', filter=Q(status=BillStatus.PENDING)),
            partially_paid_count=Count('id', filter=Q(status=BillStatus.PARTIALLY_PAID)),
            overdue_count=Count('id', filter=Q(status=BillStatus.OVERDUE)),
            overdue_amount=Sum('remaining_amount', filter=Q(status=BillStatus.OVERDUE)),
        )
        for key in ('total_amount', 'paid_amount', 'outstanding_amount', 'overdue_amount'):
            totals[key] = to_money(totals[key])
        return totals
