"""
Room status coordination.

RoomStatusCoordinator is the only code path that writes ``Room.status`` and
``Room.current_tenant``. Every other component reports an event and the
coordinator applies the matching row of ``TRANSITIONS``.
"""
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from django.db import transaction

from core.constants import RoomStatus, TENANTED_STATUSES, OCCUPIED_STATUSES, BillStatus
from core.dto import BillingPeriod
from core.exceptions import RoomStateConflict
from core.services import BaseService
from .models import Room
from .repositories import RoomRepository


class RoomEvent:
    TENANT_ASSIGNED = 'tenant_assigned'
    TENANT_REMOVED = 'tenant_removed'
    UNATTENDED_USAGE = 'unattended_usage'
    USAGE_RECORDED = 'usage_recorded'
    BILL_CREATED = 'bill_created'
    PARTIAL_PAYMENT = 'partial_payment'
    FULL_PAYMENT = 'full_payment'
    BILL_REVERTED = 'bill_reverted'
    BILL_REVERTED_WITH_DEBT = 'bill_reverted_with_debt'
    MAINTENANCE_STARTED = 'maintenance_started'
    MAINTENANCE_ENDED = 'maintenance_ended'


@dataclass(frozen=True)
class Transition:
    sources: Tuple[str, ...]
    target: str
    # Re-applying the event to a room already in ``target`` is a no-op
    idempotent: bool = True


_BILLING_CYCLE = (
    RoomStatus.OCCUPIED,
    RoomStatus.READY_FOR_BILLING,
    RoomStatus.BILLED,
    RoomStatus.PENDING_PAYMENT,
)

# Maintenance is entered only from the empty states (available, abnormal)
# and always ends in available; rooms with a tenant never enter it.
TRANSITIONS: Dict[str, Transition] = {
    RoomEvent.TENANT_ASSIGNED: Transition(
        sources=(RoomStatus.AVAILABLE, RoomStatus.ABNORMAL),
        target=RoomStatus.OCCUPIED,
        idempotent=False,
    ),
    RoomEvent.TENANT_REMOVED: Transition(
        sources=_BILLING_CYCLE + (RoomStatus.ABNORMAL,),
        target=RoomStatus.AVAILABLE,
    ),
    RoomEvent.UNATTENDED_USAGE: Transition(
        sources=(RoomStatus.AVAILABLE,),
        target=RoomStatus.ABNORMAL,
    ),
    RoomEvent.USAGE_RECORDED: Transition(
        sources=(RoomStatus.OCCUPIED,),
        target=RoomStatus.READY_FOR_BILLING,
    ),
    RoomEvent.BILL_CREATED: Transition(sources=_BILLING_CYCLE, target=RoomStatus.BILLED),
    RoomEvent.PARTIAL_PAYMENT: Transition(sources=_BILLING_CYCLE, target=RoomStatus.PENDING_PAYMENT),
    RoomEvent.FULL_PAYMENT: Transition(sources=_BILLING_CYCLE, target=RoomStatus.OCCUPIED),
    RoomEvent.BILL_REVERTED: Transition(sources=_BILLING_CYCLE, target=RoomStatus.READY_FOR_BILLING),
    RoomEvent.BILL_REVERTED_WITH_DEBT: Transition(sources=_BILLING_CYCLE, target=RoomStatus.PENDING_PAYMENT),
    RoomEvent.MAINTENANCE_STARTED: Transition(
        sources=(RoomStatus.AVAILABLE, RoomStatus.ABNORMAL),
        target=RoomStatus.MAINTENANCE,
    ),
    RoomEvent.MAINTENANCE_ENDED: Transition(
        sources=(RoomStatus.MAINTENANCE,),
        target=RoomStatus.AVAILABLE,
    ),
}


class RoomStatusCoordinator(BaseService):
    """Keeps room status consistent with tenants, meters and bills"""

    def __init__(self):
        super().__init__()
        self.room_repo = RoomRepository(Room)

    @transaction.atomic
    def apply(self, room_id: int, event: str, tenant=None) -> Room:
        """
        Apply ``event`` to the room.

        The room row is re-read under a lock so a stale status held by the
        caller is never written back.

        Raises:
            RoomStateConflict: current status does not allow the event, or the
                target status needs an active tenant the room does not have
        """
        transition = TRANSITIONS[event]
        room = self.room_repo.lock(room_id)
        current = room.status

        if current not in transition.sources:
            if current == transition.target and transition.idempotent:
                return room
            self.log_warning(
                "Rejected room transition",
                room_id=room_id, event=event, current=current, target=transition.target
            )
            raise RoomStateConflict(
                message=(
                    f"Room {room.number} is '{current}' and cannot move to "
                    f"'{transition.target}' on {event}"
                ),
                details={"room_id": room_id, "current": current, "event": event},
            )

        if transition.target in TENANTED_STATUSES:
            room.current_tenant = self._require_single_tenant(room, tenant, event)
        elif transition.target == RoomStatus.AVAILABLE:
            room.current_tenant = None

        room.status = transition.target
        room.save(update_fields=['status', 'current_tenant', 'updated_at'])
        self.log_info(
            f"Room {room.number}: {current} -> {transition.target}",
            room_id=room_id, event=event
        )
        return room

    def _require_single_tenant(self, room: Room, tenant, event: str):
        active = self.room_repo.active_tenants(room)
        if tenant is not None:
            active_ids = {t.id for t in active}
            if tenant.id not in active_ids:
                raise RoomStateConflict(
                    message=f"Tenant {tenant.id} is not an active tenant of room {room.number}",
                    details={"room_id": room.id, "tenant_id": tenant.id, "event": event},
                )
        if len(active) != 1:
            raise RoomStateConflict(
                message=f"Room {room.number} needs exactly one active tenant, found {len(active)}",
                details={"room_id": room.id, "active_tenants": len(active), "event": event},
            )
        return active[0]

    # ------------------------------------------------------------------
    # Event helpers used by the other services
    # ------------------------------------------------------------------

    def tenant_assigned(self, room: Room, tenant) -> Room:
        return self.apply(room.id, RoomEvent.TENANT_ASSIGNED, tenant=tenant)

    def tenant_removed(self, room: Room) -> Room:
        return self.apply(room.id, RoomEvent.TENANT_REMOVED)

    def usage_without_tenant(self, room: Room) -> Optional[Room]:
        """Electric usage on an empty room: possible unauthorized occupancy"""
        if room.status != RoomStatus.AVAILABLE:
            return None
        self.log_warning("Usage recorded on a room without tenant", room_id=room.id, room=room.number)
        return self.apply(room.id, RoomEvent.UNATTENDED_USAGE)

    def usage_recorded(self, room: Room, period: BillingPeriod) -> Optional[Room]:
        """
        Mark the room ready for billing when it has usage, an active tenant
        and no bill yet for ``period``. Returns None when nothing changes.
        """
        from billing.models import Bill

        fresh = self.room_repo.get_by_id(room.id)
        if fresh.status != RoomStatus.OCCUPIED:
            return None
        if Bill.objects.filter(room_id=room.id, month=period.month, year=period.year).exists():
            return None
        if len(self.room_repo.active_tenants(fresh)) != 1:
            return None
        return self.apply(room.id, RoomEvent.USAGE_RECORDED)

    def bill_created(self, room: Room, tenant=None) -> Room:
        return self.apply(room.id, RoomEvent.BILL_CREATED, tenant=tenant)

    def payment_recorded(self, room: Room, bill_status: str, tenant=None) -> Room:
        """
        A fully paid bill returns the room to occupied unless the room still
        carries other unsettled bills.
        """
        from billing.models import Bill

        if bill_status == BillStatus.PAID:
            still_owing = Bill.objects.unsettled().filter(room_id=room.id).exists()
            event = RoomEvent.PARTIAL_PAYMENT if still_owing else RoomEvent.FULL_PAYMENT
        else:
            event = RoomEvent.PARTIAL_PAYMENT
        return self.apply(room.id, event, tenant=tenant)

    def bill_reverted(self, room: Room) -> Optional[Room]:
        """
        Back to ready for billing once the bill is gone, or pending payment
        while the room still carries other unsettled bills.
        """
        from billing.models import Bill

        fresh = self.room_repo.get_by_id(room.id)
        if fresh.status not in TRANSITIONS[RoomEvent.BILL_REVERTED].sources:
            return None
        if len(self.room_repo.active_tenants(fresh)) != 1:
            return None
        if Bill.objects.unsettled().filter(room_id=room.id).exists():
            return self.apply(room.id, RoomEvent.BILL_REVERTED_WITH_DEBT)
        return self.apply(room.id, RoomEvent.BILL_REVERTED)

    def set_maintenance(self, room: Room, enabled: bool) -> Room:
        event = RoomEvent.MAINTENANCE_STARTED if enabled else RoomEvent.MAINTENANCE_ENDED
        return self.apply(room.id, event)

    # ------------------------------------------------------------------

    def check_consistency(self, room: Room) -> List[str]:
        """Violations of: occupied-family status iff exactly one active tenant"""
        problems = []
        fresh = self.room_repo.get_by_id(room.id)
        active = self.room_repo.active_tenants(fresh)
        if fresh.status in OCCUPIED_STATUSES and len(active) != 1:
            problems.append(f"status '{fresh.status}' with {len(active)} active tenants")
        if fresh.status not in TENANTED_STATUSES and active:
            problems.append(f"status '{fresh.status}' but {len(active)} active tenants")
        if fresh.status == RoomStatus.AVAILABLE and fresh.current_tenant_id:
            problems.append("available room still references a tenant")
        if fresh.current_tenant_id and fresh.current_tenant_id not in {t.id for t in active}:
            problems.append("room references a tenant that is not active")
        return problems
