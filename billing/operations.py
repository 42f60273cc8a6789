"""
Exposed billing operations.

Each operation returns a ``ServiceResult`` envelope instead of raising, so
callers (API views, management commands, jobs) get a human-readable error
and a stable error code for every failure.
"""
from functools import wraps
import logging

from core.constants import DefaultBilling
from core.dto import BatchFailure, BillingPeriod, ServiceResult
from core.exceptions import BaseApplicationException, NotFoundError
from core.repositories import BaseRepository
from dormitories.config import ConfigProvider
from meters.services import MeterReadingStore
from rooms.models import Room
from rooms.repositories import RoomRepository
from rooms.services import RoomStatusCoordinator
from tenants.models import Tenant
from tenants.services import TenantService
from .balances import OutstandingBalanceAggregator
from .models import Bill
from .payments import PaymentProcessor
from .pricing import calculate_price as _calculate_price
from .services import BillLifecycleManager

logger = logging.getLogger(__name__)


def service_operation(func):
    """Convert domain exceptions into failed envelopes"""
    @wraps(func)
    def _wrapped(*args, **kwargs):
        try:
            return ServiceResult.ok(func(*args, **kwargs))
        except BaseApplicationException as e:
            logger.warning(f"{func.__name__} failed: [{e.code}] {e.message}")
            return ServiceResult.fail(e.message, code=e.code, details=e.details, status_code=e.status_code)
        except Exception as e:
            logger.error(f"Unexpected error in {func.__name__}: {e}", exc_info=True)
            return ServiceResult.fail("An unexpected error occurred", code="INTERNAL_ERROR", status_code=500)
    return _wrapped


def _room(room_id) -> Room:
    room = RoomRepository(Room).get_with_pricing(room_id)
    if room is None:
        raise NotFoundError(resource_type="Room", resource_id=room_id)
    return room


def _bill(bill_id) -> Bill:
    return BaseRepository(Bill).get_by_id_or_raise(bill_id)


def _tenant(tenant_id) -> Tenant:
    return BaseRepository(Tenant).get_by_id_or_raise(tenant_id)


@service_operation
def calculate_price(room_id: int, tenant_id: int = None):
    room = _room(room_id)
    config = ConfigProvider().get(room.dormitory_id)
    tenant = None
    if tenant_id is not None:
        tenant = Tenant.objects.prefetch_related('special_items').filter(id=tenant_id).first()
        if tenant is None:
            raise NotFoundError(resource_type="Tenant", resource_id=tenant_id)
    else:
        active = room.active_tenant
        if active is not None:
            tenant = Tenant.objects.prefetch_related('special_items').get(id=active.id)
    return _calculate_price(room, config.room_type(room.room_type_id), config, tenant).as_dict()


@service_operation
def create_bill(room_id: int, month: int, year: int, force_duplicate: bool = False, bill_date=None):
    return BillLifecycleManager().create(
        _room(room_id), BillingPeriod(month=month, year=year),
        force_duplicate=force_duplicate, bill_date=bill_date,
    )


@service_operation
def create_bills_batch(room_ids, month: int, year: int, force_duplicate: bool = False, bill_date=None):
    rooms = list(Room.objects.filter(id__in=room_ids).order_by('number'))
    result = BillLifecycleManager().create_batch(
        rooms, BillingPeriod(month=month, year=year),
        force_duplicate=force_duplicate, bill_date=bill_date,
    )
    for room_id in sorted(set(room_ids) - {room.id for room in rooms}):
        result.failed.append(BatchFailure(
            room_id=room_id, room_number='',
            error=f"Room [{room_id}] not found", code=NotFoundError.default_code,
        ))
    return result


@service_operation
def record_payment(bill_id: int, amount, method: str, reference_code: str = None, evidence=None,
                   note: str = '', recorded_by: str = '', paid_at=None):
    return PaymentProcessor().pay(
        _bill(bill_id), amount, method, reference_code=reference_code, evidence=evidence,
        note=note, recorded_by=recorded_by, paid_at=paid_at,
    )


@service_operation
def delete_bill(bill_id: int):
    return BillLifecycleManager().delete(_bill(bill_id))


@service_operation
def revert_bill_to_draft(bill_id: int):
    return BillLifecycleManager().revert_to_draft(_bill(bill_id)).as_dict()


@service_operation
def record_meter_reading(room_id: int, utility_type: str, current_reading, reading_date=None,
                         recorded_by: str = ''):
    return MeterReadingStore().record(
        _room(room_id), utility_type, current_reading,
        reading_date=reading_date, recorded_by=recorded_by,
    )


@service_operation
def latest_meter_reading(room_id: int, utility_type: str):
    return MeterReadingStore().latest(_room(room_id), utility_type)


@service_operation
def recompute_outstanding_balance(tenant_id: int):
    return OutstandingBalanceAggregator().recompute(_tenant(tenant_id))


@service_operation
def sweep_overdue_bills(now=None, dormitory_id: int = None):
    return BillLifecycleManager().sweep_overdue(now=now, dormitory=dormitory_id)


@service_operation
def calculate_late_fee(bill_id: int, today=None):
    return BillLifecycleManager().calculate_late_fee(_bill(bill_id), today=today)


@service_operation
def billing_summary(dormitory_id: int):
    return BillLifecycleManager().summary(dormitory_id)


@service_operation
def send_due_reminders(now=None, days_ahead: int = DefaultBilling.REMINDER_DAYS_AHEAD, dormitory_id: int = None):
    return BillLifecycleManager().send_due_reminders(now=now, days_ahead=days_ahead, dormitory=dormitory_id)


@service_operation
def assign_tenant(room_id: int, name: str, **fields):
    return TenantService().assign_tenant(_room(room_id), name, **fields)


@service_operation
def move_out_tenant(tenant_id: int, force: bool = False, move_out_date=None):
    return TenantService().move_out(_tenant(tenant_id), force=force, move_out_date=move_out_date)


@service_operation
def set_room_maintenance(room_id: int, enabled: bool):
    return RoomStatusCoordinator().set_maintenance(_room(room_id), enabled)
