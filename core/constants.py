"""
Application-wide constants.
Centralized status values and billing defaults shared by every app.
"""
from decimal import Decimal

from django.db import models


# Room occupancy status
class RoomStatus(models.TextChoices):
    AVAILABLE = 'available', 'Available'
    OCCUPIED = 'occupied', 'Occupied'
    ABNORMAL = 'abnormal', 'Abnormal usage'
    READY_FOR_BILLING = 'ready_for_billing', 'Ready for billing'
    BILLED = 'billed', 'Billed'
    PENDING_PAYMENT = 'pending_payment', 'Pending payment'
    MAINTENANCE = 'maintenance', 'Maintenance'


# Statuses that require exactly one active tenant on the room
OCCUPIED_STATUSES = (
    RoomStatus.OCCUPIED,
    RoomStatus.BILLED,
    RoomStatus.PENDING_PAYMENT,
)

# Statuses that may only be entered while a tenant is active
TENANTED_STATUSES = OCCUPIED_STATUSES + (RoomStatus.READY_FOR_BILLING,)


# Tenant status
class TenantStatus(models.TextChoices):
    ACTIVE = 'active', 'Active'
    MOVING_OUT = 'moving_out', 'Moving out'
    MOVED_OUT = 'moved_out', 'Moved out'


# Bill status
class BillStatus(models.TextChoices):
    PENDING = 'pending', 'Pending'
    PARTIALLY_PAID = 'partially_paid', 'Partially paid'
    PAID = 'paid', 'Paid'
    OVERDUE = 'overdue', 'Overdue'


UNSETTLED_BILL_STATUSES = (
    BillStatus.PENDING,
    BillStatus.PARTIALLY_PAID,
    BillStatus.OVERDUE,
)

# Statuses the overdue sweep moves to OVERDUE
SWEEPABLE_BILL_STATUSES = (
    BillStatus.PENDING,
    BillStatus.PARTIALLY_PAID,
)


# Bill line item type
class BillItemType(models.TextChoices):
    RENT = 'rent', 'Rent'
    WATER = 'water', 'Water'
    ELECTRIC = 'electric', 'Electricity'
    OTHER = 'other', 'Other'


# Payment
class PaymentMethod(models.TextChoices):
    CASH = 'cash', 'Cash'
    TRANSFER = 'transfer', 'Bank transfer'
    PROMPTPAY = 'promptpay', 'PromptPay'


class PaymentStatus(models.TextChoices):
    COMPLETED = 'completed', 'Completed'
    FAILED = 'failed', 'Failed'


# Utility meters
class UtilityType(models.TextChoices):
    WATER = 'water', 'Water'
    ELECTRIC = 'electric', 'Electric'


# Default billing settings for new dormitories
class DefaultBilling:
    BILLING_DAY = 1
    GRACE_PERIOD_DAYS = 7
    DUE_DAY = 5
    LATE_FEE_RATE = Decimal('0')
    REMINDER_DAYS_AHEAD = 3
    METER_HISTORY_LIMIT = 12


MONEY_QUANTUM = Decimal('0.01')
MAX_BILL_AMOUNT = Decimal('9999999.99')
