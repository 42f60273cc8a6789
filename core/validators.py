"""
Validation utilities and validators.
Centralized validation logic following single responsibility principle.
"""
from decimal import Decimal, InvalidOperation

from core.constants import PaymentMethod, MAX_BILL_AMOUNT, MONEY_QUANTUM
from core.exceptions import InvalidAmount, InvalidReading, MissingEvidence


def to_money(value) -> Decimal:
    """Coerce a number to a Decimal quantized to the currency minor unit"""
    if value is None:
        return Decimal('0.00')
    try:
        amount = Decimal(str(value))
        if not amount.is_finite():
            raise InvalidOperation
        return amount.quantize(MONEY_QUANTUM)
    except (InvalidOperation, ValueError, TypeError):
        raise InvalidAmount(message=f"Not a valid amount: {value!r}", code="INVALID_AMOUNT")


class PaymentValidator:
    """Validates payment input before anything is written"""

    @staticmethod
    def validate_amount(amount: Decimal, remaining_amount: Decimal):
        """0 < amount <= remaining"""
        if remaining_amount <= 0:
            raise InvalidAmount(
                message="This bill is already settled; no further payment is accepted",
                code="BILL_ALREADY_PAID",
                details={"remaining": str(remaining_amount)}
            )
        if amount <= 0:
            raise InvalidAmount(
                message="Payment amount must be greater than zero",
                code="INVALID_AMOUNT",
                details={"amount": str(amount)}
            )
        if amount > remaining_amount:
            raise InvalidAmount(
                message=f"Payment amount {amount} exceeds the remaining balance {remaining_amount}",
                code="PAYMENT_EXCEEDS_REMAINING",
                details={"amount": str(amount), "remaining": str(remaining_amount)}
            )
        if amount > MAX_BILL_AMOUNT:
            raise InvalidAmount(
                message="Payment amount exceeds maximum allowed",
                code="AMOUNT_TOO_LARGE"
            )

    @staticmethod
    def validate_method(method: str, reference_code=None, evidence=None):
        """Transfers need a reference code and evidence; cash needs neither"""
        if method not in PaymentMethod.values:
            raise InvalidAmount(
                message=f"Unknown payment method: {method}",
                code="INVALID_PAYMENT_METHOD",
                details={"allowed": list(PaymentMethod.values)}
            )
        if method == PaymentMethod.TRANSFER:
            missing = []
            if not reference_code:
                missing.append("reference_code")
            if not evidence:
                missing.append("evidence")
            if missing:
                raise MissingEvidence(details={"missing": missing})


class MeterReadingValidator:
    """Validates meter values against the previous reading"""

    @staticmethod
    def validate(current_reading: Decimal, previous_reading: Decimal):
        if current_reading < 0:
            raise InvalidReading(
                message="Meter reading cannot be negative",
                details={"current": str(current_reading)}
            )
        if current_reading < previous_reading:
            raise InvalidReading(
                message=(
                    f"Current reading {current_reading} is lower than the previous "
                    f"reading {previous_reading}"
                ),
                code="DECREASING_READING",
                details={"current": str(current_reading), "previous": str(previous_reading)}
            )
