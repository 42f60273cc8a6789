"""
Outbound chat notifications.

Delivery is fire-and-forget: a failing backend is logged and never blocks
the billing operation that triggered it. The backend is chosen with the
``CHAT_NOTIFIER`` setting (dotted path).
"""
import logging
from functools import lru_cache

import requests
from django.conf import settings
from django.utils.module_loading import import_string

logger = logging.getLogger(__name__)


class NotificationError(Exception):
    """Raised by a backend when delivery fails"""


class LoggingNotifier:
    """Default backend: writes messages to the log only"""

    def send(self, message: str, recipient: str = None) -> None:
        logger.info(f"Notification to {recipient or 'default'}: {message}")


class LineNotifier:
    """Push messages through the LINE Messaging API"""
    endpoint = 'https://api.line.me/v2/bot/message/push'

    def __init__(self, access_token: str = None, default_target: str = None, timeout: float = None):
        self.access_token = access_token or getattr(settings, 'LINE_CHANNEL_ACCESS_TOKEN', '')
        self.default_target = default_target or getattr(settings, 'LINE_TARGET_ID', '')
        self.timeout = timeout or getattr(settings, 'NOTIFIER_TIMEOUT', 3)

    def send(self, message: str, recipient: str = None) -> None:
        target = recipient or self.default_target
        if not self.access_token or not target:
            raise NotificationError("LINE notifier is not configured")
        try:
            response = requests.post(
                self.endpoint,
                headers={'Authorization': f'Bearer {self.access_token}'},
                json={'to': target, 'messages': [{'type': 'text', 'text': message}]},
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.RequestException as e:
            raise NotificationError(str(e)) from e


@lru_cache(maxsize=1)
def _backend_class(path: str):
    return import_string(path)


def get_backend():
    path = getattr(settings, 'CHAT_NOTIFIER', 'integrations.notifications.LoggingNotifier')
    return _backend_class(path)()


def _period(bill) -> str:
    return f"{bill.month:02d}/{bill.year}"


class NotificationDispatcher:
    """Formats billing events and hands them to the configured backend"""

    def __init__(self, backend=None):
        self.backend = backend or get_backend()

    def _deliver(self, message: str, recipient: str = None) -> bool:
        try:
            self.backend.send(message, recipient=recipient or None)
            return True
        except Exception as e:
            logger.error(f"Notification delivery failed: {e}", exc_info=True)
            return False

    def bill_created(self, bill) -> bool:
        message = (
            f"New bill\nRoom: {bill.room_number}\nPeriod: {_period(bill)}\n"
            f"Total: {bill.total_amount:,.2f}\nDue: {bill.due_date:%Y-%m-%d}"
        )
        return self._deliver(message, bill.tenant.line_id)

    def bill_due_reminder(self, bill) -> bool:
        message = (
            f"Payment reminder\nRoom: {bill.room_number}\nPeriod: {_period(bill)}\n"
            f"Amount due: {bill.remaining_amount:,.2f}\nDue: {bill.due_date:%Y-%m-%d}"
        )
        return self._deliver(message, bill.tenant.line_id)

    def bill_overdue(self, bill) -> bool:
        message = (
            f"Overdue bill\nRoom: {bill.room_number}\nPeriod: {_period(bill)}\n"
            f"Outstanding: {bill.remaining_amount:,.2f}\nWas due: {bill.due_date:%Y-%m-%d}"
        )
        return self._deliver(message, bill.tenant.line_id)

    def payment_received(self, bill, payment) -> bool:
        message = (
            f"Payment received\nRoom: {bill.room_number}\nPeriod: {_period(bill)}\n"
            f"Amount: {payment.amount:,.2f}\nRemaining: {bill.remaining_amount:,.2f}"
        )
        return self._deliver(message, bill.tenant.line_id)

    def meter_reading_recorded(self, reading) -> bool:
        message = (
            f"Meter reading\nRoom: {reading.room.number}\nType: {reading.get_utility_type_display()}\n"
            f"{reading.previous_reading} -> {reading.current_reading} ({reading.units_used} units)"
        )
        return self._deliver(message)
