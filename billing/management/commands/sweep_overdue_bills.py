"""
Management command to mark unpaid bills past their due date as overdue.
Safe to run repeatedly; a second run on the same day changes nothing.

Usage:
    python manage.py sweep_overdue_bills
    python manage.py sweep_overdue_bills --dormitory 3 --reminders

Can be added to crontab to run automatically:
    5 0 * * * cd /path/to/project && python manage.py sweep_overdue_bills --reminders
"""
from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone

from billing.models import Bill
from billing.services import BillLifecycleManager
from core.constants import SWEEPABLE_BILL_STATUSES
from dormitories.models import Dormitory


class Command(BaseCommand):
    help = 'Mark pending and partially paid bills past their due date as overdue'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dormitory',
            type=int,
            help='Only sweep bills of this dormitory',
        )
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Show what would be marked without changing anything',
        )
        parser.add_argument(
            '--reminders',
            action='store_true',
            help='Also send due-date reminders for bills due in the next few days',
        )

    def handle(self, *args, **options):
        today = timezone.localdate()
        dormitory_id = options.get('dormitory')
        if dormitory_id is not None and not Dormitory.objects.filter(id=dormitory_id).exists():
            raise CommandError(f"Dormitory {dormitory_id} does not exist")

        manager = BillLifecycleManager()
        dormitories = Dormitory.objects.order_by('name')
        if dormitory_id is not None:
            dormitories = dormitories.filter(id=dormitory_id)

        self.stdout.write(f"\n{'=' * 60}")
        self.stdout.write(f"  OVERDUE SWEEP - {today:%Y-%m-%d}")
        self.stdout.write(f"{'=' * 60}\n")

        if options['dry_run']:
            self.stdout.write(self.style.WARNING("DRY RUN MODE - No bills will be changed\n"))

        total_updated = 0
        for dormitory in dormitories:
            if options['dry_run']:
                due = Bill.objects.filter(
                    dormitory=dormitory, status__in=SWEEPABLE_BILL_STATUSES, due_date__lt=today
                ).count()
                self.stdout.write(f"  {dormitory.name}: would mark {due} bills overdue")
                continue

            result = manager.sweep_overdue(now=today, dormitory=dormitory)
            fees = manager.apply_late_fees(today=today, dormitory=dormitory)
            total_updated += result.updated_count
            self.stdout.write(
                f"  {dormitory.name}: {result.updated_count} marked overdue, {fees} late fees updated"
            )
            if options['reminders']:
                sent = manager.send_due_reminders(now=today, dormitory=dormitory)
                self.stdout.write(f"  {dormitory.name}: {sent} reminders sent")

        self.stdout.write(f"\n{'=' * 60}")
        if options['dry_run']:
            self.stdout.write(self.style.WARNING("  Dry run finished"))
        else:
            self.stdout.write(self.style.SUCCESS(f"  Marked overdue: {total_updated}"))
        self.stdout.write(f"{'=' * 60}\n")
