"""
Management command to delete audit log entries older than a retention window
"""
from datetime import timedelta

from django.core.management.base import BaseCommand, CommandError
from django.db import transaction
from django.utils import timezone

from backend.core.models import AuditLog


class Command(BaseCommand):
    help = "Deletes audit log entries older than --days days"

    def add_arguments(self, parser):
        parser.add_argument(
            '--days',
            type=int,
            default=90,
            help='Keep entries newer than this many days (default: 90)',
        )
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Show what would be deleted without making changes',
        )

    def handle(self, *args, **options):
        days = options['days']
        dry_run = options['dry_run']
        if days < 1:
            raise CommandError('--days must be at least 1')

        cutoff = timezone.now() - timedelta(days=days)
        stale = AuditLog.objects.filter(created_at__lt=cutoff)
        count = stale.count()

        self.stdout.write(f"Cutoff: {cutoff.isoformat()} (Dry Run: {dry_run})")

        if count == 0:
            self.stdout.write(self.style.SUCCESS("No audit log entries to purge."))
            return

        if dry_run:
            self.stdout.write(self.style.WARNING(f"[DRY RUN] Would delete {count} audit log entr(ies)"))
            return

        with transaction.atomic():
            deleted, _ = stale.delete()

        self.stdout.write(self.style.SUCCESS(f"✓ Deleted {deleted} audit log entr(ies)"))
