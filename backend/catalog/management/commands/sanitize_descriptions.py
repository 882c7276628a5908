"""
Management command to re-run the description sanitizer over stored products
Useful after the tag/attribute allow-list changes, or for rows written outside the API
"""
from django.core.management.base import BaseCommand
from django.db import transaction

from backend.catalog.models import Product
from backend.catalog.sanitizer import sanitize_rich_text


class Command(BaseCommand):
    help = "Re-sanitizes every stored product description"

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Show what would be updated without making changes',
        )

    def handle(self, *args, **options):
        dry_run = options['dry_run']

        changed = []
        for product in Product.objects.only('id', 'slug', 'description').iterator():
            cleaned = sanitize_rich_text(product.description)
            if cleaned != product.description:
                product.description = cleaned
                changed.append(product)

        if not changed:
            self.stdout.write(self.style.SUCCESS("All product descriptions are already clean."))
            return

        self.stdout.write(f"Found {len(changed)} product(s) with unsanitized descriptions:")
        for product in changed[:20]:
            self.stdout.write(f"  - {product.slug} (#{product.id})")
        if len(changed) > 20:
            self.stdout.write(f"  ... and {len(changed) - 20} more")

        if dry_run:
            self.stdout.write(self.style.WARNING(f"[DRY RUN] Would update {len(changed)} product(s)"))
            return

        with transaction.atomic():
            Product.objects.bulk_update(changed, ['description'])

        self.stdout.write(self.style.SUCCESS(f"✓ Updated {len(changed)} product(s)"))
