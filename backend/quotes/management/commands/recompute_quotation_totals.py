from django.core.management.base import BaseCommand
from django.db import transaction

from quotes.services.quotation_service import recompute_stored_totals


class Command(BaseCommand):
    help = "Re-derive estimated cost and profit of stored quotations from their rate collections."

    def add_arguments(self, parser):
        parser.add_argument('--dry-run', action='store_true', help='Report drifted rows without writing')

    def handle(self, *args, **options):
        dry_run = options['dry_run']

        with transaction.atomic():
            count = recompute_stored_totals(dry_run=dry_run)

        if dry_run:
            self.stdout.write(self.style.WARNING(f"{count} quotation(s) would be updated (dry run)."))
        else:
            self.stdout.write(self.style.SUCCESS(f"Updated totals on {count} quotation(s)."))
