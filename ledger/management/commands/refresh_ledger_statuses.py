"""
Re-derive document statuses so invoices and bills turn overdue without waiting for a payment.

Run this from cron once a day:
    0 1 * * * cd /path/to/project && .venv/bin/python manage.py refresh_ledger_statuses
"""
from datetime import date

from django.core.management.base import BaseCommand, CommandError

from ledger.services import get_ledger_service


class Command(BaseCommand):
    help = "Mark open invoices and bills overdue once their due date has passed"

    def add_arguments(self, parser):
        parser.add_argument(
            "--as-of",
            dest="as_of",
            help="Evaluate as of this ISO date instead of today (YYYY-MM-DD)",
        )

    def handle(self, *args, **options):
        as_of = None
        if options.get("as_of"):
            try:
                as_of = date.fromisoformat(options["as_of"])
            except ValueError as exc:
                raise CommandError(f"--as-of must be YYYY-MM-DD, got {options['as_of']!r}") from exc

        count = get_ledger_service().refresh_statuses(today=as_of)
        if count:
            self.stdout.write(self.style.SUCCESS(f"Updated {count} document status(es)"))
        else:
            self.stdout.write("No document statuses changed")
