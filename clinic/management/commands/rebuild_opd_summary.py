import datetime

from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone

from clinic.models import OPDRegistration
from clinic.services.opd import rebuild_summary


class Command(BaseCommand):
    help = "Recompute OPD day summaries from the registrations (after edits or deletions)."

    def add_arguments(self, parser):
        parser.add_argument("--date", help="YYYY-MM-DD; defaults to today")
        parser.add_argument("--all", action="store_true", help="rebuild every day that has registrations")

    def handle(self, *args, **opts):
        if opts["all"]:
            days = OPDRegistration.objects.values_list("date", flat=True).distinct().order_by("date")
        elif opts["date"]:
            try:
                days = [datetime.date.fromisoformat(opts["date"])]
            except ValueError:
                raise CommandError(f"Invalid date {opts['date']!r}, expected YYYY-MM-DD")
        else:
            days = [timezone.localdate()]

        for day in days:
            summary = rebuild_summary(day)
            self.stdout.write(f"{day}: {summary.total_count} bookings, Rs {summary.total_revenue}")
        self.stdout.write(self.style.SUCCESS("OPD summaries rebuilt."))
