from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone

from ledger.customers import list_staff
from ledger.exceptions import InvalidPeriod
from ledger.models import Staff
from ledger.summaries import normalize_period
from ledger.tasks import generate_monthly_summary


class Command(BaseCommand):
    help = "Enqueue a monthly summary snapshot for every active agent."

    def add_arguments(self, parser):
        today = timezone.localdate()
        parser.add_argument("--month", default=f"{today.month:02d}")
        parser.add_argument("--year", type=int, default=today.year)

    def handle(self, *args, **options):
        try:
            month, year = normalize_period(options["month"], options["year"])
        except InvalidPeriod as exc:
            raise CommandError(str(exc)) from exc

        agents = list_staff(role=Staff.ROLE_AGENT, status="active")
        for agent in agents:
            generate_monthly_summary.delay(str(agent.id), month, year)
        self.stdout.write(self.style.SUCCESS(f"Enqueued {len(agents)} summaries for {year}-{month}"))
