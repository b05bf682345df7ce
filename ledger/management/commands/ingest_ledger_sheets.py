from django.core.management.base import BaseCommand

from celery import chain

from ledger.tasks import ingest_customers_from_excel, ingest_transactions_from_excel


class Command(BaseCommand):
    help = "Enqueue background ingestion of customers and daily ledger sheets from Excel files."

    def add_arguments(self, parser):
        parser.add_argument("--customers", default="customers.xlsx")
        parser.add_argument("--ledger", default="daily_ledger.xlsx")

    def handle(self, *args, **options):
        workflow = chain(
            ingest_customers_from_excel.si(options["customers"]),
            ingest_transactions_from_excel.si(options["ledger"]),
        )
        result = workflow.apply_async()
        self.stdout.write(self.style.SUCCESS(f"Enqueued ingestion chain: {result.id}"))
