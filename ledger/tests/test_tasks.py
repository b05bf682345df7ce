import tempfile
from datetime import date, datetime
from decimal import Decimal
from io import StringIO
from pathlib import Path
from unittest import mock

import pandas as pd
from django.core.management import CommandError, call_command
from django.test import TestCase, override_settings

from ledger import tasks, transactions
from ledger.models import Customer, DailyTransaction, Guarantor, MonthlySummary, Staff

from .factories import make_customer, make_staff


class ExcelTaskTests(TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)
        self.data_dir = Path(self.tmp.name)
        override = override_settings(DATA_DIR=self.data_dir)
        override.enable()
        self.addCleanup(override.disable)
        self.agent = make_staff(username="agent_kemi")

    def write_sheet(self, filename, rows):
        pd.DataFrame(rows).to_excel(self.data_dir / filename, index=False)

    def test_ingest_customers(self):
        self.write_sheet(
            "customers.xlsx",
            [
                {
                    "Agent Username": "agent_kemi",
                    "First Name": "Ngozi",
                    "Last Name": "Eze",
                    "Guarantor Name": "Chidi Eze",
                    "Guarantor Phone Number": "08030000000",
                    "Date Of Birth": datetime(1990, 5, 1),
                },
                {"Agent Username": "agent_kemi", "First Name": "Tunde", "Last Name": "Ade"},
                {"Agent Username": "nobody", "First Name": "Lost", "Last Name": "Row"},
            ],
        )
        result = tasks.ingest_customers_from_excel()
        self.assertEqual(result, {"created": 2, "skipped": 1})
        self.assertEqual(Customer.objects.filter(agent=self.agent).count(), 2)
        guarantor = Guarantor.objects.get()
        self.assertEqual(guarantor.customer.full_name, "Ngozi Eze")
        self.assertEqual(guarantor.phone_number, "08030000000")
        self.assertEqual(guarantor.customer.date_of_birth, date(1990, 5, 1))

    def test_ingest_customers_missing_columns(self):
        self.write_sheet("customers.xlsx", [{"first_name": "Ngozi"}])
        self.assertEqual(tasks.ingest_customers_from_excel(), {"created": 0, "skipped": 1})
        self.assertFalse(Customer.objects.exists())

    def test_missing_file_ingests_nothing(self):
        self.assertEqual(tasks.ingest_transactions_from_excel("absent.xlsx"), {"created": 0, "skipped": 0})

    def test_ingest_transactions_in_row_order(self):
        customer = make_customer(self.agent)
        self.write_sheet(
            "daily_ledger.xlsx",
            [
                {
                    "account_number": customer.account_number,
                    "agent_username": "agent_kemi",
                    "date": "2024-03-01",
                    "cash_received": 1000,
                },
                {
                    "account_number": customer.account_number,
                    "agent_username": "agent_kemi",
                    "date": datetime(2024, 3, 2),
                    "cash_received": 500,
                    "pick_up": 200,
                },
                {
                    "account_number": customer.account_number,
                    "agent_username": "agent_kemi",
                    "date": "2024-03-03",
                    "cash_received": -10,
                },
                {"account_number": "MP000000", "agent_username": "agent_kemi", "date": "2024-03-03"},
            ],
        )
        result = tasks.ingest_transactions_from_excel()
        self.assertEqual(result, {"created": 2, "skipped": 2})
        self.assertEqual(DailyTransaction.objects.count(), 2)
        self.assertEqual(transactions.current_balance(customer.id), Decimal("1300"))
        self.assertTrue(transactions.verify_chain(customer.id))

    def test_generate_monthly_summary_task(self):
        customer = make_customer(self.agent)
        transactions.record_daily(customer.id, self.agent.id, "2024-03-05", {"cash_received": 250})
        summary_id = tasks.generate_monthly_summary(str(self.agent.id), "3", 2024)
        summary = MonthlySummary.objects.get(pk=summary_id)
        self.assertEqual(summary.month, "03")
        self.assertEqual(summary.total_cash_received, Decimal("250"))

    def test_export_daily_ledger(self):
        customer = make_customer(self.agent)
        transactions.record_daily(customer.id, self.agent.id, "2024-03-05", {"cash_received": 250})
        transactions.record_daily(customer.id, self.agent.id, "2024-03-05", {"transfer_received": 100})
        transactions.record_daily(customer.id, self.agent.id, "2024-03-06", {"cash_received": 999})

        path = Path(tasks.export_daily_ledger(str(self.agent.id), "2024-03-05"))
        self.assertEqual(path, self.data_dir / "exports" / "ledger_agent_kemi_2024-03-05.xlsx")
        df = pd.read_excel(path)
        self.assertEqual(list(df.columns), tasks.EXPORT_COLUMNS)
        self.assertEqual(list(df["sequence"]), [1, 2])
        self.assertEqual(list(df["closing_balance"]), [250, 350])
        self.assertEqual(set(df["account_number"]), {customer.account_number})


class CommandTests(TestCase):
    @mock.patch("ledger.management.commands.generate_monthly_summaries.generate_monthly_summary")
    def test_generate_monthly_summaries_enqueues_per_active_agent(self, task):
        first = make_staff()
        second = make_staff()
        make_staff(Staff.ROLE_ADMIN)
        Staff.objects.filter(pk=second.pk).update(status="inactive")

        out = StringIO()
        call_command("generate_monthly_summaries", month="3", year=2024, stdout=out)
        task.delay.assert_called_once_with(str(first.id), "03", 2024)
        self.assertIn("Enqueued 1 summaries for 2024-03", out.getvalue())

    def test_generate_monthly_summaries_rejects_bad_month(self):
        with self.assertRaises(CommandError):
            call_command("generate_monthly_summaries", month="13", year=2024, stdout=StringIO())

    @mock.patch("ledger.management.commands.ingest_ledger_sheets.chain")
    def test_ingest_ledger_sheets_chains_both_tasks(self, chain):
        chain.return_value.apply_async.return_value.id = "chain-1"
        out = StringIO()
        call_command("ingest_ledger_sheets", ledger="march.xlsx", stdout=out)
        self.assertEqual(len(chain.call_args.args), 2)
        self.assertIn("chain-1", out.getvalue())
