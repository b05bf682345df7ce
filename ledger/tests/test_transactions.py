import threading
import uuid
from datetime import date
from decimal import Decimal
from unittest import mock

from django.db import DatabaseError, IntegrityError, connection, transaction
from django.test import TestCase, TransactionTestCase

from ledger import loans, transactions, utils
from ledger.exceptions import InvalidAmount, InvalidPeriod, LedgerIntegrityError, NotFound, StorageFailure
from ledger.models import DailyTransaction, Staff
from ledger.utils import to_money

from .factories import make_customer, make_staff


class RecordDailyTests(TestCase):
    def setUp(self):
        self.admin = make_staff(Staff.ROLE_ADMIN)
        self.agent = make_staff()
        self.customer = make_customer(self.agent)

    def record(self, day="2024-03-04", customer=None, **amounts):
        customer = customer or self.customer
        loan_id = amounts.pop("loan_id", None)
        return transactions.record_daily(customer.id, self.agent.id, day, amounts, loan_id=loan_id)

    def test_first_entry_starts_from_zero(self):
        entry = self.record(cash_received=1000, transfer_received=0, pick_up=0, amount_disbursed=0)
        self.assertEqual(entry.previous_balance, Decimal("0"))
        self.assertEqual(entry.closing_balance, Decimal("1000"))
        self.assertEqual(entry.sequence, 1)
        self.assertEqual(entry.date, date(2024, 3, 4))

    def test_entries_chain_balances(self):
        first = self.record(cash_received=1000)
        second = self.record(cash_received=500, transfer_received=250, pick_up=100, amount_disbursed=50)
        self.assertEqual(second.previous_balance, first.closing_balance)
        self.assertEqual(second.closing_balance, Decimal("1600"))
        self.assertEqual(second.sequence, 2)
        self.assertEqual(transactions.current_balance(self.customer.id), Decimal("1600"))
        self.assertTrue(transactions.verify_chain(self.customer.id))

    def test_chains_are_per_customer(self):
        other = make_customer(self.agent, first_name="Bola")
        self.record(cash_received=1000)
        entry = self.record(customer=other, cash_received=300)
        self.assertEqual(entry.previous_balance, Decimal("0"))
        self.assertEqual(entry.sequence, 1)

    def test_chain_follows_recording_order_not_entry_date(self):
        self.record(day="2024-03-10", cash_received=1000)
        backdated = self.record(day="2024-03-01", cash_received=200)
        self.assertEqual(backdated.previous_balance, Decimal("1000"))
        self.assertEqual(backdated.closing_balance, Decimal("1200"))

    def test_fees_do_not_move_the_balance(self):
        entry = self.record(cash_received=1000, registration_fee=500, insurance=200, position_charges=100)
        self.assertEqual(entry.closing_balance, Decimal("1000"))

    def test_negative_and_non_numeric_amounts_rejected(self):
        for field, value in (("cash_received", -1), ("pick_up", "abc"), ("insurance", "NaN")):
            with self.assertRaises(InvalidAmount) as ctx:
                self.record(**{field: value})
            self.assertEqual(ctx.exception.field, field)
        self.assertFalse(DailyTransaction.objects.exists())

    def test_amounts_wider_than_money_columns_rejected(self):
        for value in ("1e30", 10 ** 12, "999999999999.999"):
            with self.assertRaises(InvalidAmount) as ctx:
                self.record(cash_received=value)
            self.assertEqual(ctx.exception.field, "cash_received")
        self.assertEqual(to_money("cash_received", "999999999999.99"), Decimal("999999999999.99"))
        self.assertFalse(DailyTransaction.objects.exists())

    def test_date_must_be_a_whole_iso_date(self):
        for value in ("2024-03-04garbage", "2024-03-04T10:00", "04/03/2024", None):
            with self.assertRaises(InvalidPeriod):
                self.record(day=value, cash_received=1)
        self.assertFalse(DailyTransaction.objects.exists())

    def test_unknown_customer(self):
        with self.assertRaises(NotFound):
            transactions.record_daily(uuid.uuid4(), self.agent.id, "2024-03-04", {"cash_received": 1})

    def test_only_agents_record_entries(self):
        with self.assertRaises(NotFound) as ctx:
            transactions.record_daily(self.customer.id, self.admin.id, "2024-03-04", {"cash_received": 1})
        self.assertEqual(ctx.exception.entity, "agent")
        self.assertFalse(DailyTransaction.objects.exists())

    def test_customer_locks_are_released(self):
        self.record(cash_received=100)
        for _ in range(50):
            with self.assertRaises(NotFound):
                transactions.record_daily(uuid.uuid4(), self.agent.id, "2024-03-04", {"cash_received": 1})
        self.assertEqual(utils._locks, {})

    def test_loan_of_another_customer_rejected(self):
        other = make_customer(self.agent, first_name="Bola")
        loan = loans.apply_loan(other.id, self.agent.id, 30000)
        with self.assertRaises(NotFound):
            self.record(cash_received=1500, loan_id=loan.id)

    def test_derived_fields_for_unlinked_entry(self):
        entry = self.record(cash_received=1000, transfer_received=500, pick_up=200, amount_disbursed=300)
        self.assertEqual(entry.cash_available, Decimal("1300"))
        self.assertEqual(entry.next_disbursement, Decimal("1000"))
        self.assertEqual(entry.pending_disbursement, Decimal("0"))
        self.assertEqual(entry.payment_status, DailyTransaction.STATUS_UNLINKED)
        self.assertEqual(entry.record, "collected 1500.00; disbursed 300.00")

    def test_payment_status_against_daily_payment(self):
        loan = loans.approve(loans.apply_loan(self.customer.id, self.agent.id, 30000).id, self.admin.id)
        paid = self.record(cash_received=1000, transfer_received=500, loan_id=loan.id)
        partial = self.record(cash_received=700, loan_id=loan.id)
        missed = self.record(loan_id=loan.id)
        self.assertEqual(paid.payment_status, DailyTransaction.STATUS_PAID)
        self.assertEqual(paid.record, "paid 1500.00 of 1500.00")
        self.assertEqual(partial.payment_status, DailyTransaction.STATUS_PARTIAL)
        self.assertEqual(missed.payment_status, DailyTransaction.STATUS_MISSED)

    def test_pending_disbursement_tracks_approved_loan(self):
        loan = loans.approve(loans.apply_loan(self.customer.id, self.agent.id, 30000).id, self.admin.id)
        first = self.record(amount_disbursed=20000, loan_id=loan.id)
        second = self.record(amount_disbursed=10000, loan_id=loan.id)
        self.assertEqual(first.pending_disbursement, Decimal("10000"))
        self.assertEqual(second.pending_disbursement, Decimal("0"))

    def test_entries_are_append_only(self):
        entry = self.record(cash_received=1000)
        entry.cash_received = Decimal("5")
        with self.assertRaises(ValueError):
            entry.save()
        with self.assertRaises(ValueError):
            entry.delete()

    def test_duplicate_sequence_refused_by_database(self):
        entry = self.record(cash_received=1000)
        with self.assertRaises(IntegrityError), transaction.atomic():
            DailyTransaction.objects.create(
                customer=self.customer, agent=self.agent, sequence=entry.sequence, date=entry.date
            )

    def test_storage_failure_leaves_no_entry(self):
        with mock.patch.object(DailyTransaction.objects, "create", side_effect=DatabaseError("disk I/O error")):
            with self.assertRaises(StorageFailure):
                self.record(cash_received=1000)
        self.assertFalse(DailyTransaction.objects.exists())

    def test_list_by_filter_orders_by_date_then_creation(self):
        other = make_customer(self.agent, first_name="Bola")
        a = self.record(day="2024-03-01", cash_received=100)
        b = self.record(day="2024-03-02", cash_received=100)
        c = self.record(day="2024-03-01", customer=other, cash_received=100)

        self.assertEqual([e.id for e in transactions.list_by_filter()], [b.id, c.id, a.id])
        self.assertEqual([e.id for e in transactions.list_by_filter(date="2024-03-01")], [c.id, a.id])
        self.assertEqual([e.id for e in transactions.list_by_filter(customer_id=other.id)], [c.id])
        row = transactions.list_by_filter(customer_id=other.id).get()
        self.assertEqual(row.account_number, other.account_number)
        self.assertIsNone(row.loan_amount)

    def test_verify_chain_detects_tampering(self):
        self.record(cash_received=1000)
        second = self.record(cash_received=500)
        DailyTransaction.objects.filter(pk=second.pk).update(previous_balance=Decimal("1"))
        with self.assertRaises(LedgerIntegrityError) as ctx:
            transactions.verify_chain(self.customer.id)
        self.assertEqual(ctx.exception.sequence, 2)


class ConcurrentRecordingTests(TransactionTestCase):
    def test_concurrent_writers_keep_a_single_chain(self):
        agent = make_staff()
        customer = make_customer(agent)
        workers = 8
        barrier = threading.Barrier(workers)
        errors = []

        def write():
            try:
                barrier.wait()
                transactions.record_daily(customer.id, agent.id, "2024-03-04", {"cash_received": 100})
            except Exception as exc:  # collected and asserted below
                errors.append(exc)
            finally:
                connection.close()

        threads = [threading.Thread(target=write) for _ in range(workers)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(errors, [])
        chain = list(transactions.balance_chain(customer.id))
        self.assertEqual([e.sequence for e in chain], list(range(1, workers + 1)))
        self.assertEqual(len({e.previous_balance for e in chain}), workers)
        self.assertEqual(chain[-1].closing_balance, Decimal(100 * workers))
        self.assertTrue(transactions.verify_chain(customer.id))
