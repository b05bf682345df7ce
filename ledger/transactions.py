"""Per-customer daily collection ledger.

Every entry carries the customer's balance before and after it, so the
entries of one customer, read by ``sequence``, form a chain in which each
``previous_balance`` is the prior entry's ``closing_balance``. Writers for
the same customer are serialised so that the chain never forks.
"""
import logging
from datetime import date as date_type, datetime
from decimal import Decimal
from typing import Mapping, Optional

from django.db import transaction
from django.db.models import F, QuerySet

from .customers import get_customer, get_staff
from .exceptions import InvalidPeriod, LedgerIntegrityError, NotFound
from .models import Customer, DailyTransaction, Loan, Staff
from .utils import ZERO, keyed_lock, money_sum, parse_id, storage_errors, to_money

logger = logging.getLogger(__name__)

AMOUNT_FIELDS = (
    "cash_received",
    "transfer_received",
    "pick_up",
    "registration_fee",
    "insurance",
    "position_charges",
    "amount_disbursed",
)


def parse_date(value) -> date_type:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date_type):
        return value
    try:
        return date_type.fromisoformat(str(value).strip())
    except ValueError:
        raise InvalidPeriod("date", value, "must be an ISO date (YYYY-MM-DD)") from None


def compute_closing_balance(previous: Decimal, amounts: Mapping[str, Decimal]) -> Decimal:
    return (
        previous
        + amounts["cash_received"]
        + amounts["transfer_received"]
        - amounts["pick_up"]
        - amounts["amount_disbursed"]
    )


def derive_fields(
    amounts: Mapping[str, Decimal], loan: Optional[Loan] = None, disbursed_to_date: Decimal = ZERO
) -> dict:
    """Fill the categorisation columns of an entry from its amounts.

    ``disbursed_to_date`` is what was already disbursed against ``loan``
    before this entry.
    """
    collected = amounts["cash_received"] + amounts["transfer_received"]
    cash_available = collected - amounts["pick_up"]
    next_disbursement = max(cash_available - amounts["amount_disbursed"], ZERO)

    pending_disbursement = ZERO
    if loan is not None and loan.status == Loan.STATUS_APPROVED:
        disbursed = disbursed_to_date + amounts["amount_disbursed"]
        pending_disbursement = max(loan.loan_amount - disbursed, ZERO)

    if loan is None:
        payment_status = DailyTransaction.STATUS_UNLINKED
        record = f"collected {collected:.2f}"
    else:
        if collected >= loan.daily_payment:
            payment_status = DailyTransaction.STATUS_PAID
        elif collected > 0:
            payment_status = DailyTransaction.STATUS_PARTIAL
        else:
            payment_status = DailyTransaction.STATUS_MISSED
        record = f"{payment_status} {collected:.2f} of {loan.daily_payment:.2f}"
    if amounts["amount_disbursed"]:
        record = f"{record}; disbursed {amounts['amount_disbursed']:.2f}"

    return {
        "cash_available": cash_available,
        "next_disbursement": next_disbursement,
        "pending_disbursement": pending_disbursement,
        "payment_status": payment_status,
        "record": record,
    }


def _loan_for(customer: Customer, loan_id) -> Optional[Loan]:
    if not loan_id:
        return None
    pk = parse_id("loan", loan_id)
    loan = Loan.objects.select_for_update().filter(pk=pk, customer=customer).first()
    if loan is None:
        raise NotFound("loan", f"{loan_id} for customer {customer.pk}")
    return loan


def record_daily(
    customer_id,
    agent_id,
    date,
    amounts: Mapping[str, object],
    loan_id=None,
    bank: str = "",
    transportation=0,
) -> DailyTransaction:
    """Append a day's collection entry to a customer's balance chain."""
    values = {name: to_money(name, amounts.get(name)) for name in AMOUNT_FIELDS}
    transportation = to_money("transportation", transportation)
    bank = bank or amounts.get("bank") or ""
    entry_date = parse_date(date)
    customer_pk = get_customer(customer_id).pk
    agent = get_staff(agent_id, role=Staff.ROLE_AGENT)

    with keyed_lock(customer_pk), storage_errors("record daily transaction"):
        with transaction.atomic():
            # row lock serialises writers across processes on backends that support it
            customer = Customer.objects.select_for_update().filter(pk=customer_pk).first()
            if customer is None:
                raise NotFound("customer", customer_id)
            loan = _loan_for(customer, loan_id)

            last = customer.transactions.order_by("-sequence").first()
            previous = last.closing_balance if last is not None else ZERO
            sequence = last.sequence + 1 if last is not None else 1

            disbursed_to_date = ZERO
            if loan is not None:
                disbursed_to_date = loan.transactions.aggregate(total=money_sum("amount_disbursed"))["total"]

            entry = DailyTransaction.objects.create(
                customer=customer,
                loan=loan,
                agent=agent,
                sequence=sequence,
                date=entry_date,
                previous_balance=previous,
                closing_balance=compute_closing_balance(previous, values),
                bank=bank,
                transportation=transportation,
                **values,
                **derive_fields(values, loan, disbursed_to_date),
            )

    logger.info(
        "Recorded entry %s for customer %s: #%s %s -> %s (%s)",
        entry.id,
        customer.account_number,
        entry.sequence,
        entry.previous_balance,
        entry.closing_balance,
        entry.payment_status,
    )
    return entry


def list_by_filter(agent_id=None, customer_id=None, loan_id=None, date=None) -> QuerySet:
    entries = DailyTransaction.objects.annotate(
        customer_name=F("customer__full_name"),
        account_number=F("customer__account_number"),
        loan_amount=F("loan__loan_amount"),
        daily_payment=F("loan__daily_payment"),
    )
    if agent_id:
        entries = entries.filter(agent_id=parse_id("agent", agent_id))
    if customer_id:
        entries = entries.filter(customer_id=parse_id("customer", customer_id))
    if loan_id:
        entries = entries.filter(loan_id=parse_id("loan", loan_id))
    if date:
        entries = entries.filter(date=parse_date(date))
    return entries.order_by("-date", "-created_at")


def balance_chain(customer_id) -> QuerySet:
    return DailyTransaction.objects.filter(customer_id=parse_id("customer", customer_id)).order_by("sequence")


def current_balance(customer_id) -> Decimal:
    last = balance_chain(customer_id).last()
    return last.closing_balance if last is not None else ZERO


def verify_chain(customer_id) -> bool:
    """Walk a customer's entries and check every link of the balance chain."""
    expected = ZERO
    with storage_errors("read balance chain"), transaction.atomic():
        entries = list(balance_chain(customer_id))
    for position, entry in enumerate(entries, start=1):
        if entry.sequence != position:
            raise LedgerIntegrityError(customer_id, entry.sequence, f"expected entry #{position}")
        if entry.previous_balance != expected:
            raise LedgerIntegrityError(
                customer_id,
                entry.sequence,
                f"previous balance {entry.previous_balance} does not match prior closing balance {expected}",
            )
        amounts = {name: getattr(entry, name) for name in AMOUNT_FIELDS}
        if entry.closing_balance != compute_closing_balance(entry.previous_balance, amounts):
            raise LedgerIntegrityError(
                customer_id, entry.sequence, f"closing balance {entry.closing_balance} does not add up"
            )
        expected = entry.closing_balance
    return True
