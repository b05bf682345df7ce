from django.db import transaction
from django.db.models import Count, F

from .models import Customer, DailyTransaction, Loan
from .utils import money_sum, parse_id, storage_errors


def dashboard_stats(agent_id=None, admin_id=None) -> dict:
    """Point-in-time counts and sums for the admin or agent dashboard.

    Transactions carry no admin, so ``admin_id`` only narrows customers and
    loans.
    """
    scope = {}
    if agent_id:
        scope["agent_id"] = parse_id("agent", agent_id)
    if admin_id:
        scope["admin_id"] = parse_id("admin", admin_id)
    tx_scope = {"agent_id": scope["agent_id"]} if agent_id else {}

    with storage_errors("compute dashboard stats"), transaction.atomic():
        customers = Customer.objects.filter(**scope).count()
        loans = Loan.objects.filter(**scope).aggregate(
            count=Count("id"), total_amount=money_sum("loan_amount")
        )
        txs = DailyTransaction.objects.filter(**tx_scope).aggregate(
            count=Count("id"), total_received=money_sum(F("cash_received") + F("transfer_received"))
        )

    return {
        "customers": customers,
        "loans": loans["count"],
        "total_loan_amount": loans["total_amount"],
        "transactions": txs["count"],
        "total_received": txs["total_received"],
    }
