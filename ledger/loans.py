import logging
from decimal import Decimal
from typing import Optional

from django.db import transaction
from django.db.models import F, QuerySet

from . import structures
from .customers import get_customer, get_staff
from .exceptions import InvalidLoanAmount, InvalidStateTransition, NotFound
from .models import Loan, Staff
from .utils import ZERO, money_sum, now, parse_id, storage_errors

logger = logging.getLogger(__name__)

DECIDING_ROLES = (Staff.ROLE_ADMIN, Staff.ROLE_SUBADMIN)


def apply_loan(customer_id, agent_id, principal, admin_id=None) -> Loan:
    """Create a pending loan on the fixed terms for ``principal``."""
    try:
        structure = structures.lookup(principal)
    except InvalidLoanAmount:
        logger.warning("Rejected loan application for customer %s: amount %r", customer_id, principal)
        raise

    customer = get_customer(customer_id)
    agent = get_staff(agent_id)
    admin = get_staff(admin_id) if admin_id else None

    with storage_errors("create loan"):
        loan = Loan.objects.create(
            customer=customer,
            agent=agent,
            admin=admin,
            loan_amount=Decimal(structure.principal),
            daily_payment=Decimal(structure.daily_payment),
            duration=structure.duration,
            total_repayment=Decimal(structure.total_repayment),
            status=Loan.STATUS_PENDING,
        )
    logger.info(
        "Loan %s applied: customer=%s agent=%s amount=%s daily=%s days=%s",
        loan.id,
        customer.account_number,
        agent.username,
        structure.principal,
        structure.daily_payment,
        structure.duration,
    )
    return loan


def get_loan(loan_id) -> Loan:
    pk = parse_id("loan", loan_id)
    with storage_errors("load loan"):
        try:
            return Loan.objects.select_related("customer", "agent").get(pk=pk)
        except Loan.DoesNotExist:
            raise NotFound("loan", loan_id) from None


def _decide(loan_id, admin_id, target: str) -> Loan:
    pk = parse_id("loan", loan_id)
    admin = get_staff(admin_id)
    if admin.role not in DECIDING_ROLES:
        raise NotFound("admin", admin_id)

    # the status filter makes the decision a single check-and-set
    with storage_errors(f"mark loan {target}"):
        with transaction.atomic():
            updated = Loan.objects.filter(pk=pk, status=Loan.STATUS_PENDING).update(
                status=target, approved_by=admin, approved_at=now()
            )
            loan = Loan.objects.filter(pk=pk).first()

    if loan is None:
        raise NotFound("loan", loan_id)
    if not updated:
        logger.warning("Loan %s is already %s; refusing to mark it %s", loan.id, loan.status, target)
        raise InvalidStateTransition(loan.id, loan.status, target)
    logger.info("Loan %s %s by %s", loan.id, target, admin.username)
    return loan


def approve(loan_id, admin_id) -> Loan:
    return _decide(loan_id, admin_id, Loan.STATUS_APPROVED)


def reject(loan_id, admin_id) -> Loan:
    return _decide(loan_id, admin_id, Loan.STATUS_REJECTED)


def list_loans(agent_id=None, admin_id=None, customer_id=None, status: Optional[str] = None) -> QuerySet:
    loans = Loan.objects.annotate(
        customer_name=F("customer__full_name"),
        account_number=F("customer__account_number"),
        agent_name=F("agent__full_name"),
    )
    if agent_id:
        loans = loans.filter(agent_id=parse_id("agent", agent_id))
    if admin_id:
        loans = loans.filter(admin_id=parse_id("admin", admin_id))
    if customer_id:
        loans = loans.filter(customer_id=parse_id("customer", customer_id))
    if status:
        loans = loans.filter(status=status)
    # created_at is strictly increasing per write, so it also orders same-instant inserts
    return loans.order_by("-created_at")


def repayment_progress(loan_id) -> dict:
    loan = get_loan(loan_id)
    with storage_errors("sum loan collections"):
        collected = loan.transactions.aggregate(
            total=money_sum(F("cash_received") + F("transfer_received"))
        )["total"]
    outstanding = max(loan.total_repayment - collected, ZERO)
    installments = int(collected // loan.daily_payment) if loan.daily_payment else 0
    return {
        "loan_id": str(loan.id),
        "status": loan.status,
        "total_repayment": loan.total_repayment,
        "total_collected": collected,
        "outstanding": outstanding,
        "installments_covered": min(installments, loan.duration),
        "days_remaining": max(loan.duration - installments, 0),
    }
