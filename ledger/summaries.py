import logging
from typing import Tuple

from django.db import transaction
from django.db.models import Count, F, QuerySet

from .customers import get_staff
from .exceptions import InvalidPeriod
from .models import DailyTransaction, MonthlySummary
from .transactions import parse_date
from .utils import money_sum, parse_id, storage_errors

logger = logging.getLogger(__name__)

MONTHLY_TOTALS = {
    "total_cash_received": F("cash_received") + F("transfer_received"),
    "total_pick_up": F("pick_up"),
    "total_registration": F("registration_fee"),
    "total_insurance": F("insurance"),
    "total_position_charges": F("position_charges"),
    "total_amount_disbursed": F("amount_disbursed"),
}


def normalize_period(month, year) -> Tuple[str, int]:
    """Return ``("03", 2024)`` for inputs like ``(3, "2024")``."""
    try:
        month_number = int(str(month).strip())
    except (TypeError, ValueError):
        raise InvalidPeriod("month", month, "must be a month number between 1 and 12") from None
    if not 1 <= month_number <= 12:
        raise InvalidPeriod("month", month, "must be a month number between 1 and 12")
    try:
        year_number = int(str(year).strip())
    except (TypeError, ValueError):
        raise InvalidPeriod("year", year, "must be a four digit year") from None
    if not 1900 <= year_number <= 9999:
        raise InvalidPeriod("year", year, "must be a four digit year")
    return f"{month_number:02d}", year_number


def generate_monthly(agent_id, month, year) -> MonthlySummary:
    """Total an agent's entries for one month and store them as a new snapshot.

    Earlier snapshots for the same period are kept; every call appends one.
    """
    month, year = normalize_period(month, year)
    agent = get_staff(agent_id)

    with storage_errors("generate monthly summary"), transaction.atomic():
        totals = DailyTransaction.objects.filter(
            agent=agent, date__year=year, date__month=int(month)
        ).aggregate(**{name: money_sum(expr) for name, expr in MONTHLY_TOTALS.items()})
        summary = MonthlySummary.objects.create(agent=agent, month=month, year=year, **totals)

    logger.info(
        "Monthly summary %s for %s %s-%s: collected=%s disbursed=%s",
        summary.id,
        agent.username,
        year,
        month,
        summary.total_cash_received,
        summary.total_amount_disbursed,
    )
    return summary


def list_summaries(agent_id=None, month=None, year=None) -> QuerySet:
    summaries = MonthlySummary.objects.select_related("agent")
    if agent_id:
        summaries = summaries.filter(agent_id=parse_id("agent", agent_id))
    if month:
        summaries = summaries.filter(month=normalize_period(month, year or 2000)[0])
    if year:
        summaries = summaries.filter(year=normalize_period(month or 1, year)[1])
    return summaries.order_by("-year", "-month", "-created_at")


def daily_report(agent_id, date) -> dict:
    day = parse_date(date)
    agent = get_staff(agent_id)
    with storage_errors("build daily report"):
        totals = DailyTransaction.objects.filter(agent=agent, date=day).aggregate(
            transactions=Count("id"),
            total_cash=money_sum("cash_received"),
            total_transfer=money_sum("transfer_received"),
            total_pick_up=money_sum("pick_up"),
        )
    totals["total_collections"] = totals["total_cash"] + totals["total_transfer"]
    return {"date": day.isoformat(), "agent_id": str(agent.id), "agent": agent.full_name, **totals}
