import logging
from pathlib import Path
from typing import Dict, Optional

import pandas as pd
from celery import shared_task
from django.conf import settings

from . import summaries, transactions
from .customers import CUSTOMER_FIELDS, GUARANTOR_FIELDS, get_staff, register_customer
from .exceptions import LedgerError
from .models import Customer, Staff
from .transactions import AMOUNT_FIELDS

logger = logging.getLogger(__name__)

EXPORT_COLUMNS = [
    "sequence",
    "account_number",
    "customer_name",
    "date",
    "previous_balance",
    *AMOUNT_FIELDS,
    "bank",
    "cash_available",
    "next_disbursement",
    "pending_disbursement",
    "record",
    "closing_balance",
    "transportation",
    "payment_status",
]


DATE_COLUMNS = ("date", "date_of_birth")


def _data_dir() -> Path:
    return Path(getattr(settings, "DATA_DIR", settings.BASE_DIR / "data"))


def _iso_date(value):
    if pd.isna(value):
        return None
    parsed = pd.to_datetime(value, errors="coerce")
    return None if pd.isna(parsed) else parsed.date().isoformat()


def _load_excel(filename: str) -> pd.DataFrame:
    path = _data_dir() / filename
    if not path.exists():
        logger.error("File not found: %s", path)
        return pd.DataFrame()
    # read every cell as text so phone and account numbers keep their leading zeros
    df = pd.read_excel(path, dtype=str)
    df.columns = [str(c).strip().lower().replace(" ", "_") for c in df.columns]
    for column in DATE_COLUMNS:
        if column in df.columns:
            df[column] = df[column].map(_iso_date)
    return df


def _cell(row: pd.Series, column: str):
    if column not in row.index or pd.isna(row[column]):
        return None
    value = str(row[column]).strip()
    return value or None


@shared_task
def ingest_customers_from_excel(filename: str = "customers.xlsx") -> Dict[str, int]:
    """Register customers from a sheet; ``guarantor_*`` columns fill the guarantor."""
    df = _load_excel(filename)
    required = {"agent_username", "first_name", "last_name"}
    missing = required - set(df.columns)
    if missing:
        logger.error("Missing columns in %s: %s", filename, missing)
        return {"created": 0, "skipped": len(df)}

    agents = Staff.objects.in_bulk(field_name="username")
    created = skipped = 0
    for _, row in df.iterrows():
        agent = agents.get(_cell(row, "agent_username"))
        if agent is None or any(_cell(row, col) is None for col in ("first_name", "last_name")):
            skipped += 1
            continue
        details = {name: _cell(row, name) for name in CUSTOMER_FIELDS}
        guarantor = {name: _cell(row, f"guarantor_{name}") for name in GUARANTOR_FIELDS}
        try:
            register_customer(agent.id, details, guarantor=guarantor)
        except LedgerError as exc:
            skipped += 1
            logger.warning("Skipping customer row due to error: %s", exc)
            continue
        created += 1

    logger.info("Customers ingested: created=%s skipped=%s", created, skipped)
    return {"created": created, "skipped": skipped}


@shared_task
def ingest_transactions_from_excel(filename: str = "daily_ledger.xlsx") -> Dict[str, int]:
    """Replay a daily ledger sheet through ``record_daily`` in row order."""
    df = _load_excel(filename)
    required = {"account_number", "agent_username", "date"}
    missing = required - set(df.columns)
    if missing:
        logger.error("Missing columns in %s: %s", filename, missing)
        return {"created": 0, "skipped": len(df)}

    customers_map = Customer.objects.in_bulk(field_name="account_number")
    agents = Staff.objects.in_bulk(field_name="username")
    created = skipped = 0
    for _, row in df.iterrows():
        customer = customers_map.get(_cell(row, "account_number"))
        agent = agents.get(_cell(row, "agent_username"))
        if customer is None or agent is None:
            skipped += 1
            continue
        try:
            transactions.record_daily(
                customer_id=customer.id,
                agent_id=agent.id,
                date=_cell(row, "date"),
                amounts={name: _cell(row, name) for name in AMOUNT_FIELDS},
                loan_id=_cell(row, "loan_id"),
                bank=_cell(row, "bank") or "",
                transportation=_cell(row, "transportation"),
            )
        except LedgerError as exc:
            skipped += 1
            logger.warning("Skipping ledger row due to error: %s", exc)
            continue
        created += 1

    logger.info("Ledger rows ingested: created=%s skipped=%s", created, skipped)
    return {"created": created, "skipped": skipped}


@shared_task
def generate_monthly_summary(agent_id: str, month: str, year: int) -> str:
    summary = summaries.generate_monthly(agent_id, month, year)
    return str(summary.id)


@shared_task
def export_daily_ledger(agent_id: str, date: str, filename: Optional[str] = None) -> str:
    """Write an agent's entries for one day to an ``.xlsx`` file under ``DATA_DIR/exports``."""
    agent = get_staff(agent_id)
    day = transactions.parse_date(date)
    rows = list(transactions.list_by_filter(agent_id=agent.id, date=day).values(*EXPORT_COLUMNS))
    df = pd.DataFrame(rows, columns=EXPORT_COLUMNS).sort_values(["account_number", "sequence"])

    export_dir = _data_dir() / "exports"
    export_dir.mkdir(parents=True, exist_ok=True)
    path = export_dir / (filename or f"ledger_{agent.username}_{day.isoformat()}.xlsx")
    df.to_excel(path, index=False)
    logger.info("Exported %s ledger rows for %s on %s to %s", len(df), agent.username, day, path)
    return str(path)
