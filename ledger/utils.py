import logging
import random
import threading
import uuid
from contextlib import contextmanager
from datetime import datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import Dict, Hashable, Iterator, Optional

from django.conf import settings
from django.db import DatabaseError
from django.db.models import DecimalField, Sum, Value
from django.db.models.functions import Coalesce
from django.utils import timezone

from .exceptions import InvalidAmount, NotFound, StorageFailure

logger = logging.getLogger(__name__)

TWO_PLACES = Decimal("0.01")
ZERO = Decimal("0.00")
MONEY_FIELD = DecimalField(max_digits=14, decimal_places=2)
# exclusive upper bound of a 14 digit, 2 place money column
MAX_AMOUNT = Decimal(10) ** 12

_clock_lock = threading.Lock()
_last_timestamp: Optional[datetime] = None


def now() -> datetime:
    """Aware timestamp for a write, strictly increasing within this process.

    Creation time doubles as insertion order when listing rows, so two writes
    in the same microsecond get distinct values.
    """
    global _last_timestamp
    with _clock_lock:
        current = timezone.now()
        if _last_timestamp is not None and current <= _last_timestamp:
            current = _last_timestamp + timedelta(microseconds=1)
        _last_timestamp = current
        return current


_locks_guard = threading.Lock()
# key -> [lock, number of threads holding or waiting for it]
_locks: Dict[Hashable, list] = {}


@contextmanager
def keyed_lock(key: Hashable) -> Iterator[None]:
    """Hold a process-wide lock dedicated to ``key``.

    The entry for ``key`` is dropped once no thread holds or waits for it.
    """
    with _locks_guard:
        entry = _locks.setdefault(key, [threading.Lock(), 0])
        entry[1] += 1
    try:
        with entry[0]:
            yield
    finally:
        with _locks_guard:
            entry[1] -= 1
            if not entry[1]:
                del _locks[key]


@contextmanager
def storage_errors(action: str) -> Iterator[None]:
    try:
        yield
    except DatabaseError as exc:
        logger.exception("Database error while trying to %s", action)
        raise StorageFailure(action, exc) from exc


def to_money(field: str, value) -> Decimal:
    if value is None or value == "":
        return ZERO
    if isinstance(value, bool):
        raise InvalidAmount(field, value)
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise InvalidAmount(field, value) from None
    if not amount.is_finite() or amount < 0:
        raise InvalidAmount(field, value)
    # below the bound quantize cannot overflow the decimal context
    if amount < MAX_AMOUNT:
        amount = amount.quantize(TWO_PLACES)
    if amount >= MAX_AMOUNT:
        raise InvalidAmount(field, value, f"must be below {MAX_AMOUNT}")
    return amount


def generate_account_number() -> str:
    prefix = getattr(settings, "LEDGER_ACCOUNT_PREFIX", "MP")
    return f"{prefix}{random.randint(100000, 999999)}"


def parse_id(entity: str, value) -> uuid.UUID:
    """Coerce an identifier to a UUID; anything unparseable cannot exist."""
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError, AttributeError):
        raise NotFound(entity, value) from None


def money_sum(expression) -> Coalesce:
    """``SUM(expression)`` as a two-place decimal, zero when no rows match."""
    return Coalesce(
        Sum(expression, output_field=MONEY_FIELD),
        Value(ZERO, output_field=MONEY_FIELD),
        output_field=MONEY_FIELD,
    )
