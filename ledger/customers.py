import logging
from typing import Optional, Tuple

from django.db import transaction
from django.db.models import OuterRef, QuerySet, Subquery

from .exceptions import InvalidAmount, InvalidStaffRole, NotFound, StorageFailure
from .models import Customer, Guarantor, Staff
from .utils import generate_account_number, parse_id, storage_errors, to_money

logger = logging.getLogger(__name__)

CUSTOMER_FIELDS = (
    "union_group_name",
    "first_name",
    "middle_name",
    "last_name",
    "marital_status",
    "age",
    "occupation",
    "business_address",
    "nearest_bus_stop",
    "phone_number",
    "state_of_origin",
    "loan_amount_requested",
    "residential_address",
    "date_of_birth",
    "photo_url",
    "documents_url",
)

GUARANTOR_FIELDS = (
    "name",
    "occupation",
    "business_address",
    "nearest_bus_stop",
    "phone_number",
    "state_of_origin",
    "residential_address",
    "documents_url",
)

ACCOUNT_NUMBER_DRAWS = 20


def get_staff(staff_id, role: Optional[str] = None) -> Staff:
    """Fetch a staff member, optionally insisting on a role."""
    pk = parse_id(role or "staff", staff_id)
    with storage_errors("load staff member"):
        try:
            staff = Staff.objects.get(pk=pk)
        except Staff.DoesNotExist:
            raise NotFound(role or "staff", staff_id) from None
    if role is not None and staff.role != role:
        raise NotFound(role, staff_id)
    return staff


def get_customer(customer_id) -> Customer:
    pk = parse_id("customer", customer_id)
    with storage_errors("load customer"):
        try:
            return Customer.objects.get(pk=pk)
        except Customer.DoesNotExist:
            raise NotFound("customer", customer_id) from None


def register_staff(username: str, full_name: str, role: str, email: str = "") -> Staff:
    roles = [value for value, _ in Staff.ROLE_CHOICES]
    if role not in roles:
        raise InvalidStaffRole(role, roles)
    with storage_errors("register staff member"):
        staff = Staff.objects.create(username=username, full_name=full_name, role=role, email=email)
    logger.info("Registered %s %s", role, username)
    return staff


def list_staff(role: Optional[str] = None, status: Optional[str] = None) -> QuerySet:
    staff = Staff.objects.all()
    if role:
        staff = staff.filter(role=role)
    if status:
        staff = staff.filter(status=status)
    return staff.order_by("-created_at")


def _unused_account_number() -> str:
    for _ in range(ACCOUNT_NUMBER_DRAWS):
        candidate = generate_account_number()
        if not Customer.objects.filter(account_number=candidate).exists():
            return candidate
    raise StorageFailure("allocate an account number")


def _full_name(*parts) -> str:
    return " ".join(p.strip() for p in parts if p and p.strip())


def register_customer(
    agent_id, details: dict, guarantor: Optional[dict] = None, admin_id=None
) -> Tuple[Customer, Optional[Guarantor]]:
    """Onboard a customer for an agent, with an optional guarantor.

    Customer and guarantor rows are written in one transaction: if either
    insert fails, neither is kept.
    """
    agent = get_staff(agent_id)
    admin = get_staff(admin_id) if admin_id else None

    fields = {name: details[name] for name in CUSTOMER_FIELDS if details.get(name) not in (None, "")}
    if "loan_amount_requested" in fields:
        fields["loan_amount_requested"] = to_money("loan_amount_requested", fields["loan_amount_requested"])
    if "age" in fields:
        try:
            fields["age"] = int(fields["age"])
        except (TypeError, ValueError):
            raise InvalidAmount("age", details["age"], "must be a whole number") from None
    fields["full_name"] = _full_name(
        details.get("first_name", ""), details.get("middle_name", ""), details.get("last_name", "")
    )

    guarantor_fields = None
    if guarantor and any(guarantor.get(name) for name in GUARANTOR_FIELDS):
        guarantor_fields = {name: guarantor.get(name) or "" for name in GUARANTOR_FIELDS}

    with storage_errors("register customer"):
        account_number = _unused_account_number()
        with transaction.atomic():
            customer = Customer.objects.create(account_number=account_number, agent=agent, admin=admin, **fields)
            created_guarantor = None
            if guarantor_fields is not None:
                created_guarantor = Guarantor.objects.create(customer=customer, **guarantor_fields)

    logger.info(
        "Registered customer %s (%s) for agent %s%s",
        customer.full_name,
        customer.account_number,
        agent.username,
        " with guarantor" if created_guarantor else "",
    )
    return customer, created_guarantor


def list_customers(agent_id=None, admin_id=None, status: Optional[str] = None) -> QuerySet:
    first_guarantor = Guarantor.objects.filter(customer=OuterRef("pk")).order_by("created_at")
    customers = Customer.objects.select_related("agent").annotate(
        guarantor_name=Subquery(first_guarantor.values("name")[:1])
    )
    if agent_id:
        customers = customers.filter(agent_id=parse_id("agent", agent_id))
    if admin_id:
        customers = customers.filter(admin_id=parse_id("admin", admin_id))
    if status:
        customers = customers.filter(status=status)
    return customers.order_by("-created_at")
