import itertools

from ledger.customers import register_customer, register_staff
from ledger.models import Staff

_counter = itertools.count(1)


def make_staff(role=Staff.ROLE_AGENT, **kwargs):
    n = next(_counter)
    return register_staff(
        username=kwargs.pop("username", f"{role}{n}"),
        full_name=kwargs.pop("full_name", f"{role.title()} Number {n}"),
        role=role,
        **kwargs,
    )


def make_customer(agent, admin=None, **details):
    details.setdefault("first_name", "Ada")
    details.setdefault("last_name", "Obi")
    customer, _ = register_customer(agent.id, details, admin_id=admin.id if admin else None)
    return customer
