from typing import Iterable, Optional


class LedgerError(Exception):
    """Base class for failures surfaced by the ledger core."""

    code = "ledger_error"

    def as_dict(self) -> dict:
        return {"error": self.code, "detail": str(self)}


class InvalidLoanAmount(LedgerError):
    code = "invalid_loan_amount"

    def __init__(self, principal, valid_amounts: Iterable[int]):
        self.principal = principal
        self.valid_amounts = list(valid_amounts)
        allowed = ", ".join(str(a) for a in self.valid_amounts)
        super().__init__(f"Invalid loan amount {principal!r}. Must be one of: {allowed}")

    def as_dict(self) -> dict:
        data = super().as_dict()
        data["valid_amounts"] = self.valid_amounts
        return data


class InvalidAmount(LedgerError):
    code = "invalid_amount"

    def __init__(self, field: str, value, reason: str = "must be a non-negative number"):
        self.field = field
        self.value = value
        super().__init__(f"{field}={value!r} {reason}")

    def as_dict(self) -> dict:
        data = super().as_dict()
        data["field"] = self.field
        return data


class InvalidPeriod(InvalidAmount):
    code = "invalid_period"


class InvalidStaffRole(LedgerError):
    code = "invalid_role"

    def __init__(self, role, valid_roles: Iterable[str]):
        self.role = role
        self.valid_roles = list(valid_roles)
        allowed = ", ".join(self.valid_roles)
        super().__init__(f"Unknown staff role {role!r}. Must be one of: {allowed}")

    def as_dict(self) -> dict:
        data = super().as_dict()
        data["valid_roles"] = self.valid_roles
        return data


class NotFound(LedgerError):
    code = "not_found"

    def __init__(self, entity: str, identifier):
        self.entity = entity
        self.identifier = identifier
        super().__init__(f"{entity} {identifier} not found.")


class InvalidStateTransition(LedgerError):
    code = "invalid_state_transition"

    def __init__(self, loan_id, current_status: str, target_status: str):
        self.loan_id = loan_id
        self.current_status = current_status
        self.target_status = target_status
        super().__init__(
            f"Loan {loan_id} is {current_status}; only pending loans can become {target_status}."
        )


class StorageFailure(LedgerError):
    code = "storage_failure"

    def __init__(self, action: str, cause: Optional[BaseException] = None):
        self.action = action
        detail = f"Storage failure while trying to {action}"
        if cause is not None:
            detail = f"{detail}: {cause}"
        super().__init__(detail)


class LedgerIntegrityError(LedgerError):
    code = "ledger_integrity_error"

    def __init__(self, customer_id, sequence: int, problem: str):
        self.customer_id = customer_id
        self.sequence = sequence
        super().__init__(f"Balance chain for customer {customer_id} broken at entry {sequence}: {problem}")
