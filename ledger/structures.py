from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Dict, List

from .exceptions import InvalidLoanAmount


@dataclass(frozen=True)
class LoanStructure:
    principal: int
    daily_payment: int
    duration: int
    total_repayment: int

    def as_dict(self) -> Dict[str, int]:
        return {
            "principal": self.principal,
            "daily_payment": self.daily_payment,
            "duration": self.duration,
            "total_repayment": self.total_repayment,
        }


LOAN_STRUCTURES: Dict[int, LoanStructure] = {
    s.principal: s
    for s in (
        LoanStructure(30000, 1500, 30, 45000),
        LoanStructure(40000, 2000, 25, 50000),
        LoanStructure(50000, 2500, 25, 62500),
        LoanStructure(60000, 3000, 25, 75000),
        LoanStructure(80000, 4000, 25, 100000),
        LoanStructure(100000, 5000, 25, 125000),
        LoanStructure(150000, 7500, 25, 187500),
        LoanStructure(200000, 10000, 25, 250000),
    )
}


def _check_table(table: Dict[int, LoanStructure]) -> None:
    for principal, structure in table.items():
        if structure.daily_payment * structure.duration != structure.total_repayment:
            raise ValueError(
                f"Loan structure for {principal} is inconsistent: "
                f"{structure.daily_payment} x {structure.duration} != {structure.total_repayment}"
            )


_check_table(LOAN_STRUCTURES)


def valid_amounts() -> List[int]:
    return sorted(LOAN_STRUCTURES)


def lookup(principal) -> LoanStructure:
    """Return the fixed repayment terms for ``principal``.

    Only exact matches are accepted; ``Decimal("30000.00")`` and ``"30000"``
    resolve like ``30000``.
    """
    try:
        amount = Decimal(str(principal).strip())
    except (InvalidOperation, ValueError):
        raise InvalidLoanAmount(principal, valid_amounts()) from None
    if isinstance(principal, bool) or not amount.is_finite() or amount != amount.to_integral_value():
        raise InvalidLoanAmount(principal, valid_amounts())
    structure = LOAN_STRUCTURES.get(int(amount))
    if structure is None:
        raise InvalidLoanAmount(principal, valid_amounts())
    return structure
