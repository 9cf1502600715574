"""
Financial snapshot aggregation.

Sums a user's accounts and transactions into the figures the dashboard shows
and the coach sends along with every chat turn.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

from finsensei.models import TransactionType

DEFAULT_CURRENCY = "USD"


def get_field(item: Any, name: str, default: Any = None) -> Any:
    """Read a field from an ORM row or a plain mapping"""
    if isinstance(item, dict):
        return item.get(name, default)
    return getattr(item, name, default)


def _to_decimal(value: Any) -> Decimal:
    if value is None:
        return Decimal("0")
    return Decimal(str(value))


def transaction_type_of(transaction: Any) -> Optional[str]:
    """Transaction type, accepting both `transaction_type` and the short `type` key"""
    value = get_field(transaction, "transaction_type")
    if value is None:
        value = get_field(transaction, "type")
    if isinstance(value, TransactionType):
        return value.value
    return value


@dataclass
class FinancialSnapshot:
    total_income: Decimal = Decimal("0")
    total_expenses: Decimal = Decimal("0")
    net_balance: Decimal = Decimal("0")
    currency: str = DEFAULT_CURRENCY
    accounts: List[Any] = field(default_factory=list)
    transactions: List[Any] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalIncome": float(self.total_income),
            "totalExpenses": float(self.total_expenses),
            "netBalance": float(self.net_balance),
            "currency": self.currency,
        }


def compute_snapshot(
    accounts: Iterable[Any],
    transactions: Iterable[Any],
    currency: Optional[str] = None
) -> FinancialSnapshot:
    """Aggregate income, expenses and balance for one user's data.

    Income and expenses sum absolute amounts, so both totals are non-negative
    whatever sign the rows were stored with. Net balance is the sum of account
    balances and does not look at transactions at all.
    """
    accounts = list(accounts or [])
    transactions = list(transactions or [])

    total_income = sum(
        (abs(_to_decimal(get_field(t, "amount"))) for t in transactions
         if transaction_type_of(t) == TransactionType.INCOME.value),
        Decimal("0")
    )
    total_expenses = sum(
        (abs(_to_decimal(get_field(t, "amount"))) for t in transactions
         if transaction_type_of(t) == TransactionType.EXPENSE.value),
        Decimal("0")
    )
    net_balance = sum(
        (_to_decimal(get_field(a, "balance")) for a in accounts),
        Decimal("0")
    )

    return FinancialSnapshot(
        total_income=total_income,
        total_expenses=total_expenses,
        net_balance=net_balance,
        currency=currency or DEFAULT_CURRENCY,
        accounts=accounts,
        transactions=transactions,
    )
