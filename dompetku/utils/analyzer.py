from __future__ import annotations

import calendar
import datetime as dt
from dataclasses import asdict, dataclass
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional

INCOME = "income"
EXPENSE = "expense"


def month_key(value: dt.date | str) -> str:
    """Year-month bucket of a calendar date, e.g. ``2025-03-15`` -> ``2025-03``."""
    if isinstance(value, str):
        value = dt.date.fromisoformat(value[:10])
    return value.strftime("%Y-%m")


def _field(transaction: Any, name: str) -> Any:
    if isinstance(transaction, Mapping):
        return transaction.get(name)
    return getattr(transaction, name, None)


def _kind(transaction: Any) -> Optional[str]:
    kind = _field(transaction, "type")
    # enum members carry the wire value
    return getattr(kind, "value", kind)


def _amount(transaction: Any) -> Decimal:
    return Decimal(str(_field(transaction, "amount") or 0))


@dataclass
class MonthlySummary:
    """Totals for one month bucket."""

    month: str
    total_income: float
    total_expense: float
    balance: float
    transaction_count: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class CashflowAnalyzer:
    """
    Aggregation helpers behind the period view. Every method is a pure
    function of its arguments; transactions may be dicts or model objects.
    """

    def __init__(self, recent_limit: int = 10, month_window: int = 12) -> None:
        self._recent_limit = recent_limit
        self._month_window = month_window

    def filter_by_month(self, transactions: Iterable[Any], month: str) -> List[Any]:
        return [tx for tx in transactions if _field(tx, "month") == month]

    def summarize_month(self, transactions: Iterable[Any], month: str) -> MonthlySummary:
        in_month = self.filter_by_month(transactions, month)
        income = sum((_amount(tx) for tx in in_month if _kind(tx) == INCOME), Decimal("0"))
        expense = sum((_amount(tx) for tx in in_month if _kind(tx) == EXPENSE), Decimal("0"))
        return MonthlySummary(
            month=month,
            total_income=float(round(income, 2)),
            total_expense=float(round(expense, 2)),
            balance=float(round(income - expense, 2)),
            transaction_count=len(in_month),
        )

    def month_options(self, today: Optional[dt.date] = None, count: Optional[int] = None) -> List[Dict[str, str]]:
        """
        Choices for the month selector: the current month and the ones before
        it, newest first.
        """
        today = today or dt.date.today()
        count = self._month_window if count is None else count
        options = []
        year, month = today.year, today.month
        for _ in range(count):
            options.append({
                "value": f"{year:04d}-{month:02d}",
                "label": f"{calendar.month_name[month]} {year}",
            })
            month -= 1
            if month == 0:
                year, month = year - 1, 12
        return options

    def recent(self, transactions: Iterable[Any], limit: Optional[int] = None) -> List[Any]:
        limit = self._recent_limit if limit is None else limit
        return list(transactions)[:limit]
