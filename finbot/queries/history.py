"""
Transaction History Queries

DESIGN DECISION: History views are computed, never stored.

Everything here is a pure function of (transactions, filter, today):
filter, sort newest first, group by day, then page through the day
groups. `today` is always passed in so results do not depend on the
wall clock.
"""

from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal
from itertools import groupby
from typing import Iterable, Optional

from pydantic import BaseModel, Field, field_validator

from finbot.models.transaction import Transaction, TransactionType


ALL = "ALL"
DEFAULT_PAGE_DAYS = 5


class HistoryFilter(BaseModel):
    """What the history view is narrowed to. Every criterion is optional."""
    
    type: str = Field(
        default=ALL,
        description="ALL, INCOME or EXPENSE"
    )
    category: str = Field(
        default=ALL,
        description="ALL or a category label"
    )
    month: Optional[str] = Field(
        default=None,
        pattern=r"^\d{4}-\d{2}$",
        description="Only this calendar month, as YYYY-MM"
    )
    search: str = Field(
        default="",
        description="Case-insensitive text matched against description, person, location"
    )
    
    @field_validator('type', mode='before')
    @classmethod
    def normalize_type(cls, v):
        if v is None:
            return ALL
        v = str(getattr(v, "value", v)).strip().upper()
        if v not in (ALL, TransactionType.INCOME.value, TransactionType.EXPENSE.value):
            raise ValueError(f"Unknown transaction type filter: {v}")
        return v


@dataclass
class DayGroup:
    """Transactions of one calendar day, with its display label."""
    day: date
    label: str
    transactions: list[Transaction] = field(default_factory=list)
    
    @property
    def income(self) -> Decimal:
        return sum(
            (t.amount for t in self.transactions if t.type == TransactionType.INCOME),
            Decimal(0),
        )
    
    @property
    def expense(self) -> Decimal:
        return sum(
            (t.amount for t in self.transactions if t.type == TransactionType.EXPENSE),
            Decimal(0),
        )


def matches(transaction: Transaction, criteria: HistoryFilter) -> bool:
    if criteria.type != ALL and transaction.type.value != criteria.type:
        return False
    if criteria.category != ALL and transaction.category != criteria.category:
        return False
    if criteria.month and not transaction.date.isoformat().startswith(criteria.month):
        return False
    
    needle = criteria.search.strip().casefold()
    if needle:
        haystack = " ".join(
            part for part in (transaction.description, transaction.person, transaction.location)
            if part
        ).casefold()
        if needle not in haystack:
            return False
    return True


def filter_transactions(
    transactions: Iterable[Transaction],
    criteria: Optional[HistoryFilter] = None,
) -> list[Transaction]:
    criteria = criteria or HistoryFilter()
    return [t for t in transactions if matches(t, criteria)]


def sort_newest_first(transactions: Iterable[Transaction]) -> list[Transaction]:
    """Newest date first; same-day items keep their relative order."""
    return sorted(transactions, key=lambda t: t.date, reverse=True)


def day_label(day: date, today: date) -> str:
    if day == today:
        return "Hôm nay"
    if day == today - timedelta(days=1):
        return "Hôm qua"
    return day.strftime("%d/%m/%Y")


def group_by_day(transactions: Iterable[Transaction], today: date) -> list[DayGroup]:
    """Group (already sorted) transactions into consecutive day groups."""
    return [
        DayGroup(day=day, label=day_label(day, today), transactions=list(items))
        for day, items in groupby(transactions, key=lambda t: t.date)
    ]


def paginate(groups: list[DayGroup], visible_days: int = DEFAULT_PAGE_DAYS) -> tuple[list[DayGroup], bool]:
    """
    Returns:
        (the first `visible_days` groups, whether more groups remain)
    """
    visible_days = max(0, visible_days)
    return groups[:visible_days], len(groups) > visible_days


def history_view(
    transactions: Iterable[Transaction],
    today: date,
    criteria: Optional[HistoryFilter] = None,
    visible_days: int = DEFAULT_PAGE_DAYS,
) -> tuple[list[DayGroup], bool]:
    """Filter, sort, group and paginate in one call."""
    ordered = sort_newest_first(filter_transactions(transactions, criteria))
    return paginate(group_by_day(ordered, today), visible_days)
