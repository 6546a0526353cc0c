"""
Ledger Aggregator

Pure functions over a snapshot of the ledger. Nothing here reads a clock:
every function that depends on "now" takes the current date as an
argument, so results are deterministic for a given
(transactions, settings, today) triple.

IMPORTANT: PENDING transactions never contribute to any figure below.
Balance is recomputed from the full history on every call and never
stored.
"""

from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable, Literal, Optional

from finbot.models.transaction import (
    CATEGORY_ICONS,
    Category,
    Transaction,
    TransactionStatus,
    TransactionType,
    UserSettings,
)


Period = Literal["month", "year", "all"]

# Reported when the previous period is zero; a from-zero change has no ratio.
NO_BASELINE_DELTA = 100.0

ZERO = Decimal(0)


@dataclass(frozen=True)
class PeriodSummary:
    """Income and expense over some window."""
    income: Decimal = ZERO
    expense: Decimal = ZERO
    
    @property
    def net(self) -> Decimal:
        return self.income - self.expense


@dataclass(frozen=True)
class CategoryTotal:
    name: str
    total: Decimal
    icon: str


@dataclass(frozen=True)
class DailyTotals:
    day: int
    income: Decimal
    expense: Decimal


@dataclass(frozen=True)
class PeriodComparison:
    """Expense this week/month against the one before."""
    this_week: Decimal
    last_week: Decimal
    week_delta: float
    this_month: Decimal
    last_month: Decimal
    month_delta: float


@dataclass(frozen=True)
class DashboardStats:
    month: PeriodSummary
    lifetime: PeriodSummary
    balance: Decimal
    today_expense: Decimal
    daily_limit_ratio: Optional[float]
    pending_count: int


# =============================================================================
# FILTERS
# =============================================================================

def confirmed(transactions: Iterable[Transaction]) -> list[Transaction]:
    return [t for t in transactions if t.status == TransactionStatus.CONFIRMED]


def pending(transactions: Iterable[Transaction]) -> list[Transaction]:
    return [t for t in transactions if t.status == TransactionStatus.PENDING]


def in_month(transaction: Transaction, year: int, month: int) -> bool:
    return transaction.date.year == year and transaction.date.month == month


def filter_period(
    transactions: Iterable[Transaction],
    period: Period,
    today: date,
) -> list[Transaction]:
    """Confirmed transactions in the current month, current year, or ever."""
    items = confirmed(transactions)
    if period == "month":
        return [t for t in items if in_month(t, today.year, today.month)]
    if period == "year":
        return [t for t in items if t.date.year == today.year]
    if period == "all":
        return items
    raise ValueError(f"Unknown period: {period!r}")


# =============================================================================
# SUMS AND BALANCE
# =============================================================================

def sum_amounts(
    transactions: Iterable[Transaction],
    transaction_type: TransactionType,
) -> Decimal:
    """Sum of confirmed amounts of one type."""
    return sum(
        (t.amount for t in confirmed(transactions) if t.type == transaction_type),
        ZERO,
    )


def summarize(transactions: Iterable[Transaction]) -> PeriodSummary:
    items = confirmed(transactions)
    return PeriodSummary(
        income=sum_amounts(items, TransactionType.INCOME),
        expense=sum_amounts(items, TransactionType.EXPENSE),
    )


def period_summary(
    transactions: Iterable[Transaction],
    period: Period,
    today: date,
) -> PeriodSummary:
    return summarize(filter_period(transactions, period, today))


def balance(settings: UserSettings, transactions: Iterable[Transaction]) -> Decimal:
    """initialBalance + lifetime income - lifetime expense."""
    lifetime = summarize(transactions)
    return settings.initial_balance + lifetime.net


def correct_balance(
    settings: UserSettings,
    transactions: Iterable[Transaction],
    target: Decimal,
) -> UserSettings:
    """
    Derive the settings under which balance() equals `target`.
    
    Exact inverse of balance(); applying it twice with the same
    target yields the same settings.
    """
    lifetime = summarize(transactions)
    return settings.model_copy(
        update={"initial_balance": Decimal(target) - lifetime.net}
    )


# =============================================================================
# DAILY LIMIT
# =============================================================================

def today_expense(transactions: Iterable[Transaction], today: date) -> Decimal:
    return sum(
        (
            t.amount
            for t in confirmed(transactions)
            if t.type == TransactionType.EXPENSE and t.date == today
        ),
        ZERO,
    )


def daily_limit_ratio(spent: Decimal, daily_limit: Decimal) -> Optional[float]:
    """
    Share of the daily limit spent, clamped to 1.0.
    
    Returns None when no limit is configured (limit of zero).
    """
    if daily_limit <= 0:
        return None
    return min(float(spent / daily_limit), 1.0)


def todays_transactions(transactions: Iterable[Transaction], today: date) -> list[Transaction]:
    """Today's confirmed transactions, most recently added first."""
    return [t for t in reversed(confirmed(transactions)) if t.date == today]


# =============================================================================
# BREAKDOWNS AND COMPARISONS
# =============================================================================

def category_breakdown(
    transactions: Iterable[Transaction],
    transaction_type: TransactionType,
) -> list[CategoryTotal]:
    """
    Per-category totals for one type, largest first.
    
    Ties keep first-seen order.
    """
    totals: dict[str, Decimal] = {}
    for t in confirmed(transactions):
        if t.type == transaction_type:
            totals[t.category] = totals.get(t.category, ZERO) + t.amount
    
    ranked = sorted(totals.items(), key=lambda item: item[1], reverse=True)
    return [
        CategoryTotal(
            name=name,
            total=total,
            icon=CATEGORY_ICONS.get(name, CATEGORY_ICONS[Category.OTHER.value]),
        )
        for name, total in ranked
    ]


def percent_change(current: Decimal, previous: Decimal) -> float:
    """(current - previous) / previous * 100, or NO_BASELINE_DELTA if previous is 0."""
    if previous == 0:
        return NO_BASELINE_DELTA
    return float((current - previous) / previous * 100)


def week_start(day: date) -> date:
    """Sunday on or before `day`."""
    return day - timedelta(days=(day.weekday() + 1) % 7)


def previous_month(day: date) -> tuple[int, int]:
    if day.month == 1:
        return day.year - 1, 12
    return day.year, day.month - 1


def period_comparison(transactions: Iterable[Transaction], today: date) -> PeriodComparison:
    """Expense week-over-week (Sunday weeks) and month-over-month."""
    expenses = [t for t in confirmed(transactions) if t.type == TransactionType.EXPENSE]
    
    this_week_start = week_start(today)
    next_week_start = this_week_start + timedelta(days=7)
    last_week_start = this_week_start - timedelta(days=7)
    last_year, last_month_number = previous_month(today)
    
    this_week = sum(
        (t.amount for t in expenses if this_week_start <= t.date < next_week_start), ZERO
    )
    last_week = sum(
        (t.amount for t in expenses if last_week_start <= t.date < this_week_start), ZERO
    )
    this_month = sum(
        (t.amount for t in expenses if in_month(t, today.year, today.month)), ZERO
    )
    last_month = sum(
        (t.amount for t in expenses if in_month(t, last_year, last_month_number)), ZERO
    )
    
    return PeriodComparison(
        this_week=this_week,
        last_week=last_week,
        week_delta=percent_change(this_week, last_week),
        this_month=this_month,
        last_month=last_month,
        month_delta=percent_change(this_month, last_month),
    )


def daily_series(transactions: Iterable[Transaction], today: date) -> list[DailyTotals]:
    """Income/expense per day of the current month."""
    first = today.replace(day=1)
    next_year, next_month = (
        (today.year + 1, 1) if today.month == 12 else (today.year, today.month + 1)
    )
    days_in_month = (date(next_year, next_month, 1) - first).days
    
    income = [ZERO] * days_in_month
    expense = [ZERO] * days_in_month
    for t in filter_period(transactions, "month", today):
        index = t.date.day - 1
        if t.type == TransactionType.INCOME:
            income[index] += t.amount
        else:
            expense[index] += t.amount
    
    return [
        DailyTotals(day=i + 1, income=income[i], expense=expense[i])
        for i in range(days_in_month)
    ]


def dashboard_stats(
    settings: UserSettings,
    transactions: Iterable[Transaction],
    today: date,
) -> DashboardStats:
    items = list(transactions)
    spent_today = today_expense(items, today)
    return DashboardStats(
        month=period_summary(items, "month", today),
        lifetime=summarize(items),
        balance=balance(settings, items),
        today_expense=spent_today,
        daily_limit_ratio=daily_limit_ratio(spent_today, settings.daily_limit),
        pending_count=len(pending(items)),
    )
