"""Query package: read-only views over the ledger."""

from finbot.queries.history import (
    DayGroup,
    HistoryFilter,
    filter_transactions,
    group_by_day,
    history_view,
    paginate,
    sort_newest_first,
)

__all__ = [
    "DayGroup",
    "HistoryFilter",
    "filter_transactions",
    "group_by_day",
    "history_view",
    "paginate",
    "sort_newest_first",
]
