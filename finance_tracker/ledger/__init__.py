"""
Ledger Package

Deterministic computations over entry lists: summaries, period reports,
installment schedules and settlements.
"""

from finance_tracker.ledger.debts import (
    add_months_same_day,
    settle,
    split_installments,
)
from finance_tracker.ledger.reports import (
    DEFAULT_ACCOUNT,
    AccountBalance,
    MovementGroup,
    Period,
    PeriodRow,
    Summary,
    balances_by_account,
    movement_groups,
    period_key,
    period_report,
    period_start,
    summarize,
    upcoming,
)

__all__ = [
    # Reports
    "DEFAULT_ACCOUNT",
    "AccountBalance",
    "MovementGroup",
    "Period",
    "PeriodRow",
    "Summary",
    "balances_by_account",
    "movement_groups",
    "period_key",
    "period_report",
    "period_start",
    "summarize",
    "upcoming",
    # Debts
    "add_months_same_day",
    "settle",
    "split_installments",
]
