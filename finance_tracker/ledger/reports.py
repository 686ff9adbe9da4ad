"""
Summaries and Period Reports

DESIGN DECISION: Reports are DETERMINISTIC functions of the entry list.
They never touch storage or remotes; callers hand in whatever set they
currently hold. All sums are Decimal so totals never drift.

Grouping keys:
- daily:     2024-03-07
- weekly:    W2024-03-04 (the Monday that starts the week)
- monthly:   2024-03
- quarterly: 2024-Q1
"""

import datetime as dt
from collections.abc import Iterable
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, computed_field

from finance_tracker.models.entry import OUTFLOW_TYPES, Entry, EntryType


DEFAULT_ACCOUNT = "Otros"


class Period(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"


# =============================================================================
# RESULT MODELS
# =============================================================================

class Summary(BaseModel):
    """Totals over a set of entries."""
    income: Decimal = Decimal("0")
    payments: Decimal = Decimal("0")
    debts: Decimal = Decimal("0")
    receivables: Decimal = Decimal("0")
    balance: Decimal = Decimal("0")
    count: int = 0


class AccountBalance(BaseModel):
    account: str
    balance: Decimal = Decimal("0")


class PeriodRow(BaseModel):
    """One period of a report, newest first in a report list."""
    key: str
    start: dt.date
    income: Decimal = Decimal("0")
    payments: Decimal = Decimal("0")
    debts: Decimal = Decimal("0")
    count: int = 0

    @computed_field
    @property
    def balance(self) -> Decimal:
        return self.income - self.payments


class MovementGroup(BaseModel):
    key: str
    start: dt.date
    entries: list[Entry] = Field(default_factory=list)


# =============================================================================
# SUMMARIES
# =============================================================================

def summarize(entries: Iterable[Entry]) -> Summary:
    """
    Income, payments (every outflow type), debts and receivables.

    balance = income - payments; debts and receivables are obligations,
    not cash movements, so they stay out of it.
    """
    summary = Summary()
    for entry in entries:
        if entry.type is EntryType.INCOME:
            summary.income += entry.amount
        elif entry.type in OUTFLOW_TYPES:
            summary.payments += entry.amount
        elif entry.type is EntryType.DEBT:
            summary.debts += entry.amount
        elif entry.type is EntryType.RECEIVABLE:
            summary.receivables += entry.amount
        summary.count += 1
    summary.balance = summary.income - summary.payments
    return summary


def balances_by_account(
    entries: Iterable[Entry],
    accounts: Iterable[str],
) -> list[AccountBalance]:
    """
    Net cash per account: income adds, outflows subtract.

    Entries without an account count towards "Otros". Rows come back in
    the configured order; accounts seen only on entries follow after.
    """
    totals: dict[str, Decimal] = {name: Decimal("0") for name in accounts}
    for entry in entries:
        account = entry.account or DEFAULT_ACCOUNT
        totals.setdefault(account, Decimal("0"))
        if entry.type is EntryType.INCOME:
            totals[account] += entry.amount
        elif entry.type in OUTFLOW_TYPES:
            totals[account] -= entry.amount
    return [AccountBalance(account=name, balance=value) for name, value in totals.items()]


# =============================================================================
# PERIODS
# =============================================================================

def period_start(day: dt.date, period: Period) -> dt.date:
    """First day of the period containing `day`; weeks start on Monday."""
    if period is Period.DAILY:
        return day
    if period is Period.WEEKLY:
        return day - dt.timedelta(days=day.weekday())
    if period is Period.MONTHLY:
        return day.replace(day=1)
    return dt.date(day.year, ((day.month - 1) // 3) * 3 + 1, 1)


def period_key(day: dt.date, period: Period) -> str:
    start = period_start(day, period)
    if period is Period.DAILY:
        return start.isoformat()
    if period is Period.WEEKLY:
        return f"W{start.isoformat()}"
    if period is Period.MONTHLY:
        return f"{start.year}-{start.month:02d}"
    return f"{start.year}-Q{(start.month - 1) // 3 + 1}"


def period_report(entries: Iterable[Entry], period: Period) -> list[PeriodRow]:
    """
    Totals per period, newest period first.

    Income counts as income, debts as debts, every other type (receivables
    included) as payments.
    """
    rows: dict[str, PeriodRow] = {}
    for entry in entries:
        key = period_key(entry.date, period)
        row = rows.get(key)
        if row is None:
            row = rows[key] = PeriodRow(key=key, start=period_start(entry.date, period))
        if entry.type is EntryType.INCOME:
            row.income += entry.amount
        elif entry.type is EntryType.DEBT:
            row.debts += entry.amount
        else:
            row.payments += entry.amount
        row.count += 1
    return sorted(rows.values(), key=lambda r: r.start, reverse=True)


def movement_groups(entries: Iterable[Entry], period: Period) -> list[MovementGroup]:
    """Cash movements (income and outflows) grouped per period, newest first."""
    groups: dict[str, MovementGroup] = {}
    for entry in entries:
        if entry.type is not EntryType.INCOME and entry.type not in OUTFLOW_TYPES:
            continue
        key = period_key(entry.date, period)
        group = groups.get(key)
        if group is None:
            group = groups[key] = MovementGroup(key=key, start=period_start(entry.date, period))
        group.entries.append(entry)
    return sorted(groups.values(), key=lambda g: g.start, reverse=True)


def upcoming(
    entries: Iterable[Entry],
    entry_type: EntryType = EntryType.DEBT,
    limit: Optional[int] = None,
) -> list[Entry]:
    """Debts or receivables ordered by due date (entry date when no due date)."""
    selected = [entry for entry in entries if entry.type is entry_type]
    selected.sort(key=lambda e: (e.due_date or e.date, e.id))
    return selected[:limit] if limit else selected
