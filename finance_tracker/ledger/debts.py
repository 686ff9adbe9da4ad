"""
Debt Schedules and Settlement

A debt paid in installments is recorded as one debt entry per installment,
each due a month after the previous one. Settling a debt (or collecting a
receivable) records the matching cash movement dated today; the original
obligation entry is left in place.
"""

import calendar
import datetime as dt
from decimal import Decimal
from typing import Optional

from finance_tracker.models.entry import Entry, EntryType, now_ms


def add_months_same_day(day: dt.date, months: int) -> dt.date:
    """
    Same day of month, `months` later; clamped to the last day when the
    target month is shorter (Jan 31 + 1 month -> Feb 28/29).
    """
    index = day.month - 1 + months
    year = day.year + index // 12
    month = index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return dt.date(year, month, min(day.day, last_day))


def split_installments(
    amount: Decimal,
    installments: int,
    first_due: dt.date,
    note: str = "",
    who: str = "",
    category: str = "",
    account: str = "",
    updated_at: Optional[int] = None,
) -> list[Entry]:
    """
    Split a debt into monthly installments.

    Each installment is amount // installments; the remainder goes on the
    last one so the parts always add up to the total. 100 over 3 gives
    33, 33, 34.

    Raises:
        ValueError: if amount or installments is not positive
    """
    amount = Decimal(amount)
    if amount <= 0:
        raise ValueError("Debt amount must be positive")
    if installments <= 0:
        raise ValueError("Installments must be positive")

    base = amount // installments
    remainder = amount - base * installments
    stamp = updated_at if updated_at is not None else now_ms()

    entries = []
    for index in range(installments):
        due = add_months_same_day(first_due, index)
        part = base + (remainder if index == installments - 1 else 0)
        entries.append(Entry(
            type=EntryType.DEBT,
            amount=part,
            principal=amount,
            date=due,
            due_date=due,
            note=note,
            who=who,
            category=category,
            account=account,
            updated_at=stamp,
        ))
    return entries


def settle(
    entry: Entry,
    today: Optional[dt.date] = None,
    updated_at: Optional[int] = None,
) -> Entry:
    """
    The cash movement that settles a debt or collects a receivable.

    debt -> payment ("Debt payment: <note>")
    receivable -> income ("Collection: <note>")

    Raises:
        ValueError: for any other entry type
    """
    if entry.type is EntryType.DEBT:
        settled_type, label = EntryType.PAYMENT, "Debt payment"
    elif entry.type is EntryType.RECEIVABLE:
        settled_type, label = EntryType.INCOME, "Collection"
    else:
        raise ValueError(f"Only debts and receivables can be settled, not {entry.type.value}")

    return Entry(
        type=settled_type,
        amount=entry.amount,
        date=today or dt.date.today(),
        note=f"{label}: {entry.note}" if entry.note else label,
        who=entry.who,
        category=entry.category,
        account=entry.account,
        tags=list(entry.tags),
        updated_at=updated_at if updated_at is not None else now_ms(),
    )
