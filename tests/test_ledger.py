"""
Tests for summaries, period reports and debt handling.
"""

import datetime as dt
from decimal import Decimal

import pytest

from finance_tracker.ledger import (
    DEFAULT_ACCOUNT,
    Period,
    add_months_same_day,
    balances_by_account,
    movement_groups,
    period_key,
    period_report,
    settle,
    split_installments,
    summarize,
    upcoming,
)
from finance_tracker.models.entry import EntryType


class TestSummaries:
    """Tests for totals and account balances."""

    def test_summarize(self, make_entry):
        entries = [
            make_entry("i", amount=1000, entry_type=EntryType.INCOME),
            make_entry("p", amount=200, entry_type=EntryType.PAYMENT),
            make_entry("m", amount=5, entry_type=EntryType.MICRO_EXPENSE),
            make_entry("d", amount=300, entry_type=EntryType.DEBT),
            make_entry("r", amount=40, entry_type=EntryType.RECEIVABLE),
        ]
        summary = summarize(entries)
        assert summary.income == Decimal("1000")
        assert summary.payments == Decimal("205")
        assert summary.debts == Decimal("300")
        assert summary.receivables == Decimal("40")
        assert summary.balance == Decimal("795")
        assert summary.count == 5

    def test_summarize_empty(self):
        summary = summarize([])
        assert summary.balance == Decimal("0")
        assert summary.count == 0

    def test_balances_follow_configured_order(self, make_entry):
        entries = [
            make_entry("a", amount=100, account="Nequi"),
            make_entry("b", amount=30, entry_type=EntryType.PAYMENT, account="Nequi"),
            make_entry("c", amount=10),
            make_entry("d", amount=7, account="Cash box"),
            make_entry("e", amount=999, entry_type=EntryType.DEBT, account="Nequi"),
        ]
        balances = balances_by_account(entries, ["Bancolombia", "Nequi", DEFAULT_ACCOUNT])
        assert [(b.account, b.balance) for b in balances] == [
            ("Bancolombia", Decimal("0")),
            ("Nequi", Decimal("70")),
            ("Otros", Decimal("10")),
            ("Cash box", Decimal("7")),
        ]


class TestPeriods:
    """Tests for period keys and reports."""

    @pytest.mark.parametrize("period,expected", [
        (Period.DAILY, "2024-03-07"),
        (Period.WEEKLY, "W2024-03-04"),
        (Period.MONTHLY, "2024-03"),
        (Period.QUARTERLY, "2024-Q1"),
    ])
    def test_period_key(self, period, expected):
        assert period_key(dt.date(2024, 3, 7), period) == expected

    def test_week_starts_on_monday(self):
        assert period_key(dt.date(2024, 3, 10), Period.WEEKLY) == "W2024-03-04"
        assert period_key(dt.date(2024, 3, 11), Period.WEEKLY) == "W2024-03-11"

    def test_quarter_boundaries(self):
        assert period_key(dt.date(2024, 4, 1), Period.QUARTERLY) == "2024-Q2"
        assert period_key(dt.date(2024, 12, 31), Period.QUARTERLY) == "2024-Q4"

    def test_period_report_newest_first(self, make_entry):
        entries = [
            make_entry("a", amount=100, day=dt.date(2024, 1, 5)),
            make_entry("b", amount=40, entry_type=EntryType.PAYMENT, day=dt.date(2024, 1, 20)),
            make_entry("c", amount=10, entry_type=EntryType.RECEIVABLE, day=dt.date(2024, 1, 21)),
            make_entry("d", amount=500, entry_type=EntryType.DEBT, day=dt.date(2024, 3, 1)),
        ]
        report = period_report(entries, Period.MONTHLY)
        assert [row.key for row in report] == ["2024-03", "2024-01"]
        january = report[1]
        assert january.income == Decimal("100")
        assert january.payments == Decimal("50")
        assert january.balance == Decimal("50")
        assert january.count == 3
        assert report[0].debts == Decimal("500")

    def test_movement_groups_skip_obligations(self, make_entry):
        entries = [
            make_entry("a", day=dt.date(2024, 1, 5)),
            make_entry("b", entry_type=EntryType.PAYMENT, day=dt.date(2024, 1, 5)),
            make_entry("d", entry_type=EntryType.DEBT, day=dt.date(2024, 1, 6)),
            make_entry("c", day=dt.date(2024, 1, 7)),
        ]
        groups = movement_groups(entries, Period.DAILY)
        assert [g.key for g in groups] == ["2024-01-07", "2024-01-05"]
        assert [e.id for e in groups[1].entries] == ["a", "b"]


class TestUpcoming:
    def test_orders_by_due_date(self, make_entry):
        entries = [
            make_entry("late", entry_type=EntryType.DEBT, due_date=dt.date(2024, 5, 1)),
            make_entry("soon", entry_type=EntryType.DEBT, due_date=dt.date(2024, 2, 1)),
            make_entry("nodue", entry_type=EntryType.DEBT, day=dt.date(2024, 3, 1)),
            make_entry("income", entry_type=EntryType.INCOME),
        ]
        assert [e.id for e in upcoming(entries)] == ["soon", "nodue", "late"]
        assert [e.id for e in upcoming(entries, limit=1)] == ["soon"]

    def test_receivables(self, make_entry):
        entries = [
            make_entry("d", entry_type=EntryType.DEBT),
            make_entry("r", entry_type=EntryType.RECEIVABLE),
        ]
        assert [e.id for e in upcoming(entries, EntryType.RECEIVABLE)] == ["r"]


class TestDebtSchedule:
    """Tests for installment splitting."""

    @pytest.mark.parametrize("start,months,expected", [
        (dt.date(2024, 1, 15), 1, dt.date(2024, 2, 15)),
        (dt.date(2024, 1, 31), 1, dt.date(2024, 2, 29)),
        (dt.date(2023, 1, 31), 1, dt.date(2023, 2, 28)),
        (dt.date(2024, 11, 30), 3, dt.date(2025, 2, 28)),
        (dt.date(2024, 5, 10), 0, dt.date(2024, 5, 10)),
    ])
    def test_add_months_same_day(self, start, months, expected):
        assert add_months_same_day(start, months) == expected

    def test_remainder_on_last_installment(self):
        """100 over 3 installments from 2024-01-15."""
        parts = split_installments(Decimal("100"), 3, dt.date(2024, 1, 15), note="Phone", updated_at=9)
        assert [p.amount for p in parts] == [Decimal("33"), Decimal("33"), Decimal("34")]
        assert [p.due_date for p in parts] == [
            dt.date(2024, 1, 15),
            dt.date(2024, 2, 15),
            dt.date(2024, 3, 15),
        ]
        assert all(p.type is EntryType.DEBT for p in parts)
        assert all(p.principal == Decimal("100") for p in parts)
        assert all(p.date == p.due_date for p in parts)
        assert all(p.updated_at == 9 for p in parts)
        assert len({p.id for p in parts}) == 3

    def test_parts_add_up(self):
        parts = split_installments(Decimal("1000000"), 7, dt.date(2024, 1, 31))
        assert sum(p.amount for p in parts) == Decimal("1000000")

    def test_single_installment(self):
        parts = split_installments(Decimal("250"), 1, dt.date(2024, 1, 1))
        assert [p.amount for p in parts] == [Decimal("250")]

    @pytest.mark.parametrize("amount,installments", [(0, 3), (-5, 3), (100, 0)])
    def test_rejects_non_positive(self, amount, installments):
        with pytest.raises(ValueError):
            split_installments(Decimal(amount), installments, dt.date(2024, 1, 1))


class TestSettle:
    """Tests for settling debts and collecting receivables."""

    def test_debt_becomes_payment(self, make_entry):
        debt = make_entry("d", amount=300, entry_type=EntryType.DEBT, note="Card", account="Nequi")
        payment = settle(debt, today=dt.date(2024, 6, 1), updated_at=77)
        assert payment.type is EntryType.PAYMENT
        assert payment.amount == Decimal("300")
        assert payment.note == "Debt payment: Card"
        assert payment.account == "Nequi"
        assert payment.date == dt.date(2024, 6, 1)
        assert payment.updated_at == 77
        assert payment.id != debt.id

    def test_receivable_becomes_income(self, make_entry):
        receivable = make_entry("r", entry_type=EntryType.RECEIVABLE, note="Loan to Ana")
        income = settle(receivable, today=dt.date(2024, 6, 1))
        assert income.type is EntryType.INCOME
        assert income.note == "Collection: Loan to Ana"

    def test_blank_note(self, make_entry):
        assert settle(make_entry("d", entry_type=EntryType.DEBT)).note == "Debt payment"

    def test_other_types_rejected(self, make_entry):
        with pytest.raises(ValueError):
            settle(make_entry("i", entry_type=EntryType.INCOME))
