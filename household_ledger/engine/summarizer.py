"""
Month Summarizer

Two views of a month:

- MonthSummary: bill-centric. What was billed this month, what is paid,
  and what is still open from earlier months.
- FinancialSummary: income/expense-centric (the dashboard). Income against
  active fixed bills, one-time balances due this month and expenses.

Plus the budget warnings computed from the dashboard totals.

Nothing here writes to storage. "Today" comes from the injected clock.
"""

from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional

from household_ledger.config import get_settings
from household_ledger.dates import (
    add_months,
    clamp_due_date,
    days_in_month,
    month_end,
    month_key,
)
from household_ledger.models.ledger import (
    AlertSeverity,
    BudgetWarningType,
    Expense,
    FixedBill,
    Income,
    InstanceStatus,
    OneTimeBill,
    OneTimeBillStatus,
)
from household_ledger.models.summary import (
    BudgetAlert,
    CategorySpending,
    DashboardData,
    FinancialSummary,
    FinancialTotals,
    MonthSummary,
    UpcomingBill,
)
from household_ledger.services.clock import Clock
from household_ledger.services.storage.interface import LedgerStorageInterface

ZERO = Decimal("0")
CENT = Decimal("0.01")

# Unpaid share of the month's bills above which the month is "behind"
ON_TRACK_UNPAID_SHARE = Decimal("0.5")

OPEN_STATUSES = (InstanceStatus.UNPAID, InstanceStatus.OVERDUE, InstanceStatus.PARTIAL)


def _money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def _percent(part: Decimal, whole: Decimal) -> float:
    if whole <= 0:
        return 0.0
    return float(part / whole * 100)


def _total(amounts: Iterable[Decimal]) -> Decimal:
    return sum(amounts, ZERO)


class MonthSummarizer:
    """
    Computes month summaries, the dashboard and budget warnings.

    Args:
        storage: Ledger store to read from
        clock: Source of "today" for projections and upcoming windows
        upcoming_days: Dashboard upcoming-bills window (default from settings)
        due_soon_days: Upcoming-bills warning window (default from settings)
    """

    def __init__(
        self,
        storage: LedgerStorageInterface,
        clock: Clock,
        upcoming_days: Optional[int] = None,
        due_soon_days: Optional[int] = None,
    ):
        settings = get_settings().app
        self._storage = storage
        self._clock = clock
        self._upcoming_days = upcoming_days or settings.upcoming_bills_days
        self._due_soon_days = due_soon_days or settings.due_soon_days

    # =========================================================================
    # BILL-CENTRIC SUMMARY
    # =========================================================================

    async def summarize_month(self, month: date) -> MonthSummary:
        key = month_key(month)
        current = await self._storage.list_instances(month=key)
        overdue = await self._storage.list_instances(before_month=key, statuses=OPEN_STATUSES)

        current_total = _total(i.amount for i in current)
        current_paid = _total(i.paid_amount for i in current if i.status == InstanceStatus.PAID)
        current_unpaid = _total(
            i.remaining_amount for i in current if i.status != InstanceStatus.PAID
        )
        overdue_total = _total(i.remaining_amount for i in overdue)

        return MonthSummary(
            month=key,
            current_month_total=current_total,
            current_month_paid=current_paid,
            current_month_unpaid=current_unpaid,
            current_month_count=len(current),
            overdue_total=overdue_total,
            overdue_count=len(overdue),
            total_due=current_unpaid + overdue_total,
            total_paid=current_paid,
            has_overdue=bool(overdue),
            is_on_track=not overdue and current_unpaid <= current_total * ON_TRACK_UNPAID_SHARE,
            completion_percentage=_percent(current_paid, current_total),
        )

    # =========================================================================
    # DASHBOARD
    # =========================================================================

    async def _month_records(
        self, key: date
    ) -> tuple[list[Income], list[FixedBill], list[OneTimeBill], list[Expense]]:
        end = month_end(key)
        income = await self._storage.list_income(month=key)
        fixed = await self._storage.list_fixed_bills(active_only=True)
        one_time = await self._storage.list_one_time_bills(due_from=key, due_to=end)
        expenses = await self._storage.list_expenses(date_from=key, date_to=end)
        return income, fixed, one_time, expenses

    @staticmethod
    def _totals(income, fixed, one_time, expenses) -> tuple[Decimal, Decimal, Decimal, Decimal]:
        return (
            _total(r.amount for r in income),
            _total(b.amount for b in fixed),
            # Balance still owed, not the original total
            _total(b.remaining_amount for b in one_time),
            _total(e.amount for e in expenses),
        )

    async def financial_totals(self, month: date) -> FinancialTotals:
        """Income, spending and what is left. The input to budget warnings."""
        records = await self._month_records(month_key(month))
        total_income, fixed, one_time, expenses = self._totals(*records)
        total_spent = fixed + one_time + expenses
        return FinancialTotals(
            total_income=total_income,
            total_spent=total_spent,
            remaining_balance=total_income - total_spent,
        )

    def _days_remaining(self, key: date, today: date) -> int:
        dim = days_in_month(key)
        if today >= add_months(key, 1):
            elapsed = dim
        elif today < key:
            elapsed = 0
        else:
            elapsed = today.day
        return max(0, dim - elapsed)

    async def summarize_financials(self, month: date) -> FinancialSummary:
        key = month_key(month)
        today = self._clock.today()
        income, fixed, one_time, expenses = await self._month_records(key)
        total_income, total_fixed, total_one_time, total_expenses = self._totals(
            income, fixed, one_time, expenses
        )

        total_spent = total_fixed + total_one_time + total_expenses
        remaining = total_income - total_spent
        # Expenses only: bills are not part of day-to-day spending
        daily_average = total_expenses / days_in_month(key)
        projected = remaining - daily_average * self._days_remaining(key, today)

        dashboard = DashboardData(
            total_income=total_income,
            total_fixed_bills=total_fixed,
            total_one_time_bills=total_one_time,
            total_expenses=total_expenses,
            total_spent=total_spent,
            remaining_balance=remaining,
            spent_percentage=_percent(total_spent, total_income),
            daily_average=_money(daily_average),
            projected_balance=_money(projected),
        )

        return FinancialSummary(
            month=key,
            dashboard=dashboard,
            category_breakdown=self._category_breakdown(expenses, total_expenses),
            upcoming_bills=self._upcoming_bills(key, today, fixed, one_time),
        )

    @staticmethod
    def _category_breakdown(expenses: list[Expense], total: Decimal) -> list[CategorySpending]:
        by_category: dict[str, Decimal] = {}
        for expense in expenses:
            category = expense.category.value
            by_category[category] = by_category.get(category, ZERO) + expense.amount

        breakdown = [
            CategorySpending(category=category, amount=amount, percentage=_percent(amount, total))
            for category, amount in by_category.items()
        ]
        breakdown.sort(key=lambda c: c.amount, reverse=True)
        return breakdown

    def _upcoming_bills(
        self,
        key: date,
        today: date,
        fixed: list[FixedBill],
        one_time: list[OneTimeBill],
    ) -> list[UpcomingBill]:
        window_end = today + timedelta(days=self._upcoming_days)
        upcoming = []

        for bill in fixed:
            due = clamp_due_date(key, bill.due_day)
            if today <= due <= window_end:
                upcoming.append(UpcomingBill(
                    kind="fixed",
                    bill_id=bill.id,
                    name=bill.name,
                    amount=bill.amount,
                    due_date=due,
                    category=bill.category,
                ))

        for bill in one_time:
            if bill.status != OneTimeBillStatus.PAID and today <= bill.due_date <= window_end:
                upcoming.append(UpcomingBill(
                    kind="one_time",
                    bill_id=bill.id,
                    name=bill.description,
                    amount=bill.remaining_amount,
                    due_date=bill.due_date,
                    category=bill.category,
                ))

        upcoming.sort(key=lambda b: b.due_date)
        return upcoming

    # =========================================================================
    # BUDGET WARNINGS
    # =========================================================================

    async def budget_warnings(self, month: date) -> list[BudgetAlert]:
        """
        Evaluate every warning for the month.

        The checks are independent; several can fire at once. Only the
        percentage check is driven by configured rules, the rest always run.
        """
        key = month_key(month)
        today = self._clock.today()
        alerts: list[BudgetAlert] = []

        totals = await self.financial_totals(key)
        spent_pct = _percent(totals.total_spent, totals.total_income)
        remaining = totals.remaining_balance

        rules = await self._storage.list_budget_warnings(active_only=True)
        for rule in rules:
            if rule.type != BudgetWarningType.PERCENTAGE or not rule.threshold:
                continue
            if spent_pct >= rule.threshold * 100:
                if spent_pct >= 90:
                    severity = AlertSeverity.CRITICAL
                elif spent_pct >= 80:
                    severity = AlertSeverity.WARNING
                else:
                    severity = AlertSeverity.INFO
                alerts.append(BudgetAlert(
                    type=BudgetWarningType.PERCENTAGE,
                    severity=severity,
                    message=(
                        f"You've spent {spent_pct:.1f}% of your monthly income "
                        f"({totals.total_spent:.2f} / {totals.total_income:.2f})"
                    ),
                ))

        due_soon = await self._storage.list_one_time_bills(
            due_from=today,
            due_to=today + timedelta(days=self._due_soon_days),
            exclude_paid=True,
        )
        if due_soon:
            due_soon_total = _total(b.remaining_amount for b in due_soon)
            alerts.append(BudgetAlert(
                type=BudgetWarningType.UPCOMING_BILLS,
                severity=AlertSeverity.WARNING,
                message=(
                    f"You have {len(due_soon)} bill(s) due in the next "
                    f"{self._due_soon_days} days, totaling ${due_soon_total:.2f}"
                ),
            ))

        if remaining < 0:
            alerts.append(BudgetAlert(
                type=BudgetWarningType.INSUFFICIENT_FUNDS,
                severity=AlertSeverity.CRITICAL,
                message=f"Your expenses exceed your income by ${abs(remaining):.2f}",
            ))

        rest_of_month = await self._storage.list_one_time_bills(
            due_from=today,
            due_to=month_end(key),
            exclude_paid=True,
        )
        upcoming_total = _total(b.remaining_amount for b in rest_of_month)
        if 0 <= remaining < upcoming_total:
            alerts.append(BudgetAlert(
                type=BudgetWarningType.INSUFFICIENT_FUNDS,
                severity=AlertSeverity.WARNING,
                message=(
                    f"Your remaining balance (${remaining:.2f}) may not cover "
                    f"upcoming bills (${upcoming_total:.2f})"
                ),
            ))

        return alerts
