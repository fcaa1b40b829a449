"""
Derived Report Models

Everything here is computed by the engine from stored records and is never
persisted. Money stays Decimal; percentages are plain floats.
"""

from datetime import date
from decimal import Decimal
from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from household_ledger.models.ledger import (
    AlertSeverity,
    BillInstance,
    BudgetWarningType,
    Expense,
    Income,
    OneTimeBill,
    Payment,
)


class MonthSummary(BaseModel):
    """
    Bill-centric view of one month.

    ``current_month_*`` fields cover instances generated for the month;
    ``overdue_*`` fields cover still-open instances from earlier months.
    """

    month: date
    current_month_total: Decimal = Decimal("0")
    current_month_paid: Decimal = Decimal("0")
    current_month_unpaid: Decimal = Decimal("0")
    current_month_count: int = 0
    overdue_total: Decimal = Decimal("0")
    overdue_count: int = 0
    total_due: Decimal = Decimal("0")
    total_paid: Decimal = Decimal("0")
    has_overdue: bool = False
    is_on_track: bool = True
    completion_percentage: float = Field(default=0.0, ge=0.0)


class DashboardData(BaseModel):
    total_income: Decimal = Decimal("0")
    total_fixed_bills: Decimal = Decimal("0")
    total_one_time_bills: Decimal = Decimal("0")
    total_expenses: Decimal = Decimal("0")
    total_spent: Decimal = Decimal("0")
    remaining_balance: Decimal = Decimal("0")
    spent_percentage: float = 0.0
    daily_average: Decimal = Decimal("0")
    projected_balance: Decimal = Decimal("0")


class CategorySpending(BaseModel):
    category: str
    amount: Decimal
    percentage: float


class UpcomingBill(BaseModel):
    """A fixed or one-time bill falling due within the upcoming window."""

    kind: Literal["fixed", "one_time"]
    bill_id: UUID
    name: str
    amount: Decimal
    due_date: date
    category: Optional[str] = None


class FinancialSummary(BaseModel):
    """Income/expense-centric view of one month (the dashboard)."""

    month: date
    dashboard: DashboardData
    category_breakdown: list[CategorySpending] = Field(default_factory=list)
    upcoming_bills: list[UpcomingBill] = Field(default_factory=list)


class FinancialTotals(BaseModel):
    """The lighter aggregate the budget warnings are computed from."""

    total_income: Decimal
    total_spent: Decimal
    remaining_balance: Decimal


class BudgetAlert(BaseModel):
    type: BudgetWarningType
    severity: AlertSeverity
    message: str


class GenerationResult(BaseModel):
    month: date
    generated: int = Field(default=0, ge=0)
    skipped: bool = False
    message: str


class SweepResult(BaseModel):
    current_month: date
    count: int = Field(default=0, ge=0)


class MonthlyIncome(BaseModel):
    month: date
    total: Decimal
    by_person: dict[str, Decimal] = Field(default_factory=dict)
    records: list[Income] = Field(default_factory=list)


class MonthlyExpenses(BaseModel):
    month: date
    total: Decimal
    by_category: dict[str, Decimal] = Field(default_factory=dict)
    by_person: dict[str, Decimal] = Field(default_factory=dict)
    count: int = 0
    expenses: list[Expense] = Field(default_factory=list)


class CategoryStats(BaseModel):
    count: int = 0
    total: Decimal = Decimal("0")


class ExpenseStats(BaseModel):
    start: date
    end: date
    total: Decimal
    count: int
    average: Decimal
    daily_average: Decimal
    by_category: dict[str, CategoryStats] = Field(default_factory=dict)


class CalendarItem(BaseModel):
    """One line in a calendar day cell."""

    kind: Literal["expense", "unpaid_bill", "payment"]
    amount: Decimal
    description: str
    category: Optional[str] = None
    paid_by: Optional[str] = None
    status: Optional[str] = None
    is_fixed_bill: bool = False
    is_one_time_bill: bool = False


class CalendarDay(BaseModel):
    day: date
    items: list[CalendarItem] = Field(default_factory=list)

    @property
    def total(self) -> Decimal:
        return sum((item.amount for item in self.items), Decimal("0"))


class OverdueBills(BaseModel):
    instances: list[BillInstance] = Field(default_factory=list)
    total_outstanding: Decimal = Decimal("0")


class MonthInitialization(BaseModel):
    """Generation followed by the overdue sweep, as run when a month is opened."""

    generation: GenerationResult
    sweep: SweepResult


class OneTimeBillDetail(BaseModel):
    bill: OneTimeBill
    payments: list[Payment] = Field(default_factory=list)
