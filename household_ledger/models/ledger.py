"""
Core Data Models for the Household Ledger

These models define the strict schemas for every record the ledger stores:
recurring fixed bills, one-time bills (debts), their payments, the per-month
bill instances that are actually marked paid, income, and expenses.

DESIGN DECISION: We use Pydantic v2 models as the single source of truth
for record shapes. Storage backends convert to and from these models;
business logic never sees backend rows.
"""

import datetime as dt
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Annotated, Literal, Optional, Union
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

from household_ledger.dates import month_key


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class InstanceStatus(str, Enum):
    """Lifecycle of a bill instance within its month."""
    UNPAID = "unpaid"
    PARTIAL = "partial"
    PAID = "paid"
    OVERDUE = "overdue"


class OneTimeBillStatus(str, Enum):
    """Payment progress of a one-time bill. Always derived from amounts."""
    PENDING = "pending"
    PARTIAL = "partial"
    PAID = "paid"


class ExpenseCategory(str, Enum):
    FOOD = "food"
    TRANSPORT = "transport"
    ENTERTAINMENT = "entertainment"
    SHOPPING = "shopping"
    BILLS = "bills"
    OTHER = "other"


class IncomeType(str, Enum):
    """
    Known income types.

    Income.type is stored as free text; these are the values the household
    normally uses.
    """
    SALARY = "salary"
    FREELANCE = "freelance"
    BONUS = "bonus"
    OTHER = "other"


class BudgetWarningType(str, Enum):
    PERCENTAGE = "percentage"
    UPCOMING_BILLS = "upcoming_bills"
    INSUFFICIENT_FUNDS = "insufficient_funds"


class AlertSeverity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


# =============================================================================
# BILL TEMPLATES
# =============================================================================

class FixedBill(BaseModel):
    """
    A recurring monthly obligation (rent, internet, ...).

    The template is materialized into one BillInstance per month by the
    instance generator. Editing the template never rewrites past instances.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    name: str = Field(..., min_length=1, max_length=200)
    amount: Decimal = Field(..., gt=0, decimal_places=2)
    due_day: int = Field(
        ...,
        ge=1,
        le=31,
        description="Day of month; clamped to the month length when materialized"
    )
    category: Optional[str] = Field(default=None, max_length=50)
    is_active: bool = True
    created_by: str = Field(..., min_length=1)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class OneTimeBill(BaseModel):
    """
    A single obligation that may be paid in installments (e.g. a debt).

    CRITICAL: ``status`` is stored but must always equal
    ``derive_bill_status(paid_amount, total_amount)``. Every write path goes
    through the engine's status module.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    description: str = Field(..., min_length=1, max_length=200)
    total_amount: Decimal = Field(..., gt=0, decimal_places=2)
    paid_amount: Decimal = Field(default=Decimal("0"), ge=0, decimal_places=2)
    due_date: date
    status: OneTimeBillStatus = OneTimeBillStatus.PENDING
    created_by: str = Field(..., min_length=1)
    notes: Optional[str] = Field(default=None, max_length=1000)
    category: Optional[str] = Field(default=None, max_length=50)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @property
    def remaining_amount(self) -> Decimal:
        return self.total_amount - self.paid_amount


class Payment(BaseModel):
    """An installment paid against a one-time bill. Immutable once recorded."""
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: UUID = Field(default_factory=uuid4)
    bill_id: UUID
    amount: Decimal = Field(..., gt=0, decimal_places=2)
    date: dt.date
    paid_by: str = Field(..., min_length=1)
    notes: Optional[str] = Field(default=None, max_length=1000)
    created_at: datetime = Field(default_factory=utcnow)


# =============================================================================
# BILL INSTANCES
# =============================================================================

class FixedSource(BaseModel):
    """Instance materialized from a recurring fixed bill."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["fixed"] = "fixed"
    fixed_bill_id: UUID


class OneTimeSource(BaseModel):
    """Instance materialized from a one-time bill due in the month."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["one_time"] = "one_time"
    one_time_bill_id: UUID


InstanceSource = Annotated[
    Union[FixedSource, OneTimeSource],
    Field(discriminator="kind"),
]


class BillInstance(BaseModel):
    """
    The concrete occurrence of a bill in one month.

    This is the unit the household actually pays. Name, amount and category
    are snapshotted at generation time, so later template edits (or the
    parent being deleted) leave history untouched.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    source: InstanceSource
    name: str = Field(..., min_length=1, max_length=200)
    amount: Decimal = Field(..., ge=0, decimal_places=2)
    category: Optional[str] = Field(default=None, max_length=50)
    due_date: date
    month: date = Field(..., description="Month key (first day of month)")
    status: InstanceStatus = InstanceStatus.UNPAID
    paid_amount: Decimal = Field(default=Decimal("0"), ge=0, decimal_places=2)
    paid_date: Optional[date] = None
    paid_by: Optional[str] = None
    is_overdue: bool = False
    days_overdue: int = Field(default=0, ge=0)
    created_by: str = Field(..., min_length=1)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @field_validator("month")
    @classmethod
    def normalize_month(cls, v: date) -> date:
        return month_key(v)

    @property
    def fixed_bill_id(self) -> Optional[UUID]:
        if isinstance(self.source, FixedSource):
            return self.source.fixed_bill_id
        return None

    @property
    def one_time_bill_id(self) -> Optional[UUID]:
        if isinstance(self.source, OneTimeSource):
            return self.source.one_time_bill_id
        return None

    @property
    def remaining_amount(self) -> Decimal:
        return self.amount - self.paid_amount


# =============================================================================
# INCOME / EXPENSES / CONFIGURATION
# =============================================================================

class Income(BaseModel):
    """Income received by one household member for a month."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    person: str = Field(..., min_length=1)
    amount: Decimal = Field(..., gt=0, decimal_places=2)
    type: str = Field(default=IncomeType.SALARY.value, min_length=1, max_length=50)
    month: date
    notes: Optional[str] = Field(default=None, max_length=1000)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @field_validator("month")
    @classmethod
    def normalize_month(cls, v: date) -> date:
        return month_key(v)


class Expense(BaseModel):
    """An ad-hoc expense on a specific day."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    description: str = Field(..., min_length=1, max_length=200)
    amount: Decimal = Field(..., gt=0, decimal_places=2)
    date: dt.date
    category: ExpenseCategory = ExpenseCategory.OTHER
    paid_by: str = Field(..., min_length=1)
    notes: Optional[str] = Field(default=None, max_length=1000)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class BudgetWarning(BaseModel):
    """
    A pre-seeded warning rule read by the summarizer.

    ``threshold`` is a fraction of income (0.8 = 80%) and is only meaningful
    for percentage rules.
    """
    id: UUID = Field(default_factory=uuid4)
    type: BudgetWarningType
    threshold: Optional[float] = Field(default=None, gt=0.0, le=1.0)
    is_active: bool = True
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @model_validator(mode="after")
    def percentage_needs_threshold(self) -> "BudgetWarning":
        if self.type == BudgetWarningType.PERCENTAGE and self.threshold is None:
            raise ValueError("Percentage warnings require a threshold")
        return self


# =============================================================================
# INPUT MODELS - what callers submit (no ids, no derived fields)
# =============================================================================

class FixedBillCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=200)
    amount: Decimal
    due_day: int
    category: Optional[str] = Field(default=None, max_length=50)
    is_active: bool = True
    created_by: str


class FixedBillUpdate(BaseModel):
    """Partial update; unset fields are left alone."""
    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    amount: Optional[Decimal] = None
    due_day: Optional[int] = None
    category: Optional[str] = Field(default=None, max_length=50)
    is_active: Optional[bool] = None


class OneTimeBillCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    description: str = Field(..., min_length=1, max_length=200)
    total_amount: Decimal
    paid_amount: Decimal = Decimal("0")
    due_date: date
    created_by: str
    notes: Optional[str] = Field(default=None, max_length=1000)
    category: Optional[str] = Field(default=None, max_length=50)


class OneTimeBillUpdate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    description: Optional[str] = Field(default=None, min_length=1, max_length=200)
    total_amount: Optional[Decimal] = None
    paid_amount: Optional[Decimal] = None
    due_date: Optional[date] = None
    notes: Optional[str] = Field(default=None, max_length=1000)
    category: Optional[str] = Field(default=None, max_length=50)


class PaymentCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    bill_id: UUID
    amount: Decimal
    date: dt.date
    paid_by: str
    notes: Optional[str] = Field(default=None, max_length=1000)


class IncomeCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    person: str
    amount: Decimal
    type: str = IncomeType.SALARY.value
    month: date
    notes: Optional[str] = Field(default=None, max_length=1000)


class IncomeUpdate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    person: Optional[str] = None
    amount: Optional[Decimal] = None
    type: Optional[str] = None
    month: Optional[date] = None
    notes: Optional[str] = Field(default=None, max_length=1000)


class ExpenseCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    description: str = Field(..., min_length=1, max_length=200)
    amount: Decimal
    date: dt.date
    category: ExpenseCategory = ExpenseCategory.OTHER
    paid_by: str
    notes: Optional[str] = Field(default=None, max_length=1000)


class ExpenseUpdate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    description: Optional[str] = Field(default=None, min_length=1, max_length=200)
    amount: Optional[Decimal] = None
    date: Optional[dt.date] = None
    category: Optional[ExpenseCategory] = None
    paid_by: Optional[str] = None
    notes: Optional[str] = Field(default=None, max_length=1000)
