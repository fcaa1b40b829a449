"""
Data Models Package

This package contains all Pydantic models used by the household ledger.
All data flowing through the system must conform to these schemas.
"""

from household_ledger.models.ledger import (
    AlertSeverity,
    BillInstance,
    BudgetWarning,
    BudgetWarningType,
    Expense,
    ExpenseCategory,
    ExpenseCreate,
    ExpenseUpdate,
    FixedBill,
    FixedBillCreate,
    FixedBillUpdate,
    FixedSource,
    Income,
    IncomeCreate,
    IncomeType,
    IncomeUpdate,
    InstanceSource,
    InstanceStatus,
    OneTimeBill,
    OneTimeBillCreate,
    OneTimeBillStatus,
    OneTimeBillUpdate,
    OneTimeSource,
    Payment,
    PaymentCreate,
)
from household_ledger.models.summary import (
    BudgetAlert,
    CalendarDay,
    CalendarItem,
    CategorySpending,
    CategoryStats,
    DashboardData,
    ExpenseStats,
    FinancialSummary,
    FinancialTotals,
    GenerationResult,
    MonthInitialization,
    MonthlyExpenses,
    MonthlyIncome,
    MonthSummary,
    OneTimeBillDetail,
    OverdueBills,
    SweepResult,
    UpcomingBill,
)
from household_ledger.models.result import ErrorKind, OperationResult
from household_ledger.models.events import (
    EventSeverity,
    LedgerEvent,
    LedgerEventBuilder,
    LedgerEventType,
)
from household_ledger.models.validation import ValidationIssue, ValidationResult

__all__ = [
    # Ledger records
    "AlertSeverity",
    "BillInstance",
    "BudgetWarning",
    "BudgetWarningType",
    "Expense",
    "ExpenseCategory",
    "ExpenseCreate",
    "ExpenseUpdate",
    "FixedBill",
    "FixedBillCreate",
    "FixedBillUpdate",
    "FixedSource",
    "Income",
    "IncomeCreate",
    "IncomeType",
    "IncomeUpdate",
    "InstanceSource",
    "InstanceStatus",
    "OneTimeBill",
    "OneTimeBillCreate",
    "OneTimeBillStatus",
    "OneTimeBillUpdate",
    "OneTimeSource",
    "Payment",
    "PaymentCreate",
    # Reports
    "BudgetAlert",
    "CalendarDay",
    "CalendarItem",
    "CategorySpending",
    "CategoryStats",
    "DashboardData",
    "ExpenseStats",
    "FinancialSummary",
    "FinancialTotals",
    "GenerationResult",
    "MonthInitialization",
    "MonthlyExpenses",
    "MonthlyIncome",
    "MonthSummary",
    "OneTimeBillDetail",
    "OverdueBills",
    "SweepResult",
    "UpcomingBill",
    # Results
    "ErrorKind",
    "OperationResult",
    # Events
    "EventSeverity",
    "LedgerEvent",
    "LedgerEventBuilder",
    "LedgerEventType",
    # Validation
    "ValidationIssue",
    "ValidationResult",
]
