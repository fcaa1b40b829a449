"""
Ledger Engine

Month tracking and bill-lifecycle reconciliation:

1. InstanceGenerator - templates and due one-time bills -> month instances
2. PaymentReconciler - applies payments, keeps parent bills in step
3. OverdueSweeper - ages instances left unpaid in earlier months
4. MonthSummarizer - month summary, dashboard and budget warnings
"""

from household_ledger.engine.calendar import build_calendar
from household_ledger.engine.errors import (
    EntityNotFoundError,
    LedgerError,
    LedgerValidationError,
)
from household_ledger.engine.generator import InstanceGenerator
from household_ledger.engine.reconciler import PaymentReconciler, recompute_bill_status
from household_ledger.engine.status import (
    derive_bill_status,
    derive_instance_status,
    derive_status,
)
from household_ledger.engine.summarizer import MonthSummarizer
from household_ledger.engine.sweeper import OverdueSweeper

__all__ = [
    "build_calendar",
    "EntityNotFoundError",
    "LedgerError",
    "LedgerValidationError",
    "InstanceGenerator",
    "PaymentReconciler",
    "recompute_bill_status",
    "derive_bill_status",
    "derive_instance_status",
    "derive_status",
    "MonthSummarizer",
    "OverdueSweeper",
]
