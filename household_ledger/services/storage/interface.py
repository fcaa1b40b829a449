"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Run against a relational database in production
2. Use in-memory storage for testing
3. Keep business logic decoupled from storage implementation

The interface is intentionally simple - we're not building a full ORM.
Just the CRUD and month-scoped queries the ledger engine needs, plus
``transaction()`` for all-or-nothing multi-record writes.
"""

from abc import ABC, abstractmethod
from datetime import date
from typing import AsyncContextManager, Iterable, Optional
from uuid import UUID

from household_ledger.models.ledger import (
    BillInstance,
    BudgetWarning,
    Expense,
    ExpenseCategory,
    FixedBill,
    Income,
    InstanceStatus,
    OneTimeBill,
    OneTimeBillStatus,
    Payment,
)


class LedgerStorageInterface(ABC):
    """
    Abstract interface for ledger storage operations.

    Any storage implementation (in-memory, SQL, ...) must implement these
    methods. Conventions shared by every implementation:

    - ``get_*`` returns None when the record does not exist
    - ``update_*`` raises NotFoundError when the record does not exist
    - ``delete_*`` returns False when there was nothing to delete
    - every write issued inside ``transaction()`` commits or rolls back
      together; a write issued outside one is its own transaction
    """

    # -------------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------------

    @abstractmethod
    def transaction(self) -> AsyncContextManager[None]:
        """
        Open an all-or-nothing unit of work.

        Usage:
            async with storage.transaction():
                await storage.update_instance(instance)
                await storage.update_one_time_bill(parent)

        If the block raises, none of its writes are visible afterwards.
        Nested calls join the outermost transaction.
        """

    # -------------------------------------------------------------------------
    # Fixed bills
    # -------------------------------------------------------------------------

    @abstractmethod
    async def create_fixed_bill(self, bill: FixedBill) -> FixedBill:
        pass

    @abstractmethod
    async def get_fixed_bill(self, bill_id: UUID) -> Optional[FixedBill]:
        pass

    @abstractmethod
    async def update_fixed_bill(self, bill: FixedBill) -> FixedBill:
        pass

    @abstractmethod
    async def delete_fixed_bill(self, bill_id: UUID) -> bool:
        """Delete a template. Its historical instances are left in place."""

    @abstractmethod
    async def list_fixed_bills(self, active_only: bool = False) -> list[FixedBill]:
        pass

    # -------------------------------------------------------------------------
    # One-time bills and their payments
    # -------------------------------------------------------------------------

    @abstractmethod
    async def create_one_time_bill(self, bill: OneTimeBill) -> OneTimeBill:
        pass

    @abstractmethod
    async def get_one_time_bill(self, bill_id: UUID) -> Optional[OneTimeBill]:
        pass

    @abstractmethod
    async def update_one_time_bill(self, bill: OneTimeBill) -> OneTimeBill:
        pass

    @abstractmethod
    async def delete_one_time_bill(self, bill_id: UUID) -> bool:
        """
        Delete a one-time bill and, with it, its payments.

        Instances generated from the bill keep their (now dangling) source
        reference and their own snapshot of name and amount.
        """

    @abstractmethod
    async def list_one_time_bills(
        self,
        status: Optional[OneTimeBillStatus] = None,
        due_from: Optional[date] = None,
        due_to: Optional[date] = None,
        exclude_paid: bool = False,
    ) -> list[OneTimeBill]:
        """
        List one-time bills with optional filters.

        Args:
            status: Only bills with this status
            due_from: Only bills due on or after this date
            due_to: Only bills due on or before this date
            exclude_paid: Drop bills whose status is paid
        """

    @abstractmethod
    async def create_payment(self, payment: Payment) -> Payment:
        pass

    @abstractmethod
    async def get_payment(self, payment_id: UUID) -> Optional[Payment]:
        pass

    @abstractmethod
    async def delete_payment(self, payment_id: UUID) -> bool:
        pass

    @abstractmethod
    async def list_payments(self, bill_id: UUID) -> list[Payment]:
        """Payments recorded against one bill, newest first."""

    # -------------------------------------------------------------------------
    # Bill instances
    # -------------------------------------------------------------------------

    @abstractmethod
    async def create_instances(self, instances: Iterable[BillInstance]) -> int:
        """
        Insert instances in bulk. Returns the number inserted.

        Raises:
            DuplicateError: an instance for the same (month, source bill)
                already exists
        """

    @abstractmethod
    async def get_instance(self, instance_id: UUID) -> Optional[BillInstance]:
        pass

    @abstractmethod
    async def update_instance(self, instance: BillInstance) -> BillInstance:
        pass

    @abstractmethod
    async def delete_instance(self, instance_id: UUID) -> bool:
        pass

    @abstractmethod
    async def count_instances(self, month: date) -> int:
        """Number of instances whose month key equals ``month``."""

    @abstractmethod
    async def list_instances(
        self,
        month: Optional[date] = None,
        before_month: Optional[date] = None,
        statuses: Optional[Iterable[InstanceStatus]] = None,
        overdue_only: bool = False,
    ) -> list[BillInstance]:
        """
        List instances with optional filters.

        Args:
            month: Only instances of this month key
            before_month: Only instances whose month key is strictly earlier
            statuses: Only instances in one of these statuses
            overdue_only: Only instances with status overdue OR is_overdue set
        """

    # -------------------------------------------------------------------------
    # Income and expenses
    # -------------------------------------------------------------------------

    @abstractmethod
    async def create_income(self, income: Income) -> Income:
        pass

    @abstractmethod
    async def get_income(self, income_id: UUID) -> Optional[Income]:
        pass

    @abstractmethod
    async def update_income(self, income: Income) -> Income:
        pass

    @abstractmethod
    async def delete_income(self, income_id: UUID) -> bool:
        pass

    @abstractmethod
    async def list_income(
        self,
        person: Optional[str] = None,
        month: Optional[date] = None,
    ) -> list[Income]:
        """Income records, newest month first then by person."""

    @abstractmethod
    async def create_expense(self, expense: Expense) -> Expense:
        pass

    @abstractmethod
    async def get_expense(self, expense_id: UUID) -> Optional[Expense]:
        pass

    @abstractmethod
    async def update_expense(self, expense: Expense) -> Expense:
        pass

    @abstractmethod
    async def delete_expense(self, expense_id: UUID) -> bool:
        pass

    @abstractmethod
    async def list_expenses(
        self,
        category: Optional[ExpenseCategory] = None,
        paid_by: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> list[Expense]:
        """Expenses, newest first. Date bounds are inclusive."""

    # -------------------------------------------------------------------------
    # Budget warning rules
    # -------------------------------------------------------------------------

    @abstractmethod
    async def create_budget_warning(self, warning: BudgetWarning) -> BudgetWarning:
        pass

    @abstractmethod
    async def list_budget_warnings(self, active_only: bool = True) -> list[BudgetWarning]:
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
