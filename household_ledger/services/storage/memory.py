"""
In-Memory Storage Implementation

Dict-backed implementation of the ledger storage interface. Used by the
test-suite and for running the ledger without a database.

Transactions:
- A store-wide asyncio.Lock serializes every unit of work, so two payments
  against the same bill cannot interleave their read-modify-write.
- On entry the tables are snapshotted; if the block raises, the snapshot
  is restored and none of the block's writes survive.
- A write issued outside ``transaction()`` opens one for itself.

Records are copied on the way in and on the way out. Callers never hold a
reference into the store.
"""

import asyncio
from contextlib import asynccontextmanager
from datetime import date
from typing import Iterable, Optional, TypeVar
from uuid import UUID

from pydantic import BaseModel

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
    utcnow,
)
from household_ledger.services.storage.interface import (
    DuplicateError,
    LedgerStorageInterface,
    NotFoundError,
)

M = TypeVar("M", bound=BaseModel)

_TABLES = (
    "fixed_bills",
    "one_time_bills",
    "payments",
    "instances",
    "income",
    "expenses",
    "budget_warnings",
)


class InMemoryLedgerStorage(LedgerStorageInterface):
    """In-memory ledger store with snapshot/restore transactions."""

    def __init__(self):
        self._tables: dict[str, dict[UUID, BaseModel]] = {name: {} for name in _TABLES}
        self._lock = asyncio.Lock()
        self._owner: Optional[asyncio.Task] = None

    # -------------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------------

    def _owns_transaction(self) -> bool:
        return self._owner is not None and self._owner is asyncio.current_task()

    @asynccontextmanager
    async def transaction(self):
        if self._owns_transaction():
            # Nested: join the outer unit of work
            yield
            return

        async with self._lock:
            self._owner = asyncio.current_task()
            snapshot = {name: dict(rows) for name, rows in self._tables.items()}
            try:
                yield
            except BaseException:
                self._tables = snapshot
                raise
            finally:
                self._owner = None

    # -------------------------------------------------------------------------
    # Generic row helpers
    # -------------------------------------------------------------------------

    def _read(self, table: str, record_id: UUID) -> Optional[BaseModel]:
        row = self._tables[table].get(record_id)
        return row.model_copy(deep=True) if row is not None else None

    def _rows(self, table: str) -> list:
        return [row.model_copy(deep=True) for row in self._tables[table].values()]

    async def _insert(self, table: str, record: M) -> M:
        async with self.transaction():
            if record.id in self._tables[table]:
                raise DuplicateError(f"{table} record already exists: {record.id}")
            self._tables[table][record.id] = record.model_copy(deep=True)
        return record.model_copy(deep=True)

    async def _replace(self, table: str, record: M) -> M:
        async with self.transaction():
            if record.id not in self._tables[table]:
                raise NotFoundError(f"{table} record not found: {record.id}")
            stored = record.model_copy(update={"updated_at": utcnow()}, deep=True)
            self._tables[table][record.id] = stored
        return stored.model_copy(deep=True)

    async def _remove(self, table: str, record_id: UUID) -> bool:
        async with self.transaction():
            return self._tables[table].pop(record_id, None) is not None

    # -------------------------------------------------------------------------
    # Fixed bills
    # -------------------------------------------------------------------------

    async def create_fixed_bill(self, bill: FixedBill) -> FixedBill:
        return await self._insert("fixed_bills", bill)

    async def get_fixed_bill(self, bill_id: UUID) -> Optional[FixedBill]:
        return self._read("fixed_bills", bill_id)

    async def update_fixed_bill(self, bill: FixedBill) -> FixedBill:
        return await self._replace("fixed_bills", bill)

    async def delete_fixed_bill(self, bill_id: UUID) -> bool:
        return await self._remove("fixed_bills", bill_id)

    async def list_fixed_bills(self, active_only: bool = False) -> list[FixedBill]:
        bills = [b for b in self._rows("fixed_bills") if b.is_active or not active_only]
        return sorted(bills, key=lambda b: (not b.is_active, b.due_day, b.name))

    # -------------------------------------------------------------------------
    # One-time bills and payments
    # -------------------------------------------------------------------------

    async def create_one_time_bill(self, bill: OneTimeBill) -> OneTimeBill:
        return await self._insert("one_time_bills", bill)

    async def get_one_time_bill(self, bill_id: UUID) -> Optional[OneTimeBill]:
        return self._read("one_time_bills", bill_id)

    async def update_one_time_bill(self, bill: OneTimeBill) -> OneTimeBill:
        return await self._replace("one_time_bills", bill)

    async def delete_one_time_bill(self, bill_id: UUID) -> bool:
        async with self.transaction():
            if self._tables["one_time_bills"].pop(bill_id, None) is None:
                return False
            payments = self._tables["payments"]
            for payment_id in [p.id for p in payments.values() if p.bill_id == bill_id]:
                del payments[payment_id]
            return True

    async def list_one_time_bills(
        self,
        status: Optional[OneTimeBillStatus] = None,
        due_from: Optional[date] = None,
        due_to: Optional[date] = None,
        exclude_paid: bool = False,
    ) -> list[OneTimeBill]:
        bills = self._rows("one_time_bills")
        if status is not None:
            bills = [b for b in bills if b.status == status]
        if due_from is not None:
            bills = [b for b in bills if b.due_date >= due_from]
        if due_to is not None:
            bills = [b for b in bills if b.due_date <= due_to]
        if exclude_paid:
            bills = [b for b in bills if b.status != OneTimeBillStatus.PAID]
        return sorted(bills, key=lambda b: (b.status.value, b.due_date))

    async def create_payment(self, payment: Payment) -> Payment:
        return await self._insert("payments", payment)

    async def get_payment(self, payment_id: UUID) -> Optional[Payment]:
        return self._read("payments", payment_id)

    async def delete_payment(self, payment_id: UUID) -> bool:
        return await self._remove("payments", payment_id)

    async def list_payments(self, bill_id: UUID) -> list[Payment]:
        payments = [p for p in self._rows("payments") if p.bill_id == bill_id]
        return sorted(payments, key=lambda p: (p.date, p.created_at), reverse=True)

    # -------------------------------------------------------------------------
    # Bill instances
    # -------------------------------------------------------------------------

    @staticmethod
    def _source_key(instance: BillInstance) -> tuple:
        return (instance.month, instance.source.kind, instance.fixed_bill_id or instance.one_time_bill_id)

    async def create_instances(self, instances: Iterable[BillInstance]) -> int:
        count = 0
        async with self.transaction():
            taken = {self._source_key(i) for i in self._tables["instances"].values()}
            for instance in instances:
                key = self._source_key(instance)
                if key in taken:
                    raise DuplicateError(
                        f"Instance already exists for {instance.source.kind} bill in {instance.month:%Y-%m}"
                    )
                taken.add(key)
                await self._insert("instances", instance)
                count += 1
        return count

    async def get_instance(self, instance_id: UUID) -> Optional[BillInstance]:
        return self._read("instances", instance_id)

    async def update_instance(self, instance: BillInstance) -> BillInstance:
        return await self._replace("instances", instance)

    async def delete_instance(self, instance_id: UUID) -> bool:
        return await self._remove("instances", instance_id)

    async def count_instances(self, month: date) -> int:
        return sum(1 for i in self._tables["instances"].values() if i.month == month)

    async def list_instances(
        self,
        month: Optional[date] = None,
        before_month: Optional[date] = None,
        statuses: Optional[Iterable[InstanceStatus]] = None,
        overdue_only: bool = False,
    ) -> list[BillInstance]:
        instances = self._rows("instances")
        if month is not None:
            instances = [i for i in instances if i.month == month]
        if before_month is not None:
            instances = [i for i in instances if i.month < before_month]
        if statuses is not None:
            wanted = set(statuses)
            instances = [i for i in instances if i.status in wanted]
        if overdue_only:
            instances = [
                i for i in instances
                if i.status == InstanceStatus.OVERDUE or i.is_overdue
            ]
        return sorted(instances, key=lambda i: (i.due_date, i.name))

    # -------------------------------------------------------------------------
    # Income and expenses
    # -------------------------------------------------------------------------

    async def create_income(self, income: Income) -> Income:
        return await self._insert("income", income)

    async def get_income(self, income_id: UUID) -> Optional[Income]:
        return self._read("income", income_id)

    async def update_income(self, income: Income) -> Income:
        return await self._replace("income", income)

    async def delete_income(self, income_id: UUID) -> bool:
        return await self._remove("income", income_id)

    async def list_income(
        self,
        person: Optional[str] = None,
        month: Optional[date] = None,
    ) -> list[Income]:
        records = self._rows("income")
        if person is not None:
            records = [r for r in records if r.person == person]
        if month is not None:
            records = [r for r in records if r.month == month]
        records.sort(key=lambda r: r.person)
        records.sort(key=lambda r: r.month, reverse=True)
        return records

    async def create_expense(self, expense: Expense) -> Expense:
        return await self._insert("expenses", expense)

    async def get_expense(self, expense_id: UUID) -> Optional[Expense]:
        return self._read("expenses", expense_id)

    async def update_expense(self, expense: Expense) -> Expense:
        return await self._replace("expenses", expense)

    async def delete_expense(self, expense_id: UUID) -> bool:
        return await self._remove("expenses", expense_id)

    async def list_expenses(
        self,
        category: Optional[ExpenseCategory] = None,
        paid_by: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> list[Expense]:
        expenses = self._rows("expenses")
        if category is not None:
            expenses = [e for e in expenses if e.category == category]
        if paid_by is not None:
            expenses = [e for e in expenses if e.paid_by == paid_by]
        if date_from is not None:
            expenses = [e for e in expenses if e.date >= date_from]
        if date_to is not None:
            expenses = [e for e in expenses if e.date <= date_to]
        return sorted(expenses, key=lambda e: (e.date, e.created_at), reverse=True)

    # -------------------------------------------------------------------------
    # Budget warnings
    # -------------------------------------------------------------------------

    async def create_budget_warning(self, warning: BudgetWarning) -> BudgetWarning:
        return await self._insert("budget_warnings", warning)

    async def list_budget_warnings(self, active_only: bool = True) -> list[BudgetWarning]:
        return [w for w in self._rows("budget_warnings") if w.is_active or not active_only]
