"""
SQL Storage Implementation

Relational backend built on SQLModel (SQLAlchemy underneath). Works with
SQLite for a single household install and with PostgreSQL unchanged.

DESIGN DECISION: Table rows are separate classes from the domain models.
Rows are converted to pydantic models on the way out, so business logic
never touches a Session or a lazy-loaded attribute.

Guarantees the engine relies on:
- ``transaction()`` is a single Session: committed on success, rolled back
  on any error
- (month, fixed_bill_id) and (month, one_time_bill_id) are unique, so two
  concurrent first-time generations of a month cannot both succeed
- IntegrityError surfaces as DuplicateError, other driver errors as
  StorageError
"""

from contextlib import asynccontextmanager, contextmanager
from contextvars import ContextVar
import datetime as dt
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Iterable, Optional
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy import UniqueConstraint, func, or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.pool import StaticPool
from sqlmodel import Field, Session, SQLModel, create_engine, select
from tenacity import Retrying, stop_after_attempt, wait_exponential

from household_ledger.config import get_settings
from household_ledger.models.ledger import (
    BillInstance,
    BudgetWarning,
    Expense,
    ExpenseCategory,
    FixedBill,
    FixedSource,
    Income,
    InstanceStatus,
    OneTimeBill,
    OneTimeBillStatus,
    OneTimeSource,
    Payment,
    utcnow,
)
from household_ledger.services.storage.interface import (
    ConnectionError,
    DuplicateError,
    LedgerStorageInterface,
    NotFoundError,
    StorageError,
)


# =============================================================================
# TABLES
# =============================================================================

class FixedBillRow(SQLModel, table=True):
    __tablename__ = "fixed_bills"

    id: UUID = Field(primary_key=True)
    name: str
    amount: Decimal = Field(max_digits=12, decimal_places=2)
    due_day: int
    category: Optional[str] = None
    is_active: bool = Field(default=True, index=True)
    created_by: str
    created_at: datetime
    updated_at: datetime


class OneTimeBillRow(SQLModel, table=True):
    __tablename__ = "one_time_bills"

    id: UUID = Field(primary_key=True)
    description: str
    total_amount: Decimal = Field(max_digits=12, decimal_places=2)
    paid_amount: Decimal = Field(default=Decimal("0"), max_digits=12, decimal_places=2)
    due_date: date = Field(index=True)
    status: str = Field(index=True)
    created_by: str
    notes: Optional[str] = None
    category: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class PaymentRow(SQLModel, table=True):
    __tablename__ = "payments"

    id: UUID = Field(primary_key=True)
    # No foreign key: deleting a bill removes its payments explicitly
    bill_id: UUID = Field(index=True)
    amount: Decimal = Field(max_digits=12, decimal_places=2)
    date: dt.date
    paid_by: str
    notes: Optional[str] = None
    created_at: datetime


class BillInstanceRow(SQLModel, table=True):
    __tablename__ = "bill_instances"
    __table_args__ = (
        UniqueConstraint("month", "fixed_bill_id", name="uq_instance_month_fixed"),
        UniqueConstraint("month", "one_time_bill_id", name="uq_instance_month_one_time"),
    )

    id: UUID = Field(primary_key=True)
    source_kind: str
    fixed_bill_id: Optional[UUID] = None
    one_time_bill_id: Optional[UUID] = None
    name: str
    amount: Decimal = Field(max_digits=12, decimal_places=2)
    category: Optional[str] = None
    due_date: date
    month: date = Field(index=True)
    status: str = Field(index=True)
    paid_amount: Decimal = Field(default=Decimal("0"), max_digits=12, decimal_places=2)
    paid_date: Optional[date] = None
    paid_by: Optional[str] = None
    is_overdue: bool = False
    days_overdue: int = 0
    created_by: str
    created_at: datetime
    updated_at: datetime


class IncomeRow(SQLModel, table=True):
    __tablename__ = "income"

    id: UUID = Field(primary_key=True)
    person: str = Field(index=True)
    amount: Decimal = Field(max_digits=12, decimal_places=2)
    type: str
    month: date = Field(index=True)
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class ExpenseRow(SQLModel, table=True):
    __tablename__ = "expenses"

    id: UUID = Field(primary_key=True)
    description: str
    amount: Decimal = Field(max_digits=12, decimal_places=2)
    date: dt.date = Field(index=True)
    category: str
    paid_by: str
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class BudgetWarningRow(SQLModel, table=True):
    __tablename__ = "budget_warnings"

    id: UUID = Field(primary_key=True)
    type: str
    threshold: Optional[float] = None
    is_active: bool = True
    created_at: datetime
    updated_at: datetime


def _dump(model: BaseModel) -> dict:
    """Model fields as column values (enums reduced to their string value)."""
    data = model.model_dump()
    return {
        key: value.value if isinstance(value, Enum) else value
        for key, value in data.items()
    }


def _instance_to_row(instance: BillInstance) -> dict:
    data = _dump(instance)
    data.pop("source")
    data["source_kind"] = instance.source.kind
    data["fixed_bill_id"] = instance.fixed_bill_id
    data["one_time_bill_id"] = instance.one_time_bill_id
    return data


def _row_to_instance(row: BillInstanceRow) -> BillInstance:
    data = row.model_dump()
    kind = data.pop("source_kind")
    fixed_id = data.pop("fixed_bill_id")
    one_time_id = data.pop("one_time_bill_id")
    if kind == "fixed":
        data["source"] = FixedSource(fixed_bill_id=fixed_id)
    else:
        data["source"] = OneTimeSource(one_time_bill_id=one_time_id)
    return BillInstance.model_validate(data)


# =============================================================================
# STORAGE
# =============================================================================

class SqlLedgerStorage(LedgerStorageInterface):
    """
    SQLModel implementation of ledger storage.

    Usage:
        storage = SqlLedgerStorage("sqlite:///household_ledger.db")
        storage.connect()
    """

    def __init__(self, url: Optional[str] = None, echo: Optional[bool] = None):
        settings = get_settings().database
        self._url = url or settings.url
        self._echo = settings.echo if echo is None else echo
        self._connect_attempts = settings.connect_attempts
        self._engine = None
        self._active: ContextVar[Optional[Session]] = ContextVar(
            f"ledger_sql_session_{id(self)}", default=None
        )

    def _open_engine(self):
        kwargs = {"echo": self._echo, "pool_pre_ping": True}
        if self._url.startswith("sqlite"):
            kwargs["connect_args"] = {"check_same_thread": False}
            if self._url in ("sqlite://", "sqlite:///:memory:"):
                kwargs["poolclass"] = StaticPool
        try:
            engine = create_engine(self._url, **kwargs)
            SQLModel.metadata.create_all(engine)
        except SQLAlchemyError as e:
            raise ConnectionError(f"Failed to open database: {e}")
        return engine

    def connect(self):
        """
        Create the engine and the schema.

        Retried with backoff; individual writes are never retried.
        """
        if self._engine is None:
            for attempt in Retrying(
                stop=stop_after_attempt(self._connect_attempts),
                wait=wait_exponential(multiplier=1, min=2, max=10),
                reraise=True,
            ):
                with attempt:
                    self._engine = self._open_engine()
        return self._engine

    def dispose(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None

    # -------------------------------------------------------------------------
    # Sessions and transactions
    # -------------------------------------------------------------------------

    @contextmanager
    def _session(self):
        """Use the active transaction's session, or a short-lived one."""
        active = self._active.get()
        if active is not None:
            yield active
            try:
                active.flush()
            except IntegrityError as e:
                raise DuplicateError(f"Constraint violated: {e.orig}") from e
            except SQLAlchemyError as e:
                raise StorageError(f"Database write failed: {e}") from e
            return

        with Session(self.connect()) as session:
            try:
                yield session
                session.commit()
            except IntegrityError as e:
                session.rollback()
                raise DuplicateError(f"Constraint violated: {e.orig}") from e
            except SQLAlchemyError as e:
                session.rollback()
                raise StorageError(f"Database operation failed: {e}") from e

    @asynccontextmanager
    async def transaction(self):
        if self._active.get() is not None:
            yield
            return

        session = Session(self.connect())
        token = self._active.set(session)
        try:
            yield
            session.commit()
        except IntegrityError as e:
            session.rollback()
            raise DuplicateError(f"Constraint violated: {e.orig}") from e
        except SQLAlchemyError as e:
            session.rollback()
            raise StorageError(f"Database transaction failed: {e}") from e
        except BaseException:
            session.rollback()
            raise
        finally:
            self._active.reset(token)
            session.close()

    # -------------------------------------------------------------------------
    # Generic row helpers
    # -------------------------------------------------------------------------

    def _insert(self, row_cls, data: dict) -> None:
        with self._session() as session:
            session.add(row_cls(**data))

    def _get_row(self, session: Session, row_cls, record_id: UUID):
        # Row locks only make sense inside a unit of work
        if self._active.get() is not None:
            return session.get(row_cls, record_id, with_for_update=True)
        return session.get(row_cls, record_id)

    def _replace(self, row_cls, record_id: UUID, data: dict) -> None:
        with self._session() as session:
            row = self._get_row(session, row_cls, record_id)
            if row is None:
                raise NotFoundError(f"{row_cls.__tablename__} record not found: {record_id}")
            for key, value in data.items():
                setattr(row, key, value)
            session.add(row)

    def _remove(self, row_cls, record_id: UUID) -> bool:
        with self._session() as session:
            row = session.get(row_cls, record_id)
            if row is None:
                return False
            session.delete(row)
            return True

    # -------------------------------------------------------------------------
    # Fixed bills
    # -------------------------------------------------------------------------

    async def create_fixed_bill(self, bill: FixedBill) -> FixedBill:
        self._insert(FixedBillRow, _dump(bill))
        return bill

    async def get_fixed_bill(self, bill_id: UUID) -> Optional[FixedBill]:
        with self._session() as session:
            row = self._get_row(session, FixedBillRow, bill_id)
            return FixedBill.model_validate(row.model_dump()) if row else None

    async def update_fixed_bill(self, bill: FixedBill) -> FixedBill:
        bill = bill.model_copy(update={"updated_at": utcnow()})
        self._replace(FixedBillRow, bill.id, _dump(bill))
        return bill

    async def delete_fixed_bill(self, bill_id: UUID) -> bool:
        return self._remove(FixedBillRow, bill_id)

    async def list_fixed_bills(self, active_only: bool = False) -> list[FixedBill]:
        statement = select(FixedBillRow)
        if active_only:
            statement = statement.where(FixedBillRow.is_active == True)  # noqa: E712
        statement = statement.order_by(
            FixedBillRow.is_active.desc(), FixedBillRow.due_day, FixedBillRow.name
        )
        with self._session() as session:
            rows = session.exec(statement).all()
            return [FixedBill.model_validate(r.model_dump()) for r in rows]

    # -------------------------------------------------------------------------
    # One-time bills and payments
    # -------------------------------------------------------------------------

    async def create_one_time_bill(self, bill: OneTimeBill) -> OneTimeBill:
        self._insert(OneTimeBillRow, _dump(bill))
        return bill

    async def get_one_time_bill(self, bill_id: UUID) -> Optional[OneTimeBill]:
        with self._session() as session:
            row = self._get_row(session, OneTimeBillRow, bill_id)
            return OneTimeBill.model_validate(row.model_dump()) if row else None

    async def update_one_time_bill(self, bill: OneTimeBill) -> OneTimeBill:
        bill = bill.model_copy(update={"updated_at": utcnow()})
        self._replace(OneTimeBillRow, bill.id, _dump(bill))
        return bill

    async def delete_one_time_bill(self, bill_id: UUID) -> bool:
        with self._session() as session:
            row = session.get(OneTimeBillRow, bill_id)
            if row is None:
                return False
            payments = session.exec(select(PaymentRow).where(PaymentRow.bill_id == bill_id))
            for payment in payments.all():
                session.delete(payment)
            session.delete(row)
            return True

    async def list_one_time_bills(
        self,
        status: Optional[OneTimeBillStatus] = None,
        due_from: Optional[date] = None,
        due_to: Optional[date] = None,
        exclude_paid: bool = False,
    ) -> list[OneTimeBill]:
        statement = select(OneTimeBillRow)
        if status is not None:
            statement = statement.where(OneTimeBillRow.status == status.value)
        if due_from is not None:
            statement = statement.where(OneTimeBillRow.due_date >= due_from)
        if due_to is not None:
            statement = statement.where(OneTimeBillRow.due_date <= due_to)
        if exclude_paid:
            statement = statement.where(OneTimeBillRow.status != OneTimeBillStatus.PAID.value)
        statement = statement.order_by(OneTimeBillRow.status, OneTimeBillRow.due_date)
        with self._session() as session:
            rows = session.exec(statement).all()
            return [OneTimeBill.model_validate(r.model_dump()) for r in rows]

    async def create_payment(self, payment: Payment) -> Payment:
        self._insert(PaymentRow, _dump(payment))
        return payment

    async def get_payment(self, payment_id: UUID) -> Optional[Payment]:
        with self._session() as session:
            row = session.get(PaymentRow, payment_id)
            return Payment.model_validate(row.model_dump()) if row else None

    async def delete_payment(self, payment_id: UUID) -> bool:
        return self._remove(PaymentRow, payment_id)

    async def list_payments(self, bill_id: UUID) -> list[Payment]:
        statement = (
            select(PaymentRow)
            .where(PaymentRow.bill_id == bill_id)
            .order_by(PaymentRow.date.desc(), PaymentRow.created_at.desc())
        )
        with self._session() as session:
            rows = session.exec(statement).all()
            return [Payment.model_validate(r.model_dump()) for r in rows]

    # -------------------------------------------------------------------------
    # Bill instances
    # -------------------------------------------------------------------------

    async def create_instances(self, instances: Iterable[BillInstance]) -> int:
        rows = [BillInstanceRow(**_instance_to_row(i)) for i in instances]
        with self._session() as session:
            session.add_all(rows)
        return len(rows)

    async def get_instance(self, instance_id: UUID) -> Optional[BillInstance]:
        with self._session() as session:
            row = self._get_row(session, BillInstanceRow, instance_id)
            return _row_to_instance(row) if row else None

    async def update_instance(self, instance: BillInstance) -> BillInstance:
        instance = instance.model_copy(update={"updated_at": utcnow()})
        self._replace(BillInstanceRow, instance.id, _instance_to_row(instance))
        return instance

    async def delete_instance(self, instance_id: UUID) -> bool:
        return self._remove(BillInstanceRow, instance_id)

    async def count_instances(self, month: date) -> int:
        statement = select(func.count()).select_from(BillInstanceRow).where(
            BillInstanceRow.month == month
        )
        with self._session() as session:
            return session.exec(statement).one()

    async def list_instances(
        self,
        month: Optional[date] = None,
        before_month: Optional[date] = None,
        statuses: Optional[Iterable[InstanceStatus]] = None,
        overdue_only: bool = False,
    ) -> list[BillInstance]:
        statement = select(BillInstanceRow)
        if month is not None:
            statement = statement.where(BillInstanceRow.month == month)
        if before_month is not None:
            statement = statement.where(BillInstanceRow.month < before_month)
        if statuses is not None:
            values = [s.value for s in statuses]
            statement = statement.where(BillInstanceRow.status.in_(values))
        if overdue_only:
            statement = statement.where(or_(
                BillInstanceRow.status == InstanceStatus.OVERDUE.value,
                BillInstanceRow.is_overdue == True,  # noqa: E712
            ))
        statement = statement.order_by(BillInstanceRow.due_date, BillInstanceRow.name)
        with self._session() as session:
            rows = session.exec(statement).all()
            return [_row_to_instance(r) for r in rows]

    # -------------------------------------------------------------------------
    # Income and expenses
    # -------------------------------------------------------------------------

    async def create_income(self, income: Income) -> Income:
        self._insert(IncomeRow, _dump(income))
        return income

    async def get_income(self, income_id: UUID) -> Optional[Income]:
        with self._session() as session:
            row = session.get(IncomeRow, income_id)
            return Income.model_validate(row.model_dump()) if row else None

    async def update_income(self, income: Income) -> Income:
        income = income.model_copy(update={"updated_at": utcnow()})
        self._replace(IncomeRow, income.id, _dump(income))
        return income

    async def delete_income(self, income_id: UUID) -> bool:
        return self._remove(IncomeRow, income_id)

    async def list_income(
        self,
        person: Optional[str] = None,
        month: Optional[date] = None,
    ) -> list[Income]:
        statement = select(IncomeRow)
        if person is not None:
            statement = statement.where(IncomeRow.person == person)
        if month is not None:
            statement = statement.where(IncomeRow.month == month)
        statement = statement.order_by(IncomeRow.month.desc(), IncomeRow.person)
        with self._session() as session:
            rows = session.exec(statement).all()
            return [Income.model_validate(r.model_dump()) for r in rows]

    async def create_expense(self, expense: Expense) -> Expense:
        self._insert(ExpenseRow, _dump(expense))
        return expense

    async def get_expense(self, expense_id: UUID) -> Optional[Expense]:
        with self._session() as session:
            row = session.get(ExpenseRow, expense_id)
            return Expense.model_validate(row.model_dump()) if row else None

    async def update_expense(self, expense: Expense) -> Expense:
        expense = expense.model_copy(update={"updated_at": utcnow()})
        self._replace(ExpenseRow, expense.id, _dump(expense))
        return expense

    async def delete_expense(self, expense_id: UUID) -> bool:
        return self._remove(ExpenseRow, expense_id)

    async def list_expenses(
        self,
        category: Optional[ExpenseCategory] = None,
        paid_by: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> list[Expense]:
        statement = select(ExpenseRow)
        if category is not None:
            statement = statement.where(ExpenseRow.category == category.value)
        if paid_by is not None:
            statement = statement.where(ExpenseRow.paid_by == paid_by)
        if date_from is not None:
            statement = statement.where(ExpenseRow.date >= date_from)
        if date_to is not None:
            statement = statement.where(ExpenseRow.date <= date_to)
        statement = statement.order_by(ExpenseRow.date.desc(), ExpenseRow.created_at.desc())
        with self._session() as session:
            rows = session.exec(statement).all()
            return [Expense.model_validate(r.model_dump()) for r in rows]

    # -------------------------------------------------------------------------
    # Budget warnings
    # -------------------------------------------------------------------------

    async def create_budget_warning(self, warning: BudgetWarning) -> BudgetWarning:
        self._insert(BudgetWarningRow, _dump(warning))
        return warning

    async def list_budget_warnings(self, active_only: bool = True) -> list[BudgetWarning]:
        statement = select(BudgetWarningRow)
        if active_only:
            statement = statement.where(BudgetWarningRow.is_active == True)  # noqa: E712
        with self._session() as session:
            rows = session.exec(statement).all()
            return [BudgetWarning.model_validate(r.model_dump()) for r in rows]
