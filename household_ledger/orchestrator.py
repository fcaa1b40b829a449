"""
Ledger Service

This module ties together all the components and exposes the operations
the household's UI calls:
1. Month tracking (open a month -> generate -> sweep -> summarize -> pay)
2. Bill, debt, income and expense records
3. Reporting (dashboard, budget warnings, calendar)

DESIGN DECISION: The service is the error boundary.
- Every operation checks for an authenticated caller first
- Input is validated before anything is written
- No exception crosses this boundary; every call returns an
  OperationResult with either data or a short message
- Internal failures are logged in full and reported generically

The engine (generator, reconciler, sweeper, summarizer) raises; only this
module converts exceptions into results.
"""

from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Awaitable, Callable, Iterable, Optional
from uuid import UUID

from pydantic import ValidationError

from household_ledger.config import get_settings
from household_ledger.dates import month_end, month_key
from household_ledger.engine import (
    EntityNotFoundError,
    InstanceGenerator,
    LedgerValidationError,
    MonthSummarizer,
    OverdueSweeper,
    PaymentReconciler,
    build_calendar,
    derive_bill_status,
    recompute_bill_status,
)
from household_ledger.events import (
    LedgerEventLogger,
    configure_logging,
    create_correlation_id,
)
from household_ledger.models.events import LedgerEventType
from household_ledger.models.ledger import (
    Expense,
    ExpenseCategory,
    ExpenseCreate,
    ExpenseUpdate,
    FixedBill,
    FixedBillCreate,
    FixedBillUpdate,
    Income,
    IncomeCreate,
    IncomeUpdate,
    OneTimeBill,
    OneTimeBillCreate,
    OneTimeBillStatus,
    OneTimeBillUpdate,
    PaymentCreate,
)
from household_ledger.models.result import ErrorKind, OperationResult
from household_ledger.models.summary import (
    CategoryStats,
    ExpenseStats,
    MonthInitialization,
    MonthlyExpenses,
    MonthlyIncome,
    OneTimeBillDetail,
    OverdueBills,
)
from household_ledger.models.validation import ValidationIssue, ValidationResult
from household_ledger.services import hooks
from household_ledger.services.clock import Clock, SystemClock
from household_ledger.services.hooks import InvalidationHook, fire_invalidation
from household_ledger.services.identity import IdentityProvider
from household_ledger.services.storage import (
    InMemoryLedgerStorage,
    LedgerStorageInterface,
    NotFoundError,
    SqlLedgerStorage,
    seed_budget_warnings,
)
from household_ledger.validation import LedgerValidator

ZERO = Decimal("0")

UNAUTHORIZED = "Unauthorized"

# Views each kind of change makes stale
BILL_VIEWS = (hooks.BILLS, hooks.DASHBOARD, hooks.CALENDAR)
INCOME_VIEWS = (hooks.INCOME, hooks.DASHBOARD)
EXPENSE_VIEWS = (hooks.EXPENSES, hooks.DASHBOARD, hooks.CALENDAR)


class LedgerService:
    """
    The household ledger's public operations.

    All collaborators are injected; anything left out is built from
    settings (system clock, structlog event logger, default validator).
    """

    def __init__(
        self,
        storage: LedgerStorageInterface,
        identity: IdentityProvider,
        clock: Optional[Clock] = None,
        invalidation_hook: Optional[InvalidationHook] = None,
        validator: Optional[LedgerValidator] = None,
        event_logger: Optional[LedgerEventLogger] = None,
    ):
        self._storage = storage
        self._identity = identity
        self._clock = clock or SystemClock()
        self._hook = invalidation_hook
        self._validator = validator or LedgerValidator()
        self._events = event_logger or LedgerEventLogger()

        self._generator = InstanceGenerator(storage, self._events)
        self._reconciler = PaymentReconciler(storage, self._events)
        self._sweeper = OverdueSweeper(storage, self._clock, self._events)
        self._summarizer = MonthSummarizer(storage, self._clock)

    # =========================================================================
    # ERROR BOUNDARY
    # =========================================================================

    async def _run(
        self,
        operation: str,
        failure: str,
        action: Callable[[str, UUID], Awaitable[Any]],
        views: Iterable[str] = (),
    ) -> OperationResult:
        """
        Run one operation behind the boundary.

        Args:
            operation: Name used in the structured log
            failure: Message shown when the operation fails internally
            action: Coroutine function receiving (user, correlation_id);
                    returns the data, or an OperationResult to pass through
            views: Views to invalidate after success
        """
        user = self._identity.current_user()
        if user is None:
            self._events.log_unauthenticated(operation)
            return OperationResult.fail(ErrorKind.UNAUTHENTICATED, UNAUTHORIZED)

        correlation_id = create_correlation_id()
        try:
            outcome = await action(user, correlation_id)
        except EntityNotFoundError as e:
            self._events.log_not_found(operation, str(e), correlation_id)
            return OperationResult.fail(ErrorKind.NOT_FOUND, str(e))
        except NotFoundError as e:
            self._events.log_not_found(operation, str(e), correlation_id)
            return OperationResult.fail(ErrorKind.NOT_FOUND, "Record not found")
        except LedgerValidationError as e:
            issues = [issue.model_dump() for issue in e.issues]
            self._events.log_validation_failed(operation, issues, correlation_id)
            return OperationResult.fail(ErrorKind.VALIDATION, str(e))
        except ValidationError as e:
            issues = [{"field": ".".join(map(str, err["loc"])), "message": err["msg"]}
                      for err in e.errors()]
            self._events.log_validation_failed(operation, issues, correlation_id)
            return OperationResult.fail(ErrorKind.VALIDATION, "Invalid input")
        except Exception as e:
            # Storage failures and anything unexpected: detail goes to the log only
            self._events.log_persistence_error(operation, e, correlation_id)
            return OperationResult.fail(ErrorKind.PERSISTENCE, failure)

        result = outcome if isinstance(outcome, OperationResult) else OperationResult.ok(outcome)
        if result.success and views:
            fire_invalidation(self._hook, views, self._events)
        return result

    def _require_valid(self, result: ValidationResult) -> None:
        if not result.is_valid:
            raise LedgerValidationError(
                self._validator.get_user_friendly_summary(result),
                result.errors,
            )

    def _log_change(
        self,
        event_type: LedgerEventType,
        entity_type: str,
        entity_id: UUID,
        user: str,
        correlation_id: UUID,
    ) -> None:
        self._events.log_entity_change(event_type, entity_type, entity_id, user, correlation_id)

    @staticmethod
    def _found(record, message: str, entity_type: str):
        if record is None:
            raise EntityNotFoundError(message, entity_type)
        return record

    @staticmethod
    def _to_amount(value) -> Decimal:
        try:
            return Decimal(str(value))
        except (InvalidOperation, TypeError, ValueError):
            issue = ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Payment amount must be a number",
                severity="error",
            )
            raise LedgerValidationError(issue.message, [issue])

    @staticmethod
    def _merge(record, changes: dict):
        """Apply a partial update, re-running the record model's validation."""
        return type(record).model_validate({**record.model_dump(), **changes})

    # =========================================================================
    # MONTH TRACKING
    # =========================================================================

    async def generate_month_instances(self, month: date) -> OperationResult:
        async def action(user, correlation_id):
            generation = await self._generator.generate_month_instances(month, correlation_id)
            return OperationResult.ok(generation, message=generation.message)

        return await self._run(
            "generate_month_instances",
            "Failed to generate bills for month",
            action,
            views=(hooks.BILLS, hooks.DASHBOARD),
        )

    async def sweep_overdue(self, current_month: Optional[date] = None) -> OperationResult:
        async def action(user, correlation_id):
            target = current_month or month_key(self._clock.today())
            return await self._sweeper.sweep_overdue(target, correlation_id)

        return await self._run(
            "sweep_overdue",
            "Failed to mark overdue bills",
            action,
            views=(hooks.BILLS, hooks.DASHBOARD),
        )

    async def initialize_month(self, month: date) -> OperationResult:
        """Open a month: generate its instances, then age earlier ones."""
        async def action(user, correlation_id):
            generation = await self._generator.generate_month_instances(month, correlation_id)
            sweep = await self._sweeper.sweep_overdue(month, correlation_id)
            return OperationResult.ok(
                MonthInitialization(generation=generation, sweep=sweep),
                message=generation.message,
            )

        return await self._run(
            "initialize_month",
            "Failed to initialize month tracking",
            action,
            views=(hooks.BILLS, hooks.DASHBOARD),
        )

    async def get_month_summary(self, month: date) -> OperationResult:
        async def action(user, correlation_id):
            return await self._summarizer.summarize_month(month)

        return await self._run("get_month_summary", "Failed to fetch month summary", action)

    async def get_month_instances(self, month: date) -> OperationResult:
        async def action(user, correlation_id):
            instances = await self._storage.list_instances(month=month_key(month))
            return sorted(instances, key=lambda i: (i.status.value, i.due_date))

        return await self._run("get_month_instances", "Failed to fetch bill instances", action)

    async def get_overdue_bills(self) -> OperationResult:
        async def action(user, correlation_id):
            instances = await self._storage.list_instances(overdue_only=True)
            instances.sort(key=lambda i: i.due_date)
            instances.sort(key=lambda i: i.days_overdue, reverse=True)
            return OverdueBills(
                instances=instances,
                total_outstanding=sum((i.remaining_amount for i in instances), ZERO),
            )

        return await self._run("get_overdue_bills", "Failed to fetch overdue bills", action)

    async def mark_instance_paid(
        self,
        instance_id: UUID,
        amount: Decimal,
        paid_by: Optional[str] = None,
        paid_on: Optional[date] = None,
    ) -> OperationResult:
        """
        Pay (part of) one month's bill instance.

        ``paid_by`` defaults to the caller, ``paid_on`` to today.
        """
        async def action(user, correlation_id):
            payer = (paid_by or user).strip().lower()
            paid = self._to_amount(amount)
            instance = self._found(
                await self._storage.get_instance(instance_id),
                "Bill instance not found",
                "bill_instance",
            )
            self._require_valid(
                self._validator.validate_instance_payment(instance, paid, payer)
            )
            return await self._reconciler.mark_instance_paid(
                instance_id,
                paid,
                payer,
                paid_on or self._clock.today(),
                correlation_id,
            )

        return await self._run(
            "mark_instance_paid",
            "Failed to mark bill as paid",
            action,
            views=BILL_VIEWS,
        )

    async def delete_bill_instance(self, instance_id: UUID) -> OperationResult:
        async def action(user, correlation_id):
            if not await self._storage.delete_instance(instance_id):
                raise EntityNotFoundError("Bill instance not found", "bill_instance")
            self._log_change(
                LedgerEventType.ENTITY_DELETED, "bill_instance", instance_id, user, correlation_id
            )

        return await self._run(
            "delete_bill_instance",
            "Failed to delete bill instance",
            action,
            views=BILL_VIEWS,
        )

    # =========================================================================
    # FIXED BILLS
    # =========================================================================

    async def list_fixed_bills(self, active_only: bool = False) -> OperationResult:
        async def action(user, correlation_id):
            return await self._storage.list_fixed_bills(active_only=active_only)

        return await self._run("list_fixed_bills", "Failed to fetch bills", action)

    async def get_fixed_bill(self, bill_id: UUID) -> OperationResult:
        async def action(user, correlation_id):
            return self._found(
                await self._storage.get_fixed_bill(bill_id), "Bill not found", "fixed_bill"
            )

        return await self._run("get_fixed_bill", "Failed to fetch bill", action)

    async def create_fixed_bill(self, data: FixedBillCreate) -> OperationResult:
        async def action(user, correlation_id):
            self._require_valid(self._validator.validate_fixed_bill(data))
            bill = await self._storage.create_fixed_bill(FixedBill(
                name=data.name,
                amount=data.amount,
                due_day=data.due_day,
                category=data.category,
                is_active=data.is_active,
                created_by=data.created_by.strip().lower(),
            ))
            self._log_change(
                LedgerEventType.ENTITY_CREATED, "fixed_bill", bill.id, user, correlation_id
            )
            return bill

        return await self._run("create_fixed_bill", "Failed to create bill", action, BILL_VIEWS)

    async def update_fixed_bill(self, bill_id: UUID, data: FixedBillUpdate) -> OperationResult:
        """Edit a template. Instances already generated keep their snapshot."""
        async def action(user, correlation_id):
            self._require_valid(self._validator.validate_fixed_bill_update(data))
            bill = self._found(
                await self._storage.get_fixed_bill(bill_id), "Bill not found", "fixed_bill"
            )
            bill = await self._storage.update_fixed_bill(
                self._merge(bill, data.model_dump(exclude_unset=True))
            )
            self._log_change(
                LedgerEventType.ENTITY_UPDATED, "fixed_bill", bill.id, user, correlation_id
            )
            return bill

        return await self._run("update_fixed_bill", "Failed to update bill", action, BILL_VIEWS)

    async def delete_fixed_bill(self, bill_id: UUID) -> OperationResult:
        async def action(user, correlation_id):
            if not await self._storage.delete_fixed_bill(bill_id):
                raise EntityNotFoundError("Bill not found", "fixed_bill")
            self._log_change(
                LedgerEventType.ENTITY_DELETED, "fixed_bill", bill_id, user, correlation_id
            )

        return await self._run("delete_fixed_bill", "Failed to delete bill", action, BILL_VIEWS)

    async def toggle_fixed_bill_active(self, bill_id: UUID) -> OperationResult:
        async def action(user, correlation_id):
            async with self._storage.transaction():
                bill = self._found(
                    await self._storage.get_fixed_bill(bill_id), "Bill not found", "fixed_bill"
                )
                bill = await self._storage.update_fixed_bill(
                    bill.model_copy(update={"is_active": not bill.is_active})
                )
            self._log_change(
                LedgerEventType.ENTITY_UPDATED, "fixed_bill", bill.id, user, correlation_id
            )
            return bill

        return await self._run(
            "toggle_fixed_bill_active", "Failed to toggle bill status", action, BILL_VIEWS
        )

    # =========================================================================
    # ONE-TIME BILLS (DEBTS)
    # =========================================================================

    async def list_one_time_bills(
        self,
        status: Optional[OneTimeBillStatus] = None,
    ) -> OperationResult:
        async def action(user, correlation_id):
            return await self._storage.list_one_time_bills(status=status)

        return await self._run("list_one_time_bills", "Failed to fetch bills", action)

    async def get_one_time_bill(self, bill_id: UUID) -> OperationResult:
        """A one-time bill with its payments, newest first."""
        async def action(user, correlation_id):
            bill = self._found(
                await self._storage.get_one_time_bill(bill_id), "Bill not found", "one_time_bill"
            )
            payments = await self._storage.list_payments(bill.id)
            return OneTimeBillDetail(bill=bill, payments=payments)

        return await self._run("get_one_time_bill", "Failed to fetch bill", action)

    async def create_one_time_bill(self, data: OneTimeBillCreate) -> OperationResult:
        """
        Record a one-time bill.

        No instance is created here; the bill is picked up when its month
        is generated.
        """
        async def action(user, correlation_id):
            self._require_valid(self._validator.validate_one_time_bill(data))
            bill = await self._storage.create_one_time_bill(OneTimeBill(
                description=data.description,
                total_amount=data.total_amount,
                paid_amount=data.paid_amount,
                due_date=data.due_date,
                status=derive_bill_status(data.paid_amount, data.total_amount),
                created_by=data.created_by.strip().lower(),
                notes=data.notes,
                category=data.category,
            ))
            self._log_change(
                LedgerEventType.ENTITY_CREATED, "one_time_bill", bill.id, user, correlation_id
            )
            return bill

        return await self._run("create_one_time_bill", "Failed to create bill", action, BILL_VIEWS)

    async def update_one_time_bill(
        self,
        bill_id: UUID,
        data: OneTimeBillUpdate,
    ) -> OperationResult:
        """Edit a one-time bill; its status is re-derived from the new amounts."""
        async def action(user, correlation_id):
            async with self._storage.transaction():
                bill = self._found(
                    await self._storage.get_one_time_bill(bill_id),
                    "Bill not found",
                    "one_time_bill",
                )
                self._require_valid(self._validator.validate_one_time_bill_update(data, bill))
                bill = recompute_bill_status(
                    self._merge(bill, data.model_dump(exclude_unset=True))
                )
                bill = await self._storage.update_one_time_bill(bill)
            self._log_change(
                LedgerEventType.ENTITY_UPDATED, "one_time_bill", bill.id, user, correlation_id
            )
            return bill

        return await self._run("update_one_time_bill", "Failed to update bill", action, BILL_VIEWS)

    async def delete_one_time_bill(self, bill_id: UUID) -> OperationResult:
        """Delete a bill and its payments. Its instances keep their snapshot."""
        async def action(user, correlation_id):
            if not await self._storage.delete_one_time_bill(bill_id):
                raise EntityNotFoundError("Bill not found", "one_time_bill")
            self._log_change(
                LedgerEventType.ENTITY_DELETED, "one_time_bill", bill_id, user, correlation_id
            )

        return await self._run("delete_one_time_bill", "Failed to delete bill", action, BILL_VIEWS)

    async def add_payment(self, data: PaymentCreate) -> OperationResult:
        async def action(user, correlation_id):
            payment_in = data.model_copy(update={"paid_by": data.paid_by.strip().lower()})
            self._require_valid(self._validator.validate_payment(payment_in))
            payment, _ = await self._reconciler.add_payment(payment_in, correlation_id)
            return payment

        return await self._run("add_payment", "Failed to add payment", action, BILL_VIEWS)

    async def delete_payment(self, payment_id: UUID) -> OperationResult:
        async def action(user, correlation_id):
            return await self._reconciler.delete_payment(payment_id, user, correlation_id)

        return await self._run("delete_payment", "Failed to delete payment", action, BILL_VIEWS)

    # =========================================================================
    # INCOME
    # =========================================================================

    async def list_income(
        self,
        person: Optional[str] = None,
        month: Optional[date] = None,
    ) -> OperationResult:
        async def action(user, correlation_id):
            return await self._storage.list_income(
                person=person.strip().lower() if person else None,
                month=month_key(month) if month else None,
            )

        return await self._run("list_income", "Failed to fetch income", action)

    async def get_monthly_income(self, month: date) -> OperationResult:
        """Total income for the month, and per household member."""
        async def action(user, correlation_id):
            key = month_key(month)
            records = await self._storage.list_income(month=key)
            by_person = {member: ZERO for member in self._validator.members}
            for record in records:
                by_person[record.person] = by_person.get(record.person, ZERO) + record.amount
            return MonthlyIncome(
                month=key,
                total=sum((r.amount for r in records), ZERO),
                by_person=by_person,
                records=records,
            )

        return await self._run("get_monthly_income", "Failed to calculate monthly income", action)

    async def get_income(self, income_id: UUID) -> OperationResult:
        async def action(user, correlation_id):
            return self._found(
                await self._storage.get_income(income_id), "Income record not found", "income"
            )

        return await self._run("get_income", "Failed to fetch income", action)

    async def create_income(self, data: IncomeCreate) -> OperationResult:
        async def action(user, correlation_id):
            self._require_valid(self._validator.validate_income(data))
            income = await self._storage.create_income(Income(
                person=data.person.strip().lower(),
                amount=data.amount,
                type=data.type,
                month=data.month,
                notes=data.notes,
            ))
            self._log_change(
                LedgerEventType.ENTITY_CREATED, "income", income.id, user, correlation_id
            )
            return income

        return await self._run("create_income", "Failed to create income", action, INCOME_VIEWS)

    async def update_income(self, income_id: UUID, data: IncomeUpdate) -> OperationResult:
        async def action(user, correlation_id):
            self._require_valid(self._validator.validate_income_update(data))
            income = self._found(
                await self._storage.get_income(income_id), "Income record not found", "income"
            )
            changes = data.model_dump(exclude_unset=True)
            if changes.get("person"):
                changes["person"] = changes["person"].strip().lower()
            income = await self._storage.update_income(self._merge(income, changes))
            self._log_change(
                LedgerEventType.ENTITY_UPDATED, "income", income.id, user, correlation_id
            )
            return income

        return await self._run("update_income", "Failed to update income", action, INCOME_VIEWS)

    async def delete_income(self, income_id: UUID) -> OperationResult:
        async def action(user, correlation_id):
            if not await self._storage.delete_income(income_id):
                raise EntityNotFoundError("Income record not found", "income")
            self._log_change(
                LedgerEventType.ENTITY_DELETED, "income", income_id, user, correlation_id
            )

        return await self._run("delete_income", "Failed to delete income", action, INCOME_VIEWS)

    # =========================================================================
    # EXPENSES
    # =========================================================================

    async def list_expenses(
        self,
        category: Optional[ExpenseCategory] = None,
        paid_by: Optional[str] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> OperationResult:
        async def action(user, correlation_id):
            return await self._storage.list_expenses(
                category=category,
                paid_by=paid_by.strip().lower() if paid_by else None,
                date_from=start,
                date_to=end,
            )

        return await self._run("list_expenses", "Failed to fetch expenses", action)

    async def get_monthly_expenses(self, month: date) -> OperationResult:
        async def action(user, correlation_id):
            key = month_key(month)
            expenses = await self._storage.list_expenses(date_from=key, date_to=month_end(key))
            by_category: dict[str, Decimal] = {}
            by_person = {member: ZERO for member in self._validator.members}
            for expense in expenses:
                category = expense.category.value
                by_category[category] = by_category.get(category, ZERO) + expense.amount
                by_person[expense.paid_by] = by_person.get(expense.paid_by, ZERO) + expense.amount
            return MonthlyExpenses(
                month=key,
                total=sum((e.amount for e in expenses), ZERO),
                by_category=by_category,
                by_person=by_person,
                count=len(expenses),
                expenses=expenses,
            )

        return await self._run(
            "get_monthly_expenses", "Failed to fetch monthly expenses", action
        )

    async def get_expense(self, expense_id: UUID) -> OperationResult:
        async def action(user, correlation_id):
            return self._found(
                await self._storage.get_expense(expense_id), "Expense not found", "expense"
            )

        return await self._run("get_expense", "Failed to fetch expense", action)

    async def create_expense(self, data: ExpenseCreate) -> OperationResult:
        async def action(user, correlation_id):
            self._require_valid(self._validator.validate_expense(data))
            expense = await self._storage.create_expense(Expense(
                description=data.description,
                amount=data.amount,
                date=data.date,
                category=data.category,
                paid_by=data.paid_by.strip().lower(),
                notes=data.notes,
            ))
            self._log_change(
                LedgerEventType.ENTITY_CREATED, "expense", expense.id, user, correlation_id
            )
            return expense

        return await self._run("create_expense", "Failed to create expense", action, EXPENSE_VIEWS)

    async def update_expense(self, expense_id: UUID, data: ExpenseUpdate) -> OperationResult:
        async def action(user, correlation_id):
            self._require_valid(self._validator.validate_expense_update(data))
            expense = self._found(
                await self._storage.get_expense(expense_id), "Expense not found", "expense"
            )
            changes = data.model_dump(exclude_unset=True)
            if changes.get("paid_by"):
                changes["paid_by"] = changes["paid_by"].strip().lower()
            expense = await self._storage.update_expense(self._merge(expense, changes))
            self._log_change(
                LedgerEventType.ENTITY_UPDATED, "expense", expense.id, user, correlation_id
            )
            return expense

        return await self._run("update_expense", "Failed to update expense", action, EXPENSE_VIEWS)

    async def delete_expense(self, expense_id: UUID) -> OperationResult:
        async def action(user, correlation_id):
            if not await self._storage.delete_expense(expense_id):
                raise EntityNotFoundError("Expense not found", "expense")
            self._log_change(
                LedgerEventType.ENTITY_DELETED, "expense", expense_id, user, correlation_id
            )

        return await self._run("delete_expense", "Failed to delete expense", action, EXPENSE_VIEWS)

    async def get_expense_stats(self, start: date, end: date) -> OperationResult:
        """
        Expense statistics for an inclusive date range.

        The daily average divides by the whole days between ``start`` and
        ``end`` (at least one).
        """
        async def action(user, correlation_id):
            expenses = await self._storage.list_expenses(date_from=start, date_to=end)
            total = sum((e.amount for e in expenses), ZERO)
            by_category: dict[str, CategoryStats] = {}
            for expense in expenses:
                stats = by_category.setdefault(expense.category.value, CategoryStats())
                stats.count += 1
                stats.total += expense.amount
            return ExpenseStats(
                start=start,
                end=end,
                total=total,
                count=len(expenses),
                average=total / len(expenses) if expenses else ZERO,
                daily_average=total / max(1, (end - start).days),
                by_category=by_category,
            )

        return await self._run("get_expense_stats", "Failed to fetch expense statistics", action)

    # =========================================================================
    # REPORTING
    # =========================================================================

    async def get_financial_summary(self, month: date) -> OperationResult:
        async def action(user, correlation_id):
            return await self._summarizer.summarize_financials(month)

        return await self._run(
            "get_financial_summary", "Failed to fetch dashboard data", action
        )

    async def get_budget_warnings(self, month: date) -> OperationResult:
        async def action(user, correlation_id):
            return await self._summarizer.budget_warnings(month)

        return await self._run("get_budget_warnings", "Failed to check budget warnings", action)

    async def get_calendar(self, month: date) -> OperationResult:
        async def action(user, correlation_id):
            return await build_calendar(self._storage, month)

        return await self._run("get_calendar", "Failed to fetch calendar", action)

    async def ensure_budget_warnings(self) -> OperationResult:
        """Seed the default warning rules into an empty store."""
        async def action(user, correlation_id):
            return await seed_budget_warnings(self._storage)

        return await self._run(
            "ensure_budget_warnings",
            "Failed to set up budget warnings",
            action,
            views=(hooks.DASHBOARD,),
        )


def create_ledger_service(
    identity: IdentityProvider,
    use_database: bool = True,
    database_url: Optional[str] = None,
    invalidation_hook: Optional[InvalidationHook] = None,
    clock: Optional[Clock] = None,
) -> LedgerService:
    """
    Factory function to create a fully wired ledger service.

    Args:
        identity: Who is calling
        use_database: Use the SQL store. Set to False for an in-memory
                      ledger (tests, demos).
        database_url: Overrides the configured database URL
        invalidation_hook: Called with stale view names after each change
        clock: Overrides the system clock in the household timezone

    Returns:
        LedgerService
    """
    settings = get_settings().app
    configure_logging(settings.log_level)

    if use_database:
        storage = SqlLedgerStorage(database_url)
        storage.connect()
    else:
        storage = InMemoryLedgerStorage()

    return LedgerService(
        storage=storage,
        identity=identity,
        clock=clock or SystemClock(settings.timezone),
        invalidation_hook=invalidation_hook,
    )
