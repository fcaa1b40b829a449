"""
Tests for the ledger service

Everything goes through LedgerService, the way the UI calls it: results
are checked for success, error kind and message, and for the views the
invalidation hook was told about.
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from household_ledger.engine.generator import ALREADY_GENERATED
from household_ledger.models.ledger import (
    Expense,
    ExpenseCategory,
    ExpenseCreate,
    ExpenseUpdate,
    FixedBillCreate,
    FixedBillUpdate,
    IncomeCreate,
    IncomeUpdate,
    InstanceStatus,
    OneTimeBillCreate,
    OneTimeBillStatus,
    OneTimeBillUpdate,
    PaymentCreate,
)
from household_ledger.models.result import ErrorKind
from household_ledger.orchestrator import LedgerService, create_ledger_service
from household_ledger.services import StaticIdentityProvider
from household_ledger.services.storage import InMemoryLedgerStorage, StorageError

from factories import fixed_bill, fixed_instance, one_time_bill, one_time_instance

FEBRUARY = date(2024, 2, 1)
MARCH = date(2024, 3, 1)


class BrokenExpenseStorage(InMemoryLedgerStorage):
    async def create_expense(self, expense: Expense) -> Expense:
        raise StorageError("could not connect to 10.0.0.7:5432")


def rent_input(**overrides):
    fields = dict(name="Rent", amount=Decimal("1000.00"), due_day=5, created_by="felipe")
    fields.update(overrides)
    return FixedBillCreate(**fields)


def groceries(**overrides):
    fields = dict(
        description="Groceries",
        amount=Decimal("80.00"),
        date=date(2024, 3, 2),
        category=ExpenseCategory.FOOD,
        paid_by="carol",
    )
    fields.update(overrides)
    return ExpenseCreate(**fields)


class TestErrorBoundary:
    """Tests for how failures are reported."""

    @pytest.mark.asyncio
    async def test_unauthenticated_caller(self, storage, clock, hook):
        service = LedgerService(storage, StaticIdentityProvider(None), clock, hook)

        result = await service.create_fixed_bill(rent_input())

        assert result.success is False
        assert result.error_kind == ErrorKind.UNAUTHENTICATED
        assert result.error == "Unauthorized"
        assert await storage.list_fixed_bills() == []
        assert hook.calls == []

    @pytest.mark.asyncio
    async def test_reads_also_require_authentication(self, storage, clock):
        service = LedgerService(storage, StaticIdentityProvider(None), clock)

        result = await service.get_month_summary(MARCH)

        assert result.error_kind == ErrorKind.UNAUTHENTICATED

    @pytest.mark.asyncio
    async def test_validation_failure_writes_nothing(self, service, storage, hook):
        result = await service.create_fixed_bill(rent_input(due_day=32))

        assert result.success is False
        assert result.error_kind == ErrorKind.VALIDATION
        assert "Due day must be between 1 and 31" in result.error
        assert await storage.list_fixed_bills() == []
        assert hook.calls == []

    @pytest.mark.asyncio
    async def test_not_found(self, service):
        result = await service.get_fixed_bill(uuid4())

        assert result.error_kind == ErrorKind.NOT_FOUND
        assert result.error == "Bill not found"

    @pytest.mark.asyncio
    async def test_delete_missing_expense(self, service):
        result = await service.delete_expense(uuid4())

        assert result.error_kind == ErrorKind.NOT_FOUND
        assert result.error == "Expense not found"

    @pytest.mark.asyncio
    async def test_storage_failure_is_reported_generically(self, identity, clock, hook):
        service = LedgerService(BrokenExpenseStorage(), identity, clock, hook)

        result = await service.create_expense(groceries())

        assert result.error_kind == ErrorKind.PERSISTENCE
        assert result.error == "Failed to create expense"
        assert "10.0.0.7" not in result.error
        assert hook.calls == []


class TestInvalidationHooks:

    @pytest.mark.asyncio
    async def test_views_named_after_success(self, service, hook):
        await service.create_expense(groceries())
        await service.create_income(
            IncomeCreate(person="felipe", amount=Decimal("3000"), month=MARCH)
        )

        assert hook.calls == [
            ["expenses", "dashboard", "calendar"],
            ["income", "dashboard"],
        ]

    @pytest.mark.asyncio
    async def test_reads_do_not_invalidate(self, service, hook):
        await service.list_expenses()
        await service.get_financial_summary(MARCH)

        assert hook.calls == []

    @pytest.mark.asyncio
    async def test_failing_hook_does_not_fail_operation(self, storage, identity, clock):
        def explode(views):
            raise RuntimeError("view cache unavailable")

        service = LedgerService(storage, identity, clock, explode)

        result = await service.create_expense(groceries())

        assert result.success is True
        assert len(await storage.list_expenses()) == 1


class TestMonthTracking:
    """Tests for opening, paying and aging months."""

    @pytest.mark.asyncio
    async def test_initialize_month(self, service, storage, hook):
        rent = await storage.create_fixed_bill(fixed_bill())
        await storage.create_instances([fixed_instance(rent, FEBRUARY)])

        result = await service.initialize_month(MARCH)

        assert result.success is True
        assert result.data.generation.generated == 1
        assert result.data.sweep.count == 1
        assert result.message == "Generated 1 bills for March 2024"
        assert {"bills", "dashboard"} <= hook.invalidated

    @pytest.mark.asyncio
    async def test_generate_twice(self, service, storage):
        await storage.create_fixed_bill(fixed_bill())

        await service.generate_month_instances(MARCH)
        second = await service.generate_month_instances(MARCH)

        assert second.success is True
        assert second.data.skipped is True
        assert second.message == ALREADY_GENERATED

    @pytest.mark.asyncio
    async def test_sweep_defaults_to_current_month(self, service, storage):
        rent = await storage.create_fixed_bill(fixed_bill())
        await storage.create_instances([fixed_instance(rent, FEBRUARY)])

        result = await service.sweep_overdue()

        assert result.data.current_month == MARCH
        assert result.data.count == 1

    @pytest.mark.asyncio
    async def test_month_instances_sorted_by_status_then_due_date(self, service, storage):
        a, b, c = fixed_bill(name="A"), fixed_bill(name="B"), fixed_bill(name="C")
        await storage.create_instances([
            fixed_instance(a, MARCH, due_date=date(2024, 3, 2)),
            fixed_instance(
                b, MARCH, due_date=date(2024, 3, 9),
                paid_amount=Decimal("1000.00"), status=InstanceStatus.PAID,
            ),
            fixed_instance(
                c, MARCH, due_date=date(2024, 3, 1),
                paid_amount=Decimal("10.00"), status=InstanceStatus.PARTIAL,
            ),
        ])

        result = await service.get_month_instances(MARCH)

        assert [i.name for i in result.data] == ["B", "C", "A"]

    @pytest.mark.asyncio
    async def test_overdue_bills_most_overdue_first(self, service, storage):
        a, b = fixed_bill(name="A"), fixed_bill(name="B")
        await storage.create_instances([
            fixed_instance(
                a, FEBRUARY, status=InstanceStatus.OVERDUE, is_overdue=True, days_overdue=10
            ),
            fixed_instance(
                b, date(2024, 1, 1), status=InstanceStatus.OVERDUE, is_overdue=True,
                days_overdue=40, amount=Decimal("50.00"),
            ),
        ])

        result = await service.get_overdue_bills()

        assert [i.name for i in result.data.instances] == ["B", "A"]
        assert result.data.total_outstanding == Decimal("1050.00")

    @pytest.mark.asyncio
    async def test_mark_paid_defaults_payer_and_date(self, service, storage, hook):
        instance = fixed_instance(fixed_bill(), MARCH)
        await storage.create_instances([instance])

        result = await service.mark_instance_paid(instance.id, 1000)

        assert result.success is True
        assert result.data.status == InstanceStatus.PAID
        assert result.data.paid_by == "felipe"
        assert result.data.paid_date == date(2024, 3, 15)
        assert hook.calls == [["bills", "dashboard", "calendar"]]

    @pytest.mark.asyncio
    async def test_mark_paid_accepts_float_amount(self, service, storage):
        instance = fixed_instance(fixed_bill(), MARCH)
        await storage.create_instances([instance])

        result = await service.mark_instance_paid(instance.id, 250.5, paid_by="Carol")

        assert result.data.paid_amount == Decimal("250.50")
        assert result.data.status == InstanceStatus.PARTIAL

    @pytest.mark.asyncio
    async def test_mark_paid_rejects_overpayment(self, service, storage):
        instance = fixed_instance(fixed_bill(), MARCH)
        await storage.create_instances([instance])

        result = await service.mark_instance_paid(instance.id, Decimal("1200.00"))

        assert result.error_kind == ErrorKind.VALIDATION
        assert result.error == "Payment ($1,200.00) exceeds the remaining balance ($1,000.00)"

    @pytest.mark.asyncio
    async def test_mark_paid_rejects_non_numeric_amount(self, service, storage, hook):
        instance = fixed_instance(fixed_bill(), MARCH)
        await storage.create_instances([instance])

        result = await service.mark_instance_paid(instance.id, "abc")

        assert result.error_kind == ErrorKind.VALIDATION
        assert result.error == "Payment amount must be a number"
        assert (await storage.get_instance(instance.id)).paid_amount == Decimal("0")
        assert hook.calls == []

    @pytest.mark.asyncio
    async def test_mark_paid_unknown_instance(self, service):
        result = await service.mark_instance_paid(uuid4(), Decimal("10.00"))

        assert result.error_kind == ErrorKind.NOT_FOUND
        assert result.error == "Bill instance not found"

    @pytest.mark.asyncio
    async def test_mark_paid_updates_one_time_parent(self, service, storage):
        bill = await storage.create_one_time_bill(one_time_bill())
        instance = one_time_instance(bill)
        await storage.create_instances([instance])

        await service.mark_instance_paid(instance.id, Decimal("500.00"))

        parent = await storage.get_one_time_bill(bill.id)
        assert parent.status == OneTimeBillStatus.PAID

    @pytest.mark.asyncio
    async def test_delete_bill_instance(self, service, storage):
        instance = fixed_instance(fixed_bill(), MARCH)
        await storage.create_instances([instance])

        assert (await service.delete_bill_instance(instance.id)).success
        assert await storage.get_instance(instance.id) is None


class TestFixedBills:

    @pytest.mark.asyncio
    async def test_create_normalizes_creator(self, service):
        result = await service.create_fixed_bill(rent_input(created_by=" Felipe"))

        assert result.success is True
        assert result.data.created_by == "felipe"

    @pytest.mark.asyncio
    async def test_update_leaves_generated_instances_alone(self, service, storage):
        created = await service.create_fixed_bill(rent_input())
        await service.generate_month_instances(MARCH)

        result = await service.update_fixed_bill(
            created.data.id, FixedBillUpdate(amount=Decimal("1100.00"))
        )

        assert result.data.amount == Decimal("1100.00")
        [instance] = await storage.list_instances(month=MARCH)
        assert instance.amount == Decimal("1000.00")

    @pytest.mark.asyncio
    async def test_toggle_active(self, service):
        created = await service.create_fixed_bill(rent_input())

        first = await service.toggle_fixed_bill_active(created.data.id)
        second = await service.toggle_fixed_bill_active(created.data.id)

        assert first.data.is_active is False
        assert second.data.is_active is True

    @pytest.mark.asyncio
    async def test_list_active_only(self, service):
        await service.create_fixed_bill(rent_input())
        await service.create_fixed_bill(rent_input(name="Gym", is_active=False))

        result = await service.list_fixed_bills(active_only=True)

        assert [b.name for b in result.data] == ["Rent"]

    @pytest.mark.asyncio
    async def test_delete(self, service):
        created = await service.create_fixed_bill(rent_input())

        assert (await service.delete_fixed_bill(created.data.id)).success
        assert (await service.get_fixed_bill(created.data.id)).error_kind == ErrorKind.NOT_FOUND


class TestOneTimeBills:

    @pytest.fixture
    def debt_input(self):
        return OneTimeBillCreate(
            description="Car repair",
            total_amount=Decimal("500.00"),
            due_date=date(2024, 3, 20),
            created_by="carol",
        )

    @pytest.mark.asyncio
    async def test_create_derives_status(self, service, storage, debt_input):
        result = await service.create_one_time_bill(
            debt_input.model_copy(update={"paid_amount": Decimal("100.00")})
        )

        assert result.data.status == OneTimeBillStatus.PARTIAL
        # Picked up when March is generated, not on creation
        assert await storage.count_instances(MARCH) == 0

    @pytest.mark.asyncio
    async def test_update_rederives_status(self, service, debt_input):
        created = await service.create_one_time_bill(debt_input)

        paid = await service.update_one_time_bill(
            created.data.id, OneTimeBillUpdate(paid_amount=Decimal("500.00"))
        )
        raised = await service.update_one_time_bill(
            created.data.id, OneTimeBillUpdate(total_amount=Decimal("800.00"))
        )

        assert paid.data.status == OneTimeBillStatus.PAID
        assert raised.data.status == OneTimeBillStatus.PARTIAL

    @pytest.mark.asyncio
    async def test_payments_newest_first(self, service, debt_input):
        created = await service.create_one_time_bill(debt_input)
        bill_id = created.data.id
        for day in (3, 10, 6):
            await service.add_payment(PaymentCreate(
                bill_id=bill_id,
                amount=Decimal("50.00"),
                date=date(2024, 3, day),
                paid_by="felipe",
            ))

        result = await service.get_one_time_bill(bill_id)

        assert [p.date.day for p in result.data.payments] == [10, 6, 3]
        assert result.data.bill.paid_amount == Decimal("150.00")

    @pytest.mark.asyncio
    async def test_delete_payment_returns_bill(self, service, debt_input):
        created = await service.create_one_time_bill(debt_input)
        payment = await service.add_payment(PaymentCreate(
            bill_id=created.data.id,
            amount=Decimal("500.00"),
            date=date(2024, 3, 3),
            paid_by="felipe",
        ))

        result = await service.delete_payment(payment.data.id)

        assert result.data.status == OneTimeBillStatus.PENDING
        assert result.data.paid_amount == Decimal("0")

    @pytest.mark.asyncio
    async def test_delete_cascades_payments_but_keeps_instances(self, service, storage, debt_input):
        created = await service.create_one_time_bill(debt_input)
        bill_id = created.data.id
        payment = await service.add_payment(PaymentCreate(
            bill_id=bill_id, amount=Decimal("50.00"), date=date(2024, 3, 3), paid_by="felipe"
        ))
        await service.generate_month_instances(MARCH)

        result = await service.delete_one_time_bill(bill_id)

        assert result.success is True
        assert await storage.get_payment(payment.data.id) is None
        [instance] = await storage.list_instances(month=MARCH)
        assert instance.one_time_bill_id == bill_id

    @pytest.mark.asyncio
    async def test_list_by_status(self, service, debt_input):
        await service.create_one_time_bill(debt_input)
        await service.create_one_time_bill(
            debt_input.model_copy(update={"paid_amount": Decimal("500.00")})
        )

        result = await service.list_one_time_bills(status=OneTimeBillStatus.PAID)

        assert len(result.data) == 1


class TestIncomeAndExpenses:

    @pytest.mark.asyncio
    async def test_monthly_income_by_person(self, service):
        await service.create_income(
            IncomeCreate(person="Felipe", amount=Decimal("3000"), month=date(2024, 3, 14))
        )
        await service.create_income(
            IncomeCreate(person="felipe", amount=Decimal("250"), type="bonus", month=MARCH)
        )

        result = await service.get_monthly_income(MARCH)

        assert result.data.total == Decimal("3250")
        assert result.data.by_person == {"felipe": Decimal("3250"), "carol": Decimal("0")}

    @pytest.mark.asyncio
    async def test_update_income(self, service):
        created = await service.create_income(
            IncomeCreate(person="felipe", amount=Decimal("3000"), month=MARCH)
        )

        result = await service.update_income(
            created.data.id, IncomeUpdate(person="CAROL", amount=Decimal("3100"))
        )

        assert result.data.person == "carol"
        assert result.data.amount == Decimal("3100")

    @pytest.mark.asyncio
    async def test_unknown_income(self, service):
        result = await service.get_income(uuid4())
        assert result.error == "Income record not found"

    @pytest.mark.asyncio
    async def test_monthly_expenses(self, service):
        await service.create_expense(groceries())
        await service.create_expense(groceries(
            amount=Decimal("20.00"), category=ExpenseCategory.TRANSPORT, paid_by="felipe"
        ))
        await service.create_expense(groceries(date=date(2024, 4, 1)))

        result = await service.get_monthly_expenses(MARCH)

        assert result.data.total == Decimal("100.00")
        assert result.data.count == 2
        assert result.data.by_category == {"food": Decimal("80.00"), "transport": Decimal("20.00")}
        assert result.data.by_person == {"felipe": Decimal("20.00"), "carol": Decimal("80.00")}

    @pytest.mark.asyncio
    async def test_list_expenses_filters(self, service):
        await service.create_expense(groceries())
        await service.create_expense(groceries(paid_by="felipe", date=date(2024, 3, 9)))

        result = await service.list_expenses(paid_by="Felipe", start=date(2024, 3, 5))

        assert [e.date.day for e in result.data] == [9]

    @pytest.mark.asyncio
    async def test_update_expense_revalidates(self, service):
        created = await service.create_expense(groceries())

        result = await service.update_expense(created.data.id, ExpenseUpdate(paid_by="bob"))

        assert result.error_kind == ErrorKind.VALIDATION

    @pytest.mark.asyncio
    async def test_update_expense_moves_it_to_another_day(self, service):
        created = await service.create_expense(groceries())

        result = await service.update_expense(
            created.data.id, ExpenseUpdate(date=date(2024, 4, 9))
        )

        assert result.success
        assert result.data.date == date(2024, 4, 9)
        assert (await service.get_monthly_expenses(MARCH)).data.count == 0
        april = await service.get_monthly_expenses(date(2024, 4, 1))
        assert [e.id for e in april.data.expenses] == [created.data.id]

    @pytest.mark.asyncio
    async def test_expense_stats(self, service):
        await service.create_expense(groceries(amount=Decimal("60.00")))
        await service.create_expense(groceries(amount=Decimal("40.00"), date=date(2024, 3, 11)))

        result = await service.get_expense_stats(date(2024, 3, 1), date(2024, 3, 11))

        stats = result.data
        assert stats.total == Decimal("100.00")
        assert stats.count == 2
        assert stats.average == Decimal("50.00")
        assert stats.daily_average == Decimal("10.00")
        assert stats.by_category["food"].count == 2

    @pytest.mark.asyncio
    async def test_expense_stats_single_day(self, service):
        await service.create_expense(groceries())

        result = await service.get_expense_stats(date(2024, 3, 2), date(2024, 3, 2))

        assert result.data.daily_average == Decimal("80.00")


class TestReportingAndSetup:

    @pytest.mark.asyncio
    async def test_ensure_budget_warnings_once(self, service):
        first = await service.ensure_budget_warnings()
        second = await service.ensure_budget_warnings()

        assert len(first.data) == 3
        assert second.data == []

    @pytest.mark.asyncio
    async def test_budget_warnings(self, service):
        await service.ensure_budget_warnings()
        await service.create_income(
            IncomeCreate(person="felipe", amount=Decimal("100"), month=MARCH)
        )
        await service.create_expense(groceries(amount=Decimal("95.00")))

        result = await service.get_budget_warnings(MARCH)

        assert [a.severity.value for a in result.data] == ["critical"]

    @pytest.mark.asyncio
    async def test_calendar(self, service):
        await service.create_expense(groceries())

        result = await service.get_calendar(MARCH)

        assert len(result.data) == 31
        assert result.data[1].items[0].description == "Groceries"


class TestFactory:

    def test_in_memory_service(self, identity, clock):
        service = create_ledger_service(identity, use_database=False, clock=clock)
        assert isinstance(service, LedgerService)

    @pytest.mark.asyncio
    async def test_sql_service(self, identity, clock):
        service = create_ledger_service(identity, database_url="sqlite://", clock=clock)

        created = await service.create_fixed_bill(rent_input())
        fetched = await service.get_fixed_bill(created.data.id)

        assert fetched.data.name == "Rent"

    @pytest.mark.asyncio
    async def test_sql_service_moves_expense(self, identity, clock):
        service = create_ledger_service(identity, database_url="sqlite://", clock=clock)
        created = await service.create_expense(groceries())

        await service.update_expense(created.data.id, ExpenseUpdate(date=date(2024, 3, 30)))

        fetched = await service.get_expense(created.data.id)
        assert fetched.data.date == date(2024, 3, 30)
