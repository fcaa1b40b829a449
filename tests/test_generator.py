"""Tests for per-month instance generation."""

import asyncio
from datetime import date
from decimal import Decimal

import pytest

from household_ledger.engine.generator import ALREADY_GENERATED, InstanceGenerator
from household_ledger.models.ledger import InstanceStatus, OneTimeBillStatus
from household_ledger.services.storage import InMemoryLedgerStorage

from factories import fixed_bill, one_time_bill

MARCH = date(2024, 3, 1)


class StaleCountStorage(InMemoryLedgerStorage):
    """Reports every month as empty, as a racing generator would see it."""

    async def count_instances(self, month: date) -> int:
        return 0


async def seed_month(storage):
    rent = await storage.create_fixed_bill(fixed_bill(category="housing"))
    await storage.create_fixed_bill(fixed_bill(name="Gym", due_day=10, is_active=False))
    repair = await storage.create_one_time_bill(one_time_bill(
        total_amount=Decimal("500.00"),
        paid_amount=Decimal("200.00"),
        status=OneTimeBillStatus.PARTIAL,
        category="car",
    ))
    await storage.create_one_time_bill(one_time_bill(
        description="Settled",
        total_amount=Decimal("80.00"),
        paid_amount=Decimal("80.00"),
        status=OneTimeBillStatus.PAID,
    ))
    await storage.create_one_time_bill(one_time_bill(
        description="Next month", due_date=date(2024, 4, 2)
    ))
    return rent, repair


class TestInstanceGeneration:
    """Tests for materializing a month."""

    @pytest.mark.asyncio
    async def test_generates_active_fixed_and_due_one_time(self, storage):
        """Test that only active templates and unpaid bills due in the month are used."""
        rent, repair = await seed_month(storage)

        result = await InstanceGenerator(storage).generate_month_instances(date(2024, 3, 17))

        assert result.skipped is False
        assert result.generated == 2
        assert result.month == MARCH
        assert result.message == "Generated 2 bills for March 2024"

        instances = await storage.list_instances(month=MARCH)
        by_source = {i.source.kind: i for i in instances}
        fixed = by_source["fixed"]
        assert fixed.fixed_bill_id == rent.id
        assert fixed.due_date == date(2024, 3, 5)
        assert fixed.amount == Decimal("1000.00")
        assert fixed.category == "housing"
        assert fixed.status == InstanceStatus.UNPAID
        assert fixed.created_by == "felipe"

        one_time = by_source["one_time"]
        assert one_time.one_time_bill_id == repair.id
        assert one_time.amount == Decimal("300.00")
        assert one_time.category == "car"
        assert one_time.due_date == date(2024, 3, 20)

    @pytest.mark.asyncio
    async def test_second_run_is_a_no_op(self, storage):
        """Test idempotency: a generated month is never generated again."""
        await seed_month(storage)
        generator = InstanceGenerator(storage)

        await generator.generate_month_instances(MARCH)
        second = await generator.generate_month_instances(MARCH)

        assert second.skipped is True
        assert second.generated == 0
        assert second.message == ALREADY_GENERATED
        assert await storage.count_instances(MARCH) == 2

    @pytest.mark.asyncio
    async def test_template_added_later_is_not_backfilled(self, storage):
        """Test that idempotency is per month, not per template."""
        await seed_month(storage)
        generator = InstanceGenerator(storage)
        await generator.generate_month_instances(MARCH)

        await storage.create_fixed_bill(fixed_bill(name="Phone", due_day=12))
        result = await generator.generate_month_instances(MARCH)

        assert result.skipped is True
        assert await storage.count_instances(MARCH) == 2

    @pytest.mark.asyncio
    async def test_empty_month_generates_nothing(self, storage):
        result = await InstanceGenerator(storage).generate_month_instances(MARCH)
        assert result.skipped is False
        assert result.generated == 0
        assert result.message == "Generated 0 bills for March 2024"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "month,expected",
        [
            (date(2024, 2, 1), date(2024, 2, 29)),
            (date(2023, 2, 1), date(2023, 2, 28)),
            (date(2024, 4, 1), date(2024, 4, 30)),
            (date(2024, 1, 1), date(2024, 1, 31)),
        ],
    )
    async def test_due_day_clamped_to_month_length(self, storage, month, expected):
        await storage.create_fixed_bill(fixed_bill(due_day=31))

        await InstanceGenerator(storage).generate_month_instances(month)

        [instance] = await storage.list_instances(month=month)
        assert instance.due_date == expected

    @pytest.mark.asyncio
    async def test_months_are_independent(self, storage):
        await storage.create_fixed_bill(fixed_bill())
        generator = InstanceGenerator(storage)

        await generator.generate_month_instances(date(2024, 3, 1))
        april = await generator.generate_month_instances(date(2024, 4, 1))

        assert april.generated == 1
        assert await storage.count_instances(date(2024, 4, 1)) == 1


class TestConcurrentGeneration:
    """Tests for two generators racing on one month."""

    @pytest.mark.asyncio
    async def test_concurrent_runs_generate_once(self, storage):
        await seed_month(storage)
        generator = InstanceGenerator(storage)

        results = await asyncio.gather(
            generator.generate_month_instances(MARCH),
            generator.generate_month_instances(MARCH),
        )

        assert sorted(r.skipped for r in results) == [False, True]
        assert await storage.count_instances(MARCH) == 2

    @pytest.mark.asyncio
    async def test_unique_source_per_month_reports_skip(self):
        """Test that a duplicate insert is reported as already generated."""
        storage = StaleCountStorage()
        await seed_month(storage)
        generator = InstanceGenerator(storage)
        await generator.generate_month_instances(MARCH)

        result = await generator.generate_month_instances(MARCH)

        assert result.skipped is True
        assert result.message == ALREADY_GENERATED
        assert len(await storage.list_instances(month=MARCH)) == 2
