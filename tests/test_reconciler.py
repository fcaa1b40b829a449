"""
Tests for the payment reconciler

Covers both ledgers: instance payments (with the write-through to a
one-time parent) and payments recorded directly against one-time bills.
"""

import asyncio
from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from household_ledger.engine.errors import EntityNotFoundError, LedgerValidationError
from household_ledger.engine.reconciler import PaymentReconciler, recompute_bill_status
from household_ledger.models.ledger import (
    InstanceStatus,
    OneTimeBill,
    OneTimeBillStatus,
    PaymentCreate,
)
from household_ledger.services.storage import InMemoryLedgerStorage, StorageError

from factories import fixed_bill, fixed_instance, one_time_bill, one_time_instance

MARCH = date(2024, 3, 1)
PAID_ON = date(2024, 3, 10)


class FailingBillUpdateStorage(InMemoryLedgerStorage):
    """Fails the second write of a paired update."""

    async def update_one_time_bill(self, bill: OneTimeBill) -> OneTimeBill:
        raise StorageError("disk full")


async def add_instance(storage, instance):
    await storage.create_instances([instance])
    return instance


class TestInstancePayments:
    """Tests for paying a month's bill instance."""

    @pytest.mark.asyncio
    async def test_full_payment_marks_paid(self, storage):
        instance = await add_instance(storage, fixed_instance(fixed_bill(), MARCH))

        updated = await PaymentReconciler(storage).mark_instance_paid(
            instance.id, Decimal("1000.00"), "carol", PAID_ON
        )

        assert updated.status == InstanceStatus.PAID
        assert updated.paid_amount == Decimal("1000.00")
        assert updated.paid_date == PAID_ON
        assert updated.paid_by == "carol"
        stored = await storage.get_instance(instance.id)
        assert stored.status == InstanceStatus.PAID

    @pytest.mark.asyncio
    async def test_partial_payments_accumulate(self, storage):
        instance = await add_instance(storage, fixed_instance(fixed_bill(), MARCH))
        reconciler = PaymentReconciler(storage)

        first = await reconciler.mark_instance_paid(
            instance.id, Decimal("400.00"), "carol", PAID_ON
        )
        assert first.status == InstanceStatus.PARTIAL
        assert first.paid_date is None
        assert first.paid_by is None

        second = await reconciler.mark_instance_paid(
            instance.id, Decimal("600.00"), "felipe", date(2024, 3, 12)
        )
        assert second.status == InstanceStatus.PAID
        assert second.paid_amount == Decimal("1000.00")
        assert second.paid_date == date(2024, 3, 12)
        assert second.paid_by == "felipe"

    @pytest.mark.asyncio
    async def test_paying_overdue_instance_clears_flag(self, storage):
        instance = await add_instance(storage, fixed_instance(
            fixed_bill(),
            date(2024, 2, 1),
            status=InstanceStatus.OVERDUE,
            is_overdue=True,
            days_overdue=9,
        ))

        updated = await PaymentReconciler(storage).mark_instance_paid(
            instance.id, Decimal("1000.00"), "carol", PAID_ON
        )

        assert updated.status == InstanceStatus.PAID
        assert updated.is_overdue is False

    @pytest.mark.asyncio
    async def test_payment_writes_through_to_one_time_parent(self, storage):
        """Test that both the instance and its one-time bill move together."""
        bill = await storage.create_one_time_bill(one_time_bill())
        instance = await add_instance(storage, one_time_instance(bill))

        await PaymentReconciler(storage).mark_instance_paid(
            instance.id, Decimal("200.00"), "carol", PAID_ON
        )

        parent = await storage.get_one_time_bill(bill.id)
        assert parent.paid_amount == Decimal("200.00")
        assert parent.status == OneTimeBillStatus.PARTIAL
        stored = await storage.get_instance(instance.id)
        assert stored.paid_amount == Decimal("200.00")
        assert stored.status == InstanceStatus.PARTIAL

    @pytest.mark.asyncio
    async def test_parent_deleted_updates_instance_only(self, storage):
        bill = await storage.create_one_time_bill(one_time_bill())
        instance = await add_instance(storage, one_time_instance(bill))
        await storage.delete_one_time_bill(bill.id)

        updated = await PaymentReconciler(storage).mark_instance_paid(
            instance.id, Decimal("500.00"), "carol", PAID_ON
        )

        assert updated.status == InstanceStatus.PAID
        assert await storage.get_one_time_bill(bill.id) is None

    @pytest.mark.asyncio
    async def test_rejects_payment_above_remaining(self, storage):
        instance = await add_instance(storage, fixed_instance(
            fixed_bill(), MARCH, paid_amount=Decimal("900.00"), status=InstanceStatus.PARTIAL
        ))

        with pytest.raises(LedgerValidationError):
            await PaymentReconciler(storage).mark_instance_paid(
                instance.id, Decimal("100.01"), "carol", PAID_ON
            )

        stored = await storage.get_instance(instance.id)
        assert stored.paid_amount == Decimal("900.00")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("amount", ["0", "-5.00"])
    async def test_rejects_non_positive_amount(self, storage, amount):
        instance = await add_instance(storage, fixed_instance(fixed_bill(), MARCH))

        with pytest.raises(LedgerValidationError):
            await PaymentReconciler(storage).mark_instance_paid(
                instance.id, Decimal(amount), "carol", PAID_ON
            )

    @pytest.mark.asyncio
    async def test_unknown_instance(self, storage):
        with pytest.raises(EntityNotFoundError):
            await PaymentReconciler(storage).mark_instance_paid(
                uuid4(), Decimal("10.00"), "carol", PAID_ON
            )

    @pytest.mark.asyncio
    async def test_failed_parent_write_rolls_back_instance(self):
        """Test that a failure on the second write leaves the first unchanged."""
        storage = FailingBillUpdateStorage()
        bill = await storage.create_one_time_bill(one_time_bill())
        instance = await add_instance(storage, one_time_instance(bill))

        with pytest.raises(StorageError):
            await PaymentReconciler(storage).mark_instance_paid(
                instance.id, Decimal("200.00"), "carol", PAID_ON
            )

        stored = await storage.get_instance(instance.id)
        assert stored.paid_amount == Decimal("0")
        assert stored.status == InstanceStatus.UNPAID


class TestDebtPayments:
    """Tests for payments recorded against one-time bills."""

    @pytest.mark.asyncio
    async def test_add_payment_updates_bill(self, storage):
        bill = await storage.create_one_time_bill(one_time_bill())

        payment, updated = await PaymentReconciler(storage).add_payment(PaymentCreate(
            bill_id=bill.id, amount=Decimal("150.00"), date=PAID_ON, paid_by="felipe"
        ))

        assert payment.bill_id == bill.id
        assert updated.paid_amount == Decimal("150.00")
        assert updated.status == OneTimeBillStatus.PARTIAL
        assert await storage.get_payment(payment.id) == payment

    @pytest.mark.asyncio
    async def test_overpayment_is_accepted(self, storage):
        """Test that debt payments are not capped at the remaining balance."""
        bill = await storage.create_one_time_bill(one_time_bill())

        _, updated = await PaymentReconciler(storage).add_payment(PaymentCreate(
            bill_id=bill.id, amount=Decimal("650.00"), date=PAID_ON, paid_by="felipe"
        ))

        assert updated.paid_amount == Decimal("650.00")
        assert updated.status == OneTimeBillStatus.PAID

    @pytest.mark.asyncio
    async def test_add_then_delete_restores_bill(self, storage):
        bill = await storage.create_one_time_bill(one_time_bill())
        reconciler = PaymentReconciler(storage)
        payment, _ = await reconciler.add_payment(PaymentCreate(
            bill_id=bill.id, amount=Decimal("500.00"), date=PAID_ON, paid_by="felipe"
        ))

        restored = await reconciler.delete_payment(payment.id, actor="felipe")

        assert restored.paid_amount == Decimal("0")
        assert restored.status == OneTimeBillStatus.PENDING
        assert await storage.get_payment(payment.id) is None
        assert await storage.list_payments(bill.id) == []

    @pytest.mark.asyncio
    async def test_delete_payment_floors_at_zero(self, storage):
        """Test that a reversal never drives the paid amount negative."""
        bill = await storage.create_one_time_bill(one_time_bill())
        reconciler = PaymentReconciler(storage)
        payment, updated = await reconciler.add_payment(PaymentCreate(
            bill_id=bill.id, amount=Decimal("100.00"), date=PAID_ON, paid_by="felipe"
        ))
        # Edited down by hand after the payment was recorded
        await storage.update_one_time_bill(
            recompute_bill_status(updated.model_copy(update={"paid_amount": Decimal("40.00")}))
        )

        restored = await reconciler.delete_payment(payment.id)

        assert restored.paid_amount == Decimal("0")
        assert restored.status == OneTimeBillStatus.PENDING

    @pytest.mark.asyncio
    async def test_payment_on_unknown_bill(self, storage):
        with pytest.raises(EntityNotFoundError, match="Bill not found"):
            await PaymentReconciler(storage).add_payment(PaymentCreate(
                bill_id=uuid4(), amount=Decimal("10.00"), date=PAID_ON, paid_by="felipe"
            ))

    @pytest.mark.asyncio
    async def test_delete_unknown_payment(self, storage):
        with pytest.raises(EntityNotFoundError, match="Payment not found"):
            await PaymentReconciler(storage).delete_payment(uuid4())

    @pytest.mark.asyncio
    async def test_concurrent_payments_do_not_lose_updates(self, storage):
        bill = await storage.create_one_time_bill(one_time_bill())
        reconciler = PaymentReconciler(storage)

        await asyncio.gather(*[
            reconciler.add_payment(PaymentCreate(
                bill_id=bill.id, amount=Decimal("50.00"), date=PAID_ON, paid_by="carol"
            ))
            for _ in range(4)
        ])

        stored = await storage.get_one_time_bill(bill.id)
        assert stored.paid_amount == Decimal("200.00")
        assert len(await storage.list_payments(bill.id)) == 4


class TestRecomputeBillStatus:

    def test_returns_same_bill_when_unchanged(self):
        bill = one_time_bill()
        assert recompute_bill_status(bill) is bill

    def test_rederives_from_amounts(self):
        bill = one_time_bill(paid_amount=Decimal("500.00"))
        assert recompute_bill_status(bill).status == OneTimeBillStatus.PAID
