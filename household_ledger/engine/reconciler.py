"""
Payment Reconciler

Applies money to bills. There are two ledgers:

1. Instance payments (month tracking): a payment against one month's
   BillInstance. If the instance came from a one-time bill, the same
   amount is added to that bill too.
2. Debt payments: Payment records against a one-time bill, each of which
   moves the bill's paid amount.

CRITICAL: Every operation that writes two records (instance + parent bill,
payment + bill) runs inside ONE storage transaction. Either both records
change or neither does. Reads happen inside the same transaction, so two
concurrent payments against one bill cannot lose an update.

Over-payment asymmetry, kept on purpose:
- instance payments are rejected when they exceed the remaining balance
- debt payments are NOT clamped; a bill can end up with paid > total and
  simply shows as paid
"""

from datetime import date
from decimal import Decimal
from typing import Optional
from uuid import UUID

from household_ledger.engine.errors import EntityNotFoundError, LedgerValidationError
from household_ledger.engine.status import derive_bill_status, derive_instance_status
from household_ledger.events import LedgerEventLogger
from household_ledger.models.ledger import (
    BillInstance,
    InstanceStatus,
    OneTimeBill,
    Payment,
    PaymentCreate,
)
from household_ledger.services.storage.interface import LedgerStorageInterface


def recompute_bill_status(bill: OneTimeBill) -> OneTimeBill:
    """Return ``bill`` with its status re-derived from its amounts."""
    status = derive_bill_status(bill.paid_amount, bill.total_amount)
    if status == bill.status:
        return bill
    return bill.model_copy(update={"status": status})


class PaymentReconciler:
    """Applies and reverses payments, keeping parent bills in step."""

    def __init__(
        self,
        storage: LedgerStorageInterface,
        event_logger: Optional[LedgerEventLogger] = None,
    ):
        self._storage = storage
        self._events = event_logger or LedgerEventLogger()

    # -------------------------------------------------------------------------
    # Instance payments
    # -------------------------------------------------------------------------

    async def mark_instance_paid(
        self,
        instance_id: UUID,
        amount: Decimal,
        paid_by: str,
        paid_on: date,
        correlation_id: Optional[UUID] = None,
    ) -> BillInstance:
        """
        Apply ``amount`` to a bill instance.

        Raises:
            EntityNotFoundError: the instance does not exist
            LedgerValidationError: amount is not positive or exceeds what
                is still owed on the instance
        """
        if amount <= 0:
            raise LedgerValidationError("Payment amount must be greater than zero")

        async with self._storage.transaction():
            instance = await self._storage.get_instance(instance_id)
            if instance is None:
                raise EntityNotFoundError("Bill instance not found", "bill_instance")

            if amount > instance.remaining_amount:
                raise LedgerValidationError(
                    f"Payment (${amount:,.2f}) exceeds the remaining balance "
                    f"(${instance.remaining_amount:,.2f})"
                )

            new_paid = instance.paid_amount + amount
            status = derive_instance_status(new_paid, instance.amount, instance.is_overdue)
            fully_paid = status == InstanceStatus.PAID

            instance = await self._storage.update_instance(instance.model_copy(update={
                "paid_amount": new_paid,
                "status": status,
                "paid_date": paid_on if fully_paid else None,
                "paid_by": paid_by if fully_paid else None,
                "is_overdue": False if fully_paid else instance.is_overdue,
            }))

            parent_id = instance.one_time_bill_id
            if parent_id is not None:
                parent = await self._storage.get_one_time_bill(parent_id)
                # The parent may have been deleted; the instance keeps its snapshot
                if parent is not None:
                    await self._apply_to_bill(parent, parent.paid_amount + amount)

        self._events.log_instance_payment(
            instance_id=instance.id,
            amount=str(amount),
            status=instance.status.value,
            parent_id=parent_id,
            actor=paid_by,
            correlation_id=correlation_id,
        )
        return instance

    # -------------------------------------------------------------------------
    # Debt payments
    # -------------------------------------------------------------------------

    async def _apply_to_bill(self, bill: OneTimeBill, new_paid: Decimal) -> OneTimeBill:
        return await self._storage.update_one_time_bill(bill.model_copy(update={
            "paid_amount": new_paid,
            "status": derive_bill_status(new_paid, bill.total_amount),
        }))

    async def add_payment(
        self,
        data: PaymentCreate,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[Payment, OneTimeBill]:
        """
        Record a payment and add it to the bill's paid amount.

        Returns:
            (payment, updated bill)
        """
        if data.amount <= 0:
            raise LedgerValidationError("Payment amount must be greater than zero")

        async with self._storage.transaction():
            bill = await self._storage.get_one_time_bill(data.bill_id)
            if bill is None:
                raise EntityNotFoundError("Bill not found", "one_time_bill")

            payment = await self._storage.create_payment(Payment(
                bill_id=bill.id,
                amount=data.amount,
                date=data.date,
                paid_by=data.paid_by,
                notes=data.notes,
            ))
            bill = await self._apply_to_bill(bill, bill.paid_amount + data.amount)

        self._events.log_payment_added(
            payment_id=payment.id,
            bill_id=bill.id,
            amount=str(payment.amount),
            bill_status=bill.status.value,
            actor=payment.paid_by,
            correlation_id=correlation_id,
        )
        return payment, bill

    async def delete_payment(
        self,
        payment_id: UUID,
        actor: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> OneTimeBill:
        """
        Reverse a payment. The bill's paid amount never goes below zero.

        Returns:
            The updated bill
        """
        async with self._storage.transaction():
            payment = await self._storage.get_payment(payment_id)
            if payment is None:
                raise EntityNotFoundError("Payment not found", "payment")

            bill = await self._storage.get_one_time_bill(payment.bill_id)
            if bill is None:
                raise EntityNotFoundError("Bill not found", "one_time_bill")

            new_paid = max(Decimal("0"), bill.paid_amount - payment.amount)
            bill = await self._apply_to_bill(bill, new_paid)
            await self._storage.delete_payment(payment.id)

        self._events.log_payment_deleted(
            payment_id=payment.id,
            bill_id=bill.id,
            amount=str(payment.amount),
            actor=actor,
            correlation_id=correlation_id,
        )
        return bill
