"""
Instance Generator

Expands fixed-bill templates and the one-time bills due in a month into
that month's BillInstance rows.

DESIGN DECISION: Idempotency is per month, not per template. If ANY
instance exists for the month, generation is skipped entirely. A template
added after a month was generated therefore never gets an instance for
that month. This is accepted behavior.

The count and the inserts run in one storage transaction. The store also
enforces uniqueness of (month, source bill), so a generator racing us on
the same month makes one of the two runs fail with DuplicateError. That
run is reported as "already generated", not as an error.
"""

from datetime import date
from typing import Optional
from uuid import UUID

from household_ledger.dates import clamp_due_date, format_month, month_end, month_key
from household_ledger.events import LedgerEventLogger
from household_ledger.models.ledger import (
    BillInstance,
    FixedSource,
    InstanceStatus,
    OneTimeSource,
)
from household_ledger.models.summary import GenerationResult
from household_ledger.services.storage.interface import (
    DuplicateError,
    LedgerStorageInterface,
)

ALREADY_GENERATED = "Bills already generated for this month"


class InstanceGenerator:
    """Materializes per-month bill instances."""

    def __init__(
        self,
        storage: LedgerStorageInterface,
        event_logger: Optional[LedgerEventLogger] = None,
    ):
        self._storage = storage
        self._events = event_logger or LedgerEventLogger()

    async def _build_instances(self, month: date) -> list[BillInstance]:
        instances = []

        for bill in await self._storage.list_fixed_bills(active_only=True):
            instances.append(BillInstance(
                source=FixedSource(fixed_bill_id=bill.id),
                name=bill.name,
                amount=bill.amount,
                category=bill.category,
                due_date=clamp_due_date(month, bill.due_day),
                month=month,
                status=InstanceStatus.UNPAID,
                created_by=bill.created_by,
            ))

        due_in_month = await self._storage.list_one_time_bills(
            due_from=month,
            due_to=month_end(month),
            exclude_paid=True,
        )
        for bill in due_in_month:
            # Only what is still owed at generation time
            instances.append(BillInstance(
                source=OneTimeSource(one_time_bill_id=bill.id),
                name=bill.description,
                amount=bill.remaining_amount,
                category=bill.category,
                due_date=bill.due_date,
                month=month,
                status=InstanceStatus.UNPAID,
                created_by=bill.created_by,
            ))

        return instances

    async def generate_month_instances(
        self,
        month: date,
        correlation_id: Optional[UUID] = None,
    ) -> GenerationResult:
        """
        Generate the instances for ``month`` unless the month already has any.

        Args:
            month: Any date inside the target month
            correlation_id: Ties the log lines of one user action together

        Returns:
            GenerationResult; ``skipped`` is True for the idempotent no-op
        """
        key = month_key(month)

        try:
            async with self._storage.transaction():
                if await self._storage.count_instances(key) > 0:
                    generated = None
                else:
                    instances = await self._build_instances(key)
                    generated = await self._storage.create_instances(instances)
        except DuplicateError:
            generated = None

        if generated is None:
            self._events.log_generation_skipped(key, correlation_id)
            return GenerationResult(month=key, skipped=True, message=ALREADY_GENERATED)

        self._events.log_generated(key, generated, correlation_id)
        return GenerationResult(
            month=key,
            generated=generated,
            message=f"Generated {generated} bills for {format_month(key)}",
        )
