"""
Overdue Sweeper

Ages instances left unpaid in earlier months.

Only instances still unpaid are swept. An instance from an earlier month
that is partially paid is NOT flagged overdue and does not age. This
matches how the household has always tracked partial payments and is kept
as is.

A row is flagged once: after the first sweep its status is overdue and
later sweeps leave it alone, so days_overdue is the age at flagging time.
"""

from datetime import date
from typing import Optional
from uuid import UUID

from household_ledger.dates import days_between, month_key
from household_ledger.events import LedgerEventLogger
from household_ledger.models.ledger import InstanceStatus
from household_ledger.models.summary import SweepResult
from household_ledger.services.clock import Clock
from household_ledger.services.storage.interface import LedgerStorageInterface


class OverdueSweeper:

    def __init__(
        self,
        storage: LedgerStorageInterface,
        clock: Clock,
        event_logger: Optional[LedgerEventLogger] = None,
    ):
        self._storage = storage
        self._clock = clock
        self._events = event_logger or LedgerEventLogger()

    async def sweep_overdue(
        self,
        current_month: date,
        correlation_id: Optional[UUID] = None,
    ) -> SweepResult:
        """
        Flag every unpaid instance from before ``current_month`` as overdue.

        Returns the number of instances flagged.
        """
        key = month_key(current_month)
        today = self._clock.today()

        async with self._storage.transaction():
            stale = await self._storage.list_instances(
                before_month=key,
                statuses=[InstanceStatus.UNPAID],
            )
            for instance in stale:
                await self._storage.update_instance(instance.model_copy(update={
                    "status": InstanceStatus.OVERDUE,
                    "is_overdue": True,
                    "days_overdue": max(0, days_between(today, instance.due_date)),
                }))

        self._events.log_overdue_swept(key, len(stale), correlation_id)
        return SweepResult(current_month=key, count=len(stale))
