"""
View Invalidation Hooks

After a successful mutation the service tells the presentation layer which
views are stale. The hook is fire-and-forget: its return value is ignored
and an exception from it is logged, never propagated.
"""

from typing import Callable, Iterable, Optional

from household_ledger.events import LedgerEventLogger

InvalidationHook = Callable[[list[str]], None]

DASHBOARD = "dashboard"
BILLS = "bills"
INCOME = "income"
EXPENSES = "expenses"
CALENDAR = "calendar"


class RecordingHook:
    """Collects every invalidation call. Handy in tests and scripts."""

    def __init__(self):
        self.calls: list[list[str]] = []

    def __call__(self, views: list[str]) -> None:
        self.calls.append(list(views))

    @property
    def invalidated(self) -> set[str]:
        return {view for call in self.calls for view in call}


def fire_invalidation(
    hook: Optional[InvalidationHook],
    views: Iterable[str],
    event_logger: LedgerEventLogger,
) -> None:
    if hook is None:
        return
    views = list(views)
    try:
        hook(views)
    except Exception as e:
        event_logger.log_hook_failed(views, e)
