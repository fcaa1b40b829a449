"""Default budget warning rules for a fresh store."""

from household_ledger.models.ledger import BudgetWarning, BudgetWarningType
from household_ledger.services.storage.interface import LedgerStorageInterface

DEFAULT_WARNINGS = (
    (BudgetWarningType.PERCENTAGE, 0.8),
    (BudgetWarningType.UPCOMING_BILLS, None),
    (BudgetWarningType.INSUFFICIENT_FUNDS, None),
)


async def seed_budget_warnings(storage: LedgerStorageInterface) -> list[BudgetWarning]:
    """
    Insert the default warning rules if the store has none.

    Returns the rules that were created (empty when rules already exist).
    """
    async with storage.transaction():
        if await storage.list_budget_warnings(active_only=False):
            return []
        created = []
        for warning_type, threshold in DEFAULT_WARNINGS:
            warning = BudgetWarning(type=warning_type, threshold=threshold)
            created.append(await storage.create_budget_warning(warning))
        return created
