"""Exceptions raised by the ledger engine."""

from typing import Optional

from household_ledger.models.validation import ValidationIssue


class LedgerError(Exception):
    """Base exception for ledger engine failures."""
    pass


class EntityNotFoundError(LedgerError):
    """A referenced record does not exist."""

    def __init__(self, message: str, entity_type: Optional[str] = None):
        super().__init__(message)
        self.entity_type = entity_type


class LedgerValidationError(LedgerError):
    """Input rejected before any write."""

    def __init__(self, message: str, issues: Optional[list[ValidationIssue]] = None):
        super().__init__(message)
        self.issues = issues or []
