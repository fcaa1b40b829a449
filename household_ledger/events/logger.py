"""
Ledger Event Logger

Every significant ledger action is logged as a structured event.
This provides:
1. Traceability of month generation, sweeps and payments
2. Debugging capability when a write fails
3. Correlation of all log lines produced by one user action

The event logger:
- Only writes to the structured log (nothing is persisted to the store)
- Never raises: a logging failure must not fail a ledger operation
"""

import logging
import sys
from typing import Optional
from uuid import UUID, uuid4

import structlog

from household_ledger.models.events import (
    EventSeverity,
    LedgerEvent,
    LedgerEventBuilder,
    LedgerEventType,
)


def configure_logging(level: str = "INFO") -> None:
    """
    Configure structlog on top of the standard library logger.

    Safe to call more than once; the last call wins.
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper(), logging.INFO),
        force=True,
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer()
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


class LedgerEventLogger:
    """Central event logging service for the ledger."""

    def __init__(self, logger_name: str = "household_ledger"):
        self._logger = structlog.get_logger(logger_name)

    def log(self, event: LedgerEvent) -> None:
        """Emit an event at the level matching its severity."""
        try:
            log_dict = event.to_log_dict()
            if event.severity == EventSeverity.ERROR:
                self._logger.error("ledger_event", **log_dict)
            elif event.severity == EventSeverity.WARNING:
                self._logger.warning("ledger_event", **log_dict)
            elif event.severity == EventSeverity.DEBUG:
                self._logger.debug("ledger_event", **log_dict)
            else:
                self._logger.info("ledger_event", **log_dict)
        except Exception:
            # Logging must never break the ledger operation being logged
            pass

    def log_generated(self, month, generated: int, correlation_id: Optional[UUID] = None) -> None:
        self.log(LedgerEventBuilder.instances_generated(month, generated, correlation_id))

    def log_generation_skipped(self, month, correlation_id: Optional[UUID] = None) -> None:
        self.log(LedgerEventBuilder.generation_skipped(month, correlation_id))

    def log_overdue_swept(self, current_month, count: int, correlation_id: Optional[UUID] = None) -> None:
        self.log(LedgerEventBuilder.overdue_swept(current_month, count, correlation_id))

    def log_instance_payment(
        self,
        instance_id: UUID,
        amount: str,
        status: str,
        parent_id: Optional[UUID],
        actor: Optional[str],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(LedgerEventBuilder.instance_payment_applied(
            instance_id=instance_id,
            amount=amount,
            status=status,
            parent_id=parent_id,
            actor=actor,
            correlation_id=correlation_id,
        ))

    def log_payment_added(
        self,
        payment_id: UUID,
        bill_id: UUID,
        amount: str,
        bill_status: str,
        actor: Optional[str],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(LedgerEventBuilder.payment_added(
            payment_id=payment_id,
            bill_id=bill_id,
            amount=amount,
            bill_status=bill_status,
            actor=actor,
            correlation_id=correlation_id,
        ))

    def log_payment_deleted(
        self,
        payment_id: UUID,
        bill_id: UUID,
        amount: str,
        actor: Optional[str],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(LedgerEventBuilder.payment_deleted(
            payment_id=payment_id,
            bill_id=bill_id,
            amount=amount,
            actor=actor,
            correlation_id=correlation_id,
        ))

    def log_entity_change(
        self,
        event_type: LedgerEventType,
        entity_type: str,
        entity_id: UUID,
        actor: Optional[str],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(LedgerEventBuilder.entity_changed(
            event_type, entity_type, entity_id, actor, correlation_id
        ))

    def log_validation_failed(
        self,
        operation: str,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(LedgerEventBuilder.validation_failed(operation, issues, correlation_id))

    def log_not_found(
        self,
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(LedgerEventBuilder.not_found(operation, error_message, correlation_id))

    def log_unauthenticated(self, operation: str) -> None:
        self.log(LedgerEventBuilder.unauthenticated(operation))

    def log_persistence_error(
        self,
        operation: str,
        error: Exception,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(LedgerEventBuilder.persistence_error(
            operation=operation,
            error_type=type(error).__name__,
            error_message=str(error),
            correlation_id=correlation_id,
        ))

    def log_hook_failed(self, views: list[str], error: Exception) -> None:
        self.log(LedgerEventBuilder.hook_failed(views, str(error)))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., marking a bill paid).
    Pass it through all subsequent operations.
    """
    return uuid4()
