"""
Ledger Event Models

Significant ledger actions are emitted as structured log events so a run
can be traced end to end (one correlation id per user action).

DESIGN DECISION: Events are log lines only. They are never written to the
ledger store; records carry created/updated timestamps and nothing more.
"""

from datetime import date, datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from household_ledger.models.ledger import utcnow


class LedgerEventType(str, Enum):
    """
    Types of events we log.

    Month tracking, payments and CRUD each have their own event types.
    """
    # Month tracking
    INSTANCES_GENERATED = "instances_generated"
    GENERATION_SKIPPED = "generation_skipped"
    OVERDUE_SWEPT = "overdue_swept"

    # Payments
    INSTANCE_PAYMENT_APPLIED = "instance_payment_applied"
    PAYMENT_ADDED = "payment_added"
    PAYMENT_DELETED = "payment_deleted"

    # Records
    ENTITY_CREATED = "entity_created"
    ENTITY_UPDATED = "entity_updated"
    ENTITY_DELETED = "entity_deleted"

    # Failures
    VALIDATION_FAILED = "validation_failed"
    ENTITY_NOT_FOUND = "entity_not_found"
    UNAUTHENTICATED = "unauthenticated"
    PERSISTENCE_ERROR = "persistence_error"
    HOOK_FAILED = "hook_failed"


class EventSeverity(str, Enum):
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class LedgerEvent(BaseModel):
    """A single structured log event."""

    event_id: UUID = Field(default_factory=uuid4)
    timestamp: datetime = Field(default_factory=utcnow)

    event_type: LedgerEventType
    severity: EventSeverity = EventSeverity.INFO

    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'bill_instance', 'one_time_bill')"
    )
    entity_id: Optional[UUID] = None
    correlation_id: Optional[UUID] = None
    actor: Optional[str] = Field(
        default=None,
        description="Household member who triggered the action"
    )

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "actor": self.actor,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }


class LedgerEventBuilder:
    """
    Helper class to build ledger events with common patterns.

    Usage:
        event = LedgerEventBuilder.instances_generated(month, 4, correlation_id)
        event = LedgerEventBuilder.payment_added(payment_id, bill_id, "50.00", ...)
    """

    @staticmethod
    def instances_generated(
        month: date,
        generated: int,
        correlation_id: Optional[UUID] = None,
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.INSTANCES_GENERATED,
            entity_type="bill_instance",
            correlation_id=correlation_id,
            description=f"Generated {generated} bill instances for {month:%Y-%m}",
            details={"month": month.isoformat(), "generated": generated},
        )

    @staticmethod
    def generation_skipped(
        month: date,
        correlation_id: Optional[UUID] = None,
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.GENERATION_SKIPPED,
            severity=EventSeverity.DEBUG,
            entity_type="bill_instance",
            correlation_id=correlation_id,
            description=f"Bill instances already generated for {month:%Y-%m}",
            details={"month": month.isoformat()},
        )

    @staticmethod
    def overdue_swept(
        current_month: date,
        count: int,
        correlation_id: Optional[UUID] = None,
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.OVERDUE_SWEPT,
            entity_type="bill_instance",
            correlation_id=correlation_id,
            description=f"Marked {count} bill instances overdue before {current_month:%Y-%m}",
            details={"current_month": current_month.isoformat(), "count": count},
        )

    @staticmethod
    def instance_payment_applied(
        instance_id: UUID,
        amount: str,
        status: str,
        parent_id: Optional[UUID],
        actor: Optional[str],
        correlation_id: Optional[UUID] = None,
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.INSTANCE_PAYMENT_APPLIED,
            entity_type="bill_instance",
            entity_id=instance_id,
            correlation_id=correlation_id,
            actor=actor,
            description=f"Payment of {amount} applied; instance is now {status}",
            details={
                "amount": amount,
                "status": status,
                "one_time_bill_id": str(parent_id) if parent_id else None,
            },
        )

    @staticmethod
    def payment_added(
        payment_id: UUID,
        bill_id: UUID,
        amount: str,
        bill_status: str,
        actor: Optional[str],
        correlation_id: Optional[UUID] = None,
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.PAYMENT_ADDED,
            entity_type="payment",
            entity_id=payment_id,
            correlation_id=correlation_id,
            actor=actor,
            description=f"Payment of {amount} recorded; bill is now {bill_status}",
            details={"bill_id": str(bill_id), "amount": amount, "bill_status": bill_status},
        )

    @staticmethod
    def payment_deleted(
        payment_id: UUID,
        bill_id: UUID,
        amount: str,
        actor: Optional[str],
        correlation_id: Optional[UUID] = None,
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.PAYMENT_DELETED,
            entity_type="payment",
            entity_id=payment_id,
            correlation_id=correlation_id,
            actor=actor,
            description=f"Payment of {amount} reversed",
            details={"bill_id": str(bill_id), "amount": amount},
        )

    @staticmethod
    def entity_changed(
        event_type: LedgerEventType,
        entity_type: str,
        entity_id: UUID,
        actor: Optional[str],
        correlation_id: Optional[UUID] = None,
    ) -> LedgerEvent:
        verb = event_type.value.replace("entity_", "")
        return LedgerEvent(
            event_type=event_type,
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
            actor=actor,
            description=f"{entity_type.replace('_', ' ').capitalize()} {verb}",
        )

    @staticmethod
    def validation_failed(
        operation: str,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.VALIDATION_FAILED,
            severity=EventSeverity.WARNING,
            correlation_id=correlation_id,
            description=f"{operation} rejected with {len(issues)} issues",
            details={"operation": operation, "issues": issues},
        )

    @staticmethod
    def not_found(
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.ENTITY_NOT_FOUND,
            severity=EventSeverity.WARNING,
            correlation_id=correlation_id,
            description=f"{operation}: referenced record does not exist",
            error_message=error_message,
            details={"operation": operation},
        )

    @staticmethod
    def unauthenticated(operation: str) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.UNAUTHENTICATED,
            severity=EventSeverity.WARNING,
            description=f"Unauthenticated call to {operation}",
            details={"operation": operation},
        )

    @staticmethod
    def persistence_error(
        operation: str,
        error_type: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.PERSISTENCE_ERROR,
            severity=EventSeverity.ERROR,
            correlation_id=correlation_id,
            description=f"{operation} failed: {error_type}",
            error_message=error_message,
            details={"operation": operation, "error_type": error_type},
        )

    @staticmethod
    def hook_failed(views: list[str], error_message: str) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.HOOK_FAILED,
            severity=EventSeverity.WARNING,
            description="View invalidation hook raised",
            error_message=error_message,
            details={"views": views},
        )
