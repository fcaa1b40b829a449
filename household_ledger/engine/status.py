"""
Status Derivation

CRITICAL: This is the only place a bill status is computed from amounts.
Every write path that changes a paid amount (instance payments, debt
payments, payment reversals, bill edits) calls into this module, so the
rules for instances and one-time bills cannot drift apart.
"""

from decimal import Decimal

from household_ledger.models.ledger import InstanceStatus, OneTimeBillStatus


def derive_status(paid: Decimal, total: Decimal) -> str:
    """
    The shared rule: "paid", "partial" or "unpaid".

    paid >= total is paid (over-payment included), anything above zero is
    partial, nothing paid is unpaid.
    """
    if paid >= total:
        return "paid"
    if paid > 0:
        return "partial"
    return "unpaid"


def derive_instance_status(
    paid: Decimal,
    total: Decimal,
    is_overdue: bool = False,
) -> InstanceStatus:
    """
    Status of a bill instance after its paid amount changes.

    An instance already flagged overdue stays overdue while nothing is paid.
    """
    status = derive_status(paid, total)
    if status == "unpaid" and is_overdue:
        return InstanceStatus.OVERDUE
    return InstanceStatus(status)


def derive_bill_status(paid: Decimal, total: Decimal) -> OneTimeBillStatus:
    """Status of a one-time bill; "unpaid" is spelled pending there."""
    status = derive_status(paid, total)
    if status == "unpaid":
        return OneTimeBillStatus.PENDING
    return OneTimeBillStatus(status)
