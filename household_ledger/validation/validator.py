"""
Input Validation

DESIGN DECISION: Every caller-submitted input is checked here BEFORE any
write happens. The pydantic record models would also reject most of these
values, but a ValidationError is a poor message for a household member.
This module turns bad input into short, specific issues.

Two kinds of checks:

ERRORS (block the write):
- Non-positive amounts
- Due day outside 1-31
- Unknown household member
- Instance payment larger than the remaining balance

WARNINGS (reported, never block):
- Amounts above the configured sanity ceiling

IMPORTANT: Validation NEVER silently fixes issues.
It reports them; the caller decides.
"""

from decimal import Decimal
from typing import Optional

from household_ledger.config import get_settings
from household_ledger.models.ledger import (
    BillInstance,
    ExpenseCreate,
    ExpenseUpdate,
    FixedBillCreate,
    FixedBillUpdate,
    IncomeCreate,
    IncomeUpdate,
    OneTimeBill,
    OneTimeBillCreate,
    OneTimeBillUpdate,
    PaymentCreate,
)
from household_ledger.models.validation import ValidationIssue, ValidationResult

CENT = Decimal("0.01")


class LedgerValidator:
    """
    Validates ledger inputs against household rules.

    Pure: no storage access. Anything needing a stored record (the
    instance being paid, the bill being edited) is passed in.
    """

    def __init__(self, members: Optional[list[str]] = None):
        self._settings = get_settings().app
        self._members = members if members is not None else self._settings.members_list

    @property
    def members(self) -> list[str]:
        return list(self._members)

    # -------------------------------------------------------------------------
    # Field checks
    # -------------------------------------------------------------------------

    def _check_amount(
        self,
        issues: list[ValidationIssue],
        field: str,
        value: Optional[Decimal],
        label: str = "Amount",
        allow_zero: bool = False,
    ) -> None:
        if value is None:
            return

        if not value.is_finite():
            issues.append(ValidationIssue(
                field=field,
                issue_type="invalid_value",
                message=f"{label} must be a number",
                severity="error",
            ))
            return

        if value < 0 or (value == 0 and not allow_zero):
            issues.append(ValidationIssue(
                field=field,
                issue_type="not_positive",
                message=(
                    f"{label} cannot be negative" if allow_zero
                    else f"{label} must be greater than zero"
                ),
                severity="error",
                suggested_fix="Enter a positive amount",
            ))
            return

        if value != value.quantize(CENT):
            issues.append(ValidationIssue(
                field=field,
                issue_type="invalid_format",
                message=f"{label} can have at most 2 decimal places",
                severity="error",
                suggested_fix="Round to the nearest cent",
            ))

        max_amount = Decimal(str(self._settings.max_amount))
        if value > max_amount:
            issues.append(ValidationIssue(
                field=field,
                issue_type="suspicious_value",
                message=f"{label} (${value:,.2f}) seems unusually high",
                severity="warning",
                suggested_fix="Please verify this amount is correct",
            ))

    def _check_due_day(self, issues: list[ValidationIssue], due_day: Optional[int]) -> None:
        if due_day is None:
            return
        if not 1 <= due_day <= 31:
            issues.append(ValidationIssue(
                field="due_day",
                issue_type="out_of_range",
                message="Due day must be between 1 and 31",
                severity="error",
                suggested_fix="Days past the end of a short month fall on its last day",
            ))

    def _check_member(
        self,
        issues: list[ValidationIssue],
        field: str,
        value: Optional[str],
        label: str,
    ) -> None:
        if value is None:
            return
        if value.strip().lower() not in self._members:
            issues.append(ValidationIssue(
                field=field,
                issue_type="unknown_member",
                message=f"{label} must be one of: {', '.join(self._members)}",
                severity="error",
            ))

    # -------------------------------------------------------------------------
    # Fixed bills
    # -------------------------------------------------------------------------

    def validate_fixed_bill(self, data: FixedBillCreate) -> ValidationResult:
        issues: list[ValidationIssue] = []
        self._check_due_day(issues, data.due_day)
        self._check_amount(issues, "amount", data.amount)
        self._check_member(issues, "created_by", data.created_by, "Created by")
        return ValidationResult.from_issues(issues)

    def validate_fixed_bill_update(self, data: FixedBillUpdate) -> ValidationResult:
        issues: list[ValidationIssue] = []
        self._check_due_day(issues, data.due_day)
        self._check_amount(issues, "amount", data.amount)
        return ValidationResult.from_issues(issues)

    # -------------------------------------------------------------------------
    # One-time bills and payments
    # -------------------------------------------------------------------------

    def validate_one_time_bill(self, data: OneTimeBillCreate) -> ValidationResult:
        issues: list[ValidationIssue] = []
        self._check_amount(issues, "total_amount", data.total_amount, "Total amount")
        self._check_amount(
            issues, "paid_amount", data.paid_amount, "Paid amount", allow_zero=True
        )
        self._check_member(issues, "created_by", data.created_by, "Created by")
        return ValidationResult.from_issues(issues)

    def validate_one_time_bill_update(
        self,
        data: OneTimeBillUpdate,
        current: OneTimeBill,
    ) -> ValidationResult:
        issues: list[ValidationIssue] = []
        self._check_amount(issues, "total_amount", data.total_amount, "Total amount")
        self._check_amount(
            issues, "paid_amount", data.paid_amount, "Paid amount", allow_zero=True
        )

        total = data.total_amount if data.total_amount is not None else current.total_amount
        paid = data.paid_amount if data.paid_amount is not None else current.paid_amount
        if total is not None and paid is not None and paid > total:
            issues.append(ValidationIssue(
                field="paid_amount",
                issue_type="exceeds_total",
                message=f"Paid amount (${paid:,.2f}) is more than the total (${total:,.2f})",
                severity="warning",
                suggested_fix="The bill will show as paid",
            ))
        return ValidationResult.from_issues(issues)

    def validate_payment(self, data: PaymentCreate) -> ValidationResult:
        """
        Validate an installment against a one-time bill.

        Over-payment is NOT checked here: a debt may be overpaid and
        corrected later by deleting the payment.
        """
        issues: list[ValidationIssue] = []
        self._check_amount(issues, "amount", data.amount, "Payment amount")
        self._check_member(issues, "paid_by", data.paid_by, "Paid by")
        return ValidationResult.from_issues(issues)

    def validate_instance_payment(
        self,
        instance: BillInstance,
        amount: Decimal,
        paid_by: str,
    ) -> ValidationResult:
        """Validate a payment against one month's bill instance."""
        issues: list[ValidationIssue] = []
        self._check_amount(issues, "amount", amount, "Payment amount")
        self._check_member(issues, "paid_by", paid_by, "Paid by")

        remaining = instance.remaining_amount
        if amount is not None and amount.is_finite() and amount > remaining:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="exceeds_remaining",
                message=(
                    f"Payment (${amount:,.2f}) exceeds the remaining balance "
                    f"(${remaining:,.2f})"
                ),
                severity="error",
                suggested_fix=f"Pay at most ${remaining:,.2f}",
            ))
        return ValidationResult.from_issues(issues)

    # -------------------------------------------------------------------------
    # Income and expenses
    # -------------------------------------------------------------------------

    def validate_income(self, data: IncomeCreate) -> ValidationResult:
        issues: list[ValidationIssue] = []
        self._check_member(issues, "person", data.person, "Person")
        self._check_amount(issues, "amount", data.amount)
        return ValidationResult.from_issues(issues)

    def validate_income_update(self, data: IncomeUpdate) -> ValidationResult:
        issues: list[ValidationIssue] = []
        self._check_member(issues, "person", data.person, "Person")
        self._check_amount(issues, "amount", data.amount)
        return ValidationResult.from_issues(issues)

    def validate_expense(self, data: ExpenseCreate) -> ValidationResult:
        issues: list[ValidationIssue] = []
        self._check_member(issues, "paid_by", data.paid_by, "Paid by")
        self._check_amount(issues, "amount", data.amount)
        return ValidationResult.from_issues(issues)

    def validate_expense_update(self, data: ExpenseUpdate) -> ValidationResult:
        issues: list[ValidationIssue] = []
        self._check_member(issues, "paid_by", data.paid_by, "Paid by")
        self._check_amount(issues, "amount", data.amount)
        return ValidationResult.from_issues(issues)

    def get_user_friendly_summary(self, result: ValidationResult) -> str:
        """
        Collapse a result to one short message.

        This is what we show to the household.
        """
        errors = result.errors
        if not errors:
            if result.warnings:
                return "Saved with warnings: " + "; ".join(result.warnings)
            return "All checks passed"
        return "; ".join(issue.message for issue in errors)
