"""
Month Calendar

One cell per day of the month, each listing what happened (or is due)
that day:

- expenses, on their date
- fixed-bill instances not yet paid, on their due date, for what is left
- payments, on the paid date of any instance (fixed or one-time)

One-time instances are not listed as due; they appear once paid.
"""

from datetime import date

from household_ledger.dates import iter_month_days, month_end, month_key
from household_ledger.models.ledger import InstanceStatus
from household_ledger.models.summary import CalendarDay, CalendarItem
from household_ledger.services.storage.interface import LedgerStorageInterface


async def build_calendar(storage: LedgerStorageInterface, month: date) -> list[CalendarDay]:
    key = month_key(month)
    days = {day: CalendarDay(day=day) for day in iter_month_days(key)}

    expenses = await storage.list_expenses(date_from=key, date_to=month_end(key))
    for expense in sorted(expenses, key=lambda e: e.created_at):
        days[expense.date].items.append(CalendarItem(
            kind="expense",
            amount=expense.amount,
            description=expense.description,
            category=expense.category.value,
            paid_by=expense.paid_by,
        ))

    for instance in await storage.list_instances(month=key):
        if (
            instance.fixed_bill_id is not None
            and instance.status != InstanceStatus.PAID
            and instance.due_date in days
        ):
            days[instance.due_date].items.append(CalendarItem(
                kind="unpaid_bill",
                amount=instance.remaining_amount,
                description=instance.name,
                category=instance.category,
                status=instance.status.value,
                is_fixed_bill=True,
            ))

        if instance.paid_date is not None and instance.paid_date in days:
            days[instance.paid_date].items.append(CalendarItem(
                kind="payment",
                amount=instance.paid_amount,
                description=instance.name,
                category=instance.category,
                paid_by=instance.paid_by,
                status=instance.status.value,
                is_fixed_bill=instance.fixed_bill_id is not None,
                is_one_time_bill=instance.one_time_bill_id is not None,
            ))

    return list(days.values())
