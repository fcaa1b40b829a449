"""
Household Ledger

Bill, expense and income tracking for a two-person household, built
around month tracking: recurring and one-time bills become per-month
instances that are paid, aged into overdue, and summarized.

DESIGN PRINCIPLES:
1. Status is always derived from amounts, in one place
2. Writes that touch two records are all-or-nothing
3. "Today" is injected, never read ad hoc
4. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Household Ledger Team"
