"""
Family Ledger - budget and goal consistency engine for a household

Keeps monthly budgets, expenses, income, savings goals, loans and
subscriptions consistent: no budget is overspent, no goal or budget is
drawn below zero, and every goal balance reconciles with the money that
actually moved.

Fun fact: the 10% tithe and 5% offering allocations are ordinary
budgets, so giving shows up in the same summaries as groceries.
"""

from family_ledger.ledger import FamilyLedger

__version__ = "0.1.0"
__all__ = ["FamilyLedger", "__version__"]
