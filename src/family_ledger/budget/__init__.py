"""
Budget Module - monthly periods, categories, spending and income

This module holds the core household ledger:
- Monthly overviews (the accounting periods)
- Budgets and master budget templates
- Expenses, income sources and transfers
- The validation rules every write goes through

Fun fact: the whole module rests on one number per budget, the amount
left, and on refusing any write that would push it below zero.
"""

from family_ledger.budget.models import (
    Budget,
    BudgetSummary,
    Expense,
    IncomeSource,
    MasterBudget,
    MonthlyOverview,
    MonthlyOverviewSummary,
    Transfer,
    TransferType,
)

__all__ = [
    "MonthlyOverview",
    "MasterBudget",
    "Budget",
    "Expense",
    "IncomeSource",
    "Transfer",
    "TransferType",
    "BudgetSummary",
    "MonthlyOverviewSummary",
]
