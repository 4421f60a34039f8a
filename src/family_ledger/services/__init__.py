"""
Services - one async service per ledger entity

Each service resolves the caller, validates the whole mutation, performs
the primary write and then runs its secondary side effects best-effort.
"""

from family_ledger.services.budgets import BudgetService
from family_ledger.services.expenses import ExpenseService
from family_ledger.services.financial_health import FinancialHealthService
from family_ledger.services.goal_movements import GoalContributionService, GoalDrawdownService
from family_ledger.services.goals import FinancialGoalService
from family_ledger.services.income_sources import IncomeSourceService
from family_ledger.services.loans import LoanService
from family_ledger.services.master_budgets import MasterBudgetService
from family_ledger.services.monthly_overviews import MonthlyOverviewService
from family_ledger.services.savings import SavingsService
from family_ledger.services.subscriptions import SubscriptionService
from family_ledger.services.summaries import SummaryService
from family_ledger.services.transfers import TransferService

__all__ = [
    "SummaryService",
    "MasterBudgetService",
    "BudgetService",
    "MonthlyOverviewService",
    "ExpenseService",
    "IncomeSourceService",
    "FinancialGoalService",
    "GoalContributionService",
    "GoalDrawdownService",
    "TransferService",
    "LoanService",
    "SubscriptionService",
    "SavingsService",
    "FinancialHealthService",
]
