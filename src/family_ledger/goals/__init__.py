"""
Goals Module - savings targets, sub-goals, contributions and drawdowns
"""

from family_ledger.goals.models import (
    FinancialGoal,
    FinancialGoalWithSubGoals,
    FinancialSubGoal,
    GoalContribution,
    GoalDrawdown,
    GoalStatus,
)

__all__ = [
    "FinancialGoal",
    "FinancialGoalWithSubGoals",
    "FinancialSubGoal",
    "GoalContribution",
    "GoalDrawdown",
    "GoalStatus",
]
