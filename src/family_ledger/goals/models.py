"""
Financial Goal Models - savings targets and the money moving in and out

A goal's current_amount is never edited in isolation: it is reconciled as

    base_amount
    + sum(linked expenses)
    + sum(contributions)
    - sum(drawdowns)
    - sum(transfers out of the goal)

base_amount holds whatever the owner saved before the ledger tracked it.
"""

import datetime as dt
from datetime import date
from decimal import Decimal
from enum import Enum

from pydantic import Field

from family_ledger.kernel.records import LedgerRecord


class GoalStatus(str, Enum):
    NOT_STARTED = "Not Started"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"
    ON_HOLD = "On Hold"
    CANCELLED = "Cancelled"


class FinancialGoal(LedgerRecord):
    """
    A savings target with a reconciled balance

    Invariants enforced:
    - target_amount > 0
    - end_date (if set) >= start_date

    base_amount is None only for legacy rows written before the base was
    tracked; the first recalculation derives and persists it.
    """

    name: str
    description: str | None = None
    target_amount: Decimal = Field(gt=0)
    base_amount: Decimal | None = None
    current_amount: Decimal = Decimal("0")
    start_date: date
    end_date: date | None = None
    status: GoalStatus = GoalStatus.NOT_STARTED
    has_sub_goals: bool = False

    def percent_complete(self) -> float:
        """Share of the target reached, clamped to [0, 100]"""
        percent = float(self.current_amount / self.target_amount * 100)
        return max(0.0, min(100.0, round(percent, 2)))


class FinancialSubGoal(LedgerRecord):
    """A milestone inside a goal with its own progress (0-100)"""

    financial_goal_id: str
    name: str
    description: str | None = None
    progress: int = Field(default=0, ge=0, le=100)
    estimated_cost: Decimal | None = Field(default=None, ge=0)
    start_date: date | None = None
    end_date: date | None = None


class FinancialGoalWithSubGoals(FinancialGoal):
    """Goal as returned by get_by_id: freshly reconciled, with its sub-goals"""

    sub_goals: list[FinancialSubGoal] = Field(default_factory=list)
    progress_percent: float = 0.0


class GoalContribution(LedgerRecord):
    """Funding moved from a month's available income into a goal"""

    financial_goal_id: str
    monthly_overview_id: str
    amount: Decimal = Field(gt=0)
    date: dt.date
    notes: str | None = None


class GoalDrawdown(LedgerRecord):
    """A withdrawal from a goal's balance during a month"""

    financial_goal_id: str
    monthly_overview_id: str
    amount: Decimal = Field(gt=0)
    date: dt.date
    notes: str | None = None
