"""
Goal Module Commands

Partial update semantics match the budget commands: only explicitly set
fields are applied.
"""

import datetime as dt
from datetime import date
from decimal import Decimal

from pydantic import BaseModel

from family_ledger.goals.models import GoalStatus


class CreateFinancialGoal(BaseModel):
    """
    Create a savings goal

    current_amount is what has already been saved outside the ledger; it
    becomes the goal's base_amount.
    """

    name: str
    target_amount: Decimal
    current_amount: Decimal = Decimal("0")
    start_date: date
    end_date: date | None = None
    description: str | None = None
    status: GoalStatus = GoalStatus.NOT_STARTED


class UpdateFinancialGoal(BaseModel):
    name: str | None = None
    target_amount: Decimal | None = None
    current_amount: Decimal | None = None
    start_date: date | None = None
    end_date: date | None = None
    description: str | None = None
    status: GoalStatus | None = None


class CreateSubGoal(BaseModel):
    name: str
    description: str | None = None
    progress: int = 0
    estimated_cost: Decimal | None = None
    start_date: date | None = None
    end_date: date | None = None


class UpdateSubGoal(BaseModel):
    name: str | None = None
    description: str | None = None
    progress: int | None = None
    estimated_cost: Decimal | None = None
    start_date: date | None = None
    end_date: date | None = None


class CreateGoalContribution(BaseModel):
    financial_goal_id: str
    monthly_overview_id: str
    amount: Decimal
    date: dt.date
    notes: str | None = None


class UpdateGoalContribution(BaseModel):
    amount: Decimal | None = None
    date: dt.date | None = None
    notes: str | None = None


class CreateGoalDrawdown(BaseModel):
    financial_goal_id: str
    monthly_overview_id: str
    amount: Decimal
    date: dt.date
    notes: str | None = None


class UpdateGoalDrawdown(BaseModel):
    amount: Decimal | None = None
    date: dt.date | None = None
    notes: str | None = None
