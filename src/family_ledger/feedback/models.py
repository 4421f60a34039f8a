"""
Feedback Module Models - financial health scores

A score is built from three bounded components:
savings rate (0-40), debt-to-income (0-30) and budget adherence (0-30).
"""

from datetime import date
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, Field

from family_ledger.kernel.records import LedgerRecord


class HealthScoreLabel(str, Enum):
    """Qualitative band of an overall score"""

    EXCELLENT = "Excellent"  # >= 90
    VERY_GOOD = "Very Good"  # >= 75
    GOOD = "Good"  # >= 60
    FAIR = "Fair"  # >= 45
    NEEDS_IMPROVEMENT = "Needs Improvement"  # >= 30
    CRITICAL = "Critical"


class ScoreTone(str, Enum):
    """Display tone for a score"""

    SUCCESS = "success"
    PRIMARY = "primary"
    WARNING = "warning"
    DANGER = "danger"


class MetricScore(BaseModel):
    """
    One scored component

    raw_value is the underlying percentage rounded to 2 decimals, or None
    when it cannot be computed (no income, no budgets).
    """

    score: int = Field(ge=0, le=40)
    raw_value: float | None = None


class BudgetFigures(BaseModel):
    """Budgeted and spent amounts of one budget, as the scorer sees them"""

    budget_amount: Decimal
    amount_spent: Decimal


class FinancialHealthScore(BaseModel):
    """Result of scoring one month"""

    overall_score: int = Field(ge=0, le=100)
    score_label: HealthScoreLabel
    savings_rate: MetricScore
    debt_to_income: MetricScore
    budget_adherence: MetricScore
    total_income: Decimal
    total_spent: Decimal
    total_debt_payments: Decimal
    monthly_overview_id: str | None = None


class StoredHealthScore(LedgerRecord):
    """A score saved for one owner and month (one row per month)"""

    calculated_for_month: date
    monthly_overview_id: str | None = None
    overall_score: int = Field(ge=0, le=100)
    score_label: HealthScoreLabel
    savings_rate_score: int
    savings_rate_value: float | None = None
    debt_to_income_score: int
    debt_to_income_value: float | None = None
    budget_adherence_score: int
    budget_adherence_value: float | None = None
    recommendations: list[str] = Field(default_factory=list)
