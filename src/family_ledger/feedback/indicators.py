"""
Health Indicators - the Financial Health Scorer

Pure functions of a month's figures. No store access, no clock: the same
inputs always produce the same score.

    savings rate      (income - spent) / income * 100         0-40 points
    debt-to-income    monthly debt payments / income * 100    0-30 points
    budget adherence  mean of min(1, budgeted / spent) * 100  0-30 points

Fun fact: The 43% debt-to-income cut-off used below is the ceiling US
lenders adopted for "qualified mortgages" in 2014.
"""

from collections.abc import Iterable
from decimal import Decimal

from family_ledger.feedback.models import (
    BudgetFigures,
    FinancialHealthScore,
    HealthScoreLabel,
    MetricScore,
    ScoreTone,
)

# (threshold, points), checked top to bottom
SAVINGS_RATE_BANDS: list[tuple[float, int]] = [(20, 40), (15, 35), (10, 30), (5, 20), (0, 10)]
DEBT_TO_INCOME_BANDS: list[tuple[float, int]] = [(15, 30), (25, 25), (35, 20), (43, 10)]
ADHERENCE_BANDS: list[tuple[float, int]] = [(95, 30), (85, 25), (75, 20), (60, 15), (50, 10)]
LABEL_BANDS: list[tuple[int, HealthScoreLabel]] = [
    (90, HealthScoreLabel.EXCELLENT),
    (75, HealthScoreLabel.VERY_GOOD),
    (60, HealthScoreLabel.GOOD),
    (45, HealthScoreLabel.FAIR),
    (30, HealthScoreLabel.NEEDS_IMPROVEMENT),
]


def compute_savings_rate_score(income: Decimal, spent: Decimal) -> MetricScore:
    """
    Score the share of income left after spending (0-40)

    >= 20% -> 40, >= 15% -> 35, >= 10% -> 30, >= 5% -> 20, >= 0% -> 10,
    negative -> 0. No income scores 0 with no raw value.
    """
    if income <= 0:
        return MetricScore(score=0, raw_value=None)

    rate = float((income - spent) / income * 100)
    score = next((points for threshold, points in SAVINGS_RATE_BANDS if rate >= threshold), 0)
    return MetricScore(score=score, raw_value=round(rate, 2))


def compute_debt_to_income_score(income: Decimal, debt_payments: Decimal) -> MetricScore:
    """
    Score monthly debt payments against income (0-30)

    No debt -> 30. Debt without income -> 0. Otherwise
    <= 15% -> 30, <= 25% -> 25, <= 35% -> 20, <= 43% -> 10, above -> 0.
    """
    if debt_payments <= 0:
        return MetricScore(score=30, raw_value=0.0)
    if income <= 0:
        return MetricScore(score=0, raw_value=None)

    dti = float(debt_payments / income * 100)
    score = next((points for threshold, points in DEBT_TO_INCOME_BANDS if dti <= threshold), 0)
    return MetricScore(score=score, raw_value=round(dti, 2))


def budget_adherence_rate(budget: BudgetFigures) -> float:
    """
    Adherence of a single budget in [0, 1]

    No spending is perfect adherence; spending without an allocation is
    the worst.
    """
    if budget.amount_spent <= 0:
        return 1.0
    if budget.budget_amount <= 0:
        return 0.0
    return min(1.0, float(budget.budget_amount / budget.amount_spent))


def compute_budget_adherence_score(budgets: Iterable[BudgetFigures]) -> MetricScore:
    """
    Score how well spending stayed inside budgets (0-30)

    Average adherence * 100: >= 95 -> 30, >= 85 -> 25, >= 75 -> 20,
    >= 60 -> 15, >= 50 -> 10, else 5. No budgets scores 0.
    """
    rates = [budget_adherence_rate(b) for b in budgets]
    if not rates:
        return MetricScore(score=0, raw_value=None)

    average = sum(rates) / len(rates) * 100
    score = next((points for threshold, points in ADHERENCE_BANDS if average >= threshold), 5)
    return MetricScore(score=score, raw_value=round(average, 2))


def score_label(score: int) -> HealthScoreLabel:
    """Qualitative label for an overall score"""
    return next((label for threshold, label in LABEL_BANDS if score >= threshold), HealthScoreLabel.CRITICAL)


def score_tone(score: int) -> ScoreTone:
    """Display tone: success >= 75, primary >= 60, warning >= 30, else danger"""
    if score >= 75:
        return ScoreTone.SUCCESS
    if score >= 60:
        return ScoreTone.PRIMARY
    if score >= 30:
        return ScoreTone.WARNING
    return ScoreTone.DANGER


def compute_financial_health(
    total_income: Decimal,
    total_spent: Decimal,
    total_debt_payments: Decimal,
    budgets: Iterable[BudgetFigures],
    monthly_overview_id: str | None = None,
) -> FinancialHealthScore:
    """
    Compute the overall financial health score (0-100)

    Args:
        total_income: Income of the month
        total_spent: Expenses of the month
        total_debt_payments: Monthly-equivalent payments of active loans
        budgets: Budgeted/spent figures of every budget in the month
        monthly_overview_id: Month the figures belong to (informational)

    Returns:
        FinancialHealthScore with the three components and the label
    """
    savings = compute_savings_rate_score(total_income, total_spent)
    debt = compute_debt_to_income_score(total_income, total_debt_payments)
    adherence = compute_budget_adherence_score(budgets)
    overall = savings.score + debt.score + adherence.score

    return FinancialHealthScore(
        overall_score=overall,
        score_label=score_label(overall),
        savings_rate=savings,
        debt_to_income=debt,
        budget_adherence=adherence,
        total_income=total_income,
        total_spent=total_spent,
        total_debt_payments=total_debt_payments,
        monthly_overview_id=monthly_overview_id,
    )


def build_recommendations(score: FinancialHealthScore) -> list[str]:
    """Short advice lines for the weakest components of a score"""
    advice: list[str] = []
    if score.savings_rate.raw_value is None:
        advice.append("Record this month's income to measure your savings rate.")
    elif score.savings_rate.score < 30:
        advice.append("Aim to keep at least 10% of income unspent each month.")
    if score.debt_to_income.score < 20:
        advice.append("Monthly debt payments are high relative to income; prioritise paying down loans.")
    if score.budget_adherence.raw_value is None:
        advice.append("Create budgets for this month to track adherence.")
    elif score.budget_adherence.score < 20:
        advice.append("Several budgets are overspent; review allocations or reduce spending.")
    return advice
