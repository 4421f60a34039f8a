"""
Tests for FinancialHealthService - scoring months and the score history
"""

from datetime import date
from decimal import Decimal

from prometheus_client import REGISTRY

from family_ledger.budget.models import MonthlyOverview
from family_ledger.feedback.models import HealthScoreLabel, ScoreTone
from family_ledger.ledger import FamilyLedger
from family_ledger.recurring.commands import CreateLoan
from tests.helpers import add_expense, add_income, create_budget, run


def healthy_january(ledger: FamilyLedger, month: MonthlyOverview) -> None:
    """Income 5000, one budget of 4500 with 4000 spent"""
    add_income(ledger, month.id, "5000")
    groceries = create_budget(ledger, month.id, name="Household", amount="4500")
    add_expense(ledger, groceries.id, "4000")


class TestCalculateScore:
    def test_healthy_month_scores_full_marks(self, ledger: FamilyLedger, january: MonthlyOverview) -> None:
        healthy_january(ledger, january)

        score = run(ledger.health.calculate_score(date(2025, 1, 20)))

        assert score.overall_score == 100
        assert score.score_label is HealthScoreLabel.EXCELLENT
        assert score.savings_rate.raw_value == 20.0
        assert score.monthly_overview_id == january.id
        assert REGISTRY.get_sample_value("family_ledger_health_score_last") == 100

    def test_defaults_to_today(self, ledger: FamilyLedger, january: MonthlyOverview) -> None:
        healthy_january(ledger, january)

        assert run(ledger.health.calculate_score()).monthly_overview_id == january.id

    def test_date_outside_every_month_scores_zero_figures(self, ledger: FamilyLedger) -> None:
        score = run(ledger.health.calculate_score(date(2024, 6, 1)))

        assert score.overall_score == 30
        assert score.score_label is HealthScoreLabel.NEEDS_IMPROVEMENT
        assert score.monthly_overview_id is None
        assert score.total_income == Decimal("0")

    def test_loan_payments_lower_the_debt_component(
        self, ledger: FamilyLedger, january: MonthlyOverview
    ) -> None:
        healthy_january(ledger, january)
        run(
            ledger.loans.create(
                CreateLoan(name="Mortgage", original_amount=Decimal("200000"), monthly_payment=Decimal("1000"))
            )
        )

        score = run(ledger.health.calculate_score(date(2025, 1, 20)))

        assert score.debt_to_income.raw_value == 20.0
        assert score.debt_to_income.score == 25
        assert score.overall_score == 95


class TestScoreHistory:
    def test_saving_twice_in_a_month_keeps_one_row(
        self, ledger: FamilyLedger, january: MonthlyOverview
    ) -> None:
        first = run(ledger.health.calculate_and_save(date(2025, 1, 5)))
        healthy_january(ledger, january)
        second = run(ledger.health.calculate_and_save(date(2025, 1, 25)))

        assert second.id == first.id
        assert second.calculated_for_month == date(2025, 1, 1)
        assert second.overall_score == 100
        assert len(run(ledger.health.get_all())) == 1

    def test_history_is_most_recent_first(self, ledger: FamilyLedger, january: MonthlyOverview) -> None:
        run(ledger.health.calculate_and_save(date(2024, 12, 10)))
        run(ledger.health.calculate_and_save(date(2025, 1, 10)))

        history = run(ledger.health.get_score_history())

        assert [s.calculated_for_month for s in history] == [date(2025, 1, 1), date(2024, 12, 1)]
        assert [s.calculated_for_month for s in run(ledger.health.get_score_history(months=1))] == [
            date(2025, 1, 1)
        ]
        assert run(ledger.health.get_score_for_month(date(2024, 12, 31))).calculated_for_month == date(2024, 12, 1)
        assert run(ledger.health.get_score_for_month(date(2024, 11, 1))) is None

    def test_saved_score_carries_recommendations(self, ledger: FamilyLedger) -> None:
        stored = run(ledger.health.calculate_and_save(date(2024, 6, 1)))
        assert stored.recommendations

        updated = run(ledger.health.update_recommendations(stored.id, ["Track every expense."]))

        assert updated.recommendations == ["Track every expense."]

    def test_deleting_the_month_keeps_the_score(self, ledger: FamilyLedger, january: MonthlyOverview) -> None:
        healthy_january(ledger, january)
        stored = run(ledger.health.calculate_and_save(date(2025, 1, 20)))

        run(ledger.months.delete(january.id))

        assert run(ledger.health.get_by_id(stored.id)).monthly_overview_id is None

    def test_label_and_tone_helpers(self, ledger: FamilyLedger) -> None:
        assert ledger.health.get_score_label(76) is HealthScoreLabel.VERY_GOOD
        assert ledger.health.get_score_tone(29) is ScoreTone.DANGER
