"""
Tests for goal contributions and drawdowns - the two bounded goal movements

Contributions are capped by the month's available income, drawdowns by
the goal's balance. On edit the record's own amount is added back first.
"""

from datetime import date
from decimal import Decimal

import pytest

from family_ledger.budget.commands import CreateGoalDrawdownTransfer, CreateGoalTransfer
from family_ledger.budget.models import MonthlyOverview
from family_ledger.goals.commands import (
    CreateGoalContribution,
    CreateGoalDrawdown,
    UpdateGoalContribution,
    UpdateGoalDrawdown,
)
from family_ledger.goals.models import FinancialGoal, GoalContribution, GoalDrawdown
from family_ledger.kernel.errors import DateOutOfRangeError, InsufficientFundsError, ValidationError
from family_ledger.ledger import FamilyLedger
from family_ledger.services.goal_movements import _GoalMovementService
from family_ledger.recurring.commands import CreateSubscription
from family_ledger.recurring.models import Frequency
from tests.helpers import JAN_10, add_expense, add_income, create_budget, create_goal, run


def contribute(
    ledger: FamilyLedger, goal: FinancialGoal, month: MonthlyOverview, amount: str, day: date = JAN_10
) -> GoalContribution:
    return run(
        ledger.contributions.create(
            CreateGoalContribution(
                financial_goal_id=goal.id,
                monthly_overview_id=month.id,
                amount=Decimal(amount),
                date=day,
            )
        )
    )


def draw_down(
    ledger: FamilyLedger, goal: FinancialGoal, month: MonthlyOverview, amount: str, day: date = JAN_10
) -> GoalDrawdown:
    return run(
        ledger.drawdowns.create(
            CreateGoalDrawdown(
                financial_goal_id=goal.id,
                monthly_overview_id=month.id,
                amount=Decimal(amount),
                date=day,
            )
        )
    )


class TestContributions:
    def test_contribution_raises_goal_balance(self, ledger: FamilyLedger, january: MonthlyOverview) -> None:
        add_income(ledger, january.id, "1000")
        goal = create_goal(ledger, current="50")

        contribute(ledger, goal, january, "200")

        assert run(ledger.goals.get_all())[0].current_amount == Decimal("250")
        assert run(ledger.contributions.get_available_income(january.id)) == Decimal("800")

    def test_editing_adds_the_old_amount_back(self, ledger: FamilyLedger, january: MonthlyOverview) -> None:
        """Income 1000, budgeted 700, contributed 100: the edit has 300 of headroom"""
        add_income(ledger, january.id, "1000")
        create_budget(ledger, january.id, amount="700")
        goal = create_goal(ledger)
        contribution = contribute(ledger, goal, january, "100")

        with pytest.raises(InsufficientFundsError, match="Available: 300.00, Attempted: 350.00"):
            run(ledger.contributions.update(contribution.id, UpdateGoalContribution(amount=Decimal("350"))))

        updated = run(ledger.contributions.update(contribution.id, UpdateGoalContribution(amount=Decimal("300"))))

        assert updated.amount == Decimal("300")
        assert run(ledger.goals.get_balance(goal.id)) == Decimal("300")
        assert run(ledger.contributions.get_available_income(january.id)) == Decimal("0")

    def test_due_subscriptions_reduce_available_income(
        self, ledger: FamilyLedger, january: MonthlyOverview
    ) -> None:
        add_income(ledger, january.id, "1000")
        run(
            ledger.subscriptions.create(
                CreateSubscription(
                    name="Insurance",
                    amount=Decimal("120"),
                    frequency=Frequency.QUARTERLY,
                    next_collection_date=date(2025, 1, 20),
                )
            )
        )
        goal = create_goal(ledger)

        with pytest.raises(InsufficientFundsError):
            contribute(ledger, goal, january, "960.01")
        contribute(ledger, goal, january, "960")

    def test_over_allocated_month_blocks_contributions(
        self, ledger: FamilyLedger, january: MonthlyOverview
    ) -> None:
        add_income(ledger, january.id, "500")
        create_budget(ledger, january.id, amount="800")
        goal = create_goal(ledger)

        assert run(ledger.summaries.get_available_income_unfloored(january.id)) == Decimal("-300")
        assert run(ledger.contributions.get_available_income(january.id)) == Decimal("0")
        with pytest.raises(InsufficientFundsError):
            contribute(ledger, goal, january, "1")

    def test_contribution_date_must_be_in_month(self, ledger: FamilyLedger, january: MonthlyOverview) -> None:
        add_income(ledger, january.id, "1000")
        goal = create_goal(ledger)

        with pytest.raises(DateOutOfRangeError, match="The Contribution Date \\(2025-02-01\\)"):
            contribute(ledger, goal, january, "10", day=date(2025, 2, 1))

    def test_amount_must_be_positive(self, ledger: FamilyLedger, january: MonthlyOverview) -> None:
        goal = create_goal(ledger)

        with pytest.raises(ValidationError, match="Amount must be greater than zero"):
            contribute(ledger, goal, january, "0")

    def test_delete_lowers_the_balance(self, ledger: FamilyLedger, january: MonthlyOverview) -> None:
        add_income(ledger, january.id, "1000")
        goal = create_goal(ledger)
        contribution = contribute(ledger, goal, january, "150")

        run(ledger.contributions.delete(contribution.id))

        assert run(ledger.goals.get_all())[0].current_amount == Decimal("0")
        assert run(ledger.contributions.get_by_goal(goal.id)) == []


class TestDrawdowns:
    def test_balance_is_the_ceiling(self, ledger: FamilyLedger, january: MonthlyOverview) -> None:
        goal = create_goal(ledger, current="200")

        with pytest.raises(InsufficientFundsError, match="Drawdown amount exceeds available goal balance"):
            draw_down(ledger, goal, january, "250")

        draw_down(ledger, goal, january, "200")
        assert run(ledger.goals.get_all())[0].current_amount == Decimal("0")

        with pytest.raises(InsufficientFundsError):
            draw_down(ledger, goal, january, "0.01")

    def test_editing_adds_the_old_amount_back(self, ledger: FamilyLedger, january: MonthlyOverview) -> None:
        goal = create_goal(ledger, current="200")
        drawdown = draw_down(ledger, goal, january, "150")

        run(ledger.drawdowns.update(drawdown.id, UpdateGoalDrawdown(amount=Decimal("200"))))

        with pytest.raises(InsufficientFundsError):
            run(ledger.drawdowns.update(drawdown.id, UpdateGoalDrawdown(amount=Decimal("200.01"))))
        assert run(ledger.goals.get_balance(goal.id)) == Decimal("0")

    def test_drawdown_date_must_be_in_month(self, ledger: FamilyLedger, january: MonthlyOverview) -> None:
        goal = create_goal(ledger, current="200")

        with pytest.raises(DateOutOfRangeError, match="Drawdown Date"):
            draw_down(ledger, goal, january, "10", day=date(2024, 12, 31))

    def test_listing_by_month(
        self, ledger: FamilyLedger, january: MonthlyOverview, february: MonthlyOverview
    ) -> None:
        goal = create_goal(ledger, current="500")
        draw_down(ledger, goal, january, "10")
        draw_down(ledger, goal, february, "20", day=date(2025, 2, 10))

        assert [d.amount for d in run(ledger.drawdowns.get_by_month(february.id))] == [Decimal("20")]
        assert len(run(ledger.drawdowns.get_by_goal(goal.id))) == 2
        assert run(ledger.goals.get_balance(goal.id)) == Decimal("470")


def stored_balance(ledger: FamilyLedger, goal: FinancialGoal) -> Decimal:
    """current_amount as persisted, without the recalculation get_by_id runs"""
    return Decimal(run(ledger.store.get("financial_goals", goal.id))["current_amount"])


class TestCascadingDeletes:
    def test_month_delete_recalculates_its_goals(
        self, ledger: FamilyLedger, january: MonthlyOverview, february: MonthlyOverview
    ) -> None:
        add_income(ledger, january.id, "1000")
        add_income(ledger, february.id, "1000")
        holiday = create_goal(ledger, "Holiday")
        car = create_goal(ledger, "Car", current="300")
        contribute(ledger, holiday, january, "200")
        contribute(ledger, holiday, february, "50", day=date(2025, 2, 10))
        draw_down(ledger, car, january, "40")
        run(
            ledger.transfers.create(
                CreateGoalDrawdownTransfer(
                    monthly_overview_id=january.id, from_goal_id=car.id, amount=Decimal("60"), date=JAN_10
                )
            )
        )
        assert (stored_balance(ledger, holiday), stored_balance(ledger, car)) == (Decimal("250"), Decimal("200"))

        run(ledger.months.delete(january.id))

        assert stored_balance(ledger, holiday) == Decimal("50")
        assert stored_balance(ledger, car) == Decimal("300")

    def test_budget_delete_recalculates_its_goals(self, ledger: FamilyLedger, january: MonthlyOverview) -> None:
        food = create_budget(ledger, january.id, name="Food", amount="200")
        holiday = create_goal(ledger, "Holiday")
        car = create_goal(ledger, "Car", current="300")
        add_expense(ledger, food.id, "120", goal_id=holiday.id)
        run(
            ledger.transfers.create(
                CreateGoalTransfer(
                    monthly_overview_id=january.id,
                    from_goal_id=car.id,
                    to_budget_id=food.id,
                    amount=Decimal("100"),
                    date=JAN_10,
                )
            )
        )
        assert (stored_balance(ledger, holiday), stored_balance(ledger, car)) == (Decimal("120"), Decimal("200"))

        run(ledger.budgets.delete(food.id))

        assert stored_balance(ledger, holiday) == Decimal("0")
        assert stored_balance(ledger, car) == Decimal("300")


def test_movement_service_without_a_ceiling_cannot_be_built(ledger: FamilyLedger) -> None:
    class UncappedMovements(_GoalMovementService):
        pass

    with pytest.raises(TypeError, match="_check_ceiling"):
        UncappedMovements(
            ledger.store,
            ledger.identity,
            ledger.time_provider,
            ledger.policy,
            summaries=ledger.summaries,
            goals=ledger.goals,
        )
