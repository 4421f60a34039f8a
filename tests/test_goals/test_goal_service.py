"""
Tests for FinancialGoalService - reconciled balances and sub-goals

The balance is always
    base_amount + linked expenses + contributions - drawdowns - transfers out
"""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from family_ledger.budget.models import MonthlyOverview
from family_ledger.goals.commands import (
    CreateFinancialGoal,
    CreateSubGoal,
    UpdateFinancialGoal,
    UpdateSubGoal,
)
from family_ledger.goals.models import FinancialGoal, GoalStatus
from family_ledger.goals.projections import compute_current_amount, derive_base_amount, sum_movements
from family_ledger.kernel.errors import NotFoundError, ValidationError
from family_ledger.kernel.ledger_store import InMemoryLedgerStore
from family_ledger.ledger import FamilyLedger
from tests.helpers import add_expense, create_budget, create_goal, record_fields, run


# Pure reconciliation


def test_movements_net_and_base_derivation() -> None:
    movements = sum_movements(
        linked_expenses=[Decimal("100")],
        contributions=[Decimal("50"), Decimal("25")],
        drawdowns=[Decimal("30")],
        transfers_out=[Decimal("20")],
    )

    assert movements.net() == Decimal("125")
    assert compute_current_amount(Decimal("400"), movements) == Decimal("525")
    assert derive_base_amount(Decimal("525"), movements) == Decimal("400")
    assert derive_base_amount(Decimal("100"), movements) == Decimal("0")


def test_percent_complete_is_clamped() -> None:
    goal = FinancialGoal(
        **record_fields("g1"),
        name="Car",
        target_amount=Decimal("100"),
        current_amount=Decimal("150"),
        start_date=date(2025, 1, 1),
    )

    assert goal.percent_complete() == 100.0
    assert goal.model_copy(update={"current_amount": Decimal("-10")}).percent_complete() == 0.0
    assert goal.model_copy(update={"current_amount": Decimal("33.333")}).percent_complete() == 33.33


class TestCreateGoal:
    def test_initial_amount_becomes_base(self, ledger: FamilyLedger) -> None:
        goal = create_goal(ledger, target="5000", current="750")

        assert goal.base_amount == Decimal("750")
        assert goal.current_amount == Decimal("750")
        assert goal.status is GoalStatus.NOT_STARTED

    @pytest.mark.parametrize("target", ["0", "-100"])
    def test_target_must_be_positive(self, ledger: FamilyLedger, target: str) -> None:
        with pytest.raises(ValidationError, match="Target amount must be greater than zero"):
            create_goal(ledger, target=target)

    def test_end_date_before_start_is_rejected(self, ledger: FamilyLedger) -> None:
        with pytest.raises(ValidationError, match="End Date must be after Start Date"):
            run(
                ledger.goals.create(
                    CreateFinancialGoal(
                        name="Car",
                        target_amount=Decimal("100"),
                        start_date=date(2025, 6, 1),
                        end_date=date(2025, 5, 1),
                    )
                )
            )


class TestBalance:
    def test_setting_current_amount_rederives_base(self, ledger: FamilyLedger, january: MonthlyOverview) -> None:
        savings = create_budget(ledger, january.id, name="Savings", amount="500")
        goal = create_goal(ledger, current="0")
        add_expense(ledger, savings.id, "100", goal_id=goal.id)

        updated = run(ledger.goals.update(goal.id, UpdateFinancialGoal(current_amount=Decimal("500"))))

        assert updated.base_amount == Decimal("400")
        assert updated.current_amount == Decimal("500")

    def test_setting_current_below_movements_floors_base(
        self, ledger: FamilyLedger, january: MonthlyOverview
    ) -> None:
        savings = create_budget(ledger, january.id, name="Savings", amount="500")
        goal = create_goal(ledger, current="0")
        add_expense(ledger, savings.id, "100", goal_id=goal.id)

        updated = run(ledger.goals.update(goal.id, UpdateFinancialGoal(current_amount=Decimal("40"))))

        assert updated.base_amount == Decimal("0")
        assert updated.current_amount == Decimal("100")

    def test_legacy_goal_gets_a_derived_base(
        self, ledger: FamilyLedger, store: InMemoryLedgerStore, january: MonthlyOverview
    ) -> None:
        stamp = datetime(2024, 6, 1, tzinfo=timezone.utc)
        legacy = FinancialGoal(
            id="goal-legacy",
            owner_id="user-alex",
            created_at=stamp,
            updated_at=stamp,
            name="Legacy",
            target_amount=Decimal("1000"),
            base_amount=None,
            current_amount=Decimal("300"),
            start_date=date(2024, 6, 1),
        )
        run(store.insert("financial_goals", legacy.to_row()))
        savings = create_budget(ledger, january.id, name="Savings", amount="500")
        add_expense(ledger, savings.id, "100", goal_id="goal-legacy")

        # The expense write already triggered the derivation: 300 stored - 100 linked
        recalculated = run(ledger.goals.recalculate_current_amount("goal-legacy"))

        assert recalculated.base_amount == Decimal("200")
        assert recalculated.current_amount == Decimal("300")

    def test_legacy_base_derivation_is_persisted_once(
        self, ledger: FamilyLedger, store: InMemoryLedgerStore
    ) -> None:
        stamp = datetime(2024, 6, 1, tzinfo=timezone.utc)
        legacy = FinancialGoal(
            id="goal-legacy",
            owner_id="user-alex",
            created_at=stamp,
            updated_at=stamp,
            name="Legacy",
            target_amount=Decimal("1000"),
            current_amount=Decimal("300"),
            start_date=date(2024, 6, 1),
        )
        run(store.insert("financial_goals", legacy.to_row()))

        first = run(ledger.goals.recalculate_current_amount("goal-legacy"))
        second = run(ledger.goals.recalculate_current_amount("goal-legacy"))

        assert first.base_amount == Decimal("300")
        assert second == first

    def test_get_by_id_returns_progress_and_sub_goals(self, ledger: FamilyLedger) -> None:
        goal = create_goal(ledger, target="1000", current="250")
        run(ledger.goals.create_sub_goal(goal.id, CreateSubGoal(name="Research", progress=50)))

        detailed = run(ledger.goals.get_by_id(goal.id))

        assert detailed.progress_percent == 25.0
        assert detailed.has_sub_goals is True
        assert [s.name for s in detailed.sub_goals] == ["Research"]

    def test_delete_unlinks_expenses(self, ledger: FamilyLedger, january: MonthlyOverview) -> None:
        savings = create_budget(ledger, january.id, name="Savings", amount="500")
        goal = create_goal(ledger)
        expense = add_expense(ledger, savings.id, "100", goal_id=goal.id)

        run(ledger.goals.delete(goal.id))

        assert run(ledger.expenses.get_by_id(expense.id)).financial_goal_id is None
        with pytest.raises(NotFoundError):
            run(ledger.goals.get_by_id(goal.id))


class TestSubGoals:
    def test_progress_bounds(self, ledger: FamilyLedger) -> None:
        goal = create_goal(ledger)

        with pytest.raises(ValidationError, match="Progress must be between 0 and 100"):
            run(ledger.goals.create_sub_goal(goal.id, CreateSubGoal(name="Too far", progress=101)))

        sub_goal = run(ledger.goals.create_sub_goal(goal.id, CreateSubGoal(name="Step", progress=100)))
        with pytest.raises(ValidationError, match="Progress must be between 0 and 100"):
            run(ledger.goals.update_sub_goal(sub_goal.id, UpdateSubGoal(progress=-1)))

    def test_flag_follows_sub_goals(self, ledger: FamilyLedger) -> None:
        goal = create_goal(ledger)
        sub_goal = run(ledger.goals.create_sub_goal(goal.id, CreateSubGoal(name="Step")))
        assert run(ledger.goals.get_all())[0].has_sub_goals is True

        run(ledger.goals.delete_sub_goal(sub_goal.id))

        assert run(ledger.goals.get_all())[0].has_sub_goals is False

    def test_update_sub_goal(self, ledger: FamilyLedger) -> None:
        goal = create_goal(ledger)
        sub_goal = run(ledger.goals.create_sub_goal(goal.id, CreateSubGoal(name="Step")))

        updated = run(ledger.goals.update_sub_goal(sub_goal.id, UpdateSubGoal(progress=75, name="Half")))

        assert (updated.name, updated.progress) == ("Half", 75)


class TestUpdateGoal:
    def test_status_and_target(self, ledger: FamilyLedger) -> None:
        goal = create_goal(ledger)

        updated = run(
            ledger.goals.update(
                goal.id, UpdateFinancialGoal(status=GoalStatus.IN_PROGRESS, target_amount=Decimal("2000"))
            )
        )

        assert updated.status is GoalStatus.IN_PROGRESS
        assert updated.target_amount == Decimal("2000")
        assert run(ledger.goals.get_all(status=GoalStatus.IN_PROGRESS))[0].id == goal.id

    def test_invalid_target_is_rejected(self, ledger: FamilyLedger) -> None:
        goal = create_goal(ledger)

        with pytest.raises(ValidationError, match="Target amount must be greater than zero"):
            run(ledger.goals.update(goal.id, UpdateFinancialGoal(target_amount=Decimal("0"))))
