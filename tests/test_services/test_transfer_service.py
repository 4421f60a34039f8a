"""
Tests for TransferService - moving money without letting the source go negative
"""

from datetime import date
from decimal import Decimal

import pytest

from family_ledger.budget.commands import (
    CreateBudgetTransfer,
    CreateGoalDrawdownTransfer,
    CreateGoalTransfer,
    UpdateTransfer,
)
from family_ledger.budget.models import Budget, MonthlyOverview, Transfer, TransferType
from family_ledger.kernel.errors import DateOutOfRangeError, InsufficientFundsError, ValidationError
from family_ledger.ledger import FamilyLedger
from tests.helpers import JAN_10, add_expense, budget_named, create_budget, create_goal, run


def move(
    ledger: FamilyLedger,
    month: MonthlyOverview,
    source: Budget,
    target: Budget,
    amount: str,
    day: date = JAN_10,
) -> Transfer:
    return run(
        ledger.transfers.create(
            CreateBudgetTransfer(
                monthly_overview_id=month.id,
                from_budget_id=source.id,
                to_budget_id=target.id,
                amount=Decimal(amount),
                date=day,
            )
        )
    )


class TestBudgetToBudget:
    def test_moves_amount_left(self, ledger: FamilyLedger, january: MonthlyOverview) -> None:
        food = create_budget(ledger, january.id, name="Food", amount="100")
        fun = create_budget(ledger, january.id, name="Fun", amount="50")

        transfer = move(ledger, january, fun, food, "30")

        assert transfer.transfer_type is TransferType.BUDGET_TO_BUDGET
        summaries = {s.name: s for s in run(ledger.budgets.get_summaries(january.id))}
        assert summaries["Food"].amount_left == Decimal("130")
        assert summaries["Food"].transfers_in == Decimal("30")
        assert summaries["Fun"].amount_left == Decimal("20")

    def test_source_can_be_emptied_but_not_overdrawn(
        self, ledger: FamilyLedger, january: MonthlyOverview
    ) -> None:
        food = create_budget(ledger, january.id, name="Food", amount="100")
        fun = create_budget(ledger, january.id, name="Fun", amount="50")
        add_expense(ledger, fun.id, "20")

        with pytest.raises(InsufficientFundsError, match="Insufficient amount in source budget"):
            move(ledger, january, fun, food, "30.01")

        move(ledger, january, fun, food, "30")
        assert run(ledger.budgets.get_amount_left(fun.id)) == Decimal("0")

    def test_same_budget_is_rejected(self, ledger: FamilyLedger, january: MonthlyOverview) -> None:
        food = create_budget(ledger, january.id)

        with pytest.raises(ValidationError, match="Source and destination budgets must be different"):
            move(ledger, january, food, food, "1")

    def test_budgets_must_belong_to_the_month(
        self, ledger: FamilyLedger, january: MonthlyOverview, february: MonthlyOverview
    ) -> None:
        food = create_budget(ledger, january.id, name="Food")
        february_food = create_budget(ledger, february.id, name="Food")

        with pytest.raises(ValidationError, match="Budget must belong to the selected month"):
            move(ledger, january, food, february_food, "1")

    def test_date_is_checked_against_the_month(self, ledger: FamilyLedger, january: MonthlyOverview) -> None:
        food = create_budget(ledger, january.id, name="Food")
        fun = create_budget(ledger, january.id, name="Fun")

        with pytest.raises(DateOutOfRangeError, match="The Transfer Date"):
            move(ledger, january, food, fun, "1", day=date(2025, 2, 15))

    def test_update_adds_current_amount_back(self, ledger: FamilyLedger, january: MonthlyOverview) -> None:
        food = create_budget(ledger, january.id, name="Food", amount="100")
        fun = create_budget(ledger, january.id, name="Fun", amount="50")
        transfer = move(ledger, january, fun, food, "40")

        run(ledger.transfers.update(transfer.id, UpdateTransfer(amount=Decimal("50"))))

        with pytest.raises(InsufficientFundsError):
            run(ledger.transfers.update(transfer.id, UpdateTransfer(amount=Decimal("50.01"))))

    def test_spent_transfer_cannot_be_taken_back(self, ledger: FamilyLedger, january: MonthlyOverview) -> None:
        food = create_budget(ledger, january.id, name="Food", amount="100")
        fun = create_budget(ledger, january.id, name="Fun", amount="0")
        transfer = move(ledger, january, food, fun, "100")
        add_expense(ledger, fun.id, "100")

        with pytest.raises(InsufficientFundsError, match="Destination budget has already spent"):
            run(ledger.transfers.delete(transfer.id))
        with pytest.raises(InsufficientFundsError, match="Requested: 90.00"):
            run(ledger.transfers.update(transfer.id, UpdateTransfer(amount=Decimal("10"))))

        assert run(ledger.transfers.get_by_id(transfer.id)).amount == Decimal("100")
        assert run(ledger.budgets.get_amount_left(fun.id)) == Decimal("0")

    def test_unspent_part_of_a_transfer_can_be_returned(
        self, ledger: FamilyLedger, january: MonthlyOverview
    ) -> None:
        food = create_budget(ledger, january.id, name="Food", amount="100")
        fun = create_budget(ledger, january.id, name="Fun", amount="0")
        transfer = move(ledger, january, food, fun, "100")
        add_expense(ledger, fun.id, "60")

        run(ledger.transfers.update(transfer.id, UpdateTransfer(amount=Decimal("60"))))

        assert run(ledger.budgets.get_amount_left(fun.id)) == Decimal("0")
        assert run(ledger.budgets.get_amount_left(food.id)) == Decimal("40")

    def test_deleting_a_budget_removes_its_transfers(
        self, ledger: FamilyLedger, january: MonthlyOverview
    ) -> None:
        food = create_budget(ledger, january.id, name="Food", amount="100")
        fun = create_budget(ledger, january.id, name="Fun", amount="50")
        move(ledger, january, fun, food, "40")

        run(ledger.budgets.delete(fun.id))

        assert run(ledger.transfers.get_by_month(january.id)) == []
        assert run(ledger.budgets.get_amount_left(food.id)) == Decimal("100")


class TestGoalTransfers:
    def test_goal_to_budget_reduces_goal(self, ledger: FamilyLedger, january: MonthlyOverview) -> None:
        food = create_budget(ledger, january.id, name="Food", amount="100")
        goal = create_goal(ledger, current="300")

        run(
            ledger.transfers.create(
                CreateGoalTransfer(
                    monthly_overview_id=january.id,
                    from_goal_id=goal.id,
                    to_budget_id=food.id,
                    amount=Decimal("100"),
                    date=JAN_10,
                )
            )
        )

        assert run(ledger.goals.get_all())[0].current_amount == Decimal("200")
        assert run(ledger.budgets.get_amount_left(food.id)) == Decimal("200")

    def test_goal_balance_is_the_ceiling(self, ledger: FamilyLedger, january: MonthlyOverview) -> None:
        food = create_budget(ledger, january.id, name="Food")
        goal = create_goal(ledger, current="50")

        with pytest.raises(InsufficientFundsError, match="Insufficient goal balance"):
            run(
                ledger.transfers.create(
                    CreateGoalTransfer(
                        monthly_overview_id=january.id,
                        from_goal_id=goal.id,
                        to_budget_id=food.id,
                        amount=Decimal("50.01"),
                        date=JAN_10,
                    )
                )
            )

    def test_drawdown_transfer_creates_drawdown_budget_once(
        self, ledger: FamilyLedger, january: MonthlyOverview
    ) -> None:
        goal = create_goal(ledger, current="300")

        for amount in ("100", "50"):
            run(
                ledger.transfers.create(
                    CreateGoalDrawdownTransfer(
                        monthly_overview_id=january.id,
                        from_goal_id=goal.id,
                        amount=Decimal(amount),
                        date=JAN_10,
                    )
                )
            )

        drawdown = budget_named(ledger, january.id, "DrawDown")
        assert drawdown.budget_amount == Decimal("0")
        assert drawdown.description == "Variable category for drawdowns (withdrawals from goals for use)."
        assert run(ledger.budgets.get_amount_left(drawdown.id)) == Decimal("150")
        assert len(run(ledger.budgets.get_all(january.id))) == 1
        assert run(ledger.goals.get_balance(goal.id)) == Decimal("150")

        transfers = run(ledger.transfers.get_all(transfer_type=TransferType.GOAL_DRAWDOWN))
        assert len(transfers) == 2

    def test_deleting_goal_transfer_restores_goal(self, ledger: FamilyLedger, january: MonthlyOverview) -> None:
        goal = create_goal(ledger, current="300")
        transfer = run(
            ledger.transfers.create(
                CreateGoalDrawdownTransfer(
                    monthly_overview_id=january.id,
                    from_goal_id=goal.id,
                    amount=Decimal("120"),
                    date=JAN_10,
                )
            )
        )
        assert [t.id for t in run(ledger.transfers.get_by_goal(goal.id))] == [transfer.id]

        run(ledger.transfers.delete(transfer.id))

        assert run(ledger.goals.get_all())[0].current_amount == Decimal("300")
