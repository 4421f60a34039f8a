"""
Goal Module Projections - reconciling a goal's balance

current_amount = base_amount + linked expenses + contributions
                 - drawdowns - transfers out of the goal
"""

from collections.abc import Iterable
from decimal import Decimal

from pydantic import BaseModel

ZERO = Decimal("0")


class GoalMovements(BaseModel):
    """Sums of every ledger movement that touches one goal"""

    linked_expenses: Decimal = ZERO
    contributions: Decimal = ZERO
    drawdowns: Decimal = ZERO
    transfers_out: Decimal = ZERO

    def net(self) -> Decimal:
        """Net effect of the movements on the goal balance"""
        return self.linked_expenses + self.contributions - self.drawdowns - self.transfers_out


def sum_movements(
    linked_expenses: Iterable[Decimal] = (),
    contributions: Iterable[Decimal] = (),
    drawdowns: Iterable[Decimal] = (),
    transfers_out: Iterable[Decimal] = (),
) -> GoalMovements:
    return GoalMovements(
        linked_expenses=sum(linked_expenses, ZERO),
        contributions=sum(contributions, ZERO),
        drawdowns=sum(drawdowns, ZERO),
        transfers_out=sum(transfers_out, ZERO),
    )


def compute_current_amount(base_amount: Decimal, movements: GoalMovements) -> Decimal:
    """Reconciled goal balance"""
    return base_amount + movements.net()


def derive_base_amount(current_amount: Decimal, movements: GoalMovements) -> Decimal:
    """
    Base amount that makes `current_amount` reconcile with the movements

    Used for legacy goals without a stored base and when the owner sets
    the balance directly. Never negative.
    """
    return max(ZERO, current_amount - movements.net())
