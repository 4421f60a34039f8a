"""
Test Helper Functions - Builders and Doubles

Provides reusable builders for ledger records and a store double that
fails on demand. The services are async; `run` drives one coroutine to
completion so tests stay flat and readable.

Fun fact: The Builder pattern was formalized by the Gang of Four in 1994,
but test data builders were popularized by the growing programmer test
movement in the 2000s - we use them to keep tests readable and maintainable!
"""

import asyncio
from collections.abc import Awaitable
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, TypeVar

from family_ledger.budget.commands import (
    CreateBudget,
    CreateExpense,
    CreateIncomeSource,
)
from family_ledger.budget.models import Budget, Expense, IncomeSource
from family_ledger.goals.commands import CreateFinancialGoal
from family_ledger.goals.models import FinancialGoal
from family_ledger.kernel.errors import LedgerStoreError
from family_ledger.kernel.ledger_store import InMemoryLedgerStore, Row
from family_ledger.ledger import FamilyLedger

T = TypeVar("T")

JAN_10 = date(2025, 1, 10)


def run(operation: Awaitable[T]) -> T:
    """Run a service coroutine to completion"""
    return asyncio.run(operation)


def record_fields(record_id: str = "rec-1", owner_id: str = "user-alex") -> dict[str, Any]:
    """
    Common LedgerRecord attributes for building models in pure tests

    Example:
        >>> Budget(**record_fields("b1"), monthly_overview_id="m1", name="Food",
        ...        budget_amount=Decimal("100"))
    """
    stamp = datetime(2025, 1, 15, 12, 0, 0, tzinfo=timezone.utc)
    return {"id": record_id, "owner_id": owner_id, "created_at": stamp, "updated_at": stamp}


def create_budget(
    ledger: FamilyLedger,
    monthly_overview_id: str,
    name: str = "Food",
    amount: str = "100",
    **extra: Any,
) -> Budget:
    """Builder for a budget in a month"""
    return run(
        ledger.budgets.create(
            CreateBudget(
                monthly_overview_id=monthly_overview_id,
                name=name,
                budget_amount=Decimal(amount),
                **extra,
            )
        )
    )


def add_expense(
    ledger: FamilyLedger,
    budget_id: str,
    amount: str,
    day: date = JAN_10,
    goal_id: str | None = None,
    **extra: Any,
) -> Expense:
    """Builder for an expense (defaults to 2025-01-10)"""
    return run(
        ledger.expenses.create(
            CreateExpense(
                budget_id=budget_id,
                amount=Decimal(amount),
                date=day,
                financial_goal_id=goal_id,
                **extra,
            )
        )
    )


def add_income(
    ledger: FamilyLedger,
    monthly_overview_id: str,
    amount: str,
    tithe: bool = False,
    source: str = "Salary",
    person: str | None = None,
) -> IncomeSource:
    """Builder for income in a month"""
    return run(
        ledger.income.create(
            CreateIncomeSource(
                monthly_overview_id=monthly_overview_id,
                amount=Decimal(amount),
                source=source,
                person=person,
                tithe_deduction=tithe,
            )
        )
    )


def create_goal(
    ledger: FamilyLedger,
    name: str = "Emergency fund",
    target: str = "1000",
    current: str = "0",
    start: date = date(2025, 1, 1),
) -> FinancialGoal:
    """Builder for a financial goal"""
    return run(
        ledger.goals.create(
            CreateFinancialGoal(
                name=name,
                target_amount=Decimal(target),
                current_amount=Decimal(current),
                start_date=start,
            )
        )
    )


def budget_named(ledger: FamilyLedger, monthly_overview_id: str, name: str) -> Budget | None:
    return run(ledger.budgets.find_by_name(monthly_overview_id, name))


class FlakyLedgerStore(InMemoryLedgerStore):
    """
    In-memory store whose updates fail for chosen tables

    Simulates a secondary write failing after the primary write succeeded,
    e.g. the goal balance update after an expense insert.
    """

    def __init__(self, fail_updates_on: set[str] | None = None) -> None:
        super().__init__()
        self.fail_updates_on = set(fail_updates_on or ())

    async def update(self, table: str, row_id: str, changes: Row) -> Row | None:
        if table in self.fail_updates_on:
            raise LedgerStoreError("update", table, "simulated outage")
        return await super().update(table, row_id, changes)
