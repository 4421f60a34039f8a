"""
FamilyLedger - Main facade

This is the primary interface for the household ledger. It wires one
store, identity provider, clock and policy into every entity service so
callers never assemble the dependency graph themselves.

Example:
    >>> import asyncio
    >>> from datetime import date
    >>> from family_ledger import FamilyLedger
    >>> from family_ledger.budget.commands import CreateMonthlyOverview
    >>> ledger = FamilyLedger.sqlite("household.db", user_id="alex")
    >>> month = asyncio.run(ledger.months.create(CreateMonthlyOverview(
    ...     name="March 2025", start_date=date(2025, 3, 1), end_date=date(2025, 3, 31))))
    >>> asyncio.run(ledger.budgets.get_summaries(month.id))
"""

from pathlib import Path

from family_ledger.kernel.identity import IdentityProvider, StaticIdentityProvider
from family_ledger.kernel.ledger_store import InMemoryLedgerStore, LedgerStore, SQLiteLedgerStore
from family_ledger.kernel.policy import LedgerPolicy
from family_ledger.kernel.time import RealTimeProvider, TimeProvider
from family_ledger.services import (
    BudgetService,
    ExpenseService,
    FinancialGoalService,
    FinancialHealthService,
    GoalContributionService,
    GoalDrawdownService,
    IncomeSourceService,
    LoanService,
    MasterBudgetService,
    MonthlyOverviewService,
    SavingsService,
    SubscriptionService,
    SummaryService,
    TransferService,
)


class FamilyLedger:
    """
    Family ledger facade

    Exposes one service per entity:
    - months, master_budgets, budgets, expenses, income
    - goals, contributions, drawdowns, transfers
    - loans, subscriptions, savings, health
    - summaries (the derived Budget and Monthly Overview Summaries)
    """

    def __init__(
        self,
        store: LedgerStore,
        identity: IdentityProvider,
        policy: LedgerPolicy | None = None,
        time_provider: TimeProvider | None = None,
    ) -> None:
        """
        Initialize the ledger

        Args:
            store: Row store shared by every service
            identity: Resolves the calling user
            policy: Household conventions (uses defaults if None)
            time_provider: Time provider (uses real time if None)
        """
        self.store = store
        self.identity = identity
        self.policy = policy or LedgerPolicy()
        self.time_provider = time_provider or RealTimeProvider()

        common = (self.store, self.identity, self.time_provider, self.policy)

        self.summaries = SummaryService(*common)
        self.master_budgets = MasterBudgetService(*common)
        self.goals = FinancialGoalService(*common)
        self.budgets = BudgetService(*common, summaries=self.summaries, goals=self.goals)
        self.months = MonthlyOverviewService(
            *common,
            summaries=self.summaries,
            budgets=self.budgets,
            master_budgets=self.master_budgets,
            goals=self.goals,
        )
        self.expenses = ExpenseService(*common, summaries=self.summaries, goals=self.goals)
        self.income = IncomeSourceService(
            *common,
            months=self.months,
            budgets=self.budgets,
            master_budgets=self.master_budgets,
        )
        self.contributions = GoalContributionService(*common, summaries=self.summaries, goals=self.goals)
        self.drawdowns = GoalDrawdownService(*common, summaries=self.summaries, goals=self.goals)
        self.transfers = TransferService(
            *common,
            summaries=self.summaries,
            goals=self.goals,
            budgets=self.budgets,
        )
        self.loans = LoanService(*common)
        self.subscriptions = SubscriptionService(*common, budgets=self.budgets)
        self.savings = SavingsService(*common)
        self.health = FinancialHealthService(
            *common,
            summaries=self.summaries,
            months=self.months,
            loans=self.loans,
        )

    @classmethod
    def sqlite(
        cls,
        db_path: str | Path,
        user_id: str,
        policy: LedgerPolicy | None = None,
        time_provider: TimeProvider | None = None,
    ) -> "FamilyLedger":
        """Ledger backed by a SQLite file, acting as a single fixed user"""
        return cls(SQLiteLedgerStore(db_path), StaticIdentityProvider(user_id), policy, time_provider)

    @classmethod
    def in_memory(
        cls,
        user_id: str,
        policy: LedgerPolicy | None = None,
        time_provider: TimeProvider | None = None,
    ) -> "FamilyLedger":
        """Ledger kept in process memory (tests, embedding)"""
        return cls(InMemoryLedgerStore(), StaticIdentityProvider(user_id), policy, time_provider)
