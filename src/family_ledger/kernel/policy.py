"""
Ledger Policy - household conventions the services apply automatically

Tithe and offering percentages, the names of the conventional budgets the
services create on their own, and the fallback categories a brand new
household starts with.
"""

from decimal import Decimal

from pydantic import BaseModel, Field


class DefaultBudgetCategory(BaseModel):
    """A fallback budget category used when no master budgets exist"""

    name: str
    budget_amount: Decimal = Field(ge=0)
    description: str


DEFAULT_BUDGET_CATEGORIES: list[DefaultBudgetCategory] = [
    DefaultBudgetCategory(name="Tithe", budget_amount=Decimal("350.00"), description="10% of all income - giving back to God"),
    DefaultBudgetCategory(name="Offering", budget_amount=Decimal("175.00"), description="5% of main income - additional giving"),
    DefaultBudgetCategory(name="Housing", budget_amount=Decimal("2228.00"), description="Rent, Electricity"),
    DefaultBudgetCategory(name="Food", budget_amount=Decimal("350.00"), description="Groceries & Snacks"),
    DefaultBudgetCategory(name="Transport", budget_amount=Decimal("200.00"), description="Toll, Parking, Fuel"),
    DefaultBudgetCategory(name="Personal Care", budget_amount=Decimal("480.00"), description="Personal allowances, Nails"),
    DefaultBudgetCategory(name="Household", budget_amount=Decimal("130.00"), description="Household items, Cleaning"),
    DefaultBudgetCategory(name="Savings", budget_amount=Decimal("300.00"), description="Monthly savings"),
    DefaultBudgetCategory(name="Investments", budget_amount=Decimal("100.00"), description="401K, Stocks, Retirement contributions"),
    DefaultBudgetCategory(name="Subscriptions", budget_amount=Decimal("75.00"), description="Netflix, Spotify, and other recurring subscriptions"),
    DefaultBudgetCategory(name="Health", budget_amount=Decimal("50.00"), description="Medicine or health related"),
    DefaultBudgetCategory(name="Travel", budget_amount=Decimal("50.00"), description="Travel Allowance"),
    DefaultBudgetCategory(name="Miscellaneous", budget_amount=Decimal("100.00"), description="Unexpected expenses and other items"),
]


class LedgerPolicy(BaseModel):
    """
    Household ledger conventions

    Passed to every service by the FamilyLedger facade. The defaults match
    the conventions the household has always used; tests override single
    fields to exercise edge cases.
    """

    # Tithe/offering auto-allocation
    tithe_rate: Decimal = Field(
        default=Decimal("0.10"),
        ge=0,
        le=1,
        description="Share of a tithe-deducted income added to the tithe budget",
    )

    offering_rate: Decimal = Field(
        default=Decimal("0.05"),
        ge=0,
        le=1,
        description="Share of a tithe-deducted income added to the offering budget",
    )

    tithe_budget_name: str = Field(
        default="Tithe",
        min_length=1,
        description="Budget that receives the tithe allocation",
    )

    offering_budget_name: str = Field(
        default="Offering",
        min_length=1,
        description="Budget that receives the offering allocation",
    )

    tithe_default_description: str = Field(
        default="10% of all income - giving back to God",
        description="Description used when the tithe budget has no master template",
    )

    offering_default_description: str = Field(
        default="5% of main income - additional giving",
        description="Description used when the offering budget has no master template",
    )

    # Goal drawdown transfers
    drawdown_budget_name: str = Field(
        default="DrawDown",
        min_length=1,
        description="Catch-all budget receiving goal drawdown transfers",
    )

    drawdown_budget_description: str = Field(
        default="Variable category for drawdowns (withdrawals from goals for use).",
        description="Description of the auto-created drawdown budget",
    )

    # Recurring payments
    due_soon_days: int = Field(
        default=7,
        ge=0,
        le=365,
        description="Window (days from today) for due-soon subscription and loan queries",
    )

    payment_tolerance: Decimal = Field(
        default=Decimal("0.01"),
        ge=0,
        description="Allowed gap between a loan payment and principal + interest",
    )

    default_budget_categories: list[DefaultBudgetCategory] = Field(
        default_factory=lambda: list(DEFAULT_BUDGET_CATEGORIES),
        description="Categories copied into a month when the owner has no master budgets",
    )
