"""
Family Ledger CLI

Command-line interface for the household ledger, backed by SQLite.
Provides commands for months, budgets, expenses, income, goals,
transfers, loans, subscriptions and the financial health score.

Usage:
    family-ledger init --db household.db
    family-ledger month create --name "March 2025" --start 2025-03-01 --end 2025-03-31
    family-ledger budget create --month <id> --name Food --amount 350
    family-ledger expense add --budget <id> --amount 42.50 --date 2025-03-04
    family-ledger income add --month <id> --amount 4000 --source Salary --tithe
    family-ledger goal create --name "Emergency fund" --target 5000
    family-ledger health
"""

import asyncio
import json
import time
from collections.abc import Awaitable
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path
from typing import Optional, TypeVar

import typer
from typing_extensions import Annotated

from family_ledger.budget.commands import (
    CreateBudget,
    CreateBudgetTransfer,
    CreateExpense,
    CreateGoalDrawdownTransfer,
    CreateGoalTransfer,
    CreateIncomeSource,
    CreateMonthlyOverview,
)
from family_ledger.goals.commands import CreateFinancialGoal, CreateGoalContribution, CreateGoalDrawdown
from family_ledger.kernel.errors import LedgerError
from family_ledger.kernel.logging import configure_logging, get_logger
from family_ledger.kernel.metrics import start_metrics_server
from family_ledger.ledger import FamilyLedger
from family_ledger.recurring.commands import CreateLoan, CreateSubscription, RecordLoanPayment
from family_ledger.recurring.models import Frequency

# Configure logging to stderr (avoids polluting stdout for JSON output)
configure_logging(json_output=False, log_level="WARNING")

logger = get_logger(__name__)

T = TypeVar("T")

app = typer.Typer(
    name="family-ledger",
    help="Family Ledger - household budgets, goals and recurring payments",
    add_completion=False,
)

# Sub-apps
month_app = typer.Typer(help="Monthly overview commands")
budget_app = typer.Typer(help="Budget category commands")
expense_app = typer.Typer(help="Expense tracking commands")
income_app = typer.Typer(help="Income commands")
goal_app = typer.Typer(help="Financial goal commands")
transfer_app = typer.Typer(help="Transfer commands")
loan_app = typer.Typer(help="Loan commands")
subscription_app = typer.Typer(help="Subscription commands")

app.add_typer(month_app, name="month")
app.add_typer(budget_app, name="budget")
app.add_typer(expense_app, name="expense")
app.add_typer(income_app, name="income")
app.add_typer(goal_app, name="goal")
app.add_typer(transfer_app, name="transfer")
app.add_typer(loan_app, name="loan")
app.add_typer(subscription_app, name="subscription")

# Global state
DEFAULT_DB = Path(".family_ledger.db")
DEFAULT_USER = "local-user"

DbOption = Annotated[
    Optional[Path],
    typer.Option("--db", help="Database path", envvar="FAMILY_LEDGER_DB"),
]
UserOption = Annotated[
    str,
    typer.Option("--user", help="Acting user id", envvar="FAMILY_LEDGER_USER"),
]
JsonOption = Annotated[bool, typer.Option("--json", help="Output as JSON")]


def get_ledger(db_path: Optional[Path] = None, user_id: str = DEFAULT_USER) -> FamilyLedger:
    """Get FamilyLedger instance"""
    db = db_path or DEFAULT_DB
    if not db.exists():
        typer.echo(f"Error: Database not found: {db}", err=True)
        typer.echo(f"Run 'family-ledger init --db {db}' to initialize", err=True)
        raise typer.Exit(1)
    return FamilyLedger.sqlite(db, user_id=user_id)


def run(operation: Awaitable[T]) -> T:
    """Run a service coroutine, turning ledger errors into a clean exit"""
    try:
        return asyncio.run(operation)
    except LedgerError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)


def parse_day(value: Optional[str]) -> date:
    """ISO date option, defaulting to today"""
    return date.fromisoformat(value) if value else date.today()


def echo_json(payload: object) -> None:
    typer.echo(json.dumps(payload, indent=2, default=str))


# Initialization command


@app.command()
def init(
    db: Annotated[
        Path,
        typer.Option(help="Database path", envvar="FAMILY_LEDGER_DB"),
    ] = DEFAULT_DB,
) -> None:
    """Initialize a new ledger database"""
    if db.exists():
        typer.echo(f"Error: Database already exists: {db}", err=True)
        raise typer.Exit(1)

    # Creating the store creates the schema
    FamilyLedger.sqlite(db, user_id=DEFAULT_USER)
    typer.echo(f"✓ Initialized ledger database: {db}")


# Monthly overview commands


@month_app.command("create")
def month_create(
    name: Annotated[str, typer.Option("--name", help="Month name, e.g. 'March 2025'")],
    start: Annotated[str, typer.Option("--start", help="First day (YYYY-MM-DD)")],
    end: Annotated[str, typer.Option("--end", help="Last day (YYYY-MM-DD)")],
    notes: Annotated[Optional[str], typer.Option("--notes", help="Notes")] = None,
    db: DbOption = None,
    user: UserOption = DEFAULT_USER,
) -> None:
    """Create a month and populate its default budgets"""
    ledger = get_ledger(db, user)
    month = run(
        ledger.months.create(
            CreateMonthlyOverview(
                name=name,
                start_date=date.fromisoformat(start),
                end_date=date.fromisoformat(end),
                notes=notes,
            )
        )
    )
    budgets = run(ledger.budgets.get_by_monthly_overview(month.id))

    typer.echo(f"✓ Created month: {month.id}")
    typer.echo(f"  Name: {month.name}")
    typer.echo(f"  Period: {month.start_date} to {month.end_date}")
    typer.echo(f"  Budgets: {len(budgets)}")


@month_app.command("list")
def month_list(db: DbOption = None, user: UserOption = DEFAULT_USER) -> None:
    """List months, most recent first"""
    ledger = get_ledger(db, user)
    months = run(ledger.months.get_all())

    if not months:
        typer.echo("No months")
        return

    typer.echo(f"Months ({len(months)}):")
    for month in months:
        typer.echo(f"  {month.id}: {month.name} ({month.start_date} to {month.end_date})")


@month_app.command("show")
def month_show(
    month_id: Annotated[str, typer.Option("--id", help="Month ID")],
    json_output: JsonOption = False,
    db: DbOption = None,
    user: UserOption = DEFAULT_USER,
) -> None:
    """Show month totals and budget summaries"""
    ledger = get_ledger(db, user)
    summary = run(ledger.months.get_with_summary(month_id))
    budgets = run(ledger.months.get_budgets(month_id))
    available = run(ledger.contributions.get_available_income(month_id))

    if json_output:
        echo_json(
            {
                "summary": summary.model_dump(mode="json"),
                "budgets": [b.model_dump(mode="json") for b in budgets],
                "available_income": str(available),
            }
        )
        return

    typer.echo(f"\n{summary.name} ({summary.start_date} to {summary.end_date})")
    typer.echo(f"  Income: €{summary.total_income:.2f}")
    typer.echo(f"  Budgeted: €{summary.total_budgeted:.2f}")
    typer.echo(f"  Spent: €{summary.total_spent:.2f}")
    typer.echo(f"  Unallocated: €{summary.amount_unallocated:.2f}")
    typer.echo(f"  Available for goals: €{available:.2f}")

    if budgets:
        typer.echo("\nBudgets:")
        for b in budgets:
            marker = " (overspent)" if b.is_overspent() else ""
            typer.echo(
                f"  {b.name}: €{b.amount_spent:.2f} of €{b.effective_amount():.2f} "
                f"({b.percent_used:.1f}%), €{b.amount_left:.2f} left{marker}"
            )


@month_app.command("delete")
def month_delete(
    month_id: Annotated[str, typer.Option("--id", help="Month ID")],
    db: DbOption = None,
    user: UserOption = DEFAULT_USER,
) -> None:
    """Delete a month with everything recorded in it"""
    ledger = get_ledger(db, user)
    run(ledger.months.delete(month_id))
    typer.echo(f"✓ Deleted month: {month_id}")


# Budget commands


@budget_app.command("create")
def budget_create(
    month_id: Annotated[str, typer.Option("--month", help="Month ID")],
    name: Annotated[str, typer.Option("--name", help="Category name")],
    amount: Annotated[str, typer.Option("--amount", help="Allocated amount")],
    description: Annotated[Optional[str], typer.Option("--description", help="Description")] = None,
    db: DbOption = None,
    user: UserOption = DEFAULT_USER,
) -> None:
    """Create a budget category in a month"""
    ledger = get_ledger(db, user)
    budget = run(
        ledger.budgets.create(
            CreateBudget(
                monthly_overview_id=month_id,
                name=name,
                budget_amount=Decimal(amount),
                description=description,
            )
        )
    )

    typer.echo(f"✓ Created budget: {budget.id}")
    typer.echo(f"  Name: {budget.name}")
    typer.echo(f"  Amount: €{budget.budget_amount:.2f}")


@budget_app.command("list")
def budget_list(
    month_id: Annotated[str, typer.Option("--month", help="Month ID")],
    db: DbOption = None,
    user: UserOption = DEFAULT_USER,
) -> None:
    """List the budgets of a month with amount left"""
    ledger = get_ledger(db, user)
    summaries = run(ledger.budgets.get_summaries(month_id))

    if not summaries:
        typer.echo("No budgets")
        return

    typer.echo(f"Budgets ({len(summaries)}):")
    for s in summaries:
        typer.echo(f"  {s.budget_id}: {s.name} - €{s.amount_left:.2f} left of €{s.effective_amount():.2f}")


@budget_app.command("show")
def budget_show(
    budget_id: Annotated[str, typer.Option("--id", help="Budget ID")],
    json_output: JsonOption = False,
    db: DbOption = None,
    user: UserOption = DEFAULT_USER,
) -> None:
    """Show a budget with its expenses"""
    ledger = get_ledger(db, user)
    summary = run(ledger.budgets.get_summary(budget_id))
    expenses = run(ledger.expenses.get_by_budget(budget_id))

    if json_output:
        echo_json(
            {
                "summary": summary.model_dump(mode="json"),
                "expenses": [e.model_dump(mode="json") for e in expenses],
            }
        )
        return

    typer.echo(f"\nBudget: {summary.name}")
    typer.echo(f"  Allocated: €{summary.budget_amount:.2f}")
    typer.echo(f"  Transfers: +€{summary.transfers_in:.2f} / -€{summary.transfers_out:.2f}")
    typer.echo(f"  Spent: €{summary.amount_spent:.2f} ({summary.percent_used:.1f}%)")
    typer.echo(f"  Left: €{summary.amount_left:.2f}")

    if expenses:
        typer.echo("\nExpenses:")
        for e in expenses:
            typer.echo(f"  {e.date}: €{e.amount:.2f} {e.description or ''}".rstrip())


# Expense commands


@expense_app.command("add")
def expense_add(
    budget_id: Annotated[str, typer.Option("--budget", help="Budget ID")],
    amount: Annotated[str, typer.Option("--amount", help="Amount spent")],
    day: Annotated[Optional[str], typer.Option("--date", help="Date (YYYY-MM-DD), default today")] = None,
    description: Annotated[Optional[str], typer.Option("--description", help="Description")] = None,
    goal_id: Annotated[Optional[str], typer.Option("--goal", help="Financial goal funded by this expense")] = None,
    paid_by: Annotated[Optional[str], typer.Option("--paid-by", help="Who paid")] = None,
    payment_method: Annotated[Optional[str], typer.Option("--payment-method", help="Payment method")] = None,
    db: DbOption = None,
    user: UserOption = DEFAULT_USER,
) -> None:
    """Record an expense against a budget"""
    ledger = get_ledger(db, user)
    expense = run(
        ledger.expenses.create(
            CreateExpense(
                budget_id=budget_id,
                amount=Decimal(amount),
                date=parse_day(day),
                description=description,
                financial_goal_id=goal_id,
                paid_by=paid_by,
                payment_method=payment_method,
            )
        )
    )
    summary = run(ledger.budgets.get_summary(budget_id))

    typer.echo(f"✓ Recorded expense: {expense.id}")
    typer.echo(f"  Amount: €{expense.amount:.2f}")
    typer.echo(f"  Budget left: €{summary.amount_left:.2f}")


@expense_app.command("list")
def expense_list(
    budget_id: Annotated[Optional[str], typer.Option("--budget", help="Budget ID")] = None,
    db: DbOption = None,
    user: UserOption = DEFAULT_USER,
) -> None:
    """List expenses, most recent first"""
    ledger = get_ledger(db, user)
    expenses = run(ledger.expenses.get_all(budget_id=budget_id))

    if not expenses:
        typer.echo("No expenses")
        return

    typer.echo(f"Expenses ({len(expenses)}):")
    for e in expenses:
        typer.echo(f"  {e.id}: {e.date} €{e.amount:.2f} {e.description or ''}".rstrip())


@expense_app.command("delete")
def expense_delete(
    expense_id: Annotated[str, typer.Option("--id", help="Expense ID")],
    db: DbOption = None,
    user: UserOption = DEFAULT_USER,
) -> None:
    """Delete an expense"""
    ledger = get_ledger(db, user)
    run(ledger.expenses.delete(expense_id))
    typer.echo(f"✓ Deleted expense: {expense_id}")


# Income commands


@income_app.command("add")
def income_add(
    month_id: Annotated[str, typer.Option("--month", help="Month ID")],
    amount: Annotated[str, typer.Option("--amount", help="Amount received")],
    source: Annotated[str, typer.Option("--source", help="Income source, e.g. Salary")],
    person: Annotated[Optional[str], typer.Option("--person", help="Who earned it")] = None,
    tithe: Annotated[bool, typer.Option("--tithe", help="Allocate tithe and offering")] = False,
    db: DbOption = None,
    user: UserOption = DEFAULT_USER,
) -> None:
    """Record income for a month"""
    ledger = get_ledger(db, user)
    income = run(
        ledger.income.create(
            CreateIncomeSource(
                monthly_overview_id=month_id,
                amount=Decimal(amount),
                source=source,
                person=person,
                tithe_deduction=tithe,
            )
        )
    )

    typer.echo(f"✓ Recorded income: {income.id}")
    typer.echo(f"  Amount: €{income.amount:.2f}")
    if income.tithe_deduction:
        typer.echo("  Tithe and offering budgets updated")


@income_app.command("list")
def income_list(
    month_id: Annotated[str, typer.Option("--month", help="Month ID")],
    db: DbOption = None,
    user: UserOption = DEFAULT_USER,
) -> None:
    """List the income of a month"""
    ledger = get_ledger(db, user)
    incomes = run(ledger.income.get_by_monthly_overview(month_id))

    if not incomes:
        typer.echo("No income")
        return

    total = sum((i.amount for i in incomes), Decimal("0"))
    typer.echo(f"Income ({len(incomes)}, total €{total:.2f}):")
    for i in incomes:
        typer.echo(f"  {i.id}: {i.source} €{i.amount:.2f}{' (tithed)' if i.tithe_deduction else ''}")


@income_app.command("delete")
def income_delete(
    income_id: Annotated[str, typer.Option("--id", help="Income ID")],
    db: DbOption = None,
    user: UserOption = DEFAULT_USER,
) -> None:
    """Delete income (reverses its tithe and offering)"""
    ledger = get_ledger(db, user)
    run(ledger.income.delete(income_id))
    typer.echo(f"✓ Deleted income: {income_id}")


# Goal commands


@goal_app.command("create")
def goal_create(
    name: Annotated[str, typer.Option("--name", help="Goal name")],
    target: Annotated[str, typer.Option("--target", help="Target amount")],
    current: Annotated[str, typer.Option("--current", help="Already saved")] = "0",
    start: Annotated[Optional[str], typer.Option("--start", help="Start date (YYYY-MM-DD), default today")] = None,
    end: Annotated[Optional[str], typer.Option("--end", help="Target date (YYYY-MM-DD)")] = None,
    db: DbOption = None,
    user: UserOption = DEFAULT_USER,
) -> None:
    """Create a savings goal"""
    ledger = get_ledger(db, user)
    goal = run(
        ledger.goals.create(
            CreateFinancialGoal(
                name=name,
                target_amount=Decimal(target),
                current_amount=Decimal(current),
                start_date=parse_day(start),
                end_date=date.fromisoformat(end) if end else None,
            )
        )
    )

    typer.echo(f"✓ Created goal: {goal.id}")
    typer.echo(f"  Name: {goal.name}")
    typer.echo(f"  Saved: €{goal.current_amount:.2f} of €{goal.target_amount:.2f}")


@goal_app.command("list")
def goal_list(db: DbOption = None, user: UserOption = DEFAULT_USER) -> None:
    """List goals"""
    ledger = get_ledger(db, user)
    goals = run(ledger.goals.get_all())

    if not goals:
        typer.echo("No goals")
        return

    typer.echo(f"Goals ({len(goals)}):")
    for g in goals:
        typer.echo(f"  {g.id}: {g.name} €{g.current_amount:.2f}/€{g.target_amount:.2f} [{g.status.value}]")


@goal_app.command("show")
def goal_show(
    goal_id: Annotated[str, typer.Option("--id", help="Goal ID")],
    json_output: JsonOption = False,
    db: DbOption = None,
    user: UserOption = DEFAULT_USER,
) -> None:
    """Show a goal with a freshly reconciled balance"""
    ledger = get_ledger(db, user)
    goal = run(ledger.goals.get_by_id(goal_id))

    if json_output:
        echo_json(goal.model_dump(mode="json"))
        return

    typer.echo(f"\nGoal: {goal.name} [{goal.status.value}]")
    typer.echo(f"  Saved: €{goal.current_amount:.2f} of €{goal.target_amount:.2f} ({goal.progress_percent:.1f}%)")
    typer.echo(f"  Base amount: €{goal.base_amount or 0:.2f}")
    if goal.sub_goals:
        typer.echo("\nSub-goals:")
        for sub in goal.sub_goals:
            typer.echo(f"  {sub.name}: {sub.progress}%")


@goal_app.command("contribute")
def goal_contribute(
    goal_id: Annotated[str, typer.Option("--goal", help="Goal ID")],
    month_id: Annotated[str, typer.Option("--month", help="Month funding the contribution")],
    amount: Annotated[str, typer.Option("--amount", help="Amount")],
    day: Annotated[Optional[str], typer.Option("--date", help="Date (YYYY-MM-DD), default today")] = None,
    notes: Annotated[Optional[str], typer.Option("--notes", help="Notes")] = None,
    db: DbOption = None,
    user: UserOption = DEFAULT_USER,
) -> None:
    """Contribute to a goal from the month's available income"""
    ledger = get_ledger(db, user)
    contribution = run(
        ledger.contributions.create(
            CreateGoalContribution(
                financial_goal_id=goal_id,
                monthly_overview_id=month_id,
                amount=Decimal(amount),
                date=parse_day(day),
                notes=notes,
            )
        )
    )
    typer.echo(f"✓ Recorded contribution: {contribution.id}")
    typer.echo(f"  Amount: €{contribution.amount:.2f}")


@goal_app.command("drawdown")
def goal_drawdown(
    goal_id: Annotated[str, typer.Option("--goal", help="Goal ID")],
    month_id: Annotated[str, typer.Option("--month", help="Month of the withdrawal")],
    amount: Annotated[str, typer.Option("--amount", help="Amount")],
    day: Annotated[Optional[str], typer.Option("--date", help="Date (YYYY-MM-DD), default today")] = None,
    notes: Annotated[Optional[str], typer.Option("--notes", help="Notes")] = None,
    db: DbOption = None,
    user: UserOption = DEFAULT_USER,
) -> None:
    """Withdraw from a goal's balance"""
    ledger = get_ledger(db, user)
    drawdown = run(
        ledger.drawdowns.create(
            CreateGoalDrawdown(
                financial_goal_id=goal_id,
                monthly_overview_id=month_id,
                amount=Decimal(amount),
                date=parse_day(day),
                notes=notes,
            )
        )
    )
    typer.echo(f"✓ Recorded drawdown: {drawdown.id}")
    typer.echo(f"  Amount: €{drawdown.amount:.2f}")


# Transfer commands


@transfer_app.command("budget")
def transfer_budget(
    month_id: Annotated[str, typer.Option("--month", help="Month ID")],
    from_budget: Annotated[str, typer.Option("--from", help="Source budget ID")],
    to_budget: Annotated[str, typer.Option("--to", help="Destination budget ID")],
    amount: Annotated[str, typer.Option("--amount", help="Amount")],
    day: Annotated[Optional[str], typer.Option("--date", help="Date (YYYY-MM-DD), default today")] = None,
    description: Annotated[Optional[str], typer.Option("--description", help="Description")] = None,
    db: DbOption = None,
    user: UserOption = DEFAULT_USER,
) -> None:
    """Move money between two budgets of a month"""
    ledger = get_ledger(db, user)
    transfer = run(
        ledger.transfers.create_budget_to_budget(
            CreateBudgetTransfer(
                monthly_overview_id=month_id,
                from_budget_id=from_budget,
                to_budget_id=to_budget,
                amount=Decimal(amount),
                date=parse_day(day),
                description=description,
            )
        )
    )
    typer.echo(f"✓ Transferred €{transfer.amount:.2f}: {transfer.id}")


@transfer_app.command("goal")
def transfer_goal(
    month_id: Annotated[str, typer.Option("--month", help="Month ID")],
    goal_id: Annotated[str, typer.Option("--goal", help="Source goal ID")],
    amount: Annotated[str, typer.Option("--amount", help="Amount")],
    to_budget: Annotated[
        Optional[str],
        typer.Option("--to", help="Destination budget ID (default: the DrawDown budget)"),
    ] = None,
    day: Annotated[Optional[str], typer.Option("--date", help="Date (YYYY-MM-DD), default today")] = None,
    description: Annotated[Optional[str], typer.Option("--description", help="Description")] = None,
    db: DbOption = None,
    user: UserOption = DEFAULT_USER,
) -> None:
    """Move goal savings into a budget (or the month's DrawDown budget)"""
    ledger = get_ledger(db, user)
    if to_budget:
        command = CreateGoalTransfer(
            monthly_overview_id=month_id,
            from_goal_id=goal_id,
            to_budget_id=to_budget,
            amount=Decimal(amount),
            date=parse_day(day),
            description=description,
        )
    else:
        command = CreateGoalDrawdownTransfer(
            monthly_overview_id=month_id,
            from_goal_id=goal_id,
            amount=Decimal(amount),
            date=parse_day(day),
            description=description,
        )
    transfer = run(ledger.transfers.create(command))
    typer.echo(f"✓ Transferred €{transfer.amount:.2f} from goal: {transfer.id}")
    typer.echo(f"  Type: {transfer.transfer_type.value}")


# Loan commands


@loan_app.command("create")
def loan_create(
    name: Annotated[str, typer.Option("--name", help="Loan name")],
    original: Annotated[str, typer.Option("--original", help="Original amount")],
    payment: Annotated[str, typer.Option("--payment", help="Payment per period")],
    balance: Annotated[Optional[str], typer.Option("--balance", help="Current balance (default: original)")] = None,
    rate: Annotated[str, typer.Option("--rate", help="Annual interest rate in percent")] = "0",
    frequency: Annotated[Frequency, typer.Option("--frequency", help="Payment frequency")] = Frequency.MONTHLY,
    lender: Annotated[Optional[str], typer.Option("--lender", help="Lender")] = None,
    db: DbOption = None,
    user: UserOption = DEFAULT_USER,
) -> None:
    """Register a loan"""
    ledger = get_ledger(db, user)
    loan = run(
        ledger.loans.create(
            CreateLoan(
                name=name,
                original_amount=Decimal(original),
                monthly_payment=Decimal(payment),
                current_balance=Decimal(balance) if balance else None,
                interest_rate=Decimal(rate),
                payment_frequency=frequency,
                lender=lender,
            )
        )
    )
    months_left = ledger.loans.calculate_months_remaining(
        loan.current_balance, loan.monthly_payment, loan.interest_rate
    )

    typer.echo(f"✓ Created loan: {loan.id}")
    typer.echo(f"  Balance: €{loan.current_balance:.2f}")
    typer.echo(f"  Next payment: {loan.next_payment_date}")
    typer.echo(f"  Estimated months remaining: {months_left}")


@loan_app.command("list")
def loan_list(db: DbOption = None, user: UserOption = DEFAULT_USER) -> None:
    """List loans"""
    ledger = get_ledger(db, user)
    loans = run(ledger.loans.get_all())

    if not loans:
        typer.echo("No loans")
        return

    typer.echo(f"Loans ({len(loans)}):")
    for loan in loans:
        typer.echo(
            f"  {loan.id}: {loan.name} €{loan.current_balance:.2f} left, "
            f"€{loan.monthly_payment:.2f} {loan.payment_frequency.value} [{loan.status.value}]"
        )


@loan_app.command("pay")
def loan_pay(
    loan_id: Annotated[str, typer.Option("--loan", help="Loan ID")],
    amount: Annotated[str, typer.Option("--amount", help="Total paid")],
    principal: Annotated[str, typer.Option("--principal", help="Principal part")],
    interest: Annotated[str, typer.Option("--interest", help="Interest part")] = "0",
    day: Annotated[Optional[str], typer.Option("--date", help="Date (YYYY-MM-DD), default today")] = None,
    db: DbOption = None,
    user: UserOption = DEFAULT_USER,
) -> None:
    """Record a loan payment"""
    ledger = get_ledger(db, user)
    payment = run(
        ledger.loans.record_payment(
            RecordLoanPayment(
                loan_id=loan_id,
                payment_date=parse_day(day),
                payment_amount=Decimal(amount),
                principal_amount=Decimal(principal),
                interest_amount=Decimal(interest),
            )
        )
    )
    loan = run(ledger.loans.get_by_id(loan_id))

    typer.echo(f"✓ Recorded payment: {payment.id}")
    typer.echo(f"  Balance: €{loan.current_balance:.2f}")


# Subscription commands


@subscription_app.command("create")
def subscription_create(
    name: Annotated[str, typer.Option("--name", help="Subscription name")],
    amount: Annotated[str, typer.Option("--amount", help="Amount per period")],
    frequency: Annotated[Frequency, typer.Option("--frequency", help="Billing frequency")] = Frequency.MONTHLY,
    collection_day: Annotated[Optional[int], typer.Option("--day", help="Collection day of month (1-31)")] = None,
    provider: Annotated[Optional[str], typer.Option("--provider", help="Provider")] = None,
    essential: Annotated[bool, typer.Option("--essential", help="Mark as essential")] = False,
    db: DbOption = None,
    user: UserOption = DEFAULT_USER,
) -> None:
    """Register a subscription"""
    ledger = get_ledger(db, user)
    subscription = run(
        ledger.subscriptions.create(
            CreateSubscription(
                name=name,
                amount=Decimal(amount),
                frequency=frequency,
                collection_day=collection_day,
                provider=provider,
                is_essential=essential,
            )
        )
    )

    typer.echo(f"✓ Created subscription: {subscription.id}")
    typer.echo(f"  Monthly cost: €{ledger.subscriptions.calculate_monthly_cost(subscription.amount, subscription.frequency):.2f}")
    typer.echo(f"  Next collection: {subscription.next_collection_date}")


@subscription_app.command("list")
def subscription_list(db: DbOption = None, user: UserOption = DEFAULT_USER) -> None:
    """List subscriptions with their total monthly cost"""
    ledger = get_ledger(db, user)
    subscriptions = run(ledger.subscriptions.get_all())

    if not subscriptions:
        typer.echo("No subscriptions")
        return

    total = run(ledger.subscriptions.get_total_monthly_cost())
    typer.echo(f"Subscriptions ({len(subscriptions)}, €{total:.2f}/month active):")
    for s in subscriptions:
        typer.echo(
            f"  {s.id}: {s.name} €{s.amount:.2f} {s.frequency.value} "
            f"next {s.next_collection_date or 'N/A'} [{s.status.value}]"
        )


# Financial health


@app.command()
def health(
    day: Annotated[Optional[str], typer.Option("--date", help="Score the month containing this date")] = None,
    save: Annotated[bool, typer.Option("--save", help="Store the score for the month")] = False,
    json_output: JsonOption = False,
    db: DbOption = None,
    user: UserOption = DEFAULT_USER,
) -> None:
    """Show the financial health score"""
    ledger = get_ledger(db, user)
    target = parse_day(day)
    score = run(ledger.health.calculate_score(target))
    if save:
        run(ledger.health.save_score(score, target))

    if json_output:
        echo_json(score.model_dump(mode="json"))
        return

    tone_emoji = {
        "success": "✓",
        "primary": "•",
        "warning": "⚠️",
        "danger": "🛑",
    }
    tone = ledger.health.get_score_tone(score.overall_score)

    typer.echo(f"\nFinancial Health: {tone_emoji[tone.value]} {score.overall_score}/100 ({score.score_label.value})")
    typer.echo(f"  Savings rate: {score.savings_rate.score}/40 ({_percent(score.savings_rate.raw_value)})")
    typer.echo(f"  Debt-to-income: {score.debt_to_income.score}/30 ({_percent(score.debt_to_income.raw_value)})")
    typer.echo(f"  Budget adherence: {score.budget_adherence.score}/30 ({_percent(score.budget_adherence.raw_value)})")
    if score.monthly_overview_id is None:
        typer.echo(f"\nNo month contains {target}; income and spending counted as zero.")


def _percent(value: Optional[float]) -> str:
    return "n/a" if value is None else f"{value:.1f}%"


# Servers


@app.command()
def serve(
    port: Annotated[int, typer.Option("--port", help="Port to listen on")] = 8080,
    db: DbOption = None,
    user: UserOption = DEFAULT_USER,
) -> None:
    """Serve the /health, /health/live and /health/ready endpoints"""
    from family_ledger.health_server import initialize_health_server, run_health_server

    ledger = get_ledger(db, user)
    initialize_health_server(db or DEFAULT_DB, ledger)
    run_health_server(port=port)


@app.command()
def metrics(
    port: Annotated[int, typer.Option("--port", help="Port to listen on")] = 9090,
) -> None:
    """Serve Prometheus metrics at /metrics until interrupted"""
    logger.warning("Starting Prometheus metrics server", port=port, endpoint=f"http://0.0.0.0:{port}/metrics")
    start_metrics_server(port=port)
    typer.echo(f"✓ Serving metrics on port {port} (Ctrl+C to stop)")

    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        typer.echo("Shutting down metrics server")


def main() -> None:
    """Main entry point"""
    app()


if __name__ == "__main__":
    main()
