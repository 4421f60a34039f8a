"""
Pytest configuration and shared fixtures

Fun fact: The name "conftest" comes from pytest's configuration testing
framework. Files named conftest.py are automatically discovered and their
fixtures are available to all tests in the same directory and subdirectories!
"""

import tempfile
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Iterator

import pytest

from family_ledger.budget.commands import CreateMonthlyOverview
from family_ledger.budget.models import MonthlyOverview
from family_ledger.kernel.identity import StaticIdentityProvider
from family_ledger.kernel.ledger_store import InMemoryLedgerStore, SQLiteLedgerStore
from family_ledger.kernel.policy import LedgerPolicy
from family_ledger.kernel.time import TestTimeProvider
from family_ledger.ledger import FamilyLedger
from tests.helpers import run


@pytest.fixture
def temp_db() -> Iterator[Path]:
    """Provide a temporary database file that's cleaned up after test"""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = Path(f.name)

    yield db_path

    # Cleanup
    if db_path.exists():
        db_path.unlink()


@pytest.fixture
def test_time() -> TestTimeProvider:
    """
    Provide a controllable time provider for deterministic tests

    Default time: 2025-01-15 12:00:00 UTC, the middle of the January 2025
    month most tests book into.
    """
    return TestTimeProvider(datetime(2025, 1, 15, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def policy() -> LedgerPolicy:
    """
    Household policy without fallback categories

    New months start empty so every test controls its own budgets. Tests
    of the default population use LedgerPolicy() directly.
    """
    return LedgerPolicy(default_budget_categories=[])


@pytest.fixture
def identity() -> StaticIdentityProvider:
    return StaticIdentityProvider("user-alex")


@pytest.fixture
def store() -> InMemoryLedgerStore:
    """Provide a fresh in-memory store for each test"""
    return InMemoryLedgerStore()


@pytest.fixture
def sqlite_store(temp_db: Path) -> SQLiteLedgerStore:
    """Provide a fresh SQLite store for each test"""
    return SQLiteLedgerStore(temp_db)


@pytest.fixture
def ledger(
    store: InMemoryLedgerStore,
    identity: StaticIdentityProvider,
    policy: LedgerPolicy,
    test_time: TestTimeProvider,
) -> FamilyLedger:
    """Facade over the in-memory store, acting as user-alex"""
    return FamilyLedger(store, identity, policy=policy, time_provider=test_time)


@pytest.fixture
def january(ledger: FamilyLedger) -> MonthlyOverview:
    """January 2025, created empty"""
    return run(
        ledger.months.create(
            CreateMonthlyOverview(
                name="January 2025",
                start_date=date(2025, 1, 1),
                end_date=date(2025, 1, 31),
            )
        )
    )


@pytest.fixture
def february(ledger: FamilyLedger) -> MonthlyOverview:
    """February 2025, created empty"""
    return run(
        ledger.months.create(
            CreateMonthlyOverview(
                name="February 2025",
                start_date=date(2025, 2, 1),
                end_date=date(2025, 2, 28),
            )
        )
    )
