"""
Tests for the Ledger Store

Both backends share the query and referential logic, so most tests run
against the in-memory and the SQLite store alike.
"""

from pathlib import Path

import pytest

from family_ledger.kernel.errors import LedgerStoreError
from family_ledger.kernel.ledger_store import InMemoryLedgerStore, SQLiteLedgerStore, _RowStore
from tests.helpers import run

OWNER = "user-alex"


@pytest.fixture(params=["memory", "sqlite"])
def any_store(request: pytest.FixtureRequest, temp_db: Path) -> InMemoryLedgerStore | SQLiteLedgerStore:
    if request.param == "memory":
        return InMemoryLedgerStore()
    return SQLiteLedgerStore(temp_db)


def row(row_id: str, owner_id: str = OWNER, **fields: object) -> dict:
    return {"id": row_id, "owner_id": owner_id, **fields}


def test_insert_and_get(any_store) -> None:
    run(any_store.insert("budgets", row("b1", name="Food", budget_amount="100")))

    stored = run(any_store.get("budgets", "b1"))

    assert stored == {"id": "b1", "owner_id": OWNER, "name": "Food", "budget_amount": "100"}


def test_get_missing_row_returns_none(any_store) -> None:
    assert run(any_store.get("budgets", "missing")) is None


def test_select_is_owner_scoped(any_store) -> None:
    run(any_store.insert("budgets", row("b1", name="Food")))
    run(any_store.insert("budgets", row("b2", owner_id="user-sam", name="Food")))

    rows = run(any_store.select("budgets", owner_id=OWNER))

    assert [r["id"] for r in rows] == ["b1"]


def test_select_with_where_and_between(any_store) -> None:
    run(any_store.insert("expenses", row("e1", budget_id="b1", date="2025-01-05")))
    run(any_store.insert("expenses", row("e2", budget_id="b1", date="2025-01-20")))
    run(any_store.insert("expenses", row("e3", budget_id="b2", date="2025-01-10")))
    run(any_store.insert("expenses", row("e4", budget_id="b1", date="2025-02-01")))

    rows = run(
        any_store.select(
            "expenses",
            owner_id=OWNER,
            where={"budget_id": "b1"},
            between={"date": ("2025-01-01", "2025-01-31")},
        )
    )

    assert sorted(r["id"] for r in rows) == ["e1", "e2"]


def test_select_order_by_and_limit(any_store) -> None:
    run(any_store.insert("monthly_overviews", row("m1", start_date="2025-02-01")))
    run(any_store.insert("monthly_overviews", row("m2", start_date="2025-03-01")))
    run(any_store.insert("monthly_overviews", row("m3", start_date="2025-01-01")))

    newest_first = run(
        any_store.select("monthly_overviews", owner_id=OWNER, order_by="start_date", descending=True)
    )
    oldest = run(
        any_store.select("monthly_overviews", owner_id=OWNER, order_by="start_date", limit=1)
    )

    assert [r["id"] for r in newest_first] == ["m2", "m1", "m3"]
    assert [r["id"] for r in oldest] == ["m3"]


def test_update_merges_changes_and_keeps_identity(any_store) -> None:
    run(any_store.insert("budgets", row("b1", name="Food", budget_amount="100")))

    updated = run(any_store.update("budgets", "b1", {"budget_amount": "150", "owner_id": "user-sam"}))

    assert updated["budget_amount"] == "150"
    assert updated["name"] == "Food"
    assert updated["owner_id"] == OWNER
    assert run(any_store.get("budgets", "b1"))["budget_amount"] == "150"


def test_update_missing_row_returns_none(any_store) -> None:
    assert run(any_store.update("budgets", "missing", {"name": "x"})) is None


def test_delete_month_cascades_to_budgets_and_expenses(any_store) -> None:
    run(any_store.insert("monthly_overviews", row("m1")))
    run(any_store.insert("budgets", row("b1", monthly_overview_id="m1")))
    run(any_store.insert("expenses", row("e1", budget_id="b1")))
    run(any_store.insert("income_sources", row("i1", monthly_overview_id="m1")))
    run(any_store.insert("financial_health_scores", row("h1", monthly_overview_id="m1")))

    assert run(any_store.delete("monthly_overviews", "m1")) is True

    assert run(any_store.get("budgets", "b1")) is None
    assert run(any_store.get("expenses", "e1")) is None
    assert run(any_store.get("income_sources", "i1")) is None
    assert run(any_store.get("financial_health_scores", "h1"))["monthly_overview_id"] is None


def test_delete_goal_unlinks_expenses(any_store) -> None:
    run(any_store.insert("financial_goals", row("g1")))
    run(any_store.insert("goal_contributions", row("c1", financial_goal_id="g1")))
    run(any_store.insert("expenses", row("e1", budget_id="b1", financial_goal_id="g1")))

    run(any_store.delete("financial_goals", "g1"))

    assert run(any_store.get("goal_contributions", "c1")) is None
    assert run(any_store.get("expenses", "e1"))["financial_goal_id"] is None


def test_delete_missing_row_returns_false(any_store) -> None:
    assert run(any_store.delete("budgets", "missing")) is False


def test_unknown_table_is_rejected(any_store) -> None:
    with pytest.raises(LedgerStoreError, match="unknown table"):
        run(any_store.insert("ledger_secrets", row("x1")))


def test_duplicate_id_is_rejected(any_store) -> None:
    run(any_store.insert("budgets", row("b1")))

    with pytest.raises(LedgerStoreError, match="duplicate id b1"):
        run(any_store.insert("budgets", row("b1")))


def test_row_without_owner_is_rejected(any_store) -> None:
    with pytest.raises(LedgerStoreError, match="must carry id and owner_id"):
        run(any_store.insert("budgets", {"id": "b1"}))


def test_returned_rows_are_copies(any_store) -> None:
    run(any_store.insert("budgets", row("b1", name="Food")))

    fetched = run(any_store.get("budgets", "b1"))
    fetched["name"] = "Changed"

    assert run(any_store.get("budgets", "b1"))["name"] == "Food"


def test_unserializable_value_is_wrapped(any_store) -> None:
    with pytest.raises(LedgerStoreError) as exc_info:
        run(any_store.insert("budgets", row("b1", amount=object())))

    assert exc_info.value.table == "budgets"
    assert exc_info.value.operation == "insert"


def test_sqlite_count_and_persistence(temp_db: Path) -> None:
    store = SQLiteLedgerStore(temp_db)
    run(store.insert("budgets", row("b1")))
    run(store.insert("expenses", row("e1", budget_id="b1")))

    reopened = SQLiteLedgerStore(temp_db)

    assert reopened.count() == 2
    assert reopened.count("budgets") == 1
    assert run(reopened.get("expenses", "e1"))["budget_id"] == "b1"


def test_backend_missing_a_primitive_cannot_be_built() -> None:
    class ReadOnlyStore(_RowStore):
        def _read(self, table: str, row_id: str) -> dict | None:
            return None

        def _scan(self, table: str, owner_id: str | None = None) -> list[dict]:
            return []

    with pytest.raises(TypeError, match="_erase"):
        ReadOnlyStore()
