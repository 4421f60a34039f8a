"""
Ledger Store - durable row storage for every ledger entity

The services treat the store as a thin, owner-scoped row database: insert,
fetch by id, filtered selects, partial updates and deletes. Referential
behavior (cascade deletes, nulling optional links) lives here so every
store implementation agrees on what deleting a month or a goal removes.

Single-row writes are atomic. Nothing spans tables: the services are
written to tolerate a secondary write failing after a primary one.

Fun fact: SQLite is the most widely deployed database engine in the world;
there are likely over a trillion SQLite databases in active use.
"""

import copy
import json
import sqlite3
from abc import ABC, abstractmethod
from collections.abc import Callable
from contextlib import contextmanager
from datetime import date
from enum import Enum
from pathlib import Path
from typing import Any, Iterator, Protocol, TypeVar

from family_ledger.kernel.errors import LedgerStoreError
from family_ledger.kernel.logging import get_logger
from family_ledger.kernel.metrics import store_writes_total
from family_ledger.kernel.retry import retry_on_sqlite_lock

logger = get_logger(__name__)

T = TypeVar("T")

Row = dict[str, Any]

TABLES = frozenset(
    {
        "monthly_overviews",
        "master_budgets",
        "budgets",
        "expenses",
        "income_sources",
        "financial_goals",
        "financial_sub_goals",
        "goal_contributions",
        "goal_drawdowns",
        "transfers",
        "loans",
        "loan_payments",
        "subscriptions",
        "savings_buckets",
        "savings_transactions",
        "financial_health_scores",
    }
)


class OnDelete(str, Enum):
    """What happens to a child row when its parent is deleted"""

    CASCADE = "cascade"
    SET_NULL = "set_null"


# parent table -> [(child table, foreign key column, action)]
REFERENCES: dict[str, list[tuple[str, str, OnDelete]]] = {
    "monthly_overviews": [
        ("budgets", "monthly_overview_id", OnDelete.CASCADE),
        ("income_sources", "monthly_overview_id", OnDelete.CASCADE),
        ("goal_contributions", "monthly_overview_id", OnDelete.CASCADE),
        ("goal_drawdowns", "monthly_overview_id", OnDelete.CASCADE),
        ("transfers", "monthly_overview_id", OnDelete.CASCADE),
        ("financial_health_scores", "monthly_overview_id", OnDelete.SET_NULL),
    ],
    "budgets": [
        ("expenses", "budget_id", OnDelete.CASCADE),
        ("transfers", "from_budget_id", OnDelete.CASCADE),
        ("transfers", "to_budget_id", OnDelete.CASCADE),
    ],
    "master_budgets": [
        ("budgets", "master_budget_id", OnDelete.SET_NULL),
    ],
    "financial_goals": [
        ("financial_sub_goals", "financial_goal_id", OnDelete.CASCADE),
        ("goal_contributions", "financial_goal_id", OnDelete.CASCADE),
        ("goal_drawdowns", "financial_goal_id", OnDelete.CASCADE),
        ("transfers", "from_goal_id", OnDelete.CASCADE),
        ("expenses", "financial_goal_id", OnDelete.SET_NULL),
        ("savings_buckets", "linked_goal_id", OnDelete.SET_NULL),
    ],
    "loans": [
        ("loan_payments", "loan_id", OnDelete.CASCADE),
    ],
    "savings_buckets": [
        ("savings_transactions", "bucket_id", OnDelete.CASCADE),
    ],
}


class LedgerStore(Protocol):
    """Async row store consumed by the entity services"""

    async def insert(self, table: str, row: Row) -> Row:
        """Insert a row (must carry 'id' and 'owner_id') and return it"""
        ...

    async def get(self, table: str, row_id: str) -> Row | None:
        """Fetch a row by id regardless of owner (ownership is checked by the caller)"""
        ...

    async def select(
        self,
        table: str,
        *,
        owner_id: str,
        where: dict[str, Any] | None = None,
        between: dict[str, tuple[Any, Any]] | None = None,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[Row]:
        """Owner-scoped select with equality filters and inclusive ranges"""
        ...

    async def update(self, table: str, row_id: str, changes: Row) -> Row | None:
        """Apply a partial update and return the new row (None if missing)"""
        ...

    async def delete(self, table: str, row_id: str) -> bool:
        """Delete a row and apply referential actions; False if missing"""
        ...


def _normalize(value: Any) -> Any:
    """Convert filter values to their stored JSON form"""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, date):
        return value.isoformat()
    return value


def _matches(
    row: Row,
    where: dict[str, Any] | None,
    between: dict[str, tuple[Any, Any]] | None,
) -> bool:
    for column, expected in (where or {}).items():
        if row.get(column) != _normalize(expected):
            return False
    for column, (low, high) in (between or {}).items():
        value = row.get(column)
        if value is None:
            return False
        if low is not None and value < _normalize(low):
            return False
        if high is not None and value > _normalize(high):
            return False
    return True


class _RowStore(ABC):
    """
    Query, filtering and referential logic shared by the store backends

    Subclasses supply four synchronous primitives: _read, _scan, _write and
    _erase. Everything else (owner scoping, filters, ordering, cascades,
    error wrapping) is implemented once here.
    """

    @abstractmethod
    def _read(self, table: str, row_id: str) -> Row | None:
        raise NotImplementedError

    @abstractmethod
    def _scan(self, table: str, owner_id: str | None = None) -> list[Row]:
        raise NotImplementedError

    @abstractmethod
    def _write(self, table: str, row: Row) -> None:
        raise NotImplementedError

    @abstractmethod
    def _erase(self, table: str, row_id: str) -> None:
        raise NotImplementedError

    def _guard(self, operation: str, table: str, func: Callable[..., T], *args: Any) -> T:
        """Run a primitive, wrapping backend failures with context"""
        if table not in TABLES:
            raise LedgerStoreError(operation, table, "unknown table")
        try:
            return func(*args)
        except (sqlite3.Error, TypeError, ValueError) as e:
            logger.error("Ledger store operation failed", operation=operation, table=table, error=str(e))
            raise LedgerStoreError(operation, table, str(e)) from e

    async def insert(self, table: str, row: Row) -> Row:
        if "id" not in row or "owner_id" not in row:
            raise LedgerStoreError("insert", table, "row must carry id and owner_id")
        if self._guard("insert", table, self._read, table, row["id"]) is not None:
            raise LedgerStoreError("insert", table, f"duplicate id {row['id']}")
        self._guard("insert", table, self._write, table, row)
        store_writes_total.labels(table=table, operation="insert").inc()
        return copy.deepcopy(row)

    async def get(self, table: str, row_id: str) -> Row | None:
        return self._guard("get", table, self._read, table, row_id)

    async def select(
        self,
        table: str,
        *,
        owner_id: str,
        where: dict[str, Any] | None = None,
        between: dict[str, tuple[Any, Any]] | None = None,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[Row]:
        rows = [
            row
            for row in self._guard("select", table, self._scan, table, owner_id)
            if row.get("owner_id") == owner_id and _matches(row, where, between)
        ]
        if order_by is not None:
            # Rows missing the column sort last in ascending order
            rows.sort(
                key=lambda r: (
                    r.get(order_by) is None,
                    r.get(order_by) if r.get(order_by) is not None else 0,
                ),
                reverse=descending,
            )
        if limit is not None:
            rows = rows[:limit]
        return rows

    async def update(self, table: str, row_id: str, changes: Row) -> Row | None:
        current = self._guard("update", table, self._read, table, row_id)
        if current is None:
            return None
        updated = {**current, **changes, "id": current["id"], "owner_id": current["owner_id"]}
        self._guard("update", table, self._write, table, updated)
        store_writes_total.labels(table=table, operation="update").inc()
        return copy.deepcopy(updated)

    async def delete(self, table: str, row_id: str) -> bool:
        if self._guard("delete", table, self._read, table, row_id) is None:
            return False
        self._delete_with_references(table, row_id)
        return True

    def _delete_with_references(self, table: str, row_id: str) -> None:
        for child_table, column, action in REFERENCES.get(table, []):
            children = [
                row
                for row in self._guard("delete", child_table, self._scan, child_table, None)
                if row.get(column) == row_id
            ]
            for child in children:
                if action is OnDelete.CASCADE:
                    self._delete_with_references(child_table, child["id"])
                else:
                    self._guard("delete", child_table, self._write, child_table, {**child, column: None})
                    store_writes_total.labels(table=child_table, operation="update").inc()
        self._guard("delete", table, self._erase, table, row_id)
        store_writes_total.labels(table=table, operation="delete").inc()


class InMemoryLedgerStore(_RowStore):
    """
    Dictionary-backed store for tests and embedding

    Rows are deep-copied on the way in and out so callers can never mutate
    stored state by accident.
    """

    def __init__(self) -> None:
        self._tables: dict[str, dict[str, Row]] = {name: {} for name in TABLES}

    def _read(self, table: str, row_id: str) -> Row | None:
        row = self._tables[table].get(row_id)
        return copy.deepcopy(row) if row is not None else None

    def _scan(self, table: str, owner_id: str | None = None) -> list[Row]:
        return [
            copy.deepcopy(row)
            for row in self._tables[table].values()
            if owner_id is None or row.get("owner_id") == owner_id
        ]

    def _write(self, table: str, row: Row) -> None:
        # Round-trip through JSON to reject values a durable backend could not store
        self._tables[table][row["id"]] = json.loads(json.dumps(row))

    def _erase(self, table: str, row_id: str) -> None:
        self._tables[table].pop(row_id, None)

    def count(self, table: str) -> int:
        """Number of rows in a table across all owners"""
        return len(self._tables[table])


class SQLiteLedgerStore(_RowStore):
    """
    SQLite-based ledger store

    Schema:
    - ledger_rows: one JSON document per row, keyed by (table_name, id) and
      indexed by (table_name, owner_id) for owner-scoped selects
    """

    def __init__(self, db_path: str | Path) -> None:
        """
        Initialize ledger store with SQLite database

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = Path(db_path)
        self._initialize_schema()

    def _initialize_schema(self) -> None:
        """Create tables if they don't exist"""
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS ledger_rows (
                    table_name TEXT NOT NULL,
                    id TEXT NOT NULL,
                    owner_id TEXT NOT NULL,
                    data_json TEXT NOT NULL,
                    PRIMARY KEY (table_name, id)
                )
            """)
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_ledger_rows_owner
                ON ledger_rows(table_name, owner_id)
            """)
            conn.commit()

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        """Context manager for database connections"""
        conn = sqlite3.connect(str(self.db_path), timeout=5.0)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()

    @retry_on_sqlite_lock()
    def _read(self, table: str, row_id: str) -> Row | None:
        with self._connect() as conn:
            found = conn.execute(
                "SELECT data_json FROM ledger_rows WHERE table_name = ? AND id = ?",
                (table, row_id),
            ).fetchone()
        return json.loads(found["data_json"]) if found else None

    @retry_on_sqlite_lock()
    def _scan(self, table: str, owner_id: str | None = None) -> list[Row]:
        with self._connect() as conn:
            if owner_id is None:
                cursor = conn.execute(
                    "SELECT data_json FROM ledger_rows WHERE table_name = ? ORDER BY id",
                    (table,),
                )
            else:
                cursor = conn.execute(
                    "SELECT data_json FROM ledger_rows WHERE table_name = ? AND owner_id = ? ORDER BY id",
                    (table, owner_id),
                )
            return [json.loads(r["data_json"]) for r in cursor.fetchall()]

    @retry_on_sqlite_lock()
    def _write(self, table: str, row: Row) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO ledger_rows (table_name, id, owner_id, data_json)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(table_name, id) DO UPDATE SET
                    owner_id = excluded.owner_id,
                    data_json = excluded.data_json
            """,
                (table, row["id"], row["owner_id"], json.dumps(row)),
            )
            conn.commit()

    @retry_on_sqlite_lock()
    def _erase(self, table: str, row_id: str) -> None:
        with self._connect() as conn:
            conn.execute(
                "DELETE FROM ledger_rows WHERE table_name = ? AND id = ?",
                (table, row_id),
            )
            conn.commit()

    def count(self, table: str | None = None) -> int:
        """Number of stored rows, optionally for one table"""
        with self._connect() as conn:
            if table is None:
                return conn.execute("SELECT COUNT(*) FROM ledger_rows").fetchone()[0]
            return conn.execute(
                "SELECT COUNT(*) FROM ledger_rows WHERE table_name = ?", (table,)
            ).fetchone()[0]
