"""
Service base - identity, ownership, timestamps and side-effect handling

Every entity service follows the same sequence:

1. Resolve the caller (UnauthorizedError before anything else)
2. Load current state, owner-scoped (AccessDeniedError on mismatch)
3. Validate the whole mutation with the pure rules
4. Perform the primary write (store errors propagate)
5. Run secondary side effects best-effort (logged, never propagated,
   never rolled back)
"""

from collections.abc import Awaitable, Callable
from datetime import date, datetime
from functools import wraps
from typing import Any, TypeVar

from family_ledger.kernel.errors import AccessDeniedError, NotFoundError, UnauthorizedError
from family_ledger.kernel.identity import IdentityProvider
from family_ledger.kernel.ids import generate_id
from family_ledger.kernel.ledger_store import LedgerStore, Row
from family_ledger.kernel.logging import LogOperation, get_logger, is_production
from family_ledger.kernel.metrics import side_effect_failures_total, track_operation
from family_ledger.kernel.policy import LedgerPolicy
from family_ledger.kernel.records import LedgerRecord
from family_ledger.kernel.time import TimeProvider, default_time_provider, today

T = TypeVar("T")


def ledger_operation(operation: str) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """
    Log and measure an async service method

    Wraps the call in LogOperation (started/completed/rejected/failed) and
    the prometheus operation metrics, labelled with the service name.
    """

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @wraps(func)
        async def wrapper(self: "LedgerService", *args: Any, **kwargs: Any) -> T:
            context: dict[str, Any] = {}
            if args and isinstance(args[0], str):
                context["record_id"] = args[0]
            tracked = track_operation(self.service_name, operation)(func)
            with LogOperation(self.logger, f"{self.service_name}.{operation}", **context):
                return await tracked(self, *args, **kwargs)

        return wrapper

    return decorator


class LedgerService:
    """
    Base class for the entity services

    Subclasses set service_name and use the helpers below; the store,
    identity provider, clock and policy are injected by the FamilyLedger
    facade (or directly by tests).
    """

    service_name = "ledger"

    def __init__(
        self,
        store: LedgerStore,
        identity: IdentityProvider,
        time_provider: TimeProvider | None = None,
        policy: LedgerPolicy | None = None,
    ) -> None:
        """
        Initialize service with dependencies

        Args:
            store: Row store for every entity
            identity: Resolves the calling user
            time_provider: Clock for timestamps and "today" (injectable for testing)
            policy: Household conventions (tithe rates, budget names)
        """
        self.store = store
        self.identity = identity
        self.time_provider = time_provider or default_time_provider
        self.policy = policy or LedgerPolicy()
        self.logger = get_logger(f"family_ledger.services.{self.service_name}")

    # ------------------------------------------------------------------
    # Identity and ownership
    # ------------------------------------------------------------------

    def _user_id(self) -> str:
        """
        Resolve the caller

        Raises:
            UnauthorizedError: If no identity is available
        """
        user_id = self.identity.current_user_id()
        if not user_id:
            raise UnauthorizedError()
        return user_id

    async def _owned(self, table: str, row_id: str, resource: str, owner_id: str) -> Row:
        """
        Fetch a row that must belong to the caller

        Raises:
            NotFoundError: If the row does not exist
            AccessDeniedError: If it belongs to someone else
        """
        row = await self.store.get(table, row_id)
        if row is None:
            raise NotFoundError(resource, row_id)
        if row.get("owner_id") != owner_id:
            raise AccessDeniedError(resource, row_id)
        return row

    # ------------------------------------------------------------------
    # Time and record plumbing
    # ------------------------------------------------------------------

    def _now(self) -> datetime:
        return self.time_provider.now()

    def _today(self) -> date:
        return today(self.time_provider)

    def _record_fields(self, owner_id: str) -> dict[str, Any]:
        """id, owner and timestamps for a new record"""
        now = self._now()
        return {"id": generate_id(), "owner_id": owner_id, "created_at": now, "updated_at": now}

    async def _insert(self, table: str, record: LedgerRecord) -> Row:
        return await self.store.insert(table, record.to_row())

    async def _update(self, table: str, row_id: str, changes: Row, resource: str) -> Row:
        """
        Apply JSON-compatible changes and stamp updated_at

        Raises:
            NotFoundError: If the row vanished between read and write
        """
        row = await self.store.update(
            table, row_id, {**changes, "updated_at": self._now().isoformat()}
        )
        if row is None:
            raise NotFoundError(resource, row_id)
        return row

    async def _delete(self, table: str, row_id: str, resource: str) -> None:
        if not await self.store.delete(table, row_id):
            raise NotFoundError(resource, row_id)

    # ------------------------------------------------------------------
    # Secondary writes
    # ------------------------------------------------------------------

    async def _best_effort(self, side_effect: str, action: Awaitable[T]) -> T | None:
        """
        Run a secondary write whose failure must not undo the primary one

        Failures are logged and counted, then swallowed; the caller keeps
        reporting the primary operation as successful.

        Args:
            side_effect: Name used in logs and metrics (e.g. "goal_recalculation")
            action: Awaitable performing the side effect

        Returns:
            The side effect's result, or None if it failed
        """
        try:
            return await action
        except Exception as e:
            side_effect_failures_total.labels(side_effect=side_effect).inc()
            self.logger.error(
                "Side effect failed after primary write",
                side_effect=side_effect,
                error=str(e),
                exc_info=not is_production(),
            )
            return None
