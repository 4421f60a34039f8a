"""
Kernel - shared infrastructure for the ledger services

Errors, logging, metrics, time, identity, policy and the row store that
every domain module builds upon.
"""

from family_ledger.kernel.errors import (
    AccessDeniedError,
    DateOutOfRangeError,
    InsufficientFundsError,
    LedgerError,
    LedgerStoreError,
    NotFoundError,
    OverspendingError,
    UnauthorizedError,
    ValidationError,
)
from family_ledger.kernel.identity import IdentityProvider, StaticIdentityProvider
from family_ledger.kernel.ids import generate_id
from family_ledger.kernel.ledger_store import InMemoryLedgerStore, LedgerStore, SQLiteLedgerStore
from family_ledger.kernel.policy import LedgerPolicy
from family_ledger.kernel.time import RealTimeProvider, TestTimeProvider, TimeProvider

__all__ = [
    # IDs
    "generate_id",
    # Time
    "TimeProvider",
    "RealTimeProvider",
    "TestTimeProvider",
    # Identity
    "IdentityProvider",
    "StaticIdentityProvider",
    # Store
    "LedgerStore",
    "InMemoryLedgerStore",
    "SQLiteLedgerStore",
    # Policy
    "LedgerPolicy",
    # Errors
    "LedgerError",
    "UnauthorizedError",
    "AccessDeniedError",
    "NotFoundError",
    "ValidationError",
    "InsufficientFundsError",
    "DateOutOfRangeError",
    "OverspendingError",
    "LedgerStoreError",
]
