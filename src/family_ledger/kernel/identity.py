"""
Identity provider abstraction

Every service call resolves the caller's opaque user identifier first.
Authentication itself happens elsewhere; the ledger only needs the id.
"""

from typing import Protocol


class IdentityProvider(Protocol):
    """Supplies the current caller's identifier, or None when nobody is signed in"""

    def current_user_id(self) -> str | None:
        ...


class StaticIdentityProvider:
    """Identity provider bound to a single user (CLI sessions, tests)"""

    def __init__(self, user_id: str | None) -> None:
        self.user_id = user_id

    def current_user_id(self) -> str | None:
        return self.user_id

    def switch_user(self, user_id: str | None) -> None:
        """Act as another user from now on (None signs out)"""
        self.user_id = user_id


class AnonymousIdentityProvider:
    """Identity provider that never resolves a caller"""

    def current_user_id(self) -> str | None:
        return None
