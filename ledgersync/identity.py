"""
Identity Guard

DESIGN DECISION: There is no global "current user".
Each repository is handed an IdentityProvider when it is built and
asks it for the user on every call. If nobody is signed in the call
fails with Unauthenticated BEFORE anything reaches the store - there
is no guest or shared namespace to fall back on.
"""

from abc import ABC, abstractmethod
from typing import Optional

from ledgersync.errors import Unauthenticated


class IdentityProvider(ABC):
    """Source of the authenticated user id (the auth layer implements this)."""

    @abstractmethod
    def current_user(self) -> Optional[str]:
        """Return the signed-in user's id, or None."""
        pass


class StaticIdentity(IdentityProvider):
    """
    Identity bound to a single user for the lifetime of a session.

    `sign_out()` drops the identity so later calls are rejected.
    """

    def __init__(self, user_id: Optional[str]):
        self._user_id = user_id

    def current_user(self) -> Optional[str]:
        return self._user_id

    def sign_out(self) -> None:
        self._user_id = None


class AnonymousIdentity(IdentityProvider):
    """Nobody is signed in."""

    def current_user(self) -> Optional[str]:
        return None


def require_user(provider: IdentityProvider) -> str:
    """
    Resolve the user id or fail fast.

    Raises:
        Unauthenticated: If the provider has no (or a blank) identity
    """
    user_id = provider.current_user()
    if user_id is None or not str(user_id).strip():
        raise Unauthenticated("User not authenticated. Operation rejected.")
    return str(user_id).strip()
