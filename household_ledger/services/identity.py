"""
Identity Provider

The ledger does not authenticate anyone itself. Whatever fronts it (a web
session, a CLI login) answers two questions: is there a caller, and who.
"""

from abc import ABC, abstractmethod
from typing import Optional


class IdentityProvider(ABC):

    @abstractmethod
    def current_user(self) -> Optional[str]:
        """User id of the authenticated caller, or None."""

    def is_authenticated(self) -> bool:
        return self.current_user() is not None


class StaticIdentityProvider(IdentityProvider):
    """
    Fixed identity, set by the embedding application.

    ``StaticIdentityProvider(None)`` models a signed-out session.
    """

    def __init__(self, user: Optional[str] = None):
        self._user = user.strip().lower() if user else None

    def current_user(self) -> Optional[str]:
        return self._user

    def sign_in(self, user: str) -> None:
        self._user = user.strip().lower()

    def sign_out(self) -> None:
        self._user = None
