from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

DEFAULT_USER_ID = "default-user"


@dataclass(frozen=True)
class UserIdentity:
    user_id: str


@runtime_checkable
class IdentityProvider(Protocol):
    def current_identity(self) -> UserIdentity:
        """Return the identity every session and query operation runs under."""
        ...


class StaticIdentityProvider:
    """Resolves a fixed identity from configuration; stands in for an auth collaborator."""

    def __init__(self, user_id: str | None = None) -> None:
        self._identity = UserIdentity((user_id or "").strip() or DEFAULT_USER_ID)

    def current_identity(self) -> UserIdentity:
        return self._identity
