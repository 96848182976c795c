"""
Session Store Contract - WBS 2.3

The capability interface session middleware consumes. Any object with these
coroutine methods can back a middleware; CouchDBSessionStore is the CouchDB
implementation.

Pattern: Protocol (structural typing) instead of an injected base class
"""

from typing import Any, Optional, Protocol, runtime_checkable

SessionData = dict[str, Any]


@runtime_checkable
class SessionStoreProtocol(Protocol):
    """Async store contract used by session middleware."""

    async def get(self, sid: str) -> Optional[SessionData]:
        """Return the stored session, or None when there is none."""
        ...

    async def set(self, sid: str, session: SessionData) -> None:
        """Create or overwrite the session."""
        ...

    async def destroy(self, sid: str) -> None:
        """Delete the session."""
        ...

    async def clear(self) -> None:
        """Delete every session."""
        ...

    async def length(self) -> int:
        """Number of stored sessions."""
        ...

    async def all(self) -> list[SessionData]:
        """Every stored session."""
        ...

    async def touch(self, sid: str, session: SessionData) -> None:
        """Refresh the session's expiry."""
        ...
