"""Caller-owned session storage for the OAuth CSRF state.

The client never keeps the state in a global. Web frameworks adapt their own
session object to :class:`SessionStore`; scripts and tests use
:class:`InMemorySessionStore`.
"""

from typing import Protocol, runtime_checkable

# Key under which the authorization state is stored
SESSION_STATE_KEY = "TIKTOK_STATE"


@runtime_checkable
class SessionStore(Protocol):
    """Minimal key/value interface over a user session."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def pop(self, key: str) -> str | None: ...


class InMemorySessionStore:
    """Dict-backed session store."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def pop(self, key: str) -> str | None:
        return self._data.pop(key, None)

    def __contains__(self, key: object) -> bool:
        return key in self._data
