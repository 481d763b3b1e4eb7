"""
Contract for the low-level network session the runtime drives.

The session itself (connection, logon, message dispatch, server
discovery) lives outside this package. It is built by a factory that
receives the shared :class:`~vapor_runtime.events.EventManager` and
reports what happens on the wire by emitting the ``session:*`` events
below.
"""

from __future__ import annotations

from typing import Callable, Protocol

from vapor_runtime.events import EventManager
from vapor_runtime.types import LoginOptions

# Emitted by the network session, consumed by vapor_runtime.handlers
LOG_ON_RESPONSE = "session:logOnResponse"
LOGGED_OFF = "session:loggedOff"
DISCONNECTED = "session:disconnected"
LOGIN_KEY = "session:loginKey"
SENTRY = "session:sentry"

# Result code the session reports for a successful logon
ERESULT_OK = 1


class NetworkSession(Protocol):
    """What the runtime needs from a network session."""

    @property
    def steam_id(self) -> str | None:
        """Identifier of the current session, ``None`` before logon."""
        ...

    @property
    def connected(self) -> bool:
        ...

    @property
    def logged_on(self) -> bool:
        ...

    def connect(self, login_options: LoginOptions) -> None:
        """Start connecting; completion is reported through events."""
        ...

    def disconnect(self) -> None:
        ...

    async def request_web_nonce(self) -> str:
        """Ask the server for a fresh web authentication nonce."""
        ...


SessionFactory = Callable[[EventManager], NetworkSession]
