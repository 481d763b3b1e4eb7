"""Exception hierarchy for the Vapor runtime."""

from __future__ import annotations


class VaporError(Exception):
    """Base class for runtime errors."""


class RuntimeNotInitialized(VaporError):
    """Raised when an operation needs ``init`` to have been called first."""


class InvalidPlugin(VaporError, ValueError):
    """Plugin descriptor is missing a usable name or entry point."""


class DuplicatePlugin(VaporError):
    """A plugin with the same name is already loaded."""

    def __init__(self, name: str) -> None:
        super().__init__(f'Plugin "{name}" is already loaded. Please check your settings.')
        self.name = name


class MissingPublicKey(VaporError):
    """No system public key is configured for session key encryption."""


class HandshakeError(VaporError):
    """A web logon attempt did not produce cookies.

    Never raised out of the bridge; used to tag why an attempt is retried.
    """


class HandshakeTransportFailure(HandshakeError):
    """The request never got an HTTP response."""

    def __init__(self, cause: Exception) -> None:
        super().__init__(f"web logon request failed: {cause!r}")
        self.cause = cause


class HandshakeRejected(HandshakeError):
    """The endpoint answered with something other than usable cookies."""

    def __init__(self, status_code: int, reason: str = "") -> None:
        msg = f"web logon rejected with status {status_code}"
        if reason:
            msg = f"{msg}: {reason}"
        super().__init__(msg)
        self.status_code = status_code
