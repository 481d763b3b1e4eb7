"""
Web logon handshake.

Turns the authentication nonce issued by the network session into
cookies for the web endpoints. Each attempt generates fresh session key
material, encrypts the nonce with it and posts both to the
authentication endpoint. Failures are retried with one of two
strategies:

* transport failure (no HTTP response): retry with the same nonce,
* rejection (non-200 or unusable body): ask the session for a new nonce
  and retry with it, which is only possible once the session has logged
  on. Before that the attempt is abandoned and ``web_logon:failed`` is
  emitted.

Neither loop is capped here. Every decision is made by :func:`next_step`
so the policy can be exercised without any I/O.
"""

from __future__ import annotations

import asyncio
import enum
import logging
import secrets
from dataclasses import dataclass
from typing import Awaitable, Callable

import httpx

from vapor_runtime.crypto import (
    SessionKeyMaterial,
    generate_session_key,
    hex_escape,
    load_public_key,
    symmetric_encrypt,
)
from vapor_runtime.errors import (
    HandshakeError,
    HandshakeRejected,
    HandshakeTransportFailure,
)
from vapor_runtime.events import EventManager
from vapor_runtime.types import CookieSet

logger = logging.getLogger(__name__)

DEFAULT_AUTH_URL = "https://api.steampowered.com/ISteamUserAuth/AuthenticateUser/v1"

COOKIES_EVENT = "cookies"
FAILED_EVENT = "web_logon:failed"


class RetryReason(enum.Enum):
    """Why an attempt ended."""

    NONE = "none"
    TRANSPORT = "transport"
    REJECTED = "rejected"


class Step(enum.Enum):
    """What the bridge does after an attempt."""

    DONE = "done"
    RETRY_SAME_NONCE = "retry_same_nonce"
    REFRESH_NONCE = "refresh_nonce"
    ABANDON = "abandon"


@dataclass(frozen=True)
class AttemptOutcome:
    reason: RetryReason
    cookies: CookieSet | None = None
    error: HandshakeError | None = None


def next_step(outcome: AttemptOutcome, has_logged_on: bool) -> Step:
    if outcome.reason is RetryReason.NONE:
        return Step.DONE
    if outcome.reason is RetryReason.TRANSPORT:
        return Step.RETRY_SAME_NONCE
    if has_logged_on:
        return Step.REFRESH_NONCE
    return Step.ABANDON


def build_payload(steam_id: str | None, nonce: str | bytes, material: SessionKeyMaterial) -> str:
    """Form-encode the logon request body.

    The hex fields are already percent-escaped byte by byte, so the body
    is assembled by hand rather than through ``urlencode``.
    """
    if isinstance(nonce, str):
        nonce = nonce.encode("utf-8")
    encrypted_nonce = symmetric_encrypt(nonce, material.plain)
    return (
        f"steamid={steam_id or ''}"
        f"&sessionkey={hex_escape(material.encrypted)}"
        f"&encrypted_loginkey={hex_escape(encrypted_nonce)}"
    )


class WebSessionBridge:
    """Runs web logon handshakes for one runtime.

    Args:
        events: Shared event bus; receives ``message:*``, ``cookies`` and
            ``web_logon:failed``.
        http: Client used for the authentication request.
        public_key: RSA key the session key is encrypted with.
        steam_id: Returns the session identifier at request time.
        has_logged_on: Whether the network session has completed a logon.
        request_nonce: Asks the network session for a fresh nonce.
        epoch: Current runtime generation; a change means the runtime was
            reset and any result in flight must be dropped.
        on_cookies: Stores a new cookie set on the owner.
    """

    def __init__(
        self,
        events: EventManager,
        http: httpx.AsyncClient,
        public_key: object,
        *,
        steam_id: Callable[[], str | None],
        has_logged_on: Callable[[], bool],
        request_nonce: Callable[[], Awaitable[str]],
        epoch: Callable[[], int],
        on_cookies: Callable[[CookieSet], None],
        auth_url: str = DEFAULT_AUTH_URL,
        retry_delay: float = 1.0,
    ) -> None:
        self._events = events
        self._http = http
        self._public_key = public_key
        self._steam_id = steam_id
        self._has_logged_on = has_logged_on
        self._request_nonce = request_nonce
        self._epoch = epoch
        self._on_cookies = on_cookies
        self._auth_url = auth_url
        self._retry_delay = retry_delay

    async def log_on(self, nonce: str) -> CookieSet | None:
        """Run handshakes until cookies arrive, the attempt is abandoned,
        or the runtime is reset underneath it.
        """
        public_key = load_public_key(self._public_key)
        epoch = self._epoch()

        while True:
            outcome = await self.attempt(nonce, public_key)
            if self._epoch() != epoch:
                logger.debug("Dropping web logon result from a previous runtime generation")
                return None

            step = next_step(outcome, self._has_logged_on())
            if step is Step.DONE and outcome.cookies is not None:
                self._apply(outcome.cookies)
                return outcome.cookies

            if step is Step.RETRY_SAME_NONCE:
                self._warn('Request in "webLogOn" failed. Retrying...')
                logger.debug("Web logon transport error: %s", outcome.error)
            else:
                status = getattr(outcome.error, "status_code", 0)
                self._warn(f'Received status {status} in "webLogOn". Retrying...')
                if step is Step.ABANDON:
                    logger.info("Not logged on yet, abandoning web logon")
                    self._events.emit(FAILED_EVENT, status)
                    return None
                try:
                    nonce = await self._request_nonce()
                except Exception as exc:
                    logger.exception("Failed to request a new web logon nonce")
                    self._warn(f"Could not refresh web logon nonce: {exc}")
                    self._events.emit(FAILED_EVENT, status)
                    return None

            if self._retry_delay:
                await asyncio.sleep(self._retry_delay)
            if self._epoch() != epoch:
                logger.debug("Runtime was reset during web logon retry")
                return None

    async def attempt(self, nonce: str, public_key: object | None = None) -> AttemptOutcome:
        """Perform a single handshake with freshly generated key material."""
        if public_key is None:
            public_key = load_public_key(self._public_key)
        material = generate_session_key(public_key)  # type: ignore[arg-type]
        data = build_payload(self._steam_id(), nonce, material).encode("ascii")

        try:
            response = await self._http.post(
                self._auth_url,
                content=data,
                headers={
                    "Content-Type": "application/x-www-form-urlencoded",
                    "Content-Length": str(len(data)),
                },
            )
        except httpx.TransportError as exc:
            return AttemptOutcome(RetryReason.TRANSPORT, error=HandshakeTransportFailure(exc))

        if response.status_code != 200:
            return AttemptOutcome(
                RetryReason.REJECTED, error=HandshakeRejected(response.status_code)
            )

        try:
            auth = response.json()["authenticateuser"]
            token = auth["token"]
            token_secure = auth["tokensecure"]
        except (ValueError, KeyError, TypeError):
            token = token_secure = None
        if not (isinstance(token, str) and token and isinstance(token_secure, str) and token_secure):
            return AttemptOutcome(
                RetryReason.REJECTED,
                error=HandshakeRejected(response.status_code, "malformed response body"),
            )

        cookies = CookieSet(
            session_id=secrets.token_hex(12),
            steam_login=token,
            steam_login_secure=token_secure,
        )
        return AttemptOutcome(RetryReason.NONE, cookies=cookies)

    def _apply(self, cookies: CookieSet) -> None:
        self._on_cookies(cookies)
        logger.info("Received new web cookies")
        self._events.emit("message:info", "Received new web cookies.")
        self._events.emit(COOKIES_EVENT, cookies, cookies.session_id)

    def _warn(self, message: str) -> None:
        logger.warning(message)
        self._events.emit("message:warn", message)
