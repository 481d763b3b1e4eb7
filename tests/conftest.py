"""Shared fixtures: a scripted network session and a throwaway RSA key pair."""

from __future__ import annotations

from typing import Any
from urllib.parse import unquote_to_bytes

import pytest
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from vapor_runtime import session as session_events
from vapor_runtime.crypto import symmetric_decrypt
from vapor_runtime.events import EventManager
from vapor_runtime.types import LoginOptions

AUTH_URL = "https://auth.test/ISteamUserAuth/AuthenticateUser/v1"
STEAM_ID = "76561197960287930"


class FakeSession:
    """Network session double that records calls and replays scripted nonces."""

    def __init__(self, events: EventManager) -> None:
        self.events = events
        self.steam_id: str | None = None
        self.connected = False
        self.logged_on = False
        self.connect_calls: list[LoginOptions] = []
        self.disconnect_calls = 0
        self.nonces: list[str] = []
        self.nonce_requests = 0

    def connect(self, login_options: LoginOptions) -> None:
        self.connect_calls.append(login_options)
        self.connected = True

    def disconnect(self) -> None:
        self.disconnect_calls += 1
        self.connected = False
        self.logged_on = False

    async def request_web_nonce(self) -> str:
        self.nonce_requests += 1
        return self.nonces.pop(0)

    def complete_logon(self, nonce: str, steam_id: str = STEAM_ID, eresult: int = 1) -> None:
        self.steam_id = steam_id
        self.logged_on = eresult == session_events.ERESULT_OK
        self.events.emit(
            session_events.LOG_ON_RESPONSE,
            {"eresult": eresult, "webapi_authenticate_user_nonce": nonce},
        )


class SessionFactory:
    """Builds FakeSessions and keeps every one it built."""

    def __init__(self) -> None:
        self.sessions: list[FakeSession] = []

    def __call__(self, events: EventManager) -> FakeSession:
        fake = FakeSession(events)
        self.sessions.append(fake)
        return fake


@pytest.fixture(scope="session")
def private_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def public_key_pem(private_key: rsa.RSAPrivateKey) -> bytes:
    return private_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )


@pytest.fixture
def session_factory() -> SessionFactory:
    return SessionFactory()


@pytest.fixture
def config() -> dict[str, Any]:
    return {"username": "vaporbot", "password": "hunter2"}


def parse_form(body: bytes) -> dict[str, bytes]:
    """Split a handshake body into raw field values."""
    fields: dict[str, bytes] = {}
    for pair in body.decode("ascii").split("&"):
        key, _, value = pair.partition("=")
        fields[key] = unquote_to_bytes(value)
    return fields


def decrypt_payload(private_key: rsa.RSAPrivateKey, body: bytes) -> tuple[bytes, bytes]:
    """Return ``(session_key, nonce)`` recovered from a handshake body."""
    fields = parse_form(body)
    session_key = private_key.decrypt(
        fields["sessionkey"],
        padding.OAEP(
            mgf=padding.MGF1(algorithm=hashes.SHA1()),
            algorithm=hashes.SHA1(),
            label=None,
        ),
    )
    nonce = symmetric_decrypt(fields["encrypted_loginkey"], session_key)
    return session_key, nonce
