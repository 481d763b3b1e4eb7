"""
Core handlers wired on every ``init``.

They translate ``session:*`` events from the network session into
runtime state changes and the public events plugins listen to.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from vapor_runtime import session
from vapor_runtime.errors import MissingPublicKey
from vapor_runtime.web_session import FAILED_EVENT

if TYPE_CHECKING:
    from vapor_runtime.client import VaporRuntime


def register_core_handlers(runtime: "VaporRuntime") -> None:
    events = runtime.events

    async def on_log_on_response(result: dict[str, Any]) -> None:
        eresult = result.get("eresult")
        if eresult != session.ERESULT_OK:
            runtime._warn(f"Logon failed with result {eresult}.")
            events.emit("logOnResponse", result)
            return

        runtime._logged_on()
        runtime._info("Logged on to Steam network.")
        events.emit("logOnResponse", result)

        nonce = result.get("webapi_authenticate_user_nonce")
        if not nonce:
            return
        try:
            await runtime.web_log_on(nonce)
        except MissingPublicKey as exc:
            runtime._warn(f"Cannot log on to the web: {exc}.")
            events.emit(FAILED_EVENT, None)

    def on_logged_off(eresult: Any = None) -> None:
        runtime._logged_off()
        runtime._warn(f"Logged off from Steam network (result {eresult}).")
        events.emit("loggedOff", eresult)

    def on_disconnected(error: Any = None) -> None:
        runtime._logged_off()
        runtime._bump_epoch()
        runtime._warn("Disconnected from Steam network.")
        events.emit("disconnected", error)

    def on_login_key(key: str) -> None:
        if runtime.config.remember_password:
            events.emit("loginKey", key)

    def on_sentry(data: bytes) -> None:
        events.emit("writeFile", runtime.config.sentry_file_name, data)

    events.subscribe(session.LOG_ON_RESPONSE, on_log_on_response)
    events.subscribe(session.LOGGED_OFF, on_logged_off)
    events.subscribe(session.DISCONNECTED, on_disconnected)
    events.subscribe(session.LOGIN_KEY, on_login_key)
    events.subscribe(session.SENTRY, on_sentry)
