"""
Vapor runtime: owns the bot's configuration, network session, event bus,
plugins and web session.

Usage::

    from vapor_runtime import VaporRuntime

    bot = VaporRuntime(make_session, public_key=STEAM_PUBLIC_KEY_PEM)
    bot.init({"username": "myUsername", "password": "myPassword"})
    bot.use(my_plugin, {"greeting": "hi"})
    bot.on("cookies", lambda cookies, session_id: ...)
    bot.connect()
"""

from __future__ import annotations

import hashlib
import logging
from typing import Any, Mapping

import httpx

from vapor_runtime.errors import RuntimeNotInitialized
from vapor_runtime.events import EventHandler, EventManager
from vapor_runtime.handlers import register_core_handlers
from vapor_runtime.plugins import PluginAPI, PluginRegistry
from vapor_runtime.session import NetworkSession, SessionFactory
from vapor_runtime.types import AuthCodes, BotConfig, CookieSet, LoginOptions
from vapor_runtime.web_session import DEFAULT_AUTH_URL, WebSessionBridge

logger = logging.getLogger(__name__)


class VaporRuntime:
    """
    Runtime shell for one bot account.

    ``init`` may be called any number of times; each call throws away all
    previous state (plugins, subscriptions, session, cookies) first.
    """

    def __init__(
        self,
        session_factory: SessionFactory,
        *,
        public_key: Any = None,
        auth_url: str = DEFAULT_AUTH_URL,
        http_client: httpx.AsyncClient | None = None,
        retry_delay: float = 1.0,
    ) -> None:
        self._session_factory = session_factory
        self._public_key = public_key
        self._auth_url = auth_url
        self._http = http_client
        self._owns_http = http_client is None
        self._retry_delay = retry_delay

        self._events = EventManager()
        self._registry = PluginRegistry(self._events, self._make_api)
        self._bridge: WebSessionBridge | None = None

        # State
        self._config: BotConfig | None = None
        self._session: NetworkSession | None = None
        self._login_options: LoginOptions | None = None
        self._cookies: CookieSet | None = None
        self._has_logged_on = False
        self._epoch = 0

    @property
    def config(self) -> BotConfig:
        if self._config is None:
            raise RuntimeNotInitialized("call init() before using the runtime")
        return self._config

    @property
    def session(self) -> NetworkSession | None:
        return self._session

    @property
    def events(self) -> EventManager:
        return self._events

    @property
    def login_options(self) -> LoginOptions | None:
        return self._login_options

    @property
    def cookies(self) -> CookieSet | None:
        """Cookies from the last successful web logon."""
        return self._cookies

    @property
    def has_logged_on(self) -> bool:
        return self._has_logged_on

    @property
    def loaded_plugins(self) -> tuple[str, ...]:
        return self._registry.loaded

    @property
    def epoch(self) -> int:
        """Generation counter, bumped on every init and disconnect."""
        return self._epoch

    # ---- Lifecycle ----

    def init(self, config: BotConfig | Mapping[str, Any]) -> "VaporRuntime":
        """Reset the runtime and set it up for ``config``.

        Raises:
            pydantic.ValidationError: ``config`` is not a valid bot config.
                The runtime is left exactly as it was.
        """
        if not isinstance(config, BotConfig):
            config = BotConfig.model_validate(config)

        self._clean_up()
        self._config = config
        self._login_options = LoginOptions.from_config(config)

        self._events = EventManager()
        self._registry = PluginRegistry(self._events, self._make_api)
        self._session = self._session_factory(self._events)
        self._bridge = WebSessionBridge(
            self._events,
            self._http_client(),
            self._public_key,
            steam_id=self._current_steam_id,
            has_logged_on=lambda: self._has_logged_on,
            request_nonce=self._request_nonce,
            epoch=lambda: self._epoch,
            on_cookies=self._set_cookies,
            auth_url=self._auth_url,
            retry_delay=self._retry_delay,
        )

        register_core_handlers(self)
        logger.debug("Runtime initialised for %s", config.username)
        return self

    def use(self, plugin: Any, data: Any = None) -> "VaporRuntime":
        """Load a plugin.

        Raises:
            InvalidPlugin: the descriptor is malformed.
            DuplicatePlugin: a plugin with the same name is loaded.
        """
        self._require_init()
        self._registry.register(plugin, data)
        return self

    def connect(self, codes: AuthCodes | Mapping[str, Any] | None = None) -> None:
        """Start connecting to the network.

        Returns immediately; logon is reported through ``logOnResponse``
        and, once web logon finishes, ``cookies``.
        """
        self._require_init()
        if codes is None:
            codes = AuthCodes()
        elif not isinstance(codes, AuthCodes):
            codes = AuthCodes.model_validate(codes)

        self._info("Connecting to Steam network.")
        options = self._login_options
        options.auth_code = codes.auth_code
        options.two_factor_code = codes.two_factor_code

        def provide_sentry(data: bytes | None) -> None:
            if data:
                options.sha_sentryfile = hashlib.sha1(data).digest()

        self._events.emit("readFile", self.config.sentry_file_name, provide_sentry)
        self._session.connect(options)

    def disconnect(self) -> None:
        """Ask the network session to disconnect. No-op when not connected."""
        session = self._session
        if session is None or not session.connected:
            return
        self._info("Disconnecting from Steam network.")
        self._bump_epoch()
        session.disconnect()

    async def close(self) -> None:
        """Disconnect and release the HTTP client if the runtime created it."""
        self.disconnect()
        if self._http is not None and self._owns_http:
            await self._http.aclose()
            self._http = None

    # ---- Web session ----

    async def web_log_on(self, nonce: str) -> CookieSet | None:
        """Exchange a web authentication nonce for cookies.

        Retries internally; returns ``None`` when the attempt was abandoned
        or the runtime was reset before it finished.
        """
        self._require_init()
        return await self._bridge.log_on(nonce)

    async def refresh_cookies(self) -> CookieSet | None:
        """Request a fresh nonce from the session and log on to the web with it."""
        self._require_init()
        if not self._has_logged_on:
            self._warn("Cannot refresh web cookies before logging on.")
            return None
        nonce = await self._request_nonce()
        return await self.web_log_on(nonce)

    # ---- Event shortcuts ----

    def on(self, event_type: str, handler: EventHandler) -> None:
        """Subscribe to a specific event type."""
        self._events.subscribe(event_type, handler)

    def off(self, event_type: str, handler: EventHandler | None = None) -> None:
        """Unsubscribe from an event type."""
        self._events.unsubscribe(event_type, handler)

    # ---- Internal ----

    def _clean_up(self) -> None:
        self._has_logged_on = False
        self._cookies = None
        self._login_options = None
        self._registry.reset()
        self._events.reset()
        self._bump_epoch()

        if self._session is not None and self._session.connected:
            self._session.disconnect()

    def _require_init(self) -> None:
        if self._config is None:
            raise RuntimeNotInitialized("call init() before using the runtime")

    def _make_api(self, name: str, data: Any) -> PluginAPI:
        return PluginAPI(self, name, data)

    def _http_client(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(timeout=30.0)
            self._owns_http = True
        return self._http

    def _current_steam_id(self) -> str | None:
        return self._session.steam_id if self._session is not None else None

    async def _request_nonce(self) -> str:
        return await self._session.request_web_nonce()

    def _set_cookies(self, cookies: CookieSet) -> None:
        self._cookies = cookies

    def _logged_on(self) -> None:
        self._has_logged_on = True

    def _logged_off(self) -> None:
        self._has_logged_on = False

    def _bump_epoch(self) -> None:
        self._epoch += 1

    def _info(self, message: str) -> None:
        logger.info(message)
        self._events.emit("message:info", message)

    def _warn(self, message: str) -> None:
        logger.warning(message)
        self._events.emit("message:warn", message)
