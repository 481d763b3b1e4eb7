"""
Plugin registry and the capability handle each plugin receives.

A plugin is a name plus an entry point. The entry point is called once,
at registration, with a :class:`PluginAPI` scoped to that plugin; it is
expected to subscribe to events and keep the handle for later calls.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable, Mapping

from vapor_runtime.errors import DuplicatePlugin, InvalidPlugin
from vapor_runtime.events import EventHandler, EventManager
from vapor_runtime.types import BotConfig, CookieSet

if TYPE_CHECKING:
    from vapor_runtime.client import VaporRuntime

logger = logging.getLogger(__name__)


class PluginAPI:
    """What a plugin is allowed to touch.

    Attributes cannot be added or reassigned after construction, but the
    runtime behind it stays live: ``cookies`` and ``has_logged_on`` always
    reflect the current state.
    """

    __slots__ = ("_runtime", "_name", "_data", "_logger", "_handlers")

    def __init__(self, runtime: "VaporRuntime", name: str, data: Any = None) -> None:
        object.__setattr__(self, "_runtime", runtime)
        object.__setattr__(self, "_name", name)
        object.__setattr__(self, "_data", data)
        object.__setattr__(self, "_logger", logging.getLogger(f"vapor_runtime.plugins.{name}"))
        object.__setattr__(self, "_handlers", [])

    def __setattr__(self, key: str, value: Any) -> None:
        raise AttributeError(f"PluginAPI for {self._name!r} is sealed")

    def __delattr__(self, key: str) -> None:
        raise AttributeError(f"PluginAPI for {self._name!r} is sealed")

    def __repr__(self) -> str:
        return f"PluginAPI(name={self._name!r})"

    @property
    def name(self) -> str:
        return self._name

    @property
    def data(self) -> Any:
        """Extra data passed to ``use`` alongside the plugin."""
        return self._data

    @property
    def logger(self) -> logging.Logger:
        return self._logger

    @property
    def config(self) -> BotConfig:
        return self._runtime.config

    @property
    def steam_id(self) -> str | None:
        session = self._runtime.session
        return session.steam_id if session is not None else None

    @property
    def cookies(self) -> CookieSet | None:
        return self._runtime.cookies

    @property
    def has_logged_on(self) -> bool:
        return self._runtime.has_logged_on

    # ---- Events ----

    def emit_event(self, event_type: str, *args: Any) -> bool:
        return self._runtime.events.emit(event_type, *args)

    def register_handler(self, event_type: str, handler: EventHandler) -> None:
        self._runtime.events.subscribe(event_type, handler)
        self._handlers.append((event_type, handler))

    def remove_handler(self, event_type: str, handler: EventHandler) -> None:
        self._runtime.events.unsubscribe(event_type, handler)
        self._handlers[:] = [
            (e, h) for e, h in self._handlers if not (e == event_type and h is handler)
        ]

    def _remove_all_handlers(self) -> None:
        for event_type, handler in self._handlers:
            self._runtime.events.unsubscribe(event_type, handler)
        self._handlers.clear()

    # ---- Runtime control ----

    def connect(self, codes: Any = None) -> None:
        self._runtime.connect(codes)

    def disconnect(self) -> None:
        self._runtime.disconnect()

    async def refresh_cookies(self) -> CookieSet | None:
        """Request a new nonce and run a web logon with it."""
        return await self._runtime.refresh_cookies()


def _read_descriptor(descriptor: Any) -> tuple[Any, Any]:
    if isinstance(descriptor, Mapping):
        return descriptor.get("name"), descriptor.get("plugin")
    return getattr(descriptor, "name", None), getattr(descriptor, "plugin", None)


class PluginRegistry:
    """Tracks loaded plugins by name, in load order."""

    def __init__(
        self,
        events: EventManager,
        make_api: Callable[[str, Any], PluginAPI],
    ) -> None:
        self._events = events
        self._make_api = make_api
        self._loaded: list[str] = []

    @property
    def loaded(self) -> tuple[str, ...]:
        return tuple(self._loaded)

    def __contains__(self, name: object) -> bool:
        return name in self._loaded

    def __len__(self) -> int:
        return len(self._loaded)

    def register(self, descriptor: Any, data: Any = None) -> PluginAPI:
        """Validate a descriptor and run its entry point.

        ``descriptor`` may be a :class:`~vapor_runtime.types.PluginDescriptor`,
        a mapping or any object with ``name`` and ``plugin`` attributes.

        Raises:
            InvalidPlugin: name is not a non-empty string or ``plugin``
                is not callable.
            DuplicatePlugin: a plugin with this name is already loaded.

        If the entry point raises, handlers it registered through its
        ``PluginAPI`` are removed again and the error propagates; the name
        stays free for another attempt.
        """
        name, entry_point = _read_descriptor(descriptor)

        if not isinstance(name, str) or not name.strip():
            raise InvalidPlugin('Plugin "name" must be a non-empty string')
        if not callable(entry_point):
            raise InvalidPlugin(f'Plugin "{name}" has no callable "plugin" entry point')
        if name in self._loaded:
            raise DuplicatePlugin(name)

        api = self._make_api(name, data)
        try:
            entry_point(api)
        except Exception:
            api._remove_all_handlers()
            raise
        self._loaded.append(name)

        logger.info("Plugin %s loaded", name)
        self._events.emit("message:info", f'Plugin "{name}" has been loaded successfully.')
        return api

    def reset(self) -> None:
        self._loaded.clear()
