"""Unit tests for plugin registration and the PluginAPI handle."""

from __future__ import annotations

import logging
from types import SimpleNamespace
from typing import Any

import pytest

from conftest import SessionFactory
from vapor_runtime.builtins import logger_plugin
from vapor_runtime.client import VaporRuntime
from vapor_runtime.errors import DuplicatePlugin, InvalidPlugin
from vapor_runtime.plugins import PluginAPI
from vapor_runtime.types import PluginDescriptor


@pytest.fixture
def runtime(session_factory: SessionFactory, config: dict[str, Any]) -> VaporRuntime:
    return VaporRuntime(session_factory).init(config)


def test_use_invokes_entry_point_once(runtime: VaporRuntime) -> None:
    received: list[PluginAPI] = []
    infos: list[str] = []
    runtime.on("message:info", infos.append)

    assert runtime.use(PluginDescriptor(name="greeter", plugin=received.append), {"hello": 1}) is runtime

    assert len(received) == 1
    api = received[0]
    assert isinstance(api, PluginAPI)
    assert api.name == "greeter"
    assert api.data == {"hello": 1}
    assert runtime.loaded_plugins == ("greeter",)
    assert infos == ['Plugin "greeter" has been loaded successfully.']


def test_duplicate_name_fails_before_entry_point(runtime: VaporRuntime) -> None:
    calls: list[str] = []
    runtime.use({"name": "dup", "plugin": lambda api: calls.append("first")})

    with pytest.raises(DuplicatePlugin) as excinfo:
        runtime.use({"name": "dup", "plugin": lambda api: calls.append("second")})

    assert excinfo.value.name == "dup"
    assert calls == ["first"]
    assert runtime.loaded_plugins == ("dup",)


@pytest.mark.parametrize(
    "descriptor",
    [
        {"name": "", "plugin": lambda api: None},
        {"name": "   ", "plugin": lambda api: None},
        {"name": 42, "plugin": lambda api: None},
        {"plugin": lambda api: None},
        {"name": "broken", "plugin": "not callable"},
        {"name": "broken"},
        object(),
    ],
)
def test_invalid_descriptor(runtime: VaporRuntime, descriptor: Any) -> None:
    infos: list[str] = []
    runtime.on("message:info", infos.append)

    with pytest.raises(InvalidPlugin):
        runtime.use(descriptor)

    assert runtime.loaded_plugins == ()
    assert infos == []


def test_attribute_style_descriptor(runtime: VaporRuntime) -> None:
    runtime.use(SimpleNamespace(name="ns", plugin=lambda api: None))
    assert "ns" in runtime.loaded_plugins


def test_load_order_is_kept(runtime: VaporRuntime) -> None:
    order: list[str] = []
    for name in ("c", "a", "b"):
        runtime.use({"name": name, "plugin": lambda api: order.append(api.name)})

    assert order == ["c", "a", "b"]
    assert runtime.loaded_plugins == ("c", "a", "b")


def test_failing_entry_point_is_not_recorded(runtime: VaporRuntime) -> None:
    def explode(api: PluginAPI) -> None:
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        runtime.use({"name": "explody", "plugin": explode})

    assert runtime.loaded_plugins == ()


def test_api_is_sealed(runtime: VaporRuntime) -> None:
    captured: list[PluginAPI] = []
    runtime.use({"name": "sealed", "plugin": captured.append})
    api = captured[0]

    with pytest.raises(AttributeError):
        api.extra = 1  # type: ignore[attr-defined]
    with pytest.raises(AttributeError):
        api._name = "other"  # type: ignore[misc]
    assert api.name == "sealed"


def test_api_sees_live_runtime(runtime: VaporRuntime) -> None:
    captured: list[PluginAPI] = []
    runtime.use({"name": "watcher", "plugin": captured.append})
    api = captured[0]

    assert api.config.username == "vaporbot"
    assert api.has_logged_on is False
    runtime._logged_on()
    assert api.has_logged_on is True
    assert api.logger.name == "vapor_runtime.plugins.watcher"


def test_api_events(runtime: VaporRuntime) -> None:
    seen: list[Any] = []

    def on_custom(value: Any) -> None:
        seen.append(value)

    captured: list[PluginAPI] = []
    runtime.use({"name": "listener", "plugin": lambda api: api.register_handler("custom", on_custom)})
    runtime.use({"name": "speaker", "plugin": captured.append})

    assert captured[0].emit_event("custom", "hi") is True
    assert seen == ["hi"]

    captured[0].remove_handler("custom", on_custom)
    assert captured[0].emit_event("custom", "again") is False
    assert seen == ["hi"]


def test_logger_plugin_relays_messages(runtime: VaporRuntime, caplog: pytest.LogCaptureFixture) -> None:
    runtime.use(logger_plugin, "vapor.test")

    with caplog.at_level(logging.DEBUG, logger="vapor.test"):
        caplog.clear()
        runtime.events.emit("message:info", "hello")
        runtime.events.emit("message:warn", "careful")

    relayed = [(r.levelno, r.getMessage()) for r in caplog.records if r.name == "vapor.test"]
    assert relayed == [(logging.INFO, "hello"), (logging.WARNING, "careful")]


def test_failing_entry_point_leaves_no_handlers(runtime: VaporRuntime) -> None:
    seen: list[Any] = []

    def on_custom(value: Any) -> None:
        seen.append(value)

    def half_installed(api: PluginAPI) -> None:
        api.register_handler("custom", on_custom)
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        runtime.use({"name": "flaky", "plugin": half_installed})
    assert runtime.events.listener_count("custom") == 0

    runtime.use({"name": "flaky", "plugin": lambda api: api.register_handler("custom", on_custom)})
    runtime.events.emit("custom", 1)
    assert seen == [1]
