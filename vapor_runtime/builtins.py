"""Plugins shipped with the runtime."""

from __future__ import annotations

import logging
from typing import Any

from vapor_runtime.plugins import PluginAPI
from vapor_runtime.types import PluginDescriptor

LEVELS = {
    "message:debug": logging.DEBUG,
    "message:info": logging.INFO,
    "message:warn": logging.WARNING,
    "message:error": logging.ERROR,
}


def _install_logger(api: PluginAPI) -> None:
    # ``use(logger_plugin, "my.logger")`` or ``use(logger_plugin, some_logger)``
    target: Any = api.data
    if target is None:
        target = logging.getLogger("vapor")
    elif isinstance(target, str):
        target = logging.getLogger(target)

    for event_type, level in LEVELS.items():

        def relay(message: Any, _level: int = level) -> None:
            target.log(_level, "%s", message)

        api.register_handler(event_type, relay)


logger_plugin = PluginDescriptor(name="logger", plugin=_install_logger)
