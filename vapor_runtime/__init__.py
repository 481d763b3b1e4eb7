"""
Vapor runtime for Python.

An extensible shell for a long-running Steam bot: lifecycle management,
a plugin mechanism built on a shared event bus, and a bridge that turns
the bot's authenticated session into web cookies.

Example::

    from vapor_runtime import VaporRuntime, PluginDescriptor
    from vapor_runtime.builtins import logger_plugin

    def greeter(api):
        api.register_handler("cookies", lambda cookies, sid: api.logger.info("web ready"))

    bot = VaporRuntime(make_session, public_key=STEAM_PUBLIC_KEY_PEM)
    bot.init({"username": "myUsername", "password": "myPassword"})
    bot.use(logger_plugin)
    bot.use(PluginDescriptor(name="greeter", plugin=greeter))
    bot.connect()
"""

from vapor_runtime.client import VaporRuntime
from vapor_runtime.errors import (
    VaporError,
    RuntimeNotInitialized,
    InvalidPlugin,
    DuplicatePlugin,
    MissingPublicKey,
    HandshakeError,
    HandshakeTransportFailure,
    HandshakeRejected,
)
from vapor_runtime.events import EventManager
from vapor_runtime.plugins import PluginAPI, PluginRegistry
from vapor_runtime.session import NetworkSession
from vapor_runtime.types import (
    BotConfig,
    AuthCodes,
    LoginOptions,
    CookieSet,
    PluginDescriptor,
)
from vapor_runtime.web_session import WebSessionBridge

__all__ = [
    "VaporRuntime",
    "EventManager",
    "PluginAPI",
    "PluginRegistry",
    "NetworkSession",
    "WebSessionBridge",
    "BotConfig",
    "AuthCodes",
    "LoginOptions",
    "CookieSet",
    "PluginDescriptor",
    "VaporError",
    "RuntimeNotInitialized",
    "InvalidPlugin",
    "DuplicatePlugin",
    "MissingPublicKey",
    "HandshakeError",
    "HandshakeTransportFailure",
    "HandshakeRejected",
]

__version__ = "0.1.0"
