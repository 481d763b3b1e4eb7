"""
Event bus for the Vapor runtime.

A single labelled publish/subscribe channel shared by the runtime, the
network session and every plugin. Handlers may be plain callables or
coroutine functions; coroutine results are scheduled on the running loop.
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from typing import Any, Callable

logger = logging.getLogger(__name__)

EventHandler = Callable[..., Any]


class EventManager:
    """Manages event subscriptions keyed by event name."""

    def __init__(self) -> None:
        self._handlers: dict[str, list[EventHandler]] = defaultdict(list)
        self._wildcard_handlers: list[EventHandler] = []
        self._pending: set[asyncio.Task[Any]] = set()

    def subscribe(self, event_type: str, handler: EventHandler) -> None:
        """Register a handler for a specific event type."""
        self._handlers[event_type].append(handler)

    def subscribe_all(self, handler: EventHandler) -> None:
        """Register a handler for all event types.

        Wildcard handlers receive the event name as their first argument.
        """
        self._wildcard_handlers.append(handler)

    def once(self, event_type: str, handler: EventHandler) -> None:
        """Register a handler that is removed after its first call."""

        def _once(*args: Any) -> Any:
            self.unsubscribe(event_type, _once)
            return handler(*args)

        self.subscribe(event_type, _once)

    def unsubscribe(self, event_type: str, handler: EventHandler | None = None) -> None:
        """Remove a handler (or all handlers) for an event type."""
        if handler is None:
            self._handlers.pop(event_type, None)
        else:
            handlers = self._handlers.get(event_type, [])
            self._handlers[event_type] = [h for h in handlers if h is not handler]

    def listener_count(self, event_type: str) -> int:
        return len(self._handlers.get(event_type, []))

    def emit(self, event_type: str, *args: Any) -> bool:
        """Deliver an event to its current subscribers.

        Returns ``True`` if the event had a named subscriber. Handler errors
        are logged and do not reach the emitter.
        """
        handlers = list(self._handlers.get(event_type, []))
        for handler in handlers:
            self._call(event_type, handler, args)
        for handler in list(self._wildcard_handlers):
            self._call(event_type, handler, (event_type, *args))
        return bool(handlers)

    def _call(self, event_type: str, handler: EventHandler, args: tuple[Any, ...]) -> None:
        try:
            result = handler(*args)
        except Exception:
            logger.exception("Error in event handler for %s", event_type)
            return
        if asyncio.iscoroutine(result):
            self._schedule(event_type, result)

    def _schedule(self, event_type: str, coro: Any) -> None:
        try:
            task = asyncio.get_running_loop().create_task(coro)
        except RuntimeError:
            coro.close()
            logger.error("No running event loop for async handler of %s", event_type)
            return
        self._pending.add(task)
        task.add_done_callback(lambda t: self._finish(event_type, t))

    def _finish(self, event_type: str, task: asyncio.Task[Any]) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Error in async event handler for %s", event_type, exc_info=exc)

    async def drain(self) -> None:
        """Wait until every scheduled handler task, including ones they spawn, is done."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def reset(self) -> None:
        """Remove every subscription without emitting anything.

        Handler tasks that are already running are left to finish.
        """
        self._handlers.clear()
        self._wildcard_handlers.clear()
