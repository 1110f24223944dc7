"""
In-process Bus — type-dispatched request handlers and event listeners.

Requests (commands and queries) are routed to exactly one handler keyed by
the message class. Events fan out to every listener registered for the event
class or any of its bases.

The bus is a plain value owned by the composition root; there is no
process-wide instance.
"""
import asyncio
import logging
from typing import Any, Awaitable, Callable

from .exceptions import HandlerAlreadyRegistered, HandlerNotFound

logger = logging.getLogger("navigator.secretstore")

Handler = Callable[[Any], Awaitable[Any]]
Listener = Callable[[Any], Any]


class Bus:
    """Type-dispatched handler registry."""

    def __init__(self) -> None:
        self._handlers: dict[type, Handler] = {}
        self._listeners: dict[type, list[Listener]] = {}

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    def add_handler(self, msg_type: type, handler: Handler) -> None:
        """Register the single handler for ``msg_type``.

        Raises:
            HandlerAlreadyRegistered: If ``msg_type`` already has a handler.
        """
        if msg_type in self._handlers:
            raise HandlerAlreadyRegistered(msg_type)
        self._handlers[msg_type] = handler
        logger.debug("Bus handler registered: %s", msg_type.__name__)

    def has_handler(self, msg_type: type) -> bool:
        return msg_type in self._handlers

    async def dispatch(self, msg: Any) -> Any:
        """Route ``msg`` to its handler and return the handler's result.

        Raises:
            HandlerNotFound: If no handler is registered for ``type(msg)``.
        """
        handler = self._handlers.get(type(msg))
        if handler is None:
            raise HandlerNotFound(type(msg))
        return await handler(msg)

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def add_event_listener(self, event_type: type, listener: Listener) -> None:
        """Subscribe ``listener`` (sync or async) to ``event_type``."""
        self._listeners.setdefault(event_type, []).append(listener)

    def remove_event_listener(self, event_type: type, listener: Listener) -> None:
        listeners = self._listeners.get(event_type, [])
        if listener in listeners:
            listeners.remove(listener)

    async def publish(self, event: Any) -> None:
        """Deliver ``event`` to its listeners in registration order.

        A failing listener is logged and skipped; the remaining listeners
        still receive the event.
        """
        for event_type in type(event).__mro__:
            for listener in list(self._listeners.get(event_type, [])):
                try:
                    result = listener(event)
                    if asyncio.iscoroutine(result):
                        await result
                except Exception as err:
                    logger.error(
                        "Event listener %s failed for %s: %s",
                        getattr(listener, "__qualname__", repr(listener)),
                        type(event).__name__,
                        err,
                    )
