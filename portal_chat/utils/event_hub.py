"""In-process publish/subscribe between the engine and its UI listeners."""

import inspect
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from portal_chat.models.events import EVENT_NAMES, EventName


logger = logging.getLogger(__name__)

Handler = Callable[[Any], Union[None, Awaitable[None]]]


def _check_event(event: str) -> None:
    if event not in EVENT_NAMES:
        raise ValueError(f"Unknown event: {event}")


class EventHub:

    def __init__(self) -> None:
        self._handlers: Dict[str, List[Handler]] = {}

    def on(self, event: EventName, handler: Handler) -> None:
        _check_event(event)
        self._handlers.setdefault(event, []).append(handler)

    def off(self, event: EventName, handler: Handler) -> bool:
        _check_event(event)
        try:
            self._handlers.get(event, []).remove(handler)
        except ValueError:
            return False
        return True

    def listener_count(self, event: EventName) -> int:
        return len(self._handlers.get(event, []))

    async def emit(self, event: EventName, payload: Optional[Any] = None) -> int:
        """Call every handler of ``event`` in subscription order.

        Handlers may be plain callables or coroutine functions. A handler that
        raises is logged and skipped; the remaining handlers still run.
        Returns the number of handlers that completed.
        """
        _check_event(event)
        delivered = 0
        # snapshot: handlers may unsubscribe themselves while running
        for handler in list(self._handlers.get(event, [])):
            try:
                result = handler(payload)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Listener %r failed while handling %s", handler, event)
                continue
            delivered += 1
        return delivered
