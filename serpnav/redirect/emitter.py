"""
Event Emitter for redirect lifecycle events.

Controllers push events with ``emitter.emit(event)``; consumers either
register a listener (called synchronously, in emit order) or open a per-tab
queue and iterate ``stream_events``.

emit() is synchronous: events are raised from timer callbacks, where
awaiting is not possible.

Example:
    emitter = RedirectEventEmitter()
    emitter.add_listener(lambda event: print(event.type))

    emitter.open("tab-1")
    async for event in emitter.stream_events("tab-1"):
        ...
"""

import asyncio
import logging
from typing import AsyncIterator, Callable, Optional

from serpnav.redirect.events import RedirectEvent

logger = logging.getLogger(__name__)

EventListener = Callable[[RedirectEvent], None]


class RedirectEventEmitter:
    """Fan lifecycle events out to listeners and per-tab queues.

    Event Flow:
        1. Consumer calls open(tab_id) to get a queue for that tab
        2. Controller emits via emit(event)
        3. Listeners run immediately; the event is queued for the tab
        4. Consumer iterates stream_events(tab_id)
        5. close(tab_id) ends the stream
    """

    # Sentinel value to signal stream end
    _STREAM_END = object()

    def __init__(self):
        self._queues: dict[str, asyncio.Queue] = {}  # tab_id -> event queue
        self._closing: dict[str, asyncio.Queue] = {}  # closed, end sentinel not yet consumed
        self._listeners: list[EventListener] = []

    def add_listener(self, listener: EventListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: EventListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def open(self, tab_id: str) -> asyncio.Queue:
        """Create (or replace) the event queue for a tab."""
        if tab_id in self._queues:
            logger.warning(f"[Events] Replacing existing queue for tab {tab_id}")
        self._closing.pop(tab_id, None)
        queue: asyncio.Queue = asyncio.Queue()
        self._queues[tab_id] = queue
        return queue

    def close(self, tab_id: str) -> None:
        """Stop queueing for a tab and end its stream. Safe if absent.

        Events already queued stay readable: the queue is kept until a
        stream reaches the end sentinel.
        """
        queue = self._queues.pop(tab_id, None)
        if queue is not None:
            queue.put_nowait(self._STREAM_END)
            self._closing[tab_id] = queue

    def emit(self, event: RedirectEvent) -> bool:
        """
        Deliver an event.

        Args:
            event: Lifecycle event; its tab_id selects the queue

        Returns:
            True if the event was queued for a tab consumer, False if the tab
            has no open queue (listeners still ran)
        """
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                # A broken consumer must not break the state machine
                logger.error(f"[Events] Listener failed on {event.type}: {e}", exc_info=True)

        queue = self._queues.get(event.tab_id)
        if queue is None:
            logger.debug(f"[Events] No queue for tab {event.tab_id}, {event.type} not queued")
            return False

        queue.put_nowait(event)
        logger.debug(f"[Events] Emitted {event.type} for tab {event.tab_id}")
        return True

    async def stream_events(self, tab_id: str) -> AsyncIterator[RedirectEvent]:
        """Yield events for a tab until close(tab_id) is called.

        Args:
            tab_id: Tab to stream events for (open() it first)

        Yields:
            RedirectEvent instances as they arrive
        """
        queue = self._queues.get(tab_id)
        if queue is None:
            queue = self._closing.get(tab_id)
        if queue is None:
            logger.debug(f"[Events] Stream for tab {tab_id} not open")
            return

        while True:
            event = await queue.get()
            if event is self._STREAM_END:
                if self._closing.get(tab_id) is queue:
                    del self._closing[tab_id]
                logger.debug(f"[Events] Stream ended for tab {tab_id}")
                break
            yield event

    def is_open(self, tab_id: str) -> bool:
        return tab_id in self._queues


# Module-level singleton instance
_emitter: Optional[RedirectEventEmitter] = None


def get_event_emitter() -> RedirectEventEmitter:
    """Get the singleton RedirectEventEmitter instance."""
    global _emitter
    if _emitter is None:
        _emitter = RedirectEventEmitter()
    return _emitter
