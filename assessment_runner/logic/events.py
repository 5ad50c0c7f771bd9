"""Session domain events.

Answer changes, resumptions, submissions and load failures are published
as `{type, payload}` dicts. Every event is logged; subscribers registered
with `subscribe()` receive it synchronously, and the in-process buffer keeps
a copy for tests to observe.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List
import logging

logger = logging.getLogger(__name__)

ANSWER_CHANGED = "answer.changed"
SESSION_RESUMED = "session.resumed"
SESSION_SUBMITTED = "session.submitted"
SESSION_LOAD_FAILED = "session.load_failed"

Event = Dict[str, Any]

EVENT_BUFFER: List[Event] = []
_SUBSCRIBERS: List[Callable[[Event], None]] = []


def subscribe(handler: Callable[[Event], None]) -> Callable[[], None]:
    """Register `handler` for every published event; returns an unsubscribe callable."""
    _SUBSCRIBERS.append(handler)

    def _unsubscribe() -> None:
        if handler in _SUBSCRIBERS:
            _SUBSCRIBERS.remove(handler)

    return _unsubscribe


def publish(event_type: str, payload: Dict[str, Any]) -> None:
    event: Event = {"type": event_type, "payload": dict(payload)}
    logger.info("event_publish type=%s payload=%s", event_type, payload)
    EVENT_BUFFER.append(event)
    for handler in list(_SUBSCRIBERS):
        try:
            handler(event)
        except Exception:
            # Subscriber errors are logged, never propagated
            logger.error("event_subscriber_failed type=%s", event_type, exc_info=True)


def get_buffered_events(clear: bool = True) -> List[Event]:
    """Return buffered events; optionally clear the buffer."""
    events = list(EVENT_BUFFER)
    if clear:
        EVENT_BUFFER.clear()
    return events


__all__ = [
    "ANSWER_CHANGED",
    "SESSION_RESUMED",
    "SESSION_SUBMITTED",
    "SESSION_LOAD_FAILED",
    "publish",
    "subscribe",
    "get_buffered_events",
    "EVENT_BUFFER",
]
