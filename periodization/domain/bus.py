"""Synchronous in-process publish/subscribe bus for domain events."""

from __future__ import annotations

from collections import defaultdict
from typing import Callable

from loguru import logger

from periodization.domain.events import DomainEvent

Handler = Callable[[DomainEvent], None]


class EventBus:
    """Dispatches each event to the handlers of its class and of every base class.

    Subscribing to ``DomainEvent`` receives every block event. Handlers run
    synchronously, most specific event class first, then in registration order.
    """

    def __init__(self) -> None:
        self._subscribers: dict[type[DomainEvent], list[Handler]] = defaultdict(list)

    def subscribe(self, event_type: type[DomainEvent], handler: Handler) -> None:
        if not (isinstance(event_type, type) and issubclass(event_type, DomainEvent)):
            raise TypeError(f"Can only subscribe to DomainEvent subclasses, got {event_type!r}")
        self._subscribers[event_type].append(handler)

    def handlers_for(self, event: DomainEvent) -> list[Handler]:
        handlers: list[Handler] = []
        for cls in type(event).__mro__:
            handlers.extend(self._subscribers.get(cls, []))
            if cls is DomainEvent:
                break
        return handlers

    def publish(self, event: DomainEvent) -> None:
        handlers = self.handlers_for(event)
        logger.debug(
            f"Publishing {type(event).__name__} for subject {event.subject_id} "
            f"to {len(handlers)} handler(s)"
        )
        for handler in handlers:
            handler(event)
