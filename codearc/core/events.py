"""In-process domain event bus.

Services publish events after their writes succeed; subscribers (the
notification fanout) react to them. A subscriber failure is logged and
counted, never raised back into the publishing request.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, TypeVar

import structlog


logger = structlog.get_logger(__name__)


@dataclass(frozen=True, kw_only=True)
class DomainEvent:
    """Base class for events published on the bus."""

    occurred_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def name(self) -> str:
        return type(self).__name__


E = TypeVar("E", bound=DomainEvent)
EventHandler = Callable[[Any], Awaitable[None]]


class EventBus:
    """Dispatch events to the handlers subscribed to their type."""

    def __init__(self) -> None:
        self._handlers: dict[type[DomainEvent], list[EventHandler]] = defaultdict(list)
        self._events_published = 0
        self._handler_failures = 0

    def subscribe(
        self, event_type: type[E], handler: Callable[[E], Awaitable[None]]
    ) -> None:
        """Register an async handler for an event type."""
        self._handlers[event_type].append(handler)

    def handlers_for(self, event: DomainEvent) -> list[EventHandler]:
        return list(self._handlers.get(type(event), []))

    async def publish(self, event: DomainEvent) -> None:
        """Run every handler for the event, in subscription order.

        Handlers are awaited so their work is done by the time the request
        returns, but their errors stay isolated from the publisher.
        """
        self._events_published += 1
        for handler in self.handlers_for(event):
            try:
                await handler(event)
            except Exception as e:
                self._handler_failures += 1
                logger.exception(
                    "event_handler_failed",
                    event_name=event.name,
                    handler=getattr(handler, "__qualname__", repr(handler)),
                    error=str(e),
                )

    @property
    def stats(self) -> dict[str, int]:
        return {
            "events_published": self._events_published,
            "handler_failures": self._handler_failures,
        }
