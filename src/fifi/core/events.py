"""In-process event bus for dispatch observability.

Dispatch, cancellation and exclusion events are published here so that
other parts of the service (status feeds, audit sinks, tests) can
subscribe without the dispatcher importing them.

Usage::

    from fifi.core.events import Event, get_event_bus

    bus = get_event_bus()

    async def handler(event: Event):
        print(event.event_type, event.payload)

    await bus.subscribe("fifi.*", handler)
    publish_event("fifi.job_dispatched", "fifi.dispatch", {"executor_id": "..."})
"""

from __future__ import annotations

import asyncio
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Protocol, runtime_checkable

from fifi.core.logging import get_logger

logger = get_logger(__name__)

__all__ = [
    "Event",
    "EventBus",
    "EventHandler",
    "InMemoryEventBus",
    "get_event_bus",
    "set_event_bus",
    "publish_event",
]


# ── Event Model ──────────────────────────────────────────────────────────


@dataclass
class Event:
    """Event payload.

    Attributes:
        event_type: Dot-separated type (e.g., ``fifi.job_dispatched``)
        source: Origin component
        payload: Event-specific data
        timestamp: When the event occurred (UTC)
        correlation_id: Optional ID linking related events (the playbook run id)
        event_id: Unique event identifier
    """

    event_type: str
    source: str
    payload: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
    correlation_id: str | None = None
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def matches(self, pattern: str) -> bool:
        """Check if event type matches a pattern (``*`` and ``prefix.*`` supported)."""
        if pattern == "*":
            return True
        if pattern.endswith(".*"):
            prefix = pattern[:-2]
            return self.event_type.startswith(prefix + ".")
        return self.event_type == pattern


EventHandler = Callable[[Event], Awaitable[None]]


@runtime_checkable
class EventBus(Protocol):
    """Protocol for event bus implementations."""

    async def publish(self, event: Event) -> None: ...

    async def subscribe(self, event_type: str, handler: EventHandler) -> str: ...

    async def unsubscribe(self, subscription_id: str) -> None: ...

    async def close(self) -> None: ...


# ── In-memory implementation ─────────────────────────────────────────────


@dataclass
class Subscription:
    """Internal subscription record."""

    id: str
    pattern: str
    handler: EventHandler


class InMemoryEventBus:
    """In-process event bus.

    Handlers are called concurrently; a failing handler is logged and does
    not stop delivery to the others.
    """

    def __init__(self) -> None:
        self._subscriptions: dict[str, Subscription] = {}
        self._lock = asyncio.Lock()
        self._closed = False

    async def publish(self, event: Event) -> None:
        if self._closed:
            return

        async with self._lock:
            handlers = [
                (sub.id, sub.handler)
                for sub in self._subscriptions.values()
                if event.matches(sub.pattern)
            ]

        if not handlers:
            return

        async def safe_call(sub_id: str, handler: EventHandler) -> None:
            try:
                await handler(event)
            except Exception as e:
                logger.warning(
                    "events.handler_error",
                    subscription_id=sub_id,
                    event_type=event.event_type,
                    error=str(e),
                )

        await asyncio.gather(*[safe_call(sub_id, handler) for sub_id, handler in handlers])

    async def subscribe(self, event_type: str, handler: EventHandler) -> str:
        sub_id = f"sub_{uuid.uuid4().hex[:12]}"
        async with self._lock:
            self._subscriptions[sub_id] = Subscription(id=sub_id, pattern=event_type, handler=handler)
        return sub_id

    async def unsubscribe(self, subscription_id: str) -> None:
        async with self._lock:
            self._subscriptions.pop(subscription_id, None)

    async def close(self) -> None:
        self._closed = True
        async with self._lock:
            self._subscriptions.clear()

    @property
    def subscription_count(self) -> int:
        return len(self._subscriptions)


# ── Default Event Bus Singleton ──────────────────────────────────────────

_event_bus: EventBus | None = None

# Scheduled publishes stay referenced until they finish.
_pending_publishes: set[asyncio.Task] = set()


def get_event_bus() -> EventBus:
    """Get the global event bus, creating an in-memory one if none is set."""
    global _event_bus
    if _event_bus is None:
        _event_bus = InMemoryEventBus()
    return _event_bus


def set_event_bus(bus: EventBus | None) -> None:
    """Set (or with ``None``, reset) the global event bus."""
    global _event_bus
    _event_bus = bus


def publish_event(
    event_type: str,
    source: str,
    payload: dict[str, Any] | None = None,
    correlation_id: str | None = None,
) -> asyncio.Task | None:
    """Publish an event to the global bus without waiting for delivery.

    Inside a running loop the publish is scheduled as a task, held in
    ``_pending_publishes`` until done and returned so callers that care can
    await it. Outside a loop it runs to completion.
    """
    event = Event(
        event_type=event_type,
        source=source,
        payload=payload or {},
        correlation_id=correlation_id,
    )
    bus = get_event_bus()

    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        asyncio.run(bus.publish(event))
        return None

    task = loop.create_task(bus.publish(event))
    _pending_publishes.add(task)
    task.add_done_callback(_pending_publishes.discard)
    return task
