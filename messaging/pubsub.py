# ============================================================================
# EVENT BROKER
# ============================================================================
# STATUS: Core - Process-wide typed publish/subscribe topic
# PURPOSE: Deliver engine events to metrics and notification subscribers
# CREATED: 26 SEP 2026
# ============================================================================
"""
Event Broker

One broker per process, created at startup and closed at shutdown. Handlers
subscribe per event class (subclasses are delivered to handlers of their
base class too) and may be plain functions or coroutines.

Delivery happens inside publish(), in subscription order. A failing handler
is logged and skipped; publish() never raises for a handler error.

Usage:
    broker = EventBroker()
    broker.subscribe(StepProcessed, metrics.on_step_processed)

    await broker.publish(StepProcessed(operation=op, step_name="start"))
"""

import inspect
import logging
import uuid
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Type, Union

from core.models import EngineEvent

logger = logging.getLogger(__name__)

EventHandler = Callable[[Any], Union[None, Awaitable[None]]]


@dataclass
class Subscription:
    """Internal subscription record."""
    subscription_id: str
    event_cls: Type[EngineEvent]
    handler: EventHandler


class EventBroker:
    """In-process event topic for engine events."""

    def __init__(self):
        self._subscriptions: Dict[str, Subscription] = {}
        self._closed = False

    def subscribe(self, event_cls: Type[EngineEvent], handler: EventHandler) -> str:
        """
        Register a handler for an event class.

        Returns:
            Subscription id for unsubscribe()
        """
        subscription_id = f"sub_{uuid.uuid4().hex[:12]}"
        self._subscriptions[subscription_id] = Subscription(
            subscription_id=subscription_id,
            event_cls=event_cls,
            handler=handler,
        )
        logger.debug(f"Subscribed {getattr(handler, '__qualname__', handler)} to {event_cls.__name__}")
        return subscription_id

    def unsubscribe(self, subscription_id: str) -> None:
        self._subscriptions.pop(subscription_id, None)

    async def publish(self, event: EngineEvent) -> None:
        """Deliver an event to every matching subscriber."""
        if self._closed:
            return

        for sub in list(self._subscriptions.values()):
            if not isinstance(event, sub.event_cls):
                continue
            try:
                result = sub.handler(event)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.warning(
                    f"Event handler {sub.subscription_id} failed for "
                    f"{event.event_type.value}: {e}",
                    exc_info=True,
                )

    def close(self) -> None:
        """Stop delivering and drop every subscription."""
        self._closed = True
        self._subscriptions.clear()

    @property
    def subscription_count(self) -> int:
        return len(self._subscriptions)


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "EventHandler",
    "Subscription",
    "EventBroker",
]
