# ============================================================================
# MESSAGING MODULE
# ============================================================================
# STATUS: Core - In-process event distribution
# PURPOSE: Publish engine events to metrics and notification subscribers
# CREATED: 26 SEP 2026
# ============================================================================
"""
Messaging Module

Usage:
    from messaging import EventBroker

    broker = EventBroker()
    broker.subscribe(OperationStateChanged, handler)
"""

from .pubsub import EventBroker, EventHandler, Subscription

__all__ = [
    "EventBroker",
    "EventHandler",
    "Subscription",
]
