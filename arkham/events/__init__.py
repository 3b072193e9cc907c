"""
ARKHAM Events Module

Store change notifications and the instance-scoped dispatcher.
"""

from arkham.events.events import StoreEvent, StoreEventType
from arkham.events.dispatcher import EventDispatcher, EventHandler

__all__ = [
    "StoreEvent",
    "StoreEventType",
    "EventDispatcher",
    "EventHandler",
]
