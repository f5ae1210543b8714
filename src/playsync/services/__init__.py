"""Services for playsync: handle ownership and engine event synchronization."""

from playsync.services.event_sync import EventSyncBridge
from playsync.services.instance_manager import EngineInstanceManager

__all__ = [
    "EngineInstanceManager",
    "EventSyncBridge",
]
