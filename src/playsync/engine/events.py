"""Event subscription for engine handles.

Listeners are delivered the emitting handle's id followed by any event
payload, e.g. ``callback(handle_id, message)`` for ``loaderror``.
"""

import threading
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Callable, Optional

from playsync.logging_config import get_logger

logger = get_logger(__name__)

# Events a handle can emit
EVENT_LOAD = "load"
EVENT_LOAD_ERROR = "loaderror"
EVENT_PLAY_ERROR = "playerror"
EVENT_PLAY = "play"
EVENT_PAUSE = "pause"
EVENT_END = "end"
EVENT_STOP = "stop"
EVENT_MUTE = "mute"
EVENT_VOLUME = "volume"
EVENT_RATE = "rate"
EVENT_SEEK = "seek"
EVENT_FADE = "fade"

ENGINE_EVENTS = (
    EVENT_LOAD,
    EVENT_LOAD_ERROR,
    EVENT_PLAY_ERROR,
    EVENT_PLAY,
    EVENT_PAUSE,
    EVENT_END,
    EVENT_STOP,
    EVENT_MUTE,
    EVENT_VOLUME,
    EVENT_RATE,
    EVENT_SEEK,
    EVENT_FADE,
)


@dataclass
class _Listener:
    callback: Callable[..., Any]
    once: bool = False


class EventEmitter:
    """on/once/off event registry.

    Callbacks are matched by equality on removal, so passing the same
    function (or an equal bound method) to ``off`` removes it.
    """

    def __init__(self):
        self._listeners: dict[str, list[_Listener]] = defaultdict(list)
        self._lock = threading.Lock()

    def on(self, event: str, callback: Callable[..., Any]) -> None:
        """Subscribe to every future emission of an event.

        Args:
            event: Event name
            callback: Function to call on emission
        """
        with self._lock:
            self._listeners[event].append(_Listener(callback))

    def once(self, event: str, callback: Callable[..., Any]) -> None:
        """Subscribe to the next emission of an event only.

        Args:
            event: Event name
            callback: Function to call on emission
        """
        with self._lock:
            self._listeners[event].append(_Listener(callback, once=True))

    def off(self, event: str, callback: Optional[Callable[..., Any]] = None) -> None:
        """Unsubscribe from an event.

        Args:
            event: Event name
            callback: Callback to remove (None removes every listener of the event)
        """
        with self._lock:
            if event not in self._listeners:
                return
            if callback is None:
                del self._listeners[event]
                return
            self._listeners[event] = [
                listener for listener in self._listeners[event] if listener.callback != callback
            ]

    def clear(self) -> None:
        """Remove every listener of every event."""
        with self._lock:
            self._listeners.clear()

    def listener_count(self, event: str) -> int:
        """Number of listeners currently attached to an event."""
        with self._lock:
            return len(self._listeners.get(event, []))

    def emit(self, event: str, *args: Any) -> None:
        """Deliver an event to its listeners.

        One-shot listeners are removed before they are called. A listener
        that raises is logged and does not stop delivery to the others.

        Args:
            event: Event name
            *args: Payload passed to every listener
        """
        with self._lock:
            listeners = list(self._listeners.get(event, []))
            if any(listener.once for listener in listeners):
                self._listeners[event] = [
                    listener for listener in self._listeners[event] if not listener.once
                ]

        for listener in listeners:
            try:
                listener.callback(*args)
            except Exception:
                logger.exception(f"Listener for '{event}' raised")
