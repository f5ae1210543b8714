"""Binding between engine events and state actions.

The bridge sits in front of the store's dispatch. When a START_LOAD passes
through it, it moves its listeners from the previously bound handle onto the
new one before forwarding the action. Engine callbacks are turned into
actions carrying the handle read fresh from the instance manager.

Listener callables are created once per bridge, so the objects handed to
``off`` are the very ones that were handed to ``on``/``once``.
"""

from typing import Any, Callable, Optional

from playsync.engine.events import (
    EVENT_END,
    EVENT_LOAD,
    EVENT_LOAD_ERROR,
    EVENT_MUTE,
    EVENT_PAUSE,
    EVENT_PLAY,
    EVENT_PLAY_ERROR,
    EVENT_RATE,
    EVENT_STOP,
    EVENT_VOLUME,
)
from playsync.engine.handle import EngineHandle
from playsync.logging_config import get_logger
from playsync.services.instance_manager import EngineInstanceManager
from playsync.state import Action, ActionType, AudioPlayerState
from playsync.store import StateStore

logger = get_logger(__name__)


class EventSyncBridge:
    """Keeps engine listeners attached to exactly the current handle.

    Attributes:
        persistent_listeners: Event name -> listener, attached with ``on``
        load_listener: One-shot listener for the ``load`` event
    """

    def __init__(self, manager: EngineInstanceManager, store: StateStore):
        """Initialize the bridge.

        Args:
            manager: Owner of the current engine handle
            store: Store the translated actions are dispatched to
        """
        self._manager = manager
        self._store = store
        self._bound: Optional[EngineHandle] = None

        on_error = self._on_error
        self.load_listener = self._listener(EVENT_LOAD, Action.on_load)
        self.persistent_listeners: dict[str, Callable[..., None]] = {
            EVENT_LOAD_ERROR: on_error,
            EVENT_PLAY_ERROR: on_error,
            EVENT_PLAY: self._listener(EVENT_PLAY, Action.on_play),
            EVENT_PAUSE: self._listener(EVENT_PAUSE, Action.on_pause),
            EVENT_END: self._listener(EVENT_END, Action.on_end),
            EVENT_STOP: self._listener(EVENT_STOP, Action.on_stop),
            EVENT_MUTE: self._listener(EVENT_MUTE, Action.on_mute),
            EVENT_VOLUME: self._listener(EVENT_VOLUME, Action.on_volume),
            EVENT_RATE: self._listener(EVENT_RATE, Action.on_rate),
        }

    @property
    def bound_handle(self) -> Optional[EngineHandle]:
        """Handle the listeners are currently attached to."""
        return self._bound

    def dispatch(self, action: Action) -> AudioPlayerState:
        """Forward an action to the store, binding listeners on START_LOAD.

        Args:
            action: Action to dispatch

        Returns:
            The snapshot after the action
        """
        if action.type is ActionType.START_LOAD:
            self._bind(action.handle)
        return self._store.dispatch(action)

    def teardown(self) -> None:
        """Detach every listener, the one-shot load listener included.

        Safe to call repeatedly and when nothing was ever loaded.
        """
        handle = self._manager.get_handle()
        if handle is not None:
            self._detach(handle)
        if self._bound is not None and self._bound is not handle:
            self._detach(self._bound)
        self._bound = None

    def _bind(self, handle: EngineHandle) -> None:
        previous = self._bound
        if previous is handle:
            return
        if previous is not None:
            self._detach(previous)
        self._attach(handle)
        self._bound = handle

    def _attach(self, handle: EngineHandle) -> None:
        handle.once(EVENT_LOAD, self.load_listener)
        for event, listener in self.persistent_listeners.items():
            handle.on(event, listener)
        logger.debug(f"Attached listeners to handle {handle.id}")

    def _detach(self, handle: EngineHandle) -> None:
        handle.off(EVENT_LOAD, self.load_listener)
        for event, listener in self.persistent_listeners.items():
            handle.off(event, listener)
        logger.debug(f"Detached listeners from handle {handle.id}")

    def _current_handle(self, event: str, handle_id: Optional[int]) -> Optional[EngineHandle]:
        """Current handle, or None if the event must be dropped."""
        handle = self._manager.get_handle()
        if handle is None:
            logger.debug(f"Dropping '{event}': no current handle")
            return None
        if handle_id is not None and handle_id != handle.id:
            logger.debug(f"Dropping stale '{event}' from handle {handle_id} (current {handle.id})")
            return None
        return handle

    def _listener(self, event: str, build: Callable[[EngineHandle], Action]) -> Callable[..., None]:
        def listener(handle_id: Optional[int] = None, *_payload: Any) -> None:
            handle = self._current_handle(event, handle_id)
            if handle is not None:
                self._store.dispatch(build(handle))

        listener.__name__ = f"on_{event}"
        return listener

    def _on_error(self, handle_id: Optional[int] = None, message: Any = None, *_payload: Any) -> None:
        if self._current_handle("error", handle_id) is None:
            return
        if message is None:
            message = "Unknown playback error"
        logger.debug(f"Engine error from handle {handle_id}: {message}")
        self._store.dispatch(Action.on_error(str(message)))
