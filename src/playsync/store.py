"""Reactive holder for the current player state.

Engine events arrive on decoder, device and timer threads, so the reducer is
applied under a lock and the new snapshot is swapped in as a whole. Readers
always see a complete snapshot.
"""

import threading
from typing import Callable

from playsync.logging_config import get_logger
from playsync.state import Action, AudioPlayerState

logger = get_logger(__name__)

Reducer = Callable[[AudioPlayerState, Action], AudioPlayerState]
StateListener = Callable[[AudioPlayerState, AudioPlayerState], None]


class StateStore:
    """Current snapshot plus the reducer that advances it.

    Listeners are called as ``callback(new_state, old_state)`` after every
    dispatch that produced a different snapshot.
    """

    def __init__(self, reducer: Reducer, initial_state: AudioPlayerState):
        self._reducer = reducer
        self._state = initial_state
        self._lock = threading.RLock()
        self._listeners: list[StateListener] = []

    @property
    def state(self) -> AudioPlayerState:
        """Current snapshot."""
        return self._state

    def add_listener(self, callback: StateListener) -> None:
        """Add a state change listener.

        Args:
            callback: Function to call with (new_state, old_state)
        """
        with self._lock:
            self._listeners.append(callback)

    def remove_listener(self, callback: StateListener) -> None:
        """Remove a state change listener.

        Args:
            callback: Callback to remove
        """
        with self._lock:
            self._listeners = [cb for cb in self._listeners if cb != callback]

    def dispatch(self, action: Action) -> AudioPlayerState:
        """Apply an action and notify listeners if the state changed.

        Args:
            action: Action to apply

        Returns:
            The snapshot after the action
        """
        with self._lock:
            old_state = self._state
            new_state = self._reducer(old_state, action)
            self._state = new_state
            listeners = list(self._listeners)

            if new_state != old_state:
                logger.debug(f"{action.type.name}: {new_state}")
                for callback in listeners:
                    try:
                        callback(new_state, old_state)
                    except Exception:
                        logger.exception(f"State listener failed on {action.type.name}")

        return new_state
