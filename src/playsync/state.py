"""Audio player state and the reducer that keeps it in sync with the engine.

The state is an immutable snapshot: every transition returns a new
AudioPlayerState and never mutates the previous one. Actions that carry an
engine handle let the reducer read authoritative values (duration, volume,
rate, mute) straight from the engine instead of trusting whoever issued the
command, so a value the engine clamped is reported as clamped.
"""

from dataclasses import dataclass, replace
from enum import Enum, auto
from typing import Any, Optional

from playsync.engine.handle import STATE_LOADED, STATE_LOADING


@dataclass(frozen=True)
class AudioPlayerState:
    """Snapshot of the player as last reported by the engine.

    Attributes:
        loading: A load has started and neither load nor loaderror has fired
        playing: The engine reported playback as running
        stopped: The resource is loaded and not playing (after load, stop or end)
        duration: Duration in seconds, 0 until loaded
        muted: Engine mute flag
        volume: Engine volume (0.0 to 1.0)
        rate: Engine playback rate
        loop: Loop flag as last set through the player
        error: Last load or playback error message
    """

    loading: bool = False
    playing: bool = False
    stopped: bool = False
    duration: float = 0.0
    muted: bool = False
    volume: float = 1.0
    rate: float = 1.0
    loop: bool = False
    error: Optional[str] = None


class ActionType(Enum):
    """Kinds of state-relevant events and commands."""

    START_LOAD = auto()
    ON_LOAD = auto()
    ON_ERROR = auto()
    ON_PLAY = auto()
    ON_PAUSE = auto()
    ON_END = auto()
    ON_STOP = auto()
    ON_MUTE = auto()
    ON_VOLUME = auto()
    ON_RATE = auto()
    ON_LOOP = auto()


@dataclass(frozen=True)
class Action:
    """A single state transition request.

    Attributes:
        type: Kind of action
        handle: Engine handle the action refers to (None for ON_ERROR)
        message: Error message (ON_ERROR only)
        toggle_value: New loop flag (ON_LOOP only)
    """

    type: ActionType
    handle: Any = None
    message: Optional[str] = None
    toggle_value: Optional[bool] = None

    @classmethod
    def start_load(cls, handle: Any) -> "Action":
        return cls(ActionType.START_LOAD, handle=handle)

    @classmethod
    def on_load(cls, handle: Any) -> "Action":
        return cls(ActionType.ON_LOAD, handle=handle)

    @classmethod
    def on_error(cls, message: Optional[str]) -> "Action":
        return cls(ActionType.ON_ERROR, message=message)

    @classmethod
    def on_play(cls, handle: Any) -> "Action":
        return cls(ActionType.ON_PLAY, handle=handle)

    @classmethod
    def on_pause(cls, handle: Any) -> "Action":
        return cls(ActionType.ON_PAUSE, handle=handle)

    @classmethod
    def on_end(cls, handle: Any) -> "Action":
        return cls(ActionType.ON_END, handle=handle)

    @classmethod
    def on_stop(cls, handle: Any) -> "Action":
        return cls(ActionType.ON_STOP, handle=handle)

    @classmethod
    def on_mute(cls, handle: Any) -> "Action":
        return cls(ActionType.ON_MUTE, handle=handle)

    @classmethod
    def on_volume(cls, handle: Any) -> "Action":
        return cls(ActionType.ON_VOLUME, handle=handle)

    @classmethod
    def on_rate(cls, handle: Any) -> "Action":
        return cls(ActionType.ON_RATE, handle=handle)

    @classmethod
    def on_loop(cls, handle: Any, toggle_value: bool) -> "Action":
        return cls(ActionType.ON_LOOP, handle=handle, toggle_value=bool(toggle_value))


def init_state_from_handle(handle: Any = None) -> AudioPlayerState:
    """Build the initial snapshot for a player.

    Args:
        handle: Current engine handle, if one already exists

    Returns:
        Default (unloaded) state, or a state read from the handle
    """
    if handle is None:
        return AudioPlayerState()

    handle_state = handle.state()
    playing = bool(handle.playing())
    return AudioPlayerState(
        loading=handle_state == STATE_LOADING,
        playing=playing,
        stopped=handle_state == STATE_LOADED and not playing,
        duration=float(handle.duration()),
        muted=bool(handle.mute()),
        volume=float(handle.volume()),
        rate=float(handle.rate()),
        loop=bool(handle.loop()),
    )


def reducer(state: AudioPlayerState, action: Action) -> AudioPlayerState:
    """Compute the next snapshot.

    Pure apart from read-only getters on ``action.handle``. Actions from a
    handle that is no longer current are applied as-is.

    Args:
        state: Previous snapshot
        action: Action to apply

    Returns:
        New snapshot

    Raises:
        ValueError: If the action type is not recognised
    """
    match action.type:
        case ActionType.START_LOAD:
            return replace(state, loading=True, playing=False, stopped=False, error=None)
        case ActionType.ON_LOAD:
            return replace(
                state,
                loading=False,
                duration=float(action.handle.duration()),
                stopped=True,
            )
        case ActionType.ON_ERROR:
            return replace(state, loading=False, error=action.message)
        case ActionType.ON_PLAY:
            return replace(state, playing=True, stopped=False)
        case ActionType.ON_PAUSE:
            return replace(state, playing=False)
        case ActionType.ON_END | ActionType.ON_STOP:
            return replace(state, playing=False, stopped=True)
        case ActionType.ON_MUTE:
            return replace(state, muted=bool(action.handle.mute()))
        case ActionType.ON_VOLUME:
            return replace(state, volume=float(action.handle.volume()))
        case ActionType.ON_RATE:
            return replace(state, rate=float(action.handle.rate()))
        case ActionType.ON_LOOP:
            return replace(state, loop=bool(action.toggle_value))

    raise ValueError(f"Unknown action type: {action.type!r}")
