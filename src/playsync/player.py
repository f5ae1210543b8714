"""Audio player control surface.

AudioPlayer owns one EngineInstanceManager, one StateStore and the
EventSyncBridge between them. Most commands pass straight through to the
current engine handle; their effect shows up in ``state`` only once the
engine reports it. ``load`` and ``loop`` are the two commands that also
dispatch an action themselves.

Example:
    with AudioPlayer() as player:
        player.load("song.mp3")
        player.play()
        ...
"""

from typing import Callable, Optional

from playsync.config import PlayerConfig
from playsync.engine.handle import EngineHandle, HandleFactory, HandleOptions, Source
from playsync.logging_config import get_logger
from playsync.services.event_sync import EventSyncBridge
from playsync.services.instance_manager import EngineInstanceManager
from playsync.state import Action, AudioPlayerState, init_state_from_handle, reducer
from playsync.store import StateListener, StateStore

logger = get_logger(__name__)


class AudioPlayer:
    """Commands and an observable state snapshot for one audio resource.

    Attributes:
        config: Player configuration supplying default handle options
    """

    def __init__(
        self,
        config: Optional[PlayerConfig] = None,
        factory: Optional[HandleFactory] = None,
    ):
        """Initialize the player.

        Args:
            config: Player configuration (defaults to built-in defaults)
            factory: Engine handle factory (defaults to MiniaudioHandle)
        """
        self.config = config or PlayerConfig()
        self._manager = EngineInstanceManager(factory)
        self._store = StateStore(reducer, init_state_from_handle(self._manager.get_handle()))
        self._bridge = EventSyncBridge(self._manager, self._store)
        self._dispatch = self._bridge.dispatch
        self._closed = False

        self.toggle_play_pause: Callable[[], None] = self._toggle_action(self._store.state)
        self._store.add_listener(self._on_state_changed)

    def __enter__(self) -> "AudioPlayer":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def state(self) -> AudioPlayerState:
        """Current state snapshot."""
        return self._store.state

    def add_listener(self, callback: StateListener) -> None:
        """Call ``callback(new_state, old_state)`` on every state change."""
        self._store.add_listener(callback)

    def remove_listener(self, callback: StateListener) -> None:
        self._store.remove_listener(callback)

    def close(self) -> None:
        """Detach engine listeners and destroy the current handle."""
        if self._closed:
            return
        self._closed = True
        self._bridge.teardown()
        self._manager.destroy_handle()
        logger.debug("Player closed")

    # State-affecting commands

    def load(self, source: Source, options: Optional[HandleOptions] = None) -> EngineHandle:
        """Replace the current resource with a new one.

        The returned handle reports load success or failure through state;
        this call never raises for a bad source.
        Loading into a closed player reopens it, so a later close tears
        the new handle down again.

        Args:
            source: Audio source to load
            options: Handle options (defaults come from config)

        Returns:
            The new engine handle
        """
        self._closed = False
        options = options or self.config.handle_options()
        handle = self._manager.create_handle(source, options)
        logger.info(f"Loading {source} (handle {handle.id})")

        self._dispatch(Action.start_load(handle))

        if options.preload:
            handle.load()
        return handle

    def loop(self, on_off: bool) -> None:
        """Set the loop flag on the engine and in state."""
        handle = self._manager.get_handle()
        if handle is None:
            return

        handle.loop(on_off)
        self._dispatch(Action.on_loop(handle, on_off))

    # Passthrough commands

    def seek(self, seconds: float) -> None:
        handle = self._manager.get_handle()
        if handle is None:
            return

        handle.seek(seconds)

    def get_position(self) -> float:
        """Current position in seconds, 0 when nothing is loaded."""
        handle = self._manager.get_handle()
        if handle is None:
            return 0.0

        return handle.seek() or 0.0

    def play(self) -> None:
        handle = self._manager.get_handle()
        if handle is None:
            return

        handle.play()

    def pause(self) -> None:
        handle = self._manager.get_handle()
        if handle is None:
            return

        handle.pause()

    def stop(self) -> None:
        handle = self._manager.get_handle()
        if handle is None:
            return

        handle.stop()

    def fade(self, start: float, end: float, duration_ms: int) -> None:
        handle = self._manager.get_handle()
        if handle is None:
            return

        handle.fade(start, end, duration_ms)

    def set_rate(self, speed: float) -> None:
        handle = self._manager.get_handle()
        if handle is None:
            return

        handle.rate(speed)

    def set_volume(self, vol: float) -> None:
        handle = self._manager.get_handle()
        if handle is None:
            return

        handle.volume(vol)

    def mute(self, on_off: bool) -> None:
        handle = self._manager.get_handle()
        if handle is None:
            return

        handle.mute(on_off)

    def get_handle(self) -> Optional[EngineHandle]:
        return self._manager.get_handle()

    # Derived callbacks

    def _toggle_action(self, state: AudioPlayerState) -> Callable[[], None]:
        return self.pause if state.playing else self.play

    def _on_state_changed(self, new_state: AudioPlayerState, old_state: AudioPlayerState) -> None:
        if new_state.playing != old_state.playing:
            self.toggle_play_pause = self._toggle_action(new_state)
