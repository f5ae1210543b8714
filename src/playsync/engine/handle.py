"""Engine handle contract.

An engine handle represents one loaded, playable audio resource together
with its playback controls and event subscription interface. The getters
double as setters when given a value, so ``handle.volume()`` reads the
current volume while ``handle.volume(0.5)`` changes it and later emits a
``volume`` event.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Optional, Protocol, Union, runtime_checkable

Source = Union[str, Path]

# Handle lifecycle values reported by EngineHandle.state()
STATE_UNLOADED = "unloaded"
STATE_LOADING = "loading"
STATE_LOADED = "loaded"


@dataclass(frozen=True)
class HandleOptions:
    """Options applied when a handle is created.

    Attributes:
        volume: Initial volume (0.0 to 1.0)
        rate: Initial playback rate
        loop: Whether playback wraps to the start at the end
        mute: Whether the handle starts muted
        autoplay: Start playing as soon as the load completes
        preload: Start decoding right after the handle is bound
        sample_rate: Output sample rate for decoding and playback
        nchannels: Output channel count
        buffer_ms: Device buffer size in milliseconds
    """

    volume: float = 1.0
    rate: float = 1.0
    loop: bool = False
    mute: bool = False
    autoplay: bool = False
    preload: bool = True
    sample_rate: int = 44100
    nchannels: int = 2
    buffer_ms: int = 200


@runtime_checkable
class EngineHandle(Protocol):
    """Playback engine handle consumed by the synchronization core."""

    id: int

    def state(self) -> str: ...

    def load(self) -> None: ...

    def play(self) -> None: ...

    def pause(self) -> None: ...

    def stop(self) -> None: ...

    def seek(self, seconds: Optional[float] = None) -> float: ...

    def mute(self, muted: Optional[bool] = None) -> bool: ...

    def volume(self, vol: Optional[float] = None) -> float: ...

    def rate(self, speed: Optional[float] = None) -> float: ...

    def loop(self, enabled: Optional[bool] = None) -> bool: ...

    def fade(self, start: float, end: float, duration_ms: int) -> None: ...

    def duration(self) -> float: ...

    def playing(self) -> bool: ...

    def unload(self) -> None: ...

    def on(self, event: str, callback: Callable[..., Any]) -> None: ...

    def once(self, event: str, callback: Callable[..., Any]) -> None: ...

    def off(self, event: str, callback: Optional[Callable[..., Any]] = None) -> None: ...


HandleFactory = Callable[[Source, HandleOptions], EngineHandle]
