"""miniaudio-backed engine handle.

Decodes the whole source with miniaudio on a background thread, then streams
it to a PlaybackDevice through a generator that applies rate, volume, mute
and fades with numpy. Every state change is reported through events rather
than return values, so callers observe playback the same way whether the
change came from a command or from the audio thread (e.g. reaching the end).
"""

import itertools
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Generator, Optional

import miniaudio
import numpy as np

from playsync.engine.events import (
    EVENT_END,
    EVENT_FADE,
    EVENT_LOAD,
    EVENT_LOAD_ERROR,
    EVENT_MUTE,
    EVENT_PAUSE,
    EVENT_PLAY,
    EVENT_PLAY_ERROR,
    EVENT_RATE,
    EVENT_SEEK,
    EVENT_STOP,
    EVENT_VOLUME,
    EventEmitter,
)
from playsync.engine.handle import (
    STATE_LOADED,
    STATE_LOADING,
    STATE_UNLOADED,
    HandleOptions,
    Source,
)
from playsync.logging_config import get_logger

logger = get_logger(__name__)

_handle_ids = itertools.count(1)

MIN_RATE = 0.5
MAX_RATE = 4.0


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, float(value)))


@dataclass
class _Fade:
    """A running volume ramp."""

    start: float
    end: float
    duration_seconds: float
    started_at: float

    def level(self, now: float) -> float:
        if self.duration_seconds <= 0:
            return self.end
        progress = min(1.0, (now - self.started_at) / self.duration_seconds)
        return self.start + (self.end - self.start) * progress


class MiniaudioHandle:
    """One loaded audio resource played through miniaudio.

    Attributes:
        id: Unique handle id, passed as first argument to every listener
        source: Path of the audio file
        options: Options the handle was created with
    """

    def __init__(self, source: Source, options: Optional[HandleOptions] = None):
        """Create an unloaded handle.

        Decoding starts with load(); nothing touches the file here, so a
        bad source is reported later as a loaderror event.

        Args:
            source: Path to the audio file
            options: Initial playback options
        """
        self.id = next(_handle_ids)
        self.source = Path(source)
        self.options = options or HandleOptions()

        self._events = EventEmitter()
        self._lock = threading.RLock()
        self._loaded = threading.Event()

        self._state = STATE_UNLOADED
        self._destroyed = False
        self._frames: Optional[np.ndarray] = None
        self._sample_rate = self.options.sample_rate
        self._position = 0.0  # in frames, fractional while rate != 1

        self._playing = False
        self._play_on_load = self.options.autoplay
        self._muted = bool(self.options.mute)
        self._volume = _clamp(self.options.volume, 0.0, 1.0)
        self._rate = _clamp(self.options.rate, MIN_RATE, MAX_RATE)
        self._loop = bool(self.options.loop)

        self._fade: Optional[_Fade] = None
        self._fade_timer: Optional[threading.Timer] = None

        self._device: Optional[miniaudio.PlaybackDevice] = None
        self._generator: Optional[Generator] = None
        self._load_thread: Optional[threading.Thread] = None

    def __repr__(self) -> str:
        return f"MiniaudioHandle(id={self.id}, source={str(self.source)!r}, state={self._state!r})"

    # Events

    def on(self, event: str, callback: Callable[..., Any]) -> None:
        self._events.on(event, callback)

    def once(self, event: str, callback: Callable[..., Any]) -> None:
        self._events.once(event, callback)

    def off(self, event: str, callback: Optional[Callable[..., Any]] = None) -> None:
        self._events.off(event, callback)

    def _emit(self, event: str, *args: Any) -> None:
        self._events.emit(event, self.id, *args)

    # Loading

    def state(self) -> str:
        """Lifecycle state: unloaded, loading or loaded."""
        with self._lock:
            return self._state

    def load(self) -> None:
        """Start decoding the source on a background thread.

        Emits ``load`` on success or ``loaderror`` with a message on failure.
        Calling load on a handle that is loading, loaded or unloaded for good
        does nothing.
        """
        with self._lock:
            if self._destroyed or self._state != STATE_UNLOADED:
                return
            self._state = STATE_LOADING
            self._loaded.clear()

        logger.debug(f"Handle {self.id}: decoding {self.source}")
        self._load_thread = threading.Thread(
            target=self._decode,
            name=f"playsync-decode-{self.id}",
            daemon=True,
        )
        self._load_thread.start()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the current load attempt finishes.

        Args:
            timeout: Seconds to wait (None waits forever)

        Returns:
            True if the load finished (successfully or not) within timeout
        """
        return self._loaded.wait(timeout)

    def _decode(self) -> None:
        try:
            if not self.source.is_file():
                raise FileNotFoundError(f"Audio file not found: {self.source}")
            decoded = miniaudio.decode_file(
                str(self.source),
                output_format=miniaudio.SampleFormat.SIGNED16,
                nchannels=self.options.nchannels,
                sample_rate=self.options.sample_rate,
            )
            frames = np.asarray(decoded.samples, dtype=np.int16).reshape(-1, decoded.nchannels)
            if not len(frames):
                raise ValueError(f"No audio frames decoded from {self.source}")
        except Exception as e:
            logger.error(f"Handle {self.id}: failed to load {self.source}: {e}")
            with self._lock:
                if self._state != STATE_LOADING:
                    return
                self._state = STATE_UNLOADED
                self._play_on_load = False
            self._loaded.set()
            self._emit(EVENT_LOAD_ERROR, str(e))
            return

        with self._lock:
            if self._state != STATE_LOADING:
                # Unloaded while decoding
                return
            self._frames = frames
            self._sample_rate = decoded.sample_rate
            self._position = 0.0
            self._state = STATE_LOADED
            autoplay = self._play_on_load
            self._play_on_load = False

        logger.debug(
            f"Handle {self.id}: loaded {len(frames)} frames at {decoded.sample_rate}Hz "
            f"({self.duration():.2f}s)"
        )
        self._loaded.set()
        self._emit(EVENT_LOAD)

        if autoplay:
            self.play()

    def duration(self) -> float:
        """Duration in seconds, 0 until loaded."""
        with self._lock:
            if self._frames is None or self._sample_rate <= 0:
                return 0.0
            return len(self._frames) / self._sample_rate

    # Playback

    def playing(self) -> bool:
        with self._lock:
            return self._playing

    def play(self) -> None:
        """Start or resume playback.

        While still loading the request is queued and honoured once the
        load event has fired.
        """
        with self._lock:
            if self._state == STATE_LOADING:
                self._play_on_load = True
                return
            if self._state != STATE_LOADED or self._playing:
                return
            if self._position >= len(self._frames):
                self._position = 0.0
            self._playing = True

        device = self._detach_device()
        self._close_device(device)

        try:
            generator = self._stream()
            next(generator)
            device = miniaudio.PlaybackDevice(
                output_format=miniaudio.SampleFormat.SIGNED16,
                nchannels=self.options.nchannels,
                sample_rate=self._sample_rate,
                buffersize_msec=self.options.buffer_ms,
            )
            with self._lock:
                self._generator = generator
                self._device = device
            device.start(generator)
        except Exception as e:
            logger.error(f"Handle {self.id}: playback error: {e}", exc_info=True)
            with self._lock:
                self._playing = False
            self._close_device(self._detach_device())
            self._emit(EVENT_PLAY_ERROR, str(e))
            return

        logger.debug(f"Handle {self.id}: playing from {self.seek():.2f}s")
        self._emit(EVENT_PLAY)

    def pause(self) -> None:
        """Pause playback, keeping the position."""
        with self._lock:
            self._play_on_load = False
            if not self._playing:
                return
            self._playing = False

        self._close_device(self._detach_device())
        self._emit(EVENT_PAUSE)

    def stop(self) -> None:
        """Stop playback and rewind to the start."""
        with self._lock:
            self._play_on_load = False
            if self._state != STATE_LOADED:
                return
            self._playing = False
            self._position = 0.0

        self._close_device(self._detach_device())
        self._emit(EVENT_STOP)

    def seek(self, seconds: Optional[float] = None) -> float:
        """Get or set the playback position.

        Args:
            seconds: New position (None to read the current one)

        Returns:
            Position in seconds after the call
        """
        with self._lock:
            if self._state != STATE_LOADED or self._sample_rate <= 0:
                return 0.0
            if seconds is None:
                return self._position / self._sample_rate
            seconds = _clamp(seconds, 0.0, self.duration())
            self._position = seconds * self._sample_rate

        self._emit(EVENT_SEEK)
        return seconds

    # Output settings

    def mute(self, muted: Optional[bool] = None) -> bool:
        with self._lock:
            if muted is None:
                return self._muted
            self._muted = bool(muted)
        self._emit(EVENT_MUTE)
        return self._muted

    def volume(self, vol: Optional[float] = None) -> float:
        """Get or set the volume, clamped to [0, 1].

        Setting the volume cancels a running fade.
        """
        with self._lock:
            if vol is None:
                return self._volume
            self._volume = _clamp(vol, 0.0, 1.0)
            self._cancel_fade()
        self._emit(EVENT_VOLUME)
        return self._volume

    def rate(self, speed: Optional[float] = None) -> float:
        with self._lock:
            if speed is None:
                return self._rate
            self._rate = _clamp(speed, MIN_RATE, MAX_RATE)
        self._emit(EVENT_RATE)
        return self._rate

    def loop(self, enabled: Optional[bool] = None) -> bool:
        with self._lock:
            if enabled is not None:
                self._loop = bool(enabled)
            return self._loop

    def fade(self, start: float, end: float, duration_ms: int) -> None:
        """Ramp the volume linearly from start to end.

        Emits ``volume`` and then ``fade`` when the ramp completes.

        Args:
            start: Starting volume (0.0 to 1.0)
            end: Final volume (0.0 to 1.0)
            duration_ms: Ramp length in milliseconds
        """
        start = _clamp(start, 0.0, 1.0)
        end = _clamp(end, 0.0, 1.0)
        duration_seconds = max(0, int(duration_ms)) / 1000.0

        with self._lock:
            if self._state != STATE_LOADED:
                return
            self._cancel_fade()
            self._volume = start
            fade = _Fade(start, end, duration_seconds, time.monotonic())
            self._fade = fade
            timer = threading.Timer(duration_seconds, self._complete_fade, args=(fade,))
            timer.daemon = True
            self._fade_timer = timer
        timer.start()

    def _cancel_fade(self) -> None:
        if self._fade_timer is not None:
            self._fade_timer.cancel()
        self._fade_timer = None
        self._fade = None

    def _complete_fade(self, fade: _Fade) -> None:
        with self._lock:
            if self._fade is not fade:
                return
            self._fade = None
            self._fade_timer = None
            self._volume = fade.end
        self._emit(EVENT_VOLUME)
        self._emit(EVENT_FADE)

    def _gain(self) -> float:
        if self._muted:
            return 0.0
        if self._fade is not None:
            return self._fade.level(time.monotonic())
        return self._volume

    # Teardown

    def unload(self) -> None:
        """Stop output, drop decoded audio and remove every listener."""
        with self._lock:
            self._destroyed = True
            self._state = STATE_UNLOADED
            self._playing = False
            self._play_on_load = False
            self._frames = None
            self._position = 0.0
            self._cancel_fade()

        self._close_device(self._detach_device())
        self._events.clear()
        self._loaded.set()
        logger.debug(f"Handle {self.id}: unloaded")

    # Device plumbing

    def _detach_device(self):
        with self._lock:
            device, generator = self._device, self._generator
            self._device = None
            self._generator = None
        return device, generator

    def _close_device(self, detached) -> None:
        # Must run without holding _lock: device.stop() joins the audio
        # thread, which takes _lock inside _stream.
        device, generator = detached
        if device is not None:
            try:
                device.stop()
                device.close()
            except Exception as e:
                logger.debug(f"Handle {self.id}: error closing device: {e}")
        if generator is not None:
            try:
                generator.close()
            except Exception as e:
                logger.debug(f"Handle {self.id}: error closing stream: {e}")

    def _stream(self) -> Generator[np.ndarray, int, None]:
        """Generator fed to PlaybackDevice.

        Receives the number of frames the device wants via send() and
        yields an int16 array of shape (num_frames, nchannels).
        """
        nchannels = self.options.nchannels
        num_frames = yield np.zeros((0, nchannels), dtype=np.int16)

        while True:
            if num_frames is None or num_frames <= 0:
                logger.warning(f"Handle {self.id}: invalid frame request {num_frames}")
                return

            with self._lock:
                frames = self._frames
                if frames is None or not self._playing:
                    return
                total = len(frames)
                positions = self._position + np.arange(num_frames) * self._rate
                if self._loop:
                    indices = positions.astype(np.int64) % total
                    self._position = (self._position + num_frames * self._rate) % total
                    ended = False
                else:
                    indices = positions[positions < total].astype(np.int64)
                    self._position = min(float(total), self._position + num_frames * self._rate)
                    ended = self._position >= total
                gain = self._gain()

            out = np.zeros((num_frames, nchannels), dtype=np.int16)
            if len(indices):
                chunk = frames[indices].astype(np.float32) * gain
                out[: len(indices)] = np.clip(chunk, -32768, 32767).astype(np.int16)

            num_frames = yield out

            if ended:
                self._finish()
                return

    def _finish(self) -> None:
        with self._lock:
            if not self._playing:
                return
            self._playing = False
            self._position = 0.0
            device = self._device
            self._device = None
            self._generator = None
        if device is not None:
            # Called on the audio thread, which device.stop() joins.
            threading.Thread(
                target=self._close_device,
                args=((device, None),),
                name=f"playsync-close-{self.id}",
                daemon=True,
            ).start()
        logger.debug(f"Handle {self.id}: reached end")
        self._emit(EVENT_END)
