"""Shared fixtures for playsync tests.

FakeHandle stands in for the audio engine: commands only record that they
were called, and tests fire engine events explicitly, so every ordering of
asynchronous events can be reproduced deterministically.
"""

import itertools

import pytest

from playsync.config import PlayerConfig
from playsync.engine.events import EventEmitter
from playsync.engine.handle import STATE_LOADED, STATE_LOADING, STATE_UNLOADED, HandleOptions
from playsync.player import AudioPlayer

_fake_ids = itertools.count(1000)


class FakeHandle:
    """Engine handle double recording calls and subscriptions."""

    def __init__(self, source, options=None):
        self.id = next(_fake_ids)
        self.source = source
        self.options = options or HandleOptions()
        self.events = EventEmitter()
        self.calls = []
        self.subscriptions = []
        self.unloaded = False

        self._state = STATE_UNLOADED
        self._duration = 0.0
        self._position = 0.0
        self._playing = False
        self._muted = self.options.mute
        self._volume = self.options.volume
        self._rate = self.options.rate
        self._loop = self.options.loop

    # Subscription

    def on(self, event, callback):
        self.subscriptions.append(("on", event, callback))
        self.events.on(event, callback)

    def once(self, event, callback):
        self.subscriptions.append(("once", event, callback))
        self.events.once(event, callback)

    def off(self, event, callback=None):
        self.subscriptions.append(("off", event, callback))
        self.events.off(event, callback)

    def listener_count(self, event):
        return self.events.listener_count(event)

    # Engine simulation

    def fire(self, event, *payload):
        """Emit an engine event the way the real engine does."""
        self.events.emit(event, self.id, *payload)

    def finish_load(self, duration=12.5):
        self._state = STATE_LOADED
        self._duration = duration
        self.fire("load")

    def fail_load(self, message="Decoding failed"):
        self._state = STATE_UNLOADED
        self.fire("loaderror", message)

    def start_playing(self):
        self._playing = True
        self.fire("play")

    # EngineHandle interface

    def state(self):
        return self._state

    def load(self):
        self.calls.append(("load",))
        self._state = STATE_LOADING

    def play(self):
        self.calls.append(("play",))

    def pause(self):
        self.calls.append(("pause",))

    def stop(self):
        self.calls.append(("stop",))

    def seek(self, seconds=None):
        if seconds is None:
            return self._position
        self.calls.append(("seek", seconds))
        self._position = seconds
        return seconds

    def mute(self, muted=None):
        if muted is None:
            return self._muted
        self.calls.append(("mute", muted))
        self._muted = muted
        return muted

    def volume(self, vol=None):
        if vol is None:
            return self._volume
        self.calls.append(("volume", vol))
        self._volume = max(0.0, min(1.0, vol))
        return self._volume

    def rate(self, speed=None):
        if speed is None:
            return self._rate
        self.calls.append(("rate", speed))
        self._rate = speed
        return speed

    def loop(self, enabled=None):
        if enabled is None:
            return self._loop
        self.calls.append(("loop", enabled))
        self._loop = enabled
        return enabled

    def fade(self, start, end, duration_ms):
        self.calls.append(("fade", start, end, duration_ms))

    def duration(self):
        return self._duration

    def playing(self):
        return self._playing

    def unload(self):
        self.calls.append(("unload",))
        self.unloaded = True
        self._state = STATE_UNLOADED


class FakeFactory:
    """Handle factory keeping every handle it created."""

    handle_class = FakeHandle

    def __init__(self):
        self.created = []

    def __call__(self, source, options):
        handle = self.handle_class(source, options)
        self.created.append(handle)
        return handle


@pytest.fixture
def fake_factory():
    """Factory producing FakeHandle instances."""
    return FakeFactory()


@pytest.fixture
def player_config(tmp_path):
    """Config with logs kept inside the test directory."""
    return PlayerConfig(log_dir=tmp_path / "logs")


@pytest.fixture
def player(player_config, fake_factory):
    """AudioPlayer wired to FakeHandle, closed after the test."""
    audio_player = AudioPlayer(player_config, factory=fake_factory)
    yield audio_player
    audio_player.close()
