"""Playback engine: handle contract, events and the miniaudio implementation."""

from playsync.engine.events import ENGINE_EVENTS, EventEmitter
from playsync.engine.handle import EngineHandle, HandleFactory, HandleOptions
from playsync.engine.miniaudio_handle import MiniaudioHandle

__all__ = [
    "ENGINE_EVENTS",
    "EngineHandle",
    "EventEmitter",
    "HandleFactory",
    "HandleOptions",
    "MiniaudioHandle",
]
