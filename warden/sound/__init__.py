"""Ambient audio requests made by agents."""

from .emitter import AmbientAudioSink, AmbientSoundEmitter

__all__ = [
    "AmbientAudioSink",
    "AmbientSoundEmitter",
]
