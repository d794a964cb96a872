"""Ambient sound requests for agents."""

from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable

from warden.types import SoundId

logger = logging.getLogger(__name__)


@runtime_checkable
class AmbientAudioSink(Protocol):
    """Where an agent sends its ambient-loop play/stop requests.

    Both requests must be idempotent: playing while already playing, or
    stopping while already stopped, does nothing.
    """

    @property
    def is_playing(self) -> bool: ...

    def play_ambient(self) -> None: ...

    def stop_ambient(self) -> None: ...


class AmbientSoundEmitter:
    """Represents a looping ambient sound attached to an agent.

    Playback itself belongs to the audio layer; this emitter only records what
    was requested, so an audio system can poll ``is_playing`` and tests can
    inspect the request history.

    Attributes:
        sound_id: ID of the sound definition to loop (e.g., "guard_hum").
        volume_multiplier: Agent-specific volume adjustment (0.0-1.0).
        play_requests: Number of times playback actually started.
        stop_requests: Number of times playback actually stopped.
    """

    def __init__(
        self, sound_id: SoundId | None, volume_multiplier: float = 1.0
    ) -> None:
        """Initialize an ambient emitter.

        Args:
            sound_id: Sound to loop. None means the agent has no ambient
                sound; play requests are accepted and ignored.
            volume_multiplier: Volume adjustment for this emitter.
        """
        self.sound_id = sound_id
        self.volume_multiplier = max(0.0, min(1.0, volume_multiplier))
        self._playing = False
        self.play_requests = 0
        self.stop_requests = 0

    @property
    def is_playing(self) -> bool:
        return self._playing

    def play_ambient(self) -> None:
        if self._playing or self.sound_id is None:
            return
        self._playing = True
        self.play_requests += 1
        logger.debug(f"Ambient sound started: {self.sound_id}")

    def stop_ambient(self) -> None:
        if not self._playing:
            return
        self._playing = False
        self.stop_requests += 1
        logger.debug(f"Ambient sound stopped: {self.sound_id}")
