"""Perception: how noise and sight stimuli reach an agent.

Two delivery paths, matching how the stimuli happen in the world:

- Noise is broadcast. Anyone calls PerceptionPort.emit_noise(); every
  subscribed listener receives it and range-checks it itself. The port does not
  pre-filter by distance.
- Sight is directed. A DetectionVolume around one agent notices targets
  entering or leaving it, and only that agent is told via report_detected() /
  report_lost().

Listeners subscribe for their whole lifetime and must unsubscribe when they
go away, otherwise the bus keeps calling into a dead agent.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Protocol, TypeAlias, runtime_checkable

from warden.events import EventBus, NoiseEvent
from warden.types import TargetId, Vec3, Vec3Like
from warden.util.vectors import distance

if TYPE_CHECKING:
    from warden.game.targets import TargetRegistry

logger = logging.getLogger(__name__)

NoiseHandler: TypeAlias = Callable[[NoiseEvent], None]


@runtime_checkable
class PerceptionListener(Protocol):
    """The entry points an agent exposes to the perception system."""

    def on_noise_heard(self, position: Vec3, volume: float) -> None: ...

    def on_target_detected(self, target_id: TargetId) -> None: ...

    def on_target_lost(self) -> None: ...


class PerceptionPort:
    """Delivers stimuli to subscribed agents.

    Wraps an EventBus for the noise broadcast. Calls are synchronous: every
    handler runs before emit_noise() returns, on the caller's thread, so as
    long as the caller is the simulation loop nothing runs concurrently with a
    behavior tick.
    """

    def __init__(self, event_bus: EventBus | None = None) -> None:
        self.event_bus = event_bus or EventBus()
        self._noise_handlers: dict[PerceptionListener, NoiseHandler] = {}

    def subscribe(self, listener: PerceptionListener) -> None:
        """Start delivering noise broadcasts to ``listener``.

        Subscribing twice is a no-op; the listener still hears each noise once.
        """
        if listener in self._noise_handlers:
            return

        def handle_noise(event: NoiseEvent) -> None:
            listener.on_noise_heard(event.position, event.volume)

        self._noise_handlers[listener] = handle_noise
        self.event_bus.subscribe(NoiseEvent, handle_noise)

    def unsubscribe(self, listener: PerceptionListener) -> None:
        """Stop delivering to ``listener``. Unknown listeners are ignored."""
        handler = self._noise_handlers.pop(listener, None)
        if handler is not None:
            self.event_bus.unsubscribe(NoiseEvent, handler)

    def is_subscribed(self, listener: PerceptionListener) -> bool:
        return listener in self._noise_handlers

    @property
    def listener_count(self) -> int:
        return len(self._noise_handlers)

    def emit_noise(self, position: Vec3Like, volume: float = 1.0) -> int:
        """Broadcast a noise at ``position`` to every subscribed listener.

        Returns:
            The number of listeners that handled it without error.
        """
        event = NoiseEvent(position, volume)
        delivered = self.event_bus.publish(event)
        logger.debug(
            f"Noise at {event.position.tolist()} reached {delivered} listeners"
        )
        return delivered

    def report_detected(
        self, listener: PerceptionListener, target_id: TargetId
    ) -> None:
        """Tell one listener that its sight trigger picked up ``target_id``."""
        listener.on_target_detected(target_id)

    def report_lost(self, listener: PerceptionListener) -> None:
        """Tell one listener that its tracked target left its sight trigger."""
        listener.on_target_lost()


class DetectionVolume:
    """Spherical sight trigger centred on an agent.

    Each update() compares which registered targets are inside the sphere now
    against the previous update and returns the difference. Detection is
    omnidirectional, with no vision cone and no occlusion.

    Attributes:
        radius: Targets at or within this distance are inside.
    """

    def __init__(self, radius: float, position_source: Callable[[], Vec3]) -> None:
        self.radius = radius
        self._position_source = position_source
        self._distances: dict[TargetId, float] = {}

    @property
    def inside(self) -> frozenset[TargetId]:
        return frozenset(self._distances)

    def nearest_first(self) -> list[TargetId]:
        """Every target inside as of the last update(), nearest first."""
        return sorted(self._distances, key=self._distances.__getitem__)

    def update(self, targets: TargetRegistry) -> tuple[list[TargetId], list[TargetId]]:
        """Refresh membership against the registry.

        Returns:
            ``(entered, exited)``. Entered ids are sorted nearest first.
            Targets that vanished from the registry count as exited.
        """
        origin = self._position_source()
        in_range: dict[TargetId, float] = {}
        for target in targets.all():
            d = distance(origin, target.position)
            if d <= self.radius:
                in_range[target.target_id] = d

        entered = sorted(
            (tid for tid in in_range if tid not in self._distances),
            key=in_range.__getitem__,
        )
        exited = sorted(tid for tid in self._distances if tid not in in_range)
        self._distances = in_range
        return entered, exited

    def reset(self) -> None:
        self._distances = {}
