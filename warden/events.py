"""World events broadcast to every interested agent.

Each Simulation owns one EventBus; there is no process-wide bus. The only
traffic today is NoiseEvent, published by PerceptionPort.emit_noise() and
heard by every subscribed agent. Sight goes straight to the agent whose
trigger fired and never touches the bus.

Delivery is synchronous: publish() returns after every handler has run, on the
caller's thread. A handler that raises is logged and the rest still hear the
event.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass
from typing import TypeAlias

import numpy as np

from warden.types import Vec3

logger = logging.getLogger(__name__)


@dataclass
class GameEvent:
    """Base class for all events."""

    pass


@dataclass
class NoiseEvent(GameEvent):
    """A sound was made somewhere in the world.

    The bus does not filter by distance. Each listener decides for itself
    whether the noise is within its hearing range.

    Attributes:
        position: World position of the noise source.
        volume: Loudness of the noise. Informational; hearing is range-gated only.
    """

    position: Vec3
    volume: float = 1.0

    def __post_init__(self) -> None:
        self.position = np.array(self.position, dtype=np.float64)


EventHandler: TypeAlias = Callable[[GameEvent], None]


class EventBus:
    """Routes each event to the handlers subscribed to its exact class."""

    def __init__(self) -> None:
        self._handlers: defaultdict[type[GameEvent], list[EventHandler]] = (
            defaultdict(list)
        )

    def subscribe(self, event_type: type[GameEvent], handler: EventHandler) -> None:
        self._handlers[event_type].append(handler)

    def unsubscribe(self, event_type: type[GameEvent], handler: EventHandler) -> None:
        """Remove ``handler``. Handlers that were never subscribed are ignored."""
        handlers = self._handlers.get(event_type)
        if handlers and handler in handlers:
            handlers.remove(handler)

    def handler_count(self, event_type: type[GameEvent]) -> int:
        return len(self._handlers.get(event_type, ()))

    def publish(self, event: GameEvent) -> int:
        """Deliver ``event`` to its subscribers.

        Handlers may subscribe or unsubscribe while the event is being
        delivered; the change applies from the next publish().

        Returns:
            How many handlers ran without raising.
        """
        event_name = type(event).__name__
        delivered = 0
        for handler in tuple(self._handlers.get(type(event), ())):
            try:
                handler(event)
            except Exception:
                logger.exception(f"Error handling event {event_name}")
            else:
                delivered += 1
        return delivered
