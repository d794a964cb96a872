"""PatrolAgent: one behavior-controlled entity and its lifetime.

Bundles the body, navigation, ambient audio, sight trigger and behavior
state machine of a single agent. The agent subscribes to the PerceptionPort
when it is created and must be despawned to unsubscribe; a despawned agent
ignores further ticks and drops its pending timers.
"""

from __future__ import annotations

import itertools
import logging
from typing import TYPE_CHECKING

from warden.types import AgentId

from .ai.behavior import BehaviorState, BehaviorStateMachine
from .ai.perception import DetectionVolume

if TYPE_CHECKING:
    from warden.config import AgentConfig
    from warden.game.targets import TargetRegistry
    from warden.navigation import NavigationPort
    from warden.sound.emitter import AmbientAudioSink
    from warden.util.timers import TimerQueue

    from .ai.perception import PerceptionPort
    from .body import MotionCommand, MotionSink

logger = logging.getLogger(__name__)

_agent_ids = itertools.count(1)


class PatrolAgent:
    """A guard that patrols, investigates noises and chases what it sees.

    Attributes:
        agent_id: Sequential identifier, unique within the process.
        body: Motion sink moved by the state machine.
        machine: The behavior state machine.
        detection: Sight trigger around the body.
        alive: False once despawn() has run.
    """

    def __init__(
        self,
        config: AgentConfig,
        body: MotionSink,
        navigation: NavigationPort | None,
        audio: AmbientAudioSink | None,
        *,
        timers: TimerQueue,
        perception: PerceptionPort,
        targets: TargetRegistry,
        name: str | None = None,
    ) -> None:
        self.agent_id = AgentId(next(_agent_ids))
        self.name = name or f"Agent {self.agent_id}"
        self.config = config
        self.body = body
        self.navigation = navigation
        self.audio = audio
        self._perception = perception
        self._targets = targets

        # Raises ConfigurationError before anything is subscribed.
        self.machine = BehaviorStateMachine(
            config, body, navigation, audio, timers, targets, name=self.name
        )
        self.detection = DetectionVolume(
            config.detection_radius, lambda: body.position
        )

        self._perception.subscribe(self.machine)
        self.alive = True
        logger.debug(f"{self.name} spawned at {body.position.tolist()}")

    @property
    def state(self) -> BehaviorState:
        return self.machine.state

    def sense(self) -> None:
        """Turn sight-trigger membership into perception reports.

        While the chased target is in sight nobody else is reported. Otherwise
        the nearest target in sight is reported, whether it just walked in or
        was already standing there while another target was being chased.
        """
        if not self.alive:
            return
        was_inside = self.detection.inside
        _, exited = self.detection.update(self._targets)
        visible = self.detection.nearest_first()
        tracked = self.machine.active_target_id

        if tracked is not None and tracked in exited:
            self._perception.report_lost(self.machine)

        if self.machine.state is BehaviorState.CHASE and tracked in visible:
            if tracked not in was_inside:
                # Back in sight before the grace period ran out.
                self._perception.report_detected(self.machine, tracked)
            return
        if visible:
            self._perception.report_detected(self.machine, visible[0])

    def tick(self, delta_time: float) -> MotionCommand | None:
        if not self.alive:
            return None
        return self.machine.update(delta_time)

    def despawn(self) -> None:
        """Unsubscribe from perception and drop pending timers. Idempotent."""
        if not self.alive:
            return
        self.alive = False
        self._perception.unsubscribe(self.machine)
        self.machine.cancel_pending_timers()
        self.detection.reset()
        if self.audio is not None:
            self.audio.stop_ambient()
        logger.debug(f"{self.name} despawned")

    def __repr__(self) -> str:
        return f"PatrolAgent({self.name!r}, state={self.state})"
