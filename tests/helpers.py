from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

from warden.config import AgentConfig
from warden.game.actors.ai.behavior import BehaviorStateMachine
from warden.game.actors.body import KinematicBody
from warden.game.targets import Target, TargetRegistry
from warden.navigation import DirectNavigator
from warden.sound.emitter import AmbientSoundEmitter
from warden.types import Vec3Like
from warden.util.timers import TimerQueue

# A square route around the origin, 10 units on a side.
PATROL_ROUTE: tuple[tuple[float, float, float], ...] = (
    (10.0, 0.0, 0.0),
    (10.0, 0.0, 10.0),
    (0.0, 0.0, 10.0),
)

FIXED_DT = 1.0 / 60.0


@dataclass
class MachineWorld:
    """A state machine plus the reference collaborators it talks to."""

    machine: BehaviorStateMachine
    body: KinematicBody
    navigation: DirectNavigator
    audio: AmbientSoundEmitter
    timers: TimerQueue
    targets: TargetRegistry
    # The registry only holds weak references; targets made by a test live here.
    spawned: list[Target] = field(default_factory=list)

    def add_target(self, position: Vec3Like, name: str = "") -> Target:
        target = Target(position, name=name)
        self.spawned.append(target)
        self.targets.add(target)
        return target

    def tick(self, delta_time: float = FIXED_DT):
        return self.machine.update(delta_time)

    def arrive(self) -> None:
        """Teleport the body onto the current navigation target."""
        assert self.navigation.target is not None
        self.body.teleport(self.navigation.target)


def make_machine(
    *,
    position: Vec3Like = (0.0, 0.0, 0.0),
    patrol_points: Sequence[Vec3Like] = PATROL_ROUTE,
    ready: bool = True,
    **config_overrides: float,
) -> MachineWorld:
    """Build a machine wired to a kinematic body and a straight-line navigator.

    With ``ready`` the deferred initial patrol target is flushed, the same as
    the first simulation step would do.
    """
    config = AgentConfig(patrol_points=tuple(patrol_points), **config_overrides)
    body = KinematicBody(position)
    navigation = DirectNavigator(
        lambda: body.position, arrival_threshold=config.arrival_threshold
    )
    audio = AmbientSoundEmitter("guard_hum")
    timers = TimerQueue()
    targets = TargetRegistry()
    machine = BehaviorStateMachine(
        config, body, navigation, audio, timers, targets, name="Guard"
    )
    if ready:
        timers.advance(0.0)
    return MachineWorld(machine, body, navigation, audio, timers, targets)
