"""Motion sink: where an agent's steering output ends up.

The behavior layer computes a desired velocity and facing once per tick and
hands them to a MotionSink. A physics engine would resolve collisions and
slide along walls; KinematicBody simply integrates the velocity.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

import numpy as np

from warden.types import Facing, Vec3, Vec3Like
from warden.util.vectors import vec3


@dataclass(frozen=True, eq=False)
class MotionCommand:
    """What the behavior layer asked for on one tick."""

    velocity: Vec3
    facing: Facing

    @property
    def is_stopped(self) -> bool:
        return not np.any(self.velocity)


@runtime_checkable
class MotionSink(Protocol):
    """Body the agent moves. Receives one MotionCommand per active tick."""

    @property
    def position(self) -> Vec3: ...

    @property
    def facing(self) -> Facing: ...

    def apply_motion(self, command: MotionCommand, delta_time: float) -> None: ...


@dataclass(eq=False)
class KinematicBody:
    """Collision-free body: position advances by velocity * dt each tick.

    Attributes:
        position: Current world position (Y up).
        facing: Yaw about the vertical axis, in radians.
        velocity: Velocity applied on the most recent tick.
        last_command: The most recent MotionCommand received, if any.
    """

    position: Vec3 = field(default_factory=lambda: vec3())
    facing: Facing = 0.0
    velocity: Vec3 = field(default_factory=lambda: vec3())
    last_command: MotionCommand | None = None

    def __post_init__(self) -> None:
        self.position = vec3(self.position)

    def teleport(self, position: Vec3Like) -> None:
        self.position = vec3(position)

    def apply_motion(self, command: MotionCommand, delta_time: float) -> None:
        self.last_command = command
        self.velocity = vec3(command.velocity)
        self.facing = command.facing
        self.position = self.position + self.velocity * delta_time
