"""Steering: turn a path waypoint into a velocity and a facing.

Pure functions, no state. The caller decides the speed (chase vs. patrol) and
only calls in while navigation is still running; once navigation has finished
the caller commands zero velocity instead.

Facing is smoothed with an angle-aware lerp whose weight is
``TURN_GAIN * delta_time``. That is not a constant turn rate: a higher tick
rate means more, smaller lerp steps. With a fixed timestep the behavior is
deterministic, which is all the simulation needs.
"""

from __future__ import annotations

from dataclasses import dataclass

from warden.constants.behavior import BehaviorConstants as Behavior
from warden.types import Facing, Vec3
from warden.util.vectors import horizontal_heading, length_squared, lerp_angle
from warden.util.vectors import normalized as normalize


@dataclass(frozen=True, eq=False)
class SteeringOutput:
    """Desired motion for one tick.

    Attributes:
        velocity: Desired velocity; its length equals the requested speed
            unless the waypoint coincides with the current position.
        facing: New yaw, possibly unchanged (see dead zone).
    """

    velocity: Vec3
    facing: Facing


def desired_velocity(position: Vec3, waypoint: Vec3, speed: float) -> Vec3:
    """Velocity pointing from ``position`` at ``waypoint`` with length ``speed``."""
    return normalize(waypoint - position) * speed


def steer_facing(current: Facing, velocity: Vec3, delta_time: float) -> Facing:
    """Advance ``current`` toward the ground-plane heading of ``velocity``.

    Vertical velocity is ignored, so the agent never pitches. Inside the dead
    zone (squared speed <= FACING_DEAD_ZONE_SQ) the facing is returned as is.
    """
    if length_squared(velocity) <= Behavior.FACING_DEAD_ZONE_SQ:
        return current
    target = horizontal_heading(velocity)
    return lerp_angle(current, target, Behavior.TURN_GAIN * delta_time)


def compute_steering(
    position: Vec3,
    waypoint: Vec3,
    speed: float,
    facing: Facing,
    delta_time: float,
) -> SteeringOutput:
    """Velocity toward ``waypoint`` plus a smoothed facing for this tick."""
    velocity = desired_velocity(position, waypoint, speed)
    return SteeringOutput(velocity, steer_facing(facing, velocity, delta_time))
