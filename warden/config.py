"""
Configuration for agents and the simulation loop.

Per-agent tuning lives in AgentConfig and is fixed at construction. Values that
are the same for every agent are module constants here or in
warden.constants.behavior.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any

import numpy as np

from warden.constants.behavior import NavigationConstants
from warden.types import FixedTimestep, Vec3

# =============================================================================
# SIMULATION LOOP
# =============================================================================

# Behavior logic runs at exactly 60Hz regardless of how often update() is fed.
FIXED_TIMESTEP = FixedTimestep(1.0 / 60.0)

# Death spiral protection: never run more than this many steps per update().
MAX_LOGIC_STEPS_PER_FRAME = 5

# Frame rate cap used by Simulation.run().
TARGET_FPS = 60


class ConfigurationError(ValueError):
    """Raised when an agent cannot be built from the given configuration.

    This is the only failure surfaced to callers. Construction aborts, so a
    partially configured agent never ticks.
    """


def _as_point(value: Any) -> Vec3:
    point = np.array(value, dtype=np.float64)
    if point.shape != (3,):
        raise ConfigurationError(
            f"Patrol point must have exactly 3 components, got {value!r}"
        )
    if not np.all(np.isfinite(point)):
        raise ConfigurationError(f"Patrol point must be finite, got {value!r}")
    return point


@dataclass(frozen=True, eq=False)
class AgentConfig:
    """Construction-time tuning for one agent.

    Attributes:
        hearing_range: Noises farther than this (Euclidean) are ignored.
        patrol_speed: Movement speed while patrolling or investigating.
        chase_speed: Movement speed while chasing.
        patrol_wait_time: Seconds to pause at each patrol point.
        arrival_threshold: Distance at which navigation counts as finished.
        detection_radius: Radius of the sight trigger around the agent.
        patrol_points: Ordered patrol route. May be empty (agent stands idle).
    """

    hearing_range: float = 15.0
    patrol_speed: float = 2.0
    chase_speed: float = 4.5
    patrol_wait_time: float = 1.0
    arrival_threshold: float = NavigationConstants.DEFAULT_ARRIVAL_THRESHOLD
    detection_radius: float = 8.0
    patrol_points: tuple[Vec3, ...] = field(default=())

    def __post_init__(self) -> None:
        for name in ("hearing_range", "patrol_wait_time", "detection_radius"):
            value = getattr(self, name)
            if not math.isfinite(value) or value < 0:
                raise ConfigurationError(f"{name} must be >= 0, got {value}")
        for name in ("patrol_speed", "chase_speed", "arrival_threshold"):
            value = getattr(self, name)
            if not math.isfinite(value) or value <= 0:
                raise ConfigurationError(f"{name} must be > 0, got {value}")

        points = tuple(_as_point(p) for p in self.patrol_points)
        for point in points:
            # Route is read-only once configured.
            point.flags.writeable = False
        # Frozen dataclass: bypass __setattr__ to store the normalized tuple.
        object.__setattr__(self, "patrol_points", points)
