"""Constants for the patrol/investigate/chase behavior controller."""


class BehaviorConstants:
    """Fixed behavior timings and steering tuning. Not per-agent configurable."""

    # Seconds spent looking around after reaching an investigation point
    # before giving up and returning to patrol.
    INVESTIGATE_WAIT_TIME = 3.0

    # Seconds the agent keeps chasing after losing sight of its target.
    # Re-detection inside this window keeps the chase going.
    LOST_SIGHT_GRACE_TIME = 5.0

    # Facing only updates while squared speed exceeds this (avoids jitter
    # when the agent is almost stationary).
    FACING_DEAD_ZONE_SQ = 0.1

    # Angular interpolation gain per second. Multiplied by the step duration,
    # so this is a lerp weight rather than a constant turn rate.
    TURN_GAIN = 5.0


class NavigationConstants:
    """Constants for the reference navigators."""

    # Distance at which an intermediate path waypoint counts as reached.
    PATH_DESIRED_DISTANCE = 1.0

    # Default distance at which the final target counts as reached.
    DEFAULT_ARRIVAL_THRESHOLD = 1.5
