"""
Agent AI: behavior state machine, steering and perception.

Public API:
    BehaviorStateMachine: Patrol/investigate/chase controller for one agent.
    BehaviorState: The three top-level behaviors.
    PerceptionPort: Noise broadcast and directed sight notifications.
    DetectionVolume: Spherical sight trigger around an agent.
    compute_steering: Waypoint -> velocity and smoothed facing.
"""

from .behavior import BehaviorState, BehaviorStateMachine, StateSnapshot
from .perception import DetectionVolume, PerceptionListener, PerceptionPort
from .steering import SteeringOutput, compute_steering

__all__ = [
    "BehaviorState",
    "BehaviorStateMachine",
    "DetectionVolume",
    "PerceptionListener",
    "PerceptionPort",
    "StateSnapshot",
    "SteeringOutput",
    "compute_steering",
]
