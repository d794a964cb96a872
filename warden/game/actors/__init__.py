from .agent import PatrolAgent
from .body import KinematicBody, MotionCommand, MotionSink

__all__ = [
    "KinematicBody",
    "MotionCommand",
    "MotionSink",
    "PatrolAgent",
]
