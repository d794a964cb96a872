"""Small numpy helpers for 3D vector math.

Vectors are float64 arrays of shape (3,) with Y as the vertical axis.
"""

from __future__ import annotations

import math

import numpy as np

from warden.types import Facing, Vec3, Vec3Like

ZERO = np.zeros(3, dtype=np.float64)
ZERO.flags.writeable = False


def vec3(x: float | Vec3Like = 0.0, y: float = 0.0, z: float = 0.0) -> Vec3:
    """Build a Vec3 from components or from any 3-element sequence.

    Always returns a fresh, writable array.
    """
    if np.isscalar(x):
        return np.array((x, y, z), dtype=np.float64)
    return np.array(x, dtype=np.float64).reshape(3)


def length_squared(v: Vec3) -> float:
    return float(np.dot(v, v))


def distance(a: Vec3, b: Vec3) -> float:
    """Euclidean distance between two points."""
    return float(np.linalg.norm(np.subtract(a, b)))


def normalized(v: Vec3) -> Vec3:
    """Return ``v`` scaled to unit length, or a zero vector if ``v`` is zero."""
    length = float(np.linalg.norm(v))
    if length == 0.0:
        return np.zeros(3, dtype=np.float64)
    return np.asarray(v, dtype=np.float64) / length


def horizontal_heading(v: Vec3) -> Facing:
    """Yaw angle of ``v`` on the ground plane, ignoring the vertical component.

    Zero faces +Z; positive angles turn toward +X.
    """
    return math.atan2(float(v[0]), float(v[2]))


def lerp_angle(start: Facing, end: Facing, weight: float) -> Facing:
    """Interpolate between two angles along the shortest arc.

    ``weight`` is not clamped, matching a plain linear interpolation.
    """
    difference = math.fmod(end - start, math.tau)
    shortest = math.fmod(2.0 * difference, math.tau) - difference
    return start + shortest * weight
