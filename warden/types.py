from __future__ import annotations

from typing import NewType, TypeAlias

import numpy as np
import numpy.typing as npt

# =============================================================================
# SPATIAL TYPES
# =============================================================================

# World-space point or direction. Always a float64 array of shape (3,).
# Y is the vertical axis; the ground plane is X/Z.
Vec3: TypeAlias = npt.NDArray[np.float64]

# Anything convertible to a Vec3, e.g. (4.0, 0.0, -2.0).
Vec3Like: TypeAlias = Vec3 | tuple[float, float, float] | list[float]

# Rotation about the vertical axis, in radians.
Facing: TypeAlias = float

# Integer cell on a navigation grid, indexed (x, z).
GridCell: TypeAlias = tuple[int, int]

# =============================================================================
# TIME-RELATED TYPES
# =============================================================================

# Real-world time elapsed between two frames. Variable.
DeltaTime = NewType("DeltaTime", float)

# The fixed duration of a single simulation step (e.g., 1/60th of a second).
# Behavior ticks, steering and deferred timers all advance by this amount.
FixedTimestep = NewType("FixedTimestep", float)

# =============================================================================
# IDENTIFIERS
# =============================================================================

# Identifier of a perceivable entity (usually the player). Agents hold these
# rather than object references and re-resolve them every tick.
TargetId = NewType("TargetId", int)

# Identifier of a behavior-controlled agent, assigned sequentially.
AgentId = NewType("AgentId", int)

# Unique identifier for sound definitions (e.g., "guard_hum")
SoundId: TypeAlias = str
