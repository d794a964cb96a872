"""Navigation capability consumed by the behavior layer.

The behavior state machine never plans paths itself. It talks to a
NavigationPort: set a target point, ask for the next waypoint on the way there,
and ask whether navigation has finished. Two implementations live here:

- DirectNavigator walks a straight line to the target (open ground, tests).
- GridNavigator plans over a walkability grid with tcod's A*.

Both measure progress from a position source (usually the agent body), so
they stay correct no matter who moves the body.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Callable
from typing import Protocol, TypeAlias, runtime_checkable

import numpy as np
import numpy.typing as npt
import tcod.path

from warden.constants.behavior import NavigationConstants
from warden.types import GridCell, Vec3, Vec3Like
from warden.util.vectors import distance, vec3

logger = logging.getLogger(__name__)

PositionSource: TypeAlias = Callable[[], Vec3]


@runtime_checkable
class NavigationPort(Protocol):
    """Path-following capability: where to go next and whether we're there."""

    def set_target(self, point: Vec3Like) -> None: ...

    def next_waypoint(self) -> Vec3: ...

    def is_finished(self) -> bool: ...


class DirectNavigator:
    """Straight-line navigation with no obstacles.

    The next waypoint is always the target itself. Navigation is finished when
    there is no target yet or the position is within ``arrival_threshold``.
    """

    def __init__(
        self,
        position_source: PositionSource,
        *,
        arrival_threshold: float = NavigationConstants.DEFAULT_ARRIVAL_THRESHOLD,
    ) -> None:
        self._position_source = position_source
        self.arrival_threshold = arrival_threshold
        self.target: Vec3 | None = None

    def set_target(self, point: Vec3Like) -> None:
        self.target = vec3(point)

    def next_waypoint(self) -> Vec3:
        if self.target is None:
            return vec3(self._position_source())
        return self.target.copy()

    def is_finished(self) -> bool:
        if self.target is None:
            return True
        return distance(self._position_source(), self.target) <= self.arrival_threshold


class GridNavigator:
    """A* navigation over a 2D walkability grid on the X/Z ground plane.

    Cell ``(ix, iz)`` is centred on world point ``(ix * cell_size, y,
    iz * cell_size)``. The path is planned once per set_target() call; the
    route is not re-planned if the world changes underneath it.

    Attributes:
        walkable: Boolean array indexed ``[x, z]``. True cells can be entered.
        cell_size: World units per grid cell.
        arrival_threshold: Distance to the final target that counts as arrived.
        path_desired_distance: Distance at which an intermediate waypoint is
            considered passed and the next one becomes current.
    """

    def __init__(
        self,
        walkable: npt.ArrayLike,
        position_source: PositionSource,
        *,
        cell_size: float = 1.0,
        arrival_threshold: float = NavigationConstants.DEFAULT_ARRIVAL_THRESHOLD,
        path_desired_distance: float = NavigationConstants.PATH_DESIRED_DISTANCE,
    ) -> None:
        self.walkable = np.asarray(walkable, dtype=bool)
        if self.walkable.ndim != 2:
            raise ValueError(
                f"Walkability grid must be 2D, got shape {self.walkable.shape}"
            )
        if cell_size <= 0:
            raise ValueError(f"cell_size must be > 0, got {cell_size}")
        self._position_source = position_source
        self.cell_size = cell_size
        self.arrival_threshold = arrival_threshold
        self.path_desired_distance = path_desired_distance

        self.target: Vec3 | None = None
        self._waypoints: deque[Vec3] = deque()
        self._unreachable = False

    def cell_at(self, point: Vec3Like) -> GridCell:
        """Grid cell containing ``point``, clamped to the grid bounds."""
        p = vec3(point)
        width, depth = self.walkable.shape
        ix = int(np.floor(p[0] / self.cell_size + 0.5))
        iz = int(np.floor(p[2] / self.cell_size + 0.5))
        return (min(max(ix, 0), width - 1), min(max(iz, 0), depth - 1))

    def cell_center(self, cell: GridCell, y: float = 0.0) -> Vec3:
        return vec3(cell[0] * self.cell_size, y, cell[1] * self.cell_size)

    @property
    def waypoints(self) -> list[Vec3]:
        """Remaining waypoints, current one first."""
        return [w.copy() for w in self._waypoints]

    def set_target(self, point: Vec3Like) -> None:
        self.target = vec3(point)
        start = self.cell_at(self._position_source())
        goal = self.cell_at(self.target)

        cost = np.array(self.walkable, dtype=np.int8)
        astar = tcod.path.AStar(cost=cost, diagonal=1)
        path: list[GridCell] = astar.get_path(start[0], start[1], goal[0], goal[1])

        level = float(self.target[1])
        self._waypoints = deque(self.cell_center(cell, level) for cell in path)
        if self._waypoints:
            # Finish on the exact requested point, not the goal cell's centre.
            self._waypoints[-1] = self.target.copy()
        else:
            self._waypoints.append(self.target.copy())

        self._unreachable = not path and start != goal
        if self._unreachable:
            logger.debug(f"No path from cell {start} to cell {goal}")

    def next_waypoint(self) -> Vec3:
        if self.target is None:
            return vec3(self._position_source())
        position = self._position_source()
        while (
            len(self._waypoints) > 1
            and distance(position, self._waypoints[0]) <= self.path_desired_distance
        ):
            self._waypoints.popleft()
        return self._waypoints[0].copy()

    def is_finished(self) -> bool:
        if self.target is None or self._unreachable:
            return True
        return distance(self._position_source(), self.target) <= self.arrival_threshold
