"""Perceivable entities and the registry agents resolve them through.

Agents never hold a perceivable entity directly. They remember its TargetId and
ask the TargetRegistry for it every tick, so an entity that has been removed
(or garbage collected) simply resolves to None instead of leaving a dangling
reference behind.
"""

from __future__ import annotations

import itertools
import logging
import weakref
from typing import Protocol, runtime_checkable

from warden.types import TargetId, Vec3, Vec3Like
from warden.util.vectors import vec3

logger = logging.getLogger(__name__)


@runtime_checkable
class Perceivable(Protocol):
    """Something an agent can see and chase."""

    @property
    def target_id(self) -> TargetId: ...

    @property
    def position(self) -> Vec3: ...


class Target:
    """A plain perceivable entity, e.g. the player's avatar.

    The owner moves it by assigning ``position`` or calling move_to().
    """

    _ids = itertools.count(1)

    def __init__(self, position: Vec3Like = (0.0, 0.0, 0.0), name: str = "") -> None:
        self.target_id = TargetId(next(Target._ids))
        self.name = name or f"target-{self.target_id}"
        self.position = vec3(position)

    def move_to(self, position: Vec3Like) -> None:
        self.position = vec3(position)

    def __repr__(self) -> str:
        return f"Target({self.name!r}, position={self.position.tolist()})"


class TargetRegistry:
    """Externally owned index of perceivable entities by id.

    Holds weak references only. Lifetime belongs to whoever created the
    entity; remove() or garbage collection both make resolve() return None.
    """

    def __init__(self) -> None:
        self._targets: weakref.WeakValueDictionary[TargetId, Perceivable] = (
            weakref.WeakValueDictionary()
        )

    def add(self, target: Perceivable) -> TargetId:
        if target.target_id in self._targets:
            raise ValueError(f"Target {target.target_id} is already registered")
        self._targets[target.target_id] = target
        return target.target_id

    def remove(self, target_id: TargetId) -> None:
        """Forget a target. Unknown ids are ignored."""
        self._targets.pop(target_id, None)

    def resolve(self, target_id: TargetId | None) -> Perceivable | None:
        if target_id is None:
            return None
        return self._targets.get(target_id)

    def __contains__(self, target_id: object) -> bool:
        return target_id in self._targets

    def __len__(self) -> int:
        return len(self._targets)

    def all(self) -> list[Perceivable]:
        """Snapshot of the currently live targets."""
        return list(self._targets.values())
