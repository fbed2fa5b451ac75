"""Run-owned collection of mutable obstacle instances."""
from __future__ import annotations

import itertools
import logging
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from .obstacles import ObstaclePlacement, ObstacleState, ObstacleTypeDef, get_obstacle_type

logger = logging.getLogger(__name__)

_run_ids = itertools.count(1)


class ObstacleInstance:
    """One placed obstacle plus its runtime flags."""

    def __init__(
        self,
        *,
        id: str,
        kind: str,
        x: float,
        y: float,
        color: Optional[str] = None,
    ) -> None:
        self.id = id
        self.kind = kind
        self.x = x
        self.y = y
        self.color = color
        self.type_def: Optional[ObstacleTypeDef] = get_obstacle_type(kind)
        self.pushed = False
        self.lifted = False
        self.grabbed = False

    @property
    def inert(self) -> bool:
        return self.type_def is None

    @property
    def carried(self) -> bool:
        return self.lifted or self.grabbed

    def move_to(self, x: float, y: float) -> None:
        self.x = x
        self.y = y

    def snapshot(self) -> ObstacleState:
        return ObstacleState(
            id=self.id,
            kind=self.kind,
            x=self.x,
            y=self.y,
            pushed=self.pushed,
            lifted=self.lifted,
            grabbed=self.grabbed,
            color=self.color,
        )

    def __repr__(self) -> str:
        flags = "".join(
            tag for tag, on in (("P", self.pushed), ("L", self.lifted), ("G", self.grabbed)) if on
        )
        return f"ObstacleInstance({self.id!r}, {self.kind!r}, x={self.x:.1f}, y={self.y:.1f}, {flags or '-'})"


class ObstacleArena:
    """Indexed obstacle instances owned by a single simulation run.

    Every run builds its own arena from placements; instances are never
    shared between arenas.
    """

    def __init__(self, *, owner: Optional[str] = None) -> None:
        self.owner = owner or f"run-{next(_run_ids)}"
        self._instances: Dict[str, ObstacleInstance] = {}

    @classmethod
    def from_placements(
        cls, placements: Iterable[ObstaclePlacement], *, owner: Optional[str] = None
    ) -> "ObstacleArena":
        arena = cls(owner=owner)
        for placement in placements:
            arena.add(
                ObstacleInstance(
                    id=placement.id,
                    kind=placement.kind,
                    x=placement.x,
                    y=placement.y,
                    color=placement.color,
                )
            )
        return arena

    def add(self, instance: ObstacleInstance) -> None:
        if instance.id in self._instances:
            raise ValueError(f"Obstacle '{instance.id}' already exists in arena {self.owner}.")
        if instance.inert:
            logger.debug("arena %s: unknown obstacle kind %r kept as inert", self.owner, instance.kind)
        self._instances[instance.id] = instance

    def get(self, obstacle_id: str) -> ObstacleInstance:
        return self._instances[obstacle_id]

    def find(self, obstacle_id: Optional[str]) -> Optional[ObstacleInstance]:
        if obstacle_id is None:
            return None
        return self._instances.get(obstacle_id)

    def of_kind(self, kind: str) -> List[ObstacleInstance]:
        return [inst for inst in self._instances.values() if inst.kind == kind]

    def collidable(self) -> Iterator[ObstacleInstance]:
        """Known, uncarried instances: the ones collision testing looks at."""
        for inst in self._instances.values():
            if inst.inert or inst.carried:
                continue
            yield inst

    def clear_pushed(self) -> None:
        for inst in self._instances.values():
            inst.pushed = False

    def snapshot(self) -> Tuple[ObstacleState, ...]:
        return tuple(inst.snapshot() for inst in self._instances.values())

    def __len__(self) -> int:
        return len(self._instances)

    def __iter__(self) -> Iterator[ObstacleInstance]:
        return iter(self._instances.values())


__all__ = ["ObstacleInstance", "ObstacleArena"]
