"""Static obstacle type registry and placement records."""
from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional


@dataclass(frozen=True)
class Requirements:
    """Preconditions for interacting with an obstacle kind.

    Every field is optional; ``None`` means the condition is not checked.
    """

    needs_arm: bool = False
    needs_claw: bool = False
    arm_angle_min: Optional[float] = None
    arm_angle_max: Optional[float] = None
    claw_must_be_open: Optional[bool] = None

    def is_unconditional(self) -> bool:
        return (
            not self.needs_arm
            and not self.needs_claw
            and self.arm_angle_min is None
            and self.arm_angle_max is None
            and self.claw_must_be_open is None
        )


@dataclass(frozen=True)
class ObstacleTypeDef:
    kind: str
    label: str
    width: float
    height: float
    interactable: bool = False
    solid: bool = True
    requires: Requirements = field(default_factory=Requirements)
    description: str = ""

    @property
    def half_width(self) -> float:
        return self.width / 2.0

    @property
    def half_height(self) -> float:
        return self.height / 2.0


_TYPES: Dict[str, ObstacleTypeDef] = {
    "barrier": ObstacleTypeDef(
        kind="barrier",
        label="Barrier",
        width=40,
        height=40,
        description="Blocks the robot's path",
    ),
    "wall_h": ObstacleTypeDef(
        kind="wall_h",
        label="Wall (H)",
        width=80,
        height=16,
        description="Horizontal wall segment",
    ),
    "wall_v": ObstacleTypeDef(
        kind="wall_v",
        label="Wall (V)",
        width=16,
        height=80,
        description="Vertical wall segment",
    ),
    "liftable": ObstacleTypeDef(
        kind="liftable",
        label="Lift Box",
        width=30,
        height=30,
        interactable=True,
        requires=Requirements(needs_arm=True, arm_angle_min=45),
        description="Needs arm raised to lift",
    ),
    "grabbable": ObstacleTypeDef(
        kind="grabbable",
        label="Grab Ball",
        width=24,
        height=24,
        interactable=True,
        requires=Requirements(needs_claw=True, claw_must_be_open=False),
        description="Needs claw closed to grab",
    ),
    "pushable": ObstacleTypeDef(
        kind="pushable",
        label="Push Block",
        width=32,
        height=32,
        interactable=True,
        description="Robot can push this",
    ),
    "goal": ObstacleTypeDef(
        kind="goal",
        label="Goal Zone",
        width=50,
        height=50,
        solid=False,
        description="Target destination",
    ),
    # The arm requirement is only reported, never enforced while driving.
    "ramp": ObstacleTypeDef(
        kind="ramp",
        label="Ramp",
        width=40,
        height=24,
        interactable=True,
        solid=False,
        requires=Requirements(needs_arm=True, arm_angle_max=20),
        description="Requires arm down to cross",
    ),
    "color_zone": ObstacleTypeDef(
        kind="color_zone",
        label="Color Zone",
        width=60,
        height=60,
        solid=False,
        description="Floor patch read by the color sensor",
    ),
}

OBSTACLE_TYPES: Mapping[str, ObstacleTypeDef] = MappingProxyType(_TYPES)


def get_obstacle_type(kind: str) -> Optional[ObstacleTypeDef]:
    return OBSTACLE_TYPES.get(kind)


def list_obstacle_kinds() -> List[str]:
    return list(OBSTACLE_TYPES.keys())


@dataclass(frozen=True)
class ObstaclePlacement:
    """Input record: where a user dropped an obstacle."""

    id: str
    kind: str
    x: float
    y: float
    color: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> "ObstaclePlacement":
        kind = data.get("kind") or data.get("type")
        return cls(
            id=str(data["id"]),
            kind=str(kind),
            x=float(data["x"]),  # type: ignore[arg-type]
            y=float(data["y"]),  # type: ignore[arg-type]
            color=data.get("color"),  # type: ignore[arg-type]
        )


@dataclass(frozen=True)
class ObstacleState:
    """Immutable copy of one obstacle at one instant."""

    id: str
    kind: str
    x: float
    y: float
    pushed: bool = False
    lifted: bool = False
    grabbed: bool = False
    color: Optional[str] = None

    @property
    def carried(self) -> bool:
        return self.lifted or self.grabbed

    def as_dict(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "kind": self.kind,
            "x": self.x,
            "y": self.y,
            "pushed": self.pushed,
            "lifted": self.lifted,
            "grabbed": self.grabbed,
            "color": self.color,
        }


__all__ = [
    "Requirements",
    "ObstacleTypeDef",
    "OBSTACLE_TYPES",
    "get_obstacle_type",
    "list_obstacle_kinds",
    "ObstaclePlacement",
    "ObstacleState",
]
