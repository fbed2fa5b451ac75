"""Leaf mechanics for the 2D robot arena: geometry, obstacles, collisions, probes."""

from .geometry import OrientedRect, check_oriented_overlap, distance_between, normalize_deg
from .obstacles import (
    OBSTACLE_TYPES,
    ObstaclePlacement,
    ObstacleState,
    ObstacleTypeDef,
    Requirements,
    get_obstacle_type,
)
from .arena import ObstacleArena, ObstacleInstance
from .collision import CollisionOutcome, check_collision, resolve_collision, robot_rect

__all__ = [
    "OrientedRect",
    "check_oriented_overlap",
    "distance_between",
    "normalize_deg",
    "OBSTACLE_TYPES",
    "ObstaclePlacement",
    "ObstacleState",
    "ObstacleTypeDef",
    "Requirements",
    "get_obstacle_type",
    "ObstacleArena",
    "ObstacleInstance",
    "CollisionOutcome",
    "check_collision",
    "resolve_collision",
    "robot_rect",
]
