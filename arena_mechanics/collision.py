"""Robot-versus-obstacle collision response."""
from __future__ import annotations

import math
from typing import Iterable

from .arena import ObstacleArena, ObstacleInstance
from .geometry import OrientedRect, check_oriented_overlap, clamp


class CollisionOutcome:
    NONE = "none"
    BLOCKED = "blocked"
    PUSHED = "pushed"


def robot_rect(x: float, y: float, heading_deg: float, half_width: float, half_height: float) -> OrientedRect:
    # The chassis is wider than it is long; its width axis is perpendicular to the heading.
    return OrientedRect(x, y, half_width, half_height, heading_deg + 90.0)


def obstacle_rect(obstacle: ObstacleInstance) -> OrientedRect:
    type_def = obstacle.type_def
    if type_def is None:
        raise ValueError(f"Obstacle '{obstacle.id}' has unknown kind {obstacle.kind!r}")
    return OrientedRect(obstacle.x, obstacle.y, type_def.half_width, type_def.half_height, 0.0)


def _is_blocker(obstacle: ObstacleInstance) -> bool:
    type_def = obstacle.type_def
    return type_def is not None and type_def.solid and obstacle.kind != "pushable"


def resolve_collision(
    rect: OrientedRect,
    obstacle: ObstacleInstance,
    *,
    heading_deg: float,
    push_distance: float,
    world_size: float,
) -> str:
    """Response of a single obstacle to the robot occupying ``rect``.

    Pushables that overlap are shifted ``push_distance`` along the heading and
    clamped so they stay fully inside the world.
    """
    type_def = obstacle.type_def
    if type_def is None or obstacle.carried or not type_def.solid:
        return CollisionOutcome.NONE
    if not check_oriented_overlap(rect, obstacle_rect(obstacle)):
        return CollisionOutcome.NONE
    if obstacle.kind == "pushable":
        rad = math.radians(heading_deg)
        nx = obstacle.x + math.cos(rad) * push_distance
        ny = obstacle.y + math.sin(rad) * push_distance
        obstacle.move_to(
            clamp(nx, type_def.half_width, world_size - type_def.half_width),
            clamp(ny, type_def.half_height, world_size - type_def.half_height),
        )
        obstacle.pushed = True
        return CollisionOutcome.PUSHED
    return CollisionOutcome.BLOCKED


def find_blocker(rect: OrientedRect, obstacles: Iterable[ObstacleInstance]) -> ObstacleInstance | None:
    for obstacle in obstacles:
        if not _is_blocker(obstacle) or obstacle.carried:
            continue
        if check_oriented_overlap(rect, obstacle_rect(obstacle)):
            return obstacle
    return None


def check_collision(
    arena: ObstacleArena,
    rect: OrientedRect,
    *,
    heading_deg: float,
    push_distance: float,
    world_size: float,
) -> str:
    """Arena-wide outcome for the robot at ``rect``.

    Any overlapping blocker wins and leaves pushables untouched; otherwise every
    overlapping pushable is pushed.
    """
    if find_blocker(rect, arena.collidable()) is not None:
        return CollisionOutcome.BLOCKED
    outcome = CollisionOutcome.NONE
    for obstacle in arena.collidable():
        result = resolve_collision(
            rect,
            obstacle,
            heading_deg=heading_deg,
            push_distance=push_distance,
            world_size=world_size,
        )
        if result == CollisionOutcome.PUSHED:
            outcome = CollisionOutcome.PUSHED
    return outcome


__all__ = [
    "CollisionOutcome",
    "robot_rect",
    "obstacle_rect",
    "resolve_collision",
    "find_blocker",
    "check_collision",
]
