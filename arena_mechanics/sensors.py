"""Informational sensor probes over an obstacle arena.

The probes never change state; interpreters attach their readings to sensor
cues so a renderer can show what the robot "sees".
"""
from __future__ import annotations

from dataclasses import dataclass
import math
from typing import Dict, Optional

from .arena import ObstacleArena, ObstacleInstance


@dataclass(frozen=True)
class ProbeSettings:
    name: str
    start: float
    max_range: float
    step: float


DISTANCE_PROBE = ProbeSettings(name="distance", start=10.0, max_range=200.0, step=3.0)
BUMP_PROBE = ProbeSettings(name="bump", start=10.0, max_range=30.0, step=5.0)


def _contains(obstacle: ObstacleInstance, px: float, py: float) -> bool:
    type_def = obstacle.type_def
    if type_def is None:
        return False
    return (
        obstacle.x - type_def.half_width <= px <= obstacle.x + type_def.half_width
        and obstacle.y - type_def.half_height <= py <= obstacle.y + type_def.half_height
    )


def _outside_world(px: float, py: float, world_size: float) -> bool:
    return px <= 0.0 or px >= world_size or py <= 0.0 or py >= world_size


def _ray_march(
    arena: ObstacleArena,
    origin: tuple[float, float],
    heading_deg: float,
    world_size: float,
    settings: ProbeSettings,
) -> Optional[float]:
    dx = math.cos(math.radians(heading_deg))
    dy = math.sin(math.radians(heading_deg))
    distance = settings.start
    while distance <= settings.max_range:
        px = origin[0] + dx * distance
        py = origin[1] + dy * distance
        if _outside_world(px, py, world_size):
            return distance
        for obstacle in arena.collidable():
            if obstacle.type_def is not None and obstacle.type_def.solid and _contains(obstacle, px, py):
                return distance
        distance += settings.step
    return None


def distance_ahead(
    arena: ObstacleArena,
    x: float,
    y: float,
    heading_deg: float,
    *,
    world_size: float,
    settings: ProbeSettings = DISTANCE_PROBE,
) -> Optional[float]:
    """Distance in px to the first solid obstacle or world edge, ``None`` if out of range."""
    return _ray_march(arena, (x, y), heading_deg, world_size, settings)


def collision_ahead(
    arena: ObstacleArena,
    x: float,
    y: float,
    heading_deg: float,
    *,
    world_size: float,
    settings: ProbeSettings = BUMP_PROBE,
) -> bool:
    return _ray_march(arena, (x, y), heading_deg, world_size, settings) is not None


def color_below(arena: ObstacleArena, x: float, y: float) -> Optional[str]:
    for zone in arena.of_kind("color_zone"):
        if _contains(zone, x, y):
            return zone.color or "white"
    return None


def scan(
    arena: ObstacleArena, x: float, y: float, heading_deg: float, *, world_size: float
) -> Dict[str, Optional[float]]:
    return {
        label: distance_ahead(arena, x, y, heading_deg + offset, world_size=world_size)
        for label, offset in (("ahead", 0.0), ("right", 90.0), ("behind", 180.0), ("left", -90.0))
    }


__all__ = [
    "ProbeSettings",
    "DISTANCE_PROBE",
    "BUMP_PROBE",
    "distance_ahead",
    "collision_ahead",
    "color_below",
    "scan",
]
