"""Check that the arena probes respond to simple scenes."""
from __future__ import annotations

import sys
from pathlib import Path

BASE = Path(__file__).resolve().parents[1]
if str(BASE) not in sys.path:
    sys.path.insert(0, str(BASE))

from arena_mechanics.arena import ObstacleArena  # noqa: E402
from arena_mechanics.obstacles import ObstaclePlacement  # noqa: E402
from arena_mechanics.sensors import collision_ahead, color_below, distance_ahead, scan  # noqa: E402

WORLD = 400.0


def test_distance_to_world_edge_and_obstacle() -> None:
    empty = ObstacleArena.from_placements([])
    assert distance_ahead(empty, 300, 200, 0, world_size=WORLD) == 100.0
    assert distance_ahead(empty, 200, 200, -90, world_size=WORLD) is None
    walled = ObstacleArena.from_placements([ObstaclePlacement("b", "barrier", 200, 100)])
    assert distance_ahead(walled, 200, 200, -90, world_size=WORLD) == 82.0


def test_non_solid_obstacles_are_invisible_to_rays() -> None:
    arena = ObstacleArena.from_placements([ObstaclePlacement("g", "goal", 200, 150)])
    assert distance_ahead(arena, 200, 200, -90, world_size=WORLD) is None


def test_collision_ahead_is_short_range() -> None:
    near = ObstacleArena.from_placements([ObstaclePlacement("b", "barrier", 200, 170)])
    far = ObstacleArena.from_placements([ObstaclePlacement("b", "barrier", 200, 100)])
    assert collision_ahead(near, 200, 200, -90, world_size=WORLD)
    assert not collision_ahead(far, 200, 200, -90, world_size=WORLD)


def test_color_below_reads_zone_color() -> None:
    arena = ObstacleArena.from_placements(
        [
            ObstaclePlacement("z1", "color_zone", 200, 200, color="red"),
            ObstaclePlacement("z2", "color_zone", 50, 50),
        ]
    )
    assert color_below(arena, 210, 190) == "red"
    assert color_below(arena, 40, 60) == "white"
    assert color_below(arena, 300, 300) is None


def test_scan_reports_four_directions() -> None:
    arena = ObstacleArena.from_placements([])
    readings = scan(arena, 300, 200, 0, world_size=WORLD)
    assert set(readings) == {"ahead", "right", "behind", "left"}
    assert readings["ahead"] == 100.0
    assert readings["behind"] is None
