"""Readiness checks behind the validation panel."""
from __future__ import annotations

import json
import sys
from pathlib import Path

BASE = Path(__file__).resolve().parents[1]
if str(BASE) not in sys.path:
    sys.path.insert(0, str(BASE))

from arena_mechanics.obstacles import ObstaclePlacement  # noqa: E402
from command_library import DEMO_PROGRAMS, PrimitiveFactory, RobotCapabilities  # noqa: E402
from core import export_result, inspect_frame, simulate  # noqa: E402
from core.inspection import CheckStatus  # noqa: E402


def _checks(placements, capabilities=None, commands=()):
    capabilities = capabilities or RobotCapabilities()
    result = simulate(list(commands), capabilities, placements)
    return {c.label: c for c in inspect_frame(result.final, capabilities)}


def test_robot_status_rows() -> None:
    checks = _checks([])
    assert checks["Drive System"].status == CheckStatus.OK
    assert checks["Arm Position"].detail == "0° (Down)"
    assert checks["Claw State"].detail == "Open"
    assert "Carrying" not in checks


def test_liftable_needs_arm_raised() -> None:
    factory = PrimitiveFactory()
    move = factory.make("move", direction="forward", duration=1)
    checks = _checks([ObstaclePlacement("box", "liftable", 200, 55)], commands=[move])
    row = checks["Lift Box (45px)"]
    assert row.status == CheckStatus.WARN
    assert row.detail == "Arm ≥45°"
    assert row.obstacle_id == "box"


def test_ramp_limit_is_reported() -> None:
    checks = _checks([ObstaclePlacement("r", "ramp", 200, 170)])
    assert checks["Ramp (30px)"].status == CheckStatus.OK
    assert checks["Ramp (30px)"].detail == "Ready!"
    no_arm = _checks([ObstaclePlacement("r", "ramp", 200, 170)], RobotCapabilities(has_arm=False))
    assert no_arm["Ramp (30px)"].status == CheckStatus.FAIL
    assert "Arm Position" not in no_arm


def test_far_and_out_of_range_obstacles() -> None:
    checks = _checks(
        [
            ObstaclePlacement("near", "liftable", 200, 140),
            ObstaclePlacement("away", "grabbable", 200, 20),
            ObstaclePlacement("g", "goal", 200, 180),
        ]
    )
    assert checks["Lift Box (60px)"].status == CheckStatus.FAR
    assert checks["Lift Box (60px)"].detail == "Too far"
    assert not any(label.startswith("Grab Ball") for label in checks)
    assert not any(label.startswith("Goal") for label in checks)


def test_export_is_json_serialisable() -> None:
    preset = DEMO_PROGRAMS["Action Show"]
    result = simulate(preset.primitives(), preset.capabilities(), preset.obstacles)
    payload = export_result(result)
    text = json.dumps(payload)
    assert len(payload["frames"]) == len(result.frames)
    assert '"effect": {"type": "beep"}' in text
    assert payload["frames"][-1]["label"] == "Done"
