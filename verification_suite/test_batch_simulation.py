"""Batch scheduler: frames, trail, interactions and cue bursts."""
from __future__ import annotations

import sys
from pathlib import Path

import pytest

BASE = Path(__file__).resolve().parents[1]
if str(BASE) not in sys.path:
    sys.path.insert(0, str(BASE))

from arena_mechanics.obstacles import ObstaclePlacement  # noqa: E402
from command_library import DEMO_PROGRAMS, PrimitiveFactory, RobotCapabilities, primitives_from_dicts  # noqa: E402
from core import SimulationConfig, simulate  # noqa: E402

CONFIG = SimulationConfig()
STEP = CONFIG.step_distance


def _program(*specs):
    factory = PrimitiveFactory()
    return [factory.make(intent, **slots) for intent, slots in specs]


def _labels(result):
    return [frame.label for frame in result.frames]


def test_identical_inputs_give_identical_frames() -> None:
    preset = DEMO_PROGRAMS["Grab & Turn"]
    first = simulate(preset.primitives(), preset.capabilities(), preset.obstacles)
    second = simulate(preset.primitives(), preset.capabilities(), preset.obstacles)
    assert first == second
    assert len(first.frames) > 0


def test_square_returns_to_start() -> None:
    program = _program(
        ("repeat", {"times": 4}),
        ("move", {"direction": "forward", "duration": 1.5}),
        ("turn", {"direction": "right", "degrees": 90}),
        ("stop_repeat", {}),
    )
    result = simulate(program)
    final = result.final.pose
    assert abs(final.x - 200) < STEP
    assert abs(final.y - 200) < STEP
    assert final.heading == pytest.approx(270)
    assert len(result.trail) == 1 + 4 * 45
    assert min(y for _, y in result.trail) == pytest.approx(50)


def test_plain_move_frame_count_and_labels() -> None:
    result = simulate(_program(("move", {"direction": "forward", "duration": 1})))
    labels = _labels(result)
    assert labels.count("Moving forward") == 30
    assert labels[-1] == "Done"
    assert labels.count("Done") == CONFIG.burst_frames("done")
    assert result.final.pose.y == pytest.approx(100)


def test_code_distance_move() -> None:
    result = simulate(_program(("move", {"distance_mm": 100.0})))
    assert result.final.pose.y == pytest.approx(150)
    assert _labels(result).count("Moving forward") == 15
    back = simulate(_program(("move", {"distance_mm": -40.0})))
    assert back.final.pose.y == pytest.approx(220)
    assert "Moving backward" in _labels(back)


def test_lift_then_set_down() -> None:
    placements = [ObstaclePlacement("box", "liftable", 200, 55)]
    program = _program(
        ("move", {"direction": "forward", "duration": 1}),
        ("arm_up", {"angle": 90}),
    )
    lifted = simulate(program, placements=placements)
    assert lifted.final.pose.carrying_id == "box"
    assert lifted.final.obstacle("box").lifted
    assert "Lifting!" in _labels(lifted)
    assert lifted.final.obstacle("box").y == pytest.approx(lifted.final.pose.y - CONFIG.carry_offset)

    program.append(PrimitiveFactory(start=10).make("arm_down", angle=0))
    lowered = simulate(program, placements=placements)
    assert lowered.final.pose.carrying_id is None
    assert not lowered.final.obstacle("box").lifted
    assert "Set down" in _labels(lowered)
    assert lowered.final.pose.arm_angle == 0


def test_lift_needs_raised_arm() -> None:
    placements = [ObstaclePlacement("box", "liftable", 200, 160)]
    result = simulate(_program(("arm_up", {"angle": 30})), placements=placements)
    assert result.final.pose.carrying_id is None
    assert result.final.pose.arm_angle == 30


def test_blocked_move_stops_after_three_frames() -> None:
    placements = [ObstaclePlacement("wall", "barrier", 200, 162)]
    result = simulate(_program(("move", {"direction": "forward", "duration": 1})), placements=placements)
    blocked = [f for f in result.frames if f.label == "Blocked!"]
    assert len(blocked) == 3
    assert all(f.event is not None and f.event.type == "collision" for f in blocked)
    assert (result.final.pose.x, result.final.pose.y) == (200, 200)
    assert len(result.trail) == 1


def test_move_until_wall_stops_at_first_block() -> None:
    placements = [ObstaclePlacement("wall", "barrier", 200, 100)]
    result = simulate(_program(("move_until_wall", {"direction": "forward"})), placements=placements)
    assert _labels(result).count("Wall reached") == 1
    assert result.final.pose.y == pytest.approx(200 - 19 * STEP)


def test_pushing_moves_the_block() -> None:
    placements = [ObstaclePlacement("p", "pushable", 200, 150)]
    result = simulate(_program(("move", {"direction": "forward", "duration": 1})), placements=placements)
    assert "Pushing!" in _labels(result)
    assert result.final.obstacle("p").y < 150
    assert result.final.pose.y == pytest.approx(100)


def test_arm_angle_stays_in_range() -> None:
    program = _program(
        ("arm_up", {"angle": 500}),
        ("arm_down", {"angle": -90}),
        ("motor_angle", {"angle": 270}),
    )
    result = simulate(program)
    assert all(0 <= f.pose.arm_angle <= 180 for f in result.frames)
    assert max(f.pose.arm_angle for f in result.frames) == 180


def test_grab_release_and_carry_exclusivity() -> None:
    placements = [
        ObstaclePlacement("ball1", "grabbable", 200, 160),
        ObstaclePlacement("ball2", "grabbable", 160, 180),
    ]
    program = _program(("claw_close", {}), ("claw_close", {}), ("claw_open", {}))
    result = simulate(program, placements=placements)
    labels = _labels(result)
    assert "Grabbed!" in labels
    assert "Warning: Already carrying" in labels
    assert "Released" in labels
    for frame in result.frames:
        carried = [s for s in frame.obstacles if s.lifted or s.grabbed]
        assert len(carried) <= 1
        if frame.pose.carrying_id is not None:
            assert [s.id for s in carried] == [frame.pose.carrying_id]
    assert result.final.pose.carrying_id is None


def test_claw_warnings() -> None:
    lonely = simulate(_program(("claw_close", {})))
    warnings = [f.event.message for f in lonely.frames if f.event and f.event.type == "warning"]
    assert warnings[0] == "No grabbable nearby"

    placements = [ObstaclePlacement("ball", "grabbable", 200, 160)]
    no_claw = RobotCapabilities(has_claw=False)
    result = simulate(_program(("claw_close", {})), no_claw, placements)
    assert "Warning: Robot has no claw" in _labels(result)
    assert result.final.pose.carrying_id is None


def test_goal_success_and_miss() -> None:
    move = _program(("move", {"direction": "forward", "duration": 1}))
    hit = simulate(move, placements=[ObstaclePlacement("g", "goal", 200, 120)])
    assert "Goal reached!" in _labels(hit)
    assert any(f.event and f.event.type == "success" for f in hit.frames)

    miss = simulate([], placements=[ObstaclePlacement("g", "goal", 350, 350)])
    assert "Missed goal (212px away)" in _labels(miss)


def test_stop_does_not_end_the_program() -> None:
    result = simulate(_program(("stop", {}), ("beep", {})))
    labels = _labels(result)
    assert labels.count("Stopped") == CONFIG.burst_frames("stop")
    assert "Beep!" in labels


def test_cue_effects_sit_on_first_burst_frame() -> None:
    program = _program(
        ("beep", {}),
        ("say", {"phrase": "hi"}),
        ("light", {"color": "green"}),
        ("run_motor", {"power": 75}),
    )
    result = simulate(program)
    beeps = [f for f in result.frames if f.label == "Beep!"]
    assert len(beeps) == 12
    assert beeps[0].effect.type == "beep"
    assert all(f.effect is None for f in beeps[1:])
    effects = [f.effect for f in result.frames if f.effect is not None]
    assert [e.type for e in effects] == ["beep", "say", "light", "motor_run"]
    assert effects[1].data["phrase"] == "hi"
    assert effects[2].data == {"color": "green", "has_color_light_matrix": False}
    assert effects[3].data["power"] == 75


def test_sensor_checks_are_informational() -> None:
    placements = [ObstaclePlacement("z", "color_zone", 200, 200, color="red")]
    result = simulate(_program(("if_color", {"color": "red"}), ("scan", {})), placements=placements)
    sensor = [f.effect for f in result.frames if f.effect is not None]
    assert sensor[0].data["sensor"] == "color"
    assert sensor[0].data["reading"] == "red"
    assert sensor[1].data["sensor"] == "scan"
    assert set(sensor[1].data["reading"]) == {"ahead", "right", "behind", "left"}
    assert "Checking color..." in _labels(result)
    assert (result.final.pose.x, result.final.pose.y) == (200, 200)


def test_robot_without_drive_stays_put() -> None:
    caps = RobotCapabilities(has_drive=False)
    result = simulate(_program(("move", {"duration": 1})), caps)
    assert "Warning: Robot has no drive" in _labels(result)
    assert (result.final.pose.x, result.final.pose.y) == (200, 200)


def test_unknown_intents_and_kinds_are_ignored() -> None:
    placements = [ObstaclePlacement("x", "lava", 200, 180)]
    result = simulate(_program(("dance", {}), ("move", {"duration": 0.5})), placements=placements)
    assert result.final.pose.y == pytest.approx(150)
    assert result.final.obstacle("x").kind == "lava"


def test_wait_holds_pose() -> None:
    result = simulate(_program(("wait", {"ms": 500})))
    assert _labels(result).count("Waiting") == 15


def test_numeric_strings_in_slots_are_read_as_numbers() -> None:
    commands = primitives_from_dicts(
        [
            {"intent": "move", "slots": {"duration": "0.5"}},
            {"intent": "turn", "slots": {"direction": "right", "degrees": "90"}},
        ]
    )
    assert commands[0].raw == "move forward 0.5s"
    result = simulate(commands)
    assert result.final.pose.y == pytest.approx(150)
    assert result.final.pose.heading == pytest.approx(0)


@pytest.mark.parametrize(
    "entry, check",
    [
        ({"intent": "move", "slots": {"duration": "fast"}}, lambda pose: pose.y == pytest.approx(100)),
        ({"intent": "move", "slots": {"distance_mm": [1]}}, lambda pose: pose.y == pytest.approx(100)),
        ({"intent": "turn", "slots": {"degrees": "lots"}}, lambda pose: pose.heading == pytest.approx(0)),
        ({"intent": "arm_up", "slots": {"angle": "high"}}, lambda pose: pose.arm_angle == 90),
        ({"intent": "wait", "slots": {"ms": "soon"}}, lambda pose: pose.y == 200),
    ],
)
def test_garbage_slots_fall_back_to_defaults(entry, check) -> None:
    commands = primitives_from_dicts([entry])
    result = simulate(commands)
    assert result.final.label == "Done"
    assert check(result.final.pose)
