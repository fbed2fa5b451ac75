"""Tick-driven interpreter: events, playback control and shared rules."""
from __future__ import annotations

import sys
from pathlib import Path

import pytest

BASE = Path(__file__).resolve().parents[1]
if str(BASE) not in sys.path:
    sys.path.insert(0, str(BASE))

from arena_mechanics.obstacles import ObstaclePlacement  # noqa: E402
from command_library import PrimitiveFactory, RobotCapabilities  # noqa: E402
from core.batch import simulate  # noqa: E402
from core.events import EventBus, EventRecorder, RobotEvents  # noqa: E402
from core.realtime import RealtimeInterpreter  # noqa: E402

TICK_MS = 1000.0 / 30.0


def _program(*specs):
    factory = PrimitiveFactory()
    return [factory.make(intent, **slots) for intent, slots in specs]


def _interpreter(placements=(), capabilities=None):
    bus = EventBus()
    interp = RealtimeInterpreter(capabilities, placements, bus=bus)
    return interp, bus


def test_lifecycle_events_in_order() -> None:
    interp, bus = _interpreter()
    recorder = EventRecorder(
        bus, [RobotEvents.COMMAND_START, RobotEvents.COMMAND_COMPLETE, RobotEvents.ALL_COMMANDS_DONE]
    )
    interp.load_commands(_program(("move", {"direction": "forward", "duration": 1})))
    interp.run_until_done(TICK_MS)
    assert recorder.names() == [
        RobotEvents.COMMAND_START,
        RobotEvents.COMMAND_COMPLETE,
        RobotEvents.ALL_COMMANDS_DONE,
    ]
    assert interp.finished
    assert interp.pose.y == pytest.approx(100)
    assert interp.pose.x == pytest.approx(200)


def test_pause_freezes_and_resume_continues() -> None:
    interp, bus = _interpreter()
    interp.load_commands(_program(("move", {"direction": "forward", "duration": 1})))
    interp.update(100)
    assert interp.velocity[1] == pytest.approx(-100)
    bus.emit(RobotEvents.PAUSE)
    frozen = interp.pose
    interp.update(500)
    assert interp.pose == frozen
    assert interp.velocity == (0.0, 0.0)
    bus.emit(RobotEvents.PLAY)
    interp.update(100)
    assert interp.pose.y < frozen.y


def test_reset_restores_initial_pose() -> None:
    interp, bus = _interpreter([ObstaclePlacement("p", "pushable", 200, 150)])
    done = EventRecorder(bus, [RobotEvents.ALL_COMMANDS_DONE])
    interp.load_commands(_program(("turn", {"direction": "right", "degrees": 90}), ("beep", {})))
    interp.update(200)
    bus.emit(RobotEvents.RESET)
    assert (interp.pose.x, interp.pose.y, interp.pose.heading) == (200, 200, -90)
    assert interp.pose.arm_angle == 0 and interp.pose.claw_open
    assert interp.queue_length == 0
    assert interp.current_command is None
    assert interp.arena.get("p").y == 150
    interp.update(TICK_MS)
    assert interp.finished
    assert len(done.of(RobotEvents.ALL_COMMANDS_DONE)) == 1


def test_turn_lands_on_target_heading() -> None:
    interp, bus = _interpreter()
    headings = EventRecorder(bus, [RobotEvents.HEADING_CHANGED])
    interp.load_commands(_program(("turn", {"direction": "left", "degrees": 90})))
    interp.run_until_done(TICK_MS)
    assert interp.pose.heading == -180
    assert len(headings.records) >= 15


def test_blocked_drive_aborts_after_three_ticks() -> None:
    interp, bus = _interpreter([ObstaclePlacement("wall", "barrier", 200, 162)])
    collisions = EventRecorder(bus, [RobotEvents.COLLISION])
    interp.load_commands(_program(("move", {"direction": "forward", "duration": 1})))
    interp.run_until_done(TICK_MS)
    assert len(collisions.records) == 3
    assert (interp.pose.x, interp.pose.y) == (200, 200)


@pytest.mark.parametrize("tick_ms", [TICK_MS, 1000.0, 1500.0])
def test_long_ticks_cannot_cross_a_wall(tick_ms) -> None:
    wall = [ObstaclePlacement("w", "wall_h", 200, 100)]
    program = _program(("move", {"direction": "forward", "duration": 1.5}))
    expected = simulate(program, placements=wall).final.pose
    interp, bus = _interpreter(wall)
    collisions = EventRecorder(bus, [RobotEvents.COLLISION])
    interp.load_commands(program)
    interp.run_until_done(tick_ms)
    assert interp.pose.y > 108
    assert interp.pose.y == pytest.approx(expected.y)
    assert collisions.records


def test_garbage_slots_do_not_stop_the_run() -> None:
    interp, bus = _interpreter()
    done = EventRecorder(bus, [RobotEvents.ALL_COMMANDS_DONE])
    interp.load_commands(
        _program(
            ("move", {"duration": "0.5"}),
            ("arm_up", {"angle": "high"}),
            ("wait", {"ms": "soon"}),
        )
    )
    interp.run_until_done(TICK_MS)
    assert done.records
    assert interp.pose.y == pytest.approx(150)
    assert interp.pose.arm_angle == 90


def test_stop_ends_the_run() -> None:
    interp, bus = _interpreter()
    recorder = EventRecorder(bus, [RobotEvents.BEEP, RobotEvents.ALL_COMMANDS_DONE])
    interp.load_commands(_program(("stop", {}), ("beep", {})))
    interp.update(TICK_MS)
    assert interp.finished
    assert recorder.names() == [RobotEvents.ALL_COMMANDS_DONE]
    interp.update(TICK_MS)
    assert recorder.names() == [RobotEvents.ALL_COMMANDS_DONE]


def test_forever_cap_is_twenty() -> None:
    interp, bus = _interpreter()
    loaded = EventRecorder(bus, [RobotEvents.COMMANDS_LOADED])
    interp.load_commands(_program(("repeat_forever", {}), ("beep", {}), ("stop_repeat", {})))
    assert interp.queue_length == 20
    assert loaded.of(RobotEvents.COMMANDS_LOADED) == [(20,)]


def test_lift_and_drop_events() -> None:
    interp, bus = _interpreter([ObstaclePlacement("box", "liftable", 200, 55)])
    recorder = EventRecorder(bus, [RobotEvents.OBJECT_PICKED_UP, RobotEvents.OBJECT_DROPPED])
    interp.load_commands(
        _program(
            ("move", {"direction": "forward", "duration": 1}),
            ("arm_up", {"angle": 90}),
            ("arm_down", {"angle": 0}),
        )
    )
    interp.run_until_done(TICK_MS)
    assert recorder.records == [
        (RobotEvents.OBJECT_PICKED_UP, ("box",)),
        (RobotEvents.OBJECT_DROPPED, ("box",)),
    ]
    assert interp.pose.carrying_id is None
    assert not interp.arena.get("box").lifted


def test_claw_grab_and_warning() -> None:
    interp, bus = _interpreter([ObstaclePlacement("ball", "grabbable", 200, 160)])
    recorder = EventRecorder(bus, [RobotEvents.CLAW_CHANGED, RobotEvents.OBJECT_PICKED_UP, RobotEvents.WARNING])
    interp.load_commands(_program(("claw_close", {}), ("claw_close", {})))
    interp.run_until_done(TICK_MS)
    assert recorder.of(RobotEvents.OBJECT_PICKED_UP) == [("ball",)]
    assert recorder.of(RobotEvents.CLAW_CHANGED) == [(False,), (False,)]
    assert recorder.of(RobotEvents.WARNING) == [("No grabbable nearby",)]


def test_goal_reached_once() -> None:
    interp, bus = _interpreter([ObstaclePlacement("g", "goal", 200, 120)])
    goals = EventRecorder(bus, [RobotEvents.GOAL_REACHED])
    interp.load_commands(_program(("move", {"direction": "forward", "duration": 1})))
    interp.run_until_done(TICK_MS)
    assert goals.of(RobotEvents.GOAL_REACHED) == [("g",)]


def test_cues_and_sensor_readings() -> None:
    interp, bus = _interpreter([ObstaclePlacement("z", "color_zone", 200, 200, color="blue")])
    recorder = EventRecorder(
        bus, [RobotEvents.BEEP, RobotEvents.SAY, RobotEvents.LIGHT, RobotEvents.SENSOR_READING]
    )
    interp.load_commands(
        _program(("beep", {}), ("say", {"phrase": "yo"}), ("light", {"color": "red"}), ("light_off", {}), ("if_color", {}))
    )
    interp.run_until_done(TICK_MS)
    assert recorder.names() == [
        RobotEvents.BEEP,
        RobotEvents.SAY,
        RobotEvents.LIGHT,
        RobotEvents.LIGHT,
        RobotEvents.SENSOR_READING,
    ]
    assert recorder.of(RobotEvents.LIGHT) == [("red",), (None,)]
    payload = recorder.of(RobotEvents.SENSOR_READING)[0][0]
    assert payload["type"] == "if_color"
    assert payload["reading"] == "blue"


def test_no_drive_warns_and_stays_put() -> None:
    interp, bus = _interpreter(capabilities=RobotCapabilities(has_drive=False))
    warnings = EventRecorder(bus, [RobotEvents.WARNING])
    interp.load_commands(_program(("move", {"duration": 1})))
    interp.run_until_done(TICK_MS)
    assert warnings.of(RobotEvents.WARNING) == [("Robot has no drive",)]
    assert (interp.pose.x, interp.pose.y) == (200, 200)


def test_destroy_unsubscribes_controls() -> None:
    interp, bus = _interpreter()
    assert bus.listener_count(RobotEvents.PLAY) == 1
    interp.destroy()
    assert bus.listener_count(RobotEvents.PLAY) == 0
    assert bus.listener_count(RobotEvents.RESET) == 0


def test_bus_tolerates_unsubscribe_during_emit() -> None:
    bus = EventBus()
    seen = []

    def once(value):
        seen.append(value)
        bus.off("X", once)

    bus.on("X", once)
    bus.on("X", lambda value: seen.append(value * 10))
    bus.emit("X", 1)
    bus.emit("X", 2)
    assert seen == [1, 10, 20]
