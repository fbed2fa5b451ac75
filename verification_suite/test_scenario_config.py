"""Scenario files, config validation and interpreter inputs."""
from __future__ import annotations

import json
import sys
from pathlib import Path

import pytest

BASE = Path(__file__).resolve().parents[1]
if str(BASE) not in sys.path:
    sys.path.insert(0, str(BASE))

from command_library import DEMO_PROGRAMS  # noqa: E402
from core.config import (  # noqa: E402
    CommandConfig,
    ObstaclePlacementConfig,
    ScenarioConfig,
    SimulationConfig,
    load_scenario,
    save_scenario,
    scenario_from_preset,
    to_inputs,
)


def test_scenario_roundtrip(tmp_path: Path) -> None:
    scenario = scenario_from_preset(DEMO_PROGRAMS["Lift & Carry"])
    path = tmp_path / "nested" / "lift.json"
    save_scenario(path, scenario)
    loaded = load_scenario(path)
    assert loaded == scenario
    assert isinstance(loaded.commands[0], CommandConfig)
    assert isinstance(loaded.obstacles[0], ObstaclePlacementConfig)
    assert isinstance(loaded.simulation, SimulationConfig)


def test_partial_simulation_block_keeps_defaults(tmp_path: Path) -> None:
    path = tmp_path / "fast.json"
    path.write_text(json.dumps({"name": "fast", "simulation": {"fps": 60}}), encoding="utf-8")
    loaded = load_scenario(path)
    assert loaded.simulation.fps == 60
    assert loaded.simulation.speed_px_per_s == 100
    assert loaded.simulation.step_distance == pytest.approx(100 / 60)


def test_unknown_keys_are_rejected(tmp_path: Path) -> None:
    path = tmp_path / "bad.json"
    path.write_text(json.dumps({"name": "bad", "gravity": 9.8}), encoding="utf-8")
    with pytest.raises(TypeError):
        load_scenario(path)


def test_config_validation() -> None:
    with pytest.raises(ValueError):
        SimulationConfig(fps=0)
    with pytest.raises(ValueError):
        SimulationConfig(speed_px_per_s=-1)
    with pytest.raises(ValueError):
        SimulationConfig(bursts={"beep": 0.4})


def test_burst_lengths() -> None:
    config = SimulationConfig()
    assert config.burst_frames("say") == 18
    assert config.burst_frames("claw") == 12
    assert config.burst_frames("success") == 9
    assert config.burst_ms("beep") == 400
    assert config.push_distance == pytest.approx(100 / 30 * 0.8)
    assert config.start_position == (200, 200)


def test_inputs_from_commands_unpack() -> None:
    scenario = scenario_from_preset(DEMO_PROGRAMS["Push Maze"])
    primitives, capabilities, placements = to_inputs(scenario)
    assert [p.intent for p in primitives] == ["move", "turn", "move", "stop"]
    assert capabilities.has_arm and capabilities.has_claw
    assert {p.kind for p in placements} == {"pushable", "wall_v", "goal"}


def test_code_wins_over_commands() -> None:
    scenario = ScenarioConfig(
        commands=[CommandConfig(intent="beep")],
        code="robot.straight(100)\n",
    )
    inputs = to_inputs(scenario)
    assert [p.intent for p in inputs.primitives] == ["move"]
    assert inputs.parse_error is None


def test_parse_error_gives_empty_program() -> None:
    scenario = ScenarioConfig(code="robot.straight(10)\n    robot.turn(90)\n")
    inputs = to_inputs(scenario)
    assert inputs.primitives == []
    assert "unexpected indent" in inputs.parse_error


def test_ports_override_chassis() -> None:
    scenario = ScenarioConfig(chassis="arm_bot", ports={"A": "wheel_left", "B": "wheel_right"})
    capabilities = to_inputs(scenario).capabilities
    assert capabilities.has_drive
    assert not capabilities.has_arm
    assert not capabilities.has_claw
