"""Simulation policy constants, scenario files and JSON helpers."""
from __future__ import annotations

from dataclasses import dataclass, asdict, field
import json
import logging
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Tuple, get_type_hints, get_origin, get_args

from arena_mechanics.geometry import round_half_up
from arena_mechanics.obstacles import ObstaclePlacement
from command_library.code_parser import parse_code
from command_library.presets import RobotCapabilities, ScenarioPreset, get_chassis
from command_library.primitives import CommandPrimitive, PrimitiveFactory, primitives_from_dicts

logger = logging.getLogger(__name__)

# Cue durations in seconds, shared by the batch bursts and the real-time timers.
DEFAULT_BURSTS: Dict[str, float] = {
    "success": 0.3,
    "warning": 0.3,
    "stop": 0.3,
    "light": 0.3,
    "claw": 0.4,
    "beep": 0.4,
    "sensor": 0.5,
    "motor": 0.5,
    "goal": 0.5,
    "done": 0.5,
    "say": 0.6,
}


@dataclass
class SimulationConfig:
    world_size: float = 400.0  # 4 m at 100 px/m
    fps: int = 30
    speed_px_per_s: float = 100.0
    turn_deg_per_s: float = 180.0
    arm_deg_per_s: float = 120.0
    interact_dist: float = 50.0
    goal_capture_radius: float = 40.0
    robot_half_width: float = 44.0 * 0.45
    robot_half_height: float = 44.0 * 0.35
    edge_margin: float = 4.0
    push_factor: float = 0.8
    carry_offset: float = 20.0
    max_consecutive_blocks: int = 3
    batch_forever_cap: int = 3
    realtime_forever_cap: int = 20
    mm_to_px: float = 0.5
    code_speed_mm_per_s: float = 200.0
    until_wall_max_s: float = 4.0
    start_heading: float = -90.0  # facing up
    bursts: Dict[str, float] = field(default_factory=lambda: dict(DEFAULT_BURSTS))

    def __post_init__(self) -> None:
        if int(self.fps) != self.fps or self.fps <= 0:
            raise ValueError(f"fps must be a positive integer, got {self.fps!r}")
        for name in ("world_size", "speed_px_per_s", "turn_deg_per_s", "arm_deg_per_s", "code_speed_mm_per_s"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive, got {getattr(self, name)!r}")
        for name in ("max_consecutive_blocks", "batch_forever_cap", "realtime_forever_cap"):
            value = getattr(self, name)
            if not isinstance(value, int) or value < 0:
                raise ValueError(f"{name} must be a non-negative integer, got {value!r}")
        if self.edge_margin * 2 >= self.world_size:
            raise ValueError("edge_margin leaves no room inside the world")
        missing = set(DEFAULT_BURSTS) - set(self.bursts)
        if missing:
            raise ValueError(f"bursts table is missing {sorted(missing)}")

    @property
    def step_distance(self) -> float:
        """Distance covered by one sub-step of a timed move."""
        return self.speed_px_per_s / self.fps

    @property
    def push_distance(self) -> float:
        return self.step_distance * self.push_factor

    @property
    def start_position(self) -> Tuple[float, float]:
        return (self.world_size / 2.0, self.world_size / 2.0)

    def burst_frames(self, name: str) -> int:
        return round_half_up(self.bursts[name] * self.fps)

    def burst_ms(self, name: str) -> float:
        return self.bursts[name] * 1000.0


@dataclass
class CommandConfig:
    intent: str
    slots: Dict[str, object] = field(default_factory=dict)
    raw: str = ""


@dataclass
class ObstaclePlacementConfig:
    id: str
    kind: str
    x: float
    y: float
    color: Optional[str] = None

    def to_placement(self) -> ObstaclePlacement:
        return ObstaclePlacement(id=self.id, kind=self.kind, x=float(self.x), y=float(self.y), color=self.color)


@dataclass
class ScenarioConfig:
    """One runnable scenario: robot chassis, program and obstacle layout.

    ``code`` wins over ``commands`` when both are present.
    """

    name: str = "scenario"
    chassis: str = "arm_bot"
    ports: Optional[Dict[str, str]] = None
    commands: List[CommandConfig] = field(default_factory=list)
    code: Optional[str] = None
    obstacles: List[ObstaclePlacementConfig] = field(default_factory=list)
    simulation: SimulationConfig = field(default_factory=SimulationConfig)


@dataclass
class ScenarioInputs:
    """Interpreter inputs built from a scenario."""

    primitives: List[CommandPrimitive]
    capabilities: RobotCapabilities
    placements: List[ObstaclePlacement]
    parse_error: Optional[str] = None

    def __iter__(self) -> Iterator[object]:
        """Allow unpacking: primitives, capabilities, placements = to_inputs(cfg)."""
        return iter((self.primitives, self.capabilities, self.placements))


def to_inputs(config: ScenarioConfig, factory: Optional[PrimitiveFactory] = None) -> ScenarioInputs:
    factory = factory or PrimitiveFactory()
    if config.ports is not None:
        capabilities = RobotCapabilities.from_ports(config.ports)
    else:
        capabilities = get_chassis(config.chassis).capabilities()
    parse_error: Optional[str] = None
    if config.code is not None:
        parsed = parse_code(config.code, factory)
        if not parsed.ok:
            logger.warning("scenario %s: %s", config.name, parsed.error)
            parse_error = parsed.error
        primitives = list(parsed.primitives)
    else:
        primitives = primitives_from_dicts((asdict(c) for c in config.commands), factory)
    placements = [o.to_placement() for o in config.obstacles]
    return ScenarioInputs(primitives, capabilities, placements, parse_error)


def scenario_from_preset(preset: ScenarioPreset) -> ScenarioConfig:
    return ScenarioConfig(
        name=preset.name,
        chassis=preset.chassis,
        commands=[
            CommandConfig(intent=str(c["intent"]), slots=dict(c.get("slots") or {}), raw=str(c.get("raw") or ""))
            for c in preset.commands
        ],
        code=preset.code,
        obstacles=[
            ObstaclePlacementConfig(id=o.id, kind=o.kind, x=o.x, y=o.y, color=o.color) for o in preset.obstacles
        ],
    )


def _dataclass_from_dict(cls, data: Dict) -> object:
    field_types = get_type_hints(cls)
    kwargs = {}
    for key, value in data.items():
        expected = field_types.get(key)
        origin = get_origin(expected)
        if origin is list:
            inner = get_args(expected)[0]
            if hasattr(inner, "__dataclass_fields__"):
                kwargs[key] = [_dataclass_from_dict(inner, v) for v in value]
                continue
        if origin is not None:
            args = [a for a in get_args(expected) if a is not type(None)]
            if len(args) == 1 and hasattr(args[0], "__dataclass_fields__"):
                kwargs[key] = None if value is None else _dataclass_from_dict(args[0], value)
                continue
        if hasattr(expected, "__dataclass_fields__"):
            kwargs[key] = _dataclass_from_dict(expected, value)
        else:
            kwargs[key] = value
    return cls(**kwargs)


def load_json(path: Path, cls):
    with path.open("r", encoding="utf-8") as f:
        data = json.load(f)
    return _dataclass_from_dict(cls, data)


def save_json(path: Path, obj) -> None:
    def _encode(o):
        if hasattr(o, "__dataclass_fields__"):
            return {k: _encode(v) for k, v in asdict(o).items()}
        if isinstance(o, (list, tuple)):
            return [_encode(v) for v in o]
        if isinstance(o, dict):
            return {k: _encode(v) for k, v in o.items()}
        return o

    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        json.dump(_encode(obj), f, indent=2)


def load_scenario(path: Path) -> ScenarioConfig:
    return load_json(path, ScenarioConfig)


def save_scenario(path: Path, config: ScenarioConfig) -> None:
    save_json(path, config)


__all__ = [
    "DEFAULT_BURSTS",
    "SimulationConfig",
    "CommandConfig",
    "ObstaclePlacementConfig",
    "ScenarioConfig",
    "ScenarioInputs",
    "to_inputs",
    "scenario_from_preset",
    "load_json",
    "save_json",
    "load_scenario",
    "save_scenario",
]
