"""Named chassis presets, capability derivation and ready-made scenarios."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

from arena_mechanics.obstacles import ObstaclePlacement

from .primitives import CommandPrimitive, PrimitiveFactory, primitives_from_dicts

PORT_NAMES = ("A", "B", "C", "D", "E", "F")
PORT_ROLES = (
    "wheel_left",
    "wheel_right",
    "arm",
    "claw",
    "rotate",
    "grabber",
    "sensor",
    "color_light_matrix",
    "empty",
)


@dataclass(frozen=True)
class RobotCapabilities:
    has_drive: bool = True
    has_arm: bool = True
    has_claw: bool = True
    has_color_light_matrix: bool = False

    @classmethod
    def from_ports(cls, ports: Mapping[str, str]) -> "RobotCapabilities":
        """Derive capabilities from a port -> role map."""
        roles = set(ports.values())
        return cls(
            has_drive="wheel_left" in roles and "wheel_right" in roles,
            has_arm="arm" in roles,
            has_claw="claw" in roles,
            has_color_light_matrix="color_light_matrix" in roles,
        )


@dataclass(frozen=True)
class ChassisPreset:
    name: str
    label: str
    description: str
    ports: Mapping[str, str]

    def capabilities(self) -> RobotCapabilities:
        return RobotCapabilities.from_ports(self.ports)

    def with_role(self, port: str, role: str) -> "ChassisPreset":
        if port not in PORT_NAMES:
            raise KeyError(f"unknown port {port!r}")
        if role not in PORT_ROLES:
            raise ValueError(f"unknown port role {role!r}")
        ports = dict(self.ports)
        ports[port] = role
        return ChassisPreset(name="custom", label=self.label, description=self.description, ports=ports)


def _ports(*roles: str) -> Dict[str, str]:
    filled = list(roles) + ["empty"] * (len(PORT_NAMES) - len(roles))
    return dict(zip(PORT_NAMES, filled))


CHASSIS_PRESETS: Dict[str, ChassisPreset] = {
    "rover": ChassisPreset(
        name="rover",
        label="Rover",
        description="Two drive wheels, front sensor",
        ports=_ports("wheel_left", "wheel_right", "arm", "sensor"),
    ),
    "arm_bot": ChassisPreset(
        name="arm_bot",
        label="Arm Bot",
        description="Drive base + lifting arm + claw + light matrix",
        ports=_ports("wheel_left", "wheel_right", "arm", "claw", "sensor", "color_light_matrix"),
    ),
    "crane": ChassisPreset(
        name="crane",
        label="Crane",
        description="Fixed base, rotating arm + claw",
        ports=_ports("rotate", "arm", "claw", "sensor"),
    ),
    "custom": ChassisPreset(
        name="custom",
        label="Custom",
        description="Define every port yourself",
        ports=_ports(),
    ),
}


def get_chassis(name: str) -> ChassisPreset:
    try:
        return CHASSIS_PRESETS[name]
    except KeyError as exc:
        raise KeyError(f"unknown chassis preset {name!r}") from exc


@dataclass(frozen=True)
class ScenarioPreset:
    """A command program plus the obstacles it is meant to run against."""

    name: str
    commands: Tuple[Mapping[str, Any], ...] = ()
    obstacles: Tuple[ObstaclePlacement, ...] = ()
    chassis: str = "arm_bot"
    hint: str = ""
    difficulty: int = 0
    code: Optional[str] = None
    tags: Tuple[str, ...] = field(default_factory=tuple)

    def primitives(self, factory: Optional[PrimitiveFactory] = None) -> List[CommandPrimitive]:
        return primitives_from_dicts(self.commands, factory)

    def capabilities(self) -> RobotCapabilities:
        return get_chassis(self.chassis).capabilities()


def _cmd(intent: str, raw: str = "", **slots: Any) -> Dict[str, Any]:
    return {"intent": intent, "slots": slots, "raw": raw}


def _obs(id: str, kind: str, x: float, y: float, color: Optional[str] = None) -> ObstaclePlacement:
    return ObstaclePlacement(id=id, kind=kind, x=x, y=y, color=color)


DEMO_PROGRAMS: Dict[str, ScenarioPreset] = {
    "Square (90°)": ScenarioPreset(
        name="Square (90°)",
        commands=(
            _cmd("repeat", "repeat 4 times", times=4),
            _cmd("move", "move forward 1.5s", direction="forward", duration=1.5),
            _cmd("turn", "turn right 90°", direction="right", degrees=90),
            _cmd("stop_repeat", "stop repeating"),
            _cmd("stop", "stop"),
        ),
    ),
    "Tight Corridor": ScenarioPreset(
        name="Tight Corridor",
        commands=(
            _cmd("move", "move forward 1.2s", direction="forward", duration=1.2),
            _cmd("turn", "turn right 90°", direction="right", degrees=90),
            _cmd("move", "move forward 0.6s", direction="forward", duration=0.6),
            _cmd("turn", "turn left 90°", direction="left", degrees=90),
            _cmd("move", "move forward 1.5s", direction="forward", duration=1.5),
            _cmd("stop", "stop"),
        ),
        obstacles=(
            _obs("o1", "wall_v", 160, 120),
            _obs("o2", "wall_v", 240, 120),
            _obs("o3", "wall_h", 200, 80),
            _obs("o4", "wall_v", 160, 260),
            _obs("o5", "wall_v", 280, 230),
            _obs("o6", "goal", 200, 50),
        ),
    ),
    "Lift & Carry": ScenarioPreset(
        name="Lift & Carry",
        commands=(
            _cmd("move", "move forward 1s", direction="forward", duration=1),
            _cmd("arm_up", "raise arm", angle=90),
            _cmd("claw_close", "close claw"),
            _cmd("move", "move forward 1.5s", direction="forward", duration=1.5),
            _cmd("arm_down", "lower arm", angle=0),
            _cmd("claw_open", "open claw"),
            _cmd("stop", "stop"),
        ),
        obstacles=(
            _obs("o1", "liftable", 200, 160),
            _obs("o2", "goal", 200, 80),
        ),
    ),
    "Grab & Turn": ScenarioPreset(
        name="Grab & Turn",
        commands=(
            _cmd("move", "move forward 0.8s", direction="forward", duration=0.8),
            _cmd("claw_close", "close claw"),
            _cmd("arm_up", "raise arm 60°", angle=60),
            _cmd("turn", "turn right 90°", direction="right", degrees=90),
            _cmd("move", "move forward 1.2s", direction="forward", duration=1.2),
            _cmd("arm_down", "lower arm", angle=0),
            _cmd("claw_open", "open claw"),
            _cmd("stop", "stop"),
        ),
        obstacles=(
            _obs("o1", "grabbable", 200, 155),
            _obs("o2", "goal", 320, 200),
            _obs("o3", "barrier", 260, 160),
        ),
    ),
    "Push Maze": ScenarioPreset(
        name="Push Maze",
        commands=(
            _cmd("move", "move forward 2s", direction="forward", duration=2),
            _cmd("turn", "turn left 90°", direction="left", degrees=90),
            _cmd("move", "move forward 1s", direction="forward", duration=1),
            _cmd("stop", "stop"),
        ),
        obstacles=(
            _obs("o1", "pushable", 200, 150),
            _obs("o2", "wall_v", 150, 100),
            _obs("o3", "wall_v", 250, 100),
            _obs("o4", "goal", 200, 60),
        ),
    ),
    "Angle Test": ScenarioPreset(
        name="Angle Test",
        commands=(
            _cmd("move", "move forward 1s", direction="forward", duration=1),
            _cmd("turn", "turn right 45°", direction="right", degrees=45),
            _cmd("move", "move forward 1.2s", direction="forward", duration=1.2),
            _cmd("turn", "turn left 135°", direction="left", degrees=135),
            _cmd("move", "move forward 0.8s", direction="forward", duration=0.8),
            _cmd("turn", "turn right 90°", direction="right", degrees=90),
            _cmd("move", "move forward 1s", direction="forward", duration=1),
            _cmd("stop", "stop"),
        ),
        obstacles=(
            _obs("o1", "barrier", 250, 130),
            _obs("o2", "barrier", 130, 240),
            _obs("o3", "goal", 300, 300),
        ),
    ),
    "Action Show": ScenarioPreset(
        name="Action Show",
        commands=(
            _cmd("move", "move forward 0.5s", direction="forward", duration=0.5),
            _cmd("beep", "beep"),
            _cmd("say", "say hello", phrase="hello"),
            _cmd("light", "light blue", color="blue"),
            _cmd("light", "light green", color="green"),
            _cmd("light_off", "lights off"),
            _cmd("run_motor", "run motor 50%", power=50),
            _cmd("if_button", "if button pressed"),
            _cmd("if_force", "if force > 5 N", force=5),
            _cmd("if_touched", "if touched"),
            _cmd("if_color", "if you see red", color="red"),
            _cmd("if_reflection", "if reflection > 50%", comparison="greater", value=50),
            _cmd("if_ambient", "if it's dark", comparison="dark", value=20),
            _cmd("move", "move forward 0.5s", direction="forward", duration=0.5),
            _cmd("stop", "stop"),
        ),
    ),
    "Code: Square": ScenarioPreset(
        name="Code: Square",
        code=(
            "from pybricks.robotics import DriveBase\n"
            "\n"
            "for _ in range(4):\n"
            "    robot.straight(200)\n"
            "    robot.turn(90)\n"
        ),
    ),
}


KID_CHALLENGES: Tuple[ScenarioPreset, ...] = (
    ScenarioPreset(
        name="Drive to the Star!",
        hint="Say: move forward",
        difficulty=1,
        obstacles=(_obs("g1", "goal", 200, 80),),
    ),
    ScenarioPreset(
        name="Go Around the Wall!",
        hint="Say: move forward, then turn right, then move forward",
        difficulty=1,
        obstacles=(_obs("w1", "wall_h", 200, 140), _obs("g1", "goal", 280, 80)),
    ),
    ScenarioPreset(
        name="Grab the Ball!",
        hint="Move close, then say: close claw",
        difficulty=2,
        obstacles=(_obs("b1", "grabbable", 200, 150), _obs("g1", "goal", 200, 80)),
    ),
    ScenarioPreset(
        name="Lift the Box!",
        hint="Move close, then say: raise arm",
        difficulty=2,
        obstacles=(_obs("l1", "liftable", 200, 155), _obs("g1", "goal", 300, 80)),
    ),
    ScenarioPreset(
        name="Push it Through!",
        hint="Drive into the block to push it to the star",
        difficulty=2,
        obstacles=(
            _obs("p1", "pushable", 200, 150),
            _obs("w1", "wall_v", 155, 90),
            _obs("w2", "wall_v", 245, 90),
            _obs("g1", "goal", 200, 50),
        ),
    ),
    ScenarioPreset(
        name="Maze Runner!",
        hint="Turn and move carefully through the walls",
        difficulty=3,
        obstacles=(
            _obs("w1", "wall_h", 140, 140),
            _obs("w2", "wall_v", 260, 170),
            _obs("w3", "wall_h", 200, 240),
            _obs("b1", "barrier", 120, 200),
            _obs("g1", "goal", 320, 80),
        ),
    ),
)


__all__ = [
    "PORT_NAMES",
    "PORT_ROLES",
    "RobotCapabilities",
    "ChassisPreset",
    "CHASSIS_PRESETS",
    "get_chassis",
    "ScenarioPreset",
    "DEMO_PROGRAMS",
    "KID_CHALLENGES",
]
