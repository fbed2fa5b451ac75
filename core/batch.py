"""Batch scheduler: run a whole program up front into immutable playback frames."""
from __future__ import annotations

from dataclasses import dataclass, field
import logging
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from arena_mechanics.arena import ObstacleArena
from arena_mechanics.collision import CollisionOutcome
from arena_mechanics.geometry import Point2D, normalize_deg, round_half_up
from arena_mechanics.obstacles import ObstaclePlacement, ObstacleState
from command_library.presets import RobotCapabilities
from command_library.primitives import CommandPrimitive, Intents
from command_library.unroll import unroll

from .config import SimulationConfig
from .rules import RobotPose, RobotRules, move_extent, turn_extent

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FrameEvent:
    type: str  # collision | success | warning
    message: str = ""


@dataclass(frozen=True)
class FrameEffect:
    """Transient visual cue attached to the first frame of a burst."""

    type: str
    data: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "data", MappingProxyType(dict(self.data)))


@dataclass(frozen=True)
class Frame:
    pose: RobotPose
    trail_length: int
    label: str
    obstacles: Tuple[ObstacleState, ...]
    event: Optional[FrameEvent] = None
    effect: Optional[FrameEffect] = None

    def obstacle(self, obstacle_id: str) -> ObstacleState:
        for state in self.obstacles:
            if state.id == obstacle_id:
                return state
        raise KeyError(obstacle_id)


@dataclass(frozen=True)
class SimulationResult:
    frames: Tuple[Frame, ...]
    trail: Tuple[Point2D, ...]

    def trail_for(self, frame: Frame) -> Tuple[Point2D, ...]:
        return self.trail[: frame.trail_length]

    @property
    def final(self) -> Frame:
        return self.frames[-1]


_SENSOR_LABELS: Dict[str, str] = {
    Intents.IF_COLOR: "Checking color...",
    Intents.IF_DISTANCE: "Checking distance...",
    Intents.IF_BUTTON: "Checking button...",
    Intents.IF_TOUCHED: "Checking touch...",
    Intents.IF_WALL_AHEAD: "Checking wall ahead...",
    Intents.IF_WALL_LEFT: "Checking wall left...",
    Intents.IF_WALL_RIGHT: "Checking wall right...",
    Intents.IF_TOUCHING: "Checking contact...",
}


def _sensor_label(command: CommandPrimitive) -> str:
    intent = command.intent
    if intent == Intents.IF_FORCE:
        return f"Checking force > {command.number('force', 3):g} N..."
    if intent == Intents.IF_REFLECTION:
        comp = "<" if command.slot("comparison", "greater") == "less" else ">"
        return f"Checking reflection {comp} {command.number('value', 50):g}%..."
    if intent == Intents.IF_AMBIENT:
        if command.slot("comparison", "dark") == "dark":
            return f"Checking dark < {command.number('value', 20):g}%..."
        return f"Checking bright > {command.number('value', 80):g}%..."
    return _SENSOR_LABELS.get(intent, f"Checking {intent[3:].replace('_', ' ')}...")


class BatchSimulator:
    """One-shot frame builder. Create a new instance per run."""

    def __init__(
        self,
        capabilities: RobotCapabilities,
        placements: Iterable[ObstaclePlacement],
        config: Optional[SimulationConfig] = None,
    ) -> None:
        self.config = config or SimulationConfig()
        self.arena = ObstacleArena.from_placements(placements)
        self.rules = RobotRules(self.config, capabilities, self.arena)
        self.frames: List[Frame] = []
        self.trail: List[Point2D] = [(self.rules.pose.x, self.rules.pose.y)]
        self._handlers: Dict[str, Callable[[CommandPrimitive], None]] = {
            Intents.MOVE: self._move,
            Intents.TURN: self._turn,
            Intents.ROTATE_BASE: self._turn,
            Intents.ARM_UP: self._arm,
            Intents.ARM_DOWN: self._arm,
            Intents.MOTOR_ANGLE: self._arm,
            Intents.CLAW_CLOSE: self._claw_close,
            Intents.CLAW_OPEN: self._claw_open,
            Intents.STOP: self._stop,
            Intents.WAIT: self._wait,
            Intents.MOVE_UNTIL_WALL: self._move_until_wall,
            Intents.BEEP: self._beep,
            Intents.SAY: self._say,
            Intents.LIGHT: self._light,
            Intents.LIGHT_OFF: self._light_off,
            Intents.RUN_MOTOR: self._run_motor,
            Intents.SCAN: self._scan,
        }

    # --- Frame emission -----------------------------------------------------

    def _push(
        self,
        label: str,
        count: int = 1,
        event: Optional[FrameEvent] = None,
        effect: Optional[FrameEffect] = None,
    ) -> None:
        for i in range(count):
            self.rules.sync_carried()
            self.frames.append(
                Frame(
                    pose=self.rules.pose,
                    trail_length=len(self.trail),
                    label=label,
                    obstacles=self.arena.snapshot(),
                    event=event,
                    effect=effect if i == 0 else None,
                )
            )

    def _burst(self, label: str, name: str, event: Optional[FrameEvent] = None, effect: Optional[FrameEffect] = None) -> None:
        self._push(label, self.config.burst_frames(name), event, effect)

    def _warn(self, reason: str) -> None:
        self._burst(f"Warning: {reason}", "warning", FrameEvent("warning", reason))

    # --- Run ----------------------------------------------------------------

    def run(self, commands: Sequence[CommandPrimitive]) -> SimulationResult:
        for command in unroll(commands, self.config.batch_forever_cap):
            handler = self._handlers.get(command.intent)
            if handler is not None:
                handler(command)
            elif Intents.is_sensor_check(command.intent):
                self._sensor(command)
            else:
                logger.debug("skipping unknown intent %r", command.intent)
        self._finish()
        logger.info("simulated %d frames, trail of %d points", len(self.frames), len(self.trail))
        return SimulationResult(frames=tuple(self.frames), trail=tuple(self.trail))

    def _finish(self) -> None:
        report = self.rules.evaluate_goals()
        if report is not None:
            if report.reached:
                self._burst("Goal reached!", "goal", FrameEvent("success", "You reached the goal!"))
            else:
                dist = round_half_up(report.distance)
                self._burst(
                    f"Missed goal ({dist}px away)",
                    "goal",
                    FrameEvent("warning", f"Almost! {dist}px from the goal."),
                )
        self._burst("Done", "done")

    # --- Motion -------------------------------------------------------------

    def _step_forward(self, step: float, moving_label: str) -> str:
        outcome = self.rules.try_translate(step)
        if outcome != CollisionOutcome.BLOCKED:
            self.trail.append((self.rules.pose.x, self.rules.pose.y))
            self._push("Pushing!" if outcome == CollisionOutcome.PUSHED else moving_label)
        return outcome

    def _move(self, command: CommandPrimitive) -> None:
        if not self.rules.capabilities.has_drive:
            self._warn("Robot has no drive")
            return
        distance, seconds = move_extent(command.slots, self.config)
        steps = round_half_up(seconds * self.config.fps)
        if command.number("distance_mm") is not None:
            steps = max(1, steps)
        if steps <= 0:
            return
        direction = "backward" if distance < 0 else command.slot("direction", "forward")
        step = distance / steps
        blocked = 0
        for _ in range(steps):
            outcome = self._step_forward(step, f"Moving {direction}")
            if outcome == CollisionOutcome.BLOCKED:
                blocked += 1
                self._push("Blocked!", event=FrameEvent("collision", "Hit an obstacle!"))
                if blocked >= self.config.max_consecutive_blocks:
                    break
            else:
                blocked = 0

    def _move_until_wall(self, command: CommandPrimitive) -> None:
        if not self.rules.capabilities.has_drive:
            self._warn("Robot has no drive")
            return
        sign = -1.0 if command.slot("direction") == "backward" else 1.0
        for _ in range(round_half_up(self.config.until_wall_max_s * self.config.fps)):
            outcome = self._step_forward(sign * self.config.step_distance, "Moving until wall")
            if outcome == CollisionOutcome.BLOCKED:
                self._push("Wall reached", event=FrameEvent("collision", "Wall reached"))
                break

    def _turn(self, command: CommandPrimitive) -> None:
        degrees, seconds = turn_extent(command.slots, self.config)
        steps = max(1, round_half_up(seconds * self.config.fps))
        delta = degrees / steps
        direction = command.slot("direction", "right")
        if command.intent == Intents.ROTATE_BASE:
            moving, blocked_label = "Rotating base", "Base rotation blocked!"
        else:
            moving, blocked_label = "Turning", "Turn blocked!"
        for _ in range(steps):
            if self.rules.try_rotate(delta) == CollisionOutcome.BLOCKED:
                self._push(blocked_label, event=FrameEvent("collision", "Turn blocked by an obstacle"))
                break
            self._push(f"{moving} {direction} {round_half_up(normalize_deg(self.rules.pose.heading))}°")

    # --- Arm and claw -------------------------------------------------------

    def _arm(self, command: CommandPrimitive) -> None:
        default = 0.0 if command.intent == Intents.ARM_DOWN else 90.0
        target = RobotRules.clamp_arm(command.number("angle", default))
        label = {
            Intents.ARM_UP: "Raising arm",
            Intents.ARM_DOWN: "Lowering arm",
        }.get(command.intent, "Arm to")
        lifting = command.intent != Intents.ARM_DOWN
        current = self.rules.pose.arm_angle
        steps = round_half_up(abs(target - current) / self.config.arm_deg_per_s * self.config.fps)
        delta = (target - current) / steps if steps > 0 else 0.0
        for i in range(max(steps, 1)):
            # Land exactly on the target on the last step.
            angle = target if i == steps - 1 else self.rules.pose.arm_angle + delta
            self.rules.set_arm(angle)
            self._push(f"{label} {round_half_up(self.rules.pose.arm_angle)}°")
            if lifting and self.rules.pose.carrying_id is None:
                if self.rules.try_lift().ok:
                    self._burst("Lifting!", "success", FrameEvent("success", "Object lifted!"))
        if command.intent == Intents.ARM_DOWN and self.rules.drop() is not None:
            self._burst("Set down", "success", FrameEvent("success", "Object placed!"))

    def _claw_close(self, command: CommandPrimitive) -> None:
        self.rules.set_claw(False)
        self._burst("Closing claw", "claw")
        result = self.rules.try_grab()
        if result.ok:
            self._burst("Grabbed!", "success", FrameEvent("success", "Object grabbed!"))
        elif result.reason:
            self._warn(result.reason)

    def _claw_open(self, command: CommandPrimitive) -> None:
        self.rules.set_claw(True)
        if self.rules.drop(grabbed_only=True) is not None:
            self._burst("Released", "success", FrameEvent("success", "Object released!"))
        self._burst("Opening claw", "claw")

    # --- Cues ---------------------------------------------------------------

    def _stop(self, command: CommandPrimitive) -> None:
        self._burst("Stopped", "stop")

    def _wait(self, command: CommandPrimitive) -> None:
        ms = command.number("ms")
        seconds = ms / 1000.0 if ms is not None else command.number("duration", 1.0)
        self._push("Waiting", max(1, round_half_up(seconds * self.config.fps)))

    def _beep(self, command: CommandPrimitive) -> None:
        self._burst("Beep!", "beep", effect=FrameEffect("beep"))

    def _say(self, command: CommandPrimitive) -> None:
        phrase = str(command.slot("phrase", "hello"))
        self._burst(f'"{phrase}"', "say", effect=FrameEffect("say", {"phrase": phrase}))

    def _light(self, command: CommandPrimitive) -> None:
        color = str(command.slot("color", "blue"))
        effect = FrameEffect(
            "light",
            {"color": color, "has_color_light_matrix": self.rules.capabilities.has_color_light_matrix},
        )
        self._burst(f"Light {color}", "light", effect=effect)

    def _light_off(self, command: CommandPrimitive) -> None:
        self._burst("Lights off", "light", effect=FrameEffect("light_off"))

    def _run_motor(self, command: CommandPrimitive) -> None:
        power = command.slot("power", 50)
        self._burst(f"Motor at {power}%", "motor", effect=FrameEffect("motor_run", {"power": power}))

    def _sensor(self, command: CommandPrimitive) -> None:
        data: Dict[str, Any] = dict(command.slots)
        data["sensor"] = command.intent[3:]
        data["reading"] = self.rules.sense(command.intent, command.slots)
        self._burst(_sensor_label(command), "sensor", effect=FrameEffect("sensor", data))

    def _scan(self, command: CommandPrimitive) -> None:
        data = {"sensor": "scan", "reading": self.rules.sense(Intents.SCAN)}
        self._burst("Scanning", "sensor", effect=FrameEffect("sensor", data))


def simulate(
    commands: Sequence[CommandPrimitive],
    capabilities: Optional[RobotCapabilities] = None,
    placements: Iterable[ObstaclePlacement] = (),
    config: Optional[SimulationConfig] = None,
) -> SimulationResult:
    """Run ``commands`` against ``placements`` and return every frame.

    Each call owns a fresh arena, so identical inputs give identical frames.
    """
    simulator = BatchSimulator(capabilities or RobotCapabilities(), placements, config)
    return simulator.run(commands)


__all__ = [
    "FrameEvent",
    "FrameEffect",
    "Frame",
    "SimulationResult",
    "BatchSimulator",
    "simulate",
]
