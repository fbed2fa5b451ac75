"""Real-time scheduler: the same robot rules advanced one host-loop tick at a time.

The host calls ``update(dt_ms)`` every frame. Exactly one command is active at
a time; its pose field is interpolated over its duration and finalised when
the duration has elapsed. Progress is reported through an ``EventBus``.
"""
from __future__ import annotations

from collections import deque
from dataclasses import dataclass
import logging
import math
from typing import Deque, Iterable, Optional, Sequence, Set, Tuple

from arena_mechanics.arena import ObstacleArena
from arena_mechanics.collision import CollisionOutcome
from arena_mechanics.geometry import distance_between
from arena_mechanics.obstacles import ObstaclePlacement
from command_library.presets import RobotCapabilities
from command_library.primitives import CommandPrimitive, Intents
from command_library.unroll import unroll

from .config import SimulationConfig
from .events import EventBus, RobotEvents
from .rules import RobotPose, RobotRules, move_extent, turn_extent

logger = logging.getLogger(__name__)

_ARM_INTENTS = (Intents.ARM_UP, Intents.ARM_DOWN, Intents.MOTOR_ANGLE)
_TURN_INTENTS = (Intents.TURN, Intents.ROTATE_BASE)
_DRIVE_INTENTS = (Intents.MOVE, Intents.MOVE_UNTIL_WALL)


@dataclass
class ActiveCommand:
    command: CommandPrimitive
    duration_ms: float
    elapsed_ms: float = 0.0
    progress: float = 0.0
    start_value: float = 0.0
    target_value: float = 0.0
    distance: float = 0.0  # px over the whole command, signed
    blocked_steps: int = 0
    aborted: bool = False

    def advance(self, dt_ms: float) -> float:
        self.elapsed_ms += dt_ms
        if self.duration_ms <= 0:
            return 1.0
        return min(self.elapsed_ms / self.duration_ms, 1.0)


class RealtimeInterpreter:
    def __init__(
        self,
        capabilities: Optional[RobotCapabilities] = None,
        placements: Iterable[ObstaclePlacement] = (),
        config: Optional[SimulationConfig] = None,
        bus: Optional[EventBus] = None,
    ) -> None:
        self.config = config or SimulationConfig()
        self.capabilities = capabilities or RobotCapabilities()
        self._placements: Tuple[ObstaclePlacement, ...] = tuple(placements)
        self.bus = bus or EventBus()
        self._queue: Deque[CommandPrimitive] = deque()
        self.active: Optional[ActiveCommand] = None
        self.paused = False
        self.finished = False
        self.light_color: Optional[str] = None
        self._new_run()
        self.bus.on(RobotEvents.PLAY, self.resume)
        self.bus.on(RobotEvents.PAUSE, self.pause)
        self.bus.on(RobotEvents.RESET, self.reset)

    def _new_run(self) -> None:
        self.arena = ObstacleArena.from_placements(self._placements)
        self.rules = RobotRules(self.config, self.capabilities, self.arena)
        self._goals_inside: Set[str] = set()

    # --- Public state -------------------------------------------------------

    @property
    def pose(self) -> RobotPose:
        return self.rules.pose

    @property
    def queue_length(self) -> int:
        return len(self._queue)

    @property
    def current_command(self) -> Optional[CommandPrimitive]:
        return self.active.command if self.active else None

    @property
    def velocity(self) -> Tuple[float, float]:
        """Current drive velocity in px/s; zero while paused or not driving."""
        active = self.active
        if self.paused or active is None or active.command.intent not in _DRIVE_INTENTS:
            return (0.0, 0.0)
        if active.duration_ms <= 0:
            return (0.0, 0.0)
        speed = active.distance / (active.duration_ms / 1000.0)
        rad = math.radians(self.pose.heading)
        return (math.cos(rad) * speed, math.sin(rad) * speed)

    # --- Control ------------------------------------------------------------

    def load_commands(self, commands: Sequence[CommandPrimitive]) -> None:
        self._queue = deque(unroll(commands, self.config.realtime_forever_cap))
        self.active = None
        self.finished = False
        self.bus.emit(RobotEvents.COMMANDS_LOADED, len(self._queue))

    def pause(self) -> None:
        self.paused = True

    def resume(self) -> None:
        self.paused = False

    def reset(self) -> None:
        """Drop the queue and start over with a fresh pose and arena."""
        self._queue.clear()
        self.active = None
        self.finished = False
        self.paused = False
        self.light_color = None
        self._new_run()

    def destroy(self) -> None:
        self.bus.off(RobotEvents.PLAY, self.resume)
        self.bus.off(RobotEvents.PAUSE, self.pause)
        self.bus.off(RobotEvents.RESET, self.reset)

    # --- Tick ---------------------------------------------------------------

    def update(self, dt_ms: float) -> None:
        if self.paused or self.finished:
            return
        if self.active is None:
            if not self._queue:
                self.finished = True
                self.bus.emit(RobotEvents.ALL_COMMANDS_DONE)
                return
            self._start(self._queue.popleft())
        if self.active is not None:
            self._advance(dt_ms)

    def run_until_done(self, dt_ms: float = 1000.0 / 30.0, max_ticks: int = 100000) -> int:
        """Tick until finished; returns the number of ticks used."""
        ticks = 0
        while not self.finished and ticks < max_ticks:
            self.update(dt_ms)
            ticks += 1
        return ticks

    # --- Command start ------------------------------------------------------

    def _begin(self, command: CommandPrimitive, duration_ms: float, **fields) -> None:
        self.active = ActiveCommand(command=command, duration_ms=duration_ms, **fields)
        self.bus.emit(RobotEvents.COMMAND_START, command)

    def _warn(self, reason: str) -> None:
        self.bus.emit(RobotEvents.WARNING, reason)

    def _start(self, command: CommandPrimitive) -> None:
        intent = command.intent
        rules = self.rules
        cfg = self.config
        if intent in _DRIVE_INTENTS:
            if not self.capabilities.has_drive:
                self._warn("Robot has no drive")
                self._begin(command, 0.0)
            elif intent == Intents.MOVE:
                distance, seconds = move_extent(command.slots, cfg)
                self._begin(command, seconds * 1000.0, distance=distance)
            else:
                sign = -1.0 if command.slot("direction") == "backward" else 1.0
                seconds = cfg.until_wall_max_s
                self._begin(command, seconds * 1000.0, distance=sign * cfg.speed_px_per_s * seconds)
        elif intent in _TURN_INTENTS:
            degrees, seconds = turn_extent(command.slots, cfg)
            start = rules.pose.heading
            self._begin(command, seconds * 1000.0, start_value=start, target_value=start + degrees)
        elif intent in _ARM_INTENTS:
            default = 0.0 if intent == Intents.ARM_DOWN else 90.0
            target = RobotRules.clamp_arm(command.number("angle", default))
            start = rules.pose.arm_angle
            duration = abs(target - start) / cfg.arm_deg_per_s * 1000.0
            self._begin(command, duration, start_value=start, target_value=target)
        elif intent == Intents.CLAW_CLOSE:
            rules.set_claw(False)
            self.bus.emit(RobotEvents.CLAW_CHANGED, False)
            result = rules.try_grab()
            if result.ok and result.target is not None:
                self.bus.emit(RobotEvents.OBJECT_PICKED_UP, result.target.id)
            elif result.reason:
                self._warn(result.reason)
            self._begin(command, cfg.burst_ms("claw"))
        elif intent == Intents.CLAW_OPEN:
            rules.set_claw(True)
            dropped = rules.drop(grabbed_only=True)
            if dropped is not None:
                self.bus.emit(RobotEvents.OBJECT_DROPPED, dropped.id)
            self.bus.emit(RobotEvents.CLAW_CHANGED, True)
            self._begin(command, cfg.burst_ms("claw"))
        elif intent == Intents.STOP:
            # Unlike the batch scheduler, stop ends the whole run here.
            self.active = None
            self._queue.clear()
            self.finished = True
            self.bus.emit(RobotEvents.COMMAND_START, command)
            self.bus.emit(RobotEvents.ALL_COMMANDS_DONE)
        elif intent == Intents.WAIT:
            ms = command.number("ms")
            duration = ms if ms is not None else command.number("duration", 1.0) * 1000.0
            self._begin(command, duration)
        elif intent == Intents.BEEP:
            self.bus.emit(RobotEvents.BEEP)
            self._begin(command, cfg.burst_ms("beep"))
        elif intent == Intents.SAY:
            self.bus.emit(RobotEvents.SAY, command.slot("phrase", "hello"))
            self._begin(command, cfg.burst_ms("say"))
        elif intent == Intents.LIGHT:
            self.light_color = str(command.slot("color", "blue"))
            self.bus.emit(RobotEvents.LIGHT, self.light_color)
            self._begin(command, cfg.burst_ms("light"))
        elif intent == Intents.LIGHT_OFF:
            self.light_color = None
            self.bus.emit(RobotEvents.LIGHT, None)
            self._begin(command, cfg.burst_ms("light"))
        elif intent == Intents.RUN_MOTOR:
            self._begin(command, cfg.burst_ms("motor"))
        elif intent == Intents.SCAN or Intents.is_sensor_check(intent):
            reading = rules.sense(intent, command.slots)
            self.bus.emit(
                RobotEvents.SENSOR_READING,
                {"type": intent, "slots": dict(command.slots), "reading": reading},
            )
            self._begin(command, cfg.burst_ms("sensor"))
        else:
            logger.debug("skipping unknown intent %r", intent)
            self._begin(command, 0.0)

    # --- Command progress ---------------------------------------------------

    def _advance(self, dt_ms: float) -> None:
        active = self.active
        if active is None:
            return
        previous = active.progress
        t = active.advance(dt_ms)
        active.progress = t
        intent = active.command.intent
        if intent in _DRIVE_INTENTS and self.capabilities.has_drive:
            self._drive(active, (t - previous) * active.distance)
        elif intent in _TURN_INTENTS:
            self._rotate(active, active.start_value + (active.target_value - active.start_value) * t)
        elif intent in _ARM_INTENTS:
            self._arm(active, active.start_value + (active.target_value - active.start_value) * t)
        if active.aborted or t >= 1.0:
            self._complete(active)

    def _chunks(self, amount: float, chunk: float) -> Tuple[int, float]:
        """Split ``amount`` into the fewest equal pieces no larger than ``chunk``."""
        count = max(1, math.ceil(abs(amount) / chunk - 1e-9))
        return count, amount / count

    def _drive(self, active: ActiveCommand, distance: float) -> None:
        if distance == 0:
            return
        count, step = self._chunks(distance, self.config.step_distance)
        moved = False
        for _ in range(count):
            outcome = self.rules.try_translate(step)
            if outcome == CollisionOutcome.BLOCKED:
                active.blocked_steps += 1
                self.bus.emit(RobotEvents.COLLISION, self.pose)
                if (
                    active.command.intent == Intents.MOVE_UNTIL_WALL
                    or active.blocked_steps >= self.config.max_consecutive_blocks
                ):
                    active.aborted = True
                break
            active.blocked_steps = 0
            moved = True
            if outcome == CollisionOutcome.PUSHED:
                for obstacle in self.arena:
                    if obstacle.pushed:
                        self.bus.emit(RobotEvents.OBJECT_PUSHED, obstacle.id)
            self._check_goals()
        if moved:
            self.bus.emit(RobotEvents.POSITION_CHANGED, self.pose.x, self.pose.y)

    def _rotate(self, active: ActiveCommand, heading: float) -> None:
        delta = heading - self.pose.heading
        if delta == 0:
            return
        count, step = self._chunks(delta, self.config.turn_deg_per_s / self.config.fps)
        for _ in range(count):
            if self.rules.try_rotate(step) == CollisionOutcome.BLOCKED:
                self.bus.emit(RobotEvents.COLLISION, self.pose)
                active.aborted = True
                return
        self.bus.emit(RobotEvents.HEADING_CHANGED, self.pose.heading)

    def _arm(self, active: ActiveCommand, angle: float) -> None:
        self.rules.set_arm(angle)
        self.bus.emit(RobotEvents.ARM_CHANGED, self.pose.arm_angle)
        if active.command.intent != Intents.ARM_DOWN:
            self._try_lift()

    def _try_lift(self) -> None:
        if self.pose.carrying_id is not None:
            return
        result = self.rules.try_lift()
        if result.ok and result.target is not None:
            self.bus.emit(RobotEvents.OBJECT_PICKED_UP, result.target.id)

    def _complete(self, active: ActiveCommand) -> None:
        intent = active.command.intent
        if intent in _TURN_INTENTS and not active.aborted:
            self.rules.set_heading(active.target_value)
        elif intent in _ARM_INTENTS:
            self.rules.set_arm(active.target_value)
            if intent == Intents.ARM_DOWN:
                dropped = self.rules.drop()
                if dropped is not None:
                    self.bus.emit(RobotEvents.OBJECT_DROPPED, dropped.id)
            else:
                self._try_lift()
        self.bus.emit(RobotEvents.COMMAND_COMPLETE, active.command)
        self.active = None

    def _check_goals(self) -> None:
        radius = self.config.goal_capture_radius
        for goal in self.arena.of_kind("goal"):
            inside = distance_between(self.pose.x, self.pose.y, goal.x, goal.y) < radius
            if inside and goal.id not in self._goals_inside:
                self._goals_inside.add(goal.id)
                self.bus.emit(RobotEvents.GOAL_REACHED, goal.id)
            elif not inside:
                self._goals_inside.discard(goal.id)


__all__ = ["ActiveCommand", "RealtimeInterpreter"]
