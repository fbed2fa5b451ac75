"""Robot state-transition rules shared by the batch and real-time schedulers.

Both schedulers hold one ``RobotRules`` per run and only decide *when* to
call it: how far to move per step, when to try a lift, when to drop. Every
geometric and interaction decision lives here.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
import logging
import math
from typing import Mapping, Optional

from arena_mechanics.arena import ObstacleArena, ObstacleInstance
from arena_mechanics.collision import CollisionOutcome, check_collision, robot_rect
from arena_mechanics.geometry import clamp, distance_between, round_half_up
from arena_mechanics.obstacles import Requirements, get_obstacle_type
from arena_mechanics import sensors
from command_library.presets import RobotCapabilities
from command_library.primitives import Intents, numeric_slot

from .config import SimulationConfig

logger = logging.getLogger(__name__)

ARM_MIN = 0.0
ARM_MAX = 180.0


@dataclass(frozen=True)
class RobotPose:
    x: float
    y: float
    heading: float  # degrees, unbounded
    arm_angle: float = 0.0
    claw_open: bool = True
    carrying_id: Optional[str] = None

    def moved(self, **changes) -> "RobotPose":
        return replace(self, **changes)


@dataclass(frozen=True)
class InteractionResult:
    ok: bool
    reason: Optional[str] = None
    target: Optional[ObstacleInstance] = None

    @classmethod
    def failure(cls, reason: str) -> "InteractionResult":
        return cls(ok=False, reason=reason)

    @classmethod
    def success(cls, target: ObstacleInstance) -> "InteractionResult":
        return cls(ok=True, target=target)


@dataclass(frozen=True)
class GoalReport:
    reached: bool
    nearest_id: str
    distance: float


def unmet_requirement(
    requires: Requirements, capabilities: RobotCapabilities, arm_angle: float, claw_open: bool
) -> Optional[str]:
    """First requirement the robot fails, as a user-facing reason; ``None`` if all hold."""
    if requires.is_unconditional():
        return None
    if requires.needs_arm and not capabilities.has_arm:
        return "Robot has no arm"
    if requires.needs_claw and not capabilities.has_claw:
        return "Robot has no claw"
    if requires.arm_angle_min is not None and arm_angle < requires.arm_angle_min:
        return f"Arm too low ({round_half_up(arm_angle)}° < {requires.arm_angle_min:g}°)"
    if requires.arm_angle_max is not None and arm_angle > requires.arm_angle_max:
        return f"Arm too high ({round_half_up(arm_angle)}° > {requires.arm_angle_max:g}°)"
    if requires.claw_must_be_open is False and claw_open:
        return "Claw must be closed"
    if requires.claw_must_be_open is True and not claw_open:
        return "Claw must be open"
    return None


class RobotRules:
    """Pose, arena and capability profile of one run, plus the rules over them."""

    def __init__(
        self,
        config: SimulationConfig,
        capabilities: RobotCapabilities,
        arena: ObstacleArena,
    ) -> None:
        self.config = config
        self.capabilities = capabilities
        self.arena = arena
        self.pose = self.initial_pose(config)

    @staticmethod
    def initial_pose(config: SimulationConfig) -> RobotPose:
        x, y = config.start_position
        return RobotPose(x=x, y=y, heading=config.start_heading)

    # --- Motion -------------------------------------------------------------

    def _collide(self, x: float, y: float, heading: float) -> str:
        rect = robot_rect(x, y, heading, self.config.robot_half_width, self.config.robot_half_height)
        return check_collision(
            self.arena,
            rect,
            heading_deg=heading,
            push_distance=self.config.push_distance,
            world_size=self.config.world_size,
        )

    def try_translate(self, distance: float) -> str:
        """Move ``distance`` px along the heading (negative backs up).

        The candidate is clamped to the world edge margin before testing. The
        pose only changes when the outcome is not ``blocked``.
        """
        self.arena.clear_pushed()
        rad = math.radians(self.pose.heading)
        lo = self.config.edge_margin
        hi = self.config.world_size - self.config.edge_margin
        nx = clamp(self.pose.x + math.cos(rad) * distance, lo, hi)
        ny = clamp(self.pose.y + math.sin(rad) * distance, lo, hi)
        outcome = self._collide(nx, ny, self.pose.heading)
        if outcome != CollisionOutcome.BLOCKED:
            self.pose = self.pose.moved(x=nx, y=ny)
            self.sync_carried()
        return outcome

    def try_rotate(self, delta_deg: float) -> str:
        """Rotate in place; a pushable in the swept footprint is pushed and the turn still commits."""
        self.arena.clear_pushed()
        heading = self.pose.heading + delta_deg
        outcome = self._collide(self.pose.x, self.pose.y, heading)
        if outcome != CollisionOutcome.BLOCKED:
            self.pose = self.pose.moved(heading=heading)
        return outcome

    def set_heading(self, heading: float) -> None:
        self.pose = self.pose.moved(heading=heading)

    # --- Arm and claw -------------------------------------------------------

    @staticmethod
    def clamp_arm(angle: float) -> float:
        return clamp(angle, ARM_MIN, ARM_MAX)

    def set_arm(self, angle: float) -> float:
        angle = self.clamp_arm(angle)
        self.pose = self.pose.moved(arm_angle=angle)
        return angle

    def set_claw(self, open_: bool) -> None:
        self.pose = self.pose.moved(claw_open=open_)

    # --- Interactions -------------------------------------------------------

    @property
    def carried(self) -> Optional[ObstacleInstance]:
        return self.arena.find(self.pose.carrying_id)

    def nearest(self, kind: str) -> Optional[ObstacleInstance]:
        best: Optional[ObstacleInstance] = None
        best_dist = self.config.interact_dist
        for obstacle in self.arena.of_kind(kind):
            if obstacle.carried:
                continue
            dist = distance_between(self.pose.x, self.pose.y, obstacle.x, obstacle.y)
            if dist < best_dist:
                best, best_dist = obstacle, dist
        return best

    def validate_interaction(self, kind: str) -> InteractionResult:
        type_def = get_obstacle_type(kind)
        if type_def is None:
            return InteractionResult.failure(f"Unknown obstacle kind {kind}")
        target = self.nearest(kind)
        if target is None:
            return InteractionResult.failure(f"No {kind} nearby")
        reason = unmet_requirement(type_def.requires, self.capabilities, self.pose.arm_angle, self.pose.claw_open)
        if reason is not None:
            return InteractionResult.failure(reason)
        if self.pose.carrying_id is not None:
            return InteractionResult.failure("Already carrying")
        return InteractionResult.success(target)

    def _pick_up(self, kind: str, flag: str) -> InteractionResult:
        result = self.validate_interaction(kind)
        if result.ok and result.target is not None:
            setattr(result.target, flag, True)
            self.pose = self.pose.moved(carrying_id=result.target.id)
            self.sync_carried()
            logger.debug("picked up %s (%s)", result.target.id, flag)
        return result

    def try_lift(self) -> InteractionResult:
        return self._pick_up("liftable", "lifted")

    def try_grab(self) -> InteractionResult:
        return self._pick_up("grabbable", "grabbed")

    def drop(self, *, grabbed_only: bool = False) -> Optional[ObstacleInstance]:
        """Release the carried obstacle at the carry offset; returns it, or ``None``."""
        obstacle = self.carried
        if obstacle is None:
            return None
        if grabbed_only and not obstacle.grabbed:
            return None
        obstacle.lifted = False
        obstacle.grabbed = False
        obstacle.move_to(self.pose.x, self.pose.y - self.config.carry_offset)
        self.pose = self.pose.moved(carrying_id=None)
        logger.debug("dropped %s", obstacle.id)
        return obstacle

    def sync_carried(self) -> None:
        obstacle = self.carried
        if obstacle is not None:
            obstacle.move_to(self.pose.x, self.pose.y - self.config.carry_offset)

    # --- Goals and sensing --------------------------------------------------

    def evaluate_goals(self) -> Optional[GoalReport]:
        """Nearest goal and whether it is within the capture radius; ``None`` without goals."""
        goals = self.arena.of_kind("goal")
        if not goals:
            return None
        nearest = min(goals, key=lambda g: distance_between(self.pose.x, self.pose.y, g.x, g.y))
        dist = distance_between(self.pose.x, self.pose.y, nearest.x, nearest.y)
        return GoalReport(reached=dist < self.config.goal_capture_radius, nearest_id=nearest.id, distance=dist)

    def sense(self, intent: str, slots: Optional[Mapping[str, object]] = None) -> object:
        """Informational reading for a sensor intent; never changes state."""
        x, y, heading = self.pose.x, self.pose.y, self.pose.heading
        world = self.config.world_size
        if intent == Intents.IF_DISTANCE:
            return sensors.distance_ahead(self.arena, x, y, heading, world_size=world)
        if intent == Intents.IF_COLOR:
            return sensors.color_below(self.arena, x, y)
        if intent in (Intents.IF_TOUCHED, Intents.IF_TOUCHING, Intents.IF_WALL_AHEAD):
            return sensors.collision_ahead(self.arena, x, y, heading, world_size=world)
        if intent == Intents.IF_WALL_LEFT:
            return sensors.collision_ahead(self.arena, x, y, heading - 90.0, world_size=world)
        if intent == Intents.IF_WALL_RIGHT:
            return sensors.collision_ahead(self.arena, x, y, heading + 90.0, world_size=world)
        if intent == Intents.SCAN:
            return sensors.scan(self.arena, x, y, heading, world_size=world)
        return None


def move_extent(slots: Mapping[str, object], config: SimulationConfig) -> tuple[float, float]:
    """Signed distance in px and duration in seconds of a ``move`` primitive.

    ``distance_mm`` (code-derived) wins over ``duration``; direction
    ``backward`` flips the sign of either.
    """
    sign = -1.0 if slots.get("direction") == "backward" else 1.0
    mm = numeric_slot(slots, "distance_mm")
    if mm is not None:
        return sign * mm * config.mm_to_px, abs(mm) / config.code_speed_mm_per_s
    seconds = numeric_slot(slots, "duration", 1.0)
    return sign * seconds * config.speed_px_per_s, seconds


def turn_extent(slots: Mapping[str, object], config: SimulationConfig, default_degrees: float = 90.0) -> tuple[float, float]:
    """Signed degrees and duration in seconds of a ``turn``/``rotate_base`` primitive."""
    sign = -1.0 if slots.get("direction") == "left" else 1.0
    deg = numeric_slot(slots, "degrees", numeric_slot(slots, "angle"))
    if deg is not None:
        return sign * deg, abs(deg) / config.turn_deg_per_s
    seconds = numeric_slot(slots, "duration")
    if seconds is not None:
        return sign * seconds * config.turn_deg_per_s, seconds
    return sign * default_degrees, default_degrees / config.turn_deg_per_s


__all__ = [
    "ARM_MIN",
    "ARM_MAX",
    "RobotPose",
    "InteractionResult",
    "GoalReport",
    "RobotRules",
    "unmet_requirement",
    "move_extent",
    "turn_extent",
]
