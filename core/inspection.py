"""Per-frame readiness checks and serializable frame dumps for diagnostics."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from arena_mechanics.geometry import distance_between, round_half_up
from arena_mechanics.obstacles import get_obstacle_type
from command_library.presets import RobotCapabilities

from .batch import Frame, SimulationResult
from .config import SimulationConfig


class CheckStatus:
    OK = "ok"
    ACTIVE = "active"
    IDLE = "idle"
    WARN = "warn"
    FAIL = "fail"
    FAR = "far"


@dataclass(frozen=True)
class ReadinessCheck:
    label: str
    status: str
    detail: str
    obstacle_id: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"label": self.label, "status": self.status, "detail": self.detail}
        if self.obstacle_id is not None:
            payload["obstacle_id"] = self.obstacle_id
        return payload


def _arm_position(angle: int) -> str:
    if angle == 0:
        return "Down"
    if angle < 45:
        return "Low"
    if angle < 90:
        return "Mid"
    return "High"


def inspect_frame(
    frame: Frame,
    capabilities: RobotCapabilities,
    config: Optional[SimulationConfig] = None,
) -> List[ReadinessCheck]:
    """Robot subsystem status plus requirement checks for nearby interactable obstacles.

    Obstacles within 1.5x the interaction radius are listed; those beyond the
    radius itself are reported as too far. Ramp arm limits show up here even
    though driving never enforces them.
    """
    config = config or SimulationConfig()
    pose = frame.pose
    checks: List[ReadinessCheck] = []

    if capabilities.has_drive:
        checks.append(ReadinessCheck("Drive System", CheckStatus.OK, "Active"))
    if capabilities.has_arm:
        angle = round_half_up(pose.arm_angle)
        checks.append(
            ReadinessCheck(
                "Arm Position",
                CheckStatus.ACTIVE if angle > 0 else CheckStatus.IDLE,
                f"{angle}° ({_arm_position(angle)})",
            )
        )
    if capabilities.has_claw:
        checks.append(
            ReadinessCheck(
                "Claw State",
                CheckStatus.IDLE if pose.claw_open else CheckStatus.ACTIVE,
                "Open" if pose.claw_open else "Closed",
            )
        )
    if pose.carrying_id is not None:
        checks.append(ReadinessCheck("Carrying", CheckStatus.ACTIVE, f"Holding {pose.carrying_id}"))

    for state in frame.obstacles:
        type_def = get_obstacle_type(state.kind)
        if type_def is None or not type_def.interactable or state.carried:
            continue
        dist = distance_between(pose.x, pose.y, state.x, state.y)
        if dist >= config.interact_dist * 1.5:
            continue
        label = f"{type_def.label} ({round_half_up(dist)}px)"
        if dist >= config.interact_dist:
            checks.append(ReadinessCheck(label, CheckStatus.FAR, "Too far", state.id))
            continue
        req = type_def.requires
        status = CheckStatus.OK
        reasons: List[str] = []
        if req.needs_arm and not capabilities.has_arm:
            status = CheckStatus.FAIL
            reasons.append("Need arm")
        if req.needs_claw and not capabilities.has_claw:
            status = CheckStatus.FAIL
            reasons.append("Need claw")
        if status != CheckStatus.FAIL:
            if req.arm_angle_min is not None and pose.arm_angle < req.arm_angle_min:
                status = CheckStatus.WARN
                reasons.append(f"Arm ≥{req.arm_angle_min:g}°")
            if req.arm_angle_max is not None and pose.arm_angle > req.arm_angle_max:
                status = CheckStatus.WARN
                reasons.append(f"Arm ≤{req.arm_angle_max:g}°")
            if req.claw_must_be_open is False and pose.claw_open:
                status = CheckStatus.WARN
                reasons.append("Close claw")
            if req.claw_must_be_open is True and not pose.claw_open:
                status = CheckStatus.WARN
                reasons.append("Open claw")
        checks.append(ReadinessCheck(label, status, ", ".join(reasons) or "Ready!", state.id))
    return checks


def frame_as_dict(frame: Frame) -> Dict[str, Any]:
    pose = frame.pose
    payload: Dict[str, Any] = {
        "x": pose.x,
        "y": pose.y,
        "heading": pose.heading,
        "arm_angle": pose.arm_angle,
        "claw_open": pose.claw_open,
        "carrying_id": pose.carrying_id,
        "trail_length": frame.trail_length,
        "label": frame.label,
        "obstacles": [state.as_dict() for state in frame.obstacles],
    }
    if frame.event is not None:
        payload["event"] = {"type": frame.event.type, "message": frame.event.message}
    if frame.effect is not None:
        payload["effect"] = {"type": frame.effect.type, **dict(frame.effect.data)}
    return payload


def export_result(result: SimulationResult) -> Dict[str, Any]:
    return {
        "frames": [frame_as_dict(frame) for frame in result.frames],
        "trail": [list(point) for point in result.trail],
    }


__all__ = [
    "CheckStatus",
    "ReadinessCheck",
    "inspect_frame",
    "frame_as_dict",
    "export_result",
]
