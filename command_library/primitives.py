"""Command primitives: the instruction vocabulary shared by every input source."""
from __future__ import annotations

from dataclasses import dataclass, field
import itertools
import logging
from types import MappingProxyType
from typing import Any, Iterable, List, Mapping, Optional

logger = logging.getLogger(__name__)


class Intents:
    MOVE = "move"
    TURN = "turn"
    ARM_UP = "arm_up"
    ARM_DOWN = "arm_down"
    CLAW_CLOSE = "claw_close"
    CLAW_OPEN = "claw_open"
    STOP = "stop"
    BEEP = "beep"
    SAY = "say"
    LIGHT = "light"
    LIGHT_OFF = "light_off"
    REPEAT = "repeat"
    REPEAT_FOREVER = "repeat_forever"
    STOP_REPEAT = "stop_repeat"
    ROTATE_BASE = "rotate_base"
    RUN_MOTOR = "run_motor"
    MOTOR_ANGLE = "motor_angle"
    WAIT = "wait"
    MOVE_UNTIL_WALL = "move_until_wall"
    SCAN = "scan"

    IF_COLOR = "if_color"
    IF_DISTANCE = "if_distance"
    IF_BUTTON = "if_button"
    IF_FORCE = "if_force"
    IF_TOUCHED = "if_touched"
    IF_REFLECTION = "if_reflection"
    IF_AMBIENT = "if_ambient"
    IF_WALL_AHEAD = "if_wall_ahead"
    IF_WALL_LEFT = "if_wall_left"
    IF_WALL_RIGHT = "if_wall_right"
    IF_TOUCHING = "if_touching"

    LOOP_OPENERS = frozenset({REPEAT, REPEAT_FOREVER})

    @staticmethod
    def is_sensor_check(intent: str) -> bool:
        return intent.startswith("if_")


@dataclass(frozen=True)
class CommandPrimitive:
    """One immutable robot instruction.

    ``slots`` is exposed as a read-only mapping regardless of what was passed in.
    """

    id: int
    intent: str
    slots: Mapping[str, Any] = field(default_factory=dict)
    raw: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "slots", MappingProxyType(dict(self.slots)))
        if not self.raw:
            object.__setattr__(self, "raw", describe(self.intent, self.slots))

    def slot(self, name: str, default: Any = None) -> Any:
        value = self.slots.get(name)
        return default if value is None else value

    def number(self, name: str, default: Optional[float] = None) -> Optional[float]:
        return numeric_slot(self.slots, name, default)

    def as_dict(self) -> dict:
        return {"id": self.id, "intent": self.intent, "slots": dict(self.slots), "raw": self.raw}


def numeric_slot(slots: Mapping[str, Any], name: str, default: Optional[float] = None) -> Optional[float]:
    """``slots[name]`` as a float; ``default`` when it is missing or not a number."""
    value = slots.get(name)
    if value is None:
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        logger.debug("ignoring non-numeric %s slot %r", name, value)
        return default


def _fmt(value: Any) -> str:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return f"{value:g}"
    return f"{value}"


def describe(intent: str, slots: Mapping[str, Any]) -> str:
    """Short display string for a primitive built without one."""
    if intent == Intents.MOVE:
        if slots.get("distance_mm") is not None:
            return f"straight {_fmt(slots['distance_mm'])} mm"
        return f"move {slots.get('direction', 'forward')} {_fmt(slots.get('duration', 1))}s"
    if intent in (Intents.TURN, Intents.ROTATE_BASE):
        amount = slots.get("degrees")
        suffix = f"{_fmt(amount)}°" if amount is not None else f"{_fmt(slots.get('duration', 0.5))}s"
        return f"{intent.replace('_', ' ')} {slots.get('direction', 'right')} {suffix}"
    if intent in (Intents.ARM_UP, Intents.ARM_DOWN, Intents.MOTOR_ANGLE) and "angle" in slots:
        return f"{intent.replace('_', ' ')} {_fmt(slots['angle'])}°"
    if intent == Intents.REPEAT:
        return f"repeat {slots.get('times', 1)} times"
    if intent == Intents.WAIT and "ms" in slots:
        return f"wait {_fmt(slots['ms'])} ms"
    if intent == Intents.SAY:
        return f"say {slots.get('phrase', 'hello')}"
    if intent == Intents.LIGHT:
        return f"light {slots.get('color', 'blue')}"
    return intent.replace("_", " ")


class PrimitiveFactory:
    """Hands out primitives with sequential ids."""

    def __init__(self, start: int = 0) -> None:
        self._ids = itertools.count(start)

    def make(self, intent: str, raw: str = "", **slots: Any) -> CommandPrimitive:
        return CommandPrimitive(id=next(self._ids), intent=intent, slots=slots, raw=raw)


def primitives_from_dicts(entries: Iterable[Mapping[str, Any]], factory: Optional[PrimitiveFactory] = None) -> List[CommandPrimitive]:
    """Build primitives from plain data; entries without an id get one from ``factory``."""
    factory = factory or PrimitiveFactory()
    result: List[CommandPrimitive] = []
    for entry in entries:
        intent = str(entry.get("intent") or entry.get("type") or "")
        slots = dict(entry.get("slots") or {})
        raw = str(entry.get("raw") or "")
        if "id" in entry:
            result.append(CommandPrimitive(id=int(entry["id"]), intent=intent, slots=slots, raw=raw))
        else:
            result.append(factory.make(intent, raw=raw, **slots))
    return result


__all__ = [
    "Intents",
    "CommandPrimitive",
    "PrimitiveFactory",
    "numeric_slot",
    "describe",
    "primitives_from_dicts",
]
