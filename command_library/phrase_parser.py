"""Typed or transcribed phrases ("please move forward 2") to a single primitive."""
from __future__ import annotations

import re
from typing import Callable, Dict, Optional, Tuple

from .primitives import CommandPrimitive, Intents, PrimitiveFactory

FILLER_WORDS = (
    "please", "um", "uh", "like", "okay", "ok", "now", "just", "can you",
    "i want you to", "i want to", "robot", "lego", "hey", "alright", "lets",
    "let's", "and then", "next",
)
NUMBER_WORDS = {
    "one": 1, "two": 2, "three": 3, "four": 4, "five": 5,
    "six": 6, "seven": 7, "eight": 8, "nine": 9, "ten": 10,
}
LIGHT_COLORS = ("red", "blue", "green", "yellow", "orange", "white", "purple", "pink")

_PUNCTUATION = re.compile(r"[,!?.;:]")
_SPACES = re.compile(r"\s+")
_FILLERS = [
    re.compile(rf"\b{re.escape(word)}\b")
    for word in sorted(FILLER_WORDS, key=len, reverse=True)
]
_NUMBER = re.compile(r"\b(\d+(?:\.\d+)?)\b")


def normalize_phrase(raw: str) -> str:
    """Lower-case, strip punctuation and filler words, collapse whitespace."""
    text = _SPACES.sub(" ", _PUNCTUATION.sub(" ", raw.lower())).strip()
    for pattern in _FILLERS:
        text = pattern.sub(" ", text)
    return _SPACES.sub(" ", text).strip()


def find_number(text: str) -> Optional[float]:
    m = _NUMBER.search(text)
    if m:
        return float(m.group(1))
    for word, value in NUMBER_WORDS.items():
        if re.search(rf"\b{word}\b", text):
            return float(value)
    return None


def find_direction(text: str) -> Optional[str]:
    if re.search(r"\b(forward|forwards|ahead|straight)\b", text):
        return "forward"
    if re.search(r"\b(backward|backwards|back|reverse)\b", text):
        return "backward"
    if re.search(r"\bleft\b", text):
        return "left"
    if re.search(r"\bright\b", text):
        return "right"
    return None


def _find_color(text: str, choices: Tuple[str, ...]) -> Optional[str]:
    m = re.search(r"\b(" + "|".join(choices) + r")\b", text)
    return m.group(1) if m else None


def _or(value: Optional[float], default: float) -> float:
    return default if value is None else value


# Each builder gets the normalised text and returns (intent, slots).
Builder = Callable[[str], Tuple[str, Dict[str, object]]]


def _turn(text: str) -> Tuple[str, Dict[str, object]]:
    amount = find_number(text)
    direction = find_direction(text) or "right"
    # Small numbers are spoken durations, larger ones are degrees.
    if amount and amount > 10:
        return Intents.TURN, {"direction": direction, "degrees": amount}
    return Intents.TURN, {"direction": direction, "duration": amount or 0.5}


def _repeat(text: str) -> Tuple[str, Dict[str, object]]:
    if re.search(r"\b(forever|always)\b", text):
        return Intents.REPEAT_FOREVER, {}
    return Intents.REPEAT, {"times": int(round(find_number(text) or 3))}


def _say(text: str) -> Tuple[str, Dict[str, object]]:
    m = re.search(r"(?:say|speak|announce)\s+(.+)", text)
    return Intents.SAY, {"phrase": m.group(1).strip() if m else "hello"}


def _distance(text: str) -> Tuple[str, Dict[str, object]]:
    closer = re.search(r"\b(closer|less than|under)\b", text)
    return Intents.IF_DISTANCE, {
        "comparison": "closer than" if closer else "farther than",
        "inches": _or(find_number(text), 6),
    }


def _reflection(text: str) -> Tuple[str, Dict[str, object]]:
    less = re.search(r"\b(less|under|below)\b", text)
    return Intents.IF_REFLECTION, {
        "comparison": "less" if less else "greater",
        "value": _or(find_number(text), 50),
    }


# Ordered: multi-word phrases come before the single verbs they contain.
PHRASE_RULES: Tuple[Tuple[re.Pattern, Builder], ...] = (
    (re.compile(r"\b(stop repeating|end loop)\b"), lambda t: (Intents.STOP_REPEAT, {})),
    (re.compile(r"\b(stop|halt|freeze)\b"), lambda t: (Intents.STOP, {})),
    (re.compile(r"\b(move arm to|arm to|set arm)\b"),
     lambda t: (Intents.MOTOR_ANGLE, {"angle": _or(find_number(t), 90)})),
    (re.compile(r"\b(raise arm|arm up|lift arm)\b"),
     lambda t: (Intents.ARM_UP, {"angle": _or(find_number(t), 90)})),
    (re.compile(r"\b(lower arm|arm down|put arm)\b"),
     lambda t: (Intents.ARM_DOWN, {"angle": _or(find_number(t), 0)})),
    (re.compile(r"\b(close claw|grab|clamp)\b"), lambda t: (Intents.CLAW_CLOSE, {})),
    (re.compile(r"\b(open claw|release|let go)\b"), lambda t: (Intents.CLAW_OPEN, {})),
    (re.compile(r"\b(move until wall|drive until wall|go until wall|until blocked|until you hit"
                r"|forward until wall|move until obstacle)\b"),
     lambda t: (Intents.MOVE_UNTIL_WALL, {"direction": find_direction(t) or "forward"})),
    (re.compile(r"\b(if wall ahead|if wall in front|if blocked ahead|if something ahead)\b"),
     lambda t: (Intents.IF_WALL_AHEAD, {})),
    (re.compile(r"\b(if wall left|if wall on left|if wall to the left|if blocked left)\b"),
     lambda t: (Intents.IF_WALL_LEFT, {})),
    (re.compile(r"\b(if wall right|if wall on right|if wall to the right|if blocked right)\b"),
     lambda t: (Intents.IF_WALL_RIGHT, {})),
    (re.compile(r"\b(if touching|if bumped|if contact|if colliding)\b"), lambda t: (Intents.IF_TOUCHING, {})),
    (re.compile(r"\b(scan|look around|check surroundings|sense around)\b"), lambda t: (Intents.SCAN, {})),
    (re.compile(r"\b(rotate base|spin base|turn base)\b"),
     lambda t: (Intents.ROTATE_BASE, {"direction": find_direction(t) or "right",
                                      "degrees": _or(find_number(t), 90)})),
    (re.compile(r"\b(run motor|motor at|spin motor)\b"),
     lambda t: (Intents.RUN_MOTOR, {"power": _or(find_number(t), 50)})),
    (re.compile(r"\b(lights off|light off|turn off lights|lights out)\b"), lambda t: (Intents.LIGHT_OFF, {})),
    (re.compile(r"\b(turn|rotate|spin)\b"), _turn),
    (re.compile(r"\b(move|go|drive|walk|run)\b"),
     lambda t: (Intents.MOVE, {"direction": find_direction(t) or "forward",
                               "duration": _or(find_number(t), 1)})),
    (re.compile(r"\b(repeat|loop)\b"), _repeat),
    (re.compile(r"\b(beep|honk|sound)\b"), lambda t: (Intents.BEEP, {})),
    (re.compile(r"\b(say|speak|announce)\b"), _say),
    (re.compile(r"\b(light up|light|glow)\b"),
     lambda t: (Intents.LIGHT, {"color": _find_color(t, LIGHT_COLORS) or "blue"})),
    (re.compile(r"\b(if you see|when you see|see)\b"),
     lambda t: (Intents.IF_COLOR, {"color": _find_color(t, LIGHT_COLORS + ("black",)) or "red"})),
    (re.compile(r"\b(if something is|if closer|if farther)\b"), _distance),
    (re.compile(r"\b(if the button|when the button)\b"), lambda t: (Intents.IF_BUTTON, {})),
    (re.compile(r"\b(if force|when force|force greater|force more than)\b"),
     lambda t: (Intents.IF_FORCE, {"force": _or(find_number(t), 3)})),
    (re.compile(r"\b(if touched|when touched|if someone touches)\b"), lambda t: (Intents.IF_TOUCHED, {})),
    (re.compile(r"\b(if reflection|when reflection|reflection greater|reflection less"
                r"|surface bright|surface dark)\b"), _reflection),
    (re.compile(r"(\bif it's dark|\bif dark|\bwhen dark|\bambient less)\b"),
     lambda t: (Intents.IF_AMBIENT, {"comparison": "dark", "value": _or(find_number(t), 20)})),
    (re.compile(r"(\bif it's bright|\bif bright|\bwhen bright|\bambient greater)\b"),
     lambda t: (Intents.IF_AMBIENT, {"comparison": "bright", "value": _or(find_number(t), 80)})),
)


def parse_phrase(raw: str, factory: Optional[PrimitiveFactory] = None) -> Optional[CommandPrimitive]:
    """Return the primitive for ``raw``, or ``None`` when nothing matches."""
    text = normalize_phrase(raw)
    if not text:
        return None
    for pattern, build in PHRASE_RULES:
        if pattern.search(text):
            intent, slots = build(text)
            return (factory or PrimitiveFactory()).make(intent, raw=raw.strip(), **slots)
    return None


__all__ = [
    "FILLER_WORDS",
    "NUMBER_WORDS",
    "PHRASE_RULES",
    "find_direction",
    "find_number",
    "normalize_phrase",
    "parse_phrase",
]
