"""Translate restricted pybricks-style Python text into command primitives.

Only a fixed statement vocabulary is recognised. Loops become repeat markers
(unrolled later by the interpreter), conditional headers are dropped and
their bodies flattened into the unconditional sequence, and any other
statement is skipped.
"""
from __future__ import annotations

from dataclasses import dataclass
import logging
import math
import re
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from .primitives import CommandPrimitive, Intents, PrimitiveFactory

logger = logging.getLogger(__name__)

WHEEL_DIAMETER_MM = 56.0
NUMBER = r"-?\d+(?:\.\d+)?"

Emit = Tuple[str, Dict[str, object]]
Matcher = Callable[[str], Optional[List[Emit]]]


class CodeParseError(ValueError):
    """Raised internally for inconsistent indentation; never escapes ``parse_code``."""


@dataclass(frozen=True)
class ParseResult:
    primitives: Tuple[CommandPrimitive, ...] = ()
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class _Line:
    number: int
    indent: int
    text: str


# --- Statement matchers -------------------------------------------------------

_STRAIGHT = re.compile(rf"\.straight\s*\(\s*({NUMBER})\s*\)")
_TURN = re.compile(rf"\.turn\s*\(\s*({NUMBER})\s*\)")
_CURVE = re.compile(rf"\.curve\s*\(\s*({NUMBER})\s*,\s*({NUMBER})\s*\)")
_RUN_TIME = re.compile(rf"\.run_time\s*\(\s*({NUMBER})\s*,\s*(\d+(?:\.\d+)?)\s*\)")
_RUN_TARGET = re.compile(rf"\.run_target\s*\(\s*\d+(?:\.\d+)?\s*,\s*({NUMBER})\s*\)")
_RUN_ANGLE = re.compile(rf"\.run_angle\s*\(\s*({NUMBER})\s*,\s*({NUMBER})\s*\)")
_WAIT = re.compile(r"\bwait\s*\(\s*(\d+(?:\.\d+)?)\s*\)")
_BEEP = re.compile(r"\.(?:speaker\.)?beep\s*\(")
_LIGHT_ON = re.compile(r"\.light\.on\s*\(\s*Color\.(\w+)\s*\)")
_SAY = re.compile(r"\.speaker\.say\s*\(\s*[\"']([^\"']*)[\"']\s*\)")
_CLAW_CLOSE = (
    re.compile(r"\bclaw_close\b"),
    re.compile(r"\bclose_claw\b"),
    re.compile(r"\b(?:gripper|claw)\.close\s*\("),
)
_CLAW_OPEN = (
    re.compile(r"\bclaw_open\b"),
    re.compile(r"\bopen_claw\b"),
    re.compile(r"\b(?:gripper|claw)\.open\s*\("),
)
_STOP = re.compile(r"\.(?:stop|brake|hold)\s*\(\s*\)")


def _turn_emit(degrees: float) -> Emit:
    return (Intents.TURN, {"direction": "right" if degrees >= 0 else "left", "degrees": abs(degrees)})


def _match_straight(text: str) -> Optional[List[Emit]]:
    m = _STRAIGHT.search(text)
    if not m:
        return None
    return [(Intents.MOVE, {"distance_mm": float(m.group(1))})]


def _match_turn(text: str) -> Optional[List[Emit]]:
    m = _TURN.search(text)
    if not m:
        return None
    return [_turn_emit(float(m.group(1)))]


def _match_curve(text: str) -> Optional[List[Emit]]:
    m = _CURVE.search(text)
    if not m:
        return None
    radius, angle = float(m.group(1)), float(m.group(2))
    # Arc length driven straight, then the heading change applied in place.
    arc_mm = abs(radius * math.radians(angle))
    emits: List[Emit] = []
    if arc_mm > 0:
        emits.append((Intents.MOVE, {"distance_mm": arc_mm}))
    emits.append(_turn_emit(angle))
    return emits


def _match_run_time(text: str) -> Optional[List[Emit]]:
    m = _RUN_TIME.search(text)
    if not m:
        return None
    speed, time_ms = float(m.group(1)), float(m.group(2))
    mm = round(speed * time_ms / 1000.0)
    return [(Intents.MOVE, {"distance_mm": float(mm)})] if mm else []


def _match_run_target(text: str) -> Optional[List[Emit]]:
    m = _RUN_TARGET.search(text)
    if not m:
        return None
    angle = float(m.group(1))
    return [(Intents.MOTOR_ANGLE, {"angle": angle})] if 0 <= angle <= 180 else []


def _match_run_angle(text: str) -> Optional[List[Emit]]:
    m = _RUN_ANGLE.search(text)
    if not m:
        return None
    angle = float(m.group(2))
    if abs(angle) <= 180:
        return [(Intents.MOTOR_ANGLE, {"angle": min(180.0, abs(angle))})]
    # Large angles are wheel rotations.
    mm = round(angle * math.pi * WHEEL_DIAMETER_MM / 360.0)
    return [(Intents.MOVE, {"distance_mm": float(mm)})] if mm else []


def _match_wait(text: str) -> Optional[List[Emit]]:
    m = _WAIT.search(text)
    if not m:
        return None
    return [(Intents.WAIT, {"ms": float(m.group(1))})]


def _match_beep(text: str) -> Optional[List[Emit]]:
    return [(Intents.BEEP, {})] if _BEEP.search(text) else None


def _match_light(text: str) -> Optional[List[Emit]]:
    m = _LIGHT_ON.search(text)
    if not m:
        return None
    return [(Intents.LIGHT, {"color": m.group(1).lower()})]


def _match_say(text: str) -> Optional[List[Emit]]:
    m = _SAY.search(text)
    if not m:
        return None
    return [(Intents.SAY, {"phrase": m.group(1)})]


def _match_claw_close(text: str) -> Optional[List[Emit]]:
    if any(p.search(text) for p in _CLAW_CLOSE):
        return [(Intents.CLAW_CLOSE, {})]
    return None


def _match_claw_open(text: str) -> Optional[List[Emit]]:
    if any(p.search(text) for p in _CLAW_OPEN):
        return [(Intents.CLAW_OPEN, {})]
    return None


def _match_stop(text: str) -> Optional[List[Emit]]:
    return [(Intents.STOP, {})] if _STOP.search(text) else None


# Order matters: the first matcher returning a list (even an empty one) wins.
STATEMENT_MATCHERS: Tuple[Tuple[str, Matcher], ...] = (
    ("straight", _match_straight),
    ("turn", _match_turn),
    ("curve", _match_curve),
    ("run_time", _match_run_time),
    ("run_target", _match_run_target),
    ("run_angle", _match_run_angle),
    ("wait", _match_wait),
    ("beep", _match_beep),
    ("light", _match_light),
    ("say", _match_say),
    ("claw_close", _match_claw_close),
    ("claw_open", _match_claw_open),
    ("stop", _match_stop),
)


def match_statement(text: str, matchers: Sequence[Tuple[str, Matcher]] = STATEMENT_MATCHERS) -> Optional[List[Emit]]:
    for _name, matcher in matchers:
        emits = matcher(text)
        if emits is not None:
            return emits
    return None


# --- Block headers ------------------------------------------------------------

_FOR_RANGE = re.compile(r"^for\s+\w+\s+in\s+range\s*\(\s*(\d+)\s*\)\s*:\s*(.*)$")
_WHILE_TRUE = re.compile(r"^while\s+True\s*:\s*(.*)$")
_CONDITIONAL = re.compile(r"^(?:if|elif|else)\b.*:\s*$")
_OTHER_HEADER = re.compile(r"^(?:async\s+)?(?:def|class|with|try|except|finally|for|while)\b.*:\s*$")


# --- Source preparation -------------------------------------------------------

def _strip_comment(text: str) -> str:
    quote: Optional[str] = None
    for idx, ch in enumerate(text):
        if quote:
            if ch == quote:
                quote = None
        elif ch in ("'", '"'):
            quote = ch
        elif ch == "#":
            return text[:idx]
    return text


def _bracket_delta(text: str) -> int:
    depth = 0
    quote: Optional[str] = None
    for ch in text:
        if quote:
            if ch == quote:
                quote = None
        elif ch in ("'", '"'):
            quote = ch
        elif ch in "([{":
            depth += 1
        elif ch in ")]}":
            depth -= 1
    return depth


def _logical_lines(source: str) -> List[_Line]:
    """Drop blanks and comments, and join bracketed or backslash continuations."""
    lines: List[_Line] = []
    pending: Optional[_Line] = None
    depth = 0
    for number, raw in enumerate(source.splitlines(), start=1):
        expanded = raw.expandtabs(4)
        text = _strip_comment(expanded).rstrip()
        stripped = text.strip()
        if pending is not None:
            joined = pending.text + " " + stripped.rstrip("\\").strip()
            depth += _bracket_delta(stripped)
            pending = _Line(pending.number, pending.indent, joined)
            if depth <= 0 and not stripped.endswith("\\"):
                lines.append(pending)
                pending = None
                depth = 0
            continue
        if not stripped:
            continue
        line = _Line(number, len(text) - len(text.lstrip()), stripped.rstrip("\\").strip())
        depth = _bracket_delta(stripped)
        if depth > 0 or stripped.endswith("\\"):
            pending = line
        else:
            lines.append(line)
    if pending is not None:
        lines.append(pending)
    return lines


# --- Block parser -------------------------------------------------------------

class _BlockParser:
    def __init__(self, lines: List[_Line], factory: PrimitiveFactory) -> None:
        self.lines = lines
        self.factory = factory

    def parse_block(self, start: int, min_indent: int, header: Optional[_Line] = None) -> Tuple[List[CommandPrimitive], int]:
        block: List[CommandPrimitive] = []
        block_indent: Optional[int] = None
        i = start
        while i < len(self.lines):
            line = self.lines[i]
            if block_indent is None:
                if line.indent <= min_indent:
                    break
                block_indent = line.indent
            elif line.indent <= min_indent:
                break
            elif line.indent > block_indent:
                raise CodeParseError(f"line {line.number}: unexpected indent")
            elif line.indent < block_indent:
                raise CodeParseError(f"line {line.number}: unindent does not match any outer indentation level")
            i = self._consume(line, i, block)
        if block_indent is None and header is not None:
            raise CodeParseError(f"line {header.number}: expected an indented block after '{header.text}'")
        return block, i

    def _loop_body(self, line: _Line, index: int, tail: str) -> Tuple[List[CommandPrimitive], int]:
        """Indented body, or the statements after the colon of a one-line loop."""
        if not tail:
            return self.parse_block(index + 1, line.indent, line)
        inner: List[CommandPrimitive] = []
        for statement in tail.split(";"):
            self._emit(line.number, statement.strip(), inner)
        return inner, index + 1

    def _emit(self, number: int, text: str, block: List[CommandPrimitive]) -> None:
        emits = match_statement(text)
        if emits is None:
            logger.debug("line %d: no command recognised in %r", number, text)
            return
        for intent, slots in emits:
            block.append(self.factory.make(intent, raw=text, **slots))

    def _consume(self, line: _Line, index: int, block: List[CommandPrimitive]) -> int:
        text = line.text
        m = _FOR_RANGE.match(text)
        if m:
            opener = self.factory.make(Intents.REPEAT, raw=text, times=int(m.group(1)))
            inner, nxt = self._loop_body(line, index, m.group(2))
            block.append(opener)
            block.extend(inner)
            block.append(self.factory.make(Intents.STOP_REPEAT, raw="end for"))
            return nxt
        m = _WHILE_TRUE.match(text)
        if m:
            opener = self.factory.make(Intents.REPEAT_FOREVER, raw=text)
            inner, nxt = self._loop_body(line, index, m.group(1))
            block.append(opener)
            block.extend(inner)
            block.append(self.factory.make(Intents.STOP_REPEAT, raw="end while"))
            return nxt
        if _CONDITIONAL.match(text) or _OTHER_HEADER.match(text):
            inner, nxt = self.parse_block(index + 1, line.indent, line)
            block.extend(inner)
            return nxt
        self._emit(line.number, text, block)
        return index + 1


def parse_code(source: str, factory: Optional[PrimitiveFactory] = None) -> ParseResult:
    """Parse program text; indentation problems come back as ``ParseResult.error``."""
    parser = _BlockParser(_logical_lines(source), factory or PrimitiveFactory())
    try:
        block, _ = parser.parse_block(0, -1)
    except CodeParseError as exc:
        logger.debug("parse failed: %s", exc)
        return ParseResult(primitives=(), error=str(exc))
    return ParseResult(primitives=tuple(block))


__all__ = [
    "ParseResult",
    "CodeParseError",
    "STATEMENT_MATCHERS",
    "WHEEL_DIAMETER_MM",
    "match_statement",
    "parse_code",
]
