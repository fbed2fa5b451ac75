from __future__ import annotations

import sys
from pathlib import Path

import pytest

BASE = Path(__file__).resolve().parents[1]
if str(BASE) not in sys.path:
    sys.path.insert(0, str(BASE))

from command_library.phrase_parser import find_number, normalize_phrase, parse_phrase  # noqa: E402
from command_library.primitives import PrimitiveFactory  # noqa: E402


def test_normalize_strips_fillers_and_punctuation() -> None:
    assert normalize_phrase("Um, please TURN right!") == "turn right"
    assert normalize_phrase("Hey robot, can you beep?") == "beep"


def test_number_words() -> None:
    assert find_number("repeat three times") == 3.0
    assert find_number("move 2.5 seconds") == 2.5
    assert find_number("move") is None


@pytest.mark.parametrize(
    "phrase, intent, slots",
    [
        ("Please move forward 2 seconds", "move", {"direction": "forward", "duration": 2.0}),
        ("go backwards", "move", {"direction": "backward", "duration": 1}),
        ("move forward 0 seconds", "move", {"direction": "forward", "duration": 0.0}),
        ("turn right 90", "turn", {"direction": "right", "degrees": 90.0}),
        ("turn left", "turn", {"direction": "left", "duration": 0.5}),
        ("raise arm 45", "arm_up", {"angle": 45.0}),
        ("lower arm", "arm_down", {"angle": 0}),
        ("move arm to 30", "motor_angle", {"angle": 30.0}),
        ("close claw", "claw_close", {}),
        ("let go", "claw_open", {}),
        ("repeat three times", "repeat", {"times": 3}),
        ("repeat forever", "repeat_forever", {}),
        ("stop repeating", "stop_repeat", {}),
        ("stop", "stop", {}),
        ("lights off", "light_off", {}),
        ("light up red", "light", {"color": "red"}),
        ("say good morning", "say", {"phrase": "good morning"}),
        ("move until wall", "move_until_wall", {"direction": "forward"}),
        ("rotate base left 45", "rotate_base", {"direction": "left", "degrees": 45.0}),
        ("run motor 80", "run_motor", {"power": 80.0}),
        ("look around", "scan", {}),
        ("if wall ahead", "if_wall_ahead", {}),
        ("if you see green", "if_color", {"color": "green"}),
    ],
)
def test_phrase_rules(phrase: str, intent: str, slots: dict) -> None:
    primitive = parse_phrase(phrase)
    assert primitive is not None
    assert primitive.intent == intent
    assert dict(primitive.slots) == slots
    assert primitive.raw == phrase


def test_unrecognised_phrases_return_none() -> None:
    assert parse_phrase("hello there") is None
    assert parse_phrase("   ") is None
    assert parse_phrase("please um") is None


def test_factory_ids_are_used() -> None:
    factory = PrimitiveFactory(start=7)
    assert parse_phrase("beep", factory).id == 7
    assert parse_phrase("beep", factory).id == 8
