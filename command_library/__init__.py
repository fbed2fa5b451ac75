"""Command vocabulary: primitives, loop unrolling, text parsers and presets."""

from .primitives import CommandPrimitive, Intents, PrimitiveFactory, primitives_from_dicts
from .unroll import unroll
from .code_parser import ParseResult, parse_code
from .phrase_parser import parse_phrase
from .presets import CHASSIS_PRESETS, DEMO_PROGRAMS, KID_CHALLENGES, RobotCapabilities, ScenarioPreset
from . import presets

__all__ = [
    "CommandPrimitive",
    "Intents",
    "PrimitiveFactory",
    "primitives_from_dicts",
    "unroll",
    "ParseResult",
    "parse_code",
    "parse_phrase",
    "CHASSIS_PRESETS",
    "DEMO_PROGRAMS",
    "KID_CHALLENGES",
    "RobotCapabilities",
    "ScenarioPreset",
    "presets",
]
