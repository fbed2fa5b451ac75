"""Simulation layer: config, shared robot rules and the two schedulers."""

from .config import (  # noqa: F401
    SimulationConfig,
    ScenarioConfig,
    CommandConfig,
    ObstaclePlacementConfig,
    ScenarioInputs,
    to_inputs,
    scenario_from_preset,
    load_json,
    save_json,
    load_scenario,
    save_scenario,
)
from .rules import RobotPose, InteractionResult, RobotRules  # noqa: F401
from .batch import Frame, FrameEvent, FrameEffect, SimulationResult, simulate  # noqa: F401
from .events import RobotEvents, EventBus  # noqa: F401
from .realtime import RealtimeInterpreter  # noqa: F401
from .inspection import ReadinessCheck, inspect_frame, export_result  # noqa: F401
