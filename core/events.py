"""Event names and a small synchronous event bus for the real-time scheduler."""
from __future__ import annotations

from typing import Any, Callable, Dict, List

Handler = Callable[..., None]


class RobotEvents:
    # Command lifecycle
    COMMAND_START = "ROBOT_COMMAND_START"
    COMMAND_COMPLETE = "ROBOT_COMMAND_COMPLETE"
    ALL_COMMANDS_DONE = "ROBOT_ALL_COMMANDS_DONE"
    COMMANDS_LOADED = "ROBOT_COMMANDS_LOADED"

    SENSOR_READING = "ROBOT_SENSOR_READING"

    # World interactions
    GOAL_REACHED = "ROBOT_GOAL_REACHED"
    COLLISION = "ROBOT_COLLISION"
    OBJECT_PICKED_UP = "ROBOT_OBJECT_PICKED_UP"
    OBJECT_DROPPED = "ROBOT_OBJECT_DROPPED"
    OBJECT_PUSHED = "ROBOT_OBJECT_PUSHED"
    WARNING = "ROBOT_WARNING"

    # Pose changes
    ARM_CHANGED = "ROBOT_ARM_CHANGED"
    CLAW_CHANGED = "ROBOT_CLAW_CHANGED"
    HEADING_CHANGED = "ROBOT_HEADING_CHANGED"
    POSITION_CHANGED = "ROBOT_POSITION_CHANGED"

    # Playback control, accepted rather than emitted
    PLAY = "ROBOT_PLAY"
    PAUSE = "ROBOT_PAUSE"
    RESET = "ROBOT_RESET"

    # Cues
    BEEP = "ROBOT_BEEP"
    SAY = "ROBOT_SAY"
    LIGHT = "ROBOT_LIGHT"


class EventBus:
    """Handlers run synchronously, in subscription order."""

    def __init__(self) -> None:
        self._handlers: Dict[str, List[Handler]] = {}

    def on(self, event: str, handler: Handler) -> None:
        self._handlers.setdefault(event, []).append(handler)

    def off(self, event: str, handler: Handler) -> None:
        handlers = self._handlers.get(event, [])
        if handler in handlers:
            handlers.remove(handler)

    def emit(self, event: str, *args: Any) -> None:
        # Copy so handlers may subscribe or unsubscribe while being called.
        for handler in list(self._handlers.get(event, ())):
            handler(*args)

    def listener_count(self, event: str) -> int:
        return len(self._handlers.get(event, ()))


class EventRecorder:
    """Collects ``(event, args)`` pairs; handy for logs and tests."""

    def __init__(self, bus: EventBus, events: List[str]) -> None:
        self.bus = bus
        self.records: List[tuple] = []
        self._subscriptions = []
        for name in events:
            handler = self._make_handler(name)
            bus.on(name, handler)
            self._subscriptions.append((name, handler))

    def _make_handler(self, name: str) -> Handler:
        def _record(*args: Any) -> None:
            self.records.append((name, args))

        return _record

    def names(self) -> List[str]:
        return [name for name, _ in self.records]

    def of(self, event: str) -> List[tuple]:
        return [args for name, args in self.records if name == event]

    def close(self) -> None:
        for name, handler in self._subscriptions:
            self.bus.off(name, handler)
        self._subscriptions.clear()


__all__ = ["RobotEvents", "EventBus", "EventRecorder", "Handler"]
