"""Expand repeat blocks into a flat instruction stream."""
from __future__ import annotations

from typing import List, Sequence, Tuple

from .primitives import CommandPrimitive, Intents


def _capture_body(commands: Sequence[CommandPrimitive], start: int) -> Tuple[List[CommandPrimitive], int, bool]:
    """Collect the body after an opener up to its matching ``stop_repeat``.

    Returns the body, the index just past the closer, and whether a closer
    was found at all.
    """
    body: List[CommandPrimitive] = []
    depth = 1
    i = start
    while i < len(commands):
        intent = commands[i].intent
        if intent in Intents.LOOP_OPENERS:
            depth += 1
        elif intent == Intents.STOP_REPEAT:
            depth -= 1
            if depth == 0:
                return body, i + 1, True
        body.append(commands[i])
        i += 1
    return body, i, False


def _repeat_count(opener: CommandPrimitive, max_forever_iterations: int) -> int:
    if opener.intent == Intents.REPEAT_FOREVER:
        return max_forever_iterations
    try:
        return max(0, int(opener.slot("times", 1)))
    except (TypeError, ValueError):
        return 1


def unroll(commands: Sequence[CommandPrimitive], max_forever_iterations: int) -> List[CommandPrimitive]:
    """Flatten ``repeat``/``repeat_forever`` blocks.

    ``repeat_forever`` runs exactly ``max_forever_iterations`` times. A
    ``stop_repeat`` with no open block is dropped; a block still open at the
    end of the list repeats zero times.
    """
    result: List[CommandPrimitive] = []
    i = 0
    while i < len(commands):
        command = commands[i]
        if command.intent in Intents.LOOP_OPENERS:
            body, i, closed = _capture_body(commands, i + 1)
            if not closed:
                continue
            flat_body = unroll(body, max_forever_iterations)
            for _ in range(_repeat_count(command, max_forever_iterations)):
                result.extend(flat_body)
        elif command.intent == Intents.STOP_REPEAT:
            i += 1
        else:
            result.append(command)
            i += 1
    return result


__all__ = ["unroll"]
