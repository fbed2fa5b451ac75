"""Arena viewer with pygame + pygame_gui: scrub batch frames or watch a live run."""
from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import pygame
import pygame_gui

from arena_mechanics.geometry import OrientedRect, heading_vector, rect_corners
from arena_mechanics.obstacles import ObstaclePlacement, ObstacleState, get_obstacle_type
from command_library import DEMO_PROGRAMS, PrimitiveFactory, parse_code, parse_phrase
from command_library.primitives import CommandPrimitive
from core import (
    EventBus,
    RealtimeInterpreter,
    RobotEvents,
    ScenarioConfig,
    SimulationResult,
    export_result,
    inspect_frame,
    load_scenario,
    scenario_from_preset,
    simulate,
    to_inputs,
)
from core.rules import RobotPose

ASSET_PATH = Path(__file__).parent

OBSTACLE_COLORS: Dict[str, Tuple[int, int, int]] = {
    "barrier": (239, 83, 80),
    "wall_h": (141, 110, 99),
    "wall_v": (141, 110, 99),
    "liftable": (255, 183, 77),
    "grabbable": (233, 30, 99),
    "pushable": (66, 165, 245),
    "goal": (102, 187, 106),
    "ramp": (171, 71, 188),
    "color_zone": (144, 202, 249),
}
NAMED_COLORS: Dict[str, Tuple[int, int, int]] = {
    "red": (229, 57, 53),
    "blue": (30, 136, 229),
    "green": (67, 160, 71),
    "yellow": (253, 216, 53),
    "orange": (251, 140, 0),
    "white": (240, 240, 240),
    "purple": (142, 36, 170),
    "pink": (236, 64, 122),
    "black": (30, 30, 30),
}
STATUS_COLORS: Dict[str, Tuple[int, int, int]] = {
    "ok": (102, 187, 106),
    "active": (79, 195, 247),
    "idle": (84, 110, 122),
    "warn": (255, 183, 77),
    "fail": (239, 83, 80),
    "far": (55, 71, 79),
}
ROBOT_COLOR = (79, 195, 247)


class SimpleTextEditor:
    """Minimal multi-line editor for pybricks-style program text."""

    def __init__(self, rect: pygame.Rect, font: pygame.font.Font, text: str = "") -> None:
        self.rect = rect
        self.font = font
        self.set_text(text)
        self.has_focus = False

    def set_text(self, text: str) -> None:
        self.lines = text.splitlines() or [""]
        self.cursor = [len(self.lines) - 1, len(self.lines[-1])]

    def text(self) -> str:
        return "\n".join(self.lines)

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type == pygame.MOUSEBUTTONDOWN:
            self.has_focus = self.rect.collidepoint(event.pos)
        if not self.has_focus or event.type != pygame.KEYDOWN:
            return
        row, col = self.cursor
        line = self.lines[row]
        if event.key == pygame.K_BACKSPACE:
            if col > 0:
                self.lines[row] = line[: col - 1] + line[col:]
                self.cursor[1] -= 1
            elif row > 0:
                prev = self.lines[row - 1]
                self.lines[row - 1] = prev + line
                del self.lines[row]
                self.cursor = [row - 1, len(prev)]
        elif event.key == pygame.K_RETURN:
            self.lines[row] = line[:col]
            self.lines.insert(row + 1, line[col:])
            self.cursor = [row + 1, 0]
        elif event.key == pygame.K_UP and row > 0:
            self.cursor = [row - 1, min(col, len(self.lines[row - 1]))]
        elif event.key == pygame.K_DOWN and row < len(self.lines) - 1:
            self.cursor = [row + 1, min(col, len(self.lines[row + 1]))]
        elif event.key == pygame.K_LEFT:
            self.cursor[1] = max(0, col - 1)
        elif event.key == pygame.K_RIGHT:
            self.cursor[1] = min(len(line), col + 1)
        elif event.key == pygame.K_TAB:
            self.lines[row] = line[:col] + "    " + line[col:]
            self.cursor[1] += 4
        elif event.unicode and event.unicode.isprintable():
            self.lines[row] = line[:col] + event.unicode + line[col:]
            self.cursor[1] += 1

    def draw(self, surface: pygame.Surface) -> None:
        pygame.draw.rect(surface, (25, 25, 25), self.rect)
        pygame.draw.rect(surface, (70, 70, 70), self.rect, 1)
        line_height = self.font.get_height() + 2
        for i, line in enumerate(self.lines):
            y = self.rect.y + i * line_height + 2
            if y + line_height > self.rect.bottom:
                break
            surface.blit(self.font.render(line, True, (220, 220, 220)), (self.rect.x + 4, y))
        if self.has_focus:
            row, col = self.cursor
            cx = self.rect.x + 4 + self.font.size(self.lines[row][:col])[0]
            cy = self.rect.y + row * line_height + 2
            pygame.draw.line(surface, (240, 200, 120), (cx, cy), (cx, cy + line_height - 4), 2)


class SimulationApp:
    def __init__(self, scenario: ScenarioConfig) -> None:
        pygame.init()
        pygame.display.set_caption("Robot Arena Simulator")
        self.window_size = (1200, 720)
        self.window_surface = pygame.display.set_mode(self.window_size)
        self.manager = pygame_gui.UIManager(self.window_size)
        self.clock = pygame.time.Clock()
        self.font = pygame.font.Font(pygame.font.get_default_font(), 14)
        self.running = True
        self.playing = False
        self.live_mode = False
        self.frame_index = 0
        self._frame_accum = 0.0
        self.live: Optional[RealtimeInterpreter] = None

        self.viewport_rect = pygame.Rect(20, 110, 580, 580)
        self.factory = PrimitiveFactory()
        self.bus = EventBus()
        self.bus.on(RobotEvents.ALL_COMMANDS_DONE, lambda: print("Live run finished"))
        self.bus.on(RobotEvents.WARNING, lambda reason: print(f"Warning: {reason}"))
        self.bus.on(RobotEvents.GOAL_REACHED, lambda goal_id: print(f"Goal {goal_id} reached"))

        self._build_ui()
        self.code_editor = SimpleTextEditor(pygame.Rect(820, 110, 360, 250), self.font)
        self.load_scenario(scenario)

    # --- Setup --------------------------------------------------------------

    def _build_ui(self) -> None:
        def button(x: int, y: int, w: int, text: str) -> pygame_gui.elements.UIButton:
            return pygame_gui.elements.UIButton(relative_rect=pygame.Rect((x, y), (w, 30)), text=text, manager=self.manager)

        self.btn_play = button(20, 20, 80, "Play")
        self.btn_step = button(110, 20, 80, "Step")
        self.btn_reset = button(200, 20, 80, "Reset")
        self.btn_live = button(290, 20, 110, "Live mode")
        self.btn_export = button(410, 20, 120, "Export frames")
        names = list(DEMO_PROGRAMS.keys())
        self.demo_dropdown = pygame_gui.elements.UIDropDownMenu(
            options_list=names,
            starting_option=names[0],
            relative_rect=pygame.Rect((540, 20), (200, 30)),
            manager=self.manager,
        )
        self.slider: Optional[pygame_gui.elements.UIHorizontalSlider] = None
        self._build_slider(1)
        self.phrase_entry = pygame_gui.elements.UITextEntryLine(
            relative_rect=pygame.Rect((820, 65), (260, 30)), manager=self.manager
        )
        self.btn_add_phrase = button(1090, 65, 90, "Add")
        self.btn_run_code = button(820, 370, 120, "Run code")
        self.btn_clear = button(950, 370, 120, "Clear program")

    def _build_slider(self, last_frame: int) -> None:
        # pygame_gui fixes value_range when the slider is built.
        if self.slider is not None:
            self.slider.kill()
        self.slider = pygame_gui.elements.UIHorizontalSlider(
            relative_rect=pygame.Rect((20, 65), (580, 30)),
            start_value=0,
            value_range=(0, last_frame),
            manager=self.manager,
        )

    def load_scenario(self, scenario: ScenarioConfig) -> None:
        self.scenario = scenario
        self.config = scenario.simulation
        inputs = to_inputs(scenario, self.factory)
        if inputs.parse_error:
            print(f"Parse error: {inputs.parse_error}")
        self.commands: List[CommandPrimitive] = list(inputs.primitives)
        self.capabilities = inputs.capabilities
        self.placements: List[ObstaclePlacement] = list(inputs.placements)
        self.code_editor.set_text(scenario.code or "")
        self._resimulate()

    def _resimulate(self) -> None:
        self.result: SimulationResult = simulate(self.commands, self.capabilities, self.placements, self.config)
        self.frame_index = 0
        self._build_slider(max(1, len(self.result.frames) - 1))
        if self.live is not None:
            self.live.destroy()
            self.live = None
        if self.live_mode:
            self._start_live()

    def _start_live(self) -> None:
        if self.live is not None:
            self.live.destroy()
        self.live = RealtimeInterpreter(self.capabilities, self.placements, self.config, self.bus)
        self.live.load_commands(self.commands)

    # --- Loop ---------------------------------------------------------------

    def run(self) -> None:
        while self.running:
            dt = self.clock.tick(60) / 1000.0
            for event in pygame.event.get():
                if event.type == pygame.QUIT:
                    self.running = False
                if event.type == pygame.KEYDOWN and event.key == pygame.K_ESCAPE:
                    self.running = False
                self._handle_ui_event(event)
                self.code_editor.handle_event(event)
                self.manager.process_events(event)
            self.manager.update(dt)
            if self.live_mode and self.live is not None:
                self.live.update(dt * 1000.0)
            elif self.playing:
                self._advance_playback(dt)
            self._draw()
        pygame.quit()

    def _advance_playback(self, dt: float) -> None:
        self._frame_accum += dt * self.config.fps
        while self._frame_accum >= 1.0:
            self._frame_accum -= 1.0
            if self.frame_index >= len(self.result.frames) - 1:
                self.playing = False
                self.btn_play.set_text("Play")
                return
            self.frame_index += 1
        self.slider.set_current_value(self.frame_index)

    def _handle_ui_event(self, event: pygame.event.Event) -> None:
        if event.type == pygame_gui.UI_HORIZONTAL_SLIDER_MOVED and event.ui_element == self.slider:
            self.frame_index = int(event.value)
            return
        if event.type == pygame_gui.UI_DROP_DOWN_MENU_CHANGED and event.ui_element == self.demo_dropdown:
            self.load_scenario(scenario_from_preset(DEMO_PROGRAMS[event.text]))
            return
        if event.type == pygame_gui.UI_TEXT_ENTRY_FINISHED and event.ui_element == self.phrase_entry:
            self._add_phrase()
            return
        if event.type != pygame_gui.UI_BUTTON_PRESSED:
            return
        if event.ui_element == self.btn_play:
            if self.live_mode and self.live is not None:
                self.bus.emit(RobotEvents.PAUSE if not self.live.paused else RobotEvents.PLAY)
                self.btn_play.set_text("Play" if self.live.paused else "Pause")
            else:
                self.playing = not self.playing
                self.btn_play.set_text("Pause" if self.playing else "Play")
        elif event.ui_element == self.btn_step:
            self.playing = False
            self.btn_play.set_text("Play")
            self.frame_index = min(self.frame_index + 1, len(self.result.frames) - 1)
            self.slider.set_current_value(self.frame_index)
        elif event.ui_element == self.btn_reset:
            self.frame_index = 0
            self.slider.set_current_value(0)
            if self.live is not None:
                self.bus.emit(RobotEvents.RESET)
                self.live.load_commands(self.commands)
        elif event.ui_element == self.btn_live:
            self.live_mode = not self.live_mode
            self.btn_live.set_text("Batch mode" if self.live_mode else "Live mode")
            if self.live_mode:
                self._start_live()
        elif event.ui_element == self.btn_export:
            self._export_frames()
        elif event.ui_element == self.btn_add_phrase:
            self._add_phrase()
        elif event.ui_element == self.btn_run_code:
            self._run_code()
        elif event.ui_element == self.btn_clear:
            self.commands = []
            self._resimulate()

    def _add_phrase(self) -> None:
        text = self.phrase_entry.get_text()
        primitive = parse_phrase(text, self.factory)
        if primitive is None:
            print(f"Didn't understand: {text!r}")
            return
        self.commands.append(primitive)
        self.phrase_entry.set_text("")
        print(f"Added: {primitive.raw}")
        self._resimulate()

    def _run_code(self) -> None:
        parsed = parse_code(self.code_editor.text(), self.factory)
        if not parsed.ok:
            print(f"Parse error: {parsed.error}")
            return
        self.commands = list(parsed.primitives)
        print(f"Parsed {len(self.commands)} commands")
        self._resimulate()

    def _export_frames(self) -> None:
        out_path = ASSET_PATH / "exports" / f"{self.scenario.name.replace(' ', '_')}_frames.json"
        out_path.parent.mkdir(parents=True, exist_ok=True)
        with out_path.open("w", encoding="utf-8") as f:
            json.dump(export_result(self.result), f, indent=2, default=str)
        print(f"Exported {len(self.result.frames)} frames to {out_path}")

    # --- Drawing ------------------------------------------------------------

    def _scale(self) -> float:
        return self.viewport_rect.width / self.config.world_size

    def _to_screen(self, x: float, y: float) -> Tuple[int, int]:
        s = self._scale()
        return (int(self.viewport_rect.x + x * s), int(self.viewport_rect.y + y * s))

    def _current_view(self) -> Tuple[RobotPose, List[ObstacleState], List[Tuple[float, float]], str]:
        if self.live_mode and self.live is not None:
            command = self.live.current_command
            label = command.raw if command is not None else ("Done" if self.live.finished else "")
            return self.live.pose, list(self.live.arena.snapshot()), [], label
        frame = self.result.frames[min(self.frame_index, len(self.result.frames) - 1)]
        return frame.pose, list(frame.obstacles), list(self.result.trail_for(frame)), frame.label

    def _draw(self) -> None:
        self.window_surface.fill((10, 22, 40))
        pose, obstacles, trail, label = self._current_view()
        self._draw_grid()
        for state in obstacles:
            self._draw_obstacle(state)
        if len(trail) > 1:
            pygame.draw.lines(self.window_surface, (79, 195, 247), False, [self._to_screen(*p) for p in trail], 1)
        self._draw_robot(pose)
        self.window_surface.blit(self.font.render(label, True, (230, 230, 230)), (20, 695))
        if not self.live_mode:
            self._draw_checks()
        self.code_editor.draw(self.window_surface)
        self.manager.draw_ui(self.window_surface)
        pygame.display.update()

    def _draw_grid(self) -> None:
        pygame.draw.rect(self.window_surface, (10, 22, 40), self.viewport_rect)
        cells = int(self.config.world_size // 100)
        for i in range(cells + 1):
            x0, y0 = self._to_screen(i * 100, 0)
            x1, y1 = self._to_screen(i * 100, self.config.world_size)
            pygame.draw.line(self.window_surface, (26, 42, 58), (x0, y0), (x1, y1))
            x0, y0 = self._to_screen(0, i * 100)
            x1, y1 = self._to_screen(self.config.world_size, i * 100)
            pygame.draw.line(self.window_surface, (26, 42, 58), (x0, y0), (x1, y1))

    def _draw_obstacle(self, state: ObstacleState) -> None:
        type_def = get_obstacle_type(state.kind)
        if type_def is None:
            return
        color = NAMED_COLORS.get(state.color or "", OBSTACLE_COLORS.get(state.kind, (150, 150, 150)))
        rect = OrientedRect(state.x, state.y, type_def.half_width, type_def.half_height)
        points = [self._to_screen(px, py) for px, py in rect_corners(rect)]
        width = 2 if not type_def.solid else 0
        pygame.draw.polygon(self.window_surface, color, points, width)
        if state.pushed:
            pygame.draw.polygon(self.window_surface, (255, 255, 255), points, 1)

    def _draw_robot(self, pose: RobotPose) -> None:
        rect = OrientedRect(
            pose.x, pose.y, self.config.robot_half_width, self.config.robot_half_height, pose.heading + 90.0
        )
        points = [self._to_screen(px, py) for px, py in rect_corners(rect)]
        pygame.draw.polygon(self.window_surface, (13, 27, 46), points)
        pygame.draw.polygon(self.window_surface, ROBOT_COLOR, points, 2)
        dx, dy = heading_vector(pose.heading)
        reach = self.config.robot_half_width + 6
        tip = self._to_screen(pose.x + dx * reach, pose.y + dy * reach)
        pygame.draw.line(self.window_surface, ROBOT_COLOR, self._to_screen(pose.x, pose.y), tip, 3)

    def _draw_checks(self) -> None:
        frame = self.result.frames[min(self.frame_index, len(self.result.frames) - 1)]
        y = 420
        for check in inspect_frame(frame, self.capabilities, self.config):
            color = STATUS_COLORS.get(check.status, (200, 200, 200))
            text = f"{check.label}: {check.detail}"
            self.window_surface.blit(self.font.render(text, True, color), (820, y))
            y += 20


def _scenario_from_args(argv: List[str]) -> ScenarioConfig:
    if len(argv) > 1:
        path = Path(argv[1])
        if path.suffix == ".json":
            return load_scenario(path)
        return scenario_from_preset(DEMO_PROGRAMS[argv[1]])
    return scenario_from_preset(next(iter(DEMO_PROGRAMS.values())))


def main():
    app = SimulationApp(_scenario_from_args(sys.argv))
    app.run()


if __name__ == "__main__":
    main()
