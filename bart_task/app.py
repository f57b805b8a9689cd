"""Pygame UI shell for the Balloon Analogue Risk Task.

The shell is a presentation collaborator only: it forwards key presses to the
engine's ``pump``/``collect`` entry points, polls ``update()`` once per frame
and draws from ``BartEngine.snapshot()``. Deterministic trial generation,
state, logging and scoring live in bart_task/* (core modules).
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

import pygame

from .balloons import BalloonType
from .clock import RealClock
from .engine import BartConfig, BartEngine, BartEvent, TrialEnded, TrialOutcome, TrialState, build_bart_session
from .export import write_session_csv
from .results import session_result_from_engine
from .trial_log import BlockName

log = logging.getLogger(__name__)

WINDOW_SIZE = (960, 540)
TARGET_FPS = 60
EXPORT_DIR_ENV = "BART_EXPORT_DIR"

BALLOON_COLORS: dict[BalloonType, tuple[int, int, int]] = {
    BalloonType.TRAINING: (92, 184, 92),
    BalloonType.LOW: (38, 166, 154),
    BalloonType.MEDIUM: (255, 179, 0),
    BalloonType.HIGH: (216, 27, 96),
}

SCORE_LABELS: tuple[tuple[str, str], ...] = (
    ("overallRisk", "Overall risk taking"),
    ("efficiency", "Risk-return efficiency"),
    ("adaptation", "Adaptation"),
    ("lossSensitivity", "Loss sensitivity"),
    ("decisionSpeed", "Decision speed"),
)


class Screen(Protocol):
    def handle_event(self, event: pygame.event.Event) -> None: ...
    def render(self, surface: pygame.Surface) -> None: ...


@dataclass(frozen=True, slots=True)
class MenuItem:
    label: str
    action: Callable[[], None]


def export_dir_from_env() -> Path:
    raw = os.environ.get(EXPORT_DIR_ENV, "").strip()
    return Path(raw) if raw else Path.cwd()


class App:
    def __init__(self, surface: pygame.Surface, font: pygame.font.Font) -> None:
        self._surface = surface
        self._font = font
        self._screens: list[Screen] = []
        self._running = True

    @property
    def running(self) -> bool:
        return self._running

    @property
    def font(self) -> pygame.font.Font:
        return self._font

    def push(self, screen: Screen) -> None:
        self._screens.append(screen)

    def pop(self) -> None:
        # Never pop the last/root screen; root handles its own quit/back behavior.
        if len(self._screens) > 1:
            self._screens.pop()

    def quit(self) -> None:
        self._running = False

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type == pygame.QUIT:
            self.quit()
            return
        if not self._screens:
            return
        self._screens[-1].handle_event(event)

    def render(self) -> None:
        if not self._screens:
            return
        self._screens[-1].render(self._surface)


class MenuScreen:
    def __init__(self, app: App, title: str, items: list[MenuItem], *, is_root: bool = False) -> None:
        self._app = app
        self._title = title
        self._items = items
        self._selected = 0
        self._is_root = is_root
        self._title_font = pygame.font.Font(None, 42)
        self._item_font = pygame.font.Font(None, 32)
        self._hint_font = pygame.font.Font(None, 22)

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type != pygame.KEYDOWN:
            return
        if event.key in (pygame.K_UP, pygame.K_w):
            self._move(-1)
        elif event.key in (pygame.K_DOWN, pygame.K_s):
            self._move(1)
        elif event.key in (pygame.K_RETURN, pygame.K_KP_ENTER, pygame.K_SPACE):
            if self._items:
                self._items[self._selected].action()
        elif event.key in (pygame.K_ESCAPE, pygame.K_BACKSPACE):
            if self._is_root:
                self._app.quit()
            else:
                self._app.pop()

    def _move(self, delta: int) -> None:
        if not self._items:
            return
        self._selected = (self._selected + delta) % len(self._items)

    def render(self, surface: pygame.Surface) -> None:
        w, h = surface.get_size()
        surface.fill((245, 240, 230))

        title = self._title_font.render(self._title, True, (90, 74, 58))
        surface.blit(title, title.get_rect(center=(w // 2, max(40, h // 6))))

        row_h = 44
        y = h // 3
        for idx, item in enumerate(self._items):
            row = pygame.Rect(w // 2 - 180, y, 360, row_h - 8)
            selected = idx == self._selected
            pygame.draw.rect(surface, (129, 199, 132) if selected else (255, 253, 245), row, border_radius=10)
            pygame.draw.rect(surface, (208, 192, 160), row, 2, border_radius=10)
            text = self._item_font.render(item.label, True, (255, 255, 255) if selected else (90, 74, 58))
            surface.blit(text, text.get_rect(center=row.center))
            y += row_h

        foot = self._hint_font.render("Up/Down: Move  |  Enter/Space: Select  |  Esc: Back", True, (138, 122, 106))
        surface.blit(foot, foot.get_rect(midbottom=(w // 2, h - 12)))


class InstructionsScreen:
    def __init__(self, app: App, *, lines: list[str], on_continue: Callable[[], None]) -> None:
        self._app = app
        self._lines = lines
        self._on_continue = on_continue
        self._font = pygame.font.Font(None, 28)

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type != pygame.KEYDOWN:
            return
        if event.key in (pygame.K_RETURN, pygame.K_KP_ENTER, pygame.K_SPACE):
            self._app.pop()
            self._on_continue()
        elif event.key == pygame.K_ESCAPE:
            self._app.pop()

    def render(self, surface: pygame.Surface) -> None:
        w, h = surface.get_size()
        surface.fill((245, 240, 230))
        y = 30
        for line in self._lines + ["", "Press Enter to begin."]:
            text = self._font.render(line, True, (90, 74, 58))
            surface.blit(text, (max(20, w // 10), y))
            y += 28


class BartScreen:
    def __init__(
        self,
        app: App,
        *,
        engine_factory: Callable[[], BartEngine],
        export_dir: Path,
    ) -> None:
        self._app = app
        self._engine = engine_factory()
        self._export_dir = export_dir
        self._status: str | None = None
        self._flash: str | None = None

        self._big_font = pygame.font.Font(None, 64)
        self._mid_font = pygame.font.Font(None, 36)
        self._small_font = pygame.font.Font(None, 24)

        self._engine.subscribe(self._on_event)
        self._engine.start_session()

    def _on_event(self, event: BartEvent) -> None:
        if isinstance(event, TrialEnded):
            if event.outcome is TrialOutcome.EXPLODED:
                self._flash = "POP!"
            else:
                self._flash = f"+{event.record.earnings_this_balloon}"

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type != pygame.KEYDOWN:
            return

        if self._engine.state is TrialState.FINISHED:
            if event.key == pygame.K_e:
                self._export()
            elif event.key == pygame.K_r:
                self._status = None
                self._engine.restart()
            elif event.key in (pygame.K_ESCAPE, pygame.K_BACKSPACE, pygame.K_RETURN):
                self._app.pop()
            return

        if event.key in (pygame.K_SPACE, pygame.K_UP):
            self._engine.pump()
        elif event.key in (pygame.K_RETURN, pygame.K_KP_ENTER, pygame.K_c):
            self._engine.collect()
        elif event.key == pygame.K_ESCAPE:
            self._engine.abandon()

    def _export(self) -> None:
        result = session_result_from_engine(self._engine)
        try:
            path = write_session_csv(result, directory=self._export_dir)
        except OSError as exc:
            log.error("export failed: %s", exc)
            self._status = f"Export failed: {exc}"
            return
        self._status = f"Saved {path.name}"

    def render(self, surface: pygame.Surface) -> None:
        self._engine.update()
        snap = self._engine.snapshot()
        w, h = surface.get_size()
        surface.fill((245, 240, 230))

        if snap.state is TrialState.FINISHED:
            self._render_results(surface)
            return

        block = "" if snap.block is None else ("Practice" if snap.block is BlockName.TUTORIAL else "Test")
        header = self._mid_font.render(f"{block}  |  Balloons left: {snap.balloons_remaining}", True, (90, 74, 58))
        surface.blit(header, (20, 16))

        if snap.balloon_type is not None and snap.state in (TrialState.APPEARING, TrialState.ACTIVE, TrialState.COLLECTED):
            radius = 30 + min(snap.times_pumped, 64) * 2
            color = BALLOON_COLORS[snap.balloon_type]
            pygame.draw.circle(surface, color, (w // 2, h // 2 - 20), radius)
        if self._flash and snap.state in (TrialState.EXPLODING, TrialState.COLLECTED, TrialState.ADVANCING):
            flash = self._big_font.render(self._flash, True, (90, 74, 58))
            surface.blit(flash, flash.get_rect(center=(w // 2, h // 2 - 20)))

        stats = f"Balloon: {snap.current_money}    Total: {snap.total_money}    Pumps: {snap.times_pumped}"
        text = self._mid_font.render(stats, True, (90, 74, 58))
        surface.blit(text, text.get_rect(midbottom=(w // 2, h - 48)))

        hint = self._small_font.render("Space: pump  |  Enter: collect  |  Esc: end session", True, (138, 122, 106))
        surface.blit(hint, hint.get_rect(midbottom=(w // 2, h - 14)))

    def _render_results(self, surface: pygame.Surface) -> None:
        w, h = surface.get_size()
        title = self._big_font.render("Task complete", True, (90, 74, 58))
        surface.blit(title, title.get_rect(center=(w // 2, 50)))
        total = self._mid_font.render(f"Total earnings: {self._engine.total_money}", True, (129, 199, 132))
        surface.blit(total, total.get_rect(center=(w // 2, 100)))

        scores = self._engine.scores
        y = 150
        if scores is not None:
            metrics = scores.metrics()
            for key, label in SCORE_LABELS:
                left = self._mid_font.render(label, True, (138, 122, 106))
                right = self._mid_font.render(f"{metrics[key].score}/100", True, (90, 74, 58))
                surface.blit(left, (w // 2 - 260, y))
                surface.blit(right, right.get_rect(topright=(w // 2 + 260, y)))
                y += 40

        if self._status:
            status = self._small_font.render(self._status, True, (90, 74, 58))
            surface.blit(status, status.get_rect(center=(w // 2, h - 60)))
        hint = self._small_font.render("E: export CSV  |  R: play again  |  Esc: menu", True, (138, 122, 106))
        surface.blit(hint, hint.get_rect(midbottom=(w // 2, h - 14)))


def run(
    *,
    max_frames: int | None = None,
    event_injector: Callable[[int], None] | None = None,
    config: BartConfig | None = None,
    export_dir: Path | None = None,
) -> int:
    pygame.init()

    pygame.display.set_caption("Balloon Analogue Risk Task")
    surface = pygame.display.set_mode(WINDOW_SIZE, pygame.RESIZABLE)

    font = pygame.font.Font(None, 36)
    clock = pygame.time.Clock()

    app = App(surface=surface, font=font)
    real_clock = RealClock()
    target_dir = export_dir if export_dir is not None else export_dir_from_env()

    def open_session() -> None:
        app.push(
            BartScreen(
                app,
                engine_factory=lambda: build_bart_session(clock=real_clock, config=config),
                export_dir=target_dir,
            )
        )

    def open_instructions() -> None:
        preview = build_bart_session(clock=real_clock, config=config)
        app.push(InstructionsScreen(app, lines=preview.instructions(), on_continue=open_session))

    main_items = [
        MenuItem("Start task", open_instructions),
        MenuItem("Quit", app.quit),
    ]
    app.push(MenuScreen(app, "Balloon Analogue Risk Task", main_items, is_root=True))

    frame = 0
    try:
        while app.running:
            if event_injector is not None:
                event_injector(frame)

            for event in pygame.event.get():
                app.handle_event(event)

            app.render()

            pygame.display.flip()

            frame += 1
            if max_frames is not None and frame >= max_frames:
                break

            clock.tick(TARGET_FPS)
    finally:
        pygame.quit()

    return 0
