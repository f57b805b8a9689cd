"""Smoke tests for the pygame UI.

These tests verify that the application's main loop can initialise and
execute a handful of frames without crashing when the SDL dummy video
driver is used. They do not check rendering correctness.
"""

from __future__ import annotations

import os
from pathlib import Path

# Use the dummy drivers before importing pygame or the application
os.environ.setdefault("SDL_VIDEODRIVER", "dummy")
os.environ.setdefault("SDL_AUDIODRIVER", "dummy")
os.environ.setdefault("PYGAME_HIDE_SUPPORT_PROMPT", "1")


def test_app_runs_headless() -> None:
    """Ensure the application can start and run a few frames headlessly."""
    from bart_task.app import run

    exit_code = run(max_frames=3)
    assert exit_code == 0


def test_ui_smoke_start_task_and_pump(tmp_path: Path) -> None:
    import pygame

    from bart_task.app import run
    from bart_task.engine import BartConfig

    def key(k: int) -> None:
        pygame.event.post(pygame.event.Event(pygame.KEYDOWN, {"key": k, "unicode": ""}))

    def inject(frame: int) -> None:
        # Main Menu -> instructions -> task, then pump and collect.
        if frame in (1, 2):
            key(pygame.K_RETURN)
        elif frame in (4, 5, 6):
            key(pygame.K_SPACE)
        elif frame == 7:
            key(pygame.K_RETURN)
        elif frame == 9:
            key(pygame.K_ESCAPE)
        elif frame == 10:
            key(pygame.K_e)

    config = BartConfig(appear_s=0.0, explode_hold_s=0.0, collect_hold_s=0.0, settle_s=0.0)
    assert run(max_frames=14, event_injector=inject, config=config, export_dir=tmp_path) == 0
    assert len(list(tmp_path.glob("bart_results_*.csv"))) == 1


def test_command_line_parser() -> None:
    from bart_task.__main__ import build_parser

    args = build_parser().parse_args(["--ordered", "--seed", "7", "--export-dir", "out"])
    assert args.ordered is True
    assert args.seed == 7
    assert args.export_dir == Path("out")
    assert build_parser().parse_args([]).seed == 12345


def test_export_dir_follows_environment(tmp_path: Path, monkeypatch) -> None:
    from bart_task.app import EXPORT_DIR_ENV, export_dir_from_env

    monkeypatch.setenv(EXPORT_DIR_ENV, str(tmp_path))
    assert export_dir_from_env() == tmp_path
    monkeypatch.delenv(EXPORT_DIR_ENV)
    assert export_dir_from_env() == Path.cwd()
