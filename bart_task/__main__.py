from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path


def _ensure_repo_root_on_path() -> None:
    """Ensure the repository root (parent of this package) is on ``sys.path``.

    When this file is executed as a script (``python bart_task/__main__.py``)
    the package is not importable by name; inserting its parent directory fixes
    that.
    """
    pkg_dir = Path(__file__).resolve().parent
    repo_root_str = str(pkg_dir.parent)
    if repo_root_str not in sys.path:
        sys.path.insert(0, repo_root_str)


try:
    # Works when executed as a module: python -m bart_task
    from .app import run  # type: ignore[attr-defined]
    from .balloons import DEFAULT_SEED  # type: ignore[attr-defined]
    from .engine import BartConfig  # type: ignore[attr-defined]
except ImportError:
    # Works when executed as a script (IDE "Run Python File", absolute path, etc.)
    _ensure_repo_root_on_path()
    from bart_task.app import run  # type: ignore[attr-defined]
    from bart_task.balloons import DEFAULT_SEED  # type: ignore[attr-defined]
    from bart_task.engine import BartConfig  # type: ignore[attr-defined]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="bart_task", description="Balloon Analogue Risk Task")
    parser.add_argument("--seed", type=int, default=DEFAULT_SEED, help="trial sequence seed")
    parser.add_argument(
        "--ordered",
        action="store_true",
        help="present the main block in fixed low/medium/high order instead of shuffled",
    )
    parser.add_argument("--export-dir", type=Path, default=None, help="directory for CSV exports")
    parser.add_argument("--max-frames", type=int, default=None, help=argparse.SUPPRESS)
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    return parser


def main(argv: list[str] | None = None) -> int:
    """Entry point for running the task from the command line."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    config = BartConfig(seed=args.seed, shuffle_main_block=not args.ordered)
    return run(max_frames=args.max_frames, config=config, export_dir=args.export_dir)


if __name__ == "__main__":
    raise SystemExit(main())
