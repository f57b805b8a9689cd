"""CSV export of the trial log and summary scores.

Layout: the header row, one row per record in log order, a blank line, then a
``SUMMARY SCORES`` section with one ``key,value`` line per summary entry.
Cells use JSON literal encoding (numbers bare, strings quoted, ``null`` for
missing values), with integral floats written without a fractional part.
"""

from __future__ import annotations

import json
import logging
import math
import time
from collections.abc import Mapping, Sequence
from pathlib import Path

from .results import SessionResult
from .trial_log import TrialRecord

log = logging.getLogger(__name__)

EXPORT_COLUMNS: tuple[tuple[str, str], ...] = (
    ("blockName", "block_name"),
    ("balloonColor", "balloon_color"),
    ("balloonCount", "balloon_count"),
    ("timesPumped", "times_pumped"),
    ("explosion", "explosion"),
    ("earningsThisBalloon", "earnings_this_balloon"),
    ("totalEarningsSoFar", "total_earnings_so_far"),
    ("totalAdjustedBartScoreSoFar", "total_adjusted_bart_score_so_far"),
    ("averagePumpRT", "average_pump_rt"),
)

HEADER = ",".join(name for name, _ in EXPORT_COLUMNS)
SUMMARY_TITLE = "SUMMARY SCORES"


def _number_text(value: float) -> str:
    if math.isfinite(value) and float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def json_literal(value: object) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return _number_text(value)
    # StrEnum members are str instances and encode as their value.
    return json.dumps(str(value))


def record_row(record: TrialRecord) -> str:
    return ",".join(json_literal(getattr(record, attr)) for _, attr in EXPORT_COLUMNS)


def render_csv(records: Sequence[TrialRecord], summary: Mapping[str, float | int]) -> str:
    lines = [HEADER]
    lines.extend(record_row(r) for r in records)
    lines.append("")
    lines.append(SUMMARY_TITLE)
    for key, value in summary.items():
        text = _number_text(value) if isinstance(value, float) else str(value)
        lines.append(f"{key},{text}")
    return "\n".join(lines)


def render_session_csv(result: SessionResult) -> str:
    return render_csv(result.records, result.scores.as_dict())


def default_export_name() -> str:
    return f"bart_results_{int(time.time() * 1000)}.csv"


def write_session_csv(result: SessionResult, *, directory: Path, filename: str | None = None) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / (filename or default_export_name())
    path.write_text(render_session_csv(result), encoding="utf-8")
    log.info("exported %d trial records to %s", len(result.records), path)
    return path
