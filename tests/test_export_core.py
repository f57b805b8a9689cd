from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path

from bart_task.engine import BartConfig, build_bart_session
from bart_task.export import (
    HEADER,
    default_export_name,
    json_literal,
    record_row,
    render_csv,
    write_session_csv,
)
from bart_task.results import session_result_from_engine
from bart_task.trial_log import BlockName, TrialRecord


@dataclass
class FakeClock:
    t: float = 0.0

    def now(self) -> float:
        return self.t

    def advance(self, dt: float) -> None:
        self.t += float(dt)


def test_header_matches_export_format() -> None:
    assert HEADER == (
        "blockName,balloonColor,balloonCount,timesPumped,explosion,"
        "earningsThisBalloon,totalEarningsSoFar,totalAdjustedBartScoreSoFar,averagePumpRT"
    )


def test_json_literal_encoding() -> None:
    assert json_literal(None) == "null"
    assert json_literal(7) == "7"
    assert json_literal(3.0) == "3"
    assert json_literal(2.5) == "2.5"
    assert json_literal("low") == '"low"'
    assert json_literal(BlockName.MAIN) == '"main"'


def test_rows_render_tutorial_nulls_and_main_totals() -> None:
    tutorial = TrialRecord(
        block_name=BlockName.TUTORIAL,
        balloon_color="medium",
        balloon_count=1,
        times_pumped=5,
        explosion=0,
        earnings_this_balloon=5,
        total_earnings_so_far=None,
        total_adjusted_bart_score_so_far=None,
        average_pump_rt=250,
    )
    main = TrialRecord(
        block_name=BlockName.MAIN,
        balloon_color="high",
        balloon_count=2,
        times_pumped=3,
        explosion=1,
        earnings_this_balloon=0,
        total_earnings_so_far=120,
        total_adjusted_bart_score_so_far=4.5,
        average_pump_rt=412,
    )
    assert record_row(tutorial) == '"tutorial","medium",1,5,0,5,null,null,250'
    assert record_row(main) == '"main","high",2,3,1,0,120,4.5,412'


def test_render_csv_appends_summary_section() -> None:
    text = render_csv([], {"overallRisk_raw": 0.25, "overallRisk_score": 8})
    assert text.split("\n") == [HEADER, "", "SUMMARY SCORES", "overallRisk_raw,0.25", "overallRisk_score,8"]


def test_write_session_csv(tmp_path: Path) -> None:
    clock = FakeClock()
    engine = build_bart_session(
        clock=clock,
        config=BartConfig(appear_s=0.0, explode_hold_s=0.0, collect_hold_s=0.0, settle_s=0.0),
    )
    engine.start_session()
    engine.update()
    clock.advance(0.5)
    engine.pump()
    engine.collect()
    engine.abandon()

    result = session_result_from_engine(engine)
    path = write_session_csv(result, directory=tmp_path / "out")

    assert path.parent == tmp_path / "out"
    assert re.fullmatch(r"bart_results_\d+\.csv", path.name)
    lines = path.read_text(encoding="utf-8").split("\n")
    assert lines[0] == HEADER
    assert lines[1] == '"tutorial","medium",1,1,0,1,null,null,500'
    assert lines[2] == ""
    assert lines[3] == "SUMMARY SCORES"
    assert lines[4] == "overallRisk_raw,0"
    assert lines[-1] == "Speed_score,50"
    assert len(lines) == 4 + 15


def test_write_session_csv_with_explicit_name(tmp_path: Path) -> None:
    clock = FakeClock()
    engine = build_bart_session(clock=clock)
    engine.start_session()
    engine.abandon()
    path = write_session_csv(session_result_from_engine(engine), directory=tmp_path, filename="p01.csv")
    assert path == tmp_path / "p01.csv"
    assert path.read_text(encoding="utf-8").startswith(HEADER + "\n\nSUMMARY SCORES\n")


def test_default_export_name_is_timestamped() -> None:
    assert re.fullmatch(r"bart_results_\d+\.csv", default_export_name())
