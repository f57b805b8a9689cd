from __future__ import annotations

import pytest

from bart_task.scoring import (
    MetricScore,
    compute_adaptation,
    compute_decision_speed,
    compute_efficiency,
    compute_loss_sensitivity,
    compute_overall_risk,
    compute_score_set,
)
from bart_task.trial_log import BlockName, TrialRecord

VALUE_PER_PUMP = {"low": 5, "medium": 15, "high": 50}


def rec(
    color: str,
    pumps: int,
    *,
    exploded: bool = False,
    rt: int = 0,
    block: BlockName = BlockName.MAIN,
) -> TrialRecord:
    return TrialRecord(
        block_name=block,
        balloon_color=color,
        balloon_count=1,
        times_pumped=pumps,
        explosion=1 if exploded else 0,
        earnings_this_balloon=0 if exploded else pumps * VALUE_PER_PUMP[color],
        total_earnings_so_far=None if block is BlockName.TUTORIAL else 0,
        total_adjusted_bart_score_so_far=None if block is BlockName.TUTORIAL else 0.0,
        average_pump_rt=rt,
    )


NEUTRAL = MetricScore(raw=0.0, score=50)


def test_empty_log_yields_neutral_defaults() -> None:
    scores = compute_score_set([])
    assert all(m == NEUTRAL for m in scores.metrics().values())


def test_tutorial_records_are_ignored() -> None:
    tutorial = [rec("medium", 10, rt=400, block=BlockName.TUTORIAL) for _ in range(5)]
    scores = compute_score_set(tutorial)
    assert all(m == NEUTRAL for m in scores.metrics().values())


def test_overall_risk_blends_adjusted_bart_and_risk_ratio() -> None:
    records = [rec("low", 32), rec("medium", 8), rec("high", 2, exploded=True)]
    m = compute_overall_risk(records)
    # adjusted = (32 + 8) / 2 = 20; every risk ratio is 0.5
    assert m.raw == pytest.approx((20 / 64 + 0.5) / 2)
    assert m.score == 34


def test_efficiency_is_earnings_per_pump() -> None:
    records = [rec("low", 32), rec("medium", 8), rec("high", 2, exploded=True)]
    m = compute_efficiency(records)
    assert m.raw == pytest.approx(280 / 42)
    assert m.score == 13


def test_efficiency_with_no_pumps_is_zero() -> None:
    m = compute_efficiency([rec("low", 0), rec("high", 0, exploded=True)])
    assert m == MetricScore(raw=0.0, score=0)


def test_adaptation_requires_sixty_main_trials() -> None:
    records = [rec("low", 10)] * 59
    assert compute_adaptation(records) == NEUTRAL


def test_adaptation_perfectly_consistent_phases_score_full() -> None:
    records = [rec("low", 64)] * 20 + [rec("medium", 16)] * 20 + [rec("high", 4)] * 20
    m = compute_adaptation(records)
    assert m.raw == pytest.approx(0.0)
    assert m.score == 100


def test_adaptation_spread_between_phases_lowers_score() -> None:
    records = [rec("low", 32)] * 20 + [rec("medium", 16)] * 20 + [rec("high", 6)] * 20
    m = compute_adaptation(records)
    # risk-adjusted phase means 0.5, 1.0, 1.5 -> population sd = sqrt(1/6)
    assert m.raw == pytest.approx(-((1 / 6) ** 0.5))
    assert m.score == 18


def test_loss_sensitivity_averages_deltas_around_internal_explosions() -> None:
    records = [
        rec("low", 10),
        rec("low", 5, exploded=True),
        rec("low", 4),
        rec("low", 8, exploded=True),
        rec("low", 12),
    ]
    m = compute_loss_sensitivity(records)
    # deltas: 4 - 10 = -6 and 12 - 4 = 8
    assert m.raw == pytest.approx(-1.0)
    assert m.score == 45


def test_loss_sensitivity_ignores_edge_explosions_and_short_logs() -> None:
    assert compute_loss_sensitivity([rec("low", 3), rec("low", 4, exploded=True)]) == NEUTRAL

    edges = [rec("low", 5, exploded=True), rec("low", 6), rec("low", 7, exploded=True)]
    assert compute_loss_sensitivity(edges) == MetricScore(raw=0.0, score=50)


def test_decision_speed_rewards_fast_consistent_pumping() -> None:
    m = compute_decision_speed([rec("low", 3, rt=500), rec("low", 3, rt=500)])
    assert m.raw == pytest.approx(2.0)
    assert m.score == 100

    m = compute_decision_speed([rec("low", 3, rt=800)])
    assert m.raw == pytest.approx(1.25)
    assert m.score == 50


def test_decision_speed_penalises_variability() -> None:
    m = compute_decision_speed([rec("low", 3, rt=1000), rec("low", 3, rt=3000)])
    # mean 2 s, sd 1 s -> 0.5 * 0.5
    assert m.raw == pytest.approx(0.25)
    assert m.score == 0


def test_decision_speed_ignores_zero_rt_trials() -> None:
    assert compute_decision_speed([rec("low", 0, rt=0)]) == NEUTRAL
    m = compute_decision_speed([rec("low", 0, rt=0), rec("low", 3, rt=800)])
    assert m.raw == pytest.approx(1.25)


def test_scores_are_clamped_to_percent_range() -> None:
    records = [rec("high", 8, rt=50)] * 60
    for m in compute_score_set(records).metrics().values():
        assert 0 <= m.score <= 100


def test_summary_dict_lists_raw_scores_then_aliases() -> None:
    records = [rec("low", 32), rec("medium", 8), rec("high", 2, exploded=True)]
    summary = compute_score_set(records).as_dict()
    assert list(summary) == [
        "overallRisk_raw",
        "efficiency_raw",
        "adaptation_raw",
        "lossSensitivity_raw",
        "decisionSpeed_raw",
        "overallRisk_score",
        "efficiency_score",
        "adaptation_score",
        "lossSensitivity_score",
        "decisionSpeed_score",
        "GRA_score",
        "RV_score",
        "OA_score",
        "KD_score",
        "Speed_score",
    ]
    assert summary["GRA_score"] == summary["overallRisk_score"] == 34
    assert summary["RV_score"] == 13
    assert summary["OA_score"] == 50
