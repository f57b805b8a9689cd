"""Behavioural metrics computed from the trial log.

Every function looks at main-block records only and returns a ``MetricScore``
whose ``score`` is clamped to [0, 100]. Short or empty logs never raise; they
yield the neutral default (raw 0, score 50). The functions are pure, so they
can be re-run on a partial log for live analytics.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass

from .balloons import MEAN_EXPLOSION, round_half_up
from .trial_log import TrialRecord, adjusted_bart_score

ADAPTATION_MIN_TRIALS = 60
ADAPTATION_PHASE_LEN = 20
ADAPTATION_PHASE_COLORS = ("low", "medium", "high")
LOSS_SENSITIVITY_MIN_TRIALS = 3


@dataclass(frozen=True, slots=True)
class MetricScore:
    raw: float
    score: int


NEUTRAL = MetricScore(raw=0.0, score=50)


@dataclass(frozen=True, slots=True)
class ScoreSet:
    overall_risk: MetricScore
    efficiency: MetricScore
    adaptation: MetricScore
    loss_sensitivity: MetricScore
    decision_speed: MetricScore

    def metrics(self) -> dict[str, MetricScore]:
        return {
            "overallRisk": self.overall_risk,
            "efficiency": self.efficiency,
            "adaptation": self.adaptation,
            "lossSensitivity": self.loss_sensitivity,
            "decisionSpeed": self.decision_speed,
        }

    def as_dict(self) -> dict[str, float | int]:
        """Flat summary: raw values, then scores, then the short legacy aliases."""

        metrics = self.metrics()
        out: dict[str, float | int] = {}
        for name, m in metrics.items():
            out[f"{name}_raw"] = m.raw
        for name, m in metrics.items():
            out[f"{name}_score"] = m.score
        out["GRA_score"] = self.overall_risk.score
        out["RV_score"] = self.efficiency.score
        out["OA_score"] = self.adaptation.score
        out["KD_score"] = self.loss_sensitivity.score
        out["Speed_score"] = self.decision_speed.score
        return out


def clamp_score(x: float) -> int:
    return round_half_up(max(0.0, min(100.0, x)))


def main_trials(records: Sequence[TrialRecord]) -> list[TrialRecord]:
    return [r for r in records if r.is_main]


def mean_explosion(color: str) -> int:
    return MEAN_EXPLOSION.get(color, MEAN_EXPLOSION["medium"])


def risk_ratio(record: TrialRecord) -> float:
    return record.times_pumped / mean_explosion(record.balloon_color)


def compute_overall_risk(records: Sequence[TrialRecord]) -> MetricScore:
    """Blend of the adjusted BART score (scaled by 64) and the mean risk ratio."""

    main = main_trials(records)
    if not main:
        return NEUTRAL

    adjusted = adjusted_bart_score(main)
    avg_ratio = sum(risk_ratio(r) for r in main) / len(main)
    raw = (adjusted / 64.0 + avg_ratio) / 2.0
    return MetricScore(raw=raw, score=clamp_score((raw - 0.2) / 0.6 * 100.0))


def compute_efficiency(records: Sequence[TrialRecord]) -> MetricScore:
    """Earnings per pump."""

    main = main_trials(records)
    if not main:
        return NEUTRAL

    total_earnings = sum(r.earnings_this_balloon for r in main)
    total_pumps = sum(r.times_pumped for r in main)
    raw = total_earnings / total_pumps if total_pumps > 0 else 0.0
    return MetricScore(raw=raw, score=clamp_score(raw / 50.0 * 100.0))


def compute_adaptation(records: Sequence[TrialRecord]) -> MetricScore:
    """Consistency of risk-adjusted pumping across three 20-trial phases.

    Lower spread between phases means better adaptation, so raw is the negated
    population standard deviation of the three normalised phase means.
    """

    main = main_trials(records)
    if len(main) < ADAPTATION_MIN_TRIALS:
        return NEUTRAL

    adjusted: list[float] = []
    for i, color in enumerate(ADAPTATION_PHASE_COLORS):
        phase = main[i * ADAPTATION_PHASE_LEN : (i + 1) * ADAPTATION_PHASE_LEN]
        avg_pumps = sum(r.times_pumped for r in phase) / len(phase)
        adjusted.append(avg_pumps / MEAN_EXPLOSION[color])

    mean = sum(adjusted) / len(adjusted)
    variance = sum((a - mean) ** 2 for a in adjusted) / len(adjusted)
    raw = -math.sqrt(variance)
    return MetricScore(raw=raw, score=clamp_score((raw + 0.5) / 0.5 * 100.0))


def compute_loss_sensitivity(records: Sequence[TrialRecord]) -> MetricScore:
    """Negated mean change in pumps around each explosion (after minus before)."""

    main = main_trials(records)
    if len(main) < LOSS_SENSITIVITY_MIN_TRIALS:
        return NEUTRAL

    deltas = [
        main[i + 1].times_pumped - main[i - 1].times_pumped
        for i in range(1, len(main) - 1)
        if main[i].explosion == 1
    ]
    raw = -(sum(deltas) / len(deltas)) if deltas else 0.0
    return MetricScore(raw=raw, score=clamp_score((raw + 10.0) / 20.0 * 100.0))


def compute_decision_speed(records: Sequence[TrialRecord]) -> MetricScore:
    """Inverse mean pump RT, penalised by RT variability."""

    rts_s = [r.average_pump_rt / 1000.0 for r in main_trials(records) if r.average_pump_rt > 0]
    if not rts_s:
        return NEUTRAL

    mean_s = sum(rts_s) / len(rts_s)
    sd_s = math.sqrt(sum((rt - mean_s) ** 2 for rt in rts_s) / len(rts_s))

    speed_index = 1.0 / max(0.1, mean_s)
    consistency_penalty = 1.0 / (1.0 + sd_s)
    raw = speed_index * consistency_penalty
    return MetricScore(raw=raw, score=clamp_score((raw - 0.5) / 1.5 * 100.0))


def compute_score_set(records: Sequence[TrialRecord]) -> ScoreSet:
    return ScoreSet(
        overall_risk=compute_overall_risk(records),
        efficiency=compute_efficiency(records),
        adaptation=compute_adaptation(records),
        loss_sensitivity=compute_loss_sensitivity(records),
        decision_speed=compute_decision_speed(records),
    )
