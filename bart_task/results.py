from __future__ import annotations

from dataclasses import dataclass

from .engine import BartEngine
from .scoring import ScoreSet
from .trial_log import BlockName, TrialRecord


@dataclass(frozen=True, slots=True)
class SessionResult:
    """Exportable summary + trial log for a finished (or abandoned) session."""

    seed: int
    shuffle_main_block: bool
    abandoned: bool

    main_trials: int
    explosions: int
    total_earnings: int
    adjusted_bart_score: float
    mean_pump_rt_ms: float | None

    scores: ScoreSet
    records: tuple[TrialRecord, ...]


def session_result_from_engine(engine: BartEngine) -> SessionResult:
    """Build a SessionResult from an engine; scores cover whatever was logged."""

    records = engine.records()
    main = [r for r in records if r.block_name is BlockName.MAIN]
    scores = engine.scores if engine.scores is not None else engine.current_scores()

    last_main = main[-1] if main else None
    total = 0
    adjusted = 0.0
    if last_main is not None:
        total = int(last_main.total_earnings_so_far or 0)
        adjusted = float(last_main.total_adjusted_bart_score_so_far or 0.0)

    rts = [r.average_pump_rt for r in main if r.average_pump_rt > 0]
    mean_rt: float | None = None if not rts else float(sum(rts)) / float(len(rts))

    return SessionResult(
        seed=int(engine.seed),
        shuffle_main_block=bool(engine.config.shuffle_main_block),
        abandoned=bool(engine.abandoned),
        main_trials=len(main),
        explosions=sum(r.explosion for r in main),
        total_earnings=total,
        adjusted_bart_score=adjusted,
        mean_pump_rt_ms=mean_rt,
        scores=scores,
        records=records,
    )
