from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import StrEnum

from .balloons import TrialSpec, logged_color, round_half_up


class BlockName(StrEnum):
    TUTORIAL = "tutorial"
    MAIN = "main"


@dataclass(frozen=True, slots=True)
class TrialRecord:
    """One completed balloon, as written to the behavioural log."""

    block_name: BlockName
    balloon_color: str
    balloon_count: int  # 1-based within its block
    times_pumped: int
    explosion: int  # 0 or 1
    earnings_this_balloon: int
    total_earnings_so_far: int | None  # None in the tutorial block
    total_adjusted_bart_score_so_far: float | None  # None in the tutorial block
    average_pump_rt: int  # milliseconds

    @property
    def is_main(self) -> bool:
        return self.block_name is BlockName.MAIN

    @property
    def exploded(self) -> bool:
        return self.explosion == 1


def adjusted_bart_score(records: Sequence[TrialRecord]) -> float:
    """Mean pump count over non-exploded main-block balloons (0 if none)."""

    pumps = [r.times_pumped for r in records if r.is_main and r.explosion == 0]
    if not pumps:
        return 0.0
    return sum(pumps) / len(pumps)


def mean_reaction_time_ms(reaction_times_ms: Sequence[float]) -> int:
    if not reaction_times_ms:
        return 0
    return round_half_up(sum(reaction_times_ms) / len(reaction_times_ms))


class TrialLogger:
    """Append-only log of completed trials with derived running totals.

    Records are never edited or removed; the log order is completion order.
    """

    def __init__(self, *, practice_trials: int, trial_count: int) -> None:
        if practice_trials < 0:
            raise ValueError("practice_trials must be >= 0")
        self._practice_trials = int(practice_trials)
        self._trial_count = int(trial_count)
        self._records: list[TrialRecord] = []

    @property
    def records(self) -> tuple[TrialRecord, ...]:
        return tuple(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def block_for(self, trial_index: int) -> BlockName:
        return BlockName.TUTORIAL if trial_index < self._practice_trials else BlockName.MAIN

    def balloon_count_for(self, trial_index: int) -> int:
        if trial_index < self._practice_trials:
            return trial_index + 1
        return trial_index - self._practice_trials + 1

    def log_trial(
        self,
        *,
        trial_index: int,
        spec: TrialSpec,
        times_pumped: int,
        exploded: bool,
        current_money: int,
        total_money: int,
        reaction_times_ms: Sequence[float],
    ) -> TrialRecord:
        if not (0 <= trial_index < self._trial_count):
            raise IndexError(f"trial index {trial_index} outside sequence of {self._trial_count}")

        block = self.block_for(trial_index)
        tutorial = block is BlockName.TUTORIAL

        total_earnings: int | None = None
        running_adjusted: float | None = None
        if not tutorial:
            total_earnings = int(total_money)
            pumps = [r.times_pumped for r in self._records if r.is_main and r.explosion == 0]
            if not exploded:
                pumps.append(int(times_pumped))
            running_adjusted = (sum(pumps) / len(pumps)) if pumps else 0.0

        record = TrialRecord(
            block_name=block,
            balloon_color=logged_color(spec.kind),
            balloon_count=self.balloon_count_for(trial_index),
            times_pumped=int(times_pumped),
            explosion=1 if exploded else 0,
            earnings_this_balloon=0 if exploded else int(current_money),
            total_earnings_so_far=total_earnings,
            total_adjusted_bart_score_so_far=running_adjusted,
            average_pump_rt=mean_reaction_time_ms(reaction_times_ms),
        )
        self._records.append(record)
        return record
