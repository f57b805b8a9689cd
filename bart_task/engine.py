"""Per-session state machine for the Balloon Analogue Risk Task.

States per trial: APPEARING -> ACTIVE -> EXPLODING | COLLECTED -> ADVANCING,
then the next trial's APPEARING or FINISHED. Only ACTIVE accepts ``pump`` and
``collect``; anything else is ignored and reported back as ``False``.

Presentation pauses (balloon entrance, pop/collect hold, settle between
balloons) are driven by ``update()``, which the caller polls every frame the
same way the other engines in this package are polled. All time comes from the
injected ``Clock``.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum

from .balloons import (
    DEFAULT_PRACTICE_BURST_POINTS,
    DEFAULT_SEED,
    DEFAULT_TRIALS_PER_COLOR,
    MAIN_BLOCK_ORDER,
    BalloonType,
    TrialSpec,
    build_trial_sequence,
)
from .clock import Clock, elapsed_ms
from .scoring import ScoreSet, compute_score_set
from .trial_log import BlockName, TrialLogger, TrialRecord

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class BartConfig:
    seed: int = DEFAULT_SEED
    shuffle_main_block: bool = True
    practice_burst_points: tuple[int, ...] = DEFAULT_PRACTICE_BURST_POINTS
    trials_per_color: int = DEFAULT_TRIALS_PER_COLOR

    # Presentation pacing, seconds.
    appear_s: float = 0.4
    explode_hold_s: float = 1.5
    collect_hold_s: float = 0.1
    settle_s: float = 0.5


class TrialState(StrEnum):
    IDLE = "idle"
    APPEARING = "appearing"
    ACTIVE = "active"
    EXPLODING = "exploding"
    COLLECTED = "collected"
    ADVANCING = "advancing"
    FINISHED = "finished"


class TrialOutcome(StrEnum):
    EXPLODED = "exploded"
    COLLECTED = "collected"


@dataclass(frozen=True, slots=True)
class TrialStarted:
    trial_index: int
    kind: BalloonType
    block: BlockName


@dataclass(frozen=True, slots=True)
class TrialActivated:
    trial_index: int


@dataclass(frozen=True, slots=True)
class PumpApplied:
    trial_index: int
    times_pumped: int
    current_money: int
    reaction_time_ms: float
    burst: bool


@dataclass(frozen=True, slots=True)
class TrialEnded:
    trial_index: int
    outcome: TrialOutcome
    record: TrialRecord


@dataclass(frozen=True, slots=True)
class SessionFinished:
    scores: ScoreSet
    total_money: int
    abandoned: bool


BartEvent = TrialStarted | TrialActivated | PumpApplied | TrialEnded | SessionFinished
BartListener = Callable[[BartEvent], None]


@dataclass(frozen=True, slots=True)
class BartSnapshot:
    """View model for the UI (pure data)."""

    title: str
    state: TrialState
    trial_index: int
    trial_count: int
    block: BlockName | None
    balloon_type: BalloonType | None
    balloon_count: int
    balloons_remaining: int
    times_pumped: int
    current_money: int
    total_money: int
    can_pump: bool
    can_collect: bool
    last_record: TrialRecord | None = None
    scores: ScoreSet | None = None


class BartEngine:
    """Owns all session state: the trial sequence, money, timing and the log."""

    TITLE = "Balloon Analogue Risk Task"

    def __init__(
        self,
        *,
        clock: Clock,
        config: BartConfig | None = None,
        trials: tuple[TrialSpec, ...] | None = None,
    ) -> None:
        cfg = config or BartConfig()
        if trials is not None and len(trials) <= len(cfg.practice_burst_points):
            raise ValueError("trials must include at least one main-block trial")
        if not cfg.practice_burst_points:
            raise ValueError("practice_burst_points must not be empty")
        if cfg.trials_per_color <= 0:
            raise ValueError("trials_per_color must be > 0")
        for name in ("appear_s", "explode_hold_s", "collect_hold_s", "settle_s"):
            if getattr(cfg, name) < 0.0:
                raise ValueError(f"{name} must be >= 0")

        self._clock = clock
        self._cfg = cfg
        self._fixed_trials = None if trials is None else tuple(trials)
        self._listeners: list[BartListener] = []
        self._reset()

    def _reset(self) -> None:
        self._state = TrialState.IDLE
        self._state_since_s = self._clock.now()
        self._trials: tuple[TrialSpec, ...] = ()
        self._logger = TrialLogger(practice_trials=self.practice_trials, trial_count=0)
        self._index = 0
        self._times_pumped = 0
        self._current_money = 0
        self._total_money = 0
        self._reaction_times_ms: list[float] = []
        self._last_action_s = self._state_since_s
        self._scores: ScoreSet | None = None
        self._abandoned = False

    @property
    def config(self) -> BartConfig:
        return self._cfg

    @property
    def seed(self) -> int:
        return self._cfg.seed

    @property
    def state(self) -> TrialState:
        return self._state

    @property
    def practice_trials(self) -> int:
        return len(self._cfg.practice_burst_points)

    @property
    def trials(self) -> tuple[TrialSpec, ...]:
        return self._trials

    @property
    def current_trial_index(self) -> int:
        return self._index

    @property
    def current_trial(self) -> TrialSpec | None:
        if self._state in (TrialState.IDLE, TrialState.FINISHED):
            return None
        return self._trials[self._index]

    @property
    def times_pumped(self) -> int:
        return self._times_pumped

    @property
    def current_money(self) -> int:
        return self._current_money

    @property
    def total_money(self) -> int:
        return self._total_money

    @property
    def finished(self) -> bool:
        return self._state is TrialState.FINISHED

    @property
    def abandoned(self) -> bool:
        return self._abandoned

    @property
    def scores(self) -> ScoreSet | None:
        """Final score set; ``None`` until the session has finished."""
        return self._scores

    def records(self) -> tuple[TrialRecord, ...]:
        return self._logger.records

    def current_scores(self) -> ScoreSet:
        """Scores over whatever has been logged so far."""
        return compute_score_set(self._logger.records)

    def subscribe(self, listener: BartListener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: BartListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def instructions(self) -> list[str]:
        return [
            self.TITLE,
            "",
            "Each balloon earns money every time you pump it.",
            "Every balloon bursts at some point; if it bursts you lose",
            "the money on that balloon.",
            "Collect at any time to bank the money earned so far.",
            "",
            "Balloon colours carry different risks and rewards.",
            "",
            "Controls:",
            "- Space / Up: pump",
            "- Enter / C: collect",
            "",
            f"You will start with {self.practice_trials} practice balloons that do not count,",
            f"then {self._main_trial_count()} scored balloons.",
        ]

    def can_pump(self) -> bool:
        return self._state is TrialState.ACTIVE

    def can_collect(self) -> bool:
        return self._state is TrialState.ACTIVE and self._current_money > 0

    # Entry points

    def start_session(self) -> bool:
        if self._state is not TrialState.IDLE:
            return False
        # The whole sequence is materialised before the first balloon appears.
        if self._fixed_trials is not None:
            self._trials = self._fixed_trials
        else:
            self._trials = build_trial_sequence(
                seed=self._cfg.seed,
                shuffle_main_block=self._cfg.shuffle_main_block,
                practice_burst_points=self._cfg.practice_burst_points,
                trials_per_color=self._cfg.trials_per_color,
            )
        self._logger = TrialLogger(practice_trials=self.practice_trials, trial_count=len(self._trials))
        self._total_money = 0
        log.info(
            "session started: seed=%d shuffle=%s trials=%d",
            self._cfg.seed,
            self._cfg.shuffle_main_block,
            len(self._trials),
        )
        self._enter_trial(0, at_s=self._clock.now())
        return True

    def restart(self) -> bool:
        """Discard the current session and start again on the same sequence."""
        self._reset()
        return self.start_session()

    def pump(self) -> bool:
        if self._state is not TrialState.ACTIVE:
            log.debug("pump ignored in state %s", self._state.value)
            return False

        now = self._clock.now()
        rt_ms = elapsed_ms(self._last_action_s, now)
        self._reaction_times_ms.append(rt_ms)
        self._last_action_s = now

        spec = self._trials[self._index]
        cfg = spec.config
        next_count = self._times_pumped + 1

        if next_count >= spec.burst_point or next_count >= cfg.max_pumps:
            if next_count < spec.burst_point:
                log.warning(
                    "trial %d reached max_pumps=%d before burst point %d",
                    self._index,
                    cfg.max_pumps,
                    spec.burst_point,
                )
            self._emit(
                PumpApplied(
                    trial_index=self._index,
                    times_pumped=self._times_pumped,
                    current_money=0,
                    reaction_time_ms=rt_ms,
                    burst=True,
                )
            )
            self._explode(at_s=now)
            return True

        self._times_pumped = next_count
        self._current_money += cfg.value_per_pump
        self._emit(
            PumpApplied(
                trial_index=self._index,
                times_pumped=self._times_pumped,
                current_money=self._current_money,
                reaction_time_ms=rt_ms,
                burst=False,
            )
        )
        return True

    def collect(self) -> bool:
        if self._state is not TrialState.ACTIVE or self._current_money <= 0:
            log.debug("collect ignored in state %s (money=%d)", self._state.value, self._current_money)
            return False

        self._total_money += self._current_money
        record = self._log_trial(exploded=False)
        self._set_state(TrialState.COLLECTED, at_s=self._clock.now())
        self._emit(TrialEnded(trial_index=self._index, outcome=TrialOutcome.COLLECTED, record=record))
        return True

    def update(self) -> None:
        """Apply every timed transition that is due at the current clock reading."""

        now = self._clock.now()
        while True:
            due = self._state_since_s + self._hold_for(self._state)
            if self._state in (TrialState.IDLE, TrialState.ACTIVE, TrialState.FINISHED) or now < due:
                return
            if self._state is TrialState.APPEARING:
                self._activate(at_s=due)
            elif self._state in (TrialState.EXPLODING, TrialState.COLLECTED):
                self._set_state(TrialState.ADVANCING, at_s=due)
            elif self._state is TrialState.ADVANCING:
                self._advance(at_s=due)

    def abandon(self) -> bool:
        """End the session early. The balloon in play (if any) is not logged."""
        if self._state in (TrialState.IDLE, TrialState.FINISHED):
            return False
        self._abandoned = True
        self._finish()
        return True

    def snapshot(self) -> BartSnapshot:
        spec = self.current_trial
        block: BlockName | None = None
        count = 0
        remaining = 0
        if spec is not None:
            block = self._logger.block_for(self._index)
            count = self._logger.balloon_count_for(self._index)
            if block is BlockName.TUTORIAL:
                remaining = self.practice_trials - self._index
            else:
                remaining = (len(self._trials) - self.practice_trials) - (self._index - self.practice_trials)

        records = self._logger.records
        return BartSnapshot(
            title=self.TITLE,
            state=self._state,
            trial_index=self._index,
            trial_count=len(self._trials),
            block=block,
            balloon_type=None if spec is None else spec.kind,
            balloon_count=count,
            balloons_remaining=remaining,
            times_pumped=self._times_pumped,
            current_money=self._current_money,
            total_money=self._total_money,
            can_pump=self.can_pump(),
            can_collect=self.can_collect(),
            last_record=records[-1] if records else None,
            scores=self._scores,
        )

    # Internals

    def _main_trial_count(self) -> int:
        if self._fixed_trials is not None:
            return len(self._fixed_trials) - self.practice_trials
        return self._cfg.trials_per_color * len(MAIN_BLOCK_ORDER)

    def _hold_for(self, state: TrialState) -> float:
        if state is TrialState.APPEARING:
            return self._cfg.appear_s
        if state is TrialState.EXPLODING:
            return self._cfg.explode_hold_s
        if state is TrialState.COLLECTED:
            return self._cfg.collect_hold_s
        if state is TrialState.ADVANCING:
            return self._cfg.settle_s
        return 0.0

    def _set_state(self, state: TrialState, *, at_s: float) -> None:
        log.debug("trial %d: %s -> %s", self._index, self._state.value, state.value)
        self._state = state
        self._state_since_s = at_s

    def _enter_trial(self, index: int, *, at_s: float) -> None:
        self._index = index
        self._times_pumped = 0
        self._current_money = 0
        self._reaction_times_ms = []
        self._last_action_s = at_s
        if index == self.practice_trials:
            # Practice earnings are never banked.
            self._total_money = 0
        self._set_state(TrialState.APPEARING, at_s=at_s)
        spec = self._trials[index]
        self._emit(TrialStarted(trial_index=index, kind=spec.kind, block=self._logger.block_for(index)))

    def _activate(self, *, at_s: float) -> None:
        # Reaction times are measured from the moment the balloon accepts input.
        self._last_action_s = at_s
        self._set_state(TrialState.ACTIVE, at_s=at_s)
        self._emit(TrialActivated(trial_index=self._index))

    def _explode(self, *, at_s: float) -> None:
        self._current_money = 0
        record = self._log_trial(exploded=True)
        self._set_state(TrialState.EXPLODING, at_s=at_s)
        self._emit(TrialEnded(trial_index=self._index, outcome=TrialOutcome.EXPLODED, record=record))

    def _advance(self, *, at_s: float) -> None:
        if self._index + 1 >= len(self._trials):
            self._finish()
            return
        self._enter_trial(self._index + 1, at_s=at_s)

    def _log_trial(self, *, exploded: bool) -> TrialRecord:
        record = self._logger.log_trial(
            trial_index=self._index,
            spec=self._trials[self._index],
            times_pumped=self._times_pumped,
            exploded=exploded,
            current_money=self._current_money,
            total_money=self._total_money,
            reaction_times_ms=self._reaction_times_ms,
        )
        log.info(
            "trial logged: block=%s count=%d color=%s pumps=%d explosion=%d total=%s",
            record.block_name.value,
            record.balloon_count,
            record.balloon_color,
            record.times_pumped,
            record.explosion,
            record.total_earnings_so_far,
        )
        return record

    def _finish(self) -> None:
        self._set_state(TrialState.FINISHED, at_s=self._clock.now())
        self._scores = compute_score_set(self._logger.records)
        log.info(
            "session finished: abandoned=%s records=%d total=%d scores=%s",
            self._abandoned,
            len(self._logger),
            self._total_money,
            {name: m.score for name, m in self._scores.metrics().items()},
        )
        self._emit(SessionFinished(scores=self._scores, total_money=self._total_money, abandoned=self._abandoned))

    def _emit(self, event: BartEvent) -> None:
        for listener in list(self._listeners):
            listener(event)


def build_bart_session(
    *,
    clock: Clock,
    config: BartConfig | None = None,
    trials: tuple[TrialSpec, ...] | None = None,
) -> BartEngine:
    return BartEngine(clock=clock, config=config, trials=trials)
