"""Balloon configuration, the seeded random stream and trial-sequence generation.

Nothing in here touches time or I/O. Given the same seed the builder always
returns the same 63 trials (types, order and burst points), which is what makes
sessions comparable across participants.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import StrEnum


class BalloonType(StrEnum):
    TRAINING = "training"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True, slots=True)
class BalloonTypeConfig:
    max_pumps: int
    value_per_pump: int
    label: str


BALLOON_TYPES: dict[BalloonType, BalloonTypeConfig] = {
    BalloonType.TRAINING: BalloonTypeConfig(max_pumps=32, value_per_pump=1, label="Training"),
    BalloonType.LOW: BalloonTypeConfig(max_pumps=128, value_per_pump=5, label="Low Risk"),
    BalloonType.MEDIUM: BalloonTypeConfig(max_pumps=32, value_per_pump=15, label="Medium Risk"),
    BalloonType.HIGH: BalloonTypeConfig(max_pumps=8, value_per_pump=50, label="High Risk"),
}

# Mean explosion point per logged colour, used to normalise pump counts.
MEAN_EXPLOSION: dict[str, int] = {"low": 64, "medium": 16, "high": 4}

MAIN_BLOCK_ORDER: tuple[BalloonType, ...] = (BalloonType.LOW, BalloonType.MEDIUM, BalloonType.HIGH)

DEFAULT_SEED = 12345
DEFAULT_PRACTICE_BURST_POINTS: tuple[int, ...] = (8, 24, 16)
DEFAULT_TRIALS_PER_COLOR = 20


def balloon_config(kind: BalloonType) -> BalloonTypeConfig:
    return BALLOON_TYPES[kind]


def logged_color(kind: BalloonType) -> str:
    """Colour written to the trial log; training balloons are logged as medium."""

    if kind is BalloonType.TRAINING:
        return BalloonType.MEDIUM.value
    return kind.value


@dataclass(frozen=True, slots=True)
class TrialSpec:
    kind: BalloonType
    burst_point: int  # pump count at which this balloon pops

    @property
    def config(self) -> BalloonTypeConfig:
        return BALLOON_TYPES[self.kind]


class SeededRandomSource:
    """Linear congruential float stream.

    seed' = (seed * 9301 + 49297) mod 233280, value = seed' / 233280.
    Integer arithmetic keeps the stream identical on every platform.
    """

    MULTIPLIER = 9301
    INCREMENT = 49297
    MODULUS = 233280

    def __init__(self, seed: int = DEFAULT_SEED) -> None:
        self._seed = int(seed)

    @property
    def seed(self) -> int:
        return self._seed

    def next(self) -> float:
        self._seed = (self._seed * self.MULTIPLIER + self.INCREMENT) % self.MODULUS
        return self._seed / self.MODULUS

    def burst_draw(self, max_pumps: int) -> int:
        """Integer in [1, max_pumps]."""

        return math.floor(self.next() * max_pumps) + 1


class TrialSequenceBuilder:
    """Builds the practice block followed by the main block.

    The main block is 20 low, 20 medium and 20 high labels. When shuffling is
    on, a Durstenfeld shuffle consumes the random stream first; burst points
    are drawn only after the shuffle has finished, walking the list in order.
    """

    def __init__(
        self,
        *,
        seed: int = DEFAULT_SEED,
        shuffle_main_block: bool = True,
        practice_burst_points: tuple[int, ...] = DEFAULT_PRACTICE_BURST_POINTS,
        trials_per_color: int = DEFAULT_TRIALS_PER_COLOR,
    ) -> None:
        if trials_per_color <= 0:
            raise ValueError("trials_per_color must be > 0")
        training_max = BALLOON_TYPES[BalloonType.TRAINING].max_pumps
        for bp in practice_burst_points:
            if not (1 <= int(bp) <= training_max):
                raise ValueError(f"practice burst point {bp} outside [1, {training_max}]")

        self._seed = int(seed)
        self._shuffle = bool(shuffle_main_block)
        self._practice_burst_points = tuple(int(bp) for bp in practice_burst_points)
        self._trials_per_color = int(trials_per_color)

    def practice_block(self) -> list[TrialSpec]:
        return [TrialSpec(kind=BalloonType.TRAINING, burst_point=bp) for bp in self._practice_burst_points]

    def main_block(self, rng: SeededRandomSource) -> list[TrialSpec]:
        kinds: list[BalloonType] = []
        for kind in MAIN_BLOCK_ORDER:
            kinds.extend([kind] * self._trials_per_color)

        if self._shuffle:
            for i in range(len(kinds) - 1, 0, -1):
                j = math.floor(rng.next() * (i + 1))
                kinds[i], kinds[j] = kinds[j], kinds[i]

        return [TrialSpec(kind=kind, burst_point=rng.burst_draw(BALLOON_TYPES[kind].max_pumps)) for kind in kinds]

    def build(self) -> tuple[TrialSpec, ...]:
        rng = SeededRandomSource(self._seed)
        return tuple(self.practice_block() + self.main_block(rng))


def build_trial_sequence(
    *,
    seed: int = DEFAULT_SEED,
    shuffle_main_block: bool = True,
    practice_burst_points: tuple[int, ...] = DEFAULT_PRACTICE_BURST_POINTS,
    trials_per_color: int = DEFAULT_TRIALS_PER_COLOR,
) -> tuple[TrialSpec, ...]:
    return TrialSequenceBuilder(
        seed=seed,
        shuffle_main_block=shuffle_main_block,
        practice_burst_points=practice_burst_points,
        trials_per_color=trials_per_color,
    ).build()


def round_half_up(x: float) -> int:
    # Matches JavaScript Math.round, which the exported figures were defined with.
    return int(math.floor(x + 0.5))
