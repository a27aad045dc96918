"""
Beat Droppers - Selection modifiers that keep or drop whole beats

Each batch handed to these modifiers holds one beat (or one fixed-size
sample window for the random sample dropper).
"""

import logging
import threading
from typing import Dict, List, Optional

import numpy as np

from ..format import AudioFormat
from ..selection import SampleSelection, requested_time_for_one_beat
from ..utils import stable_seed
from .base import SampleSelector, pattern_flag
from .options import ModifierOptions, parse_binary_pattern
from .registry import register_modifier

logger = logging.getLogger(__name__)

IDENTITY_TIME_WINDOW_MS = 8192


class SeededDecisions:
    """
    Memoized keep/drop decisions per batch index.

    The decision for batch ``k`` is the ``k``-th draw of a uniform [0, 1)
    stream seeded from the configured seed string, compared against the
    keep fraction. Decisions are pure functions of ``(seed, k)`` so
    concurrent workers computing the same index agree, and the first
    stored value is the one every later query sees.
    """

    def __init__(self, seed: Optional[str], keep_fraction: float):
        self._seed = stable_seed(seed)
        self._keep_fraction = keep_fraction
        self._decisions: Dict[int, bool] = {}
        self._lock = threading.Lock()

    def _draw(self, index: int) -> float:
        bit_generator = np.random.PCG64(self._seed)
        # jump straight to the index-th double instead of drawing index values
        bit_generator.advance(index)
        return float(np.random.Generator(bit_generator).random())

    def passes(self, index: int) -> bool:
        with self._lock:
            cached = self._decisions.get(index)
        if cached is not None:
            return cached
        decision = self._draw(index) < self._keep_fraction
        with self._lock:
            return self._decisions.setdefault(index, decision)

    def __len__(self) -> int:
        with self._lock:
            return len(self._decisions)


@register_modifier("identity", "Drops no beats.")
class IdentitySelector(SampleSelector):
    """Keeps every sample."""

    @classmethod
    def from_options(cls, fmt: AudioFormat, options: ModifierOptions) -> "IdentitySelector":
        return cls()

    def select_samples(self, samples_length: int, batch_index: int) -> List[SampleSelection]:
        return [SampleSelection(0, samples_length)]

    def requested_time_window(self) -> int:
        return IDENTITY_TIME_WINDOW_MS

    def describe(self) -> str:
        return "Identity"


@register_modifier(
    "pattern",
    "Drops beats according to a pattern of 0s and 1s.",
    options=("bpm", "pattern"),
    option_help={"pattern": "Pattern of 1s and 0s for which beats to keep, e.g. `10`."},
)
class PatternBeatDropper(SampleSelector):
    """
    Drops beats according to a simple pattern made of 0 and 1.

    To drop every other beat use ``"10"``; to drop the other half use ``"01"``.
    """

    def __init__(self, bpm: int, pattern: str):
        self.bpm = bpm
        self.pattern = parse_binary_pattern(pattern)

    @classmethod
    def from_options(cls, fmt: AudioFormat, options: ModifierOptions) -> "PatternBeatDropper":
        return cls(options.bpm, options.pattern)

    def select_samples(self, samples_length: int, batch_index: int) -> List[SampleSelection]:
        drop = pattern_flag(self.pattern, batch_index, "0")
        return [SampleSelection(0, 0 if drop else samples_length)]

    def requested_time_window(self) -> int:
        return requested_time_for_one_beat(self.bpm)

    def describe(self) -> str:
        return f"Pattern[bpm={self.bpm},pattern={self.pattern}]"


@register_modifier(
    "percentage",
    "Keeps the leading percentage of every beat.",
    options=("bpm", "percentage"),
    option_help={"percentage": "Percentage of each beat to keep, from its start."},
)
class PercentageBeatDropper(SampleSelector):
    """Cuts every beat down to its leading fraction."""

    def __init__(self, bpm: int, percentage: float):
        self.bpm = bpm
        self.fraction = percentage / 100.0

    @classmethod
    def from_options(cls, fmt: AudioFormat, options: ModifierOptions) -> "PercentageBeatDropper":
        return cls(options.bpm, options.percentage)

    def select_samples(self, samples_length: int, batch_index: int) -> List[SampleSelection]:
        return [SampleSelection(0, int(self.fraction * samples_length))]

    def requested_time_window(self) -> int:
        return requested_time_for_one_beat(self.bpm)

    def describe(self) -> str:
        return f"Percentage[bpm={self.bpm},{self.fraction * 100}%]"


@register_modifier(
    "random",
    "Keeps a random percentage of the beats.",
    options=("bpm", "percentage", "seed"),
    required=("bpm", "percentage"),
    option_help={"percentage": "Chance, in percent, that a beat is kept."},
)
class RandomBeatDropper(SampleSelector):
    """Keeps or drops whole beats at random, reproducibly for a given seed."""

    def __init__(self, bpm: int, percentage: float, seed: Optional[str] = None):
        self.bpm = bpm
        self.fraction = percentage / 100.0
        self.seed = seed
        self.decisions = SeededDecisions(seed, self.fraction)

    @classmethod
    def from_options(cls, fmt: AudioFormat, options: ModifierOptions) -> "RandomBeatDropper":
        return cls(options.bpm, options.percentage, options.seed)

    def select_samples(self, samples_length: int, batch_index: int) -> List[SampleSelection]:
        passes = self.decisions.passes(batch_index)
        return [SampleSelection(0, samples_length if passes else 0)]

    def requested_time_window(self) -> int:
        return requested_time_for_one_beat(self.bpm)

    def describe(self) -> str:
        return f"Random[bpm={self.bpm},{self.fraction * 100}%,seed={self.seed}]"


@register_modifier(
    "random-sample",
    "Keeps a random percentage of fixed-size sample windows.",
    options=("sample_size", "percentage", "seed"),
    option_help={"percentage": "Chance, in percent, that a sample window is kept."},
)
class RandomSampleDropper(RandomBeatDropper):
    """Like :class:`RandomBeatDropper` but over windows of ``sample_size`` ms."""

    def __init__(self, sample_size: int, percentage: float, seed: Optional[str] = None):
        super().__init__(bpm=0, percentage=percentage, seed=seed)
        self.sample_size = sample_size

    @classmethod
    def from_options(cls, fmt: AudioFormat, options: ModifierOptions) -> "RandomSampleDropper":
        return cls(options.sample_size, options.percentage, options.seed)

    def requested_time_window(self) -> int:
        return self.sample_size

    def describe(self) -> str:
        return (
            f"RandomSample[sampleSize={self.sample_size},"
            f"{self.fraction * 100}%,seed={self.seed}]"
        )
