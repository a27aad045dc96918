"""
Beat Rearrangers - Modifiers that reorder or reverse beats

Measure-based rearrangers receive one full measure per batch and split it
into equal beats with :func:`build_measure`.
"""

import logging
from typing import List

import numpy as np

from ..format import AudioFormat
from ..selection import SampleSelection, build_measure, requested_time_for_one_beat
from .base import SampleModifier, SampleSelector, pattern_flag
from .options import ModifierOptions, parse_binary_pattern, parse_index_pattern
from .registry import register_modifier

logger = logging.getLogger(__name__)


@register_modifier(
    "reverse-measure",
    "Reverses the beat order of each measure.",
    options=("bpm", "measure_size"),
)
class MeasureReverser(SampleSelector):
    """Plays the beats of every measure last to first."""

    def __init__(self, bpm: int, measure_size: int):
        self.bpm = bpm
        self.measure_size = measure_size

    @classmethod
    def from_options(cls, fmt: AudioFormat, options: ModifierOptions) -> "MeasureReverser":
        return cls(options.bpm, options.measure_size)

    def select_samples(self, samples_length: int, batch_index: int) -> List[SampleSelection]:
        return build_measure(self.measure_size, samples_length)[::-1]

    def requested_time_window(self) -> int:
        return requested_time_for_one_beat(self.bpm) * self.measure_size

    def describe(self) -> str:
        return f"ReverseMeasure[bpm={self.bpm},msize={self.measure_size}]"


@register_modifier(
    "swapper",
    "Swaps beats in a measure.",
    options=("bpm", "measure_size", "pattern"),
    option_help={"pattern": "Pattern of beats to output, e.g. `1:4:3:2`."},
)
class BeatSwapper(SampleSelector):
    """Reorders the beats of every measure by a 1-based index pattern."""

    def __init__(self, bpm: int, measure_size: int, pattern: str):
        self.bpm = bpm
        self.measure_size = measure_size
        self.pattern = pattern
        self.pattern_index = parse_index_pattern(pattern, measure_size)

    @classmethod
    def from_options(cls, fmt: AudioFormat, options: ModifierOptions) -> "BeatSwapper":
        return cls(options.bpm, options.measure_size, options.pattern)

    def select_samples(self, samples_length: int, batch_index: int) -> List[SampleSelection]:
        by_beat = build_measure(self.measure_size, samples_length)
        return [by_beat[i] for i in self.pattern_index]

    def requested_time_window(self) -> int:
        return requested_time_for_one_beat(self.bpm) * self.measure_size

    def describe(self) -> str:
        return f"Swap[bpm={self.bpm},msize={self.measure_size},pattern={self.pattern}]"


@register_modifier(
    "pattern-reverse-beats",
    "Reverses beats according to a pattern of 0s and 1s.",
    options=("bpm", "pattern"),
    option_help={"pattern": "Pattern of 1s and 0s for which beats to reverse."},
)
class PatternBeatReverser(SampleModifier):
    """Reverses the sample order of the beats flagged ``1`` in the pattern."""

    def __init__(self, bpm: int, pattern: str):
        self.bpm = bpm
        self.pattern = parse_binary_pattern(pattern)

    @classmethod
    def from_options(cls, fmt: AudioFormat, options: ModifierOptions) -> "PatternBeatReverser":
        return cls(options.bpm, options.pattern)

    def transform(self, samples: np.ndarray, batch_index: int) -> np.ndarray:
        if pattern_flag(self.pattern, batch_index, "1"):
            return samples[::-1].copy()
        return samples

    def requested_time_window(self) -> int:
        return requested_time_for_one_beat(self.bpm)

    def describe(self) -> str:
        return f"PatternReverseBeat[bpm={self.bpm},pattern={self.pattern}]"
