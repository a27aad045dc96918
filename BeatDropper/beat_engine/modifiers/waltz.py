"""
Waltzifier - Time-stretches the beats selected by a pattern.
"""

import logging
from typing import Optional, Tuple

import numpy as np

from ..format import AudioFormat
from ..selection import requested_time_for_one_beat
from ..stretch import DEFAULT_STRETCH_FACTOR, OlaTimeStretcher, StretchConfig
from .base import SampleModifier, pattern_flag
from .options import ModifierOptions, parse_binary_pattern
from .registry import register_modifier

logger = logging.getLogger(__name__)


@register_modifier(
    "waltz-v1",
    "Time-stretches beats according to a pattern of 0s and 1s.",
    options=("bpm", "pattern", "stretch_factor"),
    required=("bpm", "pattern"),
    option_help={"pattern": "Pattern of 1s and 0s for which beats to stretch."},
)
class WaltzifierV1(SampleModifier):
    """
    Stretches the beats flagged ``1`` with the overlap-add engine.

    With the default factor of 0.5 each selected beat plays for twice its
    original duration at the original pitch.
    """

    def __init__(self, bpm: int, pattern: str, stretch_factor: Optional[float] = None,
                 stretcher: Optional[OlaTimeStretcher] = None):
        self.bpm = bpm
        self.pattern = parse_binary_pattern(pattern)
        factor = DEFAULT_STRETCH_FACTOR if stretch_factor is None else stretch_factor
        self.stretcher = stretcher or OlaTimeStretcher(StretchConfig(factor=factor))

    @classmethod
    def from_options(cls, fmt: AudioFormat, options: ModifierOptions) -> "WaltzifierV1":
        return cls(options.bpm, options.pattern, options.stretch_factor)

    def transform(self, samples: np.ndarray, batch_index: int) -> np.ndarray:
        if pattern_flag(self.pattern, batch_index, "1"):
            return self.stretcher.stretch(samples)
        return samples

    def transform_stereo(self, left: np.ndarray, right: np.ndarray,
                         batch_index: int) -> Tuple[np.ndarray, np.ndarray]:
        # one set of window corrections for both channels
        if pattern_flag(self.pattern, batch_index, "1"):
            return self.stretcher.stretch_stereo(left, right)
        return left, right

    def requested_time_window(self) -> int:
        return requested_time_for_one_beat(self.bpm)

    def describe(self) -> str:
        return (
            f"WaltzV1[bpm={self.bpm},pattern={self.pattern},"
            f"factor={self.stretcher.config.factor}]"
        )
