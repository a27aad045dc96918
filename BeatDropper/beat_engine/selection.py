"""
Sample selections and the range math shared by the selection modifiers.
"""

from dataclasses import dataclass
from typing import Iterable, List

import numpy as np

MILLIS_PER_MINUTE = 60_000


@dataclass(frozen=True, order=True)
class SampleSelection:
    """A half-open range ``[low_bound, high_bound)`` over one batch."""
    low_bound: int
    high_bound: int

    def __post_init__(self):
        if self.low_bound < 0:
            raise ValueError(f"low bound must be >= 0, got {self.low_bound}")
        if self.high_bound < self.low_bound:
            raise ValueError(
                f"high bound {self.high_bound} is below low bound {self.low_bound}"
            )

    @property
    def length(self) -> int:
        return self.high_bound - self.low_bound


def requested_time_for_one_beat(bpm: int) -> int:
    """Milliseconds covered by one beat at *bpm* (truncated)."""
    return int(MILLIS_PER_MINUTE / bpm)


def build_measure(measure_size: int, samples_length: int) -> List[SampleSelection]:
    """
    Split a measure into ``measure_size`` equal beats.

    Beats are laid out left to right with ``samples_length // measure_size``
    samples each; any remainder at the end of the measure is not covered.
    When the batch is shorter than the measure size every beat is empty.

    Args:
        measure_size: Number of beats in the measure
        samples_length: Length of the batch holding the measure

    Returns:
        One selection per beat, in order
    """
    beat_size = samples_length // measure_size
    return [
        SampleSelection(k * beat_size, (k + 1) * beat_size)
        for k in range(measure_size)
    ]


def extract_selection(samples: np.ndarray, ranges: Iterable[SampleSelection]) -> np.ndarray:
    """
    Concatenate the selected sub-ranges of *samples* in the given order.

    Args:
        samples: Mono sample batch
        ranges: Selections to copy; order decides output order

    Returns:
        New array holding the selected samples
    """
    ranges = list(ranges)
    total = sum(r.length for r in ranges)
    selected = np.empty(total, dtype=samples.dtype)
    index = 0
    for r in ranges:
        if r.high_bound > len(samples):
            raise IndexError(
                f"selection [{r.low_bound}, {r.high_bound}) exceeds batch of {len(samples)}"
            )
        selected[index:index + r.length] = samples[r.low_bound:r.high_bound]
        index += r.length
    return selected
