"""
Base Modifier Classes - Foundation for per-batch sample transforms

Defines the interface every modifier implements and the shared
selection-based algorithm used by the dropping and rearranging family.
"""

import logging
from abc import ABC, abstractmethod
from typing import Sequence, Tuple

import numpy as np

from ..selection import SampleSelection, extract_selection

logger = logging.getLogger(__name__)


class SampleModifier(ABC):
    """
    Base class for batch transformations.

    The pipeline hands both channels of a batch to ``transform_stereo``,
    which by default calls ``transform`` once per channel. The same
    instance is called concurrently from many worker threads, so any
    state it keeps must be safe under concurrent access.
    """

    @abstractmethod
    def transform(self, samples: np.ndarray, batch_index: int) -> np.ndarray:
        """
        Transform a batch of mono samples.

        Args:
            samples: int16 samples of one channel
            batch_index: Position of the batch in the input stream

        Returns:
            New int16 sample array (length may differ from the input)
        """

    def transform_stereo(self, left: np.ndarray, right: np.ndarray,
                         batch_index: int) -> Tuple[np.ndarray, np.ndarray]:
        """
        Transform both channels of a batch.

        Transforms each channel on its own by default. Modifiers whose
        output depends on the signal override this to keep the channels
        in step.
        """
        return self.transform(left, batch_index), self.transform(right, batch_index)

    @abstractmethod
    def requested_time_window(self) -> int:
        """Milliseconds of audio this modifier wants per batch."""

    @abstractmethod
    def describe(self) -> str:
        """Short human-readable description, e.g. ``Pattern[bpm=120,pattern=10]``."""

    def __repr__(self) -> str:
        return self.describe()


class SampleSelector(SampleModifier):
    """
    Modifier that keeps a list of sub-ranges of each batch.

    Subclasses only decide which ranges to keep; the ranges are then
    concatenated in the order returned, which lets a selector reorder a
    batch as well as trim it.
    """

    def transform(self, samples: np.ndarray, batch_index: int) -> np.ndarray:
        selections = self.select_samples(len(samples), batch_index)
        return extract_selection(samples, selections)

    @abstractmethod
    def select_samples(self, samples_length: int, batch_index: int) -> Sequence[SampleSelection]:
        """Return the ranges of a ``samples_length`` batch to keep, in output order."""


def pattern_flag(pattern: str, batch_index: int, flag: str = "1") -> bool:
    """True when the pattern character for *batch_index* equals *flag*."""
    return pattern[batch_index % len(pattern)] == flag
