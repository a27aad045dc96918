"""
Standard window functions with a process-wide cache.

Windows are computed once per (kind, length) and shared read-only between
all stretch tasks. ``functools.lru_cache`` gives compute-if-absent
semantics: two threads racing on a cold key both compute the same values
and one result wins.
"""

import logging
from enum import Enum
from functools import lru_cache

import numpy as np
from scipy import signal

logger = logging.getLogger(__name__)


@lru_cache(maxsize=None)
def _window_table(kind: str, length: int) -> np.ndarray:
    # fftbins=False gives the symmetric form: 0.5 * (1 - cos(2*pi*i / (n - 1)))
    table = signal.get_window(kind, length, fftbins=False).astype(np.float64)
    table.setflags(write=False)
    logger.debug(f"Computed {kind} window of length {length}")
    return table


class StandardWindow(Enum):
    """Symmetric window functions used for overlap-add."""
    HANN = "hann"
    HAMMING = "hamming"

    def table(self, length: int) -> np.ndarray:
        """Return the cached, read-only window of *length* samples."""
        if length < 1:
            raise ValueError(f"Window length must be positive, got {length}")
        return _window_table(self.value, length)

    def value_at(self, index: int, length: int) -> float:
        """Window weight at *index* for a window of *length* samples."""
        if not 0 <= index < length:
            raise IndexError(f"Window index {index} outside [0, {length})")
        return float(self.table(length)[index])

    def apply(self, samples: np.ndarray) -> np.ndarray:
        """Multiply *samples* by this window (same length); returns a new array."""
        samples = np.asarray(samples, dtype=np.float64)
        return samples * self.table(len(samples))


def clear_window_cache() -> None:
    """Drop every cached window table."""
    _window_table.cache_clear()
