"""
Utility Functions - Sample conversions and small helpers

Contains the int16/float conversions used by the stretch engine, the
stable seed hashing used by the random droppers, and display helpers.
"""

import hashlib
import logging
import os
from typing import Optional

import numpy as np

logger = logging.getLogger(__name__)

# 2 ** (16 - 1): full scale of a signed 16-bit sample
S16_SCALE = float(2 ** 15)
S16_MIN = -32768
S16_MAX = 32767


# === Sample Conversions ===

def s16_to_float(samples: np.ndarray) -> np.ndarray:
    """
    Convert signed 16-bit samples to normalized floats.

    Args:
        samples: int16 sample array

    Returns:
        float64 array in [-1, 1)
    """
    return np.asarray(samples, dtype=np.float64) / S16_SCALE


def float_to_s16(samples: np.ndarray) -> np.ndarray:
    """
    Convert normalized floats back to signed 16-bit samples.

    Values are scaled by 2**15, clipped to the int16 range and truncated
    toward zero.

    Args:
        samples: float array, nominally in [-1, 1)

    Returns:
        int16 sample array
    """
    scaled = np.asarray(samples, dtype=np.float64) * S16_SCALE
    return np.clip(scaled, S16_MIN, S16_MAX).astype(np.int16)


# === Seeds ===

def stable_seed(seed: Optional[str]) -> int:
    """
    Reduce a seed string to a 64-bit integer that is stable across processes.

    Python's built-in ``hash`` of strings is salted per process, so the
    digest of the UTF-8 bytes is used instead. A missing seed maps to 0.

    Args:
        seed: Seed string or None

    Returns:
        Non-negative integer usable as a numpy seed
    """
    if seed is None:
        return 0
    digest = hashlib.sha256(seed.encode("utf-8")).digest()
    return int.from_bytes(digest[:8], "little")


# === Concurrency ===

def default_worker_count(headroom: int = 8, cap: int = 64) -> int:
    """Worker pool size: one per core plus headroom for I/O stalls."""
    return min((os.cpu_count() or 1) + headroom, cap)


# === Display Helpers ===

def format_duration(seconds: float) -> str:
    """
    Format an audio duration to the millisecond.

    Args:
        seconds: Duration in seconds

    Returns:
        ``M:SS.mmm``, or ``H:MM:SS.mmm`` from one hour up
    """
    total_ms = int(round(seconds * 1000))
    hours, rest = divmod(total_ms, 3_600_000)
    minutes, rest = divmod(rest, 60_000)
    secs, millis = divmod(rest, 1000)

    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}.{millis:03d}"
    return f"{minutes}:{secs:02d}.{millis:03d}"
