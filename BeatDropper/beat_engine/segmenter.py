"""
Batch Segmenter - Cut an interleaved PCM byte stream into stereo batches

Reads 16-bit interleaved stereo frames and yields one :class:`Batch` per
``batch_size`` frames. Every batch owns freshly allocated arrays, so the
array length is always the filled length, including for a short final
batch, and no batch ever shares storage with the next read.
"""

import logging
from dataclasses import dataclass
from typing import BinaryIO, Iterator

import numpy as np

from .errors import ChannelMismatchError, ConfigurationError, StreamError

logger = logging.getLogger(__name__)

BYTES_PER_FRAME = 4
BYTE_ORDERS = {"little": "<i2", "big": ">i2"}


@dataclass
class Batch:
    """One slice of the stream, split into channels."""
    index: int
    left: np.ndarray
    right: np.ndarray

    def __post_init__(self):
        if len(self.left) != len(self.right):
            raise ChannelMismatchError(len(self.left), len(self.right), self.index)

    def __len__(self) -> int:
        return len(self.left)


def sample_dtype(byteorder: str) -> np.dtype:
    """numpy dtype for 16-bit samples in *byteorder* (``little`` or ``big``)."""
    try:
        return np.dtype(BYTE_ORDERS[byteorder])
    except KeyError:
        raise ConfigurationError(
            f"Unknown byte order '{byteorder}', expected one of {sorted(BYTE_ORDERS)}"
        ) from None


def deinterleave(data: bytes, byteorder: str = "little") -> np.ndarray:
    """Decode whole frames of *data* into an ``(frames, 2)`` native int16 array."""
    usable = len(data) - len(data) % BYTES_PER_FRAME
    if usable == 0:
        return np.zeros((0, 2), dtype=np.int16)
    frames = np.frombuffer(data, dtype=sample_dtype(byteorder), count=usable // 2)
    return frames.reshape(-1, 2).astype(np.int16)


def interleave(left: np.ndarray, right: np.ndarray, byteorder: str = "little") -> bytes:
    """Encode two channels as interleaved 16-bit frames."""
    if len(left) != len(right):
        raise ChannelMismatchError(len(left), len(right))
    frames = np.empty((len(left), 2), dtype=sample_dtype(byteorder))
    frames[:, 0] = left
    frames[:, 1] = right
    return frames.tobytes()


class BatchSegmenter:
    """
    Lazily splits a PCM source into batches.

    Iterating reads the source to exhaustion; a segmenter can only be
    iterated once.
    """

    def __init__(self, source: BinaryIO, batch_size: int, byteorder: str = "little"):
        """
        Initialize the segmenter.

        Args:
            source: Binary stream of interleaved 16-bit stereo frames
            batch_size: Frames per batch
            byteorder: ``little`` or ``big``

        Raises:
            ConfigurationError: If batch_size < 1 or byteorder is unknown
        """
        if batch_size < 1:
            raise ConfigurationError(f"Batch size must be at least one frame, got {batch_size}")
        self.source = source
        self.batch_size = batch_size
        self.byteorder = byteorder
        self._dtype = sample_dtype(byteorder)
        self.frames_read = 0
        self.batches_read = 0

    def _read_exactly(self, size: int) -> bytes:
        """Read up to *size* bytes, looping over short reads until EOF."""
        chunks = []
        remaining = size
        while remaining > 0:
            try:
                chunk = self.source.read(remaining)
            except StreamError:
                raise
            except OSError as e:
                raise StreamError(f"Failed to read samples: {e}") from e
            if not chunk:
                break
            chunks.append(chunk)
            remaining -= len(chunk)
        return b"".join(chunks)

    def __iter__(self) -> Iterator[Batch]:
        wanted = self.batch_size * BYTES_PER_FRAME
        while True:
            data = self._read_exactly(wanted)
            trailing = len(data) % BYTES_PER_FRAME
            if trailing:
                logger.debug(f"Dropping {trailing} trailing bytes of an incomplete frame")
            frames = deinterleave(data, self.byteorder)
            if len(frames) == 0:
                return
            batch = Batch(
                index=self.batches_read,
                left=frames[:, 0].copy(),
                right=frames[:, 1].copy(),
            )
            self.batches_read += 1
            self.frames_read += len(batch)
            if len(batch) < self.batch_size:
                logger.debug(f"Partial final batch {batch.index}: {len(batch)}/{self.batch_size} frames")
            yield batch
            if len(data) < wanted:
                return
