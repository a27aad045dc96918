"""
Codec Boundary - Container decode/encode around the PCM pipeline

Handles:
- Decoding any soundfile-readable container to interleaved 16-bit stereo
- Channel negotiation (mono duplicated, extra channels dropped)
- Sample-rate negotiation by resampling with librosa
- Encoding the transformed PCM stream back into a container

Both ends are exposed as binary file-like objects so the pipeline never
sees the container.
"""

import io
import logging
from pathlib import Path
from typing import Callable, Iterable, Iterator, Optional, Tuple

import librosa
import numpy as np
import soundfile as sf

from .errors import StreamError
from .format import AudioFormat, internal_format
from .segmenter import BYTES_PER_FRAME, sample_dtype
from .utils import float_to_s16

logger = logging.getLogger(__name__)

# Frames decoded per container read
DECODE_BLOCK_FRAMES = 65536
DEFAULT_CONTAINER = "WAV"
RAW_CONTAINER = "AU"
OUTPUT_SUBTYPE = "PCM_16"


def to_stereo(frames: np.ndarray) -> np.ndarray:
    """
    Reduce or expand a ``(frames, channels)`` block to two channels.

    Args:
        frames: 2-D sample block

    Returns:
        ``(frames, 2)`` block; mono is duplicated, channels past the
        second are dropped
    """
    if frames.shape[1] == 2:
        return frames
    if frames.shape[1] == 1:
        return np.repeat(frames, 2, axis=1)
    return frames[:, :2]


class PcmSourceStream(io.RawIOBase):
    """
    Readable stream of interleaved 16-bit stereo frames.

    Wraps an iterator of ``(frames, 2)`` int16 blocks; reads may return
    fewer bytes than requested, as with any raw stream.
    """

    def __init__(self, blocks: Iterable[np.ndarray], byteorder: str = "little",
                 on_close: Optional[Callable[[], None]] = None):
        super().__init__()
        self._blocks: Iterator[np.ndarray] = iter(blocks)
        self._dtype = sample_dtype(byteorder)
        self._on_close = on_close
        self._buffer = b""
        self._position = 0

    def readable(self) -> bool:
        return True

    def _fill(self) -> bool:
        """Decode the next block into the buffer; False once exhausted."""
        try:
            block = next(self._blocks)
        except StopIteration:
            return False
        except (RuntimeError, OSError) as e:
            raise StreamError(f"Failed to decode audio: {e}") from e
        self._buffer = np.ascontiguousarray(block, dtype=self._dtype).tobytes()
        self._position = 0
        return True

    def readinto(self, b) -> int:
        while self._position >= len(self._buffer):
            if not self._fill():
                return 0
        size = min(len(b), len(self._buffer) - self._position)
        b[:size] = self._buffer[self._position:self._position + size]
        self._position += size
        return size

    def close(self):
        if not self.closed and self._on_close is not None:
            self._on_close()
        super().close()


class PcmSinkStream(io.RawIOBase):
    """
    Writable stream that encodes interleaved 16-bit stereo frames.

    Writes need not be frame aligned; a partial frame is held until the
    next write completes it.
    """

    def __init__(self, sound_file: sf.SoundFile, byteorder: str = "little"):
        super().__init__()
        self._file = sound_file
        self._dtype = sample_dtype(byteorder)
        self._pending = b""
        self.frames_written = 0

    def writable(self) -> bool:
        return True

    def write(self, data) -> int:
        if self.closed:
            raise ValueError("write to closed PcmSinkStream")
        data = bytes(data)
        buffered = self._pending + data
        usable = len(buffered) - len(buffered) % BYTES_PER_FRAME
        self._pending = buffered[usable:]
        if usable:
            frames = np.frombuffer(buffered[:usable], dtype=self._dtype).reshape(-1, 2)
            try:
                self._file.write(frames.astype(np.int16))
            except (RuntimeError, OSError) as e:
                raise StreamError(f"Failed to encode audio: {e}", source=self._file.name) from e
            self.frames_written += len(frames)
        return len(data)

    def close(self):
        if self.closed:
            return
        try:
            if self._pending:
                logger.warning(f"Discarding {len(self._pending)} bytes of an incomplete final frame")
            self._file.close()
        except (RuntimeError, OSError) as e:
            raise StreamError(f"Failed to finalize audio: {e}", source=self._file.name) from e
        finally:
            super().close()
        logger.info(f"Wrote {self.frames_written} frames to {Path(self._file.name).name}")


def _resampled_blocks(path: str, target_rate: int) -> Tuple[np.ndarray, int]:
    """Decode the whole file as float and resample it to *target_rate*."""
    audio, sr = sf.read(path, dtype="float32", always_2d=True)
    audio = to_stereo(audio)
    # librosa resamples along the last axis
    resampled = librosa.resample(audio.T, orig_sr=sr, target_sr=target_rate).T
    logger.debug(f"  Resampled: {sr} Hz -> {target_rate} Hz ({len(audio)} -> {len(resampled)} frames)")
    return float_to_s16(resampled), sr


def open_input(path, sample_rate: Optional[int] = None,
               byteorder: str = "little") -> Tuple[AudioFormat, PcmSourceStream]:
    """
    Open an audio container as a PCM source.

    Args:
        path: Any container soundfile can read
        sample_rate: Target sample rate (None keeps the file's rate)
        byteorder: Byte order of the produced PCM stream

    Returns:
        (AudioFormat, PcmSourceStream) tuple

    Raises:
        ConfigurationError: If *sample_rate* is not a positive rate
        StreamError: If the file is missing or cannot be decoded
    """
    requested = None if sample_rate is None else internal_format(sample_rate)
    path = Path(path)
    if not path.exists():
        raise StreamError("Audio file not found", source=str(path))

    try:
        info = sf.info(str(path))
    except (RuntimeError, OSError) as e:
        raise StreamError(f"Unreadable audio container: {e}", source=str(path)) from e

    logger.info(f"Opening audio: {path.name} ({info.samplerate} Hz, {info.channels} ch, {info.subtype})")
    if info.channels == 1:
        logger.warning("  Mono input: duplicating to stereo")
    elif info.channels > 2:
        logger.warning(f"  {info.channels}-channel input: keeping the first two channels")

    if requested is not None and requested.sample_rate != info.samplerate:
        logger.warning(f"  Sample rate {info.samplerate} Hz differs from requested {sample_rate} Hz, resampling")
        try:
            frames, _ = _resampled_blocks(str(path), sample_rate)
        except (RuntimeError, OSError) as e:
            raise StreamError(f"Audio loading failed: {e}", source=str(path)) from e
        return requested, PcmSourceStream([frames], byteorder)

    try:
        sound_file = sf.SoundFile(str(path))
    except (RuntimeError, OSError) as e:
        raise StreamError(f"Audio loading failed: {e}", source=str(path)) from e

    blocks = (
        to_stereo(block)
        for block in sound_file.blocks(blocksize=DECODE_BLOCK_FRAMES, dtype="int16", always_2d=True)
    )
    return internal_format(sound_file.samplerate), PcmSourceStream(blocks, byteorder, on_close=sound_file.close)


def output_container(path, container: Optional[str] = None, raw: bool = False) -> str:
    """
    Pick the soundfile format name for an output file.

    Args:
        path: Output path; its extension is used when no container is given
        container: Explicit format name, e.g. ``"FLAC"``
        raw: Force the uncompressed AU container

    Returns:
        soundfile format name

    Raises:
        StreamError: If an explicit container is not supported
    """
    formats = sf.available_formats()
    if raw:
        return RAW_CONTAINER
    if container:
        name = container.upper()
        if name not in formats:
            raise StreamError(f"Unsupported container '{container}'", source=str(path))
        return name
    extension = Path(path).suffix.lstrip(".").upper()
    if extension in formats:
        return extension
    return DEFAULT_CONTAINER


def open_output(path, fmt: AudioFormat, container: Optional[str] = None, raw: bool = False,
                byteorder: str = "little") -> PcmSinkStream:
    """
    Open an audio container for writing transformed PCM.

    Args:
        path: Destination file
        fmt: Format of the incoming PCM stream
        container: Explicit soundfile format name (default from extension, else WAV)
        raw: Write an uncompressed AU container
        byteorder: Byte order of the incoming PCM stream

    Returns:
        PcmSinkStream accepting interleaved 16-bit stereo bytes

    Raises:
        StreamError: If the file cannot be created
    """
    path = Path(path)
    name = output_container(path, container, raw)
    subtype = OUTPUT_SUBTYPE
    if not sf.check_format(name, subtype):
        subtype = sf.default_subtype(name)
        logger.warning(f"{name} cannot hold {OUTPUT_SUBTYPE}, encoding as {subtype}")

    try:
        sound_file = sf.SoundFile(
            str(path), mode="w", samplerate=fmt.sample_rate,
            channels=fmt.channels, format=name, subtype=subtype,
        )
    except (RuntimeError, OSError, TypeError, ValueError) as e:
        raise StreamError(f"Failed to create output: {e}", source=str(path)) from e

    logger.info(f"Writing {name}/{subtype} at {fmt.sample_rate} Hz: {path.name}")
    return PcmSinkStream(sound_file, byteorder)


def probe_format(path, sample_rate: Optional[int] = None) -> AudioFormat:
    """
    Format a run over *path* will use, without decoding any samples.

    Raises:
        ConfigurationError: If *sample_rate* is not a positive rate
        StreamError: If the file is missing or unreadable
    """
    path = Path(path)
    if not path.exists():
        raise StreamError("Audio file not found", source=str(path))
    try:
        info = sf.info(str(path))
    except (RuntimeError, OSError) as e:
        raise StreamError(f"Unreadable audio container: {e}", source=str(path)) from e
    return internal_format(info.samplerate if sample_rate is None else sample_rate)
