"""
Batch Pipeline - Concurrent, order-preserving sample transformation

Coordinates the stages of a run:
Segment → Modify (parallel) → Gather (in order) → Serialize

The segmenter runs on its own reader thread and submits one task per
batch to a worker pool. Futures travel through a bounded queue to the
gatherer, which awaits them strictly in submission order, so output order
equals input order no matter which task finishes first.
"""

import logging
import queue
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Optional, Tuple

import numpy as np

from .errors import (
    BeatDropError,
    ChannelMismatchError,
    ConfigurationError,
    ProcessingError,
    StreamError,
)
from .format import AudioFormat
from .modifiers.base import SampleModifier
from .segmenter import BYTE_ORDERS, Batch, BatchSegmenter, interleave
from .utils import default_worker_count, format_duration

logger = logging.getLogger(__name__)

# Marks the end of the batch stream in the pending queue
_END = None
_PUT_TIMEOUT = 0.1


@dataclass
class PipelineConfig:
    """Configuration for a pipeline run."""
    # Worker threads for batch tasks (None: one per core plus headroom)
    max_workers: Optional[int] = None
    # Submitted-but-ungathered batches allowed before the reader waits
    max_pending_batches: int = 32
    # Byte order of the PCM stream on both sides of the pipeline
    byteorder: str = "little"

    def __post_init__(self):
        """Validate configuration values after initialization."""
        self.validate()

    def validate(self):
        if self.max_workers is not None and self.max_workers < 1:
            raise ConfigurationError(f"Worker count must be >= 1, got {self.max_workers}")
        if self.max_pending_batches < 1:
            raise ConfigurationError(
                f"Pending batch limit must be >= 1, got {self.max_pending_batches}"
            )
        if self.byteorder not in BYTE_ORDERS:
            raise ConfigurationError(f"Unknown byte order '{self.byteorder}'")

    @property
    def worker_count(self) -> int:
        return self.max_workers or default_worker_count()


@dataclass
class ProcessingStats:
    """Summary of a finished run."""
    batches: int
    input_frames: int
    output_frames: int
    elapsed_seconds: float
    sample_rate: int

    @property
    def input_duration(self) -> float:
        return self.input_frames / self.sample_rate

    @property
    def output_duration(self) -> float:
        return self.output_frames / self.sample_rate

    def to_dict(self):
        """Convert to dictionary for reporting."""
        return {
            "batches": self.batches,
            "input": format_duration(self.input_duration),
            "output": format_duration(self.output_duration),
            "processing_time": f"{self.elapsed_seconds:.1f}s",
        }


class SelectionProcessor:
    """
    Runs a modifier over a whole stereo stream.

    Features:
    - Batch size derived from the modifier's requested time window
    - Parallel per-batch transformation, strictly ordered output
    - Bounded backlog between reading and gathering
    - First failure cancels outstanding work and aborts the run
    """

    def __init__(self, modifier: SampleModifier, fmt: AudioFormat,
                 config: Optional[PipelineConfig] = None):
        """
        Initialize the processor.

        Args:
            modifier: Transformation applied to every batch
            fmt: Format of the stream
            config: Pipeline configuration (uses defaults if None)

        Raises:
            ConfigurationError: If the modifier's window holds no frames
        """
        self.modifier = modifier
        self.format = fmt
        self.config = config or PipelineConfig()
        self.batch_size = fmt.samples_for(modifier.requested_time_window())
        if self.batch_size < 1:
            raise ConfigurationError(
                f"{modifier.describe()} requests {modifier.requested_time_window()} ms, "
                f"less than one frame at {fmt.sample_rate} Hz"
            )

        logger.info(f"Initialized SelectionProcessor: {modifier.describe()}, {self.batch_size} frames per batch")

    def process_stream(self, source: BinaryIO, sink: BinaryIO) -> ProcessingStats:
        """
        Transform interleaved PCM from *source* into *sink*.

        Args:
            source: Readable binary stream of 16-bit stereo frames
            sink: Writable binary stream receiving transformed frames

        Returns:
            ProcessingStats for the run

        Raises:
            StreamError: On read or write failure
            ProcessingError: If the modifier fails on any batch
            ChannelMismatchError: If a modifier returns unequal channels
        """
        start_time = time.time()
        segmenter = BatchSegmenter(source, self.batch_size, self.config.byteorder)
        pending: "queue.Queue[Optional[Tuple[int, Future]]]" = queue.Queue(
            maxsize=self.config.max_pending_batches
        )
        stop = threading.Event()

        with ThreadPoolExecutor(max_workers=self.config.worker_count,
                                thread_name_prefix="beat-modifier") as executor:
            reader = threading.Thread(
                target=self._produce,
                args=(segmenter, executor, pending, stop),
                name="beat-segmenter",
                daemon=True,
            )
            reader.start()
            try:
                batches, output_frames = self._gather(pending, sink)
            except BaseException:
                stop.set()
                self._cancel_pending(pending)
                raise
            finally:
                reader.join()

        stats = ProcessingStats(
            batches=batches,
            input_frames=segmenter.frames_read,
            output_frames=output_frames,
            elapsed_seconds=time.time() - start_time,
            sample_rate=self.format.sample_rate,
        )
        logger.info(
            f"Processed {stats.batches} batches: {format_duration(stats.input_duration)} in, "
            f"{format_duration(stats.output_duration)} out ({stats.elapsed_seconds:.1f}s)"
        )
        return stats

    # ------------------------------------------------------------------
    # Reader side
    # ------------------------------------------------------------------
    def _produce(self, segmenter: BatchSegmenter, executor: ThreadPoolExecutor,
                 pending: queue.Queue, stop: threading.Event):
        try:
            for batch in segmenter:
                if stop.is_set():
                    return
                future = executor.submit(self._modify, batch)
                if not self._offer(pending, (batch.index, future), stop):
                    future.cancel()
                    return
        except BaseException as e:
            # hand the failure to the gatherer through an already-failed future
            failed: Future = Future()
            failed.set_exception(e)
            self._offer(pending, (segmenter.batches_read, failed), stop)
            return
        self._offer(pending, _END, stop)

    @staticmethod
    def _offer(pending: queue.Queue, item, stop: threading.Event) -> bool:
        """Put *item* unless the run is stopping; False if it was dropped."""
        while not stop.is_set():
            try:
                pending.put(item, timeout=_PUT_TIMEOUT)
                return True
            except queue.Full:
                continue
        return False

    def _modify(self, batch: Batch) -> Tuple[np.ndarray, np.ndarray]:
        logger.debug(f"Modifying batch {batch.index} ({len(batch)} frames)")
        return self.modifier.transform_stereo(batch.left, batch.right, batch.index)

    # ------------------------------------------------------------------
    # Gatherer side
    # ------------------------------------------------------------------
    def _gather(self, pending: queue.Queue, sink: BinaryIO) -> Tuple[int, int]:
        batches = 0
        output_frames = 0
        while True:
            item = pending.get()
            if item is _END:
                return batches, output_frames
            index, future = item
            try:
                left, right = future.result()
            except BeatDropError:
                raise
            except Exception as e:
                raise ProcessingError(f"{self.modifier.describe()} failed: {e}", batch_index=index) from e
            if len(left) != len(right):
                raise ChannelMismatchError(len(left), len(right), index)
            self._write(sink, interleave(left, right, self.config.byteorder))
            batches += 1
            output_frames += len(left)

    @staticmethod
    def _write(sink: BinaryIO, data: bytes):
        try:
            sink.write(data)
        except StreamError:
            raise
        except OSError as e:
            raise StreamError(f"Failed to write samples: {e}") from e

    @staticmethod
    def _cancel_pending(pending: queue.Queue):
        """Cancel every queued future; running tasks finish but are ignored."""
        while True:
            try:
                item = pending.get_nowait()
            except queue.Empty:
                return
            if item is not _END:
                item[1].cancel()


def process_file(modifier: SampleModifier, input_path: str, output_path: str,
                 config: Optional[PipelineConfig] = None, sample_rate: Optional[int] = None,
                 raw: bool = False, container: Optional[str] = None) -> ProcessingStats:
    """
    Decode *input_path*, run *modifier* over it and encode to *output_path*.

    Args:
        modifier: Transformation applied to every batch
        input_path: Any container soundfile can read
        output_path: Destination file
        config: Pipeline configuration (uses defaults if None)
        sample_rate: Resample the input to this rate first (None keeps it)
        raw: Write an uncompressed AU container instead of the default
        container: Explicit soundfile format name, e.g. "FLAC"

    Returns:
        ProcessingStats for the run
    """
    from .codec import open_input, open_output

    config = config or PipelineConfig()
    fmt, source = open_input(input_path, sample_rate=sample_rate, byteorder=config.byteorder)
    logger.info(f"Loaded {Path(input_path).name} as {fmt.describe()}")
    with source:
        processor = SelectionProcessor(modifier, fmt, config)
        with open_output(output_path, fmt, container=container, raw=raw,
                         byteorder=config.byteorder) as sink:
            return processor.process_stream(source, sink)
