#!/usr/bin/env python3
"""
Smoke Run - Render a synthetic click track through every modifier.

Generates a metronome click track with accented downbeats, writes it to a
WAV file and runs it through the full decode -> batch -> modify -> encode
chain once per registered modifier, logging the resulting durations.
"""

import argparse
import logging
import sys
import time
from pathlib import Path

import numpy as np
import soundfile as sf

# Add BeatDropper directory to path
sys.path.insert(0, str(Path(__file__).parent / "BeatDropper"))

from beat_engine import PipelineConfig, create_modifier, internal_format, process_file

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s | %(levelname)s | %(message)s',
    datefmt='%H:%M:%S'
)
logger = logging.getLogger("smoke_beat_dropper")

SMOKE_OPTIONS = {
    "identity": {},
    "percentage": {"bpm": 120, "percentage": 50},
    "pattern": {"bpm": 120, "pattern": "1101"},
    "random": {"bpm": 120, "percentage": 60, "seed": "smoke"},
    "random-sample": {"sample_size": 125, "percentage": 60, "seed": "smoke"},
    "reverse-measure": {"bpm": 120, "measure_size": 4},
    "swapper": {"bpm": 120, "measure_size": 4, "pattern": "1:4:3:2"},
    "pattern-reverse-beats": {"bpm": 120, "pattern": "01"},
    "waltz-v1": {"bpm": 120, "pattern": "001"},
}


def generate_click_track(duration_s: float, sr: int = 44100, bpm: float = 120.0) -> np.ndarray:
    """Generate a stereo click track with a clear beat structure."""
    logger.info(f"Generating {duration_s}s click track at {bpm} BPM...")

    clicks = np.zeros(int(duration_s * sr))
    beat_len = int(60.0 / bpm * sr)
    # Make clicks 50ms long
    click_len = int(0.05 * sr)
    click_t = np.arange(click_len) / sr

    for beat, idx in enumerate(range(0, len(clicks) - click_len, beat_len)):
        # Higher pitch for downbeat (every 4th)
        freq = 880.0 if beat % 4 == 0 else 440.0
        clicks[idx:idx + click_len] = np.sin(2 * np.pi * freq * click_t) * 0.8

    # pan the right channel slightly quieter so the channels differ
    return np.stack([clicks, 0.6 * clicks], axis=1)


def run_chain(input_path: Path, output_dir: Path, workers: int):
    """Run the click track through every modifier."""
    fmt = internal_format(sf.info(str(input_path)).samplerate)
    config = PipelineConfig(max_workers=workers)

    for modifier_id, options in SMOKE_OPTIONS.items():
        logger.info(f"\n--- {modifier_id} ---")
        modifier = create_modifier(modifier_id, fmt, **options)
        out_path = output_dir / f"click_{modifier_id}.wav"

        start_time = time.time()
        stats = process_file(modifier, str(input_path), str(out_path), config=config)
        elapsed = time.time() - start_time

        logger.info(f"   {modifier.describe()}: {stats.input_duration:.2f}s -> "
                    f"{stats.output_duration:.2f}s in {elapsed:.2f}s ({stats.batches} batches)")


def main():
    parser = argparse.ArgumentParser(description="Smoke-run every beat modifier on a click track")
    parser.add_argument("--duration", type=float, default=16.0, help="Duration of the click track")
    parser.add_argument("--workers", type=int, default=None, help="Batch worker threads")
    parser.add_argument("--output-dir", default="smoke_output", help="Where to write rendered files")

    args = parser.parse_args()

    sr = 44100
    output_dir = Path(args.output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    input_path = output_dir / "click_track.wav"
    sf.write(str(input_path), generate_click_track(args.duration, sr=sr), sr, subtype="PCM_16")

    try:
        run_chain(input_path, output_dir, args.workers)
    except Exception as e:
        logger.error(f"Smoke run failed: {e}")
        raise


if __name__ == "__main__":
    main()
