"""
Tests for sample selections, measure math and the internal format.
"""

import pytest
import numpy as np
import sys
import os
from fractions import Fraction

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from beat_engine.errors import ConfigurationError
from beat_engine.format import AudioFormat, internal_format
from beat_engine.selection import (
    SampleSelection, build_measure, extract_selection, requested_time_for_one_beat
)


class TestSampleSelection:
    """Test suite for SampleSelection."""

    def test_length(self):
        assert SampleSelection(3, 10).length == 7
        assert SampleSelection(5, 5).length == 0

    def test_negative_low_bound_rejected(self):
        with pytest.raises(ValueError):
            SampleSelection(-1, 4)

    def test_high_below_low_rejected(self):
        with pytest.raises(ValueError):
            SampleSelection(5, 4)

    def test_ordered_by_low_bound(self):
        selections = [SampleSelection(20, 30), SampleSelection(0, 10), SampleSelection(10, 20)]
        assert [s.low_bound for s in sorted(selections)] == [0, 10, 20]

    def test_equality_uses_both_bounds(self):
        assert SampleSelection(0, 4) == SampleSelection(0, 4)
        assert SampleSelection(0, 4) != SampleSelection(0, 5)


class TestMeasureMath:
    """Test suite for beat timing and measure partitioning."""

    def test_one_beat_time_window(self):
        assert requested_time_for_one_beat(120) == 500
        assert requested_time_for_one_beat(60) == 1000
        # 60000 / 7 = 8571.43 -> truncated
        assert requested_time_for_one_beat(7) == 8571

    def test_measure_covers_exact_beats(self):
        beats = build_measure(4, 8)
        assert beats == [
            SampleSelection(0, 2), SampleSelection(2, 4),
            SampleSelection(4, 6), SampleSelection(6, 8),
        ]

    def test_measure_remainder_dropped(self):
        beats = build_measure(4, 10)
        assert len(beats) == 4
        assert all(b.length == 2 for b in beats)
        assert beats[-1].high_bound == 8

    def test_measure_shorter_than_size_gives_empty_beats(self):
        beats = build_measure(4, 3)
        assert len(beats) == 4
        assert all(b.length == 0 for b in beats)


class TestExtractSelection:
    """Test suite for selection concatenation."""

    def test_concatenates_in_given_order(self):
        samples = np.arange(8, dtype=np.int16)
        out = extract_selection(samples, [SampleSelection(6, 8), SampleSelection(0, 2)])
        np.testing.assert_array_equal(out, [6, 7, 0, 1])
        assert out.dtype == np.int16

    def test_empty_selection(self):
        samples = np.arange(8, dtype=np.int16)
        out = extract_selection(samples, [SampleSelection(0, 0)])
        assert len(out) == 0

    def test_result_does_not_share_memory(self):
        samples = np.arange(8, dtype=np.int16)
        out = extract_selection(samples, [SampleSelection(0, 8)])
        out[0] = 99
        assert samples[0] == 0

    def test_out_of_range_selection(self):
        with pytest.raises(IndexError):
            extract_selection(np.zeros(4, dtype=np.int16), [SampleSelection(0, 5)])


class TestAudioFormat:
    """Test suite for the internal stereo s16 format."""

    def test_internal_format(self):
        fmt = internal_format(44100)
        assert fmt.channels == 2
        assert fmt.sample_width == 2
        assert fmt.frame_size == 4
        assert fmt.frame_rate == 44100
        assert fmt.time_base == Fraction(1, 44100)
        assert fmt.channel_layout == "stereo"
        assert fmt.sample_format == "s16"

    def test_samples_for_truncates(self):
        fmt = internal_format(44100)
        assert fmt.samples_for(500) == 22050
        assert fmt.samples_for(1) == 44
        assert fmt.samples_for(0) == 0

    def test_format_is_immutable(self):
        fmt = internal_format(8000)
        with pytest.raises(Exception):
            fmt.sample_rate = 16000

    @pytest.mark.parametrize("rate", [0, -44100])
    def test_invalid_sample_rate(self, rate):
        with pytest.raises(ConfigurationError):
            internal_format(rate)

    def test_describe(self):
        assert "44100 Hz" in internal_format(44100).describe()
        assert isinstance(internal_format(8000), AudioFormat)
