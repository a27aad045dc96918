"""
Tests for the selection modifier family and the waltzifier.
"""

import pytest
import numpy as np
import sys
import os
from concurrent.futures import ThreadPoolExecutor

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from beat_engine.errors import ConfigurationError
from beat_engine.modifiers import (
    BeatSwapper, IdentitySelector, MeasureReverser, PatternBeatDropper,
    PatternBeatReverser, PercentageBeatDropper, RandomBeatDropper,
    RandomSampleDropper, SeededDecisions, WaltzifierV1
)
from beat_engine.stretch import OlaTimeStretcher, StretchConfig


@pytest.fixture
def ramp():
    """Eight samples 1..8: two samples per beat in a 4-beat measure."""
    return np.arange(1, 9, dtype=np.int16)


class TestIdentity:
    """Test suite for IdentitySelector."""

    def test_keeps_everything(self, ramp):
        out = IdentitySelector().transform(ramp, 0)
        np.testing.assert_array_equal(out, ramp)

    def test_time_window(self):
        assert IdentitySelector().requested_time_window() == 8192


class TestPatternBeatDropper:
    """Test suite for PatternBeatDropper."""

    def test_alternating_pattern(self):
        dropper = PatternBeatDropper(120, "10")
        batch = np.ones(100, dtype=np.int16)
        lengths = [len(dropper.transform(batch, i)) for i in range(4)]
        assert lengths == [100, 0, 100, 0]

    def test_pattern_wraps(self):
        dropper = PatternBeatDropper(120, "110")
        batch = np.ones(10, dtype=np.int16)
        lengths = [len(dropper.transform(batch, i)) for i in range(6)]
        assert lengths == [10, 10, 0, 10, 10, 0]

    def test_time_window_is_one_beat(self):
        assert PatternBeatDropper(120, "10").requested_time_window() == 500

    def test_invalid_pattern(self):
        with pytest.raises(ConfigurationError):
            PatternBeatDropper(120, "1a0")
        with pytest.raises(ConfigurationError):
            PatternBeatDropper(120, "")

    def test_describe(self):
        assert PatternBeatDropper(120, "10").describe() == "Pattern[bpm=120,pattern=10]"


class TestPercentageBeatDropper:
    """Test suite for PercentageBeatDropper."""

    def test_zero_percent_gives_empty(self, ramp):
        assert len(PercentageBeatDropper(120, 0).transform(ramp, 0)) == 0

    def test_hundred_percent_gives_everything(self, ramp):
        np.testing.assert_array_equal(PercentageBeatDropper(120, 100).transform(ramp, 3), ramp)

    def test_keeps_leading_fraction(self):
        batch = np.arange(100, dtype=np.int16)
        out = PercentageBeatDropper(120, 25).transform(batch, 0)
        np.testing.assert_array_equal(out, np.arange(25))


class TestRandomBeatDropper:
    """Test suite for the seeded random droppers."""

    def test_same_seed_same_decisions(self):
        batch = np.ones(10, dtype=np.int16)
        a = RandomBeatDropper(120, 50, seed="groove")
        b = RandomBeatDropper(120, 50, seed="groove")
        lengths_a = [len(a.transform(batch, i)) for i in range(64)]
        lengths_b = [len(b.transform(batch, i)) for i in reversed(range(64))][::-1]
        assert lengths_a == lengths_b
        assert set(lengths_a) <= {0, 10}

    def test_decision_is_memoized_per_index(self):
        dropper = RandomBeatDropper(120, 50, seed="x")
        batch = np.ones(10, dtype=np.int16)
        # left and right channel of the same batch must agree
        for i in range(32):
            assert len(dropper.transform(batch, i)) == len(dropper.transform(batch, i))
        assert len(dropper.decisions) == 32

    def test_extreme_percentages(self):
        batch = np.ones(10, dtype=np.int16)
        keep_all = RandomBeatDropper(120, 100, seed="s")
        keep_none = RandomBeatDropper(120, 0, seed="s")
        assert all(len(keep_all.transform(batch, i)) == 10 for i in range(50))
        assert all(len(keep_none.transform(batch, i)) == 0 for i in range(50))

    def test_roughly_half_kept(self):
        decisions = SeededDecisions("half", 0.5)
        kept = sum(decisions.passes(i) for i in range(2000))
        assert 800 < kept < 1200

    def test_concurrent_queries_agree(self):
        decisions = SeededDecisions("threads", 0.5)
        expected = [SeededDecisions("threads", 0.5).passes(i) for i in range(200)]
        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(decisions.passes, list(range(200)) * 4))
        assert results == expected * 4

    def test_random_sample_window(self):
        dropper = RandomSampleDropper(250, 50, seed="s")
        assert dropper.requested_time_window() == 250
        assert dropper.describe().startswith("RandomSample[sampleSize=250")


class TestMeasureReverser:
    """Test suite for MeasureReverser."""

    def test_reverses_beats(self, ramp):
        out = MeasureReverser(120, 4).transform(ramp, 0)
        np.testing.assert_array_equal(out, [7, 8, 5, 6, 3, 4, 1, 2])

    def test_time_window_is_one_measure(self):
        assert MeasureReverser(120, 4).requested_time_window() == 2000

    def test_remainder_dropped(self):
        batch = np.arange(1, 11, dtype=np.int16)
        out = MeasureReverser(120, 4).transform(batch, 0)
        np.testing.assert_array_equal(out, [7, 8, 5, 6, 3, 4, 1, 2])


class TestBeatSwapper:
    """Test suite for BeatSwapper."""

    def test_swaps_by_pattern(self, ramp):
        out = BeatSwapper(120, 4, "1:4:3:2").transform(ramp, 0)
        np.testing.assert_array_equal(out, [1, 2, 7, 8, 5, 6, 3, 4])

    def test_pattern_may_repeat_beats(self, ramp):
        out = BeatSwapper(120, 4, "1:1").transform(ramp, 0)
        np.testing.assert_array_equal(out, [1, 2, 1, 2])

    @pytest.mark.parametrize("pattern", ["1:5", "0:1", "1:x", ""])
    def test_invalid_patterns(self, pattern):
        with pytest.raises(ConfigurationError):
            BeatSwapper(120, 4, pattern)


class TestPatternBeatReverser:
    """Test suite for PatternBeatReverser."""

    def test_reverses_flagged_beats(self, ramp):
        reverser = PatternBeatReverser(120, "01")
        np.testing.assert_array_equal(reverser.transform(ramp, 0), ramp)
        np.testing.assert_array_equal(reverser.transform(ramp, 1), ramp[::-1])

    def test_does_not_modify_input(self, ramp):
        PatternBeatReverser(120, "1").transform(ramp, 0)
        np.testing.assert_array_equal(ramp, np.arange(1, 9))


class TestWaltzifierV1:
    """Test suite for WaltzifierV1."""

    @pytest.fixture
    def waltz(self):
        stretcher = OlaTimeStretcher(StretchConfig(factor=0.5), executor=ThreadPoolExecutor(max_workers=4))
        return WaltzifierV1(120, "10", stretcher=stretcher)

    def test_stretches_flagged_beats(self, waltz):
        t = np.arange(4000)
        beat = (8000 * np.sin(2 * np.pi * t / 50)).astype(np.int16)
        assert len(waltz.transform(beat, 0)) == 8000
        np.testing.assert_array_equal(waltz.transform(beat, 1), beat)

    def test_stretches_channels_in_step(self, waltz):
        t = np.arange(4000)
        left = (8000 * np.sin(2 * np.pi * t / 50)).astype(np.int16)
        right = (4000 * np.sin(2 * np.pi * t / 50)).astype(np.int16)
        out_left, out_right = waltz.transform_stereo(left, right, 0)
        assert len(out_left) == len(out_right) == 8000
        np.testing.assert_array_equal(out_left, waltz.stretcher.stretch_stereo(left, right)[0])
        assert np.abs(out_right.astype(np.int32) * 2 - out_left).max() <= 4
        kept_left, kept_right = waltz.transform_stereo(left, right, 1)
        np.testing.assert_array_equal(kept_left, left)
        np.testing.assert_array_equal(kept_right, right)

    def test_default_stereo_transforms_each_channel(self):
        left = np.arange(1, 9, dtype=np.int16)
        out_left, out_right = MeasureReverser(120, 4).transform_stereo(left, -left, 0)
        np.testing.assert_array_equal(out_left, [7, 8, 5, 6, 3, 4, 1, 2])
        np.testing.assert_array_equal(out_right, -out_left)

    def test_describe(self, waltz):
        assert waltz.describe() == "WaltzV1[bpm=120,pattern=10,factor=0.5]"
        assert waltz.requested_time_window() == 500
