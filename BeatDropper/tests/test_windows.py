"""
Tests for the cached standard windows.
"""

import pytest
import numpy as np
import sys
import os
from concurrent.futures import ThreadPoolExecutor

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from beat_engine.windows import StandardWindow, clear_window_cache


class TestStandardWindow:
    """Test suite for StandardWindow."""

    def test_hann_values(self):
        n = 1024
        expected = 0.5 * (1 - np.cos(2 * np.pi * np.arange(n) / (n - 1)))
        np.testing.assert_allclose(StandardWindow.HANN.table(n), expected, atol=1e-12)

    def test_hann_endpoints_and_peak(self):
        table = StandardWindow.HANN.table(1025)
        assert table[0] == pytest.approx(0.0)
        assert table[-1] == pytest.approx(0.0)
        assert table[512] == pytest.approx(1.0)

    def test_value_at(self):
        assert StandardWindow.HANN.value_at(0, 1024) == pytest.approx(0.0)
        with pytest.raises(IndexError):
            StandardWindow.HANN.value_at(1024, 1024)

    def test_table_is_cached_and_read_only(self):
        clear_window_cache()
        first = StandardWindow.HANN.table(512)
        assert StandardWindow.HANN.table(512) is first
        with pytest.raises(ValueError):
            first[0] = 1.0

    def test_concurrent_lookups_share_one_table(self):
        clear_window_cache()
        StandardWindow.HAMMING.table(256)
        with ThreadPoolExecutor(max_workers=8) as pool:
            tables = list(pool.map(lambda _: StandardWindow.HAMMING.table(256), range(32)))
        assert all(t is tables[0] for t in tables)

    def test_apply(self):
        samples = np.ones(64)
        np.testing.assert_allclose(StandardWindow.HANN.apply(samples), StandardWindow.HANN.table(64))

    def test_invalid_length(self):
        with pytest.raises(ValueError):
            StandardWindow.HANN.table(0)
