"""
Tests for the beat-dropper command line.
"""

import pytest
import numpy as np
import soundfile as sf
import sys
import os

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from beat_engine.cli import EXIT_FAILURE, EXIT_OK, EXIT_USAGE, build_parser, default_output_path, main


@pytest.fixture
def song(tmp_path):
    path = tmp_path / "song.wav"
    t = np.arange(16000) / 8000
    tone = (0.3 * np.sin(2 * np.pi * 220 * t) * 32767).astype(np.int16)
    sf.write(str(path), np.stack([tone, tone], axis=1), 8000, subtype="PCM_16")
    return path


class TestParser:
    """Test suite for argument parsing."""

    def test_modifier_options(self):
        args = build_parser().parse_args(["--workers", "3", "swapper", "in.wav",
                                          "--bpm", "120", "--measure-size", "4", "--pattern", "1:4:3:2"])
        assert args.modifier == "swapper"
        assert args.workers == 3
        assert args.bpm == 120
        assert args.measure_size == 4
        assert args.pattern == "1:4:3:2"

    def test_required_option_missing(self):
        with pytest.raises(SystemExit) as excinfo:
            build_parser().parse_args(["pattern", "in.wav", "--bpm", "120"])
        assert excinfo.value.code == 2

    def test_seed_is_optional(self):
        args = build_parser().parse_args(["random", "in.wav", "--bpm", "120", "--percentage", "50"])
        assert args.seed is None

    def test_default_output_path(self, tmp_path):
        assert default_output_path(tmp_path / "a.flac", "pattern", False) == tmp_path / "a_pattern.wav"
        assert default_output_path(tmp_path / "a.flac", "pattern", True) == tmp_path / "a_pattern.au"


class TestMain:
    """Test suite for main() exit codes."""

    def test_list(self, capsys):
        assert main(["--list"]) == EXIT_OK
        out = capsys.readouterr().out
        assert "waltz-v1" in out and "reverse-measure" in out

    def test_no_modifier(self):
        assert main([]) == EXIT_USAGE

    def test_successful_run(self, song, tmp_path):
        output = tmp_path / "out.wav"
        code = main(["--workers", "2", "pattern", str(song), "--bpm", "240", "--pattern", "10", "-o", str(output)])
        assert code == EXIT_OK
        assert sf.info(str(output)).frames == 8000

    def test_invalid_option_value(self, song, tmp_path):
        code = main(["percentage", str(song), "--bpm", "120", "--percentage", "150", "-o", str(tmp_path / "o.wav")])
        assert code == EXIT_USAGE

    def test_invalid_pattern(self, song, tmp_path):
        code = main(["swapper", str(song), "--bpm", "120", "--measure-size", "4",
                     "--pattern", "1:9", "-o", str(tmp_path / "o.wav")])
        assert code == EXIT_USAGE

    def test_missing_input(self, tmp_path):
        code = main(["identity", str(tmp_path / "absent.wav"), "-o", str(tmp_path / "o.wav")])
        assert code == EXIT_FAILURE

    @pytest.mark.parametrize("rate", ["-5", "0"])
    def test_non_positive_sample_rate(self, song, tmp_path, rate):
        output = tmp_path / "o.wav"
        code = main(["--sample-rate", rate, "identity", str(song), "-o", str(output)])
        assert code == EXIT_USAGE
        assert not output.exists()

    def test_sample_rate_resamples(self, song, tmp_path):
        output = tmp_path / "o.wav"
        assert main(["--sample-rate", "16000", "identity", str(song), "-o", str(output)]) == EXIT_OK
        assert sf.info(str(output)).samplerate == 16000
