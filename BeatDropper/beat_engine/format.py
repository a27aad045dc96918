"""
Internal sample format shared by the codec boundary and the modifiers.
"""

from dataclasses import dataclass, field
from fractions import Fraction

from .errors import ConfigurationError

CHANNEL_LAYOUT_STEREO = "stereo"
SAMPLE_FORMAT_S16 = "s16"


@dataclass(frozen=True)
class AudioFormat:
    """Immutable description of the PCM stream flowing through a run."""
    channel_layout: str
    sample_format: str
    time_base: Fraction
    sample_rate: int

    # Fixed by the engine: interleaved 16-bit signed stereo
    channels: int = field(default=2, init=False)
    sample_width: int = field(default=2, init=False)

    @property
    def frame_size(self) -> int:
        """Bytes per interleaved frame."""
        return self.channels * self.sample_width

    @property
    def frame_rate(self) -> int:
        return self.sample_rate

    def samples_for(self, milliseconds: int) -> int:
        """Number of frames covering *milliseconds* of audio (truncated)."""
        return int(milliseconds * self.frame_rate / 1000)

    def describe(self) -> str:
        return f"{self.sample_rate} Hz, {self.sample_format}, {self.channel_layout}"


def internal_format(sample_rate: int) -> AudioFormat:
    """Build the run format from the negotiated input sample rate."""
    if sample_rate <= 0:
        raise ConfigurationError(f"Sample rate must be a positive number of Hz, got {sample_rate}")
    return AudioFormat(
        channel_layout=CHANNEL_LAYOUT_STEREO,
        sample_format=SAMPLE_FORMAT_S16,
        time_base=Fraction(1, sample_rate),
        sample_rate=sample_rate,
    )
