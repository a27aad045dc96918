"""
Beat Engine - Concurrent beat-level transformation of stereo PCM audio

Splits a 16-bit stereo stream into beat-sized batches, transforms every
batch in parallel with a selectable modifier (drop, reverse, swap or
time-stretch beats) and reassembles the result in order.
"""

__version__ = "1.0.0"

from .errors import (
    BeatDropError,
    ChannelMismatchError,
    ConfigurationError,
    ProcessingError,
    StreamError,
)
from .format import AudioFormat, internal_format
from .modifiers import (
    ModifierOptions,
    SampleModifier,
    available_modifiers,
    create_modifier,
    get_factory,
)
from .pipeline import PipelineConfig, ProcessingStats, SelectionProcessor, process_file
from .stretch import OlaTimeStretcher, StretchConfig

__all__ = [
    "__version__",
    "BeatDropError",
    "ChannelMismatchError",
    "ConfigurationError",
    "ProcessingError",
    "StreamError",
    "AudioFormat",
    "internal_format",
    "ModifierOptions",
    "SampleModifier",
    "available_modifiers",
    "create_modifier",
    "get_factory",
    "PipelineConfig",
    "ProcessingStats",
    "SelectionProcessor",
    "process_file",
    "OlaTimeStretcher",
    "StretchConfig",
]
