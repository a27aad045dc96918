"""
Sample modifiers and their registry.

Importing this package registers every built-in modifier.
"""

from .base import SampleModifier, SampleSelector
from .options import ModifierOptions
from .registry import (
    ModifierFactory,
    available_modifiers,
    create_modifier,
    format_available_for_cli,
    get_factory,
    register_modifier,
)
from .droppers import (
    IdentitySelector,
    PatternBeatDropper,
    PercentageBeatDropper,
    RandomBeatDropper,
    RandomSampleDropper,
    SeededDecisions,
)
from .rearrangers import BeatSwapper, MeasureReverser, PatternBeatReverser
from .waltz import WaltzifierV1

__all__ = [
    "SampleModifier",
    "SampleSelector",
    "ModifierOptions",
    "ModifierFactory",
    "available_modifiers",
    "create_modifier",
    "format_available_for_cli",
    "get_factory",
    "register_modifier",
    "IdentitySelector",
    "PatternBeatDropper",
    "PercentageBeatDropper",
    "RandomBeatDropper",
    "RandomSampleDropper",
    "SeededDecisions",
    "BeatSwapper",
    "MeasureReverser",
    "PatternBeatReverser",
    "WaltzifierV1",
]
