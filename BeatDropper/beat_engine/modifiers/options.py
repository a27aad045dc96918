"""
Modifier options shared by every factory, with fail-fast validation.
"""

from dataclasses import dataclass, fields
from typing import Any, Dict, Optional, Tuple

from ..errors import ConfigurationError

# Default CLI help for each option; factories may override per modifier
OPTION_HELP: Dict[str, str] = {
    "bpm": "BPM of the song.",
    "measure_size": "Size of a measure in beats.",
    "pattern": "Pattern of 1s and 0s for which beats to use.",
    "percentage": "Percentage in the range [0, 100].",
    "seed": "Random seed. A stable hash of the string is used.",
    "sample_size": "Size of each sample to consider, in milliseconds.",
    "stretch_factor": "Playback rate for stretched beats (0.5 doubles the duration).",
}


def positive_int(value: Any, label: str) -> int:
    """Parse *value* as an integer in ``[1, infinity)``."""
    try:
        int_value = int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{label} is an integer, got {value!r}.") from None
    if isinstance(value, float) and value != int_value:
        raise ConfigurationError(f"{label} is an integer, got {value!r}.")
    if int_value < 1:
        raise ConfigurationError(f"{label} must be in the range [1, infinity).")
    return int_value


def percentage_value(value: Any) -> float:
    """Parse *value* as a percentage in ``[0, 100]``."""
    try:
        percentage = float(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"Percentage is a number, got {value!r}.") from None
    if not 0.0 <= percentage <= 100.0:
        raise ConfigurationError("Percentage must be in the range [0, 100].")
    return percentage


def parse_binary_pattern(pattern: Optional[str]) -> str:
    """Validate a pattern made only of ``0`` and ``1``."""
    if not pattern:
        raise ConfigurationError("Pattern must not be empty.")
    if set(pattern) - {"0", "1"}:
        raise ConfigurationError(f"Invalid pattern `{pattern}`: expected only 0 and 1.")
    return pattern


def parse_index_pattern(pattern: Optional[str], measure_size: int) -> Tuple[int, ...]:
    """
    Parse a colon-separated, 1-based beat pattern into 0-based indexes.

    Args:
        pattern: e.g. ``"1:4:3:2"``
        measure_size: Number of beats in a measure

    Returns:
        Tuple of 0-based beat indexes

    Raises:
        ConfigurationError: On malformed tokens or indexes outside the measure
    """
    if not pattern:
        raise ConfigurationError("Pattern must not be empty.")
    try:
        indexes = tuple(int(token) - 1 for token in pattern.split(":"))
    except ValueError:
        raise ConfigurationError(f"Invalid pattern `{pattern}`") from None
    if any(i < 0 or i >= measure_size for i in indexes):
        raise ConfigurationError(
            f"Invalid pattern `{pattern}`: beats must be in [1, {measure_size}]"
        )
    return indexes


@dataclass
class ModifierOptions:
    """
    Raw option values for building a modifier.

    Values may arrive as strings (from the command line) or native
    types; numeric options are normalized and range-checked on creation.
    Patterns are checked by the factory that knows their grammar.
    """
    bpm: Optional[int] = None
    measure_size: Optional[int] = None
    pattern: Optional[str] = None
    percentage: Optional[float] = None
    seed: Optional[str] = None
    sample_size: Optional[int] = None
    stretch_factor: Optional[float] = None

    def __post_init__(self):
        """Validate configuration values after initialization."""
        self.validate()

    def validate(self):
        """Normalize and range-check every provided value."""
        if self.bpm is not None:
            self.bpm = positive_int(self.bpm, "BPM")
        if self.measure_size is not None:
            self.measure_size = positive_int(self.measure_size, "Measure size")
        if self.sample_size is not None:
            self.sample_size = positive_int(self.sample_size, "Sample size")
        if self.percentage is not None:
            self.percentage = percentage_value(self.percentage)
        if self.stretch_factor is not None:
            try:
                factor = float(self.stretch_factor)
            except (TypeError, ValueError):
                raise ConfigurationError(
                    f"Stretch factor is a number, got {self.stretch_factor!r}."
                ) from None
            if not factor > 0.0:
                raise ConfigurationError("Stretch factor must be greater than 0.")
            self.stretch_factor = factor
        if self.seed is not None:
            self.seed = str(self.seed)

    def require(self, *names: str):
        """Raise if any of *names* was not provided."""
        missing = [name for name in names if getattr(self, name) is None]
        if missing:
            flags = ", ".join("--" + name.replace("_", "-") for name in missing)
            raise ConfigurationError(f"Missing required option(s): {flags}")

    def provided(self) -> Dict[str, Any]:
        """Options that were actually set."""
        return {f.name: getattr(self, f.name) for f in fields(self) if getattr(self, f.name) is not None}
