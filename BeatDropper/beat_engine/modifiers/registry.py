"""
Modifier registry - factories keyed by string id.

Modifier classes register themselves with :func:`register_modifier`; the
CLI and the pipeline look them up with :func:`get_factory`.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

from ..errors import ConfigurationError
from ..format import AudioFormat
from .base import SampleModifier
from .options import OPTION_HELP, ModifierOptions

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ModifierFactory:
    """Builds one modifier variant from validated options."""
    id: str
    description: str
    builder: Callable[[AudioFormat, ModifierOptions], SampleModifier]
    options: Tuple[str, ...] = ()
    required: Tuple[str, ...] = ()
    option_help: Dict[str, str] = field(default_factory=dict)

    def help_for(self, option: str) -> str:
        return self.option_help.get(option, OPTION_HELP.get(option, ""))

    def create(self, fmt: AudioFormat, options: Optional[ModifierOptions] = None) -> SampleModifier:
        """
        Build the modifier, failing before any audio is touched.

        Raises:
            ConfigurationError: On missing, unknown or invalid options
        """
        options = options or ModifierOptions()
        unexpected = sorted(set(options.provided()) - set(self.options))
        if unexpected:
            flags = ", ".join("--" + name.replace("_", "-") for name in unexpected)
            raise ConfigurationError(f"Modifier '{self.id}' does not accept {flags}")
        options.require(*self.required)
        modifier = self.builder(fmt, options)
        logger.info(f"Created modifier {modifier.describe()}")
        return modifier


_FACTORIES: Dict[str, ModifierFactory] = {}


def register_modifier(
    modifier_id: str,
    description: str,
    options: Tuple[str, ...] = (),
    required: Optional[Tuple[str, ...]] = None,
    option_help: Optional[Dict[str, str]] = None,
):
    """
    Class decorator registering a modifier under *modifier_id*.

    The decorated class must provide ``from_options(fmt, options)``.
    Options are required unless *required* names a subset.
    """
    def decorator(cls):
        if modifier_id in _FACTORIES:
            raise ValueError(f"Duplicate modifier id '{modifier_id}'")
        _FACTORIES[modifier_id] = ModifierFactory(
            id=modifier_id,
            description=description,
            builder=cls.from_options,
            options=tuple(options),
            required=tuple(options if required is None else required),
            option_help=dict(option_help or {}),
        )
        return cls
    return decorator


def get_factory(modifier_id: str) -> ModifierFactory:
    """Look up a factory by id."""
    factory = _FACTORIES.get(modifier_id)
    if factory is None:
        raise ConfigurationError(
            f"No modifier by the ID '{modifier_id}'. Available: {available_modifiers()}"
        )
    return factory


def available_modifiers() -> List[str]:
    return sorted(_FACTORIES)


def create_modifier(modifier_id: str, fmt: AudioFormat, **options) -> SampleModifier:
    """Convenience wrapper: ``create_modifier("pattern", fmt, bpm=120, pattern="10")``."""
    factory = get_factory(modifier_id)
    try:
        modifier_options = ModifierOptions(**options)
    except TypeError as e:
        raise ConfigurationError(f"Unknown option for '{modifier_id}': {e}") from None
    return factory.create(fmt, modifier_options)


def format_available_for_cli() -> str:
    return "\n".join(
        f"\t{factory_id:<24}{_FACTORIES[factory_id].description}"
        for factory_id in available_modifiers()
    )
