"""Functional options for catalog configuration.

A configuration is a frozen pydantic-settings model whose defaults come from
the environment. Options are pure functions that take a configuration and
return a new one; ``init_config`` applies them in order.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TypeVar

from pydantic import BaseModel, ValidationError

from daggers.errors import ConfigurationError

ConfigT = TypeVar("ConfigT", bound=BaseModel)

Option = Callable[[ConfigT], ConfigT]


def init_config(config_cls: type[ConfigT], *opts: Option[ConfigT]) -> ConfigT:
    """Build a configuration from its defaults and the given options.

    Args:
        config_cls: Configuration model class.
        *opts: Options applied left to right.

    Returns:
        The resulting configuration.

    Raises:
        ConfigurationError: If the environment holds invalid values.
    """
    try:
        cfg = config_cls()
    except ValidationError as e:
        raise ConfigurationError(
            f"Invalid {config_cls.__name__} settings: {e}"
        ) from e

    for opt in opts:
        cfg = opt(cfg)
    return cfg


def set_field(name: str, value: object) -> Callable[[ConfigT], ConfigT]:
    """Return an option that sets a single field on a configuration."""

    def _apply(cfg: ConfigT) -> ConfigT:
        return cfg.model_copy(update={name: value})

    return _apply


__all__ = ["Option", "init_config", "set_field"]
