"""
Immutable logger configuration.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from .constants import LogConstants
from .exceptions import InvalidLogLevelError


def resolve_level(level: str | int | bool) -> int | bool:
    """
    Resolve a log level from a name, numeric value, or boolean.

    Returns:
        Numeric level, or False to disable logging

    Raises:
        InvalidLogLevelError: If the level name is unknown
    """
    if isinstance(level, bool):
        return logging.INFO if level else False
    if isinstance(level, int):
        return level
    if level.isnumeric():
        return int(level)
    if level.lower() in LogConstants.LEVEL_NAMES:
        return LogConstants.LEVEL_NAMES[level.lower()]
    raise InvalidLogLevelError(level)


@dataclass(frozen=True)
class LogConfig:
    """
    Immutable configuration for root loggers.

    Derived loggers keep their own level but share the root's handlers and
    therefore its display settings.
    """

    level: int | bool = logging.INFO  # False disables logging
    colors: bool = True

    @classmethod
    def from_params(cls, level: str | int | bool, colors: bool = True) -> LogConfig:
        return cls(level=resolve_level(level), colors=colors)

    @classmethod
    def from_config(cls, config: Any, section: str = "logging") -> LogConfig:
        """
        Create LogConfig from a Config/DotDict or plain dictionary.

        Example:
            config = Config("etc/worker.yaml")
            log_config = LogConfig.from_config(config)
        """
        current: Any = config
        for part in section.split("."):
            current = current.get(part) if current is not None else None
        if current is None:
            current = {}
        elif hasattr(current, "dict"):
            current = current.dict()

        return cls.from_params(
            level=current.get("level", "info"),
            colors=current.get("colors", True),
        )
