"""
Logging for multifork.

Extends Python's standard logging with structured extra fields, a fluent
hierarchy of slash-separated loggers ("/multifork/child") that share the
root's handlers, and a formatter that prints the process id on every line
so parent and child output can be told apart.

Log Level Control:
- Use standard levels: debug, info, warning, error, critical
- Disable logging completely: False or "false"
"""

from .config import LogConfig, resolve_level
from .constants import LogConstants
from .exceptions import InvalidLogLevelError, LogError
from .factory import LoggerFactory
from .formatters import LogFormatter
from .logger import Logger


def create_root_lg(level: str | int | bool = "info", colors: bool = True) -> Logger:
    """
    Create (or fetch) the root logger.

    Example:
        >>> lg = create_root_lg("debug")
    """
    return LoggerFactory.create_root(LogConfig.from_params(level, colors=colors))


def derive_lg(lg: Logger | None, tags: str | list[str]) -> Logger:
    """
    Derive a tagged logger from a parent, defaulting to the root logger.

    Components accept an optional logger and call this so they can be
    used without any logging setup.
    """
    if lg is None:
        lg = create_root_lg()
    return LoggerFactory.derive(lg, tags)


__all__ = [
    "Logger",
    "LoggerFactory",
    "LogConfig",
    "LogConstants",
    "LogFormatter",
    "LogError",
    "InvalidLogLevelError",
    "resolve_level",
    "create_root_lg",
    "derive_lg",
]
