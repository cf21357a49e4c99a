"""
Factory for creating and configuring loggers.
"""

import logging
import sys
from typing import Any, cast

from .config import LogConfig
from .formatters import LogFormatter
from .logger import Logger


class LoggerFactory:
    """Factory for creating and configuring loggers."""

    @staticmethod
    def create_root(config: LogConfig, stream: Any = None) -> Logger:
        """
        Create the root logger ("/") with a console handler.

        Example:
            >>> lg = LoggerFactory.create_root(LogConfig.from_params("debug"))
            >>> lg.info("worker started", extra={"queue": "default"})
            [12:34:56,789] [I] worker started     [queue:default] [1234] [/]
        """
        return LoggerFactory.create("/", config, stream=stream)

    @staticmethod
    def create(
        name: str,
        config: LogConfig,
        extra: dict[str, Any] | None = None,
        stream: Any = None,
    ) -> Logger:
        """
        Create an independent logger with its own console handler.

        Existing loggers with the same name are returned unchanged.
        """
        existing = LoggerFactory._existing(name)
        if existing is not None:
            return existing

        lg = Logger(name, config, extra)
        handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
        if config.level is not False:
            handler.setLevel(config.level)
        handler.setFormatter(LogFormatter(config))
        lg.addHandler(handler)
        lg.propagate = False
        lg.parent = logging.root

        logging.root.manager.loggerDict[name] = lg
        return lg

    @staticmethod
    def derive(parent: Logger, tags: str | list[str]) -> Logger:
        """
        Derive a "view" logger that delegates to the root's handlers.

        Examples:
            >>> LoggerFactory.derive(root, ["multifork", "child"]).name
            '/multifork/child'
        """
        if isinstance(tags, str):
            tags = [tags]

        prefix = parent.name if parent.name.endswith("/") else parent.name + "/"
        name = prefix + "/".join(tags)

        existing = LoggerFactory._existing(name)
        if existing is not None:
            return existing

        root = parent._root_logger if parent._root_logger else parent
        lg = parent.__class__(name, LogConfig(level=parent.get_level()))
        lg._root_logger = root
        lg.parent = parent
        lg.propagate = False

        logging.root.manager.loggerDict[name] = lg
        return lg

    @staticmethod
    def _existing(name: str) -> Logger | None:
        found = logging.root.manager.loggerDict.get(name)
        if isinstance(found, Logger):
            return cast(Logger, found)
        return None
