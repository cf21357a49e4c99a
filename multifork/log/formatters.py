"""
Log formatter for the logging system.

Renders records as:

    [12:34:56,789] [I] released fork        [jobs:25] [rss:48MB] [4242] [/multifork/child]

Structured extra fields follow the message, then the process id and the
logger name. The process id column is what tells a parent's lines apart
from its children's when they share a stream.
"""

import logging
import traceback
from typing import Any

from .config import LogConfig
from .constants import LogConstants


def _format_value(value: Any) -> str:
    if isinstance(value, BaseException):
        return value.__class__.__name__
    if isinstance(value, (list, tuple)):
        return ",".join(str(v) for v in value)
    return str(value)


class LogFormatter(logging.Formatter):
    """
    Formatter with structured field rendering and optional ANSI colors.

    An "exception" extra field holding an exception instance has its
    traceback appended below the line.
    """

    def __init__(self, config: LogConfig):
        super().__init__(LogConstants.DEFAULT_FORMAT)
        self._config = config

    def format(self, record: logging.LogRecord) -> str:
        head = super().format(record)
        # super().format() appends exc_info text; keep it for the tail
        head, _, exc_text = head.partition("\n")

        line = head + " " * max(1, LogConstants.DEFAULT_RULE_WIDTH - len(head))
        fields = self._format_fields(record)
        if fields:
            line += fields + " "
        line += f"[{record.process}] [{record.name}]"

        if self._config.colors:
            col = LogConstants.COLORS.get(record.levelno, "")
            line = col + line + LogConstants.RESET

        tail = self._render_exception(record)
        if exc_text:
            line += "\n" + exc_text
        elif tail:
            line += "\n" + tail
        return line

    def _format_fields(self, record: logging.LogRecord) -> str:
        extra = getattr(record, "__infra__extra", None)
        if not extra:
            return ""
        return " ".join(
            f"[{key}:{_format_value(extra[key])}]" for key in sorted(extra.keys())
        )

    @staticmethod
    def _render_exception(record: logging.LogRecord) -> str:
        extra = getattr(record, "__infra__extra", None) or {}
        e = extra.get("exception")
        if not isinstance(e, BaseException) or e.__traceback__ is None:
            return ""
        return "".join(traceback.format_exception(type(e), e, e.__traceback__)).rstrip()
