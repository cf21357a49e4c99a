"""
Logger class for the logging system.

Extends the standard logger with structured extra fields that are merged
into every record and rendered by LogFormatter as [key:value] pairs.
"""

import logging
import sys
from typing import Any

from .config import LogConfig


class Logger(logging.Logger):
    """
    Enhanced logger with pre-populated extra fields and handler sharing.

    Derived "view" loggers (see LoggerFactory.derive) have no handlers of
    their own; they delegate to the root logger's handlers.
    """

    def __init__(
        self,
        name: str,
        config: LogConfig | None = None,
        extra: dict[str, Any] | None = None,
    ):
        if config is None:
            config = LogConfig()

        if config.level is False:
            super().__init__(name, logging.CRITICAL + 1)
            self._logging_disabled = True
        else:
            super().__init__(name, config.level)
            self._logging_disabled = False

        self._config = config
        self._extra = extra or {}
        self._root_logger: Logger | None = None

    @property
    def disabled(self) -> bool:  # type: ignore[override]
        return self._logging_disabled

    @disabled.setter
    def disabled(self, value: bool) -> None:
        self._logging_disabled = value

    def get_level(self) -> int | bool:
        return self._config.level

    def makeRecord(  # type: ignore[override]
        self,
        name: str,
        level: int,
        fn: str,
        lno: int,
        msg: str,
        args: tuple,
        exc_info: Any | None,
        func: str | None = None,
        extra: dict[str, Any] | None = None,
        sinfo: str | None = None,
    ) -> logging.LogRecord:
        """Create log record, merging pre-populated and per-call extra fields."""
        merged = dict(self._extra)
        if extra:
            merged.update(extra)
        # Keys that collide with LogRecord attributes are only kept in __infra__extra
        safe = {k: v for k, v in merged.items() if k not in _RECORD_ATTRS}
        record = super().makeRecord(
            name, level, fn, lno, msg, args, exc_info, func=func, extra=safe, sinfo=sinfo
        )
        setattr(record, "__infra__extra", merged)
        return record

    def _log(self, level: int, msg: object, args: Any, **kwargs: Any) -> None:  # type: ignore[override]
        if self._logging_disabled:
            return
        try:
            super()._log(level, msg, args, **kwargs)
        except (TypeError, ValueError) as e:
            # Format string errors must not take the worker down
            sys.stderr.write(
                f"LOG_FORMAT_ERROR [{self.name}]: {e.__class__.__name__}: {e} "
                f"| msg={msg!r} args={args!r}\n"
            )

    def callHandlers(self, record: logging.LogRecord) -> None:
        """Delegate to the root logger's handlers for derived loggers."""
        if self._root_logger is not None:
            for handler in self._root_logger.handlers:
                if record.levelno >= handler.level:
                    handler.handle(record)
        else:
            super().callHandlers(record)


_RECORD_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__.keys()
) | {"message", "asctime"}
