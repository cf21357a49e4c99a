"""
Fork amortization settings.

ForkSettings is the validated, immutable view of the configuration surface:

    fork:
      seconds_per_fork: 60       # or "2m"; minutes_per_fork is also accepted
      jobs_per_fork: 100         # overrides the time budget when set
      memory_threshold: 512MB    # resident memory ceiling; unset disables
      amortize: true             # false restores one job per fork
      reserve_timeout: 5s        # how long a child blocks waiting for a job
      run_at_exit_hooks: false   # released children exit via sys.exit

Invalid values never raise: they are logged and replaced by the default (or
the feature is disabled), so a bad setting cannot stop a worker.
"""

from __future__ import annotations

import math
import os
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from .delta import InvalidDurationError, delta_to_secs
from .log import Logger, derive_lg
from .size import InvalidSizeError, size_to_bytes

DEFAULT_SECONDS_PER_FORK = 60.0
DEFAULT_RESERVE_TIMEOUT = 5.0

# Environment variable names read by from_env()
ENV_JOBS_PER_FORK = "JOBS_PER_FORK"
ENV_MINUTES_PER_FORK = "MINUTES_PER_FORK"
ENV_SECONDS_PER_FORK = "SECONDS_PER_FORK"
ENV_MEMORY_THRESHOLD = "MEMORY_THRESHOLD"
# Resque-style ceiling, a bare number is in kilobytes
ENV_RESQUE_MEM_THRESHOLD = "RESQUE_MEM_THRESHOLD"
ENV_DISABLE = "DISABLE_MULTI_JOBS_PER_FORK"


@dataclass(frozen=True)
class ForkSettings:
    """
    Budget and behaviour settings for an amortizing worker.

    Attributes:
        seconds_per_fork: Time budget per child, used when jobs_per_fork is None
        jobs_per_fork: Job-count budget per child; takes precedence over time
        memory_threshold: Resident memory ceiling in bytes, None to disable
        amortize: False falls back to one job per fork
        reserve_timeout: Seconds a child blocks on the queue per poll
        run_at_exit_hooks: Exit released children with sys.exit instead of os._exit
    """

    seconds_per_fork: float = DEFAULT_SECONDS_PER_FORK
    jobs_per_fork: int | None = None
    memory_threshold: int | None = None
    amortize: bool = True
    reserve_timeout: float = DEFAULT_RESERVE_TIMEOUT
    run_at_exit_hooks: bool = False

    @property
    def count_mode(self) -> bool:
        """True when the budget is a job count rather than a duration."""
        return self.jobs_per_fork is not None

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any], lg: Logger | None = None) -> ForkSettings:
        """
        Build settings from a plain mapping, validating every value.

        Example:
            >>> ForkSettings.from_mapping({"jobs_per_fork": 10}).jobs_per_fork
            10
        """
        lg = derive_lg(lg, ["multifork", "settings"])

        seconds = _parse_seconds(values.get("seconds_per_fork"), "seconds_per_fork", lg)
        if seconds is None:
            minutes = _parse_number(values.get("minutes_per_fork"), "minutes_per_fork", lg)
            seconds = minutes * 60 if minutes is not None else DEFAULT_SECONDS_PER_FORK

        timeout = _parse_seconds(values.get("reserve_timeout"), "reserve_timeout", lg)

        return cls(
            seconds_per_fork=seconds,
            jobs_per_fork=_parse_jobs(values.get("jobs_per_fork"), lg),
            memory_threshold=_parse_memory(values.get("memory_threshold"), lg),
            amortize=_parse_bool(values.get("amortize"), True),
            reserve_timeout=timeout if timeout is not None else DEFAULT_RESERVE_TIMEOUT,
            run_at_exit_hooks=_parse_bool(values.get("run_at_exit_hooks"), False),
        )

    @classmethod
    def from_config(cls, config: Any, section: str = "fork", lg: Logger | None = None) -> ForkSettings:
        """
        Build settings from a Config section.

        Example:
            config = Config("etc/worker.yaml")
            settings = ForkSettings.from_config(config)
        """
        current = config.get(section) if config is not None else None
        if current is None:
            current = {}
        elif hasattr(current, "dict"):
            current = current.dict()
        return cls.from_mapping(current, lg=lg)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None, lg: Logger | None = None) -> ForkSettings:
        """
        Build settings from the classic environment variables.

        JOBS_PER_FORK, MINUTES_PER_FORK, SECONDS_PER_FORK, MEMORY_THRESHOLD,
        and DISABLE_MULTI_JOBS_PER_FORK (set to any value to disable).
        RESQUE_MEM_THRESHOLD is used when MEMORY_THRESHOLD is unset.
        """
        env = os.environ if environ is None else environ
        memory = env.get(ENV_MEMORY_THRESHOLD)
        if memory is None and env.get(ENV_RESQUE_MEM_THRESHOLD):
            memory = env[ENV_RESQUE_MEM_THRESHOLD].strip()
            if memory.isdecimal():
                memory += "KB"
        values: dict[str, Any] = {
            "jobs_per_fork": env.get(ENV_JOBS_PER_FORK),
            "minutes_per_fork": env.get(ENV_MINUTES_PER_FORK),
            "seconds_per_fork": env.get(ENV_SECONDS_PER_FORK),
            "memory_threshold": memory,
            "amortize": ENV_DISABLE not in env,
        }
        return cls.from_mapping(values, lg=lg)


def _parse_bool(value: Any, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def _parse_number(value: Any, name: str, lg: Logger) -> float | None:
    if value is None or value == "":
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        lg.warning("ignoring invalid setting", extra={"setting": name, "value": value})
        return None
    if not math.isfinite(number):
        lg.warning("ignoring invalid setting", extra={"setting": name, "value": value})
        return None
    if number < 0:
        lg.warning("ignoring negative setting", extra={"setting": name, "value": value})
        return None
    return number


def _parse_seconds(value: Any, name: str, lg: Logger) -> float | None:
    if isinstance(value, str) and value.strip():
        try:
            return delta_to_secs(value)
        except InvalidDurationError:
            pass
    return _parse_number(value, name, lg)


def _parse_jobs(value: Any, lg: Logger) -> int | None:
    number = _parse_number(value, "jobs_per_fork", lg)
    if number is None:
        return None
    if number < 1 or number != int(number):
        lg.warning(
            "jobs_per_fork must be a positive integer, using time budget",
            extra={"value": value},
        )
        return None
    return int(number)


def _parse_memory(value: Any, lg: Logger) -> int | None:
    """Resolve the memory ceiling; unset, zero, or invalid disables it."""
    if value is None or value == "" or value is False:
        return None
    if isinstance(value, str) and not value.strip().lstrip("-").isdecimal():
        try:
            threshold = size_to_bytes(value)
        except InvalidSizeError:
            lg.warning("ignoring invalid memory_threshold", extra={"value": value})
            return None
    else:
        number = _parse_number(value, "memory_threshold", lg)
        if number is None:
            return None
        threshold = int(number)
    return threshold if threshold > 0 else None
