"""
Budget policy for amortized forks.

Decides whether a reused child may accept another job. A child's budget is
fixed when it hijacks its fork: either a job count ceiling or a wall-clock
deadline (now + seconds_per_fork). Independently, a resident memory ceiling
ends the session as soon as the child grows past it.

The deadline uses wall-clock time (time.time) like the rest of the worker's
timestamps; pass a different clock to change that.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from enum import Enum
from typing import TYPE_CHECKING

from .memory import rss_bytes
from .settings import ForkSettings

if TYPE_CHECKING:
    from .session import ForkSession


class BudgetMode(Enum):
    """How a session's limit is interpreted."""

    TIME = "time"
    COUNT = "count"


class BudgetPolicy:
    """
    Pure predicates over a ForkSession's remaining capacity.

    Args:
        settings: Fork settings providing the budget values
        clock: Wall-clock source in seconds since the epoch
        rss_reader: Returns the current process's resident memory in bytes
    """

    def __init__(
        self,
        settings: ForkSettings,
        clock: Callable[[], float] = time.time,
        rss_reader: Callable[[], int] = rss_bytes,
    ) -> None:
        self._settings = settings
        self._clock = clock
        self._rss_reader = rss_reader

    @property
    def settings(self) -> ForkSettings:
        return self._settings

    @property
    def memory_threshold(self) -> int | None:
        return self._settings.memory_threshold

    def mode(self) -> BudgetMode:
        """Job count takes precedence over time when both are configured."""
        return BudgetMode.COUNT if self._settings.count_mode else BudgetMode.TIME

    def initial_limit(self) -> tuple[BudgetMode, float]:
        """
        Compute the absolute limit for a session hijacking now.

        Returns:
            (mode, limit): a job ceiling in COUNT mode, a deadline timestamp in TIME mode
        """
        jobs = self._settings.jobs_per_fork
        if jobs is not None:
            return BudgetMode.COUNT, jobs
        return BudgetMode.TIME, self._clock() + self._settings.seconds_per_fork

    def remaining(self, session: ForkSession) -> float:
        """
        Remaining jobs (COUNT) or seconds (TIME) before the limit is hit.

        Sessions that have not hijacked have unlimited capacity.
        """
        if session.limit is None:
            return float("inf")
        if session.mode is BudgetMode.COUNT:
            return session.limit - session.jobs_processed
        return session.limit - self._clock()

    def rss(self) -> int:
        return self._rss_reader()

    def over_memory(self) -> bool:
        """True when a memory ceiling is set and resident memory exceeds it."""
        threshold = self._settings.memory_threshold
        return bool(threshold) and self.rss() > threshold  # type: ignore[operator]

    def exhausted(self, session: ForkSession) -> bool:
        """True when the session may not accept another job."""
        return self.remaining(session) <= 0 or self.over_memory()
