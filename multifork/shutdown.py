"""
Signal-driven shutdown for forked workers.

Signal handlers never mutate worker state directly. They record shutdown
transitions on a ShutdownChannel, which the worker drains at well-defined
checkpoints: before each job, and inside a job's cancellation check.

The one exception is a TERM delivered while a job is executing. Blocking job
code can only be interrupted by raising, so the handler raises JobTerminated
into the job (once); the job unwinds and is reported failed. Jobs marked
cooperative are not interrupted: they find the request at their next
checkpoint() call, reaching the channel through current_channel().

Child signal semantics:

    SIGQUIT            finish the current job, then exit (GRACEFUL)
    SIGTERM / SIGINT   abort the current job now (IMMEDIATE); with no job
                       running this is the same as SIGQUIT. Later TERMs
                       are ignored.
"""

from __future__ import annotations

import collections
import signal
from collections.abc import Iterator
from contextlib import contextmanager
from enum import Enum
from types import FrameType
from typing import Any

from .exceptions import JobTerminated
from .log import Logger, derive_lg


class ShutdownIntent(Enum):
    """Shutdown request level, ordered by severity."""

    NONE = 0
    GRACEFUL = 1
    IMMEDIATE = 2


class ShutdownChannel:
    """
    Queue of shutdown transitions consumed cooperatively.

    push() is the only operation signal handlers perform. poll() folds the
    pending transitions into the current intent: GRACEFUL may escalate to
    IMMEDIATE, IMMEDIATE is terminal, and nothing ever downgrades.
    """

    def __init__(self) -> None:
        self._pending: collections.deque[ShutdownIntent] = collections.deque()
        self._intent = ShutdownIntent.NONE
        self._performing = False
        self._cooperative = False
        self._aborted = False
        self._signame = "SIGTERM"

    def push(self, intent: ShutdownIntent) -> None:
        """Record a transition. Safe to call from a signal handler."""
        self._pending.append(intent)

    def poll(self) -> ShutdownIntent:
        """Consume pending transitions and return the current intent."""
        while self._pending:
            intent = self._pending.popleft()
            if intent.value > self._intent.value:
                self._intent = intent
        return self._intent

    @property
    def intent(self) -> ShutdownIntent:
        return self.poll()

    def requested(self) -> bool:
        """True once any shutdown has been requested."""
        return self.poll() is not ShutdownIntent.NONE

    @property
    def performing(self) -> bool:
        """True while a job is executing."""
        return self._performing

    @property
    def cooperative(self) -> bool:
        """True while the executing job polls checkpoint() itself."""
        return self._performing and self._cooperative

    @property
    def aborted(self) -> bool:
        """True once an in-flight job has been aborted."""
        return self._aborted

    @contextmanager
    def job(self, cooperative: bool = False) -> Iterator[None]:
        """
        Mark the enclosed block as an executing job.

        Args:
            cooperative: The job calls checkpoint() and is not interrupted
                by TERM; it unwinds at its next checkpoint instead
        """
        global _active
        self._performing = True
        self._cooperative = cooperative
        _active = self
        try:
            yield
        finally:
            self._performing = False
            self._cooperative = False
            _active = None

    def interrupt(self, signame: str) -> None:
        """
        Request an immediate stop of the executing job.

        Raises JobTerminated into the job unless it is cooperative, in which
        case the job raises it from its next checkpoint().
        """
        self._signame = signame
        self.push(ShutdownIntent.IMMEDIATE)
        if not self._cooperative:
            self.abort(signame)

    def abort(self, signame: str | None = None) -> None:
        """
        Raise JobTerminated into the running job, at most once per process.

        Does nothing when no job is running or a job was already aborted.
        """
        if not self._performing or self._aborted:
            return
        self._aborted = True
        raise JobTerminated(signame or self._signame)

    def checkpoint(self) -> None:
        """
        Cooperative cancellation check for long-running jobs.

        Raises JobTerminated if an immediate shutdown is pending.

        Example:
            channel = current_channel()
            for row in rows:
                channel.checkpoint()
                process(row)
        """
        if self.poll() is ShutdownIntent.IMMEDIATE:
            self.abort()


_active: ShutdownChannel | None = None


def current_channel() -> ShutdownChannel | None:
    """The channel of the job executing in this process, None between jobs."""
    return _active


class ChildSignalHandlers:
    """
    Installs the child's shutdown signal handlers.

    Args:
        channel: Channel receiving the shutdown transitions
        lg: Logger (default: derived from the root logger)
    """

    TERM_SIGNALS = (signal.SIGTERM, signal.SIGINT)

    def __init__(self, channel: ShutdownChannel, lg: Logger | None = None) -> None:
        self._channel = channel
        self._lg = derive_lg(lg, ["multifork", "child", "signals"])
        self._term_received = False
        self._original_handlers: dict[int, Any] = {}

    def install(self) -> None:
        """Register handlers for SIGTERM, SIGINT and SIGQUIT."""
        for signum in self.TERM_SIGNALS:
            self._original_handlers[signum] = signal.signal(signum, self._handle_term)
        self._original_handlers[signal.SIGQUIT] = signal.signal(
            signal.SIGQUIT, self._handle_quit
        )

    def restore(self) -> None:
        """Put back the handlers that were active before install()."""
        for signum, handler in self._original_handlers.items():
            signal.signal(signum, handler)
        self._original_handlers.clear()

    def _handle_term(self, signum: int, frame: FrameType | None) -> None:
        if self._term_received:
            return  # Ignore subsequent term signals
        self._term_received = True

        sig_name = signal.Signals(signum).name
        if self._channel.performing:
            self._lg.info(
                "received TERM during job, aborting",
                extra={"signal": sig_name, "cooperative": self._channel.cooperative},
            )
            self._channel.interrupt(sig_name)
        else:
            self._lg.info("received TERM between jobs, stopping", extra={"signal": sig_name})
            self._channel.push(ShutdownIntent.GRACEFUL)

    def _handle_quit(self, signum: int, frame: FrameType | None) -> None:
        self._lg.info("received QUIT, stopping after current job")
        self._channel.push(ShutdownIntent.GRACEFUL)
