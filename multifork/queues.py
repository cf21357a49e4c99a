"""
Job queue interfaces and reference queues.

The supervision layer consumes a queue through two operations: reserve()
the next job (blocking up to a timeout) and fail() a job that errored or
could not be started. Production queues live elsewhere; the two queues here
serve local runs and tests:

- MemoryQueue: in-process, for a worker that never forks or for unit tests
- ProcessQueue: pipe-based, created before fork so parent and children
  share it; failures travel back to the parent
"""

from __future__ import annotations

import collections
import multiprocessing
import threading
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, NamedTuple, Protocol, runtime_checkable


@runtime_checkable
class Job(Protocol):
    """A unit of work. Raising from perform() marks the job failed."""

    def perform(self) -> Any: ...


@runtime_checkable
class JobQueue(Protocol):
    """The queue operations the worker relies on."""

    def reserve(self, timeout: float) -> Job | None:
        """Return the next job, or None if none arrived within timeout seconds."""
        ...

    def fail(self, job: Job, exc: BaseException) -> None:
        """Record a terminal failure for job."""
        ...


@dataclass
class CallableJob:
    """
    Job wrapping a plain callable.

    The callable must be importable (module level) to travel through a
    ProcessQueue. Set cooperative when it polls current_channel().checkpoint()
    and should not be interrupted by TERM.
    """

    func: Callable[..., Any]
    args: tuple = ()
    kwargs: dict[str, Any] = field(default_factory=dict)
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    cooperative: bool = False

    def perform(self) -> Any:
        return self.func(*self.args, **self.kwargs)


class Failure(NamedTuple):
    """A failure report as stored by the reference queues."""

    job: Any
    error_type: str
    message: str

    @classmethod
    def from_exception(cls, job: Any, exc: BaseException) -> Failure:
        return cls(job, exc.__class__.__name__, str(exc))


class MemoryQueue:
    """In-process FIFO queue."""

    def __init__(self, jobs: list[Job] | None = None) -> None:
        self._jobs: collections.deque[Job] = collections.deque(jobs or [])
        self._cond = threading.Condition()
        self.failures: list[Failure] = []

    def push(self, job: Job) -> None:
        with self._cond:
            self._jobs.append(job)
            self._cond.notify()

    def reserve(self, timeout: float) -> Job | None:
        with self._cond:
            if not self._jobs:
                self._cond.wait(timeout)
            return self._jobs.popleft() if self._jobs else None

    def fail(self, job: Job, exc: BaseException) -> None:
        self.failures.append(Failure.from_exception(job, exc))

    def __len__(self) -> int:
        return len(self._jobs)


class ProcessQueue:
    """
    Queue shared between a parent and its forked children.

    Built on multiprocessing pipes without feeder threads, so a child can
    exit with os._exit right after fail() without losing the report.
    """

    def __init__(self) -> None:
        ctx = multiprocessing.get_context("fork")
        self._reader, self._writer = ctx.Pipe(duplex=False)
        self._rlock = ctx.Lock()
        self._wlock = ctx.Lock()
        self._failures = ctx.SimpleQueue()

    def push(self, job: Job) -> None:
        with self._wlock:
            self._writer.send(job)

    def reserve(self, timeout: float) -> Job | None:
        if not self._rlock.acquire(timeout=timeout):
            return None
        try:
            if not self._reader.poll(timeout):
                return None
            return self._reader.recv()
        finally:
            self._rlock.release()

    def fail(self, job: Job, exc: BaseException) -> None:
        self._failures.put(Failure.from_exception(job, exc))

    def failures(self) -> list[Failure]:
        """Drain the failure reports received so far."""
        drained = []
        while not self._failures.empty():
            drained.append(self._failures.get())
        return drained
