"""
Test doubles for the supervision layer.

Provides controllable clocks and memory readers, jobs that record or fail,
and hook recorders, so session and worker behaviour can be tested without
forking.
"""

from collections.abc import Callable
from typing import Any

from multifork import HookEvent, LifecycleHooks, ShutdownChannel


class FakeClock:
    """Manually advanced wall clock."""

    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, secs: float) -> None:
        self.now += secs


class FakeRss:
    """Memory reader returning a settable value."""

    def __init__(self, value: int = 0):
        self.value = value

    def __call__(self) -> int:
        return self.value


class RecordingJob:
    """Job that appends its name to a shared log when performed."""

    def __init__(
        self,
        name: str,
        log: list[str],
        action: Callable[[], Any] | None = None,
    ):
        self.name = name
        self.log = log
        self.action = action

    def perform(self) -> Any:
        self.log.append(self.name)
        if self.action is not None:
            return self.action()
        return None

    def __repr__(self) -> str:
        return f"RecordingJob({self.name!r})"


class FailingJob:
    """Job that raises the given exception."""

    def __init__(self, exc: BaseException):
        self.exc = exc

    def perform(self) -> Any:
        raise self.exc


class HookRecorder:
    """
    Registers one recording callback per lifecycle event.

    Attributes:
        calls: (event name, args) tuples in call order
    """

    def __init__(self, hooks: LifecycleHooks):
        self.calls: list[tuple[str, tuple]] = []
        self.callbacks: dict[HookEvent, Callable[..., None]] = {}
        for event in HookEvent:
            self.callbacks[event] = self._make(event)
            hooks.register(event, self.callbacks[event])

    def _make(self, event: HookEvent) -> Callable[..., None]:
        def callback(*args: Any) -> None:
            self.calls.append((event.value, args))

        return callback

    def count(self, event: HookEvent) -> int:
        return sum(1 for name, _ in self.calls if name == event.value)

    def args(self, event: HookEvent) -> list[tuple]:
        return [args for name, args in self.calls if name == event.value]


def signal_during_job(channel: ShutdownChannel, handler: Callable[..., None], signum: int):
    """
    Build a job action that delivers a signal to a handler mid-job.

    The handler is called directly, the way the interpreter would call it
    between bytecodes of the running job.
    """

    def action() -> None:
        assert channel.performing
        handler(signum, None)

    return action
