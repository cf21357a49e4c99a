"""
Integration tests delivering real signals to an in-process child worker.

The worker runs in the test process with the child signal handlers
installed; jobs signal their own process with os.kill, so the interpreter
runs the handlers exactly as it would in a forked child.
"""

import os
import signal
import threading
import time
from collections.abc import Generator

import pytest

from multifork import (
    CallableJob,
    ChildSignalHandlers,
    ChildWorker,
    ForkSettings,
    HookEvent,
    MemoryQueue,
    ShutdownChannel,
    current_channel,
)
from tests.helpers.fakes import RecordingJob


@pytest.fixture
def child_channel(lg) -> Generator[ShutdownChannel, None, None]:
    """A shutdown channel fed by the real child signal handlers."""
    channel = ShutdownChannel()
    handlers = ChildSignalHandlers(channel, lg=lg)
    handlers.install()
    try:
        yield channel
    finally:
        handlers.restore()


def _send(signum: int):
    def action() -> None:
        os.kill(os.getpid(), signum)
        # Blocks until the handler runs
        time.sleep(2)

    return action


@pytest.mark.integration
@pytest.mark.posix
class TestChildSignals:
    """Test signal delivery against a running ChildWorker."""

    def test_term_aborts_running_job(self, child_channel, hooks, recorder, lg):
        log, finished = [], []

        def slow() -> None:
            _send(signal.SIGTERM)()
            finished.append(True)

        queue = MemoryQueue(
            [RecordingJob("a", log), RecordingJob("b", log, action=slow), RecordingJob("c", log)]
        )
        worker = ChildWorker(
            queue, hooks, ForkSettings(jobs_per_fork=10, reserve_timeout=0.01), channel=child_channel, lg=lg
        )

        started = time.monotonic()
        assert worker.run() == 0

        assert time.monotonic() - started < 1.5
        assert log == ["a", "b"]
        assert finished == []
        assert [f.message for f in queue.failures] == ["job terminated (signal=SIGTERM)"]
        assert recorder.args(HookEvent.BEFORE_CHILD_EXIT) == [(2,)]
        assert len(queue) == 1

    def test_quit_lets_job_finish(self, child_channel, hooks, recorder, lg):
        log, finished = [], []

        def quit_then_finish() -> None:
            os.kill(os.getpid(), signal.SIGQUIT)
            time.sleep(0.05)
            finished.append(True)

        queue = MemoryQueue(
            [RecordingJob("a", log), RecordingJob("b", log, action=quit_then_finish), RecordingJob("c", log)]
        )
        worker = ChildWorker(
            queue, hooks, ForkSettings(jobs_per_fork=10, reserve_timeout=0.01), channel=child_channel, lg=lg
        )

        assert worker.run() == 0
        assert log == ["a", "b"]
        assert finished == [True]
        assert queue.failures == []
        assert recorder.args(HookEvent.BEFORE_CHILD_EXIT) == [(2,)]

    def test_term_while_waiting_is_graceful(self, child_channel, hooks, recorder, lg):
        queue = MemoryQueue([RecordingJob("a", [])])
        worker = ChildWorker(
            queue, hooks, ForkSettings(jobs_per_fork=10, reserve_timeout=0.05), channel=child_channel, lg=lg
        )
        # Delivered while the worker blocks on the empty queue
        threading.Timer(
            0.1, signal.pthread_kill, args=(threading.main_thread().ident, signal.SIGTERM)
        ).start()

        assert worker.run() == 0
        assert queue.failures == []
        assert recorder.args(HookEvent.BEFORE_CHILD_EXIT) == [(1,)]
        assert not child_channel.aborted

    def test_term_stops_cooperative_job_at_checkpoint(self, child_channel, hooks, recorder, lg):
        steps = []

        def batches() -> None:
            active = current_channel()
            for i in range(50):
                active.checkpoint()
                steps.append(i)
                if i == 2:
                    os.kill(os.getpid(), signal.SIGTERM)
                time.sleep(0.01)

        queue = MemoryQueue([RecordingJob("a", []), CallableJob(batches, cooperative=True)])
        worker = ChildWorker(
            queue, hooks, ForkSettings(jobs_per_fork=10, reserve_timeout=0.01), channel=child_channel, lg=lg
        )

        assert worker.run() == 0
        assert steps == [0, 1, 2]
        assert [f.message for f in queue.failures] == ["job terminated (signal=SIGTERM)"]
        assert recorder.args(HookEvent.BEFORE_CHILD_EXIT) == [(2,)]
