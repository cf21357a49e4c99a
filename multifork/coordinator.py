"""
Parent-side fork coordinator.

The coordinator never executes jobs itself. On each cycle it forks a child
if none is alive, then blocks until that child exits and clears its handle
so the next cycle forks again. The child runs a ChildWorker and exits with
the worker's exit code.

Parent signal semantics:

    SIGQUIT            stop after the current child exits (forwarded as QUIT)
    SIGTERM / SIGINT   stop now (forwarded to the child as TERM)
    SIGUSR2            pause: stop the child gracefully and fork no more
    SIGCONT            resume forking
"""

from __future__ import annotations

import logging
import os
import signal
import sys
import time
from collections.abc import Callable
from types import FrameType
from typing import Any

from .exceptions import ForkError
from .hooks import HookEvent, LifecycleHooks
from .log import Logger, derive_lg
from .queues import JobQueue
from .settings import ForkSettings
from .shutdown import ChildSignalHandlers, ShutdownChannel, ShutdownIntent
from .worker import ChildWorker

DEFAULT_POLL_INTERVAL = 5.0

# Exit code for a child whose worker raised unexpectedly
EXIT_FAILURE = 1


class ForkCoordinator:
    """
    Supervises a sequence of forked children.

    Args:
        queue: Queue shared with the children (created before forking)
        hooks: Lifecycle hooks (default: empty registry)
        settings: Fork settings (default: ForkSettings.from_env())
        lg: Logger (default: derived from the root logger)
        fork: Fork function, os.fork unless testing
        poll_interval: Seconds to sleep while paused or after a failed fork

    Example:
        queue = ProcessQueue()
        coordinator = ForkCoordinator(queue, hooks, ForkSettings(jobs_per_fork=100))
        coordinator.work()
    """

    def __init__(
        self,
        queue: JobQueue,
        hooks: LifecycleHooks | None = None,
        settings: ForkSettings | None = None,
        lg: Logger | None = None,
        fork: Callable[[], int] = os.fork,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ) -> None:
        self._lg = derive_lg(lg, ["multifork", "parent"])
        self._child_lg = lg
        self._queue = queue
        self._hooks = hooks or LifecycleHooks(lg=lg)
        self._settings = settings or ForkSettings.from_env(lg=lg)
        self._fork = fork
        self._poll_interval = poll_interval
        self._channel = ShutdownChannel()
        self._child: int | None = None
        self._paused = False
        self._pid = os.getpid()
        self._forks_completed = 0
        self._original_handlers: dict[int, Any] = {}

    @property
    def child(self) -> int | None:
        """Process id of the active child, None when no child is alive."""
        return self._child

    @property
    def hooks(self) -> LifecycleHooks:
        return self._hooks

    @property
    def settings(self) -> ForkSettings:
        return self._settings

    @property
    def channel(self) -> ShutdownChannel:
        return self._channel

    @property
    def paused(self) -> bool:
        return self._paused

    @property
    def forks_completed(self) -> int:
        """Number of children observed to have exited."""
        return self._forks_completed

    def is_parent_process(self) -> bool:
        """True in the process that created the coordinator."""
        return os.getpid() == self._pid

    def work(self, max_forks: int | None = None) -> None:
        """
        Run the supervision loop until shutdown is requested.

        Args:
            max_forks: Stop after this many children have exited (None: no limit)
        """
        self._pid = os.getpid()
        self._install_signal_handlers()
        self._lg.info("starting", extra={"amortize": self._settings.amortize})
        try:
            while not self._channel.requested():
                if max_forks is not None and self._forks_completed >= max_forks:
                    break
                if self._paused:
                    time.sleep(self._poll_interval)
                    continue
                try:
                    self.dispatch()
                except ForkError as e:
                    self._lg.error("fork failed", extra={"exception": e})
                    time.sleep(self._poll_interval)
                    continue
                self.wait_for_child()
        finally:
            if self.is_parent_process():
                self._stop()

    def _stop(self) -> None:
        if self._child is not None:
            immediate = self._channel.poll() is ShutdownIntent.IMMEDIATE
            self.shutdown_child(signal.SIGTERM if immediate else signal.SIGQUIT)
            self.wait_for_child()
        self._restore_signal_handlers()
        self._lg.info("stopped", extra={"forks": self._forks_completed})

    def dispatch(self) -> int:
        """
        Fork a new child.

        Runs the before-fork hooks in the parent. In the child this call
        does not return: the child runs its worker and exits.

        Returns:
            The child's process id

        Raises:
            ForkError: If the fork fails
        """
        self._hooks.trigger(HookEvent.BEFORE_FORK)
        try:
            pid = self._fork()
        except OSError as e:
            raise ForkError("cannot fork child", errno=e.errno) from e

        if pid == 0:
            code = EXIT_FAILURE
            try:
                code = self._become_child()
            finally:
                self._exit(code)

        self._child = pid
        self._lg.debug("forked child", extra={"child": pid})
        # A stop or pause requested while forking found no child to signal
        intent = self._channel.poll()
        if intent is ShutdownIntent.IMMEDIATE:
            self.shutdown_child(signal.SIGTERM)
        elif intent is ShutdownIntent.GRACEFUL or self._paused:
            self.shutdown_child(signal.SIGQUIT)
        return pid

    def _become_child(self) -> int:
        self._restore_signal_handlers()
        for signum in (signal.SIGUSR2, signal.SIGCONT):
            signal.signal(signum, signal.SIG_DFL)

        channel = ShutdownChannel()
        handlers = ChildSignalHandlers(channel, lg=self._child_lg)
        handlers.install()
        self._hooks.trigger(HookEvent.AFTER_FORK)

        worker = ChildWorker(
            self._queue, self._hooks, self._settings, channel=channel, lg=self._child_lg
        )
        try:
            return worker.run()
        except Exception as e:
            self._lg.error("child failed", extra={"exception": e})
            return EXIT_FAILURE
        except BaseException as e:
            self._lg.error("child interrupted", extra={"exception": type(e).__name__})
            return EXIT_FAILURE

    def _exit(self, code: int) -> None:
        """Terminate the child, running exit hooks only when configured to."""
        if self._settings.run_at_exit_hooks:
            sys.exit(code)
        logging.shutdown()
        sys.stdout.flush()
        sys.stderr.flush()
        os._exit(code)

    def wait_for_child(self) -> int | None:
        """
        Block until the active child exits, then clear the handle.

        Returns:
            The child's exit code (negative signal number if it was killed),
            or None when there was no child to wait for
        """
        if self._child is None:
            return None

        pid = self._child
        try:
            _, status = os.waitpid(pid, 0)
        except ChildProcessError:
            self._lg.debug("child already reaped", extra={"child": pid})
            self._child = None
            return None

        self._child = None
        self._forks_completed += 1
        code = os.waitstatus_to_exitcode(status)
        if code < 0:
            self._lg.warning(
                "child killed by signal",
                extra={"child": pid, "signal": signal.Signals(-code).name},
            )
        elif code != 0:
            self._lg.warning("child exited with error", extra={"child": pid, "code": code})
        else:
            self._lg.debug("child exited", extra={"child": pid})
        return code

    def shutdown_child(self, sig: int = signal.SIGQUIT) -> bool:
        """
        Ask the active child to stop.

        A child that has already exited is not an error.

        Returns:
            True if the signal was delivered
        """
        if self._child is None:
            return False
        try:
            os.kill(self._child, sig)
        except ProcessLookupError:
            self._lg.debug("child already gone", extra={"child": self._child})
            return False
        self._lg.debug(
            "signalled child", extra={"child": self._child, "signal": signal.Signals(sig).name}
        )
        return True

    def pause(self) -> None:
        """Stop forking new children and let the active one finish."""
        if self._paused:
            return
        self._paused = True
        self._lg.info("pausing")
        self.shutdown_child(signal.SIGQUIT)

    def resume(self) -> None:
        """Resume forking after pause()."""
        if not self._paused:
            return
        self._paused = False
        self._lg.info("resuming")

    def _install_signal_handlers(self) -> None:
        handlers = {
            signal.SIGQUIT: self._handle_quit,
            signal.SIGTERM: self._handle_term,
            signal.SIGINT: self._handle_term,
            signal.SIGUSR2: self._handle_pause,
            signal.SIGCONT: self._handle_resume,
        }
        for signum, handler in handlers.items():
            self._original_handlers[signum] = signal.signal(signum, handler)

    def _restore_signal_handlers(self) -> None:
        for signum, handler in self._original_handlers.items():
            signal.signal(signum, handler)
        self._original_handlers.clear()

    def _handle_quit(self, signum: int, frame: FrameType | None) -> None:
        self._lg.info("received QUIT, stopping after current child")
        self._channel.push(ShutdownIntent.GRACEFUL)
        self.shutdown_child(signal.SIGQUIT)

    def _handle_term(self, signum: int, frame: FrameType | None) -> None:
        self._lg.info("received TERM, stopping", extra={"signal": signal.Signals(signum).name})
        self._channel.push(ShutdownIntent.IMMEDIATE)
        self.shutdown_child(signal.SIGTERM)

    def _handle_pause(self, signum: int, frame: FrameType | None) -> None:
        self.pause()

    def _handle_resume(self, signum: int, frame: FrameType | None) -> None:
        self.resume()
