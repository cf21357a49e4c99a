"""
Child-side work loop.

ChildWorker is what runs inside a forked child: it reserves jobs from the
queue and feeds them through a ChildSessionController until the controller
says to stop. Classic children stop after one job; amortizing children keep
going until their budget runs out or they are told to shut down.
"""

from __future__ import annotations

from .budget import BudgetPolicy
from .hooks import LifecycleHooks
from .log import Logger, derive_lg
from .queues import JobQueue
from .session import ChildSessionController
from .settings import ForkSettings
from .shutdown import ShutdownChannel


class ChildWorker:
    """
    Reserve-and-perform loop for one forked child.

    Args:
        queue: Queue to reserve jobs from
        hooks: Lifecycle hooks shared with the coordinator
        settings: Fork settings
        channel: Shutdown channel (default: a fresh one)
        policy: Budget policy (default: built from settings)
        lg: Logger (default: derived from the root logger)
    """

    def __init__(
        self,
        queue: JobQueue,
        hooks: LifecycleHooks,
        settings: ForkSettings,
        channel: ShutdownChannel | None = None,
        policy: BudgetPolicy | None = None,
        lg: Logger | None = None,
    ) -> None:
        self._queue = queue
        self._settings = settings
        self._channel = channel or ShutdownChannel()
        self._lg = derive_lg(lg, ["multifork", "child"])
        self.controller = ChildSessionController(
            queue,
            hooks,
            policy or BudgetPolicy(settings),
            self._channel,
            amortize=settings.amortize,
            lg=lg,
        )

    @property
    def channel(self) -> ShutdownChannel:
        return self._channel

    def run(self) -> int:
        """
        Process jobs until the session ends.

        Returns:
            Exit code for the child process (0 on a clean stop)
        """
        performed = 0
        try:
            while not self.controller.should_stop():
                job = self._queue.reserve(self._settings.reserve_timeout)
                if job is None:
                    continue
                if self.controller.perform(job):
                    performed += 1
        finally:
            # Covers exits from an exception escaping the loop
            self.controller.release()

        self._lg.debug("child finished", extra={"performed": performed})
        return 0
