"""
Child session controller.

A freshly forked child starts IDLE and behaves like a classic
one-job-per-fork worker. Once its first job completes it hijacks the fork:
the per-fork hooks are suppressed, a budget is fixed, and the child keeps
pulling jobs. When the budget runs out, or shutdown is requested, the child
releases the fork: before_child_exit runs, the hooks are restored, and the
child stops.

    IDLE --first job done--> HIJACKED --budget/shutdown--> RELEASED

The controller wraps the queue's dispatch-one-job operation:

    check shutdown -> dispatch -> update session -> (next cycle) check budget
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .budget import BudgetMode, BudgetPolicy
from .delta import delta_str
from .exceptions import JobTerminated, WorkerTerminated
from .hooks import HookEvent, LifecycleHooks, SuppressedHooks
from .log import Logger, derive_lg
from .queues import Job, JobQueue
from .shutdown import ShutdownChannel, ShutdownIntent
from .size import size_str


class ChildState(Enum):
    """Lifecycle of one forked child."""

    IDLE = "idle"
    HIJACKED = "hijacked"
    RELEASED = "released"


@dataclass
class ForkSession:
    """
    Per-fork bookkeeping, owned by the child.

    All fields are unset until the fork is hijacked and reset on release.
    """

    jobs_processed: int | None = None
    limit: float | None = None
    mode: BudgetMode | None = None
    suppressed_hooks: SuppressedHooks | None = None

    @property
    def hijacked(self) -> bool:
        return self.limit is not None


class ChildSessionController:
    """
    State machine for a child that may process many jobs per fork.

    Args:
        queue: Queue that receives failure reports
        hooks: Lifecycle hooks shared with the coordinator
        policy: Budget policy consulted between jobs
        channel: Shutdown channel fed by the child's signal handlers
        amortize: False keeps classic one-job-per-fork behaviour
        lg: Logger (default: derived from the root logger)
    """

    def __init__(
        self,
        queue: JobQueue,
        hooks: LifecycleHooks,
        policy: BudgetPolicy,
        channel: ShutdownChannel,
        amortize: bool = True,
        lg: Logger | None = None,
    ) -> None:
        self._queue = queue
        self._hooks = hooks
        self._policy = policy
        self._channel = channel
        self._amortize = amortize
        self._lg = derive_lg(lg, ["multifork", "child"])
        self._state = ChildState.IDLE
        self._session = ForkSession()
        self._finished = False

    @property
    def state(self) -> ChildState:
        return self._state

    @property
    def session(self) -> ForkSession:
        return self._session

    @property
    def jobs_processed(self) -> int | None:
        return self._session.jobs_processed

    @property
    def hijacked(self) -> bool:
        return self._state is ChildState.HIJACKED

    def should_stop(self) -> bool:
        """
        Checkpoint before reserving the next job.

        Releases a hijacked fork whose budget is exhausted or whose process
        was asked to shut down.

        Returns:
            True when the child must not take another job
        """
        if self._state is ChildState.HIJACKED:
            if self._channel.requested() or self._policy.exhausted(self._session):
                self.release()

        if self._state is ChildState.RELEASED or self._finished:
            return True
        return self._channel.requested()

    def perform(self, job: Job) -> bool:
        """
        Dispatch one job.

        A job handed over after shutdown was requested is reported as
        failed ("shutdown before job start") and not executed.

        Returns:
            True if the job was executed (successfully or not)
        """
        if self._state is ChildState.RELEASED or self._channel.requested():
            self._lg.debug("failing job dequeued during shutdown")
            self._queue.fail(job, WorkerTerminated("shutdown before job start"))
            return False

        reused = self._state is ChildState.HIJACKED
        try:
            self._execute(job)
        finally:
            if reused:
                self._session.jobs_processed += 1  # type: ignore[operator]

        if self._state is ChildState.IDLE:
            if not self._amortize:
                self._finished = True
            elif not self._channel.requested():
                self._hijack()
        return True

    def _execute(self, job: Job) -> None:
        completed = False
        try:
            with self._channel.job(cooperative=getattr(job, "cooperative", False)):
                job.perform()
                completed = True
        except JobTerminated as e:
            if completed:
                # TERM landed while the job scope was closing
                self._lg.info("job completed before abort", extra={"signal": e.signame})
                return
            self._lg.info("job aborted", extra={"signal": e.signame})
            self._queue.fail(job, WorkerTerminated("job terminated", signal=e.signame))
        except Exception as e:
            self._lg.debug("job failed", extra={"exception": e})
            self._queue.fail(job, e)
        except BaseException as e:
            # A job calling sys.exit() only ends that job; anything else
            # stops the child once the failure is on record.
            self._lg.warning("job raised", extra={"exception": type(e).__name__})
            self._queue.fail(job, e)
            if not isinstance(e, SystemExit):
                raise

    def _hijack(self) -> None:
        mode, limit = self._policy.initial_limit()
        self._session = ForkSession(
            jobs_processed=1,  # the job that triggered the hijack
            limit=limit,
            mode=mode,
            suppressed_hooks=self._hooks.suppress_fork_hooks(),
        )
        self._state = ChildState.HIJACKED
        if mode is BudgetMode.COUNT:
            budget = f"{int(limit)} jobs"
        else:
            budget = delta_str(self._policy.settings.seconds_per_fork)
        self._lg.debug("hijacked fork", extra={"mode": mode.value, "budget": budget})

    def release(self) -> None:
        """
        Release a hijacked fork. No-op in any other state.

        Runs before_child_exit with the number of jobs processed, restores
        the suppressed hooks, clears the session and marks the process for
        exit.
        """
        if self._state is not ChildState.HIJACKED:
            return

        jobs = self._session.jobs_processed or 0
        self._lg.info(
            "released fork", extra={"jobs": jobs, "rss": size_str(self._policy.rss())}
        )
        self._hooks.trigger(HookEvent.BEFORE_CHILD_EXIT, jobs)
        self._hooks.restore_fork_hooks(self._session.suppressed_hooks)
        self._session = ForkSession()
        self._state = ChildState.RELEASED
        self._channel.push(ShutdownIntent.GRACEFUL)
