"""
Unified exception hierarchy for multifork.

All errors raised by the supervision layer inherit from MultiForkError, so
callers can catch every framework failure with a single except clause.
JobTerminated is the exception injected into a running job when the worker
is told to stop immediately; it derives from BaseException so that job code
catching Exception does not swallow it.
"""

from typing import Any


class MultiForkError(Exception):
    """
    Base exception for all multifork errors.

    Example:
        try:
            coordinator.work()
        except MultiForkError as e:
            lg.error("worker failed", extra={"exception": e})
    """

    def __init__(self, message: str, **context: Any) -> None:
        """
        Initialize the exception with a message and optional context.

        Args:
            message: Human-readable error message
            **context: Additional context information (stored in self.context)
        """
        super().__init__(message)
        self.message = message
        self.context = context

    def __str__(self) -> str:
        """String representation with context if available."""
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} ({context_str})"
        return self.message


class ConfigError(MultiForkError):
    """
    Configuration-related errors.

    Raised by Config when a file cannot be loaded or a ${var} reference
    cannot be resolved. Fork settings never raise this; invalid settings
    values fall back to their defaults.
    """

    pass


class ForkError(MultiForkError):
    """Raised when the parent cannot fork a new child process."""

    pass


class WorkerTerminated(MultiForkError):
    """
    Failure reported to the job queue for jobs cut short by shutdown.

    Used for jobs dequeued after shutdown was requested but before they
    started ("shutdown before job start"), and for jobs aborted by an
    immediate shutdown.
    """

    pass


class JobTerminated(BaseException):
    """
    Cancellation raised into an in-flight job on immediate shutdown.

    Mirrors how KeyboardInterrupt unwinds the stack: finally blocks and
    context managers in the job run, but plain `except Exception` does not
    catch it.
    """

    def __init__(self, signame: str = "SIGTERM") -> None:
        super().__init__(signame)
        self.signame = signame
