from importlib.metadata import PackageNotFoundError, version

from .budget import BudgetMode, BudgetPolicy
from .config import Config
from .coordinator import ForkCoordinator
from .delta import InvalidDurationError, delta_str, delta_to_secs
from .dot_dict import DotDict
from .exceptions import (
    ConfigError,
    ForkError,
    JobTerminated,
    MultiForkError,
    WorkerTerminated,
)
from .hooks import HookEvent, LifecycleHooks, SuppressedHooks
from .memory import rss_bytes
from .queues import CallableJob, Failure, Job, JobQueue, MemoryQueue, ProcessQueue
from .session import ChildSessionController, ChildState, ForkSession
from .settings import ForkSettings
from .shutdown import ChildSignalHandlers, ShutdownChannel, ShutdownIntent, current_channel
from .size import InvalidSizeError, size_str, size_to_bytes
from .worker import ChildWorker

# Version is read from package metadata (pyproject.toml)
try:
    __version__ = version("multifork")
except PackageNotFoundError:
    # Package not installed, use fallback (development mode)
    __version__ = "0.1.0-dev"

# Explicit public API
__all__ = [
    # Version
    "__version__",
    # Supervision
    "ForkCoordinator",
    "ChildWorker",
    "ChildSessionController",
    "ChildState",
    "ForkSession",
    "BudgetMode",
    "BudgetPolicy",
    "HookEvent",
    "LifecycleHooks",
    "SuppressedHooks",
    "ShutdownChannel",
    "current_channel",
    "ShutdownIntent",
    "ChildSignalHandlers",
    # Queues
    "Job",
    "JobQueue",
    "CallableJob",
    "Failure",
    "MemoryQueue",
    "ProcessQueue",
    # Configuration
    "Config",
    "DotDict",
    "ForkSettings",
    # Exceptions
    "MultiForkError",
    "ConfigError",
    "ForkError",
    "WorkerTerminated",
    "JobTerminated",
    # Utilities
    "rss_bytes",
    "size_str",
    "size_to_bytes",
    "InvalidSizeError",
    "delta_str",
    "delta_to_secs",
    "InvalidDurationError",
]
