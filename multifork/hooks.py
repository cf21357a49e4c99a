"""
Lifecycle hooks for forked workers.

LifecycleHooks is an explicit registry handed to the worker at construction.
Three events are recognised:

- BEFORE_FORK: in the parent, right before a real fork
- AFTER_FORK: in the child, right after a real fork
- BEFORE_CHILD_EXIT: in an amortizing child, right before it exits; receives
  the number of jobs the child processed

While a child is reused for several jobs the per-fork callbacks are captured
and cleared (suppress_fork_hooks) so they do not fire again for jobs 2..N,
then put back exactly as they were (restore_fork_hooks) when the child
releases its fork.

Example:
    hooks = LifecycleHooks()

    @hooks.on(HookEvent.AFTER_FORK)
    def reconnect() -> None:
        db.reconnect()

    hooks.register(HookEvent.BEFORE_CHILD_EXIT, lambda n: lg.info(f"{n} jobs"))
"""

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from .log import Logger, derive_lg


class HookEvent(Enum):
    """Lifecycle events."""

    BEFORE_FORK = "before_fork"
    AFTER_FORK = "after_fork"
    BEFORE_CHILD_EXIT = "before_child_exit"


FORK_EVENTS = (HookEvent.BEFORE_FORK, HookEvent.AFTER_FORK)


@dataclass(frozen=True)
class SuppressedHooks:
    """Per-fork callbacks captured while a child is reused."""

    before_fork: tuple[Callable[..., Any], ...]
    after_fork: tuple[Callable[..., Any], ...]


class LifecycleHooks:
    """Registry of lifecycle callbacks."""

    def __init__(self, lg: Logger | None = None) -> None:
        self._lg = derive_lg(lg, ["multifork", "hooks"])
        self._hooks: dict[HookEvent, list[Callable[..., Any]]] = {
            event: [] for event in HookEvent
        }

    def register(self, event: HookEvent, callback: Callable[..., Any]) -> None:
        """
        Register a callback for an event.

        Args:
            event: Event to listen for
            callback: Callable invoked with the event's arguments
        """
        self._hooks[event].append(callback)

    def on(self, event: HookEvent) -> Callable:
        """Decorator for registering event callbacks."""

        def decorator(callback: Callable[..., Any]) -> Callable[..., Any]:
            self.register(event, callback)
            return callback

        return decorator

    def unregister(self, event: HookEvent, callback: Callable[..., Any]) -> bool:
        """Remove a callback. Returns True if it was registered."""
        if callback in self._hooks[event]:
            self._hooks[event].remove(callback)
            return True
        return False

    def get_callbacks(self, event: HookEvent) -> list[Callable[..., Any]]:
        return list(self._hooks[event])

    def has_callbacks(self, event: HookEvent) -> bool:
        return len(self._hooks[event]) > 0

    def trigger(self, event: HookEvent, *args: Any) -> list[Any]:
        """
        Run all callbacks for an event in registration order.

        A failing callback is logged and does not prevent the others from
        running.

        Returns:
            Results from the callbacks (None for failed ones)
        """
        results = []
        for callback in list(self._hooks[event]):
            try:
                results.append(callback(*args))
            except Exception as e:
                self._lg.error(
                    "hook error", extra={"event": event.value, "exception": e}
                )
                results.append(None)
        return results

    def suppress_fork_hooks(self) -> SuppressedHooks:
        """
        Capture and clear the before-fork and after-fork callbacks.

        Returns:
            The captured callbacks, to be passed to restore_fork_hooks()
        """
        saved = SuppressedHooks(
            before_fork=tuple(self._hooks[HookEvent.BEFORE_FORK]),
            after_fork=tuple(self._hooks[HookEvent.AFTER_FORK]),
        )
        for event in FORK_EVENTS:
            self._hooks[event] = []
        self._lg.debug(
            "fork hooks suppressed",
            extra={"before_fork": len(saved.before_fork), "after_fork": len(saved.after_fork)},
        )
        return saved

    def restore_fork_hooks(self, saved: SuppressedHooks | None) -> None:
        """
        Put back exactly the callbacks captured by suppress_fork_hooks().

        Passing None is a no-op.
        """
        if saved is None:
            return
        self._hooks[HookEvent.BEFORE_FORK] = list(saved.before_fork)
        self._hooks[HookEvent.AFTER_FORK] = list(saved.after_fork)
        self._lg.debug("fork hooks restored")
