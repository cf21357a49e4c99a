"""
Worker fixtures for testing.

Provides hooks, shutdown channels, budget policies and a factory for
session controllers wired to a MemoryQueue and a fake clock.
"""

from collections.abc import Callable

import pytest

from multifork import (
    BudgetPolicy,
    ChildSessionController,
    ForkSettings,
    LifecycleHooks,
    MemoryQueue,
    ShutdownChannel,
)
from multifork.log import Logger
from tests.helpers.fakes import FakeClock, FakeRss, HookRecorder


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def rss() -> FakeRss:
    return FakeRss(value=64 * 1024 * 1024)


@pytest.fixture
def hooks(lg: Logger) -> LifecycleHooks:
    return LifecycleHooks(lg=lg)


@pytest.fixture
def recorder(hooks: LifecycleHooks) -> HookRecorder:
    return HookRecorder(hooks)


@pytest.fixture
def channel() -> ShutdownChannel:
    return ShutdownChannel()


@pytest.fixture
def queue() -> MemoryQueue:
    return MemoryQueue()


@pytest.fixture
def make_controller(
    queue: MemoryQueue,
    hooks: LifecycleHooks,
    channel: ShutdownChannel,
    clock: FakeClock,
    rss: FakeRss,
    lg: Logger,
) -> Callable[..., ChildSessionController]:
    """
    Factory for controllers sharing the test's queue, hooks and channel.

    Keyword arguments are passed to ForkSettings.
    """

    def factory(**settings_kwargs) -> ChildSessionController:
        settings = ForkSettings(**settings_kwargs)
        policy = BudgetPolicy(settings, clock=clock, rss_reader=rss)
        return ChildSessionController(
            queue, hooks, policy, channel, amortize=settings.amortize, lg=lg
        )

    return factory
