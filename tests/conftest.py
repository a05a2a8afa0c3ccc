"""Shared test fixtures for portal-daemon."""

from collections.abc import Callable
from contextlib import ExitStack
from pathlib import Path
from typing import Iterator
from unittest.mock import patch

import pytest

from portal_daemon.config import Config, RunConfig
from portal_daemon.pause import PauseStore

START_TIME = 1_700_000_000.0


def _patch_config_paths(stack: ExitStack, base_path: Path) -> None:
    """Point every Config base directory at base_path.

    Derived paths (config_path, pause_path, pid_path, log_path) follow.
    """
    # fmt: off
    stack.enter_context(patch.object(
        Config, "config_dir",
        new_callable=lambda: property(lambda self: base_path / "etc")
    ))
    stack.enter_context(patch.object(
        Config, "state_dir",
        new_callable=lambda: property(lambda self: base_path / "log")
    ))
    stack.enter_context(patch.object(
        Config, "runtime_dir",
        new_callable=lambda: property(lambda self: base_path / "run")
    ))
    stack.enter_context(patch.object(
        Config, "doas_conf_path",
        new_callable=lambda: property(lambda self: base_path / "doas.conf")
    ))
    # fmt: on


@pytest.fixture
def patched_config_paths(tmp_path: Path) -> Iterator[Path]:
    """Patch all Config path properties to live under tmp_path."""
    with ExitStack() as stack:
        _patch_config_paths(stack, tmp_path)
        yield tmp_path


@pytest.fixture
def config(patched_config_paths: Path) -> Config:
    """Default Config with paths redirected to tmp_path."""
    return Config()


class FakeClock:
    """Manually advanced wall clock."""

    def __init__(self, now: float = START_TIME):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeProber:
    """Returns scripted probe results in order."""

    def __init__(self, results: list[bool] | None = None, default: bool | None = None):
        self.results = list(results or [])
        self.default = default
        self.calls: list[str] = []

    def probe(self, address: str) -> bool:
        self.calls.append(address)
        if self.results:
            return self.results.pop(0)
        if self.default is None:
            raise AssertionError(f"unexpected probe #{len(self.calls)} of {address}")
        return self.default


class FakeInvoker:
    """Records suspend calls, optionally failing with the given error."""

    def __init__(self, error: Exception | None = None):
        self.error = error
        self.calls: list[int] = []

    def suspend(self, seconds: int) -> None:
        self.calls.append(seconds)
        if self.error is not None:
            raise self.error


class RecordingSleep:
    """Stands in for time.sleep: records durations and advances the clock.

    on_sleep hooks run after the clock has moved, keyed by the 1-based
    index of the sleep call.
    """

    def __init__(self, clock: FakeClock | None = None):
        self.clock = clock
        self.calls: list[float] = []
        self.hooks: dict[int, Callable[[], None]] = {}

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        if self.clock is not None:
            self.clock.advance(seconds)
        hook = self.hooks.get(len(self.calls))
        if hook is not None:
            hook()

    @property
    def total(self) -> float:
        return sum(self.calls)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sleeper(clock: FakeClock) -> RecordingSleep:
    return RecordingSleep(clock)


@pytest.fixture
def pause_store(tmp_path: Path, clock: FakeClock) -> PauseStore:
    return PauseStore(tmp_path / "pause", clock=clock)


def make_run_config(
    target: str = "192.168.1.1",
    poll_interval: float = 60,
    grace_period: float = 300,
    suspend_duration: int = 3600,
    wake_settle: float = 30,
    failure_cooldown: float = 60,
) -> RunConfig:
    """Create a RunConfig for testing."""
    return RunConfig(
        target=target,
        poll_interval=poll_interval,
        grace_period=grace_period,
        suspend_duration=suspend_duration,
        wake_settle=wake_settle,
        failure_cooldown=failure_cooldown,
    )
