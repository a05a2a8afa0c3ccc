"""Lighthouse monitoring state machine.

Each cycle:
1. Skip the cycle if a pause window is active
2. Probe the lighthouse; if it answers, idle for one poll interval
3. On loss, wait out the grace period, then re-check the pause
4. Re-probe; if still dark, suspend the host
5. After suspending (or failing to), wait for the network to settle

Every wait is a blocking sleep on the calling thread. A pause that
appears between the two probes wins over the pending suspend.
"""

import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

import structlog

from portal_daemon import logging as console
from portal_daemon.config import RunConfig
from portal_daemon.locales import EN, Messages
from portal_daemon.pause import PauseStore
from portal_daemon.suspend import SuspendError

log = structlog.get_logger()


class MonitoringPhase(Enum):
    """Where the supervisor is within the current cycle."""

    IDLE = "idle"
    GRACE_WAIT = "grace_wait"
    SUSPENDING = "suspending"
    PAUSED_SKIP = "paused_skip"


class Prober(Protocol):
    def probe(self, address: str) -> bool: ...


class Invoker(Protocol):
    def suspend(self, seconds: int) -> None: ...


@dataclass
class SupervisorState:
    """In-memory counters. Nothing here survives a restart."""

    phase: MonitoringPhase = MonitoringPhase.IDLE
    cycle_count: int = 0
    suspend_count: int = 0
    suspend_failures: int = 0
    false_alarms: int = 0


class Supervisor:
    """Drive the prober, pause store and suspend invoker."""

    def __init__(
        self,
        config: RunConfig,
        prober: Prober,
        pause_store: PauseStore,
        invoker: Invoker,
        messages: Messages = EN,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.config = config
        self.prober = prober
        self.pause_store = pause_store
        self.invoker = invoker
        self.messages = messages
        self.state = SupervisorState()
        self._sleep = sleep

    @property
    def phase(self) -> MonitoringPhase:
        return self.state.phase

    def run(self) -> None:
        """Run cycles forever.

        Errors inside a cycle are logged and turned into one poll interval
        of quiet. Only BaseException (signals, interpreter exit) gets out.
        """
        while True:
            try:
                self.run_cycle()
            except Exception as e:
                log.exception("cycle_failed", error=str(e))
                console.cycle_failed(str(e))
                self._set_phase(MonitoringPhase.IDLE)
                self._sleep(self.config.poll_interval)

    def run_cycle(self) -> MonitoringPhase:
        """Evaluate one full cycle and return the phase it ended in."""
        cfg = self.config
        self.state.cycle_count += 1

        if self._check_pause():
            self._sleep(cfg.poll_interval)
            return self.phase

        if self.prober.probe(cfg.target):
            self._set_phase(MonitoringPhase.IDLE)
            self._sleep(cfg.poll_interval)
            return self.phase

        # First loss: debounce before trusting it
        self._set_phase(MonitoringPhase.GRACE_WAIT)
        log.warning("connection_lost", target=cfg.target, grace=cfg.grace_period)
        console.connection_lost(self.messages, cfg.grace_period)
        if cfg.grace_period > 0:
            self._sleep(cfg.grace_period)

        if self._check_pause():
            log.info("suspend_cancelled_by_pause", target=cfg.target)
            return self.phase

        if self.prober.probe(cfg.target):
            self.state.false_alarms += 1
            log.info("connection_restored", target=cfg.target)
            console.connection_restored(self.messages)
            self._set_phase(MonitoringPhase.IDLE)
            return self.phase

        self._set_phase(MonitoringPhase.SUSPENDING)
        self._suspend_and_settle()
        self._set_phase(MonitoringPhase.IDLE)
        return self.phase

    def _check_pause(self) -> bool:
        """Return True (and enter PAUSED_SKIP) if a pause window is live."""
        expiry = self.pause_store.read()
        if expiry is None:
            if self.phase is MonitoringPhase.PAUSED_SKIP:
                log.info("pause_ended")
            return False

        if self.phase is not MonitoringPhase.PAUSED_SKIP:
            log.info("paused", until=expiry)
            console.paused(self.messages, expiry)
        self._set_phase(MonitoringPhase.PAUSED_SKIP)
        return True

    def _suspend_and_settle(self) -> None:
        """Suspend once, then wait out cooldown (on failure) and wake-settle."""
        cfg = self.config
        log.info("suspending", target=cfg.target, seconds=cfg.suspend_duration)
        console.suspending(self.messages, cfg.suspend_duration)

        try:
            self.invoker.suspend(cfg.suspend_duration)
        except SuspendError as e:
            self.state.suspend_failures += 1
            log.error(
                "suspend_failed",
                reason=e.reason,
                returncode=e.returncode,
                error=str(e),
                cooldown=cfg.failure_cooldown,
            )
            console.suspend_failed(self.messages, str(e), cfg.failure_cooldown)
            if cfg.failure_cooldown > 0:
                self._sleep(cfg.failure_cooldown)
        else:
            self.state.suspend_count += 1
            console.suspend_ok(self.messages)

        log.info("wake_settle", seconds=cfg.wake_settle)
        console.woke_up(self.messages, cfg.wake_settle)
        if cfg.wake_settle > 0:
            self._sleep(cfg.wake_settle)

    def _set_phase(self, phase: MonitoringPhase) -> None:
        if phase is not self.state.phase:
            log.debug("phase_changed", old=self.state.phase.value, new=phase.value)
        self.state.phase = phase
