"""Operator control actions: pause, resume, terminate.

These run in a separate process from the daemon and only touch the pause
marker and the PID file.
"""

import os
import signal
import time
from dataclasses import dataclass

import psutil
import structlog

from portal_daemon.config import Config
from portal_daemon.daemon import is_daemon_process, read_pid_file
from portal_daemon.pause import PauseStore

log = structlog.get_logger()


class ControlError(Exception):
    """A control action couldn't be carried out."""


class NotRunning(ControlError):
    """No live daemon is recorded in the PID file."""


@dataclass
class DaemonStatus:
    """Snapshot for `portal-daemon status`."""

    pid: int | None
    running: bool
    pause_until: int | None


def pause(config: Config, minutes: int) -> int:
    """Suppress suspending for minutes from now. Returns the expiry.

    Raises:
        ControlError: If the marker can't be written.
    """
    try:
        expiry = PauseStore(config.pause_path).pause_for(minutes)
    except PermissionError as e:
        raise ControlError(f"not permitted to write {config.pause_path}; try sudo") from e
    log.info("control_pause", minutes=minutes, expiry=expiry)
    return expiry


def resume(config: Config) -> None:
    """Remove any pause window.

    Raises:
        ControlError: If the marker belongs to another user.
    """
    try:
        PauseStore(config.pause_path).clear()
    except PermissionError as e:
        raise ControlError(f"not permitted to remove {config.pause_path}; try sudo") from e
    log.info("control_resume")


def terminate(config: Config, timeout: float = 5.0) -> int:
    """Send SIGTERM to the recorded daemon and clear the pause marker.

    Returns:
        The PID that was signalled.

    Raises:
        ControlError: If no live daemon is recorded or it can't be signalled.
    """
    pid = read_pid_file(config)
    if pid is None:
        raise NotRunning(f"no PID file at {config.pid_path}")

    try:
        if not is_daemon_process(pid):
            raise NotRunning(f"PID {pid} is not a portal-daemon (stale PID file)")
    except psutil.AccessDenied:
        # Daemon runs as root; inspection may fail but signalling may not
        log.warning("pid_check_access_denied", pid=pid)

    try:
        os.kill(pid, signal.SIGTERM)
    except ProcessLookupError as e:
        raise ControlError(f"PID {pid} exited before it could be signalled") from e
    except PermissionError as e:
        raise ControlError(f"not permitted to signal PID {pid}; try sudo") from e

    log.info("control_terminate", pid=pid)
    _wait_for_exit(pid, timeout)
    PauseStore(config.pause_path).clear()
    return pid


def status(config: Config) -> DaemonStatus:
    """Return whether the daemon is running and any active pause."""
    pid = read_pid_file(config)
    running = False
    if pid is not None:
        try:
            running = is_daemon_process(pid)
        except psutil.AccessDenied:
            running = True
    return DaemonStatus(
        pid=pid if running else None,
        running=running,
        pause_until=PauseStore(config.pause_path).read(),
    )


def _wait_for_exit(pid: int, timeout: float) -> None:
    """Best-effort wait for the daemon to go away."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if not psutil.pid_exists(pid):
            return
        time.sleep(0.1)
    log.warning("terminate_timeout", pid=pid, timeout=timeout)
