"""Background daemon for portal-daemon."""

import os
import signal
from dataclasses import dataclass
from datetime import datetime
from types import FrameType

import psutil
import structlog

from portal_daemon import logging as console
from portal_daemon.config import Config, RunConfig
from portal_daemon.locales import get_messages
from portal_daemon.pause import PauseStore, ensure_runtime_dir
from portal_daemon.prober import PingProber
from portal_daemon.supervisor import Supervisor
from portal_daemon.suspend import SuspendInvoker, find_rtcwake

log = structlog.get_logger()

PROCESS_MARKERS = ("portal-daemon", "portal_daemon")


class ShutdownRequested(BaseException):
    """Raised from the signal handler to unwind the monitoring loop."""

    def __init__(self, signame: str):
        super().__init__(signame)
        self.signame = signame


class AlreadyRunning(RuntimeError):
    """Another daemon instance owns the PID file."""

    def __init__(self, pid: int | None):
        super().__init__(f"Daemon is already running (PID {pid})")
        self.pid = pid


@dataclass
class DaemonState:
    """Runtime state of the daemon."""

    running: bool = False
    started_at: datetime | None = None


def is_daemon_process(pid: int) -> bool:
    """Return True if pid is alive and looks like a portal-daemon.

    Raises:
        psutil.AccessDenied: If the process can't be inspected.
    """
    try:
        cmdline = " ".join(psutil.Process(pid).cmdline()).lower()
    except psutil.NoSuchProcess:
        return False
    return any(marker in cmdline for marker in PROCESS_MARKERS)


def read_pid_file(config: Config) -> int | None:
    """Return the PID recorded in the PID file, or None if absent/invalid."""
    try:
        return int(config.pid_path.read_text().strip())
    except FileNotFoundError:
        return None
    except ValueError:
        log.warning("pid_file_invalid", reason="not a number")
        return None


class Daemon:
    """Wire configuration, collaborators and the supervisor together."""

    def __init__(self, config: Config, supervisor: Supervisor | None = None):
        self.config = config
        self.state = DaemonState()
        self.run_config = RunConfig.from_config(config)
        self.messages = get_messages(config.general.language)
        self.supervisor = supervisor or Supervisor(
            self.run_config,
            prober=PingProber(timeout=self.run_config.probe_timeout),
            pause_store=PauseStore(config.pause_path),
            invoker=SuspendInvoker(doas_conf=config.doas_conf_path, rtcwake=find_rtcwake()),
            messages=self.messages,
        )
        self._previous_handlers: dict[int, object] = {}

    def start(self) -> None:
        """Start the daemon and run until a signal arrives.

        Raises:
            AlreadyRunning: If another live instance holds the PID file.
        """
        from importlib.metadata import PackageNotFoundError, version

        try:
            pkg_version = version("portal-daemon")
        except PackageNotFoundError:
            pkg_version = "unknown"
        log.info("daemon_starting", version=pkg_version)

        rc = self.run_config
        log.info(
            "daemon_config",
            target=rc.target,
            ssid=self.config.monitor.target_ssid,
            poll_interval=rc.poll_interval,
            grace_period=rc.grace_period,
            suspend_duration=rc.suspend_duration,
            wake_settle=rc.wake_settle,
        )

        pid = self._check_already_running()
        if pid is not None:
            log.error("daemon_already_running", pid=pid)
            console.already_running(pid)
            raise AlreadyRunning(pid)

        self._install_signal_handlers()
        self._write_pid_file()

        self.state.running = True
        self.state.started_at = datetime.now()
        log.info("daemon_started")
        console.daemon_started(
            self.messages, self.config.monitor.target_ssid, rc.target, rc.poll_interval
        )

        self.supervisor.run()

    def stop(self) -> None:
        """Release the PID file. The pause marker is left as-is."""
        was_running = self.state.running
        self.state.running = False
        self._restore_signal_handlers()
        self._remove_pid_file()
        if was_running:
            log.info("daemon_stopped")
            console.daemon_stopped()

    def _handle_signal(self, signum: int, frame: FrameType | None) -> None:
        """Handle shutdown signals."""
        name = signal.Signals(signum).name
        log.info("signal_received", signal=name)
        console.signal_received(name)
        raise ShutdownRequested(name)

    def _install_signal_handlers(self) -> None:
        for sig in (signal.SIGTERM, signal.SIGINT):
            self._previous_handlers[sig] = signal.signal(sig, self._handle_signal)

    def _restore_signal_handlers(self) -> None:
        for sig, handler in self._previous_handlers.items():
            signal.signal(sig, handler)
        self._previous_handlers.clear()

    def _write_pid_file(self) -> None:
        """Write PID file."""
        ensure_runtime_dir(self.config.pid_path.parent)
        self.config.pid_path.write_text(str(os.getpid()))
        log.debug("pid_file_written", path=str(self.config.pid_path))

    def _remove_pid_file(self) -> None:
        """Remove PID file if it still belongs to us."""
        if read_pid_file(self.config) == os.getpid():
            self.config.pid_path.unlink()
            log.debug("pid_file_removed")

    def _check_already_running(self) -> int | None:
        """Return the PID of a live daemon holding the PID file, else None.

        Verifies that the recorded process is actually portal-daemon, so a
        recycled PID after reboot doesn't block startup. Stale files are
        removed.
        """
        pid = read_pid_file(self.config)
        if pid is None:
            self.config.pid_path.unlink(missing_ok=True)
            return None
        if pid == os.getpid():
            return None

        try:
            if is_daemon_process(pid):
                return pid
        except psutil.AccessDenied:
            # Can't inspect process - assume it's running to be safe
            log.warning("pid_check_access_denied", pid=pid)
            return pid

        log.warning("pid_file_stale", pid=pid)
        self.config.pid_path.unlink(missing_ok=True)
        return None


def run_daemon(config: Config | None = None) -> None:
    """Run the daemon until a termination signal.

    Args:
        config: Optional config, loads from file if not provided
    """
    if config is None:
        config = Config.load()

    console.configure(config)

    daemon = Daemon(config)

    try:
        daemon.start()
    except ShutdownRequested as e:
        log.info("daemon_shutdown", signal=e.signame)
    except AlreadyRunning:
        raise
    except Exception as e:
        log.exception("daemon_crashed", error=str(e))
        raise
    finally:
        daemon.stop()
