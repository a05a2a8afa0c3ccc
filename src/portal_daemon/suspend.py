"""Privileged suspend-to-RAM via rtcwake."""

import shutil
import subprocess
from pathlib import Path

import structlog

log = structlog.get_logger()

DOAS_CONF = Path("/etc/doas.conf")
RTCWAKE_FALLBACK = "/usr/sbin/rtcwake"

# Exit codes sudo/doas use when the caller isn't permitted
_DENIED_EXIT_CODES = {1}


class SuspendError(Exception):
    """Suspend command could not run or reported failure.

    Attributes:
        reason: One of "tool_missing", "denied", "exit_status"
        returncode: Exit status of the command, if it ran
    """

    def __init__(self, reason: str, message: str, returncode: int | None = None):
        super().__init__(message)
        self.reason = reason
        self.returncode = returncode


def find_rtcwake() -> str:
    """Absolute path to rtcwake; doas rules match the command path exactly."""
    return shutil.which("rtcwake") or RTCWAKE_FALLBACK


def select_elevation(doas_conf: Path = DOAS_CONF) -> str:
    """Return the elevation prefix for this host: doas if configured, else sudo."""
    return "doas" if doas_conf.exists() else "sudo"


class SuspendInvoker:
    """Suspend the host for a fixed time with automatic RTC wake.

    The elevation tool is chosen on every call, never cached. No retries:
    the supervisor owns the failure policy.
    """

    def __init__(self, doas_conf: Path = DOAS_CONF, rtcwake: str = "rtcwake"):
        self.doas_conf = doas_conf
        self.rtcwake = rtcwake

    def command(self, seconds: int) -> list[str]:
        """Return the argv for suspending the given number of seconds."""
        return [
            select_elevation(self.doas_conf),
            "-n",  # Never prompt for a password
            self.rtcwake,
            "-m",
            "mem",
            "-s",
            str(int(seconds)),
        ]

    def suspend(self, seconds: int) -> None:
        """Suspend to RAM and block until the host wakes.

        Raises:
            SuspendError: If the command is missing, denied, or exits non-zero.
        """
        if seconds <= 0:
            raise ValueError(f"seconds must be > 0, got {seconds}")

        cmd = self.command(seconds)
        log.info("suspend_invoking", command=" ".join(cmd), seconds=seconds)

        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                stdin=subprocess.DEVNULL,
            )
        except FileNotFoundError as e:
            raise SuspendError("tool_missing", f"{cmd[0]} not found: {e}") from e
        except PermissionError as e:
            raise SuspendError("denied", f"cannot execute {cmd[0]}: {e}") from e

        if result.returncode == 0:
            log.info("suspend_completed", seconds=seconds)
            return

        stderr = result.stderr.decode("utf-8", errors="replace").strip()
        if result.returncode in _DENIED_EXIT_CODES and _looks_denied(stderr):
            raise SuspendError(
                "denied",
                f"{cmd[0]} refused: {stderr or 'permission denied'}",
                result.returncode,
            )
        raise SuspendError(
            "exit_status",
            f"{self.rtcwake} exited with status {result.returncode}: {stderr}".rstrip(": "),
            result.returncode,
        )


def _looks_denied(stderr: str) -> bool:
    """Heuristic for elevation refusal messages from sudo and doas."""
    lowered = stderr.lower()
    return any(
        marker in lowered
        for marker in ("not permitted", "password is required", "not in the sudoers", "denied")
    )
