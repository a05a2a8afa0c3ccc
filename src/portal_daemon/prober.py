"""Lighthouse reachability checks."""

import subprocess

import structlog

log = structlog.get_logger()


class PingProber:
    """Single-shot ICMP reachability check via the system ping tool.

    A failed probe is the signal the supervisor acts on, not an error, so
    probe() never raises.
    """

    def __init__(self, timeout: float = 2.0):
        """Initialize prober.

        Args:
            timeout: Seconds to wait for the echo reply
        """
        self.timeout = timeout

    def command(self, address: str) -> list[str]:
        """Return the argv used to probe address."""
        return ["ping", "-c", "1", "-W", str(max(1, round(self.timeout))), address]

    def probe(self, address: str) -> bool:
        """Return True only if address answered one echo request."""
        try:
            result = subprocess.run(
                self.command(address),
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                stdin=subprocess.DEVNULL,
                # Hard ceiling in case ping ignores -W (DNS stalls)
                timeout=self.timeout + 3,
            )
        except subprocess.TimeoutExpired:
            log.debug("probe_timeout", address=address)
            return False
        except OSError as e:
            log.warning("probe_failed", address=address, error=str(e))
            return False

        return result.returncode == 0
