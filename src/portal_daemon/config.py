"""Configuration system for portal-daemon."""

from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from pathlib import Path

import tomlkit

VALID_LANGUAGES = ("en", "ru")


@dataclass
class GeneralConfig:
    """Presentation settings."""

    language: str = "en"  # Console message table ("en" or "ru")


@dataclass
class MonitorConfig:
    """Lighthouse monitoring configuration.

    Units follow the on-disk document: minutes for the suspend length,
    seconds for everything else.
    """

    lighthouse_ip: str = "192.168.1.1"
    target_ssid: str = "Unknown"  # Display only, recorded by the wizard
    sleep_minutes: int = 60  # Minutes to stay suspended without light
    grace_period_sec: int = 300  # Debounce before confirming loss
    wakeup_wait_sec: int = 30  # Settle time after waking
    scan_interval_sec: int = 60  # Seconds between probes


@dataclass
class SystemConfig:
    """Daemon internals."""

    failure_cooldown_sec: int = 60  # Quiet period after a failed suspend
    probe_timeout_sec: int = 2  # Per-ping reply deadline
    # Log file rotation
    log_max_bytes: int = 5 * 1024 * 1024  # Max log file size (5MB)
    log_backup_count: int = 3  # Number of backup log files to keep


@dataclass(frozen=True)
class RunConfig:
    """Immutable parameters handed to the supervisor.

    All durations are in seconds.
    """

    target: str
    poll_interval: float
    grace_period: float
    suspend_duration: int
    wake_settle: float
    failure_cooldown: float = 60.0
    probe_timeout: float = 2.0

    def __post_init__(self) -> None:
        if not self.target:
            raise ValueError("target address must not be empty")
        if self.poll_interval <= 0:
            raise ValueError(f"poll_interval must be > 0, got {self.poll_interval}")
        if self.grace_period < 0:
            raise ValueError(f"grace_period must be >= 0, got {self.grace_period}")
        if self.suspend_duration <= 0:
            raise ValueError(f"suspend_duration must be > 0, got {self.suspend_duration}")
        if self.wake_settle < 0:
            raise ValueError(f"wake_settle must be >= 0, got {self.wake_settle}")
        if self.failure_cooldown < 0:
            raise ValueError(f"failure_cooldown must be >= 0, got {self.failure_cooldown}")

    @classmethod
    def from_config(cls, config: "Config") -> "RunConfig":
        """Build run parameters from a loaded Config."""
        monitor = config.monitor
        return cls(
            target=monitor.lighthouse_ip,
            poll_interval=monitor.scan_interval_sec,
            grace_period=monitor.grace_period_sec,
            suspend_duration=monitor.sleep_minutes * 60,
            wake_settle=monitor.wakeup_wait_sec,
            failure_cooldown=config.system.failure_cooldown_sec,
            probe_timeout=config.system.probe_timeout_sec,
        )


def _dataclass_to_table(obj: object) -> tomlkit.items.Table:
    """Convert a flat dataclass instance to a tomlkit Table."""
    table = tomlkit.table()
    for f in fields(obj):  # type: ignore[arg-type]
        table.add(f.name, getattr(obj, f.name))
    return table


@dataclass
class Config:
    """Main configuration container."""

    general: GeneralConfig = field(default_factory=GeneralConfig)
    monitor: MonitorConfig = field(default_factory=MonitorConfig)
    system: SystemConfig = field(default_factory=SystemConfig)

    @property
    def config_dir(self) -> Path:
        """Configuration directory (system-wide, the daemon runs as root)."""
        return Path("/etc/portal-daemon")

    @property
    def config_path(self) -> Path:
        """Path to config file."""
        return self.config_dir / "config.toml"

    @property
    def state_dir(self) -> Path:
        """State directory for logs."""
        return Path("/var/log/portal-daemon")

    @property
    def log_path(self) -> Path:
        """Daemon JSON log path."""
        return self.state_dir / "daemon.log"

    @property
    def runtime_dir(self) -> Path:
        """Runtime directory for the pause marker and PID file.

        Lives in /tmp/ so it's cleared on reboot and the control actions can
        write the pause marker without elevation.
        """
        return Path("/tmp/portal-daemon")

    @property
    def pause_path(self) -> Path:
        """Pause marker file (expiry as epoch seconds)."""
        return self.runtime_dir / "pause"

    @property
    def pid_path(self) -> Path:
        """PID file path."""
        return self.runtime_dir / "daemon.pid"

    @property
    def doas_conf_path(self) -> Path:
        """Presence of this file selects doas over sudo."""
        return Path("/etc/doas.conf")

    def run_config(self) -> RunConfig:
        """Return the supervisor's immutable run parameters."""
        return RunConfig.from_config(self)

    def save(self, path: Path | None = None) -> None:
        """Save config to TOML file."""
        path = path or self.config_path
        path.parent.mkdir(parents=True, exist_ok=True)

        doc = tomlkit.document()
        for name in ("general", "monitor", "system"):
            doc.add(name, _dataclass_to_table(getattr(self, name)))
            doc.add(tomlkit.nl())

        path.write_text(tomlkit.dumps(doc))

    @classmethod
    def load(cls, path: Path | None = None) -> "Config":
        """Load config from TOML file, returning defaults for missing values.

        Raises:
            ValueError: If the file can't be parsed or holds invalid values.
        """
        defaults = cls()
        path = path or defaults.config_path
        if not path.exists():
            return defaults

        try:
            with open(path) as f:
                data = tomlkit.load(f)
        except tomlkit.exceptions.TOMLKitError as e:
            raise ValueError(f"Failed to parse config file {path}: {e}") from e

        return cls(
            general=_load_general_config(_section(data, "general")),
            monitor=_load_monitor_config(_section(data, "monitor")),
            system=_load_system_config(_section(data, "system")),
        )


def _section(data: Mapping, name: str) -> Mapping:
    """Return a top-level table, or an empty one if it's absent."""
    section = data.get(name, {})
    if not isinstance(section, Mapping):
        raise ValueError(f"[{name}] must be a table, got {section!r}")
    return section


def _require_int(name: str, value: object, minimum: int) -> int:
    """Validate an integer field with a lower bound."""
    # bool is an int subclass; "true" is not a duration
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an integer, got {value!r}")
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}, got {value}")
    return int(value)


def _load_general_config(data: Mapping) -> GeneralConfig:
    """Load general config from TOML data."""
    defaults = GeneralConfig()
    language = str(data.get("language", defaults.language)).lower()
    if language not in VALID_LANGUAGES:
        raise ValueError(f"Invalid language: {language!r}. Must be one of {VALID_LANGUAGES}")
    return GeneralConfig(language=language)


def _load_monitor_config(data: Mapping) -> MonitorConfig:
    """Load monitor config from TOML data, using dataclass defaults for missing fields."""
    d = MonitorConfig()

    lighthouse_ip = str(data.get("lighthouse_ip", d.lighthouse_ip)).strip()
    if not lighthouse_ip:
        raise ValueError("lighthouse_ip must not be empty")

    return MonitorConfig(
        lighthouse_ip=lighthouse_ip,
        target_ssid=str(data.get("target_ssid", d.target_ssid)),
        sleep_minutes=_require_int("sleep_minutes", data.get("sleep_minutes", d.sleep_minutes), 0),
        grace_period_sec=_require_int(
            "grace_period_sec", data.get("grace_period_sec", d.grace_period_sec), 0
        ),
        wakeup_wait_sec=_require_int(
            "wakeup_wait_sec", data.get("wakeup_wait_sec", d.wakeup_wait_sec), 0
        ),
        scan_interval_sec=_require_int(
            "scan_interval_sec", data.get("scan_interval_sec", d.scan_interval_sec), 1
        ),
    )


def _load_system_config(data: Mapping) -> SystemConfig:
    """Load system config from TOML data."""
    d = SystemConfig()
    return SystemConfig(
        failure_cooldown_sec=_require_int(
            "failure_cooldown_sec", data.get("failure_cooldown_sec", d.failure_cooldown_sec), 0
        ),
        probe_timeout_sec=_require_int(
            "probe_timeout_sec", data.get("probe_timeout_sec", d.probe_timeout_sec), 1
        ),
        log_max_bytes=_require_int(
            "log_max_bytes", data.get("log_max_bytes", d.log_max_bytes), 1
        ),
        log_backup_count=_require_int(
            "log_backup_count", data.get("log_backup_count", d.log_backup_count), 0
        ),
    )
