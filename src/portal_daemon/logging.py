"""Centralized console logging with Rich formatting.

This module provides:
1. Icon vocabulary (Icon class namespace)
2. Level-based styling
3. Core log functions (log, info, warn, error)
4. Domain helpers for the monitoring cycle (connection_lost, suspending, ...)
5. Structlog configuration (configure)

Console lines are localized through a Messages table passed in by the
caller. JSON file output via structlog stays separate and untranslated.
"""

from __future__ import annotations

import logging
import logging.handlers
from datetime import datetime
from typing import TYPE_CHECKING

import structlog
from rich.console import Console

if TYPE_CHECKING:
    from portal_daemon.config import Config
    from portal_daemon.locales import Messages

# Rich console for colorful human-readable output
_console = Console(highlight=False, soft_wrap=True)


# ─────────────────────────────────────────────────────────────────────────────
# Icons
# ─────────────────────────────────────────────────────────────────────────────


class Icon:
    """Icon vocabulary for console output."""

    OK = "[bold green]✓[/]"
    FAIL = "[bold red]✗[/]"
    WAIT = "⏳"
    LOST = "[yellow]⚠[/]"
    DARK = "🌑"
    SUN = "☀"
    PAUSE = "⏸"
    SIGNAL = "⚡"
    START = "👻"


# ─────────────────────────────────────────────────────────────────────────────
# Level Styles
# ─────────────────────────────────────────────────────────────────────────────

_LEVEL_STYLES = {
    "info": "[bright_blue]\\[info][/]",
    "warn": "[yellow]\\[warn][/]",
    "error": "[bold red]\\[err][/] ",
}


# ─────────────────────────────────────────────────────────────────────────────
# Core Functions
# ─────────────────────────────────────────────────────────────────────────────


def log(level: str, msg: str, icon: str = "") -> None:
    """Print a log message with timestamp and level.

    Args:
        level: Log level (info, warn, error)
        msg: Message to print (can include Rich markup)
        icon: Optional icon to show after level (e.g., Icon.OK)
    """
    ts = datetime.now().strftime("%H:%M:%S")
    lvl = _LEVEL_STYLES.get(level, f"[{level}]")
    icon_part = f" {icon}" if icon else ""
    _console.print(f"[dim]{ts}[/] {lvl}{icon_part} {msg}")


def info(msg: str, icon: str = "") -> None:
    """Log an info message."""
    log("info", msg, icon)


def warn(msg: str, icon: str = "") -> None:
    """Log a warning message."""
    log("warn", msg, icon)


def error(msg: str, icon: str = "") -> None:
    """Log an error message."""
    log("error", msg, icon)


# ─────────────────────────────────────────────────────────────────────────────
# Domain Helpers
# ─────────────────────────────────────────────────────────────────────────────


def daemon_started(t: Messages, ssid: str, target: str, interval: float) -> None:
    """Log daemon startup banner."""
    info(f"[bold]{t.daemon_start}[/]", Icon.START)
    info(f"{t.daemon_net} [cyan]{ssid}[/] [dim]({target})[/]")
    info(f"{t.daemon_interval} [cyan]{interval:g}[/] sec")


def daemon_stopped() -> None:
    """Log daemon shutdown complete."""
    info("Daemon stopped", Icon.OK)


def signal_received(name: str) -> None:
    """Log signal received."""
    info(f"Received [bold]{name}[/]", Icon.SIGNAL)


def connection_lost(t: Messages, grace: float) -> None:
    """Log first failed probe, grace period starting."""
    warn(f"{t.conn_lost} [cyan]{grace:g}[/] sec...", Icon.LOST)


def connection_restored(t: Messages) -> None:
    """Log recovery inside the grace window."""
    info(t.conn_restored, Icon.OK)


def suspending(t: Messages, seconds: int) -> None:
    """Log suspend about to be invoked."""
    info(f"{t.no_light_sleep} [cyan]{seconds // 60}[/] min.", Icon.DARK)


def suspend_ok(t: Messages) -> None:
    """Log successful suspend/resume round trip."""
    info(t.sleep_ok, Icon.OK)


def suspend_failed(t: Messages, reason: str, cooldown: float) -> None:
    """Log suspend failure and the cooldown that follows."""
    error(f"{t.sleep_failed} {reason} [dim](cooldown {cooldown:g}s)[/]", Icon.FAIL)


def woke_up(t: Messages, settle: float) -> None:
    """Log wake-settle wait."""
    info(f"{t.waking_up} [cyan]{settle:g}[/] sec...", Icon.SUN)


def paused(t: Messages, until: int) -> None:
    """Log a skipped cycle because of an active pause."""
    until_str = datetime.fromtimestamp(until).strftime("%H:%M:%S")
    info(f"[dim]{t.paused} {until_str}[/]", Icon.PAUSE)


def cycle_failed(error_msg: str) -> None:
    """Log an unexpected error absorbed by the monitoring loop."""
    error(f"Cycle failed: {error_msg}", Icon.FAIL)


def already_running(pid: int | None = None) -> None:
    """Log daemon already running error."""
    if pid:
        error(f"Another daemon already running [dim](PID {pid})[/]", Icon.FAIL)
    else:
        error("Another daemon already running", Icon.FAIL)


def config_invalid(path: str, error_msg: str) -> None:
    """Log an unusable configuration file."""
    error(f"Config [cyan]{path}[/] is invalid: {error_msg}", Icon.FAIL)


# ─────────────────────────────────────────────────────────────────────────────
# Structlog Configuration
# ─────────────────────────────────────────────────────────────────────────────


def _add_source(source: str) -> structlog.types.Processor:
    """Create a processor that adds a source field to log events."""

    def processor(
        logger: structlog.types.WrappedLogger,
        method_name: str,
        event_dict: structlog.types.EventDict,
    ) -> structlog.types.EventDict:
        event_dict["source"] = source
        return event_dict

    return processor


def configure(config: Config) -> None:
    """Configure structlog to write JSON Lines to a rotating file.

    Human-readable console output is handled by the helpers above.

    Args:
        config: Application config with paths and rotation settings
    """
    # Ensure state directory exists for log file
    config.state_dir.mkdir(parents=True, exist_ok=True)

    file_handler = logging.handlers.RotatingFileHandler(
        config.log_path,
        maxBytes=config.system.log_max_bytes,
        backupCount=config.system.log_backup_count,
        encoding="utf-8",
    )
    file_handler.setLevel(logging.INFO)

    stdlib_root = logging.getLogger()
    stdlib_root.setLevel(logging.INFO)

    # Clear any existing handlers
    stdlib_root.handlers.clear()

    file_handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=structlog.processors.JSONRenderer(),
            foreign_pre_chain=[
                structlog.contextvars.merge_contextvars,
                structlog.processors.TimeStamper(fmt="iso", utc=False, key="ts"),
                structlog.processors.add_log_level,
                _add_source("daemon"),
                structlog.processors.format_exc_info,
            ],
        )
    )
    stdlib_root.addHandler(file_handler)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.processors.TimeStamper(fmt="iso", utc=False, key="ts"),
            structlog.processors.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
