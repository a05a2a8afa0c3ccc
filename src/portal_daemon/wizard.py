"""Interactive first-run configuration."""

import subprocess
from dataclasses import dataclass
from pathlib import Path

import click
import structlog

from portal_daemon.config import Config, GeneralConfig, MonitorConfig, SystemConfig
from portal_daemon.locales import get_messages

log = structlog.get_logger()


@dataclass
class NetworkInfo:
    """An active NetworkManager connection and its IPv4 gateway."""

    ssid: str
    device: str
    gateway: str


def _nmcli(*args: str) -> str | None:
    """Run nmcli in terse mode, returning stdout or None on failure."""
    try:
        result = subprocess.run(
            ["nmcli", "-t", *args],
            capture_output=True,
            timeout=10,
        )
    except (subprocess.TimeoutExpired, OSError) as e:
        log.warning("nmcli_failed", args=list(args), error=str(e))
        return None
    if result.returncode != 0:
        return None
    return result.stdout.decode("utf-8", errors="replace")


def parse_active_connections(output: str) -> list[tuple[str, str]]:
    """Parse `nmcli -t -f NAME,DEVICE connection show --active` output.

    Returns:
        (name, device) pairs, skipping loopback and unnamed rows.
    """
    pairs = []
    for line in output.splitlines():
        parts = line.split(":")
        if len(parts) < 2:
            continue
        name, device = parts[0], parts[1]
        if device == "lo" or not name:
            continue
        pairs.append((name, device))
    return pairs


def parse_gateway(output: str) -> str | None:
    """Extract IP4.GATEWAY from `nmcli -t dev show <dev>` output."""
    for line in output.splitlines():
        if line.startswith("IP4.GATEWAY:"):
            gateway = line.split(":", 1)[1].strip()
            if gateway and gateway != "--":
                return gateway
    return None


def scan_networks() -> list[NetworkInfo]:
    """List active connections that have an IPv4 gateway."""
    output = _nmcli("-f", "NAME,DEVICE", "connection", "show", "--active")
    if output is None:
        return []

    networks = []
    for name, device in parse_active_connections(output):
        dev_output = _nmcli("dev", "show", device)
        gateway = parse_gateway(dev_output) if dev_output else None
        if gateway:
            networks.append(NetworkInfo(ssid=name, device=device, gateway=gateway))
    return networks


def run_wizard(path: Path | None = None) -> Config:
    """Prompt for every setting, save the config and return it."""
    language = click.prompt(
        "Select Language / Выберите язык",
        type=click.Choice(["en", "ru"]),
        default="en",
    )
    t = get_messages(language)
    click.echo(f"\n{t.wizard_title}")

    defaults = MonitorConfig()
    ssid = "Manual"

    click.echo(t.scan_msg)
    networks = scan_networks()

    if not networks:
        click.echo(t.scan_fail)
        lighthouse_ip = click.prompt(t.enter_ip_manual, default=defaults.lighthouse_ip)
    else:
        for i, net in enumerate(networks, start=1):
            click.echo(f"  {i}) {net.ssid} (GW: {net.gateway})")
        manual = len(networks) + 1
        click.echo(f"  {manual}) {t.enter_ip_manual}")
        choice = click.prompt(t.select_net, type=click.IntRange(1, manual), default=1)
        if choice < manual:
            selected = networks[choice - 1]
            lighthouse_ip, ssid = selected.gateway, selected.ssid
            click.echo(f"{t.selected_net} {ssid} -> Target IP: {lighthouse_ip}")
        else:
            lighthouse_ip = click.prompt(t.enter_ip_prompt)

    monitor = MonitorConfig(
        lighthouse_ip=lighthouse_ip.strip(),
        target_ssid=ssid,
        sleep_minutes=click.prompt(
            t.sleep_mins_prompt, type=click.IntRange(min=1), default=defaults.sleep_minutes
        ),
        grace_period_sec=click.prompt(
            t.grace_sec_prompt, type=click.IntRange(min=0), default=defaults.grace_period_sec
        ),
        wakeup_wait_sec=click.prompt(
            t.wakeup_sec_prompt, type=click.IntRange(min=0), default=defaults.wakeup_wait_sec
        ),
        scan_interval_sec=click.prompt(
            t.scan_int_prompt, type=click.IntRange(min=1), default=defaults.scan_interval_sec
        ),
    )

    config = Config(
        general=GeneralConfig(language=language),
        monitor=monitor,
        system=SystemConfig(),
    )
    target = path or config.config_path
    config.save(target)
    log.info("config_saved", path=str(target))
    click.echo(f"{t.settings_saved} {target}\n")
    return config
