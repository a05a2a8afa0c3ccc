"""CLI commands for portal-daemon."""

import os

import click

GROUP_NAME = "portal-admins"
SUDOERS_PATH = "/etc/sudoers.d/portal-daemon"
SYSTEMD_UNIT_PATH = "/etc/systemd/system/portal.service"
OPENRC_SCRIPT_PATH = "/etc/init.d/portal"


def _is_root() -> bool:
    return os.geteuid() == 0


def _load_config_or_exit():
    """Load the config, exiting with a hint if it's unusable."""
    from portal_daemon import logging as console
    from portal_daemon.config import Config

    try:
        return Config.load()
    except ValueError as e:
        console.config_invalid(str(Config().config_path), str(e))
        click.echo("Run 'portal-daemon configure' to recreate it.", err=True)
        raise SystemExit(1)


@click.group()
@click.version_option(package_name="portal-daemon")
def main() -> None:
    """Suspend this machine while the lighthouse host is unreachable."""
    pass


@main.command()
@click.option("--configure", "reconfigure", is_flag=True, help="Run the setup wizard first")
def run(reconfigure: bool) -> None:
    """Run the monitoring daemon in the foreground."""
    from portal_daemon.config import Config
    from portal_daemon.daemon import AlreadyRunning, run_daemon

    if reconfigure or not Config().config_path.exists():
        if not _is_root():
            click.echo(
                f"Config setup requires root to write {Config().config_path}. "
                "Please run with sudo/doas.",
                err=True,
            )
            raise SystemExit(1)
        from portal_daemon.wizard import run_wizard

        config = run_wizard()
    else:
        config = _load_config_or_exit()

    try:
        config.run_config()
    except ValueError as e:
        click.echo(f"Error: invalid configuration: {e}", err=True)
        raise SystemExit(1)

    try:
        run_daemon(config)
    except AlreadyRunning:
        raise SystemExit(1)


@main.command()
def configure() -> None:
    """Run the interactive setup wizard."""
    if not _is_root():
        click.echo("Error: configure requires root privileges. Use sudo/doas.", err=True)
        raise SystemExit(1)

    from portal_daemon.wizard import run_wizard

    run_wizard()


@main.command("pause")
@click.argument("minutes", type=click.IntRange(min=1))
def pause_cmd(minutes: int) -> None:
    """Disable suspending for MINUTES minutes."""
    from portal_daemon.control import ControlError, pause
    from portal_daemon.locales import get_messages

    config = _load_config_or_exit()
    t = get_messages(config.general.language)
    try:
        pause(config, minutes)
    except ControlError as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)
    click.echo(f"{t.pause_activated} {minutes} min.")


@main.command("resume")
def resume_cmd() -> None:
    """Re-enable suspending."""
    from portal_daemon.control import ControlError, resume
    from portal_daemon.locales import get_messages

    config = _load_config_or_exit()
    try:
        resume(config)
    except ControlError as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)
    click.echo(get_messages(config.general.language).pause_removed)


@main.command("kill")
def kill_cmd() -> None:
    """Stop the running daemon and clear any pause."""
    from portal_daemon.control import ControlError, NotRunning, terminate
    from portal_daemon.locales import get_messages

    config = _load_config_or_exit()
    t = get_messages(config.general.language)
    try:
        pid = terminate(config)
    except NotRunning as e:
        click.echo(f"{t.not_running} ({e})", err=True)
        raise SystemExit(1)
    except ControlError as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)
    click.echo(f"{t.process_killed} (PID {pid})")


@main.command()
@click.pass_context
def off(ctx: click.Context) -> None:
    """Interactive control menu: pause, resume or kill."""
    from portal_daemon.locales import get_messages

    config = _load_config_or_exit()
    t = get_messages(config.general.language)

    click.echo(f"\n{t.ctrl_title}")
    options = [t.ctrl_pause, t.ctrl_resume, t.ctrl_kill, t.ctrl_exit]
    for i, label in enumerate(options, start=1):
        click.echo(f"  {i}) {label}")
    choice = click.prompt(t.ctrl_action, type=click.IntRange(1, len(options)), default=1)

    if choice == 1:
        minutes = click.prompt(t.pause_prompt, type=click.IntRange(min=1), default=60)
        ctx.invoke(pause_cmd, minutes=minutes)
    elif choice == 2:
        ctx.invoke(resume_cmd)
    elif choice == 3:
        ctx.invoke(kill_cmd)


@main.command()
@click.option("--probe/--no-probe", default=True, help="Ping the lighthouse now")
def status(probe: bool) -> None:
    """Quick health check."""
    from datetime import datetime

    from portal_daemon.control import status as daemon_status
    from portal_daemon.prober import PingProber

    config = _load_config_or_exit()
    st = daemon_status(config)

    if st.running:
        click.echo(f"Daemon: running (PID {st.pid})")
    else:
        click.echo("Daemon: stopped")

    if st.pause_until is not None:
        until = datetime.fromtimestamp(st.pause_until).strftime("%Y-%m-%d %H:%M:%S")
        click.echo(f"Pause: active until {until}")
    else:
        click.echo("Pause: none")

    target = config.monitor.lighthouse_ip
    if probe:
        reachable = PingProber(timeout=config.system.probe_timeout_sec).probe(target)
        click.echo(f"Lighthouse {target}: {'reachable' if reachable else 'unreachable'}")
    else:
        click.echo(f"Lighthouse: {target}")


@main.group()
def config() -> None:
    """Manage configuration."""
    pass


@config.command("show")
def config_show() -> None:
    """Display current configuration."""
    cfg = _load_config_or_exit()

    click.echo(f"Config file: {cfg.config_path}")
    click.echo(f"Exists: {cfg.config_path.exists()}")
    click.echo()
    click.echo("[general]")
    click.echo(f"  language = {cfg.general.language}")
    click.echo()
    click.echo("[monitor]")
    click.echo(f"  lighthouse_ip = {cfg.monitor.lighthouse_ip}")
    click.echo(f"  target_ssid = {cfg.monitor.target_ssid}")
    click.echo(f"  sleep_minutes = {cfg.monitor.sleep_minutes}")
    click.echo(f"  grace_period_sec = {cfg.monitor.grace_period_sec}")
    click.echo(f"  wakeup_wait_sec = {cfg.monitor.wakeup_wait_sec}")
    click.echo(f"  scan_interval_sec = {cfg.monitor.scan_interval_sec}")
    click.echo()
    click.echo("[system]")
    click.echo(f"  failure_cooldown_sec = {cfg.system.failure_cooldown_sec}")
    click.echo(f"  probe_timeout_sec = {cfg.system.probe_timeout_sec}")


def _find_binary(name: str, fallback: str) -> str:
    import shutil

    return shutil.which(name) or fallback


def doas_rules(rtcwake: str, nmcli: str) -> list[str]:
    """doas.conf lines letting the admin group run rtcwake and nmcli."""
    return [
        f"permit nopass :{GROUP_NAME} cmd {rtcwake}",
        f"permit nopass :{GROUP_NAME} cmd {nmcli}",
    ]


def sudoers_rule(rtcwake: str, nmcli: str) -> str:
    """sudoers line letting the admin group run rtcwake and nmcli."""
    return f"%{GROUP_NAME} ALL=(root) NOPASSWD: {rtcwake}, {nmcli}\n"


def _setup_doas(doas_conf, rtcwake: str, nmcli: str) -> None:
    """Append doas rules that aren't already present."""
    content = doas_conf.read_text() if doas_conf.exists() else ""
    missing = [rule for rule in doas_rules(rtcwake, nmcli) if rule not in content]
    if not missing:
        return
    if content and not content.endswith("\n"):
        content += "\n"
    content += "".join(f"{rule}\n" for rule in missing)
    doas_conf.write_text(content)


def _setup_sudoers(rtcwake: str, nmcli: str) -> None:
    """Create the sudoers rule, validated with visudo before install.

    Raises:
        RuntimeError: If the sudoers rule is invalid
    """
    import subprocess
    import tempfile
    from pathlib import Path

    # sudo skips files with a dot in the name, so the temp file is inert
    with tempfile.NamedTemporaryFile(
        "w", dir=Path(SUDOERS_PATH).parent, suffix=".tmp", delete=False
    ) as f:
        f.write(sudoers_rule(rtcwake, nmcli))
        tmp_path = Path(f.name)

    try:
        result = subprocess.run(
            ["visudo", "-c", "-f", str(tmp_path)],
            capture_output=True,
        )
        if result.returncode != 0:
            raise RuntimeError(f"Invalid sudoers syntax: {result.stderr.decode()}")
        os.chmod(tmp_path, 0o440)
        os.chown(tmp_path, 0, 0)
        tmp_path.replace(SUDOERS_PATH)
    finally:
        tmp_path.unlink(missing_ok=True)


def systemd_unit(exec_start: str) -> str:
    """Render the systemd service unit."""
    return f"""[Unit]
Description=Portal Daemon (Network Sleep Manager)
After=network.target

[Service]
ExecStart={exec_start} run
Restart=always
User=root
Group=root

[Install]
WantedBy=multi-user.target
"""


def openrc_script(exec_start: str) -> str:
    """Render the OpenRC init script."""
    return f"""#!/sbin/openrc-run

name="portal"
description="Portal Daemon"
command="{exec_start}"
command_args="run"
command_background=true
pidfile="/run/portal.pid"

depend() {{
    need net
}}
"""


def _has_systemd() -> bool:
    from pathlib import Path

    return Path("/run/systemd/system").exists() or Path("/usr/lib/systemd").exists()


@main.command()
def install() -> None:
    """Set up the admin group, privilege rules and the system service.

    Must be run as root.
    """
    import subprocess
    from pathlib import Path

    from portal_daemon.config import Config

    if not _is_root():
        click.echo("Error: install requires root privileges. Use sudo/doas.", err=True)
        raise SystemExit(1)

    config = Config()
    exec_start = _find_binary("portal-daemon", "/usr/local/bin/portal-daemon")
    rtcwake = _find_binary("rtcwake", "/usr/sbin/rtcwake")
    nmcli = _find_binary("nmcli", "/usr/bin/nmcli")

    # 1. Admin group and invoking user
    click.echo(f"Creating group {GROUP_NAME}...")
    subprocess.run(["groupadd", "-f", GROUP_NAME], check=True)
    username = os.environ.get("SUDO_USER") or os.environ.get("DOAS_USER")
    if username:
        click.echo(f"Adding user '{username}' to group...")
        subprocess.run(["usermod", "-aG", GROUP_NAME, username], check=True)

    # 2. Privilege rules for rtcwake/nmcli
    if config.doas_conf_path.exists():
        click.echo("Configuring doas...")
        _setup_doas(config.doas_conf_path, rtcwake, nmcli)
        click.echo(f"  Updated {config.doas_conf_path}")
    else:
        click.echo("Configuring sudo...")
        _setup_sudoers(rtcwake, nmcli)
        click.echo(f"  Created {SUDOERS_PATH}")

    # 3. Service
    if _has_systemd():
        click.echo("Detected systemd.")
        Path(SYSTEMD_UNIT_PATH).write_text(systemd_unit(exec_start))
        click.echo(f"  Created {SYSTEMD_UNIT_PATH}")
        subprocess.run(["systemctl", "daemon-reload"])
        subprocess.run(["systemctl", "enable", "--now", "portal"])
        click.echo("  Service enabled & started")
    else:
        click.echo("Detected OpenRC (or fallback).")
        script = Path(OPENRC_SCRIPT_PATH)
        script.write_text(openrc_script(exec_start))
        script.chmod(0o755)
        click.echo(f"  Created {OPENRC_SCRIPT_PATH}")
        subprocess.run(["rc-update", "add", "portal", "default"])
        subprocess.run(["rc-service", "portal", "start"])
        click.echo("  Service added to default runlevel & started")

    click.echo("\nInstallation complete.")
    if not config.config_path.exists():
        click.echo("Run 'portal-daemon configure' to set up the lighthouse.")


@main.command()
@click.option("--keep-config", is_flag=True, help="Keep the configuration file")
@click.option("--force", is_flag=True, help="Skip confirmation prompts")
def uninstall(keep_config: bool, force: bool) -> None:
    """Remove the service and sudoers rule.

    doas.conf is shared with other tools and is left for manual cleanup.
    """
    import shutil
    import subprocess
    from pathlib import Path

    from portal_daemon.config import Config

    if not _is_root():
        click.echo("Error: uninstall requires root privileges. Use sudo/doas.", err=True)
        raise SystemExit(1)

    config = Config()

    unit = Path(SYSTEMD_UNIT_PATH)
    if unit.exists():
        subprocess.run(["systemctl", "disable", "--now", "portal"])
        unit.unlink()
        subprocess.run(["systemctl", "daemon-reload"])
        click.echo(f"Removed {unit}")

    script = Path(OPENRC_SCRIPT_PATH)
    if script.exists():
        subprocess.run(["rc-service", "portal", "stop"])
        subprocess.run(["rc-update", "del", "portal", "default"])
        script.unlink()
        click.echo(f"Removed {script}")

    sudoers = Path(SUDOERS_PATH)
    if sudoers.exists():
        sudoers.unlink()
        click.echo(f"Removed {sudoers}")
    elif config.doas_conf_path.exists():
        click.echo(f"Remove the {GROUP_NAME} rules from {config.doas_conf_path} manually.")

    if not keep_config and config.config_dir.exists():
        if force or click.confirm(f"Delete config directory {config.config_dir}?"):
            shutil.rmtree(config.config_dir)
            click.echo(f"Removed {config.config_dir}")

    click.echo("Uninstall complete")


if __name__ == "__main__":
    main()
