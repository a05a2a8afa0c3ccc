"""Tests for the privileged suspend invoker."""

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from portal_daemon.suspend import (
    RTCWAKE_FALLBACK,
    SuspendError,
    SuspendInvoker,
    find_rtcwake,
    select_elevation,
)


def _completed(returncode: int, stderr: bytes = b"") -> MagicMock:
    return MagicMock(returncode=returncode, stderr=stderr, stdout=b"")


class TestElevation:
    """Tests for elevation tool selection."""

    def test_doas_when_config_present(self, tmp_path: Path) -> None:
        doas_conf = tmp_path / "doas.conf"
        doas_conf.write_text("permit :wheel\n")
        assert select_elevation(doas_conf) == "doas"

    def test_sudo_when_config_absent(self, tmp_path: Path) -> None:
        assert select_elevation(tmp_path / "doas.conf") == "sudo"

    def test_selection_is_not_cached(self, tmp_path: Path) -> None:
        """Creating doas.conf between calls switches the tool."""
        doas_conf = tmp_path / "doas.conf"
        invoker = SuspendInvoker(doas_conf=doas_conf)

        assert invoker.command(60)[0] == "sudo"
        doas_conf.write_text("permit :wheel\n")
        assert invoker.command(60)[0] == "doas"


def test_command_argv(tmp_path: Path) -> None:
    """Non-interactive elevation, suspend-to-RAM, RTC wake after N seconds."""
    invoker = SuspendInvoker(doas_conf=tmp_path / "doas.conf", rtcwake="/usr/sbin/rtcwake")
    assert invoker.command(3600) == [
        "sudo",
        "-n",
        "/usr/sbin/rtcwake",
        "-m",
        "mem",
        "-s",
        "3600",
    ]


def test_find_rtcwake_prefers_path() -> None:
    with patch("portal_daemon.suspend.shutil.which", return_value="/opt/bin/rtcwake"):
        assert find_rtcwake() == "/opt/bin/rtcwake"


def test_find_rtcwake_fallback() -> None:
    with patch("portal_daemon.suspend.shutil.which", return_value=None):
        assert find_rtcwake() == RTCWAKE_FALLBACK


class TestSuspend:
    """Tests for SuspendInvoker.suspend outcomes."""

    @pytest.fixture
    def invoker(self, tmp_path: Path) -> SuspendInvoker:
        return SuspendInvoker(doas_conf=tmp_path / "doas.conf")

    def test_success_returns_none(self, invoker: SuspendInvoker) -> None:
        with patch("portal_daemon.suspend.subprocess.run", return_value=_completed(0)) as run:
            assert invoker.suspend(60) is None
        assert run.call_args[0][0] == invoker.command(60)

    def test_missing_tool(self, invoker: SuspendInvoker) -> None:
        with patch(
            "portal_daemon.suspend.subprocess.run",
            side_effect=FileNotFoundError("sudo"),
        ):
            with pytest.raises(SuspendError) as exc_info:
                invoker.suspend(60)
        assert exc_info.value.reason == "tool_missing"
        assert exc_info.value.returncode is None

    def test_not_executable(self, invoker: SuspendInvoker) -> None:
        with patch(
            "portal_daemon.suspend.subprocess.run",
            side_effect=PermissionError("sudo"),
        ):
            with pytest.raises(SuspendError) as exc_info:
                invoker.suspend(60)
        assert exc_info.value.reason == "denied"

    @pytest.mark.parametrize(
        "stderr",
        [
            b"sudo: a password is required\n",
            b"doas: Operation not permitted\n",
            b"alice is not in the sudoers file.\n",
        ],
    )
    def test_elevation_refused(self, invoker: SuspendInvoker, stderr: bytes) -> None:
        with patch("portal_daemon.suspend.subprocess.run", return_value=_completed(1, stderr)):
            with pytest.raises(SuspendError) as exc_info:
                invoker.suspend(60)
        assert exc_info.value.reason == "denied"
        assert exc_info.value.returncode == 1

    def test_rtcwake_failure(self, invoker: SuspendInvoker) -> None:
        stderr = b"rtcwake: /dev/rtc0: unable to find device\n"
        with patch("portal_daemon.suspend.subprocess.run", return_value=_completed(1, stderr)):
            with pytest.raises(SuspendError) as exc_info:
                invoker.suspend(60)
        assert exc_info.value.reason == "exit_status"
        assert exc_info.value.returncode == 1
        assert "unable to find device" in str(exc_info.value)

    def test_nonzero_without_stderr(self, invoker: SuspendInvoker) -> None:
        with patch("portal_daemon.suspend.subprocess.run", return_value=_completed(2)):
            with pytest.raises(SuspendError) as exc_info:
                invoker.suspend(60)
        assert exc_info.value.reason == "exit_status"
        assert str(exc_info.value) == "rtcwake exited with status 2"

    @pytest.mark.parametrize("seconds", [0, -60])
    def test_rejects_non_positive_duration(self, invoker: SuspendInvoker, seconds: int) -> None:
        with patch("portal_daemon.suspend.subprocess.run") as run:
            with pytest.raises(ValueError):
                invoker.suspend(seconds)
        run.assert_not_called()
