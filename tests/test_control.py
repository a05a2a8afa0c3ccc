"""Tests for operator control actions."""

import signal
import time
from unittest.mock import patch

import psutil
import pytest

from portal_daemon.config import Config
from portal_daemon.control import ControlError, NotRunning, pause, resume, status, terminate
from portal_daemon.pause import PauseStore

OTHER_PID = 424242


def _write_pid(config: Config, pid: int = OTHER_PID) -> None:
    config.pid_path.parent.mkdir(parents=True, exist_ok=True)
    config.pid_path.write_text(str(pid))


def test_pause_writes_marker(config: Config):
    """pause() records now + minutes in the shared marker."""
    before = int(time.time())
    expiry = pause(config, 10)

    assert before + 600 <= expiry <= int(time.time()) + 600
    assert PauseStore(config.pause_path).read() == expiry


def test_pause_replaces_existing_window(config: Config):
    pause(config, 60)
    expiry = pause(config, 1)

    assert PauseStore(config.pause_path).read() == expiry
    assert expiry <= int(time.time()) + 60


def test_resume_clears_marker(config: Config):
    pause(config, 10)
    resume(config)

    assert not config.pause_path.exists()


def test_resume_without_pause_is_noop(config: Config):
    resume(config)
    assert not config.pause_path.exists()


class TestTerminate:
    """Tests for terminate()."""

    def test_no_pid_file(self, config: Config) -> None:
        with pytest.raises(NotRunning, match="no PID file"):
            terminate(config)

    def test_stale_pid_file_is_not_signalled(self, config: Config) -> None:
        _write_pid(config)
        with (
            patch("portal_daemon.control.is_daemon_process", return_value=False),
            patch("portal_daemon.control.os.kill") as mock_kill,
        ):
            with pytest.raises(ControlError, match="stale"):
                terminate(config)
        mock_kill.assert_not_called()

    def test_sends_sigterm_and_clears_pause(self, config: Config) -> None:
        _write_pid(config)
        pause(config, 30)
        with (
            patch("portal_daemon.control.is_daemon_process", return_value=True),
            patch("portal_daemon.control.os.kill") as mock_kill,
            patch("portal_daemon.control.psutil.pid_exists", return_value=False),
        ):
            assert terminate(config) == OTHER_PID

        mock_kill.assert_called_once_with(OTHER_PID, signal.SIGTERM)
        assert not config.pause_path.exists()

    def test_access_denied_still_signals(self, config: Config) -> None:
        """Uninspectable processes are signalled anyway."""
        _write_pid(config)
        with (
            patch(
                "portal_daemon.control.is_daemon_process",
                side_effect=psutil.AccessDenied(OTHER_PID),
            ),
            patch("portal_daemon.control.os.kill") as mock_kill,
            patch("portal_daemon.control.psutil.pid_exists", return_value=False),
        ):
            terminate(config)
        mock_kill.assert_called_once_with(OTHER_PID, signal.SIGTERM)

    def test_process_vanished(self, config: Config) -> None:
        _write_pid(config)
        with (
            patch("portal_daemon.control.is_daemon_process", return_value=True),
            patch("portal_daemon.control.os.kill", side_effect=ProcessLookupError),
        ):
            with pytest.raises(ControlError, match="exited"):
                terminate(config)

    def test_not_permitted(self, config: Config) -> None:
        _write_pid(config)
        pause(config, 30)
        with (
            patch("portal_daemon.control.is_daemon_process", return_value=True),
            patch("portal_daemon.control.os.kill", side_effect=PermissionError),
        ):
            with pytest.raises(ControlError, match="not permitted"):
                terminate(config)
        # Pause survives a failed kill
        assert config.pause_path.exists()

    def test_slow_exit_still_returns(self, config: Config) -> None:
        """A daemon that outlives the wait is reported, not an error."""
        _write_pid(config)
        with (
            patch("portal_daemon.control.is_daemon_process", return_value=True),
            patch("portal_daemon.control.os.kill"),
            patch("portal_daemon.control.psutil.pid_exists", return_value=True),
            patch("portal_daemon.control.time.sleep"),
        ):
            assert terminate(config, timeout=0.01) == OTHER_PID


class TestStatus:
    """Tests for status()."""

    def test_stopped_without_pause(self, config: Config) -> None:
        st = status(config)
        assert st.running is False
        assert st.pid is None
        assert st.pause_until is None

    def test_running_with_pause(self, config: Config) -> None:
        _write_pid(config)
        expiry = pause(config, 5)
        with patch("portal_daemon.control.is_daemon_process", return_value=True):
            st = status(config)

        assert st.running is True
        assert st.pid == OTHER_PID
        assert st.pause_until == expiry

    def test_stale_pid_reports_stopped(self, config: Config) -> None:
        _write_pid(config)
        with patch("portal_daemon.control.is_daemon_process", return_value=False):
            st = status(config)

        assert st.running is False
        assert st.pid is None

    def test_access_denied_reports_running(self, config: Config) -> None:
        _write_pid(config)
        with patch(
            "portal_daemon.control.is_daemon_process",
            side_effect=psutil.AccessDenied(OTHER_PID),
        ):
            assert status(config).running is True


class TestPermissions:
    """pause/resume from an account that can't touch the marker."""

    def test_pause_not_permitted(self, config: Config) -> None:
        with patch.object(PauseStore, "pause_for", side_effect=PermissionError(13, "denied")):
            with pytest.raises(ControlError, match="try sudo"):
                pause(config, 10)

    def test_resume_not_permitted(self, config: Config) -> None:
        with patch.object(PauseStore, "clear", side_effect=PermissionError(13, "denied")):
            with pytest.raises(ControlError, match="try sudo"):
                resume(config)
