"""File-backed pause window shared by the daemon and control actions.

The marker holds one integer: the pause expiry as epoch seconds. There is
no locking. Writers are rare and human-triggered, so last write wins.

read() deletes the marker when it is stale or unparsable, so a marker
never outlives its window and every read is a fresh point-in-time answer.
"""

import os
import stat
import time
from collections.abc import Callable
from pathlib import Path

import structlog

log = structlog.get_logger()

# World-writable and sticky like /tmp: any operator can pause, only the
# owner (or root) can remove someone else's files.
RUNTIME_DIR_MODE = 0o1777


def ensure_runtime_dir(path: Path) -> None:
    """Create the shared runtime directory with RUNTIME_DIR_MODE.

    mkdir() is subject to the umask, so the mode is applied afterwards.
    A directory owned by someone else is left as-is.
    """
    path.mkdir(parents=True, exist_ok=True)
    st = path.stat()
    if st.st_uid == os.geteuid() and stat.S_IMODE(st.st_mode) != RUNTIME_DIR_MODE:
        os.chmod(path, RUNTIME_DIR_MODE)


class PauseStore:
    """Read, set and clear the pause marker."""

    def __init__(self, path: Path, clock: Callable[[], float] = time.time):
        self.path = path
        self._clock = clock

    def read(self) -> int | None:
        """Return the active expiry, or None if there is no live pause.

        Stale (expiry <= now) and unparsable markers are removed.
        """
        try:
            content = self.path.read_text()
        except FileNotFoundError:
            return None
        except UnicodeDecodeError:
            content = "<binary>"
        except OSError as e:
            log.warning("pause_marker_unreadable", path=str(self.path), error=str(e))
            return None

        text = content.strip()
        # Unsigned ASCII digits only; int() alone would take "-5", "+5", "1_0"
        if not (text.isascii() and text.isdigit()):
            log.warning("pause_marker_corrupt", path=str(self.path), content=content[:32])
            self._remove()
            return None

        expiry = int(text)

        if expiry <= self._clock():
            log.info("pause_expired", expiry=expiry)
            self._remove()
            return None

        return expiry

    def set(self, expiry: int) -> None:
        """Overwrite the marker with a new expiry."""
        ensure_runtime_dir(self.path.parent)
        self.path.write_text(str(int(expiry)))
        log.info("pause_set", expiry=int(expiry))

    def pause_for(self, minutes: int) -> int:
        """Pause for minutes from now, replacing any existing window.

        Returns:
            The new expiry timestamp.
        """
        if minutes < 0:
            raise ValueError(f"minutes must be >= 0, got {minutes}")
        expiry = int(self._clock()) + minutes * 60
        self.set(expiry)
        return expiry

    def clear(self) -> None:
        """Remove the marker. No-op if absent."""
        if self._remove():
            log.info("pause_cleared")

    def _remove(self) -> bool:
        """Delete the marker file, returning whether it existed."""
        try:
            self.path.unlink()
        except FileNotFoundError:
            return False
        return True
