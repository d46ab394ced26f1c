"""
File-based mutual exclusion for import runs.

Two importers running against the same directory and cursor would race on
the cursor file, so every run holds a marker file for its duration. The
marker contains the epoch milliseconds of the run start; a marker older
than ``stale_after`` seconds is assumed to belong to a crashed run and is
reclaimed.

Examples:
    ```python
    with RunLock("import.lock"):
        ...  # import work
    ```
"""

from __future__ import annotations

import time
from pathlib import Path
from types import TracebackType

from .exceptions import ImportLockedError
from .logger import Logger


LOCK_STALE_AFTER = 6 * 60 * 60


class RunLock:
    """Marker-file lock held for the duration of one import run.

    Attributes:
        path: Location of the marker file.
        stale_after: Age in seconds after which an existing marker is
            considered abandoned.

    Note:
        Acquisition is advisory: it checks the marker and then writes it,
        which is sufficient for runs started by a scheduler but not for
        processes racing within milliseconds of each other.
    """

    def __init__(self, path: str | Path, stale_after: float = LOCK_STALE_AFTER) -> None:
        self.path = Path(path)
        self.stale_after = stale_after
        self._logger = Logger("lock")
        self._held = False

    @property
    def held(self) -> bool:
        """Whether this instance currently owns the marker."""
        return self._held

    def _read_marker(self) -> int | None:
        try:
            content = self.path.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            return None
        try:
            return int(content)
        except ValueError:
            # An unreadable marker carries no age; treat it as abandoned.
            self._logger.warning("lock_marker_unreadable", path=str(self.path))
            return 0

    def acquire(self) -> None:
        """Write the marker, reclaiming a stale one.

        Raises:
            ImportLockedError: If a marker younger than ``stale_after`` exists.
            OSError: If the marker cannot be written.
        """
        now_ms = int(time.time() * 1000)
        started_ms = self._read_marker()
        if started_ms is not None:
            age = (now_ms - started_ms) / 1000
            if age < self.stale_after:
                raise ImportLockedError(
                    f"{self.path} is held by a run started {age:.0f}s ago"
                )
            self._logger.warning("lock_reclaimed", path=str(self.path), age_s=int(age))

        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(f"{now_ms}\n", encoding="utf-8")
        self._held = True
        self._logger.debug("lock_acquired", path=str(self.path))

    def release(self) -> None:
        """Remove the marker if this instance owns it. Idempotent."""
        if not self._held:
            return
        self.path.unlink(missing_ok=True)
        self._held = False
        self._logger.debug("lock_released", path=str(self.path))

    def __enter__(self) -> RunLock:
        self.acquire()
        return self

    def __exit__(
        self,
        _exc_type: type[BaseException] | None,
        _exc_val: BaseException | None,
        _exc_tb: TracebackType | None,
    ) -> None:
        self.release()

    def __repr__(self) -> str:
        return f"RunLock(path={self.path}, held={self._held})"
