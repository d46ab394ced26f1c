"""
Persistent record of which descriptor files were already imported.

The cursor maps each file (by its path relative to the import directory) to
its modification time in milliseconds at import. A file is reimported only
when its current mtime is newer than the recorded one.

On-disk format, one entry per line:

```text
1590969600000,consensuses/2020-06-01-00-00-00-consensus
1591005722000,exit-lists/2020-06-01-10-02-02
```
"""

from __future__ import annotations

import os
import tempfile
from collections.abc import Iterator, Mapping
from pathlib import Path
from types import MappingProxyType

from relaytrace.core.logger import Logger


_logger = Logger("importer.cursor")


class ImportCursor(Mapping[str, int]):
    """Immutable filename to mtime (ms) mapping.

    All updating operations return a new cursor.

    Examples:
        ```python
        cursor = ImportCursor.load("stats/import-history")
        if not cursor.is_unchanged("exit-lists/a", 1591005722000):
            cursor = cursor.with_entry("exit-lists/a", 1591005722000)
        cursor.save("stats/import-history")
        ```
    """

    __slots__ = ("_entries",)

    def __init__(self, entries: Mapping[str, int] | None = None) -> None:
        data = dict(entries or {})
        for name, mtime in data.items():
            _validate_entry(name, mtime)
        self._entries: Mapping[str, int] = MappingProxyType(data)

    def __getitem__(self, name: str) -> int:
        return self._entries[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"ImportCursor(entries={len(self._entries)})"

    def is_unchanged(self, name: str, mtime_ms: int) -> bool:
        """Whether *name* was imported at a modification time no older than *mtime_ms*."""
        recorded = self._entries.get(name)
        return recorded is not None and mtime_ms <= recorded

    def with_entry(self, name: str, mtime_ms: int) -> ImportCursor:
        return ImportCursor({**self._entries, name: mtime_ms})

    def merge(self, other: Mapping[str, int]) -> ImportCursor:
        """Combine two cursors; entries of *other* win on conflict."""
        return ImportCursor({**self._entries, **other})

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    @classmethod
    def load(cls, path: str | Path) -> ImportCursor:
        """Read a cursor file.

        A missing file yields an empty cursor. So does a file that cannot be
        read or decoded, or one with any malformed line, since a partial
        cursor could not be trusted; the effect is a full (idempotent)
        reimport.
        """
        path = Path(path)
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return cls()
        except (OSError, UnicodeDecodeError) as e:
            _logger.warning("cursor_unreadable", path=str(path), error=str(e))
            return cls()

        entries: dict[str, int] = {}
        for lineno, line in enumerate(text.splitlines(), start=1):
            if not line:
                continue
            mtime_text, sep, name = line.partition(",")
            try:
                if not sep:
                    raise ValueError("missing separator")
                mtime = int(mtime_text)
                _validate_entry(name, mtime)
            except ValueError as e:
                _logger.warning(
                    "cursor_malformed", path=str(path), lineno=lineno, error=str(e)
                )
                return cls()
            entries[name] = mtime
        return cls(entries)

    def save(self, path: str | Path) -> None:
        """Write the cursor atomically.

        The content goes to a temporary file in the target directory, which
        then replaces the target, so a crash never leaves a truncated file.

        Raises:
            OSError: If the file cannot be written.
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        content = "".join(f"{mtime},{name}\n" for name, mtime in sorted(self._entries.items()))

        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise


def _validate_entry(name: str, mtime: int) -> None:
    if not name:
        raise ValueError("file name is empty")
    if "\n" in name or "\r" in name:
        raise ValueError(f"file name contains a line break: {name!r}")
    if isinstance(mtime, bool) or not isinstance(mtime, int) or mtime < 0:
        raise ValueError(f"mtime must be a non-negative int, got {mtime!r}")
