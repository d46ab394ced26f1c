"""Importer service configuration models.

See Also:
    [Importer][relaytrace.services.importer.Importer]: The service class
        that consumes these configurations.
    [BaseServiceConfig][relaytrace.core.base_service.BaseServiceConfig]:
        Base class providing ``interval``, ``max_consecutive_failures``
        and ``metrics`` fields.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field

from relaytrace.core.base_service import BaseServiceConfig
from relaytrace.core.lock import LOCK_STALE_AFTER


class ImporterConfig(BaseServiceConfig):
    """Configuration for the descriptor importer.

    Attributes:
        import_dir: Directory scanned recursively for consensus and exit
            list files.
        cursor_path: File recording the modification time of every file
            already imported.
        lock_path: Marker file preventing concurrent runs.
        lock_stale_after: Age in seconds after which an abandoned lock
            marker is reclaimed.
        strict_addresses: Abort the run when a well-formed entry carries an
            address that cannot be canonicalized. When ``False`` the entry
            is dropped and logged instead.
    """

    interval: float = Field(default=3600.0, ge=60.0, description="Seconds between import runs")
    import_dir: Path = Field(default=Path("in"), description="Descriptor source directory")
    cursor_path: Path = Field(
        default=Path("stats/import-history"), description="Import cursor file"
    )
    lock_path: Path = Field(default=Path("import.lock"), description="Run lock marker file")
    lock_stale_after: float = Field(
        default=LOCK_STALE_AFTER,
        ge=60.0,
        description="Seconds after which a lock marker is considered abandoned",
    )
    strict_addresses: bool = Field(
        default=True, description="Abort on addresses that cannot be canonicalized"
    )
