"""Shared infrastructure for relaytrace services.

Attributes:
    types: Decoded storage rows
        ([StatusRow][relaytrace.services.common.types.StatusRow],
        [ExitProbeRow][relaytrace.services.common.types.ExitProbeRow]),
        [Coverage][relaytrace.services.common.types.Coverage] and
        [SearchWindow][relaytrace.services.common.types.SearchWindow].
    queries: All SQL used by the services, centralized in one module.
    mixins: [BatchProgress][relaytrace.services.common.mixins.BatchProgress]
        counters for services that work through batches.
"""

from .mixins import BatchProgress, BatchProgressMixin
from .queries import (
    fetch_coverage,
    fetch_exit_probe_rows,
    fetch_status_rows,
    insert_exit_probes,
    insert_status_entries,
)
from .types import Coverage, ExitProbeRow, SearchWindow, StatusRow


__all__ = [
    "BatchProgress",
    "BatchProgressMixin",
    "Coverage",
    "ExitProbeRow",
    "SearchWindow",
    "StatusRow",
    "fetch_coverage",
    "fetch_exit_probe_rows",
    "fetch_status_rows",
    "insert_exit_probes",
    "insert_status_entries",
]
