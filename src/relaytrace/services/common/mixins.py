"""Reusable service mixins for relaytrace.

See Also:
    [BaseService][relaytrace.core.base_service.BaseService]: The base class
        that mixin classes are composed with via multiple inheritance.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING


# ---------------------------------------------------------------------------
# Batch Progress
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class BatchProgress:
    """Tracks progress of one batch processing cycle.

    All counters are reset at the start of each cycle via ``reset()``.

    Attributes:
        started_at: Unix time the cycle started.
        total: Items to process this cycle.
        processed: Items handled so far, successfully or not.
        success: Items that succeeded.
        failure: Items that failed.
        skipped: Items left alone because nothing changed.

    Note:
        ``elapsed`` uses ``time.monotonic()`` so clock adjustments during a
        long import do not distort the reported duration.
    """

    started_at: float = field(default=0.0)
    _monotonic_start: float = field(default=0.0, repr=False)
    total: int = field(default=0)
    processed: int = field(default=0)
    success: int = field(default=0)
    failure: int = field(default=0)
    skipped: int = field(default=0)

    def reset(self) -> None:
        """Reset all counters and set ``started_at`` to the current time."""
        self.started_at = time.time()
        self._monotonic_start = time.monotonic()
        self.total = 0
        self.processed = 0
        self.success = 0
        self.failure = 0
        self.skipped = 0

    @property
    def remaining(self) -> int:
        """Number of items left to process."""
        return self.total - self.processed - self.skipped

    @property
    def elapsed(self) -> float:
        """Seconds since ``reset()``, rounded to 1 decimal."""
        return round(time.monotonic() - self._monotonic_start, 1)


class BatchProgressMixin:
    """Mixin providing a ``_progress`` tracker to batch services.

    Note:
        Call ``_init_progress()`` in ``__init__`` and ``_progress.reset()``
        at the start of each ``run()`` cycle.

    Examples:
        ```python
        class Importer(BatchProgressMixin, BaseService[ImporterConfig]):
            def __init__(self, store, config=None):
                super().__init__(store=store, config=config)
                self._init_progress()
        ```
    """

    _progress: BatchProgress

    if TYPE_CHECKING:
        # Provided by BaseService at runtime
        def set_gauge(self, name: str, value: float) -> None: ...

    def _init_progress(self) -> None:
        self._progress = BatchProgress()

    def emit_progress_metrics(self) -> None:
        """Emit standard Prometheus gauges for batch progress."""
        self.set_gauge("files_total", self._progress.total)
        self.set_gauge("files_processed", self._progress.processed)
        self.set_gauge("files_succeeded", self._progress.success)
        self.set_gauge("files_failed", self._progress.failure)
        self.set_gauge("files_unchanged", self._progress.skipped)
