"""Descriptor importer service for relaytrace.

Turns a local directory of consensuses and exit lists into stored status
entry and exit probe facts, importing each file once per modification.

Each run proceeds as follows:

1. Acquire the [RunLock][relaytrace.core.lock.RunLock] and load the
   [ImportCursor][relaytrace.services.importer.cursor.ImportCursor].
2. Enumerate regular files under ``import_dir``, recursively and sorted.
3. Skip files the cursor records as unchanged.
4. Parse each changed file in a worker thread and convert its records to
   facts (Running status entries, exit probes).
5. Insert the facts in batches through the
   [Store][relaytrace.core.store.Store].
6. Save the next cursor: unchanged entries plus processed files.

Note:
    Inserts are idempotent (``ON CONFLICT DO NOTHING``), so reimporting a
    file, for example after a lost cursor, never duplicates facts. A
    storage error aborts the run; the cursor is still saved with the files
    that completed, then the error propagates. A file that cannot be read
    is logged and left out of the cursor so the next run retries it.

Examples:
    ```python
    from relaytrace.core import Store
    from relaytrace.services import Importer

    store = Store.from_yaml("config/store.yaml")
    importer = Importer.from_yaml("config/services/importer.yaml", store=store)

    async with store:
        async with importer:
            await importer.run()
    ```
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, ClassVar

from relaytrace.core.base_service import BaseService
from relaytrace.core.lock import RunLock
from relaytrace.models.constants import ServiceName
from relaytrace.services.common.mixins import BatchProgressMixin
from relaytrace.services.common.queries import insert_exit_probes, insert_status_entries

from .configs import ImporterConfig
from .cursor import ImportCursor
from .utils import SourceFile, load_file_facts, scan_import_dir


if TYPE_CHECKING:
    from relaytrace.core.store import Store


class Importer(BatchProgressMixin, BaseService[ImporterConfig]):
    """Incremental, restart-safe descriptor importer.

    See Also:
        [ImporterConfig][relaytrace.services.importer.ImporterConfig]:
            Configuration model for this service.
        [lookup][relaytrace.services.query.lookup]: The query engine that
            reads the facts stored here.
    """

    SERVICE_NAME: ClassVar[ServiceName] = ServiceName.IMPORTER
    CONFIG_CLASS: ClassVar[type[ImporterConfig]] = ImporterConfig

    def __init__(self, store: Store, config: ImporterConfig | None = None) -> None:
        super().__init__(store=store, config=config)
        self._config: ImporterConfig
        self._init_progress()

    async def run(self) -> None:
        """Execute one import run over the whole import directory.

        Raises:
            ImportLockedError: If another run holds a fresh lock marker.
            AddressIntegrityError: In strict mode, on an address that cannot
                be canonicalized.
            asyncpg.PostgresError: On storage failures.
            ConnectionError: If the database is unreachable.
        """
        self._progress.reset()
        config = self._config

        with RunLock(config.lock_path, stale_after=config.lock_stale_after):
            if not config.import_dir.is_dir():
                self._logger.warning("import_dir_missing", path=str(config.import_dir))
                return

            cursor = ImportCursor.load(config.cursor_path)
            files = await asyncio.to_thread(scan_import_dir, config.import_dir)
            self._progress.total = len(files)

            unchanged: dict[str, int] = {}
            pending: list[SourceFile] = []
            for source in files:
                if cursor.is_unchanged(source.name, source.mtime_ms):
                    unchanged[source.name] = cursor[source.name]
                else:
                    pending.append(source)
            self._progress.skipped = len(unchanged)

            self._logger.info(
                "import_started",
                files=len(files),
                pending=len(pending),
                unchanged=len(unchanged),
            )

            completed: dict[str, int] = {}
            try:
                for source in pending:
                    if not self.is_running:
                        remaining = len(pending) - self._progress.processed
                        self._logger.info("import_interrupted", remaining=remaining)
                        break
                    try:
                        imported = await self._import_file(source)
                    except Exception:
                        self._progress.failure += 1
                        self._progress.processed += 1
                        raise
                    self._progress.processed += 1
                    if not imported:
                        self._progress.failure += 1
                        continue
                    self._progress.success += 1
                    completed[source.name] = source.mtime_ms
            finally:
                ImportCursor(unchanged).merge(completed).save(config.cursor_path)
                self.inc_counter("files_skipped", self._progress.skipped)
                self.emit_progress_metrics()

        self._logger.info(
            "import_completed",
            imported=self._progress.success,
            unchanged=self._progress.skipped,
            duration_s=self._progress.elapsed,
        )

    async def _import_file(self, source: SourceFile) -> bool:
        """Parse one file and store its facts.

        Returns:
            ``False`` if the file could not be read, so it stays out of the
            cursor and is retried next run; ``True`` otherwise.
        """
        try:
            facts = await asyncio.to_thread(
                load_file_facts, source.path, strict=self._config.strict_addresses
            )
        except OSError as e:
            self._logger.error("file_read_failed", file=source.name, error=str(e))
            self.inc_counter("files_unreadable")
            return False

        if facts.descriptor_type is None:
            self._logger.warning("file_unrecognized", file=source.name)
            self.inc_counter("files_unrecognized")
            return True

        for index, error in facts.parse_errors:
            self._logger.warning(
                "record_parse_failed", file=source.name, record=index, error=str(error)
            )
        if facts.parse_errors:
            self.inc_counter("records_failed", len(facts.parse_errors))
        if facts.dropped:
            self.inc_counter("entries_dropped", facts.dropped)

        status_inserted = await insert_status_entries(self._store, facts.status_entries)
        probes_inserted = await insert_exit_probes(self._store, facts.exit_probes)

        self.inc_counter("files_processed")
        self.inc_counter("status_entries_inserted", status_inserted)
        self.inc_counter("exit_probes_inserted", probes_inserted)
        self._logger.info(
            "file_imported",
            file=source.name,
            type=facts.descriptor_type,
            status_entries=len(facts.status_entries),
            exit_probes=len(facts.exit_probes),
            status_inserted=status_inserted,
            probes_inserted=probes_inserted,
            parse_errors=len(facts.parse_errors),
            dropped=facts.dropped,
        )
        return True
