"""
High-level database interface built on stored procedures.

Provides typed bulk-insert wrappers for the two fact kinds the importer
produces ([StatusEntry][relaytrace.models.status_entry.StatusEntry] and
[ExitProbe][relaytrace.models.exit_probe.ExitProbe]) plus a generic query
facade used by ``services/common/queries.py``.

Bulk inserts pass one array per column so an entire batch is a single
round-trip. The procedures insert with ``ON CONFLICT DO NOTHING``, which
makes re-importing an already-stored fact a no-op.

Uses composition with [Pool][relaytrace.core.pool.Pool] for connection
management and implements an async context manager for the pool lifecycle.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import asyncpg  # noqa: TC002
from pydantic import BaseModel, Field, field_validator

from .logger import Logger
from .pool import Pool, PoolConfig
from .yaml import load_yaml


_MIN_TIMEOUT_SECONDS = 0.1  # Floor for all configurable timeouts


if TYPE_CHECKING:
    from collections.abc import Sequence

    from relaytrace.models import ExitProbe, StatusEntry


# ---------------------------------------------------------------------------
# Configuration Models
# ---------------------------------------------------------------------------


class BatchConfig(BaseModel):
    """Maximum number of rows per bulk insert call."""

    max_size: int = Field(
        default=5000, ge=1, le=100_000, description="Maximum rows per batch operation"
    )


class StoreTimeoutsConfig(BaseModel):
    """Timeout settings for Store operations (in seconds, None = no limit)."""

    query: float | None = Field(default=60.0, description="Query timeout (seconds, None=infinite)")
    batch: float | None = Field(
        default=120.0, description="Batch insert timeout (seconds, None=infinite)"
    )

    @field_validator("query", "batch", mode="after")
    @classmethod
    def validate_timeout(cls, v: float | None) -> float | None:
        """Validate timeout: None (infinite) or >= 0.1 seconds."""
        if v is not None and v < _MIN_TIMEOUT_SECONDS:
            raise ValueError(
                f"Timeout must be None (infinite) or >= {_MIN_TIMEOUT_SECONDS} seconds"
            )
        return v


class StoreConfig(BaseModel):
    """Aggregate configuration for the Store database interface."""

    batch: BatchConfig = Field(default_factory=BatchConfig)
    timeouts: StoreTimeoutsConfig = Field(default_factory=StoreTimeoutsConfig)


# ---------------------------------------------------------------------------
# Store Class
# ---------------------------------------------------------------------------


class Store:
    """Database facade for relay facts.

    Typed insert methods accept validated model instances and call the
    ``status_entry_insert`` / ``exit_probe_insert`` procedures from
    ``sql/init.sql``. Read queries live in ``services/common/queries.py``
    and go through the generic ``fetch*`` facade.

    Example:
        store = Store.from_yaml("config/store.yaml")

        async with store:
            await store.insert_status_entry(entries)
            await store.insert_exit_probe(probes)
    """

    def __init__(
        self,
        pool: Pool | None = None,
        config: StoreConfig | None = None,
    ) -> None:
        """Initialize the database interface.

        Args:
            pool: Connection pool. A default Pool is created if omitted.
            config: Batch sizes and timeouts. Defaults if omitted.
        """
        self._pool = pool or Pool()
        self._config = config or StoreConfig()
        self._logger = Logger("store")

    @property
    def config(self) -> StoreConfig:
        """The Store configuration (read-only)."""
        return self._config

    @property
    def pool_config(self) -> PoolConfig:
        """Read-only access to the underlying pool configuration."""
        return self._pool.config

    @classmethod
    def from_yaml(cls, config_path: str) -> Store:
        """Create a Store from a YAML file with a ``pool`` key and optional
        ``batch``/``timeouts`` keys."""
        return cls.from_dict(load_yaml(config_path))

    @classmethod
    def from_dict(cls, config_dict: dict[str, Any]) -> Store:
        """Create a Store from a configuration dictionary.

        The ``pool`` key builds the Pool; the remaining keys become
        [StoreConfig][relaytrace.core.store.StoreConfig] fields.
        """
        pool = None
        if "pool" in config_dict:
            pool = Pool.from_dict(config_dict["pool"])

        store_config_dict = {k: v for k, v in config_dict.items() if k != "pool"}
        config = StoreConfig(**store_config_dict) if store_config_dict else None

        return cls(pool=pool, config=config)

    # -------------------------------------------------------------------------
    # Helper Methods
    # -------------------------------------------------------------------------

    def _validate_batch_size(self, batch: Sequence[Any], operation: str) -> None:
        """Raise ValueError if batch exceeds the configured maximum size."""
        if len(batch) > self._config.batch.max_size:
            max_size = self._config.batch.max_size
            raise ValueError(f"{operation} batch size ({len(batch)}) exceeds maximum ({max_size})")

    def _transpose_to_columns(self, params: Sequence[tuple[Any, ...]]) -> tuple[list[Any], ...]:
        """Transpose row tuples into column lists for array-parameter procedures.

        Raises:
            ValueError: If rows have differing lengths.
        """
        if not params:
            return ()

        expected_len = len(params[0])
        for i, row in enumerate(params):
            if len(row) != expected_len:
                raise ValueError(f"Row {i} has {len(row)} columns, expected {expected_len}")

        return tuple(list(col) for col in zip(*params, strict=True))

    # -------------------------------------------------------------------------
    # Generic Query Facade
    # -------------------------------------------------------------------------

    async def fetch(
        self,
        query: str,
        *args: Any,
        timeout: float | None = None,  # noqa: ASYNC109
    ) -> list[asyncpg.Record]:
        """Execute a query and return all rows (default timeout: ``timeouts.query``)."""
        t = timeout if timeout is not None else self._config.timeouts.query
        return await self._pool.fetch(query, *args, timeout=t)

    async def fetchrow(
        self,
        query: str,
        *args: Any,
        timeout: float | None = None,  # noqa: ASYNC109
    ) -> asyncpg.Record | None:
        """Execute a query and return the first row (default timeout: ``timeouts.query``)."""
        t = timeout if timeout is not None else self._config.timeouts.query
        return await self._pool.fetchrow(query, *args, timeout=t)

    # -------------------------------------------------------------------------
    # Insert Operations
    # -------------------------------------------------------------------------

    async def insert_status_entry(self, records: list[StatusEntry]) -> int:
        """Bulk-insert status entries, one row per (entry, address).

        The batch limit applies to the expanded rows, since that is what
        reaches the procedure.

        Returns:
            Number of new rows inserted (already stored rows are skipped).

        Raises:
            asyncpg.PostgresError: On database errors.
            ValueError: If the expanded batch exceeds the configured maximum.
        """
        if not records:
            return 0

        params = [row for entry in records for row in entry.to_db_params()]
        self._validate_batch_size(params, "insert_status_entry")
        columns = self._transpose_to_columns(params)

        async with self._pool.transaction() as conn:
            inserted: int = (
                await conn.fetchval(
                    "SELECT status_entry_insert($1, $2, $3, $4, $5, $6, $7)",
                    *columns,
                    timeout=self._config.timeouts.batch,
                )
                or 0
            )

        self._logger.debug("status_entry_inserted", count=inserted, attempted=len(params))
        return inserted

    async def insert_exit_probe(self, records: list[ExitProbe]) -> int:
        """Bulk-insert exit probes.

        Returns:
            Number of new probes inserted (already stored probes are skipped).

        Raises:
            asyncpg.PostgresError: On database errors.
            ValueError: If the batch exceeds the configured maximum size.
        """
        if not records:
            return 0

        self._validate_batch_size(records, "insert_exit_probe")

        params = [probe.to_db_params() for probe in records]
        columns = self._transpose_to_columns(params)

        async with self._pool.transaction() as conn:
            inserted: int = (
                await conn.fetchval(
                    "SELECT exit_probe_insert($1, $2, $3, $4, $5)",
                    *columns,
                    timeout=self._config.timeouts.batch,
                )
                or 0
            )

        self._logger.debug("exit_probe_inserted", count=inserted, attempted=len(params))
        return inserted

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def connect(self) -> None:
        """Connect the underlying pool. Idempotent."""
        await self._pool.connect()
        self._logger.debug("session_started")

    async def close(self) -> None:
        """Close the underlying pool. Idempotent."""
        self._logger.debug("session_ending")
        await self._pool.close()

    async def __aenter__(self) -> Store:
        await self.connect()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    def __repr__(self) -> str:
        db = self._pool.config.database
        return f"Store(host={db.host}, database={db.database}, connected={self._pool.is_connected})"
