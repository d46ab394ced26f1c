"""
Async PostgreSQL connection pool built on asyncpg.

Manages a pool of connections with configurable size limits, retry with
exponential backoff while connecting, and transactional context managers.

Query methods ([fetch()][relaytrace.core.pool.Pool.fetch],
[fetchrow()][relaytrace.core.pool.Pool.fetchrow]) retry on transient
connection errors (``InterfaceError``, ``ConnectionDoesNotExistError``) and
raise [ConnectionPoolError][relaytrace.core.exceptions.ConnectionPoolError]
once attempts are exhausted. Query-level errors such as syntax errors or
constraint violations propagate immediately.

Examples:
    ```python
    pool = Pool.from_dict({"database": {"host": "db"}})

    async with pool:
        row = await pool.fetchrow("SELECT MIN(valid_after) AS first FROM status_entry")
    ```
"""

from __future__ import annotations

import asyncio
import os
from collections.abc import AsyncIterator  # noqa: TC003
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from typing import Any, Literal, cast

import asyncpg
from pydantic import BaseModel, Field, SecretStr, ValidationInfo, field_validator, model_validator

from .exceptions import ConnectionPoolError
from .logger import Logger
from .yaml import load_yaml


_DEFAULT_PASSWORD_ENV = "DB_PASSWORD"  # pragma: allowlist secret


# ---------------------------------------------------------------------------
# Configuration Models
# ---------------------------------------------------------------------------


class DatabaseConfig(BaseModel):
    """PostgreSQL connection parameters.

    The password is never read from configuration files. It is loaded from
    the environment variable named by ``password_env`` (default:
    ``DB_PASSWORD``) and kept as a ``SecretStr``.
    """

    host: str = Field(default="localhost", min_length=1, description="Database hostname")
    port: int = Field(default=5432, ge=1, le=65535, description="Database port")
    database: str = Field(default="relaytrace", min_length=1, description="Database name")
    user: str = Field(default="relaytrace", min_length=1, description="Database user")
    password_env: str = Field(
        default=_DEFAULT_PASSWORD_ENV,
        min_length=1,
        description="Environment variable name for database password",
    )
    password: SecretStr = Field(description="Database password (loaded from password_env)")

    @model_validator(mode="before")
    @classmethod
    def resolve_password(cls, data: Any) -> Any:
        """Resolve the database password from the environment variable."""
        if isinstance(data, dict) and "password" not in data:
            env_var = data.get("password_env", _DEFAULT_PASSWORD_ENV)
            value = os.getenv(env_var)
            if not value:
                raise ValueError(f"{env_var} environment variable not set")
            data["password"] = SecretStr(value)
        return data


class PoolLimitsConfig(BaseModel):
    """Connection pool size and recycling limits."""

    min_size: int = Field(default=1, ge=1, le=100, description="Minimum connections")
    max_size: int = Field(default=10, ge=1, le=200, description="Maximum connections")
    max_queries: int = Field(default=50_000, ge=100, description="Queries before recycling")
    max_inactive_connection_lifetime: float = Field(
        default=300.0, ge=0.0, description="Idle timeout (seconds)"
    )

    @field_validator("max_size")
    @classmethod
    def validate_max_size(cls, v: int, info: ValidationInfo) -> int:
        """Ensure max_size >= min_size."""
        min_size = info.data.get("min_size", 1)
        if v < min_size:
            raise ValueError(f"max_size ({v}) must be >= min_size ({min_size})")
        return v


class PoolTimeoutsConfig(BaseModel):
    """Timeout settings for pool operations (in seconds)."""

    acquisition: float = Field(default=10.0, ge=0.1, description="Connection acquisition timeout")


class PoolRetryConfig(BaseModel):
    """Backoff strategy for connection attempts and transient query failures.

    Exponential backoff doubles the delay each attempt
    (``initial_delay * 2^attempt``) while linear backoff grows it by
    ``initial_delay`` per attempt. Both are capped at ``max_delay``.
    """

    max_attempts: int = Field(default=3, ge=1, le=10, description="Max retry attempts")
    initial_delay: float = Field(default=1.0, ge=0.1, description="Initial retry delay")
    max_delay: float = Field(default=10.0, ge=0.1, description="Maximum retry delay")
    exponential_backoff: bool = Field(default=True, description="Use exponential backoff")

    @field_validator("max_delay")
    @classmethod
    def validate_max_delay(cls, v: float, info: ValidationInfo) -> float:
        """Ensure max_delay >= initial_delay."""
        initial_delay = info.data.get("initial_delay", 1.0)
        if v < initial_delay:
            raise ValueError(f"max_delay ({v}) must be >= initial_delay ({initial_delay})")
        return v


class ServerSettingsConfig(BaseModel):
    """PostgreSQL session settings applied to every pooled connection.

    ``statement_timeout`` is in milliseconds and acts as a server-side
    safety net, distinct from the client-side per-query ``timeout``.
    """

    application_name: str = Field(default="relaytrace", description="Application name")
    timezone: str = Field(default="UTC", description="Timezone")
    statement_timeout: int = Field(
        default=300_000, ge=0, description="Max query execution time in milliseconds (0=unlimited)"
    )


class PoolConfig(BaseModel):
    """Aggregate configuration for the connection pool."""

    database: DatabaseConfig = Field(default_factory=lambda: DatabaseConfig.model_validate({}))
    limits: PoolLimitsConfig = Field(default_factory=PoolLimitsConfig)
    timeouts: PoolTimeoutsConfig = Field(default_factory=PoolTimeoutsConfig)
    retry: PoolRetryConfig = Field(default_factory=PoolRetryConfig)
    server_settings: ServerSettingsConfig = Field(default_factory=ServerSettingsConfig)


# ---------------------------------------------------------------------------
# Pool Class
# ---------------------------------------------------------------------------


class Pool:
    """Async PostgreSQL connection pool manager.

    Wraps ``asyncpg.Pool`` with retry logic and transactional context
    managers. The pool is created disconnected; call
    [connect()][relaytrace.core.pool.Pool.connect] or use it as an async
    context manager.

    Note:
        Services never use ``Pool`` directly. They go through
        [Store][relaytrace.core.store.Store], which owns a private pool and
        exposes typed insert methods plus a generic query facade.
    """

    def __init__(self, config: PoolConfig | None = None) -> None:
        self._config = config or PoolConfig()
        self._pool: asyncpg.Pool[asyncpg.Record] | None = None
        self._is_connected: bool = False
        self._connection_lock = asyncio.Lock()
        self._logger = Logger("pool")

    @classmethod
    def from_yaml(cls, config_path: str) -> Pool:
        """Create a Pool from a YAML configuration file (not yet connected)."""
        return cls.from_dict(load_yaml(config_path))

    @classmethod
    def from_dict(cls, config_dict: dict[str, Any]) -> Pool:
        """Create a Pool from a dictionary matching [PoolConfig][relaytrace.core.pool.PoolConfig]."""
        return cls(config=PoolConfig(**config_dict))

    def _retry_delay(self, attempt: int) -> float:
        """Compute the backoff delay for the given zero-based attempt."""
        retry = self._config.retry
        if retry.exponential_backoff:
            delay = retry.initial_delay * (2**attempt)
        else:
            delay = retry.initial_delay * (attempt + 1)
        return float(min(delay, retry.max_delay))

    # -------------------------------------------------------------------------
    # Connection Lifecycle
    # -------------------------------------------------------------------------

    async def connect(self) -> None:
        """Create the asyncpg pool, retrying with backoff on failure.

        Idempotent and guarded by a lock against concurrent creation.

        Raises:
            ConnectionPoolError: If all attempts are exhausted.
        """
        async with self._connection_lock:
            if self._is_connected:
                return

            db = self._config.database
            settings = self._config.server_settings
            self._logger.info(
                "connection_starting", host=db.host, port=db.port, database=db.database
            )

            for attempt in range(self._config.retry.max_attempts):
                try:
                    self._pool = await asyncpg.create_pool(
                        host=db.host,
                        port=db.port,
                        database=db.database,
                        user=db.user,
                        password=db.password.get_secret_value(),
                        min_size=self._config.limits.min_size,
                        max_size=self._config.limits.max_size,
                        max_queries=self._config.limits.max_queries,
                        max_inactive_connection_lifetime=self._config.limits.max_inactive_connection_lifetime,
                        timeout=self._config.timeouts.acquisition,
                        server_settings={
                            "application_name": settings.application_name,
                            "timezone": settings.timezone,
                            "statement_timeout": str(settings.statement_timeout),
                        },
                    )
                    self._is_connected = True
                    self._logger.info("connection_established")
                    return

                except (asyncpg.PostgresError, OSError) as e:
                    if attempt + 1 >= self._config.retry.max_attempts:
                        self._logger.error("connection_failed", attempts=attempt + 1, error=str(e))
                        raise ConnectionPoolError(
                            f"Failed to connect after {attempt + 1} attempts: {e}"
                        ) from e

                    delay = self._retry_delay(attempt)
                    self._logger.warning(
                        "connection_retry", attempt=attempt + 1, delay=delay, error=str(e)
                    )
                    await asyncio.sleep(delay)

    async def close(self) -> None:
        """Close the pool and release all connections. Idempotent."""
        async with self._connection_lock:
            if self._pool is not None:
                try:
                    await self._pool.close()
                    self._logger.info("connection_closed")
                finally:
                    self._pool = None
                    self._is_connected = False

    # -------------------------------------------------------------------------
    # Connection Acquisition
    # -------------------------------------------------------------------------

    def acquire(self) -> AbstractAsyncContextManager[asyncpg.Connection[asyncpg.Record]]:
        """Acquire a connection, returned to the pool when the context exits.

        Raises:
            RuntimeError: If the pool has not been connected yet.
        """
        if not self._is_connected or self._pool is None:
            raise RuntimeError("Pool not connected. Call connect() first.")
        return cast(
            "AbstractAsyncContextManager[asyncpg.Connection[asyncpg.Record]]",
            self._pool.acquire(),
        )

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[asyncpg.Connection[asyncpg.Record]]:
        """Acquire a connection inside a transaction.

        Commits on normal exit and rolls back if an exception propagates.
        """
        async with self.acquire() as conn, conn.transaction():
            yield conn

    # -------------------------------------------------------------------------
    # Query Methods (with retry for transient connection errors)
    # -------------------------------------------------------------------------

    async def _execute_with_retry(
        self,
        operation: Literal["fetch", "fetchrow"],
        query: str,
        args: tuple[Any, ...],
        timeout: float | None,  # noqa: ASYNC109
    ) -> Any:
        """Run an asyncpg connection method, retrying on dropped connections.

        Every attempt acquires a fresh connection so a broken socket is not
        reused.

        Raises:
            ConnectionPoolError: If the connection keeps failing.
        """
        max_attempts = self._config.retry.max_attempts

        for attempt in range(max_attempts):
            try:
                async with self.acquire() as conn:
                    method = getattr(conn, operation)
                    return await method(query, *args, timeout=timeout)
            except (asyncpg.InterfaceError, asyncpg.ConnectionDoesNotExistError) as e:
                if attempt + 1 >= max_attempts:
                    self._logger.error(
                        "query_failed", operation=operation, attempts=max_attempts, error=str(e)
                    )
                    raise ConnectionPoolError(
                        f"{operation} failed after {max_attempts} attempts: {e}"
                    ) from e
                delay = self._retry_delay(attempt)
                self._logger.warning(
                    "query_retry",
                    operation=operation,
                    attempt=attempt + 1,
                    delay_s=delay,
                    error=str(e),
                )
                await asyncio.sleep(delay)

        raise RuntimeError("Unexpected state in _execute_with_retry")

    async def fetch(
        self,
        query: str,
        *args: Any,
        timeout: float | None = None,  # noqa: ASYNC109
    ) -> list[asyncpg.Record]:
        """Execute a query and return all rows (empty list if none match)."""
        result = await self._execute_with_retry("fetch", query, args, timeout)
        return cast("list[asyncpg.Record]", result)

    async def fetchrow(
        self,
        query: str,
        *args: Any,
        timeout: float | None = None,  # noqa: ASYNC109
    ) -> asyncpg.Record | None:
        """Execute a query and return the first row, or None."""
        result = await self._execute_with_retry("fetchrow", query, args, timeout)
        return cast("asyncpg.Record | None", result)

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def is_connected(self) -> bool:
        """Whether the pool has an active connection to the database."""
        return self._is_connected

    @property
    def config(self) -> PoolConfig:
        """The pool configuration (read-only)."""
        return self._config

    # -------------------------------------------------------------------------
    # Context Manager
    # -------------------------------------------------------------------------

    async def __aenter__(self) -> Pool:
        await self.connect()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any | None,
    ) -> None:
        await self.close()

    def __repr__(self) -> str:
        db = self._config.database
        return f"Pool(host={db.host}, database={db.database}, connected={self._is_connected})"
