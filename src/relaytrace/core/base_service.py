"""
Abstract base class for relaytrace services.

``BaseService[ConfigT]`` gives the importer and the api the same lifecycle:
structured logging via [Logger][relaytrace.core.logger.Logger], graceful
shutdown via ``asyncio.Event``, interval-based cycling with
[run_forever()][relaytrace.core.base_service.BaseService.run_forever],
a consecutive failure limit, and Prometheus metrics.

Services keep no durable state in memory between cycles. The importer's
progress lives in its cursor file and everything else lives in the
[Store][relaytrace.core.store.Store].

See Also:
    [Store][relaytrace.core.store.Store]: Database interface injected into
        every service.
    [BaseServiceConfig][relaytrace.core.base_service.BaseServiceConfig]:
        Base configuration model for all services.
"""

from __future__ import annotations

import asyncio
import time
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, ClassVar, Generic, Self, TypeVar, cast

from pydantic import BaseModel, Field

from .logger import Logger
from .metrics import (
    CYCLE_DURATION_SECONDS,
    SERVICE_COUNTER,
    SERVICE_GAUGE,
    SERVICE_INFO,
    MetricsConfig,
)
from .yaml import load_yaml


if TYPE_CHECKING:
    from types import TracebackType

    from relaytrace.models.constants import ServiceName

    from .store import Store


# ---------------------------------------------------------------------------
# Base Configuration
# ---------------------------------------------------------------------------


class BaseServiceConfig(BaseModel):
    """Base configuration shared by all services that run in a loop.

    Subclass this to add service-specific fields.
    """

    interval: float = Field(
        default=300.0,
        ge=60.0,
        description="Seconds between run cycles",
    )
    max_consecutive_failures: int = Field(
        default=5,
        ge=0,
        description="Stop after this many consecutive errors (0 = unlimited)",
    )
    metrics: MetricsConfig = Field(
        default_factory=MetricsConfig,
        description="Prometheus metrics configuration",
    )


ConfigT = TypeVar("ConfigT", bound=BaseServiceConfig)


class BaseService(ABC, Generic[ConfigT]):
    """Abstract base class for all relaytrace services.

    Subclasses set ``SERVICE_NAME`` and ``CONFIG_CLASS`` and implement
    [run()][relaytrace.core.base_service.BaseService.run].

    Attributes:
        SERVICE_NAME: Service identifier used in logging and metrics labels.
        CONFIG_CLASS: Pydantic model used by the factory methods.
        _store: [Store][relaytrace.core.store.Store] database interface.
        _config: Typed service configuration (defaults from ``CONFIG_CLASS``).
        _logger: [Logger][relaytrace.core.logger.Logger] named after the service.
        _shutdown_event: Clear while running; set once shutdown is requested.

    Note:
        The lifecycle is ``async with store:`` then ``async with service:``
        then either
        [run_forever()][relaytrace.core.base_service.BaseService.run_forever]
        or a single [run()][relaytrace.core.base_service.BaseService.run]
        with ``--once``.
    """

    SERVICE_NAME: ClassVar[ServiceName]
    CONFIG_CLASS: ClassVar[type[BaseModel]]

    def __init__(self, store: Store, config: ConfigT | None = None) -> None:
        self._store = store
        self._config: ConfigT = (
            config if config is not None else cast("ConfigT", self.CONFIG_CLASS())
        )
        self._logger = Logger(self.SERVICE_NAME)
        self._shutdown_event = asyncio.Event()

    @property
    def config(self) -> ConfigT:
        """The typed service configuration (read-only)."""
        return self._config

    @abstractmethod
    async def run(self) -> None:
        """Execute one bounded cycle of the service's work."""
        ...

    def request_shutdown(self) -> None:
        """Request a graceful shutdown. Safe to call from signal handlers."""
        self._shutdown_event.set()

    @property
    def is_running(self) -> bool:
        """Whether the service is still active (shutdown not yet requested)."""
        return not self._shutdown_event.is_set()

    async def wait(self, timeout: float) -> bool:  # noqa: ASYNC109
        """Wait for a shutdown signal or for ``timeout`` seconds.

        Returns:
            ``True`` if shutdown was requested during the wait, ``False``
            if the timeout expired.
        """
        try:
            await asyncio.wait_for(self._shutdown_event.wait(), timeout=timeout)
            return True
        except TimeoutError:
            return False

    async def run_forever(self) -> None:
        """Call [run()][relaytrace.core.base_service.BaseService.run] every
        ``config.interval`` seconds until shutdown.

        This is the error boundary for cycles: an exception from ``run()``
        is logged and counted, and the loop continues until
        ``config.max_consecutive_failures`` failures happen in a row
        (``0`` disables the limit). A successful cycle resets the streak.
        ``CancelledError``, ``KeyboardInterrupt`` and ``SystemExit`` always
        propagate.

        Metrics recorded: ``cycles_success``, ``cycles_failed`` and
        ``errors_{ExceptionType}`` counters; ``consecutive_failures`` and
        ``last_cycle_timestamp`` gauges; ``CYCLE_DURATION_SECONDS``.
        """
        interval = self._config.interval
        max_consecutive_failures = self._config.max_consecutive_failures
        metrics_enabled = self._config.metrics.enabled

        if metrics_enabled:
            SERVICE_INFO.info({"service": self.SERVICE_NAME})

        self._logger.info(
            "run_forever_started",
            interval=interval,
            max_consecutive_failures=max_consecutive_failures,
        )

        consecutive_failures = 0

        while self.is_running:
            cycle_start = time.monotonic()

            try:
                await self.run()

                duration = time.monotonic() - cycle_start
                self.inc_counter("cycles_success")
                if metrics_enabled:
                    CYCLE_DURATION_SECONDS.labels(service=self.SERVICE_NAME).observe(duration)
                self.set_gauge("last_cycle_timestamp", time.time())
                self.set_gauge("consecutive_failures", 0)

                consecutive_failures = 0
                self._logger.info(
                    "cycle_completed", duration_s=round(duration, 3), next_cycle_s=interval
                )

            except (asyncio.CancelledError, KeyboardInterrupt, SystemExit):
                raise

            except Exception as e:  # Intentionally broad: top-level error boundary for run_forever
                consecutive_failures += 1

                self.inc_counter("cycles_failed")
                self.set_gauge("consecutive_failures", consecutive_failures)
                self.inc_counter(f"errors_{type(e).__name__}")

                self._logger.error(
                    "run_cycle_error",
                    error=str(e),
                    error_type=type(e).__name__,
                    consecutive_failures=consecutive_failures,
                )

                if (
                    max_consecutive_failures > 0
                    and consecutive_failures >= max_consecutive_failures
                ):
                    self._logger.critical(
                        "max_consecutive_failures_reached",
                        failures=consecutive_failures,
                        limit=max_consecutive_failures,
                    )
                    break

            if await self.wait(interval):
                break

        self._logger.info("run_forever_stopped")

    # -------------------------------------------------------------------------
    # Factory Methods
    # -------------------------------------------------------------------------

    @classmethod
    def from_yaml(cls, config_path: str, store: Store, **kwargs: Any) -> Self:
        """Create a service from a YAML configuration file."""
        return cls.from_dict(load_yaml(config_path), store=store, **kwargs)

    @classmethod
    def from_dict(cls, data: dict[str, Any], store: Store, **kwargs: Any) -> Self:
        """Create a service by parsing ``data`` into ``CONFIG_CLASS``."""
        config = cast("ConfigT", cls.CONFIG_CLASS(**data))
        return cls(store=store, config=config, **kwargs)

    # -------------------------------------------------------------------------
    # Context Manager
    # -------------------------------------------------------------------------

    async def __aenter__(self) -> Self:
        self._shutdown_event.clear()
        self._logger.info("service_started")
        return self

    async def __aexit__(
        self,
        _exc_type: type[BaseException] | None,
        _exc_val: BaseException | None,
        _exc_tb: TracebackType | None,
    ) -> None:
        self._shutdown_event.set()
        self._logger.info("service_stopped")

    # -------------------------------------------------------------------------
    # Custom Metrics
    # -------------------------------------------------------------------------

    def set_gauge(self, name: str, value: float) -> None:
        """Set a named gauge for this service. No-op if metrics are disabled."""
        if not self._config.metrics.enabled:
            return
        SERVICE_GAUGE.labels(service=self.SERVICE_NAME, name=name).set(value)

    def inc_counter(self, name: str, value: float = 1) -> None:
        """Increment a named counter for this service. No-op if metrics are disabled."""
        if not self._config.metrics.enabled:
            return
        SERVICE_COUNTER.labels(service=self.SERVICE_NAME, name=name).inc(value)
