"""
Prometheus metrics collection and HTTP exposition.

Module-level metric objects are shared by every service in the process.
[BaseService.run_forever()][relaytrace.core.base_service.BaseService.run_forever]
records cycle counts, durations and failure streaks automatically; the
importer and the api add their own values through ``set_gauge()`` and
``inc_counter()``.

The ``MetricsServer`` serves the registry over aiohttp for scraping and is
configured by ``MetricsConfig``, embedded in every service's YAML.

Architecture:
    SERVICE_INFO:               Static metadata set once at startup.
    SERVICE_GAUGE:              Point-in-time values (current state).
    SERVICE_COUNTER:            Cumulative totals (monotonically increasing).
    CYCLE_DURATION_SECONDS:     Histogram of run cycle latency.
    QUERY_DURATION_SECONDS:     Histogram of lookup latency, by outcome.
"""

from __future__ import annotations

from aiohttp import web
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    Counter,
    Gauge,
    Histogram,
    Info,
    generate_latest,
)
from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class MetricsConfig(BaseModel):
    """Configuration for the Prometheus metrics endpoint.

    The endpoint is only started when ``enabled`` is True. Bind to
    ``0.0.0.0`` in containers so the scraper can reach it.
    """

    enabled: bool = Field(default=False, description="Enable metrics collection")
    port: int = Field(default=8000, ge=1024, le=65535, description="Metrics HTTP port")
    host: str = Field(default="127.0.0.1", description="Metrics HTTP bind address")
    path: str = Field(default="/metrics", description="Metrics endpoint path")


# ---------------------------------------------------------------------------
# Common Service Metrics (auto-tracked by BaseService.run_forever)
# ---------------------------------------------------------------------------

SERVICE_INFO = Info(
    "relaytrace_service",
    "Service information and metadata",
)

# An import cycle over a full day of archives can take many minutes
CYCLE_DURATION_SECONDS = Histogram(
    "relaytrace_cycle_duration_seconds",
    "Duration of service cycle in seconds",
    ["service"],
    buckets=(0.5, 1, 5, 15, 30, 60, 120, 300, 900, 1800, 3600),
)

QUERY_DURATION_SECONDS = Histogram(
    "relaytrace_query_duration_seconds",
    "Duration of a single address/date lookup in seconds",
    ["outcome"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10),
)


# ---------------------------------------------------------------------------
# Generic Label-Based Metrics (used by services via set_gauge/inc_counter)
#
# Automatic labels (BaseService.run_forever):
#   gauge:   consecutive_failures, last_cycle_timestamp
#   counter: cycles_success, cycles_failed, errors_{type}
#
# Service-specific labels (examples):
#   gauge:   {service="importer", name="files_pending"}
#   counter: {service="importer", name="status_entries_inserted"}
#   counter: {service="api", name="outcome_positive"}
# ---------------------------------------------------------------------------

SERVICE_GAUGE = Gauge(
    "relaytrace_service_gauge",
    "Service gauge values (point-in-time state)",
    ["service", "name"],
)

SERVICE_COUNTER = Counter(
    "relaytrace_service_counter",
    "Service counter values (cumulative totals)",
    ["service", "name"],
)


# ---------------------------------------------------------------------------
# HTTP Server
# ---------------------------------------------------------------------------


class MetricsServer:
    """Async HTTP server exposing the Prometheus registry.

    Example:
        server = MetricsServer(MetricsConfig(enabled=True, port=8001))
        await server.start()
        # ... service runs ...
        await server.stop()
    """

    def __init__(self, config: MetricsConfig) -> None:
        self._config = config
        self._runner: web.AppRunner | None = None

    async def start(self) -> None:
        """Bind the scrape endpoint. No-op when metrics are disabled.

        Raises:
            OSError: If the port is already in use or binding fails.
        """
        if not self._config.enabled:
            return

        app = web.Application()
        app.router.add_get(self._config.path, self._handle_metrics)

        self._runner = web.AppRunner(app, access_log=None)
        await self._runner.setup()

        site = web.TCPSite(self._runner, self._config.host, self._config.port)
        await site.start()

    async def stop(self) -> None:
        """Release the bound port. Safe to call when never started."""
        if self._runner:
            await self._runner.cleanup()
            self._runner = None

    @staticmethod
    async def _handle_metrics(_request: web.Request) -> web.Response:
        return web.Response(
            body=generate_latest(),
            headers={"Content-Type": CONTENT_TYPE_LATEST},
        )


async def start_metrics_server(config: MetricsConfig | None = None) -> MetricsServer:
    """Create and start a metrics server.

    Returns:
        The running server. The caller stops it during shutdown.
    """
    server = MetricsServer(config or MetricsConfig())
    await server.start()
    return server
