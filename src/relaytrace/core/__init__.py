"""Core layer: infrastructure shared by all relaytrace services.

Depends only on ``relaytrace.models`` and is depended upon by
``relaytrace.services``.

Attributes:
    Pool: Async PostgreSQL connection pool with retry/backoff.
        See [Pool][relaytrace.core.pool.Pool].
    Store: Database facade with typed bulk inserts over stored procedures.
        Services use [Store][relaytrace.core.store.Store], never
        [Pool][relaytrace.core.pool.Pool] directly.
    RunLock: Marker-file mutual exclusion for import runs.
    BaseService: Generic base class with lifecycle, factory methods and
        Prometheus metrics integration.
    Logger: Structured logger with key=value and JSON output modes.
    MetricsServer: Prometheus ``/metrics`` HTTP endpoint.

Examples:
    ```python
    from relaytrace.core import Store

    store = Store.from_yaml("config/store.yaml")
    async with store:
        await store.insert_status_entry(entries)
    ```
"""

from .base_service import (
    BaseService,
    BaseServiceConfig,
    ConfigT,
)
from .exceptions import (
    AddressIntegrityError,
    ConfigurationError,
    ConnectionPoolError,
    DatabaseError,
    DescriptorError,
    DescriptorParseError,
    ImportLockedError,
    QueryError,
    RelayTraceError,
)
from .lock import LOCK_STALE_AFTER, RunLock
from .logger import Logger, StructuredFormatter, format_kv_pairs
from .metrics import (
    CYCLE_DURATION_SECONDS,
    QUERY_DURATION_SECONDS,
    SERVICE_COUNTER,
    SERVICE_GAUGE,
    SERVICE_INFO,
    MetricsConfig,
    MetricsServer,
    start_metrics_server,
)
from .pool import (
    DatabaseConfig,
    Pool,
    PoolConfig,
    PoolLimitsConfig,
    PoolRetryConfig,
    PoolTimeoutsConfig,
    ServerSettingsConfig,
)
from .store import (
    BatchConfig,
    Store,
    StoreConfig,
    StoreTimeoutsConfig,
)
from .yaml import load_yaml


__all__ = [
    "CYCLE_DURATION_SECONDS",
    "LOCK_STALE_AFTER",
    "QUERY_DURATION_SECONDS",
    "SERVICE_COUNTER",
    "SERVICE_GAUGE",
    "SERVICE_INFO",
    "AddressIntegrityError",
    "BaseService",
    "BaseServiceConfig",
    "BatchConfig",
    "ConfigT",
    "ConfigurationError",
    "ConnectionPoolError",
    "DatabaseConfig",
    "DatabaseError",
    "DescriptorError",
    "DescriptorParseError",
    "ImportLockedError",
    "Logger",
    "MetricsConfig",
    "MetricsServer",
    "Pool",
    "PoolConfig",
    "PoolLimitsConfig",
    "PoolRetryConfig",
    "PoolTimeoutsConfig",
    "QueryError",
    "RelayTraceError",
    "RunLock",
    "ServerSettingsConfig",
    "Store",
    "StoreConfig",
    "StoreTimeoutsConfig",
    "StructuredFormatter",
    "format_kv_pairs",
    "load_yaml",
    "start_metrics_server",
]
