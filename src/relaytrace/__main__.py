"""CLI entry point for relaytrace services.

Runs the importer or the HTTP api in one-shot mode (``--once``) or
continuously with a Prometheus metrics server.

Examples:
    ```bash
    python -m relaytrace <service> [options]
    python -m relaytrace importer --once
    python -m relaytrace api --log-level DEBUG
    python -m relaytrace importer --config config/services/importer.yaml
    ```
"""

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path
from typing import Any, NamedTuple

from relaytrace.core import Store, start_metrics_server
from relaytrace.core.base_service import BaseService
from relaytrace.core.logger import Logger, StructuredFormatter
from relaytrace.core.yaml import load_yaml
from relaytrace.models.constants import ServiceName
from relaytrace.services.api import Api
from relaytrace.services.importer import Importer


CONFIG_BASE = Path("config")
CORE_CONFIG = CONFIG_BASE / "store.yaml"


class ServiceEntry(NamedTuple):
    """Registry entry mapping a service to its class and default config path."""

    cls: type[BaseService[Any]]
    config_path: Path


SERVICE_REGISTRY: dict[str, ServiceEntry] = {
    ServiceName.IMPORTER: ServiceEntry(Importer, CONFIG_BASE / "services" / "importer.yaml"),
    ServiceName.API: ServiceEntry(Api, CONFIG_BASE / "services" / "api.yaml"),
}

logger = Logger("cli")


async def run_service(
    service_name: str,
    service_class: type[BaseService[Any]],
    store: Store,
    service_dict: dict[str, Any],
    *,
    once: bool,
) -> int:
    """Run a service in one-shot or continuous mode.

    In one-shot mode the service runs a single cycle and exits; this is
    how the importer is usually scheduled (cron, systemd timer). In
    continuous mode a metrics server is started and the service runs
    until a shutdown signal is received.

    Returns:
        Exit code: 0 for success, 1 for failure.
    """
    if service_dict:
        service = service_class.from_dict(service_dict, store=store)
    else:
        service = service_class(store=store)

    # One-shot mode: single cycle, no metrics server
    if once:
        try:
            async with service:
                await service.run()
            logger.info(f"{service_name}_completed")
            return 0
        except Exception as e:  # Intentionally broad: CLI error boundary for one-shot mode
            logger.error(f"{service_name}_failed", error=str(e), error_type=type(e).__name__)
            return 1

    # Continuous mode: metrics server + indefinite operation
    metrics_config = service.config.metrics
    metrics_server = await start_metrics_server(metrics_config)

    if metrics_config.enabled:
        logger.info(
            "metrics_server_started",
            host=metrics_config.host,
            port=metrics_config.port,
            path=metrics_config.path,
        )

    def handle_signal(sig: signal.Signals) -> None:
        logger.info("shutdown_signal", signal=sig.name)
        service.request_shutdown()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, handle_signal, sig)

    try:
        async with service:
            await service.run_forever()
        return 0
    except Exception as e:  # Intentionally broad: CLI error boundary for continuous mode
        logger.error(f"{service_name}_failed", error=str(e))
        return 1
    finally:
        await metrics_server.stop()
        if metrics_config.enabled:
            logger.info("metrics_server_stopped")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments for the service runner."""
    parser = argparse.ArgumentParser(
        prog="relaytrace",
        description="relaytrace service runner",
    )

    parser.add_argument(
        "service",
        choices=list(SERVICE_REGISTRY.keys()),
        help="Service to run",
    )

    parser.add_argument(
        "--config",
        type=Path,
        help="Service config path (default: config/services/<service>.yaml)",
    )

    parser.add_argument(
        "--store-config",
        type=Path,
        default=CORE_CONFIG,
        help=f"Store config path (default: {CORE_CONFIG})",
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Log level (default: INFO)",
    )

    parser.add_argument(
        "--once",
        action="store_true",
        help="Run once and exit (default: run continuously)",
    )

    return parser.parse_args(argv)


def setup_logging(level: str) -> None:
    """Install a ``StructuredFormatter`` on the root handler.

    Output from ``Logger`` and from plain ``logging.getLogger()`` calls in
    the models, descriptors and query layers shares one
    ``level name message key=value ...`` format.
    """
    handler = logging.StreamHandler()
    handler.setFormatter(StructuredFormatter())
    logging.root.addHandler(handler)
    logging.root.setLevel(getattr(logging, level))


def _load_yaml_dict(path: Path) -> dict[str, Any]:
    """Load a YAML file as a dict, returning ``{}`` if the file does not exist."""
    if not path.exists():
        logger.warning("config_not_found", path=str(path))
        return {}
    return load_yaml(str(path))


def _apply_pool_overrides(
    store_dict: dict[str, Any],
    pool_overrides: dict[str, Any] | None,
    service_name: str,
) -> None:
    """Merge per-service pool overrides into the shared store configuration.

    ``user`` and ``password_env`` go to ``pool.database``, ``min_size`` and
    ``max_size`` to ``pool.limits``. ``application_name`` defaults to
    ``relaytrace-<service>`` unless given explicitly.
    """
    pool = store_dict.setdefault("pool", {})

    server_settings = pool.setdefault("server_settings", {})
    if "application_name" not in server_settings:
        server_settings["application_name"] = f"relaytrace-{service_name}"

    if not pool_overrides:
        return

    if "application_name" in pool_overrides:
        server_settings["application_name"] = pool_overrides["application_name"]

    db_keys = ("user", "password_env")
    db_overrides = {k: pool_overrides[k] for k in db_keys if k in pool_overrides}
    if db_overrides:
        pool.setdefault("database", {}).update(db_overrides)

    limits_keys = ("min_size", "max_size")
    limits_overrides = {k: pool_overrides[k] for k in limits_keys if k in pool_overrides}
    if limits_overrides:
        pool.setdefault("limits", {}).update(limits_overrides)


async def main(argv: list[str] | None = None) -> int:
    """Parse args, initialize the Store, and run the service."""
    args = parse_args(argv)
    setup_logging(args.log_level)

    entry = SERVICE_REGISTRY[args.service]
    config_path = args.config or entry.config_path

    store_dict = _load_yaml_dict(args.store_config)
    service_dict = _load_yaml_dict(config_path)
    pool_overrides = service_dict.pop("pool", None)
    _apply_pool_overrides(store_dict, pool_overrides, args.service)

    store = Store.from_dict(store_dict)

    try:
        async with store:
            return await run_service(
                service_name=args.service,
                service_class=entry.cls,
                store=store,
                service_dict=service_dict,
                once=args.once,
            )
    except ConnectionError as e:
        logger.error("connection_failed", error=str(e))
        return 1
    except KeyboardInterrupt:
        logger.info("interrupted")
        return 130


def cli() -> None:
    """Synchronous entry point for console_scripts."""
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    cli()
