"""
Unit tests for core.base_service module.

Tests:
- BaseService initialization with Store and config
- Factory methods (from_yaml, from_dict)
- run_forever() continuous execution with intervals
- Graceful shutdown via request_shutdown()
- wait() interruptible sleep
- Context manager support (__aenter__/__aexit__)
- Consecutive failure handling
- Metric helpers (set_gauge, inc_counter)
"""

import asyncio
from unittest.mock import patch

import pytest
from pydantic import Field

from relaytrace.core.base_service import BaseService, BaseServiceConfig
from relaytrace.core.metrics import SERVICE_COUNTER, SERVICE_GAUGE, MetricsConfig
from relaytrace.core.store import Store


class ConcreteServiceConfig(BaseServiceConfig):
    """Test configuration inheriting from BaseServiceConfig."""

    max_items: int = Field(default=100, ge=1)


class ConcreteService(BaseService[ConcreteServiceConfig]):
    """Test implementation."""

    SERVICE_NAME = "test_service"  # type: ignore[assignment]
    CONFIG_CLASS = ConcreteServiceConfig

    def __init__(self, store: Store, config: ConcreteServiceConfig | None = None):
        super().__init__(store=store, config=config or ConcreteServiceConfig())
        self.run_count = 0
        self.should_fail = False
        self.fail_count = 0

    async def run(self):
        self.run_count += 1
        if self.should_fail:
            self.fail_count += 1
            raise RuntimeError("Simulated failure")


class TestBaseServiceConfig:
    """BaseServiceConfig defaults and validation."""

    def test_defaults(self):
        config = BaseServiceConfig()
        assert config.interval == 300.0
        assert config.max_consecutive_failures == 5
        assert config.metrics.enabled is False

    def test_interval_minimum(self):
        with pytest.raises(ValueError):
            BaseServiceConfig(interval=30.0)

    def test_max_consecutive_failures_zero_allowed(self):
        assert BaseServiceConfig(max_consecutive_failures=0).max_consecutive_failures == 0


class TestInit:
    def test_with_config(self, mock_store):
        config = ConcreteServiceConfig(interval=120.0, max_items=50)
        service = ConcreteService(store=mock_store, config=config)
        assert service.config.interval == 120.0
        assert service.config.max_items == 50

    def test_with_defaults(self, mock_store):
        service = ConcreteService(store=mock_store)
        assert service.config.interval == 300.0
        assert service._store is mock_store

    def test_logger_named_after_service(self, mock_store):
        service = ConcreteService(store=mock_store)
        assert service._logger.name == "test_service"


class TestFactoryMethods:
    def test_from_dict(self, mock_store):
        service = ConcreteService.from_dict({"interval": 90.0, "max_items": 200}, store=mock_store)
        assert service.config.interval == 90.0
        assert service.config.max_items == 200

    def test_from_yaml(self, mock_store, tmp_path):
        config_file = tmp_path / "test_config.yaml"
        config_file.write_text("interval: 120.0\nmax_items: 75\n")
        service = ConcreteService.from_yaml(str(config_file), store=mock_store)
        assert service.config.max_items == 75

    def test_from_yaml_file_not_found(self, mock_store):
        with pytest.raises(FileNotFoundError):
            ConcreteService.from_yaml("/nonexistent/path/config.yaml", store=mock_store)


class TestContextManager:
    async def test_starts_and_stops(self, mock_store):
        service = ConcreteService(store=mock_store)
        async with service:
            assert service.is_running is True
        assert service.is_running is False

    async def test_clears_shutdown_event(self, mock_store):
        service = ConcreteService(store=mock_store)
        service._shutdown_event.set()
        async with service:
            assert not service._shutdown_event.is_set()


class TestShutdown:
    def test_request_shutdown(self, mock_store):
        service = ConcreteService(store=mock_store)
        service.request_shutdown()
        assert service.is_running is False

    async def test_wait_returns_true_on_shutdown(self, mock_store):
        service = ConcreteService(store=mock_store)

        async def request_shutdown_after_delay():
            await asyncio.sleep(0.05)
            service.request_shutdown()

        task = asyncio.create_task(request_shutdown_after_delay())
        result = await service.wait(timeout=1.0)
        await task
        assert result is True

    async def test_wait_returns_false_on_timeout(self, mock_store):
        service = ConcreteService(store=mock_store)
        assert await service.wait(timeout=0.01) is False


class TestRunForever:
    async def test_executes_run(self, mock_store):
        service = ConcreteService(store=mock_store, config=ConcreteServiceConfig(interval=60.0))

        async def mock_wait(timeout):
            return True

        with patch.object(service, "wait", mock_wait):
            async with service:
                await service.run_forever()
        assert service.run_count == 1

    async def test_stops_on_max_failures(self, mock_store):
        config = ConcreteServiceConfig(interval=60.0, max_consecutive_failures=3)
        service = ConcreteService(store=mock_store, config=config)
        service.should_fail = True

        async def mock_wait(timeout):
            return False

        with patch.object(service, "wait", mock_wait):
            async with service:
                await service.run_forever()
        assert service.fail_count == 3

    async def test_unlimited_failures_when_zero(self, mock_store):
        config = ConcreteServiceConfig(interval=60.0, max_consecutive_failures=0)
        service = ConcreteService(store=mock_store, config=config)
        service.should_fail = True

        async def mock_wait(timeout):
            return service.fail_count >= 10

        with patch.object(service, "wait", mock_wait):
            async with service:
                await service.run_forever()
        assert service.fail_count == 10

    async def test_success_resets_failure_streak(self, mock_store):
        config = ConcreteServiceConfig(interval=60.0, max_consecutive_failures=2)
        service = ConcreteService(store=mock_store, config=config)
        outcomes = iter([True, False, True, False, True, True])

        async def flaky_run():
            service.run_count += 1
            if next(outcomes):
                raise RuntimeError("flaky")

        async def mock_wait(timeout):
            return False

        with (
            patch.object(service, "run", flaky_run),
            patch.object(service, "wait", mock_wait),
        ):
            async with service:
                await service.run_forever()
        assert service.run_count == 6

    async def test_cancelled_error_propagates(self, mock_store):
        service = ConcreteService(store=mock_store)

        async def cancelled():
            raise asyncio.CancelledError

        with patch.object(service, "run", cancelled), pytest.raises(asyncio.CancelledError):
            await service.run_forever()

    async def test_reads_interval_from_config(self, mock_store):
        service = ConcreteService(store=mock_store, config=ConcreteServiceConfig(interval=75.0))
        recorded = None

        async def mock_wait(timeout):
            nonlocal recorded
            recorded = timeout
            return True

        with patch.object(service, "wait", mock_wait):
            await service.run_forever()
        assert recorded == 75.0


class TestMetricHelpers:
    def test_disabled_is_noop(self, mock_store):
        service = ConcreteService(store=mock_store)
        with patch.object(SERVICE_COUNTER, "labels") as labels:
            service.inc_counter("anything")
        labels.assert_not_called()

    def test_enabled_counter(self, mock_store):
        config = ConcreteServiceConfig(metrics=MetricsConfig(enabled=True))
        service = ConcreteService(store=mock_store, config=config)
        child = SERVICE_COUNTER.labels(service="test_service", name="widgets")
        before = child._value.get()
        service.inc_counter("widgets", 3)
        assert child._value.get() == before + 3

    def test_enabled_gauge(self, mock_store):
        config = ConcreteServiceConfig(metrics=MetricsConfig(enabled=True))
        service = ConcreteService(store=mock_store, config=config)
        service.set_gauge("pending", 7)
        assert SERVICE_GAUGE.labels(service="test_service", name="pending")._value.get() == 7


class TestAbstract:
    def test_cannot_instantiate_base(self, mock_store):
        with pytest.raises(TypeError):
            BaseService(store=mock_store)  # type: ignore[abstract]

    def test_must_implement_run(self, mock_store):
        class IncompleteService(BaseService):
            SERVICE_NAME = "incomplete"
            CONFIG_CLASS = BaseServiceConfig

        with pytest.raises(TypeError):
            IncompleteService(store=mock_store)  # type: ignore[abstract]
