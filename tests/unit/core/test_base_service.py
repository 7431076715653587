"""
Unit tests for core.base_service module.

Tests:
- BaseServiceConfig defaults and validation
- Factory methods (from_dict, from_yaml) and default config
- Context manager and shutdown signalling
- run_forever() cycling, failure limits and metrics bookkeeping
"""

import asyncio
from pathlib import Path
from typing import ClassVar

import pytest
from prometheus_client import REGISTRY
from pydantic import Field, ValidationError

from meshcanary.core.base_service import BaseService, BaseServiceConfig
from meshcanary.core.metrics import MetricsConfig
from meshcanary.models.constants import ServiceName


class CountingConfig(BaseServiceConfig):
    fail_on: list[int] = Field(default_factory=list)


class CountingService(BaseService[CountingConfig]):
    """Service whose cycles fail on the configured cycle numbers."""

    SERVICE_NAME: ClassVar[ServiceName] = ServiceName.MONITOR
    CONFIG_CLASS: ClassVar[type[CountingConfig]] = CountingConfig

    def __init__(self, canary, config=None, stop_after: int | None = None):
        super().__init__(canary, config)
        self.cycles = 0
        self.stop_after = stop_after

    async def run(self) -> None:
        self.cycles += 1
        if self.stop_after is not None and self.cycles >= self.stop_after:
            self.request_shutdown()
        if self.cycles in self._config.fail_on:
            raise RuntimeError(f"cycle {self.cycles} failed")


def _counter(name: str) -> float:
    value = REGISTRY.get_sample_value(
        "service_counter_total", {"service": "monitor", "name": name}
    )
    return value or 0.0


# ============================================================================
# Configuration
# ============================================================================


class TestBaseServiceConfig:
    def test_defaults(self):
        config = BaseServiceConfig()
        assert config.interval == 30.0
        assert config.max_consecutive_failures == 5
        assert config.metrics.enabled is False

    @pytest.mark.parametrize(
        "overrides", [{"interval": 0.5}, {"max_consecutive_failures": -1}]
    )
    def test_invalid(self, overrides):
        with pytest.raises(ValidationError):
            BaseServiceConfig(**overrides)


# ============================================================================
# Factory methods
# ============================================================================


class TestFactories:
    def test_default_config(self, canary):
        service = CountingService(canary)
        assert isinstance(service.config, CountingConfig)
        assert service.canary is canary

    def test_from_dict(self, canary):
        service = CountingService.from_dict(
            {"interval": 5, "fail_on": [2]}, canary=canary, stop_after=3
        )
        assert service.config.interval == 5.0
        assert service.config.fail_on == [2]
        assert service.stop_after == 3

    def test_from_dict_invalid(self, canary):
        with pytest.raises(ValidationError):
            CountingService.from_dict({"interval": "soon"}, canary=canary)

    def test_from_yaml(self, canary, tmp_path: Path):
        path = tmp_path / "service.yaml"
        path.write_text("interval: 12\nmax_consecutive_failures: 0\n", encoding="utf-8")
        service = CountingService.from_yaml(str(path), canary=canary)
        assert service.config.interval == 12.0
        assert service.config.max_consecutive_failures == 0


# ============================================================================
# Lifecycle
# ============================================================================


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_context_manager(self, canary):
        service = CountingService(canary)
        service.request_shutdown()
        async with service as entered:
            assert entered is service
            assert service.is_running is True
        assert service.is_running is False

    @pytest.mark.asyncio
    async def test_wait_times_out(self, canary):
        service = CountingService(canary)
        assert await service.wait(0.01) is False

    @pytest.mark.asyncio
    async def test_wait_wakes_on_shutdown(self, canary):
        service = CountingService(canary)
        asyncio.get_running_loop().call_later(0.01, service.request_shutdown)
        assert await service.wait(5) is True


# ============================================================================
# run_forever
# ============================================================================


class TestRunForever:
    @pytest.mark.asyncio
    async def test_stops_on_shutdown(self, canary):
        service = CountingService(canary, CountingConfig(interval=1), stop_after=3)
        service.wait = _no_wait
        await asyncio.wait_for(service.run_forever(), timeout=5)
        assert service.cycles == 3

    @pytest.mark.asyncio
    async def test_failure_limit(self, canary):
        config = CountingConfig(interval=1, max_consecutive_failures=2, fail_on=[1, 2, 3])
        service = CountingService(canary, config)
        service.wait = _no_wait
        await asyncio.wait_for(service.run_forever(), timeout=5)
        assert service.cycles == 2

    @pytest.mark.asyncio
    async def test_success_resets_streak(self, canary):
        config = CountingConfig(interval=1, max_consecutive_failures=2, fail_on=[1, 3, 5, 6])
        service = CountingService(canary, config)
        service.wait = _no_wait
        await asyncio.wait_for(service.run_forever(), timeout=5)
        assert service.cycles == 6

    @pytest.mark.asyncio
    async def test_unlimited_failures(self, canary):
        config = CountingConfig(interval=1, max_consecutive_failures=0, fail_on=[1, 2, 3, 4])
        service = CountingService(canary, config, stop_after=5)
        service.wait = _no_wait
        await asyncio.wait_for(service.run_forever(), timeout=5)
        assert service.cycles == 5

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self, canary):
        class Hanging(CountingService):
            async def run(self) -> None:
                await asyncio.sleep(60)

        service = Hanging(canary)
        task = asyncio.create_task(service.run_forever())
        await asyncio.sleep(0.01)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    @pytest.mark.asyncio
    async def test_metrics_recorded_when_enabled(self, canary):
        config = CountingConfig(
            interval=1,
            max_consecutive_failures=0,
            fail_on=[1],
            metrics=MetricsConfig(enabled=True),
        )
        service = CountingService(canary, config, stop_after=2)
        service.wait = _no_wait
        success_before = _counter("cycles_success")
        failed_before = _counter("cycles_failed")
        errors_before = _counter("errors_RuntimeError")

        await asyncio.wait_for(service.run_forever(), timeout=5)

        assert _counter("cycles_success") == success_before + 1
        assert _counter("cycles_failed") == failed_before + 1
        assert _counter("errors_RuntimeError") == errors_before + 1

    def test_custom_metrics_noop_when_disabled(self, canary):
        service = CountingService(canary)
        before = _counter("disabled_probe")
        service.inc_counter("disabled_probe")
        service.set_gauge("disabled_gauge", 3)
        assert _counter("disabled_probe") == before
        assert (
            REGISTRY.get_sample_value(
                "service_gauge", {"service": "monitor", "name": "disabled_gauge"}
            )
            is None
        )


async def _no_wait(_timeout: float) -> bool:
    return False
