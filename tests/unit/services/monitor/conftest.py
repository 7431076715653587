"""Shared fixtures for services.monitor test package."""

from __future__ import annotations

import pytest

from meshcanary.core.canary import Canary
from meshcanary.services.monitor import Monitor, MonitorConfig


@pytest.fixture
def monitor_config() -> MonitorConfig:
    return MonitorConfig(interval=60.0)


@pytest.fixture
def monitor(canary: Canary, monitor_config: MonitorConfig) -> Monitor:
    return Monitor(canary=canary, config=monitor_config)
