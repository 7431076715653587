"""Core layer: engine facade, service lifecycle and shared infrastructure.

Attributes:
    Canary: Engine facade wiring directory, prober, coordinator and
        aggregator. See [Canary][meshcanary.core.canary.Canary].
    StatusAggregator: Joins probe results with directory attributes.
        See [StatusAggregator][meshcanary.core.aggregator.StatusAggregator].
    BaseService: Abstract generic base class with lifecycle management
        ([run()][meshcanary.core.base_service.BaseService.run] /
        [run_forever()][meshcanary.core.base_service.BaseService.run_forever] /
        shutdown), factory methods and Prometheus metrics integration.
    Logger: Structured logger supporting key=value and JSON output modes.
    MetricsServer: Prometheus ``/metrics`` HTTP endpoint.
    load_yaml: Safe YAML loading with ``yaml.safe_load()``.

Note:
    The directory and probe packages import exceptions and the logger from
    this package, while the engine imports those packages. The engine and
    service classes are therefore resolved lazily on first access.
"""

import importlib

from .exceptions import (
    ConfigurationError,
    DirectoryUnavailableError,
    InvalidTargetError,
    MeshCanaryError,
    PeerNotFoundError,
    ProbeTimeoutError,
)
from .logger import Logger, StructuredFormatter, format_kv_pairs, setup_logging
from .metrics import (
    CYCLE_DURATION_SECONDS,
    PEER_CONNECTION,
    PROBE_LATENCY_MS,
    SERVICE_COUNTER,
    SERVICE_GAUGE,
    SERVICE_INFO,
    MetricsConfig,
    MetricsServer,
    record_probe_report,
    start_metrics_server,
)
from .yaml import load_yaml


__all__ = [
    "CYCLE_DURATION_SECONDS",
    "PEER_CONNECTION",
    "PROBE_LATENCY_MS",
    "SERVICE_COUNTER",
    "SERVICE_GAUGE",
    "SERVICE_INFO",
    "BaseService",
    "BaseServiceConfig",
    "Canary",
    "CanaryConfig",
    "ConfigT",
    "ConfigurationError",
    "DirectoryUnavailableError",
    "InvalidTargetError",
    "LocalApiConfig",
    "Logger",
    "MeshCanaryError",
    "MetricsConfig",
    "MetricsServer",
    "PeerNotFoundError",
    "ProbeTimeoutError",
    "StatusAggregator",
    "StructuredFormatter",
    "format_kv_pairs",
    "load_yaml",
    "record_probe_report",
    "setup_logging",
    "start_metrics_server",
]

_LAZY_IMPORTS: dict[str, tuple[str, str]] = {
    "BaseService": ("meshcanary.core.base_service", "BaseService"),
    "BaseServiceConfig": ("meshcanary.core.base_service", "BaseServiceConfig"),
    "ConfigT": ("meshcanary.core.base_service", "ConfigT"),
    "Canary": ("meshcanary.core.canary", "Canary"),
    "CanaryConfig": ("meshcanary.core.canary", "CanaryConfig"),
    "LocalApiConfig": ("meshcanary.core.canary", "LocalApiConfig"),
    "StatusAggregator": ("meshcanary.core.aggregator", "StatusAggregator"),
}


def __getattr__(name: str) -> object:
    if name in _LAZY_IMPORTS:
        module_path, attr_name = _LAZY_IMPORTS[name]
        module = importlib.import_module(module_path)
        value = getattr(module, attr_name)
        globals()[name] = value
        return value
    raise AttributeError(f"module 'meshcanary.core' has no attribute {name!r}")


def __dir__() -> list[str]:
    return __all__
