"""
Prometheus metrics collection and HTTP exposition.

Metric objects are module-level singletons shared by every service.
[BaseService.run_forever()][meshcanary.core.base_service.BaseService.run_forever]
records cycle counts, durations and failure streaks automatically;
services add their own values through ``set_gauge()`` / ``inc_counter()``
and the probe-specific helpers below.

Architecture:
    SERVICE_INFO:            Static metadata set once at startup.
    SERVICE_GAUGE:           Point-in-time values (current state).
    SERVICE_COUNTER:         Cumulative totals (monotonically increasing).
    CYCLE_DURATION_SECONDS:  Histogram of service cycle durations.
    PROBE_LATENCY_MS:        Histogram of successful probe round-trip times.
    PEER_CONNECTION:         Peers per connection type in the latest round.
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
from pydantic import BaseModel, Field, field_validator

from meshcanary.models.constants import ConnectionType
from meshcanary.models.status import ProbeReport


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class MetricsConfig(BaseModel):
    """Configuration for the Prometheus metrics endpoint.

    Set ``host`` to ``"0.0.0.0"`` in container environments to allow
    external scraping. The endpoint only starts when ``enabled`` is True.
    """

    enabled: bool = Field(default=False, description="Enable metrics collection")
    port: int = Field(default=8000, ge=1024, le=65535, description="Metrics HTTP port")
    host: str = Field(default="127.0.0.1", description="Metrics HTTP bind address")
    path: str = Field(default="/metrics", description="Metrics endpoint path")

    @field_validator("path")
    @classmethod
    def _path_is_absolute(cls, v: str) -> str:
        if not v.startswith("/"):
            raise ValueError("path must start with '/'")
        return v


# ---------------------------------------------------------------------------
# Service Metrics (auto-tracked by BaseService.run_forever)
# ---------------------------------------------------------------------------

SERVICE_INFO = Info(
    "service",
    "Service information and metadata",
)

CYCLE_DURATION_SECONDS = Histogram(
    "cycle_duration_seconds",
    "Duration of service cycle in seconds",
    ["service"],
    buckets=(0.1, 0.5, 1, 2.5, 5, 10, 30, 60, 120),
)

# Automatic labels:
#   gauge:   consecutive_failures, last_cycle_timestamp
#   counter: cycles_success, cycles_failed, errors_{type}

SERVICE_GAUGE = Gauge(
    "service_gauge",
    "Service gauge values (point-in-time state)",
    ["service", "name"],
)

SERVICE_COUNTER = Counter(
    "service_counter",
    "Service counter values (cumulative totals)",
    ["service", "name"],
)


# ---------------------------------------------------------------------------
# Probe Metrics
# ---------------------------------------------------------------------------

PROBE_LATENCY_MS = Histogram(
    "probe_latency_ms",
    "Round-trip time of successful probes in milliseconds",
    ["connection_type"],
    buckets=(1, 5, 10, 25, 50, 100, 250, 500, 1000, 2500, 5000),
)

PEER_CONNECTION = Gauge(
    "peer_connection",
    "Number of peers per connection type in the latest probe round",
    ["connection_type"],
)


def record_probe_report(report: ProbeReport) -> None:
    """Publish a probe round: per-type peer counts and latency observations.

    Every connection type is written on each call, so a type that
    disappears from the mesh drops to zero instead of keeping a stale value.
    """
    counts = dict.fromkeys(ConnectionType, 0)
    for result in report.results:
        if result.connection_type is None:
            continue
        counts[result.connection_type] += 1
        if result.success:
            PROBE_LATENCY_MS.labels(connection_type=result.connection_type.value).observe(
                result.latency_ms
            )
    for connection_type, count in counts.items():
        PEER_CONNECTION.labels(connection_type=connection_type.value).set(count)


# ---------------------------------------------------------------------------
# HTTP Server
# ---------------------------------------------------------------------------


class MetricsServer:
    """Async HTTP server exposing a Prometheus-compatible scrape endpoint.

    Example:
        server = MetricsServer(MetricsConfig(enabled=True, port=8001))
        await server.start()
        # ... service runs ...
        await server.stop()
    """

    def __init__(self, config: MetricsConfig) -> None:
        self._config = config
        self._runner: web.AppRunner | None = None

    @property
    def is_running(self) -> bool:
        return self._runner is not None

    async def start(self) -> None:
        """Bind the scrape endpoint; no-op when metrics are disabled.

        Raises:
            OSError: If the port is already in use or binding fails.
        """
        if not self._config.enabled or self._runner is not None:
            return

        app = web.Application()
        app.router.add_get(self._config.path, self._handle_metrics)

        runner = web.AppRunner(app, access_log=None)
        await runner.setup()
        try:
            site = web.TCPSite(runner, self._config.host, self._config.port)
            await site.start()
        except OSError:
            await runner.cleanup()
            raise
        self._runner = runner

    async def stop(self) -> None:
        """Stop the server. Safe to call when never started or already stopped."""
        if self._runner is not None:
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

    The caller must ``stop()`` it during shutdown to release the port.
    """
    server = MetricsServer(config or MetricsConfig())
    await server.start()
    return server
