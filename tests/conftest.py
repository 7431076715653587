"""
Pytest configuration and shared fixtures for meshcanary tests.

Provides:
- ``make_peer``: factory for directory peers with sensible defaults
- ``FakeProber``: scripted probe transport (per-address outcomes and delays)
- Static directory and engine fixtures wired to the fake transport
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

import pytest

from meshcanary.core.canary import Canary, CanaryConfig
from meshcanary.directory.static import StaticDirectory
from meshcanary.models import LinkStats, PathMetadata, Peer, PingType, ProbeResult
from meshcanary.probes.base import Prober


# ============================================================================
# Logging Configuration
# ============================================================================


@pytest.fixture(scope="session", autouse=True)
def setup_logging() -> None:
    """Configure logging for tests."""
    logging.basicConfig(level=logging.DEBUG)


# ============================================================================
# Fake Transport
# ============================================================================


class FakeProber(Prober):
    """Probe transport answering from a per-address script.

    Attributes:
        outcomes: Address to ``ProbeResult`` (returned) or exception (raised).
            Unscripted addresses answer as a direct path.
        delays: Address to seconds slept before answering.
        calls: Addresses probed, in call order.
        max_in_flight: Highest number of simultaneous probes observed.
    """

    KIND = "fake"

    def __init__(self, ping_type: PingType = PingType.DISCO) -> None:
        self.ping_type = ping_type
        self.outcomes: dict[str, ProbeResult | BaseException] = {}
        self.delays: dict[str, float] = {}
        self.calls: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.opened = False
        self.closed = False

    async def open(self) -> None:
        self.opened = True

    async def close(self) -> None:
        self.closed = True

    def with_ping_type(self, ping_type: PingType) -> FakeProber:
        variant = FakeProber(ping_type)
        variant.outcomes = self.outcomes
        variant.delays = self.delays
        variant.calls = self.calls
        return variant

    async def probe(self, peer: Peer, timeout: float) -> ProbeResult:  # noqa: ASYNC109
        ip = self.target(peer)
        self.calls.append(ip)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            delay = self.delays.get(ip, 0.0)
            if delay:
                await asyncio.sleep(delay)
            outcome = self.outcomes.get(ip)
            if isinstance(outcome, BaseException):
                raise outcome
            if outcome is not None:
                return outcome
            return ProbeResult(
                ip=ip,
                success=True,
                node_name=peer.host_name,
                latency_ms=12.5,
                path=PathMetadata(endpoint=f"{ip}:41641"),
            )
        finally:
            self.in_flight -= 1


# ============================================================================
# Model Fixtures
# ============================================================================


@pytest.fixture
def make_peer() -> Callable[..., Peer]:
    """Factory building a peer; ``index`` derives key, name and address."""

    def _make(index: int = 1, **overrides: Any) -> Peer:
        fields: dict[str, Any] = {
            "key": f"nodekey:{index:04x}",
            "host_name": f"node-{index}",
            "dns_name": f"node-{index}.example.ts.net.",
            "addresses": (f"100.64.0.{index}",),
            "os": "linux",
        }
        fields.update(overrides)
        return Peer(**fields)

    return _make


@pytest.fixture
def sample_link() -> LinkStats:
    return LinkStats(
        active=True,
        cur_addr="10.0.0.5:41641",
        relay="fra",
        last_handshake=datetime(2026, 1, 2, 3, 4, 5, tzinfo=UTC),
        rx_bytes=2048,
        tx_bytes=1024,
    )


@pytest.fixture
def peers(make_peer: Callable[..., Peer]) -> list[Peer]:
    """Three reachable peers: node-1, node-2, node-3."""
    return [make_peer(i) for i in (1, 2, 3)]


# ============================================================================
# Engine Fixtures
# ============================================================================


@pytest.fixture
def fake_prober() -> FakeProber:
    return FakeProber()


@pytest.fixture
def static_directory(peers: list[Peer], make_peer: Callable[..., Peer]) -> StaticDirectory:
    return StaticDirectory(
        peers,
        self_peer=make_peer(99, host_name="canary-host"),
        magic_dns_suffix="example.ts.net",
    )


@pytest.fixture
def canary(static_directory: StaticDirectory, fake_prober: FakeProber) -> Canary:
    """Engine over the static directory and fake transport (not opened)."""
    return Canary(
        static_directory,
        fake_prober,
        CanaryConfig(max_concurrency=4, probe_timeout=0.5),
    )
