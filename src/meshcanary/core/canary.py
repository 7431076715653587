"""
Connectivity engine facade.

[Canary][meshcanary.core.canary.Canary] wires a
[PeerDirectory][meshcanary.directory.base.PeerDirectory], a
[Prober][meshcanary.probes.base.Prober], a
[FanOutCoordinator][meshcanary.probes.coordinator.FanOutCoordinator] and a
[StatusAggregator][meshcanary.core.aggregator.StatusAggregator] into the
query contract the services use. Both collaborators are injected; there is
no process-wide instance.

One probe round reads exactly one directory snapshot, probes every peer
in it and replaces the current status report. Rounds are serialized so
two callers never interleave snapshots.

Examples:
    ```python
    canary = Canary.from_yaml("config/canary.yaml")
    async with canary:
        report = await canary.refresh()
        for status in report.statuses:
            print(status.peer.host_name, status.connection_type)
    ```
"""

from __future__ import annotations

import asyncio
import ipaddress
import time
from types import TracebackType
from typing import TYPE_CHECKING, Any, Self

from pydantic import BaseModel, Field

from meshcanary.directory.configs import DirectoryConfig, DirectoryKind
from meshcanary.directory.factory import build_directory
from meshcanary.models.peer import Peer
from meshcanary.probes.configs import ProberConfig, ProberKind
from meshcanary.probes.coordinator import FanOutCoordinator
from meshcanary.probes.factory import build_prober
from meshcanary.utils.localapi import (
    DEFAULT_MAX_RESPONSE_SIZE,
    DEFAULT_SOCKET_PATH,
    LocalApiClient,
)

from .aggregator import StatusAggregator
from .exceptions import InvalidTargetError, PeerNotFoundError
from .logger import Logger
from .yaml import load_yaml


if TYPE_CHECKING:
    from meshcanary.directory.base import PeerDirectory
    from meshcanary.models.constants import PingType
    from meshcanary.models.peer import DirectorySnapshot
    from meshcanary.models.probe import ProbeResult
    from meshcanary.models.status import PeerStatus, ProbeReport, StatusReport
    from meshcanary.probes.base import Prober


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class LocalApiConfig(BaseModel):
    """Connection to the local ``tailscaled`` daemon, shared by directory and prober."""

    socket_path: str = Field(
        default=DEFAULT_SOCKET_PATH,
        min_length=1,
        description="tailscaled LocalAPI unix socket",
    )
    max_response_size: int = Field(
        default=DEFAULT_MAX_RESPONSE_SIZE,
        ge=1024,
        description="Maximum LocalAPI response size in bytes",
    )


class CanaryConfig(BaseModel):
    """Engine configuration, usually loaded from ``config/canary.yaml``.

    Attributes:
        localapi: LocalAPI socket settings.
        directory: Membership directory adapter.
        prober: Probe transport.
        max_concurrency: Maximum simultaneous probes per round.
        probe_timeout: Per-probe timeout in seconds.
        round_deadline: Abandon a round after this many seconds and keep
            the completed results (``None`` disables the deadline).
        probe_offline: Also probe peers the directory reports offline.
    """

    localapi: LocalApiConfig = Field(default_factory=LocalApiConfig)
    directory: DirectoryConfig = Field(default_factory=DirectoryConfig)
    prober: ProberConfig = Field(default_factory=ProberConfig)
    max_concurrency: int = Field(default=32, ge=1, le=1024, description="Probe concurrency bound")
    probe_timeout: float = Field(default=5.0, gt=0.0, le=120.0, description="Per-probe timeout")
    round_deadline: float | None = Field(default=None, gt=0.0, description="Round deadline")
    probe_offline: bool = Field(default=False, description="Probe directory-offline peers")


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


class Canary:
    """Probing and classification engine.

    Args:
        directory: Membership source.
        prober: Probe transport.
        config: Engine settings; defaults apply when omitted.
        client: LocalAPI client owned by the engine and closed on exit.
            Set by [from_dict()][meshcanary.core.canary.Canary.from_dict]
            when the directory and prober share a socket connection.
    """

    def __init__(
        self,
        directory: PeerDirectory,
        prober: Prober,
        config: CanaryConfig | None = None,
        *,
        client: LocalApiClient | None = None,
    ) -> None:
        self._config = config or CanaryConfig()
        self._directory = directory
        self._prober = prober
        self._client = client
        self._coordinator = FanOutCoordinator(
            prober,
            max_concurrency=self._config.max_concurrency,
            probe_offline=self._config.probe_offline,
        )
        self._aggregator = StatusAggregator()
        self._round_lock = asyncio.Lock()
        self._logger = Logger("canary")

    # -------------------------------------------------------------------------
    # Factory Methods
    # -------------------------------------------------------------------------

    @classmethod
    def from_yaml(cls, config_path: str) -> Self:
        """Create an engine from a YAML configuration file."""
        return cls.from_dict(load_yaml(config_path))

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        """Create an engine from a configuration dictionary.

        A single [LocalApiClient][meshcanary.utils.localapi.LocalApiClient]
        is shared when both the directory and the prober talk to the
        local daemon.
        """
        config = CanaryConfig(**data)
        client = None
        uses_localapi = (
            config.directory.kind == DirectoryKind.LOCALAPI
            or config.prober.kind == ProberKind.DISCO
        )
        if uses_localapi:
            client = LocalApiClient(
                config.localapi.socket_path,
                max_response_size=config.localapi.max_response_size,
            )
        return cls(
            directory=build_directory(config.directory, client=client),
            prober=build_prober(config.prober, client=client),
            config=config,
            client=client,
        )

    # -------------------------------------------------------------------------
    # Context Manager
    # -------------------------------------------------------------------------

    async def __aenter__(self) -> Self:
        if self._client is not None:
            await self._client.open()
        await self._directory.open()
        await self._prober.open()
        self._logger.info(
            "canary_opened",
            directory=self._directory.KIND,
            prober=self._prober.KIND,
            max_concurrency=self._config.max_concurrency,
            probe_timeout=self._config.probe_timeout,
        )
        return self

    async def __aexit__(
        self,
        _exc_type: type[BaseException] | None,
        _exc_val: BaseException | None,
        _exc_tb: TracebackType | None,
    ) -> None:
        try:
            await self._prober.close()
            await self._directory.close()
        finally:
            if self._client is not None:
                await self._client.close()
        self._logger.info("canary_closed")

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def config(self) -> CanaryConfig:
        return self._config

    @property
    def directory(self) -> PeerDirectory:
        return self._directory

    @property
    def prober(self) -> Prober:
        return self._prober

    @property
    def coordinator(self) -> FanOutCoordinator:
        return self._coordinator

    # -------------------------------------------------------------------------
    # Rounds
    # -------------------------------------------------------------------------

    async def snapshot(self) -> DirectorySnapshot:
        """Read the current directory snapshot.

        Raises:
            DirectoryUnavailableError: If membership data cannot be read.
        """
        return await self._directory.snapshot()

    async def _round(
        self,
        stop_event: asyncio.Event | None,
        deadline: float | None,
    ) -> tuple[ProbeReport, StatusReport]:
        async with self._round_lock:
            started = time.monotonic()
            snapshot = await self._directory.snapshot()
            if deadline is None:
                deadline = self._config.round_deadline
            if deadline is not None:
                # The deadline also covers the directory read
                deadline = max(deadline - (time.monotonic() - started), 0.0)
            report = await self._coordinator.probe_all(
                snapshot.peers,
                self._config.probe_timeout,
                stop_event=stop_event,
                deadline=deadline,
            )
            status_report = self._aggregator.aggregate(snapshot, report)

        self._logger.info(
            "round_completed",
            peers=len(snapshot.peers),
            succeeded=report.succeeded,
            failed=report.failed,
            partial=report.partial,
            duration_s=round(time.monotonic() - started, 3),
        )
        return report, status_report

    async def ping_all(
        self,
        *,
        stop_event: asyncio.Event | None = None,
        deadline: float | None = None,
    ) -> ProbeReport:
        """Run one full probe round and update the current status report.

        Args:
            stop_event: Abandon the round when set.
            deadline: Overall round deadline in seconds, counted from the
                directory read; defaults to ``config.round_deadline``.

        Raises:
            DirectoryUnavailableError: If membership data cannot be read.
                The previous status report is kept.
        """
        probe_report, _ = await self._round(stop_event, deadline)
        return probe_report

    async def refresh(
        self,
        *,
        stop_event: asyncio.Event | None = None,
        deadline: float | None = None,
    ) -> StatusReport:
        """Run one probe round and return the resulting status report.

        Raises:
            DirectoryUnavailableError: If membership data cannot be read.
        """
        _, status_report = await self._round(stop_event, deadline)
        return status_report

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def report(self) -> StatusReport | None:
        """The latest status report, or ``None`` before the first round."""
        return self._aggregator.report()

    def statuses(self) -> tuple[PeerStatus, ...]:
        """All peer statuses of the latest round."""
        return self._aggregator.statuses()

    def status(self, identifier: str) -> PeerStatus:
        """Status of one peer of the latest round.

        Raises:
            PeerNotFoundError: If the peer was not in the last snapshot.
        """
        return self._aggregator.status(identifier)

    async def ping(
        self,
        identifier: str,
        *,
        timeout: float | None = None,  # noqa: ASYNC109
    ) -> ProbeResult:
        """Probe one peer named by key, host name, DNS name or address.

        The identifier is resolved against a fresh directory snapshot.
        *timeout* caps ``config.probe_timeout`` for this call.

        Raises:
            DirectoryUnavailableError: If membership data cannot be read.
            PeerNotFoundError: If no peer matches *identifier*.
        """
        snapshot = await self._directory.snapshot()
        peer = snapshot.find(identifier)
        if peer is None:
            raise PeerNotFoundError(identifier)
        return await self._coordinator.probe_one(peer, self._probe_timeout(timeout))

    async def ping_ip(
        self,
        ip: str,
        ping_type: PingType | None = None,
        *,
        timeout: float | None = None,  # noqa: ASYNC109
    ) -> ProbeResult:
        """Probe a mesh address, optionally with a specific ping kind.

        The address does not need to belong to a known peer; when it does,
        the result carries that peer's name and key. *timeout* caps
        ``config.probe_timeout`` for this call.

        Raises:
            InvalidTargetError: If *ip* is not an IP address.
            ValueError: If the transport does not support *ping_type*.
        """
        try:
            address = str(ipaddress.ip_address(ip.strip()))
        except ValueError as e:
            raise InvalidTargetError(f"invalid IP address: {ip!r}") from e

        prober = self._prober
        if ping_type is not None:
            prober = prober.with_ping_type(ping_type)

        report = self._aggregator.report()
        known = report.find(address) if report else None
        peer = known.peer if known else Peer(key=address, addresses=(address,))
        return await self._coordinator.probe_one(
            peer, self._probe_timeout(timeout), prober=prober
        )

    def _probe_timeout(self, timeout: float | None) -> float:
        if timeout is None:
            return self._config.probe_timeout
        return min(self._config.probe_timeout, timeout)
