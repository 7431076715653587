"""Monitor service for periodic mesh connectivity rounds.

Each cycle runs one full probe round through the injected
[Canary][meshcanary.core.canary.Canary] engine, publishes per-type peer
counts and latency observations to Prometheus, and logs peers whose
state changed since the previous round.

A shutdown request abandons the round in progress; the completed results
still replace the current report as a partial round.

See Also:
    [MonitorConfig][meshcanary.services.monitor.MonitorConfig]: Service
        configuration.
    [BaseService][meshcanary.core.base_service.BaseService]: Abstract
        base class providing ``run()``, ``run_forever()`` and ``from_yaml()``.

Examples:
    ```python
    from meshcanary.core import Canary
    from meshcanary.services import Monitor

    canary = Canary.from_yaml("config/canary.yaml")
    monitor = Monitor.from_yaml("config/services/monitor.yaml", canary=canary)

    async with canary:
        async with monitor:
            await monitor.run_forever()
    ```
"""

from __future__ import annotations

from typing import TYPE_CHECKING, ClassVar, NamedTuple

from meshcanary.core.base_service import BaseService
from meshcanary.core.metrics import record_probe_report
from meshcanary.models.constants import ConnectionType, ServiceName

from .configs import MonitorConfig


if TYPE_CHECKING:
    from meshcanary.core.canary import Canary
    from meshcanary.models.status import PeerStatus, ProbeReport


class PeerState(NamedTuple):
    """The part of a [PeerStatus][meshcanary.models.status.PeerStatus] tracked across rounds."""

    name: str
    online: bool
    connection_type: ConnectionType


class Monitor(BaseService[MonitorConfig]):
    """Periodic connectivity monitor.

    Lifecycle:
        1. ``run()``: probe every peer, refresh the status report.
        2. Publish ``peers_*`` gauges and per-type Prometheus metrics.
        3. Log transitions against the previous round.

    A [DirectoryUnavailableError][meshcanary.core.exceptions.DirectoryUnavailableError]
    propagates so the cycle counts as failed; the previous report is kept.
    """

    SERVICE_NAME: ClassVar[ServiceName] = ServiceName.MONITOR
    CONFIG_CLASS: ClassVar[type[MonitorConfig]] = MonitorConfig

    def __init__(self, canary: Canary, config: MonitorConfig | None = None) -> None:
        super().__init__(canary, config)
        # None until the first complete round
        self._previous: dict[str, PeerState] | None = None
        self._rounds = 0

    @property
    def rounds(self) -> int:
        """Number of rounds completed since the service was created."""
        return self._rounds

    async def run(self) -> None:
        """Execute one monitoring round."""
        probe_report = await self._canary.ping_all(
            stop_event=self._shutdown_event,
            deadline=self._config.round_deadline,
        )
        self._rounds += 1
        statuses = self._canary.statuses()

        self._publish(probe_report, statuses)
        # Peers missing from a partial round are not real transitions.
        if not probe_report.partial:
            if self._config.log_transitions:
                self._log_transitions(statuses)
            self._previous = {
                s.key: PeerState(s.peer.host_name or s.key, s.online, s.connection_type)
                for s in statuses
            }

        online = sum(1 for s in statuses if s.online)
        self._logger.info(
            "round_summary",
            peers=len(statuses),
            online=online,
            offline=len(statuses) - online,
            partial=probe_report.partial,
        )

    def _publish(self, probe_report: ProbeReport, statuses: tuple[PeerStatus, ...]) -> None:
        if self._config.metrics.enabled:
            record_probe_report(probe_report)

        self.set_gauge("peers_total", len(statuses))
        self.set_gauge("peers_online", sum(1 for s in statuses if s.online))
        self.set_gauge("peers_active", sum(1 for s in statuses if s.active))
        self.inc_counter("probes_succeeded", probe_report.succeeded)
        self.inc_counter("probes_failed", probe_report.failed)
        if probe_report.partial:
            self.inc_counter("rounds_partial")

    def _log_transitions(self, statuses: tuple[PeerStatus, ...]) -> None:
        """Compare *statuses* with the previous complete round, if there is one."""
        previous = self._previous
        if previous is None:
            return
        current = {s.key for s in statuses}

        for status in statuses:
            name = status.peer.host_name or status.key
            before = previous.get(status.key)
            if before is None:
                self._logger.info("peer_joined", peer=name, online=status.online)
                continue
            if before.online != status.online:
                if status.online:
                    self._logger.info(
                        "peer_online", peer=name, connection_type=status.connection_type
                    )
                else:
                    self._logger.warning("peer_offline", peer=name, error=status.error)
            elif before.connection_type != status.connection_type:
                self._logger.info(
                    "connection_type_changed",
                    peer=name,
                    before=before.connection_type,
                    after=status.connection_type,
                )

        for key, before in previous.items():
            if key not in current:
                self._logger.info("peer_left", peer=before.name)
