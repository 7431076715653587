"""
Merge probe results with directory attributes.

The [StatusAggregator][meshcanary.core.aggregator.StatusAggregator] joins
each [Peer][meshcanary.models.peer.Peer] of a snapshot with its
[ProbeResult][meshcanary.models.probe.ProbeResult] and keeps the latest
[StatusReport][meshcanary.models.status.StatusReport] for queries.

Join rules:

* results are matched by peer key, falling back to the probed address;
* a peer without a result (abandoned round) is reported offline,
  inactive, with connection type ``unknown``;
* path data observed by the probe takes precedence over the link data
  the directory reported, which may be older.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from meshcanary.models.constants import ConnectionType
from meshcanary.models.status import PeerStatus, StatusReport
from meshcanary.probes.classifier import classify

from .exceptions import PeerNotFoundError


if TYPE_CHECKING:
    from meshcanary.models.peer import DirectorySnapshot, Peer
    from meshcanary.models.probe import ProbeResult
    from meshcanary.models.status import ProbeReport


def merge_status(peer: Peer, result: ProbeResult | None) -> PeerStatus:
    """Build the [PeerStatus][meshcanary.models.status.PeerStatus] of one peer."""
    link = peer.link

    if result is None:
        return PeerStatus(
            peer=peer,
            online=False,
            active=False,
            connection_type=ConnectionType.UNKNOWN,
            cur_addr=link.cur_addr if link else None,
            relay=link.relay if link else None,
            peer_relay=link.peer_relay if link else None,
            last_handshake=link.last_handshake if link else None,
            rx_bytes=link.rx_bytes if link else 0,
            tx_bytes=link.tx_bytes if link else 0,
        )

    online = result.success and peer.address is not None
    connection_type = result.connection_type or classify(result)
    if result.success and not online:
        connection_type = ConnectionType.UNKNOWN
    path = result.path

    return PeerStatus(
        peer=peer,
        online=online,
        active=online and bool(link and link.active),
        connection_type=connection_type,
        cur_addr=path.endpoint or (link.cur_addr if link else None),
        relay=path.relay_region or (link.relay if link else None),
        peer_relay=path.peer_relay or (link.peer_relay if link else None),
        last_handshake=link.last_handshake if link else None,
        rx_bytes=link.rx_bytes if link else 0,
        tx_bytes=link.tx_bytes if link else 0,
        latency_ms=result.latency_ms if online else None,
        error=result.error,
    )


class StatusAggregator:
    """Holds the latest status report and answers queries against it."""

    def __init__(self) -> None:
        self._report: StatusReport | None = None

    def aggregate(self, snapshot: DirectorySnapshot, probe_report: ProbeReport) -> StatusReport:
        """Join *snapshot* with *probe_report* and make it the current report.

        The status report carries the probe report's timestamp and lists
        every snapshot peer exactly once, in snapshot order.
        """
        by_key: dict[str, ProbeResult] = {}
        by_ip: dict[str, ProbeResult] = {}
        for result in probe_report.results:
            if result.peer_key:
                by_key.setdefault(result.peer_key, result)
            if result.ip:
                by_ip.setdefault(result.ip, result)

        statuses = []
        for peer in snapshot.peers:
            result = by_key.get(peer.key)
            if result is None and peer.address is not None:
                result = by_ip.get(peer.address)
            statuses.append(merge_status(peer, result))

        report = StatusReport(
            statuses=tuple(statuses),
            timestamp=probe_report.timestamp,
            partial=probe_report.partial,
        )
        self._report = report
        return report

    def report(self) -> StatusReport | None:
        """The latest report, or ``None`` before the first round."""
        return self._report

    def statuses(self) -> tuple[PeerStatus, ...]:
        """All statuses of the latest report (empty before the first round)."""
        return self._report.statuses if self._report else ()

    def status(self, identifier: str) -> PeerStatus:
        """Status of one peer by key, host name, DNS name or mesh address.

        Raises:
            PeerNotFoundError: If no peer of the latest report matches.
        """
        found = self._report.find(identifier) if self._report else None
        if found is None:
            raise PeerNotFoundError(identifier)
        return found
