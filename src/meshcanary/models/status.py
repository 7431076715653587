"""
Aggregated peer status and time-stamped reports.

[PeerStatus][meshcanary.models.status.PeerStatus] joins a directory
[Peer][meshcanary.models.peer.Peer] with the live outcome of the latest
probe. Reports are immutable, ordered collections stamped with a single
snapshot time:

* [StatusReport][meshcanary.models.status.StatusReport] -- one
  ``PeerStatus`` per directory peer.
* [ProbeReport][meshcanary.models.status.ProbeReport] -- one
  [ProbeResult][meshcanary.models.probe.ProbeResult] per probed peer.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from ._validation import validate_counter, validate_instance, validate_optional_str
from .constants import ConnectionType
from .peer import Peer
from .probe import ProbeResult


def format_rfc3339(value: datetime) -> str:
    """Format an aware datetime as RFC 3339 in UTC with a ``Z`` suffix."""
    return value.astimezone(UTC).isoformat().replace("+00:00", "Z")


def _validate_timestamp(value: Any) -> None:
    validate_instance(value, datetime, "timestamp")
    if value.tzinfo is None:
        raise ValueError("timestamp must be timezone-aware")


@dataclass(frozen=True, slots=True)
class PeerStatus:
    """Unified live view of one peer.

    Attributes:
        peer: Directory record the status describes.
        online: Whether the peer answered the latest probe.
        active: Whether the peer is exchanging traffic, not merely reachable.
        connection_type: Classified path of the latest probe.
        cur_addr: Current negotiated address.
        relay: Relay server region in use, if relayed.
        peer_relay: Forwarding peer in use, if relayed by a peer.
        last_handshake: Last successful session handshake.
        rx_bytes: Cumulative bytes received.
        tx_bytes: Cumulative bytes sent.
        latency_ms: Latest round-trip time, when online.
        error: Latest probe failure reason, when offline.

    Raises:
        ValueError: If ``online`` is set for a peer without a mesh address,
            or ``active`` is set for a peer that is not online.
    """

    peer: Peer
    online: bool
    active: bool
    connection_type: ConnectionType
    cur_addr: str | None = None
    relay: str | None = None
    peer_relay: str | None = None
    last_handshake: datetime | None = None
    rx_bytes: int = 0
    tx_bytes: int = 0
    latency_ms: float | None = None
    error: str | None = None

    def __post_init__(self) -> None:
        validate_instance(self.peer, Peer, "peer")
        validate_instance(self.online, bool, "online")
        validate_instance(self.active, bool, "active")
        validate_instance(self.connection_type, ConnectionType, "connection_type")
        validate_optional_str(self.cur_addr, "cur_addr")
        validate_optional_str(self.relay, "relay")
        validate_optional_str(self.peer_relay, "peer_relay")
        validate_optional_str(self.error, "error")
        validate_counter(self.rx_bytes, "rx_bytes")
        validate_counter(self.tx_bytes, "tx_bytes")

        if self.online and self.peer.address is None:
            raise ValueError("online peer must have a mesh address")
        if self.active and not self.online:
            raise ValueError("active implies online")

    @property
    def key(self) -> str:
        """Identity key of the underlying peer."""
        return self.peer.key

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the peer wire format (camelCase, absent fields omitted)."""
        peer = self.peer
        data: dict[str, Any] = {
            "nodeKey": peer.key,
            "hostName": peer.host_name,
            "dnsName": peer.dns_name,
            "ip": peer.address or "",
            "online": self.online,
            "active": self.active,
            "connectionType": self.connection_type.value,
            "lastHandshake": (
                format_rfc3339(self.last_handshake) if self.last_handshake else None
            ),
            "rxBytes": self.rx_bytes,
            "txBytes": self.tx_bytes,
            "os": peer.os,
        }
        optional: dict[str, Any] = {
            "curAddr": self.cur_addr,
            "relay": self.relay,
            "peerRelay": self.peer_relay,
            "latencyMs": round(self.latency_ms, 3) if self.latency_ms is not None else None,
            "error": self.error,
            "userLogin": peer.user_login,
            "userDisplay": peer.user_display,
            "tags": list(peer.tags) or None,
        }
        data.update({k: v for k, v in optional.items() if v is not None})
        return data


@dataclass(frozen=True, slots=True)
class StatusReport:
    """Ordered peer statuses stamped with the snapshot time.

    Attributes:
        statuses: One entry per directory peer, in directory order.
        timestamp: When the underlying probe round finished.
        partial: True if the round was abandoned before every peer was
            probed; unprobed peers carry an ``unknown`` connection type.
    """

    statuses: tuple[PeerStatus, ...]
    timestamp: datetime
    partial: bool = False

    def __post_init__(self) -> None:
        if isinstance(self.statuses, list):
            object.__setattr__(self, "statuses", tuple(self.statuses))
        validate_instance(self.statuses, tuple, "statuses")
        _validate_timestamp(self.timestamp)
        validate_instance(self.partial, bool, "partial")

    def __len__(self) -> int:
        return len(self.statuses)

    def find(self, identifier: str) -> PeerStatus | None:
        """Return the status of the peer named by *identifier*, or ``None``.

        Exact key matches take precedence over host name, DNS name and
        address matches.
        """
        for status in self.statuses:
            if status.key == identifier:
                return status
        for status in self.statuses:
            if status.peer.matches(identifier):
                return status
        return None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to ``{peers, timestamp}`` (plus ``partial`` when set)."""
        data: dict[str, Any] = {
            "peers": [status.to_dict() for status in self.statuses],
            "timestamp": format_rfc3339(self.timestamp),
        }
        if self.partial:
            data["partial"] = True
        return data


@dataclass(frozen=True, slots=True)
class ProbeReport:
    """Ordered probe results of one round.

    Attributes:
        results: Probe results in the caller-supplied peer order.
        timestamp: When the round finished.
        partial: True if the round was cancelled before every probe
            completed; abandoned peers are absent from ``results``.
    """

    results: tuple[ProbeResult, ...]
    timestamp: datetime
    partial: bool = False

    def __post_init__(self) -> None:
        if isinstance(self.results, list):
            object.__setattr__(self, "results", tuple(self.results))
        validate_instance(self.results, tuple, "results")
        _validate_timestamp(self.timestamp)
        validate_instance(self.partial, bool, "partial")

    def __len__(self) -> int:
        return len(self.results)

    @property
    def succeeded(self) -> int:
        """Number of successful probes."""
        return sum(1 for r in self.results if r.success)

    @property
    def failed(self) -> int:
        """Number of failed probes."""
        return len(self.results) - self.succeeded

    def to_dict(self) -> dict[str, Any]:
        """Serialize to ``{results, timestamp}`` (plus ``partial`` when set)."""
        data: dict[str, Any] = {
            "results": [result.to_dict() for result in self.results],
            "timestamp": format_rfc3339(self.timestamp),
        }
        if self.partial:
            data["partial"] = True
        return data
