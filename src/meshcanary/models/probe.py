"""
Raw outcome of a single connectivity probe.

A [ProbeResult][meshcanary.models.probe.ProbeResult] is produced by a
[Prober][meshcanary.probes.base.Prober] for exactly one peer per round and
carries the raw [PathMetadata][meshcanary.models.probe.PathMetadata]
reported by the transport. The classified
[ConnectionType][meshcanary.models.constants.ConnectionType] is attached
afterwards by the [FanOutCoordinator][meshcanary.probes.coordinator.FanOutCoordinator].

Success and failure are mutually exclusive shapes: a success carries a
latency and no error, a failure carries an error and a zero latency.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any

from ._validation import (
    validate_counter,
    validate_instance,
    validate_latency,
    validate_optional_str,
    validate_str_no_null,
)
from .constants import ConnectionType


@dataclass(frozen=True, slots=True)
class PathMetadata:
    """Transport-reported description of the path a probe travelled.

    A region id of ``0`` or an empty string is normalized to ``None``;
    transports use zero values to mean "not applicable".

    Attributes:
        endpoint: Negotiated UDP endpoint (``ip:port``) for a direct path.
        relay_region: Relay server region code (e.g. ``"fra"``).
        relay_region_id: Numeric relay server region id.
        peer_relay: Name or address of the peer forwarding traffic.
    """

    endpoint: str | None = None
    relay_region: str | None = None
    relay_region_id: int | None = None
    peer_relay: str | None = None

    def __post_init__(self) -> None:
        for name in ("endpoint", "relay_region", "peer_relay"):
            if getattr(self, name) == "":
                object.__setattr__(self, name, None)
            validate_optional_str(getattr(self, name), name)
        if self.relay_region_id is not None:
            validate_counter(self.relay_region_id, "relay_region_id")
            if self.relay_region_id == 0:
                object.__setattr__(self, "relay_region_id", None)

    @property
    def has_relay_server(self) -> bool:
        """True if a relay server region (by id or by name) is present."""
        return self.relay_region_id is not None or self.relay_region is not None

    @property
    def has_peer_relay(self) -> bool:
        """True if a forwarding peer is present."""
        return self.peer_relay is not None

    @property
    def is_empty(self) -> bool:
        """True if the transport reported nothing about the path."""
        return not (self.endpoint or self.has_relay_server or self.has_peer_relay)


@dataclass(frozen=True, slots=True)
class ProbeResult:
    """Outcome of probing one peer once.

    Attributes:
        ip: Target mesh address (empty when the peer had none).
        node_name: Target peer name as reported by the transport or directory.
        success: Whether the peer answered within the timeout.
        error: Human-readable failure reason; ``None`` on success.
        latency_ms: Round-trip time in milliseconds; ``0.0`` on failure.
        path: Raw path metadata; empty on failure.
        peer_key: Identity key of the probed peer, when known.
        connection_type: Classified path, attached after classification.

    Raises:
        ValueError: If success/error/latency are inconsistent, or a
            classified type contradicts the success flag.
    """

    ip: str
    success: bool
    node_name: str = ""
    error: str | None = None
    latency_ms: float = 0.0
    path: PathMetadata = field(default_factory=PathMetadata)
    peer_key: str | None = None
    connection_type: ConnectionType | None = None

    def __post_init__(self) -> None:
        validate_str_no_null(self.ip, "ip")
        validate_str_no_null(self.node_name, "node_name")
        validate_instance(self.success, bool, "success")
        validate_latency(self.latency_ms, "latency_ms")
        validate_instance(self.path, PathMetadata, "path")
        validate_optional_str(self.peer_key, "peer_key")

        if self.success:
            if self.error is not None:
                raise ValueError("error must be None when success is True")
        else:
            validate_optional_str(self.error, "error")
            if self.error is None:
                raise ValueError("error is required when success is False")
            if self.latency_ms != 0:
                raise ValueError("latency_ms must be 0 when success is False")

        if self.connection_type is not None:
            validate_instance(self.connection_type, ConnectionType, "connection_type")
            if (self.connection_type == ConnectionType.OFFLINE) == self.success:
                raise ValueError("connection_type must be offline exactly when success is False")

    @classmethod
    def failure(
        cls,
        ip: str,
        error: str,
        *,
        node_name: str = "",
        peer_key: str | None = None,
    ) -> ProbeResult:
        """Build a failure outcome with no latency and no path metadata."""
        return cls(
            ip=ip,
            success=False,
            node_name=node_name,
            error=error or "probe failed",
            peer_key=peer_key,
        )

    def with_connection_type(self, connection_type: ConnectionType) -> ProbeResult:
        """Return a copy carrying the classified connection type."""
        return replace(self, connection_type=connection_type)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the ping wire format (camelCase, absent fields omitted).

        Raises:
            ValueError: If the result has not been classified yet.
        """
        if self.connection_type is None:
            raise ValueError("ProbeResult must be classified before serialization")

        data: dict[str, Any] = {
            "ip": self.ip,
            "nodeName": self.node_name,
            "success": self.success,
        }
        if self.error is not None:
            data["error"] = self.error
        data["latencyMs"] = round(self.latency_ms, 3)
        data["connectionType"] = self.connection_type.value
        optional = {
            "endpoint": self.path.endpoint,
            "relayRegion": self.path.relay_region,
            "relayRegionId": self.path.relay_region_id,
            "peerRelay": self.path.peer_relay,
        }
        data.update({k: v for k, v in optional.items() if v is not None})
        return data
