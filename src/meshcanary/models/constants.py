"""Shared constants for the models layer.

Defines enumerations used across multiple model modules. Placing them here
avoids circular dependencies between the models, probes and directory
layers.

See Also:
    [ProbeResult][meshcanary.models.probe.ProbeResult]: Carries a
        [ConnectionType][meshcanary.models.constants.ConnectionType] once
        classified.
    [classify()][meshcanary.probes.classifier.classify]: The only producer
        of connection types.
"""

from __future__ import annotations

from enum import StrEnum


class ConnectionType(StrEnum):
    """Path taken by traffic between the local node and a peer.

    The string values are a stable wire contract consumed by dashboards.
    They must not be renamed or reordered.

    Attributes:
        DIRECT: Peer-to-peer traffic over a negotiated UDP endpoint.
        RELAY_SERVER: Traffic relayed through a region-identified relay
            server (historically called DERP).
        PEER_RELAY: Traffic forwarded by another mesh peer.
        OFFLINE: The probe failed; the peer is unreachable.
        UNKNOWN: The probe succeeded but carried no path metadata.

    See Also:
        [classify()][meshcanary.probes.classifier.classify]: Maps a
            [ProbeResult][meshcanary.models.probe.ProbeResult] to one of
            these members.
    """

    DIRECT = "direct"
    RELAY_SERVER = "relay-server"
    PEER_RELAY = "peer-relay"
    OFFLINE = "offline"
    UNKNOWN = "unknown"


class PingType(StrEnum):
    """Ping flavours understood by the tailscaled LocalAPI.

    Attributes:
        DISCO: Disco-layer ping. Fastest; does not touch the IP stack.
        TSMP: Tailscale message protocol ping through the WireGuard tunnel.
        ICMP: ICMP echo through the tunnel.
        PEERAPI: HTTP request to the peer's PeerAPI.
    """

    DISCO = "disco"
    TSMP = "TSMP"
    ICMP = "ICMP"
    PEERAPI = "peerapi"


class ServiceName(StrEnum):
    """Canonical service identifiers used in logging and metrics.

    Attributes:
        MONITOR: Periodic probing service
            ([Monitor][meshcanary.services.monitor.Monitor]).
        API: HTTP query surface
            ([Api][meshcanary.services.api.Api]).
    """

    MONITOR = "monitor"
    API = "api"
