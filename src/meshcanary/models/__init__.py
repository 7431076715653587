"""Pure frozen dataclasses with zero I/O for peers, probes and reports.

The models layer is the foundation of the package DAG. It has **no
dependencies** on any other meshcanary package -- only the Python standard
library. Every model uses ``@dataclass(frozen=True, slots=True)`` and
validates itself in ``__post_init__`` so invalid instances never escape
the constructor.

Attributes:
    Peer: Directory record for one mesh machine.
    LinkStats: Live link counters the local node keeps for a peer.
    DirectorySnapshot: Point-in-time membership copy, local node included.
    PathMetadata: Raw path description reported by a probe transport.
    ProbeResult: Outcome of probing one peer once.
    PeerStatus: A peer joined with its latest probe outcome.
    StatusReport: Ordered peer statuses plus snapshot timestamp.
    ProbeReport: Ordered probe results plus round timestamp.
    ConnectionType: ``direct``, ``relay-server``, ``peer-relay``,
        ``offline`` or ``unknown``.

Note:
    Models use ``object.__setattr__`` in ``__post_init__`` to normalize
    fields on frozen dataclasses. This is safe because ``__post_init__``
    runs before the instance is exposed to external code.
"""

from .constants import ConnectionType, PingType, ServiceName
from .peer import DirectorySnapshot, LinkStats, Peer, hostname_from_dns
from .probe import PathMetadata, ProbeResult
from .status import PeerStatus, ProbeReport, StatusReport, format_rfc3339


__all__ = [
    "ConnectionType",
    "DirectorySnapshot",
    "LinkStats",
    "PathMetadata",
    "Peer",
    "PeerStatus",
    "PingType",
    "ProbeReport",
    "ProbeResult",
    "ServiceName",
    "StatusReport",
    "format_rfc3339",
    "hostname_from_dns",
]
