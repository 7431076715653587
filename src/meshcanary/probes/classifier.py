"""
Path classification of probe results.

[classify()][meshcanary.probes.classifier.classify] is a pure function of a
[ProbeResult][meshcanary.models.probe.ProbeResult]; the first matching rule
wins:

1. the probe failed -> ``offline``
2. a negotiated endpoint and no relay identifier -> ``direct``
3. a relay server region (id or code) -> ``relay-server``
4. a forwarding peer -> ``peer-relay``
5. anything else -> ``unknown``

A relay server takes precedence over a forwarding peer when a transport
reports both.
"""

from __future__ import annotations

from meshcanary.models.constants import ConnectionType
from meshcanary.models.probe import ProbeResult


def classify(result: ProbeResult) -> ConnectionType:
    """Map raw path metadata to a [ConnectionType][meshcanary.models.constants.ConnectionType]."""
    if not result.success:
        return ConnectionType.OFFLINE

    path = result.path
    if path.endpoint and not (path.has_relay_server or path.has_peer_relay):
        return ConnectionType.DIRECT
    if path.has_relay_server:
        return ConnectionType.RELAY_SERVER
    if path.has_peer_relay:
        return ConnectionType.PEER_RELAY
    return ConnectionType.UNKNOWN


def classified(result: ProbeResult) -> ProbeResult:
    """Return *result* with its connection type attached.

    Already classified results are returned unchanged.
    """
    if result.connection_type is not None:
        return result
    return result.with_connection_type(classify(result))
