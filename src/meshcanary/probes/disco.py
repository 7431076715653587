"""
Probe transport issuing LocalAPI pings through ``tailscaled``.

``POST /localapi/v0/ping?ip=<addr>&type=<kind>`` asks the local daemon to
ping a peer and answers with the daemon's own ``PingResult``:

```json
{
  "IP": "100.64.0.7",
  "NodeName": "laptop.example.ts.net.",
  "Err": "",
  "LatencySeconds": 0.0123,
  "Endpoint": "10.0.0.5:41641",
  "DERPRegionID": 0,
  "DERPRegionCode": "",
  "PeerRelay": ""
}
```

A non-empty ``Err`` is a failed probe. ``disco`` pings exercise the mesh
path without involving the IP stack of either host, so they report which
path (direct endpoint, relay server, forwarding peer) carried the packet.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import aiohttp

from meshcanary.models.constants import PingType
from meshcanary.models.probe import PathMetadata, ProbeResult
from meshcanary.utils.localapi import LocalApiClient, LocalApiError

from .base import Prober


if TYPE_CHECKING:
    from meshcanary.models.peer import Peer


def _region_id(value: Any) -> int | None:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        return None
    return value


def _latency_ms(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, int | float) or value < 0:
        return 0.0
    return float(value) * 1000.0


def result_from_ping(ip: str, data: dict[str, Any], *, peer: Peer | None = None) -> ProbeResult:
    """Convert a LocalAPI ``PingResult`` object into a probe result."""
    node_name = str(data.get("NodeName") or (peer.host_name if peer else ""))
    peer_key = peer.key if peer else None

    error = data.get("Err")
    if error:
        return ProbeResult.failure(ip, str(error), node_name=node_name, peer_key=peer_key)

    return ProbeResult(
        ip=ip,
        success=True,
        node_name=node_name,
        latency_ms=_latency_ms(data.get("LatencySeconds")),
        path=PathMetadata(
            endpoint=data.get("Endpoint") or None,
            relay_region=data.get("DERPRegionCode") or None,
            relay_region_id=_region_id(data.get("DERPRegionID")),
            peer_relay=data.get("PeerRelay") or None,
        ),
        peer_key=peer_key,
    )


class DiscoProber(Prober):
    """LocalAPI ping transport.

    Args:
        client: LocalAPI client, possibly shared with a
            [LocalApiDirectory][meshcanary.directory.localapi.LocalApiDirectory].
        ping_type: Kind of ping the daemon sends.
        owns_client: Close the client together with the prober.
    """

    KIND = "disco"

    def __init__(
        self,
        client: LocalApiClient,
        *,
        ping_type: PingType = PingType.DISCO,
        owns_client: bool = False,
    ) -> None:
        self._client = client
        self._ping_type = ping_type
        self._owns_client = owns_client

    @property
    def ping_type(self) -> PingType:
        return self._ping_type

    async def open(self) -> None:
        if self._owns_client:
            await self._client.open()

    async def close(self) -> None:
        if self._owns_client:
            await self._client.close()

    def with_ping_type(self, ping_type: PingType) -> DiscoProber:
        # The variant shares the client but never closes it
        return DiscoProber(self._client, ping_type=ping_type)

    async def probe(self, peer: Peer, timeout: float) -> ProbeResult:  # noqa: ASYNC109
        ip = self.target(peer)
        try:
            data = await self._client.ping(ip, ping_type=self._ping_type.value, timeout=timeout)
        except TimeoutError:
            raise
        except (LocalApiError, aiohttp.ClientError, OSError, ValueError) as e:
            return ProbeResult.failure(
                ip, str(e) or type(e).__name__, node_name=peer.host_name, peer_key=peer.key
            )
        return result_from_ping(ip, data, peer=peer)
