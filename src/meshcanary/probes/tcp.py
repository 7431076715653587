"""
Probe transport timing a plain TCP connect.

Works against any peer reachable over the mesh without access to the
local daemon. A TCP handshake says nothing about the path the packets
took, so successful results carry empty
[PathMetadata][meshcanary.models.probe.PathMetadata] and classify as
``unknown``.
"""

from __future__ import annotations

import asyncio
import contextlib
import time
from typing import TYPE_CHECKING

from meshcanary.models.probe import ProbeResult

from .base import Prober


if TYPE_CHECKING:
    from meshcanary.models.peer import Peer


class TcpProber(Prober):
    """Measure the time to complete a TCP handshake with ``port`` on the peer."""

    KIND = "tcp"

    def __init__(self, port: int = 22) -> None:
        self._port = port

    @property
    def port(self) -> int:
        return self._port

    async def probe(self, peer: Peer, timeout: float) -> ProbeResult:  # noqa: ASYNC109
        ip = self.target(peer)
        start = time.perf_counter()
        try:
            _reader, writer = await asyncio.wait_for(
                asyncio.open_connection(ip, self._port), timeout=timeout
            )
        except TimeoutError:
            raise
        except OSError as e:
            return ProbeResult.failure(
                ip,
                e.strerror or str(e) or type(e).__name__,
                node_name=peer.host_name,
                peer_key=peer.key,
            )
        latency_ms = (time.perf_counter() - start) * 1000.0

        writer.close()
        with contextlib.suppress(OSError):
            await writer.wait_closed()

        return ProbeResult(
            ip=ip,
            success=True,
            node_name=peer.host_name,
            latency_ms=latency_ms,
            peer_key=peer.key,
        )
