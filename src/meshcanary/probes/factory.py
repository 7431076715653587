"""Construct a [Prober][meshcanary.probes.base.Prober] from configuration."""

from __future__ import annotations

from meshcanary.utils.localapi import LocalApiClient

from .base import Prober
from .configs import ProberConfig, ProberKind
from .disco import DiscoProber
from .tcp import TcpProber


def build_prober(config: ProberConfig, *, client: LocalApiClient | None = None) -> Prober:
    """Build the transport selected by ``config.kind``.

    Args:
        config: Prober configuration.
        client: LocalAPI client to share with other components. When
            omitted for ``kind=disco``, the prober creates and owns a
            default client.
    """
    if config.kind == ProberKind.TCP:
        return TcpProber(port=config.tcp_port)
    if client is None:
        return DiscoProber(LocalApiClient(), ping_type=config.ping_type, owns_client=True)
    return DiscoProber(client, ping_type=config.ping_type)
