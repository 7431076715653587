"""Membership directory serving peers declared in configuration."""

from __future__ import annotations

from meshcanary.models.peer import DirectorySnapshot, Peer

from .base import PeerDirectory
from .configs import StaticDirectoryConfig, StaticPeerConfig


def _to_peer(config: StaticPeerConfig) -> Peer:
    return Peer(
        key=config.key,
        host_name=config.host_name,
        dns_name=config.dns_name,
        addresses=tuple(config.addresses),
        os=config.os,
        ssh_host_keys=tuple(config.ssh_host_keys),
        tags=tuple(config.tags),
        user_login=config.user_login or None,
        user_display=config.user_display or None,
        online=config.online,
    )


class StaticDirectory(PeerDirectory):
    """Fixed membership, useful for labs and tests.

    Peers are served in declaration order. Each
    [snapshot()][meshcanary.directory.static.StaticDirectory.snapshot] call
    returns a new snapshot stamped with the current time.
    """

    KIND = "static"

    def __init__(
        self,
        peers: list[Peer] | tuple[Peer, ...] = (),
        *,
        self_peer: Peer | None = None,
        magic_dns_suffix: str | None = None,
    ) -> None:
        self._peers = tuple(peers)
        self._self_peer = self_peer
        self._magic_dns_suffix = magic_dns_suffix
        # Validates key uniqueness up front
        DirectorySnapshot(peers=self._peers)

    @classmethod
    def from_config(cls, config: StaticDirectoryConfig) -> StaticDirectory:
        return cls(
            [_to_peer(p) for p in config.peers],
            self_peer=_to_peer(config.self_peer) if config.self_peer else None,
            magic_dns_suffix=config.magic_dns_suffix,
        )

    async def snapshot(self) -> DirectorySnapshot:
        return DirectorySnapshot(
            peers=self._peers,
            self_peer=self._self_peer,
            magic_dns_suffix=self._magic_dns_suffix,
        )
