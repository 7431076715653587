"""
Mesh peer records as supplied by the membership directory.

A [Peer][meshcanary.models.peer.Peer] is a read-only view of one machine in
the mesh: identity, addresses, ownership and, when the directory can report
it, the live [LinkStats][meshcanary.models.peer.LinkStats] the local node
keeps for that machine. A [DirectorySnapshot][meshcanary.models.peer.DirectorySnapshot]
groups every peer seen at one instant together with the local node.

Examples:
    ```python
    peer = Peer(
        key="nodekey:abc",
        host_name="localhost",
        dns_name="laptop.example.ts.net.",
        addresses=["100.64.0.7"],
    )
    peer.host_name  # 'laptop'
    peer.address    # '100.64.0.7'
    ```
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, ClassVar

from ._validation import (
    validate_counter,
    validate_instance,
    validate_optional_str,
    validate_str_no_null,
    validate_str_not_empty,
    validate_str_tuple,
)


def hostname_from_dns(dns_name: str) -> str:
    """Return the first label of a DNS name.

    ``"iphone172.example.ts.net."`` becomes ``"iphone172"``. An empty name
    yields ``"unknown"``.
    """
    dns_name = dns_name.strip().rstrip(".")
    if not dns_name:
        return "unknown"
    return dns_name.split(".", 1)[0]


@dataclass(frozen=True, slots=True)
class LinkStats:
    """Live link state the local node tracks for one peer.

    Reported by directories that have access to the local daemon (the
    LocalAPI status endpoint). Directories that only know static membership
    leave ``Peer.link`` as ``None``.

    Attributes:
        active: Whether traffic was recently exchanged with the peer.
        cur_addr: Current negotiated UDP endpoint (``ip:port``), if direct.
        relay: Home relay server region name of the peer.
        peer_relay: Peer acting as forwarder, if any.
        last_handshake: Time of the last successful session handshake.
        rx_bytes: Cumulative bytes received from the peer.
        tx_bytes: Cumulative bytes sent to the peer.
    """

    active: bool = False
    cur_addr: str | None = None
    relay: str | None = None
    peer_relay: str | None = None
    last_handshake: datetime | None = None
    rx_bytes: int = 0
    tx_bytes: int = 0

    def __post_init__(self) -> None:
        validate_instance(self.active, bool, "active")
        validate_optional_str(self.cur_addr, "cur_addr")
        validate_optional_str(self.relay, "relay")
        validate_optional_str(self.peer_relay, "peer_relay")
        if self.last_handshake is not None:
            validate_instance(self.last_handshake, datetime, "last_handshake")
            if self.last_handshake.tzinfo is None:
                raise ValueError("last_handshake must be timezone-aware")
        validate_counter(self.rx_bytes, "rx_bytes")
        validate_counter(self.tx_bytes, "tx_bytes")


@dataclass(frozen=True, slots=True)
class Peer:
    """Immutable directory record for one mesh machine.

    Sequences passed as lists are stored as tuples so that a snapshot can
    be shared between concurrent probe tasks without copying.

    Attributes:
        key: Stable identity key (e.g. the node public key).
        host_name: Machine host name. A generic value (``""`` or
            ``"localhost"``) is replaced by the first DNS label.
        dns_name: Fully qualified MagicDNS name, possibly with trailing dot.
        addresses: Assigned mesh addresses, preferred address first.
        os: Operating system reported by the machine.
        ssh_host_keys: SSH host key fingerprints advertised by the machine.
        tags: Free-form ACL tags.
        user_login: Owning user's login name.
        user_display: Owning user's display name.
        online: Whether the directory currently considers the peer online.
        link: Live link statistics, when the directory can supply them.
        error: Why the directory record could not be read. Such a peer is a
            placeholder without addresses and is reported offline.

    Raises:
        TypeError: If a field has the wrong type.
        ValueError: If ``key`` is empty or a string contains null bytes.
    """

    key: str
    host_name: str = ""
    dns_name: str = ""
    addresses: tuple[str, ...] = ()
    os: str = ""
    ssh_host_keys: tuple[str, ...] = ()
    tags: tuple[str, ...] = ()
    user_login: str | None = None
    user_display: str | None = None
    online: bool = True
    link: LinkStats | None = field(default=None, compare=False)
    error: str | None = field(default=None, compare=False)

    _GENERIC_HOSTNAMES: ClassVar[frozenset[str]] = frozenset({"", "localhost"})

    def __post_init__(self) -> None:
        validate_str_not_empty(self.key, "key")
        validate_str_no_null(self.host_name, "host_name")
        validate_str_no_null(self.dns_name, "dns_name")
        validate_str_no_null(self.os, "os")
        validate_optional_str(self.user_login, "user_login")
        validate_optional_str(self.user_display, "user_display")
        validate_instance(self.online, bool, "online")
        if self.link is not None:
            validate_instance(self.link, LinkStats, "link")
        validate_optional_str(self.error, "error")

        # Bypass frozen restriction to normalize sequence fields
        for name in ("addresses", "ssh_host_keys", "tags"):
            value = getattr(self, name)
            if isinstance(value, list):
                object.__setattr__(self, name, tuple(value))
            validate_str_tuple(getattr(self, name), name)

        if self.host_name.strip().lower() in self._GENERIC_HOSTNAMES:
            object.__setattr__(self, "host_name", hostname_from_dns(self.dns_name))

    @property
    def address(self) -> str | None:
        """Preferred mesh address, or ``None`` if the peer has none."""
        for addr in self.addresses:
            if addr:
                return addr
        return None

    def matches(self, identifier: str) -> bool:
        """Whether *identifier* names this peer (key, host, DNS name or address)."""
        if identifier in (self.key, self.host_name):
            return True
        if self.dns_name and identifier.rstrip(".") == self.dns_name.rstrip("."):
            return True
        return identifier in self.addresses

    def to_machine_dict(self) -> dict[str, Any]:
        """Serialize as a directory ``Machine`` wire record."""
        return {
            "nodeKey": self.key,
            "hostName": self.host_name,
            "dnsName": self.dns_name,
            "tailscaleIPs": list(self.addresses),
            "os": self.os,
            "online": self.online,
            "sshHostKeys": list(self.ssh_host_keys),
            "tags": list(self.tags),
            "userLogin": self.user_login or "",
            "userDisplay": self.user_display or "",
        }


@dataclass(frozen=True, slots=True)
class DirectorySnapshot:
    """Point-in-time copy of the mesh membership.

    Attributes:
        peers: Known peers in directory order. Keys are unique.
        self_peer: The local node, when the directory reports it.
        magic_dns_suffix: MagicDNS suffix of the mesh, if known.
        exit_node_id: Identity of the exit node the local node routes
            through, if any.
        taken_at: When the snapshot was read.

    Raises:
        ValueError: If two peers share the same key.
    """

    peers: tuple[Peer, ...] = ()
    self_peer: Peer | None = None
    magic_dns_suffix: str | None = None
    exit_node_id: str | None = None
    taken_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def __post_init__(self) -> None:
        if isinstance(self.peers, list):
            object.__setattr__(self, "peers", tuple(self.peers))
        validate_instance(self.peers, tuple, "peers")
        seen: set[str] = set()
        for peer in self.peers:
            validate_instance(peer, Peer, "peer")
            if peer.key in seen:
                raise ValueError(f"duplicate peer key: {peer.key}")
            seen.add(peer.key)
        if self.self_peer is not None:
            validate_instance(self.self_peer, Peer, "self_peer")
        validate_optional_str(self.magic_dns_suffix, "magic_dns_suffix")
        validate_optional_str(self.exit_node_id, "exit_node_id")

    def find(self, identifier: str) -> Peer | None:
        """Return the peer named by *identifier*, preferring exact key matches."""
        for peer in self.peers:
            if peer.key == identifier:
                return peer
        for peer in self.peers:
            if peer.matches(identifier):
                return peer
        return None

    def to_machines_dict(self, *, ssh_only: bool = True) -> dict[str, Any]:
        """Serialize as the ``{machines, self}`` directory wire document.

        Args:
            ssh_only: Only list peers that advertise SSH host keys.
        """
        machines = [
            peer.to_machine_dict()
            for peer in self.peers
            if peer.ssh_host_keys or not ssh_only
        ]
        self_dict = self.self_peer.to_machine_dict() if self.self_peer else {}
        return {"machines": machines, "self": self_dict}
