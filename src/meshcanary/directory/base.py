"""
Abstract membership directory.

A [PeerDirectory][meshcanary.directory.base.PeerDirectory] is a read-only
accessor for the mesh membership. Each call returns a fresh point-in-time
[DirectorySnapshot][meshcanary.models.peer.DirectorySnapshot]; the engine
reads exactly one snapshot per probe round and never mutates it.

See Also:
    [LocalApiDirectory][meshcanary.directory.localapi.LocalApiDirectory]:
        Reads membership from the local ``tailscaled`` daemon.
    [MachinesDirectory][meshcanary.directory.machines.MachinesDirectory]:
        Reads a ``{machines, self}`` document over HTTP.
    [StaticDirectory][meshcanary.directory.static.StaticDirectory]:
        Serves peers declared in configuration.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable
from types import TracebackType
from typing import TYPE_CHECKING, Any, ClassVar, Self

from meshcanary.core.logger import Logger
from meshcanary.models.peer import Peer


if TYPE_CHECKING:
    from meshcanary.models.peer import DirectorySnapshot


_logger = Logger("directory")


def record_text(value: Any) -> str:
    """Return *value* if it can serve as a peer identity or name, else ``""``."""
    if isinstance(value, str) and value.strip() and "\x00" not in value:
        return value
    return ""


def unreadable_peer(key: str, error: str, *, source: str, host_name: str = "") -> Peer:
    """Stand in for a directory record that could not be parsed.

    The placeholder has no addresses, so pinging it yields a failure result
    carrying *error* and the round goes on without the record.
    """
    _logger.warning("peer_record_invalid", source=source, peer=key, error=error)
    return Peer(key=key, host_name=host_name, error=error)


def unique_peers(peers: Iterable[Peer], *, source: str) -> list[Peer]:
    """Keep the first peer of every key, dropping later duplicates."""
    seen: set[str] = set()
    kept: list[Peer] = []
    for peer in peers:
        if peer.key in seen:
            _logger.warning("duplicate_peer_dropped", source=source, peer=peer.key)
            continue
        seen.add(peer.key)
        kept.append(peer)
    return kept


class PeerDirectory(ABC):
    """Source of mesh membership snapshots.

    Subclasses implement [snapshot()][meshcanary.directory.base.PeerDirectory.snapshot]
    and may override ``open()`` / ``close()`` to manage connections.

    Attributes:
        KIND: Short identifier used in configuration and logs.
    """

    KIND: ClassVar[str]

    async def open(self) -> None:  # noqa: B027
        """Acquire resources. No-op by default."""

    async def close(self) -> None:  # noqa: B027
        """Release resources. No-op by default."""

    async def __aenter__(self) -> Self:
        await self.open()
        return self

    async def __aexit__(
        self,
        _exc_type: type[BaseException] | None,
        _exc_val: BaseException | None,
        _exc_tb: TracebackType | None,
    ) -> None:
        await self.close()

    @abstractmethod
    async def snapshot(self) -> DirectorySnapshot:
        """Read the current membership.

        Raises:
            DirectoryUnavailableError: If membership data cannot be read.
        """
        ...

    async def current_peers(self) -> list[Peer]:
        """Return the known peers of a fresh snapshot, in directory order.

        Raises:
            DirectoryUnavailableError: If membership data cannot be read.
        """
        snapshot = await self.snapshot()
        return list(snapshot.peers)
