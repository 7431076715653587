"""
Membership directory backed by a remote ``GET /machines`` endpoint.

The endpoint returns the directory wire document
``{"machines": [Machine, ...], "self": Machine}`` with camelCase fields
(``nodeKey``, ``hostName``, ``dnsName``, ``tailscaleIPs``, ``os``,
``online``, ``sshHostKeys``, ``tags``, ``userLogin``, ``userDisplay``),
as served by the [Api][meshcanary.services.api.Api] service of another
meshcanary node.
"""

from __future__ import annotations

from typing import Any

import aiohttp

from meshcanary.core.exceptions import DirectoryUnavailableError
from meshcanary.core.logger import Logger
from meshcanary.models.peer import DirectorySnapshot, Peer
from meshcanary.utils.http import read_bounded_json

from .base import PeerDirectory, record_text, unique_peers, unreadable_peer


_SOURCE = "machines"
_logger = Logger("directory")


def _str_list(value: Any, name: str) -> list[str]:
    if not value:
        return []
    if not isinstance(value, list):
        raise TypeError(f"{name} must be a list, got {type(value).__name__}")
    return value


def peer_from_machine(raw: Any) -> Peer:
    """Build a [Peer][meshcanary.models.peer.Peer] from one ``Machine`` record.

    Raises:
        TypeError: If the record or one of its fields has the wrong type.
        ValueError: If the record has no usable identity.
    """
    if not isinstance(raw, dict):
        raise TypeError(f"machine must be an object, got {type(raw).__name__}")
    key = raw.get("nodeKey") or raw.get("dnsName") or ""
    return Peer(
        key=str(key),
        host_name=str(raw.get("hostName") or ""),
        dns_name=str(raw.get("dnsName") or ""),
        addresses=_str_list(raw.get("tailscaleIPs"), "tailscaleIPs"),
        os=str(raw.get("os") or ""),
        ssh_host_keys=_str_list(raw.get("sshHostKeys"), "sshHostKeys"),
        tags=_str_list(raw.get("tags"), "tags"),
        user_login=raw.get("userLogin") or None,
        user_display=raw.get("userDisplay") or None,
        online=bool(raw.get("online", True)),
    )


def _record_identity(raw: Any, index: int) -> tuple[str, str]:
    if not isinstance(raw, dict):
        return f"machine-{index}", ""
    host_name = record_text(raw.get("hostName"))
    for candidate in (raw.get("nodeKey"), raw.get("dnsName"), host_name):
        key = record_text(candidate)
        if key:
            return key, host_name
    return f"machine-{index}", host_name


def snapshot_from_machines(document: Any) -> DirectorySnapshot:
    """Convert a ``{machines, self}`` document into a snapshot.

    An empty ``self`` object means the serving node did not report itself.
    A machine record that cannot be read becomes a placeholder peer carrying
    the parse error; an unreadable ``self`` record is dropped. Later records
    repeating a key are dropped.

    Raises:
        TypeError: If the document or its ``machines`` list has the wrong shape.
    """
    if not isinstance(document, dict):
        raise TypeError(f"document must be an object, got {type(document).__name__}")
    machines = document.get("machines") or []
    if not isinstance(machines, list):
        raise TypeError("machines must be a list")

    peers: list[Peer] = []
    for index, raw in enumerate(machines):
        try:
            peers.append(peer_from_machine(raw))
        except (TypeError, ValueError) as e:
            key, host_name = _record_identity(raw, index)
            peers.append(unreadable_peer(key, str(e), source=_SOURCE, host_name=host_name))

    self_peer = None
    self_raw = document.get("self")
    if self_raw:
        try:
            self_peer = peer_from_machine(self_raw)
        except (TypeError, ValueError) as e:
            _logger.warning("self_record_invalid", source=_SOURCE, error=str(e))

    return DirectorySnapshot(
        peers=tuple(unique_peers(peers, source=_SOURCE)),
        self_peer=self_peer,
    )


class MachinesDirectory(PeerDirectory):
    """Directory reading a ``{machines, self}`` document over HTTP.

    Args:
        base_url: Server base URL; ``/machines`` is appended.
        timeout: Request timeout in seconds.
        max_response_size: Upper bound for the document size in bytes.
        session: Pre-built session (tests); closed only if created here.
    """

    KIND = "machines"

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,  # noqa: ASYNC109
        max_response_size: int = 16 * 1024 * 1024,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self._url = base_url.rstrip("/") + "/machines"
        self._timeout = timeout
        self._max_response_size = max_response_size
        self._session = session
        self._owns_session = session is None
        self._logger = Logger("directory")

    @property
    def url(self) -> str:
        return self._url

    async def open(self) -> None:
        self._ensure_session()

    def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        if self._session is not None and self._owns_session:
            await self._session.close()
            self._session = None

    async def snapshot(self) -> DirectorySnapshot:
        session = self._ensure_session()
        try:
            async with session.get(
                self._url,
                timeout=aiohttp.ClientTimeout(total=self._timeout),
            ) as response:
                response.raise_for_status()
                document = await read_bounded_json(response, self._max_response_size)
        except (aiohttp.ClientError, OSError, TimeoutError, ValueError) as e:
            raise DirectoryUnavailableError(f"machines endpoint unavailable: {e}") from e

        try:
            snapshot = snapshot_from_machines(document)
        except (TypeError, ValueError) as e:
            raise DirectoryUnavailableError(f"malformed machines document: {e}") from e

        self._logger.debug("snapshot_read", source=self.KIND, peers=len(snapshot.peers))
        return snapshot
