"""
Membership directory backed by the local ``tailscaled`` daemon.

Reads ``GET /localapi/v0/status`` through a
[LocalApiClient][meshcanary.utils.localapi.LocalApiClient] and converts the
``Peer`` map, the ``User`` map and the ``Self`` record into a
[DirectorySnapshot][meshcanary.models.peer.DirectorySnapshot]. Live link
data the daemon keeps per peer (``Active``, ``CurAddr``, ``Relay``,
``PeerRelay``, ``LastHandshake``, ``RxBytes``, ``TxBytes``) is attached as
[LinkStats][meshcanary.models.peer.LinkStats].

Peers are ordered by host name, then key, because the daemon returns
them as an unordered map.
"""

from __future__ import annotations

import re
from datetime import UTC, datetime
from typing import Any

import aiohttp

from meshcanary.core.exceptions import DirectoryUnavailableError
from meshcanary.core.logger import Logger
from meshcanary.models.peer import DirectorySnapshot, LinkStats, Peer
from meshcanary.utils.localapi import LocalApiClient, LocalApiError

from .base import PeerDirectory, record_text, unique_peers, unreadable_peer


_SOURCE = "localapi"
_FRACTION_OVERFLOW = re.compile(r"(\.\d{6})\d+")
_logger = Logger("directory")


def parse_go_time(value: Any) -> datetime | None:
    """Parse an RFC 3339 timestamp as emitted by Go's ``time.Time``.

    The zero time (``0001-01-01T00:00:00Z``), empty values and unparseable
    strings yield ``None``. Nanosecond precision is truncated to
    microseconds.
    """
    if not isinstance(value, str) or not value.strip():
        return None
    text = _FRACTION_OVERFLOW.sub(r"\1", value.strip())
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.year <= 1:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def _str_list(value: Any) -> list[str]:
    if not value:
        return []
    if not isinstance(value, list):
        raise ValueError(f"expected a list, got {type(value).__name__}")
    return [str(item) for item in value]


def _opt_str(value: Any) -> str | None:
    return str(value) if value else None


def _counter(value: Any) -> int:
    try:
        return max(int(value or 0), 0)
    except (TypeError, ValueError):
        return 0


def _link_stats(raw: dict[str, Any]) -> LinkStats:
    return LinkStats(
        active=bool(raw.get("Active")),
        cur_addr=_opt_str(raw.get("CurAddr")),
        relay=_opt_str(raw.get("Relay")),
        peer_relay=_opt_str(raw.get("PeerRelay")),
        last_handshake=parse_go_time(raw.get("LastHandshake")),
        rx_bytes=_counter(raw.get("RxBytes")),
        tx_bytes=_counter(raw.get("TxBytes")),
    )


def peer_from_status(
    raw: dict[str, Any],
    users: dict[str, Any],
    *,
    fallback_key: str = "",
    is_self: bool = False,
) -> Peer:
    """Build a [Peer][meshcanary.models.peer.Peer] from one LocalAPI ``PeerStatus`` record.

    Args:
        raw: The ``PeerStatus`` JSON object.
        users: The status document's ``User`` map, keyed by user id.
        fallback_key: Identity used when the record carries no ``PublicKey``
            (the ``Peer`` map key).
        is_self: The record describes the local node, which is always online.

    Raises:
        ValueError: If the record is malformed.
        TypeError: If a field has the wrong JSON type.
    """
    if not isinstance(raw, dict):
        raise TypeError(f"peer record must be an object, got {type(raw).__name__}")

    user = users.get(str(raw.get("UserID"))) or {}
    if not isinstance(user, dict):
        user = {}

    return Peer(
        key=str(raw.get("PublicKey") or fallback_key),
        host_name=str(raw.get("HostName") or ""),
        dns_name=str(raw.get("DNSName") or ""),
        addresses=_str_list(raw.get("TailscaleIPs")),
        os=str(raw.get("OS") or ""),
        ssh_host_keys=_str_list(raw.get("sshHostKeys")),
        tags=_str_list(raw.get("Tags")),
        user_login=_opt_str(user.get("LoginName")),
        user_display=_opt_str(user.get("DisplayName")),
        online=True if is_self else bool(raw.get("Online")),
        link=None if is_self else _link_stats(raw),
    )


def snapshot_from_status(status: dict[str, Any]) -> DirectorySnapshot:
    """Convert a full ``/localapi/v0/status`` document into a snapshot.

    A ``Peer`` record that cannot be read becomes a placeholder peer keyed
    by its map key and carrying the parse error; an unreadable ``Self``
    record is dropped.

    Raises:
        TypeError: If the ``Peer`` or ``User`` map is not a JSON object.
    """
    peer_map = status.get("Peer") or {}
    users = status.get("User") or {}
    if not isinstance(peer_map, dict) or not isinstance(users, dict):
        raise TypeError("Peer and User must be JSON objects")

    peers: list[Peer] = []
    for map_key, raw in peer_map.items():
        try:
            peers.append(peer_from_status(raw, users, fallback_key=str(map_key)))
        except (TypeError, ValueError) as e:
            host_name = record_text(raw.get("HostName")) if isinstance(raw, dict) else ""
            key = record_text(str(map_key)) or f"peer-{len(peers)}"
            peers.append(unreadable_peer(key, str(e), source=_SOURCE, host_name=host_name))
    peers.sort(key=lambda p: (p.host_name.lower(), p.key))

    self_peer = None
    self_raw = status.get("Self")
    if self_raw:
        try:
            self_peer = peer_from_status(self_raw, users, fallback_key="self", is_self=True)
        except (TypeError, ValueError) as e:
            _logger.warning("self_record_invalid", source=_SOURCE, error=str(e))

    suffix = status.get("MagicDNSSuffix")
    if not suffix:
        tailnet = status.get("CurrentTailnet") or {}
        suffix = tailnet.get("MagicDNSSuffix") if isinstance(tailnet, dict) else None

    exit_node = status.get("ExitNodeStatus") or {}
    exit_node_id = exit_node.get("ID") if isinstance(exit_node, dict) else None

    return DirectorySnapshot(
        peers=tuple(unique_peers(peers, source=_SOURCE)),
        self_peer=self_peer,
        magic_dns_suffix=_opt_str(suffix),
        exit_node_id=record_text(exit_node_id) or None,
    )


class LocalApiDirectory(PeerDirectory):
    """Directory reading membership from ``tailscaled``.

    Args:
        client: LocalAPI client, possibly shared with a
            [DiscoProber][meshcanary.probes.disco.DiscoProber].
        timeout: Status request timeout in seconds.
        owns_client: Close the client together with the directory.
    """

    KIND = "localapi"

    def __init__(
        self,
        client: LocalApiClient,
        *,
        timeout: float = 10.0,  # noqa: ASYNC109
        owns_client: bool = False,
    ) -> None:
        self._client = client
        self._timeout = timeout
        self._owns_client = owns_client
        self._logger = Logger("directory")

    async def open(self) -> None:
        if self._owns_client:
            await self._client.open()

    async def close(self) -> None:
        if self._owns_client:
            await self._client.close()

    async def snapshot(self) -> DirectorySnapshot:
        try:
            status = await self._client.status(timeout=self._timeout)
        except (LocalApiError, aiohttp.ClientError, OSError, TimeoutError, ValueError) as e:
            raise DirectoryUnavailableError(f"localapi status unavailable: {e}") from e

        state = status.get("BackendState")
        if state and state != "Running":
            raise DirectoryUnavailableError(f"tailscaled backend is {state}")

        try:
            snapshot = snapshot_from_status(status)
        except (TypeError, ValueError) as e:
            raise DirectoryUnavailableError(f"malformed localapi status: {e}") from e

        self._logger.debug("snapshot_read", source=self.KIND, peers=len(snapshot.peers))
        return snapshot
