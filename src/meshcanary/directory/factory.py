"""Construct a [PeerDirectory][meshcanary.directory.base.PeerDirectory] from configuration."""

from __future__ import annotations

from meshcanary.utils.localapi import LocalApiClient

from .base import PeerDirectory
from .configs import DirectoryConfig, DirectoryKind
from .localapi import LocalApiDirectory
from .machines import MachinesDirectory
from .static import StaticDirectory


def build_directory(
    config: DirectoryConfig,
    *,
    client: LocalApiClient | None = None,
) -> PeerDirectory:
    """Build the adapter selected by ``config.kind``.

    Args:
        config: Directory configuration.
        client: LocalAPI client to share with other components. When
            omitted for ``kind=localapi``, the directory creates and owns
            a default client.
    """
    if config.kind == DirectoryKind.LOCALAPI:
        if client is None:
            return LocalApiDirectory(LocalApiClient(), timeout=config.timeout, owns_client=True)
        return LocalApiDirectory(client, timeout=config.timeout)

    if config.kind == DirectoryKind.MACHINES:
        assert config.machines_url is not None  # enforced by DirectoryConfig
        return MachinesDirectory(
            config.machines_url,
            timeout=config.timeout,
            max_response_size=config.max_response_size,
        )

    return StaticDirectory.from_config(config.static)
