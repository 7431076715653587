"""Membership directory adapters.

Every adapter implements [PeerDirectory][meshcanary.directory.base.PeerDirectory]
and raises [DirectoryUnavailableError][meshcanary.core.exceptions.DirectoryUnavailableError]
when membership cannot be read.

Attributes:
    PeerDirectory: Abstract snapshot source.
    LocalApiDirectory: ``tailscaled`` status over the LocalAPI socket.
    MachinesDirectory: Remote ``GET /machines`` document.
    StaticDirectory: Peers declared in configuration.
    build_directory: Factory selecting an adapter from a
        [DirectoryConfig][meshcanary.directory.configs.DirectoryConfig].
"""

from .base import PeerDirectory
from .configs import DirectoryConfig, DirectoryKind, StaticDirectoryConfig, StaticPeerConfig
from .factory import build_directory
from .localapi import LocalApiDirectory
from .machines import MachinesDirectory
from .static import StaticDirectory


__all__ = [
    "DirectoryConfig",
    "DirectoryKind",
    "LocalApiDirectory",
    "MachinesDirectory",
    "PeerDirectory",
    "StaticDirectory",
    "StaticDirectoryConfig",
    "StaticPeerConfig",
    "build_directory",
]
