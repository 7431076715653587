"""Probe transports, path classification and concurrent probe rounds.

Attributes:
    Prober: Abstract one-shot connectivity check.
    DiscoProber: LocalAPI ping through ``tailscaled``.
    TcpProber: Timed TCP connect.
    classify: Pure mapping from a probe result to a connection type.
    FanOutCoordinator: Concurrent, bounded, ordered probe rounds.
    build_prober: Factory selecting a transport from a
        [ProberConfig][meshcanary.probes.configs.ProberConfig].
"""

from .base import Prober
from .classifier import classified, classify
from .configs import ProberConfig, ProberKind
from .coordinator import OFFLINE_IN_DIRECTORY, FanOutCoordinator
from .disco import DiscoProber
from .factory import build_prober
from .tcp import TcpProber


__all__ = [
    "OFFLINE_IN_DIRECTORY",
    "DiscoProber",
    "FanOutCoordinator",
    "Prober",
    "ProberConfig",
    "ProberKind",
    "TcpProber",
    "build_prober",
    "classified",
    "classify",
]
