r"""meshcanary -- connectivity probing and classification for mesh networks.

For every peer of a private mesh (e.g. a Tailscale tailnet) meshcanary
determines whether it is reachable, which path its traffic takes and how
fast that path is, and produces consistent, time-stamped reports.

Imports flow strictly downward:

```text
              services         Monitor, Api
             /    |    \
         core  probes  directory   Engine, coordinator, adapters
             \    |    /
              models           Pure frozen dataclasses (zero I/O)
```

Attributes:
    models: Pure frozen dataclasses. Zero I/O, depends only on stdlib.
    directory: Membership sources (LocalAPI, ``/machines``, static).
    probes: Probe transports, path classifier and fan-out coordinator.
    core: Engine facade, status aggregator, base service, exceptions,
        logging, metrics.
    utils: LocalAPI unix-socket client and bounded HTTP reads.
    services: Monitor and Api.

Note:
    Top-level imports (``from meshcanary import Canary``) use lazy loading
    and resolve on first access.
"""

import importlib
from importlib.metadata import version as _get_version


__version__ = _get_version("meshcanary")

__all__ = [
    "Api",
    "ApiConfig",
    "BaseService",
    "Canary",
    "CanaryConfig",
    "ConnectionType",
    "DirectorySnapshot",
    "Logger",
    "Monitor",
    "MonitorConfig",
    "Peer",
    "PeerStatus",
    "ProbeReport",
    "ProbeResult",
    "StatusReport",
]

_LAZY_IMPORTS: dict[str, tuple[str, str]] = {
    "BaseService": ("meshcanary.core", "BaseService"),
    "Canary": ("meshcanary.core", "Canary"),
    "CanaryConfig": ("meshcanary.core", "CanaryConfig"),
    "Logger": ("meshcanary.core", "Logger"),
    "ConnectionType": ("meshcanary.models", "ConnectionType"),
    "DirectorySnapshot": ("meshcanary.models", "DirectorySnapshot"),
    "Peer": ("meshcanary.models", "Peer"),
    "PeerStatus": ("meshcanary.models", "PeerStatus"),
    "ProbeReport": ("meshcanary.models", "ProbeReport"),
    "ProbeResult": ("meshcanary.models", "ProbeResult"),
    "StatusReport": ("meshcanary.models", "StatusReport"),
    "Api": ("meshcanary.services", "Api"),
    "ApiConfig": ("meshcanary.services", "ApiConfig"),
    "Monitor": ("meshcanary.services", "Monitor"),
    "MonitorConfig": ("meshcanary.services", "MonitorConfig"),
}


def __getattr__(name: str) -> object:
    if name in _LAZY_IMPORTS:
        module_path, attr_name = _LAZY_IMPORTS[name]
        module = importlib.import_module(module_path)
        value = getattr(module, attr_name)
        globals()[name] = value  # Cache for subsequent access
        return value
    raise AttributeError(f"module 'meshcanary' has no attribute {name!r}")


def __dir__() -> list[str]:
    return __all__
