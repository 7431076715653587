"""Monitor service package.

See Also:
    [Monitor][meshcanary.services.monitor.service.Monitor]: The service class.
    [MonitorConfig][meshcanary.services.monitor.configs.MonitorConfig]: Service
        configuration.
"""

from .configs import MonitorConfig
from .service import Monitor, PeerState


__all__ = ["Monitor", "MonitorConfig", "PeerState"]
