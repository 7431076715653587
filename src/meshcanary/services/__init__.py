"""Services built on the connectivity engine.

Services are the top layer of the package, depending on
[meshcanary.core][meshcanary.core] and [meshcanary.models][meshcanary.models].
Each service extends [BaseService][meshcanary.core.base_service.BaseService]
and implements ``async def run()`` for one cycle of work.

Attributes:
    Monitor: Periodic probe rounds with Prometheus metrics and transition
        logging.
    Api: FastAPI HTTP surface serving peer status, on-demand probes and
        the directory passthrough.

Note:
    Both services receive the same injected
    [Canary][meshcanary.core.canary.Canary] engine. Open the engine first,
    then the service::

        async with canary:
            async with monitor:
                await monitor.run_forever()
"""

from .api import Api, ApiConfig
from .monitor import Monitor, MonitorConfig


__all__ = [
    "Api",
    "ApiConfig",
    "Monitor",
    "MonitorConfig",
]
