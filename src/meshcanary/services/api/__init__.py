"""HTTP query surface over the connectivity engine.

See Also:
    [Api][meshcanary.services.api.service.Api]: The service class.
    [ApiConfig][meshcanary.services.api.configs.ApiConfig]: Service configuration.
"""

from .configs import ApiConfig
from .service import Api, PingRequest


__all__ = ["Api", "ApiConfig", "PingRequest"]
