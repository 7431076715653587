"""API service configuration models.

See Also:
    [Api][meshcanary.services.api.Api]: The service class that consumes
        these configurations.
    [BaseServiceConfig][meshcanary.core.base_service.BaseServiceConfig]:
        Base class providing ``interval``, ``max_consecutive_failures``,
        and ``metrics`` fields.
"""

from __future__ import annotations

from pydantic import Field

from meshcanary.core.base_service import BaseServiceConfig


class ApiConfig(BaseServiceConfig):
    """Configuration for the API service.

    Attributes:
        host: Bind address for the HTTP server.
        port: Port for the HTTP server.
        cors_origins: Allowed CORS origins.  Empty list disables CORS.
        request_timeout: Upper bound for one request, in seconds. Probe
            rounds started by a request use it as their deadline.
        refresh_on_read: Run a fresh probe round on every ``GET /peers``
            read.  When disabled, reads serve the report refreshed in the
            background every ``interval`` seconds.
        machines_ssh_only: ``GET /machines`` lists only peers that
            advertise SSH host keys unless ``?all=true`` is given.
    """

    host: str = Field(default="127.0.0.1", min_length=1, description="HTTP bind address")
    port: int = Field(default=8080, ge=1, le=65535, description="HTTP port")
    cors_origins: list[str] = Field(default_factory=list)
    request_timeout: float = Field(default=30.0, ge=1.0, le=300.0)
    refresh_on_read: bool = Field(default=False)
    machines_ssh_only: bool = Field(default=True)
