"""Pydantic configuration models for probe transports."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, Field

from meshcanary.models.constants import PingType


class ProberKind(StrEnum):
    """Available probe transports."""

    DISCO = "disco"
    TCP = "tcp"


class ProberConfig(BaseModel):
    """Selects and configures the probe transport.

    Examples:
        ```yaml
        prober:
          kind: tcp
          tcp_port: 22
        ```
    """

    kind: ProberKind = Field(default=ProberKind.DISCO, description="Transport to use")
    ping_type: PingType = Field(
        default=PingType.DISCO,
        description="LocalAPI ping kind (kind=disco)",
    )
    tcp_port: int = Field(default=22, ge=1, le=65535, description="Port to connect to (kind=tcp)")
