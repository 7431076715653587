"""Pydantic configuration models for membership directories."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, model_validator


class DirectoryKind(StrEnum):
    """Available directory adapters."""

    LOCALAPI = "localapi"
    MACHINES = "machines"
    STATIC = "static"


class StaticPeerConfig(BaseModel):
    """One peer declared in configuration."""

    key: str = Field(min_length=1, description="Stable identity key")
    host_name: str = Field(default="", description="Host name (derived from dns_name if empty)")
    dns_name: str = Field(default="", description="MagicDNS name")
    addresses: list[str] = Field(default_factory=list, description="Mesh addresses")
    os: str = ""
    ssh_host_keys: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    user_login: str | None = None
    user_display: str | None = None
    online: bool = True


class StaticDirectoryConfig(BaseModel):
    """Peers served by [StaticDirectory][meshcanary.directory.static.StaticDirectory]."""

    peers: list[StaticPeerConfig] = Field(default_factory=list)
    self_peer: StaticPeerConfig | None = Field(
        default=None,
        alias="self",
        description="Local node",
    )
    magic_dns_suffix: str | None = None

    model_config = ConfigDict(populate_by_name=True)

    @model_validator(mode="after")
    def _unique_keys(self) -> StaticDirectoryConfig:
        keys = [p.key for p in self.peers]
        duplicates = sorted({k for k in keys if keys.count(k) > 1})
        if duplicates:
            msg = f"duplicate peer keys: {', '.join(duplicates)}"
            raise ValueError(msg)
        return self


class DirectoryConfig(BaseModel):
    """Selects and configures the membership directory adapter.

    Examples:
        ```yaml
        directory:
          kind: machines
          machines_url: http://canary.example.ts.net:8080
          timeout: 5.0
        ```
    """

    kind: DirectoryKind = Field(default=DirectoryKind.LOCALAPI, description="Adapter to use")
    timeout: float = Field(default=10.0, gt=0.0, le=120.0, description="Read timeout in seconds")
    machines_url: str | None = Field(
        default=None,
        description="Base URL serving GET /machines (kind=machines)",
    )
    max_response_size: int = Field(
        default=16 * 1024 * 1024,
        ge=1024,
        description="Maximum directory document size in bytes",
    )
    static: StaticDirectoryConfig = Field(default_factory=StaticDirectoryConfig)

    @model_validator(mode="after")
    def _machines_url_required(self) -> DirectoryConfig:
        if self.kind == DirectoryKind.MACHINES:
            if not self.machines_url:
                raise ValueError("machines_url is required when kind is 'machines'")
            if not self.machines_url.startswith(("http://", "https://")):
                raise ValueError("machines_url must be an http(s) URL")
        return self
