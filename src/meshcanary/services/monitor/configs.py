"""Monitor service configuration models.

See Also:
    [Monitor][meshcanary.services.monitor.Monitor]: The service class
        that consumes these configurations.
    [BaseServiceConfig][meshcanary.core.base_service.BaseServiceConfig]:
        Base class providing ``interval``, ``max_consecutive_failures``
        and ``metrics`` fields.
"""

from __future__ import annotations

from pydantic import Field, model_validator

from meshcanary.core.base_service import BaseServiceConfig


class MonitorConfig(BaseServiceConfig):
    """Configuration for the Monitor service.

    Attributes:
        round_deadline: Abandon a round after this many seconds. Overrides
            the engine's ``round_deadline`` when set.
        log_transitions: Log peers that come online, go offline or change
            connection type between rounds.
    """

    round_deadline: float | None = Field(
        default=None,
        gt=0.0,
        description="Overall round deadline in seconds",
    )
    log_transitions: bool = Field(
        default=True,
        description="Log per-peer state changes between rounds",
    )

    @model_validator(mode="after")
    def _validate_deadline(self) -> MonitorConfig:
        if self.round_deadline is not None and self.round_deadline > self.interval:
            msg = (
                f"round_deadline ({self.round_deadline}) "
                f"must not exceed interval ({self.interval})"
            )
            raise ValueError(msg)
        return self
