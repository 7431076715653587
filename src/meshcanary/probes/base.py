"""
Abstract probe transport.

A [Prober][meshcanary.probes.base.Prober] sends one connectivity check to
one peer and reports what happened as a raw
[ProbeResult][meshcanary.models.probe.ProbeResult]. Network failures are
outcomes, not errors: ``probe()`` only raises
[InvalidTargetError][meshcanary.core.exceptions.InvalidTargetError] for a
peer that cannot be addressed at all.

Timeouts are enforced by the caller
([FanOutCoordinator][meshcanary.probes.coordinator.FanOutCoordinator]);
the ``timeout`` argument lets transports size their own I/O deadlines.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from types import TracebackType
from typing import TYPE_CHECKING, ClassVar, Self

from meshcanary.core.exceptions import InvalidTargetError


if TYPE_CHECKING:
    from meshcanary.models.constants import PingType
    from meshcanary.models.peer import Peer
    from meshcanary.models.probe import ProbeResult


class Prober(ABC):
    """One-shot connectivity check against a single peer.

    Attributes:
        KIND: Short identifier used in configuration and logs.
    """

    KIND: ClassVar[str]

    async def open(self) -> None:  # noqa: B027
        """Acquire resources. No-op by default."""

    async def close(self) -> None:  # noqa: B027
        """Release resources. No-op by default."""

    async def __aenter__(self) -> Self:
        await self.open()
        return self

    async def __aexit__(
        self,
        _exc_type: type[BaseException] | None,
        _exc_val: BaseException | None,
        _exc_tb: TracebackType | None,
    ) -> None:
        await self.close()

    @abstractmethod
    async def probe(self, peer: Peer, timeout: float) -> ProbeResult:  # noqa: ASYNC109
        """Probe *peer* once.

        Raises:
            InvalidTargetError: If the peer has no mesh address.
        """
        ...

    def with_ping_type(self, ping_type: PingType) -> Prober:
        """Return a prober issuing *ping_type* checks.

        Raises:
            ValueError: If the transport supports a single kind of check.
        """
        raise ValueError(f"{self.KIND} prober does not support ping type {ping_type.value!r}")

    @staticmethod
    def target(peer: Peer) -> str:
        """Return the address to probe: the peer's first non-empty mesh address.

        Raises:
            InvalidTargetError: If the peer has none or its directory record
                was unreadable.
        """
        if peer.error:
            raise InvalidTargetError(f"malformed directory record: {peer.error}")
        address = peer.address
        if address is None:
            raise InvalidTargetError(f"peer {peer.host_name or peer.key} has no mesh address")
        return address
