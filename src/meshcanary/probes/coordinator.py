"""
Concurrent probe rounds.

The [FanOutCoordinator][meshcanary.probes.coordinator.FanOutCoordinator]
drives one [Prober][meshcanary.probes.base.Prober] across a peer list:

* every peer gets exactly one classified
  [ProbeResult][meshcanary.models.probe.ProbeResult], success or failure;
* at most ``max_concurrency`` probes are in flight at once;
* each probe is bounded by the per-probe timeout, so a silent peer costs
  at most one timeout and never blocks the round;
* results are written into slots indexed by input position, so the
  report order equals the input order whatever the completion order.

A round can be abandoned early through a stop event or an overall
deadline. In-flight probes are then cancelled and the report is marked
``partial`` with only the completed results.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import replace
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from meshcanary.core.exceptions import InvalidTargetError, ProbeTimeoutError
from meshcanary.core.logger import Logger
from meshcanary.models.constants import ConnectionType
from meshcanary.models.probe import ProbeResult
from meshcanary.models.status import ProbeReport

from .classifier import classified


if TYPE_CHECKING:
    from collections.abc import Sequence

    from meshcanary.models.peer import Peer

    from .base import Prober


OFFLINE_IN_DIRECTORY = "peer offline in directory"


def _offline_in_directory(peer: Peer) -> ProbeResult:
    return ProbeResult.failure(
        peer.address or "",
        OFFLINE_IN_DIRECTORY,
        node_name=peer.host_name,
        peer_key=peer.key,
    ).with_connection_type(ConnectionType.OFFLINE)


class FanOutCoordinator:
    """Run probes concurrently and assemble time-stamped reports.

    Args:
        prober: Transport issuing the individual probes.
        max_concurrency: Default bound on simultaneous probes.
        probe_offline: Probe peers the directory already reports offline.
            When False they get a failure result without being probed.

    Note:
        Report timestamps never go backwards for one coordinator instance,
        even if the wall clock does.
    """

    def __init__(
        self,
        prober: Prober,
        *,
        max_concurrency: int = 32,
        probe_offline: bool = False,
    ) -> None:
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self._prober = prober
        self._max_concurrency = max_concurrency
        self._probe_offline = probe_offline
        self._last_timestamp: datetime | None = None
        self._logger = Logger("coordinator")

    @property
    def prober(self) -> Prober:
        return self._prober

    def _stamp(self) -> datetime:
        now = datetime.now(UTC)
        if self._last_timestamp is not None and now < self._last_timestamp:
            now = self._last_timestamp
        self._last_timestamp = now
        return now

    async def probe_one(
        self,
        peer: Peer,
        timeout: float,  # noqa: ASYNC109
        *,
        prober: Prober | None = None,
    ) -> ProbeResult:
        """Probe a single peer and return its classified result.

        Never raises for per-peer problems: a missing address, a timeout
        or a transport fault all become failure results. Only cancellation
        propagates. The peer is probed even if the directory reports it
        offline.

        Args:
            peer: Peer to probe.
            timeout: Per-probe timeout in seconds.
            prober: Transport overriding the default one for this call.
        """
        prober = prober or self._prober
        try:
            result = await asyncio.wait_for(prober.probe(peer, timeout), timeout=timeout)
        except InvalidTargetError as e:
            result = ProbeResult.failure("", str(e), node_name=peer.host_name, peer_key=peer.key)
        except TimeoutError:
            result = ProbeResult.failure(
                peer.address or "",
                str(ProbeTimeoutError(timeout)),
                node_name=peer.host_name,
                peer_key=peer.key,
            )
        except Exception as e:  # Intentionally broad: per-peer error boundary
            self._logger.warning(
                "probe_error",
                peer=peer.host_name or peer.key,
                error=str(e),
                error_type=type(e).__name__,
            )
            result = ProbeResult.failure(
                peer.address or "",
                f"probe error: {e}" if str(e) else f"probe error: {type(e).__name__}",
                node_name=peer.host_name,
                peer_key=peer.key,
            )

        if result.peer_key is None or not result.node_name:
            result = replace(
                result,
                peer_key=result.peer_key or peer.key,
                node_name=result.node_name or peer.host_name,
            )
        result = classified(result)
        if not result.success:
            self._logger.debug("probe_failed", peer=peer.host_name or peer.key, error=result.error)
        return result

    async def probe_all(
        self,
        peers: Sequence[Peer],
        per_probe_timeout: float,
        max_concurrency: int | None = None,
        *,
        stop_event: asyncio.Event | None = None,
        deadline: float | None = None,
        prober: Prober | None = None,
    ) -> ProbeReport:
        """Probe every peer concurrently.

        Args:
            peers: Peers to probe; the report follows this order.
            per_probe_timeout: Timeout applied to each probe, in seconds.
            max_concurrency: Bound on simultaneous probes; defaults to the
                value given at construction.
            stop_event: Abandon the round as soon as the event is set.
            deadline: Abandon the round after this many seconds.
            prober: Transport overriding the default one for this round.

        Returns:
            A report with one result per peer, or only the completed ones
            (``partial=True``) if the round was abandoned.

        Raises:
            asyncio.CancelledError: If the awaiting task is cancelled;
                in-flight probes are cancelled first.
        """
        peers = list(peers)
        limit = self._max_concurrency if max_concurrency is None else max_concurrency
        if limit < 1:
            raise ValueError("max_concurrency must be at least 1")
        if not peers:
            return ProbeReport(results=(), timestamp=self._stamp())

        started = time.monotonic()
        semaphore = asyncio.Semaphore(limit)
        slots: list[ProbeResult | None] = [None] * len(peers)

        async def _bounded_probe(index: int, peer: Peer) -> None:
            if not peer.online and not self._probe_offline:
                slots[index] = _offline_in_directory(peer)
                return
            async with semaphore:
                slots[index] = await self.probe_one(peer, per_probe_timeout, prober=prober)

        tasks = [asyncio.create_task(_bounded_probe(i, p)) for i, p in enumerate(peers)]
        stop_waiter = asyncio.create_task(stop_event.wait()) if stop_event is not None else None
        waiters: set[asyncio.Future[object]] = set(tasks)
        if stop_waiter is not None:
            waiters.add(stop_waiter)

        try:
            pending_probes = set(tasks)
            while pending_probes:
                remaining = None if deadline is None else deadline - (time.monotonic() - started)
                if remaining is not None and remaining <= 0:
                    break
                done, _ = await asyncio.wait(
                    waiters, timeout=remaining, return_when=asyncio.FIRST_COMPLETED
                )
                if not done:
                    break
                waiters -= done
                pending_probes -= done
                if stop_waiter is not None and stop_waiter in done:
                    break
        finally:
            for task in tasks:
                task.cancel()
            if stop_waiter is not None:
                stop_waiter.cancel()
            outcomes = await asyncio.gather(*tasks, return_exceptions=True)

        for outcome in outcomes:
            if isinstance(outcome, Exception):
                raise outcome

        results = tuple(r for r in slots if r is not None)
        partial = len(results) < len(peers)
        report = ProbeReport(results=results, timestamp=self._stamp(), partial=partial)

        self._logger.debug(
            "probe_round_completed",
            peers=len(peers),
            completed=len(results),
            succeeded=report.succeeded,
            partial=partial,
            duration_s=round(time.monotonic() - started, 3),
        )
        return report
