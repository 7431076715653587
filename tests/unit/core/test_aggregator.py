"""
Unit tests for core.aggregator module.

Tests:
- merge_status() for reachable, unreachable and unprobed peers
- Path data precedence over directory link data
- StatusAggregator join by key and by address, queries and errors
"""

from datetime import UTC, datetime

import pytest

from meshcanary.core.aggregator import StatusAggregator, merge_status
from meshcanary.core.exceptions import PeerNotFoundError
from meshcanary.models import (
    ConnectionType,
    DirectorySnapshot,
    LinkStats,
    PathMetadata,
    ProbeReport,
    ProbeResult,
)
from meshcanary.probes import classified


TS = datetime(2026, 5, 6, 7, 8, 9, tzinfo=UTC)


def _direct(ip: str, key: str | None = None) -> ProbeResult:
    return classified(
        ProbeResult(
            ip=ip,
            success=True,
            latency_ms=8.0,
            path=PathMetadata(endpoint="192.168.1.20:41641"),
            peer_key=key,
        )
    )


def _failed(ip: str, key: str | None = None) -> ProbeResult:
    return classified(ProbeResult.failure(ip, "connection refused", peer_key=key))


class TestMergeStatus:
    def test_reachable(self, make_peer, sample_link):
        peer = make_peer(1, link=sample_link)
        status = merge_status(peer, _direct("100.64.0.1"))
        assert status.online is True
        assert status.active is True
        assert status.connection_type == ConnectionType.DIRECT
        assert status.latency_ms == 8.0
        assert status.rx_bytes == 2048
        assert status.last_handshake == sample_link.last_handshake

    def test_probe_path_overrides_link(self, make_peer, sample_link):
        status = merge_status(make_peer(1, link=sample_link), _direct("100.64.0.1"))
        assert status.cur_addr == "192.168.1.20:41641"
        assert status.relay == "fra"

    def test_inactive_link(self, make_peer):
        status = merge_status(make_peer(1, link=LinkStats(active=False)), _direct("100.64.0.1"))
        assert status.online is True
        assert status.active is False

    def test_unreachable(self, make_peer, sample_link):
        status = merge_status(make_peer(1, link=sample_link), _failed("100.64.0.1"))
        assert status.online is False
        assert status.active is False
        assert status.connection_type == ConnectionType.OFFLINE
        assert status.latency_ms is None
        assert status.error == "connection refused"
        assert status.cur_addr == "10.0.0.5:41641"

    def test_unprobed(self, make_peer, sample_link):
        status = merge_status(make_peer(1, link=sample_link), None)
        assert status.online is False
        assert status.connection_type == ConnectionType.UNKNOWN
        assert status.tx_bytes == 1024
        assert status.error is None

    def test_no_link(self, make_peer):
        status = merge_status(make_peer(1), _direct("100.64.0.1"))
        assert status.active is False
        assert status.rx_bytes == 0
        assert status.last_handshake is None


class TestStatusAggregator:
    def test_empty_before_first_round(self):
        aggregator = StatusAggregator()
        assert aggregator.report() is None
        assert aggregator.statuses() == ()
        with pytest.raises(PeerNotFoundError):
            aggregator.status("node-1")

    def test_one_status_per_peer_in_snapshot_order(self, peers):
        snapshot = DirectorySnapshot(peers=peers)
        probe_report = ProbeReport(
            results=(
                _failed("100.64.0.3", "nodekey:0003"),
                _direct("100.64.0.1", "nodekey:0001"),
            ),
            timestamp=TS,
            partial=True,
        )
        report = StatusAggregator().aggregate(snapshot, probe_report)
        assert [s.peer.host_name for s in report.statuses] == ["node-1", "node-2", "node-3"]
        assert [s.connection_type for s in report.statuses] == [
            ConnectionType.DIRECT,
            ConnectionType.UNKNOWN,
            ConnectionType.OFFLINE,
        ]
        assert report.timestamp == TS
        assert report.partial is True

    def test_join_by_address_without_key(self, peers):
        snapshot = DirectorySnapshot(peers=peers)
        probe_report = ProbeReport(results=(_direct("100.64.0.2"),), timestamp=TS)
        report = StatusAggregator().aggregate(snapshot, probe_report)
        assert report.statuses[1].online is True
        assert report.statuses[0].online is False

    def test_queries(self, peers):
        aggregator = StatusAggregator()
        snapshot = DirectorySnapshot(peers=peers)
        results = tuple(_direct(p.address, p.key) for p in peers)
        report = aggregator.aggregate(snapshot, ProbeReport(results=results, timestamp=TS))
        assert aggregator.report() is report
        assert len(aggregator.statuses()) == 3
        assert aggregator.status("node-2").key == "nodekey:0002"
        assert aggregator.status("100.64.0.3").key == "nodekey:0003"
        with pytest.raises(PeerNotFoundError, match="peer not found: ghost"):
            aggregator.status("ghost")

    def test_latest_report_replaces_previous(self, peers):
        aggregator = StatusAggregator()
        empty = ProbeReport(results=(), timestamp=TS)
        aggregator.aggregate(DirectorySnapshot(peers=peers), empty)
        aggregator.aggregate(DirectorySnapshot(peers=peers[:1]), empty)
        assert len(aggregator.statuses()) == 1
